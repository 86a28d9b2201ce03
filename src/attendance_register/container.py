from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .cache.result_cache import ResultCache
from .catalog.mongo_catalog_repository import MongoCatalogRepository
from .catalog.repository import CatalogRepository
from .catalog.service import CatalogService
from .core.constants import DEFAULT_CACHE_TTL_SECONDS, DEFAULT_UNDO_WINDOW_HOURS
from .database.connection import DatabaseConnection, MongoConfig
from .edits.service import EditService
from .promotion.locks import StreamLocks
from .promotion.mongo_backup_repository import MongoBackupRepository
from .promotion.repository import BackupRepository
from .promotion.service import PromotionService
from .register.service import RegisterBuilder
from .sessions.mongo_session_repository import MongoSessionRepository
from .sessions.repository import SessionRepository
from .sessions.service import SessionService
from .students.mongo_student_repository import MongoStudentRepository
from .students.repository import StudentRepository
from .teachers.mongo_teacher_repository import MongoTeacherRepository
from .teachers.repository import TeacherRepository
from .teachers.service import TeacherService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    sessions_repo: SessionRepository
    students_repo: StudentRepository
    catalog_repo: CatalogRepository
    backups_repo: BackupRepository
    teachers_repo: TeacherRepository

    cache: ResultCache
    stream_locks: StreamLocks

    session_service: SessionService
    register_builder: RegisterBuilder
    edit_service: EditService
    catalog_service: CatalogService
    promotion_service: PromotionService
    teacher_service: TeacherService


def wire(
    *,
    sessions_repo: SessionRepository,
    students_repo: StudentRepository,
    catalog_repo: CatalogRepository,
    backups_repo: BackupRepository,
    teachers_repo: TeacherRepository,
    cache: Optional[ResultCache] = None,
    stream_locks: Optional[StreamLocks] = None,
    undo_window_hours: int = DEFAULT_UNDO_WINDOW_HOURS,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Build the services over any set of repositories (the Mongo ones, or fakes in tests)."""

    cache = cache if cache is not None else ResultCache()
    stream_locks = stream_locks if stream_locks is not None else StreamLocks()

    catalog_service = CatalogService(catalog_repo, students_repo)

    return Container(
        conn=conn,
        sessions_repo=sessions_repo,
        students_repo=students_repo,
        catalog_repo=catalog_repo,
        backups_repo=backups_repo,
        teachers_repo=teachers_repo,
        cache=cache,
        stream_locks=stream_locks,
        session_service=SessionService(sessions_repo, cache),
        register_builder=RegisterBuilder(sessions_repo, students_repo, catalog_repo, cache),
        edit_service=EditService(sessions_repo, cache),
        catalog_service=catalog_service,
        promotion_service=PromotionService(
            catalog_service,
            students_repo,
            backups_repo,
            cache,
            locks=stream_locks,
            undo_window_hours=undo_window_hours,
        ),
        teacher_service=TeacherService(teachers_repo),
    )


def build_container(
    *,
    mongo_config: dict,
    cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
    undo_window_hours: int = DEFAULT_UNDO_WINDOW_HOURS,
) -> Container:
    config = MongoConfig(
        uri=str(mongo_config["uri"]),
        database=str(mongo_config["database"]),
        max_pool_size=int(mongo_config.get("max_pool_size", 20)),
        timeout_ms=int(mongo_config.get("timeout_ms", 5000)),
    )
    conn = DatabaseConnection(config)

    return wire(
        sessions_repo=MongoSessionRepository(conn),
        students_repo=MongoStudentRepository(conn),
        catalog_repo=MongoCatalogRepository(conn),
        backups_repo=MongoBackupRepository(conn),
        teachers_repo=MongoTeacherRepository(conn),
        cache=ResultCache(ttl_seconds=cache_ttl_seconds),
        undo_window_hours=undo_window_hours,
        conn=conn,
    )
