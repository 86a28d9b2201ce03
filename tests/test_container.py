from __future__ import annotations

from attendance_register.cache.result_cache import ResultCache
from attendance_register.container import build_container, wire
from attendance_register.promotion.locks import StreamLocks


def test_wire_keeps_an_injected_empty_cache(
    sessions_repo, students_repo, catalog_repo, backups_repo, teachers_repo, clock
):
    cache = ResultCache(ttl_seconds=7, clock=clock)
    locks = StreamLocks()
    assert len(cache) == 0

    container = wire(
        sessions_repo=sessions_repo,
        students_repo=students_repo,
        catalog_repo=catalog_repo,
        backups_repo=backups_repo,
        teachers_repo=teachers_repo,
        cache=cache,
        stream_locks=locks,
    )

    assert container.cache is cache
    assert container.stream_locks is locks

    container.session_service.subject_stats(stream="BCA", semester=2)
    container.session_service.subject_stats(stream="BCA", semester=2)
    assert sessions_repo.calls["totals_by_subject"] == 1

    clock.advance(8)
    container.session_service.subject_stats(stream="BCA", semester=2)
    assert sessions_repo.calls["totals_by_subject"] == 2


def test_each_container_gets_its_own_connection():
    first = build_container(mongo_config={"uri": "mongodb://localhost:27017", "database": "register_a"})
    second = build_container(mongo_config={"uri": "mongodb://localhost:27017", "database": "register_b"})

    assert first.conn is not second.conn
    assert first.conn.database_name == "register_a"
    assert second.conn.database_name == "register_b"
