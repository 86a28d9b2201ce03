from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pymongo import MongoClient
from pymongo.database import Database

from ..core.constants import DEFAULT_MAX_POOL_SIZE, DEFAULT_STORE_TIMEOUT_MS
from .mongo_base import store_errors


@dataclass
class MongoConfig:
    uri: str
    database: str
    max_pool_size: int = DEFAULT_MAX_POOL_SIZE
    timeout_ms: int = DEFAULT_STORE_TIMEOUT_MS


class DatabaseConnection:
    """Holder of the pooled MongoClient, created lazily on first use.

    Note: MongoClient is thread-safe and pools connections itself, so the container
    builds one instance and every repository shares it. `timeoutMS` bounds every
    operation issued through it.
    """

    def __init__(self, config: MongoConfig):
        self._config = config
        self._client: Optional[MongoClient] = None

    @property
    def client(self) -> MongoClient:
        if self._client is None:
            self._client = MongoClient(
                self._config.uri,
                maxPoolSize=int(self._config.max_pool_size),
                timeoutMS=int(self._config.timeout_ms),
                serverSelectionTimeoutMS=int(self._config.timeout_ms),
                tz_aware=False,
            )
        return self._client

    @property
    def db(self) -> Database:
        return self.client[self._config.database]

    @property
    def database_name(self) -> str:
        return self._config.database

    def ping(self) -> bool:
        with store_errors("ping"):
            self.client.admin.command("ping")
        return True

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
