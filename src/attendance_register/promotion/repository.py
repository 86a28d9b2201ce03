from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Protocol, Sequence

from .model import PromotionBackup


class BackupRepository(Protocol):
    def insert(self, *, stream: str, timestamp: datetime, students: Sequence[Dict[str, Any]]) -> str:
        raise NotImplementedError

    def latest(self, stream: str) -> Optional[PromotionBackup]:
        """Most recent backup of the stream, restored or not."""

        raise NotImplementedError

    def mark_restored(self, backup_id: str, *, at: datetime) -> bool:
        raise NotImplementedError
