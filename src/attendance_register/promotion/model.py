from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..core.constants import MIN_SEMESTER, TOP_SEMESTER


@dataclass(frozen=True)
class PromotionBackup:
    """Snapshot of a stream's students taken right before a promotion run."""

    backup_id: str
    stream: str
    timestamp: datetime
    students: tuple[dict[str, Any], ...]
    restored: bool = False
    restored_at: Optional[datetime] = None

    @property
    def total_students(self) -> int:
        return len(self.students)


@dataclass(frozen=True)
class PromotionPreview:
    stream: str
    breakdown: dict[int, int]

    @property
    def total_students(self) -> int:
        return sum(self.breakdown.values())

    def flow(self) -> list[str]:
        lines = []
        for sem in range(MIN_SEMESTER, TOP_SEMESTER + 1):
            target = "Graduate" if sem == TOP_SEMESTER else f"Sem {sem + 1}"
            lines.append(f"Sem {sem} → {target} ({self.breakdown.get(sem, 0)} students)")
        return lines

    def to_dict(self) -> dict:
        return {
            "stream": self.stream,
            "totalStudents": self.total_students,
            "semesterBreakdown": {f"semester{sem}": count for sem, count in sorted(self.breakdown.items())},
            "promotionPreview": self.flow(),
        }


@dataclass(frozen=True)
class PromotionResult:
    stream: str
    total_promoted: int
    total_graduated: int
    flow: tuple[str, ...]
    backup_id: str

    def to_dict(self) -> dict:
        return {
            "stream": self.stream,
            "totalPromoted": self.total_promoted,
            "totalGraduated": self.total_graduated,
            "promotionFlow": list(self.flow),
            "backupCreated": True,
            "note": "Semester 1 is now empty and ready for new admissions. You can undo this within 24 hours.",
        }


@dataclass(frozen=True)
class UndoStatus:
    can_undo: bool
    hours_old: Optional[int] = None
    students_in_backup: int = 0
    backup_timestamp: Optional[datetime] = None
    message: Optional[str] = None

    def to_dict(self) -> dict:
        out: dict[str, Any] = {"canUndo": self.can_undo}
        if self.backup_timestamp is not None:
            out["backupTimestamp"] = self.backup_timestamp.isoformat()
            out["hoursOld"] = self.hours_old
            out["studentsInBackup"] = self.students_in_backup
        if self.message:
            out["message"] = self.message
        return out


@dataclass(frozen=True)
class UndoResult:
    stream: str
    students_restored: int
    backup_timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "stream": self.stream,
            "studentsRestored": self.students_restored,
            "backupTimestamp": self.backup_timestamp.isoformat(),
            "message": "Promotion successfully undone",
        }
