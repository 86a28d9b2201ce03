from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class BulkEditResult:
    """Outcome of a bulk edit. `modified < requested` means a partial success."""

    requested: int
    matched: int
    modified: int
    failed: tuple[str, ...] = ()

    @property
    def complete(self) -> bool:
        return self.matched == self.requested and not self.failed

    def to_dict(self) -> dict:
        return {
            "requested": self.requested,
            "matched": self.matched,
            "modified": self.modified,
            "failed": list(self.failed),
        }
