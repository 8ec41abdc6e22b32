"""Estadísticas de procesamiento."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Stats:
    """Contadores por resultado de cada mensaje."""

    received: int = 0
    processed: int = 0
    rejected: int = 0
    lookup_failed: int = 0
    write_failed: int = 0
    failed: int = 0
    last_message_at: float = 0
    started_at: datetime = field(default_factory=_utc_now)

    def __str__(self) -> str:
        return (
            f"Stats: received={self.received} processed={self.processed} "
            f"rejected={self.rejected} lookup_failed={self.lookup_failed} "
            f"write_failed={self.write_failed} failed={self.failed}"
        )

    def to_dict(self) -> dict:
        """Convierte a diccionario."""
        return {
            "received": self.received,
            "processed": self.processed,
            "rejected": self.rejected,
            "lookup_failed": self.lookup_failed,
            "write_failed": self.write_failed,
            "failed": self.failed,
            "last_message_at": self.last_message_at,
            "started_at": self.started_at.isoformat(),
            "success_rate": self._success_rate(),
        }

    def _success_rate(self) -> float:
        """Calcula tasa de éxito."""
        if self.received == 0:
            return 1.0
        return self.processed / self.received
