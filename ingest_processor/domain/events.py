"""Eventos tipados que emite el pipeline en cada etapa.

Reemplazan los prints de estado: cada etapa produce un evento discreto que
consumen los sinks de observabilidad (logs, métricas, etc.).
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Protocol

from pydantic import BaseModel, Field


class EventKind(str, Enum):
    ACCEPTED = "accepted"
    DEFAULTED_FIELD = "defaulted_field"
    REJECTED = "rejected"
    PERSISTED = "persisted"
    LOOKUP_FAILED = "lookup_failed"
    WRITE_FAILED = "write_failed"


class RejectionReason(str, Enum):
    MALFORMED_PAYLOAD = "malformed_payload"
    SENSOR_NOT_FOUND = "sensor_not_found"


TERMINAL_KINDS = frozenset(
    {
        EventKind.REJECTED,
        EventKind.PERSISTED,
        EventKind.LOOKUP_FAILED,
        EventKind.WRITE_FAILED,
    }
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PipelineEvent(BaseModel):
    """Evento de una etapa del pipeline para un mensaje."""

    kind: EventKind
    message_id: Optional[str] = None
    identifier: Optional[str] = None
    measuring: Optional[str] = None
    field: Optional[str] = None
    reason: Optional[RejectionReason] = None
    sensor_key: Optional[str] = None
    reading_id: Optional[str] = None
    error: Optional[str] = None
    emitted_at: datetime = Field(default_factory=_utc_now)

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_KINDS


class EventSink(Protocol):
    """Colaborador externo de observabilidad."""

    def emit(self, event: PipelineEvent) -> None:
        ...
