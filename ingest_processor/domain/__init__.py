"""Domain layer - Modelos y eventos."""

from .reading import (
    CanonicalReading,
    NormalizationResult,
    PersistedReading,
    SensorKey,
    Unit,
    ValueType,
    UNKNOWN_IDENTIFIER,
    UNKNOWN_MEASURING,
)
from .events import EventKind, EventSink, PipelineEvent, RejectionReason

__all__ = [
    "CanonicalReading",
    "NormalizationResult",
    "PersistedReading",
    "SensorKey",
    "Unit",
    "ValueType",
    "UNKNOWN_IDENTIFIER",
    "UNKNOWN_MEASURING",
    "EventKind",
    "EventSink",
    "PipelineEvent",
    "RejectionReason",
]
