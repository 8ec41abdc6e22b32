"""Destino de los mensajes que el pipeline no pudo persistir.

Punto de extensión para la política de dead-letter: por defecto los mensajes
se registran y se descartan; con RedisDeadLetterSink quedan en un stream para
análisis o reproceso posterior.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol

import redis

from ..domain.reading import CanonicalReading

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiscardedMessage:
    """Mensaje descartado con el contexto conocido hasta el fallo."""
    payload: Optional[bytes]
    reason: str
    error: Optional[str] = None
    message_id: Optional[str] = None
    reading: Optional[CanonicalReading] = None
    sensor_key: Optional[str] = None


class DiscardSink(Protocol):
    def discard(self, entry: DiscardedMessage) -> None:
        ...


class LoggingDiscardSink:
    """Registra el descarte y pierde el mensaje (comportamiento histórico)."""

    def __init__(self) -> None:
        self._total_discarded = 0

    @property
    def stats(self) -> dict:
        return {"sink": "log", "total_discarded": self._total_discarded}

    def discard(self, entry: DiscardedMessage) -> None:
        self._total_discarded += 1
        logger.info(
            "[DLQ] DISCARDED reason=%s message_id=%s error=%s",
            entry.reason,
            entry.message_id,
            entry.error,
        )


class RedisDeadLetterSink:
    """Dead letter queue sobre Redis Streams.

    Sus propios fallos se registran y nunca llegan al pipeline.

    Attributes:
        stream_name: Nombre del stream en Redis
        max_len: Máximo de entradas (aproximado, usa MAXLEN ~)
    """

    STREAM_NAME = "dlq:processor"
    DEFAULT_MAX_LEN = 10000

    def __init__(
        self,
        redis_client: "redis.Redis",
        stream_name: str = STREAM_NAME,
        max_len: int = DEFAULT_MAX_LEN,
    ):
        self._redis = redis_client
        self._stream = stream_name
        self._max_len = max_len

        # Stats
        self._total_sent = 0
        self._send_errors = 0

    @property
    def stats(self) -> dict:
        """Estadísticas de la DLQ."""
        return {
            "sink": "redis",
            "stream_name": self._stream,
            "total_sent": self._total_sent,
            "send_errors": self._send_errors,
        }

    def discard(self, entry: DiscardedMessage) -> None:
        record = {
            "payload": (entry.payload or b"")[:5000],  # Limitar tamaño
            "reason": entry.reason,
            "error": (entry.error or "")[:1000],
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        if entry.message_id is not None:
            record["message_id"] = entry.message_id
        if entry.reading is not None:
            record["identifier"] = entry.reading.identifier
            record["measuring"] = entry.reading.measuring
            record["raw_value"] = entry.reading.raw_value
            record["timestamp"] = entry.reading.timestamp.isoformat()
        if entry.sensor_key is not None:
            record["sensor_id"] = entry.sensor_key

        try:
            self._redis.xadd(
                self._stream,
                record,
                maxlen=self._max_len,
                approximate=True,
            )
        except redis.exceptions.RedisError as e:
            self._send_errors += 1
            logger.error(
                "[DLQ] DLQ_SEND_ERROR reason=%s message_id=%s err=%s",
                entry.reason,
                entry.message_id,
                e,
            )
            return

        self._total_sent += 1
        logger.info(
            "[DLQ] DLQ_SENT reason=%s message_id=%s",
            entry.reason,
            entry.message_id,
        )
