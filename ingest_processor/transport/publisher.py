"""Publicador al stream de lecturas crudas.

Sustituye al collector de pruebas: publica payloads de ejemplo en el mismo
formato que usan los productores upstream.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Union

import orjson
import redis

from .stream_source import TransportError

logger = logging.getLogger(__name__)

DEFAULT_MAX_LEN = 10000


def sample_reading(
    identifier: str = "S1",
    measuring: str = "temperature",
    value: Any = 22.5,
    timestamp: Optional[datetime] = None,
) -> dict:
    """Lectura de ejemplo con todos los campos que entiende el normalizador."""
    ts = timestamp or datetime.now(timezone.utc)
    return {
        "identifier": identifier,
        "measuring": measuring,
        "value": value,
        "value_type": "Number",
        "unit": "DegreesCelsius",
        "timestamp": ts.isoformat().replace("+00:00", "Z"),
    }


class StreamPublisher:
    """Publica payloads en un Redis Stream (XADD con MAXLEN ~)."""

    def __init__(
        self,
        client: "redis.Redis",
        stream: str,
        payload_field: str = "payload",
        max_len: int = DEFAULT_MAX_LEN,
    ):
        self._redis = client
        self._stream = stream
        self._payload_field = payload_field
        self._max_len = max_len

    def publish(self, payload: Union[bytes, dict, list]) -> str:
        """Publica un payload.

        Args:
            payload: bytes tal cual, o un documento que se serializa a JSON

        Returns:
            ID asignado por Redis a la entrada
        """
        data = payload if isinstance(payload, bytes) else orjson.dumps(payload)

        try:
            entry_id = self._redis.xadd(
                self._stream,
                {self._payload_field: data},
                maxlen=self._max_len,
                approximate=True,
            )
        except redis.exceptions.RedisError as e:
            raise TransportError(f"publish to {self._stream} failed: {e}") from e

        entry_id = entry_id.decode("utf-8") if isinstance(entry_id, bytes) else str(entry_id)
        logger.debug("[STREAM] Published %s to %s", entry_id, self._stream)
        return entry_id
