"""Consumo del stream de lecturas crudas (Redis Streams + consumer group).

Un mensaje por lectura: el loop nunca pide el mensaje N+1 antes de terminar
el N. Al arrancar se releen primero las entradas pendientes (entregadas y no
confirmadas) de este consumer, luego se pasa a las nuevas.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import redis

logger = logging.getLogger(__name__)

PENDING_ID = "0"
NEW_MESSAGES_ID = ">"


class TransportError(Exception):
    """Error no recuperable del transporte (broker inalcanzable, etc.)."""


@dataclass(frozen=True)
class StreamMessage:
    """Entrada del stream. ``payload`` son bytes opacos, posiblemente inválidos."""
    message_id: str
    payload: Optional[bytes]


def _as_str(value: Any) -> str:
    return value.decode("utf-8", errors="replace") if isinstance(value, bytes) else str(value)


def _as_bytes(value: Any) -> Optional[bytes]:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value
    return str(value).encode("utf-8")


class RedisStreamSource:
    """Lee de un Redis Stream a través de un consumer group.

    Uso:
        source = RedisStreamSource.from_url(url, "readings:raw", "reading-processor", "worker-1")
        source.ensure_group()
        msg = source.receive()
        ...
        source.ack(msg)
    """

    def __init__(
        self,
        client: "redis.Redis",
        stream: str,
        group: str,
        consumer: str,
        payload_field: str = "payload",
        block_ms: int = 5000,
        start_id: str = "$",
    ):
        self._redis = client
        self._stream = stream
        self._group = group
        self._consumer = consumer
        self._payload_field = payload_field.encode("utf-8")
        self._block_ms = block_ms
        self._start_id = start_id
        self._reading_pending = True

    @classmethod
    def from_url(
        cls,
        url: str,
        stream: str,
        group: str,
        consumer: str,
        payload_field: str = "payload",
        block_ms: int = 5000,
    ) -> "RedisStreamSource":
        # El socket_timeout debe superar el tiempo de bloqueo de XREADGROUP;
        # block_ms=0 bloquea sin límite, así que el socket tampoco expira
        socket_timeout = block_ms / 1000.0 + 5.0 if block_ms > 0 else None
        client = redis.Redis.from_url(
            url,
            decode_responses=False,
            socket_timeout=socket_timeout,
            socket_connect_timeout=5.0,
        )
        return cls(client, stream, group, consumer, payload_field, block_ms)

    def ensure_group(self) -> None:
        """Crea el consumer group (y el stream) si no existen."""
        try:
            self._redis.xgroup_create(self._stream, self._group, id=self._start_id, mkstream=True)
            logger.info("[STREAM] Created consumer group %s on %s", self._group, self._stream)
        except redis.exceptions.ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise TransportError(f"cannot create consumer group {self._group}: {e}") from e
        except redis.exceptions.RedisError as e:
            raise TransportError(f"cannot create consumer group {self._group}: {e}") from e

    def receive(self) -> Optional[StreamMessage]:
        """Obtiene el siguiente mensaje, o None si no llegó nada en el bloqueo."""
        if self._reading_pending:
            message = self._read(PENDING_ID, block=None)
            if message is not None:
                return message
            self._reading_pending = False
            logger.info("[STREAM] No pending entries left, reading new messages")

        return self._read(NEW_MESSAGES_ID, block=self._block_ms)

    def ack(self, message: StreamMessage) -> None:
        """Confirma el mensaje: este componente no lo vuelve a entregar."""
        try:
            self._redis.xack(self._stream, self._group, message.message_id)
        except redis.exceptions.RedisError as e:
            raise TransportError(f"ack failed for {message.message_id}: {e}") from e

    def close(self) -> None:
        try:
            self._redis.close()
        except redis.exceptions.RedisError as e:
            logger.warning("[STREAM] Close error: %s", e)

    def _read(self, last_id: str, block: Optional[int]) -> Optional[StreamMessage]:
        try:
            response = self._redis.xreadgroup(
                self._group,
                self._consumer,
                {self._stream: last_id},
                count=1,
                block=block,
            )
        except redis.exceptions.RedisError as e:
            raise TransportError(f"read from {self._stream} failed: {e}") from e

        return self._first_message(response)

    def _first_message(self, response: Any) -> Optional[StreamMessage]:
        if not response:
            return None

        # RESP2 devuelve [[stream, entries]], RESP3 {stream: entries}
        streams = response.items() if isinstance(response, dict) else response
        for _stream_name, entries in streams:
            for entry in entries or []:
                entry_id, fields = entry[0], entry[1]
                # Entradas pendientes ya borradas del stream llegan sin campos
                payload = _as_bytes((fields or {}).get(self._payload_field))
                if payload is None and fields:
                    payload = _as_bytes(fields.get(self._payload_field.decode("utf-8")))
                return StreamMessage(message_id=_as_str(entry_id), payload=payload)
        return None
