"""Módulo de resiliencia del procesador.

Contiene:
- FixedBackoff / ExponentialBackoff: espera entre intentos de conexión
- DiscardSink: destino de mensajes no persistidos (log o dead letter en Redis)
"""

from .backoff import BackoffPolicy, ExponentialBackoff, FixedBackoff
from .discard_sink import (
    DiscardedMessage,
    DiscardSink,
    LoggingDiscardSink,
    RedisDeadLetterSink,
)

__all__ = [
    "BackoffPolicy",
    "ExponentialBackoff",
    "FixedBackoff",
    "DiscardedMessage",
    "DiscardSink",
    "LoggingDiscardSink",
    "RedisDeadLetterSink",
]
