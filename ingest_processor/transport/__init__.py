"""Transport layer - Lectura y publicación en Redis Streams."""

from .publisher import StreamPublisher, sample_reading
from .stream_source import RedisStreamSource, StreamMessage, TransportError

__all__ = [
    "StreamPublisher",
    "sample_reading",
    "RedisStreamSource",
    "StreamMessage",
    "TransportError",
]
