"""Normalization layer - Payload crudo → lectura canónica."""

from .normalizer import coerce_value, normalize_reading, parse_rfc3339, utc_now
from .payload import MalformedPayloadError, decode_payload

__all__ = [
    "coerce_value",
    "normalize_reading",
    "parse_rfc3339",
    "utc_now",
    "MalformedPayloadError",
    "decode_payload",
]
