"""Decodificación del payload crudo recibido del stream."""

from __future__ import annotations

from typing import Any, Optional

import orjson


class MalformedPayloadError(ValueError):
    """El payload no es un documento JSON sintácticamente válido."""


def decode_payload(payload: Optional[bytes]) -> Any:
    """Parsea bytes UTF-8 como JSON.

    Acepta cualquier tipo JSON en la raíz; la forma del documento la resuelve
    el normalizador.

    Raises:
        MalformedPayloadError: payload vacío, UTF-8 inválido o JSON inválido
    """
    if not payload:
        raise MalformedPayloadError("empty payload")
    try:
        return orjson.loads(payload)
    except orjson.JSONDecodeError as e:
        raise MalformedPayloadError(str(e)) from e


def preview(payload: Optional[bytes], limit: int = 200) -> str:
    """Fragmento legible del payload para logs."""
    if payload is None:
        return ""
    return payload[:limit].decode("utf-8", errors="replace")
