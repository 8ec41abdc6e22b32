"""Normalización de lecturas heterogéneas al esquema canónico.

Función pura: documento JSON ya parseado → CanonicalReading. Nunca falla ante un
documento sintácticamente válido; cada campo ausente o irreconocible se
sustituye por su valor por defecto en una rama explícita.

Reglas por campo:
- identifier / measuring: string no vacío, si no "unknown_sensor" / "unknown"
- value_type: Number | Boolean | String (sin distinguir mayúsculas), si no Number
- unit: DegreesCelsius | Fahrenheit (acepta "DEGREES_CELCIUS"), si no Unknown
- raw_value: JSON literal del campo value, "" si no viene
- value: número → float, string → float o None, bool → 1.0/0.0, resto → None
- timestamp: RFC3339, si no el instante actual (UTC)
- metadata: solo si es un objeto
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import orjson

from ..domain.reading import (
    CanonicalReading,
    NormalizationResult,
    Unit,
    ValueType,
    UNKNOWN_IDENTIFIER,
    UNKNOWN_MEASURING,
)

Clock = Callable[[], datetime]

_MISSING = object()

_VALUE_TYPES = {
    "number": ValueType.NUMBER,
    "boolean": ValueType.BOOLEAN,
    "string": ValueType.STRING,
}

# Claves en minúsculas y sin "_" para tolerar DEGREES_CELSIUS, DegreesCelsius, etc.
_UNITS = {
    "degreescelsius": Unit.DEGREES_CELSIUS,
    "degreescelcius": Unit.DEGREES_CELSIUS,  # typo histórico de los productores
    "fahrenheit": Unit.FAHRENHEIT,
    "unknown": Unit.UNKNOWN,
}

_RFC3339 = re.compile(
    r"(?P<date>\d{4}-\d{2}-\d{2})[Tt ](?P<time>\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<frac>\d+))?(?P<offset>[Zz]|[+-]\d{2}:\d{2})"
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_reading(raw: Any, clock: Clock = utc_now) -> NormalizationResult:
    """Normaliza un documento JSON arbitrario.

    Args:
        raw: Documento parseado (cualquier tipo JSON; si no es objeto,
            todos los campos toman su valor por defecto)
        clock: Fuente del instante actual, inyectable para tests

    Returns:
        NormalizationResult con la lectura y los campos rellenados por defecto
    """
    doc: Dict[str, Any] = raw if isinstance(raw, dict) else {}
    defaulted: List[str] = []

    identifier = _string_field(doc, "identifier")
    if identifier is None:
        identifier = UNKNOWN_IDENTIFIER
        defaulted.append("identifier")

    measuring = _string_field(doc, "measuring")
    if measuring is None:
        measuring = UNKNOWN_MEASURING
        defaulted.append("measuring")

    value_type = _parse_value_type(doc.get("value_type"))
    if value_type is None:
        value_type = ValueType.NUMBER
        defaulted.append("value_type")

    unit = _parse_unit(doc.get("unit"))
    if unit is None:
        unit = Unit.UNKNOWN
        defaulted.append("unit")

    raw_field = doc.get("value", _MISSING)
    raw_value = _raw_literal(raw_field)
    value = coerce_value(raw_field)
    if value is None:
        defaulted.append("value")

    timestamp = parse_rfc3339(doc.get("timestamp"))
    if timestamp is None:
        timestamp = clock()
        defaulted.append("timestamp")

    metadata = doc.get("metadata")
    if not isinstance(metadata, dict):
        metadata = None

    reading = CanonicalReading(
        identifier=identifier,
        measuring=measuring,
        value=value,
        raw_value=raw_value,
        value_type=value_type,
        unit=unit,
        timestamp=timestamp,
        metadata=metadata,
    )
    return NormalizationResult(reading=reading, defaulted_fields=tuple(defaulted))


def _string_field(doc: Dict[str, Any], key: str) -> Optional[str]:
    value = doc.get(key)
    if isinstance(value, str) and value != "":
        return value
    return None


def _parse_value_type(tag: Any) -> Optional[ValueType]:
    if not isinstance(tag, str):
        return None
    return _VALUE_TYPES.get(tag.strip().lower())


def _parse_unit(tag: Any) -> Optional[Unit]:
    if not isinstance(tag, str):
        return None
    return _UNITS.get(tag.strip().lower().replace("_", ""))


def _raw_literal(raw_field: Any) -> str:
    """Representación JSON literal del valor recibido ("" si no vino)."""
    if raw_field is _MISSING:
        return ""
    return orjson.dumps(raw_field, default=str).decode("utf-8")


def coerce_value(raw_field: Any) -> Optional[float]:
    """Convierte el campo value a float según la política de coerción."""
    if raw_field is _MISSING or raw_field is None:
        return None
    # bool antes que int: True es instancia de int
    if isinstance(raw_field, bool):
        return 1.0 if raw_field else 0.0
    if isinstance(raw_field, (int, float)):
        return float(raw_field)
    if isinstance(raw_field, str):
        return _parse_float(raw_field)
    return None


def _parse_float(text: str) -> Optional[float]:
    # float() de Python acepta espacios, "_" y dígitos no ASCII; aquí no
    if not text or not text.isascii() or text != text.strip() or "_" in text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def parse_rfc3339(value: Any) -> Optional[datetime]:
    """Parsea un timestamp RFC3339 a datetime UTC; None si no es válido."""
    if not isinstance(value, str):
        return None

    match = _RFC3339.fullmatch(value)
    if match is None:
        return None

    frac = (match.group("frac") or "0")[:6].ljust(6, "0")
    offset = match.group("offset")
    if offset in ("Z", "z"):
        offset = "+00:00"

    time_part = match.group("time")
    if time_part.endswith(":60"):
        # Segundo intercalar: se fija al último segundo del minuto
        time_part = time_part[:-2] + "59"

    try:
        dt = datetime.fromisoformat(
            f"{match.group('date')}T{time_part}.{frac}{offset}"
        )
    except ValueError:
        return None
    return dt.astimezone(timezone.utc)
