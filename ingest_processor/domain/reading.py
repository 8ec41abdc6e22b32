"""Modelo de dominio para lecturas normalizadas."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

UNKNOWN_IDENTIFIER = "unknown_sensor"
UNKNOWN_MEASURING = "unknown"

# Referencia a la PK de la tabla sensor (prestada, nunca creada aquí)
SensorKey = str


class ValueType(Enum):
    """Tipo declarado (o inferido) del valor original."""
    NUMBER = "Number"
    BOOLEAN = "Boolean"
    STRING = "String"


class Unit(Enum):
    """Unidad declarada por el sensor."""
    DEGREES_CELSIUS = "DegreesCelsius"
    FAHRENHEIT = "Fahrenheit"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class CanonicalReading:
    """Lectura canónica producida por el normalizador.

    ``raw_value`` se conserva siempre, aunque ``value`` sea None: el pipeline
    solo pierde lo que no pudo interpretar, nunca lo que recibió.
    """
    identifier: str
    measuring: str
    value: Optional[float]
    raw_value: str
    value_type: ValueType
    unit: Unit
    timestamp: datetime
    metadata: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class NormalizationResult:
    """Lectura canónica más los campos que se rellenaron por defecto."""
    reading: CanonicalReading
    defaulted_fields: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class PersistedReading:
    """Fila escrita en la tabla reading.

    ``created_at`` lo asigna el servidor y no se lee de vuelta.
    """
    id: str
    sensor_id: SensorKey
    timestamp: datetime
    raw_value: str
    value: Optional[float]

    def to_row(self) -> dict:
        """Parámetros para el INSERT."""
        return {
            "id": self.id,
            "sensor_id": self.sensor_id,
            "timestamp": self.timestamp,
            "raw_value": self.raw_value,
            "value": self.value,
        }
