"""Resolución de (identifier, measuring) contra el registro de sensores.

Mantiene un caché LRU en memoria con TTL para hot paths. Solo se cachean
resultados positivos: un sensor registrado después resuelve en el siguiente
mensaje.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..domain.reading import SensorKey
from .errors import SensorLookupError

logger = logging.getLogger(__name__)

MAX_CACHE_SIZE = 10000

_LOOKUP_SQL = text(
    "SELECT id FROM sensor "
    "WHERE identifier = :identifier AND measuring = :measuring "
    "LIMIT 2"
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SensorResolver:
    """Busca la PK del sensor para un par (identifier, measuring).

    "No encontrado" (None) es un resultado de negocio legítimo; un fallo de la
    BD se reporta como SensorLookupError.
    """

    def __init__(
        self,
        engine: Engine,
        cache_ttl_seconds: int = 300,
        max_cache_size: int = MAX_CACHE_SIZE,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self._engine = engine
        self._ttl = timedelta(seconds=max(0, cache_ttl_seconds))
        self._max_size = max_cache_size
        self._clock = clock
        self._cache: OrderedDict[Tuple[str, str], Tuple[SensorKey, datetime]] = OrderedDict()

    @property
    def cache_enabled(self) -> bool:
        return self._ttl.total_seconds() > 0

    def resolve(self, identifier: str, measuring: str) -> Optional[SensorKey]:
        """Resuelve la clave del sensor.

        Args:
            identifier: Nombre/ID externo del sensor
            measuring: Magnitud medida (ej. "temperature")

        Returns:
            SensorKey si existe, None si no está registrado

        Raises:
            SensorLookupError: si la consulta falla (conexión, timeout, ...)
        """
        key = (identifier, measuring)
        now = self._clock()

        cached = self._cache.get(key)
        if cached is not None:
            sensor_key, expires_at = cached
            if expires_at > now:
                self._cache.move_to_end(key)
                return sensor_key
            self._cache.pop(key, None)

        try:
            with self._engine.connect() as conn:
                rows = conn.execute(
                    _LOOKUP_SQL,
                    {"identifier": identifier, "measuring": measuring},
                ).fetchall()
        except SQLAlchemyError as e:
            raise SensorLookupError(
                f"sensor lookup failed for identifier={identifier} measuring={measuring}: {e}"
            ) from e

        if not rows:
            return None

        if len(rows) > 1:
            logger.warning(
                "[RESOLVER] Registry holds more than one sensor for identifier=%s measuring=%s, using first",
                identifier,
                measuring,
            )

        sensor_key = str(rows[0][0])

        if self.cache_enabled:
            # Evitar crecimiento sin límite: fuera las entradas más antiguas
            while len(self._cache) >= self._max_size:
                self._cache.popitem(last=False)
            self._cache[key] = (sensor_key, now + self._ttl)

        return sensor_key

    def get_cache_stats(self) -> dict:
        """Estadísticas del caché."""
        return {
            "size": len(self._cache),
            "max_size": self._max_size,
            "ttl_seconds": int(self._ttl.total_seconds()),
        }
