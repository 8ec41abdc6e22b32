"""Escritura de lecturas normalizadas en la tabla reading."""

from __future__ import annotations

import logging
import uuid
from typing import Callable

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..domain.reading import CanonicalReading, PersistedReading, SensorKey
from .errors import ReadingWriteError

logger = logging.getLogger(__name__)

_INSERT_SQL = text(
    """
    INSERT INTO reading (id, sensorId, timestamp, rawValue, value, createdAt)
    VALUES (:id, :sensor_id, :timestamp, :raw_value, :value, CURRENT_TIMESTAMP)
    """
)


def new_reading_id() -> str:
    return str(uuid.uuid4())


class ReadingWriter:
    """Inserta una PersistedReading por lectura resuelta.

    El id se genera en cada inserción (nunca a partir del contenido), así que
    un mensaje re-entregado produce otra fila: entrega at-least-once.
    """

    def __init__(
        self,
        engine: Engine,
        id_factory: Callable[[], str] = new_reading_id,
    ):
        self._engine = engine
        self._id_factory = id_factory

    def write(self, sensor_key: SensorKey, reading: CanonicalReading) -> PersistedReading:
        """Inserta la lectura ligada al sensor resuelto.

        Args:
            sensor_key: PK del sensor devuelta por el resolver
            reading: Lectura canónica

        Returns:
            PersistedReading escrita

        Raises:
            ReadingWriteError: violación de constraint, pérdida de conexión o timeout
        """
        persisted = PersistedReading(
            id=self._id_factory(),
            sensor_id=sensor_key,
            timestamp=reading.timestamp,
            raw_value=reading.raw_value,
            value=reading.value,
        )

        try:
            # begin() hace commit al salir o rollback si hay excepción
            with self._engine.begin() as conn:
                conn.execute(_INSERT_SQL, persisted.to_row())
        except SQLAlchemyError as e:
            raise ReadingWriteError(
                f"insert failed for reading_id={persisted.id} sensor_id={sensor_key}: {e}"
            ) from e

        logger.debug(
            "[WRITER] Inserted reading_id=%s sensor_id=%s value=%s",
            persisted.id,
            sensor_key,
            persisted.value,
        )
        return persisted
