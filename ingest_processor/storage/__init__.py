"""Storage layer - Conexión, registro de sensores y escritura."""

from .connection import ConnectionSupervisor, SupervisorState
from .errors import ReadingWriteError, SensorLookupError, StorageError
from .reading_writer import ReadingWriter, new_reading_id
from .sensor_resolver import SensorResolver

__all__ = [
    "ConnectionSupervisor",
    "SupervisorState",
    "ReadingWriteError",
    "SensorLookupError",
    "StorageError",
    "ReadingWriter",
    "new_reading_id",
    "SensorResolver",
]
