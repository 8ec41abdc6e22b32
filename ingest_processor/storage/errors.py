"""Errores de almacenamiento.

Son fallos recuperables por mensaje: el pipeline los registra y sigue.
"""

from __future__ import annotations


class StorageError(Exception):
    """Fallo de transporte/BD durante una operación por mensaje."""


class SensorLookupError(StorageError):
    """La consulta al registro de sensores falló (distinto de "no encontrado")."""


class ReadingWriteError(StorageError):
    """El INSERT de la lectura falló: posible pérdida de datos."""
