from __future__ import annotations

import os
import socket
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, NoSuchModuleError


class ConfigError(Exception):
    """Configuración ausente o inválida al arrancar."""


def _default_env_file() -> str:
    # El .env del directorio de trabajo, igual que el collector upstream.
    return str(Path.cwd() / ".env")


@dataclass(frozen=True)
class Settings:
    database_url: str

    redis_url: str
    readings_stream: str
    consumer_group: str
    consumer_name: str
    payload_field: str
    block_ms: int

    db_connect_retry_seconds: float
    storage_timeout_ms: int
    sensor_cache_ttl_seconds: int

    discard_sink: str
    dlq_stream: str

    metrics_port: Optional[int]
    log_level: str


def _int_env(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _float_env(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


def _check_database_url(database_url: str) -> None:
    # URL mal formada o dialecto desconocido: error de arranque, no de conexión
    try:
        make_url(database_url).get_dialect()
    except (ArgumentError, NoSuchModuleError) as e:
        raise ConfigError(f"DATABASE_URL is not a valid SQLAlchemy URL: {e}") from None


def load_env_file(env_file: Optional[str] = None) -> None:
    # Carga el .env (si existe) sin pisar variables reales del entorno.
    path = env_file or os.getenv("PROCESSOR_ENV_FILE", _default_env_file())
    if path and Path(path).exists():
        load_dotenv(path, override=False)


def get_settings(env_file: Optional[str] = None, require_database: bool = True) -> Settings:
    load_env_file(env_file)

    database_url = os.getenv("DATABASE_URL", "").strip()
    if require_database and not database_url:
        raise ConfigError("DATABASE_URL must be set")
    if database_url:
        _check_database_url(database_url)

    discard_sink = os.getenv("DISCARD_SINK", "log").strip().lower()
    if discard_sink not in ("log", "redis"):
        raise ConfigError(f"DISCARD_SINK must be 'log' or 'redis', got {discard_sink!r}")

    block_ms = _int_env("CONSUMER_BLOCK_MS", "5000")
    if block_ms < 0:
        raise ConfigError(f"CONSUMER_BLOCK_MS must be >= 0, got {block_ms}")

    metrics_port_raw = os.getenv("METRICS_PORT", "").strip()
    metrics_port = _int_env("METRICS_PORT", metrics_port_raw) if metrics_port_raw else None

    return Settings(
        database_url=database_url,
        redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        readings_stream=os.getenv("READINGS_STREAM", "readings:raw"),
        consumer_group=os.getenv("CONSUMER_GROUP", "reading-processor"),
        consumer_name=os.getenv("CONSUMER_NAME", f"processor-{socket.gethostname()}"),
        payload_field=os.getenv("STREAM_PAYLOAD_FIELD", "payload"),
        block_ms=block_ms,
        db_connect_retry_seconds=_float_env("DB_CONNECT_RETRY_SECONDS", "5"),
        storage_timeout_ms=_int_env("STORAGE_TIMEOUT_MS", "5000"),
        sensor_cache_ttl_seconds=_int_env("SENSOR_CACHE_TTL_SECONDS", "300"),
        discard_sink=discard_sink,
        dlq_stream=os.getenv("DLQ_STREAM", "dlq:processor"),
        metrics_port=metrics_port,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
