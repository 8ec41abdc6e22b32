from __future__ import annotations

import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url

from .config import Settings


logger = logging.getLogger(__name__)


def build_engine(database_url: str, storage_timeout_ms: int = 5000) -> Engine:
    """Crea el engine de SQLAlchemy para el almacenamiento de lecturas.

    En PostgreSQL acota cada round-trip con ``statement_timeout`` para que una
    consulta colgada no bloquee la partición entera.
    """
    url = make_url(database_url)
    connect_args = {}

    if url.get_backend_name() == "postgresql" and storage_timeout_ms > 0:
        connect_args["options"] = f"-c statement_timeout={int(storage_timeout_ms)}"
        connect_args["connect_timeout"] = max(1, storage_timeout_ms // 1000)

    # Log básico de parámetros de conexión (sin contraseña)
    logger.info(
        "[DB] Creating engine backend=%s host=%s db=%s user=%s timeout_ms=%s",
        url.get_backend_name(),
        url.host,
        url.database,
        url.username,
        storage_timeout_ms,
    )

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_recycle=300,
        connect_args=connect_args,
        future=True,
    )


def check_connection(engine: Engine) -> None:
    """Lanza la excepción del driver si la BD no responde."""
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))


def connect_engine(settings: Settings) -> Engine:
    """Conector por defecto del supervisor: engine + test de conexión."""
    engine = build_engine(settings.database_url, settings.storage_timeout_ms)
    try:
        check_connection(engine)
    except Exception:
        engine.dispose()
        raise
    logger.info("[DB] Connection test OK")
    return engine
