"""Supervisor de la conexión a la BD.

Arranque: CONNECTING → CONNECTED. Si la BD no está disponible al arrancar se
reintenta indefinidamente en vez de terminar el proceso. Una vez conectado, la
reconexión de conexiones caídas queda en manos del pool (pool_pre_ping).
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable, Optional

from sqlalchemy.engine import Engine

from ..resilience.backoff import BackoffPolicy, FixedBackoff

logger = logging.getLogger(__name__)

Connector = Callable[[], Engine]


class SupervisorState(Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSED = "closed"


class ConnectionSupervisor:
    """Dueño del engine durante toda la vida del proceso."""

    def __init__(
        self,
        connector: Connector,
        backoff: Optional[BackoffPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._connector = connector
        self._backoff = backoff or FixedBackoff(5.0)
        self._sleep = sleep
        self._engine: Optional[Engine] = None
        self._state = SupervisorState.IDLE
        self._attempts = 0

    @property
    def state(self) -> SupervisorState:
        return self._state

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("ConnectionSupervisor is not connected")
        return self._engine

    def connect(self) -> Engine:
        """Bloquea hasta obtener un engine operativo."""
        if self._engine is not None:
            return self._engine

        self._state = SupervisorState.CONNECTING

        while True:
            self._attempts += 1
            try:
                engine = self._connector()
            except Exception as e:
                delay = self._backoff.delay(self._attempts)
                logger.warning(
                    "[DB] Failed to connect to database (attempt %d): %s. Retrying in %.1fs...",
                    self._attempts,
                    e,
                    delay,
                )
                self._sleep(delay)
                continue

            self._engine = engine
            self._state = SupervisorState.CONNECTED
            logger.info("[DB] Connected after %d attempt(s)", self._attempts)
            return engine

    def dispose(self) -> None:
        """Libera el pool de conexiones."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
        self._state = SupervisorState.CLOSED
