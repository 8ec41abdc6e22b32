"""Fixtures compartidos: BD SQLite en memoria, reloj fijo y sinks de prueba."""

import sqlite3
from datetime import datetime, timezone
from typing import List, Optional

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

from ingest_processor.domain.events import PipelineEvent
from ingest_processor.resilience.discard_sink import DiscardedMessage
from ingest_processor.transport.stream_source import StreamMessage, TransportError

# El adaptador por defecto de sqlite3 para datetime está deprecado
sqlite3.register_adapter(datetime, lambda dt: dt.isoformat())

FIXED_NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
S1_KEY = "0b6c2c1e-8f0a-4c1e-9a57-7d8f3f7e0001"

SCHEMA = [
    """
    CREATE TABLE sensor (
        id TEXT PRIMARY KEY,
        identifier TEXT NOT NULL,
        measuring TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE reading (
        id TEXT PRIMARY KEY,
        sensorId TEXT NOT NULL,
        timestamp TIMESTAMP NOT NULL,
        rawValue TEXT NOT NULL,
        value REAL,
        createdAt TIMESTAMP NOT NULL
    )
    """,
]


def _memory_engine():
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )


@pytest.fixture
def engine():
    """BD con el registro S1/temperature."""
    eng = _memory_engine()
    with eng.begin() as conn:
        for ddl in SCHEMA:
            conn.execute(text(ddl))
        conn.execute(
            text("INSERT INTO sensor (id, identifier, measuring) VALUES (:id, :i, :m)"),
            {"id": S1_KEY, "i": "S1", "m": "temperature"},
        )
    yield eng
    eng.dispose()


@pytest.fixture
def broken_engine():
    """BD sin tablas: cualquier consulta falla."""
    eng = _memory_engine()
    yield eng
    eng.dispose()


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


def fetch_readings(engine) -> list:
    with engine.connect() as conn:
        return conn.execute(
            text("SELECT id, sensorId, rawValue, value FROM reading ORDER BY rawValue, id")
        ).fetchall()


class RecordingEventSink:
    """Guarda los eventos emitidos."""

    def __init__(self):
        self.events: List[PipelineEvent] = []

    def emit(self, event: PipelineEvent) -> None:
        self.events.append(event)

    def kinds(self) -> list:
        return [e.kind.value for e in self.events]


class RecordingDiscardSink:
    def __init__(self):
        self.entries: List[DiscardedMessage] = []

    def discard(self, entry: DiscardedMessage) -> None:
        self.entries.append(entry)


class FakeSource:
    """Fuente de mensajes en memoria.

    Al agotarse devuelve None (o lanza TransportError si ``fail_when_empty``).
    """

    def __init__(self, payloads, fail_when_empty: bool = False, log: Optional[list] = None):
        self._messages = [
            StreamMessage(message_id=f"{i + 1}-0", payload=p) for i, p in enumerate(payloads)
        ]
        self._fail_when_empty = fail_when_empty
        self.acked: List[str] = []
        self.log = log if log is not None else []

    def receive(self) -> Optional[StreamMessage]:
        if self._messages:
            return self._messages.pop(0)
        if self._fail_when_empty:
            raise TransportError("broker unreachable")
        return None

    def ack(self, message: StreamMessage) -> None:
        self.acked.append(message.message_id)
        self.log.append(("ack", message.message_id))


@pytest.fixture
def events():
    return RecordingEventSink()


@pytest.fixture
def discarded():
    return RecordingDiscardSink()
