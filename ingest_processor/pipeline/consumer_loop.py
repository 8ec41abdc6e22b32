"""Loop de consumo del stream.

Estados:
- IDLE: esperando el siguiente mensaje
- PROCESSING: mensaje reclamado, pipeline en curso
- TERMINATED: error no recuperable del transporte

Un solo mensaje en vuelo: el orden por partición se conserva a costa de
throughput. Los fallos por mensaje se registran y el loop sigue; solo un
TransportError lo termina.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable, Optional, Protocol

from ..monitoring.stats import Stats
from ..transport.stream_source import StreamMessage, TransportError
from .processor import PipelineOutcome, ReadingPipeline

logger = logging.getLogger(__name__)

STATS_LOG_EVERY = 100


class LoopState(Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    TERMINATED = "terminated"


class MessageSource(Protocol):
    def receive(self) -> Optional[StreamMessage]:
        ...

    def ack(self, message: StreamMessage) -> None:
        ...


class ConsumerLoop:
    """Conduce el pipeline mensaje a mensaje."""

    def __init__(
        self,
        source: MessageSource,
        pipeline: ReadingPipeline,
        stats: Optional[Stats] = None,
        on_latency: Optional[Callable[[float], None]] = None,
    ):
        self._source = source
        self._pipeline = pipeline
        self._stats = stats or Stats()
        self._on_latency = on_latency
        self._state = LoopState.IDLE
        self._stop_requested = False

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def stats(self) -> Stats:
        return self._stats

    def stop(self) -> None:
        """Pide una salida ordenada tras el mensaje en curso."""
        self._stop_requested = True

    def run(self, max_messages: Optional[int] = None) -> None:
        """Ejecuta el loop hasta stop(), ``max_messages`` o un error de transporte.

        Raises:
            TransportError: el transporte falló; el loop queda TERMINATED
        """
        handled = 0
        logger.info("[LOOP] Waiting for messages")

        while not self._stop_requested:
            if max_messages is not None and handled >= max_messages:
                break

            try:
                message = self._source.receive()
                if message is None:
                    continue

                self._state = LoopState.PROCESSING
                self._handle(message)
                self._source.ack(message)
                handled += 1
            except TransportError:
                self._state = LoopState.TERMINATED
                logger.critical("[LOOP] Transport failure, terminating. %s", self._stats)
                raise

            self._state = LoopState.IDLE

        logger.info("[LOOP] Stopped. %s", self._stats)

    def _handle(self, message: StreamMessage) -> None:
        self._stats.received += 1
        self._stats.last_message_at = time.time()
        started = time.perf_counter()

        try:
            outcome = self._pipeline.process(message.payload, message_id=message.message_id)
        except Exception as e:
            # Bug o fallo inesperado: se registra y se sigue con el siguiente
            logger.exception("[LOOP] Unexpected error on message_id=%s: %s", message.message_id, e)
            self._stats.failed += 1
            return
        finally:
            if self._on_latency is not None:
                self._on_latency(time.perf_counter() - started)

        if outcome is PipelineOutcome.PERSISTED:
            self._stats.processed += 1
        elif outcome is PipelineOutcome.REJECTED:
            self._stats.rejected += 1
        elif outcome is PipelineOutcome.LOOKUP_FAILED:
            self._stats.lookup_failed += 1
        elif outcome is PipelineOutcome.WRITE_FAILED:
            self._stats.write_failed += 1

        if self._stats.received % STATS_LOG_EVERY == 0:
            logger.info("[LOOP] %s", self._stats)
