"""Sinks de eventos del pipeline: logs, métricas Prometheus y fan-out."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, REGISTRY

from ..domain.events import EventKind, PipelineEvent

logger = logging.getLogger(__name__)


class LoggingEventSink:
    """Traduce cada evento a una línea de log con nivel según su gravedad."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self._log = log or logger

    def emit(self, event: PipelineEvent) -> None:
        kind = event.kind

        if kind is EventKind.DEFAULTED_FIELD:
            self._log.debug(
                "[PIPELINE] DEFAULTED field=%s message_id=%s",
                event.field,
                event.message_id,
            )
        elif kind is EventKind.ACCEPTED:
            self._log.debug(
                "[PIPELINE] ACCEPTED message_id=%s identifier=%s measuring=%s",
                event.message_id,
                event.identifier,
                event.measuring,
            )
        elif kind is EventKind.PERSISTED:
            self._log.info(
                "[PIPELINE] PERSISTED message_id=%s reading_id=%s sensor_id=%s",
                event.message_id,
                event.reading_id,
                event.sensor_key,
            )
        elif kind is EventKind.REJECTED:
            reason = event.reason.value if event.reason else None
            self._log.warning(
                "[PIPELINE] REJECTED reason=%s message_id=%s identifier=%s measuring=%s error=%s",
                reason,
                event.message_id,
                event.identifier,
                event.measuring,
                event.error,
            )
        elif kind is EventKind.LOOKUP_FAILED:
            self._log.error(
                "[PIPELINE] LOOKUP_FAILED message_id=%s identifier=%s measuring=%s error=%s",
                event.message_id,
                event.identifier,
                event.measuring,
                event.error,
            )
        elif kind is EventKind.WRITE_FAILED:
            # Posible pérdida de datos: siempre visible para operación
            self._log.error(
                "[PIPELINE] WRITE_FAILED message_id=%s sensor_id=%s error=%s",
                event.message_id,
                event.sensor_key,
                event.error,
            )


class MetricsEventSink:
    """Cuenta eventos en Prometheus.

    Las métricas se registran en ``registry`` (por defecto el global); los tests
    pasan un CollectorRegistry propio para no chocar con registros previos.
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        self.events = Counter(
            "processor_events_total",
            "Pipeline events emitted by kind",
            ["kind"],
            registry=registry,
        )
        self.messages = Counter(
            "processor_messages_total",
            "Messages processed by final outcome",
            ["outcome"],
            registry=registry,
        )
        self.latency = Histogram(
            "processor_message_seconds",
            "Per-message pipeline latency",
            buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0],
            registry=registry,
        )

    def emit(self, event: PipelineEvent) -> None:
        self.events.labels(kind=event.kind.value).inc()
        if event.is_terminal:
            self.messages.labels(outcome=event.kind.value).inc()

    def observe_latency(self, seconds: float) -> None:
        self.latency.observe(seconds)


class CompositeEventSink:
    """Reparte cada evento a varios sinks.

    Un sink que falla no impide que el resto reciba el evento.
    """

    def __init__(self, sinks: Iterable = ()):
        self._sinks: List = list(sinks)

    def add(self, sink) -> None:
        self._sinks.append(sink)

    def emit(self, event: PipelineEvent) -> None:
        for sink in self._sinks:
            try:
                sink.emit(event)
            except Exception:
                logger.exception("[PIPELINE] Event sink %s failed", type(sink).__name__)

    def __len__(self) -> int:
        return len(self._sinks)
