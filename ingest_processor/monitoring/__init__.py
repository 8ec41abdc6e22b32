"""Monitoring layer - Estadísticas y sinks de eventos."""

from .event_sinks import CompositeEventSink, LoggingEventSink, MetricsEventSink
from .stats import Stats

__all__ = ["CompositeEventSink", "LoggingEventSink", "MetricsEventSink", "Stats"]
