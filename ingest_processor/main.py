"""Punto de entrada del procesador.

Comandos:
    run        Consume el stream y persiste lecturas (por defecto)
    send-test  Publica una lectura de ejemplo en el stream

Códigos de salida: 0 parada ordenada, 1 fallo de transporte, 2 configuración.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from typing import Optional, Sequence

import redis
from prometheus_client import start_http_server

from common.config import ConfigError, Settings, get_settings
from common.db import connect_engine

from .monitoring.event_sinks import CompositeEventSink, LoggingEventSink, MetricsEventSink
from .pipeline.consumer_loop import ConsumerLoop
from .pipeline.processor import ReadingPipeline
from .resilience.backoff import FixedBackoff
from .resilience.discard_sink import DiscardSink, LoggingDiscardSink, RedisDeadLetterSink
from .storage.connection import ConnectionSupervisor
from .storage.reading_writer import ReadingWriter
from .storage.sensor_resolver import SensorResolver
from .transport.publisher import StreamPublisher, sample_reading
from .transport.stream_source import RedisStreamSource, TransportError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_TRANSPORT = 1
EXIT_CONFIG = 2


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="reading-processor",
        description="Normaliza lecturas IoT del stream y las persiste",
    )
    p.add_argument("--env-file", default=None, help="ruta al .env (por defecto ./.env)")
    p.add_argument("--log-level", default=None, help="sobrescribe LOG_LEVEL")

    sub = p.add_subparsers(dest="command")
    sub.add_parser("run", help="consumir el stream (por defecto)")

    send = sub.add_parser("send-test", help="publicar una lectura de ejemplo")
    send.add_argument("--identifier", default="S1")
    send.add_argument("--measuring", default="temperature")
    send.add_argument("--value", type=float, default=22.5)
    return p


def _build_discard_sink(settings: Settings) -> DiscardSink:
    if settings.discard_sink == "redis":
        client = redis.Redis.from_url(settings.redis_url, decode_responses=False)
        return RedisDeadLetterSink(client, stream_name=settings.dlq_stream)
    return LoggingDiscardSink()


def run_processor(settings: Settings) -> int:
    """Arranca el procesador y bloquea hasta parada o fallo de transporte."""
    events = CompositeEventSink([LoggingEventSink()])
    metrics = MetricsEventSink()
    events.add(metrics)

    if settings.metrics_port:
        start_http_server(settings.metrics_port)
        logger.info("[METRICS] Serving on :%d", settings.metrics_port)

    # 1. BD: bloquea el arranque hasta conectar
    supervisor = ConnectionSupervisor(
        connector=lambda: connect_engine(settings),
        backoff=FixedBackoff(settings.db_connect_retry_seconds),
    )
    engine = supervisor.connect()

    # 2. Pipeline
    pipeline = ReadingPipeline(
        resolver=SensorResolver(engine, cache_ttl_seconds=settings.sensor_cache_ttl_seconds),
        writer=ReadingWriter(engine),
        events=events,
        discard_sink=_build_discard_sink(settings),
    )

    # 3. Stream
    source = RedisStreamSource.from_url(
        settings.redis_url,
        stream=settings.readings_stream,
        group=settings.consumer_group,
        consumer=settings.consumer_name,
        payload_field=settings.payload_field,
        block_ms=settings.block_ms,
    )
    loop = ConsumerLoop(source, pipeline, on_latency=metrics.observe_latency)

    def _request_stop(signum, _frame):
        logger.info("[LOOP] Signal %s received, stopping after current message", signum)
        loop.stop()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)

    logger.info(
        "[LOOP] Processor consuming stream=%s group=%s consumer=%s",
        settings.readings_stream,
        settings.consumer_group,
        settings.consumer_name,
    )

    try:
        source.ensure_group()
        loop.run()
    except TransportError as e:
        logger.critical("[STREAM] Unrecoverable transport error: %s", e)
        return EXIT_TRANSPORT
    finally:
        source.close()
        supervisor.dispose()

    return EXIT_OK


def send_test_reading(settings: Settings, identifier: str, measuring: str, value: float) -> int:
    client = redis.Redis.from_url(settings.redis_url, decode_responses=False)
    publisher = StreamPublisher(client, settings.readings_stream, payload_field=settings.payload_field)
    try:
        entry_id = publisher.publish(sample_reading(identifier, measuring, value))
    except TransportError as e:
        logger.error("[STREAM] Failed to deliver: %s", e)
        return EXIT_TRANSPORT
    finally:
        client.close()

    logger.info("[STREAM] Delivered %s to %s", entry_id, settings.readings_stream)
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        settings = get_settings(args.env_file, require_database=args.command != "send-test")
    except ConfigError as e:
        _configure_logging(args.log_level or "INFO")
        logger.error("[CONFIG] %s", e)
        return EXIT_CONFIG

    _configure_logging(args.log_level or settings.log_level)

    if args.command == "send-test":
        return send_test_reading(settings, args.identifier, args.measuring, args.value)
    return run_processor(settings)


if __name__ == "__main__":
    sys.exit(main())
