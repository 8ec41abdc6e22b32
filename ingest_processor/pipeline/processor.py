"""Procesador de un mensaje: decode → normalize → resolve → write."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from ..domain.events import EventKind, EventSink, PipelineEvent, RejectionReason
from ..domain.reading import CanonicalReading
from ..normalization.normalizer import Clock, normalize_reading, utc_now
from ..normalization.payload import MalformedPayloadError, decode_payload, preview
from ..resilience.discard_sink import DiscardedMessage, DiscardSink, LoggingDiscardSink
from ..storage.errors import ReadingWriteError, SensorLookupError
from ..storage.reading_writer import ReadingWriter
from ..storage.sensor_resolver import SensorResolver

logger = logging.getLogger(__name__)


class PipelineOutcome(Enum):
    """Resultado final de un mensaje."""
    PERSISTED = "persisted"
    REJECTED = "rejected"
    LOOKUP_FAILED = "lookup_failed"
    WRITE_FAILED = "write_failed"


class ReadingPipeline:
    """Procesa un mensaje crudo a través del pipeline completo.

    Pipeline:
    1. Decodificación JSON (malformado → rechazado, sin tocar la BD)
    2. Normalización (total: rellena defaults, nunca rechaza)
    3. Resolución del sensor (no encontrado → rechazado)
    4. Inserción de la lectura

    Cada etapa emite eventos tipados; los mensajes no persistidos van al
    discard sink. Ningún fallo por mensaje se propaga al llamador.
    """

    def __init__(
        self,
        resolver: SensorResolver,
        writer: ReadingWriter,
        events: EventSink,
        discard_sink: Optional[DiscardSink] = None,
        clock: Clock = utc_now,
    ):
        self._resolver = resolver
        self._writer = writer
        self._events = events
        self._discard = discard_sink or LoggingDiscardSink()
        self._clock = clock

    def process(self, raw: Optional[bytes], message_id: Optional[str] = None) -> PipelineOutcome:
        """Procesa un mensaje.

        Args:
            raw: Bytes recibidos del stream (codificación desconocida)
            message_id: ID del mensaje en el stream, para trazabilidad

        Returns:
            PipelineOutcome del mensaje
        """
        # 1. Decodificar
        try:
            document = decode_payload(raw)
        except MalformedPayloadError as e:
            logger.debug("[PIPELINE] Invalid JSON payload=%r", preview(raw))
            self._emit(EventKind.REJECTED, message_id, reason=RejectionReason.MALFORMED_PAYLOAD, error=str(e))
            self._discard.discard(
                DiscardedMessage(
                    payload=raw,
                    reason=RejectionReason.MALFORMED_PAYLOAD.value,
                    error=str(e),
                    message_id=message_id,
                )
            )
            return PipelineOutcome.REJECTED

        # 2. Normalizar
        result = normalize_reading(document, clock=self._clock)
        reading = result.reading
        for field_name in result.defaulted_fields:
            self._emit(EventKind.DEFAULTED_FIELD, message_id, reading, field=field_name)
        self._emit(EventKind.ACCEPTED, message_id, reading)

        # 3. Resolver sensor
        try:
            sensor_key = self._resolver.resolve(reading.identifier, reading.measuring)
        except SensorLookupError as e:
            self._emit(EventKind.LOOKUP_FAILED, message_id, reading, error=str(e))
            self._discard_reading(raw, EventKind.LOOKUP_FAILED.value, message_id, reading, error=str(e))
            return PipelineOutcome.LOOKUP_FAILED

        if sensor_key is None:
            self._emit(EventKind.REJECTED, message_id, reading, reason=RejectionReason.SENSOR_NOT_FOUND)
            self._discard_reading(raw, RejectionReason.SENSOR_NOT_FOUND.value, message_id, reading)
            return PipelineOutcome.REJECTED

        # 4. Persistir
        try:
            persisted = self._writer.write(sensor_key, reading)
        except ReadingWriteError as e:
            self._emit(EventKind.WRITE_FAILED, message_id, reading, sensor_key=sensor_key, error=str(e))
            self._discard_reading(
                raw, EventKind.WRITE_FAILED.value, message_id, reading, error=str(e), sensor_key=sensor_key
            )
            return PipelineOutcome.WRITE_FAILED

        self._emit(
            EventKind.PERSISTED,
            message_id,
            reading,
            sensor_key=sensor_key,
            reading_id=persisted.id,
        )
        return PipelineOutcome.PERSISTED

    def _emit(
        self,
        kind: EventKind,
        message_id: Optional[str],
        reading: Optional[CanonicalReading] = None,
        **details,
    ) -> None:
        self._events.emit(
            PipelineEvent(
                kind=kind,
                message_id=message_id,
                identifier=reading.identifier if reading else None,
                measuring=reading.measuring if reading else None,
                emitted_at=self._clock(),
                **details,
            )
        )

    def _discard_reading(
        self,
        raw: Optional[bytes],
        reason: str,
        message_id: Optional[str],
        reading: CanonicalReading,
        error: Optional[str] = None,
        sensor_key: Optional[str] = None,
    ) -> None:
        self._discard.discard(
            DiscardedMessage(
                payload=raw,
                reason=reason,
                error=error,
                message_id=message_id,
                reading=reading,
                sensor_key=sensor_key,
            )
        )
