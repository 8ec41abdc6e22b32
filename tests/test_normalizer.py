"""Tests del normalizador de lecturas.

Ejecutar:
    pytest tests/test_normalizer.py -v
"""

from datetime import datetime, timedelta, timezone

import pytest

from ingest_processor.domain.reading import Unit, ValueType
from ingest_processor.normalization import (
    MalformedPayloadError,
    decode_payload,
    normalize_reading,
    parse_rfc3339,
)

from conftest import FIXED_NOW


# =============================================================================
# IDENTIFIER / MEASURING
# =============================================================================

class TestSentinelDefaults:
    """identifier y measuring nunca quedan vacíos."""

    @pytest.mark.parametrize(
        "doc",
        [
            {},
            {"value": 1},
            {"identifier": None, "measuring": None},
            {"identifier": 42, "measuring": ["temperature"]},
            {"identifier": "", "measuring": ""},
        ],
    )
    def test_missing_or_invalid_uses_sentinels(self, doc, clock):
        result = normalize_reading(doc, clock=clock)

        assert result.reading.identifier == "unknown_sensor"
        assert result.reading.measuring == "unknown"
        assert "identifier" in result.defaulted_fields
        assert "measuring" in result.defaulted_fields

    def test_present_strings_are_kept(self, clock):
        result = normalize_reading({"identifier": "S1", "measuring": "temperature"}, clock=clock)

        assert result.reading.identifier == "S1"
        assert result.reading.measuring == "temperature"
        assert "identifier" not in result.defaulted_fields

    @pytest.mark.parametrize("doc", [[1, 2, 3], "text", 12.5, None, True])
    def test_non_object_document_gets_all_defaults(self, doc, clock):
        """Un documento válido que no es objeto no falla: todo por defecto."""
        reading = normalize_reading(doc, clock=clock).reading

        assert reading.identifier == "unknown_sensor"
        assert reading.measuring == "unknown"
        assert reading.value is None
        assert reading.raw_value == ""
        assert reading.timestamp == FIXED_NOW


# =============================================================================
# VALUE TYPE / UNIT
# =============================================================================

class TestTypeAndUnitTags:

    @pytest.mark.parametrize(
        "tag,expected",
        [
            ("Number", ValueType.NUMBER),
            ("NUMBER", ValueType.NUMBER),
            ("boolean", ValueType.BOOLEAN),
            ("BOOLEAN", ValueType.BOOLEAN),
            ("String", ValueType.STRING),
        ],
    )
    def test_value_type_case_insensitive(self, tag, expected, clock):
        assert normalize_reading({"value_type": tag}, clock=clock).reading.value_type is expected

    @pytest.mark.parametrize("tag", [None, "Integer", 3, ""])
    def test_unknown_value_type_defaults_to_number(self, tag, clock):
        result = normalize_reading({"value_type": tag}, clock=clock)

        assert result.reading.value_type is ValueType.NUMBER
        assert "value_type" in result.defaulted_fields

    @pytest.mark.parametrize(
        "tag,expected",
        [
            ("DegreesCelsius", Unit.DEGREES_CELSIUS),
            ("DEGREES_CELSIUS", Unit.DEGREES_CELSIUS),
            ("DEGREES_CELCIUS", Unit.DEGREES_CELSIUS),
            ("degreescelcius", Unit.DEGREES_CELSIUS),
            ("Fahrenheit", Unit.FAHRENHEIT),
            ("FAHRENHEIT", Unit.FAHRENHEIT),
        ],
    )
    def test_unit_aliases(self, tag, expected, clock):
        assert normalize_reading({"unit": tag}, clock=clock).reading.unit is expected

    @pytest.mark.parametrize("tag", [None, "Kelvin", 1])
    def test_unknown_unit(self, tag, clock):
        result = normalize_reading({"unit": tag}, clock=clock)

        assert result.reading.unit is Unit.UNKNOWN
        assert "unit" in result.defaulted_fields


# =============================================================================
# VALUE / RAW VALUE
# =============================================================================

class TestValueCoercion:

    def test_number_kept(self, clock):
        reading = normalize_reading({"value": 22.5}, clock=clock).reading

        assert reading.value == 22.5
        assert reading.raw_value == "22.5"

    def test_integer_becomes_float(self, clock):
        reading = normalize_reading({"value": 22}, clock=clock).reading

        assert reading.value == 22.0
        assert isinstance(reading.value, float)
        assert reading.raw_value == "22"

    @pytest.mark.parametrize("flag,expected", [(True, 1.0), (False, 0.0)])
    def test_boolean_maps_to_one_or_zero(self, flag, expected, clock):
        reading = normalize_reading({"value": flag}, clock=clock).reading

        assert reading.value == expected
        assert reading.raw_value == ("true" if flag else "false")

    @pytest.mark.parametrize("text", ["22.5", "-0.001", "1e-3", "12345678.875", "0"])
    def test_numeric_string_round_trips(self, text, clock):
        reading = normalize_reading({"value": text}, clock=clock).reading

        assert reading.value == float(text)
        assert reading.raw_value == f'"{text}"'

    @pytest.mark.parametrize("text", ["not-a-number", "", " 22.5", "22.5 ", "1_000", "0x10"])
    def test_non_numeric_string_keeps_raw_value(self, text, clock):
        result = normalize_reading({"value": text}, clock=clock)

        assert result.reading.value is None
        assert result.reading.raw_value == f'"{text}"'
        assert "value" in result.defaulted_fields

    @pytest.mark.parametrize(
        "value,raw",
        [
            ([1, 2], "[1,2]"),
            ({"a": 1}, '{"a":1}'),
            (None, "null"),
        ],
    )
    def test_other_shapes_are_none(self, value, raw, clock):
        reading = normalize_reading({"value": value}, clock=clock).reading

        assert reading.value is None
        assert reading.raw_value == raw

    def test_absent_value(self, clock):
        reading = normalize_reading({"identifier": "S1"}, clock=clock).reading

        assert reading.value is None
        assert reading.raw_value == ""


# =============================================================================
# TIMESTAMP
# =============================================================================

class TestTimestamp:

    def test_valid_rfc3339_is_parsed_exactly(self, clock):
        reading = normalize_reading({"timestamp": "2024-01-01T00:00:00Z"}, clock=clock).reading

        assert reading.timestamp == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_offset_is_converted_to_utc(self):
        assert parse_rfc3339("2024-01-01T02:30:00+02:00") == datetime(
            2024, 1, 1, 0, 30, tzinfo=timezone.utc
        )

    def test_fractional_seconds(self):
        parsed = parse_rfc3339("2024-01-01T00:00:00.123456789Z")

        assert parsed == datetime(2024, 1, 1, 0, 0, 0, 123456, tzinfo=timezone.utc)

    def test_leap_second_is_not_replaced_by_clock(self, clock):
        result = normalize_reading({"timestamp": "2016-12-31T23:59:60Z"}, clock=clock)

        assert result.reading.timestamp == datetime(2016, 12, 31, 23, 59, 59, tzinfo=timezone.utc)
        assert "timestamp" not in result.defaulted_fields

    @pytest.mark.parametrize(
        "value",
        [
            None,
            "",
            "yesterday",
            "2024-01-01",
            "2024-01-01T00:00:00",  # sin offset
            "2024-13-01T00:00:00Z",
            "2024-01-01T00:00:00Z\n",
            1704067200,
        ],
    )
    def test_missing_or_invalid_uses_clock(self, value, clock):
        result = normalize_reading({"timestamp": value}, clock=clock)

        assert result.reading.timestamp == FIXED_NOW
        assert "timestamp" in result.defaulted_fields

    def test_default_clock_is_wall_clock(self):
        before = datetime.now(timezone.utc)
        reading = normalize_reading({}).reading
        after = datetime.now(timezone.utc)

        assert before - timedelta(seconds=1) <= reading.timestamp <= after + timedelta(seconds=1)


# =============================================================================
# METADATA / PUREZA
# =============================================================================

class TestMetadataAndPurity:

    def test_metadata_object_passthrough(self, clock):
        meta = {"room": "101", "tags": ["a"], "floor": 2}
        reading = normalize_reading({"metadata": meta}, clock=clock).reading

        assert reading.metadata == meta

    @pytest.mark.parametrize("meta", [None, "room", [1], 3])
    def test_non_object_metadata_dropped(self, meta, clock):
        assert normalize_reading({"metadata": meta}, clock=clock).reading.metadata is None

    def test_idempotent(self, clock):
        doc = {"identifier": "S1", "measuring": "temperature", "value": "22.5"}

        assert normalize_reading(doc, clock=clock) == normalize_reading(doc, clock=clock)

    def test_complete_document_has_no_defaults(self, clock):
        doc = {
            "identifier": "S1",
            "measuring": "temperature",
            "value": 22.5,
            "value_type": "Number",
            "unit": "DegreesCelsius",
            "timestamp": "2024-01-01T00:00:00Z",
        }

        assert normalize_reading(doc, clock=clock).defaulted_fields == ()


# =============================================================================
# DECODE
# =============================================================================

class TestDecodePayload:

    def test_valid_json(self):
        assert decode_payload(b'{"identifier": "S1"}') == {"identifier": "S1"}

    @pytest.mark.parametrize("raw", [None, b"", b"{not json", b"\xff\xfe\x00", b'{"a": 1'])
    def test_malformed(self, raw):
        with pytest.raises(MalformedPayloadError):
            decode_payload(raw)
