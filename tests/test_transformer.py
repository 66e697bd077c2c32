"""
Tests for the message transformer and the wire envelope.
"""

import json

import pytest
from hypothesis import given, settings, strategies as st

from bridge_shared.utils.exceptions import ParseError
from telemetry_bridge.components.events.types import EnvelopeKind, OutboundEnvelope
from telemetry_bridge.core.subscriber.transformer import (
    build_welcome,
    decode_payload,
    extract_device_id,
    transform,
)


json_values = st.recursive(
    st.none()
    | st.booleans()
    | st.integers(min_value=-(2**53), max_value=2**53)
    | st.floats(allow_nan=False, allow_infinity=False)
    | st.text(),
    lambda children: st.lists(children, max_size=5)
    | st.dictionaries(st.text(max_size=10), children, max_size=5),
    max_leaves=20,
)

topic_levels = st.text(
    alphabet=st.characters(exclude_characters="/+#\x00", exclude_categories=("Cs",)),
    min_size=1,
    max_size=12,
)


class TestExtractDeviceId:
    """Device id is the second topic level."""

    def test_classroom_topic(self):
        """The example topic yields its device segment."""
        assert extract_device_id("classroom/device42/telemetry") == "device42"

    def test_two_levels(self):
        assert extract_device_id("classroom/device42") == "device42"

    def test_single_level_yields_empty(self):
        """Topics with fewer than two levels have no device id."""
        assert extract_device_id("classroom") == ""

    def test_empty_second_level(self):
        assert extract_device_id("classroom//telemetry") == ""

    @given(first=topic_levels, device=topic_levels, rest=st.lists(topic_levels, max_size=3))
    @settings(max_examples=50)
    def test_second_segment_property(self, first, device, rest):
        """Property: deviceId equals split('/')[1] for any multi-level topic."""
        topic = "/".join([first, device, *rest])
        assert extract_device_id(topic) == device


class TestDecodePayload:
    """Payload decoding: strict UTF-8 JSON."""

    def test_object(self):
        assert decode_payload(b'{"temp":21.5}') == {"temp": 21.5}

    @pytest.mark.parametrize(
        "raw,expected",
        [
            (b"42", 42),
            (b'"hello"', "hello"),
            (b"[1,2,3]", [1, 2, 3]),
            (b"true", True),
            (b"null", None),
        ],
    )
    def test_non_object_json_accepted(self, raw, expected):
        """Any JSON value is a valid payload."""
        assert decode_payload(raw) == expected

    @pytest.mark.parametrize("raw", [b"not json", b"", b"{", b"{'a': 1}", b"[1,]"])
    def test_invalid_json_rejected(self, raw):
        with pytest.raises(ParseError):
            decode_payload(raw)

    def test_invalid_utf8_rejected(self):
        with pytest.raises(ParseError, match="UTF-8"):
            decode_payload(b'{"name":"\xff"}')

    @pytest.mark.parametrize("raw", [b"NaN", b'{"v":Infinity}', b"[-Infinity]"])
    def test_non_standard_constants_rejected(self, raw):
        """NaN and Infinity are not JSON."""
        with pytest.raises(ParseError):
            decode_payload(raw)

    @pytest.mark.parametrize("raw", [b'{"temp":1e400}', b"-1e999", b"[1.5e309]"])
    def test_overflowing_numbers_rejected(self, raw):
        """Numbers that overflow a float would serialize as Infinity."""
        with pytest.raises(ParseError, match="out of range"):
            decode_payload(raw)

    def test_size_limit(self):
        with pytest.raises(ParseError, match="exceeds"):
            decode_payload(b'"' + b"x" * 100 + b'"', max_size=50)

    def test_size_limit_disabled(self):
        big = b'"' + b"x" * 10_000 + b'"'
        assert decode_payload(big, max_size=0) == "x" * 10_000

    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            decode_payload(b"garbage")


class TestTransform:
    """Transform builds one telemetry envelope per inbound message."""

    def test_example_message(self):
        envelope = transform("classroom/device42/telemetry", b'{"temp":21.5}', timestamp=1700000000000)

        assert envelope.to_dict() == {
            "type": "telemetry",
            "deviceId": "device42",
            "topic": "classroom/device42/telemetry",
            "payload": {"temp": 21.5},
            "timestamp": 1700000000000,
        }

    def test_short_topic_has_empty_device(self):
        envelope = transform("telemetry", b"{}")
        assert envelope.device_id == ""
        assert envelope.to_dict()["deviceId"] == ""

    def test_timestamp_defaults_to_now(self):
        envelope = transform("classroom/d1/telemetry", b"1")
        assert envelope.timestamp > 1_600_000_000_000

    def test_parse_error_carries_topic(self):
        with pytest.raises(ParseError) as exc_info:
            transform("classroom/d1/telemetry", b"not json")
        assert exc_info.value.topic == "classroom/d1/telemetry"
        assert exc_info.value.log_context()["topic"] == "classroom/d1/telemetry"

    def test_null_payload_kept(self):
        """A JSON null payload is still present on the wire."""
        wire = json.loads(transform("classroom/d1/telemetry", b"null").to_json())
        assert "payload" in wire
        assert wire["payload"] is None

    @given(payload=json_values, device=topic_levels)
    @settings(max_examples=100)
    def test_payload_round_trips_through_wire(self, payload, device):
        """Property: the wire payload equals the decoded inbound payload."""
        topic = f"classroom/{device}/telemetry"
        raw = json.dumps(payload).encode("utf-8")

        wire = json.loads(transform(topic, raw, timestamp=1).to_json())

        assert wire["payload"] == payload
        assert wire["deviceId"] == device
        assert wire["topic"] == topic


class TestEnvelope:
    """Wire format of the outbound envelope."""

    def test_compact_serialization(self):
        envelope = OutboundEnvelope.telemetry("d1", "classroom/d1/telemetry", {"a": 1}, timestamp=5)
        assert envelope.to_json() == (
            '{"type":"telemetry","deviceId":"d1","topic":"classroom/d1/telemetry",'
            '"payload":{"a":1},"timestamp":5}'
        )

    def test_welcome_envelope(self):
        envelope = build_welcome("Connected to MQTT -> WebSocket bridge", timestamp=7)
        assert envelope.kind is EnvelopeKind.CONNECTED
        assert json.loads(envelope.to_json()) == {
            "type": "connected",
            "message": "Connected to MQTT -> WebSocket bridge",
            "timestamp": 7,
        }

    def test_welcome_omits_telemetry_keys(self):
        wire = build_welcome("hi").to_dict()
        assert "deviceId" not in wire
        assert "topic" not in wire
        assert "payload" not in wire

    def test_non_ascii_preserved(self):
        envelope = OutboundEnvelope.telemetry("d1", "t/d1", {"name": "Sala ñ"}, timestamp=1)
        assert "Sala ñ" in envelope.to_json()

    def test_non_finite_payload_never_serialized(self):
        envelope = OutboundEnvelope.telemetry("d1", "t/d1", {"temp": float("inf")}, timestamp=1)
        with pytest.raises(ValueError):
            envelope.to_json()

    def test_envelope_is_immutable(self):
        envelope = build_welcome("hi")
        with pytest.raises(AttributeError):
            envelope.message = "changed"
