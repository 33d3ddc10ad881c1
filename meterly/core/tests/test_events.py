"""Unit tests for domain events and the wire codec."""

import json
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from meterly.core.events import (
    ConsumptionRecordedEvent,
    EventType,
    InvoiceCreatedEvent,
    InvoiceReadyEvent,
    MalformedEventError,
    UnknownEventTypeError,
    derive_event_id,
    parse_event,
)
from meterly.core.exceptions import InvalidInputError


def _invoice_created(invoice_id: str = "inv-1") -> InvoiceCreatedEvent:
    return InvoiceCreatedEvent.for_invoice(
        invoice_id=invoice_id,
        tenant_id="tenant-1",
        period_start=date(2024, 2, 1),
        period_end=date(2024, 2, 29),
        total_requests=5,
        amount=Decimal("0.00"),
    )


class TestEnvelope:
    def test_wire_form_is_camel_case(self):
        event = ConsumptionRecordedEvent.record(
            "tenant-1", datetime(2024, 2, 10, tzinfo=timezone.utc)
        )

        wire = event.to_wire()

        assert wire["eventType"] == "ConsumptionRecorded"
        assert wire["eventId"] == str(event.event_id)
        assert wire["version"] == "1.0"
        assert "occurredAt" in wire
        assert wire["payload"]["tenantId"] == "tenant-1"

    def test_events_are_frozen(self):
        event = ConsumptionRecordedEvent.record("tenant-1")

        with pytest.raises(ValidationError):
            event.event_id = derive_event_id("x", EventType.INVOICE_READY)

    def test_fresh_events_get_distinct_ids(self):
        a = ConsumptionRecordedEvent.record("tenant-1")
        b = ConsumptionRecordedEvent.record("tenant-1")

        assert a.event_id != b.event_id

    def test_mismatched_event_type_is_rejected(self):
        with pytest.raises(ValidationError, match="requires event_type"):
            ConsumptionRecordedEvent(
                event_type=EventType.INVOICE_READY,
                payload={"tenantId": "t", "timestamp": "2024-02-10T00:00:00Z"},
            )

    def test_blank_tenant_id_is_rejected(self):
        with pytest.raises(ValidationError):
            ConsumptionRecordedEvent.record("")


class TestDerivedIds:
    def test_invoice_created_id_is_stable(self):
        assert _invoice_created().event_id == _invoice_created().event_id

    def test_ids_differ_per_event_type(self):
        ready = InvoiceReadyEvent.for_invoice("inv-1", "tenant-1", "https://blobs.test/x.pdf")

        assert ready.event_id != _invoice_created().event_id

    def test_ids_differ_per_invoice(self):
        assert _invoice_created("inv-1").event_id != _invoice_created("inv-2").event_id


class TestParseEvent:
    def test_restores_concrete_class_from_json(self):
        original = _invoice_created()

        parsed = parse_event(original.to_json())

        assert isinstance(parsed, InvoiceCreatedEvent)
        assert parsed == original

    def test_accepts_decoded_dict(self):
        original = InvoiceReadyEvent.for_invoice("inv-1", "tenant-1", "https://blobs.test/x.pdf")

        parsed = parse_event(original.to_wire())

        assert isinstance(parsed, InvoiceReadyEvent)
        assert parsed.payload.pdf_url == "https://blobs.test/x.pdf"

    def test_unknown_event_type(self):
        with pytest.raises(UnknownEventTypeError):
            parse_event({"eventType": "InvoicePaid", "payload": {}})

    def test_missing_event_type(self):
        with pytest.raises(UnknownEventTypeError):
            parse_event({"payload": {}})

    def test_invalid_json(self):
        with pytest.raises(MalformedEventError, match="not valid JSON"):
            parse_event("{not json")

    def test_not_an_object(self):
        with pytest.raises(MalformedEventError):
            parse_event(json.dumps([1, 2, 3]))

    def test_invalid_payload(self):
        with pytest.raises(MalformedEventError):
            parse_event({"eventType": "ConsumptionRecorded", "payload": {"tenantId": "t"}})

    def test_codec_errors_are_invalid_input(self):
        with pytest.raises(InvalidInputError):
            parse_event("{not json")
