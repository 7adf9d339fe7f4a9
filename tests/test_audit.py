"""Tests for the audit logger."""

from decimal import Decimal

from finance_tracker.audit import AuditLogger
from finance_tracker.models import AuditEventBuilder, AuditEventType


def make_event(i):
    return AuditEventBuilder.transfer_completed(f"a{i}", f"b{i}", Decimal(i + 1))


class TestAuditLogger:

    def test_sink_receives_events(self):
        received = []
        logger = AuditLogger(sink=received.append)

        assert logger.log(make_event(0)) is True
        assert received[0].event_type == AuditEventType.TRANSFER_COMPLETED

    def test_sink_failure_does_not_raise(self):
        def broken_sink(event):
            raise RuntimeError("sink down")

        logger = AuditLogger(sink=broken_sink)

        assert logger.log(make_event(0)) is False
        assert len(logger.recent_events()) == 1

    def test_recent_events_newest_first(self):
        logger = AuditLogger(history_size=3)
        for i in range(5):
            logger.log(make_event(i))

        events = logger.recent_events()
        assert [e.entity_id for e in events] == ["a4", "a3", "a2"]
        assert [e.entity_id for e in logger.recent_events(1)] == ["a4"]
        assert logger.recent_events(0) == []
