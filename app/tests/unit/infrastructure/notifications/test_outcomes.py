"""Unit tests for delivery attempts and the delivery outcome handler.

Tests cover:
- pending -> sent | failed transitions
- Outcome logging for sent and failed attempts
- Per-dispatch summary counters
"""

import pytest
from structlog.testing import capture_logs

from infrastructure.notifications.exceptions import InvalidTransitionError
from infrastructure.notifications.models import (
    Channel,
    DeliveryAttempt,
    DeliveryStatus,
    EmailContent,
)
from infrastructure.notifications.outcomes import DeliveryOutcomeHandler, DispatchSummary

pytestmark = pytest.mark.unit


@pytest.fixture
def attempt_factory(recipient_factory, payload_factory):
    def _factory(channel=Channel.EMAIL, **payload_kwargs):
        return DeliveryAttempt(
            channel=channel,
            recipient=recipient_factory(),
            payload=payload_factory(**payload_kwargs),
        )

    return _factory


class TestDeliveryAttemptTransitions:
    """Tests for the DeliveryAttempt state machine."""

    def test_starts_pending(self, attempt_factory):
        attempt = attempt_factory()

        assert attempt.status == DeliveryStatus.PENDING
        assert attempt.is_terminal is False

    def test_pending_to_sent(self, attempt_factory):
        attempt = attempt_factory().mark_sent(external_id="msg-1", status_code=201)

        assert attempt.status == DeliveryStatus.SENT
        assert attempt.is_success
        assert attempt.is_terminal
        assert attempt.external_id == "msg-1"

    def test_pending_to_failed(self, attempt_factory):
        attempt = attempt_factory().mark_failed(
            "UNAUTHORIZED", error_detail={"code": "unauthorized"}, status_code=401
        )

        assert attempt.status == DeliveryStatus.FAILED
        assert attempt.is_success is False
        assert attempt.status_code == 401

    @pytest.mark.parametrize("first", ["sent", "failed"])
    @pytest.mark.parametrize("second", ["sent", "failed"])
    def test_terminal_states_do_not_transition(self, attempt_factory, first, second):
        attempt = attempt_factory()
        if first == "sent":
            attempt.mark_sent()
        else:
            attempt.mark_failed("ERROR")

        with pytest.raises(InvalidTransitionError):
            if second == "sent":
                attempt.mark_sent()
            else:
                attempt.mark_failed("ERROR")


class TestDeliveryOutcomeHandler:
    """Tests for DeliveryOutcomeHandler.record()."""

    def test_logs_sent_attempt_with_message_id(self, attempt_factory):
        handler = DeliveryOutcomeHandler()
        attempt = attempt_factory().mark_sent(external_id="<msg-1@brevo>")

        with capture_logs() as logs:
            handler.record(attempt)

        entry = next(e for e in logs if e["event"] == "notification_delivered")
        assert entry["external_id"] == "<msg-1@brevo>"
        assert entry["channel"] == "email"
        assert entry["log_level"] == "info"

    def test_logs_failed_attempt_with_context(self, attempt_factory):
        handler = DeliveryOutcomeHandler()
        attempt = attempt_factory(
            email=EmailContent(template_id=53, subject="Nueva Empresa")
        ).mark_failed("UNAUTHORIZED", error_detail={"message": "Key not found"}, status_code=401)

        with capture_logs() as logs:
            handler.record(attempt)

        entry = next(e for e in logs if e["event"] == "notification_delivery_failed")
        assert entry["log_level"] == "error"
        assert entry["status_code"] == 401
        assert entry["error_detail"] == {"message": "Key not found"}
        assert entry["template_id"] == 53
        assert entry["recipient"] == "ana@example.com"

    def test_pending_attempt_is_reported_unfinished(self, attempt_factory):
        handler = DeliveryOutcomeHandler()

        with capture_logs() as logs:
            handler.record(attempt_factory())

        assert [e["event"] for e in logs] == ["notification_delivery_unfinished"]

    def test_keeps_no_state_between_dispatches(self, attempt_factory):
        handler = DeliveryOutcomeHandler()

        for _ in range(6):
            handler.record(attempt_factory(channel=Channel.DATABASE).mark_sent())

        assert vars(handler) == {}


class TestDispatchSummary:
    def test_counts_per_channel(self, attempt_factory):
        summary = DispatchSummary()

        summary.add(attempt_factory(channel=Channel.DATABASE).mark_sent())
        summary.add(attempt_factory(channel=Channel.EMAIL).mark_failed("TIMEOUT"))

        assert summary.sent == 1
        assert summary.failed == 1
        assert summary.by_channel == {
            "database": {"sent": 1, "failed": 0},
            "email": {"sent": 0, "failed": 1},
        }

    def test_add_ignores_pending(self, attempt_factory):
        summary = DispatchSummary()

        summary.add(attempt_factory())

        assert summary.total == 0
        assert summary.by_channel == {"email": {"sent": 0, "failed": 0}}
