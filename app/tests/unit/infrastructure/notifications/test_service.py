"""Unit tests for NotificationService.

Tests cover:
- No-op for unconfigured (entity type, action) pairs
- Containment of configuration and unexpected errors
- Audience grouping for role-based content; a failing audience is skipped alone
- Scheduling, cancelling and running due notifications
"""

from datetime import datetime, timezone

import pytest
from freezegun import freeze_time
from structlog.testing import capture_logs

from infrastructure.logging import get_correlation_id
from infrastructure.notifications.models import Channel
from infrastructure.notifications.service import group_by_audience

pytestmark = pytest.mark.unit


def database_records(service):
    return service.dispatcher.channels[Channel.DATABASE].store.all()


def broadcast_events(service):
    return service.dispatcher.channels[Channel.BROADCAST].broadcaster.events


class TestNotify:
    """Tests for NotificationService.notify()."""

    @pytest.mark.parametrize(
        "entity_type,action",
        [("contract", "archived"), ("invoice", "created"), ("company", "updated")],
    )
    def test_unconfigured_pair_is_noop(
        self, service_factory, contract_factory, mock_brevo_client, entity_type, action
    ):
        service = service_factory()

        summary = service.notify(entity_type, contract_factory(), action)

        assert summary.total == 0
        assert database_records(service) == []
        assert broadcast_events(service) == []
        mock_brevo_client.send.assert_not_called()

    def test_delivers_on_every_channel(self, service_factory, contract_factory, mock_brevo_client):
        service = service_factory()

        summary = service.notify("contract", contract_factory(), "updated", actor_id=4)

        assert summary.sent == 9
        assert summary.failed == 0
        assert summary.by_channel["email"] == {"sent": 3, "failed": 0}
        assert mock_brevo_client.send.call_count == 3
        assert all(r.sender_id == 4 for r in database_records(service))

    def test_email_channel_disabled(
        self, service_factory, rule_store_factory, contract_factory, mock_brevo_client
    ):
        service = service_factory(store=rule_store_factory(channel_flags={"email": False}))

        summary = service.notify("contract", contract_factory(), "updated")

        assert set(summary.by_channel) == {"database", "broadcast"}
        mock_brevo_client.send.assert_not_called()

    def test_missing_template_variable_sends_nothing(
        self, service_factory, rules_data, rule_store_factory, company_factory, mock_brevo_client
    ):
        rules_data["email_templates"]["template_variables"][53]["FOUNDER"] = "founder_name"
        service = service_factory(store=rule_store_factory(rules_data))

        with capture_logs() as logs:
            summary = service.notify("company", company_factory(), "created")

        assert summary.total == 0
        assert database_records(service) == []
        mock_brevo_client.send.assert_not_called()
        failure = next(e for e in logs if e["event"] == "notification_build_failed")
        assert failure["log_level"] == "error"
        assert failure["error_type"] == "MissingTemplateVariableError"

    def test_unknown_entity_type_is_contained(self, service_factory, rules_data, rule_store_factory):
        rules_data["rules"]["invoice"] = {
            "paid": {"recipients": {"roles": ["RRHH"]}, "channels": ["database"]}
        }
        service = service_factory(store=rule_store_factory(rules_data))

        with capture_logs() as logs:
            summary = service.notify("invoice", object(), "paid")

        assert summary.total == 0
        assert any(e["error_type"] == "UnknownEntityTypeError" for e in logs if "error_type" in e)

    def test_unexpected_error_never_escapes(self, service_factory, contract_factory):
        service = service_factory()

        def explode(*args, **kwargs):
            raise RuntimeError("directory unavailable")

        service.resolver.resolve = explode

        with capture_logs() as logs:
            summary = service.notify("contract", contract_factory(), "updated")

        assert summary.total == 0
        assert any(e["event"] == "notification_failed" for e in logs)

    def test_no_recipients(self, service_factory, contract_factory, hr_directory):
        service = service_factory()
        hr_directory._users.clear()

        summary = service.notify("contract", contract_factory(), "updated")

        assert summary.total == 0

    def test_dispatch_context_is_cleared(self, service_factory, contract_factory):
        service = service_factory()

        service.notify("contract", contract_factory(), "updated", correlation_id="abc")

        assert get_correlation_id() is None

    def test_exclude_actor(self, service_factory, company_factory):
        service = service_factory()

        summary = service.notify("company", company_factory(), "created", actor_id=4)

        assert summary.total == 0

    def test_health_check(self, service_factory):
        assert service_factory().health_check() == {
            "database": True,
            "broadcast": True,
            "email": True,
        }


class TestAudienceGrouping:
    """Tests for group_by_audience()."""

    def test_groups_only_overridden_audiences(self, recipient_factory):
        recipients = [
            recipient_factory(user_id=1, audience="manager"),
            recipient_factory(user_id=2, audience="deputy"),
            recipient_factory(user_id=3, audience="user"),
            recipient_factory(user_id=4, audience="employee"),
        ]

        groups = group_by_audience(recipients, {"manager": object()})

        assert {k: [r.user_id for r in v] for k, v in groups.items()} == {
            "manager": [1],
            "user": [2, 3, 4],
        }

    def test_role_based_content_per_audience(
        self, service_factory, rules_data, rule_store_factory, contract_factory
    ):
        rules_data["rules"]["contract"]["updated"]["templates"]["role_based"] = {
            "manager": {"title": "Contrato de tu equipo: {file_number}"}
        }
        service = service_factory(store=rule_store_factory(rules_data))

        service.notify("contract", contract_factory(), "updated")

        titles = {r.receiver_id: r.title for r in database_records(service)}
        assert titles == {
            1: "Contrato Actualizado: EXP-10",
            2: "Contrato Actualizado: EXP-10",
            30: "Contrato de tu equipo: EXP-10",
        }

    def test_failing_audience_does_not_block_others(
        self, service_factory, rules_data, rule_store_factory, contract_factory
    ):
        rules_data["rules"]["contract"]["updated"]["templates"]["role_based"] = {
            "manager": {"mail": {"template_id": 53}}
        }
        service = service_factory(store=rule_store_factory(rules_data))

        with capture_logs() as logs:
            summary = service.notify("contract", contract_factory(), "updated")

        assert sorted(r.receiver_id for r in database_records(service)) == [1, 2]
        assert summary.failed == 0
        failure = next(e for e in logs if e["event"] == "notification_build_failed")
        assert failure["audience"] == "manager"


@freeze_time("2026-10-19 08:00:00")
class TestScheduling:
    """Tests for schedule(), cancel() and run_due()."""

    def test_schedule_future(self, service_factory, contract_factory):
        service = service_factory()
        when = datetime(2026, 12, 16, 9, tzinfo=timezone.utc)

        item = service.schedule(
            "contract", contract_factory(), "expiring", when, extra={"days_remaining": 15}
        )

        assert item is not None
        assert item.entity_id == 10
        assert item.due_at == when
        assert service.scheduled.pending() == [item]

    def test_rule_not_scheduled_is_rejected(self, service_factory, contract_factory):
        service = service_factory()
        when = datetime(2026, 12, 16, 9, tzinfo=timezone.utc)

        assert service.schedule("contract", contract_factory(), "updated", when) is None
        assert service.schedule("contract", contract_factory(), "archived", when) is None
        assert service.scheduled.pending() == []

    def test_past_date_is_rejected(self, service_factory, contract_factory):
        service = service_factory()
        when = datetime(2026, 10, 1, 9, tzinfo=timezone.utc)

        assert service.schedule("contract", contract_factory(), "expiring", when) is None

    def test_cancel(self, service_factory, contract_factory):
        service = service_factory()
        when = datetime(2026, 12, 16, 9, tzinfo=timezone.utc)
        service.schedule("contract", contract_factory(id=10), "expiring", when)
        service.schedule("contract", contract_factory(id=11), "expiring", when)

        removed = service.cancel("contract", 10)

        assert removed == 1
        assert [i.entity_id for i in service.scheduled.pending()] == [11]

    def test_run_due_dispatches_only_due_entries(self, service_factory, contract_factory):
        service = service_factory()
        contract = contract_factory()
        service.schedule(
            "contract",
            contract,
            "expiring",
            datetime(2026, 12, 16, 9, tzinfo=timezone.utc),
            extra={"days_remaining": 15},
        )
        service.schedule(
            "contract",
            contract,
            "expiring",
            datetime(2026, 12, 26, 9, tzinfo=timezone.utc),
            extra={"days_remaining": 5},
        )

        assert service.run_due() == 0

        with freeze_time("2026-12-16 10:00:00"):
            dispatched = service.run_due()

        assert dispatched == 1
        records = database_records(service)
        assert sorted(r.receiver_id for r in records) == [20, 30]
        assert {r.content for r in records} == {"Finaliza en 15 días"}
        assert len(service.scheduled.pending()) == 1

    def test_run_due_with_explicit_now(self, service_factory, contract_factory):
        service = service_factory()
        service.schedule(
            "contract",
            contract_factory(),
            "expiring",
            datetime(2026, 12, 16, 9, tzinfo=timezone.utc),
            extra={"days_remaining": 15},
        )

        assert service.run_due(datetime(2027, 1, 1, tzinfo=timezone.utc)) == 1
        assert service.scheduled.pending() == []

    def test_naive_when_is_taken_as_utc(self, service_factory, contract_factory):
        service = service_factory()

        item = service.schedule(
            "contract",
            contract_factory(),
            "expiring",
            datetime(2026, 12, 16, 9),
            extra={"days_remaining": 15},
        )

        assert item is not None
        assert item.due_at == datetime(2026, 12, 16, 9, tzinfo=timezone.utc)

    def test_naive_past_when_is_rejected(self, service_factory, contract_factory):
        service = service_factory()

        with capture_logs() as logs:
            item = service.schedule("contract", contract_factory(), "expiring", datetime(2026, 10, 1))

        assert item is None
        assert logs[-1]["reason"] == "date_in_past"

    def test_run_due_with_naive_now(self, service_factory, contract_factory):
        service = service_factory()
        service.schedule(
            "contract",
            contract_factory(),
            "expiring",
            datetime(2026, 12, 16, 9, tzinfo=timezone.utc),
            extra={"days_remaining": 15},
        )

        assert service.run_due(datetime(2026, 12, 16, 8)) == 0
        assert service.run_due(datetime(2026, 12, 16, 9)) == 1
