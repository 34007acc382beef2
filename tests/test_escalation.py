"""Tests for the escalation driver."""

from datetime import UTC, date, datetime

import pytest
from conftest import make_lease, make_tracking

from rent_collection.clock import FixedClock
from rent_collection.collaborators import InMemoryLeaseRepository
from rent_collection.errors import DeliveryError
from rent_collection.escalation import EscalationDriver
from rent_collection.models import NotificationType, TrackingStatus


def _driver(store, leases, notifications, emails, today: date, **kwargs) -> EscalationDriver:
    return EscalationDriver(
        store,
        leases,
        notifications,
        emails,
        clock=FixedClock(today),
        app_url="https://app.example.com",
        **kwargs,
    )


class TestLadder:
    @pytest.mark.asyncio
    async def test_nothing_happens_before_day_five(self, store, leases, notifications, emails):
        tracking, _ = store.create_if_absent(make_tracking())
        driver = _driver(store, leases, notifications, emails, date(2025, 1, 9))

        summary = await driver.process_reminders()

        assert summary.late_notified == 0
        assert store.get(tracking.id).status == TrackingStatus.PENDING
        notifications.notify.assert_not_called()

    @pytest.mark.asyncio
    async def test_pending_becomes_late_on_day_five(self, store, leases, notifications, emails):
        tracking, _ = store.create_if_absent(make_tracking())
        driver = _driver(store, leases, notifications, emails, date(2025, 1, 10))

        summary = await driver.process_reminders()

        assert summary.late_notified == 1
        assert store.get(tracking.id).status == TrackingStatus.LATE
        notification = notifications.notify.call_args.args[0]
        assert notification.type == NotificationType.RENT_LATE
        assert notification.user_id == "landlord-1"
        assert notification.link == "/dashboard/finances"
        assert "January" in notification.message
        assert "12 rue des Lilas, 75011 Paris" in notification.message

    @pytest.mark.asyncio
    async def test_one_rung_per_run(self, store, leases, notifications, emails):
        # Expected Jan 5, first observed 40 days later
        tracking, _ = store.create_if_absent(make_tracking())
        clock = FixedClock(date(2025, 2, 14))
        driver = EscalationDriver(
            store, leases, notifications, emails, clock=clock, app_url="https://x"
        )

        first = await driver.process_reminders()
        assert store.get(tracking.id).status == TrackingStatus.LATE
        assert first.late_notified == 1
        assert first.emails_sent == 0
        assert first.overdue_notified == 0
        assert first.critical_notified == 0

        clock.advance(1)
        second = await driver.process_reminders()
        assert store.get(tracking.id).status == TrackingStatus.OVERDUE
        assert second.late_notified == 0
        assert second.emails_sent == 1
        assert second.overdue_notified == 1
        assert second.critical_notified == 0

        clock.advance(1)
        third = await driver.process_reminders()
        assert store.get(tracking.id).status == TrackingStatus.CRITICAL
        assert third.critical_notified == 1
        assert third.emails_sent == 0

        clock.advance(1)
        fourth = await driver.process_reminders()
        assert fourth.to_dict() == {
            "late_notified": 0,
            "emails_sent": 0,
            "overdue_notified": 0,
            "critical_notified": 0,
            "errors": 0,
            "delivery_failures": 0,
        }
        assert store.get(tracking.id).status == TrackingStatus.CRITICAL

    @pytest.mark.asyncio
    async def test_day_ten_email_keeps_status(self, store, leases, notifications, emails):
        tracking, _ = store.create_if_absent(make_tracking(status=TrackingStatus.LATE))
        driver = _driver(store, leases, notifications, emails, date(2025, 1, 15))

        summary = await driver.process_reminders()

        assert summary.emails_sent == 1
        updated = store.get(tracking.id)
        assert updated.status == TrackingStatus.LATE
        assert updated.reminder_sent_at == datetime(2025, 1, 15, 9, 0, tzinfo=UTC)
        email = emails.send.call_args.args[0]
        assert email.recipient == "landlord@example.com"
        assert email.subject == "Rent follow-up - Reminder January 2025"
        assert "1050.00 €" in email.html
        assert "https://app.example.com/dashboard/finances" in email.html

    @pytest.mark.asyncio
    async def test_reminder_email_sent_only_once(self, store, leases, notifications, emails):
        store.create_if_absent(make_tracking(status=TrackingStatus.LATE))
        clock = FixedClock(date(2025, 1, 15))
        driver = EscalationDriver(store, leases, notifications, emails, clock=clock)

        await driver.process_reminders()
        # Same-day re-run, then the following days up to day 14
        rerun = await driver.process_reminders()
        for _ in range(4):
            clock.advance(1)
            await driver.process_reminders()

        assert rerun.emails_sent == 0
        assert emails.send.await_count == 1

    @pytest.mark.asyncio
    async def test_friendly_reminder_preempts_email(self, store, leases, notifications, emails):
        tracking, _ = store.create_if_absent(
            make_tracking(
                status=TrackingStatus.REMINDER_SENT,
                reminder_sent_at=datetime(2025, 1, 8, tzinfo=UTC),
            )
        )
        driver = _driver(store, leases, notifications, emails, date(2025, 1, 16))

        summary = await driver.process_reminders()

        assert summary.emails_sent == 0
        emails.send.assert_not_called()
        assert store.get(tracking.id).status == TrackingStatus.REMINDER_SENT

    @pytest.mark.asyncio
    async def test_reminder_sent_escalates_to_overdue(self, store, leases, notifications, emails):
        tracking, _ = store.create_if_absent(
            make_tracking(
                status=TrackingStatus.REMINDER_SENT,
                reminder_sent_at=datetime(2025, 1, 8, tzinfo=UTC),
            )
        )
        driver = _driver(store, leases, notifications, emails, date(2025, 1, 20))

        summary = await driver.process_reminders()

        assert summary.overdue_notified == 1
        updated = store.get(tracking.id)
        assert updated.status == TrackingStatus.OVERDUE
        assert updated.overdue_notified_at is not None

    @pytest.mark.asyncio
    async def test_late_at_day_fifteen_gets_email_and_overdue(
        self, store, leases, notifications, emails
    ):
        tracking, _ = store.create_if_absent(make_tracking(status=TrackingStatus.LATE))
        driver = _driver(store, leases, notifications, emails, date(2025, 1, 20))

        summary = await driver.process_reminders()

        assert summary.emails_sent == 1
        assert summary.overdue_notified == 1
        updated = store.get(tracking.id)
        assert updated.status == TrackingStatus.OVERDUE
        assert updated.reminder_sent_at is not None
        notification = notifications.notify.call_args.args[0]
        assert notification.type == NotificationType.RENT_OVERDUE

    @pytest.mark.asyncio
    async def test_overdue_becomes_critical_on_day_thirty(
        self, store, leases, notifications, emails
    ):
        tracking, _ = store.create_if_absent(make_tracking(status=TrackingStatus.OVERDUE))

        day_29 = await _driver(
            store, leases, notifications, emails, date(2025, 2, 3)
        ).process_reminders()
        assert day_29.critical_notified == 0
        assert store.get(tracking.id).status == TrackingStatus.OVERDUE

        day_30 = await _driver(
            store, leases, notifications, emails, date(2025, 2, 4)
        ).process_reminders()
        assert day_30.critical_notified == 1
        assert store.get(tracking.id).status == TrackingStatus.CRITICAL
        notification = notifications.notify.call_args.args[0]
        assert notification.type == NotificationType.RENT_CRITICAL

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status",
        [TrackingStatus.PAID, TrackingStatus.MANUALLY_CONFIRMED, TrackingStatus.IGNORED],
    )
    async def test_terminal_trackings_are_never_mutated(
        self, store, leases, notifications, emails, status
    ):
        tracking, _ = store.create_if_absent(make_tracking(status=status))
        driver = _driver(store, leases, notifications, emails, date(2025, 6, 1))

        await driver.process_reminders()

        assert store.get(tracking.id) == tracking
        notifications.notify.assert_not_called()
        emails.send.assert_not_called()


class TestFailures:
    @pytest.mark.asyncio
    async def test_notification_failure_keeps_transition(
        self, store, leases, notifications, emails
    ):
        notifications.notify.side_effect = DeliveryError("down", status_code=503)
        tracking, _ = store.create_if_absent(make_tracking())
        driver = _driver(store, leases, notifications, emails, date(2025, 1, 11))

        summary = await driver.process_reminders()

        assert summary.late_notified == 1
        assert summary.delivery_failures == 1
        assert summary.errors == 0
        assert store.get(tracking.id).status == TrackingStatus.LATE

    @pytest.mark.asyncio
    async def test_email_failure_is_not_retried(self, store, leases, notifications, emails):
        emails.send.side_effect = DeliveryError("smtp refused")
        tracking, _ = store.create_if_absent(make_tracking(status=TrackingStatus.LATE))
        clock = FixedClock(date(2025, 1, 15))
        driver = EscalationDriver(store, leases, notifications, emails, clock=clock)

        first = await driver.process_reminders()
        clock.advance(1)
        second = await driver.process_reminders()

        assert first.emails_sent == 1
        assert first.delivery_failures == 1
        assert second.emails_sent == 0
        assert store.get(tracking.id).reminder_sent_at is not None
        assert emails.send.await_count == 1

    @pytest.mark.asyncio
    async def test_missing_landlord_email_still_marks_reminder(
        self, store, notifications, emails
    ):
        leases = InMemoryLeaseRepository([make_lease(landlord_email=None)])
        tracking, _ = store.create_if_absent(make_tracking(status=TrackingStatus.LATE))
        driver = _driver(store, leases, notifications, emails, date(2025, 1, 15))

        summary = await driver.process_reminders()

        assert summary.emails_sent == 1
        emails.send.assert_not_called()
        assert store.get(tracking.id).reminder_sent_at is not None

    @pytest.mark.asyncio
    async def test_unknown_lease_is_counted_and_sweep_continues(
        self, store, leases, notifications, emails
    ):
        orphan, _ = store.create_if_absent(make_tracking(lease_id="gone"))
        tracking, _ = store.create_if_absent(make_tracking())
        driver = _driver(store, leases, notifications, emails, date(2025, 1, 11))

        summary = await driver.process_reminders()

        assert summary.errors == 1
        assert summary.late_notified == 1
        assert store.get(orphan.id).status == TrackingStatus.PENDING
        assert store.get(tracking.id).status == TrackingStatus.LATE


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_bounded_sweep_processes_every_tracking(self, store, notifications, emails):
        leases = InMemoryLeaseRepository([make_lease(lease_id=f"lease-{i}") for i in range(7)])
        for i in range(7):
            store.create_if_absent(make_tracking(lease_id=f"lease-{i}"))
        driver = _driver(store, leases, notifications, emails, date(2025, 1, 11), concurrency=2)

        summary = await driver.process_reminders()

        assert summary.late_notified == 7
        assert all(t.status == TrackingStatus.LATE for t in store.all())
