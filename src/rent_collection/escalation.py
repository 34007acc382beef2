"""Escalation driver: the daily follow-up ladder for unpaid rent.

    PENDING --(day 5)--> LATE --(day 15)--> OVERDUE --(day 30)--> CRITICAL
                           |
                           +--(day 10, once)--> landlord e-mail

REMINDER_SENT (set by the landlord's friendly reminder) behaves like LATE.

The four checks are independent and all read the status captured when the
sweep loaded the row, never a status written earlier in the same sweep. A row
therefore climbs at most one rung per run: a PENDING row that is 40 days late
becomes LATE today, OVERDUE on the next run and CRITICAL on the one after.
Every write is guarded by the store, so re-running a sweep on the same day
cannot fire a side effect twice.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import TypeVar

import structlog

from rent_collection import templates
from rent_collection.clock import Clock, SystemClock
from rent_collection.collaborators import LeaseRepository
from rent_collection.config import get_settings
from rent_collection.delivery import EmailSender, NotificationSink
from rent_collection.errors import LeaseNotFoundError
from rent_collection.models import (
    Lease,
    Notification,
    ReminderSummary,
    RentPaymentTracking,
    TrackingStatus,
)
from rent_collection.store import TrackingStore

logger = structlog.get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")

LATE_AFTER_DAYS = 5
REMINDER_EMAIL_AFTER_DAYS = 10
OVERDUE_AFTER_DAYS = 15
CRITICAL_AFTER_DAYS = 30

ESCALATABLE_STATUSES: frozenset[TrackingStatus] = frozenset(
    {
        TrackingStatus.PENDING,
        TrackingStatus.LATE,
        TrackingStatus.REMINDER_SENT,
        TrackingStatus.OVERDUE,
    }
)
FOLLOW_UP_STATUSES: frozenset[TrackingStatus] = frozenset(
    {TrackingStatus.LATE, TrackingStatus.REMINDER_SENT}
)


async def run_bounded(
    items: Sequence[T], worker: Callable[[T], Awaitable[R]], limit: int
) -> list[R]:
    """Run `worker` over `items` with at most `limit` in flight."""
    semaphore = asyncio.Semaphore(limit)

    async def _run(item: T) -> R:
        async with semaphore:
            return await worker(item)

    return await asyncio.gather(*(_run(item) for item in items))


@dataclass
class EscalationOutcome:
    """What happened to a single tracking during one sweep."""

    late_notified: bool = False
    email_sent: bool = False
    overdue_notified: bool = False
    critical_notified: bool = False
    error: bool = False
    delivery_failures: int = 0


class EscalationDriver:
    """Advances unresolved trackings and fires the matching side effects."""

    def __init__(
        self,
        store: TrackingStore,
        leases: LeaseRepository,
        notifications: NotificationSink,
        emails: EmailSender,
        clock: Clock | None = None,
        app_url: str | None = None,
        concurrency: int | None = None,
    ):
        settings = get_settings()
        self._store = store
        self._leases = leases
        self._notifications = notifications
        self._emails = emails
        self._clock = clock or SystemClock()
        self._app_url = app_url or settings.app_url
        self._concurrency = concurrency or settings.sweep_concurrency
        self._logger = logger.bind(component="escalation_driver")

    async def process_reminders(self) -> ReminderSummary:
        today = self._clock.today()
        trackings = self._store.find_by_status(ESCALATABLE_STATUSES, expected_before=today)

        outcomes = await run_bounded(
            trackings,
            lambda tracking: self._process_tracking(tracking, today),
            self._concurrency,
        )

        summary = ReminderSummary()
        for outcome in outcomes:
            summary.late_notified += outcome.late_notified
            summary.emails_sent += outcome.email_sent
            summary.overdue_notified += outcome.overdue_notified
            summary.critical_notified += outcome.critical_notified
            summary.errors += outcome.error
            summary.delivery_failures += outcome.delivery_failures

        self._logger.info("reminders_processed", candidates=len(trackings), **summary.to_dict())
        return summary

    async def _process_tracking(
        self, snapshot: RentPaymentTracking, today: date
    ) -> EscalationOutcome:
        outcome = EscalationOutcome()
        try:
            await self._escalate(snapshot, today, outcome)
        except Exception as e:
            outcome.error = True
            self._logger.error(
                "reminder_processing_failed",
                tracking_id=snapshot.id,
                error=str(e),
                exc_info=True,
            )
        return outcome

    async def _escalate(
        self, snapshot: RentPaymentTracking, today: date, outcome: EscalationOutcome
    ) -> None:
        lease = self._leases.get(snapshot.lease_id)
        if lease is None:
            raise LeaseNotFoundError(snapshot.lease_id)

        days_late = snapshot.days_late(today)
        status = snapshot.status
        now = self._clock.now()
        log = self._logger.bind(tracking_id=snapshot.id, days_late=days_late)

        if status == TrackingStatus.PENDING and days_late >= LATE_AFTER_DAYS:
            if self._store.update(
                snapshot.id,
                expected_statuses={TrackingStatus.PENDING},
                status=TrackingStatus.LATE,
            ):
                outcome.late_notified = True
                log.info("tracking_marked_late")
                await self._notify(templates.late_notification(snapshot, lease), outcome)

        if (
            status in FOLLOW_UP_STATUSES
            and days_late >= REMINDER_EMAIL_AFTER_DAYS
            and snapshot.reminder_sent_at is None
        ):
            if self._store.update(
                snapshot.id,
                expected_statuses=FOLLOW_UP_STATUSES,
                unset_fields=("reminder_sent_at",),
                reminder_sent_at=now,
            ):
                outcome.email_sent = True
                await self._email_landlord(snapshot, lease, outcome)

        if status in FOLLOW_UP_STATUSES and days_late >= OVERDUE_AFTER_DAYS:
            if self._store.update(
                snapshot.id,
                expected_statuses=FOLLOW_UP_STATUSES,
                status=TrackingStatus.OVERDUE,
                overdue_notified_at=now,
            ):
                outcome.overdue_notified = True
                log.info("tracking_marked_overdue")
                await self._notify(templates.overdue_notification(snapshot, lease), outcome)

        if status == TrackingStatus.OVERDUE and days_late >= CRITICAL_AFTER_DAYS:
            if self._store.update(
                snapshot.id,
                expected_statuses={TrackingStatus.OVERDUE},
                status=TrackingStatus.CRITICAL,
            ):
                outcome.critical_notified = True
                log.warning("tracking_marked_critical")
                await self._notify(templates.critical_notification(snapshot, lease), outcome)

    async def _notify(self, notification: Notification, outcome: EscalationOutcome) -> None:
        try:
            await self._notifications.notify(notification)
        except Exception as e:
            outcome.delivery_failures += 1
            self._logger.warning(
                "notification_delivery_failed",
                user_id=notification.user_id,
                type=notification.type.value,
                error=str(e),
            )

    async def _email_landlord(
        self, tracking: RentPaymentTracking, lease: Lease, outcome: EscalationOutcome
    ) -> None:
        if not lease.landlord_email:
            self._logger.warning(
                "landlord_email_missing", tracking_id=tracking.id, lease_id=lease.id
            )
            return
        email = templates.landlord_reminder_email(
            tracking, lease, lease.landlord_email, self._app_url
        )
        try:
            await self._emails.send(email)
        except Exception as e:
            outcome.delivery_failures += 1
            self._logger.warning(
                "reminder_email_delivery_failed",
                tracking_id=tracking.id,
                recipient=email.recipient,
                error=str(e),
            )
