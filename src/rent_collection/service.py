"""RentCollectionService - wires the tracking components together.

Usage:
    async with RentCollectionService(store, leases, transactions, conversations) as svc:
        # Scheduled daily job
        result = await svc.run_daily()

        # Landlord actions
        await svc.mark_as_paid(tracking_id, user_id)
"""

from dataclasses import dataclass
from typing import Any

import structlog

from rent_collection.clock import Clock, SystemClock
from rent_collection.collaborators import (
    ConversationRepository,
    LeaseRepository,
    TransactionRepository,
)
from rent_collection.config import get_settings
from rent_collection.delivery import (
    EmailSender,
    NotificationSink,
    build_email_sender,
    build_notification_sink,
)
from rent_collection.escalation import EscalationDriver
from rent_collection.generator import MonthlyTrackingGenerator
from rent_collection.matcher import PaymentMatcher
from rent_collection.models import (
    GenerationSummary,
    LandlordSummary,
    PaymentCheckSummary,
    ReminderSummary,
    RentPaymentTracking,
)
from rent_collection.overrides import ManualOverrides
from rent_collection.reporting import TrackingReports
from rent_collection.store import TrackingStore

logger = structlog.get_logger(__name__)


@dataclass
class DailyRunResult:
    """Outcome of one scheduled daily run."""

    generation: GenerationSummary | None
    payments: PaymentCheckSummary
    reminders: ReminderSummary

    def to_dict(self) -> dict[str, Any]:
        return {
            "generation": self.generation.to_dict() if self.generation else None,
            "payments": self.payments.to_dict(),
            "reminders": self.reminders.to_dict(),
        }


class RentCollectionService:
    """Facade over the generator, matcher, escalation driver and overrides."""

    def __init__(
        self,
        store: TrackingStore,
        leases: LeaseRepository,
        transactions: TransactionRepository,
        conversations: ConversationRepository,
        notifications: NotificationSink | None = None,
        emails: EmailSender | None = None,
        clock: Clock | None = None,
    ):
        settings = get_settings()
        self._clock = clock or SystemClock()
        self._notifications = notifications or build_notification_sink(settings)
        self._emails = emails or build_email_sender(settings)

        self._generator = MonthlyTrackingGenerator(store, leases, clock=self._clock)
        self._matcher = PaymentMatcher(store, transactions)
        self._escalation = EscalationDriver(
            store, leases, self._notifications, self._emails, clock=self._clock
        )
        self._overrides = ManualOverrides(
            store, leases, conversations, self._notifications, clock=self._clock
        )
        self._reports = TrackingReports(store, leases, clock=self._clock)
        self._logger = logger.bind(component="rent_collection_service")

    async def __aenter__(self) -> "RentCollectionService":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close HTTP-backed sinks, if any."""
        for sink in (self._notifications, self._emails):
            close = getattr(sink, "close", None)
            if close is not None:
                await close()

    # === Batch jobs ===

    def generate_monthly_tracking(self) -> GenerationSummary:
        return self._generator.generate_monthly_tracking()

    def check_payments(self) -> PaymentCheckSummary:
        return self._matcher.check_payments()

    async def process_reminders(self) -> ReminderSummary:
        return await self._escalation.process_reminders()

    async def run_daily(self) -> DailyRunResult:
        """Generate on the first of the month, then match, then escalate."""
        today = self._clock.today()
        self._logger.info("daily_run_started", date=today.isoformat())

        generation = None
        if today.day == 1:
            generation = self.generate_monthly_tracking()
        payments = self.check_payments()
        reminders = await self.process_reminders()

        result = DailyRunResult(generation=generation, payments=payments, reminders=reminders)
        self._logger.info("daily_run_completed", date=today.isoformat())
        return result

    # === Landlord actions ===

    async def mark_as_paid(self, tracking_id: str, user_id: str) -> RentPaymentTracking:
        return await self._overrides.mark_as_paid(tracking_id, user_id)

    async def send_friendly_reminder(
        self, tracking_id: str, user_id: str
    ) -> RentPaymentTracking:
        return await self._overrides.send_friendly_reminder(tracking_id, user_id)

    async def ignore_month(
        self, tracking_id: str, user_id: str, reason: str
    ) -> RentPaymentTracking:
        return await self._overrides.ignore_month(tracking_id, user_id, reason)

    # === Reads ===

    def list_trackings(self, lease_id: str, user_id: str) -> list[RentPaymentTracking]:
        return self._reports.list_trackings(lease_id, user_id)

    def landlord_summary(self, user_id: str) -> LandlordSummary:
        return self._reports.landlord_summary(user_id)
