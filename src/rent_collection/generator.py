"""Monthly generator: one tracking row per active lease and calendar month."""

import calendar
from datetime import date

import structlog

from rent_collection.clock import Clock, SystemClock
from rent_collection.collaborators import LeaseRepository
from rent_collection.config import get_settings
from rent_collection.models import GenerationSummary, Lease, RentPaymentTracking
from rent_collection.store import TrackingStore

logger = structlog.get_logger(__name__)


def expected_payment_date(year: int, month: int, payment_day: int) -> date:
    """Payment day clamped to the length of the month (31 in February -> 28/29)."""
    days_in_month = calendar.monthrange(year, month)[1]
    return date(year, month, min(max(payment_day, 1), days_in_month))


class MonthlyTrackingGenerator:
    """Creates the current month's tracking rows.

    Safe to re-run: rows are created only when absent, so a second run for the
    same month reports every lease as skipped.
    """

    def __init__(
        self,
        store: TrackingStore,
        leases: LeaseRepository,
        clock: Clock | None = None,
        default_payment_day: int | None = None,
    ):
        self._store = store
        self._leases = leases
        self._clock = clock or SystemClock()
        self._default_payment_day = (
            default_payment_day or get_settings().default_rent_payment_day
        )
        self._logger = logger.bind(component="monthly_generator")

    def generate_monthly_tracking(self) -> GenerationSummary:
        today = self._clock.today()
        summary = GenerationSummary()

        for lease in self._leases.list_active():
            try:
                if self._generate_for_lease(lease, today):
                    summary.created += 1
                else:
                    summary.skipped += 1
            except Exception as e:
                summary.errors += 1
                self._logger.error(
                    "tracking_generation_failed",
                    lease_id=lease.id,
                    error=str(e),
                    exc_info=True,
                )

        self._logger.info(
            "monthly_tracking_generated",
            month=today.month,
            year=today.year,
            **summary.to_dict(),
        )
        return summary

    def _generate_for_lease(self, lease: Lease, today: date) -> bool:
        financials = lease.active_financials
        if financials is None:
            self._logger.debug("lease_without_active_financials", lease_id=lease.id)
            return False

        # First month is settled at signing; future leases have nothing due yet
        month_start = today.replace(day=1)
        if financials.start_date >= month_start:
            self._logger.debug(
                "lease_not_started_before_month",
                lease_id=lease.id,
                start_date=financials.start_date.isoformat(),
            )
            return False

        payment_day = lease.rent_payment_day or self._default_payment_day
        tracking = RentPaymentTracking(
            lease_id=lease.id,
            period_month=today.month,
            period_year=today.year,
            expected_amount_cents=financials.monthly_total_cents,
            expected_date=expected_payment_date(today.year, today.month, payment_day),
        )
        stored, created = self._store.create_if_absent(tracking)
        if created:
            self._logger.info(
                "tracking_created",
                lease_id=lease.id,
                tracking_id=stored.id,
                expected_amount_cents=stored.expected_amount_cents,
                expected_date=stored.expected_date.isoformat(),
            )
        return created
