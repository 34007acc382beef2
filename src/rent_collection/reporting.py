"""Landlord-facing read operations over tracking rows."""

import calendar
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from rent_collection.clock import Clock, SystemClock
from rent_collection.collaborators import LeaseRepository
from rent_collection.errors import AuthorizationError, LeaseNotFoundError
from rent_collection.models import LandlordSummary, RentPaymentTracking, TrackingStatus
from rent_collection.store import TrackingStore

LATE_STATUSES: frozenset[TrackingStatus] = frozenset(
    {
        TrackingStatus.LATE,
        TrackingStatus.REMINDER_SENT,
        TrackingStatus.OVERDUE,
        TrackingStatus.CRITICAL,
    }
)
SETTLED_STATUSES: frozenset[TrackingStatus] = frozenset(
    {TrackingStatus.PAID, TrackingStatus.MANUALLY_CONFIRMED}
)


def one_year_before(day: date) -> date:
    """Same calendar day a year earlier (Feb 29 falls back to Feb 28)."""
    year = day.year - 1
    return date(year, day.month, min(day.day, calendar.monthrange(year, day.month)[1]))


def _percentage(part: int, whole: int) -> int:
    ratio = Decimal(part) * 100 / Decimal(whole)
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class TrackingReports:
    def __init__(
        self,
        store: TrackingStore,
        leases: LeaseRepository,
        clock: Clock | None = None,
    ):
        self._store = store
        self._leases = leases
        self._clock = clock or SystemClock()

    def list_trackings(self, lease_id: str, user_id: str) -> list[RentPaymentTracking]:
        """Tracking history of a lease, most recent period first."""
        lease = self._leases.get(lease_id)
        if lease is None:
            raise LeaseNotFoundError(lease_id)
        if not lease.is_owned_by(user_id):
            raise AuthorizationError(user_id, lease_id)

        trackings = self._store.list_for_leases({lease_id})
        return sorted(
            trackings, key=lambda t: (t.period_year, t.period_month), reverse=True
        )

    def landlord_summary(self, user_id: str) -> LandlordSummary:
        """Late rents this month and the 12-month recovery rate."""
        lease_ids = {lease.id for lease in self._leases.list_for_landlord(user_id)}
        if not lease_ids:
            return LandlordSummary(
                current_month_late=0, total_tracked=0, total_paid=0, recovery_rate=100
            )

        today = self._clock.today()
        trackings = self._store.list_for_leases(lease_ids)

        current_month_late = sum(
            1
            for t in trackings
            if t.period_month == today.month
            and t.period_year == today.year
            and t.status in LATE_STATUSES
        )

        since = one_year_before(today)
        recent = [t for t in trackings if t.expected_date >= since]
        total_paid = sum(1 for t in recent if t.status in SETTLED_STATUSES)
        recovery_rate = _percentage(total_paid, len(recent)) if recent else 100

        return LandlordSummary(
            current_month_late=current_month_late,
            total_tracked=len(recent),
            total_paid=total_paid,
            recovery_rate=recovery_rate,
        )
