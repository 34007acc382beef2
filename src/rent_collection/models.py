"""Domain models for rent payment tracking.

`RentPaymentTracking` is the only entity owned by this package. Leases, bank
transactions and conversations are read from collaborators and modelled here
as plain frozen dataclasses with typed accessors.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any
from uuid import uuid4


class TrackingStatus(str, Enum):
    """Status of a monthly rent tracking row."""

    PENDING = "PENDING"
    LATE = "LATE"
    REMINDER_SENT = "REMINDER_SENT"
    OVERDUE = "OVERDUE"
    CRITICAL = "CRITICAL"
    PAID = "PAID"
    MANUALLY_CONFIRMED = "MANUALLY_CONFIRMED"
    IGNORED = "IGNORED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES: frozenset[TrackingStatus] = frozenset(
    {TrackingStatus.PAID, TrackingStatus.MANUALLY_CONFIRMED, TrackingStatus.IGNORED}
)
OPEN_STATUSES: frozenset[TrackingStatus] = frozenset(TrackingStatus) - TERMINAL_STATUSES


class NotificationType(str, Enum):
    """In-app notification types emitted by the rent workflow."""

    RENT_LATE = "RENT_LATE"
    RENT_OVERDUE = "RENT_OVERDUE"
    RENT_CRITICAL = "RENT_CRITICAL"
    RENT_REMINDER = "RENT_REMINDER"


def _new_id() -> str:
    return str(uuid4())


@dataclass(frozen=True)
class RentPaymentTracking:
    """Expected vs. detected rent payment for one lease and one month."""

    lease_id: str
    period_month: int
    period_year: int
    expected_amount_cents: int
    expected_date: date
    id: str = field(default_factory=_new_id)
    status: TrackingStatus = TrackingStatus.PENDING
    detected_amount_cents: int | None = None
    detected_date: date | None = None
    transaction_id: str | None = None
    is_partial_payment: bool = False
    reminder_sent_at: datetime | None = None
    overdue_notified_at: datetime | None = None
    manually_confirmed_at: datetime | None = None
    ignore_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def period_key(self) -> tuple[str, int, int]:
        return (self.lease_id, self.period_month, self.period_year)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def days_late(self, today: date) -> int:
        """Whole days elapsed since the expected payment date."""
        return (today - self.expected_date).days

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""

        def _iso(value: date | datetime | None) -> str | None:
            return value.isoformat() if value else None

        return {
            "id": self.id,
            "lease_id": self.lease_id,
            "period_month": self.period_month,
            "period_year": self.period_year,
            "expected_amount_cents": self.expected_amount_cents,
            "expected_date": self.expected_date.isoformat(),
            "status": self.status.value,
            "detected_amount_cents": self.detected_amount_cents,
            "detected_date": _iso(self.detected_date),
            "transaction_id": self.transaction_id,
            "is_partial_payment": self.is_partial_payment,
            "reminder_sent_at": _iso(self.reminder_sent_at),
            "overdue_notified_at": _iso(self.overdue_notified_at),
            "manually_confirmed_at": _iso(self.manually_confirmed_at),
            "ignore_reason": self.ignore_reason,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RentPaymentTracking":
        """Build a tracking from the output of `to_dict`."""

        def _date(value: str | None) -> date | None:
            return date.fromisoformat(value) if value else None

        def _datetime(value: str | None) -> datetime | None:
            return datetime.fromisoformat(value) if value else None

        return cls(
            id=str(data["id"]),
            lease_id=str(data["lease_id"]),
            period_month=int(data["period_month"]),
            period_year=int(data["period_year"]),
            expected_amount_cents=int(data["expected_amount_cents"]),
            expected_date=date.fromisoformat(data["expected_date"]),
            status=TrackingStatus(data.get("status", TrackingStatus.PENDING.value)),
            detected_amount_cents=data.get("detected_amount_cents"),
            detected_date=_date(data.get("detected_date")),
            transaction_id=data.get("transaction_id"),
            is_partial_payment=bool(data.get("is_partial_payment", False)),
            reminder_sent_at=_datetime(data.get("reminder_sent_at")),
            overdue_notified_at=_datetime(data.get("overdue_notified_at")),
            manually_confirmed_at=_datetime(data.get("manually_confirmed_at")),
            ignore_reason=data.get("ignore_reason"),
            created_at=_datetime(data.get("created_at")),
            updated_at=_datetime(data.get("updated_at")),
        )


# =============================================================================
# COLLABORATORS
# =============================================================================


@dataclass(frozen=True)
class PropertyAddress:
    """Postal address of the leased property."""

    address_line1: str | None = None
    apartment: str | None = None
    building: str | None = None
    zip_code: str | None = None
    city: str | None = None
    address: str | None = None  # free-form fallback


@dataclass(frozen=True)
class LeaseFinancials:
    """One financial period of a lease (rent and charges in cents)."""

    base_rent_cents: int
    service_charges_cents: int
    start_date: date
    end_date: date | None = None

    @property
    def is_active(self) -> bool:
        return self.end_date is None

    @property
    def monthly_total_cents(self) -> int:
        return self.base_rent_cents + self.service_charges_cents


@dataclass(frozen=True)
class Lease:
    """A signed rental agreement, as seen by the rent workflow."""

    id: str
    listing_id: str
    landlord_id: str
    tenant_id: str
    financials: tuple[LeaseFinancials, ...] = ()
    landlord_email: str | None = None
    tenant_first_name: str | None = None
    rent_payment_day: int | None = None
    property_address: PropertyAddress = field(default_factory=PropertyAddress)

    @property
    def active_financials(self) -> LeaseFinancials | None:
        """The open-ended financial period, latest start first."""
        active = [f for f in self.financials if f.is_active]
        if not active:
            return None
        return max(active, key=lambda f: f.start_date)

    def is_owned_by(self, user_id: str) -> bool:
        return self.landlord_id == user_id


@dataclass(frozen=True)
class BankTransaction:
    """A bank transaction already linked to a lease by the ingestion pipeline."""

    id: str
    lease_id: str
    date: date
    amount: Decimal  # currency units, negative for debits

    @property
    def amount_cents(self) -> int:
        """Absolute amount in cents."""
        cents = (abs(self.amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return int(cents)


@dataclass
class Conversation:
    """Messaging thread between users about a listing."""

    id: str
    listing_id: str
    participant_ids: frozenset[str]
    last_message_at: datetime | None = None

    def is_between(self, *user_ids: str) -> bool:
        return bool(self.participant_ids) and self.participant_ids <= set(user_ids)


@dataclass(frozen=True)
class Message:
    """A message appended to a conversation."""

    conversation_id: str
    sender_id: str
    body: str
    created_at: datetime
    id: str = field(default_factory=_new_id)


@dataclass(frozen=True)
class Notification:
    """In-app notification payload."""

    user_id: str
    type: NotificationType
    title: str
    message: str
    link: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "link": self.link,
        }


@dataclass(frozen=True)
class Email:
    """Outgoing e-mail payload."""

    recipient: str
    subject: str
    html: str


# =============================================================================
# SWEEP SUMMARIES
# =============================================================================


@dataclass
class GenerationSummary:
    """Result of a monthly generation run."""

    created: int = 0
    skipped: int = 0
    errors: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"created": self.created, "skipped": self.skipped, "errors": self.errors}


@dataclass
class PaymentCheckSummary:
    """Result of a payment matching sweep."""

    checked: int = 0
    matched: int = 0
    partial: int = 0
    errors: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "checked": self.checked,
            "matched": self.matched,
            "partial": self.partial,
            "errors": self.errors,
        }


@dataclass
class ReminderSummary:
    """Result of an escalation sweep."""

    late_notified: int = 0
    emails_sent: int = 0
    overdue_notified: int = 0
    critical_notified: int = 0
    errors: int = 0
    delivery_failures: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "late_notified": self.late_notified,
            "emails_sent": self.emails_sent,
            "overdue_notified": self.overdue_notified,
            "critical_notified": self.critical_notified,
            "errors": self.errors,
            "delivery_failures": self.delivery_failures,
        }


@dataclass(frozen=True)
class LandlordSummary:
    """Recovery overview for one landlord."""

    current_month_late: int
    total_tracked: int
    total_paid: int
    recovery_rate: int

    def to_dict(self) -> dict[str, int]:
        return {
            "current_month_late": self.current_month_late,
            "total_tracked": self.total_tracked,
            "total_paid": self.total_paid,
            "recovery_rate": self.recovery_rate,
        }
