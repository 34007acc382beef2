"""Payment matcher: reconcile open trackings against linked bank transactions."""

import calendar
from datetime import date
from decimal import Decimal
from enum import Enum

import structlog

from rent_collection.collaborators import TransactionRepository
from rent_collection.models import (
    BankTransaction,
    PaymentCheckSummary,
    RentPaymentTracking,
    TrackingStatus,
)
from rent_collection.store import TrackingStore

logger = structlog.get_logger(__name__)

# Tolerance around the expected amount
FULL_LOWER_RATIO = Decimal("0.95")
FULL_UPPER_RATIO = Decimal("1.05")
# Extra headroom on the full-payment ceiling (1.05 * 1.1 = 115.5% of expected)
FULL_UPPER_MARGIN = Decimal("1.1")
PARTIAL_LOWER_RATIO = Decimal("0.5")

# OVERDUE and CRITICAL rows are left out of the sweep
MATCHABLE_STATUSES: frozenset[TrackingStatus] = frozenset(
    {TrackingStatus.PENDING, TrackingStatus.LATE, TrackingStatus.REMINDER_SENT}
)


class PaymentClassification(str, Enum):
    FULL = "full"
    PARTIAL = "partial"
    UNRESOLVED = "unresolved"


def classify_payment(total_paid_cents: int, expected_amount_cents: int) -> PaymentClassification:
    """Classify a detected total against the expected rent."""
    expected = Decimal(expected_amount_cents)
    total = Decimal(total_paid_cents)
    lower = expected * FULL_LOWER_RATIO
    upper = expected * FULL_UPPER_RATIO

    if lower <= total <= upper * FULL_UPPER_MARGIN:
        return PaymentClassification.FULL
    if expected * PARTIAL_LOWER_RATIO <= total < lower:
        return PaymentClassification.PARTIAL
    return PaymentClassification.UNRESOLVED


def period_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of the given month."""
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


class PaymentMatcher:
    """Resolves trackings to PAID when the period's transactions cover the rent."""

    def __init__(self, store: TrackingStore, transactions: TransactionRepository):
        self._store = store
        self._transactions = transactions
        self._logger = logger.bind(component="payment_matcher")

    def check_payments(self) -> PaymentCheckSummary:
        summary = PaymentCheckSummary()

        for tracking in self._store.find_by_status(MATCHABLE_STATUSES):
            summary.checked += 1
            try:
                classification = self._check_tracking(tracking)
            except Exception as e:
                summary.errors += 1
                self._logger.error(
                    "payment_check_failed",
                    tracking_id=tracking.id,
                    error=str(e),
                    exc_info=True,
                )
                continue

            if classification is None:
                continue
            summary.matched += 1
            if classification == PaymentClassification.PARTIAL:
                summary.partial += 1

        self._logger.info("payments_checked", **summary.to_dict())
        return summary

    def _check_tracking(self, tracking: RentPaymentTracking) -> PaymentClassification | None:
        start, end = period_bounds(tracking.period_year, tracking.period_month)
        matched_txs = self._transactions.list_for_lease(tracking.lease_id, start, end)
        if not matched_txs:
            return None

        total_paid_cents = sum(tx.amount_cents for tx in matched_txs)
        classification = classify_payment(total_paid_cents, tracking.expected_amount_cents)
        if classification == PaymentClassification.UNRESOLVED:
            self._logger.debug(
                "payment_below_tolerance",
                tracking_id=tracking.id,
                total_paid_cents=total_paid_cents,
                expected_amount_cents=tracking.expected_amount_cents,
            )
            return None

        first_tx = _first_transaction(matched_txs)
        is_partial = classification == PaymentClassification.PARTIAL
        updated = self._store.update(
            tracking.id,
            expected_statuses=MATCHABLE_STATUSES,
            status=TrackingStatus.PAID,
            detected_amount_cents=total_paid_cents,
            detected_date=first_tx.date,
            transaction_id=first_tx.id,
            is_partial_payment=is_partial,
        )
        if updated is None:
            return None

        self._logger.info(
            "payment_matched",
            tracking_id=tracking.id,
            lease_id=tracking.lease_id,
            detected_amount_cents=total_paid_cents,
            partial=is_partial,
        )
        return classification


def _first_transaction(transactions: list[BankTransaction]) -> BankTransaction:
    return min(transactions, key=lambda tx: (tx.date, tx.id))
