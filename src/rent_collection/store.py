"""Tracking store: persistence boundary for `RentPaymentTracking` rows.

Every mutation is a guarded compare-and-set: the caller names the statuses the
row must currently be in, and optionally fields that must still be unset. A
refused guard returns None and leaves the row untouched, which keeps sweeps
idempotent and lets manual operations race automatic ones safely.
"""

import threading
from collections.abc import Collection, Iterable
from dataclasses import replace
from datetime import date
from typing import Any, Protocol

import structlog

from rent_collection.clock import Clock, SystemClock
from rent_collection.errors import TrackingNotFoundError
from rent_collection.models import RentPaymentTracking, TrackingStatus

logger = structlog.get_logger(__name__)


class TrackingStore(Protocol):
    """Persistence operations needed by the rent workflow."""

    def create_if_absent(
        self, tracking: RentPaymentTracking
    ) -> tuple[RentPaymentTracking, bool]: ...

    def get(self, tracking_id: str) -> RentPaymentTracking | None: ...

    def find_by_status(
        self,
        statuses: Collection[TrackingStatus],
        expected_before: date | None = None,
    ) -> list[RentPaymentTracking]: ...

    def list_for_leases(self, lease_ids: Collection[str]) -> list[RentPaymentTracking]: ...

    def update(
        self,
        tracking_id: str,
        *,
        expected_statuses: Collection[TrackingStatus],
        unset_fields: Iterable[str] = (),
        **changes: Any,
    ) -> RentPaymentTracking | None: ...


class InMemoryTrackingStore:
    """Process-local store; the unique key is (lease, month, year)."""

    def __init__(
        self, trackings: Iterable[RentPaymentTracking] = (), clock: Clock | None = None
    ):
        self._clock = clock or SystemClock()
        self._lock = threading.Lock()
        self._by_id: dict[str, RentPaymentTracking] = {}
        self._by_period: dict[tuple[str, int, int], str] = {}
        for tracking in trackings:
            self._insert(tracking)

    def _insert(self, tracking: RentPaymentTracking) -> None:
        if tracking.period_key in self._by_period:
            raise ValueError(
                f"Duplicate tracking for lease {tracking.lease_id} "
                f"{tracking.period_month}/{tracking.period_year}"
            )
        self._by_id[tracking.id] = tracking
        self._by_period[tracking.period_key] = tracking.id

    def __len__(self) -> int:
        return len(self._by_id)

    def all(self) -> list[RentPaymentTracking]:
        with self._lock:
            return list(self._by_id.values())

    def create_if_absent(
        self, tracking: RentPaymentTracking
    ) -> tuple[RentPaymentTracking, bool]:
        """Insert the row unless its period already exists.

        Returns:
            The stored row and whether it was created by this call.
        """
        with self._lock:
            existing_id = self._by_period.get(tracking.period_key)
            if existing_id is not None:
                return self._by_id[existing_id], False
            now = self._clock.now()
            stored = replace(tracking, created_at=tracking.created_at or now, updated_at=now)
            self._insert(stored)
            return stored, True

    def get(self, tracking_id: str) -> RentPaymentTracking | None:
        with self._lock:
            return self._by_id.get(tracking_id)

    def get_for_period(self, lease_id: str, month: int, year: int) -> RentPaymentTracking | None:
        with self._lock:
            tracking_id = self._by_period.get((lease_id, month, year))
            return self._by_id.get(tracking_id) if tracking_id else None

    def find_by_status(
        self,
        statuses: Collection[TrackingStatus],
        expected_before: date | None = None,
    ) -> list[RentPaymentTracking]:
        with self._lock:
            return [
                t
                for t in self._by_id.values()
                if t.status in statuses
                and (expected_before is None or t.expected_date < expected_before)
            ]

    def list_for_leases(self, lease_ids: Collection[str]) -> list[RentPaymentTracking]:
        with self._lock:
            return [t for t in self._by_id.values() if t.lease_id in lease_ids]

    def update(
        self,
        tracking_id: str,
        *,
        expected_statuses: Collection[TrackingStatus],
        unset_fields: Iterable[str] = (),
        **changes: Any,
    ) -> RentPaymentTracking | None:
        """Apply `changes` if the row still satisfies the guard.

        Raises:
            TrackingNotFoundError: If no row has this id.
        """
        with self._lock:
            current = self._by_id.get(tracking_id)
            if current is None:
                raise TrackingNotFoundError(tracking_id)
            if current.status not in expected_statuses:
                logger.debug(
                    "tracking_update_refused",
                    tracking_id=tracking_id,
                    status=current.status.value,
                )
                return None
            if any(getattr(current, name) is not None for name in unset_fields):
                logger.debug(
                    "tracking_update_refused",
                    tracking_id=tracking_id,
                    already_set=list(unset_fields),
                )
                return None
            updated = replace(current, updated_at=self._clock.now(), **changes)
            self._by_id[tracking_id] = updated
            return updated
