"""Landlord-triggered operations on a single tracking row.

Each operation checks, in order: the row exists, the caller owns the lease's
property, the operation's own preconditions, and that the row is not already
resolved. Nothing is written unless every check passes.
"""

import structlog

from rent_collection import templates
from rent_collection.clock import Clock, SystemClock
from rent_collection.collaborators import ConversationRepository, LeaseRepository
from rent_collection.delivery import NotificationSink
from rent_collection.errors import (
    AuthorizationError,
    ConversationNotFoundError,
    LeaseNotFoundError,
    MissingReasonError,
    TerminalTrackingError,
    TrackingNotFoundError,
)
from rent_collection.models import (
    OPEN_STATUSES,
    Lease,
    RentPaymentTracking,
    TrackingStatus,
)
from rent_collection.store import TrackingStore

logger = structlog.get_logger(__name__)


class ManualOverrides:
    """Confirm, remind or ignore a month on behalf of the landlord."""

    def __init__(
        self,
        store: TrackingStore,
        leases: LeaseRepository,
        conversations: ConversationRepository,
        notifications: NotificationSink,
        clock: Clock | None = None,
    ):
        self._store = store
        self._leases = leases
        self._conversations = conversations
        self._notifications = notifications
        self._clock = clock or SystemClock()
        self._logger = logger.bind(component="manual_overrides")

    def _load_owned(self, tracking_id: str, user_id: str) -> tuple[RentPaymentTracking, Lease]:
        tracking = self._store.get(tracking_id)
        if tracking is None:
            raise TrackingNotFoundError(tracking_id)
        lease = self._leases.get(tracking.lease_id)
        if lease is None:
            raise LeaseNotFoundError(tracking.lease_id)
        if not lease.is_owned_by(user_id):
            self._logger.warning(
                "override_unauthorized", tracking_id=tracking_id, user_id=user_id
            )
            raise AuthorizationError(user_id, lease.id)
        return tracking, lease

    @staticmethod
    def _ensure_open(tracking: RentPaymentTracking) -> None:
        if tracking.is_terminal:
            raise TerminalTrackingError(tracking.id, tracking.status.value)

    def _write(self, tracking: RentPaymentTracking, **changes: object) -> RentPaymentTracking:
        updated = self._store.update(tracking.id, expected_statuses=OPEN_STATUSES, **changes)
        if updated is None:
            # Resolved by a concurrent sweep between our read and write
            current = self._store.get(tracking.id) or tracking
            raise TerminalTrackingError(tracking.id, current.status.value)
        return updated

    async def mark_as_paid(self, tracking_id: str, user_id: str) -> RentPaymentTracking:
        """Landlord attests the rent was received; no amount is recorded."""
        tracking, _ = self._load_owned(tracking_id, user_id)
        self._ensure_open(tracking)

        updated = self._write(
            tracking,
            status=TrackingStatus.MANUALLY_CONFIRMED,
            manually_confirmed_at=self._clock.now(),
        )
        self._logger.info("tracking_manually_confirmed", tracking_id=tracking_id)
        return updated

    async def send_friendly_reminder(
        self, tracking_id: str, user_id: str
    ) -> RentPaymentTracking:
        """Post a reminder in the lease conversation and notify the tenant."""
        tracking, lease = self._load_owned(tracking_id, user_id)
        self._ensure_open(tracking)

        conversation = self._conversations.find_between(
            lease.listing_id, lease.landlord_id, lease.tenant_id
        )
        if conversation is None:
            raise ConversationNotFoundError(lease.listing_id)

        now = self._clock.now()
        updated = self._write(
            tracking,
            status=TrackingStatus.REMINDER_SENT,
            reminder_sent_at=now,
        )
        # Only a row that is still open gets a message
        self._conversations.append_message(
            conversation,
            sender_id=lease.landlord_id,
            body=templates.friendly_reminder_message(tracking, lease),
            sent_at=now,
        )
        self._logger.info(
            "friendly_reminder_sent",
            tracking_id=tracking_id,
            conversation_id=conversation.id,
        )

        notification = templates.tenant_reminder_notification(tracking, lease)
        try:
            await self._notifications.notify(notification)
        except Exception as e:
            self._logger.warning(
                "notification_delivery_failed",
                user_id=notification.user_id,
                type=notification.type.value,
                error=str(e),
            )
        return updated

    async def ignore_month(
        self, tracking_id: str, user_id: str, reason: str
    ) -> RentPaymentTracking:
        """Stop all follow-up for this month, keeping the landlord's reason."""
        tracking, _ = self._load_owned(tracking_id, user_id)
        if not reason or not reason.strip():
            raise MissingReasonError()
        self._ensure_open(tracking)

        updated = self._write(
            tracking,
            status=TrackingStatus.IGNORED,
            ignore_reason=reason.strip(),
        )
        self._logger.info("tracking_ignored", tracking_id=tracking_id)
        return updated
