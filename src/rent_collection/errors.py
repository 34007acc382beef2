"""Exception hierarchy for rent collection tracking."""

from typing import Any


class RentCollectionError(Exception):
    """Base exception for rent collection errors."""

    pass


class AuthorizationError(RentCollectionError):
    """The caller is not the landlord of the lease's property."""

    def __init__(self, user_id: str, lease_id: str):
        super().__init__(f"User {user_id} is not the landlord of lease {lease_id}")
        self.user_id = user_id
        self.lease_id = lease_id


class PreconditionError(RentCollectionError):
    """A manual operation was refused before any mutation happened."""

    pass


class TrackingNotFoundError(PreconditionError):
    """No tracking row exists for the given id."""

    def __init__(self, tracking_id: str):
        super().__init__(f"Rent payment tracking {tracking_id} not found")
        self.tracking_id = tracking_id


class LeaseNotFoundError(PreconditionError):
    """No lease exists for the given id."""

    def __init__(self, lease_id: str):
        super().__init__(f"Lease {lease_id} not found")
        self.lease_id = lease_id


class MissingReasonError(PreconditionError):
    """Ignoring a month requires a non-empty reason."""

    def __init__(self) -> None:
        super().__init__("A reason is required to ignore a month")


class ConversationNotFoundError(PreconditionError):
    """No conversation links landlord and tenant on the lease's listing."""

    def __init__(self, listing_id: str):
        super().__init__(
            f"No conversation between landlord and tenant for listing {listing_id}"
        )
        self.listing_id = listing_id


class TerminalTrackingError(PreconditionError):
    """The tracking is already resolved and can no longer be changed."""

    def __init__(self, tracking_id: str, status: str):
        super().__init__(f"Tracking {tracking_id} is already {status}")
        self.tracking_id = tracking_id
        self.status = status


class DeliveryError(RentCollectionError):
    """A notification or e-mail could not be delivered."""

    def __init__(self, message: str, status_code: int | None = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details
