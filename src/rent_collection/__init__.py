"""Rent collection - monthly rent tracking, reconciliation and follow-up."""

__version__ = "0.1.0"

from rent_collection.clock import Clock, FixedClock, SystemClock
from rent_collection.config import configure_logging, get_settings
from rent_collection.errors import (
    AuthorizationError,
    ConversationNotFoundError,
    DeliveryError,
    LeaseNotFoundError,
    MissingReasonError,
    PreconditionError,
    RentCollectionError,
    TerminalTrackingError,
    TrackingNotFoundError,
)
from rent_collection.escalation import EscalationDriver
from rent_collection.generator import MonthlyTrackingGenerator
from rent_collection.matcher import PaymentClassification, PaymentMatcher, classify_payment
from rent_collection.models import (
    BankTransaction,
    Conversation,
    Lease,
    LeaseFinancials,
    RentPaymentTracking,
    TrackingStatus,
)
from rent_collection.overrides import ManualOverrides
from rent_collection.service import DailyRunResult, RentCollectionService
from rent_collection.store import InMemoryTrackingStore, TrackingStore

__all__ = [
    # Version
    "__version__",
    # Models
    "RentPaymentTracking",
    "TrackingStatus",
    "Lease",
    "LeaseFinancials",
    "BankTransaction",
    "Conversation",
    # Components
    "MonthlyTrackingGenerator",
    "PaymentMatcher",
    "PaymentClassification",
    "classify_payment",
    "EscalationDriver",
    "ManualOverrides",
    "RentCollectionService",
    "DailyRunResult",
    # Storage & time
    "TrackingStore",
    "InMemoryTrackingStore",
    "Clock",
    "SystemClock",
    "FixedClock",
    # Errors
    "RentCollectionError",
    "AuthorizationError",
    "PreconditionError",
    "TrackingNotFoundError",
    "LeaseNotFoundError",
    "MissingReasonError",
    "ConversationNotFoundError",
    "TerminalTrackingError",
    "DeliveryError",
    # Config
    "get_settings",
    "configure_logging",
]
