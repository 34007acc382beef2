"""Pytest configuration and fixtures."""

import os
from datetime import date
from unittest.mock import AsyncMock

import pytest

# Set test environment variables before importing settings
os.environ.setdefault("APP_URL", "https://app.example.com")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from rent_collection.clock import FixedClock  # noqa: E402
from rent_collection.collaborators import (  # noqa: E402
    InMemoryConversationRepository,
    InMemoryLeaseRepository,
    InMemoryTransactionRepository,
)
from rent_collection.models import (  # noqa: E402
    Conversation,
    Lease,
    LeaseFinancials,
    PropertyAddress,
    RentPaymentTracking,
    TrackingStatus,
)
from rent_collection.store import InMemoryTrackingStore  # noqa: E402

LANDLORD_ID = "landlord-1"
TENANT_ID = "tenant-1"
LISTING_ID = "listing-1"
LEASE_ID = "lease-1"


def make_lease(
    lease_id: str = LEASE_ID,
    base_rent_cents: int = 100000,
    service_charges_cents: int = 5000,
    start_date: date = date(2024, 6, 1),
    rent_payment_day: int | None = 5,
    landlord_id: str = LANDLORD_ID,
    landlord_email: str | None = "landlord@example.com",
    **kwargs,
) -> Lease:
    return Lease(
        id=lease_id,
        listing_id=kwargs.pop("listing_id", LISTING_ID),
        landlord_id=landlord_id,
        tenant_id=kwargs.pop("tenant_id", TENANT_ID),
        financials=kwargs.pop(
            "financials",
            (
                LeaseFinancials(
                    base_rent_cents=base_rent_cents,
                    service_charges_cents=service_charges_cents,
                    start_date=start_date,
                ),
            ),
        ),
        landlord_email=landlord_email,
        tenant_first_name=kwargs.pop("tenant_first_name", "Alice"),
        rent_payment_day=rent_payment_day,
        property_address=kwargs.pop(
            "property_address",
            PropertyAddress(address_line1="12 rue des Lilas", zip_code="75011", city="Paris"),
        ),
    )


def make_tracking(
    lease_id: str = LEASE_ID,
    period_month: int = 1,
    period_year: int = 2025,
    expected_amount_cents: int = 105000,
    expected_date: date = date(2025, 1, 5),
    status: TrackingStatus = TrackingStatus.PENDING,
    **kwargs,
) -> RentPaymentTracking:
    return RentPaymentTracking(
        lease_id=lease_id,
        period_month=period_month,
        period_year=period_year,
        expected_amount_cents=expected_amount_cents,
        expected_date=expected_date,
        status=status,
        **kwargs,
    )


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Make each test see the environment as it is now."""
    from rent_collection.config.settings import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def clock():
    return FixedClock(date(2025, 1, 11))


@pytest.fixture
def store(clock):
    return InMemoryTrackingStore(clock=clock)


@pytest.fixture
def lease():
    return make_lease()


@pytest.fixture
def leases(lease):
    return InMemoryLeaseRepository([lease])


@pytest.fixture
def transactions():
    return InMemoryTransactionRepository()


@pytest.fixture
def conversation():
    return Conversation(
        id="conv-1",
        listing_id=LISTING_ID,
        participant_ids=frozenset({LANDLORD_ID, TENANT_ID}),
    )


@pytest.fixture
def conversations(conversation):
    return InMemoryConversationRepository([conversation])


@pytest.fixture
def notifications():
    """Mock notification sink."""
    sink = AsyncMock()
    sink.notify = AsyncMock()
    return sink


@pytest.fixture
def emails():
    """Mock e-mail sender."""
    sender = AsyncMock()
    sender.send = AsyncMock()
    return sender
