"""JSON snapshot loading/saving for running the jobs from the command line."""

import json
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from rent_collection.clock import Clock
from rent_collection.collaborators import (
    InMemoryConversationRepository,
    InMemoryLeaseRepository,
    InMemoryTransactionRepository,
)
from rent_collection.models import (
    BankTransaction,
    Conversation,
    Lease,
    LeaseFinancials,
    PropertyAddress,
    RentPaymentTracking,
)
from rent_collection.store import InMemoryTrackingStore


class SnapshotError(ValueError):
    """The snapshot file is missing or malformed."""

    pass


@dataclass
class Snapshot:
    store: InMemoryTrackingStore
    leases: InMemoryLeaseRepository
    transactions: InMemoryTransactionRepository
    conversations: InMemoryConversationRepository
    raw: dict[str, Any]


def _parse_date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


def _parse_lease(data: dict[str, Any]) -> Lease:
    financials = tuple(
        LeaseFinancials(
            base_rent_cents=int(f["base_rent_cents"]),
            service_charges_cents=int(f.get("service_charges_cents", 0)),
            start_date=date.fromisoformat(f["start_date"]),
            end_date=_parse_date(f.get("end_date")),
        )
        for f in data.get("financials", [])
    )
    return Lease(
        id=str(data["id"]),
        listing_id=str(data["listing_id"]),
        landlord_id=str(data["landlord_id"]),
        tenant_id=str(data["tenant_id"]),
        financials=financials,
        landlord_email=data.get("landlord_email"),
        tenant_first_name=data.get("tenant_first_name"),
        rent_payment_day=data.get("rent_payment_day"),
        property_address=PropertyAddress(**data.get("property", {})),
    )


def _parse_transaction(data: dict[str, Any]) -> BankTransaction:
    try:
        amount = Decimal(str(data["amount"]))
    except InvalidOperation as exc:
        raise SnapshotError(f"Invalid amount for transaction {data.get('id')!r}") from exc
    return BankTransaction(
        id=str(data["id"]),
        lease_id=str(data["lease_id"]),
        date=date.fromisoformat(data["date"]),
        amount=amount,
    )


def _parse_conversation(data: dict[str, Any]) -> Conversation:
    last = data.get("last_message_at")
    return Conversation(
        id=str(data["id"]),
        listing_id=str(data["listing_id"]),
        participant_ids=frozenset(str(p) for p in data.get("participant_ids", [])),
        last_message_at=datetime.fromisoformat(last) if last else None,
    )


def load_snapshot(path: Path, clock: Clock | None = None) -> Snapshot:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise SnapshotError(f"Cannot read snapshot {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise SnapshotError(f"Snapshot {path} must contain a JSON object")

    try:
        return Snapshot(
            store=InMemoryTrackingStore(
                (RentPaymentTracking.from_dict(t) for t in raw.get("trackings", [])),
                clock=clock,
            ),
            leases=InMemoryLeaseRepository(_parse_lease(x) for x in raw.get("leases", [])),
            transactions=InMemoryTransactionRepository(
                _parse_transaction(x) for x in raw.get("transactions", [])
            ),
            conversations=InMemoryConversationRepository(
                _parse_conversation(x) for x in raw.get("conversations", [])
            ),
            raw=raw,
        )
    except SnapshotError:
        raise
    except (KeyError, TypeError, ValueError) as exc:
        raise SnapshotError(f"Malformed snapshot {path}: {exc}") from exc


def save_snapshot(path: Path, snapshot: Snapshot) -> None:
    """Write trackings, conversations and new messages back to the file."""
    data = dict(snapshot.raw)
    data["trackings"] = [
        t.to_dict()
        for t in sorted(
            snapshot.store.all(), key=lambda t: (t.lease_id, t.period_year, t.period_month)
        )
    ]
    data["conversations"] = [
        {
            "id": c.id,
            "listing_id": c.listing_id,
            "participant_ids": sorted(c.participant_ids),
            "last_message_at": c.last_message_at.isoformat() if c.last_message_at else None,
        }
        for c in snapshot.conversations.all()
    ]
    data["messages"] = list(data.get("messages", [])) + [
        {
            "id": m.id,
            "conversation_id": m.conversation_id,
            "sender_id": m.sender_id,
            "body": m.body,
            "created_at": m.created_at.isoformat(),
        }
        for m in snapshot.conversations.messages
    ]
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
