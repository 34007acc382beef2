"""Read-side collaborators: leases, bank transactions and conversations.

These are owned by other subsystems. The workflow only depends on the
protocols below; in-memory implementations back the CLI snapshot and tests.
"""

from collections import defaultdict
from collections.abc import Iterable
from datetime import date, datetime
from typing import Protocol

from rent_collection.models import BankTransaction, Conversation, Lease, Message


class LeaseRepository(Protocol):
    def list_active(self) -> list[Lease]: ...

    def get(self, lease_id: str) -> Lease | None: ...

    def list_for_landlord(self, landlord_id: str) -> list[Lease]: ...


class TransactionRepository(Protocol):
    def list_for_lease(
        self, lease_id: str, start: date, end: date
    ) -> list[BankTransaction]: ...


class ConversationRepository(Protocol):
    def find_between(
        self, listing_id: str, landlord_id: str, tenant_id: str
    ) -> Conversation | None: ...

    def append_message(
        self, conversation: Conversation, sender_id: str, body: str, sent_at: datetime
    ) -> Message: ...


class InMemoryLeaseRepository:
    """Leases held in a dict; every stored lease counts as signed."""

    def __init__(self, leases: Iterable[Lease] = ()):
        self._leases: dict[str, Lease] = {lease.id: lease for lease in leases}

    def add(self, lease: Lease) -> None:
        self._leases[lease.id] = lease

    def list_active(self) -> list[Lease]:
        return list(self._leases.values())

    def get(self, lease_id: str) -> Lease | None:
        return self._leases.get(lease_id)

    def list_for_landlord(self, landlord_id: str) -> list[Lease]:
        return [lease for lease in self._leases.values() if lease.is_owned_by(landlord_id)]


class InMemoryTransactionRepository:
    def __init__(self, transactions: Iterable[BankTransaction] = ()):
        self._by_lease: dict[str, list[BankTransaction]] = defaultdict(list)
        for tx in transactions:
            self.add(tx)

    def add(self, transaction: BankTransaction) -> None:
        self._by_lease[transaction.lease_id].append(transaction)

    def all(self) -> list[BankTransaction]:
        return [tx for txs in self._by_lease.values() for tx in txs]

    def list_for_lease(self, lease_id: str, start: date, end: date) -> list[BankTransaction]:
        """Transactions of the lease dated within [start, end], inclusive."""
        return [tx for tx in self._by_lease.get(lease_id, []) if start <= tx.date <= end]


class InMemoryConversationRepository:
    def __init__(self, conversations: Iterable[Conversation] = ()):
        self._conversations: dict[str, Conversation] = {c.id: c for c in conversations}
        self.messages: list[Message] = []

    def add(self, conversation: Conversation) -> None:
        self._conversations[conversation.id] = conversation

    def all(self) -> list[Conversation]:
        return list(self._conversations.values())

    def find_between(
        self, listing_id: str, landlord_id: str, tenant_id: str
    ) -> Conversation | None:
        for conversation in self._conversations.values():
            if conversation.listing_id == listing_id and conversation.is_between(
                landlord_id, tenant_id
            ):
                return conversation
        return None

    def append_message(
        self, conversation: Conversation, sender_id: str, body: str, sent_at: datetime
    ) -> Message:
        message = Message(
            conversation_id=conversation.id,
            sender_id=sender_id,
            body=body,
            created_at=sent_at,
        )
        self.messages.append(message)
        conversation.last_message_at = sent_at
        return message
