"""
Domain events recorded by the Transaction aggregate.

Each event is an immutable snapshot of the transaction right after the change,
plus the previous value of whichever field changed when a subscriber needs it
to compute a balance delta without re-reading the transaction.
"""
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, List, Optional, Type

from pocket_ledger.domain.enums import TransactionDirection
from pocket_ledger.domain.money import Money


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    """Base for everything that can be published on the event bus"""
    event_name: ClassVar[str] = "ledger.event"

    aggregate_id: str
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    occurred_on: datetime = field(default_factory=utc_now)

    def attributes(self) -> Dict[str, Any]:
        return {}

    def to_primitives(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_name": self.event_name,
            "aggregate_id": self.aggregate_id,
            "occurred_on": self.occurred_on.isoformat(),
            "attributes": self.attributes(),
        }


@dataclass(frozen=True, kw_only=True)
class TransactionEvent(DomainEvent):
    """Snapshot of a transaction's state carried by every transaction event"""
    user_id: str
    account_id: str
    category_id: Optional[str]
    amount: Money
    direction: TransactionDirection
    description: str
    date: datetime
    notes: Optional[str] = None

    @property
    def transaction_id(self) -> str:
        return self.aggregate_id

    def attributes(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "account_id": self.account_id,
            "category_id": self.category_id,
            "amount": self.amount.to_primitives(),
            "direction": self.direction.value,
            "description": self.description,
            "date": self.date.isoformat(),
            "notes": self.notes,
        }


@dataclass(frozen=True, kw_only=True)
class TransactionCreated(TransactionEvent):
    event_name: ClassVar[str] = "ledger.transaction.created"


@dataclass(frozen=True, kw_only=True)
class TransactionAmountUpdated(TransactionEvent):
    event_name: ClassVar[str] = "ledger.transaction.amount.updated"

    previous_amount: Money

    def attributes(self) -> Dict[str, Any]:
        return {**super().attributes(), "previous_amount": self.previous_amount.to_primitives()}


@dataclass(frozen=True, kw_only=True)
class TransactionDirectionUpdated(TransactionEvent):
    event_name: ClassVar[str] = "ledger.transaction.direction.updated"

    previous_direction: TransactionDirection

    def attributes(self) -> Dict[str, Any]:
        return {**super().attributes(), "previous_direction": self.previous_direction.value}


@dataclass(frozen=True, kw_only=True)
class TransactionCategoryUpdated(TransactionEvent):
    event_name: ClassVar[str] = "ledger.transaction.category.updated"

    previous_category_id: Optional[str] = None

    def attributes(self) -> Dict[str, Any]:
        return {**super().attributes(), "previous_category_id": self.previous_category_id}


@dataclass(frozen=True, kw_only=True)
class TransactionDescriptionUpdated(TransactionEvent):
    event_name: ClassVar[str] = "ledger.transaction.description.updated"


@dataclass(frozen=True, kw_only=True)
class TransactionDateUpdated(TransactionEvent):
    event_name: ClassVar[str] = "ledger.transaction.date.updated"


@dataclass(frozen=True, kw_only=True)
class TransactionNotesUpdated(TransactionEvent):
    event_name: ClassVar[str] = "ledger.transaction.notes.updated"


@dataclass(frozen=True, kw_only=True)
class TransactionDeleted(TransactionEvent):
    event_name: ClassVar[str] = "ledger.transaction.deleted"


class DomainEventSubscriber(ABC):
    """
    A reaction to one or more event types.

    Subscribers declare their interest through subscribed_to(); the bus reads
    it once when it builds its routing index.
    """

    @abstractmethod
    def subscribed_to(self) -> List[Type[DomainEvent]]:
        pass

    @abstractmethod
    async def on(self, event: DomainEvent) -> None:
        pass

    def __repr__(self):
        return f"{self.__class__.__name__}()"
