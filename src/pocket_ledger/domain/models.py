import re
import uuid
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pocket_ledger.domain.enums import TransactionDirection
from pocket_ledger.domain.errors import InvalidArgumentError
from pocket_ledger.domain.events import (
    DomainEvent,
    TransactionAmountUpdated,
    TransactionCategoryUpdated,
    TransactionCreated,
    TransactionDateUpdated,
    TransactionDeleted,
    TransactionDescriptionUpdated,
    TransactionDirectionUpdated,
    TransactionNotesUpdated,
    utc_now,
)
from pocket_ledger.domain.money import Money

MAX_ACCOUNT_NAME_LENGTH = 100
MAX_CATEGORY_NAME_LENGTH = 50
MAX_DESCRIPTION_LENGTH = 200
MAX_PERSON_NAME_LENGTH = 100

# letters (accented included), spaces, hyphens and apostrophes
PERSON_NAME = re.compile(r"^[a-zA-ZÀ-ÿ\s'-]+$")


def new_id() -> str:
    return str(uuid.uuid4())


def ensure_uuid(value: Any, label: str = "id") -> str:
    """Validate a UUID string, returning it unchanged"""
    try:
        uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        raise InvalidArgumentError(f"Invalid UUID format for {label}: {value!r}") from None
    return str(value)


def ensure_text(value: Any, label: str, max_length: int) -> str:
    """Validate a required, bounded text field and return it trimmed"""
    if not isinstance(value, str) or value.strip() == "":
        raise InvalidArgumentError(f"{label} cannot be empty")
    if len(value.strip()) > max_length:
        raise InvalidArgumentError(f"{label} is too long (max {max_length} characters)")
    return value.strip()


def parse_datetime(value: Any, label: str = "date") -> datetime:
    """
    Parse an ISO-8601 string or datetime into an aware UTC datetime.

    Naive values are taken to be UTC already.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise InvalidArgumentError(f"Invalid ISO-8601 {label}: {value!r}") from None
    else:
        raise InvalidArgumentError(f"Invalid {label}: {value!r}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def ensure_not_in_future(value: datetime) -> datetime:
    if value > utc_now():
        raise InvalidArgumentError("Transaction date cannot be in the future")
    return value


@dataclass(eq=False, kw_only=True)
class AggregateRoot:
    """Keeps the domain events an aggregate recorded until they are pulled"""
    _domain_events: List[DomainEvent] = field(
        default_factory=list, init=False, repr=False
    )

    def record(self, event: DomainEvent) -> None:
        self._domain_events.append(event)

    def pull_domain_events(self) -> List[DomainEvent]:
        """Return the queued events and clear the queue (read-once)"""
        events = self._domain_events
        self._domain_events = []
        return events


def ensure_person_name(value: Any, label: str) -> str:
    name = ensure_text(value, label, MAX_PERSON_NAME_LENGTH)
    if not PERSON_NAME.match(name):
        raise InvalidArgumentError(f"{label} contains invalid characters")
    return name


@dataclass(eq=False, kw_only=True)
class User(AggregateRoot):
    """The owner of accounts, categories and transactions"""
    id: str
    first_name: str
    last_name: str
    created_at: datetime
    updated_at: datetime

    def __post_init__(self):
        self.id = ensure_uuid(self.id, "user id")
        self.first_name = ensure_person_name(self.first_name, "First name")
        self.last_name = ensure_person_name(self.last_name, "Last name")

    @classmethod
    def create(cls, id: str, first_name: str, last_name: str) -> "User":
        now = utc_now()
        return cls(id=id, first_name=first_name, last_name=last_name, created_at=now, updated_at=now)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def update(self, first_name: Optional[str] = None, last_name: Optional[str] = None) -> None:
        """Change whichever names are given; None or empty leaves a name as is"""
        if first_name:
            self.first_name = ensure_person_name(first_name, "First name")
            self.updated_at = utc_now()
        if last_name:
            self.last_name = ensure_person_name(last_name, "Last name")
            self.updated_at = utc_now()

    def to_primitives(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_primitives(cls, primitives: Dict[str, Any]) -> "User":
        return cls(
            id=primitives["id"],
            first_name=primitives["first_name"],
            last_name=primitives["last_name"],
            created_at=parse_datetime(primitives["created_at"], "created_at"),
            updated_at=parse_datetime(primitives["updated_at"], "updated_at"),
        )

    def __repr__(self):
        return f"User({self.full_name})"


@dataclass(eq=False, kw_only=True)
class Account(AggregateRoot):
    """
    A monetary account owned by a user.

    current_balance is never recomputed from transactions; it only moves
    through the balance methods below. initial_balance is fixed at creation.
    version is the stored revision, used by repositories for optimistic
    concurrency checks.
    """
    id: str
    user_id: str
    name: str
    initial_balance: Money
    current_balance: Money
    created_at: datetime
    updated_at: datetime
    version: int = 0

    def __post_init__(self):
        self.id = ensure_uuid(self.id, "account id")
        self.user_id = ensure_uuid(self.user_id, "user id")
        self.name = ensure_text(self.name, "Account name", MAX_ACCOUNT_NAME_LENGTH)
        if not self.initial_balance.same_currency(self.current_balance):
            raise InvalidArgumentError(
                "Initial and current balance of an account must share a currency"
            )

    @classmethod
    def create(
        cls,
        user_id: str,
        name: str,
        currency: str,
        initial_balance: Any,
        id: Optional[str] = None,
    ) -> "Account":
        now = utc_now()
        balance = Money(initial_balance, currency)
        return cls(
            id=id or new_id(),
            user_id=user_id,
            name=name,
            initial_balance=balance,
            current_balance=balance,
            created_at=now,
            updated_at=now,
        )

    @property
    def currency(self) -> str:
        return self.initial_balance.currency

    def belongs_to(self, user_id: str) -> bool:
        return self.user_id == user_id

    def has_currency(self, currency: str) -> bool:
        return self.currency == currency

    def rename(self, name: str) -> None:
        self.name = ensure_text(name, "Account name", MAX_ACCOUNT_NAME_LENGTH)
        self.updated_at = utc_now()

    def add_amount(self, amount: Any, currency: str) -> None:
        self._set_balance(self.current_balance.add(Money(amount, currency)))

    def subtract_amount(self, amount: Any, currency: str) -> None:
        """Raises InvalidArgumentError if the balance would go negative"""
        self._set_balance(self.current_balance.subtract(Money(amount, currency)))

    def apply_transaction(self, amount: Any, currency: str, direction) -> None:
        """Inbound adds to the balance, outbound subtracts from it"""
        if TransactionDirection.parse(direction) is TransactionDirection.INBOUND:
            self.add_amount(amount, currency)
        else:
            self.subtract_amount(amount, currency)

    def reverse_transaction(self, amount: Any, currency: str, direction) -> None:
        """Undo the effect apply_transaction had for the same triple"""
        self.apply_transaction(amount, currency, TransactionDirection.parse(direction).opposite)

    def ensure_can_absorb(self, balance_delta: Decimal) -> None:
        """
        Check that a signed change would keep the balance non-negative.

        Raises:
            InvalidArgumentError: If current balance + balance_delta < 0
        """
        if self.current_balance.amount + balance_delta < 0:
            raise InvalidArgumentError(
                f"Insufficient balance in account {self.id}: "
                f"{self.current_balance} cannot absorb {balance_delta}"
            )

    def _set_balance(self, balance: Money) -> None:
        self.current_balance = balance
        self.updated_at = utc_now()

    def to_primitives(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "initial_balance": self.initial_balance.to_primitives(),
            "current_balance": self.current_balance.to_primitives(),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "version": self.version,
        }

    @classmethod
    def from_primitives(cls, primitives: Dict[str, Any]) -> "Account":
        return cls(
            id=primitives["id"],
            user_id=primitives["user_id"],
            name=primitives["name"],
            initial_balance=Money.from_primitives(primitives["initial_balance"]),
            current_balance=Money.from_primitives(primitives["current_balance"]),
            created_at=parse_datetime(primitives["created_at"], "created_at"),
            updated_at=parse_datetime(primitives["updated_at"], "updated_at"),
            version=int(primitives.get("version", 0)),
        )

    def __repr__(self):
        return f"Account({self.name}, {self.current_balance})"


@dataclass(eq=False, kw_only=True)
class Category(AggregateRoot):
    id: str
    user_id: str
    name: str
    created_at: datetime
    updated_at: datetime

    def __post_init__(self):
        self.id = ensure_uuid(self.id, "category id")
        self.user_id = ensure_uuid(self.user_id, "user id")
        self.name = ensure_text(self.name, "Category name", MAX_CATEGORY_NAME_LENGTH)

    @classmethod
    def create(cls, user_id: str, name: str, id: Optional[str] = None) -> "Category":
        now = utc_now()
        return cls(id=id or new_id(), user_id=user_id, name=name, created_at=now, updated_at=now)

    def belongs_to(self, user_id: str) -> bool:
        return self.user_id == user_id

    def rename(self, name: str) -> None:
        self.name = ensure_text(name, "Category name", MAX_CATEGORY_NAME_LENGTH)
        self.updated_at = utc_now()

    def to_primitives(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_primitives(cls, primitives: Dict[str, Any]) -> "Category":
        return cls(
            id=primitives["id"],
            user_id=primitives["user_id"],
            name=primitives["name"],
            created_at=parse_datetime(primitives["created_at"], "created_at"),
            updated_at=parse_datetime(primitives["updated_at"], "updated_at"),
        )


class _Unset:
    """Marker for 'field not part of this update' (None is a real value)"""

    def __repr__(self):
        return "UNSET"

    def __bool__(self):
        return False


UNSET: Any = _Unset()


@dataclass(frozen=True)
class TransactionChanges:
    """
    A partial update for a transaction.

    Only fields that are not UNSET are applied. category_id and notes may be
    set to None to clear them.
    """
    amount: Any = UNSET
    currency: Any = UNSET
    direction: Any = UNSET
    description: Any = UNSET
    date: Any = UNSET
    notes: Any = UNSET
    category_id: Any = UNSET

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "TransactionChanges":
        known = {f.name for f in fields(cls)}
        unknown = set(payload) - known
        if unknown:
            raise InvalidArgumentError(
                f"Unknown transaction fields: {', '.join(sorted(unknown))}"
            )
        return cls(**payload)

    def provided(self) -> Dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }

    def is_empty(self) -> bool:
        return not self.provided()

    def touches_balance(self) -> bool:
        provided = self.provided()
        return any(key in provided for key in ("amount", "currency", "direction"))


@dataclass(eq=False, kw_only=True)
class Transaction(AggregateRoot):
    """
    A movement of money into or out of one account.

    Every mutation records the domain event matching the field it changed;
    balance effects are applied elsewhere by the subscribers to those events.
    """
    id: str
    user_id: str
    account_id: str
    amount: Money
    direction: TransactionDirection
    description: str
    date: datetime
    category_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        self.id = ensure_uuid(self.id, "transaction id")
        self.user_id = ensure_uuid(self.user_id, "user id")
        self.account_id = ensure_uuid(self.account_id, "account id")
        if self.category_id is not None:
            self.category_id = ensure_uuid(self.category_id, "category id")
        self.direction = TransactionDirection.parse(self.direction)
        self.description = ensure_text(self.description, "Transaction description", MAX_DESCRIPTION_LENGTH)
        self.date = parse_datetime(self.date)

    @classmethod
    def create(
        cls,
        user_id: str,
        account_id: str,
        amount: Any,
        currency: str,
        direction,
        description: str,
        date: Any,
        category_id: Optional[str] = None,
        notes: Optional[str] = None,
        id: Optional[str] = None,
    ) -> "Transaction":
        """Build a new transaction and record TransactionCreated"""
        now = utc_now()
        transaction = cls(
            id=id or new_id(),
            user_id=user_id,
            account_id=account_id,
            category_id=category_id,
            amount=Money(amount, currency),
            direction=direction,
            description=description,
            date=ensure_not_in_future(parse_datetime(date)),
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        transaction.record(TransactionCreated(**transaction._snapshot()))
        return transaction

    def belongs_to(self, user_id: str) -> bool:
        return self.user_id == user_id

    def update(self, changes: TransactionChanges) -> None:
        """
        Apply a partial update, one event per changed field.

        When amount and direction change together, the event that adds to the
        balance is recorded before the one that subtracts from it: direction
        first when the new direction is inbound, amount first otherwise.
        """
        new_amount = None
        if changes.amount is not UNSET or changes.currency is not UNSET:
            new_amount = Money(
                self.amount.amount if changes.amount is UNSET else changes.amount,
                self.amount.currency if changes.currency is UNSET else changes.currency,
            )
        new_direction = None
        if changes.direction is not UNSET:
            new_direction = TransactionDirection.parse(changes.direction)

        if new_direction is TransactionDirection.INBOUND:
            self.update_direction(new_direction)
            new_direction = None
        if new_amount is not None:
            self.update_amount(new_amount.amount, new_amount.currency)
        if new_direction is not None:
            self.update_direction(new_direction)
        if changes.category_id is not UNSET:
            self.update_category(changes.category_id)
        if changes.description is not UNSET:
            self.update_description(changes.description)
        if changes.date is not UNSET:
            self.update_date(changes.date)
        if changes.notes is not UNSET:
            self.update_notes(changes.notes)

    def update_amount(self, amount: Any, currency: Optional[str] = None) -> None:
        previous_amount = self.amount
        self.amount = Money(amount, currency or previous_amount.currency)
        self._touch()
        self.record(TransactionAmountUpdated(
            **self._snapshot(),
            previous_amount=previous_amount,
        ))

    def update_direction(self, direction) -> None:
        previous_direction = self.direction
        self.direction = TransactionDirection.parse(direction)
        self._touch()
        self.record(TransactionDirectionUpdated(
            **self._snapshot(),
            previous_direction=previous_direction,
        ))

    def update_category(self, category_id: Optional[str]) -> None:
        previous_category_id = self.category_id
        self.category_id = ensure_uuid(category_id, "category id") if category_id else None
        self._touch()
        self.record(TransactionCategoryUpdated(
            **self._snapshot(),
            previous_category_id=previous_category_id,
        ))

    def update_description(self, description: str) -> None:
        self.description = ensure_text(description, "Transaction description", MAX_DESCRIPTION_LENGTH)
        self._touch()
        self.record(TransactionDescriptionUpdated(**self._snapshot()))

    def update_date(self, date: Any) -> None:
        self.date = ensure_not_in_future(parse_datetime(date))
        self._touch()
        self.record(TransactionDateUpdated(**self._snapshot()))

    def update_notes(self, notes: Optional[str]) -> None:
        self.notes = notes
        self._touch()
        self.record(TransactionNotesUpdated(**self._snapshot()))

    def delete(self) -> None:
        """Record TransactionDeleted; removing the row is the caller's job"""
        self.record(TransactionDeleted(**self._snapshot()))

    def _touch(self) -> None:
        self.updated_at = utc_now()

    def _snapshot(self) -> Dict[str, Any]:
        return {
            "aggregate_id": self.id,
            "user_id": self.user_id,
            "account_id": self.account_id,
            "category_id": self.category_id,
            "amount": self.amount,
            "direction": self.direction,
            "description": self.description,
            "date": self.date,
            "notes": self.notes,
        }

    def to_primitives(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "account_id": self.account_id,
            "category_id": self.category_id,
            "amount": self.amount.to_primitives(),
            "direction": self.direction.value,
            "description": self.description,
            "date": self.date.isoformat(),
            "notes": self.notes,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_primitives(cls, primitives: Dict[str, Any]) -> "Transaction":
        """Rehydrate a stored transaction (the future-date check is not re-run)"""
        return cls(
            id=primitives["id"],
            user_id=primitives["user_id"],
            account_id=primitives["account_id"],
            category_id=primitives.get("category_id"),
            amount=Money.from_primitives(primitives["amount"]),
            direction=primitives["direction"],
            description=primitives["description"],
            date=primitives["date"],
            notes=primitives.get("notes"),
            created_at=parse_datetime(primitives["created_at"], "created_at"),
            updated_at=parse_datetime(primitives["updated_at"], "updated_at"),
        )

    @property
    def signed_amount(self) -> Decimal:
        """Amount with the sign of its effect on the account balance"""
        return self.amount.amount * self.direction.sign

    def __repr__(self):
        sign = "+" if self.direction is TransactionDirection.INBOUND else "-"
        return f"Transaction({self.date.date()}, {self.description[:30]}, {sign}{self.amount})"
