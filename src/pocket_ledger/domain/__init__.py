"""
Ledger domain: value objects, aggregates, events and errors.

Quick Start:
    >>> from pocket_ledger.domain import Account, Transaction
    >>>
    >>> account = Account.create(user_id, "Wallet", "COP", 1000)
    >>> account.apply_transaction(200, "COP", "outbound")
    >>> account.current_balance
    Money(amount=Decimal('800'), currency='COP')
"""
from pocket_ledger.domain.enums import BalanceOperation, TransactionDirection
from pocket_ledger.domain.errors import (
    AccountDoesNotExistError,
    AuthorizationError,
    CategoryDoesNotExistError,
    CurrencyMismatchError,
    DomainError,
    EntityDoesNotExistError,
    EventPublishError,
    InvalidArgumentError,
    TransactionDoesNotExistError,
    UserDoesNotExistError,
)
from pocket_ledger.domain.events import (
    DomainEvent,
    DomainEventSubscriber,
    TransactionAmountUpdated,
    TransactionCategoryUpdated,
    TransactionCreated,
    TransactionDateUpdated,
    TransactionDeleted,
    TransactionDescriptionUpdated,
    TransactionDirectionUpdated,
    TransactionEvent,
    TransactionNotesUpdated,
)
from pocket_ledger.domain.models import (
    UNSET,
    Account,
    Category,
    Transaction,
    TransactionChanges,
    User,
)
from pocket_ledger.domain.money import Money

__all__ = [
    "Account",
    "AccountDoesNotExistError",
    "AuthorizationError",
    "BalanceOperation",
    "Category",
    "CategoryDoesNotExistError",
    "CurrencyMismatchError",
    "DomainError",
    "DomainEvent",
    "DomainEventSubscriber",
    "EntityDoesNotExistError",
    "EventPublishError",
    "InvalidArgumentError",
    "Money",
    "Transaction",
    "TransactionAmountUpdated",
    "TransactionCategoryUpdated",
    "TransactionChanges",
    "TransactionCreated",
    "TransactionDateUpdated",
    "TransactionDeleted",
    "TransactionDescriptionUpdated",
    "TransactionDirection",
    "TransactionDirectionUpdated",
    "TransactionDoesNotExistError",
    "TransactionEvent",
    "TransactionNotesUpdated",
    "UNSET",
    "User",
    "UserDoesNotExistError",
]
