from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from pocket_ledger.domain.errors import (
    CategoryDoesNotExistError,
    CurrencyMismatchError,
    TransactionDoesNotExistError,
)
from pocket_ledger.domain.models import UNSET, Account, Transaction, TransactionChanges
from pocket_ledger.events.bus import EventBus
from pocket_ledger.repositories.base import (
    AccountRepository,
    CategoryRepository,
    TransactionRepository,
)
from pocket_ledger.services.accounts import FindAccount
from pocket_ledger.services.guards import ensure_owned_by
from pocket_ledger.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CreateTransactionPayload:
    """Input of CreateTransaction"""
    user_id: str
    account_id: str
    amount: Any
    currency: str
    direction: str
    description: str
    date: Any
    category_id: Optional[str] = None
    notes: Optional[str] = None
    id: Optional[str] = None


class FindTransaction:
    """Load a transaction or fail with TransactionDoesNotExistError"""

    def __init__(self, repository: TransactionRepository):
        self.repository = repository

    async def execute(self, transaction_id: str) -> Transaction:
        transaction = self.repository.search(transaction_id)
        if transaction is None:
            raise TransactionDoesNotExistError(transaction_id)
        return transaction


def _ensure_category_exists(
    category_repository: Optional[CategoryRepository],
    category_id: Optional[str],
) -> None:
    if category_id is None or category_repository is None:
        return
    if not category_repository.exists(category_id):
        raise CategoryDoesNotExistError(category_id)


def _ensure_balance_covers(account: Optional[Account], balance_delta: Decimal) -> None:
    """
    Reject a change the balance-sync subscribers could not apply.

    A missing account (deleted, nothing cascades) is left for the subscriber
    to report.
    """
    if account is None or balance_delta == 0:
        return
    account.ensure_can_absorb(balance_delta)


class CreateTransaction:
    """
    Record a new transaction against an account.

    The account balance is not touched here: the TransactionCreated event
    published at the end is what moves it.
    """

    def __init__(
        self,
        transaction_repository: TransactionRepository,
        account_repository: AccountRepository,
        event_bus: EventBus,
        category_repository: Optional[CategoryRepository] = None,
    ):
        self.transaction_repository = transaction_repository
        self.find_account = FindAccount(account_repository)
        self.event_bus = event_bus
        self.category_repository = category_repository

    async def execute(self, payload: CreateTransactionPayload) -> Transaction:
        """
        Validate, persist and publish a new transaction.

        Raises:
            AccountDoesNotExistError: If the account is not found
            AuthorizationError: If the account belongs to another user
            CurrencyMismatchError: If the currency differs from the account's
            CategoryDoesNotExistError: If a category is given but not found
            InvalidArgumentError: If any field is malformed, or an outbound
                amount exceeds the account balance
        """
        account = await self.find_account.execute(payload.account_id)
        ensure_owned_by(account, payload.user_id, "Account")

        if not account.has_currency(payload.currency):
            raise CurrencyMismatchError(account.currency, payload.currency)

        _ensure_category_exists(self.category_repository, payload.category_id)

        transaction = Transaction.create(
            user_id=payload.user_id,
            account_id=payload.account_id,
            amount=payload.amount,
            currency=payload.currency,
            direction=payload.direction,
            description=payload.description,
            date=payload.date,
            category_id=payload.category_id,
            notes=payload.notes,
            id=payload.id,
        )
        _ensure_balance_covers(account, transaction.signed_amount)

        self.transaction_repository.save(transaction)

        await self.event_bus.publish(transaction.pull_domain_events())

        logger.info(
            "Transaction created",
            transaction_id=transaction.id,
            account_id=transaction.account_id,
            direction=transaction.direction.value,
            amount=str(transaction.amount.amount),
            currency=transaction.amount.currency,
        )
        return transaction


class UpdateTransaction:
    """Apply a partial update to a transaction and publish one event per changed field"""

    def __init__(
        self,
        transaction_repository: TransactionRepository,
        account_repository: AccountRepository,
        event_bus: EventBus,
        category_repository: Optional[CategoryRepository] = None,
    ):
        self.transaction_repository = transaction_repository
        self.account_repository = account_repository
        self.find_transaction = FindTransaction(transaction_repository)
        self.find_account = FindAccount(account_repository)
        self.event_bus = event_bus
        self.category_repository = category_repository

    async def execute(
        self,
        transaction_id: str,
        changes: Union[TransactionChanges, Dict[str, Any]],
        user_id: Optional[str] = None,
    ) -> Transaction:
        """
        Args:
            transaction_id: Transaction to update
            changes: TransactionChanges, or a dict of the fields to change
            user_id: When given, the transaction must belong to this user

        Returns:
            The updated transaction

        Raises:
            InvalidArgumentError: If a field is malformed, or the new amount
                and direction would take the account balance below zero
        """
        if isinstance(changes, dict):
            changes = TransactionChanges.from_dict(changes)

        transaction = await self.find_transaction.execute(transaction_id)
        ensure_owned_by(transaction, user_id, "Transaction")

        if changes.is_empty():
            return transaction

        if changes.currency is not UNSET:
            account = await self.find_account.execute(transaction.account_id)
            if not account.has_currency(changes.currency):
                raise CurrencyMismatchError(account.currency, changes.currency)

        if changes.category_id is not UNSET:
            _ensure_category_exists(self.category_repository, changes.category_id)

        previous_signed_amount = transaction.signed_amount
        transaction.update(changes)
        if changes.touches_balance():
            _ensure_balance_covers(
                self.account_repository.search(transaction.account_id),
                transaction.signed_amount - previous_signed_amount,
            )

        self.transaction_repository.save(transaction)

        events = transaction.pull_domain_events()
        await self.event_bus.publish(events)

        logger.info(
            "Transaction updated",
            transaction_id=transaction.id,
            fields=sorted(changes.provided()),
            events=[event.event_name for event in events],
        )
        return transaction


class DeleteTransaction:
    """Delete a transaction; its TransactionDeleted event reverses its balance effect"""

    def __init__(
        self,
        transaction_repository: TransactionRepository,
        account_repository: AccountRepository,
        event_bus: EventBus,
    ):
        self.transaction_repository = transaction_repository
        self.account_repository = account_repository
        self.find_transaction = FindTransaction(transaction_repository)
        self.event_bus = event_bus

    async def execute(self, transaction_id: str, user_id: Optional[str] = None) -> None:
        """
        Raises:
            TransactionDoesNotExistError: If the transaction is not found
            AuthorizationError: If it belongs to another user
            InvalidArgumentError: If removing an inbound transaction would
                take the account balance below zero
        """
        transaction = await self.find_transaction.execute(transaction_id)
        ensure_owned_by(transaction, user_id, "Transaction")

        _ensure_balance_covers(
            self.account_repository.search(transaction.account_id),
            -transaction.signed_amount,
        )

        transaction.delete()
        self.transaction_repository.delete(transaction.id)

        await self.event_bus.publish(transaction.pull_domain_events())

        logger.info(
            "Transaction deleted",
            transaction_id=transaction.id,
            account_id=transaction.account_id,
        )


class SearchTransactionsByUser:

    def __init__(self, repository: TransactionRepository):
        self.repository = repository

    async def execute(self, user_id: str) -> List[Dict[str, Any]]:
        return [t.to_primitives() for t in self.repository.search_by_user_id(user_id)]


class SearchTransactionsByAccount:

    def __init__(self, repository: TransactionRepository):
        self.repository = repository

    async def execute(self, account_id: str) -> List[Dict[str, Any]]:
        return [t.to_primitives() for t in self.repository.search_by_account_id(account_id)]
