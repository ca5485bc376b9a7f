import asyncio
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pocket_ledger.domain.enums import BalanceOperation
from pocket_ledger.domain.errors import AccountDoesNotExistError
from pocket_ledger.domain.models import Account
from pocket_ledger.repositories.base import AccountRepository
from pocket_ledger.services.guards import ensure_owned_by
from pocket_ledger.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class BalanceAdjustment:
    """A non-negative amount to add to or subtract from one account balance"""
    account_id: str
    operation: BalanceOperation
    amount: Decimal
    currency: str


class FindAccount:
    """Load an account or fail with AccountDoesNotExistError"""

    def __init__(self, repository: AccountRepository):
        self.repository = repository

    async def execute(self, account_id: str) -> Account:
        account = self.repository.search(account_id)
        if account is None:
            raise AccountDoesNotExistError(account_id)
        return account


class CreateAccount:

    def __init__(self, repository: AccountRepository):
        self.repository = repository

    async def execute(
        self,
        user_id: str,
        name: str,
        currency: str,
        initial_balance: Any,
        account_id: Optional[str] = None,
    ) -> Account:
        """
        Open a new account.

        Args:
            user_id: Owner of the account
            name: Display name (1-100 characters)
            currency: ISO 4217 code, fixed for the lifetime of the account
            initial_balance: Starting balance, must be non-negative
            account_id: Optional id chosen by the caller

        Returns:
            The persisted account
        """
        account = Account.create(
            user_id=user_id,
            name=name,
            currency=currency,
            initial_balance=initial_balance,
            id=account_id,
        )
        self.repository.save(account)

        logger.info(
            "Account created",
            account_id=account.id,
            user_id=user_id,
            currency=account.currency,
            initial_balance=str(account.initial_balance.amount),
        )
        return account


class UpdateAccount:
    """Rename an account owned by the user"""

    def __init__(self, repository: AccountRepository):
        self.repository = repository
        self.find_account = FindAccount(repository)

    async def execute(self, user_id: str, account_id: str, name: str) -> Account:
        account = await self.find_account.execute(account_id)
        ensure_owned_by(account, user_id, "Account")

        account.rename(name)
        self.repository.save(account)
        return account


class DeleteAccount:
    """
    Delete an account owned by the user.

    Transactions that reference the account are left in place.
    """

    def __init__(self, repository: AccountRepository):
        self.repository = repository
        self.find_account = FindAccount(repository)

    async def execute(self, user_id: str, account_id: str) -> None:
        account = await self.find_account.execute(account_id)
        ensure_owned_by(account, user_id, "Account")

        self.repository.delete(account.id)
        logger.info("Account deleted", account_id=account.id, user_id=user_id)


class SearchAccountsByUser:

    def __init__(self, repository: AccountRepository):
        self.repository = repository

    async def execute(self, user_id: str) -> List[Dict[str, Any]]:
        return [account.to_primitives() for account in self.repository.search_by_user_id(user_id)]


class UpdateAccountBalance:
    """
    The single funnel for every balance adjustment.

    Loads the account, adds or subtracts the amount and saves it. Calls for
    the same account are serialized so that two concurrent subscribers of
    one publish call cannot overwrite each other's read-modify-write.
    """

    def __init__(
        self,
        account_repository: AccountRepository,
        find_account: Optional[FindAccount] = None,
    ):
        self.account_repository = account_repository
        self.find_account = find_account or FindAccount(account_repository)
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = defaultdict(int)

    async def execute(
        self,
        account_id: str,
        operation,
        amount: Any,
        currency: str,
    ) -> Account:
        """
        Apply one adjustment.

        Args:
            account_id: Account to adjust
            operation: BalanceOperation (or 'add' / 'subtract')
            amount: Non-negative amount to move
            currency: Must match the account currency

        Raises:
            AccountDoesNotExistError: If the account is not found
            CurrencyMismatchError: If currency differs from the account's
            InvalidArgumentError: If the balance would become negative
        """
        operation = BalanceOperation.parse(operation)

        self._lock_users[account_id] += 1
        lock = self._locks.setdefault(account_id, asyncio.Lock())
        try:
            async with lock:
                return await self._adjust(account_id, operation, amount, currency)
        finally:
            self._lock_users[account_id] -= 1
            if self._lock_users[account_id] == 0:
                del self._lock_users[account_id]
                del self._locks[account_id]

    async def apply(self, adjustment: BalanceAdjustment) -> Account:
        return await self.execute(
            account_id=adjustment.account_id,
            operation=adjustment.operation,
            amount=adjustment.amount,
            currency=adjustment.currency,
        )

    async def _adjust(
        self,
        account_id: str,
        operation: BalanceOperation,
        amount: Any,
        currency: str,
    ) -> Account:
        account = await self.find_account.execute(account_id)
        previous_balance = account.current_balance

        if operation is BalanceOperation.ADD:
            account.add_amount(amount, currency)
        else:
            account.subtract_amount(amount, currency)

        self.account_repository.save(account)

        logger.info(
            "Account balance updated",
            account_id=account_id,
            operation=operation.value,
            amount=str(amount),
            currency=currency,
            previous_balance=str(previous_balance.amount),
            current_balance=str(account.current_balance.amount),
        )
        return account
