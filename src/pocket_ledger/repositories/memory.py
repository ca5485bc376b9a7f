"""
In-memory repositories.

Aggregates are stored as primitives and rebuilt on every read, so callers
never share a mutable aggregate with the store (same as a real database).
"""
from typing import Any, Dict, List, Optional

from pocket_ledger.domain.models import Account, Category, Transaction, User
from pocket_ledger.repositories.base import (
    AccountRepository,
    CategoryRepository,
    ConcurrentModificationError,
    TransactionRepository,
    UserRepository,
)


class InMemoryAccountRepository(AccountRepository):

    def __init__(self):
        self._rows: Dict[str, Dict[str, Any]] = {}

    def save(self, account: Account) -> None:
        stored = self._rows.get(account.id)
        if stored is not None and stored["version"] != account.version:
            raise ConcurrentModificationError(
                f"Account {account.id} was modified concurrently "
                f"(stored version {stored['version']}, saving version {account.version})"
            )
        account.version += 1
        self._rows[account.id] = account.to_primitives()

    def search(self, account_id: str) -> Optional[Account]:
        row = self._rows.get(account_id)
        return Account.from_primitives(row) if row else None

    def search_by_user_id(self, user_id: str) -> List[Account]:
        accounts = [
            Account.from_primitives(row)
            for row in self._rows.values()
            if row["user_id"] == user_id
        ]
        return sorted(accounts, key=lambda a: a.created_at)

    def delete(self, account_id: str) -> bool:
        return self._rows.pop(account_id, None) is not None


class InMemoryTransactionRepository(TransactionRepository):

    def __init__(self):
        self._rows: Dict[str, Dict[str, Any]] = {}

    def save(self, transaction: Transaction) -> None:
        self._rows[transaction.id] = transaction.to_primitives()

    def search(self, transaction_id: str) -> Optional[Transaction]:
        row = self._rows.get(transaction_id)
        return Transaction.from_primitives(row) if row else None

    def search_by_account_id(self, account_id: str) -> List[Transaction]:
        return self._matching("account_id", account_id)

    def search_by_user_id(self, user_id: str) -> List[Transaction]:
        return self._matching("user_id", user_id)

    def delete(self, transaction_id: str) -> bool:
        return self._rows.pop(transaction_id, None) is not None

    def _matching(self, key: str, value: str) -> List[Transaction]:
        transactions = [
            Transaction.from_primitives(row)
            for row in self._rows.values()
            if row[key] == value
        ]
        return sorted(transactions, key=lambda t: t.date, reverse=True)


class InMemoryCategoryRepository(CategoryRepository):

    def __init__(self):
        self._rows: Dict[str, Dict[str, Any]] = {}

    def save(self, category: Category) -> None:
        self._rows[category.id] = category.to_primitives()

    def search(self, category_id: str) -> Optional[Category]:
        row = self._rows.get(category_id)
        return Category.from_primitives(row) if row else None

    def search_by_user_id(self, user_id: str) -> List[Category]:
        categories = [
            Category.from_primitives(row)
            for row in self._rows.values()
            if row["user_id"] == user_id
        ]
        return sorted(categories, key=lambda c: c.name.lower())

    def delete(self, category_id: str) -> bool:
        return self._rows.pop(category_id, None) is not None


class InMemoryUserRepository(UserRepository):

    def __init__(self):
        self._rows: Dict[str, Dict[str, Any]] = {}

    def save(self, user: User) -> None:
        self._rows[user.id] = user.to_primitives()

    def search(self, user_id: str) -> Optional[User]:
        row = self._rows.get(user_id)
        return User.from_primitives(row) if row else None
