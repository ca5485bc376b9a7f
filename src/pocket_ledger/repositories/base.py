from abc import ABC, abstractmethod
from typing import List, Optional

from pocket_ledger.domain.models import Account, Category, Transaction, User


class ConcurrentModificationError(Exception):
    """Raised when a save would overwrite a newer version of a record."""
    pass


class AccountRepository(ABC):
    """
    Abstract repository for account persistence.

    The balance engine only ever talks to this contract, making it easy
    to swap storage backends.
    """

    @abstractmethod
    def save(self, account: Account) -> None:
        """
        Insert or update an account.

        Args:
            account: Account to persist

        Raises:
            ConcurrentModificationError: If the backend detects that the stored
                account changed since it was loaded
        """
        pass

    @abstractmethod
    def search(self, account_id: str) -> Optional[Account]:
        """
        Retrieve an account by ID.

        Args:
            account_id: Account ID

        Returns:
            Account if found, None otherwise
        """
        pass

    @abstractmethod
    def search_by_user_id(self, user_id: str) -> List[Account]:
        """Retrieve every account owned by a user, oldest first"""
        pass

    @abstractmethod
    def delete(self, account_id: str) -> bool:
        """
        Delete an account by ID.

        Returns:
            True if deleted, False if not found
        """
        pass


class TransactionRepository(ABC):
    """Abstract repository for transaction persistence."""

    @abstractmethod
    def save(self, transaction: Transaction) -> None:
        """
        Insert or update a transaction.

        Args:
            transaction: Transaction to persist
        """
        pass

    @abstractmethod
    def search(self, transaction_id: str) -> Optional[Transaction]:
        """
        Retrieve a transaction by ID.

        Returns:
            Transaction if found, None otherwise
        """
        pass

    @abstractmethod
    def search_by_account_id(self, account_id: str) -> List[Transaction]:
        """Retrieve the transactions of an account, most recent date first"""
        pass

    @abstractmethod
    def search_by_user_id(self, user_id: str) -> List[Transaction]:
        """Retrieve the transactions of a user, most recent date first"""
        pass

    @abstractmethod
    def delete(self, transaction_id: str) -> bool:
        """
        Delete a transaction by ID.

        Returns:
            True if deleted, False if not found
        """
        pass


class CategoryRepository(ABC):
    """Abstract repository for category persistence (lookups only for the engine)."""

    @abstractmethod
    def save(self, category: Category) -> None:
        pass

    @abstractmethod
    def search(self, category_id: str) -> Optional[Category]:
        pass

    @abstractmethod
    def search_by_user_id(self, user_id: str) -> List[Category]:
        pass

    @abstractmethod
    def delete(self, category_id: str) -> bool:
        pass

    def exists(self, category_id: str) -> bool:
        """Check whether a category exists"""
        return self.search(category_id) is not None


class UserRepository(ABC):
    """Abstract repository for user persistence."""

    @abstractmethod
    def save(self, user: User) -> None:
        """Insert or update a user"""
        pass

    @abstractmethod
    def search(self, user_id: str) -> Optional[User]:
        """
        Retrieve a user by ID.

        Returns:
            User if found, None otherwise
        """
        pass

    def exists(self, user_id: str) -> bool:
        return self.search(user_id) is not None
