import sqlite3
from typing import List, Optional

from pocket_ledger.database.connection import DatabaseManager
from pocket_ledger.domain.models import Account, Category, Transaction, User
from pocket_ledger.repositories.base import (
    AccountRepository,
    CategoryRepository,
    ConcurrentModificationError,
    TransactionRepository,
    UserRepository,
)


class SQLiteAccountRepository(AccountRepository):
    """
    SQLite implementation of the AccountRepository.

    Updates are optimistic: a save only succeeds when the stored version is
    still the one the account was loaded with.
    """

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def save(self, account: Account) -> None:
        """Insert a new account or update an existing one (version-checked)."""
        data = account.to_primitives()

        with self.db.transaction() as conn:
            if account.version == 0:
                try:
                    conn.execute(
                        """
                        INSERT INTO accounts (
                            id, user_id, name, currency, initial_balance,
                            current_balance, created_at, updated_at, version
                        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, 1)
                        """,
                        (
                            data["id"],
                            data["user_id"],
                            data["name"],
                            account.currency,
                            str(account.initial_balance.amount), # Store as string for precision
                            str(account.current_balance.amount),
                            data["created_at"],
                            data["updated_at"],
                        ),
                    )
                except sqlite3.IntegrityError:
                    raise ConcurrentModificationError(
                        f"Account {account.id} already exists"
                    ) from None
            else:
                cursor = conn.execute(
                    """
                    UPDATE accounts
                    SET name = ?, current_balance = ?, updated_at = ?,
                        version = version + 1
                    WHERE id = ? AND version = ?
                    """,
                    (
                        data["name"],
                        str(account.current_balance.amount),
                        data["updated_at"],
                        account.id,
                        account.version,
                    ),
                )

                if cursor.rowcount == 0:
                    raise ConcurrentModificationError(
                        f"Account {account.id} was modified or deleted concurrently "
                        f"(expected version {account.version})"
                    )

        account.version += 1

    def search(self, account_id: str) -> Optional[Account]:
        """Retrieve an account by ID, or None if it doesn't exist"""
        conn = self.db.get_connection()
        row = conn.execute(
            "SELECT * FROM accounts WHERE id = ?",
            (account_id,)
        ).fetchone()

        if row is None:
            return None

        return self._row_to_account(row)

    def search_by_user_id(self, user_id: str) -> List[Account]:
        conn = self.db.get_connection()
        rows = conn.execute(
            "SELECT * FROM accounts WHERE user_id = ? ORDER BY created_at",
            (user_id,)
        ).fetchall()
        return [self._row_to_account(row) for row in rows]

    def delete(self, account_id: str) -> bool:
        with self.db.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM accounts WHERE id = ?",
                (account_id,)
            )
            return cursor.rowcount > 0

    def _row_to_account(self, row: sqlite3.Row) -> Account:
        """Convert database row to Account object."""
        return Account.from_primitives({
            "id": row["id"],
            "user_id": row["user_id"],
            "name": row["name"],
            "initial_balance": {"amount": row["initial_balance"], "currency": row["currency"]},
            "current_balance": {"amount": row["current_balance"], "currency": row["currency"]},
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
            "version": row["version"],
        })


class SQLiteTransactionRepository(TransactionRepository):
    """
    SQLite implementation of the TransactionRepository.

    Handles all database operations for transactions using raw SQL.
    """

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def save(self, transaction: Transaction) -> None:
        """Insert or update a transaction."""
        data = transaction.to_primitives()

        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO transactions (
                    id, user_id, account_id, category_id, amount, currency,
                    direction, description, date, notes, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    category_id = excluded.category_id,
                    amount = excluded.amount,
                    currency = excluded.currency,
                    direction = excluded.direction,
                    description = excluded.description,
                    date = excluded.date,
                    notes = excluded.notes,
                    updated_at = excluded.updated_at
                """,
                (
                    data["id"],
                    data["user_id"],
                    data["account_id"],
                    data["category_id"],
                    str(transaction.amount.amount),
                    transaction.amount.currency,
                    data["direction"],
                    data["description"],
                    data["date"],
                    data["notes"],
                    data["created_at"],
                    data["updated_at"],
                ),
            )

    def search(self, transaction_id: str) -> Optional[Transaction]:
        """Retrieve a transaction by ID, or None if it doesn't exist"""
        conn = self.db.get_connection()
        row = conn.execute(
            "SELECT * FROM transactions WHERE id = ?",
            (transaction_id,)
        ).fetchone()

        if row is None:
            return None

        return self._row_to_transaction(row)

    def search_by_account_id(self, account_id: str) -> List[Transaction]:
        return self._select_where("account_id", account_id)

    def search_by_user_id(self, user_id: str) -> List[Transaction]:
        return self._select_where("user_id", user_id)

    def delete(self, transaction_id: str) -> bool:
        """Delete a transaction by ID."""
        with self.db.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM transactions WHERE id = ?",
                (transaction_id,)
            )
            return cursor.rowcount > 0

    def _select_where(self, column: str, value: str) -> List[Transaction]:
        # column is always one of our own literals, never user input
        conn = self.db.get_connection()
        rows = conn.execute(
            f"SELECT * FROM transactions WHERE {column} = ? ORDER BY date DESC",
            (value,)
        ).fetchall()
        return [self._row_to_transaction(row) for row in rows]

    def _row_to_transaction(self, row: sqlite3.Row) -> Transaction:
        """Convert database row to Transaction object."""
        return Transaction.from_primitives({
            "id": row["id"],
            "user_id": row["user_id"],
            "account_id": row["account_id"],
            "category_id": row["category_id"],
            "amount": {"amount": row["amount"], "currency": row["currency"]},
            "direction": row["direction"],
            "description": row["description"],
            "date": row["date"],
            "notes": row["notes"],
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
        })


class SQLiteCategoryRepository(CategoryRepository):
    """SQLite implementation of the CategoryRepository."""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def save(self, category: Category) -> None:
        data = category.to_primitives()

        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO categories (id, user_id, name, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    updated_at = excluded.updated_at
                """,
                (
                    data["id"],
                    data["user_id"],
                    data["name"],
                    data["created_at"],
                    data["updated_at"],
                ),
            )

    def search(self, category_id: str) -> Optional[Category]:
        conn = self.db.get_connection()
        row = conn.execute(
            "SELECT * FROM categories WHERE id = ?",
            (category_id,)
        ).fetchone()
        return Category.from_primitives(dict(row)) if row else None

    def search_by_user_id(self, user_id: str) -> List[Category]:
        conn = self.db.get_connection()
        rows = conn.execute(
            "SELECT * FROM categories WHERE user_id = ? ORDER BY name COLLATE NOCASE",
            (user_id,)
        ).fetchall()
        return [Category.from_primitives(dict(row)) for row in rows]

    def exists(self, category_id: str) -> bool:
        conn = self.db.get_connection()
        cursor = conn.execute(
            "SELECT 1 FROM categories WHERE id = ?",
            (category_id,)
        )
        return cursor.fetchone() is not None

    def delete(self, category_id: str) -> bool:
        with self.db.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM categories WHERE id = ?",
                (category_id,)
            )
            return cursor.rowcount > 0


class SQLiteUserRepository(UserRepository):
    """SQLite implementation of the UserRepository."""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def save(self, user: User) -> None:
        data = user.to_primitives()

        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO users (id, first_name, last_name, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    first_name = excluded.first_name,
                    last_name = excluded.last_name,
                    updated_at = excluded.updated_at
                """,
                (
                    data["id"],
                    data["first_name"],
                    data["last_name"],
                    data["created_at"],
                    data["updated_at"],
                ),
            )

    def search(self, user_id: str) -> Optional[User]:
        conn = self.db.get_connection()
        row = conn.execute(
            "SELECT * FROM users WHERE id = ?",
            (user_id,)
        ).fetchone()
        return User.from_primitives(dict(row)) if row else None
