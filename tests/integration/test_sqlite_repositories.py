import pytest
from decimal import Decimal

from pocket_ledger.database.connection import DatabaseConfig, DatabaseManager
from pocket_ledger.domain.models import Account, Category, Transaction, User
from pocket_ledger.domain.money import Money
from pocket_ledger.repositories.base import ConcurrentModificationError
from pocket_ledger.repositories.sqlite_repositories import (
    SQLiteAccountRepository,
    SQLiteCategoryRepository,
    SQLiteTransactionRepository,
    SQLiteUserRepository,
)

@pytest.fixture
def account_repo(test_db):
    return SQLiteAccountRepository(test_db)

@pytest.fixture
def transaction_repo(test_db):
    return SQLiteTransactionRepository(test_db)

@pytest.fixture
def category_repo(test_db):
    return SQLiteCategoryRepository(test_db)

@pytest.fixture
def user_repo(test_db):
    return SQLiteUserRepository(test_db)

@pytest.fixture
def saved_account(account_repo, cop_account):
    account_repo.save(cop_account)
    return cop_account

def make_transaction(user_id, account_id, date, amount="10.25", direction="outbound"):
    transaction = Transaction.create(
        user_id=user_id,
        account_id=account_id,
        amount=amount,
        currency="COP",
        direction=direction,
        description="Coffee",
        date=date,
    )
    transaction.pull_domain_events()
    return transaction


@pytest.mark.integration
class TestSQLiteAccountRepository:

    def test_insert_and_search(self, account_repo, saved_account):
        # Act
        found = account_repo.search(saved_account.id)

        # Assert
        assert found.name == "Wallet"
        assert found.initial_balance == Money("1000", "COP")
        assert found.current_balance == Money("1000", "COP")
        assert found.version == 1
        assert saved_account.version == 1

    def test_amounts_keep_decimal_precision(self, account_repo, user_id):
        account = Account.create(user_id=user_id, name="Broker", currency="USD", initial_balance="0.10")
        account_repo.save(account)

        account.add_amount("0.20", "USD")
        account_repo.save(account)

        assert account_repo.search(account.id).current_balance.amount == Decimal("0.30")

    def test_update_bumps_version(self, account_repo, saved_account):
        # Arrange
        loaded = account_repo.search(saved_account.id)

        # Act
        loaded.add_amount("5", "COP")
        loaded.rename("Daily")
        account_repo.save(loaded)

        # Assert
        reloaded = account_repo.search(saved_account.id)
        assert reloaded.version == 2
        assert reloaded.name == "Daily"
        assert reloaded.current_balance.amount == Decimal("1005")
        assert reloaded.initial_balance.amount == Decimal("1000")

    def test_stale_update_raises(self, account_repo, saved_account):
        # Arrange
        first = account_repo.search(saved_account.id)
        second = account_repo.search(saved_account.id)
        first.add_amount("1", "COP")
        account_repo.save(first)

        # Act & Assert
        second.add_amount("2", "COP")
        with pytest.raises(ConcurrentModificationError):
            account_repo.save(second)

        assert account_repo.search(saved_account.id).current_balance.amount == Decimal("1001")

    def test_duplicate_insert_raises(self, account_repo, saved_account):
        duplicate = Account.from_primitives({**saved_account.to_primitives(), "version": 0})

        with pytest.raises(ConcurrentModificationError):
            account_repo.save(duplicate)

    def test_search_by_user_and_delete(self, account_repo, saved_account, user_id, other_user_id):
        assert [a.id for a in account_repo.search_by_user_id(user_id)] == [saved_account.id]
        assert account_repo.search_by_user_id(other_user_id) == []

        assert account_repo.delete(saved_account.id) is True
        assert account_repo.delete(saved_account.id) is False
        assert account_repo.search(saved_account.id) is None


@pytest.mark.integration
class TestSQLiteTransactionRepository:

    def test_save_and_search(self, transaction_repo, user_id, saved_account, past_date):
        transaction = make_transaction(user_id, saved_account.id, past_date)

        transaction_repo.save(transaction)
        found = transaction_repo.search(transaction.id)

        assert found.amount == Money("10.25", "COP")
        assert found.direction.value == "outbound"
        assert found.date == transaction.date
        assert found.category_id is None

    def test_save_is_an_upsert(self, transaction_repo, user_id, saved_account, past_date):
        # Arrange
        transaction = make_transaction(user_id, saved_account.id, past_date)
        transaction_repo.save(transaction)

        # Act
        transaction.update_amount("99.99")
        transaction.update_direction("inbound")
        transaction.update_notes("refund")
        transaction_repo.save(transaction)

        # Assert
        found = transaction_repo.search(transaction.id)
        assert found.amount.amount == Decimal("99.99")
        assert found.direction.value == "inbound"
        assert found.notes == "refund"
        assert len(transaction_repo.search_by_user_id(user_id)) == 1

    def test_results_are_most_recent_first(self, transaction_repo, user_id, saved_account):
        older = make_transaction(user_id, saved_account.id, "2024-06-01T00:00:00+00:00")
        newer = make_transaction(user_id, saved_account.id, "2025-02-01T00:00:00+00:00")
        transaction_repo.save(older)
        transaction_repo.save(newer)

        by_account = transaction_repo.search_by_account_id(saved_account.id)

        assert [t.id for t in by_account] == [newer.id, older.id]

    def test_delete(self, transaction_repo, user_id, saved_account, past_date):
        transaction = make_transaction(user_id, saved_account.id, past_date)
        transaction_repo.save(transaction)

        assert transaction_repo.delete(transaction.id) is True
        assert transaction_repo.search(transaction.id) is None
        assert transaction_repo.delete(transaction.id) is False


@pytest.mark.integration
class TestSQLiteCategoryRepository:

    def test_save_rename_exists_delete(self, category_repo, user_id):
        # Arrange
        food = Category.create(user_id=user_id, name="food")
        bills = Category.create(user_id=user_id, name="Bills")
        category_repo.save(food)
        category_repo.save(bills)

        # Act
        food.rename("Food")
        category_repo.save(food)

        # Assert
        assert [c.name for c in category_repo.search_by_user_id(user_id)] == ["Bills", "Food"]
        assert category_repo.exists(food.id)
        assert category_repo.delete(food.id) is True
        assert not category_repo.exists(food.id)
        assert category_repo.search(food.id) is None


@pytest.mark.integration
class TestSQLiteUserRepository:

    def test_save_update_and_search(self, user_repo, user_id):
        # Arrange
        user = User.create(id=user_id, first_name="Ana", last_name="Ruiz")
        user_repo.save(user)

        # Act
        user.update(last_name="Gómez")
        user_repo.save(user)

        # Assert
        found = user_repo.search(user_id)
        assert found.full_name == "Ana Gómez"
        assert found.created_at == user.created_at
        assert user_repo.exists(user_id)

    def test_unknown_user(self, user_repo, other_user_id):
        assert user_repo.search(other_user_id) is None
        assert not user_repo.exists(other_user_id)


@pytest.mark.integration
def test_schema_version_is_seeded(test_db):
    row = test_db.schema_version()

    assert row["version"] == 2
    assert row["description"] == "Users"


@pytest.mark.integration
def test_schema_version_before_initialize(tmp_path):
    db = DatabaseManager(DatabaseConfig(tmp_path / "empty.db"))

    assert db.schema_version() is None
    db.close()
