import uuid

import pytest

from pocket_ledger.database.connection import DatabaseConfig, DatabaseManager
from pocket_ledger.domain.models import Account, Transaction
from pocket_ledger.repositories.memory import (
    InMemoryAccountRepository,
    InMemoryCategoryRepository,
    InMemoryTransactionRepository,
    InMemoryUserRepository,
)
from pocket_ledger.wiring import LedgerServices, build_services

PAST_DATE = "2025-01-15T10:00:00+00:00"

@pytest.fixture
def user_id() -> str:
    return str(uuid.uuid4())

@pytest.fixture
def other_user_id() -> str:
    return str(uuid.uuid4())

@pytest.fixture
def past_date() -> str:
    """A transaction date safely in the past"""
    return PAST_DATE

@pytest.fixture
def account_repository() -> InMemoryAccountRepository:
    return InMemoryAccountRepository()

@pytest.fixture
def transaction_repository() -> InMemoryTransactionRepository:
    return InMemoryTransactionRepository()

@pytest.fixture
def category_repository() -> InMemoryCategoryRepository:
    return InMemoryCategoryRepository()

@pytest.fixture
def user_repository() -> InMemoryUserRepository:
    return InMemoryUserRepository()

@pytest.fixture
def services(
        account_repository, transaction_repository, category_repository, user_repository
) -> LedgerServices:
    """Fully wired services over in-memory repositories"""
    return build_services(account_repository, transaction_repository, category_repository, user_repository)

@pytest.fixture
def cop_account(user_id) -> Account:
    """A COP account with a 1000 opening balance (not persisted)"""
    return Account.create(user_id=user_id, name="Wallet", currency="COP", initial_balance="1000")

@pytest.fixture
def stored_cop_account(account_repository, cop_account) -> Account:
    """The COP account, persisted in the in-memory repository"""
    account_repository.save(cop_account)
    return cop_account

@pytest.fixture
def outbound_transaction(user_id, cop_account) -> Transaction:
    """A 200 COP outbound transaction with its creation event already pulled"""
    transaction = Transaction.create(
        user_id=user_id,
        account_id=cop_account.id,
        amount="200",
        currency="COP",
        direction="outbound",
        description="Groceries",
        date=PAST_DATE,
    )
    transaction.pull_domain_events()
    return transaction

@pytest.fixture
def test_db(tmp_path):
    """
    Create a real test database.

    Use pytest's tmp_path fixture to create a temporary directory.
    Database is automatically cleaned up after each test.
    """
    db_manager = DatabaseManager(DatabaseConfig(tmp_path / "test.db"))
    db_manager.initialize()

    yield db_manager

    db_manager.close()
