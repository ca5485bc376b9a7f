"""
Explicit wiring of the ledger services.

Everything is built once from a static table: one UpdateAccountBalance, the
balance-sync subscribers, one event bus injected into every use case that
publishes. There is no global bus and no runtime discovery.
"""
from dataclasses import dataclass
from typing import Optional

from pocket_ledger.config.settings import Settings
from pocket_ledger.events.bus import EventBus, InMemoryEventBus
from pocket_ledger.repositories.base import (
    AccountRepository,
    CategoryRepository,
    TransactionRepository,
    UserRepository,
)
from pocket_ledger.services.accounts import (
    CreateAccount,
    DeleteAccount,
    FindAccount,
    SearchAccountsByUser,
    UpdateAccount,
    UpdateAccountBalance,
)
from pocket_ledger.services.balance_sync import balance_sync_subscribers
from pocket_ledger.services.categories import (
    CreateCategory,
    DeleteCategory,
    SearchCategoriesByUser,
    UpdateCategory,
)
from pocket_ledger.services.transactions import (
    CreateTransaction,
    DeleteTransaction,
    FindTransaction,
    SearchTransactionsByAccount,
    SearchTransactionsByUser,
    UpdateTransaction,
)
from pocket_ledger.services.users import FindUser, RegisterUser, UpdateUser


@dataclass
class LedgerServices:
    event_bus: EventBus

    find_account: FindAccount
    create_account: CreateAccount
    update_account: UpdateAccount
    delete_account: DeleteAccount
    search_accounts_by_user: SearchAccountsByUser
    update_account_balance: UpdateAccountBalance

    find_transaction: FindTransaction
    create_transaction: CreateTransaction
    update_transaction: UpdateTransaction
    delete_transaction: DeleteTransaction
    search_transactions_by_user: SearchTransactionsByUser
    search_transactions_by_account: SearchTransactionsByAccount

    create_category: CreateCategory
    update_category: UpdateCategory
    delete_category: DeleteCategory
    search_categories_by_user: SearchCategoriesByUser

    register_user: RegisterUser
    find_user: FindUser
    update_user: UpdateUser


def build_services(
    account_repository: AccountRepository,
    transaction_repository: TransactionRepository,
    category_repository: CategoryRepository,
    user_repository: UserRepository,
    settings: Optional[Settings] = None,
) -> LedgerServices:
    """
    Build every use case around the given repositories.

    Args:
        account_repository: Account storage
        transaction_repository: Transaction storage
        category_repository: Category storage
        user_repository: User storage
        settings: Optional settings; defaults keep the bus non-strict
    """
    settings = settings or Settings()

    find_account = FindAccount(account_repository)
    update_account_balance = UpdateAccountBalance(account_repository, find_account)

    event_bus = InMemoryEventBus(
        balance_sync_subscribers(update_account_balance),
        raise_on_failure=settings.raise_on_subscriber_failure,
    )

    return LedgerServices(
        event_bus=event_bus,
        find_account=find_account,
        create_account=CreateAccount(account_repository),
        update_account=UpdateAccount(account_repository),
        delete_account=DeleteAccount(account_repository),
        search_accounts_by_user=SearchAccountsByUser(account_repository),
        update_account_balance=update_account_balance,
        find_transaction=FindTransaction(transaction_repository),
        create_transaction=CreateTransaction(
            transaction_repository, account_repository, event_bus, category_repository
        ),
        update_transaction=UpdateTransaction(
            transaction_repository, account_repository, event_bus, category_repository
        ),
        delete_transaction=DeleteTransaction(transaction_repository, account_repository, event_bus),
        search_transactions_by_user=SearchTransactionsByUser(transaction_repository),
        search_transactions_by_account=SearchTransactionsByAccount(transaction_repository),
        create_category=CreateCategory(category_repository),
        update_category=UpdateCategory(category_repository),
        delete_category=DeleteCategory(category_repository),
        search_categories_by_user=SearchCategoriesByUser(category_repository),
        register_user=RegisterUser(user_repository),
        find_user=FindUser(user_repository),
        update_user=UpdateUser(user_repository),
    )
