"""
Pocket Ledger: accounts, transactions and event-driven balance sync.

Quick Start:
    >>> from pocket_ledger.repositories.memory import (
    ...     InMemoryAccountRepository,
    ...     InMemoryCategoryRepository,
    ...     InMemoryTransactionRepository,
    ...     InMemoryUserRepository,
    ... )
    >>> from pocket_ledger.wiring import build_services
    >>>
    >>> services = build_services(
    ...     InMemoryAccountRepository(),
    ...     InMemoryTransactionRepository(),
    ...     InMemoryCategoryRepository(),
    ...     InMemoryUserRepository(),
    ... )
"""

__version__ = "0.1.0"
