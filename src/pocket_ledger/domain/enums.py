from enum import Enum

from pocket_ledger.domain.errors import InvalidArgumentError


class TransactionDirection(Enum):
    """Represents whether money is coming in or out of an account"""
    INBOUND = "inbound" # in
    OUTBOUND = "outbound" # out

    @classmethod
    def parse(cls, value) -> "TransactionDirection":
        """
        Build a direction from its string value (or pass an enum through).

        Raises:
            InvalidArgumentError: If the value is not 'inbound' or 'outbound'
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidArgumentError(
                'Transaction direction must be either "inbound" or "outbound"'
            ) from None

    @property
    def sign(self) -> int:
        return 1 if self is TransactionDirection.INBOUND else -1

    @property
    def opposite(self) -> "TransactionDirection":
        if self is TransactionDirection.INBOUND:
            return TransactionDirection.OUTBOUND
        return TransactionDirection.INBOUND


class BalanceOperation(Enum):
    """Which way an adjustment moves an account balance"""
    ADD = "add"
    SUBTRACT = "subtract"

    @classmethod
    def parse(cls, value) -> "BalanceOperation":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidArgumentError(
                'Balance operation must be either "add" or "subtract"'
            ) from None
