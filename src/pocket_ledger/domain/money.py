import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict

from pocket_ledger.domain.errors import CurrencyMismatchError, InvalidArgumentError

CURRENCY_CODE = re.compile(r"^[A-Z]{3}$")


def to_decimal(value: Any) -> Decimal:
    """
    Coerce a numeric value to Decimal without going through binary floats.

    Raises:
        InvalidArgumentError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise InvalidArgumentError(f"Invalid amount: {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise InvalidArgumentError(f"Invalid amount: {value!r}") from None

    if not result.is_finite():
        raise InvalidArgumentError(f"Invalid amount: {value!r}")
    return result


@dataclass(frozen=True)
class Money:
    """
    Immutable non-negative amount tagged with a currency.

    Arithmetic never clamps: anything that would produce a negative amount
    or mix currencies raises instead.
    """
    amount: Decimal
    currency: str

    def __post_init__(self):
        amount = to_decimal(self.amount)
        if amount < 0:
            raise InvalidArgumentError("Amount must be non-negative")

        if not isinstance(self.currency, str) or not CURRENCY_CODE.match(self.currency):
            raise InvalidArgumentError(
                f"Invalid currency code {self.currency!r}, expected a 3-letter ISO 4217 code"
            )

        # frozen dataclass, so bypass __setattr__ to store the normalized value
        object.__setattr__(self, "amount", amount)

    def same_currency(self, other: "Money") -> bool:
        return self.currency == other.currency

    def _ensure_same_currency(self, other: "Money") -> None:
        if not self.same_currency(other):
            raise CurrencyMismatchError(self.currency, other.currency)

    def add(self, other: "Money") -> "Money":
        self._ensure_same_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def subtract(self, other: "Money") -> "Money":
        """Raises InvalidArgumentError when the result would be negative"""
        self._ensure_same_currency(other)
        return Money(self.amount - other.amount, self.currency)

    def multiply(self, factor: int) -> "Money":
        return Money(self.amount * factor, self.currency)

    def is_zero(self) -> bool:
        return self.amount == 0

    def to_primitives(self) -> Dict[str, Any]:
        return {"amount": self.amount, "currency": self.currency}

    @classmethod
    def from_primitives(cls, primitives: Dict[str, Any]) -> "Money":
        return cls(primitives["amount"], primitives["currency"])

    def __str__(self):
        return f"{self.amount:,.2f} {self.currency}"
