"""Money value object for monetary amounts with currency."""

import re
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from typing import Any

from protean import invariant
from protean.exceptions import InvalidOperationError, ValidationError
from protean.fields import Float, String

from promotions.config import get_settings
from promotions.domain import promotions

CURRENCY_SYMBOLS = {
    "USD": "$",
    "CAD": "CA$",
    "AUD": "A$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CNY": "CN¥",
    "INR": "₹",
    "KRW": "₩",
}

_CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")


def decimal_places(currency: str) -> int:
    """Number of minor-unit digits for ``currency`` (JPY=0, others 2 by default)."""
    return get_settings().decimal_places_for(currency)


def to_decimal(value: Any) -> Decimal:
    """Convert ``value`` to Decimal, going through ``str`` for floats."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValidationError({"amount": [f"Invalid amount: {value!r}"]})
    try:
        if isinstance(value, float):
            return Decimal(str(value))
        return Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValidationError({"amount": [f"Invalid amount: {value!r}"]}) from exc


def round_to_currency(amount: Decimal, currency: str) -> Decimal:
    """Round ``amount`` to the currency precision using banker's rounding."""
    quantum = Decimal(1).scaleb(-decimal_places(currency))
    return amount.quantize(quantum, rounding=ROUND_HALF_EVEN)


@promotions.value_object
class Money:
    """Value object representing a monetary amount with currency.

    The amount is always held at the currency's precision; ``Money.create``
    rounds to it, and constructing a Money with excess precision fails.
    Arithmetic and comparison between two Money values require the same
    currency and are carried out in Decimal. Every operation returns a new
    instance.
    """

    amount: Float(required=True)
    currency: String(max_length=3, default="USD")

    @invariant.post
    def currency_must_be_three_letter_code(self):
        if not self.currency or not _CURRENCY_PATTERN.match(self.currency):
            raise ValidationError({"currency": [f"Invalid currency code: {self.currency!r}"]})

    @invariant.post
    def amount_must_match_currency_precision(self):
        exact = to_decimal(self.amount)
        if not exact.is_finite():
            raise ValidationError({"amount": [f"Invalid amount: {self.amount}"]})
        if exact != round_to_currency(exact, self.currency):
            raise ValidationError(
                {"amount": [f"{self.currency} amounts allow {decimal_places(self.currency)} decimal places"]}
            )

    # -------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, amount, currency: str = "USD") -> "Money":
        """Build a Money from any numeric input, rounded half-even to the currency precision."""
        if not isinstance(currency, str) or not currency.strip():
            raise ValidationError({"currency": ["Currency code cannot be empty"]})
        currency = currency.strip().upper()

        if amount is None:
            raise ValidationError({"amount": ["Amount is required"]})
        exact = to_decimal(amount)
        if not exact.is_finite():
            raise ValidationError({"amount": [f"Invalid amount: {amount}"]})

        return cls(amount=float(round_to_currency(exact, currency)), currency=currency)

    @classmethod
    def zero(cls, currency: str = "USD") -> "Money":
        return cls.create(0, currency)

    # -------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------
    @property
    def decimal_amount(self) -> Decimal:
        """The amount as an exact Decimal at the currency precision."""
        return round_to_currency(to_decimal(self.amount), self.currency)

    @property
    def decimal_places(self) -> int:
        return decimal_places(self.currency)

    @property
    def is_zero(self) -> bool:
        return self.decimal_amount == 0

    @property
    def is_positive(self) -> bool:
        return self.decimal_amount > 0

    @property
    def is_negative(self) -> bool:
        return self.decimal_amount < 0

    # -------------------------------------------------------------------
    # Arithmetic
    # -------------------------------------------------------------------
    def _require_same_currency(self, other: "Money", operation: str) -> None:
        if not isinstance(other, Money):
            raise InvalidOperationError(f"Cannot {operation} Money and {type(other).__name__}")
        if self.currency != other.currency:
            raise InvalidOperationError(
                f"Cannot {operation} money with different currencies: {self.currency} and {other.currency}"
            )

    def __add__(self, other: "Money") -> "Money":
        self._require_same_currency(other, "add")
        return Money.create(self.decimal_amount + other.decimal_amount, self.currency)

    def __sub__(self, other: "Money") -> "Money":
        self._require_same_currency(other, "subtract")
        return Money.create(self.decimal_amount - other.decimal_amount, self.currency)

    def __mul__(self, factor) -> "Money":
        if isinstance(factor, Money):
            raise InvalidOperationError("Cannot multiply Money by Money")
        return Money.create(self.decimal_amount * to_decimal(factor), self.currency)

    __rmul__ = __mul__

    def __truediv__(self, factor) -> "Money":
        if isinstance(factor, Money):
            raise InvalidOperationError("Cannot divide Money by Money")
        divisor = to_decimal(factor)
        if divisor == 0:
            raise ZeroDivisionError("Cannot divide Money by zero")
        return Money.create(self.decimal_amount / divisor, self.currency)

    def __neg__(self) -> "Money":
        return Money.create(-self.decimal_amount, self.currency)

    def abs(self) -> "Money":
        return Money.create(abs(self.decimal_amount), self.currency)

    # -------------------------------------------------------------------
    # Comparison
    # -------------------------------------------------------------------
    def __lt__(self, other: "Money") -> bool:
        self._require_same_currency(other, "compare")
        return self.decimal_amount < other.decimal_amount

    def __le__(self, other: "Money") -> bool:
        self._require_same_currency(other, "compare")
        return self.decimal_amount <= other.decimal_amount

    def __gt__(self, other: "Money") -> bool:
        self._require_same_currency(other, "compare")
        return self.decimal_amount > other.decimal_amount

    def __ge__(self, other: "Money") -> bool:
        self._require_same_currency(other, "compare")
        return self.decimal_amount >= other.decimal_amount

    @staticmethod
    def min(left: "Money", right: "Money") -> "Money":
        return left if left <= right else right

    @staticmethod
    def max(left: "Money", right: "Money") -> "Money":
        return left if left >= right else right

    @classmethod
    def sum(cls, values, currency: str) -> "Money":
        """Add up an iterable of Money values, starting from zero in ``currency``."""
        total = cls.zero(currency)
        for value in values:
            total = total + value
        return total

    # -------------------------------------------------------------------
    # Formatting
    # -------------------------------------------------------------------
    def format(self) -> str:
        """Human-readable form with the currency symbol, e.g. ``$50.00``."""
        amount = self.decimal_amount
        number = f"{abs(amount):,.{self.decimal_places}f}"
        sign = "-" if amount < 0 else ""
        symbol = CURRENCY_SYMBOLS.get(self.currency)
        if symbol is None:
            return f"{sign}{number} {self.currency}"
        return f"{sign}{symbol}{number}"

    def __str__(self) -> str:
        return f"{self.decimal_amount:.{self.decimal_places}f} {self.currency}"
