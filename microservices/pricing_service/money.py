"""
Money primitive

Every monetary figure in the engine is a Decimal produced by `to_decimal`;
floats are only accepted through their string form.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable

from .protocols import CurrencyMismatchError, InvalidAmountError

ZERO = Decimal("0")
ONE_HUNDRED = Decimal("100")
DEFAULT_PLACES = 2


def to_decimal(value: Any) -> Decimal:
    """Coerce a boundary value (Decimal, int, decimal string) to Decimal"""
    if isinstance(value, bool) or value is None:
        raise InvalidAmountError(f"Not an amount: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidAmountError(f"Not an amount: {value!r}") from None
    else:
        raise InvalidAmountError(f"Not an amount: {value!r}")
    if not result.is_finite():
        raise InvalidAmountError(f"Amount must be finite: {value!r}")
    return result


def quantize_amount(amount: Any, places: int = DEFAULT_PLACES) -> Decimal:
    """Round half-up to `places` decimal places"""
    exponent = Decimal(1).scaleb(-places)
    return to_decimal(amount).quantize(exponent, rounding=ROUND_HALF_UP)


def clamp_non_negative(amount: Any) -> Decimal:
    amount = to_decimal(amount)
    return amount if amount > ZERO else ZERO


def sum_amounts(amounts: Iterable[Any]) -> Decimal:
    return sum((to_decimal(a) for a in amounts), ZERO)


@dataclass(frozen=True)
class Money:
    """Money value object with currency"""
    amount: Decimal
    currency: str = "USD"

    def __post_init__(self):
        object.__setattr__(self, "amount", to_decimal(self.amount))
        object.__setattr__(self, "currency", self.currency.upper())

    @classmethod
    def zero(cls, currency: str = "USD") -> "Money":
        return cls(ZERO, currency)

    def _check_currency(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(
                f"Cannot combine different currencies: {self.currency} and {other.currency}"
            )

    def __add__(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, multiplier: Any) -> "Money":
        return Money(self.amount * to_decimal(multiplier), self.currency)

    __rmul__ = __mul__

    def __lt__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount < other.amount

    def __le__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount <= other.amount

    def is_zero(self) -> bool:
        return self.amount == ZERO

    def clamped(self) -> "Money":
        return Money(clamp_non_negative(self.amount), self.currency)

    def rounded(self, places: int = DEFAULT_PLACES) -> "Money":
        return Money(quantize_amount(self.amount, places), self.currency)

    def __str__(self) -> str:
        return f"{self.currency} {quantize_amount(self.amount):.2f}"
