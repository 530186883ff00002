"""Money and Percentage Value Types

Exact decimal arithmetic for fiscal amounts and rates.

Domain Rules:
- Amounts are decimal.Decimal, never binary floats
- Arithmetic keeps full precision; fiscal rounding (2 decimals, half-up)
  is an explicit step via Money.rounded()
- Percentages are bounded to [0, 100]
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from src.domain.errors import ValidationError

CENT = Decimal("0.01")
HUNDRED = Decimal("100")

Numeric = Union[Decimal, int, str]


def to_decimal(value: Numeric, field: str = "amount") -> Decimal:
    """Convert an int, str or Decimal to a finite Decimal"""
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{field} must be a Decimal, int or str, not {type(value).__name__}", field)
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} is not a valid decimal: {value!r}", field)
    if not result.is_finite():
        raise ValidationError(f"{field} must be finite", field)
    return result


def round_fiscal(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Money:
    """Fixed-point monetary amount"""

    amount: Decimal

    def __post_init__(self):
        object.__setattr__(self, "amount", to_decimal(self.amount))

    @classmethod
    def zero(cls) -> "Money":
        return cls(Decimal("0"))

    @classmethod
    def of(cls, value: Numeric) -> "Money":
        return cls(to_decimal(value))

    def add(self, other: "Money") -> "Money":
        return Money(self.amount + other.amount)

    def subtract(self, other: "Money") -> "Money":
        return Money(self.amount - other.amount)

    def multiply(self, factor: Numeric) -> "Money":
        return Money(self.amount * to_decimal(factor, "factor"))

    def percentage(self, rate: "Percentage") -> "Money":
        """Unrounded share of this amount at the given rate"""
        return Money(self.amount * rate.value / HUNDRED)

    def rounded(self) -> "Money":
        return Money(round_fiscal(self.amount))

    def is_zero(self) -> bool:
        return self.amount == 0

    def is_negative(self) -> bool:
        return self.amount < 0

    def __add__(self, other: "Money") -> "Money":
        return self.add(other)

    def __sub__(self, other: "Money") -> "Money":
        return self.subtract(other)

    def __lt__(self, other: "Money") -> bool:
        return self.amount < other.amount

    def __le__(self, other: "Money") -> bool:
        return self.amount <= other.amount

    def __gt__(self, other: "Money") -> bool:
        return self.amount > other.amount

    def __ge__(self, other: "Money") -> bool:
        return self.amount >= other.amount

    def format(self) -> str:
        """Two-decimal plain representation used in fingerprints (e.g. '121.00')"""
        return f"{round_fiscal(self.amount):.2f}"

    def __str__(self) -> str:
        return self.format()


@dataclass(frozen=True)
class Percentage:
    """Rate between 0 and 100 inclusive"""

    value: Decimal

    def __post_init__(self):
        value = to_decimal(self.value, "percentage")
        if value < 0 or value > HUNDRED:
            raise ValidationError(f"percentage must be between 0 and 100, got {value}", "percentage")
        object.__setattr__(self, "value", value)

    @classmethod
    def zero(cls) -> "Percentage":
        return cls(Decimal("0"))

    @classmethod
    def of(cls, value: Numeric) -> "Percentage":
        return cls(to_decimal(value, "percentage"))

    def is_zero(self) -> bool:
        return self.value == 0

    def __str__(self) -> str:
        return f"{self.value.normalize():f}%"
