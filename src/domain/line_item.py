"""Invoice Line Item Value Type

An immutable line of an invoice. Derived amounts (subtotal, discount,
taxable base, tax, total) are computed in src.domain.totals, never stored.

Domain Rules:
- description is required
- quantity must be > 0
- unit_price must be >= 0
- discount_percent and tax_percent are within [0, 100]
- discount_amount is a fixed discount >= 0; the effective discount is the
  greater of the fixed amount and the percentage of the subtotal
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Optional

from libs.result import Error, Result, Return
from src.domain.errors import ValidationError
from src.domain.money import Money, Numeric, Percentage, to_decimal


class LineKind(str, Enum):
    """What a line bills for"""
    LABOUR = "labour"
    PART = "part"
    SERVICE = "service"
    OTHER = "other"


@dataclass(frozen=True)
class LineItem:
    kind: LineKind
    description: str
    quantity: Decimal
    unit_price: Money
    tax_percent: Percentage
    discount_percent: Percentage = field(default_factory=Percentage.zero)
    discount_amount: Money = field(default_factory=Money.zero)

    def __post_init__(self):
        try:
            kind = LineKind(self.kind)
        except ValueError:
            raise ValidationError(f"unknown line kind: {self.kind!r}", "kind")
        object.__setattr__(self, "kind", kind)

        if not isinstance(self.description, str) or not self.description.strip():
            raise ValidationError("description is required", "description")
        object.__setattr__(self, "description", self.description.strip())

        quantity = to_decimal(self.quantity, "quantity")
        if quantity <= 0:
            raise ValidationError(f"quantity must be greater than 0, got {quantity}", "quantity")
        object.__setattr__(self, "quantity", quantity)

        if self.unit_price.is_negative():
            raise ValidationError("unit_price must not be negative", "unit_price")
        if self.discount_amount.is_negative():
            raise ValidationError("discount_amount must not be negative", "discount_amount")

    def with_changes(self, **changes) -> "LineItem":
        """Copy of this line with some fields replaced (re-validated)"""
        return replace(self, **changes)


def create_line_item(
    kind: str,
    description: str,
    quantity: Numeric,
    unit_price: Numeric,
    tax_percent: Numeric,
    discount_percent: Optional[Numeric] = None,
    discount_amount: Optional[Numeric] = None,
) -> Result[LineItem]:
    """
    Build a LineItem from raw values

    Returns:
        Result[LineItem]: the line, or a VALIDATION_ERROR describing the bad field
    """
    try:
        line = LineItem(
            kind=kind,
            description=description,
            quantity=quantity,
            unit_price=Money.of(unit_price),
            tax_percent=Percentage.of(tax_percent),
            discount_percent=Percentage.of(discount_percent) if discount_percent is not None else Percentage.zero(),
            discount_amount=Money.of(discount_amount) if discount_amount is not None else Money.zero(),
        )
    except ValidationError as e:
        return Return.err(Error(code=e.code, message=e.message, reason=e.reason))
    return Return.ok(line)
