"""Line and Invoice Tax Aggregation

Pure functions. Each line is rounded to 2 decimals before invoice totals
are summed, so invoice totals always equal the sum of the printed lines.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List

from src.domain.line_item import LineItem
from src.domain.money import Money, Percentage


@dataclass(frozen=True)
class LineAmounts:
    subtotal: Money
    discount: Money
    taxable_base: Money
    tax: Money
    total: Money


@dataclass(frozen=True)
class TaxBreakdown:
    tax_percent: Percentage
    taxable_base: Money
    tax: Money


@dataclass(frozen=True)
class InvoiceTotals:
    base_total: Money
    tax_total: Money
    withholding_percent: Percentage
    withholding_amount: Money
    grand_total: Money
    lines: List[LineAmounts]
    tax_breakdown: List[TaxBreakdown]


def calculate_line(line: LineItem) -> LineAmounts:
    subtotal = line.unit_price.multiply(line.quantity).rounded()
    percent_discount = subtotal.percentage(line.discount_percent).rounded()
    discount = max(line.discount_amount.rounded(), percent_discount)
    # A fixed discount larger than the subtotal cannot produce a negative base
    if discount > subtotal:
        discount = subtotal
    taxable_base = subtotal - discount
    tax = taxable_base.percentage(line.tax_percent).rounded()
    return LineAmounts(
        subtotal=subtotal,
        discount=discount,
        taxable_base=taxable_base,
        tax=tax,
        total=taxable_base + tax,
    )


def calculate_totals(lines: Iterable[LineItem], withholding_percent: Percentage) -> InvoiceTotals:
    lines = list(lines)
    line_amounts = [calculate_line(line) for line in lines]

    base_total = Money.zero()
    tax_total = Money.zero()
    by_rate: Dict[Decimal, TaxBreakdown] = {}

    for line, amounts in zip(lines, line_amounts):
        base_total = base_total + amounts.taxable_base
        tax_total = tax_total + amounts.tax

        rate = line.tax_percent.value
        current = by_rate.get(rate)
        if current is None:
            by_rate[rate] = TaxBreakdown(line.tax_percent, amounts.taxable_base, amounts.tax)
        else:
            by_rate[rate] = TaxBreakdown(
                line.tax_percent,
                current.taxable_base + amounts.taxable_base,
                current.tax + amounts.tax,
            )

    withholding_amount = base_total.percentage(withholding_percent).rounded()

    return InvoiceTotals(
        base_total=base_total,
        tax_total=tax_total,
        withholding_percent=withholding_percent,
        withholding_amount=withholding_amount,
        grand_total=base_total + tax_total - withholding_amount,
        lines=line_amounts,
        tax_breakdown=[by_rate[rate] for rate in sorted(by_rate)],
    )
