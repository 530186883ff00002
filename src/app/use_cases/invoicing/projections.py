"""Read projections of the Invoice aggregate

Pure functions: the aggregate itself has no serialization methods.
"""

from datetime import date
from typing import Optional

from src.domain.document_number import format_number
from src.domain.invoice import Invoice
from src.domain.totals import calculate_totals
from .dtos import InvoiceResponseDTO, LineResponseDTO, TaxBreakdownDTO


def to_invoice_response(invoice: Invoice, today: Optional[date] = None) -> InvoiceResponseDTO:
    totals = calculate_totals(invoice.lines, invoice.withholding_percent)

    lines = [
        LineResponseDTO(
            position=position,
            kind=line.kind.value,
            description=line.description,
            quantity=line.quantity,
            unit_price=line.unit_price.amount,
            tax_percent=line.tax_percent.value,
            discount_percent=line.discount_percent.value,
            discount_amount=line.discount_amount.amount,
            subtotal=amounts.subtotal.amount,
            discount=amounts.discount.amount,
            taxable_base=amounts.taxable_base.amount,
            tax=amounts.tax.amount,
            total=amounts.total.amount,
        )
        for position, (line, amounts) in enumerate(zip(invoice.lines, totals.lines), start=1)
    ]

    return InvoiceResponseDTO(
        invoice_id=invoice.id,
        tenant_id=invoice.tenant_id,
        series=invoice.series,
        status=invoice.status.value,
        number=format_number(invoice.number) if invoice.number is not None else None,
        client_id=invoice.client_id,
        client_tax_id=invoice.client_tax_id,
        source_order_id=invoice.source_order_id,
        issue_date=invoice.issue_date,
        due_date=invoice.due_date,
        is_overdue=invoice.is_overdue(today),
        lines=lines,
        tax_breakdown=[
            TaxBreakdownDTO(
                tax_percent=group.tax_percent.value,
                taxable_base=group.taxable_base.amount,
                tax=group.tax.amount,
            )
            for group in totals.tax_breakdown
        ],
        base_total=totals.base_total.amount,
        tax_total=totals.tax_total.amount,
        withholding_percent=totals.withholding_percent.value,
        withholding_amount=totals.withholding_amount.amount,
        grand_total=totals.grand_total.amount,
        fingerprint=invoice.fingerprint,
        previous_fingerprint=invoice.previous_fingerprint,
        chain_position=invoice.chain_position,
        created_at=invoice.created_at,
        updated_at=invoice.updated_at,
        created_by=invoice.created_by,
        issued_at=invoice.issued_at,
        issued_by=invoice.issued_by,
        paid_at=invoice.paid_at,
        paid_by=invoice.paid_by,
        voided_at=invoice.voided_at,
        voided_by=invoice.voided_by,
        void_reason=invoice.void_reason,
    )
