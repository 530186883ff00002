"""Invoice <-> row mapping

Stored numbers are parsed back into fiscal numbers: canonical strings
become StructuredNumber, anything else is kept verbatim as OpaqueNumber
(the parser logs that fallback).
"""

from typing import Dict, List, Sequence
from src.adapter.models.invoice import InvoiceLineRow, InvoiceRow
from src.domain.document_number import OpaqueNumber, StructuredNumber, format_number, parse_document_number
from src.domain.errors import RepositoryError, ValidationError
from src.domain.invoice import Invoice, InvoiceStatus
from src.domain.line_item import LineItem
from src.domain.money import Money, Percentage


def line_to_domain(row: InvoiceLineRow) -> LineItem:
    try:
        return LineItem(
            kind=row.kind,
            description=row.description,
            quantity=row.quantity,
            unit_price=Money.of(row.unit_price),
            tax_percent=Percentage.of(row.tax_percent),
            discount_percent=Percentage.of(row.discount_percent or 0),
            discount_amount=Money.of(row.discount_amount or 0),
        )
    except ValidationError as e:
        raise RepositoryError(
            f"Stored line {row.position} of invoice {row.invoice_id} is invalid",
            reason=e.message,
        )


def to_domain(row: InvoiceRow, line_rows: Sequence[InvoiceLineRow]) -> Invoice:
    number = None
    if row.number is not None:
        parsed = parse_document_number(row.number)
        if parsed.is_err():
            raise RepositoryError(f"Stored number of invoice {row.id} is unreadable")
        number = parsed.value

    lines = [line_to_domain(line) for line in sorted(line_rows, key=lambda line: line.position)]

    try:
        return Invoice(
            id=row.id,
            tenant_id=row.tenant_id,
            series=row.series,
            client_id=row.client_id,
            issue_date=row.issue_date,
            created_by=row.created_by,
            status=InvoiceStatus(row.status),
            lines=lines,
            number=number,
            client_tax_id=row.client_tax_id,
            source_order_id=row.source_order_id,
            due_date=row.due_date,
            withholding_percent=Percentage.of(row.withholding_percent or 0),
            fingerprint=row.fingerprint,
            previous_fingerprint=row.previous_fingerprint,
            chain_position=row.chain_position,
            created_at=row.created_at,
            updated_at=row.updated_at,
            issued_at=row.issued_at,
            issued_by=row.issued_by,
            paid_at=row.paid_at,
            paid_by=row.paid_by,
            voided_at=row.voided_at,
            voided_by=row.voided_by,
            void_reason=row.void_reason,
        )
    except (ValueError, ValidationError) as e:
        raise RepositoryError(f"Stored invoice {row.id} is invalid", reason=str(e))


def row_values(invoice: Invoice) -> Dict[str, object]:
    """Column values of an invoice row"""
    number = invoice.number
    number_series = number_year = number_sequence = None
    if isinstance(number, (StructuredNumber, OpaqueNumber)):
        number_series, number_year, number_sequence = number.series, number.year, number.sequence

    return {
        "id": invoice.id,
        "tenant_id": invoice.tenant_id,
        "series": invoice.series,
        "status": invoice.status.value,
        "client_id": invoice.client_id,
        "client_tax_id": invoice.client_tax_id,
        "source_order_id": invoice.source_order_id,
        "issue_date": invoice.issue_date,
        "due_date": invoice.due_date,
        "withholding_percent": invoice.withholding_percent.value,
        "number": format_number(number) if number is not None else None,
        "number_series": number_series,
        "number_year": number_year,
        "number_sequence": number_sequence,
        "fingerprint": invoice.fingerprint,
        "previous_fingerprint": invoice.previous_fingerprint,
        "chain_position": invoice.chain_position,
        "created_at": invoice.created_at,
        "updated_at": invoice.updated_at,
        "created_by": invoice.created_by,
        "issued_at": invoice.issued_at,
        "issued_by": invoice.issued_by,
        "paid_at": invoice.paid_at,
        "paid_by": invoice.paid_by,
        "voided_at": invoice.voided_at,
        "voided_by": invoice.voided_by,
        "void_reason": invoice.void_reason,
    }


def line_values(line: LineItem) -> Dict[str, object]:
    return {
        "kind": line.kind.value,
        "description": line.description,
        "quantity": line.quantity,
        "unit_price": line.unit_price.amount,
        "tax_percent": line.tax_percent.value,
        "discount_percent": line.discount_percent.value,
        "discount_amount": line.discount_amount.amount,
    }


def line_rows_for(invoice: Invoice) -> List[InvoiceLineRow]:
    return [
        InvoiceLineRow(invoice_id=invoice.id, position=position, **line_values(line))
        for position, line in enumerate(invoice.lines, start=1)
    ]
