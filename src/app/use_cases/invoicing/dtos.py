"""Data Transfer Objects for Invoicing Use Cases

Pydantic models for command inputs and response outputs. Amounts are
accepted as decimals or decimal strings; range checks belong to the
domain constructors so every violation surfaces as VALIDATION_ERROR.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field


class LineItemDTO(BaseModel):
    """Raw line values as supplied by the caller"""

    kind: str = Field(
        ...,
        description="What the line bills for (labour, part, service, other)"
    )

    description: str = Field(
        ...,
        description="Line description"
    )

    quantity: Decimal = Field(
        ...,
        description="Quantity (must be > 0)"
    )

    unit_price: Decimal = Field(
        ...,
        description="Price per unit (must be >= 0)"
    )

    tax_percent: Decimal = Field(
        ...,
        description="Tax rate between 0 and 100"
    )

    discount_percent: Optional[Decimal] = Field(
        default=None,
        description="Percentage discount between 0 and 100"
    )

    discount_amount: Optional[Decimal] = Field(
        default=None,
        description="Fixed discount (the greater of both discounts applies)"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "kind": "labour",
                "description": "Brake pad replacement",
                "quantity": "1.5",
                "unit_price": "40.00",
                "tax_percent": "21",
                "discount_percent": "10"
            }
        }


class CreateDraftCommandDTO(BaseModel):
    """Command DTO for CreateDraft"""

    tenant_id: str = Field(..., description="Tenant identifier")
    client_id: str = Field(..., description="Client identifier")
    created_by: str = Field(..., description="User creating the draft")

    series: Optional[str] = Field(
        default=None,
        description="Series code (1-3 letters); defaults to the configured series"
    )

    client_tax_id: Optional[str] = Field(default=None, description="Client tax identification number")
    source_order_id: Optional[str] = Field(default=None, description="Originating work order")
    issue_date: Optional[date] = Field(default=None, description="Planned issue date")
    due_date: Optional[date] = Field(default=None, description="Payment due date")

    withholding_percent: Optional[Decimal] = Field(
        default=None,
        description="Withholding tax rate applied to the taxable base"
    )

    lines: List[LineItemDTO] = Field(
        default_factory=list,
        description="Initial lines (may be empty)"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "tenant_id": "tenant_123",
                "client_id": "client_42",
                "created_by": "user_7",
                "series": "F",
                "client_tax_id": "B12345678",
                "lines": [
                    {
                        "kind": "part",
                        "description": "Oil filter",
                        "quantity": "1",
                        "unit_price": "100.00",
                        "tax_percent": "21"
                    }
                ]
            }
        }


class AddLineCommandDTO(BaseModel):
    tenant_id: str = Field(..., description="Tenant identifier")
    invoice_id: str = Field(..., description="Draft invoice ID")
    user_id: str = Field(..., description="User editing the draft")
    line: LineItemDTO = Field(..., description="Line to append")


class EditLineCommandDTO(BaseModel):
    tenant_id: str = Field(..., description="Tenant identifier")
    invoice_id: str = Field(..., description="Draft invoice ID")
    user_id: str = Field(..., description="User editing the draft")
    position: int = Field(..., description="1-based position of the line to replace")
    line: LineItemDTO = Field(..., description="Replacement line")


class RemoveLineCommandDTO(BaseModel):
    tenant_id: str = Field(..., description="Tenant identifier")
    invoice_id: str = Field(..., description="Draft invoice ID")
    user_id: str = Field(..., description="User editing the draft")
    position: int = Field(..., description="1-based position of the line to remove")


class IssueInvoiceCommandDTO(BaseModel):
    """Command DTO for IssueInvoice"""

    tenant_id: str = Field(..., description="Tenant identifier")
    invoice_id: str = Field(..., description="Draft invoice ID")
    user_id: str = Field(..., description="User issuing the invoice")

    issue_date: Optional[date] = Field(
        default=None,
        description="Issue date within the current fiscal year, not after today (defaults to today)"
    )


class MarkPaidCommandDTO(BaseModel):
    tenant_id: str = Field(..., description="Tenant identifier")
    invoice_id: str = Field(..., description="Issued invoice ID")
    user_id: str = Field(..., description="User recording the payment")
    paid_at: Optional[datetime] = Field(default=None, description="Payment timestamp (defaults to now)")


class VoidInvoiceCommandDTO(BaseModel):
    tenant_id: str = Field(..., description="Tenant identifier")
    invoice_id: str = Field(..., description="Issued invoice ID")
    user_id: str = Field(..., description="User voiding the invoice")
    reason: str = Field(..., description="Why the invoice is voided (required)")


class LineResponseDTO(BaseModel):
    """Line with its derived amounts"""

    position: int = Field(..., description="1-based line position")
    kind: str = Field(..., description="Line kind")
    description: str = Field(..., description="Line description")
    quantity: Decimal = Field(..., description="Quantity")
    unit_price: Decimal = Field(..., description="Price per unit")
    tax_percent: Decimal = Field(..., description="Tax rate")
    discount_percent: Decimal = Field(..., description="Percentage discount")
    discount_amount: Decimal = Field(..., description="Fixed discount")
    subtotal: Decimal = Field(..., description="quantity x unit_price, rounded")
    discount: Decimal = Field(..., description="Effective discount, rounded")
    taxable_base: Decimal = Field(..., description="subtotal - discount")
    tax: Decimal = Field(..., description="Tax on the taxable base, rounded")
    total: Decimal = Field(..., description="taxable_base + tax")


class TaxBreakdownDTO(BaseModel):
    tax_percent: Decimal = Field(..., description="Tax rate")
    taxable_base: Decimal = Field(..., description="Sum of taxable bases at this rate")
    tax: Decimal = Field(..., description="Sum of taxes at this rate")


class InvoiceResponseDTO(BaseModel):
    """
    Response DTO for invoice operations

    Read projection of the aggregate with its computed totals.
    """

    invoice_id: str = Field(..., description="Invoice ID")
    tenant_id: str = Field(..., description="Tenant identifier")
    series: str = Field(..., description="Series the invoice is numbered in")
    status: str = Field(..., description="draft, issued, paid or void")
    number: Optional[str] = Field(default=None, description="Formatted fiscal number (set once issued)")
    client_id: str = Field(..., description="Client identifier")
    client_tax_id: Optional[str] = Field(default=None, description="Client tax identification number")
    source_order_id: Optional[str] = Field(default=None, description="Originating work order")
    issue_date: date = Field(..., description="Issue date")
    due_date: Optional[date] = Field(default=None, description="Payment due date")
    is_overdue: bool = Field(..., description="Issued, unpaid and past its due date")

    lines: List[LineResponseDTO] = Field(default_factory=list, description="Lines with derived amounts")
    tax_breakdown: List[TaxBreakdownDTO] = Field(default_factory=list, description="Totals per tax rate")

    base_total: Decimal = Field(..., description="Sum of taxable bases")
    tax_total: Decimal = Field(..., description="Sum of taxes")
    withholding_percent: Decimal = Field(..., description="Withholding rate")
    withholding_amount: Decimal = Field(..., description="Withheld amount")
    grand_total: Decimal = Field(..., description="base_total + tax_total - withholding_amount")

    fingerprint: Optional[str] = Field(default=None, description="SHA-256 fingerprint (uppercase hex)")
    previous_fingerprint: Optional[str] = Field(default=None, description="Fingerprint of the previous document")
    chain_position: Optional[int] = Field(default=None, description="Position in the tenant's hash chain")

    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")
    created_by: str = Field(..., description="User who created the draft")
    issued_at: Optional[datetime] = Field(default=None, description="Issue timestamp")
    issued_by: Optional[str] = Field(default=None, description="User who issued")
    paid_at: Optional[datetime] = Field(default=None, description="Payment timestamp")
    paid_by: Optional[str] = Field(default=None, description="User who recorded the payment")
    voided_at: Optional[datetime] = Field(default=None, description="Void timestamp")
    voided_by: Optional[str] = Field(default=None, description="User who voided")
    void_reason: Optional[str] = Field(default=None, description="Void reason")

    class Config:
        json_schema_extra = {
            "example": {
                "invoice_id": "0b7c4d2e-5f61-4f4e-9a53-3c1f2a9d8e10",
                "tenant_id": "tenant_123",
                "series": "F",
                "status": "issued",
                "number": "F-2026-000001",
                "client_id": "client_42",
                "issue_date": "2026-03-01",
                "is_overdue": False,
                "base_total": "100.00",
                "tax_total": "21.00",
                "withholding_percent": "0",
                "withholding_amount": "0.00",
                "grand_total": "121.00",
                "chain_position": 1
            }
        }


class ChainBreakDTO(BaseModel):
    invoice_id: str = Field(..., description="Document where the break was detected")
    number: str = Field(..., description="Formatted number of that document")
    chain_position: int = Field(..., description="Recorded chain position")
    kind: str = Field(..., description="fingerprint_mismatch, broken_link or position_gap")
    detail: str = Field(..., description="Human readable description")


class ChainVerificationResultDTO(BaseModel):
    """Result of verifying one tenant's hash chain"""

    tenant_id: str = Field(..., description="Tenant identifier")
    documents_checked: int = Field(..., description="Number of fingerprinted documents verified")
    intact: bool = Field(..., description="True if no break was found")
    breaks: List[ChainBreakDTO] = Field(default_factory=list, description="Breaks in chain order")
    halted: bool = Field(..., description="Issuance is halted for the tenant")
    verified_at: datetime = Field(..., description="Verification timestamp")
    duration_seconds: float = Field(..., description="Verification duration")


class ChainAuditSummaryDTO(BaseModel):
    """Result of one audit pass over every tenant's chain"""

    tenants_checked: int = Field(..., description="Number of tenants verified")
    tenants_broken: int = Field(..., description="Tenants with at least one chain break")
    tenants_failed: int = Field(default=0, description="Tenants whose verification could not run")
    results: List[ChainVerificationResultDTO] = Field(default_factory=list, description="Per-tenant results")
    audit_time: datetime = Field(..., description="Start of the audit pass")
    execution_time_ms: int = Field(..., description="Audit duration in milliseconds")
