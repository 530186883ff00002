"""Invoice Tables

Persistence rows of the Invoice aggregate. Mapped to and from
src.domain.invoice.Invoice by the SQLAlchemy invoice repository.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from src.adapter.models.base import BaseModel, generate_uuid


class InvoiceRow(BaseModel, table=True):
    """
    Invoice row

    Rules enforced by the database:
    - (tenant_id, number) is unique
    - (tenant_id, number_series, number_year, number_sequence) is unique
    - (tenant_id, chain_position) is unique: one document per chain slot
    """

    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint('tenant_id', 'number', name='uq_invoices_tenant_number'),
        UniqueConstraint(
            'tenant_id', 'number_series', 'number_year', 'number_sequence',
            name='uq_invoices_tenant_partition_sequence',
        ),
        UniqueConstraint('tenant_id', 'chain_position', name='uq_invoices_tenant_chain_position'),
        Index('ix_invoices_tenant_status', 'tenant_id', 'status'),
    )

    id: str = Field(
        default_factory=generate_uuid,
        sa_column=Column(String(36), primary_key=True),
        description="Invoice ID (UUID)"
    )

    tenant_id: str = Field(
        sa_column=Column(String(64), nullable=False, index=True),
        description="Tenant ID"
    )

    series: str = Field(
        sa_column=Column(String(3), nullable=False),
        description="Series the invoice will be numbered in"
    )

    status: str = Field(
        sa_column=Column(String(16), nullable=False),
        description="Lifecycle status (draft, issued, paid, void)"
    )

    client_id: str = Field(
        sa_column=Column(String(64), nullable=False),
        description="Client ID"
    )

    client_tax_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(32), nullable=True),
        description="Client tax identification number"
    )

    source_order_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(64), nullable=True),
        description="Work order the invoice was generated from"
    )

    issue_date: date = Field(description="Issue date")

    due_date: Optional[date] = Field(default=None, description="Payment due date")

    withholding_percent: Decimal = Field(
        sa_column=Column(Numeric(7, 4), nullable=False, default=0),
        description="Withholding tax rate applied to the taxable base"
    )

    # Frozen once issued
    number: Optional[str] = Field(
        default=None,
        sa_column=Column(String(64), nullable=True),
        description="Formatted fiscal number, authoritative (e.g. F-2026-000123)"
    )

    number_series: Optional[str] = Field(
        default=None,
        sa_column=Column(String(10), nullable=True),
        description="Series part of the number (advisory for legacy numbers)"
    )

    number_year: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, nullable=True),
        description="Year part of the number"
    )

    number_sequence: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, nullable=True),
        description="Sequence part of the number"
    )

    fingerprint: Optional[str] = Field(
        default=None,
        sa_column=Column(String(64), nullable=True),
        description="SHA-256 fingerprint (uppercase hex)"
    )

    previous_fingerprint: Optional[str] = Field(
        default=None,
        sa_column=Column(String(64), nullable=True),
        description="Fingerprint of the tenant's previous issued document"
    )

    chain_position: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, nullable=True),
        description="1-based position in the tenant's hash chain"
    )

    # Audit
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    created_by: str = Field(sa_column=Column(String(64), nullable=False))
    issued_at: Optional[datetime] = Field(default=None)
    issued_by: Optional[str] = Field(default=None, sa_column=Column(String(64), nullable=True))
    paid_at: Optional[datetime] = Field(default=None)
    paid_by: Optional[str] = Field(default=None, sa_column=Column(String(64), nullable=True))
    voided_at: Optional[datetime] = Field(default=None)
    voided_by: Optional[str] = Field(default=None, sa_column=Column(String(64), nullable=True))
    void_reason: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    class Config:
        """SQLModel configuration"""
        json_schema_extra = {
            "example": {
                "id": "0b7c4d2e-5f61-4f4e-9a53-3c1f2a9d8e10",
                "tenant_id": "tenant_123",
                "series": "F",
                "status": "issued",
                "client_id": "client_42",
                "issue_date": "2026-03-01",
                "number": "F-2026-000001",
                "chain_position": 1,
                "created_by": "user_7"
            }
        }


class InvoiceLineRow(BaseModel, table=True):
    """
    Invoice line row

    Lines are keyed by (invoice_id, position) and rewritten as a whole while
    the invoice is a draft. Once issued they are never touched again.
    """

    __tablename__ = "invoice_lines"

    invoice_id: str = Field(
        sa_column=Column(String(36), ForeignKey("invoices.id"), primary_key=True),
        description="Owning invoice"
    )

    position: int = Field(
        sa_column=Column(Integer, primary_key=True, autoincrement=False),
        description="1-based line position"
    )

    kind: str = Field(
        sa_column=Column(String(16), nullable=False),
        description="labour, part, service or other"
    )

    description: str = Field(
        sa_column=Column(String(255), nullable=False),
        description="Line description"
    )

    quantity: Decimal = Field(
        sa_column=Column(Numeric(18, 6), nullable=False),
        description="Quantity (> 0)"
    )

    unit_price: Decimal = Field(
        sa_column=Column(Numeric(18, 6), nullable=False),
        description="Price per unit (>= 0)"
    )

    tax_percent: Decimal = Field(
        sa_column=Column(Numeric(7, 4), nullable=False),
        description="Tax rate"
    )

    discount_percent: Decimal = Field(
        sa_column=Column(Numeric(7, 4), nullable=False, default=0),
        description="Percentage discount"
    )

    discount_amount: Decimal = Field(
        sa_column=Column(Numeric(18, 6), nullable=False, default=0),
        description="Fixed discount"
    )
