"""Request schemas for Invoice API

Pydantic models for incoming HTTP requests. Identifiers are checked here;
amounts, rates and reasons are checked by the domain so their violations
come back as VALIDATION_ERROR (400).
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field


class LineRequestSchema(BaseModel):
    kind: str = Field(..., description="labour, part, service or other")
    description: str = Field(..., description="Line description")
    quantity: Decimal = Field(..., description="Quantity (must be > 0)")
    unit_price: Decimal = Field(..., description="Price per unit (must be >= 0)")
    tax_percent: Decimal = Field(..., description="Tax rate between 0 and 100")
    discount_percent: Optional[Decimal] = Field(default=None, description="Percentage discount")
    discount_amount: Optional[Decimal] = Field(default=None, description="Fixed discount")

    class Config:
        json_schema_extra = {
            "example": {
                "kind": "part",
                "description": "Oil filter",
                "quantity": "1",
                "unit_price": "100.00",
                "tax_percent": "21"
            }
        }


class CreateDraftRequestSchema(BaseModel):
    """
    Request schema for creating a draft invoice

    Used for POST /invoices/drafts endpoint.
    """

    tenant_id: str = Field(..., min_length=1, description="Tenant identifier (required, non-empty)")
    client_id: str = Field(..., min_length=1, description="Client identifier (required, non-empty)")
    created_by: str = Field(..., min_length=1, description="User creating the draft")
    series: Optional[str] = Field(default=None, description="Series code (1-3 letters)")
    client_tax_id: Optional[str] = Field(default=None, description="Client tax identification number")
    source_order_id: Optional[str] = Field(default=None, description="Originating work order")
    issue_date: Optional[date] = Field(default=None, description="Planned issue date")
    due_date: Optional[date] = Field(default=None, description="Payment due date")
    withholding_percent: Optional[Decimal] = Field(default=None, description="Withholding rate")
    lines: List[LineRequestSchema] = Field(default_factory=list, description="Initial lines")

    class Config:
        json_schema_extra = {
            "example": {
                "tenant_id": "tenant_123",
                "client_id": "client_42",
                "created_by": "user_7",
                "series": "F",
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


class LineChangeRequestSchema(BaseModel):
    """Request schema for POST /invoices/{id}/lines and PUT /invoices/{id}/lines/{position}"""

    tenant_id: str = Field(..., min_length=1, description="Tenant identifier")
    user_id: str = Field(..., min_length=1, description="User editing the draft")
    line: LineRequestSchema = Field(..., description="Line values")


class IssueRequestSchema(BaseModel):
    tenant_id: str = Field(..., min_length=1, description="Tenant identifier")
    user_id: str = Field(..., min_length=1, description="User issuing the invoice")
    issue_date: Optional[date] = Field(default=None, description="Issue date within the current fiscal year (defaults to today)")


class PayRequestSchema(BaseModel):
    tenant_id: str = Field(..., min_length=1, description="Tenant identifier")
    user_id: str = Field(..., min_length=1, description="User recording the payment")
    paid_at: Optional[datetime] = Field(default=None, description="Payment timestamp")


class VoidRequestSchema(BaseModel):
    tenant_id: str = Field(..., min_length=1, description="Tenant identifier")
    user_id: str = Field(..., min_length=1, description="User voiding the invoice")
    reason: str = Field(..., description="Why the invoice is voided")
