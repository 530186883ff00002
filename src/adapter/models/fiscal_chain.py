"""Fiscal Chain Head Table

One row per tenant. Locked by every issuance of the tenant, so the chain
is extended by one transaction at a time.
"""

from datetime import datetime
from typing import Optional
from sqlmodel import Field, Column
from sqlalchemy import Boolean, CheckConstraint, Integer, String, Text
from src.adapter.models.base import BaseModel


class FiscalChainHead(BaseModel, table=True):
    """
    Fiscal Chain Head - per-tenant issuance serializer and halt switch

    Rules:
    - length equals the chain position of the tenant's latest issued document
    - halted=True blocks all issuance until manually cleared
    """

    __tablename__ = "fiscal_chains"
    __table_args__ = (
        CheckConstraint('length >= 0', name='chain_length_non_negative'),
    )

    tenant_id: str = Field(
        sa_column=Column(String(64), primary_key=True),
        description="Tenant ID (one chain per tenant)"
    )

    length: int = Field(
        sa_column=Column(Integer, nullable=False, default=0),
        description="Number of documents in the chain"
    )

    halted: bool = Field(
        sa_column=Column(Boolean, nullable=False, default=False),
        description="Issuance halted after an integrity violation"
    )

    halt_reason: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
        description="Why issuance was halted"
    )

    halted_at: Optional[datetime] = Field(
        default=None,
        description="When issuance was halted"
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last update timestamp"
    )
