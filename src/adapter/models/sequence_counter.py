"""Sequence Counter Table

One row per numbering partition (tenant, series, fiscal year).
"""

from datetime import datetime
from sqlmodel import Field, Column
from sqlalchemy import CheckConstraint, Integer, String
from src.adapter.models.base import BaseModel


class SequenceCounter(BaseModel, table=True):
    """
    Sequence Counter - last allocated fiscal sequence of a partition

    Rules:
    - Created by the first allocation of the partition (upsert)
    - Only ever incremented, inside the issuing transaction
    - Never decremented or deleted
    """

    __tablename__ = "sequence_counters"
    __table_args__ = (
        CheckConstraint('last_sequence >= 0', name='last_sequence_non_negative'),
    )

    tenant_id: str = Field(
        sa_column=Column(String(64), primary_key=True),
        description="Tenant ID"
    )

    series: str = Field(
        sa_column=Column(String(3), primary_key=True),
        description="Series code (1-3 uppercase letters)"
    )

    fiscal_year: int = Field(
        sa_column=Column(Integer, primary_key=True, autoincrement=False),
        description="Fiscal year of the partition"
    )

    last_sequence: int = Field(
        sa_column=Column(Integer, nullable=False, default=0),
        description="Last allocated sequence (0 = none yet)"
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last allocation timestamp"
    )

    class Config:
        """SQLModel configuration"""
        json_schema_extra = {
            "example": {
                "tenant_id": "tenant_123",
                "series": "F",
                "fiscal_year": 2026,
                "last_sequence": 123,
                "updated_at": "2026-03-01T10:00:00Z"
            }
        }
