from .base import BaseModel, generate_uuid
from .invoice import InvoiceRow, InvoiceLineRow
from .sequence_counter import SequenceCounter
from .fiscal_chain import FiscalChainHead

__all__ = [
    "BaseModel",
    "generate_uuid",
    "InvoiceRow",
    "InvoiceLineRow",
    "SequenceCounter",
    "FiscalChainHead",
]
