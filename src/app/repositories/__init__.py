from .invoice_repository import InvoiceRepository
from .sequence_counter_repository import SequenceCounterRepository
from .fiscal_chain_repository import ChainHead, FiscalChainRepository

__all__ = [
    "InvoiceRepository",
    "SequenceCounterRepository",
    "ChainHead",
    "FiscalChainRepository",
]
