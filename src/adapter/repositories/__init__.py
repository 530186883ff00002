from .invoice_repository import SqlAlchemyInvoiceRepository
from .sequence_counter_repository import SqlAlchemySequenceCounterRepository
from .fiscal_chain_repository import SqlAlchemyFiscalChainRepository
from .in_memory import (
    InMemoryInvoiceRepository,
    InMemorySequenceCounterRepository,
    InMemoryFiscalChainRepository,
)

__all__ = [
    "SqlAlchemyInvoiceRepository",
    "SqlAlchemySequenceCounterRepository",
    "SqlAlchemyFiscalChainRepository",
    "InMemoryInvoiceRepository",
    "InMemorySequenceCounterRepository",
    "InMemoryFiscalChainRepository",
]
