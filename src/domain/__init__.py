from .errors import (
    FiscalError,
    ValidationError,
    NotFoundError,
    InvalidStateError,
    BusinessRuleError,
    ImmutabilityError,
    AllocationError,
    IntegrityViolationError,
    RepositoryError,
    LockTimeoutError,
)
from .money import Money, Percentage
from .document_number import (
    StructuredNumber,
    OpaqueNumber,
    FiscalDocumentNumber,
    parse_document_number,
    format_number,
)
from .line_item import LineItem, LineKind, create_line_item
from .totals import InvoiceTotals, LineAmounts, TaxBreakdown, calculate_line, calculate_totals
from .fingerprint import (
    FingerprintFields,
    ChainLink,
    ChainBreak,
    ChainBreakKind,
    compute_fingerprint,
    verify_chain,
)
from .invoice import Invoice, InvoiceStatus

__all__ = [
    "FiscalError",
    "ValidationError",
    "NotFoundError",
    "InvalidStateError",
    "BusinessRuleError",
    "ImmutabilityError",
    "AllocationError",
    "IntegrityViolationError",
    "RepositoryError",
    "LockTimeoutError",
    "Money",
    "Percentage",
    "StructuredNumber",
    "OpaqueNumber",
    "FiscalDocumentNumber",
    "parse_document_number",
    "format_number",
    "LineItem",
    "LineKind",
    "create_line_item",
    "InvoiceTotals",
    "LineAmounts",
    "TaxBreakdown",
    "calculate_line",
    "calculate_totals",
    "FingerprintFields",
    "ChainLink",
    "ChainBreak",
    "ChainBreakKind",
    "compute_fingerprint",
    "verify_chain",
    "Invoice",
    "InvoiceStatus",
]
