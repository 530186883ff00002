"""Fiscal Engine Errors

Typed error taxonomy of the invoicing core. Every error carries a stable
``code`` so use cases can turn it into a ``libs.result.Error`` and the API
can map it to an HTTP status without inspecting messages.
"""

from typing import Optional

from libs.result import Error


class FiscalError(Exception):
    """Base class for all errors raised by the fiscal core"""

    code: str = "FISCAL_ERROR"
    retryable: bool = False

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason


class ValidationError(FiscalError):
    """Malformed input to a value constructor (caller must correct it)"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, reason=f"field={field}" if field else None)
        self.field = field


class NotFoundError(FiscalError):
    """Invoice does not exist for the given tenant"""

    code = "INVOICE_NOT_FOUND"


class InvalidStateError(FiscalError):
    """Operation is not legal for the current lifecycle state"""

    code = "INVALID_STATE"


class BusinessRuleError(FiscalError):
    """Preconditions of a transition are not met"""

    code = "BUSINESS_RULE_VIOLATION"


class ImmutabilityError(FiscalError):
    """Attempted mutation of a frozen fiscal field"""

    code = "IMMUTABILITY_VIOLATION"


class AllocationError(FiscalError):
    """Sequence counter lock timed out or storage failed during allocation"""

    code = "ALLOCATION_FAILED"
    retryable = True


class IntegrityViolationError(FiscalError):
    """Hash chain mismatch, or issuance attempted on a halted tenant ledger"""

    code = "INTEGRITY_VIOLATION"


class RepositoryError(FiscalError):
    """Storage failure wrapped so driver errors never leave the adapters"""

    code = "STORAGE_ERROR"


class LockTimeoutError(RepositoryError):
    """A row lock could not be obtained in time"""

    code = "LOCK_TIMEOUT"
    retryable = True


def error_from_exception(exc: FiscalError) -> Error:
    """Convert a fiscal exception into a use-case Result error"""
    return Error(code=exc.code, message=exc.message, reason=exc.reason)
