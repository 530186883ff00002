"""Invoice Aggregate

The fiscal invoice and its lifecycle state machine.

Domain Rules:
- Lines can only be added, edited or removed while the invoice is a draft
- An invoice is issued only from draft, with at least one line and no number
- number is set iff the invoice has been issued (issued, paid or void);
  a voided invoice keeps its number forever
- fingerprint is set iff number is set
- lines, number, fingerprint, previous_fingerprint and chain_position are
  frozen: they are written once by issue() and direct assignment raises
  ImmutabilityError
- No transition ever deletes the invoice

Transitions:
    DRAFT -> ISSUED -> PAID
               |
               v
              VOID
"""

import logging
import uuid
from datetime import date, datetime
from enum import Enum
from typing import Iterable, Optional, Tuple

from libs.result import Error, Result, Return
from src.domain.document_number import FiscalDocumentNumber, format_number, validate_series
from src.domain.errors import (
    BusinessRuleError,
    ImmutabilityError,
    InvalidStateError,
    ValidationError,
)
from src.domain.fingerprint import FIELD_DELIMITER, FingerprintFields
from src.domain.line_item import LineItem
from src.domain.money import Numeric, Percentage
from src.domain.totals import calculate_totals

logger = logging.getLogger(__name__)


class InvoiceStatus(str, Enum):
    """Invoice lifecycle states"""
    DRAFT = "draft"
    ISSUED = "issued"
    PAID = "paid"
    VOID = "void"


NUMBERED_STATES = frozenset({InvoiceStatus.ISSUED, InvoiceStatus.PAID, InvoiceStatus.VOID})


def _frozen_field(name: str) -> property:
    private = f"_{name}"

    def getter(self):
        return getattr(self, private)

    def setter(self, value):
        logger.error(f"Rejected direct write to frozen field '{name}' of invoice {self.id}")
        raise ImmutabilityError(
            f"'{name}' of invoice {self.id} cannot be assigned directly",
            reason="frozen fiscal field",
        )

    return property(getter, setter)


def _require_text(value: Optional[str], field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required", field)
    return value.strip()


def _fingerprint_text(value: str, field: str) -> str:
    # Free text that ends up in the canonical fingerprint payload
    if FIELD_DELIMITER in value:
        raise ValidationError(f"{field} must not contain '{FIELD_DELIMITER}'", field)
    return value


class Invoice:
    """
    Invoice - aggregate root of the fiscal core

    Owns its lines exclusively. One instance per request: it is always
    reloaded from the repository and never shared between operations.
    """

    lines = _frozen_field("lines")
    number = _frozen_field("number")
    fingerprint = _frozen_field("fingerprint")
    previous_fingerprint = _frozen_field("previous_fingerprint")
    chain_position = _frozen_field("chain_position")

    def __init__(
        self,
        *,
        id: str,
        tenant_id: str,
        series: str,
        client_id: str,
        issue_date: date,
        created_by: str,
        status: InvoiceStatus = InvoiceStatus.DRAFT,
        lines: Iterable[LineItem] = (),
        number: Optional[FiscalDocumentNumber] = None,
        client_tax_id: Optional[str] = None,
        source_order_id: Optional[str] = None,
        due_date: Optional[date] = None,
        withholding_percent: Optional[Percentage] = None,
        fingerprint: Optional[str] = None,
        previous_fingerprint: Optional[str] = None,
        chain_position: Optional[int] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
        issued_at: Optional[datetime] = None,
        issued_by: Optional[str] = None,
        paid_at: Optional[datetime] = None,
        paid_by: Optional[str] = None,
        voided_at: Optional[datetime] = None,
        voided_by: Optional[str] = None,
        void_reason: Optional[str] = None,
    ):
        self.id = id
        self.tenant_id = tenant_id
        self.series = series
        self.client_id = client_id
        self.client_tax_id = client_tax_id
        self.source_order_id = source_order_id
        self.issue_date = issue_date
        self.due_date = due_date
        self.withholding_percent = withholding_percent or Percentage.zero()
        self._status = InvoiceStatus(status)
        self._lines: Tuple[LineItem, ...] = tuple(lines)
        self._number = number
        self._fingerprint = fingerprint
        self._previous_fingerprint = previous_fingerprint
        self._chain_position = chain_position
        self.created_at = created_at or datetime.utcnow()
        self.updated_at = updated_at or self.created_at
        self.created_by = created_by
        self.issued_at = issued_at
        self.issued_by = issued_by
        self.paid_at = paid_at
        self.paid_by = paid_by
        self.voided_at = voided_at
        self.voided_by = voided_by
        self.void_reason = void_reason

    @classmethod
    def create_draft(
        cls,
        *,
        tenant_id: str,
        client_id: str,
        created_by: str,
        series: str,
        lines: Iterable[LineItem] = (),
        client_tax_id: Optional[str] = None,
        source_order_id: Optional[str] = None,
        issue_date: Optional[date] = None,
        due_date: Optional[date] = None,
        withholding_percent: Optional[Numeric] = None,
        invoice_id: Optional[str] = None,
    ) -> Result["Invoice"]:
        """
        Create a new draft invoice

        Lines may be empty; they can be added while the invoice is a draft.

        Returns:
            Result[Invoice]: the draft, or a VALIDATION_ERROR
        """
        try:
            lines = tuple(lines)
            for line in lines:
                if not isinstance(line, LineItem):
                    raise ValidationError("lines must be LineItem instances", "lines")
            invoice = cls(
                id=invoice_id or str(uuid.uuid4()),
                tenant_id=_fingerprint_text(_require_text(tenant_id, "tenant_id"), "tenant_id"),
                series=validate_series(series),
                client_id=_require_text(client_id, "client_id"),
                created_by=_require_text(created_by, "created_by"),
                client_tax_id=(
                    _fingerprint_text(client_tax_id.strip().upper(), "client_tax_id") if client_tax_id else None
                ),
                source_order_id=source_order_id,
                issue_date=issue_date or date.today(),
                due_date=due_date,
                withholding_percent=(
                    Percentage.of(withholding_percent) if withholding_percent is not None else Percentage.zero()
                ),
                lines=lines,
            )
        except ValidationError as e:
            return Return.err(Error(code=e.code, message=e.message, reason=e.reason))
        return Return.ok(invoice)

    # ==================== STATE ====================

    @property
    def status(self) -> InvoiceStatus:
        return self._status

    @status.setter
    def status(self, value):
        raise InvalidStateError(
            f"status of invoice {self.id} changes only through lifecycle transitions"
        )

    def is_draft(self) -> bool:
        return self._status == InvoiceStatus.DRAFT

    def is_numbered(self) -> bool:
        return self._status in NUMBERED_STATES

    def can_issue(self) -> bool:
        return self.is_draft() and len(self._lines) > 0 and self._number is None

    def can_modify(self) -> bool:
        return self.is_draft()

    def can_void(self) -> bool:
        return self._status == InvoiceStatus.ISSUED

    def is_overdue(self, today: Optional[date] = None) -> bool:
        """Issued, unpaid invoice past its due date"""
        if self._status != InvoiceStatus.ISSUED or self.due_date is None:
            return False
        return (today or date.today()) > self.due_date

    # ==================== DRAFT EDITING ====================

    def _require_draft(self, operation: str) -> None:
        if not self.is_draft():
            raise InvalidStateError(
                f"Cannot {operation} invoice {self.id} in status '{self._status.value}'",
                reason="lines are editable only while the invoice is a draft",
            )

    def _check_position(self, position: int) -> int:
        if not isinstance(position, int) or not 1 <= position <= len(self._lines):
            raise ValidationError(
                f"line position {position} out of range 1..{len(self._lines)}", "position"
            )
        return position - 1

    def add_line(self, line: LineItem) -> int:
        """Append a line, returning its 1-based position"""
        self._require_draft("add a line to")
        if not isinstance(line, LineItem):
            raise ValidationError("line must be a LineItem", "line")
        self._lines = self._lines + (line,)
        self._touch()
        return len(self._lines)

    def edit_line(self, position: int, line: LineItem) -> None:
        self._require_draft("edit a line of")
        if not isinstance(line, LineItem):
            raise ValidationError("line must be a LineItem", "line")
        index = self._check_position(position)
        lines = list(self._lines)
        lines[index] = line
        self._lines = tuple(lines)
        self._touch()

    def remove_line(self, position: int) -> LineItem:
        self._require_draft("remove a line from")
        index = self._check_position(position)
        removed = self._lines[index]
        self._lines = self._lines[:index] + self._lines[index + 1:]
        self._touch()
        return removed

    # ==================== TRANSITIONS ====================

    def ensure_issuable(self) -> None:
        """Raise BusinessRuleError unless the invoice can be issued"""
        if not self.is_draft():
            raise BusinessRuleError(
                f"Invoice {self.id} cannot be issued from status '{self._status.value}'"
            )
        if not self._lines:
            raise BusinessRuleError(f"Invoice {self.id} has no lines")
        if self._number is not None:
            raise BusinessRuleError(
                f"Invoice {self.id} already has number {format_number(self._number)}"
            )

    def issue(
        self,
        *,
        number: FiscalDocumentNumber,
        fingerprint: str,
        previous_fingerprint: Optional[str],
        chain_position: int,
        user_id: str,
        issued_at: Optional[datetime] = None,
    ) -> None:
        """
        DRAFT -> ISSUED

        The only path that writes the frozen fields. The number and the
        fingerprint are produced by the sequence allocator and the hash chain
        before this is called.
        """
        self.ensure_issuable()
        if not fingerprint:
            raise BusinessRuleError(f"Invoice {self.id} cannot be issued without a fingerprint")
        if not isinstance(chain_position, int) or chain_position < 1:
            raise BusinessRuleError(f"Invalid chain position {chain_position} for invoice {self.id}")
        user_id = _require_text(user_id, "user_id")

        self._number = number
        self._fingerprint = fingerprint
        self._previous_fingerprint = previous_fingerprint
        self._chain_position = chain_position
        self._status = InvoiceStatus.ISSUED
        self.issued_by = user_id
        self.issued_at = issued_at or datetime.utcnow()
        self._touch(self.issued_at)

    def mark_paid(self, user_id: str, paid_at: Optional[datetime] = None) -> bool:
        """
        ISSUED -> PAID

        Returns:
            True if the status changed, False if the invoice was already paid
        """
        if self._status == InvoiceStatus.PAID:
            return False
        if self._status != InvoiceStatus.ISSUED:
            raise InvalidStateError(
                f"Only issued invoices can be marked as paid; invoice {self.id} is '{self._status.value}'"
            )
        self.paid_by = _require_text(user_id, "user_id")
        self.paid_at = paid_at or datetime.utcnow()
        self._status = InvoiceStatus.PAID
        self._touch(self.paid_at)
        return True

    def void(self, reason: str, user_id: str, voided_at: Optional[datetime] = None) -> None:
        """
        ISSUED -> VOID

        Voiding annotates the invoice; its number and fingerprint stay on
        record so the hash chain remains verifiable. Paid invoices need a
        rectifying document instead.
        """
        if not self.can_void():
            raise InvalidStateError(
                f"Only issued invoices can be voided; invoice {self.id} is '{self._status.value}'"
            )
        reason = _require_text(reason, "reason")
        self.voided_by = _require_text(user_id, "user_id")
        self.void_reason = reason
        self.voided_at = voided_at or datetime.utcnow()
        self._status = InvoiceStatus.VOID
        self._touch(self.voided_at)

    # ==================== INVARIANTS ====================

    def check_invariants(self) -> None:
        """Raise InvalidStateError if the aggregate is not in a persistable shape"""
        numbered = self.is_numbered()
        if numbered and self._number is None:
            raise InvalidStateError(f"Invoice {self.id} is '{self._status.value}' without a number")
        if not numbered and self._number is not None:
            raise InvalidStateError(f"Draft invoice {self.id} must not carry a number")
        if (self._fingerprint is None) != (self._number is None):
            raise InvalidStateError(f"Invoice {self.id} must have a fingerprint iff it has a number")
        if numbered and not self._lines:
            raise InvalidStateError(f"Issued invoice {self.id} has no lines")
        if self._status == InvoiceStatus.VOID and not self.void_reason:
            raise InvalidStateError(f"Void invoice {self.id} has no void reason")

    def frozen_snapshot(self) -> tuple:
        """Values that must never change once the invoice is issued"""
        return (
            format_number(self._number) if self._number is not None else None,
            self._fingerprint,
            self._previous_fingerprint,
            self._chain_position,
            self._lines,
            self.issue_date,
            self.client_tax_id,
            self.withholding_percent,
        )

    def _touch(self, when: Optional[datetime] = None) -> None:
        self.updated_at = when or datetime.utcnow()

    def __repr__(self) -> str:
        number = format_number(self._number) if self._number is not None else None
        return f"Invoice(id={self.id!r}, tenant_id={self.tenant_id!r}, status={self._status.value!r}, number={number!r})"


def fingerprint_fields_for(invoice: Invoice, number: FiscalDocumentNumber) -> FingerprintFields:
    """Fiscal fields of an invoice as they will be bound by its fingerprint"""
    totals = calculate_totals(invoice.lines, invoice.withholding_percent)
    return FingerprintFields(
        tenant_id=invoice.tenant_id,
        number=format_number(number),
        issue_date=invoice.issue_date,
        taxable_base=totals.base_total,
        tax_amount=totals.tax_total,
        grand_total=totals.grand_total,
        client_tax_id=invoice.client_tax_id,
    )
