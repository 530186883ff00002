"""AddLine / EditLine / RemoveLine Use Cases

Line editing of draft invoices. Issued, paid and void invoices reject
every line change with INVALID_STATE.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.invoice_repository import InvoiceRepository
from src.domain.errors import FiscalError, ImmutabilityError, NotFoundError, error_from_exception
from src.domain.invoice import Invoice
from src.domain.line_item import LineItem, create_line_item
from .dtos import (
    AddLineCommandDTO,
    EditLineCommandDTO,
    InvoiceResponseDTO,
    LineItemDTO,
    RemoveLineCommandDTO,
)
from .projections import to_invoice_response

logger = logging.getLogger(__name__)


def line_from_dto(dto: LineItemDTO) -> Result[LineItem]:
    return create_line_item(
        kind=dto.kind,
        description=dto.description,
        quantity=dto.quantity,
        unit_price=dto.unit_price,
        tax_percent=dto.tax_percent,
        discount_percent=dto.discount_percent,
        discount_amount=dto.discount_amount,
    )


async def _load_locked(invoice_repo: InvoiceRepository, tenant_id: str, invoice_id: str) -> Invoice:
    invoice = await invoice_repo.load(invoice_id, tenant_id, for_update=True)
    if invoice is None:
        raise NotFoundError(f"Invoice {invoice_id} not found for tenant {tenant_id}")
    return invoice


def _failed(code: str, message: str, e: Exception) -> Result:
    return Return.err(Error(code=code, message=message, reason=str(e)))


class AddLine:
    """
    Use Case: Append a line to a draft invoice

    Flow:
    1. Validate the line
    2. Load and lock the invoice
    3. Append (draft only), save, commit
    """

    def __init__(self, uow: UnitOfWork, invoice_repo: InvoiceRepository):
        self.uow = uow
        self.invoice_repo = invoice_repo

    async def execute(self, command: AddLineCommandDTO) -> Result[InvoiceResponseDTO]:
        line_result = line_from_dto(command.line)
        if line_result.is_err():
            return line_result

        try:
            invoice = await _load_locked(self.invoice_repo, command.tenant_id, command.invoice_id)
            position = invoice.add_line(line_result.value)
            await self.invoice_repo.save(invoice)
            await self.uow.commit()

            logger.info(f"Line {position} added to draft {invoice.id} by {command.user_id}")
            return Return.ok(to_invoice_response(invoice))

        except FiscalError as e:
            await self.uow.rollback()
            if isinstance(e, ImmutabilityError):
                logger.error(f"Add line to invoice {command.invoice_id} blocked: {e.code} {e.message}")
            else:
                logger.warning(f"Add line to invoice {command.invoice_id} rejected: {e.message}")
            return Return.err(error_from_exception(e))
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Add line to invoice {command.invoice_id} failed: {e}", exc_info=True)
            return _failed("ADD_LINE_FAILED", "Failed to add line", e)


class EditLine:
    """Use Case: Replace the line at a position of a draft invoice"""

    def __init__(self, uow: UnitOfWork, invoice_repo: InvoiceRepository):
        self.uow = uow
        self.invoice_repo = invoice_repo

    async def execute(self, command: EditLineCommandDTO) -> Result[InvoiceResponseDTO]:
        line_result = line_from_dto(command.line)
        if line_result.is_err():
            return line_result

        try:
            invoice = await _load_locked(self.invoice_repo, command.tenant_id, command.invoice_id)
            invoice.edit_line(command.position, line_result.value)
            await self.invoice_repo.save(invoice)
            await self.uow.commit()

            logger.info(f"Line {command.position} of draft {invoice.id} edited by {command.user_id}")
            return Return.ok(to_invoice_response(invoice))

        except FiscalError as e:
            await self.uow.rollback()
            if isinstance(e, ImmutabilityError):
                logger.error(f"Edit line of invoice {command.invoice_id} blocked: {e.code} {e.message}")
            else:
                logger.warning(f"Edit line of invoice {command.invoice_id} rejected: {e.message}")
            return Return.err(error_from_exception(e))
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Edit line of invoice {command.invoice_id} failed: {e}", exc_info=True)
            return _failed("EDIT_LINE_FAILED", "Failed to edit line", e)


class RemoveLine:
    """Use Case: Remove the line at a position of a draft invoice"""

    def __init__(self, uow: UnitOfWork, invoice_repo: InvoiceRepository):
        self.uow = uow
        self.invoice_repo = invoice_repo

    async def execute(self, command: RemoveLineCommandDTO) -> Result[InvoiceResponseDTO]:
        try:
            invoice = await _load_locked(self.invoice_repo, command.tenant_id, command.invoice_id)
            invoice.remove_line(command.position)
            await self.invoice_repo.save(invoice)
            await self.uow.commit()

            logger.info(f"Line {command.position} removed from draft {invoice.id} by {command.user_id}")
            return Return.ok(to_invoice_response(invoice))

        except FiscalError as e:
            await self.uow.rollback()
            if isinstance(e, ImmutabilityError):
                logger.error(f"Remove line from invoice {command.invoice_id} blocked: {e.code} {e.message}")
            else:
                logger.warning(f"Remove line from invoice {command.invoice_id} rejected: {e.message}")
            return Return.err(error_from_exception(e))
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Remove line from invoice {command.invoice_id} failed: {e}", exc_info=True)
            return _failed("REMOVE_LINE_FAILED", "Failed to remove line", e)
