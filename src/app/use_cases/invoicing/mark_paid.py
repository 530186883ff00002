"""MarkInvoicePaid Use Case

Records the payment of an issued invoice. Marking an already paid invoice
again succeeds without changing anything.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.invoice_repository import InvoiceRepository
from src.domain.errors import FiscalError, ImmutabilityError, NotFoundError, error_from_exception
from .dtos import MarkPaidCommandDTO, InvoiceResponseDTO
from .projections import to_invoice_response

logger = logging.getLogger(__name__)


class MarkInvoicePaid:
    """
    Use Case: Mark an issued invoice as paid

    Business Rules:
    1. Only issued invoices can be paid
    2. Paid again -> no-op success
    3. Draft or void -> INVALID_STATE
    """

    def __init__(self, uow: UnitOfWork, invoice_repo: InvoiceRepository):
        self.uow = uow
        self.invoice_repo = invoice_repo

    async def execute(self, command: MarkPaidCommandDTO) -> Result[InvoiceResponseDTO]:
        try:
            invoice = await self.invoice_repo.load(command.invoice_id, command.tenant_id, for_update=True)
            if invoice is None:
                raise NotFoundError(f"Invoice {command.invoice_id} not found for tenant {command.tenant_id}")

            changed = invoice.mark_paid(command.user_id, paid_at=command.paid_at)
            if not changed:
                await self.uow.rollback()
                logger.info(f"Invoice {invoice.id} already paid; nothing to do")
                return Return.ok(to_invoice_response(invoice))

            await self.invoice_repo.save(invoice)
            await self.uow.commit()

            logger.info(f"Invoice {invoice.id} marked as paid by {command.user_id}")
            return Return.ok(to_invoice_response(invoice))

        except FiscalError as e:
            await self.uow.rollback()
            if isinstance(e, ImmutabilityError):
                logger.error(f"Payment of invoice {command.invoice_id} blocked: {e.code} {e.message}")
            else:
                logger.warning(f"Payment of invoice {command.invoice_id} rejected: {e.message}")
            return Return.err(error_from_exception(e))
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Payment of invoice {command.invoice_id} failed: {e}", exc_info=True)
            return Return.err(
                Error(
                    code="MARK_PAID_FAILED",
                    message="Failed to mark invoice as paid",
                    reason=str(e),
                )
            )
