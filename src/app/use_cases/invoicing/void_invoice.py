"""VoidInvoice Use Case

Voids an issued invoice. The invoice keeps its number and fingerprint, so
the hash chain stays verifiable.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.invoice_repository import InvoiceRepository
from src.domain.errors import FiscalError, ImmutabilityError, NotFoundError, error_from_exception
from .dtos import VoidInvoiceCommandDTO, InvoiceResponseDTO
from .projections import to_invoice_response

logger = logging.getLogger(__name__)


class VoidInvoice:
    """
    Use Case: Void an issued invoice

    Business Rules:
    1. Only issued invoices can be voided (paid ones need a rectifying document)
    2. A non-blank reason is required
    3. Nothing is deleted
    """

    def __init__(self, uow: UnitOfWork, invoice_repo: InvoiceRepository):
        self.uow = uow
        self.invoice_repo = invoice_repo

    async def execute(self, command: VoidInvoiceCommandDTO) -> Result[InvoiceResponseDTO]:
        try:
            invoice = await self.invoice_repo.load(command.invoice_id, command.tenant_id, for_update=True)
            if invoice is None:
                raise NotFoundError(f"Invoice {command.invoice_id} not found for tenant {command.tenant_id}")

            invoice.void(command.reason, command.user_id)
            await self.invoice_repo.save(invoice)
            await self.uow.commit()

            logger.info(f"Invoice {invoice.id} voided by {command.user_id}: {invoice.void_reason}")
            return Return.ok(to_invoice_response(invoice))

        except FiscalError as e:
            await self.uow.rollback()
            if isinstance(e, ImmutabilityError):
                logger.error(f"Void of invoice {command.invoice_id} blocked: {e.code} {e.message}")
            else:
                logger.warning(f"Void of invoice {command.invoice_id} rejected: {e.message}")
            return Return.err(error_from_exception(e))
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Void of invoice {command.invoice_id} failed: {e}", exc_info=True)
            return Return.err(
                Error(
                    code="VOID_INVOICE_FAILED",
                    message="Failed to void invoice",
                    reason=str(e),
                )
            )
