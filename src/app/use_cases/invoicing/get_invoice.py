"""GetInvoice Use Case

Read projection of one invoice with its computed totals.
"""

from libs.result import Result, Return, Error
from src.app.repositories.invoice_repository import InvoiceRepository
from src.domain.errors import FiscalError, NotFoundError, error_from_exception
from .dtos import InvoiceResponseDTO
from .projections import to_invoice_response


class GetInvoice:
    """
    Use Case: Get an invoice

    Read-only; the invoice must belong to the given tenant.
    """

    def __init__(self, invoice_repo: InvoiceRepository):
        self.invoice_repo = invoice_repo

    async def execute(self, tenant_id: str, invoice_id: str) -> Result[InvoiceResponseDTO]:
        try:
            invoice = await self.invoice_repo.load(invoice_id, tenant_id)
            if invoice is None:
                return Return.err(
                    Error(
                        code=NotFoundError.code,
                        message=f"Invoice {invoice_id} not found for tenant {tenant_id}",
                    )
                )
            return Return.ok(to_invoice_response(invoice))

        except FiscalError as e:
            return Return.err(error_from_exception(e))
        except Exception as e:
            return Return.err(
                Error(
                    code="GET_INVOICE_FAILED",
                    message="Failed to retrieve invoice",
                    reason=str(e),
                )
            )
