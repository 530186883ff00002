"""CreateDraft Use Case

Creates a draft invoice. Drafts carry no number and no fingerprint; they
can be edited freely until they are issued.
"""

import logging
from typing import List
from libs.result import Result, Return, Error
from config import ApplicationConfig
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.invoice_repository import InvoiceRepository
from src.domain.errors import FiscalError, error_from_exception
from src.domain.invoice import Invoice
from src.domain.line_item import LineItem
from .dtos import CreateDraftCommandDTO, InvoiceResponseDTO
from .edit_lines import line_from_dto
from .projections import to_invoice_response

logger = logging.getLogger(__name__)


class CreateDraft:
    """
    Use Case: Create a draft invoice

    Business Rules:
    1. Series defaults to the configured DEFAULT_INVOICE_SERIES
    2. Lines may be empty
    3. Every line is validated before anything is stored

    Flow:
    1. Build and validate the lines
    2. Create the draft aggregate
    3. Persist and commit
    4. Return the read projection
    """

    def __init__(
        self,
        uow: UnitOfWork,
        invoice_repo: InvoiceRepository,
        default_series: str = ApplicationConfig.DEFAULT_INVOICE_SERIES,
    ):
        self.uow = uow
        self.invoice_repo = invoice_repo
        self.default_series = default_series

    async def execute(self, command: CreateDraftCommandDTO) -> Result[InvoiceResponseDTO]:
        try:
            # Step 1: Lines
            lines: List[LineItem] = []
            for index, line_dto in enumerate(command.lines, start=1):
                line_result = line_from_dto(line_dto)
                if line_result.is_err():
                    error = line_result.error
                    return Return.err(
                        Error(
                            code=error.code,
                            message=f"Line {index}: {error.message}",
                            reason=error.reason,
                        )
                    )
                lines.append(line_result.value)

            # Step 2: Aggregate
            draft_result = Invoice.create_draft(
                tenant_id=command.tenant_id,
                client_id=command.client_id,
                created_by=command.created_by,
                series=command.series or self.default_series,
                lines=lines,
                client_tax_id=command.client_tax_id,
                source_order_id=command.source_order_id,
                issue_date=command.issue_date,
                due_date=command.due_date,
                withholding_percent=command.withholding_percent,
            )
            if draft_result.is_err():
                return draft_result

            # Step 3: Persist
            invoice = await self.invoice_repo.create(draft_result.value)
            await self.uow.commit()

            logger.info(
                f"Draft invoice {invoice.id} created for tenant {invoice.tenant_id} "
                f"with {len(invoice.lines)} lines"
            )
            return Return.ok(to_invoice_response(invoice))

        except FiscalError as e:
            await self.uow.rollback()
            return Return.err(error_from_exception(e))
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Draft creation failed for tenant {command.tenant_id}: {e}", exc_info=True)
            return Return.err(
                Error(
                    code="CREATE_DRAFT_FAILED",
                    message="Failed to create draft invoice",
                    reason=str(e),
                )
            )
