"""IssueInvoice Use Case

Turns a draft into a numbered, fingerprinted fiscal document. Everything
happens in one unit of work: either the invoice is issued with its number,
fingerprint and chain position, or nothing changes at all.
"""

import asyncio
import logging
from datetime import date
from typing import Callable, Optional
from libs.result import Result, Return, Error
from config import ApplicationConfig
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.sequence_allocator import AllocatedNumber, SequenceAllocator
from src.app.repositories.fiscal_chain_repository import ChainHead, FiscalChainRepository
from src.app.repositories.invoice_repository import InvoiceRepository
from src.domain.errors import (
    AllocationError,
    BusinessRuleError,
    FiscalError,
    ImmutabilityError,
    IntegrityViolationError,
    LockTimeoutError,
    NotFoundError,
    error_from_exception,
)
from src.domain.fingerprint import compute_fingerprint
from src.domain.invoice import fingerprint_fields_for
from .dtos import IssueInvoiceCommandDTO, InvoiceResponseDTO
from .projections import to_invoice_response

logger = logging.getLogger(__name__)


def current_date() -> date:
    return date.today()


class IssueInvoice:
    """
    Use Case: Issue a draft invoice

    Business Rules:
    1. Only drafts with at least one line and no number can be issued
    2. The number comes from the (tenant, series, current fiscal year) counter
    3. The issue date lies in the current fiscal year, not in the future and
       not before the tenant's latest issued document
    4. The fingerprint chains to the tenant's latest issued document
       (GENESIS for the first one)
    5. A tenant whose chain is halted cannot issue
    6. Issuances of one tenant are serialized by the chain head lock

    Flow:
    1. Load and lock the draft, check preconditions
    2. Lock the tenant chain head (before the counter lock), check the date order
    3. Allocate the number
    4. Look up the previous fingerprint and compute the new one
    5. Apply the transition, save, advance the chain head, commit

    A failure after step 3 rolls back and releases the allocated number,
    which is logged so a skipped number is always traceable.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        invoice_repo: InvoiceRepository,
        chain_repo: FiscalChainRepository,
        allocator: SequenceAllocator,
        lock_timeout_seconds: float = ApplicationConfig.SEQUENCE_LOCK_TIMEOUT_SECONDS,
        clock: Optional[Callable[[], date]] = None,
    ):
        self.uow = uow
        self.invoice_repo = invoice_repo
        self.chain_repo = chain_repo
        self.allocator = allocator
        self.lock_timeout_seconds = lock_timeout_seconds
        self.clock = clock or current_date

    async def _lock_chain(self, tenant_id: str) -> ChainHead:
        try:
            return await asyncio.wait_for(
                self.chain_repo.lock(tenant_id, self.lock_timeout_seconds),
                timeout=self.lock_timeout_seconds,
            )
        except (asyncio.TimeoutError, LockTimeoutError) as e:
            logger.warning(f"Chain lock timeout for tenant {tenant_id} after {self.lock_timeout_seconds}s")
            raise AllocationError(
                f"Could not lock the fiscal chain of tenant {tenant_id} in time",
                reason=str(e) or "lock timeout",
            )

    @staticmethod
    def _check_issue_date(issue_date: date, today: date) -> date:
        if issue_date.year != today.year:
            raise BusinessRuleError(
                f"Issue date {issue_date.isoformat()} is outside the current fiscal year {today.year}"
            )
        if issue_date > today:
            raise BusinessRuleError(f"Issue date {issue_date.isoformat()} is in the future")
        return issue_date

    async def execute(self, command: IssueInvoiceCommandDTO) -> Result[InvoiceResponseDTO]:
        """
        Execute invoice issuance

        Args:
            command: IssueInvoiceCommandDTO with tenant_id, invoice_id, user_id

        Returns:
            Result[InvoiceResponseDTO]: the issued invoice, or an error
            (ALLOCATION_FAILED is retryable)
        """
        allocated: Optional[AllocatedNumber] = None

        try:
            # Step 1: Draft
            invoice = await self.invoice_repo.load_draft(command.invoice_id, command.tenant_id)
            if invoice is None:
                raise NotFoundError(f"Invoice {command.invoice_id} not found for tenant {command.tenant_id}")
            invoice.ensure_issuable()
            today = self.clock()
            invoice.issue_date = self._check_issue_date(command.issue_date or today, today)

            # Step 2: Tenant chain head
            head = await self._lock_chain(invoice.tenant_id)
            if head.halted:
                raise IntegrityViolationError(
                    f"Issuance is halted for tenant {invoice.tenant_id} pending review",
                    reason=head.halt_reason,
                )
            latest_issue_date = await self.invoice_repo.load_latest_issue_date(
                invoice.tenant_id, exclude_invoice_id=invoice.id
            )
            if latest_issue_date is not None and invoice.issue_date < latest_issue_date:
                raise BusinessRuleError(
                    f"Issue date {invoice.issue_date.isoformat()} is earlier than the latest issued "
                    f"document of tenant {invoice.tenant_id} ({latest_issue_date.isoformat()})"
                )

            # Step 3: Number
            allocated = await self.allocator.allocate(invoice.tenant_id, invoice.series, today.year)

            # Step 4: Fingerprint
            previous_fingerprint = await self.invoice_repo.load_most_recent_issued_fingerprint(
                invoice.tenant_id, exclude_invoice_id=invoice.id
            )
            if (previous_fingerprint is None) != (head.length == 0):
                raise IntegrityViolationError(
                    f"Chain head of tenant {invoice.tenant_id} is out of sync with its documents",
                    reason=f"length={head.length}, previous={previous_fingerprint}",
                )
            chain_position = head.length + 1
            fingerprint = compute_fingerprint(
                fingerprint_fields_for(invoice, allocated.number), previous_fingerprint
            )

            # Step 5: Transition
            invoice.issue(
                number=allocated.number,
                fingerprint=fingerprint,
                previous_fingerprint=previous_fingerprint,
                chain_position=chain_position,
                user_id=command.user_id,
            )
            await self.invoice_repo.save(invoice)
            await self.chain_repo.advance(invoice.tenant_id, chain_position)
            await self.uow.commit()

            logger.info(
                f"Invoice {invoice.id} issued as {allocated.formatted} for tenant {invoice.tenant_id} "
                f"(chain position {chain_position}) by {command.user_id}"
            )
            return Return.ok(to_invoice_response(invoice))

        except FiscalError as e:
            await self._abort(command, allocated)
            if isinstance(e, (IntegrityViolationError, ImmutabilityError)):
                logger.error(f"Issuance of invoice {command.invoice_id} blocked: {e.code} {e.message}")
            else:
                logger.warning(f"Issuance of invoice {command.invoice_id} rejected: {e.message}")
            return Return.err(error_from_exception(e))
        except Exception as e:
            await self._abort(command, allocated)
            logger.error(f"Issuance of invoice {command.invoice_id} failed: {e}", exc_info=True)
            return Return.err(
                Error(
                    code="ISSUE_INVOICE_FAILED",
                    message="Failed to issue invoice",
                    reason=str(e),
                )
            )

    async def _abort(self, command: IssueInvoiceCommandDTO, allocated: Optional[AllocatedNumber]) -> None:
        await self.uow.rollback()
        if allocated is not None:
            logger.warning(
                f"Number {allocated.formatted} allocated for invoice {command.invoice_id} "
                f"was released by rollback"
            )
