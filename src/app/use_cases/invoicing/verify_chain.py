"""VerifyFiscalChain Use Case

Recomputes a tenant's hash chain from the stored documents. Any break
halts issuance for the tenant until the ledger has been reviewed by hand;
nothing is ever repaired automatically.
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import List
from libs.result import Result, Return, Error
from config import ApplicationConfig
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.fiscal_chain_repository import ChainHead, FiscalChainRepository
from src.app.repositories.invoice_repository import InvoiceRepository
from src.domain.errors import FiscalError, LockTimeoutError, error_from_exception
from src.domain.fingerprint import ChainBreakKind, verify_chain
from .dtos import ChainBreakDTO, ChainVerificationResultDTO

logger = logging.getLogger(__name__)


class VerifyFiscalChain:
    """
    Use Case: Verify the hash chain of a tenant

    Business Rules:
    1. Every fingerprint is recomputed from the document fields
    2. Every previous_fingerprint must match the prior document
    3. Chain positions are contiguous from 1 up to the chain head length
    4. A broken chain halts the tenant (halt_on_break=True)

    Flow:
    1. Lock the chain head, then load all fingerprinted documents in chain order
    2. Verify the links
    3. Halt the tenant if anything is broken
    4. Release the lock and return the verification result

    The head is locked the way issuance locks it, so an issuance committing
    during the audit cannot make the head and the documents disagree.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        invoice_repo: InvoiceRepository,
        chain_repo: FiscalChainRepository,
        lock_timeout_seconds: float = ApplicationConfig.SEQUENCE_LOCK_TIMEOUT_SECONDS,
    ):
        self.uow = uow
        self.invoice_repo = invoice_repo
        self.chain_repo = chain_repo
        self.lock_timeout_seconds = lock_timeout_seconds

    async def _lock_chain(self, tenant_id: str) -> ChainHead:
        try:
            return await asyncio.wait_for(
                self.chain_repo.lock(tenant_id, self.lock_timeout_seconds),
                timeout=self.lock_timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise LockTimeoutError(f"Could not lock the fiscal chain of tenant {tenant_id} in time")

    async def execute(self, tenant_id: str, halt_on_break: bool = True) -> Result[ChainVerificationResultDTO]:
        start_time = time.time()
        verified_at = datetime.utcnow()

        try:
            head = await self._lock_chain(tenant_id)
            links = await self.invoice_repo.list_chain(tenant_id)

            breaks: List[ChainBreakDTO] = [
                ChainBreakDTO(
                    invoice_id=chain_break.invoice_id,
                    number=chain_break.number,
                    chain_position=chain_break.chain_position,
                    kind=chain_break.kind.value,
                    detail=chain_break.detail,
                )
                for chain_break in verify_chain(links)
            ]

            recorded_length = head.length
            last_position = links[-1].chain_position if links else 0
            if recorded_length != last_position:
                breaks.append(
                    ChainBreakDTO(
                        invoice_id=links[-1].invoice_id if links else "",
                        number=links[-1].fields.number if links else "",
                        chain_position=last_position,
                        kind=ChainBreakKind.POSITION_GAP.value,
                        detail=f"chain head records {recorded_length} documents, last position found is {last_position}",
                    )
                )

            halted = head.halted
            if breaks:
                for chain_break in breaks:
                    logger.error(
                        f"Fiscal chain break for tenant {tenant_id} at position {chain_break.chain_position} "
                        f"({chain_break.number}): {chain_break.kind} - {chain_break.detail}"
                    )
                if halt_on_break and not halted:
                    await self.chain_repo.halt(
                        tenant_id, f"{len(breaks)} chain break(s) detected on {verified_at.isoformat()}"
                    )
                    await self.uow.commit()
                    halted = True
                    logger.critical(f"Issuance halted for tenant {tenant_id} pending manual review")
                else:
                    await self.uow.rollback()
            else:
                await self.uow.rollback()
                logger.info(f"Fiscal chain of tenant {tenant_id} intact ({len(links)} documents)")

            return Return.ok(
                ChainVerificationResultDTO(
                    tenant_id=tenant_id,
                    documents_checked=len(links),
                    intact=not breaks,
                    breaks=breaks,
                    halted=halted,
                    verified_at=verified_at,
                    duration_seconds=time.time() - start_time,
                )
            )

        except FiscalError as e:
            await self.uow.rollback()
            logger.warning(f"Chain verification of tenant {tenant_id} not run: {e.message}")
            return Return.err(error_from_exception(e))
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Chain verification failed for tenant {tenant_id}: {e}", exc_info=True)
            return Return.err(
                Error(
                    code="VERIFY_CHAIN_FAILED",
                    message="Failed to verify fiscal chain",
                    reason=str(e),
                )
            )
