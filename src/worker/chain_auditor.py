"""Fiscal Chain Audit Background Worker

Periodically recomputes every tenant's hash chain. A broken chain halts
issuance for its tenant until someone has reviewed the ledger.
Can be run as a standalone script or integrated with a scheduler.
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.repositories.fiscal_chain_repository import SqlAlchemyFiscalChainRepository
from src.adapter.repositories.invoice_repository import SqlAlchemyInvoiceRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.use_cases.invoicing import ChainAuditSummaryDTO, VerifyFiscalChain

logger = logging.getLogger(__name__)


class FiscalChainAuditorWorker:
    """
    Background worker for fiscal chain verification

    Features:
    - Verifies each tenant in its own session and transaction
    - Halts tenants whose chain is broken (never repairs)
    - One failing tenant does not stop the audit of the others
    - Can run once or continuously (default: daily)

    Usage:
        # Run once
        worker = FiscalChainAuditorWorker()
        summary = await worker.run_once()

        # Run continuously
        worker = FiscalChainAuditorWorker()
        await worker.run_forever(interval_seconds=86400)
    """

    def __init__(
        self,
        db_uri: Optional[str] = None,
    ):
        """
        Initialize the worker

        Args:
            db_uri: Database URI (defaults to ApplicationConfig.DB_URI)
        """
        self.db_uri = db_uri or ApplicationConfig.DB_URI

        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

        logger.info("FiscalChainAuditorWorker initialized")

    async def run_once(self) -> ChainAuditSummaryDTO:
        """
        Verify every tenant's chain once

        Returns:
            ChainAuditSummaryDTO with per-tenant results
        """
        start_time = time.time()
        audit_time = datetime.utcnow()

        if not ApplicationConfig.CHAIN_AUDIT_ENABLED:
            logger.info("Fiscal chain audit is disabled, skipping")
            return ChainAuditSummaryDTO(
                tenants_checked=0,
                tenants_broken=0,
                results=[],
                audit_time=audit_time,
                execution_time_ms=0,
            )

        async with self.async_session_factory() as session:
            tenant_ids = await SqlAlchemyFiscalChainRepository(session).list_tenant_ids()

        logger.info(f"Auditing fiscal chains of {len(tenant_ids)} tenants")

        results = []
        failed = 0
        for tenant_id in tenant_ids:
            async with self.async_session_factory() as session:
                use_case = VerifyFiscalChain(
                    uow=SqlAlchemyUnitOfWork(session),
                    invoice_repo=SqlAlchemyInvoiceRepository(session),
                    chain_repo=SqlAlchemyFiscalChainRepository(session),
                )
                result = await use_case.execute(tenant_id)

            if result.is_err():
                failed += 1
                logger.error(f"Chain audit of tenant {tenant_id} failed: {result.error.message}")
                continue

            verification = result.value
            results.append(verification)
            if not verification.intact:
                logger.error(
                    f"ALERT: tenant {tenant_id} has {len(verification.breaks)} chain breaks; "
                    f"issuance halted={verification.halted}"
                )

        broken = sum(1 for verification in results if not verification.intact)
        return ChainAuditSummaryDTO(
            tenants_checked=len(results),
            tenants_broken=broken,
            tenants_failed=failed,
            results=results,
            audit_time=audit_time,
            execution_time_ms=int((time.time() - start_time) * 1000),
        )

    async def run_forever(self, interval_seconds: int = ApplicationConfig.CHAIN_AUDIT_INTERVAL_SECONDS):
        """
        Run the audit continuously at the specified interval

        Args:
            interval_seconds: Seconds between audit runs (default: 24 hours)
        """
        logger.info(f"Starting continuous fiscal chain audit with {interval_seconds}s interval")

        while True:
            try:
                summary = await self.run_once()
                logger.info(
                    f"Chain audit cycle complete. "
                    f"Checked {summary.tenants_checked} tenants, "
                    f"{summary.tenants_broken} broken, {summary.tenants_failed} failed "
                    f"in {summary.execution_time_ms}ms"
                )
            except Exception as e:
                logger.error(f"Chain audit cycle failed: {e}")

            await asyncio.sleep(interval_seconds)

    async def shutdown(self):
        """Cleanup resources"""
        await self.engine.dispose()
        logger.info("FiscalChainAuditorWorker shutdown complete")


async def main():
    """
    Entry point for running the worker as a standalone script

    Usage:
        # Run once
        python -m src.worker.chain_auditor --once

        # Run continuously (default: CHAIN_AUDIT_INTERVAL_SECONDS)
        python -m src.worker.chain_auditor

        # Run continuously with custom interval (in seconds)
        python -m src.worker.chain_auditor --interval 3600
    """
    import argparse

    logging.basicConfig(
        level=getattr(logging, str(ApplicationConfig.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Fiscal Chain Audit Worker")
    parser.add_argument("--once", action="store_true", help="Run once and exit")
    parser.add_argument(
        "--interval", type=int, default=ApplicationConfig.CHAIN_AUDIT_INTERVAL_SECONDS,
        help="Interval between runs in seconds (default: 86400 = 24 hours)"
    )
    args = parser.parse_args()

    worker = FiscalChainAuditorWorker()

    try:
        if args.once:
            summary = await worker.run_once()
            print("Chain audit complete:")
            print(f"  Tenants checked: {summary.tenants_checked}")
            print(f"  Tenants broken: {summary.tenants_broken}")
            print(f"  Tenants failed: {summary.tenants_failed}")
            print(f"  Execution time: {summary.execution_time_ms}ms")
            for verification in summary.results:
                for chain_break in verification.breaks:
                    print(
                        f"  - Tenant {verification.tenant_id} position {chain_break.chain_position} "
                        f"({chain_break.number}): {chain_break.kind}"
                    )
        else:
            await worker.run_forever(interval_seconds=args.interval)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
