"""Sequence Allocator

Allocates gap-free fiscal sequence numbers per (tenant, series, year).

The counter row is read-and-incremented by a single locked upsert in the
repository; this service bounds the wait for that lock, validates the
partition and formats the result. Nothing is cached in process memory:
every allocation goes to the shared counter row.
"""

import asyncio
import logging
from dataclasses import dataclass

from src.app.repositories.sequence_counter_repository import SequenceCounterRepository
from src.domain.document_number import MAX_SEQUENCE, StructuredNumber, validate_series
from src.domain.errors import AllocationError, LockTimeoutError, RepositoryError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AllocatedNumber:
    sequence: int
    number: StructuredNumber

    @property
    def formatted(self) -> str:
        return self.number.format()


class SequenceAllocator:
    """
    Service: allocate the next fiscal number of a partition

    Guarantees (within one partition):
    - strictly increasing, no duplicates
    - no gaps among committed allocations: the increment is part of the
      caller's transaction, so a rollback releases the number

    Failures:
    - lock wait above lock_timeout_seconds -> AllocationError (retryable)
    - storage failure -> AllocationError (retryable)
    - partition exhausted (> 999999) -> AllocationError
    """

    def __init__(self, counter_repo: SequenceCounterRepository, lock_timeout_seconds: float = 5.0):
        self.counter_repo = counter_repo
        self.lock_timeout_seconds = lock_timeout_seconds

    async def allocate(self, tenant_id: str, series: str, fiscal_year: int) -> AllocatedNumber:
        """
        Allocate the next number of (tenant_id, series, fiscal_year)

        Args:
            tenant_id: Tenant identifier
            series: Series code (1-3 letters)
            fiscal_year: Fiscal year of the partition

        Returns:
            AllocatedNumber with the sequence and the formatted number
            (e.g. F-2026-000123)
        """
        series = validate_series(series)

        try:
            sequence = await asyncio.wait_for(
                self.counter_repo.next_sequence(
                    tenant_id, series, fiscal_year, self.lock_timeout_seconds
                ),
                timeout=self.lock_timeout_seconds,
            )
        except (asyncio.TimeoutError, LockTimeoutError) as e:
            logger.warning(
                f"Sequence lock timeout for tenant {tenant_id} partition {series}/{fiscal_year} "
                f"after {self.lock_timeout_seconds}s"
            )
            raise AllocationError(
                f"Could not lock the {series}/{fiscal_year} counter in time",
                reason=str(e) or "lock timeout",
            )
        except RepositoryError as e:
            logger.error(
                f"Sequence allocation failed for tenant {tenant_id} partition {series}/{fiscal_year}: {e}"
            )
            raise AllocationError(
                f"Storage failure while allocating {series}/{fiscal_year}",
                reason=e.message,
            )

        if sequence > MAX_SEQUENCE:
            logger.error(
                f"Sequence partition exhausted for tenant {tenant_id}: {series}/{fiscal_year}"
            )
            raise AllocationError(
                f"Series {series} has no numbers left for {fiscal_year}",
                reason=f"sequence={sequence} > {MAX_SEQUENCE}",
            )

        number = StructuredNumber(series=series, year=fiscal_year, sequence=sequence)
        logger.info(f"Allocated {number.format()} for tenant {tenant_id}")
        return AllocatedNumber(sequence=sequence, number=number)
