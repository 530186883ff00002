"""Sequence Counter Repository Interface

Defines the contract for the persistent numbering counters.
"""

from abc import ABC, abstractmethod


class SequenceCounterRepository(ABC):
    """
    Repository interface for per-partition sequence counters

    One counter row exists per (tenant_id, series, fiscal_year). The row is
    the only shared mutable state of the numbering engine.
    """

    @abstractmethod
    async def next_sequence(
        self,
        tenant_id: str,
        series: str,
        fiscal_year: int,
        lock_timeout_seconds: float,
    ) -> int:
        """
        Atomically increment and return the partition counter

        Creates the counter with value 1 when the partition has none
        (upsert with lock, never read-then-insert). The increment belongs to
        the caller's transaction: a rollback releases the number.

        Args:
            tenant_id: Tenant identifier
            series: Normalised series code
            fiscal_year: Fiscal year of the partition
            lock_timeout_seconds: Maximum time to wait for the row lock

        Returns:
            The newly allocated sequence (>= 1)

        Raises:
            LockTimeoutError: row lock not obtained in time
            RepositoryError: any other storage failure
        """
        pass

    @abstractmethod
    async def current_sequence(self, tenant_id: str, series: str, fiscal_year: int) -> int:
        """
        Last allocated sequence of a partition, without locking

        Returns:
            Last allocated sequence, 0 if nothing was allocated yet
        """
        pass
