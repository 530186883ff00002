"""Fiscal Chain Repository Interface

Defines the contract for the per-tenant chain head: the row that
serializes issuance inside a tenant and carries the integrity halt switch.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True)
class ChainHead:
    """State of a tenant's fiscal chain"""

    tenant_id: str
    length: int
    halted: bool = False
    halt_reason: Optional[str] = None
    halted_at: Optional[datetime] = None


class FiscalChainRepository(ABC):
    """Repository interface for tenant chain heads"""

    @abstractmethod
    async def lock(self, tenant_id: str, lock_timeout_seconds: float) -> ChainHead:
        """
        Create-or-lock the tenant's chain head until the transaction ends

        Taken before the sequence counter lock and before the previous
        fingerprint lookup, so issuances of one tenant are strictly ordered.

        Raises:
            LockTimeoutError: row lock not obtained in time
            RepositoryError: any other storage failure
        """
        pass

    @abstractmethod
    async def advance(self, tenant_id: str, length: int) -> None:
        """
        Record the new chain length after an issuance

        Must be called while holding the lock taken by lock().
        """
        pass

    @abstractmethod
    async def get(self, tenant_id: str) -> Optional[ChainHead]:
        """Chain head without locking, None if the tenant never issued"""
        pass

    @abstractmethod
    async def halt(self, tenant_id: str, reason: str) -> None:
        """Stop all further issuance for the tenant pending manual review"""
        pass

    @abstractmethod
    async def list_tenant_ids(self) -> List[str]:
        """All tenants that have a chain head"""
        pass
