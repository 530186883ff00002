"""SQLAlchemy implementation of FiscalChainRepository

The chain head row is created-or-locked with an upsert, the same pattern
as the sequence counters. Issuance of a tenant takes this lock first and
the counter lock second.
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy import update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.adapter.models.fiscal_chain import FiscalChainHead
from src.adapter.repositories.db_errors import dialect_name, set_lock_timeout, storage_errors
from src.app.repositories.fiscal_chain_repository import ChainHead, FiscalChainRepository
from src.domain.errors import RepositoryError


def _to_head(row) -> ChainHead:
    return ChainHead(
        tenant_id=row.tenant_id,
        length=int(row.length),
        halted=bool(row.halted),
        halt_reason=row.halt_reason,
        halted_at=row.halted_at,
    )


class SqlAlchemyFiscalChainRepository(FiscalChainRepository):
    """SQLAlchemy implementation of FiscalChainRepository"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _insert(self):
        if dialect_name(self.session) == "postgresql":
            return pg_insert(FiscalChainHead)
        return sqlite_insert(FiscalChainHead)

    async def lock(self, tenant_id: str, lock_timeout_seconds: float) -> ChainHead:
        """
        Create-or-lock the chain head

        The no-op update on conflict takes the row lock and returns the
        current state in one round trip.
        """
        table = FiscalChainHead.__table__
        now = datetime.utcnow()
        stmt = (
            self._insert()
            .values(tenant_id=tenant_id, length=0, halted=False, updated_at=now)
            .on_conflict_do_update(
                index_elements=[table.c.tenant_id],
                set_={"updated_at": now},
            )
            .returning(
                table.c.tenant_id,
                table.c.length,
                table.c.halted,
                table.c.halt_reason,
                table.c.halted_at,
            )
        )

        with storage_errors(f"chain lock for tenant {tenant_id}"):
            await set_lock_timeout(self.session, lock_timeout_seconds)
            result = await self.session.execute(stmt)
            row = result.one_or_none()

        if row is None:
            raise RepositoryError(f"Chain head upsert for tenant {tenant_id} returned no row")
        return _to_head(row)

    async def advance(self, tenant_id: str, length: int) -> None:
        stmt = (
            update(FiscalChainHead)
            .where(FiscalChainHead.tenant_id == tenant_id)
            .values(length=length, updated_at=datetime.utcnow())
        )
        with storage_errors(f"chain advance for tenant {tenant_id}"):
            await self.session.execute(stmt)

    async def get(self, tenant_id: str) -> Optional[ChainHead]:
        stmt = select(FiscalChainHead).where(FiscalChainHead.tenant_id == tenant_id)
        with storage_errors(f"chain lookup for tenant {tenant_id}"):
            result = await self.session.execute(stmt)
            row = result.scalar_one_or_none()
        return _to_head(row) if row is not None else None

    async def halt(self, tenant_id: str, reason: str) -> None:
        """Set the halt switch, creating the chain head if needed"""
        table = FiscalChainHead.__table__
        now = datetime.utcnow()
        stmt = (
            self._insert()
            .values(
                tenant_id=tenant_id,
                length=0,
                halted=True,
                halt_reason=reason,
                halted_at=now,
                updated_at=now,
            )
            .on_conflict_do_update(
                index_elements=[table.c.tenant_id],
                set_={"halted": True, "halt_reason": reason, "halted_at": now, "updated_at": now},
            )
        )
        with storage_errors(f"chain halt for tenant {tenant_id}"):
            await self.session.execute(stmt)

    async def list_tenant_ids(self) -> List[str]:
        stmt = select(FiscalChainHead.tenant_id).order_by(FiscalChainHead.tenant_id)
        with storage_errors("chain tenant listing"):
            result = await self.session.execute(stmt)
            return list(result.scalars().all())
