"""SQLAlchemy implementation of SequenceCounterRepository

Allocates sequence numbers with a single locked upsert:

    INSERT ... VALUES (tenant, series, year, 1)
    ON CONFLICT (tenant, series, year) DO UPDATE SET last_sequence = last_sequence + 1
    RETURNING last_sequence

The conflicting row is locked until the surrounding transaction ends, so
concurrent issuers of the same partition are serialized and a rollback
returns the number.
"""

from datetime import datetime
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.adapter.models.sequence_counter import SequenceCounter
from src.adapter.repositories.db_errors import dialect_name, set_lock_timeout, storage_errors
from src.app.repositories.sequence_counter_repository import SequenceCounterRepository
from src.domain.errors import RepositoryError


class SqlAlchemySequenceCounterRepository(SequenceCounterRepository):
    """
    SQLAlchemy implementation of SequenceCounterRepository

    Features:
    - Atomic create-or-increment (no read-then-write race)
    - Row lock bounded by lock_timeout on PostgreSQL
    - Works on PostgreSQL and SQLite (database-level write lock)
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    def _insert(self):
        if dialect_name(self.session) == "postgresql":
            return pg_insert(SequenceCounter)
        return sqlite_insert(SequenceCounter)

    async def next_sequence(
        self,
        tenant_id: str,
        series: str,
        fiscal_year: int,
        lock_timeout_seconds: float,
    ) -> int:
        table = SequenceCounter.__table__
        now = datetime.utcnow()
        stmt = (
            self._insert()
            .values(
                tenant_id=tenant_id,
                series=series,
                fiscal_year=fiscal_year,
                last_sequence=1,
                updated_at=now,
            )
            .on_conflict_do_update(
                index_elements=[table.c.tenant_id, table.c.series, table.c.fiscal_year],
                set_={"last_sequence": table.c.last_sequence + 1, "updated_at": now},
            )
            .returning(table.c.last_sequence)
        )

        with storage_errors(f"sequence allocation {series}/{fiscal_year}"):
            await set_lock_timeout(self.session, lock_timeout_seconds)
            result = await self.session.execute(stmt)
            sequence = result.scalar_one_or_none()

        if sequence is None:
            raise RepositoryError(
                f"Counter upsert for {series}/{fiscal_year} returned no row"
            )
        return int(sequence)

    async def current_sequence(self, tenant_id: str, series: str, fiscal_year: int) -> int:
        stmt = select(SequenceCounter.last_sequence).where(
            SequenceCounter.tenant_id == tenant_id,
            SequenceCounter.series == series,
            SequenceCounter.fiscal_year == fiscal_year,
        )
        with storage_errors(f"sequence lookup {series}/{fiscal_year}"):
            result = await self.session.execute(stmt)
            value = result.scalar_one_or_none()
        return int(value) if value is not None else 0
