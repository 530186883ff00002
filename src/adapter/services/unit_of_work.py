from sqlmodel.ext.asyncio.session import AsyncSession
from src.adapter.repositories.db_errors import storage_errors
from src.app.services.unit_of_work import UnitOfWork


class SqlAlchemyUnitOfWork(UnitOfWork):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.rollback()

    async def commit(self):
        with storage_errors("commit"):
            await self.session.commit()

    async def rollback(self):
        await self.session.rollback()
