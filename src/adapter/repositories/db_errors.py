"""Storage error translation

Driver and SQLAlchemy exceptions never leave the adapters: they are raised
as RepositoryError, or LockTimeoutError when a row lock was not obtained.
"""

import logging
from contextlib import contextmanager

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from src.domain.errors import LockTimeoutError, RepositoryError

logger = logging.getLogger(__name__)

# PostgreSQL lock_not_available
LOCK_NOT_AVAILABLE = "55P03"


def _is_lock_timeout(error: SQLAlchemyError) -> bool:
    if isinstance(error, DBAPIError):
        orig = error.orig
        sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        if sqlstate == LOCK_NOT_AVAILABLE:
            return True
    message = str(error).lower()
    return "lock timeout" in message or "database is locked" in message


@contextmanager
def storage_errors(operation: str):
    """Translate storage failures raised inside the block"""
    try:
        yield
    except SQLAlchemyError as e:
        if _is_lock_timeout(e):
            logger.warning(f"Lock timeout during {operation}")
            raise LockTimeoutError(f"Lock not obtained in time during {operation}", reason=str(e))
        logger.error(f"Storage failure during {operation}: {e}")
        raise RepositoryError(f"Storage failure during {operation}", reason=str(e))


def dialect_name(session: AsyncSession) -> str:
    return session.get_bind().dialect.name


async def set_lock_timeout(session: AsyncSession, lock_timeout_seconds: float) -> None:
    """Bound the wait for row locks for the rest of the transaction (PostgreSQL only)"""
    if dialect_name(session) != "postgresql":
        return
    milliseconds = max(1, int(lock_timeout_seconds * 1000))
    # SET does not accept bind parameters
    await session.execute(text(f"SET LOCAL lock_timeout = '{milliseconds}ms'"))

