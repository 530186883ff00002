from .unit_of_work import SqlAlchemyUnitOfWork
from .in_memory_unit_of_work import InMemoryStore, InMemoryUnitOfWork

__all__ = [
    "SqlAlchemyUnitOfWork",
    "InMemoryStore",
    "InMemoryUnitOfWork",
]
