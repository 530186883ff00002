from .unit_of_work import UnitOfWork
from .sequence_allocator import AllocatedNumber, SequenceAllocator

__all__ = [
    "UnitOfWork",
    "AllocatedNumber",
    "SequenceAllocator",
]
