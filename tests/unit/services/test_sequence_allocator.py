"""Unit tests for SequenceAllocator"""

import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from src.app.services.sequence_allocator import SequenceAllocator
from src.domain.errors import AllocationError, LockTimeoutError, RepositoryError, ValidationError


@pytest.fixture
def mock_counter_repo():
    return MagicMock()


@pytest.mark.asyncio
class TestAllocate:
    async def test_allocates_formatted_number(self, mock_counter_repo):
        # Arrange
        mock_counter_repo.next_sequence = AsyncMock(return_value=123)
        allocator = SequenceAllocator(mock_counter_repo, lock_timeout_seconds=2.0)

        # Act
        allocated = await allocator.allocate("tenant_1", "f", 2026)

        # Assert
        assert allocated.sequence == 123
        assert allocated.formatted == "F-2026-000123"
        mock_counter_repo.next_sequence.assert_called_once_with("tenant_1", "F", 2026, 2.0)

    async def test_invalid_series_never_touches_the_counter(self, mock_counter_repo):
        mock_counter_repo.next_sequence = AsyncMock(return_value=1)
        allocator = SequenceAllocator(mock_counter_repo)

        with pytest.raises(ValidationError):
            await allocator.allocate("tenant_1", "F2", 2026)
        mock_counter_repo.next_sequence.assert_not_called()

    async def test_lock_timeout_becomes_allocation_error(self, mock_counter_repo):
        mock_counter_repo.next_sequence = AsyncMock(side_effect=LockTimeoutError("lock timeout"))
        allocator = SequenceAllocator(mock_counter_repo)

        with pytest.raises(AllocationError) as exc_info:
            await allocator.allocate("tenant_1", "F", 2026)
        assert exc_info.value.retryable is True

    async def test_slow_lock_wait_is_bounded(self, mock_counter_repo):
        async def never_returns(*args):
            await asyncio.sleep(10)

        mock_counter_repo.next_sequence = never_returns
        allocator = SequenceAllocator(mock_counter_repo, lock_timeout_seconds=0.05)

        with pytest.raises(AllocationError):
            await allocator.allocate("tenant_1", "F", 2026)

    async def test_storage_failure_becomes_allocation_error(self, mock_counter_repo):
        mock_counter_repo.next_sequence = AsyncMock(side_effect=RepositoryError("disk full"))
        allocator = SequenceAllocator(mock_counter_repo)

        with pytest.raises(AllocationError) as exc_info:
            await allocator.allocate("tenant_1", "F", 2026)
        assert exc_info.value.reason == "disk full"

    async def test_exhausted_partition(self, mock_counter_repo):
        mock_counter_repo.next_sequence = AsyncMock(return_value=1_000_000)
        allocator = SequenceAllocator(mock_counter_repo)

        with pytest.raises(AllocationError):
            await allocator.allocate("tenant_1", "F", 2026)
