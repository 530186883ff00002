import pytest
from datetime import date
from unittest.mock import AsyncMock, MagicMock

from src.domain.invoice import Invoice
from src.domain.line_item import create_line_item


@pytest.fixture
def mock_uow():
    """Mock unit of work"""
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock()
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()
    return uow


@pytest.fixture
def sample_line():
    """1 x 100.00 at 21% tax"""
    return create_line_item("part", "Oil filter", "1", "100.00", "21").value


@pytest.fixture
def make_draft(sample_line):
    """Factory for draft invoices with one sample line"""

    def factory(**overrides):
        values = {
            "tenant_id": "tenant_1",
            "client_id": "client_42",
            "created_by": "user_7",
            "series": "F",
            "lines": [sample_line],
            "issue_date": date(2026, 3, 1),
        }
        values.update(overrides)
        return Invoice.create_draft(**values).value

    return factory
