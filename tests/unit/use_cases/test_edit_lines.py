"""Unit tests for AddLine, EditLine and RemoveLine use cases"""

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from src.app.use_cases.invoicing.dtos import (
    AddLineCommandDTO,
    EditLineCommandDTO,
    LineItemDTO,
    RemoveLineCommandDTO,
)
from src.app.use_cases.invoicing.edit_lines import AddLine, EditLine, RemoveLine
from src.domain.document_number import StructuredNumber


LABOUR = LineItemDTO(kind="labour", description="Diagnosis", quantity="2", unit_price="30", tax_percent="21")


@pytest.fixture
def mock_invoice_repo():
    repo = MagicMock()
    repo.save = AsyncMock(side_effect=lambda invoice: invoice)
    return repo


def issued(invoice):
    invoice.issue(
        number=StructuredNumber("F", 2026, 1),
        fingerprint="A" * 64,
        previous_fingerprint=None,
        chain_position=1,
        user_id="user_7",
    )
    return invoice


@pytest.mark.asyncio
class TestAddLine:
    async def test_add_line_to_draft(self, mock_uow, mock_invoice_repo, make_draft):
        # Arrange
        draft = make_draft()
        mock_invoice_repo.load = AsyncMock(return_value=draft)
        use_case = AddLine(mock_uow, mock_invoice_repo)

        # Act
        result = await use_case.execute(
            AddLineCommandDTO(tenant_id="tenant_1", invoice_id=draft.id, user_id="user_7", line=LABOUR)
        )

        # Assert
        assert result.is_ok()
        assert len(result.value.lines) == 2
        assert result.value.base_total == Decimal("160.00")
        mock_invoice_repo.load.assert_called_once_with(draft.id, "tenant_1", for_update=True)
        mock_invoice_repo.save.assert_called_once_with(draft)
        mock_uow.commit.assert_called_once()

    async def test_add_line_to_issued_invoice_is_rejected(self, mock_uow, mock_invoice_repo, make_draft):
        invoice = issued(make_draft())
        mock_invoice_repo.load = AsyncMock(return_value=invoice)
        use_case = AddLine(mock_uow, mock_invoice_repo)

        result = await use_case.execute(
            AddLineCommandDTO(tenant_id="tenant_1", invoice_id=invoice.id, user_id="user_7", line=LABOUR)
        )

        assert result.is_err()
        assert result.error.code == "INVALID_STATE"
        mock_invoice_repo.save.assert_not_called()
        mock_uow.rollback.assert_called_once()

    async def test_invalid_line_is_rejected_before_loading(self, mock_uow, mock_invoice_repo):
        mock_invoice_repo.load = AsyncMock()
        use_case = AddLine(mock_uow, mock_invoice_repo)
        bad = LineItemDTO(kind="labour", description="", quantity="1", unit_price="1", tax_percent="21")

        result = await use_case.execute(
            AddLineCommandDTO(tenant_id="tenant_1", invoice_id="inv_1", user_id="user_7", line=bad)
        )

        assert result.is_err()
        assert result.error.code == "VALIDATION_ERROR"
        mock_invoice_repo.load.assert_not_called()

    async def test_unknown_invoice(self, mock_uow, mock_invoice_repo):
        mock_invoice_repo.load = AsyncMock(return_value=None)
        use_case = AddLine(mock_uow, mock_invoice_repo)

        result = await use_case.execute(
            AddLineCommandDTO(tenant_id="tenant_1", invoice_id="missing", user_id="user_7", line=LABOUR)
        )

        assert result.is_err()
        assert result.error.code == "INVOICE_NOT_FOUND"


@pytest.mark.asyncio
class TestEditAndRemoveLine:
    async def test_edit_line(self, mock_uow, mock_invoice_repo, make_draft):
        draft = make_draft()
        mock_invoice_repo.load = AsyncMock(return_value=draft)
        use_case = EditLine(mock_uow, mock_invoice_repo)

        result = await use_case.execute(
            EditLineCommandDTO(tenant_id="tenant_1", invoice_id=draft.id, user_id="user_7", position=1, line=LABOUR)
        )

        assert result.is_ok()
        assert result.value.lines[0].kind == "labour"
        assert result.value.base_total == Decimal("60.00")

    async def test_edit_unknown_position(self, mock_uow, mock_invoice_repo, make_draft):
        draft = make_draft()
        mock_invoice_repo.load = AsyncMock(return_value=draft)
        use_case = EditLine(mock_uow, mock_invoice_repo)

        result = await use_case.execute(
            EditLineCommandDTO(tenant_id="tenant_1", invoice_id=draft.id, user_id="user_7", position=3, line=LABOUR)
        )

        assert result.is_err()
        assert result.error.code == "VALIDATION_ERROR"
        mock_uow.rollback.assert_called_once()

    async def test_remove_line(self, mock_uow, mock_invoice_repo, make_draft):
        draft = make_draft()
        mock_invoice_repo.load = AsyncMock(return_value=draft)
        use_case = RemoveLine(mock_uow, mock_invoice_repo)

        result = await use_case.execute(
            RemoveLineCommandDTO(tenant_id="tenant_1", invoice_id=draft.id, user_id="user_7", position=1)
        )

        assert result.is_ok()
        assert result.value.lines == []
        mock_uow.commit.assert_called_once()

    async def test_remove_line_from_issued_invoice_is_rejected(self, mock_uow, mock_invoice_repo, make_draft):
        invoice = issued(make_draft())
        mock_invoice_repo.load = AsyncMock(return_value=invoice)
        use_case = RemoveLine(mock_uow, mock_invoice_repo)

        result = await use_case.execute(
            RemoveLineCommandDTO(tenant_id="tenant_1", invoice_id=invoice.id, user_id="user_7", position=1)
        )

        assert result.is_err()
        assert result.error.code == "INVALID_STATE"
        assert len(invoice.lines) == 1
