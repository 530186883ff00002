"""Unit tests for VoidInvoice use case"""

import logging
import pytest
from unittest.mock import AsyncMock, MagicMock

from src.app.use_cases.invoicing.dtos import VoidInvoiceCommandDTO
from src.app.use_cases.invoicing.void_invoice import VoidInvoice
from src.domain.document_number import StructuredNumber
from src.domain.errors import ImmutabilityError


@pytest.fixture
def mock_invoice_repo():
    repo = MagicMock()
    repo.save = AsyncMock(side_effect=lambda invoice: invoice)
    return repo


@pytest.fixture
def issued_invoice(make_draft):
    invoice = make_draft()
    invoice.issue(
        number=StructuredNumber("F", 2026, 1),
        fingerprint="A" * 64,
        previous_fingerprint=None,
        chain_position=1,
        user_id="user_7",
    )
    return invoice


def command(invoice_id, reason="Issued to the wrong client"):
    return VoidInvoiceCommandDTO(tenant_id="tenant_1", invoice_id=invoice_id, user_id="user_9", reason=reason)


@pytest.mark.asyncio
class TestVoidInvoice:
    async def test_void_keeps_number(self, mock_uow, mock_invoice_repo, issued_invoice):
        mock_invoice_repo.load = AsyncMock(return_value=issued_invoice)
        use_case = VoidInvoice(mock_uow, mock_invoice_repo)

        result = await use_case.execute(command(issued_invoice.id))

        assert result.is_ok()
        assert result.value.status == "void"
        assert result.value.number == "F-2026-000001"
        assert result.value.fingerprint == "A" * 64
        assert result.value.void_reason == "Issued to the wrong client"
        mock_uow.commit.assert_called_once()

    async def test_blank_reason_is_rejected(self, mock_uow, mock_invoice_repo, issued_invoice):
        mock_invoice_repo.load = AsyncMock(return_value=issued_invoice)
        use_case = VoidInvoice(mock_uow, mock_invoice_repo)

        result = await use_case.execute(command(issued_invoice.id, reason="  "))

        assert result.is_err()
        assert result.error.code == "VALIDATION_ERROR"
        mock_invoice_repo.save.assert_not_called()
        mock_uow.rollback.assert_called_once()

    async def test_paid_invoice_cannot_be_voided(self, mock_uow, mock_invoice_repo, issued_invoice):
        issued_invoice.mark_paid("user_9")
        mock_invoice_repo.load = AsyncMock(return_value=issued_invoice)
        use_case = VoidInvoice(mock_uow, mock_invoice_repo)

        result = await use_case.execute(command(issued_invoice.id))

        assert result.is_err()
        assert result.error.code == "INVALID_STATE"

    async def test_draft_cannot_be_voided(self, mock_uow, mock_invoice_repo, make_draft):
        draft = make_draft()
        mock_invoice_repo.load = AsyncMock(return_value=draft)
        use_case = VoidInvoice(mock_uow, mock_invoice_repo)

        result = await use_case.execute(command(draft.id))

        assert result.is_err()
        assert result.error.code == "INVALID_STATE"

    async def test_frozen_field_violation_is_logged_as_error(
        self, mock_uow, mock_invoice_repo, issued_invoice, caplog
    ):
        mock_invoice_repo.load = AsyncMock(return_value=issued_invoice)
        mock_invoice_repo.save = AsyncMock(
            side_effect=ImmutabilityError(f"Frozen fields of issued invoice {issued_invoice.id} cannot change")
        )
        use_case = VoidInvoice(mock_uow, mock_invoice_repo)

        with caplog.at_level(logging.WARNING):
            result = await use_case.execute(command(issued_invoice.id))

        assert result.is_err()
        assert result.error.code == "IMMUTABILITY_VIOLATION"
        mock_uow.commit.assert_not_called()
        records = [record for record in caplog.records if "IMMUTABILITY_VIOLATION" in record.getMessage()]
        assert [record.levelno for record in records] == [logging.ERROR]
