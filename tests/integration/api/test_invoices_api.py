"""Integration tests for Invoice API endpoints"""

import pytest
from datetime import date
from decimal import Decimal
from httpx import AsyncClient

from config import ApplicationConfig

BASE = f"{ApplicationConfig.API_PREFIX}/invoices"
LINE = {"kind": "part", "description": "Oil filter", "quantity": "1", "unit_price": "100.00", "tax_percent": "21"}


@pytest.fixture(autouse=True)
def fixed_today(monkeypatch):
    monkeypatch.setattr("src.app.use_cases.invoicing.issue_invoice.current_date", lambda: date(2026, 3, 1))


async def create_draft(client: AsyncClient, tenant_id="tenant_api_1", lines=None):
    payload = {
        "tenant_id": tenant_id,
        "client_id": "client_42",
        "created_by": "user_7",
        "series": "F",
        "lines": [LINE] if lines is None else lines,
    }
    response = await client.post(f"{BASE}/drafts", json=payload)
    assert response.status_code == 201
    return response.json()


async def issue(client: AsyncClient, invoice_id, tenant_id="tenant_api_1", issue_date="2026-03-01"):
    return await client.post(
        f"{BASE}/{invoice_id}/issue",
        json={"tenant_id": tenant_id, "user_id": "user_7", "issue_date": issue_date},
    )


@pytest.mark.asyncio
class TestInvoiceAPIIntegration:
    """Integration test suite for Invoice API endpoints"""

    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    async def test_create_draft(self, client: AsyncClient):
        data = await create_draft(client)

        assert data["status"] == "draft"
        assert data["number"] is None
        assert Decimal(data["grand_total"]) == Decimal("121.00")
        assert data["lines"][0]["position"] == 1

    async def test_create_draft_with_invalid_line_returns_400(self, client: AsyncClient):
        payload = {
            "tenant_id": "tenant_api_1",
            "client_id": "client_42",
            "created_by": "user_7",
            "lines": [dict(LINE, quantity="0")],
        }

        response = await client.post(f"{BASE}/drafts", json=payload)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_issue_and_get(self, client: AsyncClient):
        # Arrange
        first = await create_draft(client)
        second = await create_draft(client)

        # Act
        issued_first = await issue(client, first["invoice_id"])
        issued_second = await issue(client, second["invoice_id"])
        fetched = await client.get(f"{BASE}/{second['invoice_id']}", params={"tenant_id": "tenant_api_1"})

        # Assert
        assert issued_first.status_code == 200
        assert issued_first.json()["number"] == "F-2026-000001"
        assert issued_second.json()["number"] == "F-2026-000002"
        assert fetched.status_code == 200
        assert fetched.json()["previous_fingerprint"] == issued_first.json()["fingerprint"]

    async def test_issue_empty_draft_returns_422(self, client: AsyncClient):
        draft = await create_draft(client, lines=[])

        response = await issue(client, draft["invoice_id"])

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "BUSINESS_RULE_VIOLATION"

    async def test_issue_in_a_closed_fiscal_year_returns_422(self, client: AsyncClient):
        draft = await create_draft(client, tenant_id="tenant_api_backdate")

        response = await issue(client, draft["invoice_id"], tenant_id="tenant_api_backdate", issue_date="2019-01-01")

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "BUSINESS_RULE_VIOLATION"
        fetched = await client.get(f"{BASE}/{draft['invoice_id']}", params={"tenant_id": "tenant_api_backdate"})
        assert fetched.json()["status"] == "draft"
        assert fetched.json()["number"] is None

    async def test_line_editing(self, client: AsyncClient):
        draft = await create_draft(client)
        invoice_id = draft["invoice_id"]
        labour = {"kind": "labour", "description": "Diagnosis", "quantity": "2", "unit_price": "30", "tax_percent": "21"}

        added = await client.post(
            f"{BASE}/{invoice_id}/lines",
            json={"tenant_id": "tenant_api_1", "user_id": "user_7", "line": labour},
        )
        edited = await client.put(
            f"{BASE}/{invoice_id}/lines/2",
            json={"tenant_id": "tenant_api_1", "user_id": "user_7", "line": dict(labour, quantity="1")},
        )
        removed = await client.delete(
            f"{BASE}/{invoice_id}/lines/1",
            params={"tenant_id": "tenant_api_1", "user_id": "user_7"},
        )

        assert added.status_code == 200
        assert len(added.json()["lines"]) == 2
        assert Decimal(edited.json()["lines"][1]["quantity"]) == Decimal("1")
        assert removed.status_code == 200
        assert [line["description"] for line in removed.json()["lines"]] == ["Diagnosis"]

    async def test_issued_invoice_lines_are_frozen(self, client: AsyncClient):
        draft = await create_draft(client)
        await issue(client, draft["invoice_id"])

        response = await client.post(
            f"{BASE}/{draft['invoice_id']}/lines",
            json={"tenant_id": "tenant_api_1", "user_id": "user_7", "line": LINE},
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "INVALID_STATE"

    async def test_pay_and_void(self, client: AsyncClient):
        paid_draft = await create_draft(client)
        void_draft = await create_draft(client)
        await issue(client, paid_draft["invoice_id"])
        await issue(client, void_draft["invoice_id"])

        paid = await client.post(
            f"{BASE}/{paid_draft['invoice_id']}/pay", json={"tenant_id": "tenant_api_1", "user_id": "user_9"}
        )
        paid_again = await client.post(
            f"{BASE}/{paid_draft['invoice_id']}/pay", json={"tenant_id": "tenant_api_1", "user_id": "user_9"}
        )
        voided = await client.post(
            f"{BASE}/{void_draft['invoice_id']}/void",
            json={"tenant_id": "tenant_api_1", "user_id": "user_9", "reason": "Wrong client"},
        )
        void_paid = await client.post(
            f"{BASE}/{paid_draft['invoice_id']}/void",
            json={"tenant_id": "tenant_api_1", "user_id": "user_9", "reason": "Mistake"},
        )

        assert paid.status_code == 200
        assert paid.json()["status"] == "paid"
        assert paid_again.status_code == 200
        assert voided.json()["status"] == "void"
        assert voided.json()["number"] == "F-2026-000002"
        assert void_paid.status_code == 409

    async def test_get_unknown_invoice_returns_404(self, client: AsyncClient):
        response = await client.get(f"{BASE}/does-not-exist", params={"tenant_id": "tenant_api_1"})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "INVOICE_NOT_FOUND"

    async def test_verify_chain(self, client: AsyncClient):
        draft = await create_draft(client)
        await issue(client, draft["invoice_id"])

        response = await client.post(f"{BASE}/chains/tenant_api_1/verify")

        assert response.status_code == 200
        data = response.json()
        assert data["intact"] is True
        assert data["documents_checked"] == 1
        assert data["halted"] is False
