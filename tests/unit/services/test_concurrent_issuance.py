"""Concurrent issuance against the in-memory adapters

Every task runs its own unit of work over one shared store, the way
concurrent requests share one database.
"""

import asyncio
import pytest
from datetime import date

from src.adapter.repositories.in_memory import (
    InMemoryFiscalChainRepository,
    InMemoryInvoiceRepository,
    InMemorySequenceCounterRepository,
)
from src.adapter.services.in_memory_unit_of_work import InMemoryStore, InMemoryUnitOfWork
from src.app.services.sequence_allocator import SequenceAllocator
from src.app.use_cases.invoicing import (
    CreateDraft,
    CreateDraftCommandDTO,
    IssueInvoice,
    IssueInvoiceCommandDTO,
    LineItemDTO,
    VerifyFiscalChain,
)

LINE = LineItemDTO(kind="part", description="Oil filter", quantity="1", unit_price="100.00", tax_percent="21")


class FailingSaveInvoiceRepository(InMemoryInvoiceRepository):
    async def save(self, invoice):
        raise RuntimeError("connection reset")


class IssuingDuringAuditInvoiceRepository(InMemoryInvoiceRepository):
    """Starts issuing another draft while the audit reads the chain"""

    def __init__(self, uow, draft_id):
        super().__init__(uow)
        self.draft_id = draft_id
        self.pending_issue = None

    async def list_chain(self, tenant_id):
        self.pending_issue = asyncio.create_task(issue(self.store, self.draft_id, tenant_id))
        await asyncio.sleep(0.05)
        return await super().list_chain(tenant_id)


async def create_draft(store, tenant_id="tenant_1", series="F"):
    uow = InMemoryUnitOfWork(store)
    result = await CreateDraft(uow, InMemoryInvoiceRepository(uow)).execute(
        CreateDraftCommandDTO(
            tenant_id=tenant_id, client_id="client_42", created_by="user_7", series=series, lines=[LINE]
        )
    )
    return result.value.invoice_id


async def issue(store, invoice_id, tenant_id="tenant_1", invoice_repo_class=InMemoryInvoiceRepository):
    uow = InMemoryUnitOfWork(store, lock_timeout_seconds=5.0)
    use_case = IssueInvoice(
        uow,
        invoice_repo_class(uow),
        InMemoryFiscalChainRepository(uow),
        SequenceAllocator(InMemorySequenceCounterRepository(uow), lock_timeout_seconds=5.0),
        lock_timeout_seconds=5.0,
        clock=lambda: date(2026, 3, 1),
    )
    return await use_case.execute(
        IssueInvoiceCommandDTO(
            tenant_id=tenant_id, invoice_id=invoice_id, user_id="user_7", issue_date=date(2026, 3, 1)
        )
    )


async def verify(store, tenant_id="tenant_1"):
    uow = InMemoryUnitOfWork(store)
    use_case = VerifyFiscalChain(uow, InMemoryInvoiceRepository(uow), InMemoryFiscalChainRepository(uow))
    return (await use_case.execute(tenant_id)).value


@pytest.mark.asyncio
class TestConcurrentIssuance:
    async def test_parallel_issues_are_gap_free_and_unforked(self):
        # Arrange
        store = InMemoryStore()
        draft_ids = [await create_draft(store) for _ in range(20)]

        # Act
        results = await asyncio.gather(*(issue(store, draft_id) for draft_id in draft_ids))

        # Assert
        assert all(result.is_ok() for result in results)
        numbers = sorted(result.value.number for result in results)
        assert numbers == [f"F-2026-{n:06d}" for n in range(1, 21)]
        positions = sorted(result.value.chain_position for result in results)
        assert positions == list(range(1, 21))

        verification = await verify(store)
        assert verification.intact is True
        assert verification.documents_checked == 20

    async def test_series_and_tenants_have_independent_counters(self):
        store = InMemoryStore()
        drafts = [
            ("tenant_1", await create_draft(store, "tenant_1", "F")),
            ("tenant_1", await create_draft(store, "tenant_1", "R")),
            ("tenant_2", await create_draft(store, "tenant_2", "F")),
        ]

        results = await asyncio.gather(*(issue(store, draft_id, tenant_id) for tenant_id, draft_id in drafts))

        assert [result.value.number for result in results] == [
            "F-2026-000001",
            "R-2026-000001",
            "F-2026-000001",
        ]
        # One chain per tenant, shared by its series
        assert sorted(result.value.chain_position for result in results[:2]) == [1, 2]
        assert results[2].value.chain_position == 1

    async def test_rollback_releases_the_number(self):
        store = InMemoryStore()
        first = await create_draft(store)
        second = await create_draft(store)

        failed = await issue(store, first, invoice_repo_class=FailingSaveInvoiceRepository)
        retried = await issue(store, second)

        assert failed.is_err()
        assert store.counters[("tenant_1", "F", 2026)] == 1
        assert retried.value.number == "F-2026-000001"
        assert retried.value.previous_fingerprint is None

    async def test_tampering_halts_further_issuance(self):
        store = InMemoryStore()
        issued_id = await create_draft(store)
        await issue(store, issued_id)
        next_draft = await create_draft(store)

        store.invoices[issued_id].client_tax_id = "X9999999"
        verification = await verify(store)
        blocked = await issue(store, next_draft)

        assert verification.intact is False
        assert verification.halted is True
        assert blocked.is_err()
        assert blocked.error.code == "INTEGRITY_VIOLATION"
        assert store.counters[("tenant_1", "F", 2026)] == 1

    async def test_audit_overlapping_an_issuance_keeps_the_tenant_open(self):
        store = InMemoryStore()
        await issue(store, await create_draft(store))
        overlapping_draft = await create_draft(store)

        uow = InMemoryUnitOfWork(store)
        invoice_repo = IssuingDuringAuditInvoiceRepository(uow, overlapping_draft)
        audit = await VerifyFiscalChain(
            uow, invoice_repo, InMemoryFiscalChainRepository(uow), lock_timeout_seconds=5.0
        ).execute("tenant_1")
        overlapping = await invoice_repo.pending_issue

        # The issuance waited for the audit to release the chain head
        assert audit.value.intact is True
        assert audit.value.halted is False
        assert audit.value.documents_checked == 1
        assert overlapping.is_ok()
        assert overlapping.value.chain_position == 2

        final = await verify(store)
        assert final.intact is True
        assert final.halted is False
        assert final.documents_checked == 2
