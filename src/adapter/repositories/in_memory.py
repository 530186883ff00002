"""In-memory repository implementations

Used in tests and bootstrap. Aggregates are deep-copied on the way in and
out, so callers never share an instance with the store. The uniqueness
rules of the database (number and chain position per tenant) are checked
on every write.
"""

import copy
from dataclasses import replace
from datetime import date, datetime
from typing import List, Optional

from src.adapter.services.in_memory_unit_of_work import InMemoryUnitOfWork
from src.app.repositories.fiscal_chain_repository import ChainHead, FiscalChainRepository
from src.app.repositories.invoice_repository import InvoiceRepository
from src.app.repositories.sequence_counter_repository import SequenceCounterRepository
from src.domain.document_number import format_number
from src.domain.errors import ImmutabilityError, InvalidStateError, NotFoundError, RepositoryError
from src.domain.fingerprint import ChainLink
from src.domain.invoice import Invoice, fingerprint_fields_for


class InMemoryInvoiceRepository(InvoiceRepository):
    def __init__(self, uow: InMemoryUnitOfWork):
        self.uow = uow
        self.store = uow.store

    def _put(self, invoice: Invoice) -> None:
        previous = self.store.invoices.get(invoice.id)
        self._check_unique(invoice)
        self.store.invoices[invoice.id] = copy.deepcopy(invoice)

        def undo():
            if previous is None:
                self.store.invoices.pop(invoice.id, None)
            else:
                self.store.invoices[invoice.id] = previous

        self.uow.record_undo(undo)

    def _check_unique(self, invoice: Invoice) -> None:
        if invoice.number is None:
            return
        number = format_number(invoice.number)
        for other in self.store.invoices.values():
            if other.id == invoice.id or other.tenant_id != invoice.tenant_id:
                continue
            if other.number is not None and format_number(other.number) == number:
                raise RepositoryError(f"Number {number} already used by invoice {other.id}")
            if other.chain_position == invoice.chain_position:
                raise RepositoryError(
                    f"Chain position {invoice.chain_position} already used by invoice {other.id}"
                )

    async def create(self, invoice: Invoice) -> Invoice:
        invoice.check_invariants()
        if not invoice.is_draft():
            raise InvalidStateError(f"Only draft invoices can be created; {invoice.id} is '{invoice.status.value}'")
        if invoice.id in self.store.invoices:
            raise RepositoryError(f"Invoice {invoice.id} already exists")
        self._put(invoice)
        return invoice

    async def load(self, invoice_id: str, tenant_id: str, for_update: bool = False) -> Optional[Invoice]:
        if for_update:
            await self.uow.acquire(("invoice", invoice_id))
        stored = self.store.invoices.get(invoice_id)
        if stored is None or stored.tenant_id != tenant_id:
            return None
        return copy.deepcopy(stored)

    async def load_draft(self, invoice_id: str, tenant_id: str) -> Optional[Invoice]:
        return await self.load(invoice_id, tenant_id, for_update=True)

    async def load_most_recent_issued_fingerprint(
        self, tenant_id: str, exclude_invoice_id: Optional[str] = None
    ) -> Optional[str]:
        chained = [
            invoice
            for invoice in self.store.invoices.values()
            if invoice.tenant_id == tenant_id
            and invoice.chain_position is not None
            and invoice.id != exclude_invoice_id
        ]
        if not chained:
            return None
        return max(chained, key=lambda invoice: invoice.chain_position).fingerprint

    async def load_latest_issue_date(
        self, tenant_id: str, exclude_invoice_id: Optional[str] = None
    ) -> Optional[date]:
        chained = [
            invoice
            for invoice in self.store.invoices.values()
            if invoice.tenant_id == tenant_id
            and invoice.chain_position is not None
            and invoice.id != exclude_invoice_id
        ]
        if not chained:
            return None
        return max(chained, key=lambda invoice: invoice.chain_position).issue_date

    async def save(self, invoice: Invoice) -> Invoice:
        invoice.check_invariants()
        stored = self.store.invoices.get(invoice.id)
        if stored is None or stored.tenant_id != invoice.tenant_id:
            raise NotFoundError(f"Invoice {invoice.id} not found for tenant {invoice.tenant_id}")
        if stored.is_numbered() and stored.frozen_snapshot() != invoice.frozen_snapshot():
            raise ImmutabilityError(f"Frozen fields of issued invoice {invoice.id} cannot change")
        self._put(invoice)
        return invoice

    async def list_chain(self, tenant_id: str) -> List[ChainLink]:
        chained = sorted(
            (
                invoice
                for invoice in self.store.invoices.values()
                if invoice.tenant_id == tenant_id and invoice.chain_position is not None
            ),
            key=lambda invoice: invoice.chain_position,
        )
        return [
            ChainLink(
                invoice_id=invoice.id,
                chain_position=invoice.chain_position,
                fields=fingerprint_fields_for(invoice, invoice.number),
                fingerprint=invoice.fingerprint,
                previous_fingerprint=invoice.previous_fingerprint,
            )
            for invoice in chained
        ]


class InMemorySequenceCounterRepository(SequenceCounterRepository):
    def __init__(self, uow: InMemoryUnitOfWork):
        self.uow = uow
        self.store = uow.store

    async def next_sequence(
        self,
        tenant_id: str,
        series: str,
        fiscal_year: int,
        lock_timeout_seconds: float,
    ) -> int:
        key = (tenant_id, series, fiscal_year)
        await self.uow.acquire(("counter",) + key, lock_timeout_seconds)
        previous = self.store.counters.get(key)
        self.store.counters[key] = (previous or 0) + 1

        def undo():
            if previous is None:
                self.store.counters.pop(key, None)
            else:
                self.store.counters[key] = previous

        self.uow.record_undo(undo)
        return self.store.counters[key]

    async def current_sequence(self, tenant_id: str, series: str, fiscal_year: int) -> int:
        return self.store.counters.get((tenant_id, series, fiscal_year), 0)


class InMemoryFiscalChainRepository(FiscalChainRepository):
    def __init__(self, uow: InMemoryUnitOfWork):
        self.uow = uow
        self.store = uow.store

    def _replace(self, head: ChainHead) -> None:
        previous = self.store.chains.get(head.tenant_id)
        self.store.chains[head.tenant_id] = head

        def undo():
            if previous is None:
                self.store.chains.pop(head.tenant_id, None)
            else:
                self.store.chains[head.tenant_id] = previous

        self.uow.record_undo(undo)

    async def lock(self, tenant_id: str, lock_timeout_seconds: float) -> ChainHead:
        await self.uow.acquire(("chain", tenant_id), lock_timeout_seconds)
        head = self.store.chains.get(tenant_id)
        if head is None:
            head = ChainHead(tenant_id=tenant_id, length=0)
            self._replace(head)
        return head

    async def advance(self, tenant_id: str, length: int) -> None:
        head = self.store.chains.get(tenant_id) or ChainHead(tenant_id=tenant_id, length=0)
        self._replace(replace(head, length=length))

    async def get(self, tenant_id: str) -> Optional[ChainHead]:
        return self.store.chains.get(tenant_id)

    async def halt(self, tenant_id: str, reason: str) -> None:
        head = self.store.chains.get(tenant_id)
        self._replace(
            ChainHead(
                tenant_id=tenant_id,
                length=head.length if head is not None else 0,
                halted=True,
                halt_reason=reason,
                halted_at=datetime.utcnow(),
            )
        )

    async def list_tenant_ids(self) -> List[str]:
        return sorted(self.store.chains)
