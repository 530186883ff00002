"""SQLAlchemy Invoice Repository Implementation

Persists the Invoice aggregate as one invoice row plus its line rows.
"""

from datetime import date
from typing import Dict, Iterable, List, Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.adapter.models.invoice import InvoiceLineRow, InvoiceRow
from src.adapter.repositories.db_errors import storage_errors
from src.adapter.repositories.invoice_mapper import line_rows_for, line_values, row_values, to_domain
from src.app.repositories.invoice_repository import InvoiceRepository
from src.domain.errors import ImmutabilityError, InvalidStateError, NotFoundError
from src.domain.fingerprint import ChainLink
from src.domain.invoice import Invoice, fingerprint_fields_for


class SqlAlchemyInvoiceRepository(InvoiceRepository):
    """
    SQLAlchemy implementation of InvoiceRepository

    Features:
    - Pessimistic locking via SELECT FOR UPDATE (ignored on SQLite, which
      serializes writers at the database level)
    - Frozen fields of issued invoices are compared with the stored row on
      every save
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, invoice: Invoice) -> Invoice:
        """
        Create a new draft invoice

        Args:
            invoice: Draft invoice to persist

        Returns:
            The persisted Invoice
        """
        invoice.check_invariants()
        if not invoice.is_draft():
            raise InvalidStateError(f"Only draft invoices can be created; {invoice.id} is '{invoice.status.value}'")

        with storage_errors(f"create invoice {invoice.id}"):
            self.session.add(InvoiceRow(**row_values(invoice)))
            await self.session.flush()
            self.session.add_all(line_rows_for(invoice))
            await self.session.flush()
        return invoice

    async def _get_row(self, invoice_id: str, tenant_id: str, for_update: bool = False) -> Optional[InvoiceRow]:
        stmt = select(InvoiceRow).where(InvoiceRow.id == invoice_id, InvoiceRow.tenant_id == tenant_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def _get_line_rows(self, invoice_ids: Iterable[str]) -> Dict[str, List[InvoiceLineRow]]:
        invoice_ids = list(invoice_ids)
        grouped: Dict[str, List[InvoiceLineRow]] = {invoice_id: [] for invoice_id in invoice_ids}
        if not invoice_ids:
            return grouped
        stmt = (
            select(InvoiceLineRow)
            .where(InvoiceLineRow.invoice_id.in_(invoice_ids))
            .order_by(InvoiceLineRow.invoice_id, InvoiceLineRow.position)
        )
        result = await self.session.execute(stmt)
        for line in result.scalars().all():
            grouped[line.invoice_id].append(line)
        return grouped

    async def load(self, invoice_id: str, tenant_id: str, for_update: bool = False) -> Optional[Invoice]:
        """
        Retrieve an invoice with its lines

        Args:
            invoice_id: Invoice ID
            tenant_id: Tenant owning the invoice
            for_update: If True, locks the row with SELECT FOR UPDATE

        Returns:
            Invoice if found for this tenant, None otherwise
        """
        with storage_errors(f"load invoice {invoice_id}"):
            row = await self._get_row(invoice_id, tenant_id, for_update=for_update)
            if row is None:
                return None
            lines = await self._get_line_rows([row.id])
        return to_domain(row, lines[row.id])

    async def load_draft(self, invoice_id: str, tenant_id: str) -> Optional[Invoice]:
        return await self.load(invoice_id, tenant_id, for_update=True)

    async def load_most_recent_issued_fingerprint(
        self, tenant_id: str, exclude_invoice_id: Optional[str] = None
    ) -> Optional[str]:
        stmt = select(InvoiceRow.fingerprint).where(
            InvoiceRow.tenant_id == tenant_id,
            InvoiceRow.chain_position.is_not(None),
        )
        if exclude_invoice_id is not None:
            stmt = stmt.where(InvoiceRow.id != exclude_invoice_id)
        stmt = stmt.order_by(InvoiceRow.chain_position.desc()).limit(1)

        with storage_errors(f"previous fingerprint lookup for tenant {tenant_id}"):
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()

    async def load_latest_issue_date(
        self, tenant_id: str, exclude_invoice_id: Optional[str] = None
    ) -> Optional[date]:
        stmt = select(InvoiceRow.issue_date).where(
            InvoiceRow.tenant_id == tenant_id,
            InvoiceRow.chain_position.is_not(None),
        )
        if exclude_invoice_id is not None:
            stmt = stmt.where(InvoiceRow.id != exclude_invoice_id)
        stmt = stmt.order_by(InvoiceRow.chain_position.desc()).limit(1)

        with storage_errors(f"latest issue date lookup for tenant {tenant_id}"):
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()

    async def save(self, invoice: Invoice) -> Invoice:
        """
        Update an existing invoice

        Args:
            invoice: Invoice aggregate after a transition

        Returns:
            The saved Invoice

        Raises:
            NotFoundError: invoice does not exist for its tenant
            InvalidStateError: aggregate violates a structural invariant
            ImmutabilityError: frozen fields of an issued invoice changed
        """
        invoice.check_invariants()

        with storage_errors(f"save invoice {invoice.id}"):
            row = await self._get_row(invoice.id, invoice.tenant_id)
            if row is None:
                raise NotFoundError(f"Invoice {invoice.id} not found for tenant {invoice.tenant_id}")
            line_rows = (await self._get_line_rows([row.id]))[row.id]

            stored = to_domain(row, line_rows)
            if stored.is_numbered() and stored.frozen_snapshot() != invoice.frozen_snapshot():
                raise ImmutabilityError(
                    f"Frozen fields of issued invoice {invoice.id} cannot change",
                    reason=f"stored number {row.number}",
                )

            for column, value in row_values(invoice).items():
                setattr(row, column, value)

            if stored.is_draft():
                await self._sync_lines(invoice, line_rows)

            await self.session.flush()
        return invoice

    async def _sync_lines(self, invoice: Invoice, line_rows: List[InvoiceLineRow]) -> None:
        """Rewrite the stored lines of a draft to match the aggregate"""
        by_position = {line.position: line for line in line_rows}
        for position, line in enumerate(invoice.lines, start=1):
            existing = by_position.pop(position, None)
            if existing is None:
                self.session.add(InvoiceLineRow(invoice_id=invoice.id, position=position, **line_values(line)))
                continue
            for column, value in line_values(line).items():
                setattr(existing, column, value)
        for stale in by_position.values():
            await self.session.delete(stale)

    async def list_chain(self, tenant_id: str) -> List[ChainLink]:
        """
        All fingerprinted documents of a tenant in chain order

        Fingerprint fields are rebuilt from the stored lines, so any edit
        made behind the aggregate's back shows up as a mismatch.
        """
        stmt = (
            select(InvoiceRow)
            .where(InvoiceRow.tenant_id == tenant_id, InvoiceRow.chain_position.is_not(None))
            .order_by(InvoiceRow.chain_position)
        )
        with storage_errors(f"chain listing for tenant {tenant_id}"):
            result = await self.session.execute(stmt)
            rows = list(result.scalars().all())
            lines = await self._get_line_rows(row.id for row in rows)

        links = []
        for row in rows:
            invoice = to_domain(row, lines[row.id])
            links.append(
                ChainLink(
                    invoice_id=invoice.id,
                    chain_position=invoice.chain_position,
                    fields=fingerprint_fields_for(invoice, invoice.number),
                    fingerprint=invoice.fingerprint,
                    previous_fingerprint=invoice.previous_fingerprint,
                )
            )
        return links
