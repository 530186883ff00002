"""Invoice Repository Interface

Defines the contract for invoice persistence operations.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import List, Optional
from src.domain.fingerprint import ChainLink
from src.domain.invoice import Invoice


class InvoiceRepository(ABC):
    """
    Repository interface for the Invoice aggregate

    Rules every implementation must follow:
    - Every query is scoped by tenant_id
    - There is no delete: invoices are created, read and updated only
    - save() rejects structurally invalid aggregates and any change to the
      frozen fields of an already issued invoice
    - Storage failures are raised as RepositoryError, never as driver errors
    """

    @abstractmethod
    async def create(self, invoice: Invoice) -> Invoice:
        """
        Persist a new draft invoice

        Args:
            invoice: Draft invoice to persist

        Returns:
            The persisted Invoice
        """
        pass

    @abstractmethod
    async def load(self, invoice_id: str, tenant_id: str, for_update: bool = False) -> Optional[Invoice]:
        """
        Retrieve an invoice with its lines

        Args:
            invoice_id: Invoice ID
            tenant_id: Tenant owning the invoice
            for_update: If True, locks the invoice row until the transaction ends

        Returns:
            Invoice if found for this tenant, None otherwise
        """
        pass

    @abstractmethod
    async def load_draft(self, invoice_id: str, tenant_id: str) -> Optional[Invoice]:
        """
        Retrieve an invoice about to be issued, locking its row

        The lifecycle guards decide whether it is still a draft.

        Args:
            invoice_id: Invoice ID
            tenant_id: Tenant owning the invoice

        Returns:
            Invoice if found for this tenant, None otherwise
        """
        pass

    @abstractmethod
    async def load_most_recent_issued_fingerprint(
        self, tenant_id: str, exclude_invoice_id: Optional[str] = None
    ) -> Optional[str]:
        """
        Fingerprint of the tenant's latest issued document

        Must be called while holding the tenant's chain lock.

        Args:
            tenant_id: Tenant identifier
            exclude_invoice_id: Invoice being issued, never its own predecessor

        Returns:
            Fingerprint of the document with the highest chain position,
            or None if the tenant has not issued anything yet
        """
        pass

    @abstractmethod
    async def load_latest_issue_date(
        self, tenant_id: str, exclude_invoice_id: Optional[str] = None
    ) -> Optional[date]:
        """Issue date of the tenant's document with the highest chain position"""
        pass

    @abstractmethod
    async def save(self, invoice: Invoice) -> Invoice:
        """
        Update an existing invoice

        Args:
            invoice: Invoice aggregate after a transition

        Returns:
            The saved Invoice

        Raises:
            InvalidStateError: aggregate violates a structural invariant
            ImmutabilityError: frozen fields of an issued invoice changed
        """
        pass

    @abstractmethod
    async def list_chain(self, tenant_id: str) -> List[ChainLink]:
        """
        All fingerprinted documents of a tenant in chain order

        Args:
            tenant_id: Tenant identifier

        Returns:
            Chain links ordered by chain position
        """
        pass
