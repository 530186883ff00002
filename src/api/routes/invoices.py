"""Invoice API Routes

FastAPI routes for the draft -> issued -> paid / void lifecycle and for
hash chain verification.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.api.error import ClientError
from src.api.schemas.invoice_request import (
    CreateDraftRequestSchema,
    IssueRequestSchema,
    LineChangeRequestSchema,
    LineRequestSchema,
    PayRequestSchema,
    VoidRequestSchema,
)
from src.app.services.sequence_allocator import SequenceAllocator
from src.app.use_cases.invoicing import (
    AddLine,
    AddLineCommandDTO,
    ChainVerificationResultDTO,
    CreateDraft,
    CreateDraftCommandDTO,
    EditLine,
    EditLineCommandDTO,
    GetInvoice,
    InvoiceResponseDTO,
    IssueInvoice,
    IssueInvoiceCommandDTO,
    LineItemDTO,
    MarkInvoicePaid,
    MarkPaidCommandDTO,
    RemoveLine,
    RemoveLineCommandDTO,
    VerifyFiscalChain,
    VoidInvoice,
    VoidInvoiceCommandDTO,
)
from src.adapter.repositories.fiscal_chain_repository import SqlAlchemyFiscalChainRepository
from src.adapter.repositories.invoice_repository import SqlAlchemyInvoiceRepository
from src.adapter.repositories.sequence_counter_repository import SqlAlchemySequenceCounterRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.depends import get_session

router = APIRouter(prefix="/invoices", tags=["Invoices"])


def _error_example(code: str, message: str) -> dict:
    return {"content": {"application/json": {"example": {"error": {"code": code, "message": message}}}}}


def _line_dto(line: LineRequestSchema) -> LineItemDTO:
    return LineItemDTO(**line.model_dump())


def _unwrap(result):
    if result.is_err():
        raise ClientError.from_error(result.error)
    return result.value


@router.post(
    "/drafts",
    response_model=InvoiceResponseDTO,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Validation error", **_error_example("VALIDATION_ERROR", "series must be 1 to 3 letters")},
    },
)
async def create_draft(
    request: CreateDraftRequestSchema,
    session: AsyncSession = Depends(get_session),
):
    """
    Create a draft invoice.

    Drafts have no number and no fingerprint; lines may be empty and can be
    edited until the invoice is issued.

    **Returns:**
    - 201: Draft created
    - 400: Invalid series, line or withholding values
    """
    uow = SqlAlchemyUnitOfWork(session)
    invoice_repo = SqlAlchemyInvoiceRepository(session)

    command = CreateDraftCommandDTO(
        tenant_id=request.tenant_id,
        client_id=request.client_id,
        created_by=request.created_by,
        series=request.series,
        client_tax_id=request.client_tax_id,
        source_order_id=request.source_order_id,
        issue_date=request.issue_date,
        due_date=request.due_date,
        withholding_percent=request.withholding_percent,
        lines=[_line_dto(line) for line in request.lines],
    )

    use_case = CreateDraft(uow, invoice_repo)
    return _unwrap(await use_case.execute(command))


@router.get(
    "/{invoice_id}",
    response_model=InvoiceResponseDTO,
    responses={404: {"description": "Invoice not found", **_error_example("INVOICE_NOT_FOUND", "Invoice abc not found")}},
)
async def get_invoice(
    invoice_id: str,
    tenant_id: str = Query(..., min_length=1, description="Tenant identifier"),
    session: AsyncSession = Depends(get_session),
):
    """Get an invoice with its lines and computed totals."""
    use_case = GetInvoice(SqlAlchemyInvoiceRepository(session))
    return _unwrap(await use_case.execute(tenant_id, invoice_id))


@router.post(
    "/{invoice_id}/lines",
    response_model=InvoiceResponseDTO,
    responses={
        404: {"description": "Invoice not found", **_error_example("INVOICE_NOT_FOUND", "Invoice abc not found")},
        409: {"description": "Invoice is not a draft", **_error_example("INVALID_STATE", "Cannot add a line to invoice abc in status 'issued'")},
    },
)
async def add_line(
    invoice_id: str,
    request: LineChangeRequestSchema,
    session: AsyncSession = Depends(get_session),
):
    """Append a line to a draft invoice."""
    command = AddLineCommandDTO(
        tenant_id=request.tenant_id,
        invoice_id=invoice_id,
        user_id=request.user_id,
        line=_line_dto(request.line),
    )
    use_case = AddLine(SqlAlchemyUnitOfWork(session), SqlAlchemyInvoiceRepository(session))
    return _unwrap(await use_case.execute(command))


@router.put(
    "/{invoice_id}/lines/{position}",
    response_model=InvoiceResponseDTO,
    responses={409: {"description": "Invoice is not a draft", **_error_example("INVALID_STATE", "Cannot edit a line of invoice abc in status 'issued'")}},
)
async def edit_line(
    invoice_id: str,
    position: int,
    request: LineChangeRequestSchema,
    session: AsyncSession = Depends(get_session),
):
    """Replace the line at a 1-based position of a draft invoice."""
    command = EditLineCommandDTO(
        tenant_id=request.tenant_id,
        invoice_id=invoice_id,
        user_id=request.user_id,
        position=position,
        line=_line_dto(request.line),
    )
    use_case = EditLine(SqlAlchemyUnitOfWork(session), SqlAlchemyInvoiceRepository(session))
    return _unwrap(await use_case.execute(command))


@router.delete(
    "/{invoice_id}/lines/{position}",
    response_model=InvoiceResponseDTO,
    responses={409: {"description": "Invoice is not a draft", **_error_example("INVALID_STATE", "Cannot remove a line from invoice abc in status 'issued'")}},
)
async def remove_line(
    invoice_id: str,
    position: int,
    tenant_id: str = Query(..., min_length=1, description="Tenant identifier"),
    user_id: str = Query(..., min_length=1, description="User editing the draft"),
    session: AsyncSession = Depends(get_session),
):
    """Remove the line at a 1-based position of a draft invoice."""
    command = RemoveLineCommandDTO(
        tenant_id=tenant_id,
        invoice_id=invoice_id,
        user_id=user_id,
        position=position,
    )
    use_case = RemoveLine(SqlAlchemyUnitOfWork(session), SqlAlchemyInvoiceRepository(session))
    return _unwrap(await use_case.execute(command))


@router.post(
    "/{invoice_id}/issue",
    response_model=InvoiceResponseDTO,
    responses={
        422: {"description": "Draft cannot be issued", **_error_example("BUSINESS_RULE_VIOLATION", "Invoice abc has no lines")},
        423: {"description": "Tenant chain halted", **_error_example("INTEGRITY_VIOLATION", "Issuance is halted for tenant tenant_123 pending review")},
        503: {"description": "Numbering busy, retry", **_error_example("ALLOCATION_FAILED", "Could not lock the F/2026 counter in time")},
    },
)
async def issue_invoice(
    invoice_id: str,
    request: IssueRequestSchema,
    session: AsyncSession = Depends(get_session),
):
    """
    Issue a draft invoice.

    Allocates the next gap-free number of (tenant, series, year), chains the
    fingerprint to the tenant's previous document and freezes the invoice.

    **Returns:**
    - 200: Invoice issued
    - 404: Invoice not found
    - 422: Not a draft, no lines, or already numbered
    - 423: Issuance halted after an integrity violation
    - 503: Counter lock timeout (safe to retry)
    """
    uow = SqlAlchemyUnitOfWork(session)
    allocator = SequenceAllocator(
        SqlAlchemySequenceCounterRepository(session),
        lock_timeout_seconds=ApplicationConfig.SEQUENCE_LOCK_TIMEOUT_SECONDS,
    )
    use_case = IssueInvoice(
        uow,
        SqlAlchemyInvoiceRepository(session),
        SqlAlchemyFiscalChainRepository(session),
        allocator,
        lock_timeout_seconds=ApplicationConfig.SEQUENCE_LOCK_TIMEOUT_SECONDS,
    )
    command = IssueInvoiceCommandDTO(
        tenant_id=request.tenant_id,
        invoice_id=invoice_id,
        user_id=request.user_id,
        issue_date=request.issue_date,
    )
    return _unwrap(await use_case.execute(command))


@router.post(
    "/{invoice_id}/pay",
    response_model=InvoiceResponseDTO,
    responses={409: {"description": "Invoice is not issued", **_error_example("INVALID_STATE", "Only issued invoices can be marked as paid")}},
)
async def mark_paid(
    invoice_id: str,
    request: PayRequestSchema,
    session: AsyncSession = Depends(get_session),
):
    """Mark an issued invoice as paid. Repeating the call on a paid invoice succeeds."""
    command = MarkPaidCommandDTO(
        tenant_id=request.tenant_id,
        invoice_id=invoice_id,
        user_id=request.user_id,
        paid_at=request.paid_at,
    )
    use_case = MarkInvoicePaid(SqlAlchemyUnitOfWork(session), SqlAlchemyInvoiceRepository(session))
    return _unwrap(await use_case.execute(command))


@router.post(
    "/{invoice_id}/void",
    response_model=InvoiceResponseDTO,
    responses={
        400: {"description": "Missing reason", **_error_example("VALIDATION_ERROR", "reason is required")},
        409: {"description": "Invoice is not issued", **_error_example("INVALID_STATE", "Only issued invoices can be voided")},
    },
)
async def void_invoice(
    invoice_id: str,
    request: VoidRequestSchema,
    session: AsyncSession = Depends(get_session),
):
    """Void an issued invoice. Its number and fingerprint stay on record."""
    command = VoidInvoiceCommandDTO(
        tenant_id=request.tenant_id,
        invoice_id=invoice_id,
        user_id=request.user_id,
        reason=request.reason,
    )
    use_case = VoidInvoice(SqlAlchemyUnitOfWork(session), SqlAlchemyInvoiceRepository(session))
    return _unwrap(await use_case.execute(command))


@router.post(
    "/chains/{tenant_id}/verify",
    response_model=ChainVerificationResultDTO,
)
async def verify_chain(
    tenant_id: str,
    session: AsyncSession = Depends(get_session),
):
    """
    Verify the hash chain of a tenant.

    Recomputes every fingerprint. Any break halts issuance for the tenant
    until manual review; nothing is repaired.
    """
    use_case = VerifyFiscalChain(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyInvoiceRepository(session),
        SqlAlchemyFiscalChainRepository(session),
    )
    return _unwrap(await use_case.execute(tenant_id))
