"""Invoicing use cases"""
from .create_draft import CreateDraft
from .edit_lines import AddLine, EditLine, RemoveLine
from .issue_invoice import IssueInvoice
from .mark_paid import MarkInvoicePaid
from .void_invoice import VoidInvoice
from .get_invoice import GetInvoice
from .verify_chain import VerifyFiscalChain
from .projections import to_invoice_response
from .dtos import (
    LineItemDTO,
    CreateDraftCommandDTO,
    AddLineCommandDTO,
    EditLineCommandDTO,
    RemoveLineCommandDTO,
    IssueInvoiceCommandDTO,
    MarkPaidCommandDTO,
    VoidInvoiceCommandDTO,
    LineResponseDTO,
    TaxBreakdownDTO,
    InvoiceResponseDTO,
    ChainBreakDTO,
    ChainVerificationResultDTO,
    ChainAuditSummaryDTO,
)

__all__ = [
    "CreateDraft",
    "AddLine",
    "EditLine",
    "RemoveLine",
    "IssueInvoice",
    "MarkInvoicePaid",
    "VoidInvoice",
    "GetInvoice",
    "VerifyFiscalChain",
    "to_invoice_response",
    "LineItemDTO",
    "CreateDraftCommandDTO",
    "AddLineCommandDTO",
    "EditLineCommandDTO",
    "RemoveLineCommandDTO",
    "IssueInvoiceCommandDTO",
    "MarkPaidCommandDTO",
    "VoidInvoiceCommandDTO",
    "LineResponseDTO",
    "TaxBreakdownDTO",
    "InvoiceResponseDTO",
    "ChainBreakDTO",
    "ChainVerificationResultDTO",
    "ChainAuditSummaryDTO",
]
