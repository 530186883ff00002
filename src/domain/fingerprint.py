"""Fiscal Hash Chain

Computes the tamper-evident fingerprint of an issued document and verifies
a tenant's chain of fingerprints.

Formula:
    fingerprint = SHA256(
        tenant_id | number | issue_date | taxable_base | tax | grand_total
        | client_tax_id | previous_fingerprint
    )

Rules:
- Fields are joined with FIELD_DELIMITER in exactly the order above
- Dates are ISO YYYY-MM-DD, amounts have 2 decimals, a missing client tax
  id is the empty string
- The first document of a tenant chains to GENESIS_MARKER
- The digest is rendered as 64 uppercase hex characters
- Same input ALWAYS produces the same output

This module ONLY computes. It does not persist, lock or repair anything.
"""

import hashlib
import hmac
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import List, Optional, Sequence

from src.domain.money import Money

FIELD_DELIMITER = "|"
GENESIS_MARKER = "GENESIS"


@dataclass(frozen=True)
class FingerprintFields:
    """The fiscally relevant fields bound by a fingerprint"""

    tenant_id: str
    number: str
    issue_date: date
    taxable_base: Money
    tax_amount: Money
    grand_total: Money
    client_tax_id: Optional[str] = None


def canonical_payload(fields: FingerprintFields, previous_fingerprint: Optional[str]) -> str:
    return FIELD_DELIMITER.join(
        (
            fields.tenant_id,
            fields.number,
            fields.issue_date.isoformat(),
            fields.taxable_base.format(),
            fields.tax_amount.format(),
            fields.grand_total.format(),
            fields.client_tax_id or "",
            previous_fingerprint or GENESIS_MARKER,
        )
    )


def compute_fingerprint(fields: FingerprintFields, previous_fingerprint: Optional[str]) -> str:
    """
    Compute the SHA-256 fingerprint of a document

    Args:
        fields: fiscally relevant fields of the numbered document
        previous_fingerprint: fingerprint of the tenant's previous issued
            document, or None for the tenant's first document

    Returns:
        64-character uppercase hex digest
    """
    payload = canonical_payload(fields, previous_fingerprint)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest().upper()


def fingerprint_matches(fields: FingerprintFields, previous_fingerprint: Optional[str], expected: str) -> bool:
    """Constant-time comparison of a recorded fingerprint with a recomputed one"""
    if not isinstance(expected, str) or len(expected) != 64:
        return False
    actual = compute_fingerprint(fields, previous_fingerprint)
    return hmac.compare_digest(actual, expected.upper())


# ---------------------------------------------------------------------------
# Chain verification
# ---------------------------------------------------------------------------

class ChainBreakKind(str, Enum):
    FINGERPRINT_MISMATCH = "fingerprint_mismatch"  # fields edited after issuance
    BROKEN_LINK = "broken_link"                    # deletion, reordering or fork
    POSITION_GAP = "position_gap"                  # missing chain position


@dataclass(frozen=True)
class ChainLink:
    """One issued document as recorded in storage"""

    invoice_id: str
    chain_position: int
    fields: FingerprintFields
    fingerprint: str
    previous_fingerprint: Optional[str]


@dataclass(frozen=True)
class ChainBreak:
    invoice_id: str
    number: str
    chain_position: int
    kind: ChainBreakKind
    detail: str


def verify_chain(links: Sequence[ChainLink]) -> List[ChainBreak]:
    """
    Verify a tenant's ledger

    Links must be given in chain order. Every fingerprint is recomputed and
    every previous_fingerprint is checked against the prior link. Nothing is
    corrected: the caller decides what to do with the breaks.

    Returns:
        All breaks found, in chain order (empty list = intact chain)
    """
    breaks: List[ChainBreak] = []
    prior: Optional[ChainLink] = None

    for link in links:
        expected_position = 1 if prior is None else prior.chain_position + 1
        if link.chain_position != expected_position:
            breaks.append(
                ChainBreak(
                    invoice_id=link.invoice_id,
                    number=link.fields.number,
                    chain_position=link.chain_position,
                    kind=ChainBreakKind.POSITION_GAP,
                    detail=f"expected position {expected_position}, found {link.chain_position}",
                )
            )

        expected_previous = prior.fingerprint if prior is not None else None
        if link.previous_fingerprint != expected_previous:
            breaks.append(
                ChainBreak(
                    invoice_id=link.invoice_id,
                    number=link.fields.number,
                    chain_position=link.chain_position,
                    kind=ChainBreakKind.BROKEN_LINK,
                    detail=(
                        f"previous fingerprint {link.previous_fingerprint!r} "
                        f"does not match prior document {expected_previous!r}"
                    ),
                )
            )

        if not fingerprint_matches(link.fields, link.previous_fingerprint, link.fingerprint):
            breaks.append(
                ChainBreak(
                    invoice_id=link.invoice_id,
                    number=link.fields.number,
                    chain_position=link.chain_position,
                    kind=ChainBreakKind.FINGERPRINT_MISMATCH,
                    detail="recorded fingerprint does not match the document fields",
                )
            )

        prior = link

    return breaks
