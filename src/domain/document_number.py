"""Fiscal Document Number

A fiscal number is either:
- StructuredNumber: series + fiscal year + zero-padded sequence,
  formatted SERIES-YYYY-NNNNNN (e.g. F-2026-000123)
- OpaqueNumber: a legacy/foreign string kept verbatim. Its parsed fields
  are advisory only; the raw string is authoritative for display and
  fingerprinting.

Formatting and ordering branch explicitly on the variant. Every fallback
to OpaqueNumber is logged as a data-quality warning.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from libs.result import Error, Result, Return
from src.domain.errors import ValidationError

logger = logging.getLogger(__name__)

DELIMITER = "-"
SEQUENCE_WIDTH = 6
MAX_SEQUENCE = 999_999
MIN_YEAR = 2000
MAX_YEAR = 9999

SERIES_PATTERN = re.compile(r"^[A-Z]{1,3}$")
CANONICAL_PATTERN = re.compile(r"^([A-Z]{1,3})-(\d{4})-(\d{6})$")

# Legacy shapes seen in imported data, tried in order. Only used to fill
# advisory fields of an OpaqueNumber.
LEGACY_PATTERNS = (
    # F-2026-123, F/2026/000123, F 2026 12
    re.compile(r"^([A-Za-z]{1,10})[\s/_.-]*(\d{4})[\s/_.-]+(\d{1,9})$"),
    # 2026-F-000123, 2026/F/123
    re.compile(r"^(\d{4})[\s/_.-]+([A-Za-z]{1,10})[\s/_.-]+(\d{1,9})$"),
    # F000123/2026
    re.compile(r"^([A-Za-z]{1,10})[\s/_.-]*(\d{1,9})[\s/_.-]+(\d{4})$"),
)


def validate_series(series: str) -> str:
    """Normalise a series code, raising ValidationError if malformed"""
    if not isinstance(series, str) or not series.strip():
        raise ValidationError("series must not be empty", "series")
    normalized = series.strip().upper()
    if not SERIES_PATTERN.match(normalized):
        raise ValidationError(
            f"series must be 1 to 3 letters, got {series!r}", "series"
        )
    return normalized


@dataclass(frozen=True)
class StructuredNumber:
    """Canonical fiscal number"""

    series: str
    year: int
    sequence: int

    def __post_init__(self):
        object.__setattr__(self, "series", validate_series(self.series))
        if not isinstance(self.year, int) or not MIN_YEAR <= self.year <= MAX_YEAR:
            raise ValidationError(f"invalid fiscal year: {self.year}", "year")
        if not isinstance(self.sequence, int) or not 1 <= self.sequence <= MAX_SEQUENCE:
            raise ValidationError(
                f"sequence out of range 1..{MAX_SEQUENCE}: {self.sequence}", "sequence"
            )

    def format(self) -> str:
        return DELIMITER.join(
            (self.series, str(self.year), str(self.sequence).zfill(SEQUENCE_WIDTH))
        )

    def __str__(self) -> str:
        return self.format()


@dataclass(frozen=True)
class OpaqueNumber:
    """Legacy number kept as an authoritative raw string"""

    raw: str
    series: Optional[str] = None
    year: Optional[int] = None
    sequence: Optional[int] = None

    def __post_init__(self):
        if not isinstance(self.raw, str) or not self.raw.strip():
            raise ValidationError("raw document number must not be empty", "number")

    def format(self) -> str:
        return self.raw

    def __str__(self) -> str:
        return self.raw


FiscalDocumentNumber = Union[StructuredNumber, OpaqueNumber]


def structured_number(series: str, year: int, sequence: int) -> Result[StructuredNumber]:
    """Build a StructuredNumber, returning a validation error instead of raising"""
    try:
        return Return.ok(StructuredNumber(series=series, year=year, sequence=sequence))
    except ValidationError as e:
        return Return.err(Error(code=e.code, message=e.message, reason=e.reason))


def format_number(number: FiscalDocumentNumber) -> str:
    if isinstance(number, StructuredNumber):
        return number.format()
    if isinstance(number, OpaqueNumber):
        return number.raw
    raise TypeError(f"not a fiscal document number: {number!r}")


def _advisory_fields(raw: str) -> Tuple[Optional[str], Optional[int], Optional[int]]:
    text = raw.strip()
    first, second, third = LEGACY_PATTERNS
    match = first.match(text)
    if match:
        return match.group(1).upper(), int(match.group(2)), int(match.group(3))
    match = second.match(text)
    if match:
        return match.group(2).upper(), int(match.group(1)), int(match.group(3))
    match = third.match(text)
    if match:
        return match.group(1).upper(), int(match.group(3)), int(match.group(2))
    return None, None, None


def parse_document_number(raw: str) -> Result[FiscalDocumentNumber]:
    """
    Parse a stored fiscal number

    Canonical strings become StructuredNumber. Anything else non-empty
    becomes OpaqueNumber with best-effort advisory fields, and the fallback
    is logged. Empty input is a validation error.
    """
    if not isinstance(raw, str) or not raw.strip():
        return Return.err(
            Error(code=ValidationError.code, message="document number must not be empty")
        )

    match = CANONICAL_PATTERN.match(raw)
    if match:
        result = structured_number(match.group(1), int(match.group(2)), int(match.group(3)))
        if result.is_ok():
            return result

    series, year, sequence = _advisory_fields(raw)
    logger.warning(
        f"Non-canonical fiscal number {raw!r} kept as opaque "
        f"(advisory series={series}, year={year}, sequence={sequence})"
    )
    return Return.ok(OpaqueNumber(raw=raw, series=series, year=year, sequence=sequence))


def number_sort_key(number: FiscalDocumentNumber) -> tuple:
    """
    Ordering key for fiscal numbers

    Structured numbers order by (series, year, sequence). Opaque numbers
    order after structured ones: first those with advisory fields, by
    those fields, then the rest by raw string.
    """
    if isinstance(number, StructuredNumber):
        return (0, number.series, number.year, number.sequence, "")
    if isinstance(number, OpaqueNumber):
        if number.series is not None and number.year is not None and number.sequence is not None:
            return (1, number.series, number.year, number.sequence, number.raw)
        return (2, "", 0, 0, number.raw)
    raise TypeError(f"not a fiscal document number: {number!r}")
