"""
Canonical document number layouts.

Each category keeps its own small rule (sales run per month and carry a cash /
credit letter, everything else runs per calendar day behind a literal tag):

    SALE             MMYY-NNN V         1025-001 T
    PURCHASE         PO-YYYYMMDD-NNN    PO-20251015-001
    PAYMENT          PAY-YYYYMMDD-NNN   PAY-20251015-001
    SALES_RETURN     SRN-YYYYMMDD-NNN   SRN-20251015-001
    PURCHASE_RETURN  PRN-YYYYMMDD-NNN   PRN-20251015-001

The running count is zero-padded to three digits. Past 999 the field simply
grows ("1025-1000 T"); persisted numbers already look like this, so it is not
an error.

Everything here is pure: no database, no clock.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime

from koperasi.core.enums import DocumentCategory, SaleType
from koperasi.services.document_number_errors import DocumentNumberParseError

COUNT_WIDTH = 3

_VARIANT_LETTERS = {SaleType.TUNAI: "T", SaleType.KREDIT: "K"}
_SALE_TYPE_ALIASES = {
    "TUNAI": SaleType.TUNAI,
    "CASH": SaleType.TUNAI,
    "T": SaleType.TUNAI,
    "KREDIT": SaleType.KREDIT,
    "CREDIT": SaleType.KREDIT,
    "K": SaleType.KREDIT,
}

# A count is three zero-padded digits, or an unpadded number of 1000 and up.
_COUNT_PATTERN = r"(\d{3}|[1-9]\d{3,})"
_SALE_PATTERN = re.compile(r"^(\d{2})(\d{2})-" + _COUNT_PATTERN + r" ([A-Z])$", re.ASCII)


@dataclass(frozen=True)
class NumberRule:
    tag: str | None
    monthly: bool
    has_variant: bool

    @property
    def period_length(self) -> int:
        return 4 if self.monthly else 8


_RULES: dict[DocumentCategory, NumberRule] = {
    DocumentCategory.SALE: NumberRule(tag=None, monthly=True, has_variant=True),
    DocumentCategory.PURCHASE: NumberRule(tag="PO", monthly=False, has_variant=False),
    DocumentCategory.PAYMENT: NumberRule(tag="PAY", monthly=False, has_variant=False),
    DocumentCategory.SALES_RETURN: NumberRule(tag="SRN", monthly=False, has_variant=False),
    DocumentCategory.PURCHASE_RETURN: NumberRule(tag="PRN", monthly=False, has_variant=False),
}

_DAILY_PATTERNS = {
    category: re.compile(rf"^{rule.tag}-(\d{{8}})-{_COUNT_PATTERN}$", re.ASCII)
    for category, rule in _RULES.items()
    if rule.tag is not None
}


@dataclass(frozen=True)
class SequenceNumber:
    category: DocumentCategory
    period: str
    running_count: int
    variant: SaleType | None = None

    def format(self) -> str:
        return format_number(self.category, self.period, self.running_count, self.variant)


@dataclass(frozen=True)
class ParsedInvoiceNumber:
    month: str
    year: str
    sequence: int
    type: SaleType
    full_number: str


def coerce_category(value: DocumentCategory | str) -> DocumentCategory:
    if isinstance(value, DocumentCategory):
        return value
    normalized = (value or "").strip().upper()
    try:
        return DocumentCategory(normalized)
    except ValueError:
        raise ValueError(f"Unknown document category: {value!r}") from None


def coerce_sale_type(value: SaleType | str) -> SaleType:
    if isinstance(value, SaleType):
        return value
    normalized = (value or "").strip().upper()
    if normalized not in _SALE_TYPE_ALIASES:
        raise ValueError(f"Unknown sale type: {value!r}")
    return _SALE_TYPE_ALIASES[normalized]


def rule_for(category: DocumentCategory | str) -> NumberRule:
    return _RULES[coerce_category(category)]


def period_key(category: DocumentCategory | str, on_date: date) -> str:
    rule = rule_for(category)
    if rule.monthly:
        # Two-digit years only round-trip inside the 2000s.
        if not 2000 <= on_date.year <= 2099:
            raise ValueError(f"Sale dates must fall in 2000-2099, got {on_date.isoformat()}")
        return f"{on_date.month:02d}{on_date.year % 100:02d}"
    return f"{on_date.year:04d}{on_date.month:02d}{on_date.day:02d}"


def _prefix_for_period(rule: NumberRule, period: str) -> str:
    if rule.tag is None:
        return f"{period}-"
    return f"{rule.tag}-{period}-"


def number_prefix(category: DocumentCategory | str, on_date: date) -> str:
    """Leading part shared by every number of the category in that period."""
    rule = rule_for(category)
    return _prefix_for_period(rule, period_key(category, on_date))


def format_number(
    category: DocumentCategory | str,
    period: str,
    running_count: int,
    variant: SaleType | str | None = None,
) -> str:
    rule = rule_for(category)
    if isinstance(running_count, bool) or not isinstance(running_count, int) or running_count < 1:
        raise ValueError(f"running_count must be a positive integer, got {running_count!r}")
    if len(period) != rule.period_length or not period.isdigit():
        raise ValueError(f"period must be {rule.period_length} digits, got {period!r}")

    count = f"{running_count:0{COUNT_WIDTH}d}"
    if not rule.has_variant:
        if variant is not None:
            raise ValueError(f"{coerce_category(category).value} numbers carry no variant")
        return f"{_prefix_for_period(rule, period)}{count}"

    if variant is None:
        raise ValueError("Sale numbers require a sale type")
    letter = _VARIANT_LETTERS[coerce_sale_type(variant)]
    return f"{_prefix_for_period(rule, period)}{count} {letter}"


def parse_number(category: DocumentCategory | str, text: str) -> SequenceNumber:
    """Inverse of format_number. Anything that format_number could not produce is rejected."""
    category = coerce_category(category)
    raw = text if isinstance(text, str) else ""

    if category is DocumentCategory.SALE:
        match = _SALE_PATTERN.fullmatch(raw)
        if match is None:
            raise DocumentNumberParseError(
                message=f"Not a sale invoice number: {text!r}", value=str(text)
            )
        month, yy, count, letter = match.groups()
        if not 1 <= int(month) <= 12:
            raise DocumentNumberParseError(
                message=f"Invalid month in sale invoice number: {text!r}", value=raw
            )
        if int(count) < 1:
            raise DocumentNumberParseError(
                message=f"Running count must start at 1: {text!r}", value=raw
            )
        variant = SaleType.KREDIT if letter == "K" else SaleType.TUNAI
        return SequenceNumber(category, f"{month}{yy}", int(count), variant)

    match = _DAILY_PATTERNS[category].fullmatch(raw)
    if match is None:
        raise DocumentNumberParseError(
            message=f"Not a {category.value} number: {text!r}", value=str(text)
        )
    period, count = match.groups()
    if int(count) < 1:
        raise DocumentNumberParseError(
            message=f"Running count must start at 1: {text!r}", value=raw
        )
    try:
        datetime.strptime(period, "%Y%m%d")
    except ValueError:
        raise DocumentNumberParseError(
            message=f"Invalid date in {category.value} number: {text!r}", value=raw
        ) from None
    return SequenceNumber(category, period, int(count))


def running_count_of(category: DocumentCategory | str, text: str) -> int:
    return parse_number(category, text).running_count


def parse_invoice_number(text: str) -> ParsedInvoiceNumber:
    """Break a sale invoice number into its parts, e.g. "1025-003 K"."""
    parsed = parse_number(DocumentCategory.SALE, text)
    return ParsedInvoiceNumber(
        month=parsed.period[:2],
        year="20" + parsed.period[2:],
        sequence=parsed.running_count,
        type=parsed.variant,
        full_number=text,
    )
