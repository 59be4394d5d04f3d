"""Amount/date normalization helpers shared by settings and row parsing.

All helpers are pure: they never log and raise ``ValueError`` with the
offending raw value on failure so callers can attach field context.

Formats
-------
- Amounts: ``Decimal``; serialized with exactly two decimals.
- Dates: parsed with a ``strptime`` layout; serialized as
  ``YYYYMMDDHHMMSS.mmm[0:GMT]``. Naive datetimes are taken to be UTC.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from os import PathLike
from pathlib import Path

# Currency symbol, thousands separator and parentheses are noise once the sign
# has been read off a leading "(".
_AMOUNT_NOISE_RE = re.compile(r"[()$,]")

_CENTS = Decimal("0.01")


def to_amount(raw: str | None) -> Decimal:
    """Parse a free-form bank amount into a signed ``Decimal``.

    ``"(1,234.56)"`` -> ``Decimal("-1234.56")``; ``"$1,000"`` ->
    ``Decimal("1000")``. A leading ``(`` marks a negative value; every
    ``( ) $ ,`` character is then stripped and the remainder parsed.
    """

    if raw is None:
        raise ValueError("amount is required")
    s = raw.strip()
    sign = -1 if s.startswith("(") else 1
    cleaned = _AMOUNT_NOISE_RE.sub("", s).strip()
    if not cleaned:
        raise ValueError(f"invalid amount: {raw!r}")
    try:
        d = Decimal(cleaned)
    except InvalidOperation as exc:
        raise ValueError(f"invalid amount: {raw!r}") from exc
    if not d.is_finite():
        raise ValueError(f"invalid amount: {raw!r}")
    # Must round to cents within the context precision, or rendering fails later.
    try:
        d.quantize(_CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValueError(f"invalid amount: {raw!r}") from exc
    # copy_negate is exact; arithmetic negation would round to context precision.
    return d.copy_negate() if sign < 0 else d


def format_amount(d: Decimal) -> str:
    # Exactly two decimals; ASCII dot; leading minus for negatives only.
    q = d.quantize(_CENTS, rounding=ROUND_HALF_UP)
    if q.is_zero():
        q = abs(q)
    return f"{q:.2f}"


def parse_date(raw: str | None, layout: str) -> datetime:
    """Parse ``raw`` with the ``strptime`` ``layout``.

    The value is stripped first; failures raise ``ValueError`` carrying both
    the raw value and the layout.
    """

    if raw is None:
        raise ValueError(f"missing date (expected layout {layout!r})")
    s = raw.strip()
    try:
        return datetime.strptime(s, layout)
    except ValueError as exc:
        raise ValueError(f"invalid date {raw!r} for layout {layout!r}: {exc}") from exc


def format_ofx_datetime(dt: datetime) -> str:
    """Render ``dt`` as ``YYYYMMDDHHMMSS.mmm[0:GMT]``."""

    if dt.tzinfo is not None:
        dt = dt.astimezone(UTC)
    millis = dt.microsecond // 1000
    return f"{dt:%Y%m%d%H%M%S}.{millis:03d}[0:GMT]"


def outfile_name(infile: str | PathLike[str], fmt: str) -> Path:
    """Return ``infile`` with its extension replaced by ``fmt``.

    The result stays in the input's directory: ``data/aug.csv`` with ``qfx``
    becomes ``data/aug.qfx``.
    """

    p = Path(infile)
    return p.with_name(f"{p.stem}.{fmt}")


__all__ = [
    "format_amount",
    "format_ofx_datetime",
    "outfile_name",
    "parse_date",
    "to_amount",
]
