"""Statement document models for ``bank2ofx``.

The shapes mirror the OFX banking statement response tree::

    Statement
    ├── SignOnResponse            (SIGNONMSGSRSV1 > SONRS)
    └── StatementResponse         (BANKMSGSRSV1 > STMTTRNRS > STMTRS)
        ├── transactions[]        (BANKTRANLIST > STMTTRN)
        ├── ledger_balance        (LEDGERBAL)
        └── available_balance     (AVAILBAL)

Amounts are ``Decimal`` and dates are ``datetime``; conversion to wire text
happens only in :mod:`bank2ofx.ofx`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import StrEnum

# Fixed response status for a synthetic, successful statement download.
STATUS_CODE = 0
STATUS_SEVERITY = "INFO"
LANGUAGE = "ENG"


class TransactionType(StrEnum):
    """OFX ``TRNTYPE`` codes.

    ``UNRECOGNIZED`` marks a value supplied by a configured type column that
    is not an OFX code; the raw text travels on :class:`Transaction` and is
    written out unchanged.
    """

    DEBIT = "DEBIT"
    CREDIT = "CREDIT"
    INTEREST = "INT"
    DIVIDEND = "DIV"
    FEE = "FEE"
    SERVICE_CHARGE = "SRVCHG"
    DEPOSIT = "DEP"
    ATM = "ATM"
    POINT_OF_SALE = "POS"
    TRANSFER = "XFER"
    CHECK = "CHECK"
    PAYMENT = "PAYMENT"
    CASH = "CASH"
    DIRECT_DEPOSIT = "DIRECTDEP"
    DIRECT_DEBIT = "DIRECTDEBIT"
    REPEAT_PAYMENT = "REPEATPMT"
    OTHER = "OTHER"
    UNRECOGNIZED = "UNRECOGNIZED"

    @classmethod
    def from_raw(cls, value: str) -> TransactionType:
        """Match an OFX code (``"INT"``) or member name (``"interest"``).

        Matching ignores case and surrounding whitespace. Anything else maps
        to :attr:`UNRECOGNIZED`.
        """

        key = value.strip().upper()
        for member in cls:
            if member is cls.UNRECOGNIZED:
                continue
            if key == member.value or key == member.name:
                return member
        return cls.UNRECOGNIZED


@dataclass(frozen=True, slots=True)
class Transaction:
    """A single ``STMTTRN`` entry.

    ``amount`` follows the OFX sign convention: debits negative, credits
    positive. ``raw_type`` is set only when ``type`` is ``UNRECOGNIZED``.
    """

    type: TransactionType
    amount: Decimal
    posted: datetime | None = None
    date: datetime | None = None
    id: str | None = None
    name: str | None = None
    payee: str | None = None
    memo: str | None = None
    raw_type: str | None = None

    @property
    def type_code(self) -> str:
        if self.type is TransactionType.UNRECOGNIZED:
            return self.raw_type or ""
        return self.type.value


@dataclass(frozen=True, slots=True)
class Balance:
    amount: Decimal
    as_of: datetime


@dataclass(frozen=True, slots=True)
class SignOnResponse:
    org: str
    org_id: str
    date: datetime
    # Only populated for QFX output.
    intuit_id: str | None = None
    language: str = LANGUAGE
    code: int = STATUS_CODE
    severity: str = STATUS_SEVERITY


@dataclass(slots=True)
class StatementResponse:
    """``STMTTRNRS``/``STMTRS`` content: account block, transactions, balances.

    ``transactions`` is appended to by the statement builder during ingest and
    treated as read-only afterwards.
    """

    currency: str
    bank_id: str
    account_id: str
    account_type: str
    start_date: datetime
    end_date: datetime
    ledger_balance: Balance
    available_balance: Balance
    transactions: list[Transaction] = field(default_factory=list)
    trn_uid: int = 0
    code: int = STATUS_CODE
    severity: str = STATUS_SEVERITY


@dataclass(slots=True)
class Statement:
    """Top-level ``OFX`` document for one account snapshot."""

    sign_on: SignOnResponse
    response: StatementResponse

    @property
    def transactions(self) -> list[Transaction]:
        return self.response.transactions


class RowError(ValueError):
    """A single input row that could not be turned into a transaction.

    Carries enough context to diagnose the row in isolation: its 1-based
    position in the input table, the logical field that failed, and the
    offending raw value.
    """

    def __init__(
        self,
        reason: str,
        *,
        field: str,
        value: str | None,
        row_number: int | None = None,
    ) -> None:
        self.reason = reason
        self.field = field
        self.value = value
        self.row_number = row_number
        where = f"row {row_number}" if row_number is not None else "row"
        super().__init__(f"{where}: {field}={value!r}: {reason}")


__all__ = [
    "Balance",
    "RowError",
    "SignOnResponse",
    "Statement",
    "StatementResponse",
    "Transaction",
    "TransactionType",
]
