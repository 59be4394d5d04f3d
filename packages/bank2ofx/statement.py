"""Statement builder: raw table rows -> :class:`~bank2ofx.models.Statement`.

Row mapping
-----------
Every logical field is read through the column mapping in
:class:`~bank2ofx.settings.Settings`; a field is used only when it is
configured *and* the row is long enough to contain it.

- ``posted``: parsed with ``date_layout``. A bad value rejects the row.
- ``date``: parsed with ``date_layout``. A bad value is logged and left empty;
  the row is kept.
- ``amount``: mandatory, parsed with :func:`~bank2ofx.normalizers.to_amount`.
  A missing or bad value rejects the row.
- ``type``: taken from the row when configured. Otherwise the amount's sign
  is flipped (exports commonly list debits as positive numbers) and the row
  is classified ``DEBIT`` when the flipped amount is ``<= 0``, else
  ``CREDIT``.
- ``id``, ``name``, ``memo``, ``payee``: copied verbatim when present.

Rejected rows never abort ingestion. They are logged and collected on
:attr:`StatementBuilder.rejected` in input order; accepted transactions keep
input order too.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime

from .logging_setup import get_logger
from .models import (
    Balance,
    RowError,
    SignOnResponse,
    Statement,
    StatementResponse,
    Transaction,
    TransactionType,
)
from .normalizers import parse_date, to_amount
from .settings import ColumnField, Settings

_logger = get_logger("bank2ofx.statement")


def new_statement(settings: Settings, *, generated_at: datetime | None = None) -> Statement:
    """Create an empty statement with header, account block and balances.

    ``generated_at`` is the ``DTSERVER`` timestamp; it defaults to the current
    UTC time.
    """

    sign_on = SignOnResponse(
        org=settings.org_name,
        org_id=settings.org_id,
        date=generated_at if generated_at is not None else datetime.now(UTC),
        intuit_id=settings.alternate_issuer_id,
    )
    response = StatementResponse(
        currency=settings.currency,
        bank_id=settings.bank_id,
        account_id=settings.account_id,
        account_type=settings.account_type,
        start_date=settings.start_date,
        end_date=settings.end_date,
        ledger_balance=Balance(amount=settings.balance, as_of=settings.asof_date),
        available_balance=Balance(amount=settings.avail_balance, as_of=settings.asof_date),
    )
    return Statement(sign_on=sign_on, response=response)


class StatementBuilder:
    """Accumulate parsed rows into a single :class:`Statement`.

    Usage
    -----
    builder = StatementBuilder(settings)
    statement = builder.ingest(rows)
    """

    def __init__(self, settings: Settings, *, generated_at: datetime | None = None) -> None:
        self.settings = settings
        self.statement = new_statement(settings, generated_at=generated_at)
        self.rejected: list[RowError] = []
        self.anomalies: list[RowError] = []

    # ---- Row mapping ------------------------------------------------------

    def parse_row(self, row: Sequence[str], *, row_number: int | None = None) -> Transaction:
        """Map one input row to a :class:`Transaction`.

        Raises :class:`RowError` when the posted date or the amount cannot be
        parsed. ``row_number`` is only used for diagnostics.
        """

        s = self.settings
        layout = s.date_layout
        _logger.debug("parsing row %s - %r", row_number, list(row))

        posted = None
        raw_posted = s.column(ColumnField.POSTED, row)
        if raw_posted is not None:
            try:
                posted = parse_date(raw_posted, layout)
            except ValueError as exc:
                raise RowError(
                    str(exc),
                    field=ColumnField.POSTED.value,
                    value=raw_posted,
                    row_number=row_number,
                ) from exc

        user_date = None
        raw_date = s.column(ColumnField.DATE, row)
        if raw_date is not None:
            try:
                user_date = parse_date(raw_date, layout)
            except ValueError as exc:
                anomaly = RowError(
                    str(exc), field=ColumnField.DATE.value, value=raw_date, row_number=row_number
                )
                self.anomalies.append(anomaly)
                _logger.warning("%s (transaction date left empty)", anomaly)

        raw_amount = s.column(ColumnField.AMOUNT, row)
        if raw_amount is None:
            raise RowError(
                f"row has {len(row)} column(s); amount expected in column "
                f"{s.index_of(ColumnField.AMOUNT)}",
                field=ColumnField.AMOUNT.value,
                value=None,
                row_number=row_number,
            )
        try:
            amount = to_amount(raw_amount)
        except ValueError as exc:
            raise RowError(
                str(exc), field=ColumnField.AMOUNT.value, value=raw_amount, row_number=row_number
            ) from exc

        raw_type = s.column(ColumnField.TYPE, row)
        if raw_type is not None:
            txn_type = TransactionType.from_raw(raw_type)
            if txn_type is TransactionType.UNRECOGNIZED:
                _logger.debug("row %s: passing through transaction type %r", row_number, raw_type)
            else:
                raw_type = None
        else:
            # No type column: the source uses the inverse of the OFX sign
            # convention, so flip and classify.
            amount = amount.copy_negate()
            txn_type = TransactionType.DEBIT if amount <= 0 else TransactionType.CREDIT

        return Transaction(
            type=txn_type,
            amount=amount,
            posted=posted,
            date=user_date,
            id=s.column(ColumnField.ID, row),
            name=s.column(ColumnField.NAME, row),
            payee=s.column(ColumnField.PAYEE, row),
            memo=s.column(ColumnField.MEMO, row),
            raw_type=raw_type,
        )

    # ---- Ingestion --------------------------------------------------------

    def add_row(self, row: Sequence[str], *, row_number: int | None = None) -> Transaction | None:
        """Parse ``row`` and append it; record and return ``None`` on failure."""

        try:
            txn = self.parse_row(row, row_number=row_number)
        except RowError as err:
            self.rejected.append(err)
            _logger.warning("skipping %s", err)
            return None
        self.statement.response.transactions.append(txn)
        return txn

    def ingest(self, rows: Iterable[Sequence[str]]) -> Statement:
        """Parse every data row of ``rows`` into the statement.

        When ``has_header`` is set the first row is discarded. Row numbers in
        diagnostics are 1-based positions in ``rows`` (header included).
        """

        for row_number, row in enumerate(rows, start=1):
            if row_number == 1 and self.settings.has_header:
                _logger.debug("discarding header row %r", list(row))
                continue
            self.add_row(row, row_number=row_number)

        _logger.info(
            "parsed %d transaction(s), skipped %d row(s)",
            len(self.statement.transactions),
            len(self.rejected),
        )
        return self.statement


def build_statement(
    settings: Settings,
    rows: Iterable[Sequence[str]],
    *,
    generated_at: datetime | None = None,
) -> tuple[Statement, list[RowError]]:
    """Convenience wrapper returning the statement and the rejected rows."""

    builder = StatementBuilder(settings, generated_at=generated_at)
    statement = builder.ingest(rows)
    return statement, builder.rejected


__all__ = ["StatementBuilder", "build_statement", "new_statement"]
