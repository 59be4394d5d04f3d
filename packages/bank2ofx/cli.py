"""CLI for the ``bank2ofx`` package.

This module exposes a callable command handler (``cmd_convert``) and a
Typer-based console interface. A local ``.env`` is loaded with
``python-dotenv`` before anything else so ``BANK2OFX_LOG_LEVEL`` can be set
there. Conversion logic lives in ``bank2ofx.convert`` and friends.

Exit codes
----------
- ``0``: every file converted.
- ``1``: at least one file could not be read or written (other files are
  still converted).
- ``2``: configuration error; no file was touched.
"""

from __future__ import annotations

import csv
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv

from .logging_setup import configure_logging, get_logger
from .settings import ColumnField, ConfigError, resolve_settings

_logger = get_logger("bank2ofx.cli")

EXIT_IO_ERROR = 1
EXIT_CONFIG_ERROR = 2


def _parse_index_options(values: Sequence[str] | None) -> dict[str, int | None]:
    """Parse repeated ``--index FIELD=N`` options into an ``indices`` mapping.

    ``N`` of ``0`` (or empty) unconfigures the field.
    """

    indices: dict[str, int | None] = {}
    for item in values or ():
        name, sep, pos = item.partition("=")
        name = name.strip().lower()
        if not sep or not name:
            raise ConfigError(f"--index expects FIELD=N, got {item!r}", field="indices")
        if name not in {f.value for f in ColumnField}:
            raise ConfigError(f"--index: unknown column field {name!r}", field=f"indices.{name}")
        pos = pos.strip()
        if pos in {"", "0"}:
            indices[name] = None
            continue
        if not pos.isdigit():
            raise ConfigError(
                f"--index {name} expects a column number, got {pos!r}", field=f"indices.{name}"
            )
        indices[name] = int(pos)
    return indices


def cmd_convert(
    files: Sequence[str | Path],
    *,
    config_file: str | Path | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> int:
    """Convert each CSV in ``files`` to an OFX/QFX document next to it.

    Configuration is resolved once, before any file is read. Each file is
    then converted independently; read/write failures are reported on stderr
    and do not stop the remaining files.

    Returns the process exit code (see module docstring).
    """

    from .convert import convert_file

    try:
        settings = resolve_settings(config_file, overrides)
    except ConfigError as e:
        print(f"Error: error validating configuration - {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    if not files:
        print("Error: no files to convert.", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    status = 0
    for infile in files:
        try:
            result = convert_file(infile, settings)
        except FileNotFoundError:
            print(f"Error: File not found: {infile}", file=sys.stderr)
            status = EXIT_IO_ERROR
            continue
        except PermissionError:
            print(f"Error: Permission denied: {infile}", file=sys.stderr)
            status = EXIT_IO_ERROR
            continue
        except csv.Error as e:
            print(f"Error: Failed to parse CSV {infile}: {e}", file=sys.stderr)
            status = EXIT_IO_ERROR
            continue
        except OSError as e:
            print(f"Error: unable to convert {infile}: {e}", file=sys.stderr)
            status = EXIT_IO_ERROR
            continue

        n = len(result.statement.transactions)
        skipped = len(result.rejected)
        print(f"{result.infile} -> {result.outfile} ({n} transactions, {skipped} skipped)")
    return status


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Convert bank transaction CSV exports to OFX/QFX statements. "
        "Loads a local .env before running."
    ),
)


@app.command("convert")
def convert_cmd(
    files: Annotated[list[Path], typer.Argument(help="CSV files to convert.", dir_okay=False)],
    *,
    config_file: Path | None = typer.Option(
        None, "--config-file", help="Path to a YAML or JSON config file.", dir_okay=False
    ),
    output_format: str | None = typer.Option(
        None, "--format", help="Format to convert to, one of (ofx|qfx)."
    ),
    currency: str | None = typer.Option(None, help="Currency of amounts (default USD)."),
    org_name: str | None = typer.Option(None, help="Financial organization name (FI>ORG)."),
    org_id: str | None = typer.Option(None, help="Financial organization id (FI>FID)."),
    intuit_id: str | None = typer.Option(
        None, help="Alternate issuer id for QFX (INTU.BID); defaults to --org-id."
    ),
    bank_id: str | None = typer.Option(None, help="Bank routing number (BANKID)."),
    account_id: str | None = typer.Option(None, help="Bank account number (ACCTID)."),
    account_type: str | None = typer.Option(None, help="Bank account type (ACCTTYPE)."),
    start_date: str | None = typer.Option(None, help="Start date for the statement."),
    end_date: str | None = typer.Option(None, help="End date for the statement."),
    asof_date: str | None = typer.Option(None, help="As-of date for the statement balances."),
    balance: str | None = typer.Option(None, help="Ledger balance of the statement."),
    avail_balance: str | None = typer.Option(None, help="Available balance of the statement."),
    has_header: bool | None = typer.Option(
        None, "--has-header/--no-header", help="Whether the input has a header row (default yes)."
    ),
    date_layout: str | None = typer.Option(
        None, help="strptime layout for every date (default %Y/%m/%d)."
    ),
    index: list[str] | None = typer.Option(
        None,
        "--index",
        help="Column mapping FIELD=N (1-based; repeatable). Fields: "
        + ", ".join(f.value for f in ColumnField)
        + ". N=0 unsets a column.",
    ),
) -> None:
    """Convert CSV exports using the merged defaults, config file and flags."""

    try:
        indices = _parse_index_options(index)
    except ConfigError as e:
        print(f"Error: error validating configuration - {e}", file=sys.stderr)
        raise typer.Exit(EXIT_CONFIG_ERROR) from e

    overrides: dict[str, Any] = {
        "format": output_format,
        "currency": currency,
        "org_name": org_name,
        "org_id": org_id,
        "intuit_id": intuit_id,
        "bank_id": bank_id,
        "account_id": account_id,
        "account_type": account_type,
        "start_date": start_date,
        "end_date": end_date,
        "asof_date": asof_date,
        "balance": balance,
        "avail_balance": avail_balance,
        "has_header": has_header,
        "date_layout": date_layout,
        "indices": indices or None,
    }
    code = cmd_convert(files, config_file=config_file, overrides=overrides)
    if code:
        raise typer.Exit(code)


@app.callback()
def _root(
    log_level: str | None = typer.Option(
        None, help="Log level (DEBUG, INFO, WARNING...). Defaults to BANK2OFX_LOG_LEVEL or INFO."
    ),
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures package logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)
    _logger.debug("logging configured")


def main() -> None:  # pragma: no cover - console script entrypoint
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
