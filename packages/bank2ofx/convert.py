"""File-level conversion: read a CSV export, build the statement, write OFX.

One call handles one input file end to end. Nothing is written unless the
whole document rendered; the output goes to a ``.tmp`` sibling first and is
then moved into place with ``os.replace``.
"""

from __future__ import annotations

import contextlib
import csv
import os
from dataclasses import dataclass
from datetime import datetime
from os import PathLike
from pathlib import Path

from .logging_setup import get_logger
from .models import RowError, Statement
from .normalizers import outfile_name
from .ofx import render_ofx
from .settings import Settings
from .statement import StatementBuilder

_logger = get_logger("bank2ofx.convert")

# Matches the CHARSET declared in the OFX header block.
OUTPUT_ENCODING = "cp1252"


@dataclass(frozen=True, slots=True)
class ConversionResult:
    infile: Path
    outfile: Path
    statement: Statement
    rejected: tuple[RowError, ...]


def read_table(path: str | PathLike[str]) -> list[list[str]]:
    """Read a comma-separated file into rows of strings.

    A UTF-8 byte-order mark is tolerated. I/O and ``csv.Error`` failures
    propagate to the caller.
    """

    with open(path, encoding="utf-8-sig", newline="") as f:
        return list(csv.reader(f))


def write_document(path: Path, text: str) -> None:
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        tmp.write_text(text, encoding=OUTPUT_ENCODING, errors="xmlcharrefreplace")
        os.replace(tmp, path)
    except Exception:
        with contextlib.suppress(FileNotFoundError):
            tmp.unlink()
        raise


def convert_file(
    infile: str | PathLike[str],
    settings: Settings,
    *,
    outfile: str | PathLike[str] | None = None,
    generated_at: datetime | None = None,
) -> ConversionResult:
    """Convert ``infile`` to an OFX/QFX document next to it.

    The destination defaults to ``infile`` with its extension replaced by the
    configured format (``statement.csv`` -> ``statement.qfx``).
    """

    src = Path(infile)
    dest = Path(outfile) if outfile is not None else outfile_name(src, settings.format.value)

    rows = read_table(src)
    builder = StatementBuilder(settings, generated_at=generated_at)
    statement = builder.ingest(rows)
    document = render_ofx(statement)

    _logger.info("writing to %s", dest)
    write_document(dest, document)
    return ConversionResult(
        infile=src,
        outfile=dest,
        statement=statement,
        rejected=tuple(builder.rejected),
    )


__all__ = ["ConversionResult", "convert_file", "read_table", "write_document"]
