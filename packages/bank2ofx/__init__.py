"""Public interface for the ``bank2ofx`` package.

Converts tabular bank-transaction exports (CSV) into OFX/QFX statement
documents. This module only re-exports the stable import surface.
"""

from .convert import ConversionResult, convert_file, read_table
from .models import (
    Balance,
    RowError,
    SignOnResponse,
    Statement,
    StatementResponse,
    Transaction,
    TransactionType,
)
from .normalizers import format_amount, format_ofx_datetime, outfile_name, parse_date, to_amount
from .ofx import render_ofx
from .settings import (
    ColumnField,
    ConfigError,
    OutputFormat,
    Settings,
    resolve_settings,
    validate_config,
)
from .statement import StatementBuilder, build_statement, new_statement

__all__ = [
    # Pipeline
    "resolve_settings",
    "validate_config",
    "new_statement",
    "build_statement",
    "StatementBuilder",
    "render_ofx",
    "convert_file",
    "read_table",
    "ConversionResult",
    # Helpers
    "to_amount",
    "format_amount",
    "parse_date",
    "format_ofx_datetime",
    "outfile_name",
    # Models / types
    "Settings",
    "ColumnField",
    "OutputFormat",
    "Statement",
    "SignOnResponse",
    "StatementResponse",
    "Balance",
    "Transaction",
    "TransactionType",
    # Errors
    "ConfigError",
    "RowError",
]
