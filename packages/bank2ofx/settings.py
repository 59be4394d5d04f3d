"""Configuration resolution and validation for ``bank2ofx``.

Layers (highest precedence first)
---------------------------------
1. Explicit overrides (CLI options, library callers).
2. An optional YAML/JSON config file.
3. :data:`DEFAULTS`.

``indices`` (the column mapping) merges per key across layers, so a config
file that only sets ``type: 6`` keeps the default ``date``/``amount``/...
positions. A key set to ``null`` or ``0`` unconfigures that column.

:func:`validate_config` turns the merged mapping into a frozen
:class:`Settings`, parsing the statement dates and balances exactly once.
Any failure raises :class:`ConfigError` naming the offending key; nothing is
returned half-built.

Example config file::

    org_name: Example Credit Union
    org_id: "1234"
    bank_id: "021000021"
    account_id: "000123456789"
    account_type: CHECKING
    start_date: 2024/01/01
    end_date: 2024/01/31
    asof_date: 2024/01/31
    balance: "$1,024.00"
    avail_balance: "1,000.00"
    indices:
      type: 6
      memo: 7

Quote numeric identifiers in YAML so leading zeros survive.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from os import PathLike
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .logging_setup import get_logger
from .normalizers import parse_date, to_amount

_logger = get_logger("bank2ofx.settings")


class ColumnField(StrEnum):
    DATE = "date"
    POSTED = "posted"
    NAME = "name"
    ID = "id"
    AMOUNT = "amount"
    TYPE = "type"
    MEMO = "memo"
    PAYEE = "payee"


class OutputFormat(StrEnum):
    OFX = "ofx"
    QFX = "qfx"


DEFAULT_INDICES: dict[str, int] = {"date": 1, "posted": 2, "name": 3, "id": 4, "amount": 5}

DEFAULTS: dict[str, Any] = {
    "format": "ofx",
    "currency": "USD",
    "date_layout": "%Y/%m/%d",
    "has_header": True,
    "intuit_id": "",
    "indices": DEFAULT_INDICES,
}

REQUIRED_FIELDS: tuple[str, ...] = (
    "org_name",
    "org_id",
    "bank_id",
    "account_id",
    "account_type",
    "start_date",
    "end_date",
    "asof_date",
    "balance",
    "avail_balance",
)
DATE_FIELDS: tuple[str, ...] = ("start_date", "end_date", "asof_date")
AMOUNT_FIELDS: tuple[str, ...] = ("balance", "avail_balance")

KNOWN_KEYS: frozenset[str] = frozenset(
    {*REQUIRED_FIELDS, "format", "currency", "date_layout", "has_header", "intuit_id", "indices"}
)

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


class ConfigError(ValueError):
    """Fatal configuration problem; ``field`` names the offending key."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class Settings(BaseModel):
    """Validated, immutable converter settings.

    ``indices`` maps each configured :class:`ColumnField` to its 1-based
    column position; a field absent from the mapping is unconfigured.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    org_name: str
    org_id: str
    intuit_id: str | None = None
    bank_id: str
    account_id: str
    account_type: str
    currency: str = "USD"
    date_layout: str = "%Y/%m/%d"
    indices: Mapping[ColumnField, int]
    start_date: datetime
    end_date: datetime
    asof_date: datetime
    balance: Decimal
    avail_balance: Decimal
    has_header: bool = True
    format: OutputFormat = OutputFormat.OFX

    @field_validator("indices")
    @classmethod
    def _freeze_indices(cls, v: Mapping[ColumnField, int]) -> Mapping[ColumnField, int]:
        return MappingProxyType(dict(v))

    def index_of(self, field: ColumnField) -> int | None:
        return self.indices.get(field)

    def column(self, field: ColumnField, row: Sequence[str]) -> str | None:
        """Return the cell mapped to ``field`` in ``row``.

        ``None`` when the field is unconfigured or the row is too short to
        contain it.
        """

        idx = self.indices.get(field)
        if idx is None or not 1 <= idx <= len(row):
            return None
        return row[idx - 1]

    @property
    def alternate_issuer_id(self) -> str | None:
        """``INTU.BID`` value: only for QFX, falling back to ``org_id``."""

        if self.format is not OutputFormat.QFX:
            return None
        return self.intuit_id or self.org_id


# ---------------------------------------------------------------------------
# Loading and merging
# ---------------------------------------------------------------------------


def load_config_file(path: str | PathLike[str]) -> dict[str, Any]:
    """Read a YAML or JSON config file into a mapping.

    ``.json`` files are parsed as JSON; anything else goes through
    ``yaml.safe_load``. An empty file yields ``{}``.
    """

    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"unable to read config file {p}: {exc}", field="config_file") from exc

    try:
        if p.suffix.lower() == ".json":
            data = json.loads(text) if text.strip() else {}
        else:
            data = yaml.safe_load(text) or {}
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"unable to parse config file {p}: {exc}", field="config_file") from exc

    if not isinstance(data, Mapping):
        raise ConfigError(
            f"config file {p} must contain a mapping at the top level", field="config_file"
        )
    return dict(data)


def _normalize_key(key: Any) -> str:
    return str(key).strip().lower().replace("-", "_")


def merge_config(*layers: Mapping[str, Any] | None) -> dict[str, Any]:
    """Merge configuration layers, later layers taking precedence.

    ``None`` values at the top level mean "not given" and never override a
    lower layer. ``indices`` merges key by key; ``None`` there is kept so it
    can unconfigure a column set by a lower layer.
    """

    merged: dict[str, Any] = {}
    indices: dict[str, Any] = {}
    for layer in layers:
        if not layer:
            continue
        for raw_key, value in layer.items():
            key = _normalize_key(raw_key)
            if key == "indices":
                if value is None:
                    continue
                if not isinstance(value, Mapping):
                    raise ConfigError(
                        "indices must be a mapping of field -> column", field="indices"
                    )
                for f, pos in value.items():
                    indices[_normalize_key(f)] = pos
                continue
            if value is None:
                continue
            if key not in KNOWN_KEYS:
                _logger.warning("ignoring unknown configuration key %r", raw_key)
                continue
            merged[key] = value
    merged["indices"] = indices
    return merged


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value)


def _as_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    v = _as_text(value).lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ConfigError(f"{key} must be a boolean, got {value!r}", field=key)


def _parse_indices(raw: Mapping[str, Any]) -> dict[ColumnField, int]:
    indices: dict[ColumnField, int] = {}
    for key, pos in raw.items():
        try:
            field = ColumnField(key)
        except ValueError:
            raise ConfigError(
                f"unknown column field {key!r} in indices "
                f"(expected one of: {', '.join(f.value for f in ColumnField)})",
                field=f"indices.{key}",
            ) from None
        if pos is None:
            continue
        if isinstance(pos, bool):
            raise ConfigError(
                f"indices.{key} must be a column number, got {pos!r}", field=f"indices.{key}"
            )
        if isinstance(pos, str) and pos.strip().isdigit():
            pos = int(pos.strip())
        if not isinstance(pos, int) or pos < 0:
            raise ConfigError(
                f"indices.{key} must be a 1-based column number, got {pos!r}",
                field=f"indices.{key}",
            )
        if pos == 0:
            continue
        indices[field] = pos
    if ColumnField.AMOUNT not in indices:
        raise ConfigError("indices.amount must be configured", field="indices.amount")
    return indices


def validate_config(raw: Mapping[str, Any]) -> Settings:
    """Validate a merged configuration mapping and build :class:`Settings`.

    Checks run in a fixed order and stop at the first failure: required
    values present, output format known, statement dates parse with
    ``date_layout``, balances parse as amounts, column mapping well formed.
    """

    for key in REQUIRED_FIELDS:
        if _as_text(raw.get(key)) == "":
            raise ConfigError(
                f"required argument {key} not specified via config file or flags", field=key
            )

    fmt = _as_text(raw.get("format", DEFAULTS["format"])).lower()
    try:
        output_format = OutputFormat(fmt)
    except ValueError:
        raise ConfigError(
            f"format must be one of ({'|'.join(f.value for f in OutputFormat)}), got {fmt!r}",
            field="format",
        ) from None

    layout = _as_text(raw.get("date_layout")) or DEFAULTS["date_layout"]
    dates: dict[str, datetime] = {}
    for key in DATE_FIELDS:
        try:
            dates[key] = parse_date(_as_text(raw.get(key)), layout)
        except ValueError as exc:
            raise ConfigError(f"error parsing {key} - {exc}", field=key) from exc

    amounts: dict[str, Decimal] = {}
    for key in AMOUNT_FIELDS:
        try:
            amounts[key] = to_amount(_as_text(raw.get(key)))
        except ValueError as exc:
            raise ConfigError(f"error parsing amount {key} - {exc}", field=key) from exc

    indices = _parse_indices(raw.get("indices") or {})
    has_header = _as_bool("has_header", raw.get("has_header", DEFAULTS["has_header"]))

    try:
        settings = Settings(
            org_name=_as_text(raw["org_name"]),
            org_id=_as_text(raw["org_id"]),
            intuit_id=_as_text(raw.get("intuit_id")) or None,
            bank_id=_as_text(raw["bank_id"]),
            account_id=_as_text(raw["account_id"]),
            account_type=_as_text(raw["account_type"]),
            currency=_as_text(raw.get("currency")) or DEFAULTS["currency"],
            date_layout=layout,
            indices=indices,
            has_header=has_header,
            format=output_format,
            **dates,
            **amounts,
        )
    except ValidationError as exc:  # pragma: no cover - inputs are pre-validated above
        raise ConfigError(f"invalid configuration: {exc}") from exc

    _logger.debug(
        "validated settings for account %s (format=%s, indices=%s)",
        settings.account_id,
        settings.format,
        {f.value: i for f, i in settings.indices.items()},
    )
    return settings


def resolve_settings(
    config_file: str | PathLike[str] | None = None,
    overrides: Mapping[str, Any] | None = None,
    *,
    defaults: Mapping[str, Any] = DEFAULTS,
) -> Settings:
    """Load, merge and validate configuration in one step."""

    file_values = load_config_file(config_file) if config_file else None
    return validate_config(merge_config(defaults, file_values, overrides))


__all__ = [
    "DEFAULTS",
    "ColumnField",
    "ConfigError",
    "OutputFormat",
    "Settings",
    "load_config_file",
    "merge_config",
    "resolve_settings",
    "validate_config",
]
