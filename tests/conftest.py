"""Pytest configuration shared by the ``bank2ofx`` tests.

Puts the workspace ``packages/`` dir on ``sys.path`` so ``bank2ofx`` imports
without an install, keeps logging state from leaking between tests (the CLI
configures the package logger once per process), and provides a baseline
configuration for building :class:`~bank2ofx.settings.Settings`.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
sys.path[:0] = [p for p in [str(_PKG_DIR), str(_ROOT)] if p not in sys.path]

from bank2ofx.logging_setup import reset_logging  # noqa: E402
from bank2ofx.settings import DEFAULTS, Settings, merge_config, validate_config  # noqa: E402

DATA_DIR = _ROOT / "tests" / "data"

BASE_CONFIG: dict[str, Any] = {
    "org_name": "Example Credit Union",
    "org_id": "1234",
    "bank_id": "021000021",
    "account_id": "000123456789",
    "account_type": "CHECKING",
    "start_date": "2024/01/01",
    "end_date": "2024/01/31",
    "asof_date": "2024/01/31",
    "balance": "$1,024.50",
    "avail_balance": "(12.00)",
}


@pytest.fixture(autouse=True)
def _isolate_logging(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("BANK2OFX_LOG_LEVEL", raising=False)
    yield
    reset_logging()


@pytest.fixture
def base_config() -> dict[str, Any]:
    return dict(BASE_CONFIG)


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """Return a factory: ``make_settings(format="qfx", indices={"type": 6})``."""

    def _make(**overrides: Any) -> Settings:
        return validate_config(merge_config(DEFAULTS, BASE_CONFIG, overrides))

    return _make


@pytest.fixture
def data_dir() -> Path:
    return DATA_DIR
