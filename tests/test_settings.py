import json
from datetime import datetime
from decimal import Decimal

import pytest
from pydantic import ValidationError

from bank2ofx.settings import (
    DEFAULTS,
    ColumnField,
    ConfigError,
    OutputFormat,
    load_config_file,
    merge_config,
    resolve_settings,
    validate_config,
)


def test_validate_parses_dates_and_balances_once(make_settings):
    s = make_settings()
    assert s.start_date == datetime(2024, 1, 1)
    assert s.end_date == datetime(2024, 1, 31)
    assert s.asof_date == datetime(2024, 1, 31)
    assert s.balance == Decimal("1024.50")
    assert s.avail_balance == Decimal("-12.00")
    assert s.currency == "USD"
    assert s.has_header is True
    assert s.format is OutputFormat.OFX


def test_default_column_mapping(make_settings):
    s = make_settings()
    assert s.indices == {
        ColumnField.DATE: 1,
        ColumnField.POSTED: 2,
        ColumnField.NAME: 3,
        ColumnField.ID: 4,
        ColumnField.AMOUNT: 5,
    }
    for f in (ColumnField.TYPE, ColumnField.MEMO, ColumnField.PAYEE):
        assert s.index_of(f) is None


def test_missing_org_name_is_named(base_config):
    del base_config["org_name"]
    with pytest.raises(ConfigError, match="org_name") as exc:
        validate_config(merge_config(DEFAULTS, base_config))
    assert exc.value.field == "org_name"


def test_blank_required_value_counts_as_missing(base_config):
    base_config["account_type"] = "   "
    with pytest.raises(ConfigError) as exc:
        validate_config(merge_config(DEFAULTS, base_config))
    assert exc.value.field == "account_type"


def test_start_date_not_matching_layout(base_config):
    base_config["start_date"] = "01-01-2024"
    with pytest.raises(ConfigError) as exc:
        validate_config(merge_config(DEFAULTS, base_config))
    assert exc.value.field == "start_date"
    msg = str(exc.value)
    assert "start_date" in msg
    assert "01-01-2024" in msg
    assert "does not match format" in msg


def test_custom_date_layout_applies_to_all_dates(base_config):
    base_config.update(
        date_layout="%m-%d-%Y",
        start_date="01-01-2024",
        end_date="01-31-2024",
        asof_date="02-01-2024",
    )
    s = validate_config(merge_config(DEFAULTS, base_config))
    assert s.asof_date == datetime(2024, 2, 1)


def test_bad_balance_is_named(base_config):
    base_config["avail_balance"] = "lots"
    with pytest.raises(ConfigError, match="avail_balance") as exc:
        validate_config(merge_config(DEFAULTS, base_config))
    assert exc.value.field == "avail_balance"


def test_balance_too_large_for_cents_is_named(base_config):
    base_config["balance"] = "1e30"
    with pytest.raises(ConfigError, match="balance") as exc:
        validate_config(merge_config(DEFAULTS, base_config))
    assert exc.value.field == "balance"


def test_unknown_format_rejected(make_settings):
    with pytest.raises(ConfigError) as exc:
        make_settings(format="csv")
    assert exc.value.field == "format"


def test_overrides_beat_file_beat_defaults(tmp_path, base_config):
    cfg = tmp_path / "bank.yaml"
    cfg.write_text(
        "currency: CAD\n"
        "format: qfx\n"
        "indices:\n"
        "  type: 6\n"
        "  amount: 7\n",
        encoding="utf-8",
    )
    s = resolve_settings(cfg, {**base_config, "format": "ofx", "currency": None})
    # explicit override wins
    assert s.format is OutputFormat.OFX
    # None override means "not given": file value stays
    assert s.currency == "CAD"
    # indices merge per key across layers
    assert s.index_of(ColumnField.TYPE) == 6
    assert s.index_of(ColumnField.AMOUNT) == 7
    assert s.index_of(ColumnField.DATE) == 1


def test_index_can_be_unconfigured_by_higher_layer(make_settings):
    s = make_settings(indices={"posted": None, "name": 0, "memo": "6"})
    assert s.index_of(ColumnField.POSTED) is None
    assert s.index_of(ColumnField.NAME) is None
    assert s.index_of(ColumnField.MEMO) == 6


def test_amount_index_is_mandatory(make_settings):
    with pytest.raises(ConfigError) as exc:
        make_settings(indices={"amount": None})
    assert exc.value.field == "indices.amount"


@pytest.mark.parametrize("bad", [-1, "five", True, 2.5])
def test_invalid_index_values(make_settings, bad):
    with pytest.raises(ConfigError) as exc:
        make_settings(indices={"memo": bad})
    assert exc.value.field == "indices.memo"


def test_unknown_index_field(make_settings):
    with pytest.raises(ConfigError, match="balance"):
        make_settings(indices={"balance": 9})


@pytest.mark.parametrize(("raw", "expected"), [("false", False), ("no", False), ("1", True)])
def test_has_header_accepts_strings(make_settings, raw, expected):
    assert make_settings(has_header=raw).has_header is expected


def test_has_header_rejects_garbage(make_settings):
    with pytest.raises(ConfigError) as exc:
        make_settings(has_header="maybe")
    assert exc.value.field == "has_header"


def test_alternate_issuer_id_only_for_qfx(make_settings):
    assert make_settings().alternate_issuer_id is None
    assert make_settings(intuit_id="9999").alternate_issuer_id is None
    assert make_settings(format="qfx").alternate_issuer_id == "1234"
    assert make_settings(format="QFX", intuit_id="9999").alternate_issuer_id == "9999"
    assert make_settings(format="qfx", intuit_id="").alternate_issuer_id == "1234"


def test_settings_are_frozen(make_settings):
    s = make_settings()
    with pytest.raises(ValidationError):
        s.org_name = "Other"
    with pytest.raises(TypeError):
        s.indices[ColumnField.TYPE] = 6
    assert ColumnField.TYPE not in s.indices


def test_column_lookup_respects_row_bounds(make_settings):
    s = make_settings(indices={"memo": 6})
    row = ["2024/01/02", "2024/01/03", "NAME", "ID", "1.00"]
    assert s.column(ColumnField.AMOUNT, row) == "1.00"
    assert s.column(ColumnField.MEMO, row) is None
    assert s.column(ColumnField.PAYEE, row) is None
    assert s.column(ColumnField.MEMO, [*row, "note"]) == "note"


def test_load_json_config(tmp_path, base_config):
    cfg = tmp_path / "bank.json"
    cfg.write_text(json.dumps({**base_config, "indices": {"payee": 6}}), encoding="utf-8")
    s = resolve_settings(cfg)
    assert s.org_id == "1234"
    assert s.index_of(ColumnField.PAYEE) == 6


def test_yaml_numbers_and_dates_are_accepted(tmp_path):
    cfg = tmp_path / "bank.yml"
    cfg.write_text(
        "org_name: Example Credit Union\n"
        "org_id: 1234\n"
        "bank_id: \"021000021\"\n"
        "account_id: \"000123456789\"\n"
        "account_type: CHECKING\n"
        "date_layout: '%Y-%m-%d'\n"
        "start_date: 2024-01-01\n"
        "end_date: 2024-01-31\n"
        "asof_date: 2024-01-31\n"
        "balance: 1024.5\n"
        "avail_balance: -12\n",
        encoding="utf-8",
    )
    s = resolve_settings(cfg)
    assert s.org_id == "1234"
    assert s.account_id == "000123456789"
    assert s.start_date == datetime(2024, 1, 1)
    assert s.balance == Decimal("1024.5")
    assert s.avail_balance == Decimal("-12")


def test_unreadable_config_file(tmp_path):
    with pytest.raises(ConfigError) as exc:
        load_config_file(tmp_path / "missing.yaml")
    assert exc.value.field == "config_file"


def test_malformed_config_file(tmp_path):
    cfg = tmp_path / "bank.yaml"
    cfg.write_text("org_name: [unterminated\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="unable to parse"):
        load_config_file(cfg)


def test_non_mapping_config_file(tmp_path):
    cfg = tmp_path / "bank.yaml"
    cfg.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_config_file(cfg)


def test_empty_config_file_is_empty_mapping(tmp_path):
    cfg = tmp_path / "bank.yaml"
    cfg.write_text("", encoding="utf-8")
    assert load_config_file(cfg) == {}


def test_merge_normalizes_keys_and_ignores_unknown(caplog):
    merged = merge_config(DEFAULTS, {"Org-Name": "X", "colour": "blue"})
    assert merged["org_name"] == "X"
    assert "colour" not in merged
    assert "colour" in caplog.text
