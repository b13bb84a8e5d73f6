"""
Configuration loading and config -> kernel bridges.
"""

from datetime import date
from pathlib import Path

import pytest
import yaml

from ledger_config import (
    CONFIG_ENV_VAR,
    DATABASE_URL_ENV_VAR,
    DEFAULT_CONFIG_PATH,
    get_active_config,
)
from ledger_config.bridges import build_orchestrator, seed_catalog
from ledger_config.loader import compute_checksum, load_config, parse_config, parse_date
from ledger_kernel.domain.validation import LineInput

MINIMAL = {
    "config_id": "test",
    "version": 2,
    "ledger": {"voucher_prefix": "JV", "numbering_retry_attempts": 5},
    "netting": {"receivable_account_code": 1100, "payable_account_code": "2100"},
    "accounts": [
        {"code": "1100", "name": "Receivables", "account_type": "asset", "role": "receivable"},
        {"code": "2100", "name": "Payables", "account_type": "LIABILITY", "role": "PAYABLE"},
        {"code": "1101", "name": "Receivables - domestic", "account_type": "ASSET",
         "parent_code": "1100"},
    ],
    "fiscal_years": [
        {"year": 2025, "start_date": "2025-04-01", "end_date": date(2026, 3, 31)},
    ],
}


def write_yaml(tmp_path: Path, data: dict) -> Path:
    path = tmp_path / "ledger.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


class TestParseConfig:
    def test_parses_all_sections(self):
        config = parse_config(MINIMAL)

        assert (config.config_id, config.version) == ("test", 2)
        assert config.voucher_prefix == "JV"
        assert config.numbering_retry_attempts == 5
        assert config.netting.receivable_account_code == "1100"
        assert [a.account_type for a in config.accounts] == ["ASSET", "LIABILITY", "ASSET"]
        assert config.accounts[0].role == "RECEIVABLE"
        assert config.accounts[2].role == "NONE"
        assert config.accounts[2].parent_code == "1100"
        assert config.fiscal_years[0].start_date == date(2025, 4, 1)
        assert config.fiscal_years[0].end_date == date(2026, 3, 31)

    def test_defaults(self):
        config = parse_config({"config_id": "bare", "version": 1})
        assert config.voucher_prefix == "VOU"
        assert config.numbering_retry_attempts == 3
        assert config.database.url == "sqlite:///ledger.db"
        assert config.netting.receivable_account_code is None
        assert config.accounts == ()

    def test_missing_identity(self):
        with pytest.raises(KeyError):
            parse_config({"version": 1})

    def test_duplicate_account_codes(self):
        data = dict(MINIMAL, accounts=MINIMAL["accounts"] + [MINIMAL["accounts"][0]])
        with pytest.raises(ValueError, match="1100"):
            parse_config(data)

    def test_duplicate_fiscal_years(self):
        data = dict(MINIMAL, fiscal_years=MINIMAL["fiscal_years"] * 2)
        with pytest.raises(ValueError):
            parse_config(data)

    def test_retry_count_must_be_positive(self):
        with pytest.raises(ValueError):
            parse_config(dict(MINIMAL, ledger={"numbering_retry_attempts": 0}))

    def test_bad_date(self):
        with pytest.raises(ValueError):
            parse_date("01/04/2025")

    def test_checksum_is_key_order_independent(self):
        reordered = dict(reversed(list(MINIMAL.items())))
        assert compute_checksum(MINIMAL) == compute_checksum(reordered)
        assert compute_checksum(MINIMAL) != compute_checksum(dict(MINIMAL, version=3))


class TestGetActiveConfig:
    def test_default_file(self, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        monkeypatch.delenv(DATABASE_URL_ENV_VAR, raising=False)
        config = get_active_config()
        assert config.config_id == "default"
        assert config == load_config(DEFAULT_CONFIG_PATH)

    def test_env_var_path(self, tmp_path, monkeypatch):
        monkeypatch.setenv(CONFIG_ENV_VAR, str(write_yaml(tmp_path, MINIMAL)))
        monkeypatch.delenv(DATABASE_URL_ENV_VAR, raising=False)
        assert get_active_config().config_id == "test"

    def test_database_url_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv(DATABASE_URL_ENV_VAR, "postgresql://ledger@db/ledger")
        config = get_active_config(write_yaml(tmp_path, MINIMAL))
        assert config.database.url == "postgresql://ledger@db/ledger"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")

    def test_trace_logged(self, tmp_path, captured_logs, monkeypatch):
        monkeypatch.delenv(DATABASE_URL_ENV_VAR, raising=False)
        config = get_active_config(write_yaml(tmp_path, MINIMAL))
        [trace] = [r for r in captured_logs() if r["message"] == "LEDGER_CONFIG_TRACE"]
        assert trace["config_id"] == "test"
        assert trace["checksum"] == config.checksum
        assert trace["account_count"] == 3


class TestBridges:
    def test_seed_and_orchestrate_from_config(self, file_session_factory):
        config = parse_config(MINIMAL)
        counts = seed_catalog(config, file_session_factory, "setup")
        assert counts == {"accounts": 3, "fiscal_years": 1}

        orchestrator = build_orchestrator(config, file_session_factory)
        child = orchestrator.get_account_by_code("1101")
        assert child.level == 2
        assert [fy.year for fy in orchestrator.list_fiscal_years()] == [2025]

    def test_configured_prefix_used_for_numbering(self, file_session_factory):
        config = parse_config(MINIMAL)
        seed_catalog(config, file_session_factory, "setup")
        orchestrator = build_orchestrator(config, file_session_factory)

        receivable = orchestrator.get_account_by_code("1101")
        payable = orchestrator.get_account_by_code("2100")
        voucher = orchestrator.create_voucher(
            date(2025, 5, 1),
            "TRANSFER",
            [
                LineInput(receivable.id, debit_amount=10),
                LineInput(payable.id, credit_amount=10),
            ],
            "setup",
        )
        assert voucher.voucher_no == "JV-2025-00001"
