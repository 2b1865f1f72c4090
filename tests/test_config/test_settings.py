"""Tests for the configuration system."""

from __future__ import annotations

import textwrap
from typing import TYPE_CHECKING

import pytest

from iota_funds.config.settings import AppConfig, NodeConfig, PriceConfig

if TYPE_CHECKING:
    from pathlib import Path

_ENV_VARS = (
    "NODE_URL",
    "PRIVATE_KEYS",
    "RECIPIENT_ADDRESS",
    "CURRENCY",
    "DEBUG",
    "IOTAFUNDS_NODE__TIMEOUT",
    "IOTAFUNDS_NODE__CONFIRMATION_INTERVAL",
    "IOTAFUNDS_PRICE__ASSET_ID",
    "IOTAFUNDS_PRICE__CURRENCY",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


class TestDefaults:
    """Verify all default values are correct."""

    def test_node_defaults(self) -> None:
        cfg = NodeConfig()
        assert cfg.timeout == 30.0
        assert cfg.confirmation_interval == 5.0
        assert cfg.confirmation_max_attempts == 40
        assert cfg.max_time_skew == 300

    def test_price_defaults(self) -> None:
        cfg = PriceConfig()
        assert cfg.api_url == "https://api.coingecko.com/api/v3/simple/price"
        assert cfg.asset_id == "iota"
        assert cfg.precision == 18
        assert cfg.currency == "eur"

    def test_app_defaults(self) -> None:
        cfg = AppConfig()
        assert cfg.node_url == ""
        assert cfg.keys == []
        assert cfg.recipient_address == ""
        assert cfg.price.currency == "eur"
        assert not hasattr(cfg, "debug")


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------


class TestEnvironment:
    def test_unprefixed_variables(self, monkeypatch) -> None:
        monkeypatch.setenv("NODE_URL", "https://node.test")
        monkeypatch.setenv("PRIVATE_KEYS", "k1, k2,,k3 ")
        monkeypatch.setenv("RECIPIENT_ADDRESS", "rms1qabc")
        cfg = AppConfig()
        assert cfg.node_url == "https://node.test"
        assert cfg.keys == ["k1", "k2", "k3"]
        assert cfg.recipient_address == "rms1qabc"

    def test_nested_sections(self, monkeypatch) -> None:
        monkeypatch.setenv("IOTAFUNDS_NODE__TIMEOUT", "7.5")
        monkeypatch.setenv("IOTAFUNDS_PRICE__ASSET_ID", "shimmer")
        assert NodeConfig().timeout == 7.5
        assert PriceConfig().asset_id == "shimmer"

    def test_currency_is_lower_cased(self, monkeypatch) -> None:
        monkeypatch.setenv("IOTAFUNDS_PRICE__CURRENCY", " USD ")
        assert PriceConfig().currency == "usd"

    def test_generic_variables_are_not_read(self, monkeypatch) -> None:
        monkeypatch.setenv("DEBUG", "*")
        monkeypatch.setenv("CURRENCY", "gbp")
        cfg = AppConfig.load(env_file=None)
        assert cfg.price.currency == "eur"


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


class TestLoad:
    def test_env_file(self, tmp_path: Path) -> None:
        env_file = tmp_path / "custom.env"
        env_file.write_text(
            textwrap.dedent("""\
                NODE_URL=https://from-file.test
                PRIVATE_KEYS=a,b
                IOTAFUNDS_NODE__CONFIRMATION_INTERVAL=1.5
                UNRELATED=ignored
            """)
        )
        cfg = AppConfig.load(env_file=str(env_file))
        assert cfg.node_url == "https://from-file.test"
        assert cfg.keys == ["a", "b"]
        assert cfg.node.confirmation_interval == 1.5

    def test_default_env_file_in_working_directory(self, tmp_path: Path) -> None:
        (tmp_path / ".env").write_text("RECIPIENT_ADDRESS=rms1qdef\n")
        assert AppConfig.load().recipient_address == "rms1qdef"

    def test_missing_env_file_is_fine(self, tmp_path: Path) -> None:
        cfg = AppConfig.load(env_file=str(tmp_path / "absent.env"))
        assert cfg.node_url == ""

    def test_overrides_beat_environment(self, monkeypatch, tmp_path: Path) -> None:
        (tmp_path / ".env").write_text("NODE_URL=https://from-file.test\n")
        monkeypatch.setenv("PRIVATE_KEYS", "env-key")
        cfg = AppConfig.load(node_url="https://flag.test", private_keys="flag-key")
        assert cfg.node_url == "https://flag.test"
        assert cfg.keys == ["flag-key"]

    def test_none_overrides_are_ignored(self, monkeypatch) -> None:
        monkeypatch.setenv("NODE_URL", "https://env.test")
        cfg = AppConfig.load(node_url=None, currency=None)
        assert cfg.node_url == "https://env.test"
        assert cfg.price.currency == "eur"

    def test_currency_override(self, monkeypatch) -> None:
        monkeypatch.setenv("IOTAFUNDS_PRICE__CURRENCY", "chf")
        assert AppConfig.load(currency=" USD ").price.currency == "usd"
        assert AppConfig.load().price.currency == "chf"

    def test_environment_beats_env_file(self, monkeypatch, tmp_path: Path) -> None:
        (tmp_path / ".env").write_text("NODE_URL=https://from-file.test\n")
        monkeypatch.setenv("NODE_URL", "https://env.test")
        assert AppConfig.load().node_url == "https://env.test"
