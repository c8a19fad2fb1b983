"""Unit tests for config loading, env interpolation, and validation."""
from __future__ import annotations

from pathlib import Path

import pytest

from portfolio_sync.config import AppConfig, _interpolate_env, load_config
from portfolio_sync.models import ChainId


class TestInterpolateEnv:
    def test_simple_substitution(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_VAR", "hello")
        assert _interpolate_env("${MY_VAR}") == "hello"

    def test_missing_var_becomes_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NONEXISTENT_VAR_XYZ", raising=False)
        assert _interpolate_env("${NONEXISTENT_VAR_XYZ}") == ""

    def test_nested_dict(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOK", "secret")
        result = _interpolate_env({"key": "${TOK}", "plain": "text"})
        assert result == {"key": "secret", "plain": "text"}

    def test_nested_list(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("A", "x")
        assert _interpolate_env(["${A}", "y"]) == ["x", "y"]

    def test_non_string_passthrough(self) -> None:
        assert _interpolate_env(42) == 42
        assert _interpolate_env(True) is True


class TestLoadConfig:
    def test_loads_valid_yaml(self, sample_yaml_path: Path) -> None:
        cfg = load_config(sample_yaml_path)
        assert isinstance(cfg, AppConfig)
        assert cfg.sync.interval_seconds == 30.0
        assert cfg.sync.currency == "USD"
        assert cfg.loading.retry_attempts == 3
        assert cfg.loading.stagger_delay == pytest.approx(0.05)
        assert cfg.chains[ChainId.ETHEREUM].rpc_timeout == 10
        assert cfg.chains[ChainId.ETHEREUM].rpc_endpoints == (
            "https://eth1.example.com",
            "https://eth2.example.com",
        )
        assert cfg.chains[ChainId.SOLANA].rpc_timeout == 30

    def test_feed_symbols_uppercased(self, sample_yaml_path: Path) -> None:
        cfg = load_config(sample_yaml_path)
        assert cfg.price_oracle.pyth.feeds == {"ETH": "aaa", "SOL": "bbb"}

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nonexistent.yaml")

    def test_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text("")
        cfg = load_config(cfg_file)
        assert cfg.sync.interval_seconds == 60.0
        assert cfg.loading.balance_timeout == 5.0
        assert cfg.loading.price_timeout == 3.0
        assert cfg.loading.retry_attempts == 2
        assert cfg.storage.namespace == "portfolio-sync-storage"
        assert cfg.chains == {}

    def test_env_interpolation_in_yaml(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TEST_RPC", "https://private.example.com")
        monkeypatch.delenv("UNSET_RPC_XYZ", raising=False)
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text(
            "chains:\n"
            "  ethereum:\n"
            '    rpc_endpoints: ["${TEST_RPC}", "${UNSET_RPC_XYZ}", "https://public.example.com"]\n'
        )
        cfg = load_config(cfg_file)
        assert cfg.chains[ChainId.ETHEREUM].rpc_endpoints == (
            "https://private.example.com",
            "https://public.example.com",
        )


class TestValidation:
    def _write(self, tmp_path: Path, content: str) -> Path:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text(content)
        return cfg_file

    def test_non_positive_interval(self, tmp_path: Path) -> None:
        path = self._write(tmp_path, "sync:\n  interval_seconds: 0\n")
        with pytest.raises(ValueError, match="interval_seconds"):
            load_config(path)

    def test_zero_retry_attempts(self, tmp_path: Path) -> None:
        path = self._write(tmp_path, "loading:\n  retry_attempts: 0\n")
        with pytest.raises(ValueError, match="retry_attempts"):
            load_config(path)

    def test_negative_timeout(self, tmp_path: Path) -> None:
        path = self._write(tmp_path, "loading:\n  price_timeout: -1\n")
        with pytest.raises(ValueError, match="timeouts"):
            load_config(path)

    def test_chain_without_endpoints(self, tmp_path: Path) -> None:
        path = self._write(tmp_path, "chains:\n  polygon:\n    rpc_endpoints: []\n")
        with pytest.raises(ValueError, match="polygon"):
            load_config(path)

    def test_unknown_chain(self, tmp_path: Path) -> None:
        path = self._write(
            tmp_path, "chains:\n  dogechain:\n    rpc_endpoints: ['https://x']\n"
        )
        with pytest.raises(ValueError, match="Unknown chain 'dogechain'"):
            load_config(path)

    def test_unsupported_provider(self, tmp_path: Path) -> None:
        path = self._write(tmp_path, "price_oracle:\n  provider: chainlink\n")
        with pytest.raises(ValueError, match="chainlink"):
            load_config(path)
