"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from portfolio_sync.config import (
    AppConfig,
    ChainConfig,
    LoadingConfig,
    PriceOracleConfig,
    PythConfig,
    StorageConfig,
    SyncConfig,
)
from portfolio_sync.models import ChainId, TokenRef

from .fakes import USDC_ETH


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_chain_config() -> ChainConfig:
    return ChainConfig(
        rpc_endpoints=("https://rpc1.example.com", "https://rpc2.example.com"),
        rpc_timeout=10,
    )


@pytest.fixture()
def sample_pyth_config() -> PythConfig:
    return PythConfig(
        hermes_url="https://hermes.pyth.network/v2/updates/price/latest",
        feeds={"ETH": "0xeee111", "SOL": "sss222", "USDC": "ccc333"},
    )


@pytest.fixture()
def sample_app_config(
    tmp_path: Path,
    sample_chain_config: ChainConfig,
    sample_pyth_config: PythConfig,
) -> AppConfig:
    return AppConfig(
        sync=SyncConfig(interval_seconds=60.0),
        loading=LoadingConfig(retry_base_delay=0.0, stagger_delay=0.0),
        storage=StorageConfig(path=str(tmp_path / "accounts.json")),
        chains={
            ChainId.ETHEREUM: sample_chain_config,
            ChainId.SOLANA: sample_chain_config,
        },
        price_oracle=PriceOracleConfig(provider="pyth", pyth=sample_pyth_config),
    )


@pytest.fixture()
def usdc_token() -> TokenRef:
    return TokenRef(
        contract_address=USDC_ETH,
        symbol="USDC",
        name="USD Coin",
        decimals=6,
        chain=ChainId.ETHEREUM,
    )


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    sync:
      interval_seconds: 30
      currency: usd
    loading:
      balance_timeout: 4
      price_timeout: 2
      retry_attempts: 3
      retry_base_delay: 1
      stagger_delay: 0.05
    storage:
      path: /tmp/portfolio-sync-test/accounts.json
    chains:
      ethereum:
        rpc_endpoints: ["https://eth1.example.com", "https://eth2.example.com"]
        rpc_timeout: 10
      Solana:
        rpc_endpoints: ["https://sol.example.com"]
    price_oracle:
      provider: pyth
      pyth:
        hermes_url: "https://hermes.example.com"
        feeds: {eth: "aaa", SOL: "bbb"}
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file


# ---------------------------------------------------------------------------
# Sample prices
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_prices() -> dict[str, float]:
    return {"ETH": 2000.0, "SOL": 150.0, "USDC": 1.0, "SUI": 3.5}
