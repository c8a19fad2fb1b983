"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .errors import ValidationError
from .models import ChainId

logger = logging.getLogger(__name__)

SUPPORTED_PRICE_PROVIDERS = ("pyth",)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SyncConfig:
    interval_seconds: float = 60.0
    currency: str = "USD"


@dataclass(frozen=True)
class LoadingConfig:
    balance_timeout: float = 5.0
    price_timeout: float = 3.0
    retry_attempts: int = 2
    retry_base_delay: float = 2.0
    stagger_delay: float = 0.1


@dataclass(frozen=True)
class StorageConfig:
    path: str = "~/.portfolio-sync/accounts.json"
    namespace: str = "portfolio-sync-storage"


@dataclass(frozen=True)
class ChainConfig:
    rpc_endpoints: tuple[str, ...] = ()
    rpc_timeout: int = 30


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    feeds: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PriceOracleConfig:
    provider: str = "pyth"
    pyth: PythConfig = field(default_factory=PythConfig)


@dataclass(frozen=True)
class AppConfig:
    sync: SyncConfig = field(default_factory=SyncConfig)
    loading: LoadingConfig = field(default_factory=LoadingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    chains: dict[ChainId, ChainConfig] = field(default_factory=dict)
    price_oracle: PriceOracleConfig = field(default_factory=PriceOracleConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_sync(raw: dict[str, Any]) -> SyncConfig:
    return SyncConfig(
        interval_seconds=float(raw.get("interval_seconds", 60.0)),
        currency=str(raw.get("currency", "USD")).upper(),
    )


def _build_loading(raw: dict[str, Any]) -> LoadingConfig:
    return LoadingConfig(
        balance_timeout=float(raw.get("balance_timeout", 5.0)),
        price_timeout=float(raw.get("price_timeout", 3.0)),
        retry_attempts=int(raw.get("retry_attempts", 2)),
        retry_base_delay=float(raw.get("retry_base_delay", 2.0)),
        stagger_delay=float(raw.get("stagger_delay", 0.1)),
    )


def _build_storage(raw: dict[str, Any]) -> StorageConfig:
    return StorageConfig(
        path=raw.get("path", StorageConfig.path),
        namespace=raw.get("namespace", StorageConfig.namespace),
    )


def _build_chains(raw: dict[str, Any]) -> dict[ChainId, ChainConfig]:
    chains: dict[ChainId, ChainConfig] = {}
    for name, cfg in raw.items():
        try:
            chain = ChainId.parse(name)
        except ValidationError as e:
            raise ValueError(f"Unknown chain '{name}' in config") from e
        chains[chain] = ChainConfig(
            rpc_endpoints=tuple(e for e in cfg.get("rpc_endpoints", []) if e),
            rpc_timeout=int(cfg.get("rpc_timeout", 30)),
        )
    return chains


def _build_price_oracle(raw: dict[str, Any]) -> PriceOracleConfig:
    pyth_raw = raw.get("pyth", {})
    return PriceOracleConfig(
        provider=raw.get("provider", "pyth"),
        pyth=PythConfig(
            hermes_url=pyth_raw.get("hermes_url", PythConfig.hermes_url),
            feeds={str(k).upper(): v for k, v in pyth_raw.get("feeds", {}).items()},
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        sync=_build_sync(raw.get("sync", {})),
        loading=_build_loading(raw.get("loading", {})),
        storage=_build_storage(raw.get("storage", {})),
        chains=_build_chains(raw.get("chains", {})),
        price_oracle=_build_price_oracle(raw.get("price_oracle", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if cfg.sync.interval_seconds <= 0:
        raise ValueError("sync.interval_seconds must be positive")
    if cfg.loading.retry_attempts < 1:
        raise ValueError("loading.retry_attempts must be at least 1")
    if cfg.loading.balance_timeout <= 0 or cfg.loading.price_timeout <= 0:
        raise ValueError("loading timeouts must be positive")
    if cfg.loading.retry_base_delay < 0 or cfg.loading.stagger_delay < 0:
        raise ValueError("loading delays must not be negative")

    for chain, chain_cfg in cfg.chains.items():
        if not chain_cfg.rpc_endpoints:
            raise ValueError(f"Chain '{chain.value}' has no rpc_endpoints")

    if cfg.price_oracle.provider not in SUPPORTED_PRICE_PROVIDERS:
        raise ValueError(
            f"Unsupported price oracle provider '{cfg.price_oracle.provider}'"
        )
