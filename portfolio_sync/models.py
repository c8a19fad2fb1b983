"""Data models — frozen dataclasses and closed enums."""
from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .errors import ValidationError


class ChainFamily(str, Enum):
    EVM = "evm"
    SOLANA = "solana"
    SUI = "sui"


@dataclass(frozen=True)
class ChainInfo:
    name: str
    symbol: str
    decimals: int
    family: ChainFamily
    numeric_id: int | None = None


class ChainId(str, Enum):
    """Supported networks."""

    ETHEREUM = "ethereum"
    POLYGON = "polygon"
    ARBITRUM = "arbitrum"
    OPTIMISM = "optimism"
    BSC = "bsc"
    AVALANCHE = "avalanche"
    BASE = "base"
    SOLANA = "solana"
    SUI = "sui"

    @property
    def info(self) -> ChainInfo:
        return _CHAIN_INFO[self]

    @property
    def is_evm(self) -> bool:
        return self.info.family is ChainFamily.EVM

    @classmethod
    def parse(cls, value: str | ChainId) -> ChainId:
        """Resolve a chain key, display name or numeric EVM id."""
        if isinstance(value, ChainId):
            return value
        text = str(value).strip().lower()
        for chain in cls:
            info = chain.info
            if text in (chain.value, info.name.lower()) or (
                info.numeric_id is not None and text == str(info.numeric_id)
            ):
                return chain
        raise ValidationError(f"Unsupported chain: {value!r}")


_CHAIN_INFO: dict[ChainId, ChainInfo] = {
    ChainId.ETHEREUM: ChainInfo("Ethereum", "ETH", 18, ChainFamily.EVM, 1),
    ChainId.POLYGON: ChainInfo("Polygon", "MATIC", 18, ChainFamily.EVM, 137),
    ChainId.ARBITRUM: ChainInfo("Arbitrum", "ETH", 18, ChainFamily.EVM, 42161),
    ChainId.OPTIMISM: ChainInfo("Optimism", "ETH", 18, ChainFamily.EVM, 10),
    ChainId.BSC: ChainInfo("BNB Smart Chain", "BNB", 18, ChainFamily.EVM, 56),
    ChainId.AVALANCHE: ChainInfo("Avalanche", "AVAX", 18, ChainFamily.EVM, 43114),
    ChainId.BASE: ChainInfo("Base", "ETH", 18, ChainFamily.EVM, 8453),
    ChainId.SOLANA: ChainInfo("Solana", "SOL", 9, ChainFamily.SOLANA),
    ChainId.SUI: ChainInfo("Sui", "SUI", 9, ChainFamily.SUI),
}


class AdapterKind(str, Enum):
    SINGLE_CHAIN_EVM = "single_chain_evm"
    MULTI_CHAIN_EVM = "multi_chain_evm"
    SOLANA = "solana"
    SUI = "sui"


class Platform(str, Enum):
    """Closed set of account platforms; free-form labels go through ``parse``."""

    ETHEREUM = "ethereum"
    POLYGON = "polygon"
    ARBITRUM = "arbitrum"
    OPTIMISM = "optimism"
    BSC = "bsc"
    AVALANCHE = "avalanche"
    BASE = "base"
    MULTI_CHAIN_EVM = "multi_chain_evm"
    SOLANA = "solana"
    SUI = "sui"
    CUSTODIAL = "custodial"

    @property
    def adapter_kind(self) -> AdapterKind | None:
        if self is Platform.MULTI_CHAIN_EVM:
            return AdapterKind.MULTI_CHAIN_EVM
        if self is Platform.SOLANA:
            return AdapterKind.SOLANA
        if self is Platform.SUI:
            return AdapterKind.SUI
        if self is Platform.CUSTODIAL:
            return None
        return AdapterKind.SINGLE_CHAIN_EVM

    @property
    def chain(self) -> ChainId | None:
        """Native chain of a single-chain platform."""
        try:
            return ChainId(self.value)
        except ValueError:
            return None

    @classmethod
    def parse(cls, label: str | Platform, kind: AccountKind | None = None) -> Platform:
        """Normalise a platform label, including legacy aliases.

        Exchange and DEX accounts with a label that is not an on-chain
        platform map to ``CUSTODIAL``; unknown wallet labels are rejected.
        """
        if isinstance(label, Platform):
            return label
        key = " ".join(str(label).replace("_", " ").replace("-", " ").lower().split())
        platform = _PLATFORM_ALIASES.get(key)
        if platform is None:
            try:
                platform = cls(key.replace(" ", "_"))
            except ValueError:
                platform = None
        if platform is None:
            try:
                platform = cls(ChainId.parse(key).value)
            except ValidationError:
                platform = None
        if platform is not None:
            return platform
        if kind in (AccountKind.EXCHANGE, AccountKind.DEX):
            return cls.CUSTODIAL
        raise ValidationError(f"Unknown wallet platform: {label!r}")


_PLATFORM_ALIASES: dict[str, Platform] = {
    "multi chain evm": Platform.MULTI_CHAIN_EVM,
    "multichain evm": Platform.MULTI_CHAIN_EVM,
    "multichain": Platform.MULTI_CHAIN_EVM,
    "evm": Platform.MULTI_CHAIN_EVM,
    "eth": Platform.ETHEREUM,
    "matic": Platform.POLYGON,
    "bnb": Platform.BSC,
    "binance smart chain": Platform.BSC,
    "avax": Platform.AVALANCHE,
    "sol": Platform.SOLANA,
}


class AccountKind(str, Enum):
    WALLET = "wallet"
    EXCHANGE = "exchange"
    DEX = "dex"


class AccountStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    ERROR = "error"


class LoadPhase(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class TokenRef:
    """User-declared token to track beyond the native currency."""

    contract_address: str
    symbol: str
    name: str
    decimals: int
    chain: ChainId


@dataclass(frozen=True)
class Account:
    id: str
    kind: AccountKind
    platform: Platform
    label: str = ""
    status: AccountStatus = AccountStatus.DISCONNECTED
    addresses: tuple[str, ...] = ()
    declared_chains: tuple[ChainId, ...] = ()
    tracked_tokens: tuple[TokenRef, ...] = ()
    last_sync_at: datetime | None = None

    @property
    def is_connected(self) -> bool:
        return self.status is AccountStatus.CONNECTED

    def sync_signature(self) -> tuple:
        """Fields whose change requires a fresh sync."""
        return (
            self.id,
            self.platform,
            self.addresses,
            self.declared_chains,
            self.tracked_tokens,
        )


@dataclass(frozen=True)
class Balance:
    """Raw balance as returned by a chain adapter."""

    address: str
    chain: ChainId
    symbol: str
    name: str
    raw_amount: str
    decimals: int
    contract_address: str | None = None


@dataclass(frozen=True)
class AssetKey:
    """Structured identity of an asset row."""

    account_id: str
    chain: ChainId
    address: str
    symbol: str

    @property
    def digest(self) -> str:
        material = "\x1f".join(
            (self.account_id, self.chain.value, self.address.lower(), self.symbol.upper())
        )
        return hashlib.sha256(material.encode()).hexdigest()[:16]


@dataclass(frozen=True)
class Asset:
    key: AssetKey
    name: str
    balance: str
    source_label: str = ""
    price_usd: float | None = None
    value_usd: float | None = None

    @property
    def id(self) -> str:
        return self.key.digest

    @property
    def account_id(self) -> str:
        return self.key.account_id

    @property
    def symbol(self) -> str:
        return self.key.symbol

    @property
    def chain(self) -> ChainId:
        return self.key.chain

    @property
    def address(self) -> str:
        return self.key.address


@dataclass(frozen=True)
class AggregateRow:
    symbol: str
    chain: ChainId
    name: str
    balance: str
    value_usd: float
    priced: bool
    addresses: frozenset[str] = frozenset()
    asset_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class PortfolioAggregate:
    total_value_usd: float = 0.0
    total_asset_count: int = 0
    last_updated_at: datetime | None = None


@dataclass(frozen=True)
class AssetLoadingState:
    asset_id: str
    balance_phase: LoadPhase = LoadPhase.IDLE
    price_phase: LoadPhase = LoadPhase.IDLE
    balance_error: str | None = None
    price_error: str | None = None
    balance: str | None = None
    price_usd: float | None = None
    last_balance_update: datetime | None = None
    last_price_update: datetime | None = None

    @property
    def is_fully_loaded(self) -> bool:
        return (
            self.balance_phase is LoadPhase.SUCCESS
            and self.price_phase is LoadPhase.SUCCESS
        )


@dataclass(frozen=True)
class PriceQuote:
    symbol: str
    price: float
    currency: str = "USD"


@dataclass(frozen=True)
class PortfolioSnapshot:
    """Read model handed to the presentation layer."""

    accounts: tuple[Account, ...] = ()
    assets: tuple[Asset, ...] = ()
    portfolio: PortfolioAggregate = field(default_factory=PortfolioAggregate)
    aggregate_rows: tuple[AggregateRow, ...] = ()
    loading_states: dict[str, AssetLoadingState] = field(default_factory=dict)
