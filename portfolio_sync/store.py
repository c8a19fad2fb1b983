"""Account store — accounts, flattened assets, price cache and portfolio totals.

All mutations are synchronous and single-step, so readers on the event loop
always see a consistent state. Only account configuration is persisted.
"""
from __future__ import annotations

import json
import logging
import os
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .errors import ValidationError
from .models import (
    Account,
    AccountKind,
    AccountStatus,
    Asset,
    ChainId,
    PortfolioAggregate,
    Platform,
    TokenRef,
)
from .services.aggregator import PortfolioAggregator
from .validation import validate_address, validate_token

logger = logging.getLogger(__name__)

AccountListener = Callable[[tuple[Account, ...]], None]


# ---------------------------------------------------------------------------
# Account construction and (de)serialisation
# ---------------------------------------------------------------------------


def build_account(
    account_id: str,
    platform: str | Platform,
    addresses: Iterable[str] = (),
    *,
    kind: str | AccountKind = AccountKind.WALLET,
    label: str = "",
    status: str | AccountStatus = AccountStatus.CONNECTED,
    declared_chains: Iterable[str | ChainId] = (),
    tracked_tokens: Iterable[TokenRef] = (),
    last_sync_at: datetime | None = None,
) -> Account:
    """Create an account from loosely typed input, normalising legacy labels."""
    kind = AccountKind(kind)
    return Account(
        id=account_id,
        kind=kind,
        platform=Platform.parse(platform, kind),
        label=label or str(platform),
        status=AccountStatus(status),
        addresses=_clean_addresses(addresses),
        declared_chains=_parse_chains(declared_chains),
        tracked_tokens=tuple(tracked_tokens),
        last_sync_at=last_sync_at,
    )


def _normalise_changes(current: Account, changes: dict[str, Any]) -> dict[str, Any]:
    """Coerce loosely typed account updates the same way :func:`build_account` does."""
    coerced = dict(changes)
    try:
        if "kind" in coerced:
            coerced["kind"] = AccountKind(coerced["kind"])
        if "platform" in coerced:
            coerced["platform"] = Platform.parse(
                coerced["platform"], coerced.get("kind", current.kind)
            )
        if "status" in coerced:
            coerced["status"] = AccountStatus(coerced["status"])
    except ValidationError:
        raise
    except ValueError as e:
        raise ValidationError(str(e)) from e
    if "addresses" in coerced:
        coerced["addresses"] = _clean_addresses(coerced["addresses"])
    if "declared_chains" in coerced:
        coerced["declared_chains"] = _parse_chains(coerced["declared_chains"])
    if "tracked_tokens" in coerced:
        coerced["tracked_tokens"] = tuple(coerced["tracked_tokens"])
    return coerced


def _clean_addresses(addresses: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(a.strip() for a in addresses if a.strip()))


def _parse_chains(chains: Iterable[str | ChainId]) -> tuple[ChainId, ...]:
    return tuple(dict.fromkeys(ChainId.parse(c) for c in chains))


def account_to_dict(account: Account) -> dict[str, Any]:
    return {
        "id": account.id,
        "kind": account.kind.value,
        "platform": account.platform.value,
        "label": account.label,
        "status": account.status.value,
        "addresses": list(account.addresses),
        "declared_chains": [c.value for c in account.declared_chains],
        "tracked_tokens": [
            {
                "contract_address": t.contract_address,
                "symbol": t.symbol,
                "name": t.name,
                "decimals": t.decimals,
                "chain": t.chain.value,
            }
            for t in account.tracked_tokens
        ],
        "last_sync_at": account.last_sync_at.isoformat() if account.last_sync_at else None,
    }


def account_from_dict(raw: dict[str, Any]) -> Account:
    last_sync = raw.get("last_sync_at")
    return build_account(
        raw["id"],
        raw.get("platform", ""),
        raw.get("addresses", []),
        kind=raw.get("kind", AccountKind.WALLET.value),
        label=raw.get("label", ""),
        status=raw.get("status", AccountStatus.DISCONNECTED.value),
        declared_chains=raw.get("declared_chains", []),
        tracked_tokens=[
            TokenRef(
                contract_address=t["contract_address"],
                symbol=t["symbol"],
                name=t.get("name", t["symbol"]),
                decimals=int(t["decimals"]),
                chain=ChainId.parse(t["chain"]),
            )
            for t in raw.get("tracked_tokens", [])
        ],
        last_sync_at=datetime.fromisoformat(last_sync) if last_sync else None,
    )


class JsonAccountRepository:
    """Account list persisted as ``{namespace: {"accounts": [...]}}``."""

    def __init__(self, path: str | Path, namespace: str = "portfolio-sync-storage") -> None:
        self.path = Path(path).expanduser()
        self.namespace = namespace

    def load(self) -> list[Account]:
        if not self.path.exists():
            return []
        with open(self.path, encoding="utf-8") as f:
            document = json.load(f)
        entries = document.get(self.namespace, {}).get("accounts", [])
        accounts: list[Account] = []
        for entry in entries:
            try:
                accounts.append(account_from_dict(entry))
            except (KeyError, ValueError) as e:
                logger.warning("Skipping unreadable stored account %s: %s", entry.get("id"), e)
        logger.info("Loaded %d accounts from %s", len(accounts), self.path)
        return accounts

    def save(self, accounts: Iterable[Account]) -> None:
        document: dict[str, Any] = {}
        if self.path.exists():
            with open(self.path, encoding="utf-8") as f:
                document = json.load(f)
        document[self.namespace] = {"accounts": [account_to_dict(a) for a in accounts]}

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=2)
        os.replace(tmp_path, self.path)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class AccountStore:
    """In-memory state shared by the sync engine and the presentation layer."""

    def __init__(
        self,
        repository: JsonAccountRepository | None = None,
        aggregator: PortfolioAggregator | None = None,
    ) -> None:
        self._repository = repository
        self._aggregator = aggregator or PortfolioAggregator()
        self._accounts: tuple[Account, ...] = ()
        self._assets: tuple[Asset, ...] = ()
        self._prices: dict[str, float] = {}
        self._portfolio = PortfolioAggregate()
        self._listeners: list[AccountListener] = []

        if repository is not None:
            self._accounts = tuple(repository.load())

    # -- reads -------------------------------------------------------------

    @property
    def accounts(self) -> tuple[Account, ...]:
        return self._accounts

    @property
    def assets(self) -> tuple[Asset, ...]:
        return self._assets

    @property
    def prices(self) -> dict[str, float]:
        return dict(self._prices)

    @property
    def portfolio(self) -> PortfolioAggregate:
        return self._portfolio

    def get_account(self, account_id: str) -> Account | None:
        return next((a for a in self._accounts if a.id == account_id), None)

    def get_assets_by_account(self, account_id: str) -> list[Asset]:
        return [a for a in self._assets if a.account_id == account_id]

    def get_price(self, symbol: str) -> float | None:
        return self._prices.get(symbol.upper())

    def connected_accounts(self) -> list[Account]:
        return [a for a in self._accounts if a.is_connected]

    def errored_accounts(self) -> list[Account]:
        return [a for a in self._accounts if a.status is AccountStatus.ERROR]

    # -- account mutations -------------------------------------------------

    def add_account(self, account: Account) -> Account:
        if self.get_account(account.id) is not None:
            raise ValidationError(f"Account {account.id} already exists")
        self._check_account(account)
        self._accounts = (*self._accounts, account)
        self._accounts_changed()
        logger.info("Account %s added (%s)", account.id, account.platform.value)
        return account

    def update_account(self, account_id: str, **changes: Any) -> Account:
        current = self.get_account(account_id)
        if current is None:
            raise KeyError(account_id)
        if "id" in changes and changes["id"] != account_id:
            raise ValidationError("Account id cannot be changed")
        updated = replace(current, **_normalise_changes(current, changes))
        self._check_account(updated)
        self._accounts = tuple(updated if a.id == account_id else a for a in self._accounts)
        self._accounts_changed()
        return updated

    def remove_account(self, account_id: str) -> None:
        """Remove an account and every asset row that references it."""
        if self.get_account(account_id) is None:
            raise KeyError(account_id)
        self._accounts = tuple(a for a in self._accounts if a.id != account_id)
        removed = sum(1 for a in self._assets if a.account_id == account_id)
        self._assets = tuple(a for a in self._assets if a.account_id != account_id)
        self.recompute_aggregate()
        self._accounts_changed()
        logger.info("Account %s removed with %d assets", account_id, removed)

    def mark_account_error(self, account_id: str, message: str) -> None:
        account = self.get_account(account_id)
        if account is None:
            return
        logger.error("Account %s unreachable: %s", account_id, message)
        if account.status is not AccountStatus.ERROR:
            self.update_account(account_id, status=AccountStatus.ERROR)

    def mark_account_synced(self, account_id: str) -> None:
        """Stamp the sync time; an account in error is connected again."""
        account = self.get_account(account_id)
        if account is None:
            return
        changes: dict[str, Any] = {"last_sync_at": datetime.now(timezone.utc)}
        if account.status is AccountStatus.ERROR:
            logger.info("Account %s reachable again", account_id)
            changes["status"] = AccountStatus.CONNECTED
        self._accounts = tuple(
            replace(a, **changes) if a.id == account_id else a for a in self._accounts
        )
        self._save()

    def subscribe(self, listener: AccountListener) -> Callable[[], None]:
        """Call ``listener`` after every account mutation; returns an unsubscribe hook."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    # -- asset and price mutations ----------------------------------------

    def replace_assets(self, assets: Iterable[Asset]) -> None:
        """Swap the whole asset list at once, dropping rows of unknown accounts."""
        known = {a.id for a in self._accounts}
        rows = tuple(assets)
        kept = tuple(a for a in rows if a.account_id in known)
        if len(kept) != len(rows):
            logger.debug("Dropped %d asset rows of removed accounts", len(rows) - len(kept))
        self._assets = kept
        self.recompute_aggregate()

    def set_price(self, symbol: str, price: float) -> None:
        self._prices[symbol.upper()] = float(price)

    def recompute_aggregate(self) -> PortfolioAggregate:
        self._portfolio = self._aggregator.recompute_totals(self._assets)
        return self._portfolio

    # -- internals ---------------------------------------------------------

    @staticmethod
    def _check_account(account: Account) -> None:
        if account.status is AccountStatus.CONNECTED and not account.addresses:
            raise ValidationError(f"Connected account {account.id} has no address")
        if account.platform.adapter_kind is not None:
            for address in account.addresses:
                for chain in _address_chains(account):
                    validate_address(address, chain)
        for token in account.tracked_tokens:
            validate_token(token)

    def _accounts_changed(self) -> None:
        self._save()
        for listener in list(self._listeners):
            listener(self._accounts)

    def _save(self) -> None:
        if self._repository is not None:
            self._repository.save(self._accounts)


def _address_chains(account: Account) -> list[ChainId]:
    """Chains whose address format an account's addresses must satisfy."""
    if account.platform.chain is not None:
        return [account.platform.chain]
    if account.platform is Platform.MULTI_CHAIN_EVM:
        return [ChainId.ETHEREUM]
    return list(account.declared_chains[:1])
