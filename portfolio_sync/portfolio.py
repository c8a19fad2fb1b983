"""Portfolio service — wires store, sync engine and progressive loading together."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from .adapters import build_adapters
from .chains import build_client
from .config import AppConfig, LoadingConfig
from .models import Account, PortfolioSnapshot
from .oracles import PythOracle
from .services import PortfolioAggregator, ProgressiveLoadingController, SyncOrchestrator
from .store import AccountStore, JsonAccountRepository

logger = logging.getLogger(__name__)


class PortfolioService:
    """Single entry point for the presentation layer."""

    def __init__(
        self,
        store: AccountStore,
        orchestrator: SyncOrchestrator,
        aggregator: PortfolioAggregator | None = None,
        loading_config: LoadingConfig | None = None,
    ) -> None:
        loading_config = loading_config or LoadingConfig()
        self.store = store
        self.orchestrator = orchestrator
        self.aggregator = aggregator or PortfolioAggregator()
        self.loading = ProgressiveLoadingController(
            orchestrator.refresh_balance,
            self._load_price,
            balance_timeout=loading_config.balance_timeout,
            price_timeout=loading_config.price_timeout,
            retry_attempts=loading_config.retry_attempts,
            retry_base_delay=loading_config.retry_base_delay,
            stagger_delay=loading_config.stagger_delay,
        )
        orchestrator.add_cycle_listener(self.loading.track)

    @classmethod
    def from_config(
        cls, config: AppConfig, repository: JsonAccountRepository | None = None
    ) -> PortfolioService:
        if repository is None:
            repository = JsonAccountRepository(config.storage.path, config.storage.namespace)
        aggregator = PortfolioAggregator()
        store = AccountStore(repository, aggregator)
        clients = {chain: build_client(chain, cfg) for chain, cfg in config.chains.items()}
        orchestrator = SyncOrchestrator(
            store,
            build_adapters(clients),
            PythOracle(config.price_oracle.pyth),
            interval_seconds=config.sync.interval_seconds,
            currency=config.sync.currency,
        )
        return cls(store, orchestrator, aggregator, config.loading)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> PortfolioSnapshot:
        assets = self.store.assets
        return PortfolioSnapshot(
            accounts=self.store.accounts,
            assets=assets,
            portfolio=self.store.portfolio,
            aggregate_rows=tuple(self.aggregator.aggregate(assets)),
            loading_states=self.loading.states,
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def add_account(self, account: Account) -> Account:
        return self.store.add_account(account)

    def update_account(self, account_id: str, **changes: Any) -> Account:
        return self.store.update_account(account_id, **changes)

    def remove_account(self, account_id: str) -> None:
        self.store.remove_account(account_id)
        self.loading.track(self.store.assets, autoload=False)

    def trigger_sync_now(self) -> asyncio.Task[Any]:
        return self.orchestrator.trigger_sync_now()

    async def sync_once(self, wait_for_loading: bool = False) -> PortfolioSnapshot:
        await self.orchestrator.run_sync_cycle()
        if wait_for_loading:
            await self.loading.wait_idle()
        return self.snapshot()

    def start(self, interval_seconds: float | None = None) -> None:
        self.orchestrator.start(interval_seconds)

    async def stop(self) -> None:
        await self.orchestrator.stop()
        await self.loading.close()

    async def _load_price(self, symbol: str) -> float:
        cached = self.store.get_price(symbol)
        if cached is not None:
            return cached
        return await self.orchestrator.resolve_price(symbol)
