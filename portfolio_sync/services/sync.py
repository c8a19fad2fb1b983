"""Sync orchestration — iterates connected accounts x chain adapters."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine, Iterable, Mapping
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from ..errors import AccountConnectionError, FetchError, PriceUnavailable
from ..interfaces.chain_adapter import ChainAdapter
from ..interfaces.connection import ConnectionProvider
from ..interfaces.price_oracle import PriceOracle
from ..models import Account, AdapterKind, Asset, AssetKey, Balance
from ..units import value_of

if TYPE_CHECKING:
    from ..store import AccountStore

logger = logging.getLogger(__name__)

CycleListener = Callable[[tuple[Asset, ...]], None]


class SyncOrchestrator:
    """Runs sync cycles over every connected account and publishes complete snapshots.

    Adapters, the price oracle and the store are injected. Account selection
    and status updates go through ``connections``, which defaults to the
    store. The orchestrator owns its interval loop and every task it spawns,
    and cancels them on :meth:`stop`.
    """

    def __init__(
        self,
        store: AccountStore,
        adapters: Mapping[AdapterKind, ChainAdapter],
        oracle: PriceOracle,
        *,
        interval_seconds: float = 60.0,
        currency: str = "USD",
        connections: ConnectionProvider | None = None,
    ) -> None:
        self._store = store
        self._connections = connections or store
        self._adapters = dict(adapters)
        self._oracle = oracle
        self._interval = interval_seconds
        self._currency = currency

        self._cycle_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task[Any]] = set()
        self._loop_task: asyncio.Task[Any] | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self._last_signature: tuple | None = None
        self._cycle_listeners: list[CycleListener] = []
        self.cycles_completed = 0

    # ------------------------------------------------------------------
    # Adapter selection
    # ------------------------------------------------------------------

    def adapter_for(self, account: Account) -> ChainAdapter | None:
        kind = account.platform.adapter_kind
        if kind is None:
            return None
        return self._adapters.get(kind)

    # ------------------------------------------------------------------
    # Core workflow
    # ------------------------------------------------------------------

    async def run_sync_cycle(self) -> tuple[Asset, ...]:
        """Fetch every connected or errored account, price the result and publish it at once."""
        async with self._cycle_lock:
            connected = self._connections.connected_accounts()
            self._last_signature = self._signature(connected)
            # Accounts in error are retried every cycle until they answer again.
            accounts = [*connected, *self._connections.errored_accounts()]
            logger.info(
                "Sync cycle started for %d connected and %d errored accounts",
                len(connected), len(accounts) - len(connected),
            )

            per_account = await asyncio.gather(*(self._sync_account(a) for a in accounts))
            rows = [row for account_rows in per_account for row in account_rows]
            rows = await self._backfill_prices(rows)

            self._store.replace_assets(rows)
            self._last_signature = self._signature(self._connections.connected_accounts())
            self.cycles_completed += 1
            portfolio = self._store.portfolio
            logger.info(
                "Sync cycle complete: %d assets, total $%.2f",
                portfolio.total_asset_count,
                portfolio.total_value_usd,
            )

            published = self._store.assets
            for listener in list(self._cycle_listeners):
                listener(published)
            return published

    async def _sync_account(self, account: Account) -> list[Asset]:
        adapter = self.adapter_for(account)
        if adapter is None:
            logger.warning(
                "No chain adapter for account %s (%s)", account.id, account.platform.value
            )
            return []

        try:
            balances = await adapter.fetch_account(account)
        except AccountConnectionError as e:
            self._mark_error(account.id, str(e))
            return []
        except Exception as e:
            self._mark_error(account.id, f"{type(e).__name__}: {e}")
            return []

        self._connections.mark_account_synced(account.id)
        rows: list[Asset] = []
        for balance in balances:
            try:
                rows.append(self._to_asset(account, adapter, balance))
            except ValueError as e:
                logger.warning(
                    "Skipping %s row of account %s on %s: %s",
                    balance.symbol, account.id, balance.chain.value, e,
                )
        return rows

    def _mark_error(self, account_id: str, message: str) -> None:
        # The status flip is our own doing and must not schedule another cycle.
        self._last_signature = self._signature(
            a for a in self._connections.connected_accounts() if a.id != account_id
        )
        self._connections.mark_account_error(account_id, message)

    def _to_asset(self, account: Account, adapter: ChainAdapter, balance: Balance) -> Asset:
        display = adapter.to_display(balance)
        price = self._store.get_price(balance.symbol)
        return Asset(
            key=AssetKey(
                account_id=account.id,
                chain=balance.chain,
                address=balance.address,
                symbol=balance.symbol,
            ),
            name=balance.name,
            balance=display,
            source_label=account.label,
            price_usd=price,
            value_usd=value_of(display, price),
        )

    # ------------------------------------------------------------------
    # Price resolution
    # ------------------------------------------------------------------

    async def resolve_price(self, symbol: str) -> float:
        """Fetch a fresh quote and cache it; raises PriceUnavailable."""
        quote = await self._oracle.get_price(symbol, self._currency)
        if quote is None:
            raise PriceUnavailable(symbol, self._currency)
        self._store.set_price(symbol, quote.price)
        return quote.price

    async def _resolve_quietly(self, symbol: str) -> float | None:
        try:
            return await self.resolve_price(symbol)
        except PriceUnavailable as e:
            logger.info("%s", e)
        except Exception as e:
            logger.warning("Price lookup for %s failed: %s", symbol, e)
        return None

    async def _backfill_prices(self, rows: list[Asset]) -> list[Asset]:
        """Price each distinct symbol once and recompute row values.

        A symbol whose lookup fails keeps the cached price used when the row
        was built, or stays unpriced.
        """
        symbols = sorted({r.symbol.upper() for r in rows})
        if not symbols:
            return rows
        quotes = await asyncio.gather(*(self._resolve_quietly(s) for s in symbols))
        resolved = {s: p for s, p in zip(symbols, quotes) if p is not None}

        priced: list[Asset] = []
        for row in rows:
            price = resolved.get(row.symbol.upper(), row.price_usd)
            priced.append(replace(row, price_usd=price, value_usd=value_of(row.balance, price)))
        return priced

    # ------------------------------------------------------------------
    # Single-asset refresh (used by progressive loading)
    # ------------------------------------------------------------------

    async def refresh_balance(self, asset: Asset) -> str:
        """Re-fetch one asset's balance in display units."""
        account = self._store.get_account(asset.account_id)
        if account is None:
            raise FetchError(f"Account {asset.account_id} no longer exists")
        adapter = self.adapter_for(account)
        if adapter is None:
            raise FetchError(f"No chain adapter for account {account.id}")

        token = next(
            (
                t
                for t in account.tracked_tokens
                if t.chain is asset.chain and t.symbol.upper() == asset.symbol.upper()
            ),
            None,
        )
        if token is None:
            balance = await adapter.fetch_native(asset.address, asset.chain)
        else:
            found = await adapter.fetch_tokens(asset.address, asset.chain, [token])
            if not found:
                raise FetchError(f"{asset.symbol} balance unavailable for {asset.address}")
            balance = found[0]
        return adapter.to_display(balance)

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def add_cycle_listener(self, listener: CycleListener) -> None:
        self._cycle_listeners.append(listener)

    def start(self, interval_seconds: float | None = None) -> None:
        """Start the interval loop and react to account changes."""
        if self._loop_task is not None:
            return
        self._unsubscribe = self._store.subscribe(self._on_accounts_changed)
        self._loop_task = self._spawn(self.run_continuous(interval_seconds))

    async def stop(self) -> None:
        """Cancel the interval loop and every in-flight cycle."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._loop_task = None

    def trigger_sync_now(self) -> asyncio.Task[Any]:
        """Schedule an immediate cycle; it waits for any cycle in progress."""
        return self._spawn(self._run_logged())

    async def run_continuous(self, interval_seconds: float | None = None) -> None:
        """Run a sync cycle every interval until cancelled."""
        interval = interval_seconds or self._interval
        logger.info("Starting continuous sync (every %.0f seconds)", interval)

        while True:
            await self._run_logged()
            await asyncio.sleep(interval)

    async def _run_logged(self) -> None:
        try:
            await self.run_sync_cycle()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Error in sync cycle")

    def _on_accounts_changed(self, accounts: tuple[Account, ...]) -> None:
        signature = self._signature(a for a in accounts if a.is_connected)
        if signature == self._last_signature:
            return
        self._last_signature = signature
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        logger.info("Connected accounts changed, syncing now")
        self.trigger_sync_now()

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @staticmethod
    def _signature(accounts: Iterable[Account]) -> tuple:
        return tuple(sorted((a.sync_signature() for a in accounts), key=lambda s: s[0]))
