"""Progressive per-asset loading of balances and prices.

Each asset has two independent tracks, balance and price. A track moves
idle -> loading -> success, or -> error and back to loading while its retry
budget lasts. Prices are loaded per symbol and shared by every tracked asset
with that symbol, so a slow price feed never holds back a balance.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine, Sequence
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, TypeVar

from ..errors import LoadTimeoutError
from ..models import Asset, AssetLoadingState, LoadPhase

logger = logging.getLogger(__name__)

T = TypeVar("T")

BalanceLoader = Callable[[Asset], Awaitable[str]]
PriceLoader = Callable[[str], Awaitable[float]]

BALANCE = "balance"
PRICE = "price"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LoadKey:
    """In-flight guard key: operation kind plus asset id or symbol."""

    kind: str
    target: str


@dataclass(frozen=True)
class LoadingSummary:
    total_assets: int
    loading_balances: int
    loading_prices: int
    balance_errors: int
    price_errors: int
    completed_balances: int
    completed_prices: int
    fully_loaded: int


class ProgressiveLoadingController:
    """Tracks and drives balance/price loads for the current asset list."""

    def __init__(
        self,
        balance_loader: BalanceLoader,
        price_loader: PriceLoader,
        *,
        balance_timeout: float = 5.0,
        price_timeout: float = 3.0,
        retry_attempts: int = 2,
        retry_base_delay: float = 2.0,
        stagger_delay: float = 0.1,
        enable_balance_loading: bool = True,
        enable_price_loading: bool = True,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if retry_attempts < 1:
            raise ValueError("retry_attempts must be at least 1")
        self._balance_loader = balance_loader
        self._price_loader = price_loader
        self._balance_timeout = balance_timeout
        self._price_timeout = price_timeout
        self._retry_attempts = retry_attempts
        self._retry_base_delay = retry_base_delay
        self._stagger_delay = stagger_delay
        self._enable_balance = enable_balance_loading
        self._enable_price = enable_price_loading
        self._clock = clock

        self._assets: dict[str, Asset] = {}
        self._states: dict[str, AssetLoadingState] = {}
        self._in_flight: dict[LoadKey, asyncio.Task[Any]] = {}
        self._tasks: set[asyncio.Task[Any]] = set()
        self.attempts: dict[LoadKey, int] = {}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def states(self) -> dict[str, AssetLoadingState]:
        return dict(self._states)

    def get_state(self, asset_id: str) -> AssetLoadingState:
        return self._states.get(asset_id) or AssetLoadingState(asset_id=asset_id)

    def is_fully_loaded(self, asset: Asset) -> bool:
        return self.get_state(asset.id).is_fully_loaded

    def overall_status(self) -> LoadingSummary:
        states = list(self._states.values())
        return LoadingSummary(
            total_assets=len(states),
            loading_balances=sum(s.balance_phase is LoadPhase.LOADING for s in states),
            loading_prices=sum(s.price_phase is LoadPhase.LOADING for s in states),
            balance_errors=sum(s.balance_phase is LoadPhase.ERROR for s in states),
            price_errors=sum(s.price_phase is LoadPhase.ERROR for s in states),
            completed_balances=sum(s.balance_phase is LoadPhase.SUCCESS for s in states),
            completed_prices=sum(s.price_phase is LoadPhase.SUCCESS for s in states),
            fully_loaded=sum(s.is_fully_loaded for s in states),
        )

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    def track(self, assets: Sequence[Asset], autoload: bool = True) -> list[Asset]:
        """Reconcile states with the current asset list; returns newly seen assets.

        States of assets that disappeared are discarded. New assets start
        loading after ``index * stagger_delay`` seconds. Tracks of known
        assets that ended in error are loaded again right away.
        """
        current = {a.id: a for a in assets}
        for asset_id in set(self._states) - set(current):
            del self._states[asset_id]
            task = self._in_flight.get(LoadKey(BALANCE, asset_id))
            if task is not None:
                task.cancel()

        failed = [a for a in current.values() if a.id in self._states and self._has_error(a.id)]
        new_assets = [a for a in current.values() if a.id not in self._states]
        for asset in new_assets:
            self._states[asset.id] = AssetLoadingState(asset_id=asset.id)
        self._assets = current

        if autoload:
            for index, asset in enumerate(new_assets):
                self._spawn(self._staggered_start(asset, index * self._stagger_delay))
            for asset in failed:
                self._spawn(self._reload_failed(asset))
        return new_assets

    def _has_error(self, asset_id: str) -> bool:
        state = self._states[asset_id]
        return LoadPhase.ERROR in (state.balance_phase, state.price_phase)

    async def _staggered_start(self, asset: Asset, delay: float) -> None:
        if delay > 0:
            await asyncio.sleep(delay)
        await asyncio.gather(self.load_balance(asset), self.load_price(asset.symbol))

    async def _reload_failed(self, asset: Asset) -> None:
        state = self.get_state(asset.id)
        loads = []
        if state.balance_phase is LoadPhase.ERROR:
            loads.append(self.load_balance(asset))
        if state.price_phase is LoadPhase.ERROR:
            loads.append(self.load_price(asset.symbol))
        await asyncio.gather(*loads)

    # ------------------------------------------------------------------
    # Loads
    # ------------------------------------------------------------------

    async def load_balance(self, asset: Asset) -> None:
        if not self._enable_balance:
            return
        key = LoadKey(BALANCE, asset.id)
        await self._join_or_start(
            key,
            lambda: self._load_with_retry(
                key,
                lambda: self._balance_loader(asset),
                self._balance_timeout,
                on_start=lambda: self._update_state(asset.id, balance_phase=LoadPhase.LOADING),
                on_success=lambda value: self._update_state(
                    asset.id,
                    balance_phase=LoadPhase.SUCCESS,
                    balance=value,
                    balance_error=None,
                    last_balance_update=self._clock(),
                ),
                on_error=lambda message: self._update_state(
                    asset.id, balance_phase=LoadPhase.ERROR, balance_error=message
                ),
            ),
        )

    async def load_price(self, symbol: str) -> None:
        if not self._enable_price:
            return
        symbol = symbol.upper()
        key = LoadKey(PRICE, symbol)
        await self._join_or_start(
            key,
            lambda: self._load_with_retry(
                key,
                lambda: self._price_loader(symbol),
                self._price_timeout,
                on_start=lambda: self._set_price(symbol, price_phase=LoadPhase.LOADING),
                on_success=lambda value: self._set_price(
                    symbol,
                    price_phase=LoadPhase.SUCCESS,
                    price_usd=float(value),
                    price_error=None,
                    last_price_update=self._clock(),
                ),
                on_error=lambda message: self._set_price(
                    symbol, price_phase=LoadPhase.ERROR, price_error=message
                ),
            ),
        )

    async def _join_or_start(
        self, key: LoadKey, factory: Callable[[], Coroutine[Any, Any, Any]]
    ) -> None:
        task = self._in_flight.get(key)
        if task is None:
            task = self._spawn(factory())
            self._in_flight[key] = task
            task.add_done_callback(lambda t: self._release(key, t))
        else:
            logger.debug("Joining in-flight %s load for %s", key.kind, key.target)
        await asyncio.shield(task)

    async def _load_with_retry(
        self,
        key: LoadKey,
        operation: Callable[[], Awaitable[T]],
        timeout: float,
        *,
        on_start: Callable[[], None],
        on_success: Callable[[T], None],
        on_error: Callable[[str], None],
    ) -> bool:
        """Run ``operation`` until it succeeds or the retry budget is spent.

        Attempt *n* that fails waits ``retry_base_delay * n`` before the next.
        A timeout cancels the attempt and counts as a failure.
        """
        for attempt in range(1, self._retry_attempts + 1):
            self.attempts[key] = attempt
            on_start()
            try:
                result = await asyncio.wait_for(operation(), timeout)
            except asyncio.TimeoutError:
                message = str(LoadTimeoutError(f"{key.kind} load", timeout))
            except Exception as e:
                message = str(e) or type(e).__name__
            else:
                on_success(result)
                return True

            on_error(message)
            logger.warning(
                "%s load for %s failed (attempt %d/%d): %s",
                key.kind, key.target, attempt, self._retry_attempts, message,
            )
            if attempt < self._retry_attempts:
                await asyncio.sleep(self._retry_base_delay * attempt)
        return False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def wait_idle(self) -> None:
        """Wait until every scheduled load has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Cancel every outstanding load."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._in_flight.clear()

    # ------------------------------------------------------------------
    # State helpers
    # ------------------------------------------------------------------

    def _update_state(self, asset_id: str, **changes: Any) -> None:
        state = self._states.get(asset_id)
        if state is not None:
            self._states[asset_id] = replace(state, **changes)

    def _set_price(self, symbol: str, **changes: Any) -> None:
        for asset_id, asset in self._assets.items():
            if asset.symbol.upper() == symbol:
                self._update_state(asset_id, **changes)

    def _release(self, key: LoadKey, task: asyncio.Task[Any]) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
