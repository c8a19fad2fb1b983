"""Portfolio aggregation — merge duplicate holdings and compute totals."""
from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from decimal import Decimal

from ..models import AggregateRow, Asset, ChainId, PortfolioAggregate
from ..units import format_decimal, parse_balance


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PortfolioAggregator:
    """Pure projections over the current asset list."""

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock

    def aggregate(self, assets: Iterable[Asset]) -> list[AggregateRow]:
        """Group rows by (symbol, chain), summing balances and values.

        Rows without a price add nothing to the group value; a group counts
        as priced only when every row in it is priced.
        """
        groups: dict[tuple[str, ChainId], list[Asset]] = {}
        for asset in assets:
            groups.setdefault((asset.symbol.upper(), asset.chain), []).append(asset)

        rows: list[AggregateRow] = []
        for (symbol, chain), members in groups.items():
            total_balance = sum((parse_balance(a.balance) for a in members), Decimal(0))
            total_value = sum(a.value_usd or 0.0 for a in members)
            rows.append(
                AggregateRow(
                    symbol=symbol,
                    chain=chain,
                    name=members[0].name,
                    balance=format_decimal(total_balance),
                    value_usd=total_value,
                    priced=all(a.price_usd is not None for a in members),
                    addresses=frozenset(a.address for a in members),
                    asset_ids=tuple(a.id for a in members),
                )
            )
        rows.sort(key=lambda r: (-r.value_usd, r.symbol, r.chain.value))
        return rows

    def recompute_totals(self, assets: Iterable[Asset]) -> PortfolioAggregate:
        rows = list(assets)
        return PortfolioAggregate(
            total_value_usd=sum(a.value_usd or 0.0 for a in rows),
            total_asset_count=len(rows),
            last_updated_at=self._clock(),
        )
