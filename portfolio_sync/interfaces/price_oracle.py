"""Price oracle protocol — price feed abstraction."""
from typing import Protocol

from ..models import PriceQuote


class PriceOracle(Protocol):
    """Abstract interface for fetching asset prices."""

    async def get_price(self, symbol: str, currency: str = "USD") -> PriceQuote | None: ...

    async def fetch_prices(self, symbols: list[str] | None = None) -> dict[str, float]: ...
