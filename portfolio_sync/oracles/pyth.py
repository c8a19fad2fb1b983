"""Pyth Network price oracle service."""
from __future__ import annotations

import logging
import ssl

import aiohttp
import certifi

from ..config import PythConfig
from ..models import PriceQuote

logger = logging.getLogger(__name__)


class PythOracle:
    """Fetch USD prices from the Pyth Hermes API."""

    supported_currencies = ("USD",)

    def __init__(self, config: PythConfig, timeout: float = 10.0) -> None:
        self.hermes_url = config.hermes_url
        self.price_feeds = {k.upper(): v for k, v in config.feeds.items()}
        self.timeout = timeout

    async def get_price(self, symbol: str, currency: str = "USD") -> PriceQuote | None:
        """Quote for one symbol, or None when no feed or no data is available."""
        if currency.upper() not in self.supported_currencies:
            logger.warning("Pyth quotes only USD; %s/%s unavailable", symbol, currency)
            return None
        symbol = symbol.upper()
        prices = await self.fetch_prices([symbol])
        price = prices.get(symbol)
        if price is None:
            return None
        return PriceQuote(symbol=symbol, price=price, currency="USD")

    async def fetch_prices(self, symbols: list[str] | None = None) -> dict[str, float]:
        """Fetch current prices from Pyth Network.

        Args:
            symbols: Optional list of symbols to fetch. If None, fetches all
                     configured feeds.
        """
        prices: dict[str, float] = {}

        feeds = self.price_feeds
        if symbols is not None:
            wanted = {s.upper() for s in symbols}
            feeds = {k: v for k, v in self.price_feeds.items() if k in wanted}

        feed_ids = sorted(set(feeds.values()))
        if not feed_ids:
            return prices

        query_params = "&".join([f"ids[]={fid}" for fid in feed_ids])
        url = f"{self.hermes_url}?{query_params}"

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(
                    url, timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as response:
                    if response.status != 200:
                        logger.error(
                            "Error fetching prices from Pyth: HTTP %s", response.status
                        )
                        return prices

                    data = await response.json()
                    parsed = data.get("parsed", [])

                    # Hermes returns feed ids without the 0x prefix
                    id_to_assets: dict[str, list[str]] = {}
                    for asset, feed_id in feeds.items():
                        key = feed_id.lower().removeprefix("0x")
                        id_to_assets.setdefault(key, []).append(asset)

                    for item in parsed:
                        feed_id = str(item.get("id", "")).lower().removeprefix("0x")
                        price_data = item.get("price", {})
                        price_raw = int(price_data.get("price", 0))
                        expo = int(price_data.get("expo", 0))

                        price = price_raw * (10**expo)
                        if price <= 0:
                            continue

                        for asset in id_to_assets.get(feed_id, []):
                            prices[asset] = price

                    for asset, price in sorted(prices.items()):
                        logger.debug("Pyth %s: $%.4f", asset, price)

        except Exception as e:
            logger.error("Error fetching prices from Pyth: %s", e)

        return prices
