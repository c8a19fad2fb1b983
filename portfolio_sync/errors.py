"""Error taxonomy for portfolio synchronisation."""
from __future__ import annotations


class PortfolioError(Exception):
    """Base class for all errors raised by this package."""


class ValidationError(PortfolioError, ValueError):
    """Malformed address, token or account input; raised before any network call."""


class FetchError(PortfolioError):
    """A single balance call for one (address, chain) failed."""


class RpcError(FetchError):
    """The node answered with a JSON-RPC error object."""


class EndpointUnavailableError(FetchError):
    """Every configured endpoint failed at the connection level."""


class AccountConnectionError(PortfolioError):
    """No data at all could be fetched for an account."""

    def __init__(self, account_id: str, message: str) -> None:
        super().__init__(f"Account {account_id}: {message}")
        self.account_id = account_id


class PriceUnavailable(PortfolioError):
    """The price oracle has no quote for a symbol."""

    def __init__(self, symbol: str, currency: str = "USD") -> None:
        super().__init__(f"No {currency} price available for {symbol}")
        self.symbol = symbol
        self.currency = currency


class LoadTimeoutError(PortfolioError):
    """A progressive load exceeded its soft deadline."""

    def __init__(self, operation: str, timeout: float) -> None:
        super().__init__(f"{operation} timed out after {timeout:g}s")
        self.operation = operation
        self.timeout = timeout
