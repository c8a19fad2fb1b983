"""Protocol interfaces for the portfolio sync engine."""
from .chain import ChainNetworkClient
from .chain_adapter import ChainAdapter
from .connection import ConnectionProvider
from .price_oracle import PriceOracle

__all__ = ["ChainAdapter", "ChainNetworkClient", "ConnectionProvider", "PriceOracle"]
