"""Chain network clients."""
from __future__ import annotations

from ..config import ChainConfig
from ..interfaces.chain import ChainNetworkClient
from ..models import ChainFamily, ChainId
from .evm import EvmClient
from .solana import SolanaClient
from .sui import SuiClient


def build_client(chain: ChainId, config: ChainConfig) -> ChainNetworkClient:
    """Create the network client matching a chain's family."""
    family = chain.info.family
    if family is ChainFamily.SOLANA:
        return SolanaClient(config)
    if family is ChainFamily.SUI:
        return SuiClient(config)
    return EvmClient(chain, config)


__all__ = ["EvmClient", "SolanaClient", "SuiClient", "build_client"]
