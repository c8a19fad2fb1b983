"""Chain adapter variants."""
from __future__ import annotations

from collections.abc import Mapping

from ..interfaces.chain import ChainNetworkClient
from ..interfaces.chain_adapter import ChainAdapter
from ..models import AdapterKind, ChainId
from .base import BaseChainAdapter
from .evm import MultiChainEvmAdapter, SingleChainEvmAdapter
from .solana import SolanaAdapter
from .sui import SuiAdapter


def build_adapters(
    clients: Mapping[ChainId, ChainNetworkClient],
) -> dict[AdapterKind, ChainAdapter]:
    """One adapter per variant, each seeing only the clients of its family."""
    evm_clients = {c: client for c, client in clients.items() if c.is_evm}
    adapters: dict[AdapterKind, ChainAdapter] = {
        AdapterKind.SINGLE_CHAIN_EVM: SingleChainEvmAdapter(evm_clients),
        AdapterKind.MULTI_CHAIN_EVM: MultiChainEvmAdapter(evm_clients),
    }
    if ChainId.SOLANA in clients:
        adapters[AdapterKind.SOLANA] = SolanaAdapter({ChainId.SOLANA: clients[ChainId.SOLANA]})
    if ChainId.SUI in clients:
        adapters[AdapterKind.SUI] = SuiAdapter({ChainId.SUI: clients[ChainId.SUI]})
    return adapters


__all__ = [
    "BaseChainAdapter",
    "MultiChainEvmAdapter",
    "SingleChainEvmAdapter",
    "SolanaAdapter",
    "SuiAdapter",
    "build_adapters",
]
