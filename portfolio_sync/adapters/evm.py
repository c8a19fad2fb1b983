"""EVM adapters — single-chain and multi-chain wallets."""
from __future__ import annotations

import logging

from ..models import Account, AdapterKind, ChainId
from .base import BaseChainAdapter

logger = logging.getLogger(__name__)


class SingleChainEvmAdapter(BaseChainAdapter):
    """One EVM chain per account: the platform's chain or its single declared chain."""

    kind = AdapterKind.SINGLE_CHAIN_EVM

    def pairs(self, account: Account) -> list[tuple[str, ChainId]]:
        chain = account.platform.chain
        if chain is None and account.declared_chains:
            chain = account.declared_chains[0]
        if chain is None or not chain.is_evm:
            logger.warning("Account %s has no EVM chain to sync", account.id)
            return []
        return [(address, chain) for address in account.addresses]


class MultiChainEvmAdapter(BaseChainAdapter):
    """Every address on every declared chain.

    The declared chain set is recorded by the connection flow; accounts that
    declare none are treated as Ethereum-only.
    """

    kind = AdapterKind.MULTI_CHAIN_EVM
    default_chains: tuple[ChainId, ...] = (ChainId.ETHEREUM,)

    def pairs(self, account: Account) -> list[tuple[str, ChainId]]:
        chains = [c for c in account.declared_chains if c.is_evm] or list(self.default_chains)
        result: list[tuple[str, ChainId]] = []
        for chain in chains:
            if not self.supports(chain):
                logger.warning(
                    "Account %s declares %s but no client is configured",
                    account.id, chain.value,
                )
                continue
            result.extend((address, chain) for address in account.addresses)
        return result
