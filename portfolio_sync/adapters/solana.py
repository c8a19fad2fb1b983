"""Solana adapter."""
from __future__ import annotations

from ..models import Account, AdapterKind, Balance, ChainId
from ..units import LAMPORTS_PER_SOL, divide_by_unit
from .base import BaseChainAdapter


class SolanaAdapter(BaseChainAdapter):
    kind = AdapterKind.SOLANA
    chain = ChainId.SOLANA

    def pairs(self, account: Account) -> list[tuple[str, ChainId]]:
        return [(address, self.chain) for address in account.addresses]

    def to_display(self, balance: Balance) -> str:
        if balance.contract_address is None:
            return divide_by_unit(balance.raw_amount, LAMPORTS_PER_SOL)
        return super().to_display(balance)
