"""Sui adapter."""
from __future__ import annotations

from ..models import Account, AdapterKind, Balance, ChainId
from ..units import MIST_PER_SUI, divide_by_unit
from .base import BaseChainAdapter


class SuiAdapter(BaseChainAdapter):
    kind = AdapterKind.SUI
    chain = ChainId.SUI

    def pairs(self, account: Account) -> list[tuple[str, ChainId]]:
        return [(address, self.chain) for address in account.addresses]

    def to_display(self, balance: Balance) -> str:
        if balance.contract_address is None:
            return divide_by_unit(balance.raw_amount, MIST_PER_SUI)
        return super().to_display(balance)
