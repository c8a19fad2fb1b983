"""Chain adapter protocol — per-network balance fetching strategy."""
from typing import Protocol

from ..models import Account, AdapterKind, Balance, ChainId, TokenRef


class ChainAdapter(Protocol):
    """Fetches and unit-converts balances for one family of accounts."""

    @property
    def kind(self) -> AdapterKind: ...

    async def fetch_native(self, address: str, chain: ChainId) -> Balance: ...

    async def fetch_tokens(
        self, address: str, chain: ChainId, tokens: list[TokenRef]
    ) -> list[Balance]: ...

    async def fetch_account(self, account: Account) -> list[Balance]: ...

    def to_display(self, balance: Balance) -> str: ...
