"""Chain network client protocol — per-chain RPC abstraction."""
from typing import Protocol


class ChainNetworkClient(Protocol):
    """Balance queries against one chain; amounts are smallest-unit integer strings."""

    async def get_native_balance(self, address: str) -> str: ...

    async def get_token_balance(self, address: str, token_address: str) -> str: ...
