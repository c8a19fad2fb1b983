"""EVM JSON-RPC client — native and ERC-20 balances."""
from __future__ import annotations

import logging

from ...config import ChainConfig
from ...errors import RpcError
from ...models import ChainId
from ..rpc import JsonRpcClient

logger = logging.getLogger(__name__)

# keccak256("balanceOf(address)")[:4]
BALANCE_OF_SELECTOR = "0x70a08231"


def encode_balance_of(address: str) -> str:
    """ABI-encode a ``balanceOf(address)`` call."""
    return BALANCE_OF_SELECTOR + address.lower().removeprefix("0x").zfill(64)


def decode_uint(value: str | None) -> str:
    """Decode a hex quantity into a decimal integer string."""
    if not value or value == "0x":
        return "0"
    try:
        return str(int(value, 16))
    except ValueError as e:
        raise RpcError(f"Unexpected hex quantity: {value!r}") from e


class EvmClient(JsonRpcClient):
    """Balance queries for one EVM chain."""

    def __init__(self, chain: ChainId, config: ChainConfig) -> None:
        super().__init__(config)
        self.chain = chain
        self.chain_label = chain.info.name

    async def get_native_balance(self, address: str) -> str:
        """Native balance in wei."""
        result = await self.rpc_call("eth_getBalance", [address, "latest"])
        return decode_uint(result)

    async def get_token_balance(self, address: str, token_address: str) -> str:
        """ERC-20 balance in the token's smallest unit."""
        result = await self.rpc_call(
            "eth_call",
            [{"to": token_address, "data": encode_balance_of(address)}, "latest"],
        )
        return decode_uint(result)
