"""SUI RPC client with fallback support."""
from __future__ import annotations

import logging

from ...config import ChainConfig
from ...errors import RpcError
from ..rpc import JsonRpcClient

logger = logging.getLogger(__name__)

SUI_COIN_TYPE = "0x2::sui::SUI"


class SuiClient(JsonRpcClient):
    """SUI blockchain RPC client with automatic endpoint fallback."""

    chain_label = "Sui"

    def __init__(self, config: ChainConfig) -> None:
        super().__init__(config)

    async def get_balance(self, address: str, coin_type: str) -> str:
        """Total balance of one coin type, in base units."""
        result = await self.rpc_call("suix_getBalance", [address, coin_type])
        if not isinstance(result, dict) or "totalBalance" not in result:
            raise RpcError(f"Unexpected suix_getBalance result: {result!r}")
        return str(int(result["totalBalance"]))

    async def get_native_balance(self, address: str) -> str:
        """Balance in MIST."""
        return await self.get_balance(address, SUI_COIN_TYPE)

    async def get_token_balance(self, address: str, token_address: str) -> str:
        return await self.get_balance(address, token_address)
