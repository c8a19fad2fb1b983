"""Solana JSON-RPC client — lamport and SPL token balances."""
from __future__ import annotations

import logging
from typing import Any

from ...config import ChainConfig
from ...errors import RpcError
from ..rpc import JsonRpcClient

logger = logging.getLogger(__name__)


class SolanaClient(JsonRpcClient):
    """Solana RPC client with ordered endpoint fallback."""

    chain_label = "Solana"

    def __init__(self, config: ChainConfig, commitment: str = "confirmed") -> None:
        super().__init__(config)
        self.commitment = commitment

    async def get_native_balance(self, address: str) -> str:
        """Balance in lamports."""
        result = await self.rpc_call(
            "getBalance", [address, {"commitment": self.commitment}]
        )
        if isinstance(result, dict):
            result = result.get("value")
        if not isinstance(result, int):
            raise RpcError(f"Unexpected getBalance result: {result!r}")
        return str(result)

    async def get_token_balance(self, address: str, token_address: str) -> str:
        """Sum of the owner's token accounts for one mint, in base units."""
        result = await self.rpc_call(
            "getTokenAccountsByOwner",
            [
                address,
                {"mint": token_address},
                {"encoding": "jsonParsed", "commitment": self.commitment},
            ],
        )
        accounts: list[dict[str, Any]] = (result or {}).get("value", [])
        total = 0
        for entry in accounts:
            token_amount = (
                entry.get("account", {})
                .get("data", {})
                .get("parsed", {})
                .get("info", {})
                .get("tokenAmount", {})
            )
            total += int(token_amount.get("amount", 0))
        return str(total)
