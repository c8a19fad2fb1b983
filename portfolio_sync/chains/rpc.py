"""JSON-RPC transport with ordered endpoint fallback."""
from __future__ import annotations

import asyncio
import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ..config import ChainConfig
from ..errors import EndpointUnavailableError, RpcError

logger = logging.getLogger(__name__)

# HTTP statuses that mean the endpoint itself is unavailable.
_UNAVAILABLE_STATUSES = frozenset({429, 500, 502, 503, 504})


class EndpointDown(Exception):
    """Connection-level failure of one endpoint."""


class JsonRpcClient:
    """RPC client that advances to the next endpoint only on connection failure.

    A node that answers with a JSON-RPC error is considered reachable: the
    error is raised as :class:`RpcError` and the active endpoint is kept.
    """

    chain_label = "rpc"

    def __init__(self, config: ChainConfig) -> None:
        self.endpoints = list(config.rpc_endpoints)
        self.timeout = config.rpc_timeout
        self.current_rpc_index = 0
        self._request_id = 0

    async def rpc_call(self, method: str, params: list[Any]) -> Any:
        """Make RPC call with fallback to alternative endpoints."""
        if not self.endpoints:
            raise EndpointUnavailableError(f"No {self.chain_label} endpoints configured")

        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params,
        }

        ssl_context = ssl.create_default_context(cafile=certifi.where())

        last_error: Exception | None = None
        for attempt in range(len(self.endpoints)):
            rpc_index = (self.current_rpc_index + attempt) % len(self.endpoints)
            rpc_url = self.endpoints[rpc_index]

            try:
                result = await self._post(rpc_url, payload, ssl_context)
            except (aiohttp.ClientConnectionError, asyncio.TimeoutError, EndpointDown) as e:
                last_error = e
                logger.warning("%s endpoint %s failed: %s", self.chain_label, rpc_url, e)
                if attempt < len(self.endpoints) - 1:
                    logger.info("Trying next endpoint...")
                continue

            if rpc_index != self.current_rpc_index:
                logger.info("Switched %s RPC endpoint to %s", self.chain_label, rpc_url)
                self.current_rpc_index = rpc_index

            if "error" in result:
                raise RpcError(f"{method} failed: {result['error']}")
            return result.get("result")

        raise EndpointUnavailableError(
            f"All {self.chain_label} RPC endpoints failed. Last error: {last_error}"
        )

    async def _post(
        self, rpc_url: str, payload: dict[str, Any], ssl_context: ssl.SSLContext
    ) -> dict[str, Any]:
        connector = aiohttp.TCPConnector(ssl=ssl_context)
        async with aiohttp.ClientSession(connector=connector) as session:
            async with session.post(
                rpc_url,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                if response.status in _UNAVAILABLE_STATUSES:
                    raise EndpointDown(f"HTTP {response.status}")
                return await response.json(content_type=None)
