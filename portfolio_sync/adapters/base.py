"""Shared chain adapter behaviour: pair fan-out, zero filtering, failure absorption."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping

from ..errors import AccountConnectionError, FetchError, ValidationError
from ..interfaces.chain import ChainNetworkClient
from ..models import Account, AdapterKind, Balance, ChainId, TokenRef
from ..units import to_display_units
from ..validation import validate_address, validate_token

logger = logging.getLogger(__name__)


class BaseChainAdapter:
    """Fetch balances for every (address, chain) pair of an account.

    Subclasses decide which pairs an account expands to. Each pair is
    fetched concurrently; a failing pair is logged and yields no balance.
    If no pair could be fetched at all the account is unreachable and
    :class:`AccountConnectionError` is raised.
    """

    kind: AdapterKind

    def __init__(self, clients: Mapping[ChainId, ChainNetworkClient]) -> None:
        self._clients = dict(clients)

    def supports(self, chain: ChainId) -> bool:
        return chain in self._clients

    def client_for(self, chain: ChainId) -> ChainNetworkClient:
        try:
            return self._clients[chain]
        except KeyError as e:
            raise FetchError(f"No network client configured for {chain.value}") from e

    def pairs(self, account: Account) -> list[tuple[str, ChainId]]:
        raise NotImplementedError

    def to_display(self, balance: Balance) -> str:
        return to_display_units(balance.raw_amount, balance.decimals)

    async def fetch_native(self, address: str, chain: ChainId) -> Balance:
        validate_address(address, chain)
        raw = await self.client_for(chain).get_native_balance(address)
        info = chain.info
        return Balance(
            address=address,
            chain=chain,
            symbol=info.symbol,
            name=info.name,
            raw_amount=raw,
            decimals=info.decimals,
        )

    async def fetch_tokens(
        self, address: str, chain: ChainId, tokens: list[TokenRef]
    ) -> list[Balance]:
        """Token balances for one pair; a failing token is skipped."""
        wanted = [t for t in tokens if t.chain is chain]
        if not wanted:
            return []
        validate_address(address, chain)
        client = self.client_for(chain)
        results = await asyncio.gather(
            *(client.get_token_balance(address, t.contract_address) for t in wanted),
            return_exceptions=True,
        )
        balances: list[Balance] = []
        for token, result in zip(wanted, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning(
                    "Token %s balance failed for %s on %s: %s",
                    token.symbol, address, chain.value, result,
                )
                continue
            balances.append(
                Balance(
                    address=address,
                    chain=chain,
                    symbol=token.symbol,
                    name=token.name,
                    raw_amount=result,
                    decimals=token.decimals,
                    contract_address=token.contract_address,
                )
            )
        return balances

    async def fetch_account(self, account: Account) -> list[Balance]:
        pairs = self.pairs(account)
        if not pairs:
            raise AccountConnectionError(account.id, "no configured chain to fetch from")

        tokens = [t for t in account.tracked_tokens if self._token_is_valid(t)]
        outcomes = await asyncio.gather(
            *(self._fetch_pair(address, chain, tokens) for address, chain in pairs)
        )

        balances: list[Balance] = []
        reachable = 0
        for result in outcomes:
            if result is None:
                continue
            reachable += 1
            balances.extend(result)

        if reachable == 0:
            raise AccountConnectionError(
                account.id, f"all {len(pairs)} address/chain fetches failed"
            )
        logger.debug(
            "Account %s: %d/%d pairs fetched, %d non-zero balances",
            account.id, reachable, len(pairs), len(balances),
        )
        return balances

    async def _fetch_pair(
        self, address: str, chain: ChainId, tokens: list[TokenRef]
    ) -> list[Balance] | None:
        """Held native + token balances for one pair, or None when the pair failed."""
        try:
            native = await self.fetch_native(address, chain)
        except Exception as e:
            logger.warning(
                "Balance fetch failed for %s on %s: %s: %s",
                address, chain.value, type(e).__name__, e,
            )
            return None
        fetched = [native, *await self.fetch_tokens(address, chain, tokens)]
        return [b for b in fetched if self._is_held(b)]

    def _is_held(self, balance: Balance) -> bool:
        """False for zero balances and for amounts that cannot be converted."""
        try:
            display = self.to_display(balance)
        except ValueError as e:
            logger.warning(
                "Dropping %s balance for %s on %s: %s",
                balance.symbol, balance.address, balance.chain.value, e,
            )
            return False
        return display != "0"

    @staticmethod
    def _token_is_valid(token: TokenRef) -> bool:
        try:
            validate_token(token)
        except ValidationError as e:
            logger.warning("Skipping tracked token: %s", e)
            return False
        return True
