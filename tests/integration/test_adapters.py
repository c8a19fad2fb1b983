"""Integration tests for chain adapters — pair fan-out, zero filtering, failure absorption."""
from __future__ import annotations

import pytest

from portfolio_sync.adapters import (
    MultiChainEvmAdapter,
    SingleChainEvmAdapter,
    SolanaAdapter,
    SuiAdapter,
    build_adapters,
)
from portfolio_sync.errors import AccountConnectionError, FetchError, ValidationError
from portfolio_sync.models import AdapterKind, Balance, ChainId, TokenRef
from portfolio_sync.store import build_account

from ..fakes import EVM_A, EVM_B, ONE_ETH, SOL_ADDRESS, SUI_ADDRESS, USDC_ETH, FakeChainClient


class TestMultiChainEvmAdapter:
    def test_pairs_cover_every_declared_chain(self) -> None:
        adapter = MultiChainEvmAdapter(
            {c: FakeChainClient() for c in (ChainId.ETHEREUM, ChainId.POLYGON, ChainId.BASE)}
        )
        account = build_account(
            "a1", "Multi Chain EVM", [EVM_A, EVM_B], declared_chains=["ethereum", "polygon", "base"]
        )
        assert len(adapter.pairs(account)) == 6

    def test_defaults_to_ethereum(self) -> None:
        adapter = MultiChainEvmAdapter({ChainId.ETHEREUM: FakeChainClient()})
        account = build_account("a1", "Multi Chain EVM", [EVM_A])
        assert adapter.pairs(account) == [(EVM_A, ChainId.ETHEREUM)]

    def test_skips_chains_without_client(self) -> None:
        adapter = MultiChainEvmAdapter({ChainId.ETHEREUM: FakeChainClient()})
        account = build_account(
            "a1", "Multi Chain EVM", [EVM_A], declared_chains=["ethereum", "optimism"]
        )
        assert adapter.pairs(account) == [(EVM_A, ChainId.ETHEREUM)]

    @pytest.mark.asyncio
    async def test_failed_pair_is_omitted(self) -> None:
        adapter = MultiChainEvmAdapter(
            {
                ChainId.ETHEREUM: FakeChainClient(native={EVM_A: ONE_ETH, EVM_B: ONE_ETH}),
                ChainId.POLYGON: FakeChainClient(native={EVM_A: ONE_ETH}, fail={EVM_B}),
                ChainId.ARBITRUM: FakeChainClient(native={EVM_A: ONE_ETH, EVM_B: ONE_ETH}),
            }
        )
        account = build_account(
            "a1",
            "Multi Chain EVM",
            [EVM_A, EVM_B],
            declared_chains=["ethereum", "polygon", "arbitrum"],
        )

        balances = await adapter.fetch_account(account)

        assert len(balances) == 5
        assert (EVM_B, ChainId.POLYGON) not in {(b.address, b.chain) for b in balances}

    @pytest.mark.asyncio
    async def test_all_pairs_failing_raises_connection_error(self) -> None:
        adapter = MultiChainEvmAdapter({ChainId.ETHEREUM: FakeChainClient(fail={EVM_A})})
        account = build_account("a1", "Multi Chain EVM", [EVM_A])

        with pytest.raises(AccountConnectionError, match="a1"):
            await adapter.fetch_account(account)

    @pytest.mark.asyncio
    async def test_no_configured_chain_raises_connection_error(self) -> None:
        adapter = MultiChainEvmAdapter({ChainId.ETHEREUM: FakeChainClient()})
        account = build_account(
            "a1", "Multi Chain EVM", [EVM_A], declared_chains=["optimism", "base"]
        )

        with pytest.raises(AccountConnectionError, match="no configured chain"):
            await adapter.fetch_account(account)


class TestSingleChainEvmAdapter:
    @pytest.mark.asyncio
    async def test_zero_balances_dropped(self) -> None:
        client = FakeChainClient(native={EVM_A: 0}, tokens={(EVM_A, USDC_ETH): 2_500_000})
        adapter = SingleChainEvmAdapter({ChainId.ETHEREUM: client})
        token = TokenRef(USDC_ETH, "USDC", "USD Coin", 6, ChainId.ETHEREUM)
        account = build_account("a1", "ethereum", [EVM_A], tracked_tokens=[token])

        balances = await adapter.fetch_account(account)

        assert [b.symbol for b in balances] == ["USDC"]
        assert adapter.to_display(balances[0]) == "2.5"

    @pytest.mark.asyncio
    async def test_failed_token_skipped_native_kept(self) -> None:
        client = FakeChainClient(
            native={EVM_A: ONE_ETH},
            tokens={(EVM_A, USDC_ETH): 1},
            failing_tokens={(EVM_A, USDC_ETH)},
        )
        adapter = SingleChainEvmAdapter({ChainId.ETHEREUM: client})
        token = TokenRef(USDC_ETH, "USDC", "USD Coin", 6, ChainId.ETHEREUM)
        account = build_account("a1", "eth", [EVM_A], tracked_tokens=[token])

        balances = await adapter.fetch_account(account)

        assert [b.symbol for b in balances] == ["ETH"]
        assert adapter.to_display(balances[0]) == "1"

    @pytest.mark.asyncio
    async def test_malformed_token_amount_dropped_native_kept(self) -> None:
        client = FakeChainClient(native={EVM_A: ONE_ETH}, tokens={(EVM_A, USDC_ETH): "0x10"})
        adapter = SingleChainEvmAdapter({ChainId.ETHEREUM: client})
        token = TokenRef(USDC_ETH, "USDC", "USD Coin", 6, ChainId.ETHEREUM)
        account = build_account("a1", "ethereum", [EVM_A], tracked_tokens=[token])

        balances = await adapter.fetch_account(account)

        assert [b.symbol for b in balances] == ["ETH"]

    @pytest.mark.asyncio
    async def test_negative_native_amount_dropped(self) -> None:
        client = FakeChainClient(native={EVM_A: "-1"})
        adapter = SingleChainEvmAdapter({ChainId.ETHEREUM: client})
        account = build_account("a1", "ethereum", [EVM_A])

        assert await adapter.fetch_account(account) == []

    @pytest.mark.asyncio
    async def test_tokens_of_other_chains_ignored(self) -> None:
        client = FakeChainClient(native={EVM_A: ONE_ETH})
        adapter = SingleChainEvmAdapter({ChainId.ETHEREUM: client})
        polygon_token = TokenRef(USDC_ETH, "USDC", "USD Coin", 6, ChainId.POLYGON)

        assert await adapter.fetch_tokens(EVM_A, ChainId.ETHEREUM, [polygon_token]) == []

    @pytest.mark.asyncio
    async def test_native_fetch_validates_before_network(self) -> None:
        client = FakeChainClient()
        adapter = SingleChainEvmAdapter({ChainId.ETHEREUM: client})

        with pytest.raises(ValidationError):
            await adapter.fetch_native("0x123", ChainId.ETHEREUM)
        assert client.native_calls == []

    @pytest.mark.asyncio
    async def test_missing_client_raises_fetch_error(self) -> None:
        adapter = SingleChainEvmAdapter({})
        with pytest.raises(FetchError):
            await adapter.fetch_native(EVM_A, ChainId.BASE)


class TestNonEvmAdapters:
    @pytest.mark.asyncio
    async def test_solana_native_in_sol(self) -> None:
        adapter = SolanaAdapter({ChainId.SOLANA: FakeChainClient(native={SOL_ADDRESS: 2_500_000_000})})
        account = build_account("s1", "solana", [SOL_ADDRESS])

        balances = await adapter.fetch_account(account)

        assert balances[0].symbol == "SOL"
        assert adapter.to_display(balances[0]) == "2.5"

    @pytest.mark.asyncio
    async def test_solana_negative_lamports_dropped(self) -> None:
        adapter = SolanaAdapter({ChainId.SOLANA: FakeChainClient(native={SOL_ADDRESS: "-5"})})
        account = build_account("s1", "solana", [SOL_ADDRESS])

        assert await adapter.fetch_account(account) == []

    @pytest.mark.asyncio
    async def test_sui_native_in_sui(self) -> None:
        adapter = SuiAdapter({ChainId.SUI: FakeChainClient(native={SUI_ADDRESS: 123_000_000})})
        account = build_account("u1", "sui", [SUI_ADDRESS])

        balances = await adapter.fetch_account(account)

        assert adapter.to_display(balances[0]) == "0.123"

    def test_sui_token_uses_declared_decimals(self) -> None:
        adapter = SuiAdapter({})
        balance = Balance(
            address=SUI_ADDRESS,
            chain=ChainId.SUI,
            symbol="USDC",
            name="USD Coin",
            raw_amount="1500000",
            decimals=6,
            contract_address="0xdba3::usdc::USDC",
        )
        assert adapter.to_display(balance) == "1.5"


def test_build_adapters_only_for_configured_families() -> None:
    adapters = build_adapters({ChainId.ETHEREUM: FakeChainClient()})
    assert set(adapters) == {AdapterKind.SINGLE_CHAIN_EVM, AdapterKind.MULTI_CHAIN_EVM}

    adapters = build_adapters(
        {ChainId.SOLANA: FakeChainClient(), ChainId.SUI: FakeChainClient()}
    )
    assert AdapterKind.SOLANA in adapters
    assert AdapterKind.SUI in adapters
