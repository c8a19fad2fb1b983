"""Unit tests for the plain-text portfolio report."""
from __future__ import annotations

from datetime import datetime, timezone

from portfolio_sync.models import (
    AccountStatus,
    AggregateRow,
    AssetLoadingState,
    ChainId,
    LoadPhase,
    PortfolioAggregate,
    PortfolioSnapshot,
)
from portfolio_sync.report import build_report
from portfolio_sync.store import build_account

from ..fakes import EVM_A, EVM_B


class TestBuildReport:
    def test_empty_portfolio(self) -> None:
        report = build_report(PortfolioSnapshot())
        assert "Total value: $0.00" in report
        assert "Updated: never" in report
        assert "No assets found." in report

    def test_rows_and_totals(self) -> None:
        snapshot = PortfolioSnapshot(
            portfolio=PortfolioAggregate(
                total_value_usd=4010.0,
                total_asset_count=3,
                last_updated_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
            ),
            aggregate_rows=(
                AggregateRow(
                    symbol="ETH",
                    chain=ChainId.ETHEREUM,
                    name="Ethereum",
                    balance="2",
                    value_usd=4000.0,
                    priced=True,
                    addresses=frozenset({EVM_A, EVM_B}),
                ),
                AggregateRow(
                    symbol="XYZ",
                    chain=ChainId.BASE,
                    name="XYZ",
                    balance="10",
                    value_usd=0.0,
                    priced=False,
                    addresses=frozenset({EVM_A}),
                ),
            ),
        )
        report = build_report(snapshot)

        assert "Total value: $4,010.00" in report
        assert "Updated: 2024-05-01 12:00:00 UTC" in report
        assert "$4,000.00" in report
        assert "across 2 addresses" in report
        assert "n/a" in report

    def test_warns_about_errors(self) -> None:
        account = build_account("a1", "ethereum", [EVM_A], label="Cold wallet",
                                status=AccountStatus.ERROR)
        snapshot = PortfolioSnapshot(
            accounts=(account,),
            loading_states={
                "x": AssetLoadingState(asset_id="x", price_phase=LoadPhase.ERROR),
            },
        )
        report = build_report(snapshot)

        assert "Cold wallet unreachable" in report
        assert "1 assets without a price" in report
