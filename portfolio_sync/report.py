"""Plain-text rendering of a portfolio snapshot."""
from __future__ import annotations

from .models import AccountStatus, AggregateRow, LoadPhase, PortfolioSnapshot


def _format_address(address: str) -> str:
    if len(address) > 16:
        return f"{address[:10]}...{address[-6:]}"
    return address


def _format_value(row: AggregateRow) -> str:
    if not row.priced and row.value_usd == 0:
        return "n/a"
    suffix = "" if row.priced else " (partial)"
    return f"${row.value_usd:,.2f}{suffix}"


def build_report(snapshot: PortfolioSnapshot) -> str:
    portfolio = snapshot.portfolio
    updated = (
        portfolio.last_updated_at.strftime("%Y-%m-%d %H:%M:%S UTC")
        if portfolio.last_updated_at
        else "never"
    )
    lines = [
        "📊 Portfolio",
        "",
        f"Total value: ${portfolio.total_value_usd:,.2f}",
        f"Asset rows: {portfolio.total_asset_count}",
        f"Updated: {updated}",
    ]

    if snapshot.aggregate_rows:
        lines.append("")
        for row in snapshot.aggregate_rows:
            lines.append(
                f"{row.symbol:<8} {row.chain.info.name:<16} {row.balance:>20}  {_format_value(row)}"
            )
            if len(row.addresses) > 1:
                lines.append(f"{'':<8} across {len(row.addresses)} addresses")
    else:
        lines.extend(["", "No assets found."])

    errored = [a for a in snapshot.accounts if a.status is AccountStatus.ERROR]
    if errored:
        lines.append("")
        for account in errored:
            addresses = ", ".join(_format_address(a) for a in account.addresses)
            lines.append(f"⚠️ {account.label or account.id} unreachable ({addresses})")

    price_errors = sum(
        1 for s in snapshot.loading_states.values() if s.price_phase is LoadPhase.ERROR
    )
    if price_errors:
        lines.append(f"⚠️ {price_errors} assets without a price")

    return "\n".join(lines)
