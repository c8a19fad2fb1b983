"""Command-line interface for the portfolio sync engine."""
from __future__ import annotations

import argparse
import asyncio
import sys

from .config import load_config
from .errors import ValidationError
from .logging_setup import configure_logging
from .models import AccountKind
from .portfolio import PortfolioService
from .report import build_report
from .store import build_account


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="portfolio-sync",
        description="Multi-chain portfolio synchronization",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("sync", help="Run one sync cycle and print the portfolio")
    sub.add_parser("accounts", help="List configured accounts")

    monitor_parser = sub.add_parser("monitor", help="Continuous sync loop")
    monitor_parser.add_argument(
        "interval",
        nargs="?",
        type=float,
        default=None,
        help="Sync interval in seconds (overrides config)",
    )

    add_parser = sub.add_parser("add-account", help="Track a new account")
    add_parser.add_argument("id", help="Unique account id")
    add_parser.add_argument("platform", help="Platform label, e.g. ethereum or 'Multi Chain EVM'")
    add_parser.add_argument("addresses", nargs="*", help="Wallet addresses")
    add_parser.add_argument(
        "--kind",
        default=AccountKind.WALLET.value,
        choices=[k.value for k in AccountKind],
    )
    add_parser.add_argument("--label", default="")
    add_parser.add_argument(
        "--chain",
        dest="chains",
        action="append",
        default=[],
        help="Declared chain (repeatable, multi-chain EVM accounts)",
    )

    remove_parser = sub.add_parser("remove-account", help="Stop tracking an account")
    remove_parser.add_argument("id", help="Account id")

    return parser


def _print_accounts(service: PortfolioService) -> None:
    accounts = service.store.accounts
    if not accounts:
        print("No accounts configured.")
        return
    for account in accounts:
        synced = account.last_sync_at.isoformat(timespec="seconds") if account.last_sync_at else "never"
        chains = ",".join(c.value for c in account.declared_chains) or "-"
        print(
            f"{account.id:<16} {account.platform.value:<16} {account.status.value:<12} "
            f"chains={chains} addresses={len(account.addresses)} last_sync={synced}"
        )


async def _monitor(service: PortfolioService, interval: float | None) -> None:
    service.orchestrator.add_cycle_listener(lambda _: print(build_report(service.snapshot())))
    service.start(interval)
    try:
        await asyncio.Event().wait()
    finally:
        await service.stop()


async def _run(args: argparse.Namespace) -> int:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)
    service = PortfolioService.from_config(config)

    if args.command == "sync":
        try:
            snapshot = await service.sync_once()
        finally:
            await service.stop()
        print(build_report(snapshot))
    elif args.command == "monitor":
        await _monitor(service, args.interval)
    elif args.command == "accounts":
        _print_accounts(service)
    elif args.command == "add-account":
        try:
            account = service.add_account(
                build_account(
                    args.id,
                    args.platform,
                    args.addresses,
                    kind=args.kind,
                    label=args.label,
                    declared_chains=args.chains,
                )
            )
        except ValidationError as e:
            print(f"Cannot add account: {e}", file=sys.stderr)
            return 1
        print(f"Added {account.id} ({account.platform.value})")
    elif args.command == "remove-account":
        try:
            service.remove_account(args.id)
        except KeyError:
            print(f"Unknown account: {args.id}", file=sys.stderr)
            return 1
        print(f"Removed {args.id}")
    else:
        build_parser().print_help()
        return 1
    return 0


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        sys.exit(asyncio.run(_run(args)))
    except KeyboardInterrupt:
        sys.exit(130)
