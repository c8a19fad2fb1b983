"""Connection provider protocol — source of finalized account records."""
from typing import Protocol

from ..models import Account


class ConnectionProvider(Protocol):
    """Supplies the accounts the sync engine should consider."""

    def connected_accounts(self) -> list[Account]: ...

    def errored_accounts(self) -> list[Account]: ...

    def mark_account_error(self, account_id: str, message: str) -> None: ...

    def mark_account_synced(self, account_id: str) -> None: ...
