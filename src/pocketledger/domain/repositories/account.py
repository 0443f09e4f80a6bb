"""Account repository protocol."""

from __future__ import annotations

from typing import Optional, Protocol

from ...models.account import Account


class AccountRepository(Protocol):
    """Repository for managing account entities."""

    def get_by_id(self, account_id: str) -> Optional[Account]:
        """Retrieve an account by ID."""
        ...

    def list_all(self) -> list[Account]:
        """List all accounts."""
        ...

    def list_active(self) -> list[Account]:
        """List accounts that still count toward net worth and sync."""
        ...

    def create(self, account: Account) -> Account:
        """Create a new account."""
        ...

    def update(self, account: Account) -> Account:
        """Update an existing account."""
        ...
