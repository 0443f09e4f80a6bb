"""SQLModel implementation of Account repository."""

from __future__ import annotations

from typing import Callable, Optional

from sqlmodel import Session, select

from ...models.account import Account


class SQLModelAccountRepository:
    """SQLModel-based account repository implementation."""

    def __init__(self, session_factory: Callable[[], Session]):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, account_id: str) -> Optional[Account]:
        """Retrieve an account by ID."""
        with self.session_factory() as session:
            return session.get(Account, account_id)

    def list_all(self) -> list[Account]:
        """List all accounts."""
        with self.session_factory() as session:
            statement = select(Account).order_by(Account.name)  # type: ignore
            return list(session.exec(statement).all())

    def list_active(self) -> list[Account]:
        """List active accounts."""
        with self.session_factory() as session:
            statement = (
                select(Account)
                .where(Account.is_active == True)  # noqa: E712
                .order_by(Account.name)  # type: ignore
            )
            return list(session.exec(statement).all())

    def create(self, account: Account) -> Account:
        """Create a new account."""
        with self.session_factory() as session:
            session.add(account)
            session.commit()
            session.refresh(account)
            return account

    def update(self, account: Account) -> Account:
        """Update an existing account."""
        with self.session_factory() as session:
            account = session.merge(account)
            session.commit()
            session.refresh(account)
            return account
