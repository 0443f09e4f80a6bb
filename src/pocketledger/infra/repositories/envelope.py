"""SQLModel implementation of Envelope repository."""

from __future__ import annotations

from decimal import Decimal
from typing import Callable, Optional

from sqlmodel import Session, select

from ...models.envelope import Envelope


class SQLModelEnvelopeRepository:
    """SQLModel-based envelope repository implementation."""

    def __init__(self, session_factory: Callable[[], Session]):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, envelope_id: str) -> Optional[Envelope]:
        """Retrieve an envelope by ID."""
        with self.session_factory() as session:
            return session.get(Envelope, envelope_id)

    def list_by_group(self, group_name: str) -> list[Envelope]:
        """List envelopes belonging to ``group_name``."""
        with self.session_factory() as session:
            statement = (
                select(Envelope)
                .where(Envelope.group_name == group_name)
                .order_by(Envelope.name)  # type: ignore
            )
            return list(session.exec(statement).all())

    def create(self, envelope: Envelope) -> Envelope:
        """Create a new envelope."""
        with self.session_factory() as session:
            session.add(envelope)
            session.commit()
            session.refresh(envelope)
            return envelope

    def update_allocation(self, envelope_id: str, amount: Decimal) -> Envelope:
        """Persist a new allocated amount; nothing else on the envelope changes."""
        with self.session_factory() as session:
            envelope = session.get(Envelope, envelope_id)
            if envelope is None:
                raise LookupError(f"Envelope {envelope_id} not found")
            envelope.allocated_amount = amount
            session.add(envelope)
            session.commit()
            session.refresh(envelope)
            return envelope
