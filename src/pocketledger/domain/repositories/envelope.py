"""Envelope repository protocol."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional, Protocol

from ...models.envelope import Envelope


class EnvelopeRepository(Protocol):
    """Repository for budget envelopes."""

    def get_by_id(self, envelope_id: str) -> Optional[Envelope]:
        """Retrieve an envelope by ID."""
        ...

    def list_by_group(self, group_name: str) -> list[Envelope]:
        """List the envelopes of one group, ordered by name."""
        ...

    def create(self, envelope: Envelope) -> Envelope:
        """Create a new envelope."""
        ...

    def update_allocation(self, envelope_id: str, amount: Decimal) -> Envelope:
        """Set ``allocated_amount``; raises ``LookupError`` for unknown ids."""
        ...
