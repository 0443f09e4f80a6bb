"""Sync session state for external accounts and wallets."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class SyncKind(str, Enum):
    BANKING = "banking"
    CRYPTO = "crypto"


class SyncStatus(str, Enum):
    IDLE = "idle"
    QUEUED = "queued"
    SYNCING = "syncing"
    SYNCING_ASSETS = "syncing_assets"
    SYNCING_BALANCE = "syncing_balance"
    SYNCING_TRANSACTIONS = "syncing_transactions"
    SYNCING_NFTS = "syncing_nfts"
    SYNCING_DEFI = "syncing_defi"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({SyncStatus.COMPLETED, SyncStatus.FAILED})

# Sub-phases in the order each kind walks through them.
PHASES: dict[SyncKind, tuple[SyncStatus, ...]] = {
    SyncKind.BANKING: (SyncStatus.SYNCING_BALANCE, SyncStatus.SYNCING_TRANSACTIONS),
    SyncKind.CRYPTO: (
        SyncStatus.SYNCING_ASSETS,
        SyncStatus.SYNCING_TRANSACTIONS,
        SyncStatus.SYNCING_NFTS,
        SyncStatus.SYNCING_DEFI,
    ),
}


@dataclass(frozen=True, slots=True)
class SyncEvent:
    """One pushed progress update for a resource."""

    resource_id: str
    kind: SyncKind
    status: SyncStatus
    progress: Optional[int] = None
    message: Optional[str] = None
    error: Optional[str] = None
    timestamp: Optional[datetime] = None
    synced_data: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class SyncState:
    """Snapshot of a resource's current sync session.

    ``session`` counts sessions started for the resource; it increments each
    time a ``queued`` event (or the first event after idle) opens a new one.
    """

    resource_id: str
    kind: SyncKind
    status: SyncStatus = SyncStatus.IDLE
    progress: Optional[int] = None
    message: Optional[str] = None
    error: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    synced_data: tuple[str, ...] = ()
    session: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_active(self) -> bool:
        return self.status is not SyncStatus.IDLE and not self.is_terminal
