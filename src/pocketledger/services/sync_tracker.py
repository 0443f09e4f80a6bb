"""Sync progress tracking for bank accounts and crypto wallets.

``next_state`` is a pure reducer. ``SyncRegistry`` owns the per-resource
states, applies pushed events one writer at a time per resource and hands
out immutable snapshots.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from threading import Lock, RLock
from typing import Any, AsyncIterable, Callable, Mapping, Optional

from ..models.sync import (
    PHASES,
    TERMINAL_STATUSES,
    SyncEvent,
    SyncKind,
    SyncState,
    SyncStatus,
)

logger = logging.getLogger(__name__)

Subscriber = Callable[[SyncState], None]

_TERMINAL_RANK = 100

# Backend banking statuses that differ from the canonical vocabulary.
_BANK_STATUS_MAP = {
    "syncing_bank": SyncStatus.SYNCING,
    "completed_bank": SyncStatus.COMPLETED,
    "failed_bank": SyncStatus.FAILED,
}

_CRYPTO_ONLY = frozenset(PHASES[SyncKind.CRYPTO]) - frozenset(PHASES[SyncKind.BANKING])


def _rank(kind: SyncKind, status: SyncStatus) -> int:
    if status is SyncStatus.IDLE:
        return 0
    if status is SyncStatus.QUEUED:
        return 1
    if status is SyncStatus.SYNCING:
        return 2
    if status in TERMINAL_STATUSES:
        return _TERMINAL_RANK
    return 3 + PHASES[kind].index(status)


def _valid_for(kind: SyncKind, status: SyncStatus) -> bool:
    if status in (SyncStatus.IDLE, SyncStatus.QUEUED, SyncStatus.SYNCING):
        return True
    return status in TERMINAL_STATUSES or status in PHASES[kind]


def _progress(current: Optional[int], incoming: Optional[int]) -> Optional[int]:
    if incoming is None:
        return current
    if current is None:
        return incoming
    return max(current, incoming)


def next_state(current: SyncState, event: SyncEvent) -> SyncState:
    """Apply one event to a resource's state.

    Returns ``current`` unchanged (the same object) when the event is ignored:
    events after a terminal state until the next ``queued``, ``queued`` during
    an active session, backwards moves, and sub-phases the resource kind does
    not have.
    """

    if event.resource_id != current.resource_id:
        raise ValueError(
            f"event for {event.resource_id!r} applied to state of {current.resource_id!r}"
        )

    status = event.status
    if status is SyncStatus.IDLE:
        return current

    if status is SyncStatus.QUEUED:
        if current.is_active:
            return current
        return SyncState(
            resource_id=current.resource_id,
            kind=event.kind,
            status=SyncStatus.QUEUED,
            progress=event.progress if event.progress is not None else 0,
            message=event.message,
            started_at=event.timestamp,
            session=current.session + 1,
        )

    if current.is_terminal:
        return current

    starting = current.status is SyncStatus.IDLE
    kind = event.kind if starting else current.kind
    if not _valid_for(kind, status):
        return current
    if not starting and _rank(kind, status) < _rank(kind, current.status):
        return current

    updated = replace(
        current,
        kind=kind,
        status=status,
        progress=_progress(current.progress, event.progress),
        message=event.message if event.message is not None else current.message,
        session=current.session + 1 if starting else current.session,
        started_at=event.timestamp if starting else current.started_at,
    )

    if status is SyncStatus.COMPLETED:
        return replace(
            updated,
            progress=100,
            error=None,
            completed_at=event.timestamp,
            synced_data=event.synced_data or current.synced_data,
        )
    if status is SyncStatus.FAILED:
        return replace(
            updated,
            error=event.error or event.message or "Sync failed",
            completed_at=event.timestamp,
        )
    return updated


def _parse_time(raw: Any) -> Optional[datetime]:
    if isinstance(raw, datetime):
        moment = raw
    elif isinstance(raw, str) and raw.strip():
        try:
            moment = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _parse_progress(raw: Any) -> Optional[int]:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = int(float(raw))
    except (TypeError, ValueError):
        return None
    return min(max(value, 0), 100)


def _synced(raw: Any) -> tuple[str, ...]:
    if not raw:
        return ()
    if isinstance(raw, str):
        return (raw,)
    return tuple(str(item) for item in raw)


def _status(raw: Any) -> Optional[SyncStatus]:
    if isinstance(raw, SyncStatus):
        return raw
    if not isinstance(raw, str):
        return None
    mapped = _BANK_STATUS_MAP.get(raw)
    if mapped is not None:
        return mapped
    try:
        return SyncStatus(raw)
    except ValueError:
        return None


def translate_message(data: Mapping[str, Any]) -> Optional[SyncEvent]:
    """Convert one pushed wire message into a ``SyncEvent``.

    Connection housekeeping (``heartbeat``, ``connection_established``) and
    malformed or unknown messages produce ``None``.
    """

    msg_type = data.get("type")
    timestamp = _parse_time(data.get("completedAt")) or _parse_time(data.get("timestamp"))
    progress = _parse_progress(data.get("progress"))

    if msg_type in ("heartbeat", "connection_established"):
        return None

    if msg_type in ("wallet_sync_progress", "wallet_sync_completed", "wallet_sync_failed"):
        wallet_id = data.get("walletId")
        if not wallet_id:
            logger.warning("Invalid %s message: missing walletId", msg_type)
            return None
        if msg_type == "wallet_sync_completed":
            return SyncEvent(
                resource_id=str(wallet_id),
                kind=SyncKind.CRYPTO,
                status=SyncStatus.COMPLETED,
                progress=100,
                message=data.get("message"),
                timestamp=timestamp,
                synced_data=_synced(data.get("syncedData")),
            )
        if msg_type == "wallet_sync_failed":
            return SyncEvent(
                resource_id=str(wallet_id),
                kind=SyncKind.CRYPTO,
                status=SyncStatus.FAILED,
                error=data.get("error") or "Unknown error",
                timestamp=timestamp,
            )
        status = _status(data.get("status"))
        if status is None or progress is None:
            logger.warning("Invalid wallet_sync_progress message", extra={"wallet_id": wallet_id})
            return None
        return SyncEvent(
            resource_id=str(wallet_id),
            kind=SyncKind.CRYPTO,
            status=status,
            progress=progress,
            message=data.get("message"),
            error=data.get("error"),
            timestamp=timestamp,
            synced_data=_synced(data.get("syncedData")),
        )

    if msg_type == "sync_progress":
        account_id = data.get("accountId")
        status = _status(data.get("status"))
        if not account_id or status is None:
            logger.warning("Invalid sync_progress message")
            return None
        if status is SyncStatus.FAILED:
            return SyncEvent(
                resource_id=str(account_id),
                kind=SyncKind.BANKING,
                status=status,
                error=data.get("message") or "Bank sync failed",
                timestamp=timestamp,
            )
        return SyncEvent(
            resource_id=str(account_id),
            kind=SyncKind.BANKING,
            status=status,
            progress=progress if progress is not None else 0,
            message=data.get("message") or "Syncing bank account...",
            timestamp=timestamp,
            synced_data=_synced(data.get("syncedData")),
        )

    # Legacy banking events.
    legacy = {
        "syncing_bank": (SyncStatus.SYNCING, 10, "Starting bank account sync..."),
        "syncing_transactions_bank": (
            SyncStatus.SYNCING_TRANSACTIONS,
            50,
            "Syncing bank transactions...",
        ),
        "completed_bank": (SyncStatus.COMPLETED, 100, None),
        "failed_bank": (SyncStatus.FAILED, None, None),
    }
    if msg_type in legacy:
        account_id = data.get("accountId")
        if not account_id:
            logger.warning("Invalid %s message: missing accountId", msg_type)
            return None
        status, default_progress, default_message = legacy[msg_type]
        return SyncEvent(
            resource_id=str(account_id),
            kind=SyncKind.BANKING,
            status=status,
            progress=progress if progress is not None else default_progress,
            message=data.get("message") or default_message,
            error=(data.get("error") or "Unknown error occurred")
            if status is SyncStatus.FAILED
            else None,
            timestamp=timestamp,
            synced_data=_synced(data.get("syncedData")),
        )

    # Plain feed shape: {resourceId, status, progress?, message?, kind?}
    resource_id = data.get("resourceId")
    if msg_type is None and resource_id:
        status = _status(data.get("status"))
        if status is None:
            logger.warning("Invalid sync event", extra={"resource_id": resource_id})
            return None
        try:
            kind = SyncKind(data["kind"]) if data.get("kind") else None
        except ValueError:
            kind = None
        if kind is None:
            kind = SyncKind.CRYPTO if status in _CRYPTO_ONLY else SyncKind.BANKING
        return SyncEvent(
            resource_id=str(resource_id),
            kind=kind,
            status=status,
            progress=progress,
            message=data.get("message"),
            error=data.get("error"),
            timestamp=timestamp,
            synced_data=_synced(data.get("syncedData")),
        )

    logger.debug("Ignoring unknown sync message type %r", msg_type)
    return None


class SyncRegistry:
    """Owns the sync state of every resource.

    Events for the same resource are applied under that resource's lock so
    two updates never interleave; different resources never contend.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._states: dict[str, SyncState] = {}
        self._locks: dict[str, RLock] = {}
        self._guard = Lock()
        self._subscribers: list[Subscriber] = []

    def _lock_for(self, resource_id: str) -> RLock:
        with self._guard:
            lock = self._locks.get(resource_id)
            if lock is None:
                lock = self._locks[resource_id] = RLock()
            return lock

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback for state changes; returns an unsubscribe function."""

        with self._guard:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._guard:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def apply(self, event: SyncEvent) -> SyncState:
        """Reduce ``event`` into the registry and return the resulting snapshot."""

        if event.timestamp is None:
            event = replace(event, timestamp=self._clock())

        with self._lock_for(event.resource_id):
            current = self._states.get(event.resource_id) or SyncState(
                resource_id=event.resource_id, kind=event.kind
            )
            updated = next_state(current, event)
            if updated is current:
                logger.debug(
                    "Ignored sync event",
                    extra={
                        "resource_id": event.resource_id,
                        "current_status": current.status.value,
                        "event_status": event.status.value,
                    },
                )
                return current
            self._states[event.resource_id] = updated
            if updated.is_terminal:
                logger.info(
                    "Sync session finished",
                    extra={
                        "resource_id": updated.resource_id,
                        "status": updated.status.value,
                        "session": updated.session,
                    },
                )
            self._notify(updated)
        return updated

    def handle_message(self, data: Mapping[str, Any]) -> Optional[SyncState]:
        """Translate and apply one wire message; ``None`` when nothing applies."""

        event = translate_message(data)
        if event is None:
            return None
        return self.apply(event)

    async def consume(self, messages: AsyncIterable[Mapping[str, Any]]) -> int:
        """Apply every message from an async feed; returns how many were events."""

        applied = 0
        async for message in messages:
            if self.handle_message(message) is not None:
                applied += 1
        return applied

    def _notify(self, state: SyncState) -> None:
        with self._guard:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(state)
            except Exception:
                logger.exception(
                    "Sync subscriber failed", extra={"resource_id": state.resource_id}
                )

    def get(self, resource_id: str) -> Optional[SyncState]:
        return self._states.get(resource_id)

    def snapshot(self) -> dict[str, SyncState]:
        """Copy of all states; the states themselves are immutable."""
        with self._guard:
            return dict(self._states)

    def active_resources(self, kind: Optional[SyncKind] = None) -> list[str]:
        return [
            rid
            for rid, state in self.snapshot().items()
            if state.is_active and (kind is None or state.kind is kind)
        ]

    def has_active_syncs(self, kind: Optional[SyncKind] = None) -> bool:
        return bool(self.active_resources(kind))

    def clear(self, resource_id: str) -> None:
        """Forget a resource, e.g. after the account is removed."""
        with self._lock_for(resource_id):
            self._states.pop(resource_id, None)
