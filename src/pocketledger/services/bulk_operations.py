"""Bulk operation coordination with per-item outcome reporting."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field, replace
from threading import Lock
from typing import Any, Awaitable, Callable, Iterable, Optional, Sequence, Union

from ..models.operation import (
    BatchResult,
    OperationItem,
    OperationKind,
    OperationStatus,
)

__all__ = [
    "DEFAULT_ERROR",
    "UNEXPECTED_ERROR",
    "TIMEOUT_ERROR",
    "BulkOperationCoordinator",
    "BulkOperationResult",
]

logger = logging.getLogger(__name__)

DEFAULT_ERROR = "Operation failed"
UNEXPECTED_ERROR = "Unexpected error occurred"
TIMEOUT_ERROR = "Operation timed out"

_TIMED_OUT = object()

Executor = Callable[[list[str]], Union[Awaitable[Any], Any]]
TransitionCallback = Callable[[OperationItem, OperationStatus], None]


@dataclass
class BulkOperationResult:
    """Final per-item outcome of one bulk run."""

    kind: OperationKind
    items: list[OperationItem] = field(default_factory=list)

    def _count(self, status: OperationStatus) -> int:
        return sum(1 for item in self.items if item.status is status)

    @property
    def success_count(self) -> int:
        return self._count(OperationStatus.SUCCESS)

    @property
    def error_count(self) -> int:
        return self._count(OperationStatus.ERROR)

    @property
    def cancelled_count(self) -> int:
        return self._count(OperationStatus.CANCELLED)

    @property
    def succeeded_ids(self) -> list[str]:
        return [item.id for item in self.items if item.status is OperationStatus.SUCCESS]

    @property
    def failed_ids(self) -> list[str]:
        return [item.id for item in self.items if item.status is OperationStatus.ERROR]

    @property
    def all_succeeded(self) -> bool:
        return bool(self.items) and self.success_count == len(self.items)


class BulkOperationCoordinator:
    """Runs one batched executor call for a set of items and reconciles results.

    Item transitions are reported through ``on_transition`` as they happen;
    presentation timing stays with the caller.
    """

    def __init__(
        self,
        kind: OperationKind | str = OperationKind.SYNC,
        *,
        on_transition: Optional[TransitionCallback] = None,
        timeout: Optional[float] = None,
    ):
        self.kind = OperationKind(kind)
        self.on_transition = on_transition
        self.timeout = timeout
        self._items: dict[str, OperationItem] = {}
        self._lock = Lock()
        self._task: Optional[asyncio.Task] = None

    # -- state -----------------------------------------------------------

    @property
    def items(self) -> list[OperationItem]:
        with self._lock:
            return list(self._items.values())

    @property
    def is_processing(self) -> bool:
        return any(item.status is OperationStatus.PROCESSING for item in self.items)

    @property
    def can_close(self) -> bool:
        """True once nothing is in flight."""
        return not self.is_processing

    @property
    def success_count(self) -> int:
        return sum(1 for item in self.items if item.status is OperationStatus.SUCCESS)

    @property
    def error_count(self) -> int:
        return sum(1 for item in self.items if item.status is OperationStatus.ERROR)

    @property
    def cancelled_count(self) -> int:
        return sum(1 for item in self.items if item.status is OperationStatus.CANCELLED)

    def _transition(
        self, item_id: str, status: OperationStatus, error: Optional[str] = None
    ) -> None:
        with self._lock:
            current = self._items[item_id]
            if current.status.is_terminal:
                return
            updated = replace(current, status=status, error=error)
            self._items[item_id] = updated
        if self.on_transition is not None:
            try:
                self.on_transition(updated, current.status)
            except Exception:
                logger.exception(
                    "Bulk transition callback failed", extra={"item_id": item_id}
                )

    def _settle_processing(self, status: OperationStatus, error: Optional[str]) -> None:
        for item in self.items:
            if item.status is OperationStatus.PROCESSING:
                self._transition(item.id, status, error)

    def _result(self) -> BulkOperationResult:
        return BulkOperationResult(kind=self.kind, items=self.items)

    # -- running ---------------------------------------------------------

    def _load(self, items: Iterable[OperationItem | tuple[str, str] | str]) -> None:
        loaded: dict[str, OperationItem] = {}
        for raw in items:
            if isinstance(raw, OperationItem):
                item = replace(raw, status=OperationStatus.PENDING, error=None)
            elif isinstance(raw, tuple):
                item = OperationItem(id=str(raw[0]), name=str(raw[1]))
            else:
                item = OperationItem(id=str(raw), name=str(raw))
            # First occurrence wins; the executor sees each id once.
            loaded.setdefault(item.id, item)
        with self._lock:
            self._items = loaded

    async def _call(self, executor: Executor, ids: list[str]) -> Any:
        value = executor(ids)
        if inspect.isawaitable(value):
            value = await value
        return value

    async def _call_with_limit(
        self, executor: Executor, ids: list[str], limit: Optional[float]
    ) -> Any:
        """Run the executor, returning ``_TIMED_OUT`` if it outlives ``limit``.

        Only the deadline counts as a timeout. A ``TimeoutError`` raised by the
        executor itself propagates like any other executor failure.
        """

        if limit is None:
            return await self._call(executor, ids)
        task = asyncio.ensure_future(self._call(executor, ids))
        try:
            done, _ = await asyncio.wait({task}, timeout=limit)
        except asyncio.CancelledError:
            task.cancel()
            raise
        if not done:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            return _TIMED_OUT
        return task.result()

    def _reconcile(self, outcome: BatchResult) -> None:
        succeeded = set(outcome.success)
        for item in self.items:
            if item.status is not OperationStatus.PROCESSING:
                continue
            if item.id in succeeded:
                self._transition(item.id, OperationStatus.SUCCESS)
            else:
                self._transition(
                    item.id,
                    OperationStatus.ERROR,
                    outcome.errors.get(item.id) or DEFAULT_ERROR,
                )

    async def run(
        self,
        items: Sequence[OperationItem | tuple[str, str] | str],
        executor: Executor,
        *,
        timeout: Optional[float] = None,
    ) -> BulkOperationResult:
        """Execute ``executor`` once with every item id and report per-item outcomes.

        The executor may be sync or async and returns a ``BatchResult`` or a
        ``{"success": [...], "failed": [...]}`` mapping. Executor exceptions and
        timeouts are turned into per-item errors; cancellation marks in-flight
        items cancelled and propagates.
        """

        if self.is_processing:
            raise RuntimeError("bulk operation already running")

        self._load(items)
        ids = [item.id for item in self.items]
        if not ids:
            return self._result()

        for item_id in ids:
            self._transition(item_id, OperationStatus.PROCESSING)

        limit = timeout if timeout is not None else self.timeout
        self._task = asyncio.current_task()
        logger.info(
            "Bulk operation started",
            extra={"operation": self.kind.value, "item_count": len(ids)},
        )
        try:
            value = await self._call_with_limit(executor, ids, limit)
            outcome = None if value is _TIMED_OUT else BatchResult.from_value(value)
        except asyncio.CancelledError:
            self._settle_processing(OperationStatus.CANCELLED, None)
            logger.info(
                "Bulk operation cancelled",
                extra={"operation": self.kind.value, "cancelled": self.cancelled_count},
            )
            raise
        except Exception:
            self._settle_processing(OperationStatus.ERROR, UNEXPECTED_ERROR)
            logger.exception(
                "Bulk operation executor failed", extra={"operation": self.kind.value}
            )
        else:
            if outcome is None:
                self._settle_processing(OperationStatus.ERROR, TIMEOUT_ERROR)
                logger.warning(
                    "Bulk operation timed out",
                    extra={"operation": self.kind.value, "timeout": limit},
                )
            else:
                self._reconcile(outcome)
        finally:
            self._task = None

        result = self._result()
        logger.info(
            "Bulk operation finished",
            extra={
                "operation": self.kind.value,
                "success": result.success_count,
                "error": result.error_count,
            },
        )
        return result

    def cancel(self) -> bool:
        """Cancel the running operation; returns False when nothing is running."""

        task = self._task
        if task is None or task.done():
            return False
        return task.cancel()
