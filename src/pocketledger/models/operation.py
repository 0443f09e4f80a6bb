"""Transient items tracked during one bulk operation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional


class OperationKind(str, Enum):
    DELETE = "delete"
    SYNC = "sync"
    MOVE = "move"
    EXPORT = "export"
    IMPORT = "import"


class OperationStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = frozenset({OperationStatus.SUCCESS, OperationStatus.ERROR, OperationStatus.CANCELLED})


@dataclass(frozen=True, slots=True)
class OperationItem:
    id: str
    name: str
    status: OperationStatus = OperationStatus.PENDING
    error: Optional[str] = None


@dataclass(slots=True)
class BatchResult:
    """What a bulk executor reports back for one batched call.

    ``errors`` optionally carries per-id failure detail.
    """

    success: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_value(cls, value: Any) -> "BatchResult":
        """Accept a ``BatchResult`` or a ``{"success": [...], "failed": [...]}`` mapping."""

        if isinstance(value, BatchResult):
            return value
        if isinstance(value, Mapping):
            return cls(
                success=[str(item) for item in value.get("success") or []],
                failed=[str(item) for item in value.get("failed") or []],
                errors={str(k): str(v) for k, v in (value.get("errors") or {}).items()},
            )
        raise TypeError(f"executor returned unsupported result {type(value).__name__}")
