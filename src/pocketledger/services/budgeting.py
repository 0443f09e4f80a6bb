"""Budgeting domain services: envelope allocation and group rebalancing."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from decimal import ROUND_DOWN, Decimal
from typing import Iterable, Protocol, Sequence

from ..domain.repositories.envelope import EnvelopeRepository
from ..errors import InvalidStateError, ValidationError
from ..models.envelope import Envelope
from ..money import CENT, ZERO, parse_amount, quantize, total

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_MESSAGE = "Failed to update allocation"


class AllocationUpdater(Protocol):
    """Writes a new allocated amount for one envelope."""

    async def update_allocation(
        self, envelope_id: str, amount: Decimal
    ) -> Envelope:  # pragma: no cover - interface
        ...


class RepositoryAllocationUpdater:
    """Adapts a synchronous envelope repository to the async updater seam."""

    def __init__(self, repository: EnvelopeRepository):
        self.repository = repository

    async def update_allocation(self, envelope_id: str, amount: Decimal) -> Envelope:
        return await asyncio.to_thread(self.repository.update_allocation, envelope_id, amount)


@dataclass(frozen=True, slots=True)
class AllocationChange:
    """Planned allocation for one envelope.

    ``proposed`` is the exact proportional result; ``amount`` is the cent
    value that gets written, never negative.
    """

    envelope_id: str
    previous: Decimal
    proposed: Decimal
    amount: Decimal

    @property
    def clamped(self) -> bool:
        return self.proposed < 0


@dataclass
class AllocationOutcome:
    """Per-envelope results of a fan-out; failures are reported, never rolled back."""

    requested_total: Decimal
    changes: list[AllocationChange] = field(default_factory=list)
    succeeded: dict[str, Envelope] = field(default_factory=dict)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return bool(self.changes)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def partial_failure(self) -> bool:
        return bool(self.succeeded) and bool(self.failed)

    @property
    def applied_total(self) -> Decimal:
        return total(change.amount for change in self.changes)

    @property
    def shortfall(self) -> Decimal:
        """Gap between requested and planned totals left by clamping at zero."""
        if not self.changes:
            return ZERO
        return self.requested_total - self.applied_total


@dataclass(frozen=True, slots=True)
class GroupSummary:
    total_allocated: Decimal
    total_spent: Decimal
    total_available: Decimal

    @property
    def leftover(self) -> Decimal:
        return max(self.total_available, ZERO)


def _amount(value: object, *, field_name: str = "amount") -> Decimal:
    try:
        amount = parse_amount(value)
    except ValueError as exc:
        raise ValidationError("Please enter a valid amount", field=field_name) from exc
    if amount < 0:
        raise ValidationError("Amount cannot be negative", field=field_name)
    return amount


def _allocated(envelope: Envelope) -> Decimal:
    return Decimal(str(envelope.allocated_amount))


def summarize_group(envelopes: Iterable[Envelope]) -> GroupSummary:
    """Totals shown on a group header."""

    items = list(envelopes)
    return GroupSummary(
        total_allocated=total(_allocated(e) for e in items),
        total_spent=total(Decimal(str(e.spent_amount)) for e in items),
        total_available=total(Decimal(str(e.available_balance)) for e in items),
    )


def plan_group_rebalance(
    envelopes: Sequence[Envelope], requested_total: object
) -> list[AllocationChange]:
    """Spread the change in a group's total across its envelopes.

    Each envelope moves in proportion to its current share; an all-zero group
    is split evenly. Returns an empty plan when the total is unchanged.
    """

    if not envelopes:
        raise InvalidStateError("No envelopes in this group")
    requested = _amount(requested_total, field_name="requested_total")

    current = [_allocated(e) for e in envelopes]
    total_allocated = total(current)
    delta = requested - total_allocated
    if delta == 0:
        return []

    if total_allocated == 0:
        proposed = [requested / len(envelopes)] * len(envelopes)
    else:
        proposed = [prev + delta * prev / total_allocated for prev in current]

    if any(value < 0 for value in proposed):
        amounts = [quantize(max(value, ZERO)) for value in proposed]
    else:
        amounts = _split_cents(proposed, quantize(requested))

    return [
        AllocationChange(envelope_id=e.id, previous=prev, proposed=value, amount=amount)
        for e, prev, value, amount in zip(envelopes, current, proposed, amounts)
    ]


def _split_cents(proposed: list[Decimal], target: Decimal) -> list[Decimal]:
    """Round down to cents, then hand leftover cents to the largest remainders.

    Ties go to the earlier envelope. The result always sums to ``target``.
    """

    floors = [value.quantize(CENT, rounding=ROUND_DOWN) for value in proposed]
    leftover = int((target - total(floors)) / CENT)
    order = sorted(
        range(len(proposed)), key=lambda i: (-(proposed[i] - floors[i]), i)
    )
    for i in order[:leftover]:
        floors[i] += CENT
    return floors


async def rebalance_group(
    envelopes: Sequence[Envelope],
    requested_total: object,
    updater: AllocationUpdater,
) -> AllocationOutcome:
    """Plan the rebalance, then issue one concurrent update per envelope."""

    changes = plan_group_rebalance(envelopes, requested_total)
    outcome = AllocationOutcome(requested_total=_amount(requested_total), changes=changes)
    if not changes:
        logger.debug("Group total unchanged; nothing to rebalance")
        return outcome

    results = await asyncio.gather(
        *(updater.update_allocation(c.envelope_id, c.amount) for c in changes),
        return_exceptions=True,
    )

    for change, result in zip(changes, results):
        if isinstance(result, Exception):
            outcome.failed[change.envelope_id] = str(result) or DEFAULT_FAILURE_MESSAGE
            logger.warning(
                "Envelope allocation failed",
                extra={"envelope_id": change.envelope_id, "amount": str(change.amount)},
            )
        elif isinstance(result, BaseException):
            raise result
        else:
            outcome.succeeded[change.envelope_id] = result

    if any(change.clamped for change in changes):
        logger.info(
            "Rebalance clamped negative allocations",
            extra={"shortfall": str(outcome.shortfall)},
        )
    logger.info(
        "Rebalanced envelope group",
        extra={
            "requested_total": str(outcome.requested_total),
            "succeeded": len(outcome.succeeded),
            "failed": len(outcome.failed),
        },
    )
    return outcome


async def allocate_envelope(
    envelope: Envelope, amount: object, updater: AllocationUpdater
) -> Envelope:
    """Set a single envelope's allocation directly."""

    value = _amount(amount)
    return await updater.update_allocation(envelope.id, quantize(value))
