"""Envelope allocation and group rebalance tests."""

from __future__ import annotations

from decimal import Decimal

import pytest

from pocketledger.errors import InvalidStateError, ValidationError
from pocketledger.infra.repositories import SQLModelEnvelopeRepository
from pocketledger.services.budgeting import (
    RepositoryAllocationUpdater,
    allocate_envelope,
    plan_group_rebalance,
    rebalance_group,
    summarize_group,
)


@pytest.fixture
def rent_food_fun(envelope_factory):
    return [
        envelope_factory("Rent", "1000"),
        envelope_factory("Food", "500"),
        envelope_factory("Fun", "0"),
    ]


@pytest.mark.asyncio
async def test_rent_food_fun_scenario(rent_food_fun, stub_updater):
    updater = stub_updater(rent_food_fun)

    outcome = await rebalance_group(rent_food_fun, "2000", updater)

    assert dict(updater.calls) == {
        "rent": Decimal("1333.33"),
        "food": Decimal("666.67"),
        "fun": Decimal("0.00"),
    }
    assert outcome.ok
    assert set(outcome.succeeded) == {"rent", "food", "fun"}
    assert outcome.applied_total == Decimal("2000.00")


def test_plan_keeps_exact_proportions(rent_food_fun):
    plan = plan_group_rebalance(rent_food_fun, Decimal("2000"))

    rent = plan[0]
    assert rent.previous == Decimal("1000")
    assert rent.proposed > Decimal("1333.33")
    assert rent.amount == Decimal("1333.33")
    assert plan[2].proposed == Decimal("0")


@pytest.mark.parametrize(
    "requested, expected",
    [
        ("2000", ["666.67", "666.67", "666.66"]),
        ("100", ["33.34", "33.33", "33.33"]),
        ("0.01", ["0.01", "0.00", "0.00"]),
    ],
)
def test_zero_total_group_splits_evenly_to_the_cent(envelope_factory, requested, expected):
    envelopes = [envelope_factory("A"), envelope_factory("B"), envelope_factory("C")]

    plan = plan_group_rebalance(envelopes, requested)

    assert [c.amount for c in plan] == [Decimal(v) for v in expected]
    assert sum(c.amount for c in plan) == Decimal(requested)


@pytest.mark.parametrize("requested", ["1000", "1234.56", "7", "0.05", "99999.99"])
def test_unclamped_rebalance_writes_exact_total(envelope_factory, requested):
    envelopes = [
        envelope_factory("A", "10.01"),
        envelope_factory("B", "33.33"),
        envelope_factory("C", "0"),
        envelope_factory("D", "56.66"),
    ]

    plan = plan_group_rebalance(envelopes, requested)

    assert not any(c.clamped for c in plan)
    assert sum(c.amount for c in plan) == Decimal(requested)
    assert plan[2].amount == Decimal("0")


@pytest.mark.asyncio
async def test_unchanged_total_makes_no_calls(rent_food_fun, stub_updater):
    updater = stub_updater(rent_food_fun)

    outcome = await rebalance_group(rent_food_fun, "1500.00", updater)

    assert updater.calls == []
    assert not outcome.changed
    assert outcome.shortfall == Decimal("0")


def test_shrinking_group_scales_down(envelope_factory):
    envelopes = [envelope_factory("A", "300"), envelope_factory("B", "100")]

    plan = plan_group_rebalance(envelopes, "200")

    assert [c.amount for c in plan] == [Decimal("150.00"), Decimal("50.00")]
    assert not any(c.clamped for c in plan)


def test_empty_group_is_invalid_state():
    with pytest.raises(InvalidStateError, match="No envelopes in this group"):
        plan_group_rebalance([], "100")


@pytest.mark.parametrize("raw, message", [("-1", "Amount cannot be negative"), ("abc", "Please enter a valid amount")])
def test_bad_requested_total(rent_food_fun, raw, message):
    with pytest.raises(ValidationError, match=message):
        plan_group_rebalance(rent_food_fun, raw)


@pytest.mark.asyncio
async def test_partial_failure_is_reported_not_rolled_back(rent_food_fun, stub_updater):
    updater = stub_updater(rent_food_fun, fail={"food": RuntimeError("db locked"), "fun": LookupError("")})

    outcome = await rebalance_group(rent_food_fun, "3000", updater)

    assert outcome.partial_failure
    assert not outcome.ok
    assert outcome.failed == {"food": "db locked", "fun": "Failed to update allocation"}
    assert list(outcome.succeeded) == ["rent"]
    assert rent_food_fun[0].allocated_amount == Decimal("2000.00")


@pytest.mark.asyncio
async def test_allocate_envelope_directly(envelope_factory, stub_updater):
    envelope = envelope_factory("Travel", "10")
    updater = stub_updater([envelope])

    updated = await allocate_envelope(envelope, "250.555", updater)

    assert updated.allocated_amount == Decimal("250.56")
    with pytest.raises(ValidationError):
        await allocate_envelope(envelope, "-5", updater)


def test_summarize_group(envelope_factory):
    summary = summarize_group(
        [envelope_factory("A", "100", "30"), envelope_factory("B", "50", "80")]
    )

    assert summary.total_allocated == Decimal("150")
    assert summary.total_spent == Decimal("110")
    assert summary.total_available == Decimal("40")
    assert summary.leftover == Decimal("40")


@pytest.mark.asyncio
async def test_repository_updater_persists(session_factory, envelope_factory):
    repo = SQLModelEnvelopeRepository(session_factory)
    for envelope in (envelope_factory("Rent", "1000"), envelope_factory("Food", "500")):
        repo.create(envelope)

    group = repo.list_by_group("Essentials")
    outcome = await rebalance_group(group, "3000", RepositoryAllocationUpdater(repo))

    assert outcome.ok
    assert repo.get_by_id("rent").allocated_amount == Decimal("2000.00")
    assert repo.get_by_id("food").allocated_amount == Decimal("1000.00")
