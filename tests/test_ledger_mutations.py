import random

import pytest
from sqlalchemy import text

from core.errors import (
    InsufficientAvailableError,
    InvalidArgumentError,
    NotFoundError,
    StorageError,
)


async def _state(ledger, inventory_id):
    r = await ledger.get_by_id(inventory_id)
    return r.quantity, r.reserved_quantity


def _assert_invariant(quantity, reserved):
    assert quantity >= 0
    assert 0 <= reserved <= quantity


async def test_adjust_adds_and_subtracts(ledger, record):
    r = await ledger.adjust_quantity(record.id, 15)
    assert r.quantity == 25

    r = await ledger.adjust_quantity(record.id, -5)
    assert r.quantity == 20
    assert r.reserved_quantity == 0
    assert await _state(ledger, record.id) == (20, 0)


async def test_adjust_clamps_at_zero(ledger, record):
    # Saturating floor: over-subtraction is not rejected, it bottoms out at 0.
    r = await ledger.adjust_quantity(record.id, -1000)

    assert r.quantity == 0
    assert await _state(ledger, record.id) == (0, 0)


async def test_adjust_refreshes_updated_at(ledger, record):
    before = (await ledger.get_by_id(record.id)).updated_at

    await ledger.adjust_quantity(record.id, 1)

    assert (await ledger.get_by_id(record.id)).updated_at >= before


async def test_adjust_does_not_touch_reserved_within_bounds(ledger, record):
    await ledger.reserve_quantity(record.id, 4)

    r = await ledger.adjust_quantity(record.id, -6)

    assert (r.quantity, r.reserved_quantity) == (4, 4)


async def test_adjust_below_reserved_lowers_reserved_to_quantity(ledger, record):
    await ledger.reserve_quantity(record.id, 8)

    r = await ledger.adjust_quantity(record.id, -5)

    assert (r.quantity, r.reserved_quantity) == (5, 5)
    assert await _state(ledger, record.id) == (5, 5)


async def test_adjust_missing_record(ledger):
    with pytest.raises(NotFoundError) as exc:
        await ledger.adjust_quantity(12345, 1)
    assert exc.value.kind == "not_found"


async def test_adjust_requires_integer_delta(ledger, record):
    with pytest.raises(InvalidArgumentError):
        await ledger.adjust_quantity(record.id, 1.5)


async def test_reserve_within_available(ledger, record):
    r = await ledger.reserve_quantity(record.id, 7)

    assert (r.quantity, r.reserved_quantity) == (10, 7)
    assert r.available_quantity == 3


async def test_reserve_exactly_available(ledger, record):
    r = await ledger.reserve_quantity(record.id, 10)

    assert r.reserved_quantity == 10
    assert r.available_quantity == 0


async def test_reserve_over_available_leaves_state_unchanged(ledger, record):
    await ledger.reserve_quantity(record.id, 6)
    before = await _state(ledger, record.id)

    with pytest.raises(InsufficientAvailableError) as exc:
        await ledger.reserve_quantity(record.id, 5)

    assert exc.value.available == 4
    assert exc.value.requested == 5
    assert await _state(ledger, record.id) == before


async def test_reserve_when_nothing_available(ledger, product, warehouse):
    r = await ledger.create(product.id, warehouse.id, quantity=5)
    await ledger.reserve_quantity(r.id, 5)

    with pytest.raises(InsufficientAvailableError):
        await ledger.reserve_quantity(r.id, 1)

    assert await _state(ledger, r.id) == (5, 5)


@pytest.mark.parametrize("amount", [0, -3])
async def test_reserve_rejects_non_positive_amount(ledger, record, amount):
    with pytest.raises(InvalidArgumentError):
        await ledger.reserve_quantity(record.id, amount)

    assert await _state(ledger, record.id) == (10, 0)
    assert len(ledger.locks) == 0


async def test_reserve_missing_record(ledger):
    with pytest.raises(NotFoundError):
        await ledger.reserve_quantity(999, 1)


async def test_release(ledger, record):
    await ledger.reserve_quantity(record.id, 6)

    r = await ledger.release_reserved_quantity(record.id, 4)

    assert (r.quantity, r.reserved_quantity) == (10, 2)


async def test_release_more_than_reserved_clamps_at_zero(ledger, record):
    await ledger.reserve_quantity(record.id, 3)

    r = await ledger.release_reserved_quantity(record.id, 50)

    assert r.reserved_quantity == 0
    assert r.quantity == 10


@pytest.mark.parametrize("amount", [0, -1])
async def test_release_rejects_non_positive_amount(ledger, record, amount):
    with pytest.raises(InvalidArgumentError):
        await ledger.release_reserved_quantity(record.id, amount)


async def test_release_missing_record(ledger):
    with pytest.raises(NotFoundError):
        await ledger.release_reserved_quantity(999, 1)


async def test_reserve_then_release_restores_reserved(ledger, record):
    await ledger.reserve_quantity(record.id, 2)
    before = (await ledger.get_by_id(record.id)).reserved_quantity

    await ledger.reserve_quantity(record.id, 5)
    r = await ledger.release_reserved_quantity(record.id, 5)

    assert r.reserved_quantity == before


async def test_example_scenario(ledger, product, warehouse):
    r = await ledger.create(product.id, warehouse.id, quantity=100, min_threshold=10)

    r = await ledger.reserve_quantity(r.id, 30)
    assert (r.quantity, r.reserved_quantity) == (100, 30)

    r = await ledger.adjust_quantity(r.id, -20)
    assert (r.quantity, r.reserved_quantity) == (80, 30)
    assert r.available_quantity == 50

    r = await ledger.release_reserved_quantity(r.id, 30)
    assert r.reserved_quantity == 0


async def test_random_adjustments_never_go_negative(ledger, record):
    rng = random.Random(7)
    for _ in range(40):
        r = await ledger.adjust_quantity(record.id, rng.randint(-25, 20))
        assert r.quantity >= 0
        _assert_invariant(*await _state(ledger, record.id))


async def test_random_reserve_release_keeps_invariant(ledger, record):
    rng = random.Random(11)
    for _ in range(60):
        amount = rng.randint(1, 6)
        try:
            if rng.random() < 0.6:
                await ledger.reserve_quantity(record.id, amount)
            else:
                await ledger.release_reserved_quantity(record.id, amount)
        except InsufficientAvailableError:
            pass
        _assert_invariant(*await _state(ledger, record.id))


async def test_storage_failure_is_reported_as_storage_error(ledger, database, record):
    async with database.engine.begin() as conn:
        await conn.execute(text("DROP TABLE inventory"))

    with pytest.raises(StorageError) as exc:
        await ledger.adjust_quantity(record.id, 1)

    assert exc.value.kind == "storage_error"
    assert len(ledger.locks) == 0
