import pytest

from emission.errors import (AmountOverflow, EmptyArray, InvalidEntityId,
                             InvariantError, StreamPaused)
from emission.ledger import StreamLedger
from emission.types import StreamConfig, U256_MAX


def _ledger() -> StreamLedger:
    return StreamLedger(StreamConfig.create(start_time=2, end_time=12, allocation_per_entity=10, entity_count=4))


def test_untouched_entity_reads_as_default_and_is_not_stored():
    led = _ledger()
    s = led.get(7)
    assert (s.claimed, s.last_accrual_time, s.is_paused) == (0, 2, False)
    assert led.peek_claimable(7, 5) == 3
    assert len(led) == 0


def test_accrue_walkthrough_and_drained_stream():
    led = _ledger()
    assert led.accrue(1, 3) == 1
    assert led.accrue(1, 5) == 2
    assert led.accrue(1, 12) == 7
    assert led.accrue(1, 13) == 0
    s = led.get(1)
    assert (s.claimed, s.last_accrual_time) == (10, 12)
    assert led.claimed_total() == 10


def test_same_instant_is_idempotent():
    led = _ledger()
    assert led.accrue(1, 6) == 4
    before = led.dump()
    assert led.accrue(1, 6) == 0
    assert led.dump() == before


def test_pause_blocks_only_that_stream():
    led = _ledger()
    assert led.set_paused([2], True) == [2]
    with pytest.raises(StreamPaused):
        led.accrue(2, 5)
    assert led.accrue(1, 5) == 3
    led.set_paused([2], False)
    # Accrual while paused was never recorded, so it is all still there.
    assert led.accrue(2, 5) == 3


def test_peek_ignores_pause_and_never_mutates():
    led = _ledger()
    led.set_paused([1], True)
    assert led.peek_claimable(1, 7) == 5
    assert led.get(1).claimed == 0


def test_set_paused_requires_ids():
    with pytest.raises(EmptyArray):
        _ledger().set_paused([], True)


@pytest.mark.parametrize("bad", [-1, U256_MAX + 1, "1", True, 1.0])
def test_entity_ids_are_uint256(bad):
    with pytest.raises(InvalidEntityId):
        _ledger().accrue(bad, 5)


def test_dump_load_round_trip_and_validation():
    led = _ledger()
    led.accrue(1, 4)
    led.set_paused([3], True)
    other = _ledger()
    other.load(led.dump())
    assert other.items() == led.items()

    with pytest.raises(InvariantError):
        other.load({"streams": {"1": {"claimed": 11, "last_accrual_time": 5}}})
    with pytest.raises(InvariantError):
        other.load({"streams": {"1": {"claimed": 1, "last_accrual_time": 50}}})
    with pytest.raises(AmountOverflow):
        other.load({"streams": {"1": {"claimed": 2**128, "last_accrual_time": 5}}})


# ---- checkpoints -----------------------------------------------------------------


def test_revert_restores_touched_entities_only():
    led = _ledger()
    led.accrue(1, 4)
    led.set_paused([2], True)
    before = led.dump()

    led.begin()
    led.accrue(1, 8)
    led.accrue(3, 8)
    led.set_paused([2], False)
    assert led.paused_count() == 0
    led.revert()

    assert led.dump() == before
    assert len(led) == 2
    assert led.paused_count() == 1


def test_nested_commit_folds_into_parent():
    led = _ledger()
    led.begin()
    led.accrue(1, 4)
    led.begin()
    led.accrue(1, 6)
    led.accrue(2, 6)
    led.commit()
    assert led.get(1).claimed == 4
    led.revert()
    assert len(led) == 0
    assert led.claimed_total() == 0


def test_inner_revert_keeps_outer_writes():
    led = _ledger()
    led.begin()
    led.accrue(1, 4)
    led.begin()
    led.accrue(1, 6)
    led.set_paused([1], True)
    led.revert()
    led.commit()
    s = led.get(1)
    assert (s.claimed, s.last_accrual_time, s.is_paused) == (2, 4, False)
