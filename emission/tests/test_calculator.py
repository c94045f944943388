import pytest
from hypothesis import given, settings, strategies as st

from emission.errors import (IncorrectClaimable, InvalidEntityCount,
                             InvalidTimeWindow, ZeroAllocation,
                             ZeroEmissionRate)
from emission.math import compute_claimable
from emission.types import StreamConfig


def _cfg(start=2, end=12, allocation=10, count=4) -> StreamConfig:
    return StreamConfig.create(start_time=start, end_time=end, allocation_per_entity=allocation, entity_count=count)


def test_config_derives_rate_and_total():
    cfg = _cfg()
    assert cfg.emission_rate_per_second == 1
    assert cfg.total_allocation == 40
    assert cfg.window_length == 10
    assert StreamConfig.from_dict(cfg.to_dict()) == cfg


@pytest.mark.parametrize(
    "kwargs, exc",
    [
        (dict(start_time=12, end_time=12, allocation_per_entity=10, entity_count=1), InvalidTimeWindow),
        (dict(start_time=12, end_time=2, allocation_per_entity=10, entity_count=1), InvalidTimeWindow),
        (dict(start_time=2, end_time=12, allocation_per_entity=0, entity_count=1), ZeroAllocation),
        (dict(start_time=2, end_time=12, allocation_per_entity=9, entity_count=1), ZeroEmissionRate),
        (dict(start_time=2, end_time=12, allocation_per_entity=10, entity_count=0), InvalidEntityCount),
    ],
)
def test_config_rejects_bad_schedules(kwargs, exc):
    with pytest.raises(exc):
        StreamConfig.create(**kwargs)


def test_walkthrough_t3_t5_t12_t13():
    cfg = _cfg()

    a = compute_claimable(cfg, last_accrual_time=2, claimed_so_far=0, now=3)
    assert (a.claimable, a.accrual_time) == (1, 3)

    b = compute_claimable(cfg, last_accrual_time=3, claimed_so_far=1, now=5)
    assert (b.claimable, b.accrual_time) == (2, 5)

    c = compute_claimable(cfg, last_accrual_time=5, claimed_so_far=3, now=12)
    assert (c.claimable, c.accrual_time) == (7, 12)

    d = compute_claimable(cfg, last_accrual_time=12, claimed_so_far=10, now=13)
    assert (d.claimable, d.accrual_time) == (0, 12)


def test_final_tick_pays_division_dust():
    # 100 over 7s: rate 14, 14*7 = 98, last tick carries the 2 leftover.
    cfg = _cfg(start=0, end=7, allocation=100)
    assert cfg.emission_rate_per_second == 14
    mid = compute_claimable(cfg, 0, 0, 6)
    assert mid.claimable == 84
    final = compute_claimable(cfg, 6, 84, 7)
    assert final.claimable == 16
    assert mid.claimable + final.claimable == 100


def test_before_start_is_zero():
    cfg = _cfg(start=100, end=200, allocation=1000)
    assert compute_claimable(cfg, 100, 0, 50).claimable == 0


def test_over_claimed_record_is_loud():
    cfg = _cfg()
    with pytest.raises(IncorrectClaimable):
        compute_claimable(cfg, 5, 11, 12)


@settings(max_examples=200, deadline=None)
@given(
    start=st.integers(min_value=0, max_value=10**9),
    window=st.integers(min_value=1, max_value=10**6),
    extra=st.integers(min_value=0, max_value=10**12),
    steps=st.lists(st.integers(min_value=0, max_value=10**6), min_size=1, max_size=20),
)
def test_accrual_sequences_never_exceed_allocation(start, window, extra, steps):
    allocation = window + extra
    cfg = _cfg(start=start, end=start + window, allocation=allocation, count=1)
    claimed, last, now = 0, start, start
    for step in steps:
        now += step
        if now == last:
            continue
        acc = compute_claimable(cfg, last, claimed, now)
        assert acc.claimable >= 0
        claimed += acc.claimable
        last = max(last, acc.accrual_time)
        assert claimed <= allocation
        if last == cfg.end_time:
            break
    # Settling at (or after) the end always lands exactly on the allocation.
    if last != cfg.end_time:
        claimed += compute_claimable(cfg, last, claimed, cfg.end_time + 1).claimable
    assert claimed == allocation
