import pytest

from emission.errors import (ExcessDeposit, InvalidAmount, InvalidNewDeadline,
                             InvariantError, PrematureWithdrawal,
                             WithdrawDisabled)
from emission.ledger import DEADLINE_BUFFER_SECONDS, FinancingLedger
from emission.types import StreamConfig


def _ledger() -> FinancingLedger:
    return FinancingLedger(StreamConfig.create(start_time=2, end_time=12, allocation_per_entity=10, entity_count=4))


def test_buffer_is_fourteen_days():
    assert DEADLINE_BUFFER_SECONDS == 14 * 86_400 == 1_209_600


def test_deposit_cap_is_total_allocation():
    fin = _ledger()
    assert fin.record_deposit(40) == 40
    with pytest.raises(ExcessDeposit):
        fin.record_deposit(1)
    assert fin.total_deposited == 40


def test_deposit_over_allocation_in_one_go_fails():
    fin = _ledger()
    with pytest.raises(ExcessDeposit):
        fin.record_deposit(41)
    assert fin.total_deposited == 0


@pytest.mark.parametrize("amount", [0, -5, True, 2.5])
def test_deposit_amount_must_be_positive_int(amount):
    with pytest.raises(InvalidAmount):
        _ledger().record_deposit(amount)


def test_withdraw_gating():
    fin = _ledger()
    fin.record_deposit(40)
    fin.record_claimed(15)
    with pytest.raises(WithdrawDisabled):
        fin.prepare_withdrawal(10**9)

    deadline = 12 + DEADLINE_BUFFER_SECONDS
    assert fin.set_deadline(deadline, now=0) == 0
    with pytest.raises(PrematureWithdrawal):
        fin.prepare_withdrawal(deadline)
    assert fin.prepare_withdrawal(deadline + 1) == 25

    fin.record_withdrawal(25)
    assert fin.prepare_withdrawal(deadline + 2) == 0


def test_withdrawable_floors_at_zero():
    fin = _ledger()
    fin.record_deposit(5)
    fin.record_claimed(8)
    assert fin.withdrawable() == 0


def test_deadline_buffer_uses_later_of_end_and_now():
    fin = _ledger()
    with pytest.raises(InvalidNewDeadline):
        fin.set_deadline(12 + DEADLINE_BUFFER_SECONDS - 1, now=0)

    now = 1_000_000
    with pytest.raises(InvalidNewDeadline):
        fin.set_deadline(12 + DEADLINE_BUFFER_SECONDS, now=now)
    fin.set_deadline(now + DEADLINE_BUFFER_SECONDS, now=now)
    assert fin.deadline == now + DEADLINE_BUFFER_SECONDS


def test_load_rejects_overfunded_state():
    fin = _ledger()
    with pytest.raises(InvariantError):
        fin.load({"total_deposited": 41, "total_claimed": 0, "deadline": 0})


def test_past_deadline_needs_a_deadline():
    fin = _ledger()
    assert not fin.is_past_deadline(10**12)
    deadline = 12 + DEADLINE_BUFFER_SECONDS
    fin.set_deadline(deadline, now=0)
    assert not fin.is_past_deadline(deadline)
    assert fin.is_past_deadline(deadline + 1)
