import pytest

from emission.errors import InsufficientAllowance, InsufficientBalance
from emission.tests import ALICE, BOB, CAROL
from emission.token import InMemoryToken, supports_checkpoints


def _token() -> InMemoryToken:
    t = InMemoryToken()
    t.mint(ALICE, 100)
    return t


def test_transfer_and_pull():
    t = _token()
    t.transfer(ALICE, BOB, 30)
    t.approve(ALICE, CAROL, 20)
    t.transfer_from(CAROL, ALICE, CAROL, 15)
    assert (t.balance_of(ALICE), t.balance_of(BOB), t.balance_of(CAROL)) == (55, 30, 15)
    assert t.allowance(ALICE, CAROL) == 5
    with pytest.raises(InsufficientAllowance):
        t.transfer_from(CAROL, ALICE, CAROL, 6)
    with pytest.raises(InsufficientBalance):
        t.transfer(BOB, CAROL, 31)


def test_revert_undoes_balances_allowances_and_supply():
    t = _token()
    t.begin()
    t.transfer(ALICE, BOB, 40)
    t.approve(ALICE, CAROL, 7)
    t.mint(CAROL, 5)
    t.revert()
    assert t.balance_of(ALICE) == 100
    assert t.balance_of(BOB) == 0 and t.balance_of(CAROL) == 0
    assert t.allowance(ALICE, CAROL) == 0
    assert t.total_supply == 100
    assert t.transfers == []


def test_nested_checkpoints():
    t = _token()
    t.begin()
    t.transfer(ALICE, BOB, 10)
    t.begin()
    t.transfer(BOB, CAROL, 4)
    t.commit()
    t.begin()
    t.transfer(ALICE, CAROL, 50)
    t.revert()
    assert (t.balance_of(ALICE), t.balance_of(BOB), t.balance_of(CAROL)) == (90, 6, 4)
    t.revert()
    assert (t.balance_of(ALICE), t.balance_of(BOB), t.balance_of(CAROL)) == (100, 0, 0)


def test_receive_hook_runs_after_credit():
    t = _token()
    seen = []
    t.on_receive(BOB, lambda tok, sender, amount: seen.append((sender, amount, tok.balance_of(BOB))))
    t.transfer(ALICE, BOB, 9)
    assert seen == [(ALICE, 9, 9)]


def test_checkpoint_support_detection():
    class BareToken:
        def balance_of(self, account):
            return 0

        def transfer(self, sender, to, amount):
            pass

        def transfer_from(self, spender, owner, to, amount):
            pass

    assert supports_checkpoints(InMemoryToken())
    assert not supports_checkpoints(BareToken())
