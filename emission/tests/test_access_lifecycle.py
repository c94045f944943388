import pytest

from emission.access import AccessControl
from emission.errors import (ContractPaused, InvalidAddress, IsFrozen,
                             NotFrozen, NotPaused, OnlyDepositor, OnlyOwner,
                             OnlyOwnerOrOperator, OnlyPendingOwner,
                             ZeroAddress)
from emission.lifecycle import Lifecycle, LifecycleState
from emission.tests import DEPOSITOR, OPERATOR, OWNER, STRANGER, addr
from emission.types import ZERO_ADDRESS


def _access(operator=OPERATOR) -> AccessControl:
    return AccessControl(owner=OWNER, depositor=DEPOSITOR, operator=operator)


def test_roles_must_be_real_addresses():
    with pytest.raises(ZeroAddress):
        AccessControl(owner=ZERO_ADDRESS, depositor=DEPOSITOR)
    with pytest.raises(ZeroAddress):
        AccessControl(owner=OWNER, depositor=ZERO_ADDRESS)
    with pytest.raises(InvalidAddress):
        AccessControl(owner="0x1234", depositor=DEPOSITOR)


def test_addresses_are_normalised():
    upper = "0x" + "AB" * 20
    ac = AccessControl(owner=upper, depositor=DEPOSITOR)
    assert ac.owner == upper.lower()
    assert ac.require_owner(upper) == upper.lower()


def test_guards():
    ac = _access()
    ac.require_owner(OWNER)
    ac.require_depositor(DEPOSITOR)
    ac.require_owner_or_operator(OPERATOR)
    with pytest.raises(OnlyOwner):
        ac.require_owner(OPERATOR)
    with pytest.raises(OnlyDepositor):
        ac.require_depositor(OWNER)
    with pytest.raises(OnlyOwnerOrOperator):
        ac.require_owner_or_operator(STRANGER)


def test_unset_operator_matches_nobody():
    ac = _access(operator=ZERO_ADDRESS)
    with pytest.raises(OnlyOwnerOrOperator):
        ac.require_owner_or_operator(ZERO_ADDRESS)


def test_two_step_ownership():
    ac = _access()
    new = addr(0x5E)
    with pytest.raises(OnlyOwner):
        ac.transfer_ownership(STRANGER, new)
    assert ac.transfer_ownership(OWNER, new) == new
    assert ac.owner == OWNER
    with pytest.raises(OnlyPendingOwner):
        ac.accept_ownership(STRANGER)
    assert ac.accept_ownership(new) == (OWNER, new)
    assert ac.owner == new and ac.pending_owner == ZERO_ADDRESS
    with pytest.raises(OnlyOwner):
        ac.update_operator(OWNER, STRANGER)


def test_nominating_zero_cancels_pending_transfer():
    ac = _access()
    ac.transfer_ownership(OWNER, STRANGER)
    ac.transfer_ownership(OWNER, ZERO_ADDRESS)
    with pytest.raises(OnlyPendingOwner):
        ac.accept_ownership(STRANGER)
    with pytest.raises(OnlyPendingOwner):
        ac.accept_ownership(ZERO_ADDRESS)


def test_role_and_module_setters():
    ac = _access()
    assert ac.update_depositor(OWNER, STRANGER) == DEPOSITOR
    with pytest.raises(ZeroAddress):
        ac.update_depositor(OWNER, ZERO_ADDRESS)
    assert ac.update_operator(OWNER, ZERO_ADDRESS) == OPERATOR

    m = addr(0x30)
    assert ac.update_module(OWNER, m, True) is False
    assert ac.is_module(m)
    assert ac.update_module(OWNER, m, False) is True
    assert not ac.is_module(m)
    with pytest.raises(ZeroAddress):
        ac.update_module(OWNER, ZERO_ADDRESS, True)
    with pytest.raises(OnlyOwner):
        ac.update_module(STRANGER, m, True)


def test_access_dump_load():
    ac = _access()
    ac.update_module(OWNER, addr(0x30), True)
    ac.transfer_ownership(OWNER, STRANGER)
    other = _access()
    other.load(ac.dump())
    assert other.roles() == ac.roles()
    assert other.modules() == ac.modules()


# ---- lifecycle -----------------------------------------------------------------


def test_lifecycle_transitions():
    lc = Lifecycle(_access())
    assert lc.state is LifecycleState.ACTIVE
    lc.require_active()
    with pytest.raises(NotPaused):
        lc.unpause(OWNER)
    with pytest.raises(NotPaused):
        lc.freeze(OWNER, 5)

    lc.pause(OPERATOR)
    assert lc.state is LifecycleState.PAUSED
    with pytest.raises(ContractPaused):
        lc.require_active()
    with pytest.raises(ContractPaused):
        lc.pause(OWNER)
    with pytest.raises(OnlyOwner):
        lc.unpause(OPERATOR)

    lc.unpause(OWNER)
    assert lc.state is LifecycleState.ACTIVE


def test_freeze_is_one_way():
    lc = Lifecycle(_access())
    with pytest.raises(NotFrozen):
        lc.require_frozen()
    lc.pause(OWNER)
    with pytest.raises(OnlyOwner):
        lc.freeze(OPERATOR, 9)
    assert lc.freeze(OWNER, 9) == 9
    assert lc.state is LifecycleState.FROZEN
    assert lc.is_paused() and lc.is_frozen() and lc.frozen_at == 9
    lc.require_frozen()
    with pytest.raises(IsFrozen):
        lc.freeze(OWNER, 10)
    with pytest.raises(IsFrozen):
        lc.unpause(OWNER)
    with pytest.raises(ContractPaused):
        lc.require_active()


def test_lifecycle_load_rejects_frozen_without_pause():
    lc = Lifecycle(_access())
    with pytest.raises(ValueError):
        lc.load({"paused": False, "frozen_at": 3})
