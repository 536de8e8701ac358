# tests/test_coordinator.py
import pytest

from order_backoffice.modules.orders.coordinator import MutationCoordinator, StateSlot
from order_backoffice.modules.orders.errors import MutationInFlight, RemoteFailure, ValidationError


class Boom(Exception):
    pass


def _fail(_value):
    raise Boom("store down")


def test_success_keeps_optimistic_value(qtbot):
    slot = StateSlot(1)
    coord = MutationCoordinator()
    seen = []
    slot.changed.connect(seen.append)
    dispatched = []

    with qtbot.waitSignal(coord.succeeded) as blocker:
        result = coord.apply(slot, lambda v: v + 1, dispatched.append, key="k", success_message="Saved.")

    assert result == 2
    assert slot.value == 2
    assert dispatched == [2]
    assert seen == [2]
    assert blocker.args == ["Saved."]


def test_failure_restores_snapshot_and_raises(qtbot):
    before = {"name": "Ana"}
    slot = StateSlot(before)
    coord = MutationCoordinator()
    seen = []
    slot.changed.connect(seen.append)

    with qtbot.waitSignal(coord.failed):
        with pytest.raises(RemoteFailure) as exc:
            coord.apply(slot, lambda v: {**v, "name": "Bob"}, _fail, key="k")

    assert slot.value is before
    assert seen == [{"name": "Bob"}, before]
    assert isinstance(exc.value.__cause__, Boom)
    # the key is free again after the failure
    assert not coord.is_pending("k")


def test_transform_error_changes_nothing():
    slot = StateSlot(5)
    coord = MutationCoordinator()
    dispatched = []

    def bad(_):
        raise ValidationError("nope")

    with pytest.raises(ValidationError):
        coord.apply(slot, bad, dispatched.append, key="k")
    assert slot.value == 5
    assert dispatched == []


def test_second_mutation_on_same_key_is_refused():
    slot = StateSlot(0)
    coord = MutationCoordinator()
    inner = {}

    def dispatch(_value):
        with pytest.raises(MutationInFlight):
            coord.apply(slot, lambda v: v + 10, lambda _: None, key="k")
        inner["other"] = coord.apply(slot, lambda v: v + 10, lambda _: None, key="other")

    coord.apply(slot, lambda v: v + 1, dispatch, key="k")
    assert inner["other"] == 11
    assert slot.value == 11


def test_run_wraps_store_failure(qtbot):
    coord = MutationCoordinator()

    def boom():
        raise Boom("x")

    with qtbot.waitSignal(coord.failed) as blocker:
        with pytest.raises(RemoteFailure):
            coord.run(boom, key="draft", op="create", failure_message="Saving the order failed.")
    assert blocker.args == ["Saving the order failed."]
    assert coord.run(lambda: 42, key="draft", op="create") == 42


def test_unchanged_value_is_not_dispatched(qtbot):
    value = {"stage": "poruceno"}
    slot = StateSlot(value)
    coord = MutationCoordinator()
    dispatched, notices = [], []
    coord.succeeded.connect(notices.append)

    assert coord.apply(slot, lambda v: v, dispatched.append, key="k", success_message="Saved.") is value
    assert dispatched == []
    assert notices == []
    assert not coord.is_pending("k")
