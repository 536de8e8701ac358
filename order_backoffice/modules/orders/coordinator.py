"""
modules/orders/coordinator.py

Optimistic mutations.

A StateSlot holds one piece of client state (an Order, or the list of loaded
orders). MutationCoordinator.apply() runs one edit against a slot:

    1. refuse if the same key already has a mutation pending
    2. compute the next value (validation errors surface here, nothing changed)
    3. publish it to the slot right away
    4. hand it to the store
    5. on failure put the snapshot back, announce it, raise RemoteFailure

Rollback restores the exact pre-mutation value, never a recomputed one.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from PySide6.QtCore import QObject, Signal

from ...utils.loggers import log_event
from .errors import MutationInFlight, RemoteFailure

_log = logging.getLogger(__name__)

DEFAULT_FAILURE_MESSAGE = "Saving failed. The previous values were restored."


class StateSlot(QObject):
    """Observable holder for one client-side value."""

    changed = Signal(object)

    def __init__(self, value: Any = None, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._value = value

    @property
    def value(self) -> Any:
        return self._value

    def set(self, value: Any) -> None:
        if value is self._value:
            return
        self._value = value
        self.changed.emit(value)


class MutationCoordinator(QObject):
    # Operator-facing notices (toast text)
    succeeded = Signal(str)
    failed = Signal(str)

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._in_flight: set[str] = set()

    def is_pending(self, key: str) -> bool:
        return key in self._in_flight

    def apply(
        self,
        slot: StateSlot,
        transform: Callable[[Any], Any],
        dispatch: Callable[[Any], Any],
        *,
        key: str,
        op: str = "update",
        success_message: str | None = None,
        failure_message: str = DEFAULT_FAILURE_MESSAGE,
    ) -> Any:
        """
        Apply `transform` to the slot value optimistically and persist it via
        `dispatch(next_value)`. Returns the committed value.

        When `transform` hands back the snapshot itself nothing is dispatched.

        Raises whatever `transform` raises (slot untouched), MutationInFlight
        when `key` is busy, and RemoteFailure (slot rolled back) when
        `dispatch` fails.
        """
        if key in self._in_flight:
            raise MutationInFlight("This order is still saving. Try again in a moment.")

        snapshot = slot.value
        next_value = transform(snapshot)
        if next_value is snapshot:
            _log.debug("Mutation %s on %s changes nothing; not dispatched", op, key)
            return snapshot

        self._in_flight.add(key)
        try:
            slot.set(next_value)
            log_event(_log, op, "dispatch", "Mutation dispatched", {"key": key}, level=logging.DEBUG)
            try:
                dispatch(next_value)
            except Exception as e:
                slot.set(snapshot)
                _log.exception("Mutation %s on %s failed; state restored", op, key)
                log_event(
                    _log, op, "rollback", "Mutation rolled back",
                    {"key": key, "error": str(e)}, level=logging.WARNING,
                )
                self.failed.emit(failure_message)
                raise RemoteFailure(failure_message) from e
        finally:
            self._in_flight.discard(key)

        log_event(_log, op, "commit", "Mutation committed", {"key": key})
        if success_message:
            self.succeeded.emit(success_message)
        return next_value

    def run(
        self,
        dispatch: Callable[[], Any],
        *,
        key: str,
        op: str,
        success_message: str | None = None,
        failure_message: str = DEFAULT_FAILURE_MESSAGE,
    ) -> Any:
        """
        Non-optimistic store call (create, delete) under the same in-flight
        guard and failure reporting as apply(). Returns dispatch()'s result.
        """
        if key in self._in_flight:
            raise MutationInFlight("This order is still saving. Try again in a moment.")
        self._in_flight.add(key)
        try:
            result = dispatch()
        except Exception as e:
            _log.exception("Store call %s on %s failed", op, key)
            log_event(_log, op, "failed", "Store call failed", {"key": key, "error": str(e)}, level=logging.WARNING)
            self.failed.emit(failure_message)
            raise RemoteFailure(failure_message) from e
        finally:
            self._in_flight.discard(key)

        log_event(_log, op, "commit", "Store call committed", {"key": key})
        if success_message:
            self.succeeded.emit(success_message)
        return result
