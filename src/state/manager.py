from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List

from .models import (
    KEY_APP_STATE,
    KEY_IS_ONBOARDED,
    KEY_PAYMENT_STATUS,
    AppState,
    FlowSnapshot,
    PaymentStatus,
    decode_flag,
    decode_ordinal,
)
from .store import KeyValueStore


logger = logging.getLogger(__name__)

Listener = Callable[[FlowSnapshot], None]


class AppStateManager:
    """
    Single owner and mutator of the app-flow state.

    Construct one per session and pass it to whatever needs it. Values are
    read from `store` once, at construction; missing or unusable values fall
    back to `FlowSnapshot.default()` without writing anything back.

    Every field assignment writes that field to the store and then notifies
    listeners with a fresh `FlowSnapshot`, in that order. A listener that
    raises does not stop the transition: every assignment and write still
    happens, then the first listener error is re-raised to the caller.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._listeners: List[Listener] = []
        self._listener_errors: List[Exception] = []
        defaults = FlowSnapshot.default()

        raw_app_state = store.get(KEY_APP_STATE)
        raw_payment_status = store.get(KEY_PAYMENT_STATUS)
        raw_is_onboarded = store.get(KEY_IS_ONBOARDED)
        app_state = decode_ordinal(AppState, raw_app_state)
        payment_status = decode_ordinal(PaymentStatus, raw_payment_status)
        is_onboarded = decode_flag(raw_is_onboarded)
        _log_discarded(KEY_APP_STATE, raw_app_state, app_state)
        _log_discarded(KEY_PAYMENT_STATUS, raw_payment_status, payment_status)
        _log_discarded(KEY_IS_ONBOARDED, raw_is_onboarded, is_onboarded)

        self._app_state = app_state if app_state is not None else defaults.app_state
        self._payment_status = payment_status if payment_status is not None else defaults.payment_status
        self._is_onboarded = is_onboarded if is_onboarded is not None else defaults.is_onboarded

    # -------- Read-only state --------
    @property
    def app_state(self) -> AppState:
        return self._app_state

    @property
    def payment_status(self) -> PaymentStatus:
        return self._payment_status

    @property
    def is_onboarded(self) -> bool:
        return self._is_onboarded

    def snapshot(self) -> FlowSnapshot:
        return FlowSnapshot(
            app_state=self._app_state,
            payment_status=self._payment_status,
            is_onboarded=self._is_onboarded,
        )

    # -------- Observation --------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener`; returns a callable that removes it again."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception as ex:
                self._listener_errors.append(ex)

    @contextmanager
    def _transition(self, name: str) -> Iterator[None]:
        """Run one transition to completion, then surface the first listener error."""
        logger.debug("%s from %s/%s", name, self._app_state.name, self._payment_status.name)
        self._listener_errors = []
        yield
        errors, self._listener_errors = self._listener_errors, []
        if errors:
            if len(errors) > 1:
                logger.warning("%s: %d more listener errors after the first", name, len(errors) - 1)
            raise errors[0]

    # -------- Field assignment: update, persist, notify --------
    def _set_app_state(self, value: AppState) -> None:
        self._app_state = value
        self._save_app_state()
        self._notify()

    def _set_payment_status(self, value: PaymentStatus) -> None:
        self._payment_status = value
        self._save_payment_status()
        self._notify()

    def _save_app_state(self) -> None:
        self._store.set(KEY_APP_STATE, int(self._app_state))

    def _save_payment_status(self) -> None:
        self._store.set(KEY_PAYMENT_STATUS, int(self._payment_status))

    def _save_onboarding_status(self) -> None:
        self._store.set(KEY_IS_ONBOARDED, self._is_onboarded)

    # -------- Transitions --------
    def reset_onboarding(self) -> None:
        """Return to the onboarding screen. Payment status and the flag are untouched."""
        with self._transition("reset_onboarding"):
            self._set_app_state(AppState.ONBOARDING)
            self._save_onboarding_status()

    def finish_onboarding(self) -> None:
        """Leave onboarding: to the app when paid, to the paywall when expired.

        `is_onboarded` is written back unchanged; no transition sets it.
        """
        with self._transition("finish_onboarding"):
            if self._payment_status is PaymentStatus.PAID:
                self._set_app_state(AppState.APP)
            else:
                self._set_app_state(AppState.PAYWALL)
            self._save_onboarding_status()

    def process_payment(self) -> None:
        with self._transition("process_payment"):
            self._set_payment_status(PaymentStatus.PAID)
            self._set_app_state(AppState.APP)
            # Explicit re-write of both fields; idempotent
            self._save_app_state()
            self._save_payment_status()

    def expire_payment(self) -> None:
        with self._transition("expire_payment"):
            self._set_payment_status(PaymentStatus.EXPIRED)
            self._set_app_state(AppState.PAYWALL)
            self._save_app_state()
            self._save_payment_status()


def _log_discarded(key: str, raw: Any, decoded: Any) -> None:
    if decoded is None and raw is not None:
        logger.warning("Discarding unusable persisted %s=%r", key, raw)
