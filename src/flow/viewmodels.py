from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Tuple

from state.manager import AppStateManager
from state.models import AppState, PaymentStatus


Intent = Callable[[AppStateManager], None]


class UnknownIntentError(KeyError):
    """Raised when a view model is asked for an intent it does not expose."""


@dataclass(frozen=True)
class CoordinatorViewModel:
    """Read-only projection used to pick which screen to display."""

    manager: AppStateManager

    @property
    def app_state(self) -> AppState:
        return self.manager.app_state


@dataclass(frozen=True)
class ScreenViewModel:
    """
    Forwards a fixed set of named intents to the manager.

    One class serves every screen; what differs is the intent table handed
    in by the factories below. The view model holds no state of its own.
    """

    manager: AppStateManager
    intents: Mapping[str, Intent]

    @property
    def app_state(self) -> AppState:
        return self.manager.app_state

    @property
    def payment_status(self) -> PaymentStatus:
        return self.manager.payment_status

    def intent_names(self) -> Tuple[str, ...]:
        return tuple(self.intents)

    def send(self, name: str) -> None:
        try:
            intent = self.intents[name]
        except KeyError:
            raise UnknownIntentError(name) from None
        intent(self.manager)


ONBOARDING_INTENTS: Dict[str, Intent] = {
    "finish_onboarding": AppStateManager.finish_onboarding,
}
PAYWALL_INTENTS: Dict[str, Intent] = {
    "process_payment": AppStateManager.process_payment,
}
APP_INTENTS: Dict[str, Intent] = {
    "reset_onboarding": AppStateManager.reset_onboarding,
    "expire_payment": AppStateManager.expire_payment,
}


def onboarding_view_model(manager: AppStateManager) -> ScreenViewModel:
    return ScreenViewModel(manager=manager, intents=ONBOARDING_INTENTS)


def paywall_view_model(manager: AppStateManager) -> ScreenViewModel:
    return ScreenViewModel(manager=manager, intents=PAYWALL_INTENTS)


def app_view_model(manager: AppStateManager) -> ScreenViewModel:
    return ScreenViewModel(manager=manager, intents=APP_INTENTS)
