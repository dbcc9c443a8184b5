from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from state.manager import AppStateManager
from state.models import AppState, FlowSnapshot

from .viewmodels import (
    CoordinatorViewModel,
    ScreenViewModel,
    app_view_model,
    onboarding_view_model,
    paywall_view_model,
)


logger = logging.getLogger(__name__)


class UnknownActionError(LookupError):
    """Raised when a pressed button is not on the visible screen."""


@dataclass(frozen=True)
class Button:
    label: str
    intent: str


@dataclass(frozen=True)
class Screen:
    title: str
    buttons: Tuple[Button, ...]

    def labels(self) -> Tuple[str, ...]:
        return tuple(b.label for b in self.buttons)

    def render(self) -> str:
        lines = [self.title]
        lines.extend(f"  [{b.label}]" for b in self.buttons)
        return "\n".join(lines)


ONBOARDING_SCREEN = Screen(
    title="OnboardingView",
    buttons=(Button("Finish Onboarding", "finish_onboarding"),),
)
PAYWALL_SCREEN = Screen(
    title="Paywall",
    buttons=(Button("Pay", "process_payment"),),
)
APP_SCREEN = Screen(
    title="AppView",
    buttons=(
        Button("Reset Onboarding", "reset_onboarding"),
        Button("Expire Payment", "expire_payment"),
    ),
)

# One entry per AppState member: routing is exhaustive and exclusive
ROUTES: Dict[AppState, Tuple[Screen, Callable[[AppStateManager], ScreenViewModel]]] = {
    AppState.ONBOARDING: (ONBOARDING_SCREEN, onboarding_view_model),
    AppState.PAYWALL: (PAYWALL_SCREEN, paywall_view_model),
    AppState.APP: (APP_SCREEN, app_view_model),
}


class RootCoordinator:
    """
    Shows the screen matching the current `AppState` and routes presses.

    The coordinator subscribes to the manager on construction; each change
    notification re-renders and, when `on_render` is given, hands the text
    to it. Call `close()` to stop listening.
    """

    def __init__(
        self,
        manager: AppStateManager,
        *,
        on_render: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._manager = manager
        self._view_model = CoordinatorViewModel(manager)
        self._on_render = on_render
        self._unsubscribe = manager.subscribe(self._on_change)

    def _on_change(self, snapshot: FlowSnapshot) -> None:
        logger.debug("state changed: %s", snapshot.as_dict())
        if self._on_render is not None:
            self._on_render(self.render())

    def current_screen(self) -> Screen:
        screen, _ = ROUTES[self._view_model.app_state]
        return screen

    def current_view_model(self) -> ScreenViewModel:
        _, factory = ROUTES[self._view_model.app_state]
        return factory(self._manager)

    def render(self) -> str:
        return self.current_screen().render()

    def press(self, label: str) -> None:
        """Invoke the intent behind `label` on the visible screen."""
        screen = self.current_screen()
        for button in screen.buttons:
            if button.label.lower() == label.strip().lower():
                self.current_view_model().send(button.intent)
                return
        raise UnknownActionError(f"{label!r} is not on screen {screen.title}")

    def close(self) -> None:
        self._unsubscribe()
