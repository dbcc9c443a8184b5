from __future__ import annotations

from enum import IntEnum
from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field


# Persisted key layout: three independent scalar entries
KEY_APP_STATE = "appState"
KEY_PAYMENT_STATUS = "paymentStatus"
KEY_IS_ONBOARDED = "isOnboarded"


class AppState(IntEnum):
    """Top-level screen selector. The integer value is the persisted ordinal."""

    ONBOARDING = 0
    PAYWALL = 1
    APP = 2


class PaymentStatus(IntEnum):
    """Simulated subscription status. The integer value is the persisted ordinal."""

    PAID = 0
    EXPIRED = 1


E = TypeVar("E", bound=IntEnum)


def decode_ordinal(enum_cls: Type[E], raw: Any) -> Optional[E]:
    """Map a stored ordinal to its enum member.

    Returns None for anything that is not an in-range integer. Booleans are
    rejected even though `bool` subclasses `int`.
    """
    if isinstance(raw, bool) or not isinstance(raw, int):
        return None
    try:
        return enum_cls(raw)
    except ValueError:
        return None


def decode_flag(raw: Any) -> Optional[bool]:
    return raw if isinstance(raw, bool) else None


class FlowSnapshot(BaseModel):
    """
    Immutable view of the three app-flow fields.

    Fields
    - app_state: which top-level screen is visible.
    - payment_status: decides where finishing onboarding lands.
    - is_onboarded: loaded and persisted, but no transition sets it.
    """

    model_config = ConfigDict(frozen=True)

    app_state: AppState = Field(default=AppState.ONBOARDING, description="Visible screen")
    payment_status: PaymentStatus = Field(
        default=PaymentStatus.EXPIRED,
        description="Simulated payment status",
    )
    is_onboarded: bool = Field(default=True, description="Onboarding flag (never set by transitions)")

    @classmethod
    def default(cls) -> "FlowSnapshot":
        """Values used on first launch or when persisted values are unusable."""
        return cls()

    def as_dict(self) -> Dict[str, Any]:
        """Plain dict using the persisted key names and enum names."""
        return {
            KEY_APP_STATE: self.app_state.name.lower(),
            KEY_PAYMENT_STATUS: self.payment_status.name.lower(),
            KEY_IS_ONBOARDED: self.is_onboarded,
        }
