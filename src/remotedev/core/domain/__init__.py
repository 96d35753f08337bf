"""Domain models and enums."""

from remotedev.core.domain.quota import (
    Disabled,
    Limit,
    Quota,
    Unlimited,
    decode_quota,
    quota_exceeded,
)
from remotedev.core.domain.sealed import SealedValue
from remotedev.core.domain.workspace import (
    TERMINAL_DESIRED_STATE,
    VALID_ACTUAL_STATES,
    VALID_DESIRED_STATES,
    ActualState,
    DesiredState,
    UpdateType,
    VariableType,
)

__all__ = [
    "ActualState",
    "DesiredState",
    "UpdateType",
    "VariableType",
    "TERMINAL_DESIRED_STATE",
    "VALID_ACTUAL_STATES",
    "VALID_DESIRED_STATES",
    "Quota",
    "Unlimited",
    "Disabled",
    "Limit",
    "decode_quota",
    "quota_exceeded",
    "SealedValue",
]
