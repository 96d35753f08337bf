"""Quota decoding and evaluation.

Agent configs store quotas as plain integers with two sentinels:
-1 means unlimited and 0 means disabled. They are decoded into a tagged
variant before any comparison.
"""

from typing import Literal

from pydantic import BaseModel

UNLIMITED_SENTINEL = -1
DISABLED_SENTINEL = 0


class Unlimited(BaseModel):
    kind: Literal["unlimited"] = "unlimited"

    model_config = {"frozen": True}


class Disabled(BaseModel):
    kind: Literal["disabled"] = "disabled"

    model_config = {"frozen": True}


class Limit(BaseModel):
    kind: Literal["limit"] = "limit"
    value: int

    model_config = {"frozen": True}


Quota = Unlimited | Disabled | Limit


def decode_quota(raw: int) -> Quota:
    """Decode a stored quota integer.

    Raises:
        ValueError: If raw is below -1
    """
    if raw == UNLIMITED_SENTINEL:
        return Unlimited()
    if raw == DISABLED_SENTINEL:
        return Disabled()
    if raw > 0:
        return Limit(value=raw)
    raise ValueError(f"Invalid quota value: {raw}")


def quota_exceeded(quota: Quota, count: int) -> bool:
    """Return True if one more workspace would exceed the quota.

    Args:
        quota: Decoded quota
        count: Current number of non-terminated workspaces in scope
    """
    match quota:
        case Unlimited():
            return False
        case Disabled():
            return True
        case Limit(value=value):
            return count >= value
