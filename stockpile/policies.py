"""Policy and result enumerations for the resource ledger."""
from __future__ import annotations

from enum import Enum
from typing import Dict


class OverflowPolicy(str, Enum):
    """What happens when an addition would exceed ``max_capacity``."""

    CLAMP = "clamp"
    REJECT = "reject"
    ALLOW = "allow"


class DeficitPolicy(str, Enum):
    """What happens when a removal would drive the amount below zero."""

    CLAMP = "clamp"
    REJECT = "reject"
    ALLOW_NEGATIVE = "allow_negative"


class LedgerResult(str, Enum):
    """Outcome of a fallible ledger operation."""

    SUCCESS = "success"
    INSUFFICIENT = "insufficient"
    OVERFLOW = "overflow"
    NOT_DEFINED = "not_defined"

    @property
    def ok(self) -> bool:
        return self is LedgerResult.SUCCESS


_OVERFLOW_LOOKUP: Dict[str, OverflowPolicy] = {
    policy.value: policy for policy in OverflowPolicy
}
_DEFICIT_LOOKUP: Dict[str, DeficitPolicy] = {
    policy.value: policy for policy in DeficitPolicy
}
# "allow" reads naturally for both policy kinds in hand-written config files.
_DEFICIT_LOOKUP["allow"] = DeficitPolicy.ALLOW_NEGATIVE


def coerce_overflow_policy(value: OverflowPolicy | str) -> OverflowPolicy:
    """Return ``value`` as an :class:`OverflowPolicy`.

    Strings are matched case-insensitively against the policy values. A
    :class:`ValueError` is raised for anything else.
    """

    if isinstance(value, OverflowPolicy):
        return value
    policy = _OVERFLOW_LOOKUP.get(str(value).strip().lower().replace("-", "_"))
    if policy is None:
        raise ValueError(f"Unknown overflow policy: {value}")
    return policy


def coerce_deficit_policy(value: DeficitPolicy | str) -> DeficitPolicy:
    """Return ``value`` as a :class:`DeficitPolicy`."""

    if isinstance(value, DeficitPolicy):
        return value
    policy = _DEFICIT_LOOKUP.get(str(value).strip().lower().replace("-", "_"))
    if policy is None:
        raise ValueError(f"Unknown deficit policy: {value}")
    return policy


__all__ = [
    "DeficitPolicy",
    "LedgerResult",
    "OverflowPolicy",
    "coerce_deficit_policy",
    "coerce_overflow_policy",
]
