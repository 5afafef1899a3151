"""Data models for the resource ledger."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from .policies import (
    DeficitPolicy,
    OverflowPolicy,
    coerce_deficit_policy,
    coerce_overflow_policy,
)


@dataclass(frozen=True, slots=True)
class ResourceDefinition:
    """Configuration used when a kind is defined on a ledger.

    ``max_capacity`` of 0 means unlimited. ``initial_amount`` is taken as-is:
    it is not checked against the capacity or the deficit policy.
    """

    initial_amount: float = 0.0
    max_capacity: float = 0.0
    overflow_policy: OverflowPolicy = OverflowPolicy.CLAMP
    deficit_policy: DeficitPolicy = DeficitPolicy.REJECT
    display_name: Optional[str] = None


@dataclass(slots=True)
class ResourceRecord:
    """Mutable per-kind state owned by a ledger."""

    amount: float = 0.0
    max_capacity: float = 0.0
    production_rate: float = 0.0
    consumption_rate: float = 0.0
    overflow_policy: OverflowPolicy = OverflowPolicy.CLAMP
    deficit_policy: DeficitPolicy = DeficitPolicy.REJECT
    display_name: Optional[str] = None
    defined: bool = False

    @classmethod
    def from_definition(cls, definition: ResourceDefinition) -> "ResourceRecord":
        return cls(
            amount=float(definition.initial_amount),
            max_capacity=float(definition.max_capacity),
            overflow_policy=coerce_overflow_policy(definition.overflow_policy),
            deficit_policy=coerce_deficit_policy(definition.deficit_policy),
            display_name=definition.display_name,
            defined=True,
        )

    @property
    def limited(self) -> bool:
        return self.max_capacity > 0

    @property
    def net_rate(self) -> float:
        return self.production_rate - self.consumption_rate

    @property
    def fill_ratio(self) -> float:
        if self.max_capacity > 0:
            return min(1.0, self.amount / self.max_capacity)
        return 0.0


@dataclass(frozen=True, slots=True)
class ResourceSummary:
    """Point-in-time view of a single kind."""

    amount: float
    capacity: float
    production: float
    consumption: float
    net_rate: float
    fill_ratio: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "amount": self.amount,
            "capacity": self.capacity,
            "production": self.production,
            "consumption": self.consumption,
            "net_rate": self.net_rate,
            "fill_ratio": self.fill_ratio,
        }
