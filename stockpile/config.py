"""Centralised configuration for the resource ledger and its service layer."""
from __future__ import annotations

import os
from enum import Enum
from typing import Dict, Mapping, Tuple, Type, TypeVar

from .kinds import kind_from_id
from .models import ResourceDefinition
from .policies import (
    DeficitPolicy,
    OverflowPolicy,
    coerce_deficit_policy,
    coerce_overflow_policy,
)

E = TypeVar("E", bound=Enum)

# ---------------------------------------------------------------------------
# Defaults

DEFAULT_OVERFLOW_POLICY: OverflowPolicy = OverflowPolicy.CLAMP
DEFAULT_DEFICIT_POLICY: DeficitPolicy = DeficitPolicy.REJECT

LOG_LEVEL: str = os.environ.get("STOCKPILE_LOG_LEVEL", "INFO").upper()

# Seconds of simulated time applied by /api/tick when the body omits ``dt``.
TICK_DEFAULT_DT: float = 1.0

_DEFINITION_FIELDS: Tuple[str, ...] = (
    "initial_amount",
    "max_capacity",
    "overflow_policy",
    "deficit_policy",
    "display_name",
)

# Short spellings accepted in hand-written tables.
_FIELD_ALIASES: Dict[str, str] = {
    "initial": "initial_amount",
    "amount": "initial_amount",
    "capacity": "max_capacity",
    "overflow": "overflow_policy",
    "deficit": "deficit_policy",
    "name": "display_name",
}


def definition_from_mapping(mapping: Mapping[str, object]) -> ResourceDefinition:
    """Build a :class:`ResourceDefinition` from a plain mapping.

    Policy values may be given as strings. Unknown keys raise
    :class:`ValueError` so typos in config tables do not pass silently.
    """

    values: Dict[str, object] = {}
    for raw_key, value in mapping.items():
        key = _FIELD_ALIASES.get(str(raw_key), str(raw_key))
        if key not in _DEFINITION_FIELDS:
            raise ValueError(f"Unknown resource definition field: {raw_key}")
        values[key] = value

    display_name = values.get("display_name")
    return ResourceDefinition(
        initial_amount=float(values.get("initial_amount", 0.0)),  # type: ignore[arg-type]
        max_capacity=float(values.get("max_capacity", 0.0)),  # type: ignore[arg-type]
        overflow_policy=coerce_overflow_policy(
            values.get("overflow_policy", DEFAULT_OVERFLOW_POLICY)  # type: ignore[arg-type]
        ),
        deficit_policy=coerce_deficit_policy(
            values.get("deficit_policy", DEFAULT_DEFICIT_POLICY)  # type: ignore[arg-type]
        ),
        display_name=None if display_name is None else str(display_name),
    )


def definitions_from_config(
    kind_type: Type[E],
    table: Mapping[E | str, Mapping[str, object] | ResourceDefinition],
) -> Dict[E, ResourceDefinition]:
    """Resolve a config table into definitions keyed by ``kind_type`` members."""

    definitions: Dict[E, ResourceDefinition] = {}
    for key, entry in table.items():
        kind = kind_from_id(kind_type, key)
        if isinstance(entry, ResourceDefinition):
            definitions[kind] = entry
        else:
            definitions[kind] = definition_from_mapping(entry)
    return definitions


# ---------------------------------------------------------------------------
# Demo economy served by the HTTP layer


class DemoResource(str, Enum):
    """Kinds tracked by the demo ledger."""

    CREDITS = "CREDITS"
    ENERGY = "ENERGY"
    MINERALS = "MINERALS"
    FOOD = "FOOD"
    RESEARCH = "RESEARCH"


DEMO_TABLE: Dict[str, Dict[str, object]] = {
    "credits": {
        "initial": 500,
        "capacity": 10000,
        "overflow": "clamp",
        "deficit": "allow_negative",
        "name": "Credits",
    },
    "energy": {"initial": 100, "capacity": 500, "overflow": "clamp", "deficit": "clamp", "name": "Energy"},
    "minerals": {"initial": 50, "capacity": 1000, "overflow": "reject", "deficit": "reject", "name": "Minerals"},
    "food": {"initial": 200, "capacity": 400, "overflow": "clamp", "deficit": "clamp", "name": "Food"},
    "research": {"initial": 0, "capacity": 0, "name": "Research"},
}

DEMO_DEFINITIONS: Dict[DemoResource, ResourceDefinition] = definitions_from_config(
    DemoResource, DEMO_TABLE
)

# Per-second rates installed on reset: (production, consumption).
DEMO_RATES: Dict[DemoResource, Tuple[float, float]] = {
    DemoResource.CREDITS: (5.0, 2.0),
    DemoResource.ENERGY: (10.0, 3.0),
    DemoResource.FOOD: (4.0, 6.0),
}
