"""Helpers for the caller-supplied enumeration of resource kinds.

A ledger accepts any hashable key. Most callers pass members of an
:class:`~enum.Enum`; the helpers below resolve textual identifiers (from JSON
bodies, URLs or config files) into those members.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, Hashable, Mapping, Type, TypeVar

K = TypeVar("K", bound=Hashable)
E = TypeVar("E", bound=Enum)

_LOOKUP_CACHE: Dict[Type[Enum], Dict[str, Enum]] = {}


def _lookup_table(kind_type: Type[E]) -> Dict[str, E]:
    table = _LOOKUP_CACHE.get(kind_type)
    if table is None:
        table = {}
        for member in kind_type:
            table[member.name.lower()] = member
            if isinstance(member.value, str):
                table[member.value.lower()] = member
        _LOOKUP_CACHE[kind_type] = table
    return table  # type: ignore[return-value]


def ensure_hashable(kind: object) -> Hashable:
    """Return ``kind`` unchanged, raising :class:`TypeError` if unusable as a key."""

    try:
        hash(kind)
    except TypeError as exc:
        raise TypeError(f"Resource kind must be hashable, got {type(kind).__name__}") from exc
    return kind  # type: ignore[return-value]


def kind_from_id(kind_type: Type[E], identifier: E | str) -> E:
    """Return the member of ``kind_type`` matching ``identifier``.

    Both the member name and a string value are accepted, regardless of
    capitalisation. A :class:`KeyError` is raised if nothing matches.
    """

    if isinstance(identifier, kind_type):
        return identifier
    member = _lookup_table(kind_type).get(str(identifier).strip().lower())
    if member is None:
        raise KeyError(f"Unknown resource kind: {identifier}")
    return member


def kind_id(kind: Hashable) -> str:
    """Return the public identifier used for ``kind`` in payloads."""

    if isinstance(kind, Enum):
        value = kind.value
        return value.lower() if isinstance(value, str) else kind.name.lower()
    return str(kind)


def normalise_mapping(kind_type: Type[E], mapping: Mapping[E | str, float]) -> Dict[E, float]:
    """Return a new mapping with keys resolved to ``kind_type`` members.

    Keys that resolve to the same member (``"food"`` and ``"FOOD"``) are summed.
    """

    resolved: Dict[E, float] = {}
    for key, amount in mapping.items():
        kind = kind_from_id(kind_type, key)
        resolved[kind] = resolved.get(kind, 0.0) + float(amount)
    return resolved


__all__ = [
    "ensure_hashable",
    "kind_from_id",
    "kind_id",
    "normalise_mapping",
]
