"""Generic resource ledger with capacity, rate and policy enforcement."""
from __future__ import annotations

import logging
import math
from dataclasses import replace
from enum import Enum
from typing import Dict, Generic, Iterable, List, Mapping, Optional, Tuple, Type, Union

from .kinds import K, ensure_hashable
from .models import ResourceDefinition, ResourceRecord, ResourceSummary
from .policies import DeficitPolicy, LedgerResult, OverflowPolicy

logger = logging.getLogger(__name__)

Entries = Union[Mapping[K, float], Iterable[Tuple[K, float]]]


class SelfTransferError(ValueError):
    """Raised when a ledger is asked to transfer resources to itself."""


def _pairs(entries: Entries) -> List[Tuple[K, float]]:
    if isinstance(entries, Mapping):
        return [(kind, float(amount)) for kind, amount in entries.items()]
    return [(kind, float(amount)) for kind, amount in entries]


class ResourceLedger(Generic[K]):
    """Stores quantities, capacities and rates for a closed set of kinds.

    Keys are any hashable value, usually members of an :class:`~enum.Enum`.
    Passing ``kinds`` restricts :meth:`define` to members of that enumeration.
    Fallible operations return a :class:`LedgerResult` instead of raising.

    The ledger is not thread-safe; owners sharing it across threads must
    serialise access themselves (see :class:`stockpile.ledger_state.LedgerState`).
    """

    def __init__(self, kinds: Optional[Type[Enum]] = None) -> None:
        self.kinds = kinds
        self._records: Dict[K, ResourceRecord] = {}

    # ------------------------------------------------------------------
    def _record(self, kind: K) -> Optional[ResourceRecord]:
        # str-mixin members compare equal to their raw values.
        if self.kinds is not None and not isinstance(kind, self.kinds):
            return None
        try:
            record = self._records.get(kind)
        except TypeError:
            return None
        if record is None or not record.defined:
            return None
        return record

    def __contains__(self, kind: object) -> bool:
        return self._record(kind) is not None  # type: ignore[arg-type]

    def __len__(self) -> int:
        return self.defined_count()

    # Configuration ---------------------------------------------------
    def define(
        self,
        kind: K,
        definition: Optional[ResourceDefinition] = None,
        **overrides: object,
    ) -> None:
        """Insert or fully replace the record for ``kind``.

        Keyword ``overrides`` are applied on top of ``definition`` (or the
        defaults when it is omitted). Rates always start at zero.
        """

        ensure_hashable(kind)
        if self.kinds is not None and not isinstance(kind, self.kinds):
            raise KeyError(f"{kind!r} is not a member of {self.kinds.__name__}")
        if definition is None:
            definition = ResourceDefinition()
        if overrides:
            definition = replace(definition, **overrides)
        if kind in self._records:
            logger.debug("Redefining resource %s", kind)
        self._records[kind] = ResourceRecord.from_definition(definition)

    def define_many(
        self,
        entries: Union[
            Mapping[K, ResourceDefinition], Iterable[Tuple[K, ResourceDefinition]]
        ],
    ) -> None:
        items = entries.items() if isinstance(entries, Mapping) else entries
        for kind, definition in items:
            self.define(kind, definition)

    def is_defined(self, kind: K) -> bool:
        return self._record(kind) is not None

    # Quantities ------------------------------------------------------
    def get(self, kind: K) -> float:
        record = self._record(kind)
        return record.amount if record else 0.0

    def capacity(self, kind: K) -> float:
        """Return the capacity, 0 meaning unlimited (or undefined)."""

        record = self._record(kind)
        return record.max_capacity if record else 0.0

    def fill_ratio(self, kind: K) -> float:
        record = self._record(kind)
        return record.fill_ratio if record else 0.0

    def available_space(self, kind: K) -> float:
        record = self._record(kind)
        if record is None:
            return 0.0
        if not record.limited:
            return math.inf
        return max(0.0, record.max_capacity - record.amount)

    def display_name(self, kind: K) -> Optional[str]:
        record = self._record(kind)
        return record.display_name if record else None

    def has(self, kind: K, amount: float) -> bool:
        return self.get(kind) >= amount

    def has_space(self, kind: K, amount: float) -> bool:
        record = self._record(kind)
        if record is None:
            return False
        if not record.limited:
            return True
        return record.amount + amount <= record.max_capacity

    # Single-resource mutation ----------------------------------------
    def add(self, kind: K, amount: float) -> LedgerResult:
        """Add ``amount`` honouring the overflow policy.

        A negative ``amount`` behaves exactly like ``remove(kind, -amount)``.
        """

        if amount < 0:
            return self.remove(kind, -amount)
        record = self._record(kind)
        if record is None:
            return LedgerResult.NOT_DEFINED

        new_amount = record.amount + amount
        if record.limited and new_amount > record.max_capacity:
            if record.overflow_policy is OverflowPolicy.REJECT:
                logger.debug(
                    "Rejected add of %s to %s: capacity %s", amount, kind, record.max_capacity
                )
                return LedgerResult.OVERFLOW
            if record.overflow_policy is OverflowPolicy.CLAMP:
                new_amount = record.max_capacity
        record.amount = new_amount
        return LedgerResult.SUCCESS

    def remove(self, kind: K, amount: float) -> LedgerResult:
        """Remove ``amount`` honouring the deficit policy.

        A negative ``amount`` behaves exactly like ``add(kind, -amount)``.
        """

        if amount < 0:
            return self.add(kind, -amount)
        record = self._record(kind)
        if record is None:
            return LedgerResult.NOT_DEFINED

        new_amount = record.amount - amount
        if new_amount < 0:
            if record.deficit_policy is DeficitPolicy.REJECT:
                logger.debug(
                    "Rejected removal of %s from %s: only %s held", amount, kind, record.amount
                )
                return LedgerResult.INSUFFICIENT
            if record.deficit_policy is DeficitPolicy.CLAMP:
                new_amount = 0.0
        record.amount = new_amount
        return LedgerResult.SUCCESS

    def set(self, kind: K, amount: float) -> LedgerResult:
        """Assign ``amount`` directly, still subject to both policies."""

        record = self._record(kind)
        if record is None:
            return LedgerResult.NOT_DEFINED

        value = float(amount)
        if record.limited and value > record.max_capacity:
            if record.overflow_policy is OverflowPolicy.REJECT:
                return LedgerResult.OVERFLOW
            if record.overflow_policy is OverflowPolicy.CLAMP:
                value = record.max_capacity
        elif value < 0:
            if record.deficit_policy is DeficitPolicy.REJECT:
                return LedgerResult.INSUFFICIENT
            if record.deficit_policy is DeficitPolicy.CLAMP:
                value = 0.0
        record.amount = value
        return LedgerResult.SUCCESS

    def set_capacity(self, kind: K, capacity: float) -> LedgerResult:
        """Change the capacity; a lower ceiling always clamps the amount."""

        record = self._record(kind)
        if record is None:
            return LedgerResult.NOT_DEFINED
        record.max_capacity = float(capacity)
        if record.max_capacity > 0 and record.amount > record.max_capacity:
            record.amount = record.max_capacity
        return LedgerResult.SUCCESS

    # Rates -----------------------------------------------------------
    def set_production_rate(self, kind: K, rate: float) -> LedgerResult:
        record = self._record(kind)
        if record is None:
            return LedgerResult.NOT_DEFINED
        record.production_rate = float(rate)
        return LedgerResult.SUCCESS

    def add_production_rate(self, kind: K, rate: float) -> LedgerResult:
        record = self._record(kind)
        if record is None:
            return LedgerResult.NOT_DEFINED
        record.production_rate += float(rate)
        return LedgerResult.SUCCESS

    def set_consumption_rate(self, kind: K, rate: float) -> LedgerResult:
        record = self._record(kind)
        if record is None:
            return LedgerResult.NOT_DEFINED
        record.consumption_rate = float(rate)
        return LedgerResult.SUCCESS

    def add_consumption_rate(self, kind: K, rate: float) -> LedgerResult:
        record = self._record(kind)
        if record is None:
            return LedgerResult.NOT_DEFINED
        record.consumption_rate += float(rate)
        return LedgerResult.SUCCESS

    def production_rate(self, kind: K) -> float:
        record = self._record(kind)
        return record.production_rate if record else 0.0

    def consumption_rate(self, kind: K) -> float:
        record = self._record(kind)
        return record.consumption_rate if record else 0.0

    def net_rate(self, kind: K) -> float:
        record = self._record(kind)
        return record.net_rate if record else 0.0

    def reset_rates(self) -> None:
        for record in self._records.values():
            if record.defined:
                record.production_rate = 0.0
                record.consumption_rate = 0.0

    def apply_rates(self, delta_time: float) -> None:
        """Integrate every kind's net rate over ``delta_time``.

        Changes go through :meth:`add` / :meth:`remove`, so capacity and
        deficit policies still apply. Each kind is updated independently.
        """

        updated = 0
        for kind, record in list(self._records.items()):
            if not record.defined:
                continue
            change = record.net_rate * delta_time
            if change > 0:
                result = self.add(kind, change)
            elif change < 0:
                result = self.remove(kind, -change)
            else:
                continue
            if result.ok:
                updated += 1
        logger.debug("Applied rates over dt=%s, %s kinds updated", delta_time, updated)

    # Transfers -------------------------------------------------------
    def _check_target(self, other: "ResourceLedger[K]") -> None:
        if other is self:
            raise SelfTransferError("Cannot transfer resources to the same ledger")

    def transfer_to(self, other: "ResourceLedger[K]", kind: K, amount: float) -> LedgerResult:
        """Move ``amount`` of ``kind`` to ``other``; either both sides change or neither."""

        self._check_target(other)
        if amount < 0:
            return LedgerResult.INSUFFICIENT
        if not self.has(kind, amount):
            return LedgerResult.INSUFFICIENT
        if not other.has_space(kind, amount):
            return LedgerResult.OVERFLOW
        self.remove(kind, amount)
        other.add(kind, amount)
        return LedgerResult.SUCCESS

    def transfer_to_max(self, other: "ResourceLedger[K]", kind: K, max_amount: float) -> float:
        """Move as much as possible up to ``max_amount``. Returns the amount moved."""

        self._check_target(other)
        actual = min(max_amount, self.get(kind), other.available_space(kind))
        if actual <= 0:
            return 0.0
        self.remove(kind, actual)
        other.add(kind, actual)
        return actual

    # Costs and bulk operations ---------------------------------------
    def can_afford(self, costs: Entries) -> bool:
        return all(self.has(kind, amount) for kind, amount in _pairs(costs))

    def deduct_costs(self, costs: Entries) -> LedgerResult:
        """Deduct every cost or none of them."""

        entries = _pairs(costs)
        if not self.can_afford(entries):
            return LedgerResult.INSUFFICIENT
        for kind, amount in entries:
            self.remove(kind, amount)
        return LedgerResult.SUCCESS

    def add_bulk(self, amounts: Entries) -> None:
        # Best effort: individual failures are ignored.
        for kind, amount in _pairs(amounts):
            self.add(kind, amount)

    # Utility ---------------------------------------------------------
    def clear(self) -> None:
        for record in self._records.values():
            if record.defined:
                record.amount = 0.0

    def defined_count(self) -> int:
        return sum(1 for record in self._records.values() if record.defined)

    def defined_kinds(self) -> List[K]:
        return [kind for kind, record in self._records.items() if record.defined]

    def summary(self, kind: K) -> Optional[ResourceSummary]:
        record = self._record(kind)
        if record is None:
            return None
        return ResourceSummary(
            amount=record.amount,
            capacity=record.max_capacity,
            production=record.production_rate,
            consumption=record.consumption_rate,
            net_rate=record.net_rate,
            fill_ratio=record.fill_ratio,
        )

    def summaries(self) -> Dict[K, ResourceSummary]:
        result: Dict[K, ResourceSummary] = {}
        for kind in self.defined_kinds():
            summary = self.summary(kind)
            if summary is not None:
                result[kind] = summary
        return result


__all__ = ["ResourceLedger", "SelfTransferError"]
