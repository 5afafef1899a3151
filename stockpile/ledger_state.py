"""Process-wide owner of the demo ledger.

The ledger itself performs no locking. Everything that reaches it from the
HTTP layer goes through :class:`LedgerState`, which serialises access with a
re-entrant lock.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Mapping, Optional, Tuple

from . import config
from .config import DemoResource
from .kinds import kind_id
from .models import ResourceSummary
from .policies import LedgerResult
from .storage import ResourceLedger

logger = logging.getLogger(__name__)


class LedgerState:
    """Central storage for the shared demo ledger."""

    _instance: Optional["LedgerState"] = None

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._tick_count = 0
        self._elapsed = 0.0
        self._version = 0
        self.ledger: ResourceLedger[DemoResource] = ResourceLedger(kinds=DemoResource)
        self._initialise_state()

    # ------------------------------------------------------------------
    @classmethod
    def get_instance(cls) -> "LedgerState":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def reset(self) -> None:
        self._initialise_state()

    def _initialise_state(self) -> None:
        with self._lock:
            self._tick_count = 0
            self._elapsed = 0.0
            self._version = 0
            self.ledger = ResourceLedger(kinds=DemoResource)
            self.ledger.define_many(config.DEMO_DEFINITIONS)
            for kind, (production, consumption) in config.DEMO_RATES.items():
                self.ledger.set_production_rate(kind, production)
                self.ledger.set_consumption_rate(kind, consumption)
            logger.debug("Ledger state initialised with %s kinds", self.ledger.defined_count())

    # ------------------------------------------------------------------
    def _mutated(self, result: LedgerResult) -> LedgerResult:
        if result.ok:
            self._version += 1
        return result

    def add(self, kind: DemoResource, amount: float) -> LedgerResult:
        with self._lock:
            return self._mutated(self.ledger.add(kind, amount))

    def remove(self, kind: DemoResource, amount: float) -> LedgerResult:
        with self._lock:
            return self._mutated(self.ledger.remove(kind, amount))

    def set_amount(self, kind: DemoResource, amount: float) -> LedgerResult:
        with self._lock:
            return self._mutated(self.ledger.set(kind, amount))

    def set_capacity(self, kind: DemoResource, capacity: float) -> LedgerResult:
        with self._lock:
            return self._mutated(self.ledger.set_capacity(kind, capacity))

    def update_rates(
        self,
        kind: DemoResource,
        production: Optional[float] = None,
        consumption: Optional[float] = None,
        *,
        accumulate: bool = False,
    ) -> LedgerResult:
        with self._lock:
            if not self.ledger.is_defined(kind):
                return LedgerResult.NOT_DEFINED
            if production is not None:
                if accumulate:
                    self.ledger.add_production_rate(kind, production)
                else:
                    self.ledger.set_production_rate(kind, production)
            if consumption is not None:
                if accumulate:
                    self.ledger.add_consumption_rate(kind, consumption)
                else:
                    self.ledger.set_consumption_rate(kind, consumption)
            return self._mutated(LedgerResult.SUCCESS)

    def deduct_costs(self, costs: Mapping[DemoResource, float]) -> LedgerResult:
        with self._lock:
            return self._mutated(self.ledger.deduct_costs(costs))

    def tick(self, dt: float) -> None:
        """Integrate rates over ``dt`` seconds. Non-positive values are ignored."""

        if dt <= 0:
            return
        with self._lock:
            self.ledger.apply_rates(dt)
            self._tick_count += 1
            self._elapsed += dt
            self._version += 1
            if self._tick_count % 10 == 0:
                logger.debug(
                    "Tick %s summary: elapsed=%.1f credits=%.1f energy=%.1f",
                    self._tick_count,
                    self._elapsed,
                    self.ledger.get(DemoResource.CREDITS),
                    self.ledger.get(DemoResource.ENERGY),
                )

    # ------------------------------------------------------------------
    def _summary_payload(self, kind: DemoResource, summary: ResourceSummary) -> Dict[str, object]:
        payload: Dict[str, object] = dict(summary.to_dict())
        payload["kind"] = kind_id(kind)
        payload["display_name"] = self.ledger.display_name(kind)
        return payload

    def summary_snapshot(self, kind: DemoResource) -> Optional[Dict[str, object]]:
        with self._lock:
            summary = self.ledger.summary(kind)
            if summary is None:
                return None
            return self._summary_payload(kind, summary)

    def ledger_snapshot(self) -> Dict[str, object]:
        with self._lock:
            resources = {
                kind_id(kind): self._summary_payload(kind, summary)
                for kind, summary in self.ledger.summaries().items()
            }
            return {
                "resources": resources,
                "defined_count": self.ledger.defined_count(),
                "clock": self.clock_snapshot(),
            }

    def clock_snapshot(self) -> Dict[str, float | int]:
        with self._lock:
            return {
                "ticks": self._tick_count,
                "elapsed": self._elapsed,
                "version": self._version,
            }

    def amounts(self) -> Dict[str, float]:
        with self._lock:
            return {kind_id(kind): self.ledger.get(kind) for kind in self.ledger.defined_kinds()}

    def rates(self, kind: DemoResource) -> Tuple[float, float]:
        with self._lock:
            return self.ledger.production_rate(kind), self.ledger.consumption_rate(kind)


def get_ledger_state() -> LedgerState:
    return LedgerState.get_instance()
