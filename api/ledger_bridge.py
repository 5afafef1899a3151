"""Public API between the HTTP layer and the shared ledger state."""
from __future__ import annotations

import math
from typing import Dict, Mapping, Optional

from stockpile.config import DemoResource
from stockpile.kinds import kind_from_id, kind_id, normalise_mapping
from stockpile.ledger_state import get_ledger_state
from stockpile.policies import LedgerResult

_RESULT_MESSAGES: Dict[LedgerResult, str] = {
    LedgerResult.INSUFFICIENT: "Not enough of the resource available",
    LedgerResult.OVERFLOW: "Operation would exceed the storage capacity",
    LedgerResult.NOT_DEFINED: "Resource is not defined on this ledger",
}

_RESULT_STATUS: Dict[LedgerResult, int] = {
    LedgerResult.SUCCESS: 200,
    LedgerResult.INSUFFICIENT: 409,
    LedgerResult.OVERFLOW: 409,
    LedgerResult.NOT_DEFINED: 404,
}


# ---------------------------------------------------------------------------
# Payload helpers


def _success_response(**payload: object) -> Dict[str, object]:
    response: Dict[str, object] = {"ok": True}
    response.update(payload)
    return response


def _error_response(
    code: str, message: str, *, http_status: int | None = None
) -> Dict[str, object]:
    payload: Dict[str, object] = {
        "ok": False,
        "error_code": code,
        "error_message": message,
        "error": message,
    }
    if http_status is not None:
        payload["http_status"] = int(http_status)
    return payload


def _result_response(result: LedgerResult, **payload: object) -> Dict[str, object]:
    if result.ok:
        return _success_response(result=result.value, http_status=200, **payload)
    error = _error_response(
        result.value, _RESULT_MESSAGES[result], http_status=_RESULT_STATUS[result]
    )
    error["result"] = result.value
    error.update(payload)
    return error


def _should_reset(flag: object) -> bool:
    if flag is None:
        return True
    if isinstance(flag, str):
        return flag.strip().lower() not in {"0", "false", "no"}
    return bool(flag)


def _parse_amount(value: object) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        amount = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if math.isnan(amount) or math.isinf(amount):
        return None
    return amount


def _resolve(identifier: str) -> DemoResource:
    return kind_from_id(DemoResource, identifier)


def _unknown_kind(identifier: object) -> Dict[str, object]:
    return _error_response(
        "unknown_kind", f"Unknown resource kind: {identifier}", http_status=404
    )


def _invalid_amount(field: str, value: object) -> Dict[str, object]:
    return _error_response(
        "invalid_amount", f"Field '{field}' must be a finite number, got {value!r}", http_status=400
    )


# ---------------------------------------------------------------------------
# Initialisation and ticking


def init_ledger(force_reset: object = None) -> Dict[str, object]:
    """Initialise or reset the shared ledger from configuration defaults."""

    state = get_ledger_state()
    if _should_reset(force_reset):
        state.reset()
    return _success_response(**state.ledger_snapshot())


def tick(dt: object) -> Dict[str, object]:
    """Advance the ledger by ``dt`` time units, applying every rate."""

    amount = _parse_amount(dt)
    if amount is None:
        return _invalid_amount("dt", dt)
    state = get_ledger_state()
    state.tick(max(0.0, amount))
    return _success_response(**state.ledger_snapshot())


# ---------------------------------------------------------------------------
# Snapshots


def get_ledger() -> Dict[str, object]:
    return _success_response(**get_ledger_state().ledger_snapshot())


def get_resource(identifier: str) -> Dict[str, object]:
    try:
        kind = _resolve(identifier)
    except KeyError:
        return _unknown_kind(identifier)
    snapshot = get_ledger_state().summary_snapshot(kind)
    if snapshot is None:
        return _result_response(LedgerResult.NOT_DEFINED, kind=kind_id(kind))
    return _success_response(resource=snapshot)


# ---------------------------------------------------------------------------
# Mutations


def change_amount(identifier: str, operation: str, amount: object) -> Dict[str, object]:
    """Apply ``add``, ``remove`` or ``set`` to a single resource."""

    try:
        kind = _resolve(identifier)
    except KeyError:
        return _unknown_kind(identifier)
    value = _parse_amount(amount)
    if value is None:
        return _invalid_amount("amount", amount)

    state = get_ledger_state()
    if operation == "add":
        result = state.add(kind, value)
    elif operation == "remove":
        result = state.remove(kind, value)
    elif operation == "set":
        result = state.set_amount(kind, value)
    else:
        raise ValueError(f"Unknown ledger operation: {operation}")
    return _result_response(
        result,
        kind=kind_id(kind),
        operation=operation,
        amount=value,
        resource=state.summary_snapshot(kind),
    )


def change_capacity(identifier: str, capacity: object) -> Dict[str, object]:
    try:
        kind = _resolve(identifier)
    except KeyError:
        return _unknown_kind(identifier)
    value = _parse_amount(capacity)
    if value is None or value < 0:
        return _invalid_amount("capacity", capacity)
    state = get_ledger_state()
    result = state.set_capacity(kind, value)
    return _result_response(result, kind=kind_id(kind), resource=state.summary_snapshot(kind))


def change_rates(
    identifier: str,
    production: object = None,
    consumption: object = None,
    mode: object = "set",
) -> Dict[str, object]:
    """Set or accumulate the production/consumption rates of a resource."""

    try:
        kind = _resolve(identifier)
    except KeyError:
        return _unknown_kind(identifier)

    parsed: Dict[str, Optional[float]] = {}
    for field, raw in (("production", production), ("consumption", consumption)):
        if raw is None:
            parsed[field] = None
            continue
        value = _parse_amount(raw)
        if value is None:
            return _invalid_amount(field, raw)
        parsed[field] = value

    normalized_mode = str(mode or "set").strip().lower()
    if normalized_mode not in {"set", "add"}:
        return _error_response(
            "invalid_mode", f"Unknown rate mode: {mode}", http_status=400
        )

    state = get_ledger_state()
    result = state.update_rates(
        kind,
        parsed["production"],
        parsed["consumption"],
        accumulate=normalized_mode == "add",
    )
    produced, consumed = state.rates(kind)
    return _result_response(
        result,
        kind=kind_id(kind),
        production=produced,
        consumption=consumed,
        net_rate=produced - consumed,
    )


def deduct_costs(costs: object) -> Dict[str, object]:
    """Deduct a cost mapping atomically."""

    if not isinstance(costs, Mapping) or not costs:
        return _error_response(
            "invalid_amount", "Field 'costs' must be a non-empty object", http_status=400
        )
    parsed: Dict[str, float] = {}
    for key, raw in costs.items():
        value = _parse_amount(raw)
        if value is None:
            return _invalid_amount(f"costs.{key}", raw)
        parsed[str(key)] = value
    try:
        resolved = normalise_mapping(DemoResource, parsed)
    except KeyError as exc:
        return _error_response("unknown_kind", str(exc.args[0]), http_status=404)

    state = get_ledger_state()
    result = state.deduct_costs(resolved)
    return _result_response(
        result,
        costs={kind_id(kind): amount for kind, amount in resolved.items()},
        amounts=state.amounts(),
    )
