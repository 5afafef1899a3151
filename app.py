import logging
import time
import uuid
from datetime import datetime, timezone

from flask import Flask, jsonify, request

from api import ledger_bridge
from stockpile import config

app = Flask(__name__)

logger = logging.getLogger(__name__)


def _generate_request_metadata() -> tuple[str, str]:
    request_id = str(uuid.uuid4())
    server_time = datetime.now(timezone.utc).isoformat()
    return request_id, server_time


def _enrich_payload(payload: dict, request_id: str, server_time: str) -> dict:
    body = dict(payload or {})
    body.pop("http_status", None)
    body["request_id"] = request_id
    body["server_time"] = server_time
    return body


def _json_response(payload: dict):
    request_id, server_time = _generate_request_metadata()
    status = int(payload.get("http_status", 200 if payload.get("ok") else 400))
    body = _enrich_payload(payload, request_id, server_time)
    response = jsonify(body)
    response.status_code = status
    response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
    response.headers["Pragma"] = "no-cache"
    response.headers["Expires"] = "0"
    return response


def _body() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _logged_mutation(route: str, handler, *args):
    """Run a mutating bridge call, logging the outcome and its duration."""

    start = time.perf_counter()
    response = handler(*args)
    duration_ms = (time.perf_counter() - start) * 1000.0
    logger.info(
        "Ledger mutation route=%s ok=%s code=%s duration_ms=%.2f",
        route,
        response.get("ok"),
        response.get("error_code", response.get("result")),
        duration_ms,
    )
    return _json_response(response)


@app.post("/api/init")
def api_init():
    """Initialise the ledger, optionally keeping the current state."""

    reset_flag = request.args.get("reset")
    if reset_flag is None:
        payload = _body()
        reset_flag = payload.get("reset") or payload.get("force_reset")
    return _json_response(ledger_bridge.init_ledger(reset_flag))


@app.get("/api/ledger")
def api_ledger():
    """Return summaries of every defined resource."""

    return _json_response(ledger_bridge.get_ledger())


@app.get("/api/ledger/<kind>")
def api_resource(kind: str):
    return _json_response(ledger_bridge.get_resource(kind))


@app.post("/api/ledger/<kind>/<any(add, remove, set):operation>")
def api_change_amount(kind: str, operation: str):
    """Apply ``add``, ``remove`` or ``set`` with the ``amount`` from the body."""

    payload = _body()
    return _logged_mutation(
        f"/api/ledger/{kind}/{operation}",
        ledger_bridge.change_amount,
        kind,
        operation,
        payload.get("amount"),
    )


@app.post("/api/ledger/<kind>/capacity")
def api_change_capacity(kind: str):
    payload = _body()
    return _logged_mutation(
        f"/api/ledger/{kind}/capacity",
        ledger_bridge.change_capacity,
        kind,
        payload.get("capacity"),
    )


@app.post("/api/ledger/<kind>/rates")
def api_change_rates(kind: str):
    payload = _body()
    return _logged_mutation(
        f"/api/ledger/{kind}/rates",
        ledger_bridge.change_rates,
        kind,
        payload.get("production"),
        payload.get("consumption"),
        payload.get("mode", "set"),
    )


@app.post("/api/costs")
def api_deduct_costs():
    """Deduct every cost in the body atomically."""

    payload = _body()
    return _logged_mutation("/api/costs", ledger_bridge.deduct_costs, payload.get("costs"))


@app.post("/api/tick")
def api_tick():
    """Advance the ledger by ``dt`` time units (defaults to one)."""

    payload = _body()
    dt = payload.get("dt", config.TICK_DEFAULT_DT)
    return _logged_mutation("/api/tick", ledger_bridge.tick, dt)


if __name__ == "__main__":
    logging.basicConfig(level=config.LOG_LEVEL)
    app.run(debug=True)
