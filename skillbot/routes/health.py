# skillbot/routes/health.py
"""
GET /health: liveness + Redis reachability.

200 when the conversation store answers a ping, 500 otherwise so the
orchestrator restarts the pod.
"""

from __future__ import annotations

import logging

from flask import Blueprint, Response, current_app, jsonify

log = logging.getLogger(__name__)
bp = Blueprint("health", __name__)


@bp.get("/health")
def health() -> Response:
    body = {"service": "skillbot", "status": "unhealthy"}
    mgr = current_app.extensions.get("conversation_mgr")
    if mgr is None:
        body["redis"] = "not_initialized"
        return jsonify(body), 500

    ping = mgr.store.health_check()
    if not ping.get("ping_success"):
        log.warning(f"HEALTH_REDIS_DOWN | error={ping.get('error')}")
        body["redis"] = "disconnected"
        return jsonify(body), 500

    body.update(status="healthy", redis="connected")
    return jsonify(body), 200
