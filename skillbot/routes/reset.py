# skillbot/routes/reset.py
"""
/skillbot/reset – deletes a user's SkillBot conversation and its unread
record. The next send or conversation fetch starts over with a fresh welcome.

POST body:
{
  "user_id": "abc123"
}
"""

from __future__ import annotations

import logging

from flask import Blueprint, Response, current_app, jsonify, request

from ..errors import StoreUnavailable

log = logging.getLogger(__name__)
bp = Blueprint("reset", __name__)


@bp.post("/skillbot/reset")
def reset_conversation() -> Response:
    data = request.get_json(silent=True) or {}
    user_id = data.get("user_id") if isinstance(data, dict) else None
    if not user_id:
        return jsonify({"error": "Missing user_id"}), 400

    mgr = current_app.extensions.get("conversation_mgr")
    if mgr is None:
        return jsonify({"error": "SkillBot not initialized"}), 500

    try:
        mgr.reset(str(user_id))
    except StoreUnavailable:
        log.exception(f"RESET_FAILED | user={user_id}")
        return jsonify({"error": "Could not reset the conversation. Please try again later."}), 503

    return jsonify({"message": "Conversation reset successfully"}), 200
