# skillbot/routes/chat.py
"""
SkillBot chat endpoints
=======================

POST /skillbot/send                    → run one turn
GET  /skillbot/conversation/<user_id>  → stored conversation (created on first call)
POST /skillbot/read                    → clear the user's unread badge

Internal errors never reach the client; storage exhaustion maps to 503.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict

from flask import Blueprint, Response, current_app, jsonify, request

from ..errors import RetryExhausted, StoreUnavailable
from ..models import CatalogItem

log = logging.getLogger(__name__)
bp = Blueprint("chat", __name__)

TRY_LATER = "Sorry, SkillBot is unavailable right now. Please try again later."


def _manager():
    mgr = current_app.extensions.get("conversation_mgr")
    if mgr is None:
        raise RuntimeError("conversation manager not initialized")
    return mgr


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@bp.post("/skillbot/send")
async def send_message() -> Response:
    started = asyncio.get_running_loop().time()
    data = _json_body()

    missing = [k for k in ("user_id", "message") if not data.get(k)]
    if missing:
        log.warning(f"SEND_MISSING_FIELDS | missing={missing}")
        return jsonify({"error": f"Missing required fields: {', '.join(missing)}"}), 400

    user_id = str(data["user_id"])
    message = str(data["message"]).strip()
    if not message:
        return jsonify({"error": "Message cannot be empty"}), 400

    current_item = None
    if isinstance(data.get("current_item"), dict):
        try:
            current_item = CatalogItem.from_dict(data["current_item"])
        except (TypeError, ValueError) as exc:
            log.warning(f"SEND_BAD_CURRENT_ITEM | user={user_id} | error={exc}")

    log.info(f"SEND_REQUEST | user={user_id} | message='{message[:50]}' | has_item={current_item is not None}")

    try:
        result = await _manager().send(
            user_id, message, user_name=data.get("user_name"), current_item=current_item
        )
    except RetryExhausted as exc:
        log.error(f"SEND_RETRY_EXHAUSTED | user={user_id} | attempts={exc.attempts}")
        return jsonify({"error": exc.user_message}), 503
    except StoreUnavailable as exc:
        log.error(f"SEND_STORE_UNAVAILABLE | user={user_id} | error={exc}")
        return jsonify({"error": TRY_LATER}), 503
    except Exception:  # noqa: BLE001
        log.exception(f"SEND_FAILED | user={user_id}")
        return jsonify({"error": TRY_LATER}), 500

    elapsed = asyncio.get_running_loop().time() - started
    log.info(f"SEND_COMPLETE | user={user_id} | kind={result.agent_message.kind.value} | elapsed={elapsed:.3f}s")
    return jsonify(result.to_dict()), 200


@bp.get("/skillbot/conversation/<user_id>")
async def get_conversation(user_id: str) -> Response:
    try:
        conv = await _manager().initialize(user_id, request.args.get("user_name"))
    except StoreUnavailable as exc:
        log.error(f"CONVERSATION_FETCH_FAILED | user={user_id} | error={exc}")
        return jsonify({"error": TRY_LATER}), 503
    return jsonify(conv.to_dict()), 200


@bp.post("/skillbot/read")
def mark_read() -> Response:
    user_id = _json_body().get("user_id")
    if not user_id:
        return jsonify({"error": "Missing user_id"}), 400
    try:
        _manager().mark_read(str(user_id))
    except StoreUnavailable as exc:
        log.error(f"MARK_READ_FAILED | user={user_id} | error={exc}")
        return jsonify({"error": TRY_LATER}), 503
    return jsonify({"message": "Marked as read"}), 200
