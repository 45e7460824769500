"""
SkillBot Application Factory
============================

Initialization order:
1. Redis conversation store + unread counter (health-checked)
2. Generation client, catalog, turn engine, conversation manager
3. Routes under /rs
4. JSON error handlers
"""

from __future__ import annotations

import logging
import os
from datetime import datetime

from flask import Flask, jsonify
from flask_cors import CORS

from .bot_core import SkillBotCore
from .config import get_config
from .conversation_manager import ConversationManager
from .data_fetchers import build_catalog
from .llm_service import GenerationClient
from .redis_manager import RedisConversationStore, RedisNotificationCounter, build_redis_client

log = logging.getLogger(__name__)


def build_manager() -> ConversationManager:
    client = build_redis_client()
    store = RedisConversationStore(client)

    health = store.health_check()
    if not health.get("ping_success"):
        log.error(f"INIT_REDIS_FAILED | health={health}")
        raise RuntimeError(f"Redis connection failed: {health.get('error')}")
    log.info(f"INIT_REDIS_OK | used_memory={health.get('memory_info', {}).get('used_memory_human', 'unknown')}")

    core = SkillBotCore(GenerationClient(), build_catalog())
    return ConversationManager(store, core, counter=RedisNotificationCounter(client))


def _cors_origins() -> list:
    raw = os.getenv("CORS_ALLOW_ORIGINS", "")
    return [origin.strip() for origin in raw.split(",") if origin.strip()] or ["*"]


def _error_body(message: str):
    return jsonify({"error": message, "timestamp": datetime.now().isoformat()})


def create_app(config_name: str = "production", *, manager: ConversationManager | None = None) -> Flask:
    """
    Build the Flask app. Tests pass a ready ``manager`` wired to fakes.
    """
    app = Flask(__name__)
    app.config.update(SECRET_KEY=get_config().SECRET_KEY, TESTING=config_name == "testing")
    CORS(app, resources={r"/rs/*": {"origins": _cors_origins(), "methods": ["GET", "POST", "OPTIONS"]}},
         allow_headers=["Content-Type", "Authorization"], supports_credentials=False)

    # ────────────────────────────────────────────────────────
    # STEP 1-2: Shared objects
    # ────────────────────────────────────────────────────────
    if manager is None:
        try:
            manager = build_manager()
        except Exception as exc:
            log.error(f"INIT_SKILLBOT_FAILED | error={exc}", exc_info=True)
            raise RuntimeError(f"Failed to initialize SkillBot: {exc}") from exc
    app.extensions["conversation_mgr"] = manager

    # ────────────────────────────────────────────────────────
    # STEP 3: Routes
    # ────────────────────────────────────────────────────────
    from .routes import register_routes
    register_routes(app, url_prefix="/rs")

    # ────────────────────────────────────────────────────────
    # STEP 4: Error handlers
    # ────────────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(_error):
        return _error_body("Endpoint not found"), 404

    @app.errorhandler(500)
    def internal_error(error):
        log.error(f"UNHANDLED_500 | error={error}", exc_info=True)
        return _error_body("Internal server error"), 500

    log.info(f"APP_READY | config={config_name} | agent={manager.agent_id} | routes=chat,reset,health")
    return app
