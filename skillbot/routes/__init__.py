# skillbot/routes/__init__.py
"""
HTTP blueprints. The app factory (skillbot/__init__.py) keeps the shared
ConversationManager in ``app.extensions["conversation_mgr"]`` so the route
modules reach it through ``flask.current_app``.
"""

from __future__ import annotations

from flask import Flask

from .chat import bp as chat_bp
from .health import bp as health_bp
from .reset import bp as reset_bp


def register_routes(app: Flask, url_prefix: str = "/rs") -> None:
    for bp in (chat_bp, reset_bp, health_bp):
        app.register_blueprint(bp, url_prefix=url_prefix)
