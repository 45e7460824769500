#!/usr/bin/env python3
"""
SkillBot entry point.

    python run.py          # Flask dev server
    gunicorn run:app       # production

Env is loaded from .env before the package is imported, since config.py
reads os.environ at import time.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from typing import List

from dotenv import load_dotenv
from flask import Flask, request

load_dotenv()

from skillbot import create_app  # noqa: E402
from skillbot.logging_setup import setup_logging  # noqa: E402
from skillbot.utils.smart_logger import LogLevel, get_smart_logger, resolve_level  # noqa: E402

log = logging.getLogger("skillbot.run")
_logging_ready = False

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def init_logging() -> LogLevel:
    """Install the stdout handler once per process; return the flow-log verbosity."""
    global _logging_ready
    if not _logging_ready:
        setup_logging()
        _logging_ready = True

    requested = os.getenv("BOT_LOG_LEVEL", "STANDARD").upper()
    level = resolve_level(requested)
    if requested not in LogLevel.__members__:
        log.warning(f"BOT_LOG_LEVEL_INVALID | value={requested} | using={level.name}")
    return level


def missing_environment() -> List[str]:
    problems = []
    if not os.getenv("ANTHROPIC_API_KEY"):
        problems.append("ANTHROPIC_API_KEY (model replies)")
    if not os.getenv("REDIS_HOST"):
        problems.append("REDIS_HOST (conversation storage)")
    if not any(os.getenv(k) for k in ("ES_URL", "ELASTIC_BASE", "CATALOG_FILE")):
        problems.append("ES_URL / ELASTIC_BASE / CATALOG_FILE (gig catalog)")
    return problems


def create_application(strict_env: bool = False) -> Flask:
    level = init_logging()

    problems = missing_environment()
    if problems:
        if strict_env:
            print("Error: missing environment variables: " + ", ".join(problems))
            sys.exit(1)
        log.warning(f"ENV_INCOMPLETE | missing={problems}")

    app = create_app(os.getenv("APP_ENV", "production").lower())
    get_smart_logger("conversation_manager").set_level(level)
    get_smart_logger("bot_core").set_level(level)

    # Records already reach the root handler
    app.logger.handlers.clear()
    app.logger.propagate = True

    @app.before_request
    def _trace_request():
        log.debug(f"HTTP_REQUEST | method={request.method} | path={request.path}")

    return app


@dataclass(frozen=True)
class ServerSettings:
    host: str
    port: int
    debug: bool

    @classmethod
    def from_env(cls) -> "ServerSettings":
        flag = os.getenv("FLASK_DEBUG", "").lower()
        if flag in _TRUE:
            debug = True
        elif flag in _FALSE:
            debug = False
        else:
            debug = os.getenv("APP_ENV", "development").lower() == "development"
        return cls(host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "8080")), debug=debug)


def main() -> None:
    app = create_application(strict_env=True)
    settings = ServerSettings.from_env()

    print("-" * 60)
    print(f"SkillBot on http://{settings.host}:{settings.port}  (health: /rs/health)")
    print(f"APP_ENV={os.getenv('APP_ENV', 'development')}  debug={settings.debug}  "
          f"BOT_LOG_LEVEL={resolve_level().name}")
    print("-" * 60)

    try:
        app.run(host=settings.host, port=settings.port, debug=settings.debug, use_reloader=False, threaded=True)
    except KeyboardInterrupt:
        print("\nSkillBot stopped")


if __name__ == "__main__":
    main()
else:
    app = create_application(strict_env=False)
