import logging
import os
import sys

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_QUIET = ("httpx", "httpcore", "anthropic", "urllib3", "werkzeug")


def setup_logging():
    """Single stdout handler on the root logger; SDK chatter held at WARNING."""
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").upper())
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(logging.Formatter(_FORMAT))
    root.addHandler(stream)
    root.setLevel(level)

    logging.captureWarnings(True)
    for name in _QUIET:
        logging.getLogger(name).setLevel(logging.WARNING)
    for name in ("skillbot", "gunicorn.error", "gunicorn.access"):
        logging.getLogger(name).setLevel(level)
