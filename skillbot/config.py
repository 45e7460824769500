"""
SkillBot configuration.
Plain class attributes read from the environment, one class per deploy env.
"""
from __future__ import annotations

import logging
import os


def _int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


class BaseConfig:
    SECRET_KEY: str = os.getenv("SECRET_KEY", "skillbot-dev-only")

    # Redis: conversation documents, change channel, unread badges
    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = _int("REDIS_PORT", 6379)
    REDIS_DB: int = _int("REDIS_DB", 0)
    REDIS_DECODE_RESPONSES: bool = True
    REDIS_KEY_PREFIX: str = os.getenv("REDIS_KEY_PREFIX", "skillbot")

    # Largest conversation document the store accepts (managed document DB limit)
    STORE_MAX_DOCUMENT_BYTES: int = _int("STORE_MAX_DOCUMENT_BYTES", 1024 * 1024)

    # Anthropic: key MUST come from the environment
    ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
    LLM_MODEL: str = os.getenv("LLM_MODEL", "claude-3-5-sonnet-20241022")
    LLM_TEMPERATURE: float = _float("LLM_TEMPERATURE", 0.7)
    LLM_MAX_TOKENS: int = _int("LLM_MAX_TOKENS", 600)
    LLM_MAX_ATTEMPTS: int = _int("LLM_MAX_ATTEMPTS", 3)
    LLM_TIMEOUT_SECONDS: float = _float("LLM_TIMEOUT_SECONDS", 30)
    LLM_BACKOFF_BASE_SECONDS: float = _float("LLM_BACKOFF_BASE_SECONDS", 2)

    # Conversation size ladder
    SOFT_LIMIT_BYTES: int = _int("SOFT_LIMIT_BYTES", 300 * 1024)
    HARD_LIMIT_BYTES: int = _int("HARD_LIMIT_BYTES", 400 * 1024)
    SOFT_KEEP_LAST: int = _int("SOFT_KEEP_LAST", 10)
    HARD_KEEP_LAST: int = _int("HARD_KEEP_LAST", 5)
    PROMPT_HISTORY_WINDOW: int = _int("PROMPT_HISTORY_WINDOW", 20)
    SEND_RETRY_BUDGET: int = _int("SEND_RETRY_BUDGET", 2)

    # Gig catalog: Elasticsearch, or a JSON file for local runs
    ELASTIC_BASE: str = (os.getenv("ES_URL") or os.getenv("ELASTIC_BASE", "")).strip().lstrip("@").strip()
    ELASTIC_INDEX: str = os.getenv("ELASTIC_INDEX", "gigs")
    ELASTIC_API_KEY: str = os.getenv("ES_API_KEY") or os.getenv("ELASTIC_API_KEY", "")
    ELASTIC_TIMEOUT_SECONDS: int = _int("ELASTIC_TIMEOUT_SECONDS", 10)
    CATALOG_QUERY_LIMIT: int = _int("CATALOG_QUERY_LIMIT", 20)
    CATALOG_FILE: str = os.getenv("CATALOG_FILE", "")

    # Recommendation + persona
    TOP_CANDIDATES: int = _int("TOP_CANDIDATES", 3)
    RESPONSE_LANGUAGE: str = os.getenv("RESPONSE_LANGUAGE", "English")
    PLATFORM_NAME: str = os.getenv("PLATFORM_NAME", "SkillNusa")
    AGENT_ID: str = os.getenv("AGENT_ID", "skillbot")
    AGENT_DISPLAY_NAME: str = os.getenv("AGENT_DISPLAY_NAME", "SkillBot")


class DevelopmentConfig(BaseConfig):
    DEBUG: bool = True


class ProductionConfig(BaseConfig):
    DEBUG: bool = False


class TestingConfig(BaseConfig):
    TESTING: bool = True
    REDIS_DB: int = 15
    LLM_BACKOFF_BASE_SECONDS: float = 0.0


_CONFIGS = {
    "development": DevelopmentConfig,
    "dev": DevelopmentConfig,
    "production": ProductionConfig,
    "prod": ProductionConfig,
    "testing": TestingConfig,
    "test": TestingConfig,
}


def get_config() -> BaseConfig:
    """Config for APP_ENV (falls back to FLASK_ENV, then development)."""
    env = os.getenv("APP_ENV", os.getenv("FLASK_ENV", "development")).lower()
    cfg = _CONFIGS.get(env, DevelopmentConfig)()

    if not getattr(get_config, "_announced", False):
        log = logging.getLogger(__name__)
        log.info(f"⚙️ CONFIG | env={env} | class={type(cfg).__name__}")
        log.info(f"🤖 LLM | model={cfg.LLM_MODEL} | temp={cfg.LLM_TEMPERATURE} | max_tokens={cfg.LLM_MAX_TOKENS} | attempts={cfg.LLM_MAX_ATTEMPTS} | timeout={cfg.LLM_TIMEOUT_SECONDS}s")
        log.info(f"💾 REDIS | host={cfg.REDIS_HOST}:{cfg.REDIS_PORT} | db={cfg.REDIS_DB} | prefix={cfg.REDIS_KEY_PREFIX} | max_doc_bytes={cfg.STORE_MAX_DOCUMENT_BYTES}")
        log.info(f"📏 SIZE_LADDER | soft={cfg.SOFT_LIMIT_BYTES} | hard={cfg.HARD_LIMIT_BYTES} | keep_soft={cfg.SOFT_KEEP_LAST} | keep_hard={cfg.HARD_KEEP_LAST} | retry_budget={cfg.SEND_RETRY_BUDGET}")
        log.info(f"🔍 CATALOG | source={'elasticsearch' if cfg.ELASTIC_BASE else (cfg.CATALOG_FILE or 'empty')} | limit={cfg.CATALOG_QUERY_LIMIT}")
        get_config._announced = True

    return cfg
