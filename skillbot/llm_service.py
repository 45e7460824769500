# skillbot/llm_service.py
"""
Generation client for SkillBot
──────────────────────────────
• Thin async wrapper over anthropic.AsyncAnthropic (text in, text out)
• Classifies every SDK / transport error into the four failure kinds
• Retries transient-network failures only: bounded attempts, per-attempt
  timeout, exponential backoff
• SDK-internal retries are switched off so the attempt budget lives here
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import anthropic

from .config import get_config
from .errors import (AuthInvalidError, ContentBlockedError, GenerationFailure,
                     QuotaExceededError, TransientNetworkError)

Cfg = get_config()
log = logging.getLogger(__name__)

_AUTH_HINTS = ("api key", "api_key", "x-api-key", "authentication", "unauthorized")
_QUOTA_HINTS = ("quota", "credit balance", "billing", "usage limit", "rate limit")
_BLOCKED_HINTS = ("blocked", "safety", "content policy", "refus")


# ─────────────────────────────────────────────────────────────
# Error classification
# ─────────────────────────────────────────────────────────────

def classify_error(exc: BaseException) -> GenerationFailure:
    """Map any exception raised while generating into a GenerationFailure."""
    if isinstance(exc, GenerationFailure):
        return exc
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return TransientNetworkError("generation timed out", cause=exc)
    if isinstance(exc, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
        return AuthInvalidError(str(exc), cause=exc)
    if isinstance(exc, anthropic.RateLimitError):
        return QuotaExceededError(str(exc), cause=exc)
    if isinstance(exc, anthropic.APIConnectionError):  # includes APITimeoutError
        return TransientNetworkError(str(exc), cause=exc)
    if isinstance(exc, anthropic.APIStatusError) and exc.status_code >= 500:
        return TransientNetworkError(str(exc), cause=exc)

    msg = str(exc).lower()
    if isinstance(exc, anthropic.APIStatusError):
        # Any other 4xx repeats on retry: bad request, unknown model, payload too large
        if any(h in msg for h in _QUOTA_HINTS):
            return QuotaExceededError(str(exc), cause=exc)
        if any(h in msg for h in _BLOCKED_HINTS):
            return ContentBlockedError(str(exc), cause=exc)
        return AuthInvalidError(str(exc), cause=exc)


    if any(h in msg for h in _AUTH_HINTS):
        return AuthInvalidError(str(exc), cause=exc)
    if any(h in msg for h in _QUOTA_HINTS):
        return QuotaExceededError(str(exc), cause=exc)
    if any(h in msg for h in _BLOCKED_HINTS):
        return ContentBlockedError(str(exc), cause=exc)
    # Unknown failures get the transient treatment; the attempt budget bounds them
    return TransientNetworkError(str(exc) or type(exc).__name__, cause=exc)


def _response_text(resp: Any) -> str:
    parts = []
    for block in getattr(resp, "content", None) or []:
        if getattr(block, "type", None) == "text":
            parts.append(getattr(block, "text", "") or "")
    return "".join(parts).strip()


# ─────────────────────────────────────────────────────────────
# Generation client
# ─────────────────────────────────────────────────────────────

class GenerationClient:
    """Prompt in, generated text out, or a classified GenerationFailure."""

    def __init__(
        self,
        client: Optional[anthropic.AsyncAnthropic] = None,
        *,
        model: Optional[str] = None,
        max_attempts: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
        backoff_base_seconds: Optional[float] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if client is None:
            api_key = getattr(Cfg, "ANTHROPIC_API_KEY", "") or ""
            if not api_key:
                raise RuntimeError("Missing ANTHROPIC_API_KEY. Set it in environment or .env file.")
            if not api_key.startswith("sk-ant-"):
                raise RuntimeError("Invalid ANTHROPIC_API_KEY format. It should start with 'sk-ant-'.")
            client = anthropic.AsyncAnthropic(api_key=api_key, max_retries=0)

        self.anthropic = client
        self.model = model or Cfg.LLM_MODEL
        self.max_attempts = max(1, max_attempts if max_attempts is not None else Cfg.LLM_MAX_ATTEMPTS)
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else Cfg.LLM_TIMEOUT_SECONDS
        self.backoff_base_seconds = (
            backoff_base_seconds if backoff_base_seconds is not None else Cfg.LLM_BACKOFF_BASE_SECONDS
        )
        self._sleep = sleep

    def backoff_delay(self, attempt: int) -> float:
        """Delay after failed attempt ``attempt`` (1-based): base, 2*base, 4*base..."""
        return self.backoff_base_seconds * (2 ** (attempt - 1))

    async def generate(
        self,
        prompt: str,
        *,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> str:
        last_failure: GenerationFailure = TransientNetworkError("no generation attempt made")

        for attempt in range(1, self.max_attempts + 1):
            try:
                text = await self._generate_once(prompt, max_tokens=max_tokens, temperature=temperature)
                if attempt > 1:
                    log.info(f"LLM_RECOVERED | attempt={attempt}/{self.max_attempts}")
                return text
            except Exception as exc:  # noqa: BLE001 - classified below
                failure = classify_error(exc)
                if not failure.retryable:
                    log.warning(f"LLM_FATAL | kind={failure.kind.value} | attempt={attempt} | error={failure}")
                    raise failure from exc
                last_failure = failure
                log.warning(f"LLM_TRANSIENT | attempt={attempt}/{self.max_attempts} | error={failure}")
                if attempt < self.max_attempts:
                    await self._sleep(self.backoff_delay(attempt))

        log.error(f"LLM_RETRIES_EXHAUSTED | attempts={self.max_attempts} | error={last_failure}")
        raise last_failure

    async def _generate_once(self, prompt: str, *, max_tokens: Optional[int], temperature: Optional[float]) -> str:
        resp = await asyncio.wait_for(
            self.anthropic.messages.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=Cfg.LLM_TEMPERATURE if temperature is None else temperature,
                max_tokens=max_tokens or Cfg.LLM_MAX_TOKENS,
            ),
            timeout=self.timeout_seconds,
        )
        if getattr(resp, "stop_reason", None) == "refusal":
            raise ContentBlockedError("model refused to answer")
        text = _response_text(resp)
        if not text:
            raise ContentBlockedError("empty completion")
        return text
