from __future__ import annotations

import asyncio

import anthropic
import httpx
import pytest

from skillbot import llm_service
from skillbot.enums import GenerationErrorKind
from skillbot.errors import (AuthInvalidError, ContentBlockedError, QuotaExceededError,
                             TransientNetworkError)
from skillbot.llm_service import GenerationClient, classify_error

from .fakes import FakeAnthropic, text_response

_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def status_error(cls, status: int, message: str = "boom"):
    return cls(message, response=httpx.Response(status, request=_REQUEST), body=None)


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def make_client(outcomes, **kw):
    sleep = RecordingSleep()
    fake = FakeAnthropic(outcomes)
    options = dict(model="test-model", max_attempts=3, timeout_seconds=5, backoff_base_seconds=1, sleep=sleep)
    options.update(kw)
    return GenerationClient(fake, **options), fake, sleep


@pytest.mark.parametrize("exc,kind", [
    (status_error(anthropic.AuthenticationError, 401), GenerationErrorKind.AUTH_INVALID),
    (status_error(anthropic.PermissionDeniedError, 403), GenerationErrorKind.AUTH_INVALID),
    (status_error(anthropic.RateLimitError, 429), GenerationErrorKind.QUOTA_EXCEEDED),
    (status_error(anthropic.InternalServerError, 529, "overloaded"), GenerationErrorKind.TRANSIENT_NETWORK),
    (anthropic.APIConnectionError(request=_REQUEST), GenerationErrorKind.TRANSIENT_NETWORK),
    (asyncio.TimeoutError(), GenerationErrorKind.TRANSIENT_NETWORK),
    (RuntimeError("Your credit balance is too low"), GenerationErrorKind.QUOTA_EXCEEDED),
    (RuntimeError("request blocked by safety filter"), GenerationErrorKind.CONTENT_BLOCKED),
    (status_error(anthropic.BadRequestError, 400, "messages: prompt is too long"), GenerationErrorKind.AUTH_INVALID),
    (status_error(anthropic.NotFoundError, 404, "model: not-a-model"), GenerationErrorKind.AUTH_INVALID),
    (status_error(anthropic.BadRequestError, 400, "Your credit balance is too low"), GenerationErrorKind.QUOTA_EXCEEDED),
    (RuntimeError("something odd"), GenerationErrorKind.TRANSIENT_NETWORK),
])
def test_errors_map_to_one_kind(exc, kind):
    failure = classify_error(exc)
    assert failure.kind is kind
    assert failure.cause is exc


def test_classified_failure_passes_through():
    failure = QuotaExceededError("quota")
    assert classify_error(failure) is failure


@pytest.mark.asyncio
async def test_returns_generated_text():
    client, fake, sleep = make_client([text_response("  Hello there  ")])

    assert await client.generate("hi", max_tokens=20, temperature=0.0) == "Hello there"
    assert fake.calls[0]["model"] == "test-model"
    assert fake.calls[0]["max_tokens"] == 20
    assert fake.calls[0]["messages"] == [{"role": "user", "content": "hi"}]
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_transient_failures_back_off_exponentially_then_recover():
    client, fake, sleep = make_client([
        anthropic.APIConnectionError(request=_REQUEST),
        status_error(anthropic.InternalServerError, 500),
        text_response("finally"),
    ])

    assert await client.generate("hi") == "finally"
    assert len(fake.calls) == 3
    assert sleep.delays == [1, 2]


@pytest.mark.asyncio
async def test_transient_failures_exhaust_attempt_budget():
    client, fake, sleep = make_client([anthropic.APIConnectionError(request=_REQUEST)] * 3)

    with pytest.raises(TransientNetworkError):
        await client.generate("hi")
    assert len(fake.calls) == 3
    assert sleep.delays == [1, 2]


@pytest.mark.asyncio
@pytest.mark.parametrize("exc,expected", [
    (status_error(anthropic.AuthenticationError, 401), AuthInvalidError),
    (status_error(anthropic.RateLimitError, 429), QuotaExceededError),
    (status_error(anthropic.BadRequestError, 400, "messages: prompt is too long"), AuthInvalidError),
    (status_error(anthropic.NotFoundError, 404, "model: not-a-model"), AuthInvalidError),
])
async def test_non_transient_failures_are_not_retried(exc, expected):
    client, fake, sleep = make_client([exc, text_response("never reached")])

    with pytest.raises(expected):
        await client.generate("hi")
    assert len(fake.calls) == 1
    assert sleep.delays == []


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    text_response("I can't help with that.", stop_reason="refusal"),
    text_response("   "),
])
async def test_refusal_and_empty_output_are_content_blocked(response):
    client, fake, _ = make_client([response])

    with pytest.raises(ContentBlockedError):
        await client.generate("hi")
    assert len(fake.calls) == 1


@pytest.mark.asyncio
async def test_slow_attempt_times_out_as_transient():
    async def slow():
        await asyncio.sleep(1)
        return text_response("too late")

    client, fake, _ = make_client([slow], max_attempts=1, timeout_seconds=0.01)

    with pytest.raises(TransientNetworkError):
        await client.generate("hi")


def test_backoff_doubles_each_attempt():
    client, _, _ = make_client([], backoff_base_seconds=0.5)
    assert [client.backoff_delay(n) for n in (1, 2, 3)] == [0.5, 1.0, 2.0]


@pytest.mark.parametrize("key", ["", "not-a-real-key"])
def test_missing_or_malformed_key_is_rejected(monkeypatch, key):
    monkeypatch.setattr(llm_service.Cfg, "ANTHROPIC_API_KEY", key)
    with pytest.raises(RuntimeError):
        GenerationClient()
