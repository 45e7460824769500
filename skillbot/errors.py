"""
Error taxonomy for the assistant.

Only storage failures travel past the conversation manager. Generation
failures are caught where the model is called and turned into fallback
replies.
"""
from __future__ import annotations

from typing import Optional

from .enums import GenerationErrorKind


class SkillBotError(Exception):
    """Base class for every error raised by the assistant core."""


# ────────────────────────────────────────────────────────
# Storage
# ────────────────────────────────────────────────────────

class StorageLimitExceeded(SkillBotError):
    """The encoded conversation document is larger than the store accepts."""

    def __init__(self, conversation_id: str, size_bytes: int, limit_bytes: int) -> None:
        self.conversation_id = conversation_id
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes
        super().__init__(
            f"conversation {conversation_id} is {size_bytes} bytes, limit is {limit_bytes}"
        )


class RetryExhausted(SkillBotError):
    """Compaction + retry ladder ran out of budget."""

    user_message = "Sorry, I couldn't save our conversation right now. Please try again later."

    def __init__(self, conversation_id: str, attempts: int) -> None:
        self.conversation_id = conversation_id
        self.attempts = attempts
        super().__init__(f"gave up on {conversation_id} after {attempts} storage retries")


class StoreUnavailable(SkillBotError):
    """Backing store could not be reached."""


class ConversationUnreadable(StoreUnavailable):
    """Stored document exists but does not parse; it is left in place untouched."""

    def __init__(self, conversation_id: str, reason: str) -> None:
        self.conversation_id = conversation_id
        super().__init__(f"conversation {conversation_id} could not be read: {reason}")


# ────────────────────────────────────────────────────────
# Generation
# ────────────────────────────────────────────────────────

class GenerationFailure(SkillBotError):
    kind: GenerationErrorKind = GenerationErrorKind.TRANSIENT_NETWORK
    retryable: bool = False

    def __init__(self, message: str = "", *, cause: Optional[BaseException] = None) -> None:
        self.cause = cause
        super().__init__(message or self.kind.value)


class TransientNetworkError(GenerationFailure):
    kind = GenerationErrorKind.TRANSIENT_NETWORK
    retryable = True


class AuthInvalidError(GenerationFailure):
    kind = GenerationErrorKind.AUTH_INVALID


class QuotaExceededError(GenerationFailure):
    kind = GenerationErrorKind.QUOTA_EXCEEDED


class ContentBlockedError(GenerationFailure):
    kind = GenerationErrorKind.CONTENT_BLOCKED
