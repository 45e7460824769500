# skillbot/enums.py
from enum import Enum


class MessageKind(str, Enum):
    WELCOME = "welcome"
    USER = "user"
    RESPONSE = "response"
    RECOMMENDATION = "recommendation"
    SYSTEM_NOTICE = "system-notice"
    ERROR = "error"


class GenerationErrorKind(str, Enum):
    """Classified failures of the text-generation API"""
    TRANSIENT_NETWORK = "transient-network"   # retried with backoff
    AUTH_INVALID = "auth-invalid"
    QUOTA_EXCEEDED = "quota-exceeded"
    CONTENT_BLOCKED = "content-blocked"


class CatalogIntent(str, Enum):
    """Why a request should (or should not) pull catalog candidates"""
    PROJECT = "project"          # explicit project / service keywords
    FOLLOW_UP = "follow_up"      # answering the agent's "what do you need?"
    CHITCHAT = "chitchat"        # greetings and small talk
    NONE = "none"


class CompactionMode(str, Enum):
    SOFT = "soft"                # pre-check before the turn
    AGGRESSIVE = "aggressive"    # post-append check
    FORCED = "forced"            # after a storage-level rejection
