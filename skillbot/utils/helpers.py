"""
Utility helpers
"""

from __future__ import annotations

import json
import re
import uuid
from datetime import datetime
from typing import Any, List

_WORD_RGX = re.compile(r"[^\W_]+", re.UNICODE)


def iso_now() -> str:
    return datetime.now().isoformat()


def new_message_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:16]}"


def canonical_json(value: Any) -> str:
    """Stable compact encoding used for size estimates and storage."""
    return json.dumps(value, ensure_ascii=False, sort_keys=True, separators=(",", ":"), default=str)


def encoded_size(value: Any) -> int:
    return len(canonical_json(value).encode("utf-8"))


def words(text: str) -> List[str]:
    return _WORD_RGX.findall((text or "").lower())


def format_price(value: float | int | None) -> str:
    if value is None:
        return "price on request"
    return "Rp " + f"{int(round(value)):,}".replace(",", ".")
