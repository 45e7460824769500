# skillbot/utils/__init__.py
"""
Expose helpers at package-level for convenience:

    from skillbot.utils import canonical_json
"""

from .helpers import (  # noqa: F401
    canonical_json,
    encoded_size,
    format_price,
    iso_now,
    new_message_id,
    words,
)

__all__ = [
    "canonical_json",
    "encoded_size",
    "format_price",
    "iso_now",
    "new_message_id",
    "words",
]
