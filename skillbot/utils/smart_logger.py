# skillbot/utils/smart_logger.py
"""
Contextual flow logging for the assistant.
One line per flow event, tagged with a short turn id so the lines of one
turn can be grepped together. Verbosity picked with BOT_LOG_LEVEL.
"""

import logging
import os
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class LogLevel(Enum):
    MINIMAL = 1      # turn start/end, compaction, storage retries
    STANDARD = 2     # + category and candidate decisions
    DETAILED = 3     # reserved for sizes and timings
    DEBUG = 4


class SmartLogger:
    def __init__(self, name: str, level: LogLevel = LogLevel.STANDARD):
        self.logger = logging.getLogger(name)
        self.level = level
        self._turns: Dict[str, str] = {}

    def set_level(self, level: LogLevel):
        self.level = level

    def enabled(self, needed: LogLevel) -> bool:
        return self.level.value >= needed.value

    def _turn(self, user_id: str) -> str:
        return self._turns.get(user_id, "-")

    def _emit(self, severity: int, emoji: str, event: str, summary: str, **fields: Any):
        parts = [f"{emoji} {event}", summary]
        parts.extend(f"{k}={v}" for k, v in fields.items() if v is not None)
        self.logger.log(severity, " | ".join(parts))

    # ═══════════════════════════════════════════════════════════
    # TURN
    # ═══════════════════════════════════════════════════════════

    def turn_start(self, user_id: str, text: str, attempt: int = 1):
        turn = f"{user_id[-6:]}@{datetime.now():%H%M%S}"
        self._turns[user_id] = turn
        if self.enabled(LogLevel.MINIMAL):
            preview = text if len(text) <= 50 else text[:50] + "..."
            self._emit(logging.INFO, "🚀", "TURN_START", repr(preview), turn=turn, attempt=attempt)

    def response_generated(self, user_id: str, response_kind: str, items: int = 0, elapsed_time: float = None):
        if self.enabled(LogLevel.MINIMAL):
            took = f"{elapsed_time:.3f}s" if elapsed_time is not None else None
            self._emit(logging.INFO, "✅", "RESPONSE", response_kind, turn=self._turn(user_id),
                       items=items, took=took)
        self._turns.pop(user_id, None)

    def flow_decision(self, user_id: str, decision: str, reason: str = None):
        if self.enabled(LogLevel.MINIMAL):
            self._emit(logging.INFO, "🎯", "FLOW", decision, turn=self._turn(user_id), reason=reason)

    # ═══════════════════════════════════════════════════════════
    # RETRIEVAL
    # ═══════════════════════════════════════════════════════════

    def category_classified(self, user_id: str, category: Optional[str], intent: str, source: str):
        if self.enabled(LogLevel.STANDARD):
            self._emit(logging.INFO, "🧠", "CATEGORY", str(category), turn=self._turn(user_id),
                       intent=intent, via=source)

    def candidates_ranked(self, user_id: str, pool_size: int, top_ids: List[str]):
        if self.enabled(LogLevel.STANDARD):
            self._emit(logging.INFO, "🔍", "CANDIDATES", f"pool={pool_size}", turn=self._turn(user_id),
                       top=",".join(top_ids))

    # ═══════════════════════════════════════════════════════════
    # STORAGE
    # ═══════════════════════════════════════════════════════════

    def compaction(self, user_id: str, mode: str, size_before: int, size_after: int, dropped: int):
        if self.enabled(LogLevel.MINIMAL):
            self._emit(logging.INFO, "✂️", "COMPACTION", mode, user=user_id,
                       bytes=f"{size_before}->{size_after}", dropped=dropped)

    def storage_retry(self, user_id: str, attempt: int, budget: int, size_bytes: int = None):
        if self.enabled(LogLevel.MINIMAL):
            self._emit(logging.WARNING, "🔁", "STORAGE_RETRY", f"{attempt}/{budget}",
                       turn=self._turn(user_id), size=size_bytes)

    # ═══════════════════════════════════════════════════════════
    # FAILURES (not filtered by level)
    # ═══════════════════════════════════════════════════════════

    def generation_failure(self, user_id: str, kind: str, stage: str, error_msg: str = None):
        # transient failures already spent their retries; the rest need an operator
        severity = logging.WARNING if kind == "transient-network" else logging.ERROR
        self._emit(severity, "🤖", "GENERATION_FAILURE", f"{kind} in {stage}", turn=self._turn(user_id),
                   msg=error_msg)

    def error_occurred(self, user_id: str, error_type: str, operation: str, error_msg: str = None):
        self._emit(logging.ERROR, "❌", "ERROR", f"{error_type} in {operation}", turn=self._turn(user_id),
                   msg=error_msg)
        self._turns.pop(user_id, None)

    def warning(self, user_id: str, warning_type: str, details: str = None):
        self._emit(logging.WARNING, "⚠️", "WARNING", warning_type, user=user_id, details=details)


_loggers: Dict[str, SmartLogger] = {}


def resolve_level(name: Optional[str] = None) -> LogLevel:
    name = (name or os.getenv("BOT_LOG_LEVEL", "STANDARD")).upper()
    return LogLevel.__members__.get(name, LogLevel.STANDARD)


def get_smart_logger(module_name: str, level: Optional[LogLevel] = None) -> SmartLogger:
    """One shared SmartLogger per module name."""
    smart = _loggers.get(module_name)
    if smart is None:
        smart = _loggers[module_name] = SmartLogger(f"skillbot.flow.{module_name}", level or resolve_level())
    elif level is not None:
        smart.set_level(level)
    return smart
