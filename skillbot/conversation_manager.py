"""
Conversation lifecycle for SkillBot
───────────────────────────────────
• Lazily creates a conversation with a welcome message
• Keeps the stored document under its size ceiling with three defences:
  soft pre-check before the turn, hard check after appending the turn,
  forced compaction + bounded re-run when the store still rejects the write
• Updates the unread badge record after every successful turn

A document's size is only known after generation, so no single pre-flight
check is enough.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from .bot_core import SkillBotCore
from .config import get_config
from .enums import CompactionMode, MessageKind
from .errors import RetryExhausted, StorageLimitExceeded, StoreUnavailable
from .models import (CatalogItem, Conversation, ErrorMessage, Message, RecommendationMessage,
                     ResponseMessage, SendResult, SystemNotice, TurnReply, UserMessage,
                     WelcomeMessage, conversation_key)
from .prompts import TRIM_NOTICE
from .utils.helpers import encoded_size, new_message_id
from .utils.smart_logger import get_smart_logger

Cfg = get_config()
log = logging.getLogger(__name__)

SYSTEM_SENDER_ID = "system"


@dataclass(frozen=True)
class CompactionPolicy:
    soft_limit_bytes: int = 300 * 1024
    hard_limit_bytes: int = 400 * 1024
    soft_keep_last: int = 10
    hard_keep_last: int = 5
    prompt_window: int = 20
    retry_budget: int = 2

    @classmethod
    def from_config(cls, cfg=None) -> "CompactionPolicy":
        cfg = cfg or Cfg
        return cls(
            soft_limit_bytes=cfg.SOFT_LIMIT_BYTES,
            hard_limit_bytes=cfg.HARD_LIMIT_BYTES,
            soft_keep_last=cfg.SOFT_KEEP_LAST,
            hard_keep_last=cfg.HARD_KEEP_LAST,
            prompt_window=cfg.PROMPT_HISTORY_WINDOW,
            retry_budget=cfg.SEND_RETRY_BUDGET,
        )


# ────────────────────────────────────────────────────────
# Size + compaction (pure)
# ────────────────────────────────────────────────────────

def estimate_size(messages: Sequence[Message]) -> int:
    """Bytes of the canonical JSON encoding of the message log."""
    return encoded_size([m.to_dict() for m in messages])


def compact_messages(messages: Sequence[Message], keep_last: int) -> Tuple[List[Message], int]:
    """
    Keep the last ``keep_last`` real messages behind one trim notice.
    Returns (new log, number of messages dropped by this call). A log with
    at most ``keep_last`` real messages comes back unchanged.
    """
    real = [m for m in messages if not m.is_synthetic]
    if len(real) <= keep_last:
        return list(messages), 0

    dropped = len(real) - keep_last
    archived = dropped + sum(m.dropped_count for m in messages if isinstance(m, SystemNotice))
    notice = SystemNotice(
        id=new_message_id("notice"),
        sender_id=SYSTEM_SENDER_ID,
        content=TRIM_NOTICE.format(dropped=archived),
        dropped_count=archived,
    )
    kept = real[-keep_last:] if keep_last > 0 else []
    return [notice, *kept], dropped


def build_agent_message(reply: TurnReply, agent_id: str) -> Message:
    if reply.kind is MessageKind.RECOMMENDATION and reply.recommended_items:
        return RecommendationMessage(
            id=new_message_id("bot"), sender_id=agent_id, content=reply.content,
            recommended_items=list(reply.recommended_items),
        )
    if reply.kind is MessageKind.ERROR:
        return ErrorMessage(id=new_message_id("bot"), sender_id=agent_id, content=reply.content,
                            failure=reply.failure)
    return ResponseMessage(id=new_message_id("bot"), sender_id=agent_id, content=reply.content)


# ────────────────────────────────────────────────────────
# Manager
# ────────────────────────────────────────────────────────

class ConversationManager:
    def __init__(
        self,
        store,
        core: SkillBotCore,
        *,
        counter=None,
        policy: Optional[CompactionPolicy] = None,
        agent_id: Optional[str] = None,
    ) -> None:
        self.store = store
        self.core = core
        self.counter = counter
        self.policy = policy or CompactionPolicy.from_config()
        self.agent_id = agent_id or Cfg.AGENT_ID
        self.smart_log = get_smart_logger("conversation_manager")

    def conversation_id(self, user_id: str) -> str:
        return conversation_key(user_id, self.agent_id)

    # ── lifecycle ───────────────────────────────────────────
    async def initialize(self, user_id: str, user_name: Optional[str] = None) -> Conversation:
        """Return the user's conversation, creating it with a welcome message if absent."""
        conv = self.store.get(self.conversation_id(user_id))
        if conv is not None:
            return conv

        welcome = WelcomeMessage(
            id=new_message_id("welcome"),
            sender_id=self.agent_id,
            content=await self.core.welcome_text(user_name),
        )
        conv = Conversation(user_id=user_id, agent_id=self.agent_id)
        conv.append(welcome)
        self.store.set(conv.conversation_id, conv, merge=False)
        self._notify(user_id, welcome.content)
        log.info(f"CONVERSATION_CREATED | conversation={conv.conversation_id}")
        return conv

    def get_conversation(self, user_id: str) -> Optional[Conversation]:
        return self.store.get(self.conversation_id(user_id))

    def reset(self, user_id: str) -> None:
        cid = self.conversation_id(user_id)
        self.store.delete(cid)
        if self.counter is not None:
            try:
                self.counter.delete(user_id, self.agent_id)
            except StoreUnavailable as exc:
                log.warning(f"RESET_COUNTER_FAILED | conversation={cid} | error={exc}")
        log.info(f"CONVERSATION_RESET | conversation={cid}")

    def mark_read(self, user_id: str) -> None:
        if self.counter is not None:
            self.counter.reset_unread(user_id, self.agent_id)

    def subscribe(self, user_id: str, on_change: Callable[[Optional[Conversation]], None]):
        return self.store.subscribe(self.conversation_id(user_id), on_change)

    # ── send ────────────────────────────────────────────────
    async def send(
        self,
        user_id: str,
        text: str,
        *,
        user_name: Optional[str] = None,
        current_item: Optional[CatalogItem] = None,
        retry_budget: Optional[int] = None,
    ) -> SendResult:
        """
        Run one turn. A storage-size rejection force-compacts the stored log
        and re-runs the turn from the top, at most ``retry_budget`` times;
        after that RetryExhausted is raised.
        """
        budget = self.policy.retry_budget if retry_budget is None else max(0, retry_budget)
        retries = 0

        while True:
            self.smart_log.turn_start(user_id, text, attempt=retries + 1)
            try:
                return await self._send_once(user_id, text, user_name=user_name, current_item=current_item)
            except StorageLimitExceeded as exc:
                if retries >= budget:
                    self.smart_log.error_occurred(user_id, "RetryExhausted", "send", str(exc))
                    raise RetryExhausted(self.conversation_id(user_id), retries) from exc
                retries += 1
                self.smart_log.storage_retry(user_id, retries, budget, exc.size_bytes)
                self._force_compact(user_id)

    async def _send_once(
        self,
        user_id: str,
        text: str,
        *,
        user_name: Optional[str],
        current_item: Optional[CatalogItem],
    ) -> SendResult:
        conv = await self.initialize(user_id, user_name)

        # Prompt context comes from the log as loaded, before any compaction
        history = list(conv.messages[-self.policy.prompt_window:]) if self.policy.prompt_window > 0 else []

        size = estimate_size(conv.messages)
        if size > self.policy.soft_limit_bytes:
            self._compact(conv, self.policy.soft_keep_last, CompactionMode.SOFT, size)

        reply = await self.core.compute_reply(user_id, text, history, current_item=current_item)

        user_msg = UserMessage(id=new_message_id("user"), sender_id=user_id, content=text)
        agent_msg = build_agent_message(reply, self.agent_id)
        conv.append(user_msg)
        conv.append(agent_msg)

        size = estimate_size(conv.messages)
        if size > self.policy.hard_limit_bytes:
            self._compact(conv, self.policy.hard_keep_last, CompactionMode.AGGRESSIVE, size)

        self.store.set(conv.conversation_id, conv, merge=True)
        self._notify(user_id, agent_msg.content)
        return SendResult(user_message=user_msg, agent_message=agent_msg)

    # ── helpers ─────────────────────────────────────────────
    def _compact(self, conv: Conversation, keep_last: int, mode: CompactionMode, size_before: int) -> bool:
        messages, dropped = compact_messages(conv.messages, keep_last)
        if not dropped:
            return False
        conv.messages = messages
        size_after = estimate_size(messages)
        conv.trimmed_count += dropped
        conv.last_trim_size_before = size_before
        conv.last_trim_size_after = size_after
        self.smart_log.compaction(conv.user_id, mode.value, size_before, size_after, dropped)
        return True

    def _force_compact(self, user_id: str) -> None:
        conv = self.store.get(self.conversation_id(user_id))
        if conv is None:
            return
        if not self._compact(conv, self.policy.hard_keep_last, CompactionMode.FORCED, estimate_size(conv.messages)):
            return
        try:
            self.store.set(conv.conversation_id, conv, merge=True)
        except StorageLimitExceeded as exc:
            # Even the short log is too big; the next attempt fails the same way and spends budget
            log.warning(f"FORCED_COMPACTION_REJECTED | conversation={conv.conversation_id} | size={exc.size_bytes}")

    def _notify(self, user_id: str, last_message: str) -> None:
        if self.counter is None:
            return
        try:
            self.counter.increment_unread(user_id, self.agent_id, last_message=last_message)
            self.counter.reset_unread(self.agent_id, user_id)
        except StoreUnavailable as exc:
            self.smart_log.warning(user_id, "UNREAD_UPDATE_FAILED", str(exc))
