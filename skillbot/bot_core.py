"""
Turn engine of SkillBot.

Given the user's text and the recent history, decide what the assistant says:
• keyword category → catalog query → rank → compose (recommendation)
• keyword miss → model classification alongside the general-pool query
  when the request reads as a project request or a follow-up
• viewing a gig → answer about that gig
• project request with no matching gigs → short analysis plus guidance
• nothing to recommend → direct model reply

Generation failures never leave this module; every path has a fallback.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import List, Optional, Sequence

from .classifier import CategoryClassifier
from .config import get_config
from .enums import CatalogIntent, GenerationErrorKind, MessageKind
from .errors import GenerationFailure
from .models import CatalogItem, Message, TurnReply
from .prompts import (CONTENT_BLOCKED_RESPONSE, DIRECT_RESPONSE_PROMPT, FALLBACK_DIRECT_RESPONSE,
                      FALLBACK_WELCOME, NO_MATCHING_GIGS_RESPONSE, PROJECT_ANALYSIS_PROMPT,
                      WELCOME_PROMPT)
from .ranker import RelevanceRanker
from .recommendation import RecommendationComposer
from .utils.smart_logger import get_smart_logger

Cfg = get_config()
log = logging.getLogger(__name__)

_GENERAL_POOL_INTENTS = (CatalogIntent.PROJECT, CatalogIntent.FOLLOW_UP)


def format_history(history: Sequence[Message], agent_id: str) -> str:
    lines = []
    for msg in history:
        if msg.is_synthetic:
            continue
        speaker = "Assistant" if msg.sender_id == agent_id else "Customer"
        lines.append(f"{speaker}: {msg.content}")
    if not lines:
        return ""
    return "\nConversation so far:\n" + "\n".join(lines) + "\n"


class SkillBotCore:
    def __init__(
        self,
        llm,
        catalog,
        *,
        classifier: Optional[CategoryClassifier] = None,
        ranker: Optional[RelevanceRanker] = None,
        composer: Optional[RecommendationComposer] = None,
        agent_id: Optional[str] = None,
    ) -> None:
        self.llm = llm
        self.catalog = catalog
        self.classifier = classifier or CategoryClassifier(llm)
        self.ranker = ranker or RelevanceRanker()
        self.composer = composer or RecommendationComposer(llm)
        self.agent_id = agent_id or Cfg.AGENT_ID
        self.smart_log = get_smart_logger("bot_core")

    # ────────────────────────────────────────────────────────
    # Welcome
    # ────────────────────────────────────────────────────────
    async def welcome_text(self, user_name: Optional[str] = None) -> str:
        name = user_name or "there"
        prompt = WELCOME_PROMPT.format(
            persona=self.composer.persona,
            user_name=name,
            agent_name=self.composer.agent_name,
            platform=self.composer.platform,
        )
        try:
            return (await self.llm.generate(prompt, max_tokens=150)).strip()
        except GenerationFailure as exc:
            log.warning(f"WELCOME_FALLBACK | kind={exc.kind.value} | error={exc}")
            return FALLBACK_WELCOME.format(
                user_name=name, agent_name=self.composer.agent_name, platform=self.composer.platform
            )

    # ────────────────────────────────────────────────────────
    # Public entry point
    # ────────────────────────────────────────────────────────
    async def compute_reply(
        self,
        user_id: str,
        text: str,
        history: Sequence[Message],
        *,
        current_item: Optional[CatalogItem] = None,
    ) -> TurnReply:
        started = time.perf_counter()
        category = self.classifier.classify_keywords(text)
        intent = self.classifier.detect_intent(text, history)

        if current_item is not None and category is None and intent is not CatalogIntent.PROJECT:
            self.smart_log.flow_decision(user_id, "ITEM_ANALYSIS", reason=current_item.id)
            answer = await self.composer.analyze_item(current_item, text)
            reply = TurnReply(kind=MessageKind.RESPONSE, content=answer)
        else:
            candidates = await self._retrieve(user_id, text, category, intent)
            if candidates:
                reply = await self._recommend(user_id, text, candidates)
            elif intent is CatalogIntent.PROJECT:
                self.smart_log.flow_decision(user_id, "PROJECT_NO_MATCH", reason="no candidates")
                reply = await self._no_match(user_id, text, history)
            else:
                self.smart_log.flow_decision(user_id, "DIRECT_REPLY", reason="no candidates")
                reply = await self._direct(user_id, text, history)

        self.smart_log.response_generated(
            user_id, reply.kind.value, items=len(reply.recommended_items),
            elapsed_time=time.perf_counter() - started,
        )
        return reply

    # ────────────────────────────────────────────────────────
    # Retrieval
    # ────────────────────────────────────────────────────────
    async def _retrieve(
        self, user_id: str, text: str, category: Optional[str], intent: CatalogIntent
    ) -> List[CatalogItem]:
        limit = Cfg.CATALOG_QUERY_LIMIT

        if category:
            self.smart_log.category_classified(user_id, category, intent.value, "keywords")
            pool = await self.catalog.query(category, limit)
        elif intent in _GENERAL_POOL_INTENTS:
            # Both are read-only; the pool is the fallback when the model finds no category
            category, general = await asyncio.gather(
                self.classifier.classify_with_model(text),
                self.catalog.query(None, limit),
            )
            self.smart_log.category_classified(user_id, category, intent.value, "model+pool")
            pool = general
            if category:
                pool = [i for i in general if i.category == category] or await self.catalog.query(category, limit)
        else:
            category = await self.classifier.classify_with_model(text)
            self.smart_log.category_classified(user_id, category, intent.value, "model")
            pool = await self.catalog.query(category, limit) if category else []

        if not pool:
            return []
        top = self.ranker.top(pool, text, limit=Cfg.TOP_CANDIDATES)
        self.smart_log.candidates_ranked(user_id, len(pool), [c.id for c in top])
        return top

    # ────────────────────────────────────────────────────────
    # Reply builders
    # ────────────────────────────────────────────────────────
    async def _recommend(self, user_id: str, text: str, candidates: List[CatalogItem]) -> TurnReply:
        composition = await self.composer.compose(text, candidates)
        if composition.used_fallback:
            self.smart_log.flow_decision(user_id, "RECOMMEND_FALLBACK", reason=candidates[0].id)
        if not composition.recommended_items:
            # Narrative without a backed card stays a plain response
            self.smart_log.flow_decision(user_id, "RECOMMEND_NO_MENTION")
            return TurnReply(kind=MessageKind.RESPONSE, content=composition.narrative)

        self.smart_log.flow_decision(user_id, "RECOMMEND", reason=f"{len(composition.recommended_items)} items")
        return TurnReply(
            kind=MessageKind.RECOMMENDATION,
            content=composition.narrative,
            recommended_items=[item.to_ref() for item in composition.recommended_items],
        )

    async def _no_match(self, user_id: str, text: str, history: Sequence[Message]) -> TurnReply:
        """Project request with nothing to offer: short analysis plus where to go next."""
        guidance = NO_MATCHING_GIGS_RESPONSE.format(platform=self.composer.platform)
        prompt = PROJECT_ANALYSIS_PROMPT.format(
            persona=self.composer.persona,
            history=format_history(history, self.agent_id),
            query=text,
        )
        try:
            analysis = (await self.llm.generate(prompt)).strip()
        except GenerationFailure as exc:
            self.smart_log.generation_failure(user_id, exc.kind.value, "project_analysis", str(exc))
            return TurnReply(kind=MessageKind.RESPONSE, content=guidance)
        return TurnReply(kind=MessageKind.RESPONSE, content=f"{analysis}\n\n{guidance}")

    async def _direct(self, user_id: str, text: str, history: Sequence[Message]) -> TurnReply:
        prompt = DIRECT_RESPONSE_PROMPT.format(
            persona=self.composer.persona,
            history=format_history(history, self.agent_id),
            query=text,
        )
        try:
            answer = await self.llm.generate(prompt)
            return TurnReply(kind=MessageKind.RESPONSE, content=answer.strip())
        except GenerationFailure as exc:
            self.smart_log.generation_failure(user_id, exc.kind.value, "direct_reply", str(exc))
            if exc.kind is GenerationErrorKind.CONTENT_BLOCKED:
                content = CONTENT_BLOCKED_RESPONSE
            else:
                content = FALLBACK_DIRECT_RESPONSE.format(platform=self.composer.platform)
            return TurnReply(kind=MessageKind.ERROR, content=content, failure=exc.kind.value)
