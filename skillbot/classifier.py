# skillbot/classifier.py
"""
Category classification and catalog-intent detection.

Keyword pass first (pure, deterministic over CATEGORY_KEYWORDS); when every
category scores zero a single model call picks a category or says "none".
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional, Sequence

from .enums import CatalogIntent, MessageKind
from .errors import GenerationFailure
from .intent_config import (CATEGORY_KEYWORDS, CATEGORY_LABELS, CHITCHAT_PATTERNS,
                            FOLLOW_UP_MARKERS, PROJECT_KEYWORDS)
from .models import Message
from .prompts import CATEGORY_CLASSIFICATION_PROMPT

log = logging.getLogger(__name__)


class CategoryClassifier:
    def __init__(self, llm=None, keyword_table: Optional[Dict[str, Sequence[str]]] = None) -> None:
        self.llm = llm
        self.table = keyword_table if keyword_table is not None else CATEGORY_KEYWORDS

    @property
    def categories(self) -> list:
        return list(self.table.keys())

    # ── keyword pass ────────────────────────────────────────
    def score(self, text: str) -> Dict[str, int]:
        lowered = (text or "").lower()
        return {
            category: sum(1 for kw in keywords if kw in lowered)
            for category, keywords in self.table.items()
        }

    def classify_keywords(self, text: str) -> Optional[str]:
        """Category with the strictly largest keyword count; first in table order on a tie."""
        best, best_count = None, 0
        for category, count in self.score(text).items():
            if count > best_count:
                best, best_count = category, count
        return best

    # ── full classification ─────────────────────────────────
    async def classify(self, text: str) -> Optional[str]:
        category = self.classify_keywords(text)
        if category:
            log.info(f"CATEGORY_KEYWORDS | category={category}")
            return category
        return await self.classify_with_model(text)

    async def classify_with_model(self, text: str) -> Optional[str]:
        if self.llm is None or not (text or "").strip():
            return None

        listing = "\n".join(
            f"- {key}: {CATEGORY_LABELS.get(key, key)}" for key in self.categories
        )
        prompt = CATEGORY_CLASSIFICATION_PROMPT.format(categories=listing, query=text)
        try:
            answer = await self.llm.generate(prompt, max_tokens=20, temperature=0.0)
        except GenerationFailure as exc:
            log.warning(f"CATEGORY_LLM_FAILED | kind={exc.kind.value} | error={exc}")
            return None

        category = self._match_answer(answer)
        log.info(f"CATEGORY_LLM | answer={answer.strip()[:40]!r} | category={category}")
        return category

    def _match_answer(self, answer: str) -> Optional[str]:
        cleaned = (answer or "").strip().strip(".\"'`").lower()
        if not cleaned or cleaned == "none":
            return None
        if cleaned in self.table:
            return cleaned
        # Tolerate a short sentence around the key ("Category: design")
        for key in self.categories:
            if key in cleaned.split() or cleaned.endswith(key):
                return key
        return None

    # ── intent ──────────────────────────────────────────────
    def detect_intent(self, text: str, history: Iterable[Message] = ()) -> CatalogIntent:
        lowered = (text or "").lower()

        if any(kw in lowered for kw in PROJECT_KEYWORDS):
            return CatalogIntent.PROJECT

        # Small talk never answers the agent's question, whatever it asked
        if any(p.search(lowered) for p in CHITCHAT_PATTERNS):
            return CatalogIntent.CHITCHAT

        last_agent = None
        for msg in reversed(list(history)):
            if msg.kind in (MessageKind.RESPONSE, MessageKind.RECOMMENDATION, MessageKind.WELCOME):
                last_agent = msg
                break
        if last_agent is not None:
            previous = last_agent.content.lower()
            if any(marker in previous for marker in FOLLOW_UP_MARKERS):
                return CatalogIntent.FOLLOW_UP

        return CatalogIntent.NONE
