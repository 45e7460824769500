# skillbot/recommendation.py
"""
Recommendation Composer for SkillBot
────────────────────────────────────
• Builds a compact, id-free prompt over the top ranked candidates
• Asks the model for a short narrative that names 1-2 gigs by title
• Extracts which candidates the narrative actually references
• Falls back to a templated narrative on any generation failure

Only candidates passed in can come back out; extraction never invents items.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .config import get_config
from .errors import GenerationFailure
from .intent_config import POSITIVE_RECOMMENDATION_PHRASES
from .models import CatalogItem, Composition
from .prompts import (ASSISTANT_PERSONA, FALLBACK_ITEM_ANALYSIS, FALLBACK_RECOMMENDATION,
                      ITEM_ANALYSIS_PROMPT, RECOMMENDATION_PROMPT)
from .utils.helpers import format_price, words

Cfg = get_config()
log = logging.getLogger(__name__)

SIGNIFICANT_WORD_MIN_LEN = 4
FUZZY_MIN_WORDS = 2
FUZZY_MATCH_RATIO = 0.6


# ─────────────────────────────────────────────────────────────
# Extraction
# ─────────────────────────────────────────────────────────────

def significant_words(title: str) -> List[str]:
    return [w for w in words(title) if len(w) >= SIGNIFICANT_WORD_MIN_LEN]


def is_mentioned(item: CatalogItem, narrative: str) -> bool:
    text = (narrative or "").lower()
    title = item.title.strip().lower()
    if title and title in text:
        return True

    sig = significant_words(title)
    if len(sig) < FUZZY_MIN_WORDS:
        return False
    hits = sum(1 for w in sig if w in text)
    return hits / len(sig) >= FUZZY_MATCH_RATIO


def extract_mentions(narrative: str, candidates: Sequence[CatalogItem]) -> List[CatalogItem]:
    """Candidates referenced by the narrative, in ranked order."""
    found: List[CatalogItem] = []
    seen = set()
    for item in candidates:
        if item.id in seen:
            continue
        if is_mentioned(item, narrative):
            found.append(item)
            seen.add(item.id)
    return found


def has_positive_phrase(narrative: str) -> bool:
    text = (narrative or "").lower()
    return any(phrase in text for phrase in POSITIVE_RECOMMENDATION_PHRASES)


# ─────────────────────────────────────────────────────────────
# Composer
# ─────────────────────────────────────────────────────────────

class RecommendationComposer:
    def __init__(
        self,
        llm,
        *,
        top_n: Optional[int] = None,
        language: Optional[str] = None,
        platform: Optional[str] = None,
        agent_name: Optional[str] = None,
    ) -> None:
        self.llm = llm
        self.top_n = top_n or Cfg.TOP_CANDIDATES
        self.language = language or Cfg.RESPONSE_LANGUAGE
        self.platform = platform or Cfg.PLATFORM_NAME
        self.agent_name = agent_name or Cfg.AGENT_DISPLAY_NAME

    @property
    def persona(self) -> str:
        return ASSISTANT_PERSONA.format(
            agent_name=self.agent_name, platform=self.platform, language=self.language
        )

    def build_prompt(self, text: str, candidates: Sequence[CatalogItem]) -> str:
        lines = [
            f"{i}. {item.title} | {format_price(item.basic_price)} | {item.basic_delivery_days} days"
            for i, item in enumerate(candidates, 1)
        ]
        return RECOMMENDATION_PROMPT.format(
            persona=self.persona,
            query=text,
            candidates="\n".join(lines),
            language=self.language,
        )

    async def compose(self, text: str, ranked_candidates: Sequence[CatalogItem]) -> Composition:
        candidates = list(ranked_candidates)[: self.top_n]
        if not candidates:
            raise ValueError("compose() needs at least one ranked candidate")

        try:
            narrative = await self.llm.generate(self.build_prompt(text, candidates))
        except GenerationFailure as exc:
            log.warning(f"COMPOSE_FALLBACK | kind={exc.kind.value} | top={candidates[0].id}")
            return self.fallback(candidates[0])

        mentioned = extract_mentions(narrative, candidates)
        if not mentioned and has_positive_phrase(narrative):
            log.info(f"COMPOSE_POSITIVE_PHRASE | top={candidates[0].id}")
            mentioned = [candidates[0]]

        log.info(
            f"COMPOSE_DONE | candidates={len(candidates)} | mentioned={[c.id for c in mentioned]}"
        )
        return Composition(narrative=narrative.strip(), recommended_items=mentioned)

    def fallback(self, top: CatalogItem) -> Composition:
        rating_part = f", rated {top.rating:.1f}/5" if top.rating > 0 else ""
        narrative = FALLBACK_RECOMMENDATION.format(
            title=top.title,
            price=format_price(top.basic_price),
            delivery_days=top.basic_delivery_days,
            rating_part=rating_part,
        )
        return Composition(narrative=narrative, recommended_items=[top], used_fallback=True)

    async def analyze_item(self, item: CatalogItem, text: str) -> str:
        """Answer a question about the gig the user is currently viewing."""
        prompt = ITEM_ANALYSIS_PROMPT.format(
            persona=self.persona,
            title=item.title,
            category=item.category,
            price=format_price(item.basic_price),
            delivery_days=item.basic_delivery_days,
            rating=f"{item.rating:.1f}/5 ({item.review_count} reviews)",
            freelancer=item.freelancer_name or "unknown",
            query=text,
        )
        try:
            return (await self.llm.generate(prompt)).strip()
        except GenerationFailure as exc:
            log.warning(f"ITEM_ANALYSIS_FALLBACK | kind={exc.kind.value} | item={item.id}")
            return FALLBACK_ITEM_ANALYSIS.format(title=item.title, price=format_price(item.basic_price))
