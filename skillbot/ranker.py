# skillbot/ranker.py
"""
Additive relevance scoring of catalog candidates against a request.
"""

from __future__ import annotations

from typing import List, Sequence

from .models import CatalogItem
from .utils.helpers import words


class RelevanceRanker:
    EXACT_TITLE_BONUS = 10
    TITLE_WORD_POINTS = 3
    SUBCATEGORY_WORD_POINTS = 2
    TAG_POINTS = 2
    MIN_WORD_LEN = 3

    def score(self, item: CatalogItem, text: str) -> int:
        query = (text or "").lower().strip()
        title = item.title.lower()
        subcategory = item.subcategory.lower()
        total = 0

        if query and query in title:
            total += self.EXACT_TITLE_BONUS

        for word in words(query):
            if len(word) < self.MIN_WORD_LEN:
                continue
            if word in title:
                total += self.TITLE_WORD_POINTS
            if subcategory and word in subcategory:
                total += self.SUBCATEGORY_WORD_POINTS

        total += self.TAG_POINTS * sum(1 for tag in item.tags if tag and tag in query)

        if item.rating > 4.5:
            total += 3
        elif item.rating > 4.0:
            total += 2
        elif item.rating > 3.5:
            total += 1

        if item.total_orders > 50:
            total += 2
        elif item.total_orders > 20:
            total += 1

        if item.review_count > 10:
            total += 1
        if item.is_active:
            total += 1
        return total

    def rank(self, items: Sequence[CatalogItem], text: str) -> List[CatalogItem]:
        """Descending by score; equal scores keep catalog-query order (sorted() is stable)."""
        scored = [(self.score(item, text), item) for item in items]
        return [item for _, item in sorted(scored, key=lambda pair: pair[0], reverse=True)]

    def top(self, items: Sequence[CatalogItem], text: str, limit: int = 3) -> List[CatalogItem]:
        return self.rank(items, text)[:max(0, limit)]
