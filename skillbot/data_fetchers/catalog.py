# skillbot/data_fetchers/catalog.py
"""
Catalog Query Service adapters
──────────────────────────────
• ElasticsearchCatalogFetcher: active gigs of one category (or the general
  pool when category is None), best rated first; blocking requests calls run
  in the default executor
• StaticCatalog: in-memory list, optionally loaded from a JSON file

Catalog reads are read-only and may be stale. A failed query returns no
candidates and the turn falls through to a direct reply.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import requests

from ..config import get_config
from ..models import CatalogItem

Cfg = get_config()
log = logging.getLogger(__name__)


def _transform_hits(raw: Dict[str, Any]) -> List[CatalogItem]:
    items: List[CatalogItem] = []
    for hit in ((raw or {}).get("hits") or {}).get("hits") or []:
        src = dict(hit.get("_source") or {})
        src.setdefault("id", hit.get("_id"))
        try:
            items.append(CatalogItem.from_dict(src))
        except (TypeError, ValueError) as exc:
            log.warning(f"CATALOG_SKIP_HIT | id={hit.get('_id')} | error={exc}")
    return items


class ElasticsearchCatalogFetcher:
    """Gig listings from an Elasticsearch index."""

    def __init__(self, base_url: str = None, index: str = None, api_key: str = None,
                 timeout: Optional[float] = None, session: Optional[requests.Session] = None):
        self.base_url = (base_url or Cfg.ELASTIC_BASE).rstrip("/")
        self.index = index or Cfg.ELASTIC_INDEX
        self.api_key = api_key or Cfg.ELASTIC_API_KEY
        self.timeout = timeout if timeout is not None else Cfg.ELASTIC_TIMEOUT_SECONDS
        self.session = session or requests.Session()

        if not self.base_url:
            raise RuntimeError("ELASTIC_BASE (or ES_URL) is required for the Elasticsearch catalog")

        self.endpoint = f"{self.base_url}/{self.index}/_search"
        self.headers = {"Content-Type": "application/json"}
        if self.api_key:
            self.headers["Authorization"] = f"ApiKey {self.api_key}"

    @staticmethod
    def build_query(category: Optional[str], limit: int) -> Dict[str, Any]:
        filters: List[Dict[str, Any]] = [{"term": {"isActive": True}}]
        if category:
            filters.append({"term": {"category": category}})
        return {
            "size": limit,
            "query": {"bool": {"filter": filters}},
            "sort": [{"rating": {"order": "desc"}}, {"totalOrders": {"order": "desc"}}],
        }

    def search(self, category: Optional[str], limit: int) -> List[CatalogItem]:
        body = self.build_query(category, limit)
        try:
            resp = self.session.post(self.endpoint, headers=self.headers, json=body, timeout=self.timeout)
            resp.raise_for_status()
            items = _transform_hits(resp.json())
        except requests.exceptions.Timeout:
            log.warning(f"CATALOG_TIMEOUT | category={category} | timeout={self.timeout}s")
            return []
        except (requests.exceptions.RequestException, ValueError) as exc:
            log.warning(f"CATALOG_QUERY_FAILED | category={category} | error={exc}")
            return []

        log.info(f"CATALOG_QUERY | category={category} | returned={len(items)}")
        return items

    async def query(self, category: Optional[str], limit: int = None) -> List[CatalogItem]:
        limit = limit or Cfg.CATALOG_QUERY_LIMIT
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: self.search(category, limit))


class StaticCatalog:
    """In-memory catalog for local runs and tests; keeps insertion order."""

    def __init__(self, items: Iterable[CatalogItem] = ()):
        self.items: List[CatalogItem] = list(items)

    @classmethod
    def from_file(cls, path: str) -> "StaticCatalog":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        records = data.get("gigs", []) if isinstance(data, dict) else data
        items = [CatalogItem.from_dict(r) for r in records]
        log.info(f"CATALOG_FILE_LOADED | path={path} | items={len(items)}")
        return cls(items)

    async def query(self, category: Optional[str], limit: int = None) -> List[CatalogItem]:
        limit = limit or Cfg.CATALOG_QUERY_LIMIT
        pool = [i for i in self.items if i.is_active and (not category or i.category == category)]
        return pool[:limit]


def build_catalog():
    """Elasticsearch when configured, else the JSON file, else an empty catalog."""
    if Cfg.ELASTIC_BASE:
        return ElasticsearchCatalogFetcher()
    if Cfg.CATALOG_FILE:
        return StaticCatalog.from_file(Cfg.CATALOG_FILE)
    log.warning("CATALOG_EMPTY | no ELASTIC_BASE or CATALOG_FILE configured")
    return StaticCatalog()
