from __future__ import annotations

import json

import pytest
import requests

from skillbot.data_fetchers import ElasticsearchCatalogFetcher, StaticCatalog

from .fakes import BANNER_GIG, LOGO_GIG


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.exceptions.HTTPError(f"{self.status} error")

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, outcome):
        self.outcome = outcome
        self.posts = []

    def post(self, url, headers=None, json=None, timeout=None):
        self.posts.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome


HITS = {
    "hits": {"hits": [
        {"_id": "es-1", "_source": {"title": "Company Profile Website", "category": "web", "rating": 4.7,
                                    "packages": {"basic": {"price": 1500000, "deliveryTime": 7}}}},
        {"_id": "es-2", "_source": {"title": "Landing Page", "category": "web", "isActive": True}},
    ]}
}


def make_fetcher(outcome):
    session = FakeSession(outcome)
    fetcher = ElasticsearchCatalogFetcher(base_url="http://es.local:9200/", index="gigs", api_key="k",
                                          timeout=3, session=session)
    return fetcher, session


def test_query_filters_active_category_and_sorts_by_quality():
    body = ElasticsearchCatalogFetcher.build_query("web", 20)
    assert {"term": {"category": "web"}} in body["query"]["bool"]["filter"]
    assert {"term": {"isActive": True}} in body["query"]["bool"]["filter"]
    assert list(body["sort"][0]) == ["rating"]

    general = ElasticsearchCatalogFetcher.build_query(None, 5)
    assert general["size"] == 5
    assert general["query"]["bool"]["filter"] == [{"term": {"isActive": True}}]


@pytest.mark.asyncio
async def test_hits_become_catalog_items():
    fetcher, session = make_fetcher(FakeResponse(HITS))

    items = await fetcher.query("web", 10)

    assert [i.id for i in items] == ["es-1", "es-2"]
    assert items[0].basic_price == 1500000.0
    assert session.posts[0]["url"] == "http://es.local:9200/gigs/_search"
    assert session.posts[0]["headers"]["Authorization"] == "ApiKey k"


@pytest.mark.asyncio
@pytest.mark.parametrize("outcome", [
    requests.exceptions.Timeout("slow"),
    requests.exceptions.ConnectionError("refused"),
    FakeResponse({}, status=503),
])
async def test_failed_query_means_no_candidates(outcome):
    fetcher, _ = make_fetcher(outcome)
    assert await fetcher.query("web", 10) == []


def test_fetcher_needs_base_url(monkeypatch):
    from skillbot.data_fetchers import catalog

    monkeypatch.setattr(catalog.Cfg, "ELASTIC_BASE", "")
    with pytest.raises(RuntimeError):
        ElasticsearchCatalogFetcher(session=FakeSession(None))


@pytest.mark.asyncio
async def test_static_catalog_reads_file_and_filters(tmp_path):
    path = tmp_path / "gigs.json"
    path.write_text(json.dumps({"gigs": [
        {"id": "a", "title": "Logo", "category": "design"},
        {"id": "b", "title": "Old Logo", "category": "design", "isActive": False},
        {"id": "c", "title": "Shop", "category": "web"},
    ]}), encoding="utf-8")

    catalog = StaticCatalog.from_file(str(path))

    assert [i.id for i in await catalog.query("design", 10)] == ["a"]
    assert [i.id for i in await catalog.query(None, 10)] == ["a", "c"]


@pytest.mark.asyncio
async def test_static_catalog_respects_limit():
    catalog = StaticCatalog([LOGO_GIG, BANNER_GIG])
    assert await catalog.query("design", 1) == [LOGO_GIG]
