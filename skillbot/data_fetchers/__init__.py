# skillbot/data_fetchers/__init__.py
"""
Catalog query services. Both implementations expose
``async query(category, limit) -> List[CatalogItem]``.
"""

from .catalog import ElasticsearchCatalogFetcher, StaticCatalog, build_catalog  # noqa: F401

__all__ = ["ElasticsearchCatalogFetcher", "StaticCatalog", "build_catalog"]
