"""DesiCinemas catalog discovery and metadata enrichment."""

from desicatalog.catalog import CatalogEntry, CatalogKey, InvalidArgumentError
from desicatalog.engine import CatalogEngine
from desicatalog.enrichment import ResolvedMetadata

__all__ = [
    "CatalogEngine",
    "CatalogEntry",
    "CatalogKey",
    "InvalidArgumentError",
    "ResolvedMetadata",
]
