"""Metadata enrichment module.

Parses catalog references, resolves them against metadata providers and
caches the merged results.
"""

from desicatalog.enrichment.cache import EnrichmentCache
from desicatalog.enrichment.reference import MetadataReference, parse_reference
from desicatalog.enrichment.resolver import (
    MetadataResolver,
    ResolvedMetadata,
    build_fallback,
    merge_results,
)

__all__ = [
    "EnrichmentCache",
    "MetadataReference",
    "MetadataResolver",
    "ResolvedMetadata",
    "build_fallback",
    "merge_results",
    "parse_reference",
]
