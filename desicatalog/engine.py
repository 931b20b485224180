"""Catalog discovery and metadata enrichment engine.

Single entry point for callers: lists catalog pages by offset and resolves
catalog references into metadata, sharing one cache and one set of HTTP
clients for the lifetime of the process.
"""

from contextlib import AsyncExitStack
from typing import Any

import structlog

from desicatalog.catalog.listing import CatalogEntry, DesiCinemasClient, ListingSource
from desicatalog.catalog.pager import CatalogKey
from desicatalog.catalog.service import CatalogService
from desicatalog.enrichment.cache import EnrichmentCache
from desicatalog.enrichment.reference import normalize_reference
from desicatalog.enrichment.resolver import MetadataResolver, ResolvedMetadata, build_fallback
from desicatalog.media.omdb import OMDBClient
from desicatalog.media.provider import MetadataProvider
from desicatalog.media.tmdb import TMDBClient

logger = structlog.get_logger(__name__)


class CatalogEngine:
    """Serves catalog listings and resolved metadata.

    Collaborators passed in are used as-is; missing ones are built from
    settings and opened when the engine is entered.

    Example:
        async with CatalogEngine() as engine:
            entries = await engine.list_catalog("desicinemas-punjabi", offset=0)
            meta = await engine.resolve_metadata(entries[0].title)
    """

    def __init__(
        self,
        listing_source: ListingSource | None = None,
        primary: MetadataProvider | None = None,
        secondary: MetadataProvider | None = None,
        cache: EnrichmentCache[ResolvedMetadata] | None = None,
        page_size: int | None = None,
        preferred_languages: list[str] | None = None,
    ):
        self._listing_source = listing_source
        self._primary = primary
        self._secondary = secondary
        self._page_size = page_size
        self._preferred_languages = preferred_languages
        self.cache: EnrichmentCache[ResolvedMetadata] = cache if cache is not None else EnrichmentCache()
        self._stack: AsyncExitStack | None = None
        self._catalog: CatalogService | None = None
        self._resolver: MetadataResolver | None = None

    async def __aenter__(self) -> "CatalogEngine":
        """Open owned HTTP clients and wire the services."""
        async with AsyncExitStack() as stack:
            if self._listing_source is None:
                self._listing_source = await stack.enter_async_context(DesiCinemasClient())
            if self._primary is None:
                self._primary = await stack.enter_async_context(TMDBClient())
            if self._secondary is None:
                self._secondary = await stack.enter_async_context(OMDBClient())
            self._stack = stack.pop_all()

        self._catalog = CatalogService(self._listing_source, page_size=self._page_size)
        self._resolver = MetadataResolver(
            self._primary,
            self._secondary,
            preferred_languages=self._preferred_languages,
        )
        logger.info(
            "catalog_engine_started",
            primary=getattr(self._primary, "name", type(self._primary).__name__),
            secondary=getattr(self._secondary, "name", type(self._secondary).__name__),
        )
        return self

    async def __aexit__(self, _exc_type: Any, _exc_val: Any, _exc_tb: Any) -> None:
        """Close owned HTTP clients."""
        if self._stack is not None:
            await self._stack.aclose()
            self._stack = None
        self._catalog = None
        self._resolver = None

    def _require_started(self) -> tuple[CatalogService, MetadataResolver]:
        if self._catalog is None or self._resolver is None:
            raise RuntimeError("CatalogEngine must be used as async context manager")
        return self._catalog, self._resolver

    async def list_catalog(self, catalog_key: str | CatalogKey, offset: int = 0) -> list[CatalogEntry]:
        """List catalog entries for an item offset.

        Raises:
            InvalidArgumentError: If offset is negative or the catalog is unknown.
        """
        catalog, _ = self._require_started()
        return await catalog.list_catalog(catalog_key, offset)

    async def resolve_metadata(self, reference: str) -> ResolvedMetadata:
        """Resolve a catalog reference, sharing work between identical requests.

        Never raises; returns at least the minimal fallback record.
        """
        _, resolver = self._require_started()
        key = normalize_reference(reference)
        if not key:
            return build_fallback(reference)

        try:
            return await self.cache.dedupe(key, lambda: resolver.resolve(reference))
        except Exception as e:
            logger.error(
                "metadata_dedupe_failed",
                reference=reference,
                error=str(e),
                error_type=type(e).__name__,
            )
            return build_fallback(reference)
