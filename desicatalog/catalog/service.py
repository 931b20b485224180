"""Catalog listing orchestration.

Turns a caller's (catalog, offset) request into at most one listing fetch.
Listing failures degrade to an empty page; only malformed requests raise.
"""

import structlog

from desicatalog.catalog.listing import CatalogEntry, ListingSource, SourceUnavailableError
from desicatalog.catalog.pager import CatalogKey, TotalPagesTracker, resolve_page

logger = structlog.get_logger(__name__)


class CatalogService:
    """Serves catalog pages by offset.

    Example:
        async with DesiCinemasClient() as source:
            service = CatalogService(source)
            entries = await service.list_catalog("desicinemas-punjabi", offset=29)
    """

    def __init__(
        self,
        source: ListingSource,
        page_size: int | None = None,
        tracker: TotalPagesTracker | None = None,
    ) -> None:
        """Initialize catalog service.

        Args:
            source: Listing source used to fetch pages.
            page_size: External page size. Uses settings.catalog_page_size if None.
            tracker: Shared total-pages estimates. A fresh tracker if None.
        """
        self._source = source
        self._page_size = page_size
        self._tracker = tracker or TotalPagesTracker()

    @property
    def tracker(self) -> TotalPagesTracker:
        return self._tracker

    async def list_catalog(self, catalog_key: str | CatalogKey, offset: int = 0) -> list[CatalogEntry]:
        """List the catalog entries for an offset.

        Args:
            catalog_key: Catalog identifier.
            offset: Number of items to skip.

        Returns:
            Entries of the matching page; empty when the page is past the
            known end or the listing source fails.

        Raises:
            InvalidArgumentError: If offset is negative or the catalog is unknown.
        """
        descriptor = resolve_page(catalog_key, offset, self._page_size)
        key = descriptor.catalog_key

        if self._tracker.is_likely_beyond_content(key, descriptor.page_number):
            logger.info(
                "catalog_page_beyond_estimate",
                catalog=key.value,
                page=descriptor.page_number,
                total_pages=self._tracker.get(key),
            )
            return []

        try:
            page = await self._source.fetch_page(descriptor)
        except SourceUnavailableError as e:
            logger.warning(
                "catalog_listing_degraded",
                catalog=key.value,
                page=descriptor.page_number,
                error=str(e),
            )
            return []
        except Exception as e:
            logger.error(
                "catalog_listing_unexpected_error",
                catalog=key.value,
                page=descriptor.page_number,
                error=str(e),
                error_type=type(e).__name__,
            )
            return []

        total_pages = page.total_pages
        if page.entries:
            # A served page exists even when the pager links stop before it
            total_pages = max(total_pages or 0, descriptor.page_number)
        await self._tracker.observe(key, total_pages)
        return list(page.entries)
