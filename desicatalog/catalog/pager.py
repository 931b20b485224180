"""Offset to page translation for paginated catalogs.

Callers page through a catalog with an opaque "skip N items" offset. The
listing site pages by number, so the offset is mapped to a page number using
a fixed external page size. The mapping is stateless; the only shared state
is the per-catalog estimate of how many pages exist, which is used to answer
requests past the end without touching the network.
"""

import asyncio
from enum import Enum

import structlog
from pydantic import BaseModel, ConfigDict, Field

from desicatalog.config import settings

logger = structlog.get_logger(__name__)


# =============================================================================
# Catalog Definitions
# =============================================================================


class CatalogKey(str, Enum):
    """Catalogs served from the listing site."""

    PUNJABI = "desicinemas-punjabi"
    HINDI_DUBBED = "desicinemas-hindi-dubbed"


# Category path on the listing site for each catalog
CATALOG_PATHS = {
    CatalogKey.PUNJABI: "/category/punjabi/",
    CatalogKey.HINDI_DUBBED: "/category/hindi-dubbed/",
}


# =============================================================================
# Exceptions
# =============================================================================


class InvalidArgumentError(ValueError):
    """Raised for a malformed offset or an unknown catalog key."""

    pass


# =============================================================================
# Data Models
# =============================================================================


class PageDescriptor(BaseModel):
    """A single page of one catalog on the listing site."""

    model_config = ConfigDict(frozen=True)

    catalog_key: CatalogKey
    page_number: int = Field(..., ge=1)

    def build_url(self, base_url: str) -> str:
        """Build the listing address for this page.

        Page 1 is the category root; later pages live under ``page/<n>/``.

        Args:
            base_url: Root URL of the listing site.

        Returns:
            Absolute URL of the page.
        """
        category_url = f"{base_url.rstrip('/')}{CATALOG_PATHS[self.catalog_key]}"
        if self.page_number == 1:
            return category_url
        return f"{category_url}page/{self.page_number}/"


# =============================================================================
# Pager Functions
# =============================================================================


def parse_catalog_key(catalog_key: str | CatalogKey) -> CatalogKey:
    """Validate a catalog identifier.

    Raises:
        InvalidArgumentError: If the identifier is not a known catalog.
    """
    try:
        return CatalogKey(catalog_key)
    except ValueError as e:
        raise InvalidArgumentError(f"Unknown catalog: {catalog_key!r}") from e


def resolve_page(
    catalog_key: str | CatalogKey,
    offset: int,
    page_size: int | None = None,
) -> PageDescriptor:
    """Map an external item offset to a listing page.

    ``page_number = offset // page_size + 1``.

    Args:
        catalog_key: Catalog identifier.
        offset: Number of items to skip (>= 0).
        page_size: External page size. Uses settings.catalog_page_size if None.

    Returns:
        Page descriptor for the offset.

    Raises:
        InvalidArgumentError: If offset is negative or the catalog is unknown.
    """
    key = parse_catalog_key(catalog_key)
    if isinstance(offset, bool) or not isinstance(offset, int):
        raise InvalidArgumentError(f"Offset must be an integer, got {offset!r}")
    if offset < 0:
        raise InvalidArgumentError(f"Offset must be non-negative, got {offset}")

    size = page_size if page_size is not None else settings.catalog_page_size
    if size < 1:
        raise InvalidArgumentError(f"Page size must be positive, got {size}")

    return PageDescriptor(catalog_key=key, page_number=offset // size + 1)


def is_likely_beyond_content(page_number: int, total_pages_estimate: int | None) -> bool:
    """Check whether a page is past the last page observed so far.

    Advisory only: the estimate may be stale. An unknown estimate never
    rules a page out.
    """
    if total_pages_estimate is None:
        return False
    return page_number > total_pages_estimate


# =============================================================================
# Total Pages Estimate
# =============================================================================


class TotalPagesTracker:
    """Highest page count observed per catalog.

    Estimates only ever increase, so one short or noisy read cannot hide
    pages that were seen before.
    """

    def __init__(self) -> None:
        self._estimates: dict[CatalogKey, int] = {}
        self._lock = asyncio.Lock()

    def get(self, catalog_key: CatalogKey) -> int | None:
        """Return the current estimate, or None if nothing was observed yet."""
        return self._estimates.get(catalog_key)

    async def observe(self, catalog_key: CatalogKey, total_pages: int | None) -> int | None:
        """Record an observed page count.

        Args:
            catalog_key: Catalog the count was observed for.
            total_pages: Page count reported by the listing source.

        Returns:
            The estimate after the update.
        """
        async with self._lock:
            current = self._estimates.get(catalog_key)
            if total_pages is None or total_pages < 1:
                return current
            if current is None or total_pages > current:
                self._estimates[catalog_key] = total_pages
                logger.debug(
                    "catalog_total_pages_raised",
                    catalog=catalog_key.value,
                    previous=current,
                    total_pages=total_pages,
                )
                return total_pages
            return current

    def is_likely_beyond_content(self, catalog_key: CatalogKey, page_number: int) -> bool:
        """Check a page against this catalog's current estimate."""
        return is_likely_beyond_content(page_number, self.get(catalog_key))
