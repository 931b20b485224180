"""Catalog module.

Maps caller offsets to listing pages and fetches catalog entries from the
DesiCinemas category listings.
"""

from desicatalog.catalog.listing import (
    CatalogEntry,
    DesiCinemasClient,
    ListingPage,
    ListingSource,
    SourceUnavailableError,
    parse_listing_html,
)
from desicatalog.catalog.pager import (
    CatalogKey,
    InvalidArgumentError,
    PageDescriptor,
    TotalPagesTracker,
    is_likely_beyond_content,
    resolve_page,
)
from desicatalog.catalog.service import CatalogService

__all__ = [
    # Pager
    "CatalogKey",
    "InvalidArgumentError",
    "PageDescriptor",
    "TotalPagesTracker",
    "is_likely_beyond_content",
    "resolve_page",
    # Listing
    "CatalogEntry",
    "DesiCinemasClient",
    "ListingPage",
    "ListingSource",
    "SourceUnavailableError",
    "parse_listing_html",
    # Service
    "CatalogService",
]
