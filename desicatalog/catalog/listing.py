"""DesiCinemas catalog listing client.

Fetches category pages from the listing site and parses them into catalog
entries, along with the page count advertised by the pagination bar.
"""

import re
from typing import Protocol

import httpx
import structlog
from bs4 import BeautifulSoup, Tag
from pydantic import BaseModel, ConfigDict, Field

from desicatalog.catalog.pager import PageDescriptor
from desicatalog.config import settings

logger = structlog.get_logger(__name__)


# =============================================================================
# Constants
# =============================================================================

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Parenthetical annotations in listing titles, e.g. "(2025)" or "(Hindi Dubbed)"
PARENTHETICAL_PATTERN = re.compile(r"\s*\([^)]*\)")


# =============================================================================
# Exceptions
# =============================================================================


class SourceUnavailableError(Exception):
    """Raised when a listing page cannot be fetched or parsed."""

    pass


# =============================================================================
# Data Models
# =============================================================================


class CatalogEntry(BaseModel):
    """A single movie as shown on a listing page."""

    model_config = ConfigDict(frozen=True)

    title: str
    year: str = ""
    image_url: str
    detail_href: str
    genres: tuple[str, ...] = Field(default_factory=tuple)

    def to_meta_preview(self) -> dict[str, str]:
        """Build the catalog preview record.

        The title doubles as the reference used for metadata lookups.
        """
        return {
            "id": self.title,
            "type": "movie",
            "name": self.title,
            "poster": self.image_url,
            "releaseInfo": self.year,
        }


class ListingPage(BaseModel):
    """Parsed listing page."""

    entries: list[CatalogEntry] = Field(default_factory=list)
    total_pages: int | None = None


class ListingSource(Protocol):
    """Anything that can fetch one page of a catalog."""

    async def fetch_page(self, descriptor: PageDescriptor) -> ListingPage: ...


# =============================================================================
# Helper Functions
# =============================================================================


def clean_title(raw_title: str) -> str:
    """Strip parenthetical annotations from a listing title."""
    return " ".join(PARENTHETICAL_PATTERN.sub("", raw_title).split())


def _parse_entry(item: Tag) -> CatalogEntry | None:
    title_el = item.select_one(".Title")
    title = clean_title(title_el.get_text(strip=True)) if title_el else ""

    year_el = item.select_one(".Qlty.Yr")
    year = year_el.get_text(strip=True) if year_el else ""

    image_url = ""
    img = item.select_one(".Image img")
    if img is not None:
        image_url = str(img.get("data-src") or img.get("src") or "").strip()

    link = item.find("a")
    href = str(link.get("href") or "").strip() if isinstance(link, Tag) else ""

    genre_names = [a.get_text(strip=True) for a in item.select(".Genre a")]
    genres = tuple(name for name in genre_names if name)

    if not (title and href and image_url):
        return None

    return CatalogEntry(
        title=title,
        year=year,
        image_url=image_url,
        detail_href=href,
        genres=genres,
    )


def parse_total_pages(soup: BeautifulSoup) -> int | None:
    """Read the page count from the last pagination link.

    Returns:
        Page count, or None when the page has no pagination bar or the
        last link is not a number.
    """
    nav_links = soup.select("div.nav-links a.page-link")
    if not nav_links:
        return None

    text = nav_links[-1].get_text(strip=True).replace(",", "")
    try:
        return max(int(text), 1)
    except ValueError:
        return None


def parse_listing_html(html: str) -> ListingPage:
    """Parse a listing page.

    Items missing a title, link or image are skipped.

    Args:
        html: HTML content of a category page.

    Returns:
        Parsed entries and the advertised page count.
    """
    soup = BeautifulSoup(html, "lxml")

    entries = []
    for item in soup.select("main ul.MovieList li"):
        entry = _parse_entry(item)
        if entry is not None:
            entries.append(entry)

    return ListingPage(entries=entries, total_pages=parse_total_pages(soup))


# =============================================================================
# Listing Client
# =============================================================================


class DesiCinemasClient:
    """Async client for DesiCinemas category listings.

    Example:
        async with DesiCinemasClient() as client:
            page = await client.fetch_page(resolve_page("desicinemas-punjabi", 0))
            for entry in page.entries:
                print(entry.title, entry.year)
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize listing client.

        Args:
            base_url: Root URL of the site. Uses settings.listing_base_url if None.
            timeout: Request timeout in seconds. Uses settings.request_timeout if None.
        """
        self.base_url = (base_url or settings.listing_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "DesiCinemasClient":
        """Enter async context manager."""
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            headers={
                "User-Agent": USER_AGENT,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            },
            follow_redirects=True,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context manager."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, ensuring it's initialized.

        Raises:
            RuntimeError: If client is not initialized (not in context manager).
        """
        if self._client is None:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")
        return self._client

    async def fetch_page(self, descriptor: PageDescriptor) -> ListingPage:
        """Fetch and parse one catalog page.

        Args:
            descriptor: Catalog and page number to fetch.

        Returns:
            Parsed listing page.

        Raises:
            SourceUnavailableError: On transport, HTTP status or parse failure.
        """
        url = descriptor.build_url(self.base_url)
        logger.debug("fetching_listing_page", url=url)

        try:
            response = await self.client.get(url)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            logger.warning("listing_timeout", url=url)
            raise SourceUnavailableError(f"Request timed out: {e}") from e
        except httpx.HTTPStatusError as e:
            logger.warning("listing_http_error", url=url, status=e.response.status_code)
            raise SourceUnavailableError(f"HTTP error {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.warning("listing_request_error", url=url, error=str(e))
            raise SourceUnavailableError(f"Request failed: {e}") from e

        try:
            page = parse_listing_html(response.text)
        except Exception as e:
            logger.error("listing_parse_error", url=url, error=str(e))
            raise SourceUnavailableError(f"Failed to parse listing page: {e}") from e

        logger.info(
            "listing_page_fetched",
            catalog=descriptor.catalog_key.value,
            page=descriptor.page_number,
            entries=len(page.entries),
            total_pages=page.total_pages,
        )
        return page
