"""Tests for the DesiCinemas listing client and catalog service."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from desicatalog.catalog.listing import (
    CatalogEntry,
    DesiCinemasClient,
    ListingPage,
    SourceUnavailableError,
    clean_title,
    parse_listing_html,
)
from desicatalog.catalog.pager import CatalogKey, InvalidArgumentError, PageDescriptor
from desicatalog.catalog.service import CatalogService

# =============================================================================
# Sample HTML for Testing
# =============================================================================

SAMPLE_LISTING_HTML = """
<!DOCTYPE html>
<html>
<body>
<main>
<ul class="MovieList">
<li>
    <a href="https://desicinemas.tv/movies/kesari-2/">
        <div class="Image"><img data-src="https://img.example/kesari2.jpg" src="placeholder.gif"></div>
        <h3 class="Title">Kesari 2 (2025)</h3>
    </a>
    <span class="Qlty Yr">2025</span>
    <p class="Genre"><a>Drama</a>, <a>History</a></p>
</li>
<li>
    <a href="https://desicinemas.tv/movies/carry-on-jatta-3/">
        <div class="Image"><img src="https://img.example/cojatta3.jpg"></div>
        <h3 class="Title">Carry On Jatta 3 (Punjabi)</h3>
    </a>
    <span class="Qlty Yr">2023</span>
</li>
<li>
    <a href="https://desicinemas.tv/movies/no-image/">
        <h3 class="Title">No Image Movie</h3>
    </a>
</li>
</ul>
</main>
<div class="nav-links">
    <a class="page-link" href="/category/punjabi/page/2/">2</a>
    <a class="page-link" href="/category/punjabi/page/3/">3</a>
    <a class="page-link" href="/category/punjabi/page/41/">41</a>
</div>
</body>
</html>
"""

SAMPLE_LISTING_NO_NAV_HTML = """
<html><body><main><ul class="MovieList">
<li>
    <a href="/movies/pagal/"><div class="Image"><img src="/pagal.jpg"></div>
    <h3 class="Title">Pagal</h3></a>
</li>
</ul></main></body></html>
"""


def make_response(text: str, status_code: int = 200):
    """Create a mock HTTP response."""
    response = MagicMock(spec=httpx.Response)
    response.status_code = status_code
    response.text = text
    if status_code >= 400:
        request = httpx.Request("GET", "https://desicinemas.tv/")
        real_response = httpx.Response(status_code, request=request)
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            f"HTTP {status_code}", request=request, response=real_response
        )
    return response


# =============================================================================
# Parsing Tests
# =============================================================================


class TestCleanTitle:
    """Tests for clean_title."""

    def test_strips_parentheticals(self):
        assert clean_title("Kesari 2 (2025)") == "Kesari 2"

    def test_strips_multiple_parentheticals(self):
        assert clean_title("Jatt (Hindi Dubbed) (2024)") == "Jatt"

    def test_plain_title_unchanged(self):
        assert clean_title("  Pagal  ") == "Pagal"


class TestParseListingHtml:
    """Tests for parse_listing_html."""

    def test_parses_valid_entries(self):
        """Test entries with title, link and image are returned in order."""
        page = parse_listing_html(SAMPLE_LISTING_HTML)

        assert len(page.entries) == 2
        first = page.entries[0]
        assert first.title == "Kesari 2"
        assert first.year == "2025"
        assert first.detail_href == "https://desicinemas.tv/movies/kesari-2/"
        assert first.genres == ("Drama", "History")

    def test_prefers_lazy_image_attribute(self):
        """Test data-src wins over src."""
        page = parse_listing_html(SAMPLE_LISTING_HTML)
        assert page.entries[0].image_url == "https://img.example/kesari2.jpg"
        assert page.entries[1].image_url == "https://img.example/cojatta3.jpg"

    def test_skips_entries_without_image(self):
        """Test incomplete entries are dropped."""
        page = parse_listing_html(SAMPLE_LISTING_HTML)
        assert all(entry.title != "No Image Movie" for entry in page.entries)

    def test_total_pages_from_last_nav_link(self):
        """Test page count comes from the last pagination link."""
        page = parse_listing_html(SAMPLE_LISTING_HTML)
        assert page.total_pages == 41

    def test_missing_pagination_is_unknown(self):
        """Test a page without pagination reports no total."""
        page = parse_listing_html(SAMPLE_LISTING_NO_NAV_HTML)
        assert page.total_pages is None
        assert page.entries[0].title == "Pagal"
        assert page.entries[0].year == ""
        assert page.entries[0].genres == ()

    def test_non_numeric_last_link_is_unknown(self):
        """Test a trailing "Next" link does not record a page count."""
        html = """
        <html><body><main><ul class="MovieList">
          <li><a href="https://desicinemas.tv/movie/pagal/">
            <div class="Image"><img src="https://img.example/pagal.jpg"></div>
            <h2 class="Title">Pagal</h2>
          </a></li>
        </ul></main>
        <div class="nav-links">
          <a class="page-link" href="/page/2/">2</a>
          <a class="page-link" href="/page/2/">Next</a>
        </div></body></html>
        """
        page = parse_listing_html(html)
        assert page.total_pages is None
        assert len(page.entries) == 1

    def test_empty_html(self):
        """Test an empty document yields nothing."""
        page = parse_listing_html("<html></html>")
        assert page.entries == []
        assert page.total_pages is None


class TestCatalogEntry:
    """Tests for CatalogEntry."""

    def test_to_meta_preview(self):
        """Test the preview uses the title as id."""
        entry = CatalogEntry(
            title="Kesari 2",
            year="2025",
            image_url="https://img.example/k.jpg",
            detail_href="/movies/kesari-2/",
        )
        assert entry.to_meta_preview() == {
            "id": "Kesari 2",
            "type": "movie",
            "name": "Kesari 2",
            "poster": "https://img.example/k.jpg",
            "releaseInfo": "2025",
        }

    def test_entries_are_immutable(self):
        """Test entries cannot be modified."""
        entry = CatalogEntry(title="A", image_url="i", detail_href="h")
        with pytest.raises(ValueError):
            entry.title = "B"


# =============================================================================
# Client Tests
# =============================================================================


class TestDesiCinemasClient:
    """Tests for DesiCinemasClient."""

    @pytest.mark.asyncio
    async def test_client_context_manager(self):
        """Test client as context manager."""
        async with DesiCinemasClient(base_url="https://desicinemas.tv") as client:
            assert client._client is not None
        assert client._client is None

    def test_client_not_in_context(self):
        """Test client raises error when not in context manager."""
        client = DesiCinemasClient(base_url="https://desicinemas.tv")
        with pytest.raises(RuntimeError, match="async with"):
            _ = client.client

    @pytest.mark.asyncio
    async def test_fetch_page_builds_url(self):
        """Test the requested URL follows the page descriptor."""
        async with DesiCinemasClient(base_url="https://desicinemas.tv") as client:
            client._client = MagicMock(spec=httpx.AsyncClient)
            client._client.get = AsyncMock(return_value=make_response(SAMPLE_LISTING_HTML))

            page = await client.fetch_page(
                PageDescriptor(catalog_key=CatalogKey.PUNJABI, page_number=2)
            )

            client._client.get.assert_awaited_once_with(
                "https://desicinemas.tv/category/punjabi/page/2/"
            )
            assert len(page.entries) == 2
            assert page.total_pages == 41

    @pytest.mark.asyncio
    async def test_fetch_page_http_error(self):
        """Test HTTP errors raise SourceUnavailableError."""
        async with DesiCinemasClient(base_url="https://desicinemas.tv") as client:
            client._client = MagicMock(spec=httpx.AsyncClient)
            client._client.get = AsyncMock(return_value=make_response("", status_code=503))

            with pytest.raises(SourceUnavailableError, match="503"):
                await client.fetch_page(PageDescriptor(catalog_key=CatalogKey.PUNJABI, page_number=1))

    @pytest.mark.asyncio
    async def test_fetch_page_timeout(self):
        """Test timeouts raise SourceUnavailableError."""
        async with DesiCinemasClient(base_url="https://desicinemas.tv") as client:
            client._client = MagicMock(spec=httpx.AsyncClient)
            client._client.get = AsyncMock(side_effect=httpx.ReadTimeout("slow"))

            with pytest.raises(SourceUnavailableError, match="timed out"):
                await client.fetch_page(PageDescriptor(catalog_key=CatalogKey.PUNJABI, page_number=1))

    @pytest.mark.asyncio
    async def test_fetch_page_connection_error(self):
        """Test connection failures raise SourceUnavailableError."""
        async with DesiCinemasClient(base_url="https://desicinemas.tv") as client:
            client._client = MagicMock(spec=httpx.AsyncClient)
            client._client.get = AsyncMock(side_effect=httpx.ConnectError("refused"))

            with pytest.raises(SourceUnavailableError):
                await client.fetch_page(PageDescriptor(catalog_key=CatalogKey.PUNJABI, page_number=1))


# =============================================================================
# Catalog Service Tests
# =============================================================================


def make_source(page: ListingPage | None = None, error: Exception | None = None):
    """Create a listing source double."""
    source = MagicMock()
    if error is not None:
        source.fetch_page = AsyncMock(side_effect=error)
    else:
        source.fetch_page = AsyncMock(return_value=page or ListingPage())
    return source


SAMPLE_ENTRIES = [
    CatalogEntry(title="Kesari 2", year="2025", image_url="i1", detail_href="h1"),
    CatalogEntry(title="Pagal", year="2023", image_url="i2", detail_href="h2"),
]


class TestCatalogService:
    """Tests for CatalogService."""

    @pytest.mark.asyncio
    async def test_list_catalog_returns_entries(self):
        """Test entries of the resolved page are returned."""
        source = make_source(ListingPage(entries=SAMPLE_ENTRIES, total_pages=5))
        service = CatalogService(source, page_size=29)

        entries = await service.list_catalog("desicinemas-punjabi", offset=29)

        assert entries == SAMPLE_ENTRIES
        descriptor = source.fetch_page.await_args.args[0]
        assert descriptor.page_number == 2
        assert service.tracker.get(CatalogKey.PUNJABI) == 5

    @pytest.mark.asyncio
    async def test_beyond_estimate_skips_fetch(self):
        """Test pages past the known end return empty without I/O."""
        source = make_source(ListingPage(entries=SAMPLE_ENTRIES, total_pages=2))
        service = CatalogService(source, page_size=29)

        await service.list_catalog(CatalogKey.PUNJABI, offset=0)
        source.fetch_page.reset_mock()

        entries = await service.list_catalog(CatalogKey.PUNJABI, offset=29 * 5)

        assert entries == []
        source.fetch_page.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_estimate_does_not_shrink(self):
        """Test a later smaller page count keeps earlier pages reachable."""
        source = make_source(ListingPage(entries=SAMPLE_ENTRIES, total_pages=10))
        service = CatalogService(source, page_size=29)
        await service.list_catalog(CatalogKey.PUNJABI, offset=0)

        source.fetch_page = AsyncMock(return_value=ListingPage(entries=SAMPLE_ENTRIES, total_pages=1))
        await service.list_catalog(CatalogKey.PUNJABI, offset=29)

        assert service.tracker.get(CatalogKey.PUNJABI) == 10
        entries = await service.list_catalog(CatalogKey.PUNJABI, offset=29 * 8)
        assert entries == SAMPLE_ENTRIES

    @pytest.mark.asyncio
    async def test_served_page_stays_reachable(self):
        """Test a page with entries is never hidden by a lower page count."""
        source = make_source(ListingPage(entries=SAMPLE_ENTRIES, total_pages=2))
        service = CatalogService(source, page_size=29)

        first = await service.list_catalog(CatalogKey.PUNJABI, offset=58)
        second = await service.list_catalog(CatalogKey.PUNJABI, offset=58)

        assert first == SAMPLE_ENTRIES
        assert second == SAMPLE_ENTRIES
        assert service.tracker.get(CatalogKey.PUNJABI) == 3
        assert source.fetch_page.await_count == 2

    @pytest.mark.asyncio
    async def test_empty_page_does_not_raise_estimate(self):
        source = make_source(ListingPage(entries=[], total_pages=None))
        service = CatalogService(source, page_size=29)

        assert await service.list_catalog(CatalogKey.PUNJABI, offset=29 * 4) == []
        assert service.tracker.get(CatalogKey.PUNJABI) is None

    @pytest.mark.asyncio
    async def test_source_failure_degrades_to_empty(self):
        """Test listing failures return an empty list."""
        source = make_source(error=SourceUnavailableError("down"))
        service = CatalogService(source, page_size=29)

        assert await service.list_catalog(CatalogKey.HINDI_DUBBED, offset=0) == []
        assert service.tracker.get(CatalogKey.HINDI_DUBBED) is None

    @pytest.mark.asyncio
    async def test_unexpected_source_error_degrades_to_empty(self):
        """Test any source exception is absorbed."""
        source = make_source(error=KeyError("boom"))
        service = CatalogService(source, page_size=29)

        assert await service.list_catalog(CatalogKey.PUNJABI, offset=0) == []

    @pytest.mark.asyncio
    async def test_invalid_request_rejected_before_io(self):
        """Test malformed requests raise without fetching."""
        source = make_source(ListingPage(entries=SAMPLE_ENTRIES))
        service = CatalogService(source, page_size=29)

        with pytest.raises(InvalidArgumentError):
            await service.list_catalog(CatalogKey.PUNJABI, offset=-5)
        with pytest.raises(InvalidArgumentError):
            await service.list_catalog("unknown", offset=0)

        source.fetch_page.assert_not_awaited()
