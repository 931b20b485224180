"""Tests for OMDb API client."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from desicatalog.media.omdb import (
    OMDBClient,
    OMDBError,
    OMDBNotFoundError,
    OMDBResult,
)

SAMPLE_OMDB_MOVIE = {
    "Title": "Kesari Chapter 2",
    "Year": "2025",
    "Rated": "Not Rated",
    "Runtime": "135 min",
    "Genre": "Drama, History",
    "Director": "Karan Singh Tyagi",
    "Writer": "Karan Singh Tyagi (screenplay), Amritpal Bindra (screenplay), Raghu Palat, Pushpa Palat",
    "Actors": "Akshay Kumar, R. Madhavan, Ananya Panday",
    "Plot": "The story of C. Sankaran Nair.",
    "Poster": "https://m.media-amazon.com/images/kesari2.jpg",
    "Ratings": [{"Source": "Internet Movie Database", "Value": "8.2/10"}],
    "imdbRating": "8.2",
    "imdbVotes": "45,123",
    "imdbID": "tt27911000",
    "Response": "True",
}

SAMPLE_OMDB_SPARSE = {
    "Title": "Pagal",
    "Year": "2023",
    "Rated": "N/A",
    "Runtime": "N/A",
    "Genre": "N/A",
    "Director": "N/A",
    "Writer": "N/A",
    "Actors": "N/A",
    "Plot": "N/A",
    "Poster": "N/A",
    "imdbRating": "N/A",
    "imdbVotes": "N/A",
    "imdbID": "tt9999999",
    "Response": "True",
}

SAMPLE_OMDB_NOT_FOUND = {"Response": "False", "Error": "Movie not found!"}


def mock_response(data: dict, status_code: int = 200):
    """Create a mock HTTP response."""
    response = MagicMock(spec=httpx.Response)
    response.status_code = status_code
    response.json.return_value = data
    if status_code >= 400:
        request = httpx.Request("GET", "https://www.omdbapi.com/")
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            f"HTTP {status_code}",
            request=request,
            response=httpx.Response(status_code, request=request),
        )
    return response


class TestOMDBResult:
    """Tests for OMDBResult normalization."""

    def test_to_provider_result(self):
        """Test full payload normalization."""
        result = OMDBResult(**SAMPLE_OMDB_MOVIE).to_provider_result()

        assert result.provider == "omdb"
        assert result.imdb_id == "tt27911000"
        assert result.year == "2025"
        assert result.runtime == 135
        assert result.genres == ["Drama", "History"]
        assert result.cast == ["Akshay Kumar", "R. Madhavan", "Ananya Panday"]
        assert result.directors == ["Karan Singh Tyagi"]
        assert result.writers == ["Karan Singh Tyagi", "Amritpal Bindra", "Raghu Palat"]
        assert result.rating == 8.2
        assert result.rating_count == 45123
        assert result.certification == "Not Rated"

    def test_not_available_values_are_none(self):
        """Test N/A fields become empty values."""
        result = OMDBResult(**SAMPLE_OMDB_SPARSE).to_provider_result()

        assert result.runtime is None
        assert result.genres == []
        assert result.cast == []
        assert result.description is None
        assert result.poster is None
        assert result.rating is None
        assert result.rating_count is None
        assert result.certification is None

    def test_ratings_list_ignored(self):
        """Test the per-source Ratings list is not kept; imdbRating is the rating."""
        result = OMDBResult(**SAMPLE_OMDB_MOVIE)

        assert "ratings" not in result.model_dump()
        assert result.to_provider_result().rating == 8.2

    def test_year_range(self):
        """Test series-style year ranges keep the first year."""
        result = OMDBResult(Title="Show", Year="2019–2021", Response="True").to_provider_result()
        assert result.year == "2019"


class TestOMDBClient:
    """Tests for OMDBClient."""

    @pytest.mark.asyncio
    async def test_client_context_manager(self):
        async with OMDBClient(api_key="key") as client:
            assert client._client is not None
        assert client._client is None

    def test_client_not_in_context(self):
        client = OMDBClient(api_key="key")
        with pytest.raises(OMDBError, match="async context manager"):
            _ = client.client

    @pytest.mark.asyncio
    async def test_search_by_imdb_id(self):
        """Test lookup by IMDb id sends the i parameter."""
        async with OMDBClient(api_key="key") as client:
            client._client = MagicMock(spec=httpx.AsyncClient)
            client._client.get = AsyncMock(return_value=mock_response(SAMPLE_OMDB_MOVIE))

            result = await client.search_by_imdb_id("tt27911000")

            assert result.imdb_rating == "8.2"
            params = client._client.get.call_args.kwargs["params"]
            assert params["i"] == "tt27911000"
            assert params["apikey"] == "key"

    @pytest.mark.asyncio
    async def test_search_by_title_with_year(self):
        """Test title search sends t and y."""
        async with OMDBClient(api_key="key") as client:
            client._client = MagicMock(spec=httpx.AsyncClient)
            client._client.get = AsyncMock(return_value=mock_response(SAMPLE_OMDB_MOVIE))

            await client.search_by_title("Kesari Chapter 2", "2025")

            params = client._client.get.call_args.kwargs["params"]
            assert params["t"] == "Kesari Chapter 2"
            assert params["y"] == "2025"

    @pytest.mark.asyncio
    async def test_not_found_raises(self):
        """Test Response=False raises OMDBNotFoundError."""
        async with OMDBClient(api_key="key") as client:
            client._client = MagicMock(spec=httpx.AsyncClient)
            client._client.get = AsyncMock(return_value=mock_response(SAMPLE_OMDB_NOT_FOUND))

            with pytest.raises(OMDBNotFoundError, match="Movie not found"):
                await client.search_by_title("Nothing")

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        """Test HTTP errors raise OMDBError."""
        async with OMDBClient(api_key="key") as client:
            client._client = MagicMock(spec=httpx.AsyncClient)
            client._client.get = AsyncMock(return_value=mock_response({}, status_code=401))

            with pytest.raises(OMDBError, match="HTTP error"):
                await client.search_by_imdb_id("tt1")


class TestOMDBLookup:
    """Tests for OMDBClient.lookup graceful degradation."""

    @pytest.mark.asyncio
    async def test_lookup_prefers_imdb_id(self):
        """Test the IMDb id is used instead of the title when given."""
        async with OMDBClient(api_key="key") as client:
            client._client = MagicMock(spec=httpx.AsyncClient)
            client._client.get = AsyncMock(return_value=mock_response(SAMPLE_OMDB_MOVIE))

            result = await client.lookup("Kesari 2", "2025", imdb_id="tt27911000")

            assert result is not None
            params = client._client.get.call_args.kwargs["params"]
            assert params["i"] == "tt27911000"
            assert "t" not in params

    @pytest.mark.asyncio
    async def test_lookup_by_title(self):
        """Test title lookup when no IMDb id is known."""
        async with OMDBClient(api_key="key") as client:
            client._client = MagicMock(spec=httpx.AsyncClient)
            client._client.get = AsyncMock(return_value=mock_response(SAMPLE_OMDB_MOVIE))

            result = await client.lookup("Kesari 2", "2025")

            assert result.rating == 8.2
            params = client._client.get.call_args.kwargs["params"]
            assert params["t"] == "Kesari 2"

    @pytest.mark.asyncio
    async def test_lookup_not_found_returns_none(self):
        async with OMDBClient(api_key="key") as client:
            client._client = MagicMock(spec=httpx.AsyncClient)
            client._client.get = AsyncMock(return_value=mock_response(SAMPLE_OMDB_NOT_FOUND))

            assert await client.lookup("Nothing") is None

    @pytest.mark.asyncio
    async def test_lookup_transport_error_returns_none(self):
        async with OMDBClient(api_key="key") as client:
            client._client = MagicMock(spec=httpx.AsyncClient)
            client._client.get = AsyncMock(side_effect=httpx.ConnectTimeout("slow"))

            assert await client.lookup("Kesari 2") is None

    @pytest.mark.asyncio
    async def test_lookup_without_key_returns_none(self):
        """Test a missing key disables lookups instead of using a demo key."""
        with patch("desicatalog.media.omdb.settings") as mock_settings:
            mock_settings.omdb_api_key = None
            mock_settings.request_timeout = 5.0

            async with OMDBClient() as client:
                client._client = MagicMock(spec=httpx.AsyncClient)
                client._client.get = AsyncMock()

                assert await client.lookup("Kesari 2") is None
                client._client.get.assert_not_awaited()
