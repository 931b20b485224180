"""OMDb API client.

Secondary metadata provider. Looked up by IMDb id when the primary provider
found one, otherwise by title and year. Its results are only used to fill
gaps left by the primary provider, most often the IMDb rating.

Get a key at http://www.omdbapi.com/apikey.aspx
"""

import re
from typing import Any

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from desicatalog.config import settings
from desicatalog.media.provider import MAX_CAST, MAX_CREW, ProviderResult

logger = structlog.get_logger(__name__)

OMDB_API_BASE = "https://www.omdbapi.com/"

PROVIDER_NAME = "omdb"

# OMDb reports missing values as this literal
NOT_AVAILABLE = "N/A"

RUNTIME_PATTERN = re.compile(r"(\d+)\s*min", re.IGNORECASE)
ROLE_SUFFIX_PATTERN = re.compile(r"\s*\([^)]*\)")


class OMDBResult(BaseModel):
    """OMDb API response."""

    title: str = Field("", alias="Title")
    year: str = Field("", alias="Year")
    rated: str | None = Field(None, alias="Rated")
    runtime: str | None = Field(None, alias="Runtime")
    genre: str | None = Field(None, alias="Genre")
    director: str | None = Field(None, alias="Director")
    writer: str | None = Field(None, alias="Writer")
    actors: str | None = Field(None, alias="Actors")
    plot: str | None = Field(None, alias="Plot")
    poster: str | None = Field(None, alias="Poster")
    imdb_rating: str | None = Field(None, alias="imdbRating")
    imdb_votes: str | None = Field(None, alias="imdbVotes")
    imdb_id: str | None = Field(None, alias="imdbID")
    response: str = Field("False", alias="Response")  # "True" or "False"
    error: str | None = Field(None, alias="Error")

    model_config = ConfigDict(populate_by_name=True)

    def to_provider_result(self) -> ProviderResult:
        """Normalize into the common provider result shape."""
        runtime = None
        runtime_text = _clean(self.runtime)
        if runtime_text:
            match = RUNTIME_PATTERN.search(runtime_text)
            if match:
                runtime = int(match.group(1))

        year_text = _clean(self.year)
        year = year_text[:4] if year_text and year_text[:4].isdigit() else None

        return ProviderResult(
            provider=PROVIDER_NAME,
            external_id=_clean(self.imdb_id),
            imdb_id=_clean(self.imdb_id),
            title=_clean(self.title) or "",
            year=year,
            description=_clean(self.plot),
            runtime=runtime,
            genres=_split_names(self.genre),
            cast=_split_names(self.actors, MAX_CAST),
            poster=_clean(self.poster),
            directors=_split_names(self.director, MAX_CREW),
            writers=_split_names(self.writer, MAX_CREW),
            certification=_clean(self.rated),
            rating=_parse_float(self.imdb_rating),
            rating_count=_parse_int(self.imdb_votes),
        )


class OMDBError(Exception):
    """OMDb API error."""

    pass


class OMDBNotFoundError(OMDBError):
    """Raised when OMDb answers with Response=False."""

    pass


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if not value or value == NOT_AVAILABLE:
        return None
    return value


def _split_names(value: str | None, limit: int | None = None) -> list[str]:
    """Split a comma-separated OMDb list, dropping role notes like "(screenplay)"."""
    text = _clean(value)
    if not text:
        return []
    names: list[str] = []
    for part in text.split(","):
        name = ROLE_SUFFIX_PATTERN.sub("", part).strip()
        if name and name not in names:
            names.append(name)
    return names[:limit] if limit is not None else names


def _parse_float(value: str | None) -> float | None:
    text = _clean(value)
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def _parse_int(value: str | None) -> int | None:
    text = _clean(value)
    if not text:
        return None
    try:
        return int(text.replace(",", ""))
    except ValueError:
        return None


class OMDBClient:
    """Async client for OMDb API.

    Usage:
        async with OMDBClient(api_key="key") as client:
            result = await client.search_by_imdb_id("tt1160419")
            partial = await client.lookup("Dune", "2021")
    """

    name = PROVIDER_NAME

    def __init__(self, api_key: str | None = None, timeout: float | None = None):
        """Initialize OMDb client.

        Args:
            api_key: OMDb API key. Uses settings.omdb_api_key if None.
            timeout: Request timeout in seconds. Uses settings.request_timeout if None.
        """
        if api_key is None and settings.omdb_api_key is not None:
            api_key = settings.omdb_api_key.get_secret_value()
        self.api_key = api_key or None
        self._timeout = timeout if timeout is not None else settings.request_timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def has_credentials(self) -> bool:
        """Check if an API key is configured."""
        return bool(self.api_key)

    async def __aenter__(self) -> "OMDBClient":
        """Async context manager entry."""
        self._client = httpx.AsyncClient(timeout=self._timeout)
        return self

    async def __aexit__(self, _exc_type, _exc_val, _exc_tb) -> None:
        """Async context manager exit."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get HTTP client, raise if not in context manager."""
        if not self._client:
            raise OMDBError("OMDBClient must be used as async context manager")
        return self._client

    async def _request(self, params: dict[str, Any]) -> OMDBResult:
        """Query OMDb and validate the response.

        Raises:
            OMDBNotFoundError: If OMDb reports no match
            OMDBError: On missing key, HTTP or payload errors
        """
        if not self.api_key:
            raise OMDBError("OMDb API key is not configured")

        full_params = {"apikey": self.api_key, "type": "movie", "plot": "short", **params}

        try:
            response = await self.client.get(OMDB_API_BASE, params=full_params)
            response.raise_for_status()
            result = OMDBResult(**response.json())
        except httpx.HTTPStatusError as e:
            logger.error("omdb_http_error", status=e.response.status_code, error=str(e))
            raise OMDBError(f"HTTP error: {e}") from e
        except httpx.RequestError as e:
            logger.error("omdb_request_error", error=str(e))
            raise OMDBError(f"Request failed: {e}") from e
        except (ValueError, TypeError, ValidationError) as e:
            logger.error("omdb_invalid_payload", error=str(e))
            raise OMDBError(f"Invalid response: {e}") from e

        if result.response != "True":
            logger.info("omdb_movie_not_found", params=params, error=result.error)
            raise OMDBNotFoundError(result.error or "Movie not found")

        logger.info(
            "omdb_search_success",
            title=result.title,
            imdb_rating=result.imdb_rating,
        )
        return result

    async def search_by_title(self, title: str, year: str | int | None = None) -> OMDBResult:
        """Search movie by title and optional year.

        Raises:
            OMDBError: If movie not found or API error
        """
        params = {"t": title}
        if year:
            params["y"] = str(year)

        logger.info("omdb_search_by_title", title=title, year=year)
        return await self._request(params)

    async def search_by_imdb_id(self, imdb_id: str) -> OMDBResult:
        """Search movie by IMDb ID.

        Args:
            imdb_id: IMDb ID (e.g., "tt1160419")

        Raises:
            OMDBError: If movie not found or API error
        """
        logger.info("omdb_search_by_imdb_id", imdb_id=imdb_id)
        return await self._request({"i": imdb_id})

    async def lookup(
        self,
        title: str,
        year: str | None = None,
        *,
        imdb_id: str | None = None,
    ) -> ProviderResult | None:
        """Look a movie up with graceful degradation.

        Prefers the IMDb id when given; otherwise searches by title and year.
        Returns None on missing key, no match, or any request failure.
        """
        if not self.has_credentials:
            logger.debug("omdb_disabled", title=title)
            return None

        try:
            if imdb_id:
                result = await self.search_by_imdb_id(imdb_id)
            else:
                query = " ".join(title.split())
                if not query:
                    return None
                result = await self.search_by_title(query, year)
        except Exception as e:
            logger.warning(
                "omdb_lookup_degraded",
                title=title,
                imdb_id=imdb_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

        return result.to_provider_result()
