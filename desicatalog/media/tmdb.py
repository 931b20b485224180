"""TMDB (The Movie Database) API client.

Primary metadata provider. A lookup searches by title (and year), takes the
top hit, then fetches its details with credits, videos, external ids and
release dates appended in the same request.

API Documentation: https://developers.themoviedb.org/3
"""

from typing import Any

import httpx
import structlog
from pydantic import BaseModel, Field

from desicatalog.config import settings
from desicatalog.media.provider import (
    DIRECTOR_JOBS,
    MAX_CAST,
    MAX_CREW,
    WRITER_JOBS,
    ProviderResult,
)
from desicatalog.media.trailers import VideoRef

logger = structlog.get_logger(__name__)


# =============================================================================
# Constants
# =============================================================================

TMDB_BASE_URL = "https://api.themoviedb.org/3"
TMDB_IMAGE_BASE_URL = "https://image.tmdb.org/t/p"

PROVIDER_NAME = "tmdb"

# Sub-resources fetched together with movie details
DETAIL_APPEND = "credits,videos,external_ids,release_dates"


# =============================================================================
# Exceptions
# =============================================================================


class TMDBError(Exception):
    """Base exception for TMDB API errors."""

    pass


class TMDBNotFoundError(TMDBError):
    """Raised when a resource is not found on TMDB."""

    pass


class TMDBRateLimitError(TMDBError):
    """Raised when TMDB rate limit is exceeded."""

    def __init__(self, retry_after: int = 1):
        self.retry_after = retry_after
        super().__init__(f"Rate limit exceeded. Retry after {retry_after} seconds.")


class TMDBAuthError(TMDBError):
    """Raised when TMDB API key is invalid or missing."""

    pass


# =============================================================================
# Data Models
# =============================================================================


class Genre(BaseModel):
    """Movie genre."""

    id: int
    name: str


class Person(BaseModel):
    """Cast or crew member."""

    id: int
    name: str
    character: str | None = None  # For cast members
    job: str | None = None  # For crew members
    department: str | None = None


class Credits(BaseModel):
    """Movie credits (cast and crew)."""

    cast: list[Person] = Field(default_factory=list)
    crew: list[Person] = Field(default_factory=list)

    def _crew_names(self, jobs: tuple[str, ...], limit: int) -> list[str]:
        names: list[str] = []
        for person in self.crew:
            if person.job not in jobs or not person.name or person.name in names:
                continue
            names.append(person.name)
            if len(names) >= limit:
                break
        return names

    def get_directors(self, limit: int = MAX_CREW) -> list[str]:
        """Get director names in credit order."""
        return self._crew_names(DIRECTOR_JOBS, limit)

    def get_writers(self, limit: int = MAX_CREW) -> list[str]:
        """Get writer names (Writer, Screenplay, Author) in credit order."""
        return self._crew_names(WRITER_JOBS, limit)

    def get_top_cast(self, limit: int = MAX_CAST) -> list[str]:
        """Get top billed cast names.

        Args:
            limit: Maximum number of cast members to return

        Returns:
            List of cast member names
        """
        return [person.name for person in self.cast[:limit] if person.name]


class ReleaseDate(BaseModel):
    """A single dated release within one country."""

    certification: str = ""
    type: int | None = None


class CountryReleases(BaseModel):
    """Releases of a movie within one country."""

    iso_3166_1: str
    release_dates: list[ReleaseDate] = Field(default_factory=list)


class Movie(BaseModel):
    """Movie details from TMDB with appended sub-resources."""

    id: int
    title: str
    original_title: str = ""
    overview: str = ""
    release_date: str = ""
    poster_path: str | None = None
    backdrop_path: str | None = None
    vote_average: float = 0.0
    vote_count: int = 0
    genres: list[Genre] = Field(default_factory=list)
    runtime: int | None = None
    imdb_id: str | None = None
    credits: Credits = Field(default_factory=Credits)
    videos: list[VideoRef] = Field(default_factory=list)
    releases: list[CountryReleases] = Field(default_factory=list)

    def get_poster_url(self, size: str = "w500") -> str | None:
        """Get full URL for poster image.

        Args:
            size: Image size (w92, w154, w185, w342, w500, w780, original)

        Returns:
            Full URL or None if no poster
        """
        if not self.poster_path:
            return None
        return f"{TMDB_IMAGE_BASE_URL}/{size}{self.poster_path}"

    def get_backdrop_url(self, size: str = "w1280") -> str | None:
        """Get full URL for backdrop image."""
        if not self.backdrop_path:
            return None
        return f"{TMDB_IMAGE_BASE_URL}/{size}{self.backdrop_path}"

    def get_year(self) -> str | None:
        """Extract year from release date."""
        if self.release_date and len(self.release_date) >= 4 and self.release_date[:4].isdigit():
            return self.release_date[:4]
        return None

    def get_genre_names(self) -> list[str]:
        """Get list of genre names."""
        return [g.name for g in self.genres]

    def get_certification(self, countries: list[str]) -> str | None:
        """Find the first non-empty certification, trying countries in order.

        Args:
            countries: ISO 3166-1 country codes, most preferred first.

        Returns:
            Certification string or None if no listed country has one.
        """
        by_country = {release.iso_3166_1.upper(): release for release in self.releases}
        for country in countries:
            release = by_country.get(country.upper())
            if release is None:
                continue
            for dated in release.release_dates:
                certification = dated.certification.strip()
                if certification:
                    return certification
        return None

    def to_provider_result(self, certification_countries: list[str]) -> ProviderResult:
        """Normalize into the common provider result shape."""
        has_votes = self.vote_count > 0
        return ProviderResult(
            provider=PROVIDER_NAME,
            external_id=str(self.id),
            imdb_id=self.imdb_id or None,
            title=self.title,
            year=self.get_year(),
            description=self.overview.strip() or None,
            runtime=self.runtime or None,
            genres=self.get_genre_names(),
            cast=self.credits.get_top_cast(),
            poster=self.get_poster_url(),
            background=self.get_backdrop_url(),
            videos=self.videos,
            directors=self.credits.get_directors(),
            writers=self.credits.get_writers(),
            certification=self.get_certification(certification_countries),
            rating=self.vote_average if has_votes else None,
            rating_count=self.vote_count if has_votes else None,
        )


class SearchResult(BaseModel):
    """Movie search hit."""

    id: int
    title: str
    original_title: str = ""
    release_date: str = ""
    popularity: float = 0.0


# =============================================================================
# Parsing Helpers
# =============================================================================


def parse_movie(data: dict[str, Any]) -> Movie:
    """Build a Movie from a detail payload with appended sub-resources."""
    credits_data = data.get("credits") or {}
    credits = Credits(
        cast=[
            Person(
                id=p["id"],
                name=p.get("name", ""),
                character=p.get("character"),
            )
            for p in credits_data.get("cast", [])
        ],
        crew=[
            Person(
                id=p["id"],
                name=p.get("name", ""),
                job=p.get("job"),
                department=p.get("department"),
            )
            for p in credits_data.get("crew", [])
        ],
    )

    videos = [
        VideoRef(
            key=v.get("key") or "",
            site=v.get("site") or "",
            type=v.get("type") or "",
            official=bool(v.get("official")),
            language=v.get("iso_639_1"),
            name=v.get("name") or "",
        )
        for v in (data.get("videos") or {}).get("results", [])
    ]

    releases = [
        CountryReleases(
            iso_3166_1=r.get("iso_3166_1", ""),
            release_dates=[
                ReleaseDate(
                    certification=d.get("certification") or "",
                    type=d.get("type"),
                )
                for d in r.get("release_dates", [])
            ],
        )
        for r in (data.get("release_dates") or {}).get("results", [])
    ]

    external_ids = data.get("external_ids") or {}

    return Movie(
        id=data["id"],
        title=data.get("title") or "",
        original_title=data.get("original_title") or "",
        overview=data.get("overview") or "",
        release_date=data.get("release_date") or "",
        poster_path=data.get("poster_path"),
        backdrop_path=data.get("backdrop_path"),
        vote_average=data.get("vote_average") or 0.0,
        vote_count=data.get("vote_count") or 0,
        genres=[Genre(**g) for g in data.get("genres", [])],
        runtime=data.get("runtime"),
        imdb_id=external_ids.get("imdb_id") or data.get("imdb_id"),
        credits=credits,
        videos=videos,
        releases=releases,
    )


# =============================================================================
# TMDB Client
# =============================================================================


class TMDBClient:
    """Async client for The Movie Database API.

    Example:
        async with TMDBClient() as client:
            result = await client.lookup("Kesari 2", "2025")
    """

    name = PROVIDER_NAME

    def __init__(
        self,
        api_key: str | None = None,
        language: str | None = None,
        timeout: float | None = None,
        certification_countries: list[str] | None = None,
    ):
        """Initialize TMDB client.

        Args:
            api_key: TMDB API key. Uses settings.tmdb_api_key if None.
            language: Language for results. Uses settings.metadata_language if None.
            timeout: Request timeout in seconds. Uses settings.request_timeout if None.
            certification_countries: Certification lookup order.
                Uses settings.certification_countries if None.
        """
        if api_key is None and settings.tmdb_api_key is not None:
            api_key = settings.tmdb_api_key.get_secret_value()
        self._api_key = api_key or None
        self._language = language or settings.metadata_language
        self._timeout = timeout if timeout is not None else settings.request_timeout
        self._certification_countries = (
            certification_countries
            if certification_countries is not None
            else list(settings.certification_countries)
        )
        self._client: httpx.AsyncClient | None = None

    @property
    def has_credentials(self) -> bool:
        """Check if an API key is configured."""
        return bool(self._api_key)

    async def __aenter__(self) -> "TMDBClient":
        """Enter async context manager."""
        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            headers={"Accept": "application/json"},
        )
        return self

    async def __aexit__(
        self,
        _exc_type: Any,
        _exc_val: Any,
        _exc_tb: Any,
    ) -> None:
        """Exit async context manager."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get HTTP client, ensuring it's initialized.

        Raises:
            RuntimeError: If client not initialized (not in context manager)
        """
        if self._client is None:
            raise RuntimeError("TMDBClient must be used as async context manager")
        return self._client

    async def _request(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make authenticated request to TMDB API.

        Args:
            endpoint: API endpoint (without base URL)
            params: Additional query parameters

        Returns:
            JSON response as dictionary

        Raises:
            TMDBNotFoundError: Resource not found (404)
            TMDBRateLimitError: Rate limit exceeded (429)
            TMDBAuthError: Invalid or missing API key (401)
            TMDBError: Other API errors
        """
        if not self._api_key:
            raise TMDBAuthError("TMDB API key is not configured")

        full_params: dict[str, Any] = {
            "api_key": self._api_key,
            "language": self._language,
        }
        if params:
            full_params.update(params)

        url = f"{TMDB_BASE_URL}{endpoint}"
        logger.debug("tmdb_request", endpoint=endpoint, params=params)

        try:
            response = await self.client.get(url, params=full_params)
        except httpx.TimeoutException as e:
            logger.warning("tmdb_timeout", endpoint=endpoint)
            raise TMDBError(f"Request timeout: {e}") from e
        except httpx.HTTPError as e:
            logger.warning("tmdb_http_error", endpoint=endpoint, error=str(e))
            raise TMDBError(f"HTTP error: {e}") from e

        if response.status_code == 200:
            try:
                data = response.json()
            except ValueError as e:
                raise TMDBError(f"Invalid JSON from {endpoint}") from e
            if not isinstance(data, dict):
                raise TMDBError(f"Unexpected payload from {endpoint}")
            return data

        if response.status_code == 401:
            raise TMDBAuthError("Invalid TMDB API key")
        if response.status_code == 404:
            raise TMDBNotFoundError(f"Resource not found: {endpoint}")
        if response.status_code == 429:
            retry_after = int(response.headers.get("Retry-After", 1))
            raise TMDBRateLimitError(retry_after)

        error_msg = response.text[:200] if response.text else "Unknown error"
        raise TMDBError(f"TMDB API error {response.status_code}: {error_msg}")

    # =========================================================================
    # API Methods
    # =========================================================================

    async def search_movie(
        self,
        query: str,
        year: str | int | None = None,
    ) -> list[SearchResult]:
        """Search for movies by title.

        Args:
            query: Movie title to search for
            year: Optional year filter

        Returns:
            Search results in TMDB's own ranking order
        """
        params: dict[str, Any] = {"query": query, "include_adult": "false"}
        if year:
            params["year"] = year

        data = await self._request("/search/movie", params)
        results = [
            SearchResult(
                id=item["id"],
                title=item.get("title") or "",
                original_title=item.get("original_title") or "",
                release_date=item.get("release_date") or "",
                popularity=item.get("popularity") or 0.0,
            )
            for item in data.get("results", [])
            if item.get("id") is not None
        ]

        logger.info(
            "tmdb_search_movie",
            query=query,
            year=year,
            results_count=len(results),
        )
        return results

    async def get_movie(self, movie_id: int) -> Movie:
        """Get movie details with credits, videos, external ids and releases.

        Args:
            movie_id: TMDB movie ID

        Returns:
            Movie object with full details

        Raises:
            TMDBNotFoundError: Movie not found
        """
        data = await self._request(
            f"/movie/{movie_id}",
            params={"append_to_response": DETAIL_APPEND},
        )
        if "id" not in data:
            raise TMDBError(f"Movie payload without id: {movie_id}")

        movie = parse_movie(data)
        logger.info("tmdb_get_movie", movie_id=movie_id, title=movie.title)
        return movie

    async def lookup(
        self,
        title: str,
        year: str | None = None,
        *,
        imdb_id: str | None = None,
    ) -> ProviderResult | None:
        """Look a movie up by title with graceful degradation.

        Takes the top search hit. Returns None instead of raising when the
        key is missing, the search is empty, or either request fails.

        Args:
            title: Movie title
            year: Optional release year
            imdb_id: Unused; TMDB is searched by title

        Returns:
            Normalized result or None
        """
        if not self.has_credentials:
            logger.debug("tmdb_disabled", title=title)
            return None

        query = " ".join(title.split())
        if not query:
            return None

        try:
            hits = await self.search_movie(query, year)
            if not hits:
                logger.info("tmdb_no_results", title=query, year=year)
                return None
            movie = await self.get_movie(hits[0].id)
        except Exception as e:
            logger.warning(
                "tmdb_lookup_degraded",
                title=query,
                year=year,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

        return movie.to_provider_result(self._certification_countries)
