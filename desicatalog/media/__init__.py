"""Media metadata module.

Provides clients for fetching movie metadata from external providers:
- TMDB (The Movie Database) as the primary source
- OMDb as the secondary source for gaps such as the IMDb rating

All clients are async and normalize their payloads into ProviderResult.
"""

from desicatalog.media.omdb import OMDBClient, OMDBError, OMDBNotFoundError, OMDBResult
from desicatalog.media.provider import MetadataProvider, ProviderResult
from desicatalog.media.tmdb import (
    Credits,
    Movie,
    TMDBAuthError,
    TMDBClient,
    TMDBError,
    TMDBNotFoundError,
    TMDBRateLimitError,
)
from desicatalog.media.trailers import VideoRef, select_best_trailer

__all__ = [
    # Common
    "MetadataProvider",
    "ProviderResult",
    "VideoRef",
    "select_best_trailer",
    # TMDB
    "TMDBClient",
    "TMDBError",
    "TMDBAuthError",
    "TMDBNotFoundError",
    "TMDBRateLimitError",
    "Movie",
    "Credits",
    # OMDb
    "OMDBClient",
    "OMDBError",
    "OMDBNotFoundError",
    "OMDBResult",
]
