"""Common shape for metadata provider results.

Each provider normalizes its own payload into ``ProviderResult`` so that the
resolver never has to know about provider-specific JSON.
"""

from typing import Protocol

from pydantic import BaseModel, Field

from desicatalog.media.trailers import VideoRef

MAX_CAST = 10
MAX_CREW = 3

# Crew job titles, matched exactly
DIRECTOR_JOBS = ("Director",)
WRITER_JOBS = ("Writer", "Screenplay", "Author")


class ProviderResult(BaseModel):
    """Partial movie metadata from one provider.

    Any field may be missing; missing values are None or empty lists.
    """

    provider: str
    external_id: str | None = None
    imdb_id: str | None = None
    title: str = ""
    year: str | None = None
    description: str | None = None
    runtime: int | None = None
    genres: list[str] = Field(default_factory=list)
    cast: list[str] = Field(default_factory=list)
    poster: str | None = None
    background: str | None = None
    trailer: str | None = None
    videos: list[VideoRef] = Field(default_factory=list)
    directors: list[str] = Field(default_factory=list)
    writers: list[str] = Field(default_factory=list)
    certification: str | None = None
    rating: float | None = None
    rating_count: int | None = None


class MetadataProvider(Protocol):
    """A metadata service that can look a movie up by title."""

    name: str

    async def lookup(
        self,
        title: str,
        year: str | None = None,
        *,
        imdb_id: str | None = None,
    ) -> ProviderResult | None: ...
