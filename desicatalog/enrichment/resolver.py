"""Metadata resolution across providers.

A reference is parsed into title and year, looked up on the primary
provider, gaps are filled from the secondary provider, and the best trailer
is picked from the primary provider's videos. Resolution never raises: any
failure ends in a minimal record built from the reference alone.
"""

from collections.abc import Sequence

import structlog
from pydantic import BaseModel, Field

from desicatalog.config import settings
from desicatalog.enrichment.reference import (
    MetadataReference,
    normalize_reference,
    parse_reference,
)
from desicatalog.media.omdb import PROVIDER_NAME as IMDB_RATING_PROVIDER
from desicatalog.media.provider import MetadataProvider, ProviderResult
from desicatalog.media.trailers import select_best_trailer

logger = structlog.get_logger(__name__)

# Fields the secondary provider may fill when the primary left them empty
BACKFILL_FIELDS = (
    "imdb_id",
    "description",
    "runtime",
    "genres",
    "cast",
    "poster",
    "directors",
    "writers",
    "certification",
    "rating",
    "rating_count",
)


class ResolvedMetadata(BaseModel):
    """Merged movie metadata returned to callers."""

    id: str
    type: str = "movie"
    name: str
    release_info: str | None = None
    description: str | None = None
    runtime: int | None = None
    genres: list[str] = Field(default_factory=list)
    cast: list[str] = Field(default_factory=list)
    directors: list[str] = Field(default_factory=list)
    writers: list[str] = Field(default_factory=list)
    certification: str | None = None
    poster: str | None = None
    background: str | None = None
    trailer: str | None = None
    rating: float | None = None
    rating_source: str | None = None
    imdb_id: str | None = None
    sources: list[str] = Field(default_factory=list)

    @property
    def is_fallback(self) -> bool:
        """True when no provider contributed to this record."""
        return not self.sources

    @property
    def has_imdb_rating(self) -> bool:
        """True when the rating is the IMDb score rather than another provider's."""
        return self.rating is not None and self.rating_source == IMDB_RATING_PROVIDER

    def to_meta(self) -> dict[str, object]:
        """Build the outward meta record, omitting empty fields."""
        meta: dict[str, object] = {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "releaseInfo": self.release_info,
            "description": self.description,
            "runtime": f"{self.runtime} min" if self.runtime else None,
            "genres": self.genres,
            "cast": self.cast,
            "director": self.directors,
            "writer": self.writers,
            "certification": self.certification,
            "poster": self.poster,
            "background": self.background,
            "imdbRating": f"{self.rating:.1f}" if self.has_imdb_rating else None,
        }
        if self.trailer:
            meta["trailers"] = [{"source": self.trailer, "type": "Trailer"}]
        return {key: value for key, value in meta.items() if value not in (None, "", [])}


def build_fallback(reference: str, parsed: MetadataReference | None = None) -> ResolvedMetadata:
    """Build the minimal record used when no provider has data."""
    name = normalize_reference(reference) or reference
    if parsed is None:
        try:
            parsed = parse_reference(reference)
        except Exception:
            parsed = MetadataReference(title=name)
    return ResolvedMetadata(id=name, name=name, release_info=parsed.year)


def merge_results(primary: ProviderResult, secondary: ProviderResult | None) -> ProviderResult:
    """Fill empty primary fields from the secondary result.

    Non-empty primary fields are never overridden.
    """
    if secondary is None:
        return primary

    updates = {}
    for field_name in BACKFILL_FIELDS:
        if getattr(primary, field_name) in (None, "", []):
            fallback = getattr(secondary, field_name)
            if fallback not in (None, "", []):
                updates[field_name] = fallback

    if not updates:
        return primary
    return primary.model_copy(update=updates)


class MetadataResolver:
    """Resolves references into merged metadata.

    Example:
        async with TMDBClient() as tmdb, OMDBClient() as omdb:
            resolver = MetadataResolver(tmdb, omdb)
            meta = await resolver.resolve("Kesari 2 (2025)")
    """

    def __init__(
        self,
        primary: MetadataProvider,
        secondary: MetadataProvider | None = None,
        preferred_languages: Sequence[str] | None = None,
    ):
        """Initialize resolver.

        Args:
            primary: Provider that must find the movie.
            secondary: Provider used only to fill gaps.
            preferred_languages: Trailer language order.
                Uses settings.trailer_languages if None.
        """
        self._primary = primary
        self._secondary = secondary
        self._preferred_languages = list(
            preferred_languages if preferred_languages is not None else settings.trailer_languages
        )

    async def resolve(self, reference: str) -> ResolvedMetadata:
        """Resolve a reference into metadata.

        Args:
            reference: Catalog reference, e.g. "Kesari 2 (2025)"

        Returns:
            Merged metadata, or the minimal fallback record
        """
        try:
            return await self._resolve(reference)
        except Exception as e:
            logger.error(
                "metadata_resolve_failed",
                reference=reference,
                error=str(e),
                error_type=type(e).__name__,
            )
            return build_fallback(reference)

    async def _resolve(self, reference: str) -> ResolvedMetadata:
        parsed = parse_reference(reference)

        primary = await self._primary.lookup(parsed.title, parsed.year)
        if primary is None:
            logger.info(
                "metadata_fallback",
                reference=reference,
                title=parsed.title,
                year=parsed.year,
            )
            return build_fallback(reference, parsed)

        sources = [primary.provider]
        merged = primary
        rating_source = primary.provider if primary.rating is not None else None
        if self._secondary is not None and self._needs_backfill(primary):
            secondary = await self._lookup_secondary(parsed, primary)
            if secondary is not None:
                sources.append(secondary.provider)
                merged = merge_results(primary, secondary)
                if rating_source is None and merged.rating is not None:
                    rating_source = secondary.provider

        trailer = select_best_trailer(primary.videos, self._preferred_languages) or primary.trailer

        resolved = ResolvedMetadata(
            id=self._choose_id(merged, reference),
            name=merged.title or parsed.title,
            release_info=merged.year or parsed.year,
            description=merged.description,
            runtime=merged.runtime,
            genres=merged.genres,
            cast=merged.cast,
            directors=merged.directors,
            writers=merged.writers,
            certification=merged.certification,
            poster=merged.poster,
            background=merged.background,
            trailer=trailer,
            rating=merged.rating,
            rating_source=rating_source,
            imdb_id=merged.imdb_id,
            sources=sources,
        )

        logger.info(
            "metadata_resolved",
            reference=reference,
            id=resolved.id,
            sources=sources,
            has_trailer=trailer is not None,
        )
        return resolved

    @staticmethod
    def _needs_backfill(result: ProviderResult) -> bool:
        return any(getattr(result, name) in (None, "", []) for name in BACKFILL_FIELDS)

    async def _lookup_secondary(
        self,
        parsed: MetadataReference,
        primary: ProviderResult,
    ) -> ProviderResult | None:
        try:
            return await self._secondary.lookup(
                primary.title or parsed.title,
                primary.year or parsed.year,
                imdb_id=primary.imdb_id,
            )
        except Exception as e:
            logger.warning(
                "metadata_secondary_failed",
                title=parsed.title,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

    @staticmethod
    def _choose_id(result: ProviderResult, reference: str) -> str:
        """Prefer the IMDb id, then a provider-scoped id, then the reference."""
        if result.imdb_id:
            return result.imdb_id
        if result.external_id:
            return f"{result.provider}:{result.external_id}"
        return normalize_reference(reference) or reference
