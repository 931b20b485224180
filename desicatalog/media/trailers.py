"""Trailer selection from provider video listings."""

from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict

TRAILER_SITE = "YouTube"
TRAILER_URL_TEMPLATE = "https://www.youtube.com/watch?v={key}"

# Higher is better; unlisted video types rank 0
VIDEO_TYPE_RANKS = {
    "Trailer": 3,
    "Teaser": 2,
    "Clip": 1,
}

OFFICIAL_BONUS = 2


class VideoRef(BaseModel):
    """A video attached to a movie by a metadata provider."""

    model_config = ConfigDict(frozen=True)

    key: str = ""
    site: str = ""
    type: str = ""
    official: bool = False
    language: str | None = None
    name: str = ""

    @property
    def url(self) -> str:
        return TRAILER_URL_TEMPLATE.format(key=self.key)


def score_video(video: VideoRef, preferred_languages: Sequence[str]) -> int:
    """Score a video candidate.

    ``10 * type_rank + 5 * official_bonus + language_rank`` where the language
    rank is ``len(preferred) - index`` for a preferred language, else 0.
    """
    type_rank = VIDEO_TYPE_RANKS.get(video.type, 0)
    official_bonus = OFFICIAL_BONUS if video.official else 0

    language_rank = 0
    if video.language:
        normalized = [lang.lower() for lang in preferred_languages]
        language = video.language.lower()
        if language in normalized:
            language_rank = len(normalized) - normalized.index(language)

    return 10 * type_rank + 5 * official_bonus + language_rank


def select_best_trailer(
    candidates: Sequence[VideoRef],
    preferred_languages: Sequence[str] = (),
) -> str | None:
    """Pick the best trailer URL among provider videos.

    Only hosted videos with a key are considered. Ties keep input order.

    Args:
        candidates: Videos reported by the provider.
        preferred_languages: Language codes, most preferred first.

    Returns:
        Watch URL of the best candidate, or None if nothing qualifies.
    """
    eligible = [video for video in candidates if video.site == TRAILER_SITE and video.key]
    if not eligible:
        return None

    ranked = sorted(
        eligible,
        key=lambda video: score_video(video, preferred_languages),
        reverse=True,
    )
    return ranked[0].url
