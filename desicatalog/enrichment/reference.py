"""Parsing of metadata references.

A reference is the catalog id handed back by callers, normally a listing
title optionally followed by a year, e.g. ``"Kesari 2 (2025)"`` or
``"Pagal 2023"``.
"""

import re
from urllib.parse import unquote

from pydantic import BaseModel, ConfigDict

YEAR_PATTERN = re.compile(r"\b(?:19|20)\d{2}\b")
PARENTHETICAL_PATTERN = re.compile(r"\s*\([^)]*\)")
EDGE_PUNCTUATION = " -:|,."


class MetadataReference(BaseModel):
    """Title and optional year extracted from a reference."""

    model_config = ConfigDict(frozen=True)

    title: str
    year: str | None = None


def normalize_reference(reference: str) -> str:
    """Percent-decode a reference and collapse whitespace."""
    return " ".join(unquote(reference).split())


def parse_reference(reference: str) -> MetadataReference:
    """Split a reference into title and year.

    The last year-like token (1900-2099) is taken as the year unless it is
    the only thing left to serve as a title, as in ``"1920"``. Parenthetical
    text is removed from the title.

    Args:
        reference: Raw, possibly URL-encoded, reference string.

    Returns:
        Parsed reference; the title falls back to the whole reference when
        stripping would leave nothing.
    """
    text = normalize_reference(reference)

    year = None
    title = text
    for match in reversed(list(YEAR_PATTERN.finditer(text))):
        candidate = f"{text[: match.start()]} {text[match.end():]}"
        if _clean_title(candidate):
            year = match.group(0)
            title = candidate
            break

    cleaned = _clean_title(title)
    return MetadataReference(title=cleaned or text, year=year)


def _clean_title(text: str) -> str:
    without_notes = PARENTHETICAL_PATTERN.sub("", text)
    return " ".join(without_notes.split()).strip(EDGE_PUNCTUATION)
