"""Tests for metadata reference parsing."""

import pytest

from desicatalog.enrichment.reference import normalize_reference, parse_reference


class TestParseReference:
    """Tests for parse_reference."""

    @pytest.mark.parametrize(
        ("reference", "title", "year"),
        [
            ("Kesari 2 (2025)", "Kesari 2", "2025"),
            ("Pagal 2023", "Pagal", "2023"),
            ("Carry On Jatta 3", "Carry On Jatta 3", None),
            ("Jatt & Juliet 3 (Punjabi) 2024", "Jatt & Juliet 3", "2024"),
            ("1920 (2008)", "1920", "2008"),
            ("Sardaar Ji - 2015", "Sardaar Ji", "2015"),
        ],
    )
    def test_title_and_year(self, reference, title, year):
        parsed = parse_reference(reference)
        assert parsed.title == title
        assert parsed.year == year

    def test_year_only_title_is_kept(self):
        """Test a title that is itself a year is not consumed."""
        parsed = parse_reference("1920")
        assert parsed.title == "1920"
        assert parsed.year is None

    def test_out_of_range_year_ignored(self):
        parsed = parse_reference("Chapter 1857")
        assert parsed.title == "Chapter 1857"
        assert parsed.year is None

    def test_url_encoded_reference(self):
        parsed = parse_reference("Kesari%202%20(2025)")
        assert parsed.title == "Kesari 2"
        assert parsed.year == "2025"


class TestNormalizeReference:
    """Tests for normalize_reference."""

    def test_decodes_and_collapses_whitespace(self):
        assert normalize_reference("  Pagal%20%20 2023 ") == "Pagal 2023"

    def test_plain_reference_unchanged(self):
        assert normalize_reference("Pagal 2023") == "Pagal 2023"
