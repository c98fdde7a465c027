"""Tests for article reference extraction."""

import pytest

from api.tools.reference_extractor import extract_references


class TestExtractReferences:

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Article 1240 du Code civil", {"1240"}),
            ("que dit l'article 1382 ?", {"1382"}),
            ("ART. 1103", {"1103"}),
            ("art 9 et art. 16-1", {"9", "16-1"}),
            ("articles 1240 à 1242", {"1240", "1242"}),
            ("articles 1240 et 1241", {"1240", "1241"}),
            ("l'article 1240 au 1244", {"1240", "1244"}),
        ],
    )
    def test_detects_citations(self, text, expected):
        assert extract_references(text) == expected

    def test_range_keeps_only_written_endpoints(self):
        refs = extract_references("articles 1240 à 1242")
        assert "1241" not in refs

    def test_no_citation(self):
        assert extract_references("Quelle est la responsabilité civile ?") == set()

    def test_empty_text(self):
        assert extract_references("") == set()

    def test_duplicates_collapse(self):
        assert extract_references("Article 1240, encore l'article 1240") == {"1240"}

    def test_word_boundary_required(self):
        # "part 12" / "departement 3" must not be read as "art 12"
        assert extract_references("une part 12 du departement") == set()

    def test_bare_numbers_ignored(self):
        assert extract_references("En 2016, 1240 euros") == set()
