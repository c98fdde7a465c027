"""Tests for domain models and embedding deserialisation."""

from datetime import date

import numpy as np
import pytest
from pydantic import ValidationError

from api.models import (
    Article,
    CaseLawDecision,
    CorpusStatistics,
    MethodologyNote,
    ResultBundle,
    RetrievalOptions,
    ScoredResult,
    SourcePolicy,
    SourceStatistics,
    SourceType,
    parse_embedding,
)
from libs.common.settings import Settings


class TestParseEmbedding:

    @pytest.mark.parametrize(
        "raw",
        [
            [0.1, 0.2, 0.3],
            (0.1, 0.2, 0.3),
            "[0.1,0.2,0.3]",
            b"[0.1, 0.2, 0.3]",
            np.array([0.1, 0.2, 0.3]),
        ],
    )
    def test_supported_representations(self, raw):
        assert parse_embedding(raw) == [0.1, 0.2, 0.3]

    @pytest.mark.parametrize(
        "raw",
        [None, "", "not json", "{}", "[]", [], ["a", "b"], 42, '"[1,2]"', [1.0, float("nan")]],
    )
    def test_malformed_values_become_none(self, raw):
        assert parse_embedding(raw) is None

    def test_integers_become_floats(self):
        vector = parse_embedding([1, 2])
        assert vector == [1.0, 2.0]
        assert all(isinstance(x, float) for x in vector)


class TestDocuments:

    def test_embedding_deserialised_at_construction(self):
        article = Article(id=7, article_number="1240", embedding="[1, 0]")
        assert article.id == "7"
        assert article.embedding == [1.0, 0.0]

    def test_missing_id_rejected(self):
        with pytest.raises(ValidationError):
            Article(id="  ", article_number="1240")

    def test_article_defaults(self):
        article = Article(id="a", article_number="1240")
        assert article.code == "Code civil"
        assert article.label == "Article 1240"
        assert article.legifrance_url.endswith("LEGITEXT000006070721")

    def test_decision_dates(self):
        decision = CaseLawDecision(id="d", decision_date="2024-01-15T00:00:00")
        assert decision.decision_date == date(2024, 1, 15)
        assert decision.display_date == "15/01/2024"

    def test_unparsable_decision_date(self):
        decision = CaseLawDecision(id="d", decision_date="hier")
        assert decision.decision_date is None
        assert decision.display_date == "Date inconnue"

    def test_decision_defaults(self):
        decision = CaseLawDecision(id="d")
        assert decision.jurisdiction == "Juridiction inconnue"
        assert decision.decision_number == "N/A"
        assert decision.holding == "Non spécifié"

    def test_decision_facts_truncated(self):
        decision = CaseLawDecision(id="d", full_text="x" * 800)
        assert len(decision.facts) == 500

    def test_decision_url_uses_number_and_date(self):
        decision = CaseLawDecision(
            id="d",
            jurisdiction="Cour de cassation",
            decision_date="2024-01-15",
            decision_number="22-12345",
        )
        assert "search/juri" in decision.legifrance_url
        assert "22-12345" in decision.legifrance_url

    def test_methodology_requires_title(self):
        with pytest.raises(ValidationError):
            MethodologyNote(id="m")


class TestResultBundle:

    def test_empty_bundle(self):
        bundle = ResultBundle.empty("question")
        assert bundle.total_sources == 0
        assert bundle.is_empty

    def test_total_and_source_access(self):
        result = ScoredResult(document=Article(id="a", article_number="1"), similarity=0.9)
        bundle = ResultBundle(query="q", articles=[result], jurisprudence=[result, result])
        assert bundle.total_sources == 3
        assert bundle.for_source(SourceType.CASE_LAW) == [result, result]
        assert bundle.for_source(SourceType.METHODOLOGY) == []


class TestRetrievalOptions:

    def test_defaults(self):
        options = RetrievalOptions()
        assert options.policy_for(SourceType.ARTICLES) == SourcePolicy(limit=3, threshold=0.75, pool_size=1000)
        assert options.policy_for(SourceType.CASE_LAW).threshold == 0.40
        assert options.policy_for(SourceType.METHODOLOGY).limit == 3

    def test_from_settings(self):
        settings = Settings(case_law_limit=5, case_law_threshold=0.5)
        options = RetrievalOptions.from_settings(settings)
        assert options.jurisprudence.limit == 5
        assert options.jurisprudence.threshold == 0.5

    def test_policy_bounds(self):
        with pytest.raises(ValidationError):
            SourcePolicy(limit=0, threshold=0.5, pool_size=10)
        with pytest.raises(ValidationError):
            SourcePolicy(limit=1, threshold=1.5, pool_size=10)


class TestCorpusStatistics:

    def test_ready_when_any_source_embedded(self):
        stats = CorpusStatistics(articles=SourceStatistics(total=10, with_embeddings=0),
                                 jurisprudence=SourceStatistics(total=5, with_embeddings=5))
        assert stats.total_sources == 15
        assert stats.ready

    def test_not_ready_when_empty(self):
        assert not CorpusStatistics().ready
