"""
Test: Text Preprocessor
=======================

Tokens, n-grams, sentences, domain, entities, hashing and the degraded
fallback.
"""

import pytest

from lineage import ValidationError, content_hash, preprocess, semantic_signature, validate_content
from lineage import preprocessing as preprocessing_module
from lineage.types import SentenceKind


class TestTokens:
    """Token filtering and n-grams."""

    def test_filters_short_digit_and_stop_words(self):
        fp = preprocess("URGENT: Turmeric cures COVID-19 in 24 hours!")
        assert fp.tokens == ("urgent", "turmeric", "cures", "covid", "hours")

    def test_ngrams_cover_configured_sizes(self):
        fp = preprocess("URGENT: Turmeric cures COVID-19 in 24 hours!")
        assert set(fp.ngrams) == {2, 3}
        assert fp.ngrams[2] == (
            "urgent turmeric", "turmeric cures", "cures covid", "covid hours",
        )
        assert len(fp.ngrams[3]) == 3

    def test_custom_ngram_range(self):
        fp = preprocess("alpha bravo charlie delta", min_ngram_size=2, max_ngram_size=4)
        assert set(fp.ngrams) == {2, 3, 4}
        assert fp.ngrams[4] == ("alpha bravo charlie delta",)


class TestSentences:

    def test_sentence_kinds_follow_terminator(self):
        fp = preprocess("Is this true? Yes! It is.")
        assert [s.kind for s in fp.sentences] == [
            SentenceKind.QUESTION, SentenceKind.EXCLAMATION, SentenceKind.STATEMENT,
        ]
        assert fp.sentences[2].text == "It is"

    def test_unterminated_text_is_one_statement(self):
        fp = preprocess("no punctuation at all here")
        assert len(fp.sentences) == 1
        assert fp.sentences[0].kind == SentenceKind.STATEMENT


class TestDomain:

    def test_medical_keywords(self):
        fp = preprocess("The new vaccine from the doctor at the hospital")
        assert fp.domain.label == "medical"
        assert fp.domain.matches == 3
        assert fp.domain.confidence == pytest.approx(3 / 14)

    def test_general_fallback(self):
        fp = preprocess("The weather today is sunny")
        assert fp.domain.label == "general"
        assert fp.domain.confidence == 0.0


class TestEntities:

    TEXT = "Flood in mumbai on 12/08/2023 reported by WHO and google, 3.5 million affected"

    def test_numbers_are_ordered(self):
        fp = preprocess(self.TEXT)
        assert fp.entities["numbers"] == ("12", "08", "2023", "3.5")

    def test_dates(self):
        assert preprocess(self.TEXT).entities["dates"] == ("12/08/2023",)

    def test_locations_are_canonicalized(self):
        assert preprocess(self.TEXT).entities["locations"] == ("Mumbai",)

    def test_organizations(self):
        assert preprocess(self.TEXT).entities["organizations"] == ("WHO", "Google")

    def test_lowercase_acronym_is_not_an_organization(self):
        fp = preprocess("who knows what happened")
        assert fp.entities["organizations"] == ()


class TestHashing:

    def test_hash_ignores_case_punctuation_and_spacing(self):
        assert content_hash("Hello, World!") == content_hash("hello   world")

    def test_hash_differs_for_different_words(self):
        assert content_hash("hello world") != content_hash("hello there")

    def test_fingerprint_carries_hash_and_digest(self):
        a = preprocess("Hello, World!")
        b = preprocess("hello world")
        assert a.content_hash == b.content_hash
        assert a.text_digest != b.text_digest

    def test_semantic_signature_ignores_punctuation(self):
        a = preprocess("Turmeric cures covid in Mumbai!!")
        b = preprocess("turmeric cures covid in mumbai")
        c = preprocess("The weather today is sunny")
        assert semantic_signature(a) == semantic_signature(b)
        assert semantic_signature(a) != semantic_signature(c)
        assert len(semantic_signature(a)) == 16


class TestValidation:

    @pytest.mark.parametrize("bad", [None, 42, "", "   \n\t"])
    def test_rejects_missing_or_blank(self, bad):
        with pytest.raises(ValidationError):
            validate_content(bad, max_length=100)

    def test_rejects_oversized(self):
        with pytest.raises(ValidationError):
            validate_content("x" * 11, max_length=10)

    def test_accepts_boundary_length(self):
        assert validate_content("x" * 10, max_length=10) == "x" * 10


class TestDegraded:
    """preprocess() never raises for malformed text."""

    def test_internal_failure_yields_minimal_fingerprint(self, monkeypatch):
        def boom(text):
            raise RuntimeError("tokenizer exploded")

        monkeypatch.setattr(preprocessing_module, "extract_tokens", boom)
        fp = preprocess("Turmeric cures COVID")

        assert fp.degraded
        assert fp.tokens == ()
        assert fp.domain.label == "general"
        assert fp.normalized == "turmeric cures covid"
        assert fp.content_hash == content_hash("Turmeric cures COVID")

    def test_normal_fingerprint_is_not_degraded(self):
        assert not preprocess("Turmeric cures COVID").degraded
