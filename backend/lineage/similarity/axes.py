"""
Similarity Axes
===============

Four independent, symmetric sub-scores over two fingerprints. Each returns
(score, details) with score in [0, 1].

Convention: two empty collections agree (1.0), an empty and a non-empty
collection do not (0.0). This keeps score(A, A) == 1.0 for every axis.

Axis        | Components
------------|------------------------------------------------------------
lexical     | token-set Jaccard, word-frequency cosine
syntactic   | avg sentence length, n-gram Jaccard, sentence structure
semantic    | domain agreement, entity overlap, synonym-aware matching
contextual  | emotional categories, urgency indicators, intent cues
"""

import re
from collections import Counter
from typing import Dict, FrozenSet, Iterable, List, Mapping, Sequence, Set, Tuple

import numpy as np

from ..lexicon import (
    EMOTIONAL_WORDS,
    GENERAL_DOMAIN,
    INTENT_PATTERNS,
    RELATED_DOMAINS,
    URGENCY_INDICATORS,
    synonyms_for,
)
from ..types import ContentFingerprint, DomainLabel, ENTITY_TYPES, SentenceKind

AxisScore = Tuple[float, Dict[str, float]]

SYNONYM_MATCH = 0.8
RELATED_DOMAIN_FACTOR = 0.5


# =============================================================================
# PRIMITIVES
# =============================================================================

def jaccard(a: Set[str], b: Set[str]) -> float:
    """Jaccard similarity; two empty sets agree."""
    if not a and not b:
        return 1.0
    return len(a & b) / len(a | b)


def cosine_similarity(tokens_a: Sequence[str], tokens_b: Sequence[str]) -> float:
    """Cosine between word-frequency vectors."""
    if not tokens_a and not tokens_b:
        return 1.0
    if not tokens_a or not tokens_b:
        return 0.0
    counts_a, counts_b = Counter(tokens_a), Counter(tokens_b)
    vocabulary = sorted(set(counts_a) | set(counts_b))
    a_arr = np.array([counts_a[w] for w in vocabulary], dtype=float)
    b_arr = np.array([counts_b[w] for w in vocabulary], dtype=float)
    norm_a, norm_b = np.linalg.norm(a_arr), np.linalg.norm(b_arr)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(min(np.dot(a_arr, b_arr) / (norm_a * norm_b), 1.0))


def ratio(x: float, y: float) -> float:
    """min/max ratio of two non-negative magnitudes; both zero agree."""
    high = max(x, y)
    if high == 0:
        return 1.0
    return min(x, y) / high


def count_profile_similarity(
    profile_a: Mapping[str, int],
    profile_b: Mapping[str, int],
    categories: Iterable[str],
) -> float:
    """Mean per-category count ratio."""
    categories = list(categories)
    if not categories:
        return 1.0
    return sum(ratio(profile_a.get(c, 0), profile_b.get(c, 0)) for c in categories) / len(categories)


# =============================================================================
# LEXICAL
# =============================================================================

def lexical_similarity(a: ContentFingerprint, b: ContentFingerprint) -> AxisScore:
    jaccard_score = jaccard(set(a.token_set), set(b.token_set))
    cosine_score = cosine_similarity(a.tokens, b.tokens)
    return (jaccard_score + cosine_score) / 2, {
        "jaccard": jaccard_score,
        "cosine": cosine_score,
    }


# =============================================================================
# SYNTACTIC
# =============================================================================

def syntactic_similarity(a: ContentFingerprint, b: ContentFingerprint) -> AxisScore:
    length_score = _sentence_length_similarity(a, b)
    ngram_score = _ngram_similarity(a.ngrams, b.ngrams)
    structure_score = _structure_similarity(a, b)
    return (length_score + ngram_score + structure_score) / 3, {
        "length_similarity": length_score,
        "ngram_similarity": ngram_score,
        "structure_similarity": structure_score,
    }


def _sentence_length_similarity(a: ContentFingerprint, b: ContentFingerprint) -> float:
    if not a.sentences and not b.sentences:
        return 1.0
    if not a.sentences or not b.sentences:
        return 0.0
    avg_a = sum(len(s.text) for s in a.sentences) / len(a.sentences)
    avg_b = sum(len(s.text) for s in b.sentences) / len(b.sentences)
    high = max(avg_a, avg_b)
    if high == 0:
        return 1.0
    return 1 - abs(avg_a - avg_b) / high


def _ngram_similarity(
    ngrams_a: Mapping[int, Tuple[str, ...]],
    ngrams_b: Mapping[int, Tuple[str, ...]],
) -> float:
    """Mean Jaccard over every n-gram size either side extracted."""
    sizes = sorted(set(ngrams_a) | set(ngrams_b))
    if not sizes:
        return 1.0
    total = sum(
        jaccard(set(ngrams_a.get(n, ())), set(ngrams_b.get(n, ())))
        for n in sizes
    )
    return total / len(sizes)


def _structure_similarity(a: ContentFingerprint, b: ContentFingerprint) -> float:
    """Sentence-count ratio averaged with sentence-kind distribution."""
    count_score = ratio(len(a.sentences), len(b.sentences))
    kinds = [kind.value for kind in SentenceKind]
    profile_a = Counter(s.kind.value for s in a.sentences)
    profile_b = Counter(s.kind.value for s in b.sentences)
    return (count_score + count_profile_similarity(profile_a, profile_b, kinds)) / 2


# =============================================================================
# SEMANTIC
# =============================================================================

def semantic_similarity(a: ContentFingerprint, b: ContentFingerprint) -> AxisScore:
    domain_score = domain_agreement(a.domain, b.domain)
    entity_score = entity_similarity(a, b)
    synonym_score = synonym_similarity(a.tokens, b.tokens, [a.domain.label, b.domain.label])
    return (domain_score + entity_score + synonym_score) / 3, {
        "domain_similarity": domain_score,
        "entity_similarity": entity_score,
        "synonym_similarity": synonym_score,
    }


def domain_agreement(domain_a: DomainLabel, domain_b: DomainLabel) -> float:
    """
    Same label: ratio of the two confidences (general/general agrees fully).
    Related labels: half of that. Otherwise 0.
    """
    if domain_a.label == domain_b.label:
        return ratio(domain_a.confidence, domain_b.confidence)
    if frozenset({domain_a.label, domain_b.label}) in RELATED_DOMAINS:
        return RELATED_DOMAIN_FACTOR * ratio(domain_a.confidence, domain_b.confidence)
    return 0.0


def entity_similarity(a: ContentFingerprint, b: ContentFingerprint) -> float:
    """Mean Jaccard over entity types present on at least one side."""
    scores = []
    for entity_type in ENTITY_TYPES:
        set_a, set_b = a.entity_set(entity_type), b.entity_set(entity_type)
        if set_a or set_b:
            scores.append(jaccard(set(set_a), set(set_b)))
    if not scores:
        return 1.0
    return sum(scores) / len(scores)


def synonym_similarity(
    tokens_a: Sequence[str],
    tokens_b: Sequence[str],
    domains: List[str],
) -> float:
    """
    Best-match word similarity, averaged over both directions.

    Each distinct word scores 1.0 for an exact match on the other side,
    0.8 for a listed synonym, else 0.
    """
    words_a, words_b = set(tokens_a), set(tokens_b)
    if not words_a and not words_b:
        return 1.0
    if not words_a or not words_b:
        return 0.0

    synonyms = synonyms_for([d for d in domains if d != GENERAL_DOMAIN])
    forward = _best_match_mean(words_a, words_b, synonyms)
    backward = _best_match_mean(words_b, words_a, synonyms)
    return (forward + backward) / 2


def _best_match_mean(
    source: Set[str],
    target: Set[str],
    synonyms: Mapping[str, FrozenSet[str]],
) -> float:
    total = 0.0
    for word in source:
        if word in target:
            total += 1.0
        elif _has_synonym(word, target, synonyms):
            total += SYNONYM_MATCH
    return total / len(source)


def _has_synonym(word: str, target: Set[str], synonyms: Mapping[str, FrozenSet[str]]) -> bool:
    if synonyms.get(word, frozenset()) & target:
        return True
    return any(word in synonyms.get(other, frozenset()) for other in target)


# =============================================================================
# CONTEXTUAL
# =============================================================================

def contextual_similarity(a: ContentFingerprint, b: ContentFingerprint) -> AxisScore:
    emotional_score = count_profile_similarity(
        emotion_profile(a), emotion_profile(b), EMOTIONAL_WORDS.keys()
    )
    urgency_score = ratio(urgency_level(a), urgency_level(b))
    intent_score = count_profile_similarity(
        intent_profile(a), intent_profile(b), INTENT_PATTERNS.keys()
    )
    return (emotional_score + urgency_score + intent_score) / 3, {
        "emotional_similarity": emotional_score,
        "urgency_similarity": urgency_score,
        "intent_similarity": intent_score,
    }


def emotion_profile(fp: ContentFingerprint) -> Dict[str, int]:
    """Distinct emotional words present, per category."""
    words = fp.token_set
    return {
        category: sum(1 for w in category_words if w in words)
        for category, category_words in EMOTIONAL_WORDS.items()
    }


def urgency_level(fp: ContentFingerprint) -> int:
    return sum(1 for indicator in URGENCY_INDICATORS if indicator in fp.token_set)


def intent_profile(fp: ContentFingerprint) -> Dict[str, int]:
    """Intent cues present, per category.

    Cues are matched against all words of the text (stop words included,
    since "what"/"how" are stop words).
    """
    all_words = set(re.findall(r"\b\w+\b", fp.normalized))
    profile = {}
    for category, cues in INTENT_PATTERNS.items():
        hits = 0
        for cue in cues:
            if cue.isalpha():
                hits += cue in all_words
            else:
                hits += cue in fp.normalized
        profile[category] = hits
    return profile
