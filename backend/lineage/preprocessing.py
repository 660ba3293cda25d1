"""
Text Preprocessor
=================

Pure, deterministic text -> ContentFingerprint.

    fp = preprocess("URGENT: Turmeric cures COVID-19 in 24 hours!")
    fp.tokens        -> ('urgent', 'turmeric', 'cures', 'covid', 'hours')
    fp.domain.label  -> 'general' / 'medical' / ...
    fp.content_hash  -> sha256 of the normalized text

preprocess() never raises for malformed text: on any internal failure it
returns a minimal fingerprint flagged degraded. Boundary checks (empty,
oversized) live in validate_content() and are the caller's responsibility.
"""

import hashlib
import logging
import re
from typing import Dict, List, Tuple

from .errors import ValidationError
from .lexicon import (
    DOMAIN_KEYWORDS,
    GENERAL_DOMAIN,
    LOCATIONS,
    ORGANIZATION_ACRONYMS,
    ORGANIZATION_NAMES,
    STOP_WORDS,
)
from .types import ContentFingerprint, DomainLabel, ENTITY_TYPES, Sentence, SentenceKind

logger = logging.getLogger(__name__)


_WORD_RE = re.compile(r"\b\w+\b")
_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]*")
_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")
_DATE_RE = re.compile(r"\b\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4}\b")

_LOCATION_RE = re.compile(r"\b(" + "|".join(LOCATIONS) + r")\b", re.IGNORECASE)
_ORG_ACRONYM_RE = re.compile(r"\b(" + "|".join(ORGANIZATION_ACRONYMS) + r")\b")
_ORG_NAME_RE = re.compile(r"\b(" + "|".join(ORGANIZATION_NAMES) + r")\b", re.IGNORECASE)

_CANONICAL_LOCATION = {name.lower(): name for name in LOCATIONS}
_CANONICAL_ORG = {name.lower(): name for name in ORGANIZATION_NAMES}


# =============================================================================
# PUBLIC API
# =============================================================================

def validate_content(text, max_length: int) -> str:
    """
    Boundary check for content entering the store or the orchestrator.

    Raises:
        ValidationError: text is not a string, is blank, or exceeds max_length
    """
    if not isinstance(text, str):
        raise ValidationError(f"content must be a string, got {type(text).__name__}")
    if not text.strip():
        raise ValidationError("content is empty")
    if len(text) > max_length:
        raise ValidationError(f"content length {len(text)} exceeds maximum {max_length}")
    return text


def content_hash(text: str) -> str:
    """
    Stable hash for duplicate detection.

    Normalization:
    - Lowercase
    - Remove punctuation
    - Collapse whitespace
    """
    normalized = text.lower()
    normalized = re.sub(r'[^\w\s]', '', normalized)
    normalized = re.sub(r'\s+', ' ', normalized).strip()
    return hashlib.sha256(normalized.encode()).hexdigest()


def preprocess(
    text: str,
    *,
    min_ngram_size: int = 2,
    max_ngram_size: int = 3,
) -> ContentFingerprint:
    """
    Compute the fingerprint of a text.

    Args:
        text: Raw content
        min_ngram_size: Smallest n-gram size extracted
        max_ngram_size: Largest n-gram size extracted

    Returns:
        ContentFingerprint (degraded=True if extraction failed)
    """
    try:
        tokens = extract_tokens(text)
        return ContentFingerprint(
            normalized=text.lower().strip(),
            tokens=tuple(tokens),
            ngrams=extract_ngrams(tokens, min_ngram_size, max_ngram_size),
            sentences=tuple(extract_sentences(text)),
            domain=identify_domain(tokens),
            entities=extract_entities(text),
            content_hash=content_hash(text),
            text_digest=_digest(text),
            length=len(text),
        )
    except Exception as e:
        logger.warning(f"Preprocessing failed, using minimal fingerprint: {e}")
        return minimal_fingerprint(text)


def minimal_fingerprint(text) -> ContentFingerprint:
    """Conservative fallback: lowercase text only, no features."""
    raw = text if isinstance(text, str) else ("" if text is None else str(text))
    return ContentFingerprint(
        normalized=raw.lower().strip(),
        tokens=(),
        ngrams={},
        sentences=(),
        domain=DomainLabel(label=GENERAL_DOMAIN),
        entities={entity_type: () for entity_type in ENTITY_TYPES},
        content_hash=content_hash(raw),
        text_digest=_digest(raw),
        length=len(raw),
        degraded=True,
    )


# =============================================================================
# EXTRACTION
# =============================================================================

def extract_tokens(text: str) -> List[str]:
    """Lowercase words, length > 2, not pure digits, not stop words."""
    words = _WORD_RE.findall(text.lower())
    return [
        word for word in words
        if len(word) > 2 and word not in STOP_WORDS and not word.isdigit()
    ]


def extract_ngrams(
    tokens: List[str],
    min_size: int = 2,
    max_size: int = 3,
) -> Dict[int, Tuple[str, ...]]:
    ngrams = {}
    for n in range(min_size, max_size + 1):
        ngrams[n] = tuple(
            " ".join(tokens[i:i + n]) for i in range(len(tokens) - n + 1)
        )
    return ngrams


def extract_sentences(text: str) -> List[Sentence]:
    """Split on terminator runs; the terminator decides the sentence kind."""
    sentences = []
    for chunk in _SENTENCE_RE.findall(text):
        body = chunk.rstrip(".!?").strip()
        if not body:
            continue
        terminator = chunk[len(chunk.rstrip(".!?")):]
        if "?" in terminator:
            kind = SentenceKind.QUESTION
        elif "!" in terminator:
            kind = SentenceKind.EXCLAMATION
        else:
            kind = SentenceKind.STATEMENT
        sentences.append(Sentence(text=body, kind=kind))
    return sentences


def identify_domain(tokens: List[str]) -> DomainLabel:
    """Domain with the highest keyword-overlap ratio; first declared wins ties."""
    words = set(tokens)
    best_label = GENERAL_DOMAIN
    best_score = 0.0
    best_matches = 0

    for domain, keywords in DOMAIN_KEYWORDS.items():
        matches = sum(1 for keyword in keywords if keyword in words)
        score = matches / len(keywords)
        if score > best_score:
            best_label, best_score, best_matches = domain, score, matches

    return DomainLabel(label=best_label, confidence=best_score, matches=best_matches)


def extract_entities(text: str) -> Dict[str, Tuple[str, ...]]:
    """Numbers (ordered), dates, gazetteer locations and organizations."""
    organizations = _ORG_ACRONYM_RE.findall(text)
    organizations += [_CANONICAL_ORG[m.lower()] for m in _ORG_NAME_RE.findall(text)]

    return {
        "numbers": tuple(_NUMBER_RE.findall(text)),
        "dates": tuple(_dedupe(_DATE_RE.findall(text))),
        "locations": tuple(_dedupe(
            _CANONICAL_LOCATION[m.lower()] for m in _LOCATION_RE.findall(text)
        )),
        "organizations": tuple(_dedupe(organizations)),
    }


def _dedupe(items) -> List[str]:
    seen = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


def _digest(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8", errors="replace")).hexdigest()


# =============================================================================
# SEMANTIC SIGNATURE (coarse bucket key)
# =============================================================================

def semantic_signature(fp: ContentFingerprint) -> str:
    """
    Combined hash of word, n-gram, entity-shape and domain sub-fingerprints.

    Two texts that differ only in stop words, punctuation or token order of
    the leading significant words land in the same bucket.
    """
    significant_words = sorted(word for word in fp.token_set if len(word) > 3)[:20]
    all_ngrams = sorted(set(ng for grams in fp.ngrams.values() for ng in grams))[:15]
    entity_shape = [f"{t}:{len(fp.entities.get(t, ()))}" for t in ENTITY_TYPES]

    parts = [
        hashlib.md5("|".join(significant_words).encode()).hexdigest(),
        hashlib.md5("|".join(all_ngrams).encode()).hexdigest(),
        hashlib.md5("|".join([fp.domain.label] + entity_shape).encode()).hexdigest(),
    ]
    return hashlib.sha256("|".join(parts).encode()).hexdigest()[:16]
