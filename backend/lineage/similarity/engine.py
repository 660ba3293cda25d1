"""
Similarity Engine
=================

Weighted four-axis comparison of two fingerprints.

    engine = SimilarityEngine()
    result = engine.score(earlier_fp, later_fp)
    result.overall        -> 0.0 .. 1.0
    result.is_variant     -> overall >= similarity_threshold
    result.variant_type   -> dominant Axis
    result.findings       -> directional mutation evidence (earlier -> later)

The symmetric part (axis breakdown + details) is cached per unordered pair
of exact-text digests. Variant tags and mutation findings are recomputed on
every call since the findings depend on argument order.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..preprocessing import preprocess
from ..settings import LineageSettings, get_settings
from ..types import (
    Axis,
    ContentFingerprint,
    SimilarityBreakdown,
    SimilarityResult,
)
from .axes import (
    AxisScore,
    contextual_similarity,
    lexical_similarity,
    semantic_similarity,
    syntactic_similarity,
)
from .cache import SimilarityCache, pair_key
from .patterns import detect_mutations, variant_tags

logger = logging.getLogger(__name__)


AXIS_FUNCTIONS: Dict[Axis, Callable[[ContentFingerprint, ContentFingerprint], AxisScore]] = {
    Axis.LEXICAL: lexical_similarity,
    Axis.SYNTACTIC: syntactic_similarity,
    Axis.SEMANTIC: semantic_similarity,
    Axis.CONTEXTUAL: contextual_similarity,
}


@dataclass
class VariantMatch:
    """One hit of find_variants()."""
    item_id: str
    text: str
    result: SimilarityResult

    @property
    def score(self) -> float:
        return self.result.overall


@dataclass
class TextCluster:
    """Greedy cluster of mutually-variant texts around a representative."""
    cluster_id: str
    representative_id: str
    member_ids: List[str] = field(default_factory=list)
    scores: Dict[str, float] = field(default_factory=dict)

    @property
    def size(self) -> int:
        return len(self.member_ids)

    @property
    def average_similarity(self) -> float:
        if not self.scores:
            return 0.0
        return sum(self.scores.values()) / len(self.scores)


class SimilarityEngine:
    """Scores fingerprint pairs; safe to share between threads."""

    def __init__(
        self,
        settings: Optional[LineageSettings] = None,
        cache: Optional[SimilarityCache] = None,
    ):
        self.settings = settings or get_settings()
        self.cache = cache if cache is not None else SimilarityCache(
            max_entries=self.settings.similarity_cache_size,
            default_ttl=self.settings.similarity_cache_ttl,
        )

    # =========================================================================
    # SCORING
    # =========================================================================

    def score(self, fp_a: ContentFingerprint, fp_b: ContentFingerprint) -> SimilarityResult:
        """
        Compare A (earlier) with B (later).

        Never raises: a failing axis scores 0 and is listed in result.degraded.
        """
        key = pair_key(fp_a.text_digest, fp_b.text_digest)
        cached = self.cache.get(key)

        if cached is not None:
            breakdown, details = cached
            degraded: List[str] = []
            logger.debug(f"Similarity cache hit for {key[:12]}")
        else:
            breakdown, details, degraded = self._compute_axes(fp_a, fp_b)
            if not degraded:
                self.cache.set(key, (breakdown, details))

        if fp_a.degraded or fp_b.degraded:
            degraded = degraded + ["preprocess"]

        weights = self.settings.weights
        overall = sum(weights[axis.value] * breakdown.score_for(axis) for axis in Axis)
        overall = min(max(overall, 0.0), 1.0)

        findings = detect_mutations(fp_a, fp_b)

        return SimilarityResult(
            overall=overall,
            is_variant=overall >= self.settings.similarity_threshold,
            breakdown=breakdown,
            variant_type=breakdown.dominant_axis(),
            variant_tags=variant_tags(breakdown),
            mutation_patterns=[f.pattern for f in findings],
            findings=findings,
            details=details,
            degraded=degraded,
            cached=cached is not None,
        )

    def _compute_axes(
        self,
        fp_a: ContentFingerprint,
        fp_b: ContentFingerprint,
    ) -> Tuple[SimilarityBreakdown, Dict[str, Dict[str, float]], List[str]]:
        scores: Dict[str, float] = {}
        details: Dict[str, Dict[str, float]] = {}
        degraded: List[str] = []

        for axis, fn in AXIS_FUNCTIONS.items():
            try:
                value, axis_details = fn(fp_a, fp_b)
                scores[axis.value] = min(max(value, 0.0), 1.0)
                details[axis.value] = axis_details
            except Exception as e:
                logger.warning(f"{axis.value} similarity failed: {e}")
                scores[axis.value] = 0.0
                details[axis.value] = {}
                degraded.append(axis.value)

        return SimilarityBreakdown(**scores), details, degraded

    # =========================================================================
    # TEXT-LEVEL CONVENIENCE
    # =========================================================================

    def fingerprint(self, text: str) -> ContentFingerprint:
        return preprocess(
            text,
            min_ngram_size=self.settings.min_ngram_size,
            max_ngram_size=self.settings.max_ngram_size,
        )

    def compare_texts(self, text_a: str, text_b: str) -> SimilarityResult:
        return self.score(self.fingerprint(text_a), self.fingerprint(text_b))

    def find_variants(
        self,
        target_text: str,
        items: Sequence[Tuple[str, str]],
        min_similarity: Optional[float] = None,
        max_results: int = 50,
    ) -> List[VariantMatch]:
        """
        Rank (item_id, text) pairs that are variants of target_text.

        Items are treated as earlier versions of the target. Sorted by
        overall similarity, highest first; stable for equal scores.
        """
        floor = self.settings.similarity_threshold if min_similarity is None else min_similarity
        target = self.fingerprint(target_text)

        matches = []
        for item_id, text in items:
            result = self.score(self.fingerprint(text), target)
            if result.is_variant and result.overall >= floor:
                matches.append(VariantMatch(item_id=item_id, text=text, result=result))

        matches.sort(key=lambda m: m.score, reverse=True)
        return matches[:max_results]

    def cluster_similar_texts(
        self,
        items: Sequence[Tuple[str, str]],
        threshold: Optional[float] = None,
    ) -> List[TextCluster]:
        """
        Greedy single pass: each unassigned item seeds a cluster and absorbs
        every later unassigned item that is a variant of it.

        Singletons are dropped; clusters are returned largest first.
        """
        floor = self.settings.similarity_threshold if threshold is None else threshold
        fingerprints = [self.fingerprint(text) for _, text in items]
        assigned = set()
        clusters = []

        for i, (seed_id, _) in enumerate(items):
            if i in assigned:
                continue
            assigned.add(i)
            cluster = TextCluster(
                cluster_id=f"cluster_{uuid.uuid4().hex[:12]}",
                representative_id=seed_id,
                member_ids=[seed_id],
            )
            for j in range(i + 1, len(items)):
                if j in assigned:
                    continue
                result = self.score(fingerprints[i], fingerprints[j])
                if result.is_variant and result.overall >= floor:
                    member_id = items[j][0]
                    cluster.member_ids.append(member_id)
                    cluster.scores[member_id] = result.overall
                    assigned.add(j)

            if cluster.size > 1:
                clusters.append(cluster)

        clusters.sort(key=lambda c: c.size, reverse=True)
        return clusters

    # =========================================================================
    # OPERATOR
    # =========================================================================

    def clear_cache(self):
        self.cache.clear()
        logger.info("Similarity cache cleared")

    def cache_stats(self) -> Dict[str, int]:
        return self.cache.stats()
