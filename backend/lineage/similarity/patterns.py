"""
Variant classification and mutation pattern detection.

Tags are symmetric (derived from the breakdown). Patterns are directional:
A is the earlier text, B the later one.
"""

from typing import List

from ..lexicon import INTENSIFIERS
from ..types import (
    ContentFingerprint,
    EmotionalAmplification,
    LengthChange,
    LocationChange,
    NumericalChange,
    PatternFinding,
    SimilarityBreakdown,
    VariantTag,
)

# Length ratio bounds outside which content counts as expanded/reduced
EXPANSION_RATIO = 1.3
REDUCTION_RATIO = 0.7


def variant_tags(breakdown: SimilarityBreakdown) -> List[VariantTag]:
    tags = []
    if breakdown.lexical > 0.8:
        tags.append(VariantTag.LEXICAL_VARIANT)
    if breakdown.semantic > 0.7 and breakdown.lexical < 0.5:
        tags.append(VariantTag.SEMANTIC_VARIANT)
    if breakdown.syntactic > 0.7:
        tags.append(VariantTag.STRUCTURAL_VARIANT)
    if breakdown.contextual > 0.8:
        tags.append(VariantTag.CONTEXTUAL_VARIANT)
    return tags


def detect_mutations(a: ContentFingerprint, b: ContentFingerprint) -> List[PatternFinding]:
    """Findings describing how B changed relative to A."""
    findings: List[PatternFinding] = []

    numbers_a = a.entities.get("numbers", ())
    numbers_b = b.entities.get("numbers", ())
    if tuple(numbers_a) != tuple(numbers_b):
        findings.append(NumericalChange(before=tuple(numbers_a), after=tuple(numbers_b)))

    locations_a = a.entity_set("locations")
    locations_b = b.entity_set("locations")
    if locations_a != locations_b:
        findings.append(LocationChange(
            removed=tuple(sorted(locations_a - locations_b)),
            added=tuple(sorted(locations_b - locations_a)),
        ))

    intensifiers_a = [w for w in INTENSIFIERS if w in a.token_set]
    intensifiers_b = [w for w in INTENSIFIERS if w in b.token_set]
    if len(intensifiers_b) > len(intensifiers_a):
        added = tuple(w for w in intensifiers_b if w not in intensifiers_a)
        findings.append(EmotionalAmplification(added=added))

    if a.length > 0:
        length_ratio = b.length / a.length
        if length_ratio > EXPANSION_RATIO or length_ratio < REDUCTION_RATIO:
            findings.append(LengthChange(ratio=length_ratio))

    return findings
