"""
Core Types for Misinformation Lineage
=====================================

This module contains pure data structures with no algorithms.
All computation is in separate modules.

Layers:
  Fingerprint: Derived, immutable view of one text
  Similarity:  Four-axis comparison of two fingerprints
  Descriptor:  Closed description of how a child differs from its parent
  Genealogy:   TreeNode / FamilyTree, owned by the GenealogyStore
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import cached_property
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple, Union

from .errors import ValidationError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class NodeKind(Enum):
    """Role of a node in its family."""
    ORIGINAL = "original"   # Family root, the seed claim
    MUTATION = "mutation"   # Any descendant


class SentenceKind(Enum):
    QUESTION = "question"
    EXCLAMATION = "exclamation"
    STATEMENT = "statement"


class Axis(Enum):
    """Similarity axes. Declaration order is the tie-break order."""
    LEXICAL = "lexical"
    SYNTACTIC = "syntactic"
    SEMANTIC = "semantic"
    CONTEXTUAL = "contextual"


class VariantTag(Enum):
    """Threshold-triggered characteristics of a variant."""
    LEXICAL_VARIANT = "LEXICAL_VARIANT"         # Very similar words
    SEMANTIC_VARIANT = "SEMANTIC_VARIANT"       # Same meaning, different words
    STRUCTURAL_VARIANT = "STRUCTURAL_VARIANT"   # Similar structure
    CONTEXTUAL_VARIANT = "CONTEXTUAL_VARIANT"   # Similar tone/intent


class MutationPattern(Enum):
    """Concrete, directional changes between an earlier and a later text."""
    NUMERICAL_MUTATION = "NUMERICAL_MUTATION"
    LOCATION_MUTATION = "LOCATION_MUTATION"
    EMOTIONAL_AMPLIFICATION = "EMOTIONAL_AMPLIFICATION"
    CONTENT_EXPANSION = "CONTENT_EXPANSION"
    CONTENT_REDUCTION = "CONTENT_REDUCTION"


class MutationType(Enum):
    """Dominant kind of change recorded on a mutation node."""
    EMOTIONAL_AMPLIFICATION = "emotional_amplification"
    NUMERICAL_CHANGE = "numerical_change"
    LOCATION_CHANGE = "location_change"
    CONTENT_EXPANSION = "content_expansion"
    CONTENT_REDUCTION = "content_reduction"
    LEXICAL_VARIANT = "lexical_variant"
    STRUCTURAL_VARIANT = "structural_variant"
    SEMANTIC_VARIANT = "semantic_variant"
    CONTEXTUAL_VARIANT = "contextual_variant"
    UNKNOWN = "unknown"


# =============================================================================
# FINGERPRINT
# =============================================================================

ENTITY_TYPES: Tuple[str, ...] = ("numbers", "dates", "locations", "organizations")


@dataclass(frozen=True)
class Sentence:
    text: str
    kind: SentenceKind


@dataclass(frozen=True)
class DomainLabel:
    """Coarse topical domain with overlap-ratio confidence."""
    label: str
    confidence: float = 0.0
    matches: int = 0


@dataclass(frozen=True)
class ContentFingerprint:
    """
    Derived, comparable representation of a text. Immutable once computed.

    content_hash identifies content for duplicate detection (normalized:
    case, punctuation and spacing ignored). text_digest identifies the
    exact text and keys the similarity cache.
    """
    normalized: str
    tokens: Tuple[str, ...]
    ngrams: Mapping[int, Tuple[str, ...]]
    sentences: Tuple[Sentence, ...]
    domain: DomainLabel
    entities: Mapping[str, Tuple[str, ...]]
    content_hash: str
    text_digest: str
    length: int
    degraded: bool = False

    @cached_property
    def token_set(self) -> FrozenSet[str]:
        return frozenset(self.tokens)

    def entity_set(self, entity_type: str) -> FrozenSet[str]:
        return frozenset(self.entities.get(entity_type, ()))


# =============================================================================
# MUTATION FINDINGS (typed evidence for each MutationPattern)
# =============================================================================

@dataclass(frozen=True)
class NumericalChange:
    before: Tuple[str, ...]
    after: Tuple[str, ...]

    @property
    def pattern(self) -> MutationPattern:
        return MutationPattern.NUMERICAL_MUTATION


@dataclass(frozen=True)
class LocationChange:
    removed: Tuple[str, ...]
    added: Tuple[str, ...]

    @property
    def pattern(self) -> MutationPattern:
        return MutationPattern.LOCATION_MUTATION


@dataclass(frozen=True)
class EmotionalAmplification:
    added: Tuple[str, ...]

    @property
    def pattern(self) -> MutationPattern:
        return MutationPattern.EMOTIONAL_AMPLIFICATION


@dataclass(frozen=True)
class LengthChange:
    ratio: float

    @property
    def pattern(self) -> MutationPattern:
        if self.ratio > 1.0:
            return MutationPattern.CONTENT_EXPANSION
        return MutationPattern.CONTENT_REDUCTION


PatternFinding = Union[NumericalChange, LocationChange, EmotionalAmplification, LengthChange]


# =============================================================================
# SIMILARITY
# =============================================================================

@dataclass(frozen=True)
class SimilarityBreakdown:
    lexical: float = 0.0
    syntactic: float = 0.0
    semantic: float = 0.0
    contextual: float = 0.0

    def score_for(self, axis: Axis) -> float:
        return getattr(self, axis.value)

    def dominant_axis(self) -> Axis:
        """Axis with the highest score; earlier axes win ties."""
        best = Axis.LEXICAL
        for axis in Axis:
            if self.score_for(axis) > self.score_for(best):
                best = axis
        return best

    def as_dict(self) -> Dict[str, float]:
        return {axis.value: self.score_for(axis) for axis in Axis}


@dataclass
class SimilarityResult:
    """Result of comparing two fingerprints (A = earlier, B = later)."""
    overall: float
    is_variant: bool
    breakdown: SimilarityBreakdown
    variant_type: Axis
    variant_tags: List[VariantTag] = field(default_factory=list)
    mutation_patterns: List[MutationPattern] = field(default_factory=list)
    findings: List[PatternFinding] = field(default_factory=list)
    details: Dict[str, Dict[str, float]] = field(default_factory=dict)
    degraded: List[str] = field(default_factory=list)
    cached: bool = False

    @property
    def variant_types(self) -> List[str]:
        """Threshold tags followed by the detected mutation patterns."""
        return [t.value for t in self.variant_tags] + [p.value for p in self.mutation_patterns]


# =============================================================================
# MUTATION DESCRIPTOR
# =============================================================================

# Pattern-derived mutation types and the finding each one requires.
_REQUIRED_FINDING = {
    MutationType.EMOTIONAL_AMPLIFICATION: MutationPattern.EMOTIONAL_AMPLIFICATION,
    MutationType.NUMERICAL_CHANGE: MutationPattern.NUMERICAL_MUTATION,
    MutationType.LOCATION_CHANGE: MutationPattern.LOCATION_MUTATION,
    MutationType.CONTENT_EXPANSION: MutationPattern.CONTENT_EXPANSION,
    MutationType.CONTENT_REDUCTION: MutationPattern.CONTENT_REDUCTION,
}

# Priority order when several patterns are present.
_PATTERN_PRIORITY = [
    MutationType.EMOTIONAL_AMPLIFICATION,
    MutationType.NUMERICAL_CHANGE,
    MutationType.LOCATION_CHANGE,
    MutationType.CONTENT_EXPANSION,
    MutationType.CONTENT_REDUCTION,
]

_AXIS_VARIANT = {
    Axis.LEXICAL: MutationType.LEXICAL_VARIANT,
    Axis.SYNTACTIC: MutationType.STRUCTURAL_VARIANT,
    Axis.SEMANTIC: MutationType.SEMANTIC_VARIANT,
    Axis.CONTEXTUAL: MutationType.CONTEXTUAL_VARIANT,
}


@dataclass(frozen=True)
class MutationDescriptor:
    """
    How a mutation node differs from its parent.

    Closed set of variants: pattern-derived types (emotional amplification,
    numerical/location change, content expansion/reduction) must carry the
    matching finding; axis-derived variant types and UNKNOWN carry none.
    """
    mutation_type: MutationType
    confidence: float
    similarity: SimilarityBreakdown = field(default_factory=SimilarityBreakdown)
    variant_type: Optional[Axis] = None
    findings: Tuple[PatternFinding, ...] = ()

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValidationError(f"confidence must be within [0, 1], got {self.confidence}")
        required = _REQUIRED_FINDING.get(self.mutation_type)
        if required is not None and required not in self.patterns:
            raise ValidationError(
                f"{self.mutation_type.value} descriptor requires a {required.value} finding"
            )

    @property
    def patterns(self) -> List[MutationPattern]:
        return [f.pattern for f in self.findings]

    def finding_for(self, pattern: MutationPattern) -> Optional[PatternFinding]:
        for finding in self.findings:
            if finding.pattern == pattern:
                return finding
        return None

    @classmethod
    def from_similarity(cls, result: SimilarityResult) -> "MutationDescriptor":
        """Resolve the descriptor for a winning similarity result."""
        present = set(result.mutation_patterns)
        mutation_type = _AXIS_VARIANT[result.variant_type]
        for candidate in _PATTERN_PRIORITY:
            if _REQUIRED_FINDING[candidate] in present:
                mutation_type = candidate
                break

        return cls(
            mutation_type=mutation_type,
            confidence=min(max(result.overall, 0.0), 1.0),
            similarity=result.breakdown,
            variant_type=result.variant_type,
            findings=tuple(result.findings),
        )

    @classmethod
    def unknown(cls) -> "MutationDescriptor":
        return cls(mutation_type=MutationType.UNKNOWN, confidence=0.0)


# =============================================================================
# GENEALOGY
# =============================================================================

@dataclass
class TreeNode:
    """
    One content variant inside a family.

    Immutable after creation except last_updated, descendant_count and
    children. children is a frozenset replaced in a single assignment, so a
    reader always sees either the old or the new set.
    """
    node_id: str
    family_id: str
    content: str
    fingerprint: ContentFingerprint
    kind: NodeKind
    generation: int
    depth: int
    parent_id: Optional[str] = None
    children: FrozenSet[str] = frozenset()
    mutation: Optional[MutationDescriptor] = None
    metadata: Dict[str, object] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)
    last_updated: datetime = field(default_factory=utcnow)
    descendant_count: int = 0

    @property
    def content_hash(self) -> str:
        return self.fingerprint.content_hash

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def mutation_type(self) -> Optional[MutationType]:
        return self.mutation.mutation_type if self.mutation else None


@dataclass
class FamilyMetrics:
    """Cached aggregate metrics for one family."""
    total_nodes: int = 1
    max_depth: int = 0
    total_edges: int = 0
    internal_nodes: int = 0
    leaf_count: int = 1
    stale: bool = False

    @property
    def average_branching_factor(self) -> float:
        """Mean children count over nodes that have children."""
        if self.internal_nodes == 0:
            return 0.0
        return self.total_edges / self.internal_nodes

    def as_dict(self) -> Dict[str, float]:
        return {
            "total_nodes": self.total_nodes,
            "max_depth": self.max_depth,
            "total_edges": self.total_edges,
            "leaf_count": self.leaf_count,
            "average_branching_factor": self.average_branching_factor,
        }


@dataclass
class FamilyTree:
    """One rooted tree of content variants descending from a seed claim."""
    family_id: str
    root_node_id: str
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    metrics: FamilyMetrics = field(default_factory=FamilyMetrics)
    levels: Dict[int, List[str]] = field(default_factory=dict)
    node_ids: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class PathEntry:
    """One step of an ancestry path."""
    node_id: str
    content: str
    kind: NodeKind
    generation: int
    depth: int
    mutation_type: Optional[MutationType]
    created_at: datetime


@dataclass(frozen=True)
class DescendantEntry(PathEntry):
    """A descendant with its parent and its distance from the query node."""
    parent_id: Optional[str] = None
    distance: int = 0


@dataclass(frozen=True)
class FamilySummary:
    family_id: str
    root_node_id: str
    root_content: str
    total_nodes: int
    max_depth: int
    created_at: datetime
    updated_at: datetime


class Relationship(Enum):
    ANCESTOR_DESCENDANT = "ancestor-descendant"
    SIBLINGS = "siblings"
    UNCLE_NEPHEW = "uncle-nephew"
    COUSINS = "cousins"


@dataclass
class CommonAncestorResult:
    found: bool
    ancestor: Optional[PathEntry] = None
    relationship: Optional[Relationship] = None
    distance_1: Optional[int] = None
    distance_2: Optional[int] = None
    all_common_ancestors: List[PathEntry] = field(default_factory=list)
    reason: Optional[str] = None


@dataclass(frozen=True)
class FamilyCreated:
    family_id: str
    root_node_id: str


@dataclass(frozen=True)
class MutationAdded:
    node_id: str
    family_id: str
    parent_node_id: str
    generation: int
    depth: int
