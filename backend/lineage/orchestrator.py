"""
Mutation Orchestrator
=====================

Decides where new content belongs without touching the store:

    duplicate      - normalized content already stored (confidence 1.0)
    attachAsChild  - best candidate scores >= similarity_threshold
    newFamily      - nothing close enough

Candidates come from the store's fingerprint index (shared tokens or the
same semantic bucket), capped at max_candidates. The best overall score
wins; ties keep the earlier-ranked candidate.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .preprocessing import validate_content
from .settings import LineageSettings, get_settings
from .similarity import SimilarityEngine
from .store import GenealogyStore
from .types import MutationDescriptor, SimilarityResult, TreeNode

logger = logging.getLogger(__name__)


class Decision(str, Enum):
    ATTACH_AS_CHILD = "attachAsChild"
    NEW_FAMILY = "newFamily"
    DUPLICATE = "duplicate"


class ClassifyHints(BaseModel):
    """Optional provenance supplied by the caller"""
    source: Optional[str] = None
    user_id: Optional[str] = None
    timestamp_hint: Optional[datetime] = None

    def as_metadata(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class OrchestratorDecision(BaseModel):
    """Classification outcome for one piece of content"""
    decision: Decision
    confidence: float = Field(ge=0.0, le=1.0)
    family_id: Optional[str] = None
    parent_node_id: Optional[str] = None
    matched_node_id: Optional[str] = None
    similarity_breakdown: Dict[str, float] = {}
    variant_type: Optional[str] = None
    variant_tags: List[str] = []
    variant_types: List[str] = []
    mutation_patterns: List[str] = []
    mutation_type: Optional[str] = None
    candidates_considered: int = 0

    # Resolved descriptor for attachAsChild; internal, not part of the dump
    mutation: Optional[MutationDescriptor] = Field(default=None, exclude=True)


class MutationOrchestrator:
    """Read-only classifier over a GenealogyStore."""

    def __init__(
        self,
        store: GenealogyStore,
        engine: Optional[SimilarityEngine] = None,
        settings: Optional[LineageSettings] = None,
    ):
        self.store = store
        self.settings = settings or store.settings or get_settings()
        self.engine = engine or SimilarityEngine(self.settings)

    def classify(self, content: str, hints: Optional[ClassifyHints] = None) -> OrchestratorDecision:
        """
        Classify content against every stored family.

        Raises:
            ValidationError: content is empty, not text, or oversized
        """
        validate_content(content, self.settings.max_content_length)
        fingerprint = self.engine.fingerprint(content)
        source = hints.source if hints and hints.source else "unknown"

        existing = self.store.find_nodes_by_hash(fingerprint.content_hash)
        if existing:
            match = existing[0]
            logger.info(f"Duplicate of {match.node_id} in {match.family_id} (source={source})")
            return OrchestratorDecision(
                decision=Decision.DUPLICATE,
                confidence=1.0,
                family_id=match.family_id,
                matched_node_id=match.node_id,
            )

        candidates = self.store.candidate_nodes(fingerprint, self.settings.max_candidates)

        best_node: Optional[TreeNode] = None
        best_result: Optional[SimilarityResult] = None
        for candidate in candidates:
            result = self.engine.score(candidate.fingerprint, fingerprint)
            if best_result is None or result.overall > best_result.overall:
                best_node, best_result = candidate, result

        if best_result is not None and best_result.is_variant:
            descriptor = MutationDescriptor.from_similarity(best_result)
            logger.info(
                f"Attach to {best_node.node_id} in {best_node.family_id} "
                f"(overall={best_result.overall:.3f}, type={descriptor.mutation_type.value}, source={source})"
            )
            return OrchestratorDecision(
                decision=Decision.ATTACH_AS_CHILD,
                confidence=descriptor.confidence,
                family_id=best_node.family_id,
                parent_node_id=best_node.node_id,
                matched_node_id=best_node.node_id,
                similarity_breakdown=best_result.breakdown.as_dict(),
                variant_type=best_result.variant_type.value,
                variant_tags=[t.value for t in best_result.variant_tags],
                variant_types=best_result.variant_types,
                mutation_patterns=[p.value for p in best_result.mutation_patterns],
                mutation_type=descriptor.mutation_type.value,
                candidates_considered=len(candidates),
                mutation=descriptor,
            )

        best_score = best_result.overall if best_result is not None else 0.0
        logger.info(
            f"New family (best={best_score:.3f} over {len(candidates)} candidates, source={source})"
        )
        return OrchestratorDecision(
            decision=Decision.NEW_FAMILY,
            confidence=min(max(1.0 - best_score, 0.0), 1.0),
            matched_node_id=best_node.node_id if best_node else None,
            similarity_breakdown=best_result.breakdown.as_dict() if best_result else {},
            candidates_considered=len(candidates),
        )
