"""
LineageService - classify-then-apply glue over the core

The orchestrator only decides; this service applies the decision to the
store (create_family / add_mutation) and reports what happened. It is the
single entry point collaborators (HTTP handlers, workers, CLI) should use
to ingest content.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from .errors import DuplicateContentError
from .orchestrator import ClassifyHints, Decision, MutationOrchestrator, OrchestratorDecision
from .settings import LineageSettings, get_settings
from .similarity import SimilarityEngine
from .store import GenealogyStore

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    """Outcome of ingesting one piece of content"""
    decision: OrchestratorDecision
    family_id: str
    node_id: str
    created_family: bool = False
    generation: int = 0
    depth: int = 0

    @property
    def stored(self) -> bool:
        return self.decision.decision != Decision.DUPLICATE


class LineageService:
    """Owns a store, an engine and an orchestrator sharing one settings object."""

    def __init__(
        self,
        settings: Optional[LineageSettings] = None,
        store: Optional[GenealogyStore] = None,
        engine: Optional[SimilarityEngine] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store or GenealogyStore(self.settings)
        self.engine = engine or SimilarityEngine(self.settings)
        self.orchestrator = MutationOrchestrator(self.store, self.engine, self.settings)

    def ingest(self, content: str, hints: Optional[ClassifyHints] = None) -> IngestResult:
        """
        Classify content and record it.

        Raises:
            ValidationError: content is empty, not text, or oversized
            CapacityError: the chosen parent is at its depth or child limit
        """
        decision = self.orchestrator.classify(content, hints)
        metadata = hints.as_metadata() if hints else {}

        if decision.decision == Decision.DUPLICATE:
            return IngestResult(
                decision=decision,
                family_id=decision.family_id,
                node_id=decision.matched_node_id,
            )

        if decision.decision == Decision.ATTACH_AS_CHILD:
            try:
                added = self.store.add_mutation(
                    decision.family_id,
                    decision.parent_node_id,
                    content,
                    decision.mutation,
                    metadata=metadata,
                )
            except DuplicateContentError as e:
                # A concurrent writer stored the same content first
                logger.info(f"Lost insert race, {e.existing_node_id} already holds this content")
                return IngestResult(
                    decision=decision.model_copy(update={
                        "decision": Decision.DUPLICATE,
                        "confidence": 1.0,
                        "matched_node_id": e.existing_node_id,
                    }),
                    family_id=decision.family_id,
                    node_id=e.existing_node_id,
                )
            return IngestResult(
                decision=decision,
                family_id=added.family_id,
                node_id=added.node_id,
                generation=added.generation,
                depth=added.depth,
            )

        created = self.store.create_family(content, metadata=metadata)
        return IngestResult(
            decision=decision,
            family_id=created.family_id,
            node_id=created.root_node_id,
            created_family=True,
        )
