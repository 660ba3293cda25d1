"""
Misinformation Lineage Core
===========================

Tracks how a piece of misinformation evolves as it is re-shared,
paraphrased, exaggerated or relocated.

ARCHITECTURE:
    text → preprocess()          → ContentFingerprint
         → SimilarityEngine      → SimilarityResult (4 axes, tags, patterns)
         → MutationOrchestrator  → OrchestratorDecision (never writes)
         → GenealogyStore        → families of TreeNodes (only mutable state)

    LineageService wires the four together: classify, then apply.

PUBLIC API:
- preprocess, validate_content, content_hash: Text → fingerprint
- SimilarityEngine: score / compare_texts / find_variants / cluster_similar_texts
- GenealogyStore: create_family / add_mutation / tree queries / analytics
- MutationOrchestrator, ClassifyHints, OrchestratorDecision
- LineageService, IngestResult
- LineageSettings, get_settings: LINEAGE_* environment configuration
- LineageError and subclasses
"""

from .errors import (
    CapacityError,
    ChildLimitExceededError,
    DepthLimitExceededError,
    DuplicateContentError,
    DuplicateError,
    FamilyNotFoundError,
    InternalInvariantError,
    LineageError,
    NodeNotFoundError,
    NotFoundError,
    ParentNotFoundError,
    ValidationError,
)
from .orchestrator import ClassifyHints, Decision, MutationOrchestrator, OrchestratorDecision
from .preprocessing import content_hash, preprocess, semantic_signature, validate_content
from .service import IngestResult, LineageService
from .settings import LineageSettings, get_settings
from .similarity import SimilarityEngine
from .store import GenealogyStore
from .types import (
    Axis,
    CommonAncestorResult,
    ContentFingerprint,
    MutationDescriptor,
    MutationPattern,
    MutationType,
    NodeKind,
    Relationship,
    SimilarityBreakdown,
    SimilarityResult,
    TreeNode,
    VariantTag,
)

__all__ = [
    # Errors
    'LineageError', 'ValidationError',
    'NotFoundError', 'FamilyNotFoundError', 'NodeNotFoundError', 'ParentNotFoundError',
    'CapacityError', 'DepthLimitExceededError', 'ChildLimitExceededError',
    'DuplicateError', 'DuplicateContentError', 'InternalInvariantError',

    # Preprocessing
    'preprocess', 'validate_content', 'content_hash', 'semantic_signature',

    # Components
    'SimilarityEngine', 'GenealogyStore', 'MutationOrchestrator', 'LineageService',
    'ClassifyHints', 'OrchestratorDecision', 'Decision', 'IngestResult',

    # Config
    'LineageSettings', 'get_settings',

    # Types
    'ContentFingerprint', 'SimilarityResult', 'SimilarityBreakdown',
    'MutationDescriptor', 'TreeNode', 'CommonAncestorResult',
    'Axis', 'VariantTag', 'MutationPattern', 'MutationType', 'NodeKind', 'Relationship',
]
