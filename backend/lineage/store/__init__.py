"""Genealogy store: family trees, ancestry queries, analytics and visualization export."""

from .analytics import (
    EvolutionInsight,
    GenealogyAnalysis,
    MutationPatternReport,
)
from .store import GenealogyStore
from .visualization import FamilyTreeView, VisualEdge, VisualNode, Visualization

__all__ = [
    'GenealogyStore',
    'FamilyTreeView',
    'Visualization', 'VisualNode', 'VisualEdge',
    'MutationPatternReport', 'EvolutionInsight', 'GenealogyAnalysis',
]
