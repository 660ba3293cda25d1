"""
Visualization export and nested tree projection.

Colors and sizes are presentation hints for a hierarchical renderer; the
core attaches no meaning to them.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence

from ..types import FamilyMetrics, MutationType, NodeKind, TreeNode
from .analytics import GenealogyAnalysis

ORIGINAL_COLOR = "#ff4444"
DEFAULT_COLOR = "#888888"

MUTATION_COLORS: Dict[MutationType, str] = {
    MutationType.EMOTIONAL_AMPLIFICATION: "#ff6644",
    MutationType.NUMERICAL_CHANGE: "#8844ff",
    MutationType.LOCATION_CHANGE: "#44ff88",
    MutationType.CONTENT_EXPANSION: "#ffaa44",
    MutationType.CONTENT_REDUCTION: "#4488ff",
    MutationType.LEXICAL_VARIANT: "#ff8844",
    MutationType.STRUCTURAL_VARIANT: "#ffcc44",
    MutationType.SEMANTIC_VARIANT: "#ff4488",
    MutationType.CONTEXTUAL_VARIANT: "#44ccff",
}

DEFAULT_EDGE_WEIGHT = 0.5

LAYOUT_HINTS = {
    "type": "hierarchical",
    "direction": "top-down",
    "level_separation": 100,
    "node_separation": 80,
}


@dataclass
class VisualNode:
    id: str
    label: str
    kind: str
    generation: int
    depth: int
    children_count: int
    mutation_type: Optional[str]
    confidence: Optional[float]
    size: int
    color: str


@dataclass
class VisualEdge:
    source: str
    target: str
    weight: float
    kind: str = "mutation"


@dataclass
class Visualization:
    nodes: List[VisualNode] = field(default_factory=list)
    edges: List[VisualEdge] = field(default_factory=list)
    levels: Dict[int, List[str]] = field(default_factory=dict)
    layout_hints: Dict[str, object] = field(default_factory=lambda: dict(LAYOUT_HINTS))
    statistics: Dict[str, int] = field(default_factory=dict)

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class FamilyTreeView:
    """Read-only projection returned by GenealogyStore.get_family_tree()."""
    family_id: str
    root_node_id: str
    created_at: datetime
    updated_at: datetime
    metrics: FamilyMetrics
    tree: Dict[str, object]
    analysis: GenealogyAnalysis
    visualization: Visualization

    @property
    def node_count(self) -> int:
        return len(self.visualization.nodes)

    @property
    def edge_count(self) -> int:
        return len(self.visualization.edges)


# =============================================================================
# NODE PRESENTATION
# =============================================================================

def node_label(node: TreeNode) -> str:
    if node.kind == NodeKind.ORIGINAL:
        return "Original"
    mutation_type = node.mutation_type or MutationType.UNKNOWN
    return f"{mutation_type.value} (Gen {node.generation})"


def node_size(node: TreeNode) -> int:
    """Grows with children, shrinks with generation, never below 10."""
    return max(20 + min(len(node.children) * 5, 30) - node.generation * 2, 10)


def node_color(node: TreeNode) -> str:
    if node.kind == NodeKind.ORIGINAL:
        return ORIGINAL_COLOR
    return MUTATION_COLORS.get(node.mutation_type, DEFAULT_COLOR)


def edge_weight(child: TreeNode) -> float:
    if child.mutation is None:
        return DEFAULT_EDGE_WEIGHT
    return child.mutation.confidence


# =============================================================================
# BUILDERS
# =============================================================================

def build_visualization(nodes: Sequence[TreeNode]) -> Visualization:
    """nodes: BFS order from the root, as returned by a family snapshot."""
    by_id = {n.node_id: n for n in nodes}
    viz = Visualization()

    for node in nodes:
        viz.nodes.append(VisualNode(
            id=node.node_id,
            label=node_label(node),
            kind=node.kind.value,
            generation=node.generation,
            depth=node.depth,
            children_count=len(node.children),
            mutation_type=node.mutation_type.value if node.mutation_type else None,
            confidence=node.mutation.confidence if node.mutation else None,
            size=node_size(node),
            color=node_color(node),
        ))
        viz.levels.setdefault(node.depth, []).append(node.node_id)

        for child_id in sorted(node.children):
            child = by_id.get(child_id)
            if child is None:
                continue
            viz.edges.append(VisualEdge(
                source=node.node_id,
                target=child_id,
                weight=edge_weight(child),
            ))

    viz.statistics = {
        "total_nodes": len(viz.nodes),
        "total_edges": len(viz.edges),
        "max_depth": max((n.depth for n in viz.nodes), default=0),
        "leaf_nodes": sum(1 for n in viz.nodes if n.children_count == 0),
    }
    return viz


def build_tree(
    root: TreeNode,
    nodes_by_id: Mapping[str, TreeNode],
    children_of: Mapping[str, Sequence[str]],
    max_depth: int,
    include_content: bool = True,
) -> Dict[str, object]:
    """Nested dict rooted at root, truncated below max_depth."""

    def project(node: TreeNode) -> Dict[str, object]:
        entry: Dict[str, object] = {
            "node_id": node.node_id,
            "kind": node.kind.value,
            "generation": node.generation,
            "depth": node.depth,
            "mutation_type": node.mutation_type.value if node.mutation_type else None,
            "confidence": node.mutation.confidence if node.mutation else None,
            "descendant_count": node.descendant_count,
            "created_at": node.created_at.isoformat(),
        }
        if include_content:
            entry["content"] = node.content
        expand = node.depth < max_depth
        entry["truncated"] = bool(node.children) and not expand
        entry["children"] = [
            project(nodes_by_id[child_id])
            for child_id in children_of.get(node.node_id, ())
            if child_id in nodes_by_id
        ] if expand else []
        return entry

    return project(root)
