"""
Family Analytics
================

Read-only aggregate reports over a snapshot of one family:

- analyze_mutation_patterns(): type/generation/branching/temporal statistics
  plus threshold-triggered evolution insights
- analyze_genealogy(): shape summary embedded in get_family_tree()

All functions take the node list (BFS order from the root) and the
family's current metrics; nothing here touches the store.
"""

import math
from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, Sequence

from ..settings import LineageSettings
from ..types import FamilyMetrics, MutationType, NodeKind, TreeNode


# =============================================================================
# REPORT TYPES
# =============================================================================

@dataclass
class EvolutionInsight:
    kind: str           # rapid_evolution | viral_spread | high_diversity
    message: str
    severity: str       # high | medium


@dataclass
class TypeStats:
    count: int
    average_generation: float
    average_confidence: float


@dataclass
class BranchingStats:
    average_branching_factor: float
    max_branching_factor: int
    distribution: Dict[int, int]
    leaf_ratio: float


@dataclass
class TemporalStats:
    timespan_seconds: float = 0.0
    average_interval_seconds: float = 0.0
    mutations_per_hour: float = 0.0
    by_hour: Dict[int, int] = field(default_factory=dict)
    peak_hour: Optional[int] = None


@dataclass
class MutationPatternReport:
    family_id: str
    total_mutations: int
    type_distribution: Dict[str, TypeStats]
    generation_distribution: Dict[int, int]
    peak_generation: Optional[int]
    generation_spread: int
    branching: BranchingStats
    temporal: TemporalStats
    insights: List[EvolutionInsight]

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class LevelSpread:
    level: int
    node_count: int
    cumulative_nodes: int


@dataclass
class GenealogyAnalysis:
    total_generations: int
    mutation_density: float
    average_children_per_node: float
    evolution_complexity: float
    dominant_mutation_types: List[Dict[str, object]]
    spread_by_level: List[LevelSpread]
    peak_spread_level: Optional[int]
    spread_velocity: float

    def as_dict(self) -> dict:
        return asdict(self)


# =============================================================================
# MUTATION PATTERN REPORT
# =============================================================================

def _type_label(node: TreeNode) -> str:
    mutation_type = node.mutation_type or MutationType.UNKNOWN
    return mutation_type.value


def analyze_mutation_patterns(
    family_id: str,
    nodes: Sequence[TreeNode],
    metrics: FamilyMetrics,
    settings: LineageSettings,
) -> MutationPatternReport:
    mutations = [n for n in nodes if n.kind == NodeKind.MUTATION]

    generation_distribution = dict(sorted(Counter(n.generation for n in mutations).items()))
    peak_generation = None
    if generation_distribution:
        # Earliest generation wins ties
        peak_generation = max(generation_distribution, key=lambda g: (generation_distribution[g], -g))
    generation_spread = (
        max(generation_distribution) - min(generation_distribution)
        if generation_distribution else 0
    )

    return MutationPatternReport(
        family_id=family_id,
        total_mutations=len(mutations),
        type_distribution=_type_distribution(mutations),
        generation_distribution=generation_distribution,
        peak_generation=peak_generation,
        generation_spread=generation_spread,
        branching=_branching_stats(nodes, metrics),
        temporal=_temporal_stats(mutations),
        insights=evolution_insights(mutations, metrics, settings),
    )


def _type_distribution(mutations: Sequence[TreeNode]) -> Dict[str, TypeStats]:
    grouped: Dict[str, List[TreeNode]] = {}
    for node in mutations:
        grouped.setdefault(_type_label(node), []).append(node)

    return {
        label: TypeStats(
            count=len(group),
            average_generation=sum(n.generation for n in group) / len(group),
            average_confidence=sum(
                n.mutation.confidence if n.mutation else 0.0 for n in group
            ) / len(group),
        )
        for label, group in grouped.items()
    }


def _branching_stats(nodes: Sequence[TreeNode], metrics: FamilyMetrics) -> BranchingStats:
    child_counts = [len(n.children) for n in nodes]
    return BranchingStats(
        average_branching_factor=metrics.average_branching_factor,
        max_branching_factor=max(child_counts, default=0),
        distribution=dict(sorted(Counter(child_counts).items())),
        leaf_ratio=metrics.leaf_count / metrics.total_nodes if metrics.total_nodes else 0.0,
    )


def _temporal_stats(mutations: Sequence[TreeNode]) -> TemporalStats:
    timestamps = sorted(n.created_at for n in mutations)
    if len(timestamps) < 2:
        return TemporalStats()

    timespan = (timestamps[-1] - timestamps[0]).total_seconds()
    intervals = [
        (later - earlier).total_seconds()
        for earlier, later in zip(timestamps, timestamps[1:])
    ]
    by_hour = dict(sorted(Counter(ts.hour for ts in timestamps).items()))
    peak_hour = max(by_hour, key=lambda h: (by_hour[h], -h))

    return TemporalStats(
        timespan_seconds=timespan,
        average_interval_seconds=sum(intervals) / len(intervals),
        mutations_per_hour=len(mutations) / (timespan / 3600) if timespan > 0 else 0.0,
        by_hour=by_hour,
        peak_hour=peak_hour,
    )


def evolution_insights(
    mutations: Sequence[TreeNode],
    metrics: FamilyMetrics,
    settings: LineageSettings,
) -> List[EvolutionInsight]:
    insights = []

    if metrics.max_depth > settings.insight_depth_threshold:
        insights.append(EvolutionInsight(
            kind="rapid_evolution",
            message=f"Evolved through {metrics.max_depth + 1} generations",
            severity="high",
        ))

    branching = metrics.average_branching_factor
    if branching > settings.insight_branching_threshold:
        insights.append(EvolutionInsight(
            kind="viral_spread",
            message=f"High branching factor ({branching:.1f}) indicates viral spread",
            severity="high",
        ))

    unique_types = len({_type_label(n) for n in mutations})
    if unique_types > settings.insight_diversity_threshold:
        insights.append(EvolutionInsight(
            kind="high_diversity",
            message=f"{unique_types} different mutation types detected",
            severity="medium",
        ))

    return insights


# =============================================================================
# GENEALOGY ANALYSIS (embedded in the tree view)
# =============================================================================

def analyze_genealogy(
    nodes: Sequence[TreeNode],
    metrics: FamilyMetrics,
) -> GenealogyAnalysis:
    mutations = [n for n in nodes if n.kind == NodeKind.MUTATION]
    spread = _spread_by_level(nodes)

    peak_level = None
    if spread:
        peak_level = max(spread, key=lambda s: (s.node_count, -s.level)).level

    return GenealogyAnalysis(
        total_generations=metrics.max_depth + 1,
        mutation_density=len(mutations) / len(nodes) if nodes else 0.0,
        average_children_per_node=metrics.average_branching_factor,
        evolution_complexity=evolution_complexity(metrics),
        dominant_mutation_types=_dominant_types(mutations),
        spread_by_level=spread,
        peak_spread_level=peak_level,
        spread_velocity=_spread_velocity(spread),
    )


def evolution_complexity(metrics: FamilyMetrics) -> float:
    """Weighted depth, branching and log-size score, capped at 10."""
    score = (
        metrics.max_depth * 0.3
        + metrics.average_branching_factor * 0.4
        + math.log(max(metrics.total_nodes, 1)) * 0.3
    )
    return min(score, 10.0)


def _dominant_types(mutations: Sequence[TreeNode], top: int = 3) -> List[Dict[str, object]]:
    counts = Counter(_type_label(n) for n in mutations)
    return [
        {"type": label, "count": count, "percentage": count / len(mutations) * 100}
        for label, count in counts.most_common(top)
    ]


def _spread_by_level(nodes: Sequence[TreeNode]) -> List[LevelSpread]:
    per_level = Counter(n.depth for n in nodes)
    spread = []
    cumulative = 0
    for level in sorted(per_level):
        cumulative += per_level[level]
        spread.append(LevelSpread(level=level, node_count=per_level[level], cumulative_nodes=cumulative))
    return spread


def _spread_velocity(spread: Sequence[LevelSpread]) -> float:
    """Mean change in node count between consecutive levels."""
    if len(spread) < 2:
        return 0.0
    deltas = [b.node_count - a.node_count for a, b in zip(spread, spread[1:])]
    return sum(deltas) / len(deltas)
