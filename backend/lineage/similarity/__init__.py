"""Four-axis text similarity, variant tags and mutation pattern detection."""

from .cache import SimilarityCache, pair_key
from .engine import SimilarityEngine, TextCluster, VariantMatch
from .patterns import detect_mutations, variant_tags

__all__ = [
    'SimilarityEngine', 'SimilarityCache', 'pair_key',
    'VariantMatch', 'TextCluster',
    'detect_mutations', 'variant_tags',
]
