from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, model_validator
from functools import lru_cache
from typing import Dict, Optional


class LineageSettings(BaseSettings):
    """
    Lineage core settings loaded from environment variables.

    Every field can be overridden with a LINEAGE_-prefixed variable, e.g.
    LINEAGE_SIMILARITY_THRESHOLD=0.5 or LINEAGE_MAX_TREE_DEPTH=10, or from
    a .env file.
    """

    # Similarity engine
    similarity_threshold: float = 0.45
    lexical_weight: float = 0.4
    syntactic_weight: float = 0.3
    semantic_weight: float = 0.2
    contextual_weight: float = 0.1
    similarity_cache_size: int = 10000
    similarity_cache_ttl: Optional[int] = None  # seconds; None keeps entries until evicted

    # Preprocessing
    min_ngram_size: int = 2
    max_ngram_size: int = 3
    max_content_length: int = 10000

    # Genealogy store
    max_tree_depth: int = 15
    max_children_per_node: int = 50

    # Orchestrator
    max_candidates: int = 200

    # Evolution insight thresholds
    insight_depth_threshold: int = 5
    insight_branching_threshold: float = 3.0
    insight_diversity_threshold: int = 4

    model_config = SettingsConfigDict(
        env_prefix="LINEAGE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator('similarity_threshold')
    @classmethod
    def check_threshold(cls, v):
        if not 0.0 <= v <= 1.0:
            raise ValueError("similarity_threshold must be within [0, 1]")
        return v

    @field_validator(
        'max_tree_depth', 'max_children_per_node', 'max_candidates',
        'similarity_cache_size', 'max_content_length', 'min_ngram_size',
    )
    @classmethod
    def check_positive(cls, v):
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator('similarity_cache_ttl')
    @classmethod
    def check_ttl(cls, v):
        if v is not None and v < 1:
            raise ValueError("similarity_cache_ttl must be at least 1 second")
        return v

    @model_validator(mode='after')
    def check_weights_and_ngrams(self):
        """Axis weights must sum to 1 and the n-gram range must be ordered."""
        total = sum(self.weights.values())
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"axis weights must sum to 1.0, got {total:.4f}")
        if self.max_ngram_size < self.min_ngram_size:
            raise ValueError("max_ngram_size must be >= min_ngram_size")
        return self

    @property
    def weights(self) -> Dict[str, float]:
        return {
            "lexical": self.lexical_weight,
            "syntactic": self.syntactic_weight,
            "semantic": self.semantic_weight,
            "contextual": self.contextual_weight,
        }


@lru_cache()
def get_settings() -> LineageSettings:
    """Get cached settings instance"""
    return LineageSettings()
