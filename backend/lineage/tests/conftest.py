"""
Pytest configuration for lineage tests.
"""

import pytest

from lineage import (
    GenealogyStore,
    LineageService,
    LineageSettings,
    MutationOrchestrator,
    SimilarityEngine,
)


@pytest.fixture
def make_settings():
    """Settings factory that ignores any local .env file."""
    def _make(**overrides):
        return LineageSettings(_env_file=None, **overrides)
    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
def engine(settings):
    return SimilarityEngine(settings)


@pytest.fixture
def store(settings):
    return GenealogyStore(settings)


@pytest.fixture
def orchestrator(store, engine, settings):
    return MutationOrchestrator(store, engine, settings)


@pytest.fixture
def service(settings):
    return LineageService(settings)


@pytest.fixture
def family(store):
    """
    A -> B -> C
    A -> D
    """
    created = store.create_family("Garlic water cures the flu overnight")
    a = created.root_node_id
    b = store.add_mutation(created.family_id, a, "Garlic water cures the flu in one night").node_id
    c = store.add_mutation(created.family_id, b, "Hot garlic water cures every flu in one night").node_id
    d = store.add_mutation(created.family_id, a, "Garlic tea cures the flu overnight, doctors say").node_id
    return {"family_id": created.family_id, "A": a, "B": b, "C": c, "D": d}
