"""
Test: End-to-End Scenarios
==========================

Whole-system properties exercised through LineageService:

- symmetry and self-similarity of scores
- tree invariant and depth correctness over an ingested corpus
- idempotent reads, capacity enforcement
- exact duplicate, clear variant, unrelated content
- common ancestor, depth limit
"""

import itertools

import pytest

from lineage import (
    CapacityError,
    Decision,
    GenealogyStore,
    LineageService,
    Relationship,
    preprocess,
)


CORPUS = [
    "Turmeric can cure COVID-19 completely within 24 hours",
    "URGENT: Turmeric can cure COVID-19 completely within 24 hours!",
    "Turmeric can cure COVID-19 completely within 12 hours",
    "BREAKING: doctors confirm turmeric can cure COVID-19 within 24 hours in Mumbai",
    "Massive flood warning issued for Chennai, evacuation starts tonight",
    "Flood warning for Mumbai, evacuation starts tonight, share now!",
    "Bank scam alert: send money today to double your investment",
    "The weather today is sunny",
]


def walk_to_root(store, node_id):
    steps = 0
    node = store.get_node(node_id)
    while node.parent_id is not None:
        parent = store.get_node(node.parent_id)
        assert node.node_id in parent.children
        assert node.depth == parent.depth + 1
        node = parent
        steps += 1
    return node, steps


@pytest.fixture
def ingested(service):
    for text in CORPUS:
        service.ingest(text)
    return service


class TestScoreProperties:

    def test_symmetry(self, engine):
        for a, b in itertools.combinations(CORPUS, 2):
            fa, fb = preprocess(a), preprocess(b)
            engine.clear_cache()
            forward = engine.score(fa, fb).overall
            engine.clear_cache()
            backward = engine.score(fb, fa).overall
            assert forward == pytest.approx(backward)

    def test_self_similarity(self, engine):
        for text in CORPUS:
            fp = preprocess(text)
            assert engine.score(fp, fp).overall == pytest.approx(1.0)


class TestTreeProperties:

    def test_tree_invariant(self, ingested):
        store = ingested.store
        for summary in store.list_families():
            family_view = store.get_family_tree(summary.family_id)
            for vnode in family_view.visualization.nodes:
                root, steps = walk_to_root(store, vnode.id)
                assert root.node_id == summary.root_node_id
                assert steps <= ingested.settings.max_tree_depth
            assert store.verify_integrity(summary.family_id)

    def test_depth_correctness(self, ingested):
        store = ingested.store
        for summary in store.list_families():
            for vnode in store.generate_visualization(summary.family_id).nodes:
                node = store.get_node(vnode.id)
                expected = 0 if node.is_root else store.get_node(node.parent_id).depth + 1
                assert node.depth == expected
                assert node.generation == node.depth

    def test_idempotent_read(self, ingested):
        store = ingested.store
        for summary in store.list_families():
            first = store.get_family_tree(summary.family_id)
            second = store.get_family_tree(summary.family_id)
            assert first.node_count == second.node_count
            assert first.edge_count == second.edge_count
            assert first.metrics == second.metrics

    def test_capacity_enforcement(self, make_settings):
        store = GenealogyStore(make_settings(max_children_per_node=3))
        created = store.create_family("Seed claim about vaccines")
        for i in range(3):
            store.add_mutation(created.family_id, created.root_node_id, f"Variant number {i} of the claim")
        with pytest.raises(CapacityError):
            store.add_mutation(created.family_id, created.root_node_id, "One variant too many")


class TestScenarios:

    def test_exact_duplicate(self, service):
        text = "Turmeric can cure COVID-19 completely within 24 hours"
        first = service.ingest(text)
        decision = service.orchestrator.classify(text)
        assert decision.decision == Decision.DUPLICATE
        assert decision.matched_node_id == first.node_id
        assert decision.confidence == 1.0

    def test_clear_variant(self, service):
        service.ingest("Turmeric can cure COVID-19 completely within 24 hours")
        decision = service.orchestrator.classify(
            "URGENT: Turmeric can cure COVID-19 completely within 24 hours!"
        )
        assert decision.decision == Decision.ATTACH_AS_CHILD
        assert decision.confidence >= 0.45
        assert decision.mutation_type == "emotional_amplification"
        assert "EMOTIONAL_AMPLIFICATION" in decision.variant_types
        assert decision.variant_types[:len(decision.variant_tags)] == decision.variant_tags

    def test_unrelated_content(self, service):
        service.ingest("Turmeric can cure COVID-19 completely within 24 hours")
        decision = service.orchestrator.classify("The weather today is sunny")
        assert decision.decision == Decision.NEW_FAMILY

    def test_common_ancestor(self, store):
        a = store.create_family("Garlic water cures the flu overnight")
        fid = a.family_id
        b = store.add_mutation(fid, a.root_node_id, "Garlic water cures the flu in one night")
        c = store.add_mutation(fid, b.node_id, "Hot garlic water cures every flu in one night")
        d = store.add_mutation(fid, a.root_node_id, "Garlic tea cures the flu overnight")

        result = store.find_common_ancestor(c.node_id, d.node_id)
        assert result.ancestor.node_id == a.root_node_id
        assert result.relationship == Relationship.COUSINS

    def test_depth_limit(self, make_settings):
        service = LineageService(make_settings(max_tree_depth=2))
        store = service.store
        a = store.create_family("Garlic water cures the flu overnight")
        b = store.add_mutation(a.family_id, a.root_node_id, "Garlic water cures the flu in one night")
        with pytest.raises(CapacityError):
            store.add_mutation(a.family_id, b.node_id, "Hot garlic water cures every flu in one night")
