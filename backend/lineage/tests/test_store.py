"""
Test: Genealogy Store
=====================

Family creation, insertion checks and atomicity, ancestry / descendant /
common-ancestor queries, metrics, analytics and visualization.

The `family` fixture builds:

    A -> B -> C
    A -> D
"""

from dataclasses import replace

import pytest

from lineage import (
    CapacityError,
    ChildLimitExceededError,
    DepthLimitExceededError,
    DuplicateContentError,
    FamilyNotFoundError,
    InternalInvariantError,
    GenealogyStore,
    MutationDescriptor,
    MutationType,
    NodeKind,
    NodeNotFoundError,
    ParentNotFoundError,
    Relationship,
    ValidationError,
    content_hash,
)
from lineage.types import NumericalChange


def node_count(store):
    return sum(s.total_nodes for s in store.list_families())


class TestCreateFamily:

    def test_root_node(self, store):
        created = store.create_family("Garlic water cures the flu", metadata={"source": "tg"})
        root = store.get_node(created.root_node_id)

        assert root.kind == NodeKind.ORIGINAL
        assert root.generation == 0 and root.depth == 0
        assert root.parent_id is None
        assert root.children == frozenset()
        assert root.mutation is None
        assert root.metadata == {"source": "tg"}
        assert root.family_id == created.family_id

    def test_ids_are_unique(self, store):
        first = store.create_family("claim one about vaccines")
        second = store.create_family("claim one about vaccines")
        assert first.family_id != second.family_id
        assert first.root_node_id != second.root_node_id

    def test_rejects_empty_seed(self, store):
        with pytest.raises(ValidationError):
            store.create_family("   ")
        assert store.list_families() == []

    def test_hash_index(self, store):
        created = store.create_family("Garlic water cures the flu!")
        matches = store.find_nodes_by_hash(content_hash("garlic water cures the flu"))
        assert [n.node_id for n in matches] == [created.root_node_id]


class TestAddMutation:

    def test_child_fields(self, store, family):
        c = store.get_node(family["C"])
        assert c.kind == NodeKind.MUTATION
        assert c.parent_id == family["B"]
        assert c.generation == 2 and c.depth == 2
        assert c.mutation_type == MutationType.UNKNOWN

    def test_parent_children_and_index_agree(self, store, family):
        a = store.get_node(family["A"])
        assert a.children == frozenset({family["B"], family["D"]})
        assert store.verify_integrity(family["family_id"])

    def test_descendant_counts(self, store, family):
        assert store.get_node(family["A"]).descendant_count == 3
        assert store.get_node(family["B"]).descendant_count == 1
        assert store.get_node(family["C"]).descendant_count == 0

    def test_descriptor_is_stored(self, store, family):
        descriptor = MutationDescriptor(
            mutation_type=MutationType.NUMERICAL_CHANGE,
            confidence=0.7,
            findings=(NumericalChange(before=("1",), after=("2",)),),
        )
        added = store.add_mutation(family["family_id"], family["D"], "Garlic tea cures 2 flus", descriptor)
        node = store.get_node(added.node_id)
        assert node.mutation is descriptor
        assert added.generation == 2 and added.depth == 2

    def test_unknown_family(self, store):
        with pytest.raises(FamilyNotFoundError):
            store.add_mutation("fam_missing", "node_missing", "some text here")

    def test_unknown_parent(self, store, family):
        with pytest.raises(ParentNotFoundError):
            store.add_mutation(family["family_id"], "node_missing", "some text here")

    def test_parent_from_another_family(self, store, family):
        other = store.create_family("Another unrelated claim about banks")
        with pytest.raises(ParentNotFoundError):
            store.add_mutation(family["family_id"], other.root_node_id, "some text here")

    def test_rejects_empty_content(self, store, family):
        with pytest.raises(ValidationError):
            store.add_mutation(family["family_id"], family["A"], "")


class TestCapacity:

    def test_child_limit(self, make_settings):
        store = GenealogyStore(make_settings(max_children_per_node=2))
        created = store.create_family("root claim about flood relief")
        fid, root = created.family_id, created.root_node_id

        store.add_mutation(fid, root, "first child claim")
        store.add_mutation(fid, root, "second child claim")
        with pytest.raises(ChildLimitExceededError):
            store.add_mutation(fid, root, "third child claim")

    def test_failed_insert_leaves_no_trace(self, make_settings):
        store = GenealogyStore(make_settings(max_children_per_node=1))
        created = store.create_family("root claim about flood relief")
        fid, root = created.family_id, created.root_node_id
        store.add_mutation(fid, root, "first child claim")

        with pytest.raises(CapacityError):
            store.add_mutation(fid, root, "rejected child claim")

        assert len(store.get_node(root).children) == 1
        assert store.find_nodes_by_hash(content_hash("rejected child claim")) == []
        assert store.get_metrics(fid).total_nodes == 2
        assert store.verify_integrity(fid)

    def test_depth_limit(self, make_settings):
        store = GenealogyStore(make_settings(max_tree_depth=2))
        created = store.create_family("root claim about flood relief")
        child = store.add_mutation(created.family_id, created.root_node_id, "second generation")

        with pytest.raises(DepthLimitExceededError):
            store.add_mutation(created.family_id, child.node_id, "third generation")
        assert store.get_metrics(created.family_id).max_depth == 1


class TestDuplicates:

    def test_same_content_under_same_parent(self, store, family):
        with pytest.raises(DuplicateContentError) as exc:
            store.add_mutation(family["family_id"], family["A"], "garlic water cures the flu in one night!!")
        assert exc.value.existing_node_id == family["B"]

    def test_same_content_under_other_parent_is_allowed(self, store, family):
        added = store.add_mutation(
            family["family_id"], family["D"], "Garlic water cures the flu in one night"
        )
        matches = store.find_nodes_by_hash(content_hash("Garlic water cures the flu in one night"))
        assert [n.node_id for n in matches] == [family["B"], added.node_id]


class TestAncestry:

    def test_path_runs_node_to_root(self, store, family):
        path = store.get_ancestry_path(family["C"])
        assert [p.node_id for p in path] == [family["C"], family["B"], family["A"]]
        assert path[-1].kind == NodeKind.ORIGINAL

    def test_unknown_node_has_empty_path(self, store):
        assert store.get_ancestry_path("node_missing") == []

    def test_path_is_memoized_and_stable(self, store, family):
        first = store.get_ancestry_path(family["C"])
        second = store.get_ancestry_path(family["C"])
        assert first == second
        first.clear()
        assert len(store.get_ancestry_path(family["C"])) == 3

    def test_new_child_path(self, store, family):
        store.get_ancestry_path(family["C"])
        added = store.add_mutation(family["family_id"], family["C"], "Boiling garlic water cures all flu")
        path = store.get_ancestry_path(added.node_id)
        assert [p.node_id for p in path] == [added.node_id, family["C"], family["B"], family["A"]]


class TestDescendants:

    def test_bfs_order_and_distance(self, store, family):
        found = store.get_descendants(family["A"])
        assert [d.node_id for d in found] == [family["B"], family["D"], family["C"]]
        assert [d.distance for d in found] == [1, 1, 2]
        assert found[2].parent_id == family["B"]

    def test_max_depth(self, store, family):
        found = store.get_descendants(family["A"], max_depth=1)
        assert [d.node_id for d in found] == [family["B"], family["D"]]

    def test_filter_by_kind(self, store, family):
        assert len(store.get_descendants(family["A"], filter_by_type=NodeKind.MUTATION)) == 3
        assert store.get_descendants(family["A"], filter_by_type=NodeKind.ORIGINAL) == []

    def test_filter_by_mutation_type(self, store, family):
        descriptor = MutationDescriptor(mutation_type=MutationType.LEXICAL_VARIANT, confidence=0.9)
        added = store.add_mutation(family["family_id"], family["D"], "Garlic tea heals the flu overnight", descriptor)
        found = store.get_descendants(family["A"], filter_by_type=MutationType.LEXICAL_VARIANT)
        assert [d.node_id for d in found] == [added.node_id]

    def test_leaf_has_no_descendants(self, store, family):
        assert store.get_descendants(family["C"]) == []

    def test_unknown_node(self, store):
        with pytest.raises(NodeNotFoundError):
            store.get_descendants("node_missing")


class TestCommonAncestor:

    def test_cousins(self, store, family):
        result = store.find_common_ancestor(family["C"], family["D"])
        assert result.found
        assert result.ancestor.node_id == family["A"]
        assert result.relationship == Relationship.COUSINS
        assert (result.distance_1, result.distance_2) == (2, 1)

    def test_siblings(self, store, family):
        result = store.find_common_ancestor(family["B"], family["D"])
        assert result.relationship == Relationship.SIBLINGS

    def test_ancestor_descendant(self, store, family):
        result = store.find_common_ancestor(family["B"], family["C"])
        assert result.ancestor.node_id == family["B"]
        assert result.relationship == Relationship.ANCESTOR_DESCENDANT
        assert [a.node_id for a in result.all_common_ancestors] == [family["B"], family["A"]]

    def test_uncle_nephew(self, store, family):
        fid = family["family_id"]
        e = store.add_mutation(fid, family["B"], "Garlic water cures the flu in one night, trust me").node_id
        f = store.add_mutation(fid, family["C"], "Hot garlic water cures every flu in one single night").node_id
        result = store.find_common_ancestor(e, f)
        assert result.ancestor.node_id == family["B"]
        assert result.relationship == Relationship.UNCLE_NEPHEW
        assert (result.distance_1, result.distance_2) == (1, 2)

    def test_different_families(self, store, family):
        other = store.create_family("Another unrelated claim about banks")
        result = store.find_common_ancestor(family["A"], other.root_node_id)
        assert not result.found
        assert result.reason == "different_families"

    def test_unknown_node(self, store, family):
        with pytest.raises(NodeNotFoundError):
            store.find_common_ancestor(family["A"], "node_missing")


class TestMetrics:

    def test_incremental_metrics(self, store, family):
        metrics = store.get_metrics(family["family_id"])
        assert metrics.total_nodes == 4
        assert metrics.total_edges == 3
        assert metrics.max_depth == 2
        assert metrics.leaf_count == 2
        assert metrics.average_branching_factor == pytest.approx(1.5)

    def test_recompute_when_stale(self, store, family):
        before = store.get_metrics(family["family_id"]).as_dict()
        store.invalidate_metrics(family["family_id"])
        after = store.get_metrics(family["family_id"])
        assert not after.stale
        assert after.as_dict() == before

    def test_append_publishes_new_metrics(self, store, family):
        before = store.get_metrics(family["family_id"])
        snapshot = before.as_dict()
        store.add_mutation(family["family_id"], family["C"], "Hot garlic water cures every flu by morning")

        after = store.get_metrics(family["family_id"])
        assert after is not before
        assert before.as_dict() == snapshot
        assert after.total_nodes == 5 and after.max_depth == 3
        assert after.leaf_count == 2 and after.internal_nodes == 3

    def test_unknown_family(self, store):
        with pytest.raises(FamilyNotFoundError):
            store.get_metrics("fam_missing")

    def test_genealogy_metrics(self, store, family):
        store.create_family("Another unrelated claim about banks")
        totals = store.get_genealogy_metrics()
        assert totals["total_families"] == 2
        assert totals["total_nodes"] == 5
        assert totals["max_depth"] == 2
        assert totals["most_mutated_family"] == family["family_id"]

    def test_empty_store_metrics(self, store):
        assert store.get_genealogy_metrics()["total_families"] == 0


class TestFamilyTree:

    def test_nested_tree(self, store, family):
        view = store.get_family_tree(family["family_id"])
        tree = view.tree
        assert tree["node_id"] == family["A"]
        assert [c["node_id"] for c in tree["children"]] == [family["B"], family["D"]]
        assert tree["children"][0]["children"][0]["node_id"] == family["C"]
        assert tree["content"] == "Garlic water cures the flu overnight"

    def test_max_depth_truncates(self, store, family):
        tree = store.get_family_tree(family["family_id"], max_depth=1).tree
        b = tree["children"][0]
        assert b["children"] == []
        assert b["truncated"] is True

    def test_exclude_content(self, store, family):
        tree = store.get_family_tree(family["family_id"], include_content=False).tree
        assert "content" not in tree

    def test_read_is_idempotent(self, store, family):
        first = store.get_family_tree(family["family_id"])
        second = store.get_family_tree(family["family_id"])
        assert first.node_count == second.node_count == 4
        assert first.edge_count == second.edge_count == 3
        assert first.metrics == second.metrics
        assert node_count(store) == 4

    def test_genealogy_analysis(self, store, family):
        analysis = store.get_family_tree(family["family_id"]).analysis
        assert analysis.total_generations == 3
        assert analysis.mutation_density == pytest.approx(0.75)
        assert [s.node_count for s in analysis.spread_by_level] == [1, 2, 1]
        assert analysis.peak_spread_level == 1
        assert analysis.spread_velocity == pytest.approx(0.0)
        assert analysis.dominant_mutation_types[0]["type"] == "unknown"
        assert 0 < analysis.evolution_complexity <= 10

    def test_unknown_family(self, store):
        with pytest.raises(FamilyNotFoundError):
            store.get_family_tree("fam_missing")


class TestVisualization:

    def test_nodes_edges_levels(self, store, family):
        viz = store.generate_visualization(family["family_id"])
        assert len(viz.nodes) == 4
        assert {(e.source, e.target) for e in viz.edges} == {
            (family["A"], family["B"]), (family["A"], family["D"]), (family["B"], family["C"]),
        }
        assert viz.levels == {0: [family["A"]], 1: [family["B"], family["D"]], 2: [family["C"]]}
        assert viz.statistics == {"total_nodes": 4, "total_edges": 3, "max_depth": 2, "leaf_nodes": 2}

    def test_presentation_hints(self, store, family):
        viz = store.generate_visualization(family["family_id"])
        root = next(n for n in viz.nodes if n.id == family["A"])
        assert root.color == "#ff4444"
        assert root.size == 30
        assert root.label == "Original"
        assert viz.layout_hints["type"] == "hierarchical"

    def test_edge_weight_uses_confidence(self, store, family):
        descriptor = MutationDescriptor(mutation_type=MutationType.LEXICAL_VARIANT, confidence=0.9)
        added = store.add_mutation(family["family_id"], family["D"], "Garlic tea heals the flu overnight", descriptor)
        viz = store.generate_visualization(family["family_id"])
        edge = next(e for e in viz.edges if e.target == added.node_id)
        assert edge.weight == pytest.approx(0.9)


class TestMutationPatternReport:

    def test_distributions(self, store, family):
        report = store.analyze_mutation_patterns(family["family_id"])
        assert report.total_mutations == 3
        assert report.generation_distribution == {1: 2, 2: 1}
        assert report.peak_generation == 1
        assert report.generation_spread == 1
        assert report.type_distribution["unknown"].count == 3
        assert report.branching.max_branching_factor == 2
        assert report.branching.leaf_ratio == pytest.approx(0.5)
        assert report.temporal.peak_hour is not None
        assert report.insights == []

    def test_insight_thresholds_are_configurable(self, make_settings):
        store = GenealogyStore(make_settings(insight_depth_threshold=1, insight_branching_threshold=0.5))
        created = store.create_family("Garlic water cures the flu overnight")
        child = store.add_mutation(created.family_id, created.root_node_id, "Garlic water cures flu fast")
        store.add_mutation(created.family_id, child.node_id, "Garlic water cures all flu fast")

        kinds = {i.kind for i in store.analyze_mutation_patterns(created.family_id).insights}
        assert kinds == {"rapid_evolution", "viral_spread"}

    def test_single_mutation_has_empty_temporal_stats(self, store):
        created = store.create_family("Garlic water cures the flu overnight")
        store.add_mutation(created.family_id, created.root_node_id, "Garlic water cures flu fast")
        report = store.analyze_mutation_patterns(created.family_id)
        assert report.temporal.timespan_seconds == 0.0
        assert report.temporal.mutations_per_hour == 0.0


class TestIntegrity:
    """verify_integrity() on deliberately corrupted state."""

    def test_clean_family(self, store, family):
        assert store.verify_integrity(family["family_id"])

    def test_child_index_disagrees(self, store, family):
        store._children_index[family["A"]] = frozenset({family["B"]})
        with pytest.raises(InternalInvariantError):
            store.verify_integrity(family["family_id"])

    def test_wrong_parent_pointer(self, store, family):
        store.get_node(family["C"]).parent_id = family["D"]
        with pytest.raises(InternalInvariantError):
            store.verify_integrity(family["family_id"])

    def test_depth_mismatch(self, store, family):
        store.get_node(family["C"]).depth = 5
        with pytest.raises(InternalInvariantError):
            store.verify_integrity(family["family_id"])

    def test_invalid_root(self, store, family):
        store.get_node(family["A"]).kind = NodeKind.MUTATION
        with pytest.raises(InternalInvariantError):
            store.verify_integrity(family["family_id"])

    def test_missing_node(self, store, family):
        del store._nodes[family["D"]]
        with pytest.raises(InternalInvariantError):
            store.verify_integrity(family["family_id"])

    def test_drifted_metrics(self, store, family):
        tree = store._families[family["family_id"]]
        tree.metrics = replace(tree.metrics, leaf_count=7)
        with pytest.raises(InternalInvariantError):
            store.verify_integrity(family["family_id"])

    def test_stale_metrics_are_not_compared(self, store, family):
        tree = store._families[family["family_id"]]
        tree.metrics = replace(tree.metrics, leaf_count=7, stale=True)
        assert store.verify_integrity(family["family_id"])
