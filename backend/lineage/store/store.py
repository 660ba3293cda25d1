"""
Genealogy Store
===============

Owns every family tree and the only shared mutable state of the core.

Locking:
  - one Lock per family serializes writers of that family; writers of
    different families run in parallel
  - a registry RLock guards the cross-family indexes during the short
    publication step of a write
  - readers take no family lock: child sets are frozensets swapped in a
    single assignment after the new node is registered, so a traversal
    sees either the pre-write or the post-write tree

Writes are all-or-nothing: every check runs before any state changes.
"""

import logging
import threading
import uuid
from collections import deque
from dataclasses import replace
from typing import Dict, FrozenSet, List, Optional, Set, Tuple, Union

from ..errors import (
    ChildLimitExceededError,
    DepthLimitExceededError,
    DuplicateContentError,
    FamilyNotFoundError,
    InternalInvariantError,
    NodeNotFoundError,
    ParentNotFoundError,
)
from ..preprocessing import preprocess, semantic_signature, validate_content
from ..settings import LineageSettings, get_settings
from ..types import (
    CommonAncestorResult,
    ContentFingerprint,
    DescendantEntry,
    FamilyCreated,
    FamilyMetrics,
    FamilySummary,
    FamilyTree,
    MutationAdded,
    MutationDescriptor,
    MutationType,
    NodeKind,
    PathEntry,
    Relationship,
    TreeNode,
    utcnow,
)
from .analytics import MutationPatternReport, analyze_genealogy, analyze_mutation_patterns
from .visualization import FamilyTreeView, Visualization, build_tree, build_visualization

logger = logging.getLogger(__name__)


def _path_entry(node: TreeNode) -> PathEntry:
    return PathEntry(
        node_id=node.node_id,
        content=node.content,
        kind=node.kind,
        generation=node.generation,
        depth=node.depth,
        mutation_type=node.mutation_type,
        created_at=node.created_at,
    )


class GenealogyStore:
    """In-memory registry of misinformation families."""

    def __init__(self, settings: Optional[LineageSettings] = None):
        self.settings = settings or get_settings()

        self._families: Dict[str, FamilyTree] = {}
        self._nodes: Dict[str, TreeNode] = {}
        self._children_index: Dict[str, FrozenSet[str]] = {}
        self._family_locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.RLock()

        # Lookup indexes
        self._hash_index: Dict[str, List[str]] = {}
        self._token_index: Dict[str, Set[str]] = {}
        self._domain_index: Dict[str, Set[str]] = {}
        self._signature_index: Dict[str, Set[str]] = {}
        self._sequence: Dict[str, int] = {}

        self._ancestry_memo: Dict[str, List[PathEntry]] = {}

    # =========================================================================
    # WRITES
    # =========================================================================

    def create_family(self, seed_content: str, metadata: Optional[dict] = None) -> FamilyCreated:
        """
        Start a new family rooted at seed_content.

        Raises:
            ValidationError: seed is empty, not text, or oversized
            InternalInvariantError: generated id already registered
        """
        validate_content(seed_content, self.settings.max_content_length)
        fingerprint = self._fingerprint(seed_content)

        family_id = f"fam_{uuid.uuid4().hex[:16]}"
        root_id = f"node_{uuid.uuid4().hex[:16]}"
        now = utcnow()

        root = TreeNode(
            node_id=root_id,
            family_id=family_id,
            content=seed_content,
            fingerprint=fingerprint,
            kind=NodeKind.ORIGINAL,
            generation=0,
            depth=0,
            metadata=dict(metadata or {}),
            created_at=now,
            last_updated=now,
        )
        family = FamilyTree(
            family_id=family_id,
            root_node_id=root_id,
            created_at=now,
            updated_at=now,
            levels={0: [root_id]},
            node_ids=[root_id],
        )

        with self._registry_lock:
            if family_id in self._families or root_id in self._nodes:
                raise InternalInvariantError(f"Id conflict creating family {family_id}")
            self._register_node(root)
            self._families[family_id] = family
            self._family_locks[family_id] = threading.Lock()

        logger.info(f"Created family {family_id} (root {root_id}, domain={fingerprint.domain.label})")
        return FamilyCreated(family_id=family_id, root_node_id=root_id)

    def add_mutation(
        self,
        family_id: str,
        parent_node_id: str,
        content: str,
        mutation: Optional[MutationDescriptor] = None,
        metadata: Optional[dict] = None,
    ) -> MutationAdded:
        """
        Append content as a child of parent_node_id.

        Checks run in order: family, parent, depth, children, duplicate.

        Raises:
            ValidationError: content is empty, not text, or oversized
            FamilyNotFoundError: unknown family
            ParentNotFoundError: unknown parent, or parent in another family
            DepthLimitExceededError: child would exceed max_tree_depth
            ChildLimitExceededError: parent already has max_children_per_node
            DuplicateContentError: a sibling has the same content hash
        """
        validate_content(content, self.settings.max_content_length)
        lock = self._family_lock(family_id)
        fingerprint = self._fingerprint(content)
        mutation = mutation or MutationDescriptor.unknown()

        with lock:
            family = self._families[family_id]
            parent = self._nodes.get(parent_node_id)
            if parent is None or parent.family_id != family_id:
                raise ParentNotFoundError(parent_node_id, family_id)

            if parent.depth >= self.settings.max_tree_depth - 1:
                raise DepthLimitExceededError(self.settings.max_tree_depth)

            siblings = self._children_index.get(parent_node_id, frozenset())
            if len(siblings) >= self.settings.max_children_per_node:
                raise ChildLimitExceededError(parent_node_id, self.settings.max_children_per_node)

            for sibling_id in siblings:
                if self._nodes[sibling_id].content_hash == fingerprint.content_hash:
                    raise DuplicateContentError(parent_node_id, sibling_id)

            node_id = f"node_{uuid.uuid4().hex[:16]}"
            now = utcnow()
            node = TreeNode(
                node_id=node_id,
                family_id=family_id,
                content=content,
                fingerprint=fingerprint,
                kind=NodeKind.MUTATION,
                generation=parent.generation + 1,
                depth=parent.depth + 1,
                parent_id=parent_node_id,
                mutation=mutation,
                metadata=dict(metadata or {}),
                created_at=now,
                last_updated=now,
            )

            with self._registry_lock:
                if node_id in self._nodes:
                    raise InternalInvariantError(f"Id conflict adding node {node_id}")
                self._register_node(node)

                # Publish: node is registered before it becomes reachable
                parent_was_leaf = not siblings
                children = siblings | {node_id}
                self._children_index[parent_node_id] = children
                parent.children = children
                parent.last_updated = now

                ancestors = self._update_ancestors(parent)
                self._invalidate_ancestry([node_id] + ancestors)

            family.levels.setdefault(node.depth, []).append(node_id)
            family.node_ids.append(node_id)
            family.updated_at = now
            family.metrics = self._appended_metrics(family.metrics, node, parent_was_leaf)

        logger.debug(
            f"Added {node_id} to {family_id} under {parent_node_id} "
            f"(depth={node.depth}, type={mutation.mutation_type.value})"
        )
        return MutationAdded(
            node_id=node_id,
            family_id=family_id,
            parent_node_id=parent_node_id,
            generation=node.generation,
            depth=node.depth,
        )

    def _fingerprint(self, content: str) -> ContentFingerprint:
        return preprocess(
            content,
            min_ngram_size=self.settings.min_ngram_size,
            max_ngram_size=self.settings.max_ngram_size,
        )

    def _register_node(self, node: TreeNode):
        """Add node to every lookup index. Caller holds the registry lock."""
        self._nodes[node.node_id] = node
        self._children_index[node.node_id] = frozenset()
        self._sequence[node.node_id] = len(self._sequence)
        self._hash_index.setdefault(node.content_hash, []).append(node.node_id)
        for token in node.fingerprint.token_set:
            self._token_index.setdefault(token, set()).add(node.node_id)
        self._domain_index.setdefault(node.fingerprint.domain.label, set()).add(node.node_id)
        signature = semantic_signature(node.fingerprint)
        self._signature_index.setdefault(signature, set()).add(node.node_id)

    def _update_ancestors(self, parent: TreeNode) -> List[str]:
        """Bump descendant counts from parent up to the root."""
        visited = []
        current: Optional[TreeNode] = parent
        while current is not None and current.node_id not in visited:
            current.descendant_count += 1
            visited.append(current.node_id)
            current = self._nodes.get(current.parent_id) if current.parent_id else None
        return visited

    def _invalidate_ancestry(self, node_ids: List[str]):
        for node_id in node_ids:
            self._ancestry_memo.pop(node_id, None)

    @staticmethod
    def _appended_metrics(metrics: FamilyMetrics, node: TreeNode, parent_was_leaf: bool) -> FamilyMetrics:
        """Metrics after appending node. Returns a new object, published in one assignment."""
        # Parent stops being a leaf and the new node becomes one, or a leaf is simply added
        return FamilyMetrics(
            total_nodes=metrics.total_nodes + 1,
            max_depth=max(metrics.max_depth, node.depth),
            total_edges=metrics.total_edges + 1,
            internal_nodes=metrics.internal_nodes + (1 if parent_was_leaf else 0),
            leaf_count=metrics.leaf_count + (0 if parent_was_leaf else 1),
            stale=metrics.stale,
        )

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    def _family_lock(self, family_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._family_locks.get(family_id)
        if lock is None:
            raise FamilyNotFoundError(family_id)
        return lock

    def _require_family(self, family_id: str) -> FamilyTree:
        family = self._families.get(family_id)
        if family is None:
            raise FamilyNotFoundError(family_id)
        return family

    def _require_node(self, node_id: str) -> TreeNode:
        node = self._nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    def _ordered_children(self, node_id: str) -> List[str]:
        children = self._children_index.get(node_id, frozenset())
        return sorted(children, key=lambda cid: self._sequence.get(cid, 0))

    def get_node(self, node_id: str) -> Optional[TreeNode]:
        return self._nodes.get(node_id)

    def find_nodes_by_hash(self, content_hash: str) -> List[TreeNode]:
        """Nodes whose normalized content hashes to content_hash, oldest first."""
        with self._registry_lock:
            node_ids = list(self._hash_index.get(content_hash, ()))
        return [self._nodes[node_id] for node_id in node_ids]

    def candidate_nodes(self, fingerprint: ContentFingerprint, limit: int) -> List[TreeNode]:
        """
        Nodes worth scoring against fingerprint.

        Nodes sharing at least one token, or the same semantic signature
        bucket, ranked by token overlap, then domain match, then age.
        """
        signature = semantic_signature(fingerprint)
        with self._registry_lock:
            overlap: Dict[str, int] = {}
            for token in fingerprint.token_set:
                for node_id in self._token_index.get(token, ()):
                    overlap[node_id] = overlap.get(node_id, 0) + 1
            for node_id in self._signature_index.get(signature, ()):
                overlap.setdefault(node_id, 0)
            same_domain = set(self._domain_index.get(fingerprint.domain.label, ()))
            sequence = dict(self._sequence)

        ranked = sorted(
            overlap,
            key=lambda node_id: (
                -overlap[node_id],
                0 if node_id in same_domain else 1,
                sequence.get(node_id, 0),
            ),
        )
        return [self._nodes[node_id] for node_id in ranked[:limit]]

    def list_families(self) -> List[FamilySummary]:
        with self._registry_lock:
            families = list(self._families.values())
        summaries = []
        for family in families:
            metrics = self.get_metrics(family.family_id)
            root = self._nodes[family.root_node_id]
            summaries.append(FamilySummary(
                family_id=family.family_id,
                root_node_id=family.root_node_id,
                root_content=root.content,
                total_nodes=metrics.total_nodes,
                max_depth=metrics.max_depth,
                created_at=family.created_at,
                updated_at=family.updated_at,
            ))
        return summaries

    # =========================================================================
    # TREE QUERIES
    # =========================================================================

    def _snapshot(self, family_id: str) -> Tuple[FamilyTree, List[TreeNode]]:
        """Family nodes in BFS order from the root, following child sets."""
        family = self._require_family(family_id)
        ordered: List[TreeNode] = []
        visited: Set[str] = set()
        queue = deque([family.root_node_id])
        while queue:
            node_id = queue.popleft()
            if node_id in visited:
                continue
            visited.add(node_id)
            node = self._nodes.get(node_id)
            if node is None:
                continue
            ordered.append(node)
            queue.extend(self._ordered_children(node_id))
        return family, ordered

    def get_family_tree(
        self,
        family_id: str,
        max_depth: Optional[int] = None,
        include_content: bool = True,
    ) -> FamilyTreeView:
        """
        Read-only projection: nested tree, metrics, genealogy analysis and
        visualization export.

        Raises:
            FamilyNotFoundError: unknown family
        """
        family, nodes = self._snapshot(family_id)
        metrics = self.get_metrics(family_id)
        depth_limit = self.settings.max_tree_depth if max_depth is None else max_depth

        nodes_by_id = {n.node_id: n for n in nodes}
        children_of = {n.node_id: self._ordered_children(n.node_id) for n in nodes}
        tree = build_tree(
            nodes_by_id[family.root_node_id],
            nodes_by_id,
            children_of,
            max_depth=depth_limit,
            include_content=include_content,
        )

        return FamilyTreeView(
            family_id=family_id,
            root_node_id=family.root_node_id,
            created_at=family.created_at,
            updated_at=family.updated_at,
            metrics=metrics,
            tree=tree,
            analysis=analyze_genealogy(nodes, metrics),
            visualization=build_visualization(nodes),
        )

    def get_ancestry_path(self, node_id: str) -> List[PathEntry]:
        """Path from node_id up to its root (node first). [] if unknown."""
        memo = self._ancestry_memo.get(node_id)
        if memo is not None:
            return list(memo)

        node = self._nodes.get(node_id)
        if node is None:
            return []

        path: List[PathEntry] = []
        seen: Set[str] = set()
        current: Optional[TreeNode] = node
        while current is not None:
            if current.node_id in seen:
                raise InternalInvariantError(f"Cycle detected above {node_id}")
            seen.add(current.node_id)
            path.append(_path_entry(current))
            current = self._nodes.get(current.parent_id) if current.parent_id else None

        self._ancestry_memo[node_id] = path
        return list(path)

    def get_descendants(
        self,
        node_id: str,
        max_depth: Optional[int] = None,
        filter_by_type: Optional[Union[NodeKind, MutationType]] = None,
    ) -> List[DescendantEntry]:
        """
        Breadth-first descendants of node_id, up to max_depth edges away.

        filter_by_type keeps only nodes of that NodeKind or MutationType.

        Raises:
            NodeNotFoundError: unknown node
        """
        self._require_node(node_id)
        limit = self.settings.max_tree_depth if max_depth is None else max_depth

        results: List[DescendantEntry] = []
        visited = {node_id}
        queue = deque((child_id, 1) for child_id in self._ordered_children(node_id))

        while queue:
            current_id, distance = queue.popleft()
            if current_id in visited or distance > limit:
                continue
            visited.add(current_id)
            current = self._nodes.get(current_id)
            if current is None:
                continue

            if self._matches_type(current, filter_by_type):
                results.append(DescendantEntry(
                    node_id=current.node_id,
                    content=current.content,
                    kind=current.kind,
                    generation=current.generation,
                    depth=current.depth,
                    mutation_type=current.mutation_type,
                    created_at=current.created_at,
                    parent_id=current.parent_id,
                    distance=distance,
                ))
            for child_id in self._ordered_children(current_id):
                queue.append((child_id, distance + 1))

        return results

    @staticmethod
    def _matches_type(node: TreeNode, wanted: Optional[Union[NodeKind, MutationType]]) -> bool:
        if wanted is None:
            return True
        if isinstance(wanted, NodeKind):
            return node.kind == wanted
        return node.mutation_type == wanted

    def find_common_ancestor(self, node_id_1: str, node_id_2: str) -> CommonAncestorResult:
        """
        Most recent common ancestor of two nodes and their relationship.

        Raises:
            NodeNotFoundError: either node is unknown
        """
        node_1 = self._require_node(node_id_1)
        node_2 = self._require_node(node_id_2)
        if node_1.family_id != node_2.family_id:
            return CommonAncestorResult(found=False, reason="different_families")

        path_1 = self.get_ancestry_path(node_id_1)
        path_2 = self.get_ancestry_path(node_id_2)
        positions_2 = {entry.node_id: i for i, entry in enumerate(path_2)}

        common = [entry for entry in path_1 if entry.node_id in positions_2]
        if not common:
            raise InternalInvariantError(
                f"Nodes {node_id_1} and {node_id_2} share a family but no ancestor"
            )

        ancestor = common[0]
        distance_1 = next(i for i, entry in enumerate(path_1) if entry.node_id == ancestor.node_id)
        distance_2 = positions_2[ancestor.node_id]

        return CommonAncestorResult(
            found=True,
            ancestor=ancestor,
            relationship=self._relationship(distance_1, distance_2, ancestor),
            distance_1=distance_1,
            distance_2=distance_2,
            all_common_ancestors=common,
        )

    @staticmethod
    def _relationship(distance_1: int, distance_2: int, ancestor: PathEntry) -> Relationship:
        """
        Label a pair from their distances to the common ancestor.

            either distance 0                   -> ancestor-descendant
            both distances 1                    -> siblings
            one distance 1, ancestor not root   -> uncle-nephew
            anything else                       -> cousins

        The root counts as the shared origin of every branch, so two nodes
        whose closest link is the family root are cousins whatever their
        distances: with A -> B -> C and A -> D, C and D are cousins, while
        the same 2/1 shape below a mutation node is uncle-nephew.
        """
        if min(distance_1, distance_2) == 0:
            return Relationship.ANCESTOR_DESCENDANT
        if distance_1 == 1 and distance_2 == 1:
            return Relationship.SIBLINGS
        # One step below a shared non-root ancestor on one side only
        if min(distance_1, distance_2) == 1 and ancestor.kind != NodeKind.ORIGINAL:
            return Relationship.UNCLE_NEPHEW
        return Relationship.COUSINS

    # =========================================================================
    # METRICS & ANALYTICS
    # =========================================================================

    def get_metrics(self, family_id: str) -> FamilyMetrics:
        """Cached metrics, recomputed from the tree when marked stale."""
        family = self._require_family(family_id)
        if family.metrics.stale:
            with self._family_lock(family_id):
                if family.metrics.stale:
                    _, nodes = self._snapshot(family_id)
                    family.metrics = self._compute_metrics(nodes)
                    logger.debug(f"Recomputed metrics for {family_id}")
        return family.metrics

    def invalidate_metrics(self, family_id: str):
        family = self._require_family(family_id)
        family.metrics = replace(family.metrics, stale=True)

    @staticmethod
    def _compute_metrics(nodes: List[TreeNode]) -> FamilyMetrics:
        internal = sum(1 for n in nodes if n.children)
        return FamilyMetrics(
            total_nodes=len(nodes),
            max_depth=max((n.depth for n in nodes), default=0),
            total_edges=sum(len(n.children) for n in nodes),
            internal_nodes=internal,
            leaf_count=len(nodes) - internal,
        )

    def analyze_mutation_patterns(self, family_id: str) -> MutationPatternReport:
        _, nodes = self._snapshot(family_id)
        return analyze_mutation_patterns(family_id, nodes, self.get_metrics(family_id), self.settings)

    def generate_visualization(self, family_id: str) -> Visualization:
        _, nodes = self._snapshot(family_id)
        return build_visualization(nodes)

    def get_genealogy_metrics(self) -> Dict[str, object]:
        """Store-wide totals across all families."""
        summaries = self.list_families()
        if not summaries:
            return {
                "total_families": 0,
                "total_nodes": 0,
                "average_depth": 0.0,
                "max_depth": 0,
                "average_family_size": 0.0,
                "most_mutated_family": None,
            }

        total_nodes = sum(s.total_nodes for s in summaries)
        most_mutated = max(summaries, key=lambda s: s.total_nodes)
        return {
            "total_families": len(summaries),
            "total_nodes": total_nodes,
            "average_depth": sum(s.max_depth for s in summaries) / len(summaries),
            "max_depth": max(s.max_depth for s in summaries),
            "average_family_size": total_nodes / len(summaries),
            "most_mutated_family": most_mutated.family_id,
        }

    # =========================================================================
    # INTEGRITY
    # =========================================================================

    def verify_integrity(self, family_id: str) -> bool:
        """
        Check the tree invariants of one family.

        Raises:
            FamilyNotFoundError: unknown family
            InternalInvariantError: any invariant is violated
        """
        family = self._require_family(family_id)
        with self._family_lock(family_id):
            root = self._nodes.get(family.root_node_id)
            if root is None or not root.is_root or root.kind != NodeKind.ORIGINAL or root.depth != 0:
                raise InternalInvariantError(f"Family {family_id} has an invalid root")

            for node_id in family.node_ids:
                node = self._nodes.get(node_id)
                if node is None or node.family_id != family_id:
                    raise InternalInvariantError(f"Node {node_id} missing from family {family_id}")

                if self._children_index.get(node_id, frozenset()) != node.children:
                    raise InternalInvariantError(f"Child index disagrees with node {node_id}")

                for child_id in node.children:
                    child = self._nodes.get(child_id)
                    if child is None or child.parent_id != node_id:
                        raise InternalInvariantError(
                            f"Child {child_id} does not record {node_id} as parent"
                        )

                if node_id == family.root_node_id:
                    continue
                parent = self._nodes.get(node.parent_id)
                if parent is None or parent.family_id != family_id:
                    raise InternalInvariantError(f"Node {node_id} has no parent in {family_id}")
                if node_id not in parent.children:
                    raise InternalInvariantError(f"Node {node_id} missing from its parent's children")
                if node.depth != parent.depth + 1 or node.generation != parent.generation + 1:
                    raise InternalInvariantError(f"Node {node_id} depth disagrees with its parent")
                if node.depth >= self.settings.max_tree_depth:
                    raise InternalInvariantError(f"Node {node_id} exceeds max tree depth")

            _, reachable = self._snapshot(family_id)
            if len(reachable) != len(family.node_ids):
                raise InternalInvariantError(
                    f"Family {family_id}: {len(reachable)} reachable of {len(family.node_ids)} nodes"
                )

            expected = self._compute_metrics(reachable)
            if not family.metrics.stale and (
                family.metrics.total_nodes != expected.total_nodes
                or family.metrics.total_edges != expected.total_edges
                or family.metrics.max_depth != expected.max_depth
                or family.metrics.leaf_count != expected.leaf_count
            ):
                raise InternalInvariantError(f"Cached metrics drifted for family {family_id}")

        return True
