"""
Lineage Error Taxonomy
======================

Every failure the core raises derives from LineageError.

Client-correctable (4xx-equivalent at a collaborator boundary):
    ValidationError, NotFoundError, CapacityError, DuplicateError

Operator attention (opaque failure):
    InternalInvariantError - a consistency check failed; this is a bug,
    never a recoverable condition.

Preprocessing and similarity scoring never raise these for malformed text;
they degrade and record the degradation in their result instead.
"""


class LineageError(Exception):
    """Base class for all lineage core errors."""
    pass


class ValidationError(LineageError):
    """Raised for empty, non-text or oversized input."""
    pass


# =============================================================================
# Not found
# =============================================================================

class NotFoundError(LineageError):
    """Raised when a family or node id is unknown."""
    pass


class FamilyNotFoundError(NotFoundError):
    """Raised when a family id is unknown."""

    def __init__(self, family_id: str):
        self.family_id = family_id
        super().__init__(f"Family {family_id} not found")


class NodeNotFoundError(NotFoundError):
    """Raised when a node id is unknown."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node {node_id} not found")


class ParentNotFoundError(NotFoundError):
    """Raised when the parent of an insertion is unknown or in another family."""

    def __init__(self, parent_node_id: str, family_id: str):
        self.parent_node_id = parent_node_id
        self.family_id = family_id
        super().__init__(f"Parent node {parent_node_id} not found in family {family_id}")


# =============================================================================
# Capacity
# =============================================================================

class CapacityError(LineageError):
    """Raised when an insertion would exceed a configured tree limit."""
    pass


class DepthLimitExceededError(CapacityError):
    """Raised when an insertion would exceed the maximum tree depth."""

    def __init__(self, max_tree_depth: int):
        self.max_tree_depth = max_tree_depth
        super().__init__(f"Maximum tree depth ({max_tree_depth}) would be exceeded")


class ChildLimitExceededError(CapacityError):
    """Raised when a parent already holds the maximum number of children."""

    def __init__(self, parent_node_id: str, max_children: int):
        self.parent_node_id = parent_node_id
        self.max_children = max_children
        super().__init__(
            f"Maximum children per node ({max_children}) reached for {parent_node_id}"
        )


# =============================================================================
# Duplicates
# =============================================================================

class DuplicateError(LineageError):
    """Raised when identical content is re-submitted."""
    pass


class DuplicateContentError(DuplicateError):
    """Raised when a sibling under the same parent has the same content hash."""

    def __init__(self, parent_node_id: str, existing_node_id: str):
        self.parent_node_id = parent_node_id
        self.existing_node_id = existing_node_id
        super().__init__(
            f"Content already present under {parent_node_id} as {existing_node_id}"
        )


class InternalInvariantError(LineageError):
    """Raised when an internal consistency check fails. Always a bug."""
    pass
