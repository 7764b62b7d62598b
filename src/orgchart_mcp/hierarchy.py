"""
Hierarchy builder for OrgChart-MCP.

Turns a flat roster into a forest of reporting hierarchies.  Each member
points at its mentor; the builder inverts those pointers into ``mentees``
lists and classifies every root:

  - Founder:    no mentor, at least one mentee (the head of a chain)
  - Unassigned: no mentor and no mentees, or a mentor id that does not
                resolve within the roster

The build is two passes over the roster and runs in O(n).

Mentor cycles (A -> B -> A, or a member listed as its own mentor) never
produce a root in a naive build, and any recursive walk over ``mentees``
would not terminate.  The builder walks every mentor chain with a visited
set before linking: members on a cycle become Unassigned, the mentor edges
between them are dropped, and members hanging below a cycle stay attached
to the cycle member they report to.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Optional

from .models import Forest, HierarchyNode, Member, RenderTreeNode

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Cycle detection
# ---------------------------------------------------------------------------

def find_mentor_cycles(nodes: dict[str, HierarchyNode]) -> list[list[str]]:
    """Return the member ids of every mentor cycle, in chain order.

    Each member has at most one mentor, so the mentor graph is a functional
    graph: following ``mentor_id`` from any member either leaves the roster,
    reaches a member with no mentor, or enters exactly one cycle.
    """
    done: set[str] = set()
    cycles: list[list[str]] = []

    for start in nodes:
        if start in done:
            continue

        path: list[str] = []
        on_path: dict[str, int] = {}
        current: Optional[str] = start

        while current is not None and current in nodes and current not in done:
            if current in on_path:
                cycles.append(path[on_path[current]:])
                break
            on_path[current] = len(path)
            path.append(current)
            current = nodes[current].mentor_id

        done.update(path)

    return cycles


# ---------------------------------------------------------------------------
# Forest construction
# ---------------------------------------------------------------------------

def build_forest(members: Iterable[Member]) -> Forest:
    """Build the classified forest of hierarchies from a roster.

    Steps:
    1. Create one node per member, keyed by id (first occurrence wins)
    2. Detect mentor cycles
    3. Link every node under its mentor, collecting unresolved nodes as roots
    4. Classify roots into founders and unassigned, in roster order
    """
    # --- Step 1: one node per member ---
    nodes: dict[str, HierarchyNode] = {}
    for member in members:
        if member.id in nodes:
            logger.warning(f"Duplicate member id {member.id!r}; keeping the first entry")
            continue
        nodes[member.id] = HierarchyNode.from_member(member)

    # --- Step 2: cycles ---
    cycles = find_mentor_cycles(nodes)
    in_cycle: set[str] = {member_id for cycle in cycles for member_id in cycle}
    for cycle in cycles:
        logger.warning(
            f"Mentor cycle detected ({' -> '.join(cycle + cycle[:1])}); "
            f"treating {len(cycle)} member(s) as unassigned"
        )

    # --- Step 3: link mentees ---
    roots: list[HierarchyNode] = []
    for node in nodes.values():
        mentor_id = node.mentor_id
        if mentor_id and mentor_id in nodes and node.id not in in_cycle:
            nodes[mentor_id].mentees.append(node)
        else:
            roots.append(node)

    # --- Step 4: classify roots ---
    founders: list[HierarchyNode] = []
    unassigned: list[HierarchyNode] = []
    for root in roots:
        if not root.mentor_id and root.mentees:
            founders.append(root)
        else:
            unassigned.append(root)

    return Forest(
        founders=founders,
        unassigned=unassigned,
        all_roots=roots,
        cycles=cycles,
    )


# ---------------------------------------------------------------------------
# Tree queries
# ---------------------------------------------------------------------------

def iter_subtree(node: HierarchyNode) -> Iterator[HierarchyNode]:
    """Yield a node and all of its descendants, depth first."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.mentees))


def tree_depth(node: RenderTreeNode) -> int:
    """Number of levels in a render tree (a single node has depth 1)."""
    if not node.children:
        return 1
    return 1 + max(tree_depth(child) for child in node.children)


def tree_width(node: RenderTreeNode) -> int:
    """Number of leaves in a render tree."""
    if not node.children:
        return 1
    return sum(tree_width(child) for child in node.children)


def calculate_tree_size(node: RenderTreeNode) -> tuple[int, int]:
    """Return ``(width, height)`` of a render tree in leaf and level units."""
    return (max(1, tree_width(node)), tree_depth(node))


def find_member_in_tree(
    nodes: list[RenderTreeNode],
    member_id: str,
) -> Optional[RenderTreeNode]:
    """Find the render node for a member, searching depth first."""
    for node in nodes:
        if node.member_id == member_id:
            return node
        if node.children:
            found = find_member_in_tree(node.children, member_id)
            if found:
                return found
    return None
