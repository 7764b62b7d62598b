"""
Layout optimizer for OrgChart-MCP render trees.

Runs before rendering to keep very large organizations legible.  The
optimizer always works on a deep copy, so the tree produced by the
converter is never aliased or mutated by the rendering layer.

With default options the transform is a structure-preserving pass over
every node.  Two size-reduction strategies can be switched on through
``OptimizeOptions`` without changing the function signature:

  - Grouping:    sibling sets larger than ``group_threshold`` are split
                 into synthetic team nodes of at most ``group_size``
                 children each
  - Depth limit: nodes at ``max_depth`` keep their place but drop their
                 children; ``hiddenCount`` records how many descendants
                 were collapsed so a front-end can expand on demand

Both strategies are idempotent: synthetic group nodes are never regrouped,
and a collapsed node has no children left to collapse.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .models import RenderAttributes, RenderTreeNode


@dataclass
class OptimizeOptions:
    """Size-reduction strategies applied by ``optimize_tree_layout``."""
    group_threshold: Optional[int] = None
    group_size: int = 8
    max_depth: Optional[int] = None


def optimize_tree_layout(
    tree: RenderTreeNode,
    options: Optional[OptimizeOptions] = None,
) -> RenderTreeNode:
    """Return an optimized deep copy of ``tree``; the input is left untouched."""
    opts = options or OptimizeOptions()
    optimized = tree.model_copy(deep=True)
    return _apply_optimizations(optimized, opts, depth=0)


def _apply_optimizations(
    node: RenderTreeNode,
    opts: OptimizeOptions,
    depth: int,
) -> RenderTreeNode:
    if not node.children:
        return node

    # Group nodes are transparent: they neither count as a level nor collapse.
    if node.is_group:
        child_depth = depth
    else:
        if opts.max_depth is not None and depth >= opts.max_depth:
            return _collapse(node)
        child_depth = depth + 1

    children = [
        _apply_optimizations(child, opts, child_depth)
        for child in node.children
    ]

    if (
        opts.group_threshold is not None
        and len(children) > opts.group_threshold
        and not node.is_group
        and not any(child.is_group for child in children)
    ):
        children = _group_children(children, max(1, opts.group_size))

    return node.model_copy(update={"children": children})


def _collapse(node: RenderTreeNode) -> RenderTreeNode:
    hidden = _count_descendants(node)
    attributes = (node.attributes or RenderAttributes()).model_copy(
        update={"hiddenCount": hidden}
    )
    return node.model_copy(update={"children": None, "attributes": attributes})


def _count_descendants(node: RenderTreeNode) -> int:
    if not node.children:
        return 0
    return sum(1 + _count_descendants(child) for child in node.children)


def _group_children(
    children: list[RenderTreeNode],
    group_size: int,
) -> list[RenderTreeNode]:
    """Split a large sibling set into synthetic team nodes."""
    groups = []
    for index in range(0, len(children), group_size):
        members = children[index:index + group_size]
        groups.append(RenderTreeNode(
            name=f"Team {index // group_size + 1} ({len(members)} members)",
            attributes=RenderAttributes(isGroup=True, memberCount=len(members)),
            children=members,
        ))
    return groups
