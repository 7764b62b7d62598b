"""
Tree layout for OrgChart-MCP.

Places every node of a render tree on a top-to-bottom tidy tree, the same
shape the web chart draws: the organization root at the logical origin,
each generation one row further down, parents centered over their children.

Layout runs in four steps:

  1. Flatten the tree in pre-order, recording depth and parent
  2. Pack leaves left to right, leaving a wider gap between leaves that do
     not share a parent
  3. Center every parent between its first and last child (post-order)
  4. Shift horizontally so the root sits at x = 0

Coordinates are node centers in logical pixels.  The renderer and the
geometry controller work from the bounding box of the laid-out node boxes,
so the layout is also what fit-to-screen measures.

Spacing constants (matching the web chart):
  - Node size: 300px horizontal, 160px vertical
  - Separation: 1.2 node widths between siblings, 1.5 between cousins
  - Boxes: member cards 280 x 140, organization card 320 x 160
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from .models import RenderTreeNode


# --- Spacing constants ---

NODE_SIZE_X = 300
NODE_SIZE_Y = 160

SIBLING_SEPARATION = 1.2
NON_SIBLING_SEPARATION = 1.5

MEMBER_NODE_WIDTH = 280
MEMBER_NODE_HEIGHT = 140
ORGANIZATION_NODE_WIDTH = 320
ORGANIZATION_NODE_HEIGHT = 160


@dataclass
class LayoutOptions:
    """Spacing options for ``layout_tree``."""
    node_size_x: float = NODE_SIZE_X
    node_size_y: float = NODE_SIZE_Y
    sibling_separation: float = SIBLING_SEPARATION
    non_sibling_separation: float = NON_SIBLING_SEPARATION


@dataclass
class LaidOutNode:
    """A render node with its computed position.

    ``x``/``y`` are the center of the node box; ``parent`` is the index of
    the parent in the layout list (``None`` for the root).
    """
    node: RenderTreeNode
    x: float
    y: float
    width: float
    height: float
    depth: int
    parent: Optional[int] = None

    @property
    def left(self) -> float:
        return self.x - self.width / 2

    @property
    def top(self) -> float:
        return self.y - self.height / 2

    def contains(self, x: float, y: float) -> bool:
        return (
            self.left <= x <= self.left + self.width
            and self.top <= y <= self.top + self.height
        )


@dataclass
class ContainerBounds:
    """Bounding box of a set of laid-out nodes."""
    x: float
    y: float
    width: float
    height: float

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2


def node_box_size(node: RenderTreeNode) -> tuple[float, float]:
    """Return the (width, height) of the card drawn for ``node``."""
    if node.is_organization:
        return (ORGANIZATION_NODE_WIDTH, ORGANIZATION_NODE_HEIGHT)
    return (MEMBER_NODE_WIDTH, MEMBER_NODE_HEIGHT)


# ---------------------------------------------------------------------------
# Core layout algorithm
# ---------------------------------------------------------------------------

def layout_tree(
    tree: Optional[RenderTreeNode],
    options: Optional[LayoutOptions] = None,
) -> list[LaidOutNode]:
    """Lay out a render tree; returns nodes in pre-order."""
    if tree is None:
        return []

    opts = options or LayoutOptions()

    # --- Step 1: flatten in pre-order ---
    laid_out: list[LaidOutNode] = []
    children_of: dict[int, list[int]] = {}
    stack: list[tuple[RenderTreeNode, int, Optional[int]]] = [(tree, 0, None)]

    while stack:
        node, depth, parent = stack.pop()
        index = len(laid_out)
        width, height = node_box_size(node)
        laid_out.append(LaidOutNode(
            node=node,
            x=0.0,
            y=depth * opts.node_size_y,
            width=width,
            height=height,
            depth=depth,
            parent=parent,
        ))
        children_of[index] = []
        if parent is not None:
            children_of[parent].append(index)
        for child in reversed(node.children or []):
            stack.append((child, depth + 1, index))

    # --- Step 2: pack leaves ---
    cursor = 0.0
    previous_leaf: Optional[LaidOutNode] = None
    for entry in laid_out:
        if entry.node.children:
            continue
        if previous_leaf is not None:
            separation = (
                opts.sibling_separation
                if previous_leaf.parent == entry.parent
                else opts.non_sibling_separation
            )
            cursor += separation * opts.node_size_x
        entry.x = cursor
        previous_leaf = entry

    # --- Step 3: center parents (reverse pre-order visits children first) ---
    for index in range(len(laid_out) - 1, -1, -1):
        kids = children_of[index]
        if kids:
            first = laid_out[kids[0]]
            last = laid_out[kids[-1]]
            laid_out[index].x = (first.x + last.x) / 2

    # --- Step 4: root at x = 0 ---
    offset = laid_out[0].x
    if offset:
        for entry in laid_out:
            entry.x -= offset

    return laid_out


# ---------------------------------------------------------------------------
# Bounds computation
# ---------------------------------------------------------------------------

def compute_layout_bounds(laid_out: list[LaidOutNode]) -> Optional[ContainerBounds]:
    """Compute the bounding box of all node boxes.

    Returns None if there are no nodes or coordinates are not finite.
    """
    if not laid_out:
        return None

    min_x = float("inf")
    min_y = float("inf")
    max_x = float("-inf")
    max_y = float("-inf")

    for entry in laid_out:
        if not math.isfinite(entry.x) or not math.isfinite(entry.y):
            continue
        min_x = min(min_x, entry.left)
        min_y = min(min_y, entry.top)
        max_x = max(max_x, entry.left + entry.width)
        max_y = max(max_y, entry.top + entry.height)

    if not math.isfinite(min_x):
        return None

    return ContainerBounds(
        x=min_x,
        y=min_y,
        width=max(1, max_x - min_x),
        height=max(1, max_y - min_y),
    )


def find_node_at(
    laid_out: list[LaidOutNode],
    x: float,
    y: float,
) -> Optional[LaidOutNode]:
    """Return the topmost laid-out node whose box contains the logical point."""
    for entry in reversed(laid_out):
        if entry.contains(x, y):
            return entry
    return None
