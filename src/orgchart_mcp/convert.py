"""Convert hierarchy nodes into render trees."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from .models import Forest, HierarchyNode, RenderAttributes, RenderTreeNode

DEFAULT_ORGANIZATION_NAME = "Organization"
NO_DESIGNATION = "No designation"
INVALID_DATE = "Invalid Date"


def format_joining_date(value: Optional[str]) -> Optional[str]:
    """Format an ISO date or timestamp as a short US date (``M/D/YYYY``).

    Unparseable values render as ``"Invalid Date"``, the same text a
    browser shows for them.
    """
    if not value:
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed: date = datetime.fromisoformat(text)
    except ValueError:
        try:
            parsed = date.fromisoformat(text[:10])
        except ValueError:
            return INVALID_DATE

    return f"{parsed.month}/{parsed.day}/{parsed.year}"


def to_render_tree(node: HierarchyNode) -> RenderTreeNode:
    """Map a hierarchy node and its mentees to a render tree.

    Leaves get ``children=None`` rather than an empty list.
    """
    return RenderTreeNode(
        name=node.get_label(),
        attributes=RenderAttributes(
            designation=node.designation or NO_DESIGNATION,
            role=node.role,
            joining_date=format_joining_date(node.joining_date),
            id=node.id,
        ),
        children=[to_render_tree(mentee) for mentee in node.mentees] or None,
    )


def build_organization_tree(
    forest: Forest,
    organization_name: Optional[str] = None,
    member_count: Optional[int] = None,
) -> RenderTreeNode:
    """Build the full displayed tree: a synthetic organization root whose
    children are the founder hierarchies.

    Unassigned members are not part of this tree; callers surface them
    separately.  ``member_count`` defaults to the number of members in
    the forest.
    """
    founder_trees = [to_render_tree(founder) for founder in forest.founders]

    if member_count is None:
        member_count = _count_members(forest)

    return RenderTreeNode(
        name=organization_name or DEFAULT_ORGANIZATION_NAME,
        attributes=RenderAttributes(
            isOrganization=True,
            memberCount=member_count,
            hierarchyCount=len(founder_trees),
        ),
        children=founder_trees or None,
    )


def _count_members(forest: Forest) -> int:
    count = 0
    stack = list(forest.all_roots)
    while stack:
        node = stack.pop()
        count += 1
        stack.extend(node.mentees)
    return count
