"""
Data models for OrgChart-MCP — members, hierarchy nodes and render trees.

The engine works on three shapes of data:

    Member          — a flat roster record, as loaded from the member store
    HierarchyNode   — a Member plus the list of its direct mentees
    RenderTreeNode  — a library-agnostic ``name / attributes / children`` tree

Members point upward through ``mentor_id``.  The hierarchy builder turns
those upward pointers into downward ``mentees`` lists, and the converter
turns the resulting forest into render trees that any drawing surface
(the Pillow renderer, an SVG front-end, a text dump) can consume.

Hierarchy nodes and render trees are derived data: they are rebuilt from
scratch every time the roster changes and are never patched in place.
"""

from __future__ import annotations
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Member (input)
# ---------------------------------------------------------------------------

class Member(BaseModel):
    """A member of an organization.

    Mentorship
    ----------
    ``mentor_id`` is the id of another member of the same organization.  It
    may be absent (no mentor), or it may reference an id that is not in the
    current roster (a *dangling* reference).  Both are normal data.

    Naming
    ------
    ``display_name`` also accepts the ``displayName`` spelling used by the
    web client.  ``get_label()`` returns the name, or ``"Unknown"`` when the
    member has none.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str
    role: str = "member"
    display_name: str = Field(default="", alias="displayName")
    mentor_id: Optional[str] = None
    designation: Optional[str] = None
    joining_date: Optional[str] = None
    user_id: Optional[str] = None
    is_intern: bool = False

    @field_validator("mentor_id", mode="before")
    @classmethod
    def blank_mentor_is_none(cls, value):
        # An empty mentor id means "no mentor", not a dangling reference
        return value or None

    def get_label(self) -> str:
        """Get the display name, falling back to ``"Unknown"``."""
        return self.display_name if self.display_name else "Unknown"


# ---------------------------------------------------------------------------
# Hierarchy (derived)
# ---------------------------------------------------------------------------

class HierarchyNode(Member):
    """A member together with its direct mentees.

    Exactly one node exists per member, and every node is attached to at
    most one parent, so a node's ``mentees`` list is owned by that node alone.
    """
    mentees: list[HierarchyNode] = Field(default_factory=list)

    @classmethod
    def from_member(cls, member: Member) -> HierarchyNode:
        return cls(**member.model_dump(), mentees=[])


class Forest(BaseModel):
    """The classified result of building hierarchies from a roster.

    Attributes:
        founders:   Roots without a mentor that have at least one mentee.
        unassigned: Roots with no supervisory relationship, roots whose
                    mentor cannot be resolved, and members of mentor cycles.
        all_roots:  Every root in roster order (founders and unassigned).
        cycles:     Member ids of each mentor cycle that was broken up.
    """
    founders: list[HierarchyNode] = Field(default_factory=list)
    unassigned: list[HierarchyNode] = Field(default_factory=list)
    all_roots: list[HierarchyNode] = Field(default_factory=list)
    cycles: list[list[str]] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.all_roots


# ---------------------------------------------------------------------------
# Render tree (output)
# ---------------------------------------------------------------------------

class RenderAttributes(BaseModel):
    """Display attributes attached to a render tree node.

    Member nodes carry ``designation``, ``role``, ``joining_date`` and ``id``.
    The synthetic organization root carries ``isOrganization``,
    ``memberCount`` and ``hierarchyCount``.  Nodes produced by the layout
    optimizer carry ``isGroup`` or ``hiddenCount``.
    """
    designation: Optional[str] = None
    role: Optional[str] = None
    joining_date: Optional[str] = None
    id: Optional[str] = None
    isOrganization: Optional[bool] = None
    memberCount: Optional[int] = None
    hierarchyCount: Optional[int] = None
    isGroup: Optional[bool] = None
    hiddenCount: Optional[int] = None


class RenderTreeNode(BaseModel):
    """A node of the renderable tree.

    ``children`` is ``None`` for a leaf, never an empty list; renderers
    branch on that to decide whether a node has descendants.
    """
    name: str
    attributes: Optional[RenderAttributes] = None
    children: Optional[list[RenderTreeNode]] = None

    def is_leaf(self) -> bool:
        return self.children is None

    @property
    def member_id(self) -> Optional[str]:
        return self.attributes.id if self.attributes else None

    @property
    def is_organization(self) -> bool:
        return bool(self.attributes and self.attributes.isOrganization)

    @property
    def is_group(self) -> bool:
        return bool(self.attributes and self.attributes.isGroup)

    def to_dict(self) -> dict[str, Any]:
        """Serialize without unset keys, so a leaf has no ``children`` key."""
        return self.model_dump(exclude_none=True)


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

class MutationResult(BaseModel):
    """Outcome of a member mutation as reported by the data layer."""
    success: bool
    message: Optional[str] = None
