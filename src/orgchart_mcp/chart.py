"""
Org chart session: the page-level state behind one chart view.

Ties the pipeline together:

    roster -> build_forest -> build_organization_tree -> optimize_tree_layout

and keeps the viewport geometry and the selected member alongside it.
The derived trees are rebuilt only when the roster content changes, so
zoom and pan churn never triggers a rebuild, and a rebuild always finishes
before fit-to-screen measures the tree.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from .convert import build_organization_tree
from .geometry import ContainerSize, GeometryController, GeometryState
from .hierarchy import build_forest
from .models import Forest, HierarchyNode, Member, RenderTreeNode
from .optimize import OptimizeOptions, optimize_tree_layout
from .organize import ContainerBounds, compute_layout_bounds, layout_tree
from .store import MemberStore

logger = logging.getLogger(__name__)


def roster_key(members: Sequence[Member]) -> tuple:
    """Hashable content key of a roster, used to memoize rebuilds."""
    return tuple(
        (m.id, m.mentor_id, m.display_name, m.role, m.designation, m.joining_date)
        for m in members
    )


class OrgChart:
    """Derived hierarchy, viewport geometry and selection for one organization."""

    def __init__(
        self,
        organization_name: Optional[str] = None,
        members: Sequence[Member] = (),
        optimize_options: Optional[OptimizeOptions] = None,
        on_node_selected: Optional[Callable[[str], None]] = None,
    ):
        self.organization_name = organization_name
        self.optimize_options = optimize_options
        self.on_node_selected = on_node_selected
        self.geometry = GeometryController()
        self.selected_member_id: Optional[str] = None
        self.rebuild_count = 0

        self.members: list[Member] = []
        self.forest = Forest()
        self.tree: Optional[RenderTreeNode] = None
        self._key: Optional[tuple] = None
        self._bounds: Optional[ContainerBounds] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

        self.set_members(members)

    # --- Roster ---

    def set_members(self, members: Sequence[Member]) -> bool:
        """Adopt a new roster; returns True if the hierarchy was rebuilt."""
        members = list(members)
        key = roster_key(members)
        self.members = members
        if key == self._key:
            return False

        self._key = key
        self.forest = build_forest(members)
        if members:
            organization_tree = build_organization_tree(
                self.forest, self.organization_name, member_count=len(members),
            )
            self.tree = optimize_tree_layout(organization_tree, self.optimize_options)
        else:
            self.tree = None
        self._bounds = compute_layout_bounds(layout_tree(self.tree))
        self.rebuild_count += 1

        if self.selected_member_id and not any(m.id == self.selected_member_id for m in members):
            self.selected_member_id = None

        logger.debug(
            f"Rebuilt org chart: {len(members)} members, "
            f"{len(self.forest.founders)} hierarchies, {len(self.forest.unassigned)} unassigned"
        )
        return True

    def bind_store(self, store: MemberStore) -> None:
        """Rebuild from ``store`` now and whenever its roster changes."""
        self.unbind_store()
        self._unsubscribe = store.subscribe(self.set_members)
        self.set_members(store.members)

    def unbind_store(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    @property
    def unassigned(self) -> list[HierarchyNode]:
        return self.forest.unassigned

    @property
    def is_empty(self) -> bool:
        return self.tree is None

    def summary(self) -> str:
        """One-line header text, e.g. ``"12 members - 2 hierarchies - 3 unassigned"``."""
        parts = [f"{len(self.members)} members"]
        hierarchies = len(self.tree.children or []) if self.tree else 0
        if hierarchies > 1:
            parts.append(f"{hierarchies} hierarchies")
        if self.unassigned:
            parts.append(f"{len(self.unassigned)} unassigned")
        return " - ".join(parts)

    # --- Geometry ---

    @property
    def bounds(self) -> Optional[ContainerBounds]:
        return self._bounds

    def mount(self, container: ContainerSize) -> GeometryState:
        """Center the root near the top once a non-empty tree is shown."""
        if self.tree is None:
            return self.geometry.state
        return self.geometry.center_on_mount(container)

    def fit_to_screen(self, container: ContainerSize) -> GeometryState:
        return self.geometry.fit_to_screen(container, self._bounds)

    # --- Selection ---

    def select(self, member_id: str) -> None:
        self.selected_member_id = member_id
        if self.on_node_selected:
            self.on_node_selected(member_id)

    def clear_selection(self) -> None:
        self.selected_member_id = None

    @property
    def selected_member(self) -> Optional[Member]:
        return self._find(self.selected_member_id)

    @property
    def selected_member_mentor(self) -> Optional[Member]:
        member = self.selected_member
        return self._find(member.mentor_id) if member else None

    def _find(self, member_id: Optional[str]) -> Optional[Member]:
        if not member_id:
            return None
        return next((m for m in self.members if m.id == member_id), None)
