"""
Mentor assignment for OrgChart-MCP.

``MentorPicker`` is the searchable list of candidate mentors shown for one
member.  The member itself is never a candidate: self-mentorship is
rejected here, at the selection boundary, rather than in the hierarchy
builder.

``MentorAssignmentWorkflow`` issues the mutation through the member store
and then always refetches the roster, so the hierarchy is rebuilt from
fresh data whether the mutation succeeded or not.  The workflow keeps no
pending state of its own; mutations are issued once and never retried.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from .models import Member, MutationResult
from .store import MemberStore

logger = logging.getLogger(__name__)

# notify(kind, title, message) where kind is "success" or "error"
Notifier = Callable[[str, str, str], None]


class SelfMentorshipError(ValueError):
    """Raised when a member is chosen as their own mentor."""


class UnknownMemberError(ValueError):
    """Raised when a member id is not in the roster."""


class MentorPicker:
    """Candidate list and pending selection for one member's mentor."""

    def __init__(
        self,
        members: Sequence[Member],
        current_member_id: str,
        selected_mentor_id: Optional[str] = None,
    ):
        self.members = list(members)
        self.current_member_id = current_member_id
        self.selected_mentor_id = selected_mentor_id

    def candidates(self, search: str = "") -> list[Member]:
        """Every other member whose name, designation or role contains ``search``."""
        needle = search.strip().lower()
        result = []
        for member in self.members:
            if member.id == self.current_member_id:
                continue
            haystacks = (member.get_label(), member.designation or "", member.role)
            if not needle or any(needle in text.lower() for text in haystacks):
                result.append(member)
        return result

    def select(self, mentor_id: str) -> None:
        if mentor_id == self.current_member_id:
            raise SelfMentorshipError("A member cannot be their own mentor")
        if not any(member.id == mentor_id for member in self.members):
            raise UnknownMemberError(f"Unknown member: {mentor_id}")
        self.selected_mentor_id = mentor_id

    def clear(self) -> None:
        self.selected_mentor_id = None


class MentorAssignmentWorkflow:
    """Assigns and removes mentors, then triggers a roster refetch."""

    def __init__(
        self,
        store: MemberStore,
        organization_id: str,
        notify: Optional[Notifier] = None,
    ):
        self.store = store
        self.organization_id = organization_id
        self.notify = notify

    def _name(self, member_id: Optional[str], fallback: str) -> str:
        for member in self.store.members:
            if member.id == member_id:
                return member.get_label()
        return fallback

    def _emit(self, kind: str, title: str, message: str) -> None:
        logger.info(f"{title}: {message}")
        if self.notify:
            self.notify(kind, title, message)

    def open_picker(self, member_id: str) -> MentorPicker:
        current = next((m for m in self.store.members if m.id == member_id), None)
        return MentorPicker(
            self.store.members,
            member_id,
            selected_mentor_id=current.mentor_id if current else None,
        )

    async def confirm(self, picker: MentorPicker) -> Optional[MutationResult]:
        """Assign the picker's selection; does nothing when nothing is selected."""
        if not picker.selected_mentor_id:
            return None
        return await self.assign(picker.current_member_id, picker.selected_mentor_id)

    async def assign(self, member_id: str, mentor_id: str) -> MutationResult:
        if not mentor_id:
            raise UnknownMemberError("No mentor given; use remove() to clear a mentor")
        if mentor_id == member_id:
            raise SelfMentorshipError("A member cannot be their own mentor")

        result = await self.store.update_mentor(member_id, mentor_id)
        if result.success:
            self._emit(
                "success",
                "Mentor assigned",
                f"{self._name(mentor_id, 'Mentor')} has been assigned to {self._name(member_id, 'member')}",
            )
        else:
            self._emit("error", "Assignment failed", result.message or "Failed to assign mentor")

        await self.store.fetch_members(self.organization_id)
        return result

    async def remove(self, member_id: str) -> MutationResult:
        name = self._name(member_id, "member")
        result = await self.store.update_mentor(member_id, None)
        if result.success:
            self._emit("success", "Mentor removed", f"Mentor has been removed from {name}")
        else:
            self._emit("error", "Removal failed", result.message or "Failed to remove mentor")

        await self.store.fetch_members(self.organization_id)
        return result
