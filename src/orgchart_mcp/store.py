"""
Member store for OrgChart-MCP.

The store owns the loaded roster of one organization at a time and is the
only place member mutations are issued from.  The hierarchy engine never
talks to a backend directly: it subscribes to the store and rebuilds
whenever the ``members`` list is replaced.

Two disciplines are enforced here once, instead of per call site:

  - Fetch deduplication: concurrent ``fetch_members`` calls for the same
    organization share one in-flight request, tracked in a map owned by
    the store.  Every mentor update starts a new generation; a fetch from
    an older generation is neither joined nor applied.
  - Optimistic update with rollback: ``attempt()`` applies the expected
    state, performs the network call, and restores the snapshot if the
    call fails.

``members`` is always replaced by a new list, never modified in place, so
listeners can detect changes by identity.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Protocol

import aiohttp

from .models import Member, MutationResult
from .parser import parse_member

logger = logging.getLogger(__name__)


class MemberStoreError(Exception):
    """Raised when the member backend cannot return a roster."""


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------

class MemberBackend(Protocol):
    """Network/data layer the store talks to."""

    async def fetch_members(self, organization_id: str) -> list[Member]:
        ...

    async def update_mentor(self, member_id: str, mentor_id: Optional[str]) -> MutationResult:
        ...


class InMemoryMemberBackend:
    """Backend holding rosters in memory, keyed by organization id."""

    def __init__(self, rosters: Optional[dict[str, list[Member]]] = None):
        self._rosters: dict[str, dict[str, Member]] = {
            organization_id: {member.id: member for member in members}
            for organization_id, members in (rosters or {}).items()
        }
        self.mutation_count = 0

    async def fetch_members(self, organization_id: str) -> list[Member]:
        return list(self._rosters.get(organization_id, {}).values())

    async def update_mentor(self, member_id: str, mentor_id: Optional[str]) -> MutationResult:
        self.mutation_count += 1
        for roster in self._rosters.values():
            member = roster.get(member_id)
            if member is not None:
                roster[member_id] = member.model_copy(update={"mentor_id": mentor_id})
                return MutationResult(success=True)
        return MutationResult(success=False, message=f"Member {member_id} not found")


class GraphQLMemberBackend:
    """Backend talking to the organization GraphQL endpoint over aiohttp."""

    QUERIES = {
        "GET_MEMBERS": """
query GetOrganizationMembers($orgId: uuid!) {
  karlo_organization_members(where: {organization_id: {_eq: $orgId}}, order_by: {joining_date: asc}) {
    id
    user_id
    role
    mentor_id
    joining_date
    designation
    is_intern
    auth_fullname {
      fullname
    }
  }
}
""",
        "UPDATE_MEMBER_MENTOR": """
mutation UpdateMemberMentor($id: uuid!, $mentor_id: uuid) {
  update_karlo_organization_members_by_pk(
    pk_columns: {id: $id},
    _set: {mentor_id: $mentor_id}
  ) {
    id
    mentor_id
  }
}
""",
    }

    def __init__(self, url: str, token: str = "", timeout: float = 15.0):
        self.url = url
        self.token = token
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def _request(self, query: str, variables: dict) -> tuple[Optional[dict], Optional[str]]:
        """POST a GraphQL request; returns ``(data, error)``."""
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        status = None
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(
                    self.url,
                    json={"query": query, "variables": variables},
                    headers=headers,
                ) as response:
                    status = response.status
                    payload = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            return None, f"Network error: {e}"
        except ValueError as e:
            return None, f"Invalid response (HTTP {status}): {e}"

        if not isinstance(payload, dict):
            return None, f"Unexpected response (HTTP {status})"

        errors = payload.get("errors")
        if errors:
            first = errors[0] if isinstance(errors, list) else errors
            message = first.get("message") if isinstance(first, dict) else None
            return None, message or "GraphQL error"

        data = payload.get("data")
        return (data if isinstance(data, dict) else None), None

    async def fetch_members(self, organization_id: str) -> list[Member]:
        data, error = await self._request(self.QUERIES["GET_MEMBERS"], {"orgId": organization_id})
        if error:
            raise MemberStoreError(error)
        records = (data or {}).get("karlo_organization_members") or []
        try:
            return [parse_member(record) for record in records]
        except ValueError as e:
            raise MemberStoreError(f"Malformed member record: {e}") from e

    async def update_mentor(self, member_id: str, mentor_id: Optional[str]) -> MutationResult:
        data, error = await self._request(
            self.QUERIES["UPDATE_MEMBER_MENTOR"],
            {"id": member_id, "mentor_id": mentor_id or None},
        )
        if error:
            return MutationResult(success=False, message=error)
        if data and data.get("update_karlo_organization_members_by_pk"):
            return MutationResult(success=True)
        return MutationResult(success=False, message="Failed to update mentor")


# ---------------------------------------------------------------------------
# Optimistic update
# ---------------------------------------------------------------------------

async def attempt(
    optimistic_update: Callable[[], None],
    network_call: Callable[[], Awaitable[MutationResult]],
    rollback: Callable[[], None],
) -> MutationResult:
    """Apply ``optimistic_update``, run ``network_call``, roll back on failure.

    A failed result and an exception both restore the snapshot; the
    exception is re-raised.
    """
    optimistic_update()
    try:
        result = await network_call()
    except BaseException:
        rollback()
        raise
    if not result.success:
        rollback()
    return result


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

Listener = Callable[[list[Member]], None]


class MemberStore:
    """Roster state for the currently loaded organization."""

    def __init__(self, backend: MemberBackend):
        self.backend = backend
        self.members: list[Member] = []
        self.is_loading = False
        self.error: Optional[str] = None
        # organization id -> (task, mutation generation the fetch started in)
        self._in_flight: dict[str, tuple[asyncio.Task, int]] = {}
        self._generation = 0
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with the new roster on every change; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_members(self, members: list[Member]) -> None:
        self.members = list(members)
        for listener in list(self._listeners):
            listener(self.members)

    def clear_error(self) -> None:
        self.error = None

    async def fetch_members(self, organization_id: str) -> None:
        """Load the roster; concurrent calls for one organization share a request.

        A fetch that started before the latest mentor update is never
        joined, and its result is discarded, so a refetch after a mutation
        always reflects the mutation.
        """
        entry = self._in_flight.get(organization_id)
        if entry is not None and entry[1] == self._generation:
            logger.debug(f"Joining in-flight member fetch for {organization_id}")
            task = entry[0]
        else:
            task = asyncio.ensure_future(self._fetch(organization_id, self._generation))
            self._in_flight[organization_id] = (task, self._generation)
        await task

    async def _fetch(self, organization_id: str, generation: int) -> None:
        self.is_loading = True
        self.error = None
        try:
            members = await self.backend.fetch_members(organization_id)
        except MemberStoreError as e:
            if generation == self._generation:
                logger.error(f"Error fetching members for {organization_id}: {e}")
                self.error = str(e)
            return
        finally:
            entry = self._in_flight.get(organization_id)
            if entry is not None and entry[0] is asyncio.current_task():
                del self._in_flight[organization_id]
            self.is_loading = bool(self._in_flight)

        if generation != self._generation:
            logger.debug(f"Discarding member fetch for {organization_id} started before a mentor update")
            return
        self._set_members(members)

    async def update_mentor(self, member_id: str, mentor_id: Optional[str]) -> MutationResult:
        """Set or clear (``mentor_id=None``) a member's mentor."""
        self.error = None
        self._generation += 1
        mentor_id = mentor_id or None
        previous = self.members

        def optimistic_update():
            self._set_members([
                member.model_copy(update={"mentor_id": mentor_id}) if member.id == member_id else member
                for member in previous
            ])

        def rollback():
            self._set_members(previous)

        result = await attempt(
            optimistic_update,
            lambda: self.backend.update_mentor(member_id, mentor_id),
            rollback,
        )
        if not result.success:
            self.error = result.message or "Failed to update mentor"
            logger.warning(f"Mentor update for {member_id} failed: {self.error}")
        return result
