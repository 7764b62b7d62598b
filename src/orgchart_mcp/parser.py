"""Roster parser for OrgChart-MCP.

Supports two formats (YAML, or JSON since JSON is a YAML subset):
1. A mapping with an optional ``organization`` name and a ``members`` list
2. A bare list of members

Each member entry may give its name as ``display_name``, ``displayName``,
or the nested ``auth_fullname: {fullname: ...}`` shape returned by the
members GraphQL query.
"""

from __future__ import annotations
from pathlib import Path
from typing import Optional

import yaml

from .models import Member


def parse_roster(roster_str: str) -> list[Member]:
    """Parse a YAML or JSON roster string into a list of members."""
    data = _load(roster_str)

    if isinstance(data, list):
        entries = data
    elif isinstance(data, dict):
        entries = data.get("members") or []
    else:
        raise ValueError("Roster must be a list of members or a mapping with 'members'")

    return [parse_member(entry) for entry in entries]


def parse_roster_file(path: str) -> list[Member]:
    """Parse a YAML or JSON roster file into a list of members."""
    content = Path(path).read_text()
    return parse_roster(content)


def parse_organization_name(roster_str: str) -> Optional[str]:
    """Return the ``organization`` name declared in a roster, if any."""
    data = _load(roster_str)
    if isinstance(data, dict):
        organization = data.get("organization")
        if isinstance(organization, dict):
            return organization.get("name")
        return organization
    return None


def _load(roster_str: str):
    data = yaml.safe_load(roster_str)
    if data is None:
        raise ValueError("Empty roster input")
    return data


def parse_member(data: dict) -> Member:
    """Parse a single member from roster data."""
    if not isinstance(data, dict) or "id" not in data:
        raise ValueError(f"Member entry must be a mapping with an 'id': {data!r}")

    name = data.get("display_name") or data.get("displayName")
    if not name and isinstance(data.get("auth_fullname"), dict):
        name = data["auth_fullname"].get("fullname")

    return Member(
        id=str(data["id"]),
        role=data.get("role") or "member",
        display_name=name or "",
        mentor_id=_optional_str(data.get("mentor_id")),
        designation=data.get("designation"),
        joining_date=_optional_str(data.get("joining_date")),
        user_id=_optional_str(data.get("user_id")),
        is_intern=bool(data.get("is_intern", False)),
    )


def _optional_str(value) -> Optional[str]:
    # YAML turns unquoted ISO dates into date objects
    if value is None or value == "":
        return None
    return value.isoformat() if hasattr(value, "isoformat") else str(value)


def roster_to_yaml(members: list[Member], organization: Optional[str] = None) -> str:
    """Serialize members back to the roster YAML format."""
    data: dict = {}
    if organization:
        data["organization"] = organization
    data["members"] = []

    for member in members:
        member_data = {
            "id": member.id,
            "display_name": member.display_name,
            "role": member.role,
        }
        if member.mentor_id:
            member_data["mentor_id"] = member.mentor_id
        if member.designation:
            member_data["designation"] = member.designation
        if member.joining_date:
            member_data["joining_date"] = member.joining_date
        if member.user_id:
            member_data["user_id"] = member.user_id
        if member.is_intern:
            member_data["is_intern"] = True

        data["members"].append(member_data)

    return yaml.dump(data, default_flow_style=False, sort_keys=False)
