"""OrgChart-MCP server — MCP tools for building and rendering org charts."""

from __future__ import annotations

import json
import logging
import uuid
from typing import Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, ImageContent, Tool

from . import config
from .chart import OrgChart
from .geometry import ContainerSize
from .mentor import MentorAssignmentWorkflow
from .models import HierarchyNode
from .optimize import OptimizeOptions
from .parser import parse_organization_name, parse_roster, roster_to_yaml
from .renderer import OrgChartRenderer
from .store import GraphQLMemberBackend, InMemoryMemberBackend, MemberStore

logger = logging.getLogger(__name__)

# Organization id used for rosters passed inline to a tool call
INLINE_ORGANIZATION = "inline"

ROSTER_DESCRIPTION = (
    "YAML or JSON roster. Either a list of members or a mapping with an optional "
    "'organization' name and a 'members' list. Example:\n"
    "organization: Acme\n"
    "members:\n"
    "  - id: a1\n"
    "    display_name: Ada Lovelace\n"
    "    role: admin\n"
    "    designation: CTO\n"
    "  - id: b2\n"
    "    display_name: Charles Babbage\n"
    "    role: member\n"
    "    mentor_id: a1\n"
    "    joining_date: 2023-01-15\n"
)

server = Server("orgchart-mcp")


def _ensure_output_dir():
    config.OUTPUT_DIR.mkdir(parents=True, exist_ok=True)


# --- Tool definitions ---

@server.list_tools()
async def list_tools() -> list[Tool]:
    return [
        Tool(
            name="render_org_chart",
            description=(
                "Render an organization chart from a member roster. Members are "
                "arranged under their mentors; members without a mentor relationship "
                "are listed in an 'unassigned' strip. Returns the path to the PNG."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "roster": {"type": "string", "description": ROSTER_DESCRIPTION},
                    "organization": {
                        "type": "string",
                        "description": "Organization name for the root node (overrides the roster).",
                    },
                    "scale": {
                        "type": "number",
                        "description": "Render scale factor (default 2.0 for crisp output)",
                        "default": 2.0,
                    },
                    "theme": {
                        "type": "string",
                        "enum": ["light", "dark"],
                        "description": "Color theme (default from ORGCHART_THEME, else 'light').",
                    },
                    "filename": {
                        "type": "string",
                        "description": "Output filename (without extension). Default: auto-generated.",
                    },
                    "viewport_width": {
                        "type": "number",
                        "description": "Render only a viewport of this width (pixels).",
                    },
                    "viewport_height": {
                        "type": "number",
                        "description": "Render only a viewport of this height (pixels).",
                    },
                    "fit_to_screen": {
                        "type": "boolean",
                        "description": (
                            "With a viewport: fit the whole tree into it (never zooming "
                            "above 1x). Otherwise the root is centered near the top at "
                            "the default zoom. Default: true."
                        ),
                        "default": True,
                    },
                },
                "required": ["roster"],
            },
        ),
        Tool(
            name="build_org_tree",
            description=(
                "Build the hierarchy for a roster and return it as a JSON render tree "
                "(name/attributes/children) plus the unassigned members and any "
                "mentor cycles that were broken up."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "roster": {"type": "string", "description": ROSTER_DESCRIPTION},
                    "organization": {"type": "string", "description": "Organization name for the root node."},
                    "group_threshold": {
                        "type": "integer",
                        "description": "Group sibling sets larger than this into team nodes.",
                    },
                    "max_depth": {
                        "type": "integer",
                        "description": "Collapse the tree below this depth.",
                    },
                },
                "required": ["roster"],
            },
        ),
        Tool(
            name="fit_to_screen",
            description=(
                "Compute the zoom and translate that fit a roster's chart inside a "
                "viewport of the given size."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "roster": {"type": "string", "description": ROSTER_DESCRIPTION},
                    "container_width": {"type": "number"},
                    "container_height": {"type": "number"},
                },
                "required": ["roster", "container_width", "container_height"],
            },
        ),
        Tool(
            name="assign_mentor",
            description=(
                "Assign a mentor to a member of the roster. Returns the result, the "
                "updated roster YAML and the new chart summary."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "roster": {"type": "string", "description": ROSTER_DESCRIPTION},
                    "member_id": {"type": "string"},
                    "mentor_id": {"type": "string"},
                },
                "required": ["roster", "member_id", "mentor_id"],
            },
        ),
        Tool(
            name="remove_mentor",
            description="Clear a member's mentor. Returns the result and the updated roster YAML.",
            inputSchema={
                "type": "object",
                "properties": {
                    "roster": {"type": "string", "description": ROSTER_DESCRIPTION},
                    "member_id": {"type": "string"},
                },
                "required": ["roster", "member_id"],
            },
        ),
        Tool(
            name="load_organization",
            description=(
                "Fetch an organization's members from the configured GraphQL "
                "endpoint and return them as roster YAML for the other tools."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "organization_id": {"type": "string"},
                    "organization": {"type": "string", "description": "Organization name for the roster."},
                },
                "required": ["organization_id"],
            },
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent | ImageContent]:
    if name == "render_org_chart":
        return await _render_org_chart(arguments)
    elif name == "build_org_tree":
        return await _build_org_tree(arguments)
    elif name == "fit_to_screen":
        return await _fit_to_screen(arguments)
    elif name == "assign_mentor":
        return await _change_mentor(arguments, remove=False)
    elif name == "remove_mentor":
        return await _change_mentor(arguments, remove=True)
    elif name == "load_organization":
        return await _load_organization(arguments)
    else:
        return [TextContent(type="text", text=f"Unknown tool: {name}")]


def _text(payload: dict) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(payload))]


def _load_chart(args: dict, optimize_options: Optional[OptimizeOptions] = None) -> OrgChart:
    roster = args["roster"]
    members = parse_roster(roster)
    organization = args.get("organization") or parse_organization_name(roster)
    return OrgChart(organization, members, optimize_options=optimize_options)


def _member_summary(node: HierarchyNode) -> dict:
    return {
        "id": node.id,
        "name": node.get_label(),
        "designation": node.designation,
        "mentor_id": node.mentor_id,
        "mentees": len(node.mentees),
    }


async def _render_org_chart(args: dict) -> list[TextContent]:
    """Render a roster to PNG."""
    _ensure_output_dir()

    try:
        chart = _load_chart(args)
    except ValueError as e:
        return [TextContent(type="text", text=f"Failed to parse roster: {e}")]

    scale = args.get("scale", 2.0)
    theme = args.get("theme") or config.DEFAULT_THEME
    filename = args.get("filename", str(uuid.uuid4())[:8])
    output_path = str(config.OUTPUT_DIR / f"{filename}.png")

    viewport = None
    if args.get("viewport_width") and args.get("viewport_height"):
        container = ContainerSize(args["viewport_width"], args["viewport_height"])
        viewport = (int(container.width), int(container.height))
        if args.get("fit_to_screen", True):
            chart.fit_to_screen(container)
        else:
            chart.mount(container)

    try:
        renderer = OrgChartRenderer(scale=scale, theme=theme)
        renderer.render(
            chart.tree,
            output_path=output_path,
            viewport=viewport,
            geometry=chart.geometry.state,
            unassigned=chart.unassigned,
            title=None if viewport else chart.organization_name,
        )
    except (ValueError, OSError) as e:
        logger.error(f"Rendering failed: {e}")
        return [TextContent(type="text", text=f"Rendering failed: {e}")]

    return _text({
        "status": "success",
        "path": output_path,
        "summary": chart.summary(),
        "members": len(chart.members),
        "hierarchies": len(chart.forest.founders),
        "unassigned": len(chart.unassigned),
        "zoom": chart.geometry.zoom if viewport else None,
    })


async def _build_org_tree(args: dict) -> list[TextContent]:
    """Return the render tree and classification as JSON."""
    options = OptimizeOptions(
        group_threshold=args.get("group_threshold"),
        max_depth=args.get("max_depth"),
    )
    try:
        chart = _load_chart(args, optimize_options=options)
    except ValueError as e:
        return [TextContent(type="text", text=f"Failed to parse roster: {e}")]

    return _text({
        "status": "success",
        "summary": chart.summary(),
        "tree": chart.tree.to_dict() if chart.tree else None,
        "unassigned": [_member_summary(node) for node in chart.unassigned],
        "cycles": chart.forest.cycles,
    })


async def _fit_to_screen(args: dict) -> list[TextContent]:
    """Compute the fit-to-screen geometry for a roster."""
    try:
        chart = _load_chart(args)
    except ValueError as e:
        return [TextContent(type="text", text=f"Failed to parse roster: {e}")]

    state = chart.fit_to_screen(ContainerSize(args["container_width"], args["container_height"]))
    return _text({
        "status": "success",
        "zoom": state.zoom,
        "translate": {"x": state.translate.x, "y": state.translate.y},
        "bounds": None if chart.bounds is None else {
            "x": chart.bounds.x,
            "y": chart.bounds.y,
            "width": chart.bounds.width,
            "height": chart.bounds.height,
        },
    })


async def _change_mentor(args: dict, remove: bool) -> list[TextContent]:
    """Assign or remove a mentor on an inline roster and return the new roster."""
    roster = args["roster"]
    try:
        members = parse_roster(roster)
        organization = parse_organization_name(roster)
    except ValueError as e:
        return [TextContent(type="text", text=f"Failed to parse roster: {e}")]

    notifications: list[dict] = []
    store = MemberStore(InMemoryMemberBackend({INLINE_ORGANIZATION: members}))
    await store.fetch_members(INLINE_ORGANIZATION)

    chart = OrgChart(organization)
    chart.bind_store(store)

    workflow = MentorAssignmentWorkflow(
        store,
        INLINE_ORGANIZATION,
        notify=lambda kind, title, message: notifications.append(
            {"kind": kind, "title": title, "message": message}
        ),
    )

    try:
        if remove:
            result = await workflow.remove(args["member_id"])
        else:
            result = await workflow.assign(args["member_id"], args["mentor_id"])
    except ValueError as e:
        return [TextContent(type="text", text=f"Mentor update rejected: {e}")]

    return _text({
        "status": "success" if result.success else "error",
        "message": result.message,
        "notifications": notifications,
        "summary": chart.summary(),
        "roster": roster_to_yaml(store.members, organization),
    })


async def _load_organization(args: dict) -> list[TextContent]:
    """Fetch a roster from the GraphQL backend."""
    if not config.GRAPHQL_URL:
        return [TextContent(type="text", text="No GraphQL endpoint configured (set ORGCHART_GRAPHQL_URL)")]

    organization_id = args["organization_id"]
    store = MemberStore(GraphQLMemberBackend(config.GRAPHQL_URL, config.GRAPHQL_TOKEN))
    await store.fetch_members(organization_id)
    if store.error:
        return [TextContent(type="text", text=f"Failed to load organization: {store.error}")]

    organization = args.get("organization")
    chart = OrgChart(organization, store.members)
    return _text({
        "status": "success",
        "summary": chart.summary(),
        "roster": roster_to_yaml(store.members, organization),
    })


def main():
    """Entry point for the MCP server."""
    import asyncio
    config.configure_logging()
    asyncio.run(_run())


async def _run():
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


if __name__ == "__main__":
    main()
