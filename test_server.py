"""Tests for the MCP tool handlers."""

import asyncio
import json

import pytest
import yaml
from PIL import Image

from orgchart_mcp import config, server

ROSTER = """
organization: Acme
members:
  - id: a
    display_name: Ada Lovelace
    role: admin
    designation: CTO
  - id: b
    display_name: Bob Stone
    mentor_id: a
  - id: c
    display_name: Cy Young
    mentor_id: b
  - id: d
    display_name: Dee Loose
"""


def _call(name, arguments):
    return asyncio.run(server.call_tool(name, arguments))


def _payload(result):
    return json.loads(result[0].text)


@pytest.fixture
def output_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "OUTPUT_DIR", tmp_path / "charts")
    return tmp_path / "charts"


def test_list_tools():
    tools = asyncio.run(server.list_tools())
    assert {tool.name for tool in tools} == {
        "render_org_chart",
        "build_org_tree",
        "fit_to_screen",
        "assign_mentor",
        "remove_mentor",
        "load_organization",
    }


def test_render_org_chart(output_dir):
    payload = _payload(_call("render_org_chart", {"roster": ROSTER, "filename": "acme", "scale": 1.0}))
    assert payload["status"] == "success"
    assert payload["path"] == str(output_dir / "acme.png")
    assert (output_dir / "acme.png").read_bytes()[:4] == b"\x89PNG"
    assert payload["summary"] == "4 members - 1 unassigned"
    assert payload["zoom"] is None


def test_render_viewport_fits_tree(output_dir):
    payload = _payload(_call("render_org_chart", {
        "roster": ROSTER,
        "filename": "viewport",
        "scale": 1.0,
        "viewport_width": 400,
        "viewport_height": 300,
    }))
    assert payload["status"] == "success"
    assert 0.1 <= payload["zoom"] < 1


def test_render_bad_roster(output_dir):
    result = _call("render_org_chart", {"roster": ""})
    assert result[0].text.startswith("Failed to parse roster")


def test_render_empty_roster(output_dir):
    payload = _payload(_call("render_org_chart", {"roster": "[]", "filename": "empty", "scale": 1.0}))
    assert payload["status"] == "success"
    assert payload["summary"] == "0 members"
    assert payload["members"] == 0
    with Image.open(output_dir / "empty.png") as img:
        assert img.size == (600, 300)


def test_build_org_tree_for_empty_roster():
    payload = _payload(_call("build_org_tree", {"roster": "members: []"}))
    assert payload["tree"] is None
    assert payload["unassigned"] == []


def test_build_org_tree():
    payload = _payload(_call("build_org_tree", {"roster": ROSTER, "organization": "Override"}))
    tree = payload["tree"]
    assert tree["name"] == "Override"
    assert tree["attributes"]["isOrganization"] is True
    ada = tree["children"][0]
    assert ada["attributes"]["id"] == "a"
    cy = ada["children"][0]["children"][0]
    assert "children" not in cy
    assert [m["id"] for m in payload["unassigned"]] == ["d"]
    assert payload["cycles"] == []


def test_build_org_tree_reports_cycles():
    roster = "- {id: x, mentor_id: y}\n- {id: y, mentor_id: x}\n"
    payload = _payload(_call("build_org_tree", {"roster": roster}))
    assert payload["cycles"] == [["x", "y"]]
    assert payload["tree"]["name"] == "Organization"
    assert "children" not in payload["tree"]


def test_build_org_tree_with_depth_limit():
    payload = _payload(_call("build_org_tree", {"roster": ROSTER, "max_depth": 2}))
    bob = payload["tree"]["children"][0]["children"][0]
    assert bob["attributes"]["hiddenCount"] == 1
    assert "children" not in bob


def test_fit_to_screen():
    payload = _payload(_call("fit_to_screen", {
        "roster": ROSTER,
        "container_width": 5000,
        "container_height": 5000,
    }))
    assert payload["zoom"] == 1
    assert payload["bounds"]["width"] == 320
    assert payload["translate"]["x"] == 2500


def test_assign_mentor():
    payload = _payload(_call("assign_mentor", {"roster": ROSTER, "member_id": "d", "mentor_id": "a"}))
    assert payload["status"] == "success"
    assert payload["notifications"][0]["title"] == "Mentor assigned"
    assert payload["summary"] == "4 members"
    roster = yaml.safe_load(payload["roster"])
    assert roster["organization"] == "Acme"
    assert {m["id"]: m.get("mentor_id") for m in roster["members"]}["d"] == "a"


def test_assign_self_is_rejected():
    result = _call("assign_mentor", {"roster": ROSTER, "member_id": "d", "mentor_id": "d"})
    assert result[0].text.startswith("Mentor update rejected")


def test_assign_without_mentor_is_rejected():
    result = _call("assign_mentor", {"roster": ROSTER, "member_id": "d", "mentor_id": ""})
    assert result[0].text.startswith("Mentor update rejected")


def test_assign_unknown_member():
    payload = _payload(_call("assign_mentor", {"roster": ROSTER, "member_id": "zzz", "mentor_id": "a"}))
    assert payload["status"] == "error"
    assert payload["notifications"][0]["title"] == "Assignment failed"


def test_remove_mentor():
    payload = _payload(_call("remove_mentor", {"roster": ROSTER, "member_id": "b"}))
    assert payload["status"] == "success"
    assert payload["summary"] == "4 members - 2 unassigned"
    roster = yaml.safe_load(payload["roster"])
    assert "mentor_id" not in roster["members"][1]


def test_load_organization_requires_endpoint(monkeypatch):
    monkeypatch.setattr(config, "GRAPHQL_URL", "")
    result = _call("load_organization", {"organization_id": "org-1"})
    assert "ORGCHART_GRAPHQL_URL" in result[0].text


def test_unknown_tool():
    assert _call("nope", {})[0].text == "Unknown tool: nope"
