"""Tests for the GraphQL member backend against a local aiohttp app."""

import asyncio
import json

import pytest
import yaml
from aiohttp import web
from aiohttp import test_utils

from orgchart_mcp import config, server
from orgchart_mcp.models import Member
from orgchart_mcp.store import GraphQLMemberBackend, MemberStore, MemberStoreError

MEMBER_RECORDS = [
    {
        "id": "m1",
        "user_id": "u1",
        "role": "admin",
        "mentor_id": None,
        "joining_date": "2023-01-15",
        "designation": "CTO",
        "is_intern": False,
        "auth_fullname": {"fullname": "Ada Lovelace"},
    },
    {
        "id": "m2",
        "user_id": "u2",
        "role": "member",
        "mentor_id": "m1",
        "joining_date": None,
        "designation": None,
        "is_intern": True,
        "auth_fullname": {"fullname": "Bob Stone"},
    },
]


class GraphQLEndpoint:
    """Serves one canned response and records every request it receives."""

    def __init__(self, payload=None, status=200, text=None, content_type="application/json"):
        self.payload = payload
        self.status = status
        self.text = text
        self.content_type = content_type
        self.requests = []

    async def handle(self, request):
        self.requests.append({
            "body": await request.json(),
            "authorization": request.headers.get("Authorization"),
        })
        if self.text is not None:
            return web.Response(status=self.status, text=self.text, content_type=self.content_type)
        return web.json_response(self.payload, status=self.status)


def _serve(endpoint, scenario):
    """Run ``scenario(url)`` while ``endpoint`` is listening on a local port."""

    async def run():
        app = web.Application()
        app.router.add_post("/graphql", endpoint.handle)
        test_server = test_utils.TestServer(app)
        await test_server.start_server()
        try:
            return await scenario(str(test_server.make_url("/graphql")))
        finally:
            await test_server.close()

    return asyncio.run(run())


def _fetch(endpoint, organization_id="org-1", token=""):
    return _serve(endpoint, lambda url: GraphQLMemberBackend(url, token).fetch_members(organization_id))


def _update(endpoint, member_id="m2", mentor_id="m1"):
    return _serve(endpoint, lambda url: GraphQLMemberBackend(url).update_mentor(member_id, mentor_id))


class TestFetchMembers:

    def test_success(self):
        endpoint = GraphQLEndpoint({"data": {"karlo_organization_members": MEMBER_RECORDS}})
        members = _fetch(endpoint, token="secret")

        assert [m.id for m in members] == ["m1", "m2"]
        assert members[0].display_name == "Ada Lovelace"
        assert members[0].joining_date == "2023-01-15"
        assert members[1].mentor_id == "m1"
        assert members[1].is_intern

        request = endpoint.requests[0]
        assert "GetOrganizationMembers" in request["body"]["query"]
        assert request["body"]["variables"] == {"orgId": "org-1"}
        assert request["authorization"] == "Bearer secret"

    def test_no_token_sends_no_authorization(self):
        endpoint = GraphQLEndpoint({"data": {"karlo_organization_members": []}})
        assert _fetch(endpoint) == []
        assert endpoint.requests[0]["authorization"] is None

    def test_graphql_errors_raise(self):
        endpoint = GraphQLEndpoint({"errors": [{"message": "field not found"}]})
        with pytest.raises(MemberStoreError, match="field not found"):
            _fetch(endpoint)

    def test_html_error_page_raises(self):
        endpoint = GraphQLEndpoint(status=502, text="<html>Bad Gateway</html>", content_type="text/html")
        with pytest.raises(MemberStoreError, match="Invalid response"):
            _fetch(endpoint)

    def test_malformed_record_raises(self):
        endpoint = GraphQLEndpoint({"data": {"karlo_organization_members": [{"role": "member"}]}})
        with pytest.raises(MemberStoreError, match="Malformed member record"):
            _fetch(endpoint)


class TestUpdateMentor:

    def test_success(self):
        endpoint = GraphQLEndpoint({"data": {"update_karlo_organization_members_by_pk": {"id": "m2", "mentor_id": "m1"}}})
        result = _update(endpoint)

        assert result.success
        body = endpoint.requests[0]["body"]
        assert "UpdateMemberMentor" in body["query"]
        assert body["variables"] == {"id": "m2", "mentor_id": "m1"}

    def test_remove_sends_null_mentor(self):
        endpoint = GraphQLEndpoint({"data": {"update_karlo_organization_members_by_pk": {"id": "m2", "mentor_id": None}}})
        assert _update(endpoint, mentor_id=None).success
        assert endpoint.requests[0]["body"]["variables"] == {"id": "m2", "mentor_id": None}

    def test_graphql_errors(self):
        endpoint = GraphQLEndpoint({"errors": [{"message": "permission denied"}]})
        result = _update(endpoint)
        assert not result.success
        assert result.message == "permission denied"

    def test_errors_without_message(self):
        endpoint = GraphQLEndpoint({"errors": [{}]})
        assert _update(endpoint).message == "GraphQL error"

    def test_null_pk_result(self):
        endpoint = GraphQLEndpoint({"data": {"update_karlo_organization_members_by_pk": None}})
        result = _update(endpoint)
        assert not result.success
        assert result.message == "Failed to update mentor"

    def test_html_error_page(self):
        endpoint = GraphQLEndpoint(status=502, text="<html>Bad Gateway</html>", content_type="text/html")
        result = _update(endpoint)
        assert not result.success
        assert result.message.startswith("Invalid response (HTTP 502)")

    def test_null_body(self):
        endpoint = GraphQLEndpoint(None)
        result = _update(endpoint)
        assert not result.success
        assert result.message.startswith("Unexpected response")

    def test_transport_error(self):
        backend = GraphQLMemberBackend("http://127.0.0.1:1/graphql", timeout=5.0)
        result = asyncio.run(backend.update_mentor("m2", "m1"))
        assert not result.success
        assert result.message.startswith("Network error")


class TestStoreOverGraphQL:

    def test_bad_gateway_rolls_back_optimistic_update(self):
        endpoint = GraphQLEndpoint(status=502, text="<html>Bad Gateway</html>", content_type="text/html")

        async def scenario(url):
            store = MemberStore(GraphQLMemberBackend(url))
            store.members = [Member(id="m1"), Member(id="m2")]
            result = await store.update_mentor("m2", "m1")
            return store, result

        store, result = _serve(endpoint, scenario)
        assert not result.success
        assert store.members[1].mentor_id is None
        assert store.error.startswith("Invalid response")

    def test_fetch_failure_is_recorded(self):
        endpoint = GraphQLEndpoint(None)

        async def scenario(url):
            store = MemberStore(GraphQLMemberBackend(url))
            await store.fetch_members("org-1")
            return store

        store = _serve(endpoint, scenario)
        assert store.members == []
        assert store.error.startswith("Unexpected response")
        assert not store.is_loading


class TestLoadOrganizationTool:

    def test_roster_from_endpoint(self, monkeypatch):
        endpoint = GraphQLEndpoint({"data": {"karlo_organization_members": MEMBER_RECORDS}})

        async def scenario(url):
            monkeypatch.setattr(config, "GRAPHQL_URL", url)
            monkeypatch.setattr(config, "GRAPHQL_TOKEN", "")
            return await server.call_tool("load_organization", {"organization_id": "org-1", "organization": "Acme"})

        payload = json.loads(_serve(endpoint, scenario)[0].text)
        assert payload["status"] == "success"
        assert payload["summary"] == "2 members"
        roster = yaml.safe_load(payload["roster"])
        assert roster["organization"] == "Acme"
        assert [m["id"] for m in roster["members"]] == ["m1", "m2"]

    def test_endpoint_failure(self, monkeypatch):
        endpoint = GraphQLEndpoint({"errors": [{"message": "organization not found"}]})

        async def scenario(url):
            monkeypatch.setattr(config, "GRAPHQL_URL", url)
            return await server.call_tool("load_organization", {"organization_id": "missing"})

        result = _serve(endpoint, scenario)
        assert result[0].text == "Failed to load organization: organization not found"
