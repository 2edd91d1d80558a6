"""Tests for the MCP tool surface over an in-process Coordinator."""

import pytest

from fastmcp import Client

from briefing.common.config import BriefingConfig
from briefing.common.fetchers import StaticDomainFetcher
from briefing.common.schemas import Domain
from briefing.common.store import InMemorySessionStore
from briefing.mcp.server import MCPServerApp

ISSUES = {
    "assigned_issues": [{
        "key": "JIRA-55",
        "fields": {
            "summary": "Fix login timeout",
            "priority": {"name": "Highest"},
            "status": {"name": "In Progress"},
            "issuetype": {"name": "Bug"},
        },
    }],
}

MESSAGES = {
    "messages": [{"id": "E1", "subject": "Status of JIRA-55?", "from": "pm@corp.io", "unread": True}],
}


def _data(result):
    return getattr(result, "data", None) or getattr(result, "structured", None) \
        or getattr(result, "structured_content", None)


@pytest.fixture
def mcp_server(now):
    """
    FastMCP instance over a fast-mode Coordinator fed by static payloads.
    """
    from briefing.coordinator import build_coordinator

    def broken(user_id):
        raise RuntimeError("calendar offline")

    config = BriefingConfig()
    config.agents.worker_mode = "fast"
    config.agents.synthesis_mode = "fallback"
    coordinator = build_coordinator(
        config,
        store=InMemorySessionStore(),
        fetchers={
            Domain.ISSUE_TRACKER: StaticDomainFetcher(Domain.ISSUE_TRACKER, ISSUES),
            Domain.MESSAGING: StaticDomainFetcher(Domain.MESSAGING, MESSAGES),
            Domain.SCHEDULING: StaticDomainFetcher(Domain.SCHEDULING, broken),
        },
        clock=lambda: now,
    )
    app = MCPServerApp(coordinator=coordinator, mcp_server_name="test-mcp")
    return app.mcp


@pytest.mark.asyncio
async def test_tools_registered(mcp_server):
    async with Client(mcp_server) as client:
        names = {t.name for t in await client.list_tools()}
    assert names == {"generate_brief", "get_findings", "get_correlations"}


@pytest.mark.asyncio
async def test_generate_brief(mcp_server):
    async with Client(mcp_server) as client:
        result = await client.call_tool("generate_brief", {"user_id": "u1", "session_id": "s1", "as_text": True})
        data = _data(result)

    assert data is not None, "No data returned from tool call"
    assert data.get("ok") is True
    assert data["session_id"] == "s1"
    assert data["failed_domains"] == ["scheduling"]
    sections = {s["type"]: s for s in data["results"]["sections"]}
    assert sections["critical"]["items"][0]["sourceId"] == "JIRA-55"
    assert "JIRA-55" in data["text"]


@pytest.mark.asyncio
async def test_generate_brief_requires_user(mcp_server):
    async with Client(mcp_server) as client:
        data = _data(await client.call_tool("generate_brief", {"user_id": "  "}))
    assert data.get("ok") is False
    assert data["error"] == "user_id is required."


@pytest.mark.asyncio
async def test_findings_and_correlations_after_run(mcp_server):
    async with Client(mcp_server) as client:
        await client.call_tool("generate_brief", {"user_id": "u1", "session_id": "s1"})

        findings = _data(await client.call_tool("get_findings", {"session_id": "s1"}))
        one = _data(await client.call_tool("get_findings", {"session_id": "s1", "domain": "messaging"}))
        bad = _data(await client.call_tool("get_findings", {"session_id": "s1", "domain": "fax"}))
        strong = _data(await client.call_tool("get_correlations", {"session_id": "s1", "min_confidence": 0.9}))

    assert findings["ok"] is True
    assert set(findings["results"]) == {"issue-tracker", "messaging"}
    assert list(one["results"]) == ["messaging"]
    assert bad["ok"] is False
    assert "Unknown domain" in bad["error"]
    assert strong["ok"] is True
    assert strong["results"]
    assert all(c["confidence"] >= 0.9 for c in strong["results"])
    assert all(c["type"] == "explicit" for c in strong["results"])


@pytest.mark.asyncio
async def test_unknown_session_is_empty(mcp_server):
    async with Client(mcp_server) as client:
        data = _data(await client.call_tool("get_correlations", {"session_id": "nope"}))
    assert data == {"ok": True, "results": []}
