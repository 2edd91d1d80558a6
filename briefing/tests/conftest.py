"""Shared fixtures: a scripted reasoning engine and Findings builders."""

import itertools
from datetime import datetime, timezone

import pytest

from briefing.common.llm_client import LLMTurn, ToolCall
from briefing.common.schemas import ActionItem, Domain, Findings, PriorityItem

# Monday morning
NOW = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


class ScriptedLLM:
    """Replays a fixed list of turns and records every request it receives.

    An Exception in the script is raised instead of returned.
    """

    is_available = True

    def __init__(self, turns):
        self.turns = list(turns)
        self.requests = []

    async def complete(self, messages, *, tools=(), system=None, temperature=0.1, max_tokens=8000, timeout=120.0):
        self.requests.append({
            "messages": list(messages),
            "tools": [t.name for t in tools],
            "system": system,
        })
        if not self.turns:
            raise AssertionError("ScriptedLLM ran out of turns")
        turn = self.turns.pop(0)
        if isinstance(turn, Exception):
            raise turn
        return turn


_call_ids = itertools.count(1)


def tool_turn(*calls) -> LLMTurn:
    """calls are (name, arguments) pairs"""
    return LLMTurn(
        tool_calls=[ToolCall(id=f"call-{next(_call_ids)}", name=name, arguments=args) for name, args in calls],
        stop_reason="tool_use",
    )


def text_turn(text: str) -> LLMTurn:
    return LLMTurn(text=text, stop_reason="end_turn")


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def scripted_llm():
    """Factory: scripted_llm(turn, turn, ...)"""
    return lambda *turns: ScriptedLLM(turns)


@pytest.fixture
def turns():
    """Turn builders: turns.call((name, args), ...) and turns.text("...")"""
    class _Turns:
        call = staticmethod(tool_turn)
        text = staticmethod(text_turn)
    return _Turns


def _build_findings(domain, priority=(), actions=(), insights=(), timestamp=NOW):
    domain = Domain(domain)
    return Findings(
        domain=domain,
        timestamp=timestamp,
        summary=f"{domain.value} summary",
        priority_items=[
            PriorityItem(domain=domain, **dict({"priority": "high"}, **p)) for p in priority
        ],
        action_items=[ActionItem(**a) for a in actions],
        insights=list(insights),
    )


@pytest.fixture
def make_findings():
    """Factory: make_findings("issue-tracker", priority=[{"id": ..., "title": ...}], ...)"""
    return _build_findings
