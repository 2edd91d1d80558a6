"""Tests for LLMClient provider abstraction."""

import json

import pytest

from briefing.common.llm_client import (
    ChatMessage,
    LLMClient,
    LLMTurn,
    ToolCall,
    ToolResult,
    to_anthropic_messages,
    to_openai_messages,
)


class TestLLMClientInit:
    def test_missing_anthropic_key_logs_info(self, caplog):
        import logging
        with caplog.at_level(logging.INFO, logger="briefing.common.llm_client"):
            client = LLMClient(provider="anthropic")
        assert not client.is_available
        assert "API key not provided" in caplog.text

    def test_missing_openai_key_logs_info(self, caplog):
        import logging
        with caplog.at_level(logging.INFO, logger="briefing.common.llm_client"):
            client = LLMClient(provider="openai")
        assert not client.is_available
        assert "API key not provided" in caplog.text

    def test_unsupported_provider_logs_warning(self, caplog):
        import logging
        with caplog.at_level(logging.WARNING, logger="briefing.common.llm_client"):
            client = LLMClient(provider="unsupported_xyz")
        assert not client.is_available
        assert "Unsupported" in caplog.text

    def test_from_config_picks_provider_model(self):
        from briefing.common.config import LLMConfig
        client = LLMClient.from_config(LLMConfig(provider="openai", openai_model="gpt-4o"))
        assert client.provider == "openai"
        assert client.model == "gpt-4o"
        assert not client.is_available


class TestLLMClientComplete:
    @pytest.mark.asyncio
    async def test_complete_raises_when_unavailable(self):
        from briefing.common.errors import LLMUnavailableError
        client = LLMClient(provider="anthropic")
        with pytest.raises(LLMUnavailableError, match="not available"):
            await client.complete([ChatMessage(role="user", content="hi")])

    @pytest.mark.asyncio
    async def test_generate_raises_when_unavailable(self):
        from briefing.common.errors import LLMUnavailableError
        client = LLMClient(provider="openai")
        with pytest.raises(LLMUnavailableError):
            await client.generate("hi")


class TestLLMTurn:
    def test_terminal_without_tool_calls(self):
        assert LLMTurn(text="done").is_terminal
        assert not LLMTurn(tool_calls=[ToolCall(id="1", name="x")]).is_terminal


def _transcript():
    return [
        ChatMessage(role="user", content="Analyze"),
        ChatMessage(
            role="assistant",
            content="Fetching",
            tool_calls=[ToolCall(id="c1", name="fetch_message_data", arguments={"limit": 5})],
        ),
        ChatMessage(
            role="tool",
            tool_results=[ToolResult(call_id="c1", name="fetch_message_data", content="[]", is_error=True)],
        ),
    ]


class TestMessageConversion:
    def test_anthropic_shape(self):
        converted = to_anthropic_messages(_transcript())
        assert converted[0] == {"role": "user", "content": "Analyze"}
        assert converted[1]["role"] == "assistant"
        assert converted[1]["content"][0] == {"type": "text", "text": "Fetching"}
        assert converted[1]["content"][1] == {
            "type": "tool_use", "id": "c1", "name": "fetch_message_data", "input": {"limit": 5},
        }
        assert converted[2]["role"] == "user"
        assert converted[2]["content"][0]["tool_use_id"] == "c1"
        assert converted[2]["content"][0]["is_error"] is True

    def test_openai_shape(self):
        converted = to_openai_messages(_transcript(), system="Be brief")
        assert converted[0] == {"role": "system", "content": "Be brief"}
        assert converted[2]["tool_calls"][0]["function"]["name"] == "fetch_message_data"
        assert json.loads(converted[2]["tool_calls"][0]["function"]["arguments"]) == {"limit": 5}
        assert converted[3] == {"role": "tool", "tool_call_id": "c1", "content": "[]"}
