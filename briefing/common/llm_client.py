"""
Provider-agnostic LLM client for briefing agents.

Supports Anthropic and OpenAI with a shared text-generation interface and a
shared tool-use interface. Transcripts are kept in a provider-neutral form
and converted on every call.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .errors import LLMUnavailableError

logger = logging.getLogger("briefing.common.llm_client")


@dataclass
class ToolCall:
    """A capability call requested by the reasoning engine"""
    id: str
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolResult:
    """Outcome of one ToolCall, fed back on the next turn"""
    call_id: str
    name: str
    content: str
    is_error: bool = False


@dataclass
class LLMTurn:
    """One reasoning-engine response"""
    text: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    stop_reason: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return not self.tool_calls


@dataclass
class ChatMessage:
    """Provider-neutral transcript entry.

    role is "user", "assistant" (text and/or tool_calls) or "tool" (tool_results).
    """
    role: str
    content: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    tool_results: List[ToolResult] = field(default_factory=list)


# ----------------------------------------------------------------------------
# Provider conversions
# ----------------------------------------------------------------------------

def to_anthropic_messages(messages: Sequence[ChatMessage]) -> List[Dict[str, Any]]:
    converted = []
    for m in messages:
        if m.role == "assistant":
            blocks: List[Dict[str, Any]] = []
            if m.content:
                blocks.append({"type": "text", "text": m.content})
            for call in m.tool_calls:
                blocks.append({
                    "type": "tool_use",
                    "id": call.id,
                    "name": call.name,
                    "input": call.arguments,
                })
            converted.append({"role": "assistant", "content": blocks})
        elif m.role == "tool":
            converted.append({
                "role": "user",
                "content": [
                    {
                        "type": "tool_result",
                        "tool_use_id": r.call_id,
                        "content": r.content,
                        "is_error": r.is_error,
                    }
                    for r in m.tool_results
                ],
            })
        else:
            converted.append({"role": "user", "content": m.content})
    return converted


def to_openai_messages(
    messages: Sequence[ChatMessage], system: Optional[str] = None
) -> List[Dict[str, Any]]:
    converted: List[Dict[str, Any]] = []
    if system:
        converted.append({"role": "system", "content": system})
    for m in messages:
        if m.role == "assistant":
            entry: Dict[str, Any] = {"role": "assistant", "content": m.content or None}
            if m.tool_calls:
                entry["tool_calls"] = [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {"name": call.name, "arguments": json.dumps(call.arguments)},
                    }
                    for call in m.tool_calls
                ]
            converted.append(entry)
        elif m.role == "tool":
            for r in m.tool_results:
                converted.append({"role": "tool", "tool_call_id": r.call_id, "content": r.content})
        else:
            converted.append({"role": "user", "content": m.content})
    return converted


def _anthropic_tools(tools) -> List[Dict[str, Any]]:
    return [
        {"name": t.name, "description": t.description, "input_schema": t.input_schema}
        for t in tools
    ]


def _openai_tools(tools) -> List[Dict[str, Any]]:
    return [
        {
            "type": "function",
            "function": {"name": t.name, "description": t.description, "parameters": t.input_schema},
        }
        for t in tools
    ]


class LLMClient:
    """Unified async client across LLM providers."""

    def __init__(
        self,
        provider: str = "anthropic",
        model: str = "",
        anthropic_api_key: Optional[str] = None,
        openai_api_key: Optional[str] = None,
    ) -> None:
        self.provider = (provider or "anthropic").lower()
        self.model = model
        self._client = None

        if self.provider == "anthropic":
            if not anthropic_api_key:
                logger.info("%s API key not provided, LLM client unavailable", self.provider)
                return
            try:
                import anthropic

                self._client = anthropic.AsyncAnthropic(api_key=anthropic_api_key)
            except ImportError:
                logger.warning("anthropic package not installed")
            except Exception as e:
                logger.warning("Failed to initialize Anthropic client: %s", e)
            return

        if self.provider == "openai":
            if not openai_api_key:
                logger.info("%s API key not provided, LLM client unavailable", self.provider)
                return
            try:
                from openai import AsyncOpenAI

                self._client = AsyncOpenAI(api_key=openai_api_key)
            except ImportError:
                logger.warning("openai package not installed")
            except Exception as e:
                logger.warning("Failed to initialize OpenAI client: %s", e)
            return

        logger.warning("Unsupported LLM provider: %s", self.provider)

    @classmethod
    def from_config(cls, llm_config) -> "LLMClient":
        model = llm_config.openai_model if llm_config.provider == "openai" else llm_config.anthropic_model
        return cls(
            provider=llm_config.provider,
            model=model,
            anthropic_api_key=llm_config.anthropic_api_key or None,
            openai_api_key=llm_config.openai_api_key or None,
        )

    @property
    def is_available(self) -> bool:
        return self._client is not None

    async def generate(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        max_tokens: int = 512,
        timeout: float = 30.0,
    ) -> str:
        """Plain single-turn completion."""
        turn = await self.complete(
            [ChatMessage(role="user", content=prompt)],
            system=system,
            max_tokens=max_tokens,
            timeout=timeout,
        )
        return turn.text.strip()

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        *,
        tools: Sequence[Any] = (),
        system: Optional[str] = None,
        temperature: float = 0.1,
        max_tokens: int = 8000,
        timeout: float = 120.0,
    ) -> LLMTurn:
        """One reasoning turn, possibly requesting tool calls.

        ``tools`` are objects exposing name, description and input_schema.
        """
        if not self.is_available:
            raise LLMUnavailableError("LLM client is not available")

        if self.provider == "anthropic":
            kwargs: Dict[str, Any] = {
                "model": self.model,
                "max_tokens": max_tokens,
                "temperature": temperature,
                "messages": to_anthropic_messages(messages),
                "timeout": timeout,
            }
            if system:
                kwargs["system"] = system
            if tools:
                kwargs["tools"] = _anthropic_tools(tools)
            response = await self._client.messages.create(**kwargs)

            texts, calls = [], []
            for block in response.content:
                if block.type == "text":
                    texts.append(block.text)
                elif block.type == "tool_use":
                    calls.append(ToolCall(id=block.id, name=block.name, arguments=dict(block.input or {})))
            return LLMTurn(text="\n".join(texts), tool_calls=calls, stop_reason=response.stop_reason)

        if self.provider == "openai":
            kwargs = {
                "model": self.model,
                "max_tokens": max_tokens,
                "temperature": temperature,
                "messages": to_openai_messages(messages, system),
                "timeout": timeout,
            }
            if tools:
                kwargs["tools"] = _openai_tools(tools)
            response = await self._client.chat.completions.create(**kwargs)

            choice = response.choices[0]
            calls = []
            for tc in choice.message.tool_calls or []:
                try:
                    arguments = json.loads(tc.function.arguments or "{}")
                except json.JSONDecodeError:
                    logger.warning("Unparseable arguments for tool call %s", tc.function.name)
                    arguments = {}
                calls.append(ToolCall(id=tc.id, name=tc.function.name, arguments=arguments))
            return LLMTurn(
                text=choice.message.content or "",
                tool_calls=calls,
                stop_reason=choice.finish_reason,
            )

        raise LLMUnavailableError(f"Unsupported LLM provider: {self.provider}")
