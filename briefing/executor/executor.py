"""
Tool Execution Loop

Drives a reasoning engine through a bounded sequence of "call a granted
capability or give a final answer" steps. Shared by every agent role.

State machine:
    Running(n) -> Terminal(answer)            no tool calls in the turn
               -> Running(n + 1)              tool calls executed, results fed back
               -> Failed(IterationLimitExceeded)  cap reached
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Set

from pydantic import BaseModel

from ..common.errors import IterationLimitExceeded, ToolExecutionError
from ..common.llm_client import ChatMessage, ToolCall, ToolResult
from .tools import Capability, CapabilityRegistry, ToolContext

logger = logging.getLogger("briefing.executor")

DEFAULT_MAX_ITERATIONS = 10


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, set):
        return sorted(value)
    return str(value)


def serialize_result(value: Any) -> str:
    """Tool results go back to the model as JSON text"""
    return json.dumps(value, default=_json_default)


class ToolExecutor:
    """
    Bounded reasoning/tool-call loop.

    One instance runs one conversation at a time; tool calls within a turn
    are executed one after another in the order requested.
    """

    def __init__(
        self,
        llm,
        registry: CapabilityRegistry,
        *,
        context: Optional[ToolContext] = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        temperature: float = 0.1,
        max_tokens: int = 8000,
        system: Optional[str] = None,
    ):
        """
        Args:
            llm: client exposing ``async complete(messages, tools=..., ...) -> LLMTurn``
            registry: every capability the loop could ever grant
            context: values injected into capabilities that require them
            max_iterations: default cap, overridable per run
        """
        self.llm = llm
        self.registry = registry
        self.context = context or ToolContext()
        self.max_iterations = max_iterations
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.system = system

    async def run(
        self,
        prompt: str,
        allowed_tools: Iterable[str],
        *,
        max_iterations: Optional[int] = None,
    ) -> str:
        """
        Run the loop until the model answers without tool calls.

        Returns:
            The terminal text answer

        Raises:
            IterationLimitExceeded: when the cap is reached first
        """
        cap = max_iterations or self.max_iterations
        tools = self.registry.definitions(allowed_tools)
        granted = {t.name for t in tools}
        messages = [ChatMessage(role="user", content=prompt)]

        for iteration in range(1, cap + 1):
            logger.info("Agent iteration %d/%d", iteration, cap)
            turn = await self.llm.complete(
                messages,
                tools=tools,
                system=self.system,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )

            if turn.is_terminal:
                logger.info("Agent finished after %d iteration(s)", iteration)
                return turn.text

            messages.append(ChatMessage(role="assistant", content=turn.text, tool_calls=list(turn.tool_calls)))
            results = []
            for call in turn.tool_calls:
                results.append(await self._execute(call, granted))
            messages.append(ChatMessage(role="tool", tool_results=results))

        raise IterationLimitExceeded(cap)

    async def _execute(self, call: ToolCall, granted: Set[str]) -> ToolResult:
        """Execute one call; every failure becomes an error result."""
        logger.info("Executing tool: %s", call.name)
        try:
            if call.name not in granted:
                raise ToolExecutionError(call.name, "tool not available to this agent")
            capability = self.registry.get(call.name)
            arguments = self._inject(capability, call.arguments)
            value = await capability.handler(arguments)
            return ToolResult(call_id=call.id, name=call.name, content=serialize_result(value))
        except Exception as e:
            error = e if isinstance(e, ToolExecutionError) else ToolExecutionError(call.name, str(e))
            logger.warning("Tool %s failed: %s", call.name, error.message)
            return ToolResult(
                call_id=call.id,
                name=call.name,
                content=json.dumps({"error": f"Tool execution failed: {error.message}"}),
                is_error=True,
            )

    def _inject(self, capability: Capability, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """Merge declared context over model-supplied arguments"""
        merged = dict(arguments or {})
        for name in capability.required_context:
            value = self.context.get(name)
            if not value:
                raise ToolExecutionError(capability.name, f"missing required context: {name}")
            merged[name] = value
        return merged
