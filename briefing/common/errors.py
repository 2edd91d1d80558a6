"""
Error taxonomy shared by every stage of brief generation.

Propagation:
- ToolExecutionError      -> caught by the tool loop, fed back as an error result
- IterationLimitExceeded  -> caught by the loop's caller, which falls back to fast mode
- ParseError              -> caught by the stage that decoded, which falls back
- WorkerFailure           -> caught by the Coordinator, domain contributes nothing
- PipelineFailure         -> caught by the Coordinator, "analysis unavailable" brief
"""

from typing import Optional


class BriefingError(Exception):
    """Base class for all briefing errors"""


class ToolExecutionError(BriefingError):
    """A capability call failed inside the tool loop."""

    def __init__(self, tool_name: str, message: str):
        self.tool_name = tool_name
        self.message = message
        super().__init__(f"{tool_name}: {message}")


class IterationLimitExceeded(BriefingError):
    """The tool loop ran out of iterations without a terminal answer."""

    def __init__(self, max_iterations: int):
        self.max_iterations = max_iterations
        super().__init__(f"Agent exceeded maximum iterations ({max_iterations})")


class ParseError(BriefingError):
    """Reasoning-engine output failed to decode against the expected schema."""

    def __init__(self, message: str, raw: Optional[str] = None):
        self.raw = raw
        super().__init__(message)


class WorkerFailure(BriefingError):
    """A specialist worker could not produce Findings for its domain."""

    def __init__(self, domain: str, cause: Optional[BaseException] = None):
        self.domain = domain
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"{domain} worker failed{detail}")


class PipelineFailure(BriefingError):
    """Both synthesis paths failed to produce a Brief."""


class FetchError(BriefingError):
    """A domain fetcher could not return a payload."""


class LLMUnavailableError(BriefingError):
    """No reasoning engine is configured."""
