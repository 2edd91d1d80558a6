"""
Tool Execution Loop and capability registry.
"""

from .tools import (
    Capability,
    CapabilityRegistry,
    ToolContext,
    FETCH_TOOLS,
    build_capability_registry,
)
from .executor import ToolExecutor, DEFAULT_MAX_ITERATIONS

__all__ = [
    "Capability",
    "CapabilityRegistry",
    "ToolContext",
    "FETCH_TOOLS",
    "build_capability_registry",
    "ToolExecutor",
    "DEFAULT_MAX_ITERATIONS",
]
