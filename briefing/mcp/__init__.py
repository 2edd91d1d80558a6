"""
MCP surface for brief generation.
"""

from .server import MCPServerApp, main

__all__ = ["MCPServerApp", "main"]
