"""
Briefing MCP Server.

Transport: stdio only.

Expected MCP Tool Return Format:
{
    "ok": bool,
    "results": Any,          # Present if ok is True
    "error": str            # Present if ok is False
}
"""

import argparse
import logging
import os
import signal
import uuid
from typing import Any, Annotated, Dict, Optional

from pydantic import Field
from dotenv import load_dotenv

from fastmcp import FastMCP
from mcp.types import ToolAnnotations

from ..common.config import load_config
from ..common.schemas import Domain, render_brief_text
from ..coordinator.coordinator import Coordinator, build_coordinator

logger = logging.getLogger("briefing.mcp")


class MCPServerApp:
    """
    Main application class for the MCP server.

    Wraps one Coordinator; every tool call goes through its store.
    """
    def __init__(self, coordinator: Coordinator, mcp_server_name: str = "briefing_mcp_server") -> None:
        """
        Args:
            coordinator (Coordinator): Wired brief generation pipeline.
            mcp_server_name (str): The name of the MCP server.
        """
        self.coordinator = coordinator
        self.mcp = FastMCP(name=mcp_server_name)

        # ---------- MCP Tools: Generate Brief ---------- #
        @self.mcp.tool(
            name="generate_brief",
            description=(
                "Generate a prioritized work brief for a user from code review, issue tracker, "
                "messaging and scheduling data. Runs every specialist worker, correlates their "
                "findings across tools and synthesizes ordered sections."
            ),
            annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False)
        )
        async def tool_generate_brief(
            user_id: Annotated[str, Field(description="user whose tools are analyzed")],
            session_id: Annotated[Optional[str], Field(description="session id; generated when omitted")] = None,
            as_text: Annotated[bool, Field(description="also return a Markdown rendering of the brief")] = False,
        ) -> Dict[str, Any]:
            if not user_id or not user_id.strip():
                return {"ok": False, "error": "user_id is required."}

            session_id = session_id or f"session-{uuid.uuid4().hex[:12]}"
            try:
                run = await self.coordinator.run(session_id, user_id)
            except Exception as e:
                logger.error("generate_brief failed: %s", e)
                return {"ok": False, "error": str(e)}

            response = {
                "ok": True,
                "session_id": session_id,
                "results": run.brief.to_wire(),
                "failed_domains": [d.value for d in run.failed_domains],
            }
            if as_text:
                response["text"] = render_brief_text(run.brief)
            return response

        # ---------- MCP Tools: Get Findings ---------- #
        @self.mcp.tool(
            name="get_findings",
            description="Get the findings specialist workers wrote for a session.",
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_get_findings(
            session_id: Annotated[str, Field(description="session id returned by generate_brief")],
            domain: Annotated[Optional[str], Field(description="code-review, issue-tracker, messaging or scheduling; all when omitted")] = None,
        ) -> Dict[str, Any]:
            store = self.coordinator.store
            if domain:
                try:
                    key = Domain(domain)
                except ValueError:
                    return {"ok": False, "error": f"Unknown domain: {domain}"}
                found = store.read_findings(session_id, key)
                findings = {key: found} if found else {}
            else:
                findings = store.read_all_findings(session_id)

            return {
                "ok": True,
                "results": {d.value: f.to_wire() for d, f in findings.items()},
            }

        # ---------- MCP Tools: Get Correlations ---------- #
        @self.mcp.tool(
            name="get_correlations",
            description="Get the cross-tool correlations found for a session.",
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_get_correlations(
            session_id: Annotated[str, Field(description="session id returned by generate_brief")],
            min_confidence: Annotated[float, Field(description="only correlations at or above this confidence", ge=0.0, le=1.0)] = 0.0,
        ) -> Dict[str, Any]:
            correlations = [
                c for c in self.coordinator.store.read_correlations(session_id)
                if c.confidence >= min_confidence
            ]
            return {"ok": True, "results": [c.to_wire() for c in correlations]}

    def run(self) -> None:
        """Runs the MCP server using stdio transport."""
        self.mcp.run(transport="stdio")


def main() -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(description="Run the Briefing MCP server (stdio).")
    parser.add_argument(
        "--server-name",
        default=os.getenv("MCP_SERVER_NAME", "briefing_mcp_server"),
        help="Advertised MCP server name.",
    )
    parser.add_argument(
        "--worker-mode",
        choices=("deep", "fast"),
        default=None,
        help="Override the specialist worker mode.",
    )
    parser.add_argument(
        "--synthesis-mode",
        choices=("ai", "fallback"),
        default=None,
        help="Override the brief synthesis mode.",
    )
    parser.add_argument(
        "--payload-dir",
        default=None,
        help="Directory of <domain>.json payload files.",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    config = load_config()
    if args.worker_mode:
        config.agents.worker_mode = args.worker_mode
    if args.synthesis_mode:
        config.agents.synthesis_mode = args.synthesis_mode
    if args.payload_dir:
        config.fetcher.payload_dir = args.payload_dir

    coordinator = build_coordinator(config)
    logger.info("Coordinator ready with %d workers", len(coordinator.workers))

    app = MCPServerApp(coordinator=coordinator, mcp_server_name=args.server_name)

    def _handle_shutdown(signum, frame):
        raise SystemExit(0)
    for sig in (signal.SIGINT, getattr(signal, "SIGTERM", None)):
        if sig is not None:
            signal.signal(sig, _handle_shutdown)

    app.run()


if __name__ == "__main__":
    main()
