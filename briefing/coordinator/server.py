"""
Briefing Server

FastAPI server exposing brief generation and the session store.

Endpoints:
- GET /health: Health check
- POST /brief/generate: Run one brief generation session
- GET /sessions/{session_id}/findings: Findings written by the workers
- GET /sessions/{session_id}/correlations: Correlations written by the engine
- GET /stats: Store and last-run statistics

Pipeline:
1. Dispatch specialist workers (code review, issue tracker, messaging, scheduling)
2. Correlate findings across domains
3. Synthesize the brief
"""

import uuid
from datetime import datetime, timezone
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from ..common.config import load_config, BriefingConfig, ensure_directories
from ..common.schemas import Domain
from .coordinator import Coordinator, build_coordinator


# Global state
config: Optional[BriefingConfig] = None
coordinator: Optional[Coordinator] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize components on startup"""
    global config, coordinator

    print("[Briefing] Starting up...")

    # Ensure directories exist
    ensure_directories()

    # Load config
    config = load_config()
    agents = config.agents
    print(
        f"[Briefing] Loaded config (workers: {agents.worker_mode}, "
        f"correlation: {agents.correlation_mode}, synthesis: {agents.synthesis_mode})"
    )

    # Wire workers, correlation engine and synthesizer
    coordinator = build_coordinator(config)
    print(f"[Briefing] {len(coordinator.workers)} workers ready: "
          f"{', '.join(w.domain.value for w in coordinator.workers)}")
    print(f"[Briefing] Store: {config.store.backend}")

    print("[Briefing] Ready to generate briefs")

    yield

    # Cleanup
    print("[Briefing] Shutting down...")
    await coordinator.close()
    coordinator = None


app = FastAPI(
    title="Briefing Agents",
    description="Multi-agent work brief generation",
    version="0.1.0",
    lifespan=lifespan
)


# =============================================================================
# Request Models
# =============================================================================

class BriefRequest(BaseModel):
    """Brief generation request"""
    user_id: str
    session_id: Optional[str] = None  # generated when omitted


def _require_coordinator() -> Coordinator:
    if not coordinator:
        raise HTTPException(status_code=503, detail="Coordinator not initialized")
    return coordinator


# =============================================================================
# Endpoints
# =============================================================================

@app.get("/health")
async def health():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "briefing",
        "initialized": coordinator is not None,
        "workers": [w.domain.value for w in coordinator.workers] if coordinator else [],
        "worker_mode": config.agents.worker_mode if config else None,
        "synthesis_mode": config.agents.synthesis_mode if config else None,
    }


@app.post("/brief/generate")
async def generate(request: BriefRequest):
    """Run the full pipeline for one user"""
    active = _require_coordinator()

    if not request.user_id.strip():
        raise HTTPException(status_code=400, detail="user_id is required")

    session_id = request.session_id or f"session-{uuid.uuid4().hex[:12]}"
    print(f"[Briefing] Generating brief (session: {session_id}, user: {request.user_id})")

    run = await active.run(session_id, request.user_id)

    return {
        "session_id": session_id,
        "user_id": request.user_id,
        "brief": run.brief.to_wire(),
        "workers": [
            {"domain": o.domain.value, "ok": o.ok, "error": o.error}
            for o in run.outcomes
        ],
    }


@app.get("/sessions/{session_id}/findings")
async def get_findings(session_id: str, domain: Optional[str] = None):
    """Findings stored for a session, optionally for one domain"""
    active = _require_coordinator()

    if domain:
        try:
            key = Domain(domain)
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unknown domain: {domain}")
        found = active.store.read_findings(session_id, key)
        findings = {key: found} if found else {}
    else:
        findings = active.store.read_all_findings(session_id)

    if not findings:
        raise HTTPException(status_code=404, detail="No findings for session")

    return {
        "session_id": session_id,
        "findings": {d.value: f.to_wire() for d, f in findings.items()},
    }


@app.get("/sessions/{session_id}/correlations")
async def get_correlations(session_id: str):
    """Correlations stored for a session"""
    active = _require_coordinator()

    correlations = active.store.read_correlations(session_id)
    return {
        "session_id": session_id,
        "count": len(correlations),
        "correlations": [c.to_wire() for c in correlations],
    }


@app.get("/stats")
async def get_stats():
    """Get Briefing statistics"""
    stats = {
        "service": "briefing",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if coordinator:
        stats["store"] = coordinator.store.get_stats()

    return stats


# =============================================================================
# CLI Entry Point
# =============================================================================

def run_server():
    """Run the Briefing server"""
    import logging
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    config = load_config()
    port = config.server.port

    print(f"[Briefing] Starting server on port {port}")
    uvicorn.run(
        "briefing.coordinator.server:app",
        host=config.server.host,
        port=port,
        reload=False,
    )


if __name__ == "__main__":
    run_server()
