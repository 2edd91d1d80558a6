#!/usr/bin/env python3
"""
Generate a Brief from local payload files

Reads one JSON payload per domain from a directory
(code-review.json, issue-tracker.json, messaging.json, scheduling.json),
runs the full pipeline and prints the brief.

Usage:
    python scripts/generate_brief.py payloads/ [--user me] [--json] [--deep]
"""

import sys
import asyncio
import argparse
import json
import logging
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


def main():
    parser = argparse.ArgumentParser(description="Generate a work brief from per-domain JSON payloads")
    parser.add_argument("payload_dir", type=str, help="Directory containing <domain>.json payload files")
    parser.add_argument("--user", type=str, default="local", help="User id passed to the fetchers")
    parser.add_argument("--session", type=str, default=None, help="Session id (generated when omitted)")
    parser.add_argument("--json", action="store_true", help="Print the brief as JSON instead of Markdown")
    parser.add_argument("--deep", action="store_true", help="Use the reasoning engine for workers and synthesis")
    parser.add_argument("--store", type=str, default=None, help="Persist findings to this directory")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log pipeline progress")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    from briefing.common.config import load_config, DEEP, FAST, AI, FALLBACK
    from briefing.common.ids import UuidIdProvider
    from briefing.common.schemas import render_brief_text
    from briefing.coordinator import build_coordinator

    payload_dir = Path(args.payload_dir).expanduser()
    if not payload_dir.is_dir():
        print(f"[Brief] ERROR: {payload_dir} is not a directory")
        sys.exit(1)

    config = load_config()
    config.fetcher.base_url = ""
    config.fetcher.payload_dir = str(payload_dir)
    config.agents.worker_mode = DEEP if args.deep else FAST
    config.agents.correlation_mode = FAST
    config.agents.synthesis_mode = AI if args.deep else FALLBACK
    if args.store:
        config.store.backend = "file"
        config.store.path = args.store
    else:
        config.store.backend = "memory"

    session_id = args.session or UuidIdProvider().new_id("session")

    async def _run():
        coordinator = build_coordinator(config)
        try:
            run = await coordinator.run(session_id, args.user)
            return run.brief, run.outcomes
        finally:
            await coordinator.close()

    brief, outcomes = asyncio.run(_run())

    for outcome in outcomes:
        if not outcome.ok:
            print(f"[Brief] {outcome.domain.value} skipped: {outcome.error}", file=sys.stderr)

    if args.json:
        print(json.dumps(brief.to_wire(), indent=2, ensure_ascii=False))
    else:
        print(render_brief_text(brief))

    if brief.error:
        sys.exit(2)


if __name__ == "__main__":
    main()
