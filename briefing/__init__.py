"""
Briefing Agents

Multi-agent orchestration that turns code-review, issue-tracker, messaging and
scheduling data into a single prioritized work brief.

Philosophy:
- Every agent role runs through the same bounded tool loop
- Every reasoning path has a deterministic twin (deep/fast, ai/fallback)
- One worker's failure never costs the whole brief
- Correlations only ever point at items that exist

Usage:
    from briefing.common import load_config, InMemorySessionStore
    from briefing.common.schemas import Findings, Correlation, Brief
    from briefing.coordinator import Coordinator, build_coordinator
"""

__version__ = "0.1.0"
