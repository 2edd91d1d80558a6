"""
Correlation Engine

Reads every Findings record of a session, produces cross-domain
Correlations, stores them and returns them. Deep mode lets the reasoning
engine do the work through read_all_findings / write_correlations; fast mode
(and every deep-mode failure) runs the deterministic detector.
"""

import logging
from typing import Callable, List, Optional

from ..common.ids import IdProvider
from ..common.schemas import Correlation, dangling_references
from ..executor.executor import ToolExecutor
from ..executor.tools import ToolContext
from ..specialists.base import AnalysisMode
from .detector import CorrelationDetector

logger = logging.getLogger("briefing.correlation.engine")

CORRELATION_OBJECTIVE = """You are a correlation specialist agent for a senior software engineer. Your job is to analyze findings from all specialist agents and discover meaningful relationships.

INSTRUCTIONS:
1. Call read_all_findings to get findings from the code review, issue tracker, messaging and scheduling agents
2. Find correlations between:
   - Tickets and pull requests (e.g. PR #123 implements JIRA-456)
   - Email threads and project work
   - Meeting preparation and development work
   - Blocked items across tools
   - Items updated around the same time
3. Write correlations using the write_correlations tool

CORRELATION TYPES:
- explicit: direct references (a PR description mentions a ticket key)
- semantic: related topics or keywords (both mention the authentication system)
- temporal: time-based relationships (updated within the same timeframe)

Each correlation needs: type, sourceItem, targetItem, sourceDomain, targetDomain,
confidence (0.0-1.0), reason, actionable.
sourceItem and targetItem MUST be ids that appear in the findings, and the two
items must come from different domains.

Focus on hidden dependencies, items that should be prioritized together, and
opportunities to coordinate work across tools. When the correlations are saved,
reply with a one-line confirmation."""


class CorrelationEngine:
    """
    One interface, two modes.

    Callers never learn which path produced the correlations.
    """

    def __init__(
        self,
        store,
        *,
        mode: AnalysisMode = AnalysisMode.FAST,
        detector: Optional[CorrelationDetector] = None,
        executor_factory: Optional[Callable[[ToolContext], ToolExecutor]] = None,
        id_provider: Optional[IdProvider] = None,
    ):
        self.store = store
        self.mode = AnalysisMode(mode)
        self.detector = detector or CorrelationDetector(id_provider)
        self.executor_factory = executor_factory

    async def correlate(self, session_id: str, user_id: str) -> List[Correlation]:
        if self.mode == AnalysisMode.DEEP:
            if self.executor_factory is None:
                logger.warning("Deep correlation requested without a reasoning engine, using fast mode")
            else:
                try:
                    correlations = await self._correlate_deep(session_id, user_id)
                    if correlations:
                        return correlations
                    logger.warning("Deep correlation wrote nothing, using fast mode")
                except Exception as e:
                    logger.warning("Deep correlation failed (%s), using fast mode", e)

        return self._correlate_fast(session_id)

    async def _correlate_deep(self, session_id: str, user_id: str) -> List[Correlation]:
        self.store.write_correlations(session_id, [])
        executor = self.executor_factory(ToolContext(session_id=session_id, user_id=user_id))
        await executor.run(CORRELATION_OBJECTIVE, ["read_all_findings", "write_correlations"])

        stored = self.store.read_correlations(session_id)
        dangling = dangling_references(stored, self.store.read_all_findings(session_id))
        if dangling:
            logger.warning("Dropping %d correlations with unknown items", len(dangling))
            dangling_ids = {c.id for c in dangling}
            stored = [c for c in stored if c.id not in dangling_ids]
            self.store.write_correlations(session_id, stored)

        stored.sort(key=lambda c: c.confidence, reverse=True)
        logger.info("Deep correlation produced %d correlations", len(stored))
        return stored

    def _correlate_fast(self, session_id: str) -> List[Correlation]:
        findings = self.store.read_all_findings(session_id)
        correlations = self.detector.detect(findings)
        self.store.write_correlations(session_id, correlations)
        return correlations
