"""
Base Specialist Worker

Abstract base class for domain workers. A worker wraps exactly one domain
and writes exactly one Findings record per session, in one of two modes:

- deep: the tool loop fetches, analyzes and calls write_findings itself
- fast: fetch once, then a deterministic heuristic pass over the payload

Deep mode falls back to fast mode whenever the loop fails or ends without
writing findings, so callers always see the same output shape.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..common.errors import WorkerFailure
from ..common.ids import Clock, parse_timestamp, utc_now
from ..common.schemas import Domain, Findings
from ..executor.executor import ToolExecutor
from ..executor.tools import FETCH_TOOLS, ToolContext

logger = logging.getLogger("briefing.specialists")

ExecutorFactory = Callable[[ToolContext], ToolExecutor]


class AnalysisMode(str, Enum):
    DEEP = "deep"
    FAST = "fast"


OBJECTIVE_TEMPLATE = """You are a {role} specialist agent for a senior software engineer. Your job is to analyze {role} data and extract actionable insights.

INSTRUCTIONS:
1. Call {fetch_tool} to get the latest {role} information
2. Find items needing action, categorize them by priority and urgency, and identify patterns
3. Write your findings using the write_findings tool

ANALYSIS FOCUS:
{focus}

OUTPUT STRUCTURE:
- summary: brief overview of the current state
- priorityItems: things that block others or have deadlines (id, title, description, priority critical|high|medium|low, optional url/deadline/blockingImpact)
- actionItems: concrete tasks to do (id, title, description, effort quick|medium|large, urgency immediate|today|this_week|later)
- insights: patterns, trends or recommendations

Use ids that appear in the source data (PR numbers, ticket keys, message or event ids) so items can be correlated across tools.
When the findings are saved, reply with a one-line confirmation."""


def days_since(value: Any, now: datetime) -> Optional[int]:
    """Whole days between a timestamp and now, or None if unparseable"""
    ts = parse_timestamp(value)
    if ts is None:
        return None
    return int((now - ts).total_seconds() // 86400)


def hours_since(value: Any, now: datetime) -> Optional[int]:
    ts = parse_timestamp(value)
    if ts is None:
        return None
    return int((now - ts).total_seconds() // 3600)


def truncate(text: Optional[str], limit: int = 200) -> str:
    text = text or ""
    return text if len(text) <= limit else text[:limit] + "..."


def label_names(entity: Dict[str, Any]) -> List[str]:
    """GitHub labels come as dicts or bare strings"""
    names = []
    for label in entity.get("labels") or []:
        name = label.get("name") if isinstance(label, dict) else label
        if name:
            names.append(str(name).lower())
    return names


class SpecialistWorker(ABC):
    """
    Abstract base class for domain workers.

    Subclasses set:
    - domain: the Domain this worker owns
    - role: human label used in the deep-mode objective
    - focus: bullet points for the deep-mode objective
    and implement quick_analysis().
    """

    domain: Domain
    role: str = ""
    focus: List[str] = []

    def __init__(
        self,
        fetcher,
        store,
        *,
        mode: AnalysisMode = AnalysisMode.FAST,
        executor_factory: Optional[ExecutorFactory] = None,
        clock: Clock = utc_now,
    ):
        """
        Initialize worker.

        Args:
            fetcher: DomainFetcher for this worker's domain
            store: SessionStore the findings are written to
            mode: deep (tool loop) or fast (heuristics)
            executor_factory: builds a ToolExecutor for a context; required for deep mode
            clock: "now" for age and date heuristics
        """
        self.fetcher = fetcher
        self.store = store
        self.mode = AnalysisMode(mode)
        self.executor_factory = executor_factory
        self.clock = clock
        self._logger = logging.getLogger(f"briefing.specialists.{self.domain.value.replace('-', '_')}")

    @property
    def fetch_tool(self) -> str:
        return FETCH_TOOLS[self.domain]

    @property
    def objective(self) -> str:
        return OBJECTIVE_TEMPLATE.format(
            role=self.role,
            fetch_tool=self.fetch_tool,
            focus="\n".join(f"- {line}" for line in self.focus),
        )

    async def analyze(self, session_id: str, user_id: str) -> Findings:
        """
        Produce and store this domain's Findings for the session.

        Raises:
            WorkerFailure: when the domain data cannot be fetched or analyzed
        """
        if self.mode == AnalysisMode.DEEP:
            if self.executor_factory is None:
                self._logger.warning("Deep mode requested without a reasoning engine, using fast mode")
            else:
                try:
                    findings = await self._analyze_deep(session_id, user_id)
                    if findings is not None:
                        return findings
                    self._logger.warning("Deep analysis wrote no findings, using fast mode")
                except Exception as e:
                    self._logger.warning("Deep analysis failed (%s), using fast mode", e)

        return await self._analyze_fast(session_id, user_id)

    async def _analyze_deep(self, session_id: str, user_id: str) -> Optional[Findings]:
        executor = self.executor_factory(
            ToolContext(session_id=session_id, user_id=user_id, domain=self.domain.value)
        )
        await executor.run(self.objective, [self.fetch_tool, "write_findings"])
        return self.store.read_findings(session_id, self.domain)

    async def _analyze_fast(self, session_id: str, user_id: str) -> Findings:
        try:
            payload = await self.fetcher.fetch(user_id)
        except Exception as e:
            raise WorkerFailure(self.domain.value, e) from e

        try:
            findings = self.quick_analysis(payload or {}, self.clock())
        except Exception as e:
            raise WorkerFailure(self.domain.value, e) from e

        self.store.write_findings(session_id, findings)
        self._logger.info(
            "Fast analysis: %d priority, %d action items",
            len(findings.priority_items), len(findings.action_items),
        )
        return findings

    @abstractmethod
    def quick_analysis(self, payload: Dict[str, Any], now: datetime) -> Findings:
        """
        Deterministic heuristics over the raw domain payload.

        Args:
            payload: raw payload as returned by the fetcher
            now: reference time for age/date checks

        Returns:
            Findings for this domain, timestamped ``now``
        """
        pass
