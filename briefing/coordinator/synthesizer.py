"""
Brief Synthesis

Two strategies behind one interface:
- AISynthesisStrategy: the reasoning engine reads findings and correlations
  through the tool loop and answers with a JSON draft, strictly decoded
- FallbackSynthesisStrategy: deterministic sectioning of the raw findings

ResilientSynthesizer chains them so a Brief is produced unless both fail.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError

from ..common.errors import ParseError, PipelineFailure
from ..common.ids import Clock, IdProvider, UuidIdProvider, utc_now
from ..common.llm_utils import decode_json_object
from ..common.schemas import (
    ActionItem,
    Brief,
    BriefDraft,
    BriefItem,
    BriefSection,
    Correlation,
    CorrelationRef,
    Domain,
    DOMAIN_ORDER,
    Findings,
    OverallInsights,
    Priority,
    PriorityItem,
    SECTION_CAPS,
    SECTION_ORDER,
    SECTION_TITLES,
    SectionType,
    Urgency,
)
from ..executor.executor import ToolExecutor
from ..executor.tools import ToolContext

logger = logging.getLogger("briefing.coordinator.synthesizer")

CRITICAL_CORRELATION_THRESHOLD = 0.8
HEAVY_WORKLOAD_ITEMS = 10
TODAY_ACTIONS_THRESHOLD = 5

SYNTHESIS_OBJECTIVE = """You are the coordinator agent responsible for synthesizing a daily work brief from all specialist agent findings.

INSTRUCTIONS:
1. Call read_all_findings to get all agent findings
2. Call read_correlations to get the correlation analysis
3. Synthesize everything into one cohesive brief

SYNTHESIS GUIDELINES:
- Prioritize items by urgency, impact and correlations
- Group related items together using the correlations
- Highlight cross-tool dependencies
- Provide strategic insights about workload and priorities

BRIEF STRUCTURE (sections in this order, omit empty ones):
1. critical - items needing immediate attention (deadline today, blocking others)
2. meetings - today's meetings with preparation needs
3. reviews - code reviews and approvals needed
4. emails - high-priority emails requiring a response
5. progress - key development work and tickets
6. risks - potential blockers or scheduling conflicts
7. observations - patterns from the correlation analysis
8. focus_time - available time blocks for deep work

Include only the most relevant items (5-7 per section). Set sourceId to the id
of the finding item each brief item comes from.

OVERALL INSIGHTS:
- hiddenTasksFound: count of action items discovered
- criticalCorrelations: correlations that reveal dependencies
- workPatterns: workload patterns
- recommendations: strategic suggestions for the day

Respond with ONLY a JSON object of this shape, no other text:
{shape}"""


class SynthesisMode(str, Enum):
    AI = "ai"
    FALLBACK = "fallback"


def correlation_refs(item_id: Optional[str], correlations: List[Correlation]) -> List[CorrelationRef]:
    if not item_id:
        return []
    return [CorrelationRef.from_correlation(c, item_id) for c in correlations if c.touches(item_id)]


class SynthesisStrategy(ABC):
    @abstractmethod
    async def synthesize(
        self,
        session_id: str,
        user_id: str,
        findings: Dict[Domain, Findings],
        correlations: List[Correlation],
    ) -> Brief:
        pass


# ============================================================================
# AI path
# ============================================================================

def decode_draft(raw: str) -> BriefDraft:
    """
    Strictly decode the synthesis loop's terminal answer.

    Raises:
        ParseError: not a JSON object, fails validation, or has no sections
    """
    data = decode_json_object(raw)
    try:
        draft = BriefDraft.model_validate(data)
    except ValidationError as e:
        raise ParseError(f"Brief draft failed validation: {e}", raw=raw) from e
    if not draft.sections:
        raise ParseError("Brief draft has no sections", raw=raw)
    return draft


class AISynthesisStrategy(SynthesisStrategy):
    def __init__(
        self,
        executor_factory: Callable[[ToolContext], ToolExecutor],
        *,
        id_provider: Optional[IdProvider] = None,
        clock: Clock = utc_now,
    ):
        self.executor_factory = executor_factory
        self.ids = id_provider or UuidIdProvider()
        self.clock = clock

    @property
    def objective(self) -> str:
        return SYNTHESIS_OBJECTIVE.format(shape=json.dumps(BriefDraft.json_shape(), indent=2))

    async def synthesize(self, session_id, user_id, findings, correlations) -> Brief:
        executor = self.executor_factory(ToolContext(session_id=session_id, user_id=user_id))
        raw = await executor.run(self.objective, ["read_all_findings", "read_correlations"])
        draft = decode_draft(raw)
        brief = self.normalize(draft, correlations)
        if not brief.sections:
            raise ParseError("Brief draft has no items", raw=raw)
        logger.info("AI synthesis produced %d sections", len(brief.sections))
        return brief

    def normalize(self, draft: BriefDraft, correlations: List[Correlation]) -> Brief:
        """Fixed section order, one section per type, caps applied, empties dropped."""
        merged: Dict[SectionType, BriefSection] = {}
        for draft_section in draft.sections:
            section = merged.get(draft_section.type)
            if section is None:
                section = BriefSection(
                    id=draft_section.type.value,
                    type=draft_section.type,
                    title=draft_section.title or SECTION_TITLES[draft_section.type],
                )
                merged[draft_section.type] = section
            section.items.extend(draft_section.items)
            if section.section_insight is None:
                section.section_insight = draft_section.section_insight

        sections = []
        for section_type in SECTION_ORDER:
            section = merged.get(section_type)
            if section is None or not section.items:
                continue
            section.items = section.items[:SECTION_CAPS[section_type]]
            for item in section.items:
                if not item.correlations:
                    item.correlations = correlation_refs(item.source_id, correlations)
            sections.append(section)

        return Brief(
            id=self.ids.new_id("brief"),
            generated_at=self.clock(),
            sections=sections,
            overall_insights=draft.overall_insights or OverallInsights(),
        )


# ============================================================================
# Deterministic path
# ============================================================================

class FallbackSynthesisStrategy(SynthesisStrategy):
    """Total: any Findings map (including an empty one) yields a Brief."""

    def __init__(self, *, id_provider: Optional[IdProvider] = None, clock: Clock = utc_now):
        self.ids = id_provider or UuidIdProvider()
        self.clock = clock

    async def synthesize(self, session_id, user_id, findings, correlations) -> Brief:
        return self.build(findings, correlations)

    def build(self, findings: Dict[Domain, Findings], correlations: List[Correlation]) -> Brief:
        priority: List[BriefItem] = []
        actions: List[BriefItem] = []
        focus: List[BriefItem] = []
        work_patterns: List[str] = []

        for domain in DOMAIN_ORDER:
            domain_findings = findings.get(domain)
            if domain_findings is None:
                continue
            priority.extend(self._priority_item(p, domain, correlations) for p in domain_findings.priority_items)
            actions.extend(self._action_item(a, domain, correlations) for a in domain_findings.action_items)
            work_patterns.extend(domain_findings.insights)
            if domain == Domain.SCHEDULING:
                focus.extend(
                    BriefItem(title=insight, domain=domain.value)
                    for insight in domain_findings.insights
                    if "focus time" in insight.lower()
                )

        strong = [c for c in correlations if c.confidence > CRITICAL_CORRELATION_THRESHOLD]
        observations = [
            BriefItem(
                title=c.reason,
                description=f"{c.source_domain} {c.source_item} / {c.target_domain} {c.target_item}",
                source_id=c.id,
            )
            for c in strong
        ]

        scheduling = Domain.SCHEDULING.value
        development = (Domain.ISSUE_TRACKER.value, Domain.CODE_REVIEW.value)
        candidates = {
            SectionType.CRITICAL: [
                i for i in priority if i.priority == Priority.CRITICAL or i.deadline == "today"
            ],
            SectionType.MEETINGS: [
                i for i in priority if i.domain == scheduling or "meeting" in i.title.lower()
            ],
            SectionType.REVIEWS: [i for i in actions if "review" in i.title.lower()],
            SectionType.EMAILS: [i for i in actions if i.domain == Domain.MESSAGING.value],
            SectionType.PROGRESS: [i for i in priority if i.domain in development],
            SectionType.RISKS: [
                i for i in priority if i.blocking_impact or "conflict" in i.title.lower()
            ],
            SectionType.OBSERVATIONS: observations,
            SectionType.FOCUS_TIME: focus,
        }
        insight_templates = {
            SectionType.CRITICAL: "{n} critical items requiring immediate attention",
            SectionType.MEETINGS: "{n} meetings with preparation requirements",
            SectionType.REVIEWS: "{n} reviews needed to unblock team progress",
            SectionType.EMAILS: "{n} emails requiring response or follow-up",
            SectionType.PROGRESS: "{n} active development items across code review and issue tracking",
            SectionType.RISKS: "{n} potential blockers or conflicts",
            SectionType.OBSERVATIONS: "{n} strong cross-tool correlations",
            SectionType.FOCUS_TIME: None,
        }

        sections = []
        for section_type in SECTION_ORDER:
            items = candidates[section_type]
            if not items:
                continue
            template = insight_templates[section_type]
            sections.append(BriefSection(
                id=section_type.value,
                type=section_type,
                title=SECTION_TITLES[section_type],
                items=items[:SECTION_CAPS[section_type]],
                section_insight=template.format(n=len(items)) if template else None,
            ))

        return Brief(
            id=self.ids.new_id("brief"),
            generated_at=self.clock(),
            sections=sections,
            overall_insights=OverallInsights(
                hidden_tasks_found=len(actions),
                critical_correlations=[c.reason for c in strong],
                work_patterns=work_patterns,
                recommendations=self._recommendations(priority, actions, correlations),
            ),
        )

    @staticmethod
    def _priority_item(item: PriorityItem, domain: Domain, correlations) -> BriefItem:
        return BriefItem(
            title=item.title,
            description=item.description,
            priority=item.priority,
            domain=domain.value,
            source_id=item.id,
            url=item.url,
            deadline=item.deadline,
            blocking_impact=item.blocking_impact,
            correlations=correlation_refs(item.id, correlations),
        )

    @staticmethod
    def _action_item(item: ActionItem, domain: Domain, correlations) -> BriefItem:
        return BriefItem(
            title=item.title,
            description=item.description,
            domain=domain.value,
            source_id=item.id,
            deadline=item.deadline,
            effort=item.effort,
            urgency=item.urgency,
            correlations=correlation_refs(item.id, correlations),
        )

    @staticmethod
    def _recommendations(
        priority: List[BriefItem],
        actions: List[BriefItem],
        correlations: List[Correlation],
    ) -> List[str]:
        recommendations = []
        if len(priority) > HEAVY_WORKLOAD_ITEMS:
            recommendations.append(
                "Consider delegating or rescheduling non-critical items - high priority workload detected"
            )
        if any(c.actionable for c in correlations):
            recommendations.append("Review correlated items together for better efficiency")
        due_today = [a for a in actions if a.urgency in (Urgency.IMMEDIATE, Urgency.TODAY)]
        if len(due_today) > TODAY_ACTIONS_THRESHOLD:
            recommendations.append("Focus on today's deadlines before taking on new work")
        blocking = [p for p in priority if p.blocking_impact]
        if blocking:
            recommendations.append(f"Prioritize {len(blocking)} items that are blocking others")
        return recommendations


# ============================================================================
# Chain
# ============================================================================

class ResilientSynthesizer(SynthesisStrategy):
    """
    Try the primary strategy, fall back on any failure.

    Only the primary is bounded by ``timeout``; the deterministic fallback
    always runs to completion.
    """

    def __init__(
        self,
        primary: SynthesisStrategy,
        fallback: SynthesisStrategy,
        *,
        timeout: Optional[float] = None,
    ):
        self.primary = primary
        self.fallback = fallback
        self.timeout = timeout or None

    async def synthesize(self, session_id, user_id, findings, correlations) -> Brief:
        try:
            return await asyncio.wait_for(
                self.primary.synthesize(session_id, user_id, findings, correlations),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Primary synthesis timed out after %ss, using fallback", self.timeout)
        except Exception as e:
            logger.warning("Primary synthesis failed (%s: %s), using fallback", type(e).__name__, e)

        try:
            return await self.fallback.synthesize(session_id, user_id, findings, correlations)
        except Exception as e:
            raise PipelineFailure(f"Brief synthesis failed: {e}") from e


def build_synthesizer(
    mode: SynthesisMode = SynthesisMode.AI,
    *,
    executor_factory: Optional[Callable[[ToolContext], ToolExecutor]] = None,
    id_provider: Optional[IdProvider] = None,
    clock: Clock = utc_now,
    timeout: Optional[float] = None,
) -> ResilientSynthesizer:
    fallback = FallbackSynthesisStrategy(id_provider=id_provider, clock=clock)
    mode = SynthesisMode(mode)

    if mode == SynthesisMode.AI and executor_factory is None:
        logger.warning("AI synthesis requested without a reasoning engine, using fallback")
        mode = SynthesisMode.FALLBACK

    if mode == SynthesisMode.AI:
        primary = AISynthesisStrategy(executor_factory, id_provider=id_provider, clock=clock)
    else:
        primary = fallback
    return ResilientSynthesizer(primary, fallback, timeout=timeout)
