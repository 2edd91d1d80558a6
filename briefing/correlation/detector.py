"""
Correlation Detector

Deterministic cross-domain correlation rules over a session's Findings.

Rules, checked per pair of items from different domains (first match wins):
1. Explicit   shared reference token (JIRA-55, #123, PR 123)      0.95
2. Semantic   >= 2 shared vocabulary keywords               0.7 + 0.1 * n, max 1.0
3. Dependency "block" vs "waiting", review vs review, meeting vs prepare

Session-wide rules:
- Temporal: all Findings produced within one hour                  0.6
- Workflow: respond-to-email + meeting prep                        0.75
            code review + ticket due today                         0.8
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple, Union

from ..common.ids import IdProvider, UuidIdProvider
from ..common.schemas import (
    MULTIPLE,
    ActionItem,
    Correlation,
    CorrelationType,
    Domain,
    DOMAIN_ORDER,
    Findings,
    PriorityItem,
    Urgency,
)

logger = logging.getLogger("briefing.correlation.detector")

EXPLICIT_CONFIDENCE = 0.95
SEMANTIC_BASE = 0.7
SEMANTIC_STEP = 0.1
SEMANTIC_MIN_SHARED = 2
BLOCKING_CONFIDENCE = 0.8
REVIEW_ACTION_CONFIDENCE = 0.8
MEETING_PREP_CONFIDENCE = 0.85
TEMPORAL_CONFIDENCE = 0.6
TEMPORAL_WINDOW_SECONDS = 60 * 60
MESSAGE_MEETING_CONFIDENCE = 0.75
REVIEW_TICKET_CONFIDENCE = 0.8

SEMANTIC_KEYWORDS = (
    "authentication", "api", "database", "performance", "security",
    "deployment", "bug", "feature", "refactor", "test",
    "architecture", "design", "review", "merge", "conflict",
)
ACTIONABLE_KEYWORDS = {"review", "merge"}

TICKET_PATTERN = re.compile(r"\b[A-Z][A-Z0-9]+-\d+\b")
PR_PATTERN = re.compile(r"(?:#|\bpr\s*#?\s*)(\d+)\b", re.IGNORECASE)
KEYWORD_PATTERNS = {kw: re.compile(rf"\b{kw}", re.IGNORECASE) for kw in SEMANTIC_KEYWORDS}

Item = Union[PriorityItem, ActionItem]


@dataclass
class _Entry:
    """An item plus everything the rules need, computed once"""
    item: Item
    domain: Domain
    text: str
    lower: str
    tokens: List[str]
    keywords: Set[str]

    @property
    def is_priority(self) -> bool:
        return isinstance(self.item, PriorityItem)


def reference_tokens(text: str) -> List[str]:
    """Ticket keys and PR numbers in order of appearance, PRs normalized to "#n"."""
    found: List[Tuple[int, str]] = []
    for m in TICKET_PATTERN.finditer(text):
        found.append((m.start(), m.group(0)))
    for m in PR_PATTERN.finditer(text):
        found.append((m.start(), f"#{m.group(1)}"))
    seen = []
    for _, token in sorted(found):
        if token not in seen:
            seen.append(token)
    return seen


def semantic_confidence(shared_count: int) -> float:
    return min(1.0, round(SEMANTIC_BASE + SEMANTIC_STEP * shared_count, 2))


def _entry(item: Item, domain: Domain) -> _Entry:
    text = f"{item.title} {item.description}"
    return _Entry(
        item=item,
        domain=domain,
        text=text,
        lower=text.lower(),
        tokens=reference_tokens(text),
        keywords={kw for kw, p in KEYWORD_PATTERNS.items() if p.search(text)},
    )


class CorrelationDetector:
    """
    Pure function of a Findings map (plus an id provider).

    Given the same Findings and a fresh SequentialIdProvider, two runs
    produce identical output.
    """

    def __init__(self, id_provider: Optional[IdProvider] = None):
        self._ids = id_provider or UuidIdProvider()

    def detect(self, findings_by_domain: Dict[Domain, Findings]) -> List[Correlation]:
        entries = self._entries(findings_by_domain)
        correlations: List[Correlation] = []

        for i, a in enumerate(entries):
            for b in entries[i + 1:]:
                if a.domain == b.domain:
                    continue
                correlation = self._match_pair(a, b)
                if correlation is not None:
                    correlations.append(correlation)

        temporal = self._temporal(findings_by_domain)
        if temporal is not None:
            correlations.append(temporal)

        correlations.extend(self._workflow_patterns(findings_by_domain))

        correlations.sort(key=lambda c: c.confidence, reverse=True)
        logger.info("Detected %d correlations", len(correlations))
        return correlations

    # ------------------------------------------------------------------ #

    def _entries(self, findings_by_domain: Dict[Domain, Findings]) -> List[_Entry]:
        entries = []
        for domain in DOMAIN_ORDER:
            findings = findings_by_domain.get(domain)
            if findings is None:
                continue
            entries.extend(_entry(item, domain) for item in findings.priority_items)
            entries.extend(_entry(item, domain) for item in findings.action_items)
        return entries

    def _make(
        self,
        type_: CorrelationType,
        source: _Entry,
        target: _Entry,
        confidence: float,
        reason: str,
        actionable: bool,
    ) -> Correlation:
        return Correlation(
            id=self._ids.new_id("corr"),
            type=type_,
            source_item=source.item.id,
            target_item=target.item.id,
            source_domain=source.domain.value,
            target_domain=target.domain.value,
            confidence=confidence,
            reason=reason,
            actionable=actionable,
        )

    def _match_pair(self, a: _Entry, b: _Entry) -> Optional[Correlation]:
        shared_tokens = [t for t in a.tokens if t in b.tokens]
        if shared_tokens:
            token = shared_tokens[0]
            kind = "pull request" if token.startswith("#") else "ticket"
            return self._make(
                CorrelationType.EXPLICIT, a, b, EXPLICIT_CONFIDENCE,
                f"Both items reference {kind} {token}", True,
            )

        shared = [kw for kw in SEMANTIC_KEYWORDS if kw in a.keywords and kw in b.keywords]
        if len(shared) >= SEMANTIC_MIN_SHARED:
            return self._make(
                CorrelationType.SEMANTIC, a, b, semantic_confidence(len(shared)),
                f"Related topics: {', '.join(shared)}",
                bool(ACTIONABLE_KEYWORDS.intersection(shared)),
            )

        return self._dependency(a, b) or self._dependency(b, a)

    def _dependency(self, source: _Entry, target: _Entry) -> Optional[Correlation]:
        """Directional heuristics; source must be a priority item."""
        if not source.is_priority:
            return None

        if "block" in source.lower and "waiting" in target.lower:
            return self._make(
                CorrelationType.SEMANTIC, source, target, BLOCKING_CONFIDENCE,
                "Potential blocking relationship detected", True,
            )

        if target.is_priority:
            return None

        if "review" in source.lower and "review" in target.lower:
            return self._make(
                CorrelationType.SEMANTIC, source, target, REVIEW_ACTION_CONFIDENCE,
                "Priority item may require action item completion", True,
            )

        if "meeting" in source.lower and "prepare" in target.lower:
            return self._make(
                CorrelationType.SEMANTIC, source, target, MEETING_PREP_CONFIDENCE,
                "Meeting requires preparation action", True,
            )
        return None

    def _temporal(self, findings_by_domain: Dict[Domain, Findings]) -> Optional[Correlation]:
        if not findings_by_domain:
            return None
        stamps = [f.timestamp for f in findings_by_domain.values()]
        span = (max(stamps) - min(stamps)).total_seconds()
        if span >= TEMPORAL_WINDOW_SECONDS:
            return None
        return Correlation(
            id=self._ids.new_id("corr"),
            type=CorrelationType.TEMPORAL,
            source_item=MULTIPLE,
            target_item=MULTIPLE,
            source_domain=MULTIPLE,
            target_domain=MULTIPLE,
            confidence=TEMPORAL_CONFIDENCE,
            reason="Multiple systems updated within the same timeframe",
            actionable=False,
        )

    def _workflow_patterns(self, findings_by_domain: Dict[Domain, Findings]) -> List[Correlation]:
        """Fixed session-wide patterns, emitted regardless of the pairwise matches"""
        patterns = []

        def first_action(domain: Domain, predicate) -> Optional[ActionItem]:
            findings = findings_by_domain.get(domain)
            if findings is None:
                return None
            return next((a for a in findings.action_items if predicate(a)), None)

        def add(source_domain, source, target_domain, target, confidence, reason):
            if source is None or target is None:
                return
            patterns.append(self._make(
                CorrelationType.SEMANTIC,
                _entry(source, source_domain),
                _entry(target, target_domain),
                confidence, reason, True,
            ))

        add(
            Domain.MESSAGING,
            first_action(Domain.MESSAGING, lambda a: "respond" in a.title.lower()),
            Domain.SCHEDULING,
            first_action(Domain.SCHEDULING, lambda a: "prepare" in a.title.lower()),
            MESSAGE_MEETING_CONFIDENCE,
            "Email discussion likely relates to upcoming meeting",
        )
        add(
            Domain.CODE_REVIEW,
            first_action(Domain.CODE_REVIEW, lambda a: "review" in a.title.lower()),
            Domain.ISSUE_TRACKER,
            first_action(
                Domain.ISSUE_TRACKER,
                lambda a: a.urgency in (Urgency.TODAY, Urgency.IMMEDIATE),
            ),
            REVIEW_TICKET_CONFIDENCE,
            "Code review activity correlates with ticket progress",
        )
        return patterns
