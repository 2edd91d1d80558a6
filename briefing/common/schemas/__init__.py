"""
Briefing Schemas

Findings, Correlation and Brief records shared by every agent role.
"""

from .findings import (
    CamelModel,
    Domain,
    Priority,
    Effort,
    Urgency,
    DOMAIN_ORDER,
    PriorityItem,
    ActionItem,
    Findings,
    collect_item_ids,
)
from .correlation import (
    MULTIPLE,
    CorrelationType,
    Correlation,
    dangling_references,
)
from .brief import (
    SectionType,
    SECTION_ORDER,
    SECTION_CAPS,
    SECTION_TITLES,
    CorrelationRef,
    BriefItem,
    BriefSection,
    OverallInsights,
    Brief,
    DraftSection,
    BriefDraft,
)
from .templates import render_brief_text, render_findings_text

__all__ = [
    "CamelModel",
    "Domain",
    "Priority",
    "Effort",
    "Urgency",
    "DOMAIN_ORDER",
    "PriorityItem",
    "ActionItem",
    "Findings",
    "collect_item_ids",
    "MULTIPLE",
    "CorrelationType",
    "Correlation",
    "dangling_references",
    "SectionType",
    "SECTION_ORDER",
    "SECTION_CAPS",
    "SECTION_TITLES",
    "CorrelationRef",
    "BriefItem",
    "BriefSection",
    "OverallInsights",
    "Brief",
    "DraftSection",
    "BriefDraft",
    "render_brief_text",
    "render_findings_text",
]
