"""
Brief Schema

The terminal artifact of a session: ordered sections plus overall insights.
Also holds the draft model the AI synthesis path is decoded against.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from .correlation import Correlation, CorrelationType
from .findings import CamelModel, Effort, Priority, Urgency


class SectionType(str, Enum):
    CRITICAL = "critical"
    MEETINGS = "meetings"
    REVIEWS = "reviews"
    EMAILS = "emails"
    PROGRESS = "progress"
    RISKS = "risks"
    OBSERVATIONS = "observations"
    FOCUS_TIME = "focus_time"


SECTION_ORDER = [
    SectionType.CRITICAL,
    SectionType.MEETINGS,
    SectionType.REVIEWS,
    SectionType.EMAILS,
    SectionType.PROGRESS,
    SectionType.RISKS,
    SectionType.OBSERVATIONS,
    SectionType.FOCUS_TIME,
]

SECTION_CAPS = {
    SectionType.CRITICAL: 7,
    SectionType.MEETINGS: 5,
    SectionType.REVIEWS: 5,
    SectionType.EMAILS: 5,
    SectionType.PROGRESS: 6,
    SectionType.RISKS: 5,
    SectionType.OBSERVATIONS: 5,
    SectionType.FOCUS_TIME: 5,
}

SECTION_TITLES = {
    SectionType.CRITICAL: "Critical - Needs Attention Today",
    SectionType.MEETINGS: "Meetings & Preparation",
    SectionType.REVIEWS: "Code Reviews",
    SectionType.EMAILS: "Emails Requiring Response",
    SectionType.PROGRESS: "Development Progress",
    SectionType.RISKS: "Risks & Blockers",
    SectionType.OBSERVATIONS: "Cross-Tool Observations",
    SectionType.FOCUS_TIME: "Focus Time",
}


def normalize_section_type(value):
    """Accept "FOCUS_TIME", "focus-time", "Focus Time" and friends."""
    if isinstance(value, str):
        return value.strip().lower().replace("-", "_").replace(" ", "_")
    return value


class CorrelationRef(CamelModel):
    """A correlation as seen from one of its endpoints"""
    type: CorrelationType
    related_id: str
    related_domain: str
    confidence: float = Field(ge=0.0, le=1.0)
    reason: str

    @classmethod
    def from_correlation(cls, correlation: Correlation, item_id: str) -> "CorrelationRef":
        if correlation.source_item == item_id:
            related_id, related_domain = correlation.target_item, correlation.target_domain
        else:
            related_id, related_domain = correlation.source_item, correlation.source_domain
        return cls(
            type=correlation.type,
            related_id=related_id,
            related_domain=related_domain,
            confidence=correlation.confidence,
            reason=correlation.reason,
        )


class BriefItem(CamelModel):
    title: str
    description: str = ""
    priority: Optional[Priority] = None
    domain: Optional[str] = None
    source_id: Optional[str] = None
    url: Optional[str] = None
    deadline: Optional[str] = None
    blocking_impact: Optional[str] = None
    effort: Optional[Effort] = None
    urgency: Optional[Urgency] = None
    correlations: List[CorrelationRef] = Field(default_factory=list)

    @field_validator("priority", "effort", "urgency", mode="before")
    @classmethod
    def normalize_levels(cls, value):
        if isinstance(value, str):
            value = value.strip().lower().replace(" ", "_")
            return value or None
        return value


class BriefSection(CamelModel):
    id: str
    type: SectionType
    title: str
    items: List[BriefItem] = Field(default_factory=list)
    section_insight: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value):
        return normalize_section_type(value)


class OverallInsights(CamelModel):
    hidden_tasks_found: int = 0
    critical_correlations: List[str] = Field(default_factory=list)
    work_patterns: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class Brief(CamelModel):
    id: str
    generated_at: datetime
    sections: List[BriefSection] = Field(default_factory=list)
    overall_insights: OverallInsights = Field(default_factory=OverallInsights)
    error: Optional[str] = None

    @classmethod
    def unavailable(cls, brief_id: str, generated_at: datetime, reason: str) -> "Brief":
        """Minimal brief returned when no synthesis path produced output"""
        return cls(
            id=brief_id,
            generated_at=generated_at,
            overall_insights=OverallInsights(
                recommendations=["Analysis unavailable - please retry brief generation"],
            ),
            error=reason,
        )

    def section(self, section_type: SectionType) -> Optional[BriefSection]:
        for section in self.sections:
            if section.type == section_type:
                return section
        return None


# ============================================================================
# AI draft (decoded from the synthesis loop's terminal answer)
# ============================================================================

class DraftSection(CamelModel):
    type: SectionType
    title: Optional[str] = None
    items: List[BriefItem] = Field(default_factory=list)
    section_insight: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value):
        return normalize_section_type(value)


class BriefDraft(CamelModel):
    sections: List[DraftSection] = Field(default_factory=list)
    overall_insights: Optional[OverallInsights] = None

    @classmethod
    def json_shape(cls) -> Dict[str, Any]:
        """Example shape shown to the reasoning engine"""
        return {
            "sections": [
                {
                    "type": "critical",
                    "title": SECTION_TITLES[SectionType.CRITICAL],
                    "items": [
                        {
                            "title": "...",
                            "description": "...",
                            "priority": "critical|high|medium|low",
                            "domain": "code-review|issue-tracker|messaging|scheduling",
                            "sourceId": "id of the finding item",
                            "deadline": "today",
                            "effort": "quick|medium|large",
                        }
                    ],
                    "sectionInsight": "optional one-line insight",
                }
            ],
            "overallInsights": {
                "hiddenTasksFound": 0,
                "criticalCorrelations": ["..."],
                "workPatterns": ["..."],
                "recommendations": ["..."],
            },
        }
