"""
Findings Schema

One Findings record per (session, domain), produced by a specialist worker.
Wire shape is camelCase; Python attributes are snake_case.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# ============================================================================
# Enums
# ============================================================================

class Domain(str, Enum):
    """Data domains, one specialist worker each"""
    CODE_REVIEW = "code-review"
    ISSUE_TRACKER = "issue-tracker"
    MESSAGING = "messaging"
    SCHEDULING = "scheduling"


class Priority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Effort(str, Enum):
    QUICK = "quick"
    MEDIUM = "medium"
    LARGE = "large"


class Urgency(str, Enum):
    IMMEDIATE = "immediate"
    TODAY = "today"
    THIS_WEEK = "this_week"
    LATER = "later"


# Fixed domain order used wherever items are enumerated
DOMAIN_ORDER = [
    Domain.CODE_REVIEW,
    Domain.ISSUE_TRACKER,
    Domain.MESSAGING,
    Domain.SCHEDULING,
]


def _lower(value):
    if isinstance(value, str):
        return value.strip().lower().replace(" ", "_")
    return value


# ============================================================================
# Models
# ============================================================================

class CamelModel(BaseModel):
    """Base for every wire record: camelCase out, either case in."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class PriorityItem(CamelModel):
    """Something that blocks others or has a deadline"""
    id: str
    title: str
    description: str = ""
    priority: Priority = Priority.MEDIUM
    domain: Domain
    url: Optional[str] = None
    deadline: Optional[str] = None  # "today", "tomorrow", "immediate" or an ISO date
    blocking_impact: Optional[str] = None

    @field_validator("priority", mode="before")
    @classmethod
    def normalize_priority(cls, value):
        return _lower(value)


class ActionItem(CamelModel):
    """A concrete task the user needs to do"""
    id: str
    title: str
    description: str = ""
    effort: Effort = Effort.MEDIUM
    urgency: Urgency = Urgency.THIS_WEEK
    deadline: Optional[str] = None

    @field_validator("effort", "urgency", mode="before")
    @classmethod
    def normalize_levels(cls, value):
        return _lower(value)


class Findings(CamelModel):
    """Output of one specialist worker for one domain in one session"""
    domain: Domain
    timestamp: datetime
    summary: str = ""
    priority_items: List[PriorityItem] = Field(default_factory=list)
    action_items: List[ActionItem] = Field(default_factory=list)
    insights: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def all_item_ids(self) -> Set[str]:
        ids = {item.id for item in self.priority_items}
        ids.update(item.id for item in self.action_items)
        return ids


def collect_item_ids(findings_by_domain: Dict[Domain, Findings]) -> Set[str]:
    """Every id a correlation may legally reference"""
    ids: Set[str] = set()
    for findings in findings_by_domain.values():
        ids.update(findings.all_item_ids())
    return ids
