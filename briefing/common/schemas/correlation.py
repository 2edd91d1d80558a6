"""
Correlation Schema

A scored, typed relationship between two items from different domains.
"""

from enum import Enum
from typing import Dict, Iterable, List, Set

from pydantic import Field, field_validator

from .findings import CamelModel, Domain, Findings, collect_item_ids

# Placeholder used by temporal correlations instead of concrete item ids
MULTIPLE = "multiple"


class CorrelationType(str, Enum):
    EXPLICIT = "explicit"    # shared reference token (JIRA-55, #123)
    SEMANTIC = "semantic"    # shared domain vocabulary
    TEMPORAL = "temporal"    # findings produced close together


class Correlation(CamelModel):
    id: str
    type: CorrelationType
    source_item: str
    target_item: str
    source_domain: str
    target_domain: str
    confidence: float = Field(ge=0.0, le=1.0)
    reason: str
    actionable: bool = False

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    def touches(self, item_id: str) -> bool:
        return item_id in (self.source_item, self.target_item)


def dangling_references(
    correlations: Iterable[Correlation],
    findings_by_domain: Dict[Domain, Findings],
) -> List[Correlation]:
    """Correlations whose endpoints do not resolve to a known item.

    Only temporal correlations may use the "multiple" placeholder.
    """
    known: Set[str] = collect_item_ids(findings_by_domain)
    dangling = []
    for c in correlations:
        allowed = known | {MULTIPLE} if c.type == CorrelationType.TEMPORAL else known
        if c.source_item not in allowed or c.target_item not in allowed:
            dangling.append(c)
    return dangling
