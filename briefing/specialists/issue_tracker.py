"""
Issue Tracker Worker

Jira-shaped payload:
    {"assigned_issues": [{key, url, fields: {summary, description, priority: {name},
                          status: {name}, issuetype: {name}, duedate, updated,
                          issuelinks: [{type: {name}}]}}, ...],
     "projects": [{key, name, projectCategory: {name}}, ...]}
"""

from datetime import datetime
from typing import Any, Dict, Optional

from ..common.schemas import (
    ActionItem,
    Domain,
    Effort,
    Findings,
    Priority,
    PriorityItem,
    Urgency,
)
from .base import SpecialistWorker, days_since

CRITICAL_PRIORITIES = {"critical", "highest"}
HIGH_PRIORITIES = {"high"}
ACTIONABLE_STATUSES = {"To Do", "In Progress", "In Review"}
STALE_IN_PROGRESS_DAYS = 7

EFFORT_BY_TYPE = {
    "Bug": Effort.QUICK,
    "Story": Effort.LARGE,
}


def _name(field: Any, default: str) -> str:
    if isinstance(field, dict):
        return field.get("name") or default
    return field or default


def _description(value: Any) -> str:
    """Jira Cloud returns rich-text documents; keep plain strings only"""
    if isinstance(value, str) and value:
        return value
    return "No description"


class IssueTrackerWorker(SpecialistWorker):
    domain = Domain.ISSUE_TRACKER
    role = "issue tracker"
    focus = [
        "Critical and high priority tickets assigned to the user",
        "Tickets blocking other work (issue links of type Blocks)",
        "Due dates that are today or overdue",
        "Tickets stuck in progress without recent updates",
        "Balance between bugs and feature work",
    ]

    def __init__(self, *args, base_url: str = "", **kwargs):
        super().__init__(*args, **kwargs)
        self.base_url = base_url.rstrip("/")

    def _issue_url(self, issue: Dict[str, Any]) -> Optional[str]:
        if issue.get("url"):
            return issue["url"]
        if self.base_url:
            return f"{self.base_url}/browse/{issue.get('key')}"
        return None

    def quick_analysis(self, payload: Dict[str, Any], now: datetime) -> Findings:
        issues = payload.get("assigned_issues") or payload.get("assignedIssues") or []
        projects = payload.get("projects")

        priority_items = []
        action_items = []
        insights = []
        bug_count = 0
        story_count = 0

        for issue in issues:
            key = issue.get("key")
            fields = issue.get("fields") or {}
            priority = _name(fields.get("priority"), "medium").lower()
            status = _name(fields.get("status"), "Unknown")
            issue_type = _name(fields.get("issuetype"), "Task")
            summary = fields.get("summary") or "No title"

            if priority in CRITICAL_PRIORITIES or priority in HIGH_PRIORITIES:
                blocks = any(
                    _name(link.get("type"), "") == "Blocks"
                    for link in fields.get("issuelinks") or []
                )
                priority_items.append(PriorityItem(
                    id=key,
                    title=f"{key}: {summary}",
                    description=_description(fields.get("description")),
                    priority=Priority.CRITICAL if priority in CRITICAL_PRIORITIES else Priority.HIGH,
                    domain=self.domain,
                    url=self._issue_url(issue),
                    deadline=fields.get("duedate") or None,
                    blocking_impact="Blocking other issues" if blocks else None,
                ))
                if issue_type == "Bug":
                    bug_count += 1
                elif issue_type == "Story":
                    story_count += 1

            if status in ACTIONABLE_STATUSES:
                if priority in CRITICAL_PRIORITIES:
                    urgency = Urgency.IMMEDIATE
                elif priority in HIGH_PRIORITIES:
                    urgency = Urgency.TODAY
                else:
                    urgency = Urgency.THIS_WEEK
                action_items.append(ActionItem(
                    id=f"action-{key}",
                    title=f"Work on {key}",
                    description=f"{issue_type}: {summary}",
                    effort=EFFORT_BY_TYPE.get(issue_type, Effort.MEDIUM),
                    urgency=urgency,
                    deadline=fields.get("duedate") or None,
                ))

            idle = days_since(fields.get("updated"), now)
            if status == "In Progress" and idle is not None and idle > STALE_IN_PROGRESS_DAYS:
                insights.append(f"{key} has been in progress for {idle} days without updates")

        if projects is not None:
            active = [p for p in projects if _name(p.get("projectCategory"), "") != "Archived"]
            insights.append(f"Active in {len(active)} projects")

        if bug_count > 0 and bug_count > story_count * 2:
            insights.append("High bug-to-feature ratio - consider addressing technical debt")

        blocking = sum(1 for p in priority_items if p.blocking_impact)
        if blocking:
            insights.append(f"{blocking} issues are blocking other work - prioritize these")

        return Findings(
            domain=self.domain,
            timestamp=now,
            summary=f"Found {len(priority_items)} priority issues and {len(action_items)} action items",
            priority_items=priority_items,
            action_items=action_items,
            insights=insights,
            metadata={
                "totalIssues": len(issues),
                "criticalCount": sum(1 for p in priority_items if p.priority == Priority.CRITICAL),
                "highCount": sum(1 for p in priority_items if p.priority == Priority.HIGH),
                "bugCount": bug_count,
                "storyCount": story_count,
            },
        )
