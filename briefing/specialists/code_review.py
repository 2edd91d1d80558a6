"""
Code Review Worker

GitHub-shaped payload:
    {"pull_requests": [{number, title, body, labels, requested_reviewers,
                        draft, updated_at, html_url}, ...],
     "issues": [{number, title, body, labels, html_url}, ...]}
"""

from datetime import datetime
from typing import Any, Dict

from ..common.schemas import (
    ActionItem,
    Domain,
    Effort,
    Findings,
    Priority,
    PriorityItem,
    Urgency,
)
from .base import SpecialistWorker, days_since, label_names, truncate

URGENT_PR_LABELS = {"urgent", "critical", "hotfix", "priority"}
PRIORITY_ISSUE_LABELS = {"bug", "critical", "production"}
STALE_DRAFT_DAYS = 3
WORKLOAD_THRESHOLD = 5
REVIEW_BACKLOG_THRESHOLD = 3


class CodeReviewWorker(SpecialistWorker):
    domain = Domain.CODE_REVIEW
    role = "code review"
    focus = [
        "Pull requests that need urgent attention (reviews, merges, conflicts)",
        "Issues requiring immediate action (bugs, blockers, customer issues)",
        "Review requests that are blocking others",
        "Urgency signals in labels like urgent, hotfix, critical",
        "Stale or draft PRs that have not moved in days",
        "Failing builds, security alerts or dependency updates",
    ]

    def quick_analysis(self, payload: Dict[str, Any], now: datetime) -> Findings:
        pull_requests = payload.get("pull_requests") or payload.get("pullRequests") or []
        issues = payload.get("issues") or []

        priority_items = []
        action_items = []
        insights = []

        for pr in pull_requests:
            number = pr.get("number")
            title = pr.get("title") or "Untitled"
            reviewers = pr.get("requested_reviewers") or []

            if URGENT_PR_LABELS.intersection(label_names(pr)):
                priority_items.append(PriorityItem(
                    id=f"pr-{number}",
                    title=f"PR #{number}: {title}",
                    description=f"Critical PR requiring immediate attention: {truncate(pr.get('body'))}",
                    priority=Priority.CRITICAL,
                    domain=self.domain,
                    url=pr.get("html_url"),
                    deadline="today" if reviewers else None,
                ))

            if reviewers:
                action_items.append(ActionItem(
                    id=f"review-{number}",
                    title=f"Review PR #{number}",
                    description=f"{title} - requested review",
                    effort=Effort.MEDIUM,
                    urgency=Urgency.TODAY,
                ))

            if pr.get("draft"):
                idle = days_since(pr.get("updated_at"), now)
                if idle is not None and idle > STALE_DRAFT_DAYS:
                    insights.append(f"Draft PR #{number} hasn't been updated in {idle} days")

        for issue in issues:
            if PRIORITY_ISSUE_LABELS.intersection(label_names(issue)):
                number = issue.get("number")
                priority_items.append(PriorityItem(
                    id=f"issue-{number}",
                    title=f"Issue #{number}: {issue.get('title') or 'Untitled'}",
                    description=truncate(issue.get("body")),
                    priority=Priority.HIGH,
                    domain=self.domain,
                    url=issue.get("html_url"),
                ))

        if len(priority_items) > WORKLOAD_THRESHOLD:
            insights.append(f"High code review workload: {len(priority_items)} priority items need attention")

        reviews_today = [a for a in action_items if a.urgency == Urgency.TODAY]
        if len(reviews_today) > REVIEW_BACKLOG_THRESHOLD:
            insights.append("Consider prioritizing reviews to unblock team members")

        return Findings(
            domain=self.domain,
            timestamp=now,
            summary=f"Found {len(priority_items)} priority items and {len(action_items)} action items",
            priority_items=priority_items,
            action_items=action_items,
            insights=insights,
            metadata={
                "totalPRs": len(pull_requests),
                "totalIssues": len(issues),
                "reviewRequests": sum(1 for a in action_items if a.title.startswith("Review")),
            },
        )
