"""
Specialist Workers

One worker per domain, each producing one Findings record per session.
"""

from typing import Dict, List, Mapping, Optional

from ..common.ids import Clock, utc_now
from ..common.schemas import Domain, DOMAIN_ORDER
from .base import AnalysisMode, ExecutorFactory, SpecialistWorker
from .code_review import CodeReviewWorker
from .issue_tracker import IssueTrackerWorker
from .messaging import MessagingWorker
from .scheduling import SchedulingWorker

WORKER_CLASSES = {
    Domain.CODE_REVIEW: CodeReviewWorker,
    Domain.ISSUE_TRACKER: IssueTrackerWorker,
    Domain.MESSAGING: MessagingWorker,
    Domain.SCHEDULING: SchedulingWorker,
}


def build_workers(
    fetchers: Mapping[Domain, object],
    store,
    *,
    mode: AnalysisMode = AnalysisMode.FAST,
    executor_factory: Optional[ExecutorFactory] = None,
    clock: Clock = utc_now,
    company_domain: str = "",
    issue_tracker_url: str = "",
) -> List[SpecialistWorker]:
    """One worker per domain that has a fetcher, in fixed domain order."""
    workers = []
    for domain in DOMAIN_ORDER:
        if domain not in fetchers:
            continue
        kwargs: Dict[str, object] = {
            "mode": mode,
            "executor_factory": executor_factory,
            "clock": clock,
        }
        if domain == Domain.MESSAGING:
            kwargs["company_domain"] = company_domain
        if domain == Domain.ISSUE_TRACKER:
            kwargs["base_url"] = issue_tracker_url
        workers.append(WORKER_CLASSES[domain](fetchers[domain], store, **kwargs))
    return workers


__all__ = [
    "AnalysisMode",
    "SpecialistWorker",
    "CodeReviewWorker",
    "IssueTrackerWorker",
    "MessagingWorker",
    "SchedulingWorker",
    "WORKER_CLASSES",
    "build_workers",
]
