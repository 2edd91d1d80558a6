"""Tests for the correlation detector and the deep/fast correlation engine."""

from datetime import timedelta

import pytest

from briefing.common.ids import SequentialIdProvider
from briefing.common.schemas import MULTIPLE, CorrelationType, Domain, dangling_references


def _by_type(correlations, type_):
    return [c for c in correlations if c.type == type_]


class TestReferenceTokens:
    def test_tickets_and_pull_requests(self):
        from briefing.correlation import reference_tokens
        assert reference_tokens("PR 42 fixes #42 and JIRA-55") == ["#42", "JIRA-55"]

    def test_ticket_keys_are_case_sensitive(self):
        from briefing.correlation import reference_tokens
        assert reference_tokens("see jira-55") == []

    def test_pr_spellings_normalize(self):
        from briefing.correlation import reference_tokens
        assert reference_tokens("pr#7") == ["#7"]
        assert reference_tokens("PR 7") == ["#7"]
        assert reference_tokens("#7") == ["#7"]


class TestSemanticConfidence:
    def test_monotone_and_capped(self):
        from briefing.correlation import semantic_confidence
        values = [semantic_confidence(n) for n in range(2, 8)]
        assert values == sorted(values)
        assert values[0] == 0.9
        assert values[1] == 1.0
        assert max(values) == 1.0


class TestExplicitCorrelation:
    def test_shared_ticket_key(self, make_findings):
        from briefing.correlation import CorrelationDetector
        findings = {
            Domain.ISSUE_TRACKER: make_findings("issue-tracker", priority=[
                {"id": "J1", "title": "JIRA-55: Fix login timeout"},
            ]),
            Domain.MESSAGING: make_findings("messaging", priority=[
                {"id": "E1", "title": "Email: Status of JIRA-55?"},
            ]),
        }
        correlations = CorrelationDetector(SequentialIdProvider()).detect(findings)

        explicit = _by_type(correlations, CorrelationType.EXPLICIT)
        assert len(explicit) == 1
        c = explicit[0]
        assert {c.source_item, c.target_item} == {"J1", "E1"}
        assert c.confidence == 0.95
        assert c.actionable is True
        assert "JIRA-55" in c.reason

    def test_shared_pull_request_number(self, make_findings):
        from briefing.correlation import CorrelationDetector
        findings = {
            Domain.CODE_REVIEW: make_findings("code-review", priority=[
                {"id": "pr-42", "title": "PR #42: Add retries"},
            ]),
            Domain.MESSAGING: make_findings("messaging", priority=[
                {"id": "m1", "title": "Email: can you look at pr 42"},
            ]),
        }
        explicit = _by_type(CorrelationDetector().detect(findings), CorrelationType.EXPLICIT)
        assert len(explicit) == 1
        assert "pull request #42" in explicit[0].reason

    def test_same_domain_items_never_correlate(self, make_findings):
        from briefing.correlation import CorrelationDetector
        findings = {
            Domain.ISSUE_TRACKER: make_findings("issue-tracker", priority=[
                {"id": "A-1", "title": "ABC-1 parent"},
                {"id": "A-2", "title": "ABC-1 child"},
            ]),
        }
        correlations = CorrelationDetector().detect(findings)
        assert [c.type for c in correlations] == [CorrelationType.TEMPORAL]


class TestSemanticCorrelation:
    def test_review_merge_security(self, make_findings):
        from briefing.correlation import CorrelationDetector
        findings = {
            Domain.CODE_REVIEW: make_findings("code-review", priority=[
                {"id": "pr-1", "title": "Security review needed before merge"},
            ]),
            Domain.ISSUE_TRACKER: make_findings("issue-tracker", priority=[
                {"id": "T-1", "title": "Merge the security patch after review"},
            ]),
        }
        semantic = _by_type(CorrelationDetector().detect(findings), CorrelationType.SEMANTIC)
        assert len(semantic) == 1
        assert semantic[0].confidence == 1.0
        assert semantic[0].actionable is True
        assert semantic[0].reason == "Related topics: security, review, merge"

    def test_two_keywords_without_review_is_not_actionable(self, make_findings):
        from briefing.correlation import CorrelationDetector
        findings = {
            Domain.CODE_REVIEW: make_findings("code-review", priority=[
                {"id": "pr-1", "title": "Speed up API database queries"},
            ]),
            Domain.MESSAGING: make_findings("messaging", priority=[
                {"id": "m1", "title": "Email: database errors from the public APIs"},
            ]),
        }
        semantic = _by_type(CorrelationDetector().detect(findings), CorrelationType.SEMANTIC)
        assert len(semantic) == 1
        assert semantic[0].confidence == 0.9
        assert semantic[0].actionable is False

    def test_one_shared_keyword_is_not_enough(self, make_findings):
        from briefing.correlation import CorrelationDetector
        findings = {
            Domain.CODE_REVIEW: make_findings("code-review", priority=[
                {"id": "pr-1", "title": "Fix flaky test"},
            ]),
            Domain.MESSAGING: make_findings("messaging", priority=[
                {"id": "m1", "title": "Email: test plan"},
            ]),
        }
        assert _by_type(CorrelationDetector().detect(findings), CorrelationType.SEMANTIC) == []

    def test_keywords_match_at_word_start_only(self, make_findings):
        from briefing.correlation import CorrelationDetector
        findings = {
            Domain.CODE_REVIEW: make_findings("code-review", priority=[
                {"id": "pr-1", "title": "Latest rapid changes"},
            ]),
            Domain.MESSAGING: make_findings("messaging", priority=[
                {"id": "m1", "title": "Email: test the api"},
            ]),
        }
        assert _by_type(CorrelationDetector().detect(findings), CorrelationType.SEMANTIC) == []


class TestDependencyHeuristics:
    def test_blocking_and_waiting(self, make_findings):
        from briefing.correlation import CorrelationDetector
        findings = {
            Domain.CODE_REVIEW: make_findings("code-review", priority=[
                {"id": "pr-9", "title": "Rollout blocked on infra"},
            ]),
            Domain.MESSAGING: make_findings("messaging", priority=[
                {"id": "m9", "title": "Email: still waiting on infra"},
            ]),
        }
        correlations = _by_type(CorrelationDetector().detect(findings), CorrelationType.SEMANTIC)
        assert len(correlations) == 1
        c = correlations[0]
        assert (c.source_item, c.target_item) == ("pr-9", "m9")
        assert c.confidence == 0.8
        assert c.reason == "Potential blocking relationship detected"

    def test_meeting_needs_preparation(self, make_findings):
        from briefing.correlation import CorrelationDetector
        findings = {
            Domain.MESSAGING: make_findings("messaging", actions=[
                {"id": "respond-x", "title": "Prepare slides for Thursday"},
            ]),
            Domain.SCHEDULING: make_findings("scheduling", priority=[
                {"id": "ev-1", "title": "Meeting: Quarterly planning"},
            ]),
        }
        correlations = _by_type(CorrelationDetector().detect(findings), CorrelationType.SEMANTIC)
        assert len(correlations) == 1
        c = correlations[0]
        assert (c.source_item, c.target_item) == ("ev-1", "respond-x")
        assert c.confidence == 0.85


class TestTemporalCorrelation:
    def test_findings_within_an_hour(self, make_findings, now):
        from briefing.correlation import CorrelationDetector
        findings = {
            Domain.CODE_REVIEW: make_findings("code-review", timestamp=now),
            Domain.SCHEDULING: make_findings("scheduling", timestamp=now + timedelta(minutes=30)),
        }
        temporal = _by_type(CorrelationDetector().detect(findings), CorrelationType.TEMPORAL)
        assert len(temporal) == 1
        c = temporal[0]
        assert c.confidence == 0.6
        assert c.source_item == c.target_item == MULTIPLE
        assert c.source_domain == c.target_domain == MULTIPLE
        assert c.actionable is False

    def test_findings_far_apart(self, make_findings, now):
        from briefing.correlation import CorrelationDetector
        findings = {
            Domain.CODE_REVIEW: make_findings("code-review", timestamp=now),
            Domain.SCHEDULING: make_findings("scheduling", timestamp=now + timedelta(hours=2)),
        }
        assert CorrelationDetector().detect(findings) == []

    def test_single_findings_is_temporal(self, make_findings):
        from briefing.correlation import CorrelationDetector
        correlations = CorrelationDetector().detect({Domain.MESSAGING: make_findings("messaging")})
        assert [(c.type, c.confidence) for c in correlations] == [(CorrelationType.TEMPORAL, 0.6)]

    def test_no_findings_no_temporal(self):
        from briefing.correlation import CorrelationDetector
        assert CorrelationDetector().detect({}) == []


class TestWorkflowPatterns:
    def test_email_response_and_meeting_prep(self, make_findings, now):
        from briefing.correlation import CorrelationDetector
        findings = {
            Domain.MESSAGING: make_findings("messaging", actions=[
                {"id": "respond-m1", "title": "Respond to: Q3 planning"},
            ]),
            Domain.SCHEDULING: make_findings("scheduling", timestamp=now + timedelta(hours=3), actions=[
                {"id": "prep-ev1", "title": "Prepare for Q3 sync"},
            ]),
        }
        correlations = CorrelationDetector().detect(findings)
        assert len(correlations) == 1
        c = correlations[0]
        assert (c.source_item, c.target_item) == ("respond-m1", "prep-ev1")
        assert c.confidence == 0.75
        assert c.reason == "Email discussion likely relates to upcoming meeting"

    def test_pattern_fires_alongside_semantic_match(self, make_findings, now):
        from briefing.correlation import CorrelationDetector
        findings = {
            Domain.MESSAGING: make_findings("messaging", actions=[
                {"id": "respond-m2", "title": "Respond to: design review prep"},
            ]),
            Domain.SCHEDULING: make_findings("scheduling", timestamp=now + timedelta(hours=3), actions=[
                {"id": "prep-ev2", "title": "Prepare for design review"},
            ]),
        }
        correlations = CorrelationDetector().detect(findings)
        assert [(c.source_item, c.target_item, c.confidence) for c in correlations] == [
            ("respond-m2", "prep-ev2", 0.9),
            ("respond-m2", "prep-ev2", 0.75),
        ]
        assert correlations[1].reason == "Email discussion likely relates to upcoming meeting"

    def test_review_and_ticket_due_today(self, make_findings, now):
        from briefing.correlation import CorrelationDetector
        findings = {
            Domain.CODE_REVIEW: make_findings("code-review", actions=[
                {"id": "review-12", "title": "Review PR #12"},
            ]),
            Domain.ISSUE_TRACKER: make_findings("issue-tracker", timestamp=now + timedelta(hours=3), actions=[
                {"id": "action-ABC-1", "title": "Work on ABC-1", "urgency": "this_week"},
                {"id": "action-ABC-2", "title": "Work on ABC-2", "urgency": "today"},
            ]),
        }
        correlations = CorrelationDetector().detect(findings)
        assert len(correlations) == 1
        c = correlations[0]
        assert (c.source_item, c.target_item) == ("review-12", "action-ABC-2")
        assert c.confidence == 0.8


class TestDetectorProperties:
    @pytest.fixture
    def busy_findings(self, make_findings):
        return {
            Domain.CODE_REVIEW: make_findings("code-review", priority=[
                {"id": "pr-1", "title": "PR #1: JIRA-55 security review before merge"},
            ], actions=[{"id": "review-1", "title": "Review PR #1"}]),
            Domain.ISSUE_TRACKER: make_findings("issue-tracker", priority=[
                {"id": "JIRA-55", "title": "JIRA-55: Auth bug", "priority": "critical"},
                {"id": "JIRA-56", "title": "JIRA-56: Security merge review"},
            ], actions=[{"id": "action-JIRA-55", "title": "Work on JIRA-55", "urgency": "immediate"}]),
            Domain.MESSAGING: make_findings("messaging", priority=[
                {"id": "m1", "title": "Email: JIRA-55 is blocking release"},
            ], actions=[{"id": "respond-m1", "title": "Respond to: JIRA-55"}]),
        }

    def test_sorted_by_confidence(self, busy_findings):
        from briefing.correlation import CorrelationDetector
        correlations = CorrelationDetector().detect(busy_findings)
        confidences = [c.confidence for c in correlations]
        assert confidences == sorted(confidences, reverse=True)

    def test_no_dangling_references(self, busy_findings):
        from briefing.correlation import CorrelationDetector
        correlations = CorrelationDetector().detect(busy_findings)
        assert correlations
        assert dangling_references(correlations, busy_findings) == []
        for c in correlations:
            if c.type != CorrelationType.TEMPORAL:
                assert c.source_domain != c.target_domain
            assert 0.0 <= c.confidence <= 1.0

    def test_deterministic_given_ids(self, busy_findings):
        from briefing.correlation import CorrelationDetector
        first = CorrelationDetector(SequentialIdProvider()).detect(busy_findings)
        second = CorrelationDetector(SequentialIdProvider()).detect(busy_findings)
        assert [c.to_wire() for c in first] == [c.to_wire() for c in second]


# ============================================================================
# Engine
# ============================================================================

def _seed(store, make_findings, session="s1"):
    store.write_findings(session, make_findings("issue-tracker", priority=[
        {"id": "J1", "title": "JIRA-55: Fix login timeout"},
    ]))
    store.write_findings(session, make_findings("messaging", priority=[
        {"id": "E1", "title": "Email: Status of JIRA-55?"},
    ]))


def _executor_factory(llm, store):
    from briefing.executor import ToolExecutor, build_capability_registry
    registry = build_capability_registry(store, {}, id_provider=SequentialIdProvider())
    return lambda context: ToolExecutor(llm, registry, context=context, max_iterations=5)


class TestCorrelationEngine:
    @pytest.mark.asyncio
    async def test_fast_mode_writes_store(self, make_findings):
        from briefing.common.store import InMemorySessionStore
        from briefing.correlation import CorrelationEngine

        store = InMemorySessionStore()
        _seed(store, make_findings)
        engine = CorrelationEngine(store, id_provider=SequentialIdProvider())

        correlations = await engine.correlate("s1", "u1")

        assert any(c.type == CorrelationType.EXPLICIT for c in correlations)
        assert [c.id for c in store.read_correlations("s1")] == [c.id for c in correlations]

    @pytest.mark.asyncio
    async def test_deep_mode_uses_written_correlations(self, make_findings, scripted_llm, turns):
        from briefing.common.store import InMemorySessionStore
        from briefing.correlation import CorrelationEngine

        store = InMemorySessionStore()
        _seed(store, make_findings)
        llm = scripted_llm(
            turns.call(("read_all_findings", {})),
            turns.call(("write_correlations", {"correlations": [{
                "type": "semantic",
                "sourceItem": "J1",
                "targetItem": "E1",
                "confidence": 0.7,
                "reason": "Login issue discussed by email",
                "actionable": True,
            }]})),
            turns.text("Saved 1 correlation."),
        )
        engine = CorrelationEngine(store, mode="deep", executor_factory=_executor_factory(llm, store))

        correlations = await engine.correlate("s1", "u1")

        assert len(correlations) == 1
        c = correlations[0]
        assert c.reason == "Login issue discussed by email"
        assert c.source_domain == "issue-tracker"
        assert c.target_domain == "messaging"
        assert llm.requests[0]["tools"] == ["read_all_findings", "write_correlations"]

    @pytest.mark.asyncio
    async def test_deep_mode_rejecting_dangling_falls_back(self, make_findings, scripted_llm, turns):
        from briefing.common.store import InMemorySessionStore
        from briefing.correlation import CorrelationEngine

        store = InMemorySessionStore()
        _seed(store, make_findings)
        llm = scripted_llm(
            turns.call(("write_correlations", {"correlations": [{
                "type": "explicit",
                "sourceItem": "J1",
                "targetItem": "NOPE-1",
                "confidence": 0.9,
                "reason": "made up",
            }]})),
            turns.text("Done."),
        )
        engine = CorrelationEngine(store, mode="deep", executor_factory=_executor_factory(llm, store))

        correlations = await engine.correlate("s1", "u1")

        assert all(c.target_item != "NOPE-1" for c in correlations)
        assert any(c.type == CorrelationType.EXPLICIT and c.confidence == 0.95 for c in correlations)
        assert dangling_references(correlations, store.read_all_findings("s1")) == []

    @pytest.mark.asyncio
    async def test_deep_mode_engine_error_falls_back(self, make_findings, scripted_llm, caplog):
        import logging
        from briefing.common.store import InMemorySessionStore
        from briefing.correlation import CorrelationEngine

        store = InMemorySessionStore()
        _seed(store, make_findings)
        llm = scripted_llm(RuntimeError("provider down"))
        engine = CorrelationEngine(store, mode="deep", executor_factory=_executor_factory(llm, store))

        with caplog.at_level(logging.WARNING, logger="briefing.correlation.engine"):
            correlations = await engine.correlate("s1", "u1")

        assert any(c.type == CorrelationType.EXPLICIT for c in correlations)
        assert "Deep correlation failed" in caplog.text
