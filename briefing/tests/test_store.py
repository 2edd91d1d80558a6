"""Tests for the session store backends."""

import json

import pytest

from briefing.common.schemas import Correlation, Domain


def _correlation():
    return Correlation(
        id="corr-1",
        type="explicit",
        source_item="J1",
        target_item="E1",
        source_domain="issue-tracker",
        target_domain="messaging",
        confidence=0.95,
        reason="Both items reference ticket JIRA-55",
        actionable=True,
    )


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    from briefing.common.store import InMemorySessionStore, JsonFileSessionStore
    if request.param == "memory":
        return InMemorySessionStore()
    return JsonFileSessionStore(tmp_path / "sessions")


class TestSessionStore:
    def test_findings_round_trip(self, store, make_findings):
        findings = make_findings("issue-tracker", priority=[{"id": "J1", "title": "JIRA-55: Fix login"}])
        store.write_findings("s1", findings)

        read = store.read_findings("s1", Domain.ISSUE_TRACKER)
        assert read == findings
        assert store.read_findings("s1", Domain.MESSAGING) is None
        assert store.read_findings("other", Domain.ISSUE_TRACKER) is None

    def test_last_write_wins(self, store, make_findings):
        store.write_findings("s1", make_findings("messaging", insights=["first"]))
        store.write_findings("s1", make_findings("messaging", insights=["second"]))
        assert store.read_findings("s1", "messaging").insights == ["second"]

    def test_domains_in_fixed_order(self, store, make_findings):
        for domain in ("scheduling", "code-review", "messaging"):
            store.write_findings("s1", make_findings(domain))
        assert store.list_domains("s1") == [Domain.CODE_REVIEW, Domain.MESSAGING, Domain.SCHEDULING]
        assert list(store.read_all_findings("s1")) == [Domain.CODE_REVIEW, Domain.MESSAGING, Domain.SCHEDULING]

    def test_sessions_are_isolated(self, store, make_findings):
        store.write_findings("s1", make_findings("messaging"))
        store.write_findings("s2", make_findings("scheduling"))
        assert store.list_domains("s1") == [Domain.MESSAGING]
        assert store.list_sessions() == ["s1", "s2"]

    def test_correlations(self, store):
        assert store.read_correlations("s1") == []
        store.write_correlations("s1", [_correlation()])
        assert store.read_correlations("s1") == [_correlation()]
        store.write_correlations("s1", [])
        assert store.read_correlations("s1") == []

    def test_clear_session(self, store, make_findings):
        store.write_findings("s1", make_findings("messaging"))
        store.write_correlations("s1", [_correlation()])
        assert store.clear_session("s1") is True
        assert store.read_all_findings("s1") == {}
        assert store.read_correlations("s1") == []
        assert store.clear_session("s1") is False

    def test_stats(self, store, make_findings):
        store.write_findings("s1", make_findings("messaging"))
        store.write_findings("s1", make_findings("scheduling"))
        store.write_correlations("s1", [_correlation()])
        assert store.get_stats() == {"sessions": 1, "findings": 2, "correlations": 1}


class TestInMemoryStore:
    def test_reads_are_copies(self, make_findings):
        from briefing.common.store import InMemorySessionStore
        store = InMemorySessionStore()
        store.write_findings("s1", make_findings("messaging", insights=["a"]))

        read = store.read_findings("s1", Domain.MESSAGING)
        read.insights.append("mutated")

        assert store.read_findings("s1", Domain.MESSAGING).insights == ["a"]

    def test_evicts_least_recently_written_session(self, make_findings, caplog):
        import logging
        from briefing.common.store import InMemorySessionStore
        store = InMemorySessionStore(max_sessions=2)
        store.write_findings("s1", make_findings("messaging"))
        store.write_findings("s2", make_findings("messaging"))
        store.write_correlations("s1", [_correlation()])

        with caplog.at_level(logging.INFO, logger="briefing.common.store"):
            store.write_findings("s3", make_findings("scheduling"))

        assert store.list_sessions() == ["s1", "s3"]
        assert store.read_findings("s2", Domain.MESSAGING) is None
        assert store.read_correlations("s1") == [_correlation()]
        assert "Evicted session s2" in caplog.text

    def test_cleared_sessions_free_their_slot(self, make_findings):
        from briefing.common.store import InMemorySessionStore
        store = InMemorySessionStore(max_sessions=2)
        store.write_findings("s1", make_findings("messaging"))
        store.write_findings("s2", make_findings("messaging"))
        store.clear_session("s2")
        store.write_findings("s3", make_findings("messaging"))
        assert store.list_sessions() == ["s1", "s3"]

    def test_unbounded_when_zero(self, make_findings):
        from briefing.common.store import InMemorySessionStore
        store = InMemorySessionStore(max_sessions=0)
        for i in range(5):
            store.write_findings(f"s{i}", make_findings("messaging"))
        assert len(store.list_sessions()) == 5


class TestJsonFileStore:
    def test_layout_and_wire_format(self, tmp_path, make_findings):
        from briefing.common.store import JsonFileSessionStore
        store = JsonFileSessionStore(tmp_path)
        store.write_findings("s1", make_findings("code-review", priority=[{"id": "pr-1", "title": "PR #1"}]))

        data = json.loads((tmp_path / "s1" / "code-review-findings.json").read_text())
        assert data["domain"] == "code-review"
        assert data["priorityItems"][0]["id"] == "pr-1"

    def test_invalid_files_are_ignored(self, tmp_path, caplog):
        import logging
        from briefing.common.store import JsonFileSessionStore
        store = JsonFileSessionStore(tmp_path)
        session_dir = tmp_path / "s1"
        session_dir.mkdir()
        (session_dir / "messaging-findings.json").write_text("{broken")
        (session_dir / "scheduling-findings.json").write_text(json.dumps({"summary": "no domain"}))
        (session_dir / "unknown-findings.json").write_text("{}")

        with caplog.at_level(logging.WARNING, logger="briefing.common.store"):
            assert store.read_all_findings("s1") == {}
        assert "Invalid findings file" in caplog.text

    def test_session_id_is_sanitized(self, tmp_path, make_findings):
        from briefing.common.store import JsonFileSessionStore
        store = JsonFileSessionStore(tmp_path / "root")
        store.write_findings("../escape", make_findings("messaging"))
        assert not (tmp_path / "escape").exists()
        assert store.read_findings("../escape", Domain.MESSAGING) is not None


class TestCreateStore:
    def test_backends(self, tmp_path):
        from briefing.common.config import StoreConfig
        from briefing.common.store import InMemorySessionStore, JsonFileSessionStore, create_store
        memory = create_store(StoreConfig(backend="memory", max_sessions=3))
        assert isinstance(memory, InMemorySessionStore)
        assert memory.max_sessions == 3
        assert isinstance(create_store(StoreConfig(backend="file", path=str(tmp_path))), JsonFileSessionStore)
        assert isinstance(create_store(StoreConfig(backend="redis")), InMemorySessionStore)
