"""
Session Store

Session-scoped persistence for per-domain Findings and Correlations.
Keys are (session, domain); workers never share a key, so nothing here locks.

Two backends:
- InMemorySessionStore: process-local, for tests and the API server
- JsonFileSessionStore: one directory per session under ~/.briefing/sessions
"""

import copy
import json
import logging
import re
import shutil
from abc import ABC, abstractmethod
from collections import OrderedDict
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from .schemas import Correlation, Domain, DOMAIN_ORDER, Findings

logger = logging.getLogger("briefing.common.store")


class SessionStore(ABC):
    """Interface injected into workers, the correlation engine and the coordinator."""

    @abstractmethod
    def write_findings(self, session_id: str, findings: Findings) -> None:
        """Write the Findings for (session, findings.domain). Last write wins."""
        pass

    @abstractmethod
    def read_findings(self, session_id: str, domain: Domain) -> Optional[Findings]:
        pass

    @abstractmethod
    def list_domains(self, session_id: str) -> List[Domain]:
        pass

    @abstractmethod
    def write_correlations(self, session_id: str, correlations: List[Correlation]) -> None:
        pass

    @abstractmethod
    def read_correlations(self, session_id: str) -> List[Correlation]:
        pass

    @abstractmethod
    def clear_session(self, session_id: str) -> bool:
        pass

    @abstractmethod
    def list_sessions(self) -> List[str]:
        pass

    def read_all_findings(self, session_id: str) -> Dict[Domain, Findings]:
        """All Findings written for the session, in fixed domain order."""
        result: Dict[Domain, Findings] = {}
        for domain in self.list_domains(session_id):
            findings = self.read_findings(session_id, domain)
            if findings is not None:
                result[domain] = findings
        return result

    def get_stats(self) -> Dict[str, int]:
        sessions = self.list_sessions()
        return {
            "sessions": len(sessions),
            "findings": sum(len(self.list_domains(s)) for s in sessions),
            "correlations": sum(len(self.read_correlations(s)) for s in sessions),
        }


def _ordered(domains) -> List[Domain]:
    return [d for d in DOMAIN_ORDER if d in domains]


class InMemorySessionStore(SessionStore):
    """
    Dict-backed store. Reads and writes copy, so callers cannot mutate stored records.

    Holds at most ``max_sessions`` sessions (0 or None for no bound); writing to a
    new session past the bound evicts the least recently written one.
    """

    def __init__(self, max_sessions: Optional[int] = None):
        self.max_sessions = max_sessions or None
        self._findings: Dict[str, Dict[Domain, Findings]] = {}
        self._correlations: Dict[str, List[Correlation]] = {}
        self._recent: "OrderedDict[str, None]" = OrderedDict()

    def _touch(self, session_id: str) -> None:
        self._recent[session_id] = None
        self._recent.move_to_end(session_id)
        while self.max_sessions and len(self._recent) > self.max_sessions:
            evicted, _ = self._recent.popitem(last=False)
            self._findings.pop(evicted, None)
            self._correlations.pop(evicted, None)
            logger.info("Evicted session %s (limit %d)", evicted, self.max_sessions)

    def write_findings(self, session_id: str, findings: Findings) -> None:
        self._touch(session_id)
        self._findings.setdefault(session_id, {})[findings.domain] = findings.model_copy(deep=True)

    def read_findings(self, session_id: str, domain: Domain) -> Optional[Findings]:
        findings = self._findings.get(session_id, {}).get(Domain(domain))
        return findings.model_copy(deep=True) if findings is not None else None

    def list_domains(self, session_id: str) -> List[Domain]:
        return _ordered(self._findings.get(session_id, {}).keys())

    def write_correlations(self, session_id: str, correlations: List[Correlation]) -> None:
        self._touch(session_id)
        self._correlations[session_id] = copy.deepcopy(list(correlations))

    def read_correlations(self, session_id: str) -> List[Correlation]:
        return copy.deepcopy(self._correlations.get(session_id, []))

    def clear_session(self, session_id: str) -> bool:
        found = session_id in self._findings or session_id in self._correlations
        self._findings.pop(session_id, None)
        self._correlations.pop(session_id, None)
        self._recent.pop(session_id, None)
        return found

    def list_sessions(self) -> List[str]:
        return sorted(set(self._findings) | set(self._correlations))


class JsonFileSessionStore(SessionStore):
    """
    File-backed store.

    Layout:
        <root>/<session>/<domain>-findings.json
        <root>/<session>/correlations.json
    """

    CORRELATIONS_FILE = "correlations.json"
    FINDINGS_SUFFIX = "-findings.json"

    def __init__(self, root: Path):
        self._root = Path(root)

    def _session_dir(self, session_id: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", session_id).lstrip(".")
        if not safe:
            raise ValueError(f"Invalid session id: {session_id!r}")
        return self._root / safe

    def _write_json(self, path: Path, data) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        with open(tmp, "w") as f:
            json.dump(data, f, indent=2, default=str)
        tmp.replace(path)

    def _read_json(self, path: Path):
        if not path.exists():
            return None
        try:
            with open(path) as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Failed to read %s: %s", path, e)
            return None

    def write_findings(self, session_id: str, findings: Findings) -> None:
        path = self._session_dir(session_id) / f"{findings.domain.value}{self.FINDINGS_SUFFIX}"
        self._write_json(path, findings.to_wire())

    def read_findings(self, session_id: str, domain: Domain) -> Optional[Findings]:
        domain = Domain(domain)
        data = self._read_json(self._session_dir(session_id) / f"{domain.value}{self.FINDINGS_SUFFIX}")
        if data is None:
            return None
        try:
            return Findings.model_validate(data)
        except ValidationError as e:
            logger.warning("Invalid findings file for %s/%s: %s", session_id, domain.value, e)
            return None

    def list_domains(self, session_id: str) -> List[Domain]:
        session_dir = self._session_dir(session_id)
        if not session_dir.exists():
            return []
        found = set()
        for path in session_dir.glob(f"*{self.FINDINGS_SUFFIX}"):
            name = path.name[: -len(self.FINDINGS_SUFFIX)]
            try:
                found.add(Domain(name))
            except ValueError:
                continue
        return _ordered(found)

    def write_correlations(self, session_id: str, correlations: List[Correlation]) -> None:
        path = self._session_dir(session_id) / self.CORRELATIONS_FILE
        self._write_json(path, [c.to_wire() for c in correlations])

    def read_correlations(self, session_id: str) -> List[Correlation]:
        data = self._read_json(self._session_dir(session_id) / self.CORRELATIONS_FILE)
        if not data:
            return []
        try:
            return [Correlation.model_validate(c) for c in data]
        except ValidationError as e:
            logger.warning("Invalid correlations file for %s: %s", session_id, e)
            return []

    def clear_session(self, session_id: str) -> bool:
        session_dir = self._session_dir(session_id)
        if not session_dir.exists():
            return False
        shutil.rmtree(session_dir)
        return True

    def list_sessions(self) -> List[str]:
        if not self._root.exists():
            return []
        return sorted(p.name for p in self._root.iterdir() if p.is_dir())


def create_store(store_config) -> SessionStore:
    """Build the store named by StoreConfig.backend"""
    if store_config.backend == "file":
        return JsonFileSessionStore(Path(store_config.path).expanduser())
    if store_config.backend != "memory":
        logger.warning("Unknown store backend %r, using memory", store_config.backend)
    return InMemorySessionStore(max_sessions=store_config.max_sessions)
