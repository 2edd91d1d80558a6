"""
Capability Registry

Every side effect an agent can cause goes through a Capability: domain
fetches and store reads/writes. Each capability declares which context
values (session_id, user_id, domain) the loop must inject into its
arguments, so call sites never pass them by hand.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from ..common.errors import FetchError
from ..common.ids import Clock, IdProvider, UuidIdProvider, utc_now
from ..common.schemas import (
    MULTIPLE,
    Correlation,
    Domain,
    Findings,
    dangling_references,
)

logger = logging.getLogger("briefing.executor.tools")

SESSION_ID = "session_id"
USER_ID = "user_id"
DOMAIN = "domain"
CONTEXT_FIELDS = (SESSION_ID, USER_ID, DOMAIN)

FETCH_TOOLS = {
    Domain.CODE_REVIEW: "fetch_code_review_data",
    Domain.ISSUE_TRACKER: "fetch_issue_tracker_data",
    Domain.MESSAGING: "fetch_message_data",
    Domain.SCHEDULING: "fetch_schedule_data",
}

Handler = Callable[[Dict[str, Any]], Awaitable[Any]]


@dataclass
class Capability:
    """A named, schema-declared operation invocable from the tool loop"""
    name: str
    description: str
    input_schema: Dict[str, Any]
    handler: Handler
    required_context: Tuple[str, ...] = ()

    def __post_init__(self):
        unknown = set(self.required_context) - set(CONTEXT_FIELDS)
        if unknown:
            raise ValueError(f"Unknown context fields for {self.name}: {sorted(unknown)}")


@dataclass
class ToolContext:
    """Values injected into capability arguments"""
    session_id: Optional[str] = None
    user_id: Optional[str] = None
    domain: Optional[str] = None

    def get(self, name: str) -> Optional[str]:
        return getattr(self, name)


class CapabilityRegistry:
    def __init__(self, capabilities: Iterable[Capability] = ()):
        self._capabilities: Dict[str, Capability] = {}
        for capability in capabilities:
            self.register(capability)

    def register(self, capability: Capability) -> None:
        if capability.name in self._capabilities:
            raise ValueError(f"Capability already registered: {capability.name}")
        self._capabilities[capability.name] = capability

    def get(self, name: str) -> Optional[Capability]:
        return self._capabilities.get(name)

    def names(self) -> List[str]:
        return list(self._capabilities)

    def definitions(self, allowed: Iterable[str]) -> List[Capability]:
        """Capabilities on the allow-list, in allow-list order"""
        result = []
        for name in allowed:
            capability = self._capabilities.get(name)
            if capability is None:
                logger.warning("Allow-list names unknown capability: %s", name)
                continue
            result.append(capability)
        return result


def _object_schema(properties: Mapping[str, Any], required: List[str] = None) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": dict(properties),
        "required": required or [],
    }


FINDINGS_SCHEMA = {
    "type": "object",
    "description": "Analysis findings to save",
    "properties": {
        "summary": {"type": "string"},
        "priorityItems": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "title": {"type": "string"},
                    "description": {"type": "string"},
                    "priority": {"type": "string", "enum": ["critical", "high", "medium", "low"]},
                    "url": {"type": "string"},
                    "deadline": {"type": "string"},
                    "blockingImpact": {"type": "string"},
                },
                "required": ["id", "title", "priority"],
            },
        },
        "actionItems": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "title": {"type": "string"},
                    "description": {"type": "string"},
                    "effort": {"type": "string", "enum": ["quick", "medium", "large"]},
                    "urgency": {"type": "string", "enum": ["immediate", "today", "this_week", "later"]},
                },
                "required": ["id", "title", "effort", "urgency"],
            },
        },
        "insights": {"type": "array", "items": {"type": "string"}},
        "metadata": {"type": "object"},
    },
    "required": ["summary", "priorityItems", "actionItems", "insights"],
}

CORRELATIONS_SCHEMA = {
    "type": "array",
    "description": "Correlations between items from different domains",
    "items": {
        "type": "object",
        "properties": {
            "type": {"type": "string", "enum": ["explicit", "semantic", "temporal"]},
            "sourceItem": {"type": "string"},
            "targetItem": {"type": "string"},
            "sourceDomain": {"type": "string"},
            "targetDomain": {"type": "string"},
            "confidence": {"type": "number", "minimum": 0, "maximum": 1},
            "reason": {"type": "string"},
            "actionable": {"type": "boolean"},
        },
        "required": ["type", "sourceItem", "targetItem", "confidence", "reason"],
    },
}


def build_capability_registry(
    store,
    fetchers: Mapping[Domain, Any],
    id_provider: Optional[IdProvider] = None,
    clock: Clock = utc_now,
) -> CapabilityRegistry:
    """
    Register the standard capabilities.

    Args:
        store: SessionStore shared by every agent role
        fetchers: one DomainFetcher per domain (missing domains fail on fetch)
        id_provider: mints ids for correlations written without one
        clock: timestamps findings written without one
    """
    id_provider = id_provider or UuidIdProvider()
    registry = CapabilityRegistry()

    # ---------- Domain fetches ---------- #
    def _fetch_handler(domain: Domain) -> Handler:
        async def handler(args: Dict[str, Any]) -> Any:
            fetcher = fetchers.get(domain)
            if fetcher is None:
                raise FetchError(f"No fetcher configured for {domain.value}")
            return await fetcher.fetch(args[USER_ID])
        return handler

    for domain, tool_name in FETCH_TOOLS.items():
        registry.register(Capability(
            name=tool_name,
            description=f"Fetch the user's latest {domain.value} data.",
            input_schema=_object_schema({}),
            handler=_fetch_handler(domain),
            required_context=(USER_ID,),
        ))

    # ---------- Findings ---------- #
    async def write_findings(args: Dict[str, Any]) -> Any:
        domain = Domain(args[DOMAIN])
        data = dict(args.get("findings") or {})
        data["domain"] = domain.value
        data.setdefault("timestamp", clock())
        for key in ("priorityItems", "priority_items"):
            if key in data:
                data[key] = [dict(item, domain=domain.value) for item in data[key] or []]
        findings = Findings.model_validate(data)
        store.write_findings(args[SESSION_ID], findings)
        logger.info(
            "Findings written: %s (%d priority, %d action)",
            domain.value, len(findings.priority_items), len(findings.action_items),
        )
        return {
            "success": True,
            "domain": domain.value,
            "priorityItems": len(findings.priority_items),
            "actionItems": len(findings.action_items),
        }

    registry.register(Capability(
        name="write_findings",
        description="Save your analysis findings for this session.",
        input_schema=_object_schema({"findings": FINDINGS_SCHEMA}, ["findings"]),
        handler=write_findings,
        required_context=(SESSION_ID, DOMAIN),
    ))

    async def read_findings(args: Dict[str, Any]) -> Any:
        if not args.get("domain"):
            return await read_all_findings(args)
        findings = store.read_findings(args[SESSION_ID], Domain(args["domain"]))
        return findings.to_wire() if findings else None

    registry.register(Capability(
        name="read_findings",
        description="Read the findings one domain wrote for this session (all domains when omitted).",
        input_schema=_object_schema(
            {"domain": {"type": "string", "enum": [d.value for d in Domain]}},
        ),
        handler=read_findings,
        required_context=(SESSION_ID,),
    ))

    async def list_findings(args: Dict[str, Any]) -> Any:
        return [d.value for d in store.list_domains(args[SESSION_ID])]

    registry.register(Capability(
        name="list_findings",
        description="List the domains that have written findings for this session.",
        input_schema=_object_schema({}),
        handler=list_findings,
        required_context=(SESSION_ID,),
    ))

    async def read_all_findings(args: Dict[str, Any]) -> Any:
        return {
            domain.value: findings.to_wire()
            for domain, findings in store.read_all_findings(args[SESSION_ID]).items()
        }

    registry.register(Capability(
        name="read_all_findings",
        description="Read findings from every domain for this session.",
        input_schema=_object_schema({}),
        handler=read_all_findings,
        required_context=(SESSION_ID,),
    ))

    # ---------- Correlations ---------- #
    async def write_correlations(args: Dict[str, Any]) -> Any:
        session_id = args[SESSION_ID]
        findings = store.read_all_findings(session_id)
        owner = {
            item_id: domain.value
            for domain, f in findings.items()
            for item_id in f.all_item_ids()
        }
        correlations = []
        for raw in args.get("correlations") or []:
            data = dict(raw)
            data.setdefault("id", id_provider.new_id("corr"))
            if "sourceDomain" not in data and "source_domain" not in data:
                data["sourceDomain"] = owner.get(data.get("sourceItem") or data.get("source_item"), MULTIPLE)
            if "targetDomain" not in data and "target_domain" not in data:
                data["targetDomain"] = owner.get(data.get("targetItem") or data.get("target_item"), MULTIPLE)
            correlations.append(Correlation.model_validate(data))

        dangling = dangling_references(correlations, findings)
        if dangling:
            refs = ", ".join(f"{c.source_item}->{c.target_item}" for c in dangling)
            raise ValueError(f"Correlations reference unknown item ids: {refs}")

        store.write_correlations(session_id, correlations)
        logger.info("Correlations written: %d", len(correlations))
        return {"success": True, "count": len(correlations)}

    registry.register(Capability(
        name="write_correlations",
        description=(
            "Save correlations for this session. sourceItem and targetItem must be "
            "item ids taken from the findings."
        ),
        input_schema=_object_schema({"correlations": CORRELATIONS_SCHEMA}, ["correlations"]),
        handler=write_correlations,
        required_context=(SESSION_ID,),
    ))

    async def read_correlations(args: Dict[str, Any]) -> Any:
        return [c.to_wire() for c in store.read_correlations(args[SESSION_ID])]

    registry.register(Capability(
        name="read_correlations",
        description="Read the correlations saved for this session.",
        input_schema=_object_schema({}),
        handler=read_correlations,
        required_context=(SESSION_ID,),
    ))

    return registry
