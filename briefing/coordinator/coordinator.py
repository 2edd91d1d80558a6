"""
Coordinator

Runs one brief generation session end to end:

1. Dispatch every specialist worker concurrently; failures stay isolated
2. Correlate the surviving Findings once all workers have settled
3. Synthesize the Brief (AI draft with deterministic fallback)

A single domain failing never fails the session. If synthesis fails on both
paths the caller still gets a Brief, marked unavailable.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional

from ..common.config import BriefingConfig, DEEP, FAST, AI, FALLBACK, load_config
from ..common.errors import PipelineFailure, WorkerFailure
from ..common.fetchers import DomainFetcher, build_fetchers
from ..common.ids import Clock, IdProvider, UuidIdProvider, utc_now
from ..common.llm_client import LLMClient
from ..common.schemas import Brief, Correlation, Domain
from ..common.store import SessionStore, create_store
from ..correlation.engine import CorrelationEngine
from ..executor.executor import ToolExecutor
from ..executor.tools import ToolContext, build_capability_registry
from ..specialists import SpecialistWorker, build_workers
from .synthesizer import SynthesisStrategy, build_synthesizer

logger = logging.getLogger("briefing.coordinator")


@dataclass
class WorkerOutcome:
    """How one worker's run ended"""
    domain: Domain
    ok: bool
    error: Optional[str] = None
    elapsed: float = 0.0


@dataclass
class BriefRun:
    """A Brief plus the worker outcomes of the run that produced it"""
    brief: Brief
    outcomes: List[WorkerOutcome]

    @property
    def failed_domains(self) -> List[Domain]:
        return [o.domain for o in self.outcomes if not o.ok]


class Coordinator:
    def __init__(
        self,
        workers: Iterable[SpecialistWorker],
        correlation_engine: CorrelationEngine,
        synthesizer: SynthesisStrategy,
        store: SessionStore,
        *,
        worker_timeout: Optional[float] = 120.0,
        stage_timeout: Optional[float] = 180.0,
        fetchers: Optional[Mapping[Domain, DomainFetcher]] = None,
        id_provider: Optional[IdProvider] = None,
        clock: Clock = utc_now,
    ):
        """
        Args:
            workers: one SpecialistWorker per domain
            correlation_engine: runs after every worker has settled
            synthesizer: builds the Brief; expected to raise only PipelineFailure
            store: intermediate store shared by all agents of a session
            worker_timeout: seconds per worker, 0/None disables
            stage_timeout: seconds for the correlation stage, 0/None disables
            fetchers: closed by close()
        """
        self.workers = list(workers)
        self.correlation_engine = correlation_engine
        self.synthesizer = synthesizer
        self.store = store
        self.worker_timeout = worker_timeout or None
        self.stage_timeout = stage_timeout or None
        self.fetchers = dict(fetchers or {})
        self.ids = id_provider or UuidIdProvider()
        self.clock = clock

    async def generate_brief(self, session_id: str, user_id: str) -> Brief:
        run = await self.run(session_id, user_id)
        return run.brief

    async def run(self, session_id: str, user_id: str) -> BriefRun:
        """Generate a Brief together with this run's worker outcomes"""
        logger.info("Starting brief generation for session %s", session_id)
        self.store.clear_session(session_id)

        logger.info("Phase 1: running %d specialist workers", len(self.workers))
        outcomes = list(await asyncio.gather(
            *(self._run_worker(worker, session_id, user_id) for worker in self.workers)
        ))
        succeeded = sum(1 for o in outcomes if o.ok)
        logger.info("Workers finished: %d/%d succeeded", succeeded, len(outcomes))

        logger.info("Phase 2: correlation analysis")
        correlations = await self._correlate(session_id, user_id)

        logger.info("Phase 3: synthesizing brief")
        findings = self.store.read_all_findings(session_id)
        try:
            brief = await self.synthesizer.synthesize(session_id, user_id, findings, correlations)
        except PipelineFailure as e:
            logger.error("Brief synthesis failed for session %s: %s", session_id, e)
            return BriefRun(Brief.unavailable(self.ids.new_id("brief"), self.clock(), str(e)), outcomes)

        logger.info("Brief %s generated with %d sections", brief.id, len(brief.sections))
        return BriefRun(brief, outcomes)

    async def _run_worker(self, worker: SpecialistWorker, session_id: str, user_id: str) -> WorkerOutcome:
        domain = worker.domain
        started = time.monotonic()
        try:
            await asyncio.wait_for(worker.analyze(session_id, user_id), timeout=self.worker_timeout)
        except asyncio.TimeoutError:
            failure = WorkerFailure(domain.value, TimeoutError(f"timed out after {self.worker_timeout}s"))
        except WorkerFailure as e:
            failure = e
        except Exception as e:
            failure = WorkerFailure(domain.value, e)
        else:
            elapsed = time.monotonic() - started
            logger.info("%s worker completed in %.2fs", domain.value, elapsed)
            return WorkerOutcome(domain=domain, ok=True, elapsed=elapsed)

        logger.warning("%s", failure)
        return WorkerOutcome(
            domain=domain,
            ok=False,
            error=str(failure),
            elapsed=time.monotonic() - started,
        )

    async def _correlate(self, session_id: str, user_id: str) -> List[Correlation]:
        try:
            correlations = await asyncio.wait_for(
                self.correlation_engine.correlate(session_id, user_id),
                timeout=self.stage_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Correlation timed out after %ss, continuing without correlations", self.stage_timeout)
        except Exception as e:
            logger.warning("Correlation failed (%s), continuing without correlations", e)
        else:
            logger.info("Correlation produced %d correlations", len(correlations))
            return correlations

        self.store.write_correlations(session_id, [])
        return []

    async def close(self) -> None:
        for fetcher in self.fetchers.values():
            await fetcher.close()


def build_coordinator(
    config: Optional[BriefingConfig] = None,
    *,
    store: Optional[SessionStore] = None,
    fetchers: Optional[Mapping[Domain, DomainFetcher]] = None,
    llm=None,
    id_provider: Optional[IdProvider] = None,
    clock: Clock = utc_now,
) -> Coordinator:
    """
    Wire a Coordinator from configuration.

    Any of store / fetchers / llm may be injected; the rest is built from
    ``config``. Without an available reasoning engine, deep and ai modes
    degrade to fast and fallback.
    """
    config = config or load_config()
    agents = config.agents
    store = store if store is not None else create_store(config.store)
    fetchers = fetchers if fetchers is not None else build_fetchers(config.fetcher)
    if llm is None and (DEEP in (agents.worker_mode, agents.correlation_mode) or agents.synthesis_mode == AI):
        llm = LLMClient.from_config(config.llm)

    executor_factory = None
    if llm is not None and getattr(llm, "is_available", True):
        registry = build_capability_registry(store, fetchers, id_provider=id_provider, clock=clock)

        def executor_factory(context: ToolContext) -> ToolExecutor:
            return ToolExecutor(
                llm,
                registry,
                context=context,
                max_iterations=agents.max_iterations,
                temperature=agents.temperature,
                max_tokens=agents.max_tokens,
            )

    worker_mode = agents.worker_mode
    correlation_mode = agents.correlation_mode
    synthesis_mode = agents.synthesis_mode
    if executor_factory is None and (
        DEEP in (worker_mode, correlation_mode) or synthesis_mode == AI
    ):
        logger.warning("No reasoning engine available, using fast analysis and fallback synthesis")
        worker_mode, correlation_mode, synthesis_mode = FAST, FAST, FALLBACK

    workers = build_workers(
        fetchers,
        store,
        mode=worker_mode,
        executor_factory=executor_factory,
        clock=clock,
        company_domain=config.fetcher.company_domain,
        issue_tracker_url=config.fetcher.issue_tracker_url,
    )
    engine = CorrelationEngine(
        store,
        mode=correlation_mode,
        executor_factory=executor_factory,
        id_provider=id_provider,
    )
    synthesizer = build_synthesizer(
        synthesis_mode,
        executor_factory=executor_factory,
        id_provider=id_provider,
        clock=clock,
        timeout=agents.stage_timeout,
    )
    return Coordinator(
        workers,
        engine,
        synthesizer,
        store,
        worker_timeout=agents.worker_timeout,
        stage_timeout=agents.stage_timeout,
        fetchers=fetchers,
        id_provider=id_provider,
        clock=clock,
    )


async def generate_brief(
    session_id: str,
    user_id: str,
    *,
    config: Optional[BriefingConfig] = None,
    **overrides,
) -> Brief:
    """One-shot convenience: build a Coordinator, run one session, close fetchers."""
    coordinator = build_coordinator(config, **overrides)
    try:
        return await coordinator.generate_brief(session_id, user_id)
    finally:
        await coordinator.close()
