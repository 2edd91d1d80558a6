"""
Briefing Common Module

Shared infrastructure for workers, the correlation engine and the coordinator.
"""

from .config import BriefingConfig, load_config
from .errors import (
    BriefingError,
    ToolExecutionError,
    IterationLimitExceeded,
    ParseError,
    WorkerFailure,
    PipelineFailure,
    FetchError,
    LLMUnavailableError,
)
from .fetchers import DomainFetcher, StaticDomainFetcher, FileDomainFetcher, HttpDomainFetcher
from .ids import IdProvider, UuidIdProvider, SequentialIdProvider, utc_now
from .llm_client import LLMClient
from .store import SessionStore, InMemorySessionStore, JsonFileSessionStore, create_store

__all__ = [
    "BriefingConfig",
    "load_config",
    "BriefingError",
    "ToolExecutionError",
    "IterationLimitExceeded",
    "ParseError",
    "WorkerFailure",
    "PipelineFailure",
    "FetchError",
    "LLMUnavailableError",
    "DomainFetcher",
    "StaticDomainFetcher",
    "FileDomainFetcher",
    "HttpDomainFetcher",
    "IdProvider",
    "UuidIdProvider",
    "SequentialIdProvider",
    "utc_now",
    "LLMClient",
    "SessionStore",
    "InMemorySessionStore",
    "JsonFileSessionStore",
    "create_store",
]
