"""
Configuration Management for Briefing Agents

Loads configuration from ~/.briefing/config.json and environment variables.
"""

import os
import json
from pathlib import Path
from dataclasses import dataclass, field

# Default config paths
CONFIG_DIR = Path.home() / ".briefing"
CONFIG_PATH = CONFIG_DIR / "config.json"
LOGS_DIR = CONFIG_DIR / "logs"
SESSIONS_DIR = CONFIG_DIR / "sessions"

# Analysis modes
DEEP = "deep"
FAST = "fast"
AI = "ai"
FALLBACK = "fallback"


@dataclass
class LLMConfig:
    """Shared LLM provider configuration across all agent roles"""
    provider: str = "anthropic"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"


@dataclass
class AgentConfig:
    """Tool-loop limits and per-stage analysis modes"""
    worker_mode: str = DEEP  # "deep" or "fast"
    correlation_mode: str = FAST  # "deep" or "fast"
    synthesis_mode: str = AI  # "ai" or "fallback"
    max_iterations: int = 10
    temperature: float = 0.1
    max_tokens: int = 8000
    worker_timeout: float = 120.0  # seconds per worker, 0 disables
    stage_timeout: float = 180.0  # seconds for correlation / AI synthesis, 0 disables


@dataclass
class FetcherConfig:
    """Where domain payloads come from"""
    base_url: str = ""  # HTTP fetcher when set
    token: str = ""
    timeout: float = 30.0
    payload_dir: str = ""  # JSON file fetcher when set
    company_domain: str = ""  # messaging: senders outside this domain are external
    issue_tracker_url: str = ""  # issue links: <url>/browse/<key>


@dataclass
class StoreConfig:
    """Intermediate store backend"""
    backend: str = "memory"  # "memory" or "file"
    path: str = str(SESSIONS_DIR)
    max_sessions: int = 1000  # memory backend only, 0 disables


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8090


@dataclass
class BriefingConfig:
    """Main Briefing configuration"""
    llm: LLMConfig = field(default_factory=LLMConfig)
    agents: AgentConfig = field(default_factory=AgentConfig)
    fetcher: FetcherConfig = field(default_factory=FetcherConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    _env_sourced_keys: set = field(default_factory=set, repr=False)


def _parse_llm_config(data: dict) -> LLMConfig:
    """Parse llm section from config dict"""
    llm_data = data.get("llm", {})
    return LLMConfig(
        provider=llm_data.get("provider", "anthropic"),
        anthropic_api_key=llm_data.get("anthropic_api_key", ""),
        anthropic_model=llm_data.get("anthropic_model", "claude-sonnet-4-20250514"),
        openai_api_key=llm_data.get("openai_api_key", ""),
        openai_model=llm_data.get("openai_model", "gpt-4o-mini"),
    )


def _parse_agent_config(data: dict) -> AgentConfig:
    """Parse agents section from config dict"""
    agent_data = data.get("agents", {})
    return AgentConfig(
        worker_mode=agent_data.get("worker_mode", DEEP),
        correlation_mode=agent_data.get("correlation_mode", FAST),
        synthesis_mode=agent_data.get("synthesis_mode", AI),
        max_iterations=agent_data.get("max_iterations", 10),
        temperature=agent_data.get("temperature", 0.1),
        max_tokens=agent_data.get("max_tokens", 8000),
        worker_timeout=agent_data.get("worker_timeout", 120.0),
        stage_timeout=agent_data.get("stage_timeout", 180.0),
    )


def _parse_fetcher_config(data: dict) -> FetcherConfig:
    """Parse fetcher section from config dict"""
    fetcher_data = data.get("fetcher", {})
    return FetcherConfig(
        base_url=fetcher_data.get("base_url", ""),
        token=fetcher_data.get("token", ""),
        timeout=fetcher_data.get("timeout", 30.0),
        payload_dir=fetcher_data.get("payload_dir", ""),
        company_domain=fetcher_data.get("company_domain", ""),
        issue_tracker_url=fetcher_data.get("issue_tracker_url", ""),
    )


def _parse_store_config(data: dict) -> StoreConfig:
    """Parse store section from config dict"""
    store_data = data.get("store", {})
    return StoreConfig(
        backend=store_data.get("backend", "memory"),
        path=store_data.get("path", str(SESSIONS_DIR)),
        max_sessions=int(store_data.get("max_sessions", 1000)),
    )


def _parse_server_config(data: dict) -> ServerConfig:
    """Parse server section from config dict"""
    server_data = data.get("server", {})
    return ServerConfig(
        host=server_data.get("host", "0.0.0.0"),
        port=server_data.get("port", 8090),
    )


def load_config() -> BriefingConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (~/.briefing/config.json)
    3. Default values
    """
    config = BriefingConfig()

    # Load from config file if exists
    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.llm = _parse_llm_config(data)
            config.agents = _parse_agent_config(data)
            config.fetcher = _parse_fetcher_config(data)
            config.store = _parse_store_config(data)
            config.server = _parse_server_config(data)
        except (json.JSONDecodeError, IOError) as e:
            print(f"[Config] Warning: Failed to load config file: {e}")

    # Agent env var overrides
    if os.getenv("BRIEFING_WORKER_MODE"):
        config.agents.worker_mode = os.getenv("BRIEFING_WORKER_MODE")
    if os.getenv("BRIEFING_CORRELATION_MODE"):
        config.agents.correlation_mode = os.getenv("BRIEFING_CORRELATION_MODE")
    if os.getenv("BRIEFING_SYNTHESIS_MODE"):
        config.agents.synthesis_mode = os.getenv("BRIEFING_SYNTHESIS_MODE")
    if os.getenv("BRIEFING_MAX_ITERATIONS"):
        config.agents.max_iterations = int(os.getenv("BRIEFING_MAX_ITERATIONS"))
    if os.getenv("BRIEFING_WORKER_TIMEOUT"):
        config.agents.worker_timeout = float(os.getenv("BRIEFING_WORKER_TIMEOUT"))
    if os.getenv("BRIEFING_STAGE_TIMEOUT"):
        config.agents.stage_timeout = float(os.getenv("BRIEFING_STAGE_TIMEOUT"))

    if os.getenv("BRIEFING_FETCHER_URL"):
        config.fetcher.base_url = os.getenv("BRIEFING_FETCHER_URL")
    if os.getenv("BRIEFING_FETCHER_TOKEN"):
        config.fetcher.token = os.getenv("BRIEFING_FETCHER_TOKEN")
        config._env_sourced_keys.add("fetcher_token")
    if os.getenv("BRIEFING_PAYLOAD_DIR"):
        config.fetcher.payload_dir = os.getenv("BRIEFING_PAYLOAD_DIR")
    if os.getenv("COMPANY_DOMAIN"):
        config.fetcher.company_domain = os.getenv("COMPANY_DOMAIN")
    if os.getenv("BRIEFING_ISSUE_TRACKER_URL"):
        config.fetcher.issue_tracker_url = os.getenv("BRIEFING_ISSUE_TRACKER_URL")

    if os.getenv("BRIEFING_STORE"):
        config.store.backend = os.getenv("BRIEFING_STORE")
    if os.getenv("BRIEFING_STORE_PATH"):
        config.store.path = os.getenv("BRIEFING_STORE_PATH")
    if os.getenv("BRIEFING_STORE_MAX_SESSIONS"):
        config.store.max_sessions = int(os.getenv("BRIEFING_STORE_MAX_SESSIONS"))

    if os.getenv("BRIEFING_PORT"):
        config.server.port = int(os.getenv("BRIEFING_PORT"))

    # LLM env var overrides (target config.llm, track env-sourced keys)
    _env_llm_map = {
        "ANTHROPIC_API_KEY": "anthropic_api_key",
        "ANTHROPIC_MODEL": "anthropic_model",
        "OPENAI_API_KEY": "openai_api_key",
        "OPENAI_MODEL": "openai_model",
        "BRIEFING_LLM_PROVIDER": "provider",
    }
    for env_var, attr in _env_llm_map.items():
        val = os.getenv(env_var)
        if val:
            setattr(config.llm, attr, val)
            config._env_sourced_keys.add(attr)

    return config


def save_config(config: BriefingConfig) -> None:
    """Save configuration to file.

    Secrets that were sourced from environment variables are written
    as empty strings so that they are not persisted to disk.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    env_sourced = getattr(config, "_env_sourced_keys", set())

    llm_section = {
        "provider": config.llm.provider,
        "anthropic_api_key": config.llm.anthropic_api_key,
        "anthropic_model": config.llm.anthropic_model,
        "openai_api_key": config.llm.openai_api_key,
        "openai_model": config.llm.openai_model,
    }
    for key in ("anthropic_api_key", "openai_api_key"):
        if key in env_sourced:
            llm_section[key] = ""

    data = {
        "llm": llm_section,
        "agents": {
            "worker_mode": config.agents.worker_mode,
            "correlation_mode": config.agents.correlation_mode,
            "synthesis_mode": config.agents.synthesis_mode,
            "max_iterations": config.agents.max_iterations,
            "temperature": config.agents.temperature,
            "max_tokens": config.agents.max_tokens,
            "worker_timeout": config.agents.worker_timeout,
            "stage_timeout": config.agents.stage_timeout,
        },
        "fetcher": {
            "base_url": config.fetcher.base_url,
            "token": "" if "fetcher_token" in env_sourced else config.fetcher.token,
            "timeout": config.fetcher.timeout,
            "payload_dir": config.fetcher.payload_dir,
            "company_domain": config.fetcher.company_domain,
            "issue_tracker_url": config.fetcher.issue_tracker_url,
        },
        "store": {
            "backend": config.store.backend,
            "path": config.store.path,
            "max_sessions": config.store.max_sessions,
        },
        "server": {
            "host": config.server.host,
            "port": config.server.port,
        },
    }

    with open(CONFIG_PATH, "w") as f:
        json.dump(data, f, indent=2)

    # Set secure permissions
    CONFIG_PATH.chmod(0o600)


def ensure_directories() -> None:
    """Ensure required directories exist"""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    LOGS_DIR.mkdir(parents=True, exist_ok=True)
    SESSIONS_DIR.mkdir(parents=True, exist_ok=True)
