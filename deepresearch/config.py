"""Configuration loading: TOML file + environment variable overlay."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "deepresearch"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.toml"

DEFAULT_CONFIG_TOML = """\
[providers.venice]
api_key_env = "VENICE_API_KEY"
default_model = "llama-3.3-70b"
base_url = "https://api.venice.ai/api/v1"
timeout = 30.0

[llm.retry]
max_attempts = 3
initial_delay_ms = 1000
exponential = true
max_delay_ms = 30000

[search.brave]
api_key_env = "BRAVE_API_KEY"
rate_interval_ms = 10000

[research]
default_depth = 2
default_breadth = 3
classifier_enabled = false

[memory]
depth = "medium"
persistence = "none"

[mongodb]
uri = "mongodb://localhost:27017"
database = "deepresearch"
"""


@dataclass
class ProviderConfig:
    api_key_env: str = ""
    api_key: str = ""
    default_model: str = ""
    base_url: str = ""
    timeout: float = 30.0


@dataclass
class RetryConfig:
    max_attempts: int = 3
    initial_delay_ms: int = 1000
    exponential: bool = True
    max_delay_ms: int = 30000


@dataclass
class SearchConfig:
    api_key_env: str = ""
    api_key: str = ""
    rate_interval_ms: int = 10000


@dataclass
class ResearchDefaults:
    default_depth: int = 2
    default_breadth: int = 3
    classifier_enabled: bool = False


@dataclass
class MemoryConfig:
    depth: str = "medium"
    persistence: str = "none"  # none, mongodb


@dataclass
class MongoConfig:
    uri: str = "mongodb://localhost:27017"
    database: str = "deepresearch"


@dataclass
class AppConfig:
    providers: dict[str, ProviderConfig] = field(default_factory=dict)
    retry: RetryConfig = field(default_factory=RetryConfig)
    search: dict[str, SearchConfig] = field(default_factory=dict)
    research: ResearchDefaults = field(default_factory=ResearchDefaults)
    memory: MemoryConfig = field(default_factory=MemoryConfig)
    mongodb: MongoConfig = field(default_factory=MongoConfig)
    config_path: Path = DEFAULT_CONFIG_PATH

    @property
    def venice(self) -> ProviderConfig:
        return self.providers.get("venice") or ProviderConfig()

    @property
    def brave(self) -> SearchConfig:
        return self.search.get("brave") or SearchConfig()

    @property
    def llm_api_key(self) -> str:
        return self.venice.api_key

    @property
    def search_api_key(self) -> str:
        return self.brave.api_key


def _env_overlay(config: AppConfig) -> None:
    """Override config values with environment variables where applicable."""
    if uri := os.environ.get("MONGODB_URI"):
        config.mongodb.uri = uri
    if model := os.environ.get("VENICE_MODEL"):
        config.providers.setdefault("venice", ProviderConfig()).default_model = model
    if depth := os.environ.get("DEEPRESEARCH_MEMORY_DEPTH"):
        config.memory.depth = depth

    for prov in config.providers.values():
        if prov.api_key_env:
            prov.api_key = os.environ.get(prov.api_key_env, prov.api_key)

    for search in config.search.values():
        if search.api_key_env:
            search.api_key = os.environ.get(search.api_key_env, search.api_key)


def _parse_provider(data: dict) -> ProviderConfig:
    return ProviderConfig(
        api_key_env=data.get("api_key_env", ""),
        api_key=data.get("api_key", ""),
        default_model=data.get("default_model", ""),
        base_url=data.get("base_url", ""),
        timeout=float(data.get("timeout", 30.0)),
    )


def _parse_search(data: dict) -> SearchConfig:
    return SearchConfig(
        api_key_env=data.get("api_key_env", ""),
        api_key=data.get("api_key", ""),
        rate_interval_ms=data.get("rate_interval_ms", 10000),
    )


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration from TOML file with env var overlay."""
    path = config_path or DEFAULT_CONFIG_PATH

    if path.exists():
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    else:
        raw = tomllib.loads(DEFAULT_CONFIG_TOML)

    providers_raw = raw.get("providers", {})
    retry_raw = raw.get("llm", {}).get("retry", {})
    search_raw = raw.get("search", {})
    research_raw = raw.get("research", {})
    memory_raw = raw.get("memory", {})
    mongo_raw = raw.get("mongodb", {})

    config = AppConfig(
        providers={name: _parse_provider(data) for name, data in providers_raw.items()},
        retry=RetryConfig(
            max_attempts=retry_raw.get("max_attempts", 3),
            initial_delay_ms=retry_raw.get("initial_delay_ms", 1000),
            exponential=retry_raw.get("exponential", True),
            max_delay_ms=retry_raw.get("max_delay_ms", 30000),
        ),
        search={name: _parse_search(data) for name, data in search_raw.items()},
        research=ResearchDefaults(
            default_depth=research_raw.get("default_depth", 2),
            default_breadth=research_raw.get("default_breadth", 3),
            classifier_enabled=research_raw.get("classifier_enabled", False),
        ),
        memory=MemoryConfig(
            depth=memory_raw.get("depth", "medium"),
            persistence=memory_raw.get("persistence", "none"),
        ),
        mongodb=MongoConfig(
            uri=mongo_raw.get("uri", "mongodb://localhost:27017"),
            database=mongo_raw.get("database", "deepresearch"),
        ),
        config_path=path,
    )

    _env_overlay(config)
    return config


def init_config(config_path: Path | None = None) -> Path:
    """Create default config file."""
    path = config_path or DEFAULT_CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_CONFIG_TOML)
    return path
