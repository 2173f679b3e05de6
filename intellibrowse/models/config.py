"""
Configuration models for IntelliBrowse.

Defines dataclasses for the unified YAML configuration file.
"""

from dataclasses import dataclass, field


@dataclass
class ModelConfig:
    """Configuration for the reasoning model (Fireworks, OpenAI-compatible)."""
    base_url: str = "https://api.fireworks.ai/inference/v1"
    model: str = "accounts/fireworks/models/deepseek-r1"
    api_key: str = ""
    temperature: float = 0.2
    max_tokens: int = 4096
    reasoning_effort: str = "high"
    timeout: float = 120.0


@dataclass
class AgentConfig:
    """Configuration for the Reason-Act-Observe loop."""
    max_turns: int = 15
    stop: list[str] = field(default_factory=lambda: ["Observation:"])


@dataclass
class SessionsConfig:
    """Configuration for the in-memory session store."""
    # Idle seconds before a session is evicted; 0 disables eviction
    ttl_seconds: float = 3600.0


@dataclass
class BrowserConfig:
    """Configuration for the browser-automation backend.

    Without a service URL the in-memory mock browser is used.
    """
    service_url: str = ""
    api_key: str = ""
    timeout: float = 60.0

    @property
    def use_mock(self) -> bool:
        return not self.service_url


@dataclass
class ScreenParserConfig:
    """Configuration for the OmniParser screen-parsing endpoint."""
    endpoint: str = "https://api-inference.huggingface.co/models/microsoft/OmniParser"
    api_key: str = ""
    timeout: float = 60.0


@dataclass
class ServerConfig:
    """Configuration for the FastAPI server."""
    host: str = "0.0.0.0"
    port: int = 3001
    workers: int = 1
    reload: bool = False


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"


@dataclass
class LangfuseConfig:
    """Configuration for Langfuse observability.

    Tracing auto-enables when both public_key and secret_key are provided.
    """
    public_key: str = ""
    secret_key: str = ""
    host: str = ""
    debug: bool = False

    @property
    def is_configured(self) -> bool:
        """Check if Langfuse is configured (both keys present)."""
        return bool(self.public_key and self.secret_key)


@dataclass
class AppConfig:
    """
    Unified application configuration container.

    Holds all configuration sections loaded from config/config.yaml.
    """
    version: str = "1.0"
    model: ModelConfig = field(default_factory=ModelConfig)
    agent: AgentConfig = field(default_factory=AgentConfig)
    sessions: SessionsConfig = field(default_factory=SessionsConfig)
    browser: BrowserConfig = field(default_factory=BrowserConfig)
    screen_parser: ScreenParserConfig = field(default_factory=ScreenParserConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    langfuse: LangfuseConfig = field(default_factory=LangfuseConfig)

    @property
    def log_level(self) -> str:
        return self.logging.level
