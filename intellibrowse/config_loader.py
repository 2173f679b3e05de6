"""
Configuration loader for IntelliBrowse.

Loads configuration from a YAML file with support for
environment variable interpolation.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Optional

import yaml

from .models import (
    AgentConfig,
    AppConfig,
    BrowserConfig,
    LangfuseConfig,
    LoggingConfig,
    ModelConfig,
    ScreenParserConfig,
    ServerConfig,
    SessionsConfig,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "config.yaml"

# Regex for environment variable interpolation: ${VAR} or ${VAR:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")

# Singleton cache for app config
_app_config: Optional[AppConfig] = None


def resolve_env_vars(value: str) -> str:
    """
    Resolve environment variable references in a string.

    Supports ${VAR} and ${VAR:-default} syntax.
    """

    def replace_match(match: re.Match) -> str:
        var_name = match.group(1)
        default_value = match.group(2) if match.group(2) is not None else ""
        return os.environ.get(var_name, default_value)

    return ENV_VAR_PATTERN.sub(replace_match, value)


def _substitute_env_vars_recursive(data: Any) -> Any:
    """Recursively substitute environment variables in a data structure."""
    if isinstance(data, dict):
        return {k: _substitute_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_substitute_env_vars_recursive(item) for item in data]
    elif isinstance(data, str):
        return resolve_env_vars(data)
    return data


def _as_bool(value: Any, default: bool = False) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _parse_model_config(data: dict) -> ModelConfig:
    """Parse model provider configuration from dict."""
    defaults = ModelConfig()
    return ModelConfig(
        base_url=data.get("base_url") or defaults.base_url,
        model=data.get("model") or defaults.model,
        api_key=data.get("api_key", ""),
        temperature=float(data.get("temperature", defaults.temperature)),
        max_tokens=int(data.get("max_tokens", defaults.max_tokens)),
        reasoning_effort=data.get("reasoning_effort") or defaults.reasoning_effort,
        timeout=float(data.get("timeout", defaults.timeout)),
    )


def _parse_agent_config(data: dict) -> AgentConfig:
    """Parse agent loop configuration from dict."""
    stop = data.get("stop")
    if isinstance(stop, str):
        stop = [stop]
    return AgentConfig(
        max_turns=int(data.get("max_turns", 15)),
        stop=stop or ["Observation:"],
    )


def _parse_sessions_config(data: dict) -> SessionsConfig:
    """Parse session store configuration from dict."""
    return SessionsConfig(ttl_seconds=float(data.get("ttl_seconds", 3600)))


def _parse_browser_config(data: dict) -> BrowserConfig:
    """Parse browser backend configuration from dict."""
    return BrowserConfig(
        service_url=data.get("service_url", ""),
        api_key=data.get("api_key", ""),
        timeout=float(data.get("timeout", 60)),
    )


def _parse_screen_parser_config(data: dict) -> ScreenParserConfig:
    """Parse OmniParser configuration from dict."""
    defaults = ScreenParserConfig()
    return ScreenParserConfig(
        endpoint=data.get("endpoint") or defaults.endpoint,
        api_key=data.get("api_key", ""),
        timeout=float(data.get("timeout", defaults.timeout)),
    )


def _parse_server_config(data: dict) -> ServerConfig:
    """Parse server configuration from dict."""
    return ServerConfig(
        host=data.get("host", "0.0.0.0"),
        port=int(data.get("port", 3001)),
        workers=int(data.get("workers", 1)),
        reload=_as_bool(data.get("reload"), False),
    )


def _parse_logging_config(data: dict) -> LoggingConfig:
    """Parse logging configuration from dict."""
    return LoggingConfig(level=data.get("level") or "INFO")


def _parse_langfuse_config(data: dict) -> LangfuseConfig:
    """Parse Langfuse configuration from dict."""
    return LangfuseConfig(
        public_key=data.get("public_key", ""),
        secret_key=data.get("secret_key", ""),
        host=data.get("host", ""),
        debug=_as_bool(data.get("debug"), False),
    )


def parse_app_config(raw_config: dict) -> AppConfig:
    """Build an AppConfig from an already-loaded (and interpolated) mapping."""
    return AppConfig(
        version=str(raw_config.get("version", "1.0")),
        model=_parse_model_config(raw_config.get("model") or {}),
        agent=_parse_agent_config(raw_config.get("agent") or {}),
        sessions=_parse_sessions_config(raw_config.get("sessions") or {}),
        browser=_parse_browser_config(raw_config.get("browser") or {}),
        screen_parser=_parse_screen_parser_config(raw_config.get("screen_parser") or {}),
        server=_parse_server_config(raw_config.get("server") or {}),
        logging=_parse_logging_config(raw_config.get("logging") or {}),
        langfuse=_parse_langfuse_config(raw_config.get("langfuse") or {}),
    )


def load_app_config(path: Optional[str] = None, reload: bool = False) -> AppConfig:
    """
    Load unified application configuration from a YAML file.

    Uses a singleton pattern - subsequent calls return the cached config
    unless reload=True is specified. A missing file yields the defaults.

    Args:
        path: Path to the YAML configuration file. If None, uses
              CONFIG_PATH env var or the default path (config/config.yaml).
        reload: If True, force reload from disk instead of using cache.

    Raises:
        ValueError: If the file is not a YAML mapping
    """
    global _app_config

    if _app_config is not None and not reload:
        return _app_config

    if path is None:
        path = os.environ.get("CONFIG_PATH", str(DEFAULT_CONFIG_PATH))

    config_path = Path(path)

    if not config_path.exists():
        logger.warning(f"Configuration not found at {config_path}, using defaults")
        _app_config = AppConfig()
        return _app_config

    logger.debug(f"Loading configuration from {config_path}")

    with open(config_path, "r") as f:
        raw_config = yaml.safe_load(f) or {}

    if not isinstance(raw_config, dict):
        raise ValueError(f"Configuration file {config_path} must contain a mapping")

    raw_config = _substitute_env_vars_recursive(raw_config)
    _app_config = parse_app_config(raw_config)
    return _app_config


def reset_config_cache() -> None:
    """Reset the configuration cache, forcing a reload on next access."""
    global _app_config
    _app_config = None
    logger.debug("Configuration cache reset")
