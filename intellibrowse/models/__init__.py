"""
Data models for IntelliBrowse.
"""

from .config import (
    ModelConfig,
    AgentConfig,
    SessionsConfig,
    BrowserConfig,
    ScreenParserConfig,
    ServerConfig,
    LoggingConfig,
    LangfuseConfig,
    AppConfig,
)

__all__ = [
    "ModelConfig",
    "AgentConfig",
    "SessionsConfig",
    "BrowserConfig",
    "ScreenParserConfig",
    "ServerConfig",
    "LoggingConfig",
    "LangfuseConfig",
    "AppConfig",
]
