"""
IntelliBrowse Tools Package

Available tools:
- browser.*: page navigation and inspection (mock or remote backend)
- parser.*: screenshot parsing via OmniParser
- document.*: document analysis through the reasoning model
"""

from typing import Optional

from .registry import Tool, ToolDefinition, ToolName, ToolRegistry
from .browser import BrowserBackend, BrowserTools, MockBrowser, RemoteBrowser
from .screen_parser import ScreenParser, ScreenParserTools, extract_component_data, transform_result
from .document import DocumentInliner, DocumentTools, detect_mime_type, prepare_document_inlining


def build_default_registry(
    browser: BrowserTools,
    screen_parser: Optional[ScreenParserTools] = None,
    documents: Optional[DocumentTools] = None,
) -> ToolRegistry:
    """Register the browser, parser and document tools in prompt order."""
    registry = ToolRegistry()
    registry.register_all(browser.definitions())
    if screen_parser is not None:
        registry.register_all(screen_parser.definitions())
    if documents is not None:
        registry.register_all(documents.definitions())
    return registry


__all__ = [
    "Tool",
    "ToolDefinition",
    "ToolName",
    "ToolRegistry",
    "BrowserBackend",
    "BrowserTools",
    "MockBrowser",
    "RemoteBrowser",
    "ScreenParser",
    "ScreenParserTools",
    "extract_component_data",
    "transform_result",
    "DocumentInliner",
    "DocumentTools",
    "detect_mime_type",
    "prepare_document_inlining",
    "build_default_registry",
]
