"""
Tool Registry - single source of truth for callable tools.

Maps tool names to capabilities exposing one ``invoke(params)`` coroutine.
The system prompt is generated from whatever the registry holds, so the
model is only told about tools that can actually be called.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Protocol, runtime_checkable

ToolHandler = Callable[[dict[str, str]], Awaitable[Any]]


class ToolName(str, Enum):
    """Identifiers of the built-in collaborator tools."""

    BROWSER_OPEN = "browser.open"
    BROWSER_SEARCH = "browser.search"
    BROWSER_CLICK = "browser.click"
    BROWSER_TYPE = "browser.type"
    BROWSER_SCREENSHOT = "browser.screenshot"
    BROWSER_GET_HTML = "browser.getHtml"
    BROWSER_EXTRACT_DATA = "browser.extractData"
    BROWSER_OBSERVE = "browser.observe"
    PARSER_PARSE_SCREENSHOT = "parser.parseScreenshot"
    PARSER_EXTRACT_COMPONENT_DATA = "parser.extractComponentData"
    DOCUMENT_ANALYZE = "document.analyze"
    DOCUMENT_ANALYZE_MULTIPLE = "document.analyzeMultiple"
    DOCUMENT_COMPARE = "document.compare"


@runtime_checkable
class Tool(Protocol):
    """Anything the agent loop can dispatch an action to."""

    name: str
    description: str
    parameters: dict[str, str]

    async def invoke(self, params: dict[str, str]) -> Any: ...


@dataclass
class ToolDefinition:
    """Metadata for a tool plus the coroutine that runs it."""

    name: str
    description: str
    handler: ToolHandler
    parameters: dict[str, str] = field(default_factory=dict)  # param_name -> description

    async def invoke(self, params: dict[str, str]) -> Any:
        return await self.handler(params)


class ToolRegistry:
    """Name-keyed collection of tools, kept in registration order."""

    def __init__(self, tools: Optional[list[Tool]] = None):
        self._tools: dict[str, Tool] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        """Register a tool, replacing any previous tool with the same name."""
        name = tool.name.value if isinstance(tool.name, ToolName) else tool.name
        self._tools[name] = tool

    def register_all(self, tools: list[Tool]) -> None:
        for tool in tools:
            self.register(tool)

    def get(self, name: str) -> Optional[Tool]:
        """Get a tool by exact name."""
        return self._tools.get(name)

    def names(self) -> list[str]:
        """Registered tool names in registration order."""
        return list(self._tools)

    def all_tools(self) -> dict[str, Tool]:
        """Get a copy of all registered tools."""
        return self._tools.copy()

    def get_tools_summary(self) -> str:
        """Get formatted summary of all tools for prompts."""
        blocks = []
        for name, tool in self._tools.items():
            lines = [f"Tool: {name}", f"Description: {tool.description}"]
            if tool.parameters:
                params = ", ".join(
                    f'{param}="{desc}"' for param, desc in tool.parameters.items()
                )
                lines.append(f"Parameters: {params}")
            blocks.append("\n".join(lines))
        return "\n\n".join(blocks)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
