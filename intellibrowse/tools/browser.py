"""
Browser Automation Tools

Exposes page navigation and inspection to the agent through a pluggable
backend: an in-memory mock for demos and tests, or a remote
browser-automation service reached over HTTP.
"""

import base64
import binascii
import logging
from typing import Any, Optional, Protocol
from urllib.parse import quote, quote_plus, urlparse

import httpx

from .document import detect_mime_type
from .registry import ToolDefinition, ToolName

logger = logging.getLogger(__name__)

# 1x1 transparent PNG
BLANK_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)

DEFAULT_OBSERVE_QUERY = "What can I do on this page?"


class BrowserBackend(Protocol):
    """Operations a browser backend must support."""

    async def open(self, url: str) -> dict: ...

    async def search(self, query: str) -> dict: ...

    async def click(self, selector: str) -> dict: ...

    async def type(self, selector: str, text: str) -> dict: ...

    async def screenshot(self, full_page: bool = True) -> bytes: ...

    async def get_html(self) -> str: ...

    async def extract_data(self, instruction: str) -> Any: ...

    async def observe(self, query: str = DEFAULT_OBSERVE_QUERY) -> Any: ...

    async def close(self) -> None: ...


class MockBrowser:
    """In-memory browser that tracks a current URL and title."""

    def __init__(self):
        self.current_url = "https://www.example.com"
        self.title = "Example Domain"

    async def open(self, url: str) -> dict:
        hostname = urlparse(url).hostname
        if not hostname:
            raise ValueError(f"Failed to navigate to {url}: invalid URL")
        label = hostname.split(".")[0]
        self.current_url = url
        self.title = label[:1].upper() + label[1:]
        return {"success": True, "title": self.title, "url": self.current_url}

    async def search(self, query: str) -> dict:
        self.current_url = f"https://www.google.com/search?q={quote_plus(query)}"
        self.title = f"{query} - Google Search"
        slug = "-".join(query.lower().split())
        results = [
            {
                "title": f"{query} - Wikipedia",
                "url": "https://en.wikipedia.org/wiki/" + quote("_".join(query.split())),
                "snippet": f"This is a snippet about {query} from Wikipedia.",
            },
            {
                "title": f"The Latest {query} News",
                "url": f"https://news.example.com/{slug}",
                "snippet": f"Get the latest news about {query} from our trusted sources.",
            },
            {
                "title": f"{query} - Official Website",
                "url": "https://www." + "".join(query.lower().split()) + ".com",
                "snippet": f"The official website for {query}. Learn more about our products and services.",
            },
        ]
        return {"success": True, "query": query, "results": results}

    async def click(self, selector: str) -> dict:
        lowered = selector.lower()
        if "wikipedia" in lowered:
            self.current_url = "https://en.wikipedia.org/wiki/Main_Page"
            self.title = "Wikipedia, the free encyclopedia"
        elif "news" in lowered:
            self.current_url = "https://news.example.com/"
            self.title = "Example News"
        return {
            "success": True,
            "action": "click",
            "target": selector,
            "currentUrl": self.current_url,
        }

    async def type(self, selector: str, text: str) -> dict:
        return {"success": True, "action": "type", "target": selector, "text": text}

    async def screenshot(self, full_page: bool = True) -> bytes:
        return BLANK_PNG

    async def get_html(self) -> str:
        return (
            "<!DOCTYPE html>\n"
            "<html>\n"
            f"<head>\n  <title>{self.title}</title>\n</head>\n"
            "<body>\n"
            f"  <h1>{self.title}</h1>\n"
            "  <p>This is a mock page for demonstration purposes.</p>\n"
            f"  <p>Current URL: {self.current_url}</p>\n"
            "</body>\n"
            "</html>"
        )

    async def extract_data(self, instruction: str) -> Any:
        if "google.com/search" in self.current_url:
            return {
                "results": [
                    {"title": f"Mock Result {i}", "url": f"https://example.com/{i}",
                     "snippet": f"This is mock result number {i}."}
                    for i in range(1, 4)
                ]
            }
        if "wikipedia.org" in self.current_url:
            return {
                "title": "Wikipedia Article",
                "content": "This is mock content from a Wikipedia article.",
                "sections": [
                    {"title": "Introduction", "content": "This is the introduction section."},
                    {"title": "History", "content": "This is the history section."},
                ],
            }
        return {
            "title": self.title,
            "url": self.current_url,
            "content": f"Mock extracted content from {self.title}",
        }

    async def observe(self, query: str = DEFAULT_OBSERVE_QUERY) -> Any:
        return {
            "possibleActions": [
                {"action": 'Click on the "About" link', "selector": "About link"},
                {"action": 'Click on the "Contact" link', "selector": "Contact link"},
                {"action": "Fill out the search form", "selector": "Search form"},
            ],
            "elements": [
                {"type": "link", "text": "About", "href": "/about"},
                {"type": "link", "text": "Contact", "href": "/contact"},
                {"type": "input", "placeholder": "Search..."},
                {"type": "button", "text": "Submit"},
            ],
        }

    async def close(self) -> None:
        logger.debug("Mock browser closed")


class RemoteBrowser:
    """
    Client for a browser-automation service.

    Every operation is one POST of ``{"action": ..., "params": ...}`` to the
    service URL; the service answers ``{"result": ...}``. Screenshots come
    back base64-encoded.
    """

    def __init__(
        self,
        service_url: str,
        api_key: str = "",
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.service_url = service_url
        self.api_key = api_key
        self.timeout = timeout
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
            self._client = httpx.AsyncClient(timeout=self.timeout, headers=headers)
        return self._client

    async def _call(self, action: str, **params: Any) -> Any:
        try:
            response = await self._get_client().post(
                self.service_url, json={"action": action, "params": params}
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Browser service call '{action}' failed: {e}")
            raise RuntimeError(f"Browser service error during {action}: {e}") from e
        if isinstance(data, dict) and data.get("error"):
            raise RuntimeError(f"Browser service error during {action}: {data['error']}")
        return data.get("result") if isinstance(data, dict) else data

    async def open(self, url: str) -> dict:
        return await self._call("open", url=url)

    async def search(self, query: str) -> dict:
        return await self._call("search", query=query)

    async def click(self, selector: str) -> dict:
        return await self._call("click", selector=selector)

    async def type(self, selector: str, text: str) -> dict:
        return await self._call("type", selector=selector, text=text)

    async def screenshot(self, full_page: bool = True) -> bytes:
        encoded = await self._call("screenshot", fullPage=full_page)
        try:
            return base64.b64decode(encoded or "", validate=True)
        except (binascii.Error, TypeError) as e:
            raise RuntimeError(f"Browser service returned an invalid screenshot: {e}") from e

    async def get_html(self) -> str:
        return await self._call("getHtml")

    async def extract_data(self, instruction: str) -> Any:
        return await self._call("extractData", instruction=instruction)

    async def observe(self, query: str = DEFAULT_OBSERVE_QUERY) -> Any:
        return await self._call("observe", query=query)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def _require(params: dict[str, str], name: str) -> str:
    value = params.get(name, "")
    if not value:
        raise ValueError(f"Missing required parameter: {name}")
    return value


def _as_flag(value: Optional[str], default: bool = True) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("true", "1", "yes", "on")


class BrowserTools:
    """Adapts a BrowserBackend to the agent's tool interface."""

    def __init__(self, backend: BrowserBackend):
        self.backend = backend
        self.last_screenshot: Optional[bytes] = None

    async def capture(self, full_page: bool = True) -> bytes:
        """Take a screenshot and remember it for the screen parser."""
        image = await self.backend.screenshot(full_page=full_page)
        self.last_screenshot = image
        return image

    async def _open(self, params: dict[str, str]) -> dict:
        return await self.backend.open(_require(params, "url"))

    async def _search(self, params: dict[str, str]) -> dict:
        return await self.backend.search(_require(params, "query"))

    async def _click(self, params: dict[str, str]) -> dict:
        return await self.backend.click(_require(params, "selector"))

    async def _type(self, params: dict[str, str]) -> dict:
        return await self.backend.type(_require(params, "selector"), params.get("text", ""))

    async def _screenshot(self, params: dict[str, str]) -> dict:
        image = await self.capture(full_page=_as_flag(params.get("full_page")))
        return {
            "success": True,
            "mimeType": detect_mime_type(image),
            "size": len(image),
            "note": "Screenshot stored; call parser.parseScreenshot() to analyze it.",
        }

    async def _get_html(self, params: dict[str, str]) -> str:
        return await self.backend.get_html()

    async def _extract_data(self, params: dict[str, str]) -> Any:
        return await self.backend.extract_data(_require(params, "instruction"))

    async def _observe(self, params: dict[str, str]) -> Any:
        return await self.backend.observe(params.get("query") or DEFAULT_OBSERVE_QUERY)

    def definitions(self) -> list[ToolDefinition]:
        return [
            ToolDefinition(
                name=ToolName.BROWSER_OPEN.value,
                description="Navigate the browser to a URL.",
                handler=self._open,
                parameters={"url": "Absolute URL to open"},
            ),
            ToolDefinition(
                name=ToolName.BROWSER_SEARCH.value,
                description="Run a web search and return the result titles, URLs and snippets.",
                handler=self._search,
                parameters={"query": "Search terms"},
            ),
            ToolDefinition(
                name=ToolName.BROWSER_CLICK.value,
                description="Click an element described in natural language.",
                handler=self._click,
                parameters={"selector": "Description of the element to click"},
            ),
            ToolDefinition(
                name=ToolName.BROWSER_TYPE.value,
                description="Type text into an element described in natural language.",
                handler=self._type,
                parameters={
                    "selector": "Description of the input element",
                    "text": "Text to type",
                },
            ),
            ToolDefinition(
                name=ToolName.BROWSER_SCREENSHOT.value,
                description="Take a screenshot of the current page.",
                handler=self._screenshot,
                parameters={"full_page": "true to capture the whole page (default true)"},
            ),
            ToolDefinition(
                name=ToolName.BROWSER_GET_HTML.value,
                description="Get the HTML content of the current page.",
                handler=self._get_html,
            ),
            ToolDefinition(
                name=ToolName.BROWSER_EXTRACT_DATA.value,
                description="Extract structured data from the current page.",
                handler=self._extract_data,
                parameters={"instruction": "What data to extract"},
            ),
            ToolDefinition(
                name=ToolName.BROWSER_OBSERVE.value,
                description="List the actions available on the current page.",
                handler=self._observe,
                parameters={"query": "Question about possible actions"},
            ),
        ]

    async def close(self) -> None:
        await self.backend.close()
