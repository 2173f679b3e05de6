"""Tests for the browser tools and backends."""

import base64
import json

import httpx
import pytest

from intellibrowse.tools.browser import BLANK_PNG, BrowserTools, MockBrowser, RemoteBrowser


def _by_name(tools: BrowserTools):
    return {definition.name: definition for definition in tools.definitions()}


class TestMockBrowser:
    """Tests for the in-memory browser."""

    async def test_open_sets_title_from_hostname(self):
        """The title is the capitalized first hostname label."""
        browser = MockBrowser()
        result = await browser.open("https://github.com/trending")
        assert result == {"success": True, "title": "Github", "url": "https://github.com/trending"}

    async def test_open_rejects_invalid_url(self):
        """URLs without a host cannot be opened."""
        with pytest.raises(ValueError, match="Failed to navigate"):
            await MockBrowser().open("not a url")

    async def test_search_returns_three_results(self):
        """Search navigates to a results page with canned results."""
        browser = MockBrowser()
        result = await browser.search("machine learning")

        assert result["query"] == "machine learning"
        assert len(result["results"]) == 3
        assert result["results"][0]["url"] == "https://en.wikipedia.org/wiki/machine_learning"
        assert browser.current_url == "https://www.google.com/search?q=machine+learning"

    async def test_click_news_link_navigates(self):
        """Clicking a news link changes the current page."""
        browser = MockBrowser()
        result = await browser.click("the news link")
        assert result["currentUrl"] == "https://news.example.com/"
        assert browser.title == "Example News"

    async def test_extract_data_depends_on_page(self):
        """Extraction returns results on a search page."""
        browser = MockBrowser()
        await browser.search("ai")
        data = await browser.extract_data("get results")
        assert [r["title"] for r in data["results"]] == ["Mock Result 1", "Mock Result 2", "Mock Result 3"]

    async def test_html_mentions_current_page(self):
        """The mock HTML includes the title and URL."""
        browser = MockBrowser()
        await browser.open("https://python.org")
        html = await browser.get_html()
        assert "<title>Python</title>" in html
        assert "https://python.org" in html


class TestBrowserTools:
    """Tests for the tool adapter."""

    def test_definitions_cover_all_browser_tools(self):
        """Eight browser tools are exposed."""
        assert list(_by_name(BrowserTools(MockBrowser()))) == [
            "browser.open",
            "browser.search",
            "browser.click",
            "browser.type",
            "browser.screenshot",
            "browser.getHtml",
            "browser.extractData",
            "browser.observe",
        ]

    async def test_screenshot_reports_metadata_not_bytes(self):
        """The observation describes the image and the bytes are kept aside."""
        tools = BrowserTools(MockBrowser())
        result = await _by_name(tools)["browser.screenshot"].invoke({"full_page": "false"})

        assert result["mimeType"] == "image/png"
        assert result["size"] == len(BLANK_PNG)
        assert tools.last_screenshot == BLANK_PNG

    async def test_missing_required_param(self):
        """Required parameters must be present."""
        tools = BrowserTools(MockBrowser())
        with pytest.raises(ValueError, match="url"):
            await _by_name(tools)["browser.open"].invoke({})

    async def test_type_passes_text(self):
        """browser.type forwards selector and text."""
        tools = BrowserTools(MockBrowser())
        result = await _by_name(tools)["browser.type"].invoke({"selector": "search box", "text": "hello"})
        assert result == {"success": True, "action": "type", "target": "search box", "text": "hello"}

    async def test_observe_defaults_query(self):
        """browser.observe works without a query."""
        tools = BrowserTools(MockBrowser())
        result = await _by_name(tools)["browser.observe"].invoke({})
        assert "possibleActions" in result


class TestRemoteBrowser:
    """Tests for the HTTP browser backend."""

    def _browser(self, handler):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return RemoteBrowser("http://browser.test/actions", client=client)

    async def test_posts_action_and_params(self):
        """Each call posts the action name and its params."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"result": {"success": True, "title": "Example"}})

        browser = self._browser(handler)
        result = await browser.open("https://example.com")

        assert result == {"success": True, "title": "Example"}
        assert seen["url"] == "http://browser.test/actions"
        assert seen["body"] == {"action": "open", "params": {"url": "https://example.com"}}
        await browser.close()

    async def test_screenshot_decoded_from_base64(self):
        """Screenshots arrive base64-encoded."""
        encoded = base64.b64encode(BLANK_PNG).decode()
        browser = self._browser(lambda request: httpx.Response(200, json={"result": encoded}))
        assert await browser.screenshot() == BLANK_PNG

    async def test_http_error_raises_runtime_error(self):
        """Service failures surface as RuntimeError for the observation."""
        browser = self._browser(lambda request: httpx.Response(500, text="down"))
        with pytest.raises(RuntimeError, match="Browser service error during search"):
            await browser.search("ai")

    async def test_service_reported_error(self):
        """An error field in the response is raised."""
        browser = self._browser(lambda request: httpx.Response(200, json={"error": "no page"}))
        with pytest.raises(RuntimeError, match="no page"):
            await browser.get_html()
