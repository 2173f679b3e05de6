"""Tests for the Action line parser."""

from intellibrowse.agent.action_parser import ToolCall, parse_action, parse_params


class TestParseAction:
    """Tests for parse_action."""

    def test_simple_action(self):
        """A namespaced tool with one parameter is recovered exactly."""
        text = 'Thought: I should search.\nAction: browser.search(query="artificial intelligence news")'
        assert parse_action(text) == ToolCall(
            tool_name="browser.search",
            params={"query": "artificial intelligence news"},
        )

    def test_multiple_parameters(self):
        """All key/value pairs are returned."""
        call = parse_action('Action: browser.type(selector="#search", text="hello world")')
        assert call.tool_name == "browser.type"
        assert call.params == {"selector": "#search", "text": "hello world"}

    def test_escaped_quotes_are_unescaped(self):
        """Backslash-quote inside a value becomes a plain quote."""
        call = parse_action('Action: browser.type(selector="input", text="say \\"hi\\" now")')
        assert call.params["text"] == 'say "hi" now'

    def test_other_backslash_sequences_are_kept(self):
        """Only escaped quotes are unescaped."""
        call = parse_action('Action: document.analyze(document="C:\\data\\n.pdf", question="q")')
        assert call.params["document"] == "C:\\data\\n.pdf"

    def test_parentheses_inside_quoted_value(self):
        """A ) inside quotes does not end the argument list."""
        call = parse_action('Action: browser.extractData(instruction="get prices (USD) and names")')
        assert call.params == {"instruction": "get prices (USD) and names"}

    def test_no_arguments(self):
        """An empty argument list gives an empty params dict."""
        assert parse_action("Action: browser.getHtml()") == ToolCall("browser.getHtml", {})

    def test_tool_without_namespace(self):
        """Plain identifiers are valid tool names."""
        assert parse_action('Action: lookup(term="x")').tool_name == "lookup"

    def test_no_action_returns_none(self):
        """Text without an Action line is a final answer."""
        assert parse_action("Thought: done.\nAnswer: The capital is Paris.") is None

    def test_empty_and_none_return_none(self):
        """Empty input has no action."""
        assert parse_action("") is None
        assert parse_action(None) is None

    def test_marker_without_call_returns_none(self):
        """An Action marker not followed by name(...) is ignored."""
        assert parse_action("Action: I will now search the web") is None

    def test_first_well_formed_action_wins(self):
        """Later actions in the same message are ignored."""
        text = (
            'Action: browser.open(url="https://a.example")\n'
            'Action: browser.open(url="https://b.example")'
        )
        assert parse_action(text).params["url"] == "https://a.example"

    def test_malformed_marker_skipped_for_later_action(self):
        """A malformed first marker does not hide a valid later one."""
        text = 'Action: not a call\nAction: browser.search(query="news")'
        assert parse_action(text) == ToolCall("browser.search", {"query": "news"})

    def test_whitespace_around_arguments(self):
        """Whitespace after the marker and inside the parens is tolerated."""
        call = parse_action('Action:    browser.open(  url="https://example.com"  )')
        assert call == ToolCall("browser.open", {"url": "https://example.com"})

    def test_dangling_namespace_dot_is_not_a_call(self):
        """A dot must be followed by an identifier."""
        assert parse_action('Action: browser.(url="x")') is None

    def test_unterminated_quote_falls_back_to_first_paren(self):
        """An unterminated quote yields the call with no readable params."""
        call = parse_action('Action: browser.open(url="https://example.com)')
        assert call == ToolCall("browser.open", {})

    def test_missing_closing_paren_returns_none(self):
        """Without any ) there is no call."""
        assert parse_action('Action: browser.open(url="https://example.com"') is None

    def test_text_after_action_is_ignored(self):
        """Anything after the closing paren is ignored."""
        call = parse_action('Action: browser.search(query="ai")\nObservation: made up')
        assert call.params == {"query": "ai"}


class TestParseParams:
    """Tests for parse_params."""

    def test_repeated_key_last_wins(self):
        """A key given twice keeps the last value."""
        assert parse_params('q="one", q="two"') == {"q": "two"}

    def test_unquoted_values_are_skipped(self):
        """Only quoted values form pairs."""
        assert parse_params('a=1, b="2"') == {"b": "2"}

    def test_empty_value(self):
        """Empty quoted strings are kept."""
        assert parse_params('text=""') == {"text": ""}
