"""
Action grammar for model output.

The model requests a tool with a single line::

    Action: browser.search(query="artificial intelligence news")

The tool name is an identifier with an optional dotted namespace. Arguments
are ``key="value"`` pairs; inside a value a backslash escapes the next
character and ``\\"`` is unescaped to ``"``. Any other backslash sequence is
kept verbatim. Everything around the action line is ignored here.

Parsing never raises: malformed argument lists yield whatever pairs could be
read, and text without a usable ``Action:`` line yields ``None``.
"""

from dataclasses import dataclass, field
from typing import Optional

ACTION_MARKER = "Action:"


@dataclass
class ToolCall:
    """A tool invocation extracted from one assistant message."""

    tool_name: str
    params: dict[str, str] = field(default_factory=dict)


def _is_ident_char(ch: str) -> bool:
    return ch.isascii() and (ch.isalnum() or ch == "_")


def _scan_ident(text: str, pos: int) -> int:
    """Return the index just past the identifier starting at ``pos``."""
    while pos < len(text) and _is_ident_char(text[pos]):
        pos += 1
    return pos


def _scan_tool_name(text: str, pos: int) -> Optional[tuple[str, int]]:
    end = _scan_ident(text, pos)
    if end == pos:
        return None
    if end < len(text) and text[end] == ".":
        ns_end = _scan_ident(text, end + 1)
        if ns_end == end + 1:
            return None
        end = ns_end
    return text[pos:end], end


def _find_args_end(text: str, start: int) -> int:
    """Find the ``)`` closing an argument list that begins at ``start``.

    Quoted values may contain parentheses, and unquoted parentheses nest.
    If the quote-aware scan runs off the end (unterminated quote), the list
    ends at the first ``)`` instead. Returns -1 when there is no ``)``.
    """
    depth = 0
    in_quote = False
    i = start
    while i < len(text):
        ch = text[i]
        if in_quote:
            if ch == "\\":
                i += 2
                continue
            if ch == '"':
                in_quote = False
        elif ch == '"':
            in_quote = True
        elif ch == "(":
            depth += 1
        elif ch == ")":
            if depth == 0:
                return i
            depth -= 1
        i += 1
    return text.find(")", start)


def _scan_quoted(text: str, start: int) -> tuple[Optional[str], int]:
    """Read a quoted value whose opening quote sits just before ``start``."""
    chars = []
    i = start
    while i < len(text):
        ch = text[i]
        if ch == "\\" and i + 1 < len(text):
            nxt = text[i + 1]
            chars.append('"' if nxt == '"' else ch + nxt)
            i += 2
            continue
        if ch == '"':
            return "".join(chars), i + 1
        chars.append(ch)
        i += 1
    return None, len(text)


def parse_params(args: str) -> dict[str, str]:
    """Extract ``key="value"`` pairs from an argument list."""
    params: dict[str, str] = {}
    i = 0
    while i < len(args):
        if not _is_ident_char(args[i]):
            i += 1
            continue
        key_end = _scan_ident(args, i)
        if not args.startswith('="', key_end):
            i = key_end
            continue
        value, end = _scan_quoted(args, key_end + 2)
        if value is None:
            # unterminated quote: nothing after it can form a pair
            break
        params[args[i:key_end]] = value
        i = end
    return params


def _parse_at(text: str, pos: int) -> Optional[ToolCall]:
    while pos < len(text) and text[pos].isspace():
        pos += 1
    scanned = _scan_tool_name(text, pos)
    if scanned is None:
        return None
    tool_name, pos = scanned
    if pos >= len(text) or text[pos] != "(":
        return None
    args_end = _find_args_end(text, pos + 1)
    if args_end == -1:
        return None
    return ToolCall(tool_name=tool_name, params=parse_params(text[pos + 1:args_end]))


def parse_action(text: Optional[str]) -> Optional[ToolCall]:
    """
    Extract the tool invocation from an assistant message.

    The first ``Action:`` marker followed by a well-formed ``name(...)``
    wins; later actions in the same message are ignored.

    Args:
        text: Raw assistant output

    Returns:
        The ToolCall, or None when the message is a final answer
    """
    if not text:
        return None
    pos = text.find(ACTION_MARKER)
    while pos != -1:
        call = _parse_at(text, pos + len(ACTION_MARKER))
        if call is not None:
            return call
        pos = text.find(ACTION_MARKER, pos + 1)
    return None
