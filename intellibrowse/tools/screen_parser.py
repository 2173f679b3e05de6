"""
Screen Parsing Tools

Turns screenshots into structured UI elements via Microsoft's OmniParser
and derives tables, forms and lists from the parsed layout.
"""

import base64
import binascii
import json
import logging
import math
import uuid
from typing import Any, Optional

import httpx

from .browser import BrowserTools
from .registry import ToolDefinition, ToolName

logger = logging.getLogger(__name__)

EMPTY_BOX = {"x": 0, "y": 0, "width": 0, "height": 0}

FORM_FIELD_TYPES = ("input", "button", "select", "checkbox", "radio")
LIST_CONTAINER_TYPES = ("list", "ul", "ol")

ROW_BUCKET_PX = 10
COLUMN_BUCKET_PX = 20
LABEL_SEARCH_RADIUS = 100


def _short_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:9]}"


def transform_result(raw: dict) -> dict:
    """Normalize raw OmniParser output."""
    return {
        "interactable_elements": [
            {
                "id": elem.get("id") or _short_id("element"),
                "type": elem.get("type") or "unknown",
                "text": elem.get("text") or "",
                "bounding_box": elem.get("bbox") or dict(EMPTY_BOX),
                "is_interactable": bool(elem.get("is_interactable", False)),
                "confidence": elem.get("confidence") or 0,
                "description": elem.get("functional_description") or "",
            }
            for elem in raw.get("elements") or []
        ],
        "text_elements": [
            {
                "id": region.get("id") or _short_id("text"),
                "text": region.get("text") or "",
                "bounding_box": region.get("bbox") or dict(EMPTY_BOX),
                "confidence": region.get("confidence") or 0,
            }
            for region in raw.get("text_regions") or []
        ],
        "visual_hierarchy": raw.get("visual_hierarchy") or {},
    }


def _box(element: dict) -> dict:
    return element.get("bounding_box") or EMPTY_BOX


def _center(box: dict) -> tuple[float, float]:
    return box["x"] + box["width"] / 2, box["y"] + box["height"] / 2


def _contains(outer: dict, inner: dict) -> bool:
    return (
        inner["x"] >= outer["x"]
        and inner["y"] >= outer["y"]
        and inner["x"] + inner["width"] <= outer["x"] + outer["width"]
        and inner["y"] + inner["height"] <= outer["y"] + outer["height"]
    )


def _describes(element: dict, word: str) -> bool:
    return word in (element.get("description") or "").lower()


def extract_table_data(parsed_ui: dict) -> dict:
    tables = [
        elem for elem in parsed_ui.get("interactable_elements", [])
        if elem.get("type") == "table" or _describes(elem, "table")
    ]
    cells = [
        text for text in parsed_ui.get("text_elements", [])
        if any(_contains(_box(table), _box(text)) for table in tables)
    ]

    rows: dict[int, list[dict]] = {}
    for cell in cells:
        _, center_y = _center(_box(cell))
        # JS Math.round semantics: halves round up
        row_key = math.floor(center_y / ROW_BUCKET_PX + 0.5) * ROW_BUCKET_PX
        rows.setdefault(row_key, []).append(cell)

    data = [
        [cell["text"] for cell in sorted(rows[key], key=lambda c: _box(c)["x"])]
        for key in sorted(rows)
    ]
    return {
        "type": "table",
        "data": data,
        "raw_elements": {"table_elements": tables, "potential_table_cells": cells},
    }


def _label_distance(element: dict, text: dict) -> float:
    """Distance weighted to prefer labels left of or above the element."""
    elem_box, text_box = _box(element), _box(text)
    ex, ey = _center(elem_box)
    tx, ty = _center(text_box)
    distance = math.hypot(ex - tx, ey - ty)

    if text_box["x"] + text_box["width"] < elem_box["x"]:
        weight = 0.5
    elif text_box["y"] + text_box["height"] < elem_box["y"]:
        weight = 0.7
    elif text_box["x"] > elem_box["x"] + elem_box["width"]:
        weight = 1.5
    elif text_box["y"] > elem_box["y"] + elem_box["height"]:
        weight = 2.0
    else:
        weight = 1.0
    return distance * weight


def find_label(element: dict, text_elements: list[dict]) -> str:
    ex, ey = _center(_box(element))
    candidates = []
    for text in text_elements:
        tx, ty = _center(_box(text))
        if math.hypot(ex - tx, ey - ty) < LABEL_SEARCH_RADIUS:
            candidates.append(text)
    if not candidates:
        return ""
    return min(candidates, key=lambda text: _label_distance(element, text))["text"]


def extract_form_data(parsed_ui: dict) -> dict:
    elements = parsed_ui.get("interactable_elements", [])
    texts = parsed_ui.get("text_elements", [])
    fields = [elem for elem in elements if elem.get("type") in FORM_FIELD_TYPES]

    container = next(
        (elem for elem in elements if elem.get("type") == "form" or _describes(elem, "form")),
        None,
    )
    if container is not None:
        group = {
            "id": container["id"],
            "description": container.get("description") or "Form",
            "elements": [f for f in fields if _contains(_box(container), _box(f))],
        }
    else:
        group = {"id": "default-form", "description": "Default Form", "elements": fields}

    return {
        "type": "form",
        "forms": [
            {
                "id": group["id"],
                "description": group["description"],
                "fields": [
                    {
                        "id": elem["id"],
                        "type": elem["type"],
                        "label": find_label(elem, texts),
                        "bounding_box": _box(elem),
                        "is_interactable": elem.get("is_interactable", False),
                        "description": elem.get("description", ""),
                    }
                    for elem in group["elements"]
                ],
            }
        ],
    }


def find_potential_list_items(text_elements: list[dict]) -> list[dict]:
    """Text elements aligned on x with evenly spaced rows, if any."""
    if len(text_elements) < 2:
        return []

    columns: dict[int, list[dict]] = {}
    for elem in text_elements:
        bucket = math.floor(_box(elem)["x"] / COLUMN_BUCKET_PX + 0.5) * COLUMN_BUCKET_PX
        columns.setdefault(bucket, []).append(elem)

    largest: list[dict] = []
    for group in columns.values():
        if len(group) > len(largest):
            largest = group
    if len(largest) < 3:
        return []

    largest = sorted(largest, key=lambda e: _box(e)["y"])
    spacings = [
        _box(cur)["y"] - (_box(prev)["y"] + _box(prev)["height"])
        for prev, cur in zip(largest, largest[1:])
    ]
    average = sum(spacings) / len(spacings)
    if all(abs(s - average) <= 0.3 * average for s in spacings):
        return largest
    return []


def extract_list_data(parsed_ui: dict) -> dict:
    texts = parsed_ui.get("text_elements", [])
    containers = [
        elem for elem in parsed_ui.get("interactable_elements", [])
        if elem.get("type") in LIST_CONTAINER_TYPES or _describes(elem, "list")
    ]

    lists = []
    if containers:
        for container in containers:
            items = sorted(
                (t for t in texts if _contains(_box(container), _box(t))),
                key=lambda t: _box(t)["y"],
            )
            lists.append({
                "id": container["id"],
                "description": container.get("description") or "List",
                "items": [item["text"] for item in items],
            })
    else:
        inferred = find_potential_list_items(texts)
        if inferred:
            lists.append({
                "id": "inferred-list",
                "description": "Inferred List",
                "items": [item["text"] for item in inferred],
            })
    return {"type": "list", "lists": lists}


def extract_component_data(parsed_ui: dict, component_type: str) -> dict:
    """Derive a table, form or list from parsed UI; other types return it unchanged."""
    extractor = {
        "table": extract_table_data,
        "form": extract_form_data,
        "list": extract_list_data,
    }.get((component_type or "").strip().lower())
    if extractor is None:
        return parsed_ui
    return extractor(parsed_ui)


class ScreenParser:
    """HTTP client for the OmniParser inference endpoint."""

    def __init__(
        self,
        endpoint: str,
        api_key: str = "",
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout = timeout
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def parse_screenshot(self, screenshot: bytes) -> dict:
        if not isinstance(screenshot, (bytes, bytearray)):
            raise TypeError("Screenshot must be bytes")

        response = await self._get_client().post(
            self.endpoint,
            files={"image": ("screenshot.png", bytes(screenshot), "image/png")},
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        if not response.is_success:
            detail = response.text or response.reason_phrase
            logger.error(f"OmniParser request failed ({response.status_code}): {detail}")
            raise RuntimeError(f"OmniParser API error: {detail}")
        return transform_result(response.json())

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class ScreenParserTools:
    """
    Adapts a ScreenParser to the agent's tool interface.

    Without an explicit screenshot, ``parser.parseScreenshot`` uses the
    browser's last screenshot, taking a fresh one if none exists yet.
    """

    def __init__(self, parser: ScreenParser, browser: Optional[BrowserTools] = None):
        self.parser = parser
        self.browser = browser
        self.last_parsed: Optional[dict] = None

    async def _resolve_screenshot(self, encoded: str) -> bytes:
        if encoded:
            try:
                return base64.b64decode(encoded, validate=True)
            except (binascii.Error, ValueError) as e:
                raise ValueError(f"screenshot is not valid base64: {e}") from e
        if self.browser is None:
            raise ValueError("No screenshot provided and no browser available")
        if self.browser.last_screenshot is not None:
            return self.browser.last_screenshot
        return await self.browser.capture()

    async def _parse_screenshot(self, params: dict[str, str]) -> dict:
        image = await self._resolve_screenshot(params.get("screenshot", ""))
        self.last_parsed = await self.parser.parse_screenshot(image)
        return self.last_parsed

    async def _extract_component_data(self, params: dict[str, str]) -> Any:
        raw = params.get("parsed_ui", "")
        if raw:
            try:
                parsed_ui = json.loads(raw)
            except json.JSONDecodeError as e:
                raise ValueError(f"parsed_ui must be valid JSON: {e}") from e
        elif self.last_parsed is not None:
            parsed_ui = self.last_parsed
        else:
            raise ValueError("No parsed UI available; call parser.parseScreenshot() first")
        return extract_component_data(parsed_ui, params.get("component_type", ""))

    def definitions(self) -> list[ToolDefinition]:
        return [
            ToolDefinition(
                name=ToolName.PARSER_PARSE_SCREENSHOT.value,
                description=(
                    "Parse a screenshot into interactable elements, text elements and "
                    "visual hierarchy. Uses the latest browser screenshot if none is given."
                ),
                handler=self._parse_screenshot,
                parameters={"screenshot": "Optional base64-encoded image"},
            ),
            ToolDefinition(
                name=ToolName.PARSER_EXTRACT_COMPONENT_DATA.value,
                description="Extract a table, form or list from a parsed screenshot.",
                handler=self._extract_component_data,
                parameters={
                    "parsed_ui": "JSON from parser.parseScreenshot (defaults to the last result)",
                    "component_type": "table, form or list",
                },
            ),
        ]

    async def close(self) -> None:
        await self.parser.close()
