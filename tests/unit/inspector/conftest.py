"""Scripted page double for inspector and interaction tests."""

from __future__ import annotations

import base64
import io
import re
from typing import Any
from unittest.mock import MagicMock

import pytest
from PIL import Image

from ot_inspect.config import InspectConfig, ViewportConfig

_TOKEN_RE = re.compile(r'const uniqueId = "([^"]+)"')
_LIMIT_RE = re.compile(r"slice\(0, (\d+)\)")
_SCRIPT_ID_RE = re.compile(r'data-inspect-id=\\"([^\\"]+)\\"')
_QUERY_ID_RE = re.compile(r'data-inspect-id="([^"]+)"')

COMPUTED_STYLE = [
    {"name": "color", "value": "rgb(0, 0, 0)"},
    {"name": "outline-color", "value": ""},
]
MATCHED_STYLES = {
    "matchedCSSRules": [
        {
            "rule": {
                "origin": "regular",
                "styleSheetId": "7",
                "selectorList": {"selectors": [{"text": ".card"}]},
                "style": {"cssProperties": [{"name": "padding", "value": "15px"}]},
            }
        },
        {
            "rule": {
                "origin": "user-agent",
                "selectorList": {"selectors": [{"text": "div"}]},
                "style": {"cssProperties": [{"name": "display", "value": "block"}]},
            }
        },
    ]
}


def _png(width: int, height: int) -> str:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), (255, 255, 255)).save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


def _index(unique_id: str) -> int:
    return int(unique_id.rsplit("_", 1)[1])


class FakePage:
    """Answers CDP calls like a tab holding one absolutely positioned box per rect.

    ``log`` records every call in order, with Runtime.evaluate calls named
    by the script they run (mark, metrics, cleanup, ...) and ``close`` last.
    """

    def __init__(
        self,
        rects: list[tuple[float, float, float, float]],
        *,
        total: int | None = None,
        viewport: tuple[int, int] = (1280, 720),
        hidden: tuple[int, ...] = (),
        detached: tuple[int, ...] = (),
    ) -> None:
        self.rects = rects
        self.total = len(rects) if total is None else total
        self.viewport = viewport
        self.hidden = set(hidden)
        self.detached = set(detached)
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.log: list[str] = []
        self.failures: dict[str, Exception] = {}
        self.selector_error: str | None = None
        self.click_error: str | None = None
        self.closed = False

    # -- session surface -----------------------------------------------------

    def call(self, method: str, params: dict[str, Any] | None = None, timeout: float | None = None):
        params = params or {}
        self.calls.append((method, params))
        name = method
        if method == "Runtime.evaluate":
            name = self._script_name(params["expression"])
        self.log.append(name)
        if name in self.failures:
            raise self.failures[name]

        if method == "Runtime.evaluate":
            return self._evaluate(name, params["expression"])
        if method == "DOM.getDocument":
            return {"root": {"nodeId": 1}}
        if method == "DOM.querySelector":
            unique_id = _QUERY_ID_RE.search(params["selector"]).group(1)
            index = _index(unique_id)
            return {"nodeId": 0 if index in self.detached else 100 + index}
        if method == "CSS.getComputedStyleForNode":
            return {"computedStyle": COMPUTED_STYLE}
        if method == "CSS.getMatchedStylesForNode":
            return MATCHED_STYLES
        if method == "Page.getLayoutMetrics":
            width, height = self.viewport
            return {
                "cssVisualViewport": {
                    "clientWidth": width,
                    "clientHeight": height,
                    "pageLeft": 0,
                    "pageTop": 0,
                }
            }
        if method == "Page.captureScreenshot":
            clip = params.get("clip")
            if clip:
                return {"data": _png(int(clip["width"]), int(clip["height"]))}
            return {"data": _png(*self.viewport)}
        return {}

    def close(self) -> None:
        self.closed = True
        self.log.append("close")

    # -- helpers -------------------------------------------------------------

    def methods(self, method: str) -> list[dict[str, Any]]:
        return [params for name, params in self.calls if name == method]

    @staticmethod
    def _script_name(expression: str) -> str:
        if "const uniqueId" in expression:
            return "mark"
        if "uniqueSelector" in expression:
            return "describe"
        if "removeAttribute" in expression:
            return "cleanup"
        if "scrollBy" in expression:
            return "scroll"
        if "element has no size" in expression:
            return "click"
        if "boxSizing" in expression:
            return "metrics"
        return "evaluate"

    def _evaluate(self, name: str, expression: str) -> dict[str, Any]:
        if name == "mark":
            if self.selector_error:
                return {
                    "result": {"type": "object", "subtype": "error"},
                    "exceptionDetails": {
                        "text": "Uncaught",
                        "exception": {"description": self.selector_error},
                    },
                }
            token = _TOKEN_RE.search(expression).group(1)
            limit = int(_LIMIT_RE.search(expression).group(1))
            marked = [
                {"index": i, "uniqueId": f"{token}_{i}", "tagName": "DIV"}
                for i in range(min(limit, self.total))
            ]
            return self._value({"total": self.total, "marked": marked})

        if name == "describe":
            limit = int(_LIMIT_RE.search(expression).group(1))
            elements = [
                {"selector": f"div:nth-of-type({i + 1})", "text": f"Card {i}"}
                for i in range(min(limit, self.total))
            ]
            return self._value({"total": self.total, "elements": elements})

        if name == "cleanup":
            return self._value(self.total)

        if name == "scroll":
            return self._value(
                {"scrollDelta": {"x": 0, "y": 40}, "finalScroll": {"x": 0, "y": 40}}
            )

        if name == "click":
            if self.click_error:
                return self._value({"error": self.click_error})
            x, y, width, height = self._rect(expression)
            return self._value({"x": x + width / 2, "y": y + height / 2})

        if name == "metrics":
            index = _index(_SCRIPT_ID_RE.search(expression).group(1))
            if index in self.hidden:
                return self._value(None)
            x, y, width, height = self.rects[index]
            rect = {"x": x, "y": y, "width": width, "height": height}
            return self._value(
                {
                    "viewport": rect,
                    "boxSizing": "border-box",
                    "page": rect,
                    "scroll": {"x": 0, "y": 0},
                    "viewportSize": {"width": self.viewport[0], "height": self.viewport[1]},
                }
            )

        return self._value(None)

    def _rect(self, expression: str) -> tuple[float, float, float, float]:
        return self.rects[_index(_SCRIPT_ID_RE.search(expression).group(1))]

    @staticmethod
    def _value(value: Any) -> dict[str, Any]:
        return {"result": {"type": "object", "value": value}}


@pytest.fixture
def inspect_config() -> InspectConfig:
    return InspectConfig(viewport=ViewportConfig(scroll_settle=0, zoom_settle=0))


@pytest.fixture
def page_factory():
    return FakePage


@pytest.fixture
def manager_factory(inspect_config):
    """Build a BrowserManager double whose tabs are the given page."""

    def _make(fake_page: FakePage) -> MagicMock:
        manager = MagicMock()
        manager.config = inspect_config
        manager.ensure_session.return_value.connect.return_value = fake_page
        return manager

    return _make
