"""Click and scroll a single element, addressed as ``selector`` or ``selector[index]``."""

from __future__ import annotations

import re
import time
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass
from typing import Any

from loguru import logger

from ot_inspect import page, scripts
from ot_inspect.browser.manager import BrowserManager
from ot_inspect.config import InspectConfig
from ot_inspect.errors import ElementNotFound, MeasurementUnavailable
from ot_inspect.logging import LogSpan
from ot_inspect.models import Rect
from ot_inspect.protocol.session import ProtocolSession

_INDEXED_SELECTOR_RE = re.compile(r"^(.+)\[(\d+)\]$")

CLICK_PRESS_DELAY = 0.05
CLICK_SETTLE_DELAY = 0.5


def parse_selector(selector: str) -> tuple[str, int]:
    """Split ``button[2]`` into ``("button", 2)``; no suffix means index 0."""
    selector = selector.strip()
    match = _INDEXED_SELECTOR_RE.match(selector)
    if match:
        return match.group(1), int(match.group(2))
    return selector, 0


@dataclass
class ClickResult:
    selector: str
    index: int
    match_count: int
    x: float
    y: float
    screenshot: str  # PNG data URI

    def to_dict(self) -> dict[str, Any]:
        return {
            "selector": self.selector,
            "index": self.index,
            "match_count": self.match_count,
            "x": self.x,
            "y": self.y,
            "screenshot": self.screenshot,
        }


@dataclass
class ScrollResult:
    selector: str
    index: int
    match_count: int
    scroll_delta: dict[str, float]
    final_scroll: dict[str, float]
    element_rect: Rect | None
    screenshot: str  # PNG data URI

    def to_dict(self) -> dict[str, Any]:
        return {
            "selector": self.selector,
            "index": self.index,
            "match_count": self.match_count,
            "scroll_delta": self.scroll_delta,
            "final_scroll": self.final_scroll,
            "element_rect": self.element_rect.to_dict() if self.element_rect else None,
            "screenshot": self.screenshot,
        }


@dataclass
class _Target:
    session: ProtocolSession
    selector: str
    index: int
    match_count: int
    unique_id: str

    @property
    def label(self) -> str:
        return f"{self.selector}[{self.index}]"


def _cleanup_step(name: str, fn: Any, *args: Any) -> None:
    try:
        fn(*args)
    except Exception as e:
        logger.warning(f"Cleanup step '{name}' failed: {e}")


@contextmanager
def _target_element(
    manager: BrowserManager, url: str, css_selector: str, config: InspectConfig
) -> Iterator[_Target]:
    """Open the tab for url and tag the addressed element.

    Tags and the session are released when the block exits.

    Raises:
        InvalidSelector: If the page rejects the selector
        ElementNotFound: If nothing matches or the index is out of range
    """
    selector, index = parse_selector(css_selector)
    token = page.new_run_token()

    with ExitStack() as stack:
        session = manager.ensure_session().connect(url)
        stack.callback(_cleanup_step, "close session", session.close)
        for domain in ("DOM", "Page", "Runtime"):
            session.call(f"{domain}.enable")
        page.get_document(session, config.protocol.document_attempts)

        stack.callback(_cleanup_step, "remove marks", page.remove_marks, session, token)
        limit = max(config.limits.max_elements, index + 1)
        total, marked = page.mark_elements(session, selector, limit, token)
        if index >= len(marked):
            examples = page.describe_elements(
                session, selector, config.limits.example_selectors
            )
            raise ElementNotFound(selector, match_count=total, index=index, examples=examples)

        yield _Target(
            session=session,
            selector=selector,
            index=index,
            match_count=total,
            unique_id=marked[index]["uniqueId"],
        )


def _dispatch_click(session: ProtocolSession, x: float, y: float) -> None:
    event = {"x": x, "y": y, "button": "left", "clickCount": 1}
    session.call("Input.dispatchMouseEvent", {"type": "mousePressed", "buttons": 1, **event})
    time.sleep(CLICK_PRESS_DELAY)
    session.call("Input.dispatchMouseEvent", {"type": "mouseReleased", "buttons": 0, **event})


def click_element(
    manager: BrowserManager,
    url: str,
    css_selector: str,
    config: InspectConfig | None = None,
) -> ClickResult:
    """Scroll the element into view, click its center and capture the page.

    Args:
        manager: Browser owner
        url: Page URL including protocol
        css_selector: Selector, optionally suffixed with ``[index]``
        config: Settings (default: the manager's)
    """
    config = config or manager.config
    with LogSpan(span="inspect.click", selector=css_selector, url=url) as span:
        with _target_element(manager, url, css_selector, config) as target:
            page.scroll_to_elements(target.session, [target.unique_id])
            time.sleep(config.viewport.scroll_settle)

            coords = page.evaluate(target.session, scripts.click_coordinates(target.unique_id))
            if not isinstance(coords, dict) or coords.get("error"):
                reason = coords.get("error") if isinstance(coords, dict) else "no coordinates"
                raise MeasurementUnavailable(target.label, reason)

            x, y = float(coords["x"]), float(coords["y"])
            _dispatch_click(target.session, x, y)
            time.sleep(CLICK_SETTLE_DELAY)
            screenshot = page.capture_screenshot(target.session)

            span.add(index=target.index, matches=target.match_count, x=round(x), y=round(y))
            return ClickResult(
                selector=target.selector,
                index=target.index,
                match_count=target.match_count,
                x=x,
                y=y,
                screenshot=page.to_data_uri(screenshot),
            )


def scroll_element(
    manager: BrowserManager,
    url: str,
    css_selector: str,
    config: InspectConfig | None = None,
) -> ScrollResult:
    """Center the element in the viewport and capture the page.

    The page is left scrolled. The returned rect is the element border box
    after scrolling, in viewport space.
    """
    config = config or manager.config
    with LogSpan(span="inspect.scroll", selector=css_selector, url=url) as span:
        with _target_element(manager, url, css_selector, config) as target:
            scrolled = page.scroll_to_elements(target.session, [target.unique_id])
            time.sleep(config.viewport.scroll_settle)
            metrics = page.get_element_metrics(target.session, target.unique_id)
            screenshot = page.capture_screenshot(target.session)

            span.add(index=target.index, matches=target.match_count)
            return ScrollResult(
                selector=target.selector,
                index=target.index,
                match_count=target.match_count,
                scroll_delta=scrolled.get("scrollDelta", {}),
                final_scroll=scrolled.get("finalScroll", {}),
                element_rect=metrics.viewport if metrics else None,
                screenshot=page.to_data_uri(screenshot),
            )
