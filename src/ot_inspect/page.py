"""Page operations shared by inspections and interactions.

Each function issues protocol calls on an open session and converts the
results into model objects or typed errors.
"""

from __future__ import annotations

import base64
import secrets
import time
from typing import Any

from loguru import logger

from ot_inspect import scripts
from ot_inspect.config import ViewportConfig
from ot_inspect.errors import (
    ElementNotFound,
    InvalidSelector,
    ProtocolError,
)
from ot_inspect.models import ElementMetrics, Rect, ViewportInfo
from ot_inspect.protocol.session import ProtocolSession


def new_run_token() -> str:
    """Per-run tag prefix, unique across concurrent runs on one page."""
    return f"_inspect_{secrets.token_hex(6)}"


def evaluate(session: ProtocolSession, expression: str) -> Any:
    """Evaluate an expression and return its value by value.

    Raises:
        ProtocolError: If the expression threw in the page
    """
    response = session.call(
        "Runtime.evaluate", {"expression": expression, "returnByValue": True}
    )
    details = response.get("exceptionDetails")
    if details:
        raise ProtocolError("Runtime.evaluate", _exception_text(details))
    return response.get("result", {}).get("value")


def _exception_text(details: dict[str, Any]) -> str:
    exception = details.get("exception") or {}
    return exception.get("description") or details.get("text") or "script threw"


def get_document(session: ProtocolSession, attempts: int = 3) -> dict[str, Any]:
    """DOM.getDocument with linear backoff (0.5s, 1s, ...) between attempts."""
    last_error: Exception | None = None
    for attempt in range(1, attempts + 1):
        try:
            document = session.call("DOM.getDocument")
            root = document.get("root") or {}
            if root.get("nodeId"):
                return root
            last_error = ProtocolError("DOM.getDocument", "document root is empty")
        except ProtocolError as e:
            last_error = e
        logger.debug(f"DOM.getDocument attempt {attempt}/{attempts} failed: {last_error}")
        if attempt < attempts:
            time.sleep(0.5 * attempt)
    raise ProtocolError(
        "DOM.getDocument", f"failed after {attempts} attempts: {last_error}"
    )


def mark_elements(
    session: ProtocolSession, selector: str, limit: int, token: str
) -> tuple[int, list[dict[str, Any]]]:
    """Tag up to limit matches of selector.

    Returns:
        (total match count, marked element descriptors)

    Raises:
        InvalidSelector: If the page rejects the selector
        ElementNotFound: If nothing matches
    """
    response = session.call(
        "Runtime.evaluate",
        {"expression": scripts.mark_elements(selector, limit, token), "returnByValue": True},
    )
    details = response.get("exceptionDetails")
    if details:
        raise InvalidSelector(selector, _exception_text(details))

    value = response.get("result", {}).get("value") or {}
    total = int(value.get("total", 0))
    marked = list(value.get("marked", []))
    if total == 0 or not marked:
        raise ElementNotFound(selector, match_count=0)
    return total, marked


def resolve_node_id(session: ProtocolSession, root_node_id: int, unique_id: str) -> int | None:
    """Re-resolve a tagged element to a DOM node id, None if it is gone."""
    result = session.call(
        "DOM.querySelector",
        {"nodeId": root_node_id, "selector": scripts.id_selector(unique_id)},
    )
    node_id = result.get("nodeId")
    return node_id or None


def get_element_metrics(session: ProtocolSession, unique_id: str) -> ElementMetrics | None:
    """Measure one tagged element, None when it is detached or hidden."""
    try:
        value = evaluate(session, scripts.element_metrics(unique_id))
    except ProtocolError as e:
        logger.warning(f"Failed to get element metrics for {unique_id}: {e}")
        return None
    if not value:
        return None
    return ElementMetrics.from_dict(value)


def get_viewport_info(
    session: ProtocolSession, config: ViewportConfig | None = None
) -> ViewportInfo:
    config = config or ViewportConfig()
    metrics = session.call("Page.getLayoutMetrics")
    visual = metrics.get("cssVisualViewport") or {}
    return ViewportInfo(
        width=visual.get("clientWidth") or config.default_width,
        height=visual.get("clientHeight") or config.default_height,
        scroll_x=visual.get("pageLeft") or 0,
        scroll_y=visual.get("pageTop") or 0,
    )


def scroll_to_elements(session: ProtocolSession, unique_ids: list[str]) -> dict[str, Any]:
    """Center the bounding box of the tagged elements in the viewport."""
    value = evaluate(session, scripts.scroll_to_elements(unique_ids))
    if not isinstance(value, dict) or value.get("error"):
        error = value.get("error") if isinstance(value, dict) else "no result"
        raise ProtocolError("Runtime.evaluate", f"scroll failed: {error}")
    return value


def describe_elements(session: ProtocolSession, selector: str, limit: int) -> list[dict[str, str]]:
    """Unique selectors and text of the first matches, for error messages."""
    try:
        value = evaluate(session, scripts.element_descriptions(selector, limit))
    except ProtocolError as e:
        logger.debug(f"Could not describe matches for {selector}: {e}")
        return []
    if not isinstance(value, dict):
        return []
    return list(value.get("elements", []))


def capture_screenshot(session: ProtocolSession, clip: Rect | None = None) -> bytes:
    params: dict[str, Any] = {"format": "png"}
    if clip is not None:
        params["clip"] = {**clip.to_dict(), "scale": 1}
    result = session.call("Page.captureScreenshot", params)
    data = result.get("data")
    if not data:
        raise ProtocolError(
            "Page.captureScreenshot", "no image data; the page may not be loaded or visible"
        )
    return base64.b64decode(data)


def to_data_uri(png: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")


def remove_marks(session: ProtocolSession, token: str) -> None:
    removed = evaluate(session, scripts.cleanup_marks(token))
    logger.debug(f"Removed {removed} inspect tags for {token}")


def from_data_uri(data_uri: str) -> bytes:
    """PNG bytes from a screenshot data URI."""
    _, _, payload = data_uri.partition(",")
    return base64.b64decode(payload)
