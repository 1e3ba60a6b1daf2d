"""Error family for inspections.

Every error raised by ot_inspect derives from InspectError and carries an
ErrorKind, so callers can dispatch on ``error.kind`` with a ``match``
statement instead of guessing from message text.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(Enum):
    """Closed set of failure kinds."""

    INVALID_SELECTOR = "invalid_selector"
    ELEMENT_NOT_FOUND = "element_not_found"
    CONNECTION_FAILED = "connection_failed"
    TIMEOUT = "timeout"
    NAVIGATION_TIMEOUT = "navigation_timeout"
    MEASUREMENT_UNAVAILABLE = "measurement_unavailable"
    PROTOCOL_ERROR = "protocol_error"
    BROWSER_LAUNCH = "browser_launch"


class InspectError(Exception):
    """Base class for all inspection errors."""

    kind: ErrorKind

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {"kind": self.kind.value, "message": str(self)}


class InvalidSelector(InspectError):
    """The selector could not be parsed by the page."""

    kind = ErrorKind.INVALID_SELECTOR

    def __init__(self, selector: str, detail: str = "") -> None:
        self.selector = selector
        self.detail = detail
        message = f"Invalid CSS selector: {selector}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class ElementNotFound(InspectError):
    """The selector matched nothing, or the requested index is out of range."""

    kind = ErrorKind.ELEMENT_NOT_FOUND

    def __init__(
        self,
        selector: str,
        match_count: int = 0,
        index: int | None = None,
        examples: list[dict[str, str]] | None = None,
    ) -> None:
        self.selector = selector
        self.match_count = match_count
        self.index = index
        self.examples = examples or []
        super().__init__(self._format())

    def _format(self) -> str:
        if self.index is None or self.match_count == 0:
            return f'Element not found: "{self.selector}" (0 matches)'

        lines = [
            f"No element at index {self.index}.",
            f'Found {self.match_count} elements matching "{self.selector}":',
        ]
        for example in self.examples:
            text = f': "{example["text"]}"' if example.get("text") else ""
            lines.append(f"- {example['selector']}{text}")
        remaining = self.match_count - len(self.examples)
        if self.examples and remaining > 0:
            lines.append(f"- ... and {remaining} more element{'s' if remaining > 1 else ''}")
        lines.append(f"Use index [0] to [{self.match_count - 1}]")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["match_count"] = self.match_count
        return data


class ConnectionFailed(InspectError):
    """Socket or HTTP level failure talking to the browser."""

    kind = ErrorKind.CONNECTION_FAILED


class ProtocolTimeout(InspectError):
    """A protocol call did not receive a response before its deadline."""

    kind = ErrorKind.TIMEOUT

    def __init__(self, method: str, timeout: float) -> None:
        self.method = method
        self.timeout = timeout
        super().__init__(f"CDP request timeout after {timeout:g}s: {method}")


class NavigationTimeout(InspectError):
    """Navigation did not report completion before the fallback deadline."""

    kind = ErrorKind.NAVIGATION_TIMEOUT

    def __init__(self, url: str, timeout: float) -> None:
        self.url = url
        self.timeout = timeout
        super().__init__(f"Navigation to {url} did not complete within {timeout:g}s")


class MeasurementUnavailable(InspectError):
    """An element became invisible or detached between marking and measuring."""

    kind = ErrorKind.MEASUREMENT_UNAVAILABLE

    def __init__(self, selector: str, reason: str = "element may not be visible") -> None:
        self.selector = selector
        self.reason = reason
        super().__init__(f"Unable to get element metrics for {selector}: {reason}")

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["selector"] = self.selector
        return data


class ProtocolError(InspectError):
    """The browser answered a call with an error object."""

    kind = ErrorKind.PROTOCOL_ERROR

    def __init__(self, method: str, message: str, code: int | None = None) -> None:
        self.method = method
        self.code = code
        super().__init__(f"CDP Error in {method}: {message}")


class BrowserLaunchError(InspectError):
    """The browser executable is missing or did not start."""

    kind = ErrorKind.BROWSER_LAUNCH
