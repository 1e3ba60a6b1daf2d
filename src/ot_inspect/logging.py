"""Structured logging for inspections.

Spans are emitted through loguru, one record per span, with timing and
attributes bound as extra fields.
"""

from __future__ import annotations

import sys
import time
from typing import Any

from loguru import logger


class LogSpan:
    """A structured logging span with timing and attributes.

    Example:
        >>> with LogSpan(span="inspect.capture", clip=True) as s:
        ...     data = capture()
        ...     s.add(bytes=len(data))
    """

    def __init__(self, span: str, **attrs: Any) -> None:
        self.name = span
        self.attrs: dict[str, Any] = dict(attrs)
        self.start_time = time.monotonic()
        self.error: str | None = None

    def add(self, key: str | None = None, value: Any = None, **attrs: Any) -> LogSpan:
        """Add attributes to the span.

        Supports both positional and keyword argument styles.

        Returns:
            Self for method chaining
        """
        if key is not None:
            self.attrs[key] = value
        self.attrs.update(attrs)
        return self

    @property
    def elapsed_ms(self) -> float:
        return round((time.monotonic() - self.start_time) * 1000, 2)

    def __enter__(self) -> LogSpan:
        return self

    def __exit__(self, exc_type: Any, exc: BaseException | None, _tb: Any) -> None:
        if exc is not None:
            self.error = f"{exc_type.__name__}: {exc}"
        self._emit()

    def _emit(self) -> None:
        """Emit the span as one loguru record."""
        entry: dict[str, Any] = {"elapsed_ms": self.elapsed_ms, **self.attrs}
        if self.error:
            entry["error"] = self.error
            logger.bind(span=self.name, **entry).warning(
                "{} failed after {}ms: {}", self.name, entry["elapsed_ms"], self.error
            )
        else:
            logger.bind(span=self.name, **entry).debug(
                "{} done in {}ms", self.name, entry["elapsed_ms"]
            )


def configure_logging(level: str = "INFO", *, serialize: bool = False) -> None:
    """Route loguru output to stderr at the given level.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ...)
        serialize: Emit JSON lines instead of the human format
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        serialize=serialize,
        format="<dim>{time:HH:mm:ss.SSS}</dim> <level>{level: <7}</level> {name}: {message}",
    )
