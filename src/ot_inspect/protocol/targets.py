"""Target reuse and navigation.

Tabs are reused by URL: first through the URL to target-id map, then by an
exact URL match among open pages. Only when neither hits is a new tab
created, and creation is serialized per URL.
"""

from __future__ import annotations

import threading
import time

from loguru import logger

from ot_inspect.config import ProtocolConfig
from ot_inspect.errors import NavigationTimeout
from ot_inspect.logging import LogSpan
from ot_inspect.protocol.discovery import DevToolsClient, Target
from ot_inspect.protocol.session import ProtocolSession

NAVIGATION_DOMAINS = ("Page", "DOM", "CSS", "Runtime")
FILE_SETTLE_DELAY = 1.0
SETTLE_DELAY = 0.1


def navigate(session: ProtocolSession, url: str, timeout: float = 8.0) -> bool:
    """Navigate and wait for both load and DOMContentLoaded.

    Waits at most ``timeout`` seconds. The completion flags are read after the
    wait, so events that arrived by then count even if the deadline expired
    at the same moment.

    Returns:
        True if both events were observed, False if the fallback deadline hit
    """
    for domain in NAVIGATION_DOMAINS:
        session.call(f"{domain}.enable")

    loaded = threading.Event()
    dom_ready = threading.Event()
    done = threading.Event()

    def _on_load(_params: dict) -> None:
        loaded.set()
        if dom_ready.is_set():
            done.set()

    def _on_dom_ready(_params: dict) -> None:
        dom_ready.set()
        if loaded.is_set():
            done.set()

    session.add_listener("Page.loadEventFired", _on_load)
    session.add_listener("Page.domContentEventFired", _on_dom_ready)
    try:
        with LogSpan(span="inspect.navigate", url=url) as span:
            result = session.call("Page.navigate", {"url": url})
            if result.get("errorText"):
                logger.warning(f"Navigation to {url} reported {result['errorText']}")
            done.wait(timeout)
            completed = loaded.is_set() and dom_ready.is_set()
            span.add(completed=completed)
    finally:
        session.remove_listener("Page.loadEventFired", _on_load)
        session.remove_listener("Page.domContentEventFired", _on_dom_ready)

    if not completed:
        logger.warning(f"{NavigationTimeout(url, timeout)}, continuing")

    time.sleep(FILE_SETTLE_DELAY if url.startswith("file://") else SETTLE_DELAY)
    return completed


class TargetRegistry:
    """URL to target-id map for one browser process."""

    def __init__(self, devtools: DevToolsClient, config: ProtocolConfig | None = None) -> None:
        self.devtools = devtools
        self.config = config or ProtocolConfig()
        self._url_to_target: dict[str, str] = {}
        self._lock = threading.Lock()
        self._url_locks: dict[str, threading.Lock] = {}

    def clear(self) -> None:
        """Forget all mappings. Ids never carry over to another process."""
        with self._lock:
            self._url_to_target.clear()

    def known_target(self, url: str) -> str | None:
        with self._lock:
            return self._url_to_target.get(url)

    def _lock_for(self, url: str) -> threading.Lock:
        with self._lock:
            return self._url_locks.setdefault(url, threading.Lock())

    def _remember(self, url: str, target_id: str) -> None:
        with self._lock:
            self._url_to_target[url] = target_id

    def _forget(self, url: str) -> None:
        with self._lock:
            self._url_to_target.pop(url, None)

    def resolve(self, url: str) -> tuple[Target, bool]:
        """Find or create the tab for url.

        Returns:
            (target, created) where created is True for a new tab
        """
        with self._lock_for(url):
            pages = [t for t in self.devtools.list_targets() if t.type == "page"]

            known_id = self.known_target(url)
            if known_id is not None:
                match = next((t for t in pages if t.id == known_id), None)
                if match is not None and match.url == url:
                    logger.debug(f"Reusing mapped tab {known_id} for {url}")
                    return match, False
                logger.debug(f"Mapped tab {known_id} for {url} is gone or moved, dropping")
                self._forget(url)

            for target in pages:
                if target.url == url:
                    self._remember(url, target.id)
                    logger.debug(f"Reusing open tab {target.id} for {url}")
                    return target, False

            target = self.devtools.new_target()
            self._remember(url, target.id)
            logger.info(f"Opened new tab {target.id} for {url}")
            return target, True

    def connect(self, url: str) -> ProtocolSession:
        """Open a session on the tab for url, navigating it if needed."""
        target, _created = self.resolve(url)
        session = ProtocolSession.connect(target.ws_url, self.config)
        try:
            if target.url != url:
                navigate(session, url, self.config.navigation_timeout)
        except BaseException:
            session.close()
            raise
        return session
