"""Browser session ownership.

A BrowserManager owns at most one browser process at a time. The session is
created on first use, reused while it answers a liveness probe, and torn
down exactly once on normal exit, on SIGINT/SIGTERM/SIGHUP and on uncaught
exceptions.
"""

from __future__ import annotations

import atexit
import os
import signal
import sys
import threading
import time
from dataclasses import dataclass
from types import FrameType, TracebackType
from typing import Any

from loguru import logger

from ot_inspect.browser.launcher import BrowserProcess, launch_browser
from ot_inspect.config import InspectConfig, get_config
from ot_inspect.errors import ConnectionFailed
from ot_inspect.protocol.discovery import DevToolsClient
from ot_inspect.protocol.session import ProtocolSession
from ot_inspect.protocol.targets import TargetRegistry

EXIT_SIGNALS = tuple(
    getattr(signal, name) for name in ("SIGINT", "SIGTERM", "SIGHUP") if hasattr(signal, name)
)


@dataclass
class BrowserSession:
    """One browser (launched or attached) and its tab registry."""

    devtools: DevToolsClient
    targets: TargetRegistry
    process: BrowserProcess | None = None

    @property
    def attached(self) -> bool:
        return self.process is None

    @property
    def port(self) -> int:
        return self.devtools.port

    def connect(self, url: str) -> ProtocolSession:
        """Open a protocol session on the tab for url."""
        return self.targets.connect(url)


class BrowserManager:
    """Creates, reuses and tears down the browser session."""

    def __init__(
        self, config: InspectConfig | None = None, *, install_exit_hooks: bool = True
    ) -> None:
        self.config = config or get_config()
        self._install_exit_hooks = install_exit_hooks
        self._session: BrowserSession | None = None
        self._lock = threading.RLock()
        self._teardown_in_progress = False

    @property
    def session(self) -> BrowserSession | None:
        return self._session

    def ensure_session(self) -> BrowserSession:
        """Return a live session, launching or relaunching as needed."""
        with self._lock:
            if self._session is not None:
                if self._probe(self._session.devtools):
                    return self._session
                logger.warning("Browser is unreachable, starting a new one")
                self._teardown()

            self._session = self._start()
            if self._install_exit_hooks:
                _register(self)
            return self._session

    def shutdown(self) -> None:
        """Tear down the session. Idempotent; re-entrant calls are no-ops."""
        if self._teardown_in_progress:
            return
        with self._lock:
            self._teardown()
        _unregister(self)

    def _teardown(self) -> None:
        if self._teardown_in_progress:
            return
        self._teardown_in_progress = True
        try:
            session, self._session = self._session, None
            if session is None:
                return
            session.targets.clear()
            if session.process is not None:
                session.process.terminate(self.config.browser.terminate_timeout)
        finally:
            self._teardown_in_progress = False

    def _probe(self, devtools: DevToolsClient) -> bool:
        attempts = self.config.browser.probe_attempts
        for attempt in range(1, attempts + 1):
            if devtools.is_alive():
                return True
            if attempt < attempts:
                time.sleep(self.config.browser.probe_delay)
        return False

    def _start(self) -> BrowserSession:
        browser = self.config.browser
        http_timeout = self.config.protocol.http_timeout

        if browser.attach_port is not None:
            devtools = DevToolsClient(browser.host, browser.attach_port, http_timeout)
            if not self._probe(devtools):
                raise ConnectionFailed(
                    f"No browser is listening on {browser.host}:{browser.attach_port}"
                )
            logger.info(f"Attached to browser on port {browser.attach_port}")
            return BrowserSession(devtools, TargetRegistry(devtools, self.config.protocol))

        process = launch_browser(browser)
        devtools = DevToolsClient(browser.host, process.port, http_timeout)
        logger.info(f"Launched browser (pid {process.pid}) on port {process.port}")
        return BrowserSession(devtools, TargetRegistry(devtools, self.config.protocol), process)

    def __enter__(self) -> BrowserManager:
        return self

    def __exit__(self, *args: Any) -> None:
        self.shutdown()


# -----------------------------------------------------------------------------
# Process exit hooks
# -----------------------------------------------------------------------------

# Managers holding a browser; shutdown() removes them
_active_managers: set[BrowserManager] = set()
_hooks_lock = threading.Lock()
_hooks_installed = False
_previous_handlers: dict[int, Any] = {}


def shutdown_all() -> None:
    """Tear down the browser of every manager that registered for exit hooks."""
    with _hooks_lock:
        managers = list(_active_managers)
    for manager in managers:
        manager.shutdown()


def _register(manager: BrowserManager) -> None:
    global _hooks_installed
    with _hooks_lock:
        _active_managers.add(manager)
        if _hooks_installed:
            return
        _hooks_installed = True

    atexit.register(shutdown_all)

    previous_excepthook = sys.excepthook

    def _excepthook(
        exc_type: type[BaseException],
        exc: BaseException,
        tb: TracebackType | None,
    ) -> None:
        shutdown_all()
        previous_excepthook(exc_type, exc, tb)

    sys.excepthook = _excepthook

    if threading.current_thread() is not threading.main_thread():
        logger.debug("Not on the main thread, skipping signal handlers")
        return
    for signum in EXIT_SIGNALS:
        _previous_handlers[signum] = signal.getsignal(signum)
        signal.signal(signum, _on_signal)


def _unregister(manager: BrowserManager) -> None:
    with _hooks_lock:
        _active_managers.discard(manager)


def _on_signal(signum: int, frame: FrameType | None) -> None:
    logger.info(f"Received signal {signum}, shutting down browser")
    shutdown_all()
    previous = _previous_handlers.get(signum)
    if callable(previous):
        previous(signum, frame)
    elif previous == signal.SIG_DFL:
        signal.signal(signum, signal.SIG_DFL)
        os.kill(os.getpid(), signum)
