"""Browser process lifecycle."""

from ot_inspect.browser.launcher import (
    BrowserProcess,
    build_launch_args,
    find_browser_executable,
    launch_browser,
    read_devtools_port,
)
from ot_inspect.browser.manager import BrowserManager, BrowserSession, shutdown_all

__all__ = [
    "BrowserManager",
    "BrowserProcess",
    "BrowserSession",
    "build_launch_args",
    "find_browser_executable",
    "launch_browser",
    "read_devtools_port",
    "shutdown_all",
]
