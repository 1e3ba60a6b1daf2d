"""Browser process launch and teardown.

Each launch gets its own profile directory so concurrent runs never share
state. The browser picks a free debugging port and reports it through the
DevToolsActivePort file in that directory.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO

from loguru import logger

from ot_inspect.config import BrowserConfig
from ot_inspect.errors import BrowserLaunchError
from ot_inspect.logging import LogSpan
from ot_inspect.paths import PROFILE_LOG_FILES, create_profile_dir

EXECUTABLE_CANDIDATES = (
    "google-chrome",
    "google-chrome-stable",
    "chromium",
    "chromium-browser",
    "chrome",
    "msedge",
)
MACOS_CHROME = "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome"

AUTOMATION_FLAGS = (
    "--no-first-run",
    "--no-default-browser-check",
    "--disable-default-apps",
    "--enable-automation",
    "--disable-features=ChromeWhatsNewUI",
    "--disable-extensions",
    "--disable-component-extensions-with-background-pages",
    "--disable-background-networking",
    "--disable-sync",
    "--disable-translate",
    "--disable-gpu",
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--remote-debugging-port=0",
    "--remote-allow-origins=*",
)

PORT_FILE_NAME = "DevToolsActivePort"


def find_browser_executable(configured: str | None = None) -> str:
    """Locate a Chromium-family browser.

    Order: configured path, CHROME_PATH, PATH lookup, macOS app bundle.

    Raises:
        BrowserLaunchError: If nothing usable is found
    """
    if configured:
        found = shutil.which(configured) or (configured if Path(configured).exists() else None)
        if found is None:
            raise BrowserLaunchError(f"Configured browser executable not found: {configured}")
        return found

    env_path = os.getenv("CHROME_PATH")
    if env_path:
        if Path(env_path).exists():
            return env_path
        logger.warning(f"CHROME_PATH={env_path} does not exist, searching PATH")

    for name in EXECUTABLE_CANDIDATES:
        found = shutil.which(name)
        if found:
            return found

    if Path(MACOS_CHROME).exists():
        return MACOS_CHROME

    raise BrowserLaunchError(
        "No Chrome/Chromium executable found. Install Chrome or set CHROME_PATH."
    )


def build_launch_args(executable: str, profile_dir: Path, config: BrowserConfig) -> list[str]:
    args = [
        executable,
        f"--user-data-dir={profile_dir}",
        *AUTOMATION_FLAGS,
        f"--window-size={config.window_width},{config.window_height}",
    ]
    if config.effective_headless:
        args.append("--headless=new")
    args.extend(config.extra_args)
    args.append("about:blank")
    return args


def read_devtools_port(
    profile_dir: Path,
    interval: float = 0.5,
    attempts: int = 20,
    process: subprocess.Popen[bytes] | None = None,
) -> int:
    """Poll the profile directory for the port the browser chose.

    Raises:
        BrowserLaunchError: If the process exits or the file never appears
    """
    port_file = profile_dir / PORT_FILE_NAME
    for _ in range(attempts):
        if process is not None and process.poll() is not None:
            raise BrowserLaunchError(
                f"Browser exited with code {process.returncode} before opening a debugging port"
                f" (see {profile_dir / PROFILE_LOG_FILES[1]})"
            )
        if port_file.exists():
            first_line = port_file.read_text().splitlines()[:1]
            if first_line and first_line[0].strip().isdigit():
                return int(first_line[0].strip())
        time.sleep(interval)

    raise BrowserLaunchError(
        f"Browser did not report a debugging port within {interval * attempts:g}s"
    )


@dataclass
class BrowserProcess:
    """A launched browser and the profile directory it owns."""

    process: subprocess.Popen[bytes]
    profile_dir: Path
    port: int
    log_files: list[IO[bytes]] = field(default_factory=list)
    _terminated: bool = field(default=False, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @property
    def pid(self) -> int:
        return self.process.pid

    def is_alive(self) -> bool:
        return self.process.poll() is None

    def terminate(self, timeout: float = 5.0) -> None:
        """Stop the process, escalating to kill, then remove the profile.

        Runs once; later calls return immediately.
        """
        with self._lock:
            if self._terminated:
                return
            self._terminated = True

        if self.is_alive():
            logger.info(f"Stopping browser (pid {self.pid})")
            self.process.terminate()
            try:
                self.process.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                logger.warning(f"Browser (pid {self.pid}) ignored terminate, killing")
                self.process.kill()
                try:
                    self.process.wait(timeout=timeout)
                except subprocess.TimeoutExpired:
                    logger.error(f"Browser (pid {self.pid}) did not exit after kill")

        for handle in self.log_files:
            handle.close()
        shutil.rmtree(self.profile_dir, ignore_errors=True)


def launch_browser(config: BrowserConfig) -> BrowserProcess:
    """Start a browser with a fresh profile and wait for its debugging port.

    Raises:
        BrowserLaunchError: If no executable is found or startup fails
    """
    executable = find_browser_executable(config.executable)
    profile_dir = create_profile_dir()
    args = build_launch_args(executable, profile_dir, config)

    with LogSpan(span="inspect.launch", executable=executable, headless=config.effective_headless) as span:
        stdout = (profile_dir / PROFILE_LOG_FILES[0]).open("ab")
        stderr = (profile_dir / PROFILE_LOG_FILES[1]).open("ab")
        try:
            process = subprocess.Popen(
                args,
                stdin=subprocess.DEVNULL,
                stdout=stdout,
                stderr=stderr,
                start_new_session=True,
            )
        except OSError as e:
            stdout.close()
            stderr.close()
            shutil.rmtree(profile_dir, ignore_errors=True)
            raise BrowserLaunchError(f"Failed to start {executable}: {e}") from e

        browser = BrowserProcess(process, profile_dir, port=0, log_files=[stdout, stderr])
        try:
            browser.port = read_devtools_port(
                profile_dir,
                config.port_poll_interval,
                config.port_poll_attempts,
                process,
            )
        except BrowserLaunchError:
            browser.terminate(config.terminate_timeout)
            raise

        span.add(pid=process.pid, port=browser.port)
        return browser
