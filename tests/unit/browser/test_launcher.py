"""Unit tests for browser discovery, launch and teardown."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from ot_inspect.browser.launcher import (
    AUTOMATION_FLAGS,
    PORT_FILE_NAME,
    BrowserProcess,
    build_launch_args,
    find_browser_executable,
    launch_browser,
    read_devtools_port,
)
from ot_inspect.config import BrowserConfig
from ot_inspect.errors import BrowserLaunchError
from ot_inspect.paths import create_profile_dir

# -----------------------------------------------------------------------------
# Executable discovery
# -----------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.browser
class TestFindBrowserExecutable:
    def test_configured_path(self, tmp_path: Path):
        chrome = tmp_path / "chrome"
        chrome.write_text("")

        assert find_browser_executable(str(chrome)) == str(chrome)

    def test_configured_path_missing(self, tmp_path: Path):
        with pytest.raises(BrowserLaunchError, match="not found"):
            find_browser_executable(str(tmp_path / "missing"))

    @patch("ot_inspect.browser.launcher.shutil.which", return_value=None)
    def test_chrome_path_env(self, _which, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        chrome = tmp_path / "chrome"
        chrome.write_text("")
        monkeypatch.setenv("CHROME_PATH", str(chrome))

        assert find_browser_executable() == str(chrome)

    @patch("ot_inspect.browser.launcher.shutil.which")
    def test_path_lookup(self, mock_which, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("CHROME_PATH", raising=False)
        mock_which.side_effect = lambda name: "/usr/bin/chromium" if name == "chromium" else None

        assert find_browser_executable() == "/usr/bin/chromium"

    @patch("ot_inspect.browser.launcher.shutil.which", return_value=None)
    def test_nothing_found(self, _which, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("CHROME_PATH", raising=False)

        with patch("ot_inspect.browser.launcher.MACOS_CHROME", str(tmp_path / "none")):
            with pytest.raises(BrowserLaunchError, match="CHROME_PATH"):
                find_browser_executable()


# -----------------------------------------------------------------------------
# Launch
# -----------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.browser
class TestBuildLaunchArgs:
    def test_headless_and_extra_args(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("HEADLESS", raising=False)
        config = BrowserConfig(headless=True, extra_args=["--lang=en-US"], window_width=800)

        args = build_launch_args("/usr/bin/chromium", tmp_path, config)

        assert args[0] == "/usr/bin/chromium"
        assert f"--user-data-dir={tmp_path}" in args
        assert "--remote-debugging-port=0" in args
        assert "--window-size=800,1024" in args
        assert "--headless=new" in args
        assert args[-2:] == ["--lang=en-US", "about:blank"]
        assert set(AUTOMATION_FLAGS) <= set(args)

    def test_headed_by_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("HEADLESS", raising=False)

        args = build_launch_args("chrome", tmp_path, BrowserConfig())

        assert "--headless=new" not in args


@pytest.mark.unit
@pytest.mark.browser
class TestReadDevtoolsPort:
    def test_reads_first_line(self, tmp_path: Path):
        (tmp_path / PORT_FILE_NAME).write_text("45678\n/devtools/browser/abc\n")

        assert read_devtools_port(tmp_path, interval=0.001, attempts=1) == 45678

    def test_times_out(self, tmp_path: Path):
        with pytest.raises(BrowserLaunchError, match="did not report"):
            read_devtools_port(tmp_path, interval=0.001, attempts=3)

    def test_process_exit_is_reported(self, tmp_path: Path):
        process = MagicMock()
        process.poll.return_value = 1
        process.returncode = 1

        with pytest.raises(BrowserLaunchError, match="exited with code 1"):
            read_devtools_port(tmp_path, interval=0.001, attempts=3, process=process)


@pytest.mark.unit
@pytest.mark.browser
class TestLaunchBrowser:
    @patch("ot_inspect.browser.launcher.subprocess.Popen")
    @patch("ot_inspect.browser.launcher.create_profile_dir")
    @patch("ot_inspect.browser.launcher.find_browser_executable", return_value="/usr/bin/chromium")
    def test_launch(self, _find, mock_profile, mock_popen, tmp_path: Path):
        profile = create_profile_dir(tmp_path)
        (profile / PORT_FILE_NAME).write_text("40001\n")
        mock_profile.return_value = profile
        mock_popen.return_value.poll.return_value = None
        mock_popen.return_value.pid = 4242

        browser = launch_browser(BrowserConfig(port_poll_interval=0.001))

        assert browser.port == 40001
        assert browser.pid == 4242
        assert mock_popen.call_args.kwargs["start_new_session"] is True
        assert mock_popen.call_args.args[0][0] == "/usr/bin/chromium"
        for handle in browser.log_files:
            handle.close()

    @patch("ot_inspect.browser.launcher.subprocess.Popen", side_effect=OSError("exec format error"))
    @patch("ot_inspect.browser.launcher.create_profile_dir")
    @patch("ot_inspect.browser.launcher.find_browser_executable", return_value="/usr/bin/chromium")
    def test_spawn_failure_removes_profile(self, _find, mock_profile, _popen, tmp_path: Path):
        profile = create_profile_dir(tmp_path)
        mock_profile.return_value = profile

        with pytest.raises(BrowserLaunchError, match="Failed to start"):
            launch_browser(BrowserConfig())

        assert not profile.exists()

    @patch("ot_inspect.browser.launcher.subprocess.Popen")
    @patch("ot_inspect.browser.launcher.create_profile_dir")
    @patch("ot_inspect.browser.launcher.find_browser_executable", return_value="/usr/bin/chromium")
    def test_early_exit_terminates(self, _find, mock_profile, mock_popen, tmp_path: Path):
        profile = create_profile_dir(tmp_path)
        mock_profile.return_value = profile
        mock_popen.return_value.poll.return_value = 1
        mock_popen.return_value.returncode = 1

        with pytest.raises(BrowserLaunchError, match="exited"):
            launch_browser(BrowserConfig(port_poll_interval=0.001))

        assert not profile.exists()


# -----------------------------------------------------------------------------
# Teardown
# -----------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.browser
class TestBrowserProcessTerminate:
    def test_escalates_to_kill(self, tmp_path: Path):
        profile = create_profile_dir(tmp_path)
        process = MagicMock()
        process.poll.return_value = None
        process.wait.side_effect = [subprocess.TimeoutExpired("chrome", 1), 0]
        browser = BrowserProcess(process, profile, port=9222)

        browser.terminate(timeout=1)

        process.terminate.assert_called_once()
        process.kill.assert_called_once()
        assert not profile.exists()

    def test_idempotent(self, tmp_path: Path):
        profile = create_profile_dir(tmp_path)
        process = MagicMock()
        process.poll.return_value = None
        browser = BrowserProcess(process, profile, port=9222)

        browser.terminate()
        browser.terminate()

        process.terminate.assert_called_once()
        process.kill.assert_not_called()

    def test_already_exited_only_cleans_profile(self, tmp_path: Path):
        profile = create_profile_dir(tmp_path)
        process = MagicMock()
        process.poll.return_value = 0
        handle = MagicMock()
        browser = BrowserProcess(process, profile, port=9222, log_files=[handle])

        browser.terminate()

        process.terminate.assert_not_called()
        handle.close.assert_called_once()
        assert not profile.exists()
