"""Unit tests for ot-inspect configuration and path helpers."""

from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest
import yaml


@pytest.mark.unit
@pytest.mark.core
def test_config_defaults() -> None:
    """Config has usable defaults without a file."""
    from ot_inspect.config import InspectConfig

    config = InspectConfig()

    assert config.log_level == "INFO"
    assert config.browser.attach_port is None
    assert config.protocol.call_timeout == 30.0
    assert config.protocol.navigation_timeout == 8.0
    assert config.viewport.min_zoom == 0.5
    assert config.viewport.max_zoom == 3.0
    assert config.overlay.fill_alpha == 0.3
    assert config.limits.max_elements == 20


@pytest.mark.unit
@pytest.mark.core
def test_load_config_from_yaml(tmp_path: Path) -> None:
    """Nested sections load from YAML."""
    from ot_inspect.config import load_config

    config_path = tmp_path / "ot-inspect.yaml"
    config_path.write_text(
        yaml.dump(
            {
                "log_level": "DEBUG",
                "browser": {"attach_port": 9222, "headless": True},
                "viewport": {"max_zoom": 2.5},
            }
        )
    )

    config = load_config(config_path)

    assert config.log_level == "DEBUG"
    assert config.browser.attach_port == 9222
    assert config.browser.headless is True
    assert config.viewport.max_zoom == 2.5


@pytest.mark.unit
@pytest.mark.core
def test_load_config_missing_file_returns_defaults(tmp_path: Path) -> None:
    from ot_inspect.config import load_config

    config = load_config(tmp_path / "missing.yaml")

    assert config.browser.window_width == 1280


@pytest.mark.unit
@pytest.mark.core
def test_load_config_empty_file(tmp_path: Path) -> None:
    from ot_inspect.config import load_config

    config_path = tmp_path / "ot-inspect.yaml"
    config_path.write_text("")

    assert load_config(config_path).log_level == "INFO"


@pytest.mark.unit
@pytest.mark.core
def test_load_config_invalid_yaml(tmp_path: Path) -> None:
    from ot_inspect.config import load_config

    config_path = tmp_path / "ot-inspect.yaml"
    config_path.write_text("browser: [unclosed")

    with pytest.raises(ValueError, match="Invalid YAML"):
        load_config(config_path)


@pytest.mark.unit
@pytest.mark.core
def test_load_config_rejects_inverted_zoom_range(tmp_path: Path) -> None:
    from ot_inspect.config import load_config

    config_path = tmp_path / "ot-inspect.yaml"
    config_path.write_text(yaml.dump({"viewport": {"min_zoom": 2.0, "max_zoom": 1.0}}))

    with pytest.raises(ValueError, match="Invalid configuration"):
        load_config(config_path)


@pytest.mark.unit
@pytest.mark.core
def test_config_path_from_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """OT_INSPECT_CONFIG takes precedence over project and global files."""
    from ot_inspect.config import load_config

    config_path = tmp_path / "custom.yaml"
    config_path.write_text(yaml.dump({"log_level": "WARNING"}))
    monkeypatch.setenv("OT_INSPECT_CONFIG", str(config_path))

    assert load_config().log_level == "WARNING"


@pytest.mark.unit
@pytest.mark.core
def test_config_path_from_project_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    from ot_inspect.config import load_config

    config_dir = tmp_path / ".onetool" / "config"
    config_dir.mkdir(parents=True)
    (config_dir / "ot-inspect.yaml").write_text(yaml.dump({"log_level": "ERROR"}))
    monkeypatch.delenv("OT_INSPECT_CONFIG", raising=False)
    monkeypatch.setenv("OT_CWD", str(tmp_path))

    assert load_config().log_level == "ERROR"


@pytest.mark.unit
@pytest.mark.core
def test_headless_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    from ot_inspect.config import BrowserConfig

    monkeypatch.delenv("HEADLESS", raising=False)
    assert BrowserConfig().effective_headless is False

    monkeypatch.setenv("HEADLESS", "1")
    assert BrowserConfig().effective_headless is True


@pytest.mark.unit
@pytest.mark.core
def test_create_profile_dir(tmp_path: Path) -> None:
    """Profile dirs are private, unique and pre-seeded with log files."""
    from ot_inspect.paths import PROFILE_LOG_FILES, create_profile_dir

    first = create_profile_dir(tmp_path)
    second = create_profile_dir(tmp_path)

    assert first != second
    assert first.name.startswith("ot-inspect-")
    for name in PROFILE_LOG_FILES:
        assert (first / name).exists()
    if os.name == "posix":
        assert stat.S_IMODE(first.stat().st_mode) == 0o700


@pytest.mark.unit
@pytest.mark.core
def test_get_project_dir(tmp_path: Path) -> None:
    from ot_inspect.paths import get_project_dir

    assert get_project_dir(tmp_path) is None
    (tmp_path / ".onetool").mkdir()
    assert get_project_dir(tmp_path) == tmp_path / ".onetool"
