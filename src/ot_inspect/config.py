"""Configuration for OneTool Inspect.

Loads ot-inspect.yaml with browser, protocol, viewport and overlay settings.

Example ot-inspect.yaml:

    browser:
      headless: true
      attach_port: 9222
    protocol:
      call_timeout: 30
    viewport:
      max_zoom: 2.5
    overlay:
      font_path: /usr/share/fonts/truetype/dejavu/DejaVuSansMono-Bold.ttf
"""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, model_validator

from ot_inspect.paths import get_global_dir, get_project_dir

CONFIG_FILE_NAME = "ot-inspect.yaml"


class BrowserConfig(BaseModel):
    """Browser process settings."""

    executable: str | None = Field(
        default=None,
        description="Browser executable path (default: CHROME_PATH or a PATH lookup)",
    )
    headless: bool = Field(
        default=False, description="Run headless (also enabled by the HEADLESS env var)"
    )
    attach_port: int | None = Field(
        default=None,
        ge=1,
        le=65535,
        description="Attach to a browser already listening on this port instead of launching",
    )
    host: str = Field(default="127.0.0.1", description="DevTools HTTP host")
    window_width: int = Field(default=1280, ge=100)
    window_height: int = Field(default=1024, ge=100)
    extra_args: list[str] = Field(
        default_factory=list, description="Additional browser launch arguments"
    )
    port_poll_interval: float = Field(
        default=0.5, gt=0, description="Seconds between DevToolsActivePort checks"
    )
    port_poll_attempts: int = Field(
        default=20, ge=1, description="DevToolsActivePort checks before giving up"
    )
    terminate_timeout: float = Field(
        default=5.0, gt=0, description="Seconds to wait after terminate() before kill()"
    )
    probe_attempts: int = Field(
        default=5, ge=1, description="Liveness probe attempts for a reused browser"
    )
    probe_delay: float = Field(default=1.0, ge=0, description="Delay between probe attempts")

    @property
    def effective_headless(self) -> bool:
        return self.headless or bool(os.getenv("HEADLESS"))


class ProtocolConfig(BaseModel):
    """Protocol session timeouts and retry policy."""

    call_timeout: float = Field(default=30.0, gt=0, description="Seconds per CDP call")
    connect_timeout: float = Field(default=10.0, gt=0, description="WebSocket open timeout")
    connect_attempts: int = Field(default=3, ge=1, description="WebSocket connect attempts")
    connect_retry_delay: float = Field(default=0.5, ge=0, description="Fixed retry backoff")
    http_timeout: float = Field(default=5.0, gt=0, description="DevTools HTTP timeout")
    navigation_timeout: float = Field(
        default=8.0, gt=0, description="Fallback deadline for load events"
    )
    document_attempts: int = Field(default=3, ge=1, description="DOM.getDocument attempts")


class ViewportConfig(BaseModel):
    """Auto-center and auto-zoom tuning."""

    min_zoom: float = Field(default=0.5, gt=0)
    max_zoom: float = Field(default=3.0, gt=0)
    zoom_in_threshold: float = Field(
        default=0.2, gt=0, description="Zoom in when group coverage is below this"
    )
    zoom_out_threshold: float = Field(
        default=0.9, gt=0, description="Zoom out when group coverage is above this"
    )
    zoom_in_ratio: float = Field(default=0.6, gt=0, description="Target coverage when zooming in")
    zoom_out_ratio: float = Field(default=0.7, gt=0, description="Target coverage when zooming out")
    default_width: int = Field(default=1280, ge=1)
    default_height: int = Field(default=1024, ge=1)
    clip_padding: int = Field(
        default=100, ge=0, description="Padding around the element group when clipping"
    )
    scroll_settle: float = Field(default=0.1, ge=0)
    zoom_settle: float = Field(default=0.2, ge=0)

    @model_validator(mode="after")
    def _check_zoom_range(self) -> ViewportConfig:
        if self.min_zoom > self.max_zoom:
            raise ValueError("viewport.min_zoom must not exceed viewport.max_zoom")
        return self


class OverlayConfig(BaseModel):
    """Screenshot annotation settings."""

    fill_alpha: float = Field(default=0.3, ge=0, le=1, description="Content box fill opacity")
    alignment_tolerance: float = Field(
        default=1.0, ge=0, description="Pixel tolerance for alignment flags"
    )
    font_path: str | None = Field(
        default=None, description="TrueType font for labels (default: first system match)"
    )
    font_size: int = Field(default=12, ge=6)
    rulers: bool = Field(default=True, description="Draw edge rulers")
    crosshair: bool = Field(default=True, description="Draw center crosshair")


class LimitsConfig(BaseModel):
    """Element count and output size limits."""

    default_elements: int = Field(default=10, ge=1, le=20)
    max_elements: int = Field(default=20, ge=1, le=20)
    max_property_length: int = Field(default=100, ge=10)
    example_selectors: int = Field(
        default=3, ge=0, description="Example selectors listed in not-found errors"
    )


class InspectConfig(BaseModel):
    """Configuration for OneTool Inspect."""

    log_level: str = Field(default="INFO", description="loguru level for ot-inspect")
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    protocol: ProtocolConfig = Field(default_factory=ProtocolConfig)
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    overlay: OverlayConfig = Field(default_factory=OverlayConfig)
    limits: LimitsConfig = Field(default_factory=LimitsConfig)


def _resolve_config_path() -> Path | None:
    """Find the config file.

    Resolution order:
    1. OT_INSPECT_CONFIG env var
    2. cwd/.onetool/config/ot-inspect.yaml
    3. ~/.onetool/ot-inspect.yaml
    """
    env_config = os.getenv("OT_INSPECT_CONFIG")
    if env_config:
        return Path(env_config)

    project_dir = get_project_dir()
    if project_dir is not None:
        project_config = project_dir / "config" / CONFIG_FILE_NAME
        if project_config.exists():
            return project_config

    global_config = get_global_dir() / CONFIG_FILE_NAME
    if global_config.exists():
        return global_config

    return None


def load_config(config_path: Path | str | None = None) -> InspectConfig:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to config file (overrides resolution)

    Returns:
        Validated InspectConfig

    Raises:
        ValueError: If the file is not valid YAML or fails validation
    """
    path = Path(config_path) if config_path is not None else _resolve_config_path()

    if path is None or not path.exists():
        return InspectConfig()

    try:
        with path.open() as f:
            raw_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ValueError(f"Error reading {path}: {e}") from e

    if raw_data is None:
        raw_data = {}

    try:
        return InspectConfig.model_validate(raw_data)
    except Exception as e:
        raise ValueError(f"Invalid configuration in {path}: {e}") from e


_config: InspectConfig | None = None


def get_config(
    config_path: Path | str | None = None, reload: bool = False
) -> InspectConfig:
    """Get or load the cached configuration.

    Args:
        config_path: Path to config file (only used on first load)
        reload: Force reload configuration
    """
    global _config

    if _config is None or reload:
        _config = load_config(config_path)

    return _config
