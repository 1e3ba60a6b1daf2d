"""Data model for inspections: geometry values, results and the request."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class InspectionStage(Enum):
    """Orchestrator state."""

    IDLE = "idle"
    CONNECTING = "connecting"
    MARKING = "marking"
    MEASURING = "measuring"
    ADJUSTING = "adjusting"
    REMEASURING = "remeasuring"
    CAPTURING = "capturing"
    RENDERING = "rendering"
    CLEANING_UP = "cleaning_up"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Rect:
        return cls(
            x=float(data.get("x", 0)),
            y=float(data.get("y", 0)),
            width=float(data.get("width", 0)),
            height=float(data.get("height", 0)),
        )


@dataclass(frozen=True)
class Spacing:
    """Per-side widths for margin, padding or border."""

    top: float = 0.0
    right: float = 0.0
    bottom: float = 0.0
    left: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Spacing:
        data = data or {}
        return cls(
            top=float(data.get("top") or 0),
            right=float(data.get("right") or 0),
            bottom=float(data.get("bottom") or 0),
            left=float(data.get("left") or 0),
        )


@dataclass(frozen=True)
class BoxModel:
    """The four nested boxes of one element, content innermost."""

    content: Rect
    padding: Rect
    border: Rect
    margin: Rect

    def to_dict(self) -> dict[str, dict[str, float]]:
        return {
            "content": self.content.to_dict(),
            "padding": self.padding.to_dict(),
            "border": self.border.to_dict(),
            "margin": self.margin.to_dict(),
        }


@dataclass(frozen=True)
class ScalingFactors:
    """Screenshot pixels per viewport unit, per axis."""

    scale_x: float = 1.0
    scale_y: float = 1.0


@dataclass(frozen=True)
class ElementMetrics:
    """Raw measurement of one element as reported by the page."""

    viewport: Rect  # border box, viewport space
    margin: Spacing
    padding: Spacing
    border: Spacing
    box_sizing: str = "content-box"
    page: Rect | None = None
    scroll_x: float = 0.0
    scroll_y: float = 0.0
    viewport_width: float = 0.0
    viewport_height: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ElementMetrics:
        """Build from the dict returned by the element metrics page script."""
        scroll = data.get("scroll") or {}
        size = data.get("viewportSize") or {}
        page = data.get("page")
        return cls(
            viewport=Rect.from_dict(data["viewport"]),
            margin=Spacing.from_dict(data.get("margin")),
            padding=Spacing.from_dict(data.get("padding")),
            border=Spacing.from_dict(data.get("border")),
            box_sizing=data.get("boxSizing") or "content-box",
            page=Rect.from_dict(page) if page else None,
            scroll_x=float(scroll.get("x") or 0),
            scroll_y=float(scroll.get("y") or 0),
            viewport_width=float(size.get("width") or 0),
            viewport_height=float(size.get("height") or 0),
        )


@dataclass(frozen=True)
class ElementPosition:
    """Center point and size of an element in viewport space."""

    center_x: float
    center_y: float
    width: float
    height: float

    @classmethod
    def from_rect(cls, rect: Rect) -> ElementPosition:
        return cls(rect.center_x, rect.center_y, rect.width, rect.height)

    def to_rect(self) -> Rect:
        return Rect(
            self.center_x - self.width / 2,
            self.center_y - self.height / 2,
            self.width,
            self.height,
        )


@dataclass
class ViewportInfo:
    """Visual viewport size and scroll offset."""

    width: float
    height: float
    device_scale_factor: float = 1.0
    mobile: bool = False
    scroll_x: float = 0.0
    scroll_y: float = 0.0

    @property
    def area(self) -> float:
        return self.width * self.height


@dataclass(frozen=True)
class Distance:
    """Edge-to-edge gaps and center distance, in whole pixels."""

    horizontal: int
    vertical: int
    center_to_center: int


@dataclass(frozen=True)
class Alignment:
    """Which edges and centers of two elements line up."""

    top: bool
    bottom: bool
    left: bool
    right: bool
    vertical_center: bool
    horizontal_center: bool

    def names(self) -> list[str]:
        """Short names of the aligned edges, for compact output."""
        labels = {
            "left": self.left,
            "right": self.right,
            "top": self.top,
            "bottom": self.bottom,
            "vcenter": self.vertical_center,
            "hcenter": self.horizontal_center,
        }
        return [name for name, aligned in labels.items() if aligned]


@dataclass(frozen=True)
class Relationship:
    """Spatial relationship between two inspected elements."""

    from_selector: str
    to_selector: str
    distance: Distance
    alignment: Alignment

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_selector,
            "to": self.to_selector,
            "distance": asdict(self.distance),
            "alignment": asdict(self.alignment),
        }


@dataclass(frozen=True)
class ColorSample:
    """An RGBA color sampled from the screenshot."""

    r: int
    g: int
    b: int
    a: float

    def to_css(self) -> str:
        return f"rgba({self.r},{self.g},{self.b},{self.a:.2f})"


@dataclass
class CascadeRule:
    """One matched CSS rule."""

    selector: str
    source: str  # user-agent, stylesheet:<id>, inline, inherited
    specificity: str  # inline,id,class,element
    properties: dict[str, str] = field(default_factory=dict)


@dataclass
class ElementInspection:
    """Everything measured for one element."""

    selector: str
    box_model: BoxModel
    computed_styles: dict[str, str] = field(default_factory=dict)
    cascade_rules: list[CascadeRule] = field(default_factory=list)
    applied_edits: dict[str, str] | None = None
    sampled_background: ColorSample | None = None
    sample_failure: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "selector": self.selector,
            "box_model": self.box_model.to_dict(),
            "computed_styles": self.computed_styles,
            "cascade_rules": [asdict(rule) for rule in self.cascade_rules],
        }
        if self.applied_edits:
            data["applied_edits"] = self.applied_edits
        if self.sampled_background is not None:
            data["sampled_background"] = self.sampled_background.to_css()
        elif self.sample_failure:
            data["sampled_background"] = f"unavailable ({self.sample_failure})"
        return data


@dataclass
class ViewportAdjustments:
    """How the viewport was changed before capture."""

    original_positions: list[ElementPosition]
    centered: bool
    zoom_factor: float
    original_viewport: ViewportInfo


@dataclass
class InspectionStats:
    """Property and rule counts before/after filtering."""

    total_properties: int = 0
    filtered_properties: int = 0
    total_rules: int = 0
    filtered_rules: int = 0


@dataclass
class InspectionResult:
    """Result of one inspection."""

    elements: list[ElementInspection]
    relationships: list[Relationship]
    screenshot: str  # PNG data URI
    viewport_adjustments: ViewportAdjustments
    unavailable: list[dict[str, Any]] = field(default_factory=list)
    stats: InspectionStats = field(default_factory=InspectionStats)

    def to_dict(self) -> dict[str, Any]:
        return {
            "elements": [element.to_dict() for element in self.elements],
            "relationships": [rel.to_dict() for rel in self.relationships],
            "screenshot": self.screenshot,
            "viewport_adjustments": asdict(self.viewport_adjustments),
            "unavailable": self.unavailable,
            "stats": asdict(self.stats),
        }


class InspectRequest(BaseModel):
    """A validated inspection request."""

    css_selector: str = Field(min_length=1, description="CSS selector for target elements")
    url: str = Field(min_length=1, description="Page URL including protocol")
    limit: int = Field(default=10, ge=1, le=20, description="Maximum elements to inspect")
    css_edits: dict[str, str] | None = Field(
        default=None, description="CSS properties applied inline before measuring"
    )
    auto_center: bool = Field(default=True, description="Center the elements in the viewport")
    auto_zoom: bool = Field(default=True, description="Zoom so the group fills the viewport")
    zoom_factor: float | None = Field(
        default=None, gt=0, description="Manual zoom, overrides auto_zoom (clamped)"
    )
    sample_background: bool = Field(
        default=False, description="Sample the rendered background color"
    )

    @field_validator("css_selector", "url")
    @classmethod
    def _strip(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value
