"""Inspection orchestrator.

One inspection walks CONNECTING, MARKING, MEASURING, ADJUSTING,
REMEASURING, CAPTURING, RENDERING and CLEANING_UP, ending in DONE or
FAILED. Cleanup (reset zoom, remove tags, close the session) runs on every
exit path. Cleanup failures are logged and never mask the original error.
"""

from __future__ import annotations

import math
import time
from contextlib import ExitStack
from dataclasses import dataclass, field
from typing import Any, Callable

from loguru import logger

from ot_inspect import page
from ot_inspect.browser.manager import BrowserManager
from ot_inspect.config import InspectConfig, ViewportConfig
from ot_inspect.errors import ElementNotFound, MeasurementUnavailable
from ot_inspect.geometry import calculate_scaling_factors, compute_box_model, union_rects
from ot_inspect.logging import LogSpan
from ot_inspect.models import (
    BoxModel,
    ElementInspection,
    ElementMetrics,
    ElementPosition,
    InspectionResult,
    InspectionStage,
    InspectionStats,
    InspectRequest,
    Rect,
    ViewportAdjustments,
    ViewportInfo,
)
from ot_inspect.overlay import Annotator, decode_png, sample_background_color
from ot_inspect.protocol.session import ProtocolSession
from ot_inspect.relationships import compute_relationships
from ot_inspect.styles import (
    convert_cascade_rules,
    convert_computed_styles,
    filter_cascade_rules,
    filter_computed_styles,
    format_inline_style,
)


# =============================================================================
# Viewport adjustment
# =============================================================================


def clamp_zoom(value: float, config: ViewportConfig | None = None) -> float:
    config = config or ViewportConfig()
    return max(config.min_zoom, min(config.max_zoom, value))


def calculate_zoom(
    positions: list[ElementPosition],
    viewport: ViewportInfo,
    config: ViewportConfig | None = None,
) -> float:
    """Zoom factor that brings the group's viewport coverage into range.

    Small groups zoom in toward zoom_in_ratio coverage, groups that nearly
    fill the viewport zoom out toward zoom_out_ratio. Anything in between
    stays at 1.0. The result is rounded to two decimals.
    """
    config = config or ViewportConfig()
    group = union_rects([position.to_rect() for position in positions])
    if group is None or viewport.area <= 0:
        return 1.0

    coverage = (group.width * group.height) / viewport.area
    if coverage <= 0:
        return config.max_zoom

    zoom = 1.0
    if coverage < config.zoom_in_threshold:
        zoom = min(config.max_zoom, math.sqrt(config.zoom_in_ratio / coverage))
    elif coverage > config.zoom_out_threshold:
        zoom = max(config.min_zoom, math.sqrt(config.zoom_out_ratio / coverage))
    return round(zoom, 2)


def resolve_zoom(
    request: InspectRequest,
    positions: list[ElementPosition],
    viewport: ViewportInfo,
    config: ViewportConfig | None = None,
) -> float:
    """A manual zoom_factor wins over auto_zoom; both are clamped."""
    if request.zoom_factor is not None:
        return clamp_zoom(request.zoom_factor, config)
    if request.auto_zoom:
        return calculate_zoom(positions, viewport, config)
    return 1.0


def capture_clip(rects: list[Rect], viewport: ViewportInfo, padding: float = 100) -> Rect | None:
    """Clip region around rects plus padding, or None if it leaves the viewport."""
    group = union_rects(rects)
    if group is None:
        return None

    x = max(0, math.floor(group.x - padding))
    y = max(0, math.floor(group.y - padding))
    width = max(1, min(viewport.width - x, math.ceil(group.width + padding * 2)))
    height = max(1, min(viewport.height - y, math.ceil(group.height + padding * 2)))

    if x + width > viewport.width or y + height > viewport.height:
        return None
    return Rect(x, y, width, height)


# =============================================================================
# Inspector
# =============================================================================


@dataclass
class _Tracked:
    """One marked element as it moves through the run."""

    index: int
    label: str
    unique_id: str
    node_id: int | None = None
    metrics: ElementMetrics | None = None
    box_model: BoxModel | None = None


@dataclass
class _Run:
    request: InspectRequest
    token: str
    stage: InspectionStage = InspectionStage.IDLE
    elements: list[_Tracked] = field(default_factory=list)
    unavailable: list[dict[str, Any]] = field(default_factory=list)


class Inspector:
    """Runs inspections on tabs of a managed browser."""

    def __init__(self, manager: BrowserManager, config: InspectConfig | None = None) -> None:
        self.manager = manager
        self.config = config or manager.config
        self.annotator = Annotator(self.config.overlay)
        self.last_stage = InspectionStage.IDLE

    def _transition(self, run: _Run, stage: InspectionStage) -> None:
        logger.debug(f"inspect {run.token}: {run.stage.value} -> {stage.value}")
        run.stage = stage
        self.last_stage = stage

    def _cleanup_step(self, name: str, fn: Callable[..., Any], *args: Any) -> None:
        try:
            fn(*args)
        except Exception as e:
            logger.warning(f"Cleanup step '{name}' failed: {e}")

    def inspect(self, request: InspectRequest) -> InspectionResult:
        """Inspect the elements matching request.css_selector on request.url.

        Raises:
            InvalidSelector: If the page rejects the selector
            ElementNotFound: If the selector matches nothing
            MeasurementUnavailable: If no matched element could be measured
            ConnectionFailed, ProtocolTimeout, ProtocolError: On browser failures
        """
        run = _Run(request=request, token=page.new_run_token())
        with LogSpan(
            span="inspect.element",
            selector=request.css_selector,
            url=request.url,
            limit=request.limit,
        ) as span:
            stack = ExitStack()
            try:
                result = self._execute(run, stack)
            except BaseException:
                self._transition(run, InspectionStage.CLEANING_UP)
                stack.close()
                self._transition(run, InspectionStage.FAILED)
                span.add(stage="failed")
                raise
            self._transition(run, InspectionStage.CLEANING_UP)
            stack.close()
            self._transition(run, InspectionStage.DONE)
            span.add(
                elements=len(result.elements),
                unavailable=len(result.unavailable),
                zoom=result.viewport_adjustments.zoom_factor,
            )
            return result

    def _execute(self, run: _Run, stack: ExitStack) -> InspectionResult:
        request = run.request
        protocol = self.config.protocol
        viewport_config = self.config.viewport
        limit = min(request.limit, self.config.limits.max_elements)

        self._transition(run, InspectionStage.CONNECTING)
        session = self.manager.ensure_session().connect(request.url)
        stack.callback(self._cleanup_step, "close session", session.close)
        for domain in ("DOM", "CSS", "Page", "Runtime"):
            session.call(f"{domain}.enable")
        root = page.get_document(session, protocol.document_attempts)

        self._transition(run, InspectionStage.MARKING)
        stack.callback(self._cleanup_step, "remove marks", page.remove_marks, session, run.token)
        _total, marked = page.mark_elements(session, request.css_selector, limit, run.token)
        run.elements = [
            _Tracked(
                index=item["index"],
                label=f"{request.css_selector}[{item['index']}]",
                unique_id=item["uniqueId"],
            )
            for item in marked
        ]
        for element in run.elements:
            element.node_id = page.resolve_node_id(session, root["nodeId"], element.unique_id)
        if not any(element.node_id for element in run.elements):
            raise ElementNotFound(request.css_selector, match_count=0)
        if request.css_edits:
            self._apply_edits(session, run, request.css_edits)

        self._transition(run, InspectionStage.MEASURING)
        original_viewport = page.get_viewport_info(session, viewport_config)
        self._measure(session, run)
        original_positions = [
            ElementPosition.from_rect(element.metrics.viewport)
            for element in run.elements
            if element.metrics is not None
        ]

        self._transition(run, InspectionStage.ADJUSTING)
        measured = [element for element in run.elements if element.metrics is not None]
        if request.auto_center:
            page.scroll_to_elements(session, [element.unique_id for element in measured])
            time.sleep(viewport_config.scroll_settle)
        zoom = resolve_zoom(request, original_positions, original_viewport, viewport_config)
        if zoom != 1.0:
            session.call("Emulation.setPageScaleFactor", {"pageScaleFactor": zoom})
            stack.callback(self._cleanup_step, "reset zoom", self._reset_zoom, session)
            time.sleep(viewport_config.zoom_settle)

        self._transition(run, InspectionStage.REMEASURING)
        self._measure(session, run)
        inspections, stats = self._collect_styles(session, run)

        self._transition(run, InspectionStage.CAPTURING)
        box_models = [inspection.box_model for inspection in inspections]
        clip = None
        if zoom > 1.0:
            clip = capture_clip(
                [box.margin for box in box_models], original_viewport, viewport_config.clip_padding
            )
        screenshot = page.capture_screenshot(session, clip)
        if request.sample_background:
            self._sample_backgrounds(screenshot, inspections, original_viewport, clip)

        self._transition(run, InspectionStage.RENDERING)
        annotated = self.annotator.annotate(screenshot, box_models, original_viewport, clip)
        relationships = compute_relationships(
            [(inspection.selector, inspection.box_model) for inspection in inspections],
            self.config.overlay.alignment_tolerance,
        )

        return InspectionResult(
            elements=inspections,
            relationships=relationships,
            screenshot=page.to_data_uri(annotated),
            viewport_adjustments=ViewportAdjustments(
                original_positions=original_positions,
                centered=request.auto_center,
                zoom_factor=zoom,
                original_viewport=original_viewport,
            ),
            unavailable=run.unavailable,
            stats=stats,
        )

    def _apply_edits(self, session: ProtocolSession, run: _Run, edits: dict[str, str]) -> None:
        style = format_inline_style(edits)
        for element in run.elements:
            if element.node_id is None:
                continue
            session.call(
                "DOM.setAttributeValue",
                {"nodeId": element.node_id, "name": "style", "value": style},
            )

    def _measure(self, session: ProtocolSession, run: _Run) -> None:
        """Measure every tracked element, dropping those that are gone.

        Raises:
            MeasurementUnavailable: If no element is left to measure
        """
        kept: list[_Tracked] = []
        for element in run.elements:
            if element.node_id is None:
                metrics = None
                reason = "element is detached from the document"
            else:
                metrics = page.get_element_metrics(session, element.unique_id)
                reason = "element may not be visible"
            if metrics is None:
                error = MeasurementUnavailable(element.label, reason)
                logger.warning(str(error))
                run.unavailable.append(error.to_dict())
                continue
            element.metrics = metrics
            element.box_model = compute_box_model(metrics)
            kept.append(element)

        run.elements = kept
        if not kept:
            raise MeasurementUnavailable(
                run.request.css_selector, "no matched element could be measured"
            )

    def _collect_styles(
        self, session: ProtocolSession, run: _Run
    ) -> tuple[list[ElementInspection], InspectionStats]:
        max_length = self.config.limits.max_property_length
        stats = InspectionStats()
        inspections: list[ElementInspection] = []
        for element in run.elements:
            if element.box_model is None or element.node_id is None:
                continue
            computed = session.call("CSS.getComputedStyleForNode", {"nodeId": element.node_id})
            matched = session.call("CSS.getMatchedStylesForNode", {"nodeId": element.node_id})

            styles = convert_computed_styles(computed.get("computedStyle", []))
            rules = convert_cascade_rules(matched)
            filtered_styles = filter_computed_styles(styles, max_length)
            filtered_rules = filter_cascade_rules(rules, max_length)

            stats.total_properties += len(styles)
            stats.filtered_properties += len(filtered_styles)
            stats.total_rules += len(rules)
            stats.filtered_rules += len(filtered_rules)

            inspections.append(
                ElementInspection(
                    selector=element.label,
                    box_model=element.box_model,
                    computed_styles=filtered_styles,
                    cascade_rules=filtered_rules,
                    applied_edits=run.request.css_edits,
                )
            )
        return inspections, stats

    def _sample_backgrounds(
        self,
        screenshot: bytes,
        inspections: list[ElementInspection],
        viewport: ViewportInfo,
        clip: Rect | None,
    ) -> None:
        try:
            image = decode_png(screenshot)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not decode screenshot for color sampling: {e}")
            for inspection in inspections:
                inspection.sample_failure = "screenshot could not be decoded"
            return
        scaling = calculate_scaling_factors(viewport, image.width, image.height, clip)
        for inspection in inspections:
            color, reason = sample_background_color(image, inspection.box_model, scaling, clip)
            inspection.sampled_background = color
            inspection.sample_failure = reason

    def _reset_zoom(self, session: ProtocolSession) -> None:
        session.call("Emulation.setPageScaleFactor", {"pageScaleFactor": 1})

