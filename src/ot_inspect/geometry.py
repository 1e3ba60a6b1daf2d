"""Box model derivation and coordinate transforms.

Two coordinate spaces are in play:
- viewport: CSS pixels as reported by the page
- screenshot: pixels of the captured image

Viewport rects only become screenshot rects through viewport_to_screenshot,
which always subtracts the clip origin first and scales second.
"""

from __future__ import annotations

import math

from ot_inspect.models import (
    BoxModel,
    ElementMetrics,
    Rect,
    ScalingFactors,
    Spacing,
    ViewportInfo,
)


def expand_rect(rect: Rect, spacing: Spacing) -> Rect:
    """Grow a rect outward by per-side amounts."""
    return Rect(
        x=rect.x - spacing.left,
        y=rect.y - spacing.top,
        width=rect.width + spacing.left + spacing.right,
        height=rect.height + spacing.top + spacing.bottom,
    )


def contract_rect(rect: Rect, spacing: Spacing) -> Rect:
    """Shrink a rect inward by per-side amounts."""
    return Rect(
        x=rect.x + spacing.left,
        y=rect.y + spacing.top,
        width=rect.width - spacing.left - spacing.right,
        height=rect.height - spacing.top - spacing.bottom,
    )


def compute_box_model(metrics: ElementMetrics) -> BoxModel:
    """Derive all four boxes from one measurement.

    The border box is the browser-reported bounding rect. Margin expands it,
    border widths contract it to the padding box, padding contracts that to
    the content box.
    """
    border = metrics.viewport
    margin = expand_rect(border, metrics.margin)
    padding = contract_rect(border, metrics.border)
    content = contract_rect(padding, metrics.padding)
    return BoxModel(content=content, padding=padding, border=border, margin=margin)


def scale_rect(rect: Rect, scaling: ScalingFactors) -> Rect:
    return Rect(
        x=rect.x * scaling.scale_x,
        y=rect.y * scaling.scale_y,
        width=rect.width * scaling.scale_x,
        height=rect.height * scaling.scale_y,
    )


def adjust_rect_for_clipping(rect: Rect, clip: Rect | None) -> Rect:
    """Translate a viewport rect into the clip region's origin."""
    if clip is None:
        return rect
    return Rect(rect.x - clip.x, rect.y - clip.y, rect.width, rect.height)


def viewport_to_screenshot(
    rect: Rect, scaling: ScalingFactors, clip: Rect | None = None
) -> Rect:
    """Map a viewport rect to screenshot pixels.

    Args:
        rect: Rect in viewport space
        scaling: Screenshot pixels per viewport unit
        clip: Viewport-space clip region the screenshot was restricted to

    Returns:
        Rect in screenshot space
    """
    return scale_rect(adjust_rect_for_clipping(rect, clip), scaling)


def transform_box_model(
    box_model: BoxModel, scaling: ScalingFactors, clip: Rect | None = None
) -> BoxModel:
    return BoxModel(
        content=viewport_to_screenshot(box_model.content, scaling, clip),
        padding=viewport_to_screenshot(box_model.padding, scaling, clip),
        border=viewport_to_screenshot(box_model.border, scaling, clip),
        margin=viewport_to_screenshot(box_model.margin, scaling, clip),
    )


def calculate_scaling_factors(
    viewport: ViewportInfo,
    screenshot_width: float,
    screenshot_height: float,
    clip: Rect | None = None,
) -> ScalingFactors:
    """Screenshot pixels per viewport unit for one capture.

    The effective viewport is the clip region when one was used, otherwise
    the full viewport.
    """
    width = clip.width if clip is not None else viewport.width
    height = clip.height if clip is not None else viewport.height
    if width <= 0 or height <= 0:
        return ScalingFactors()
    return ScalingFactors(
        scale_x=screenshot_width / width,
        scale_y=screenshot_height / height,
    )


def union_rects(rects: list[Rect]) -> Rect | None:
    """Smallest rect containing all given rects, or None for an empty list."""
    if not rects:
        return None
    left = min(r.x for r in rects)
    top = min(r.y for r in rects)
    right = max(r.right for r in rects)
    bottom = max(r.bottom for r in rects)
    return Rect(left, top, right - left, bottom - top)


def clamp_rect_to_bounds(rect: Rect, width: float, height: float) -> Rect:
    """Clip a rect to [0, width] x [0, height]; may yield zero size."""
    left = min(max(rect.x, 0), width)
    top = min(max(rect.y, 0), height)
    right = max(min(rect.right, width), left)
    bottom = max(min(rect.bottom, height), top)
    return Rect(left, top, right - left, bottom - top)


def distance_between(ax: float, ay: float, bx: float, by: float) -> float:
    return math.hypot(bx - ax, by - ay)
