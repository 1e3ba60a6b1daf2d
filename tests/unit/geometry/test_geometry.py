"""Unit tests for box model derivation and coordinate transforms."""

from __future__ import annotations

import pytest

from ot_inspect.geometry import (
    adjust_rect_for_clipping,
    calculate_scaling_factors,
    clamp_rect_to_bounds,
    compute_box_model,
    transform_box_model,
    union_rects,
    viewport_to_screenshot,
)
from ot_inspect.models import ElementMetrics, Rect, ScalingFactors, Spacing, ViewportInfo


def _metrics(
    border_box: Rect,
    margin: float = 0,
    padding: float = 0,
    border: float = 0,
) -> ElementMetrics:
    return ElementMetrics(
        viewport=border_box,
        margin=Spacing(margin, margin, margin, margin),
        padding=Spacing(padding, padding, padding, padding),
        border=Spacing(border, border, border, border),
    )


# -----------------------------------------------------------------------------
# Box model
# -----------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.geometry
class TestComputeBoxModel:
    def test_content_box_element(self):
        """width:200px;height:100px;padding:15px;border:5px reports a 240x140 border box."""
        box = compute_box_model(_metrics(Rect(10, 20, 240, 140), margin=8, padding=15, border=5))

        assert (box.content.width, box.content.height) == (200, 100)
        assert (box.padding.width, box.padding.height) == (230, 130)
        assert (box.border.width, box.border.height) == (240, 140)
        assert (box.margin.width, box.margin.height) == (256, 156)

    def test_boxes_nest(self):
        box = compute_box_model(_metrics(Rect(10, 20, 240, 140), margin=8, padding=15, border=5))

        assert box.margin.x <= box.border.x <= box.padding.x <= box.content.x
        assert box.margin.y <= box.border.y <= box.padding.y <= box.content.y
        assert box.content.right <= box.padding.right <= box.border.right <= box.margin.right
        assert box.content.bottom <= box.padding.bottom <= box.border.bottom <= box.margin.bottom

    def test_origins(self):
        box = compute_box_model(_metrics(Rect(10, 20, 240, 140), margin=8, padding=15, border=5))

        assert (box.border.x, box.border.y) == (10, 20)
        assert (box.margin.x, box.margin.y) == (2, 12)
        assert (box.padding.x, box.padding.y) == (15, 25)
        assert (box.content.x, box.content.y) == (30, 40)

    def test_asymmetric_spacing(self):
        metrics = ElementMetrics(
            viewport=Rect(0, 0, 100, 50),
            margin=Spacing(top=1, right=2, bottom=3, left=4),
            padding=Spacing(),
            border=Spacing(left=10),
        )
        box = compute_box_model(metrics)

        assert box.margin == Rect(-4, -1, 106, 54)
        assert box.padding == Rect(10, 0, 90, 50)

    def test_from_page_dict(self):
        metrics = ElementMetrics.from_dict(
            {
                "viewport": {"x": 5, "y": 6, "width": 50, "height": 40},
                "margin": {"top": 1, "right": 1, "bottom": 1, "left": 1},
                "padding": {"top": "2", "right": 2, "bottom": 2, "left": 2},
                "border": {},
                "boxSizing": "border-box",
                "scroll": {"x": 0, "y": 300},
                "viewportSize": {"width": 1280, "height": 1024},
            }
        )

        assert metrics.box_sizing == "border-box"
        assert metrics.scroll_y == 300
        assert compute_box_model(metrics).content == Rect(7, 8, 46, 36)


# -----------------------------------------------------------------------------
# Coordinate transforms
# -----------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.geometry
class TestTransforms:
    def test_identity_when_screenshot_matches_viewport(self):
        viewport = ViewportInfo(width=1280, height=1024)
        scaling = calculate_scaling_factors(viewport, 1280, 1024)
        rect = Rect(12.5, 40, 100, 30)

        assert scaling == ScalingFactors(1.0, 1.0)
        assert viewport_to_screenshot(rect, scaling) == rect

    def test_device_pixel_ratio_scaling(self):
        viewport = ViewportInfo(width=1280, height=1024)
        scaling = calculate_scaling_factors(viewport, 2560, 2048)

        assert viewport_to_screenshot(Rect(10, 20, 30, 40), scaling) == Rect(20, 40, 60, 80)

    def test_clip_is_subtracted_before_scaling(self):
        clip = Rect(100, 200, 400, 300)
        viewport = ViewportInfo(width=1280, height=1024)
        scaling = calculate_scaling_factors(viewport, 800, 600, clip)

        result = viewport_to_screenshot(Rect(150, 250, 10, 10), scaling, clip)

        assert scaling == ScalingFactors(2.0, 2.0)
        # (150-100)*2, not 150*2-100
        assert result == Rect(100, 100, 20, 20)

    def test_adjust_without_clip_is_noop(self):
        rect = Rect(1, 2, 3, 4)

        assert adjust_rect_for_clipping(rect, None) is rect

    def test_zero_size_region_falls_back_to_unit_scale(self):
        scaling = calculate_scaling_factors(ViewportInfo(width=0, height=0), 100, 100)

        assert scaling == ScalingFactors()

    def test_transform_box_model_moves_all_boxes(self):
        box = compute_box_model(_metrics(Rect(110, 110, 20, 20), margin=5, border=2))
        clip = Rect(100, 100, 50, 50)

        moved = transform_box_model(box, ScalingFactors(2, 2), clip)

        assert moved.border == Rect(20, 20, 40, 40)
        assert moved.margin == Rect(10, 10, 60, 60)
        assert moved.padding == Rect(24, 24, 32, 32)


# -----------------------------------------------------------------------------
# Rect helpers
# -----------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.geometry
class TestRectHelpers:
    def test_union(self):
        assert union_rects([]) is None
        assert union_rects([Rect(0, 0, 10, 10), Rect(20, 5, 10, 20)]) == Rect(0, 0, 30, 25)

    def test_clamp_to_bounds(self):
        assert clamp_rect_to_bounds(Rect(-10, -10, 50, 50), 30, 30) == Rect(0, 0, 30, 30)
        clamped = clamp_rect_to_bounds(Rect(40, 40, 10, 10), 30, 30)
        assert clamped.width == 0 and clamped.height == 0
