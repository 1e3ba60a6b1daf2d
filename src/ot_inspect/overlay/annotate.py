"""Compose the full box model overlay onto a screenshot."""

from __future__ import annotations

import io

from loguru import logger
from PIL import Image

from ot_inspect.config import OverlayConfig
from ot_inspect.geometry import calculate_scaling_factors, transform_box_model
from ot_inspect.logging import LogSpan
from ot_inspect.models import BoxModel, Rect, ScalingFactors, ViewportInfo
from ot_inspect.overlay.constants import (
    BORDER_COLOR,
    BORDER_THICKNESS,
    CONTENT_COLOR,
    CONTENT_THICKNESS,
    MARGIN_COLOR,
    MARGIN_THICKNESS,
    PADDING_COLOR,
    PADDING_THICKNESS,
)
from ot_inspect.overlay.drawing import (
    draw_box_model_labels,
    draw_crosshair,
    draw_edge_rulers,
    draw_rect_filled,
    draw_rect_outline,
)
from ot_inspect.overlay.text import TextRenderer


def draw_box_model_highlight(
    image: Image.Image,
    box_model: BoxModel,
    scaling: ScalingFactors,
    renderer: TextRenderer,
    clip: Rect | None = None,
    fill_alpha: float = 0.3,
) -> None:
    """Outline, fill and label one element. box_model is in screenshot space."""
    draw_rect_outline(image, box_model.margin, MARGIN_COLOR, MARGIN_THICKNESS)
    draw_rect_outline(image, box_model.border, BORDER_COLOR, BORDER_THICKNESS)
    draw_rect_outline(image, box_model.padding, PADDING_COLOR, PADDING_THICKNESS)
    draw_rect_filled(image, box_model.content, CONTENT_COLOR, fill_alpha)
    draw_rect_outline(image, box_model.content, CONTENT_COLOR, CONTENT_THICKNESS)
    draw_box_model_labels(image, box_model, scaling, renderer, clip)


def decode_png(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image.load()
    return image


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


class Annotator:
    """Draws box model overlays for a set of elements on one capture."""

    def __init__(self, config: OverlayConfig | None = None) -> None:
        self.config = config or OverlayConfig()
        self.renderer = TextRenderer(self.config.font_path, self.config.font_size)

    def annotate(
        self,
        screenshot: bytes,
        box_models: list[BoxModel],
        viewport: ViewportInfo,
        clip: Rect | None = None,
    ) -> bytes:
        """Return the annotated PNG, or the original bytes if drawing fails.

        Args:
            screenshot: PNG bytes as captured
            box_models: Viewport-space box models, one per element
            viewport: Viewport at capture time
            clip: Clip region used for the capture
        """
        with LogSpan(span="inspect.render", elements=len(box_models)) as span:
            try:
                image = decode_png(screenshot).convert("RGB")
                scaling = calculate_scaling_factors(viewport, image.width, image.height, clip)
                span.add(
                    width=image.width,
                    height=image.height,
                    scaleX=round(scaling.scale_x, 3),
                    scaleY=round(scaling.scale_y, 3),
                    clipped=clip is not None,
                )

                for box_model in box_models:
                    adjusted = transform_box_model(box_model, scaling, clip)
                    draw_box_model_highlight(
                        image,
                        adjusted,
                        scaling,
                        self.renderer,
                        clip,
                        self.config.fill_alpha,
                    )
                if self.config.rulers:
                    draw_edge_rulers(image, scaling, self.renderer, clip)
                if self.config.crosshair:
                    for box_model in box_models:
                        adjusted = transform_box_model(box_model, scaling, clip)
                        draw_crosshair(image, adjusted.border, scaling, self.renderer, clip)

                return encode_png(image)
            except (OSError, ValueError) as e:
                logger.warning(f"Failed to draw overlay, returning raw screenshot: {e}")
                span.add(fallback=True)
                return screenshot
