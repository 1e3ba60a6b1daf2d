"""Background color sampling from a captured screenshot.

Samples the four corners of the padding box, where background-color is
painted, inset far enough to miss borders and most centered text.
"""

from __future__ import annotations

import math

from PIL import Image

from ot_inspect.geometry import viewport_to_screenshot
from ot_inspect.models import BoxModel, ColorSample, Rect, ScalingFactors
from ot_inspect.overlay.constants import (
    SAMPLE_INSET_RATIO,
    SAMPLE_MAX_INSET,
    SAMPLE_MIN_ALPHA,
    SAMPLE_MIN_COUNT,
    SAMPLE_MIN_ELEMENT_SIZE,
    SAMPLE_MIN_INSET,
)


def _inset(size: float) -> float:
    return min(SAMPLE_MAX_INSET, max(SAMPLE_MIN_INSET, size * SAMPLE_INSET_RATIO))


def sample_background_color(
    image: Image.Image,
    box_model: BoxModel,
    scaling: ScalingFactors,
    clip: Rect | None = None,
) -> tuple[ColorSample | None, str | None]:
    """Average the padding-box corner colors of one element.

    Args:
        image: The unannotated screenshot
        box_model: Element box model in viewport space
        scaling: Scaling factors of this capture
        clip: Clip region of this capture

    Returns:
        (color, None) on success, (None, reason) when sampling is not reliable
    """
    padding = box_model.padding
    if padding.width < SAMPLE_MIN_ELEMENT_SIZE or padding.height < SAMPLE_MIN_ELEMENT_SIZE:
        return None, (
            f"element too small ({padding.width:g}×{padding.height:g}px, "
            f"minimum {SAMPLE_MIN_ELEMENT_SIZE}px)"
        )
    if padding.x < 0 or padding.y < 0:
        return None, f"invalid coordinates ({padding.x:g},{padding.y:g})"

    inset_x = _inset(padding.width)
    inset_y = _inset(padding.height)
    corners = (
        (padding.x + inset_x, padding.y + inset_y),
        (padding.right - inset_x, padding.y + inset_y),
        (padding.x + inset_x, padding.bottom - inset_y),
        (padding.right - inset_x, padding.bottom - inset_y),
    )

    rgba = image if image.mode == "RGBA" else image.convert("RGBA")
    width, height = rgba.size
    samples: list[tuple[int, int, int, float]] = []
    for x, y in corners:
        point = viewport_to_screenshot(Rect(x, y, 1, 1), scaling, clip)
        px = math.floor(point.x)
        py = math.floor(point.y)
        if not (0 <= px < width and 0 <= py < height):
            continue
        r, g, b, a = rgba.getpixel((px, py))
        alpha = a / 255
        if alpha >= SAMPLE_MIN_ALPHA:
            samples.append((r, g, b, alpha))

    if len(samples) < SAMPLE_MIN_COUNT:
        if not samples:
            return None, "all corners transparent or out of bounds"
        return None, "insufficient valid samples"

    count = len(samples)
    return (
        ColorSample(
            r=round(sum(s[0] for s in samples) / count),
            g=round(sum(s[1] for s in samples) / count),
            b=round(sum(s[2] for s in samples) / count),
            a=sum(s[3] for s in samples) / count,
        ),
        None,
    )
