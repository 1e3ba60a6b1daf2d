"""Drawing primitives for annotated screenshots.

All rects passed here are in screenshot space. Anything that reports a
coordinate as text converts back to viewport space first (divide by scale,
add the clip origin), so labels always show what the page itself sees.
"""

from __future__ import annotations

import math

from PIL import Image, ImageDraw

from ot_inspect.geometry import clamp_rect_to_bounds
from ot_inspect.models import BoxModel, Rect, ScalingFactors
from ot_inspect.overlay.constants import (
    BLACK,
    BORDER_COLOR,
    CONTENT_COLOR,
    CROSSHAIR_COLOR,
    CROSSHAIR_LABEL_CHAR_WIDTH,
    CROSSHAIR_LABEL_HEIGHT,
    DASH_LENGTH,
    GAP_LENGTH,
    GRAY_DARK,
    LABEL_CHAR_WIDTH,
    LABEL_EDGE_MARGIN,
    LABEL_HEIGHT,
    LABEL_MIN_WIDTH,
    LABEL_PADDING,
    MAJOR_TICK_LENGTH,
    MAJOR_TICK_SPACING,
    MARGIN_COLOR,
    MARKER_SIZE,
    MINOR_TICK_LENGTH,
    MINOR_TICK_SPACING,
    PADDING_COLOR,
    RGB,
    RULER_LABEL_CHAR_WIDTH,
    RULER_LABEL_HEIGHT,
    RULER_THICKNESS,
    WHITE,
)
from ot_inspect.overlay.text import TextRenderer


def _round(value: float) -> int:
    """Round half up, matching how coordinates are reported elsewhere."""
    return math.floor(value + 0.5)


def _fill(image: Image.Image, color: RGB) -> tuple[int, ...]:
    if image.mode == "RGBA":
        return (*color, 255)
    return color


def draw_rect_outline(image: Image.Image, rect: Rect, color: RGB, thickness: int = 1) -> None:
    """Draw a border along the inside of all four edges, clipped to the image.

    A rect that lies entirely outside the image draws nothing.
    """
    width, height = image.size
    if rect.x >= width or rect.y >= height or rect.right <= 0 or rect.bottom <= 0:
        return
    if rect.width <= 0 or rect.height <= 0:
        return

    x0 = math.floor(rect.x)
    y0 = math.floor(rect.y)
    x1 = max(x0, math.floor(rect.right) - 1)
    y1 = max(y0, math.floor(rect.bottom) - 1)
    t = max(1, int(thickness))
    fill = _fill(image, color)

    draw = ImageDraw.Draw(image)
    draw.rectangle((x0, y0, x1, min(y0 + t - 1, y1)), fill=fill)
    draw.rectangle((x0, max(y1 - t + 1, y0), x1, y1), fill=fill)
    draw.rectangle((x0, y0, min(x0 + t - 1, x1), y1), fill=fill)
    draw.rectangle((max(x1 - t + 1, x0), y0, x1, y1), fill=fill)


def draw_rect_filled(image: Image.Image, rect: Rect, color: RGB, alpha: float = 0.3) -> None:
    """Blend a solid color over the rect: new*alpha + existing*(1-alpha)."""
    width, height = image.size
    clipped = clamp_rect_to_bounds(rect, width, height)
    left = math.floor(clipped.x)
    top = math.floor(clipped.y)
    right = math.floor(clipped.right)
    bottom = math.floor(clipped.bottom)
    if right <= left or bottom <= top:
        return

    box = (left, top, right, bottom)
    region = image.crop(box)
    solid = Image.new(image.mode, region.size, _fill(image, color))
    image.paste(Image.blend(region, solid, alpha), box)


def draw_structured_label(
    image: Image.Image,
    text: str,
    x: float,
    y: float,
    background: RGB,
    text_color: RGB,
    renderer: TextRenderer,
) -> Rect:
    """Draw a bordered, solid label that always stays fully inside the image.

    Returns:
        The label's final position and size (without the 1px border)
    """
    img_width, img_height = image.size
    label_width = max(len(text) * LABEL_CHAR_WIDTH + 8, LABEL_MIN_WIDTH)
    label_x = max(2, min(math.floor(x), img_width - label_width - LABEL_EDGE_MARGIN))
    label_y = max(2, min(math.floor(y), img_height - LABEL_HEIGHT - LABEL_EDGE_MARGIN))

    draw = ImageDraw.Draw(image)
    draw.rectangle(
        (label_x - 1, label_y - 1, label_x + label_width, label_y + LABEL_HEIGHT),
        fill=_fill(image, background),
        outline=_fill(image, BLACK),
    )
    renderer.draw(image, text, label_x + LABEL_PADDING, label_y + 2, color=text_color)
    return Rect(label_x, label_y, label_width, LABEL_HEIGHT)


def _viewport_point(
    x: float, y: float, scaling: ScalingFactors, clip: Rect | None
) -> tuple[float, float]:
    origin_x = clip.x if clip is not None else 0.0
    origin_y = clip.y if clip is not None else 0.0
    return x / scaling.scale_x + origin_x, y / scaling.scale_y + origin_y


def _viewport_label(rect: Rect, scaling: ScalingFactors, clip: Rect | None) -> str:
    vx, vy = _viewport_point(rect.x, rect.y, scaling, clip)
    vw = rect.width / scaling.scale_x
    vh = rect.height / scaling.scale_y
    return f"{_round(vx)},{_round(vy)} {_round(vw)}×{_round(vh)}"


def draw_corner_markers(
    image: Image.Image,
    box_model: BoxModel,
    scaling: ScalingFactors,
    renderer: TextRenderer,
    clip: Rect | None = None,
) -> None:
    """Mark the four margin-box corners with small crosses and coordinates."""
    margin = box_model.margin
    corners = (
        (margin.x, margin.y, True, True),
        (margin.right, margin.y, False, True),
        (margin.x, margin.bottom, True, False),
        (margin.right, margin.bottom, False, False),
    )
    draw = ImageDraw.Draw(image)
    black = _fill(image, BLACK)
    for corner_x, corner_y, is_left, is_top in corners:
        cx = math.floor(corner_x)
        cy = math.floor(corner_y)
        draw.line((cx - MARKER_SIZE, cy, cx + MARKER_SIZE, cy), fill=black)
        draw.line((cx, cy - MARKER_SIZE, cx, cy + MARKER_SIZE), fill=black)

        vx, vy = _viewport_point(corner_x, corner_y, scaling, clip)
        draw_structured_label(
            image,
            f"{_round(vx)},{_round(vy)}",
            cx + (-50 if is_left else 10),
            cy + (-20 if is_top else 10),
            WHITE,
            BLACK,
            renderer,
        )


def draw_box_model_labels(
    image: Image.Image,
    box_model: BoxModel,
    scaling: ScalingFactors,
    renderer: TextRenderer,
    clip: Rect | None = None,
) -> None:
    """Label each box with its id and viewport position/size.

    Border and padding labels are skipped when the box is the same size as
    the box around it.
    """
    labels: list[tuple[str, Rect, RGB, RGB]] = [
        ("[1]", box_model.margin, MARGIN_COLOR, WHITE),
    ]
    if (
        box_model.border.width != box_model.margin.width
        or box_model.border.height != box_model.margin.height
    ):
        labels.append(("[2]", box_model.border, BORDER_COLOR, WHITE))
    if (
        box_model.padding.width != box_model.border.width
        or box_model.padding.height != box_model.border.height
    ):
        labels.append(("[3]", box_model.padding, PADDING_COLOR, WHITE))
    labels.append(("[4]", box_model.content, CONTENT_COLOR, BLACK))

    for tag, rect, background, text_color in labels:
        draw_structured_label(
            image,
            f"{tag} {_viewport_label(rect, scaling, clip)}",
            rect.x + LABEL_PADDING,
            rect.y + LABEL_PADDING,
            background,
            text_color,
            renderer,
        )
    draw_corner_markers(image, box_model, scaling, renderer, clip)


def _draw_coordinate_label(
    image: Image.Image,
    renderer: TextRenderer,
    text: str,
    x: int,
    y: int,
    char_width: int,
    height: int,
) -> None:
    draw = ImageDraw.Draw(image)
    draw.rectangle(
        (x - 2, y - 2, x + len(text) * char_width + 1, y + height + 1),
        fill=_fill(image, WHITE),
    )
    renderer.draw(image, text, x, y, color=BLACK)


def _tick_values(start: float, end: float, spacing: int) -> list[int]:
    first = math.ceil(start / spacing) * spacing
    values: list[int] = []
    value = first
    while value <= end:
        values.append(int(value))
        value += spacing
    return values


def draw_edge_rulers(
    image: Image.Image,
    scaling: ScalingFactors,
    renderer: TextRenderer,
    clip: Rect | None = None,
) -> None:
    """Draw top and left rulers with ticks at fixed viewport intervals.

    Major ticks every 100 viewport units carry a label with the viewport
    coordinate; minor ticks every 50 units sit between them.
    """
    width, height = image.size
    draw = ImageDraw.Draw(image)
    black = _fill(image, BLACK)
    white = _fill(image, WHITE)
    gray = _fill(image, GRAY_DARK)

    start_x = clip.x if clip is not None else 0.0
    start_y = clip.y if clip is not None else 0.0
    end_x = start_x + width / scaling.scale_x
    end_y = start_y + height / scaling.scale_y

    # Ruler bands: white outline row/column on both sides of a black band
    band = RULER_THICKNESS + 1
    draw.rectangle((0, 0, width - 1, band), fill=white)
    draw.rectangle((0, 1, width - 1, band - 1), fill=black)
    draw.rectangle((0, 0, band, height - 1), fill=white)
    draw.rectangle((1, 0, band - 1, height - 1), fill=black)

    for value in _tick_values(start_x, end_x, MAJOR_TICK_SPACING):
        screen_x = math.floor((value - start_x) * scaling.scale_x)
        if not 2 <= screen_x < width - 2:
            continue
        draw.rectangle((screen_x - 2, 0, screen_x + 2, MAJOR_TICK_LENGTH + 1), fill=white)
        draw.rectangle((screen_x - 1, 1, screen_x + 1, MAJOR_TICK_LENGTH), fill=black)
        if 25 < screen_x < width - 40:
            _draw_coordinate_label(
                image,
                renderer,
                str(value),
                screen_x - 15,
                MAJOR_TICK_LENGTH + 4,
                RULER_LABEL_CHAR_WIDTH,
                RULER_LABEL_HEIGHT,
            )

    for value in _tick_values(start_y, end_y, MAJOR_TICK_SPACING):
        screen_y = math.floor((value - start_y) * scaling.scale_y)
        if not 2 <= screen_y < height - 2:
            continue
        draw.rectangle((0, screen_y - 2, MAJOR_TICK_LENGTH + 1, screen_y + 2), fill=white)
        draw.rectangle((1, screen_y - 1, MAJOR_TICK_LENGTH, screen_y + 1), fill=black)
        if 25 < screen_y < height - 20:
            _draw_coordinate_label(
                image,
                renderer,
                str(value),
                MAJOR_TICK_LENGTH + 4,
                screen_y - 8,
                RULER_LABEL_CHAR_WIDTH,
                RULER_LABEL_HEIGHT,
            )

    for value in _tick_values(start_x, end_x, MINOR_TICK_SPACING):
        if value % MAJOR_TICK_SPACING == 0:
            continue
        screen_x = math.floor((value - start_x) * scaling.scale_x)
        if not 1 <= screen_x < width - 1:
            continue
        draw.rectangle((screen_x - 1, 0, screen_x + 1, MINOR_TICK_LENGTH), fill=white)
        draw.line((screen_x, 1, screen_x, MINOR_TICK_LENGTH - 1), fill=gray)

    for value in _tick_values(start_y, end_y, MINOR_TICK_SPACING):
        if value % MAJOR_TICK_SPACING == 0:
            continue
        screen_y = math.floor((value - start_y) * scaling.scale_y)
        if not 1 <= screen_y < height - 1:
            continue
        draw.rectangle((0, screen_y - 1, MINOR_TICK_LENGTH, screen_y + 1), fill=white)
        draw.line((1, screen_y, MINOR_TICK_LENGTH - 1, screen_y), fill=gray)


def _dash_starts(length: int) -> range:
    return range(0, length, DASH_LENGTH + GAP_LENGTH)


def draw_crosshair(
    image: Image.Image,
    rect: Rect,
    scaling: ScalingFactors,
    renderer: TextRenderer,
    clip: Rect | None = None,
) -> None:
    """Draw dashed magenta lines through the rect's center.

    The lines are composited from a transparent layer so the magenta keeps
    its partial opacity. A viewport coordinate label and a size label are
    placed next to the intersection when there is room.
    """
    width, height = image.size
    center_x = math.floor(rect.center_x)
    center_y = math.floor(rect.center_y)

    layer = Image.new("RGBA", image.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)
    outline = (*WHITE, 255)

    if 1 <= center_x < width - 1:
        for start in _dash_starts(height):
            end = min(start + DASH_LENGTH, height) - 1
            draw.line((center_x - 1, start, center_x - 1, end), fill=outline)
            draw.line((center_x + 1, start, center_x + 1, end), fill=outline)
            draw.line((center_x, start, center_x, end), fill=CROSSHAIR_COLOR)

    if 1 <= center_y < height - 1:
        for start in _dash_starts(width):
            end = min(start + DASH_LENGTH, width) - 1
            draw.line((start, center_y - 1, end, center_y - 1), fill=outline)
            draw.line((start, center_y + 1, end, center_y + 1), fill=outline)
            draw.line((start, center_y, end, center_y), fill=CROSSHAIR_COLOR)

    if image.mode == "RGBA":
        image.alpha_composite(layer)
    else:
        image.paste(layer, (0, 0), layer)

    view_x, view_y = _viewport_point(rect.center_x, rect.center_y, scaling, clip)
    view_w = rect.width / scaling.scale_x
    view_h = rect.height / scaling.scale_y

    if 30 <= center_x < width - 80 and 30 <= center_y < height - 30:
        _draw_coordinate_label(
            image,
            renderer,
            f"({math.floor(view_x)},{math.floor(view_y)})",
            center_x + 8,
            center_y + 8,
            CROSSHAIR_LABEL_CHAR_WIDTH,
            CROSSHAIR_LABEL_HEIGHT,
        )
    if 30 <= center_x < width - 100 and center_y >= 45:
        _draw_coordinate_label(
            image,
            renderer,
            f"{math.floor(view_w)}×{math.floor(view_h)}px",
            center_x + 8,
            center_y - 30,
            CROSSHAIR_LABEL_CHAR_WIDTH,
            CROSSHAIR_LABEL_HEIGHT,
        )
