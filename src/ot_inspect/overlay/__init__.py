"""Screenshot overlay: box model highlights, rulers, crosshairs and sampling."""

from ot_inspect.overlay.annotate import (
    Annotator,
    decode_png,
    draw_box_model_highlight,
    encode_png,
)
from ot_inspect.overlay.drawing import (
    draw_box_model_labels,
    draw_corner_markers,
    draw_crosshair,
    draw_edge_rulers,
    draw_rect_filled,
    draw_rect_outline,
    draw_structured_label,
)
from ot_inspect.overlay.sampling import sample_background_color
from ot_inspect.overlay.text import TextRenderer, draw_text_placeholder

__all__ = [
    "Annotator",
    "TextRenderer",
    "decode_png",
    "draw_box_model_highlight",
    "draw_box_model_labels",
    "draw_corner_markers",
    "draw_crosshair",
    "draw_edge_rulers",
    "draw_rect_filled",
    "draw_rect_outline",
    "draw_structured_label",
    "draw_text_placeholder",
    "encode_png",
    "sample_background_color",
]
