"""Colors and sizes used by the overlay."""

from __future__ import annotations

RGB = tuple[int, int, int]
RGBA = tuple[int, int, int, int]

# Box model colors, [1]..[4]
MARGIN_COLOR: RGB = (255, 0, 0)
BORDER_COLOR: RGB = (0, 255, 0)
PADDING_COLOR: RGB = (0, 0, 255)
CONTENT_COLOR: RGB = (255, 255, 0)

MARGIN_THICKNESS = 3
BORDER_THICKNESS = 3
PADDING_THICKNESS = 3
CONTENT_THICKNESS = 4

BLACK: RGB = (0, 0, 0)
WHITE: RGB = (255, 255, 255)
GRAY_DARK: RGB = (0x66, 0x66, 0x66)

# Structured labels
LABEL_MIN_WIDTH = 80
LABEL_HEIGHT = 20
LABEL_PADDING = 4
LABEL_CHAR_WIDTH = 7
LABEL_EDGE_MARGIN = 4  # gap kept to the right/bottom image edge

# Corner markers
MARKER_SIZE = 8

# Edge rulers
RULER_THICKNESS = 4
MAJOR_TICK_LENGTH = 16
MINOR_TICK_LENGTH = 8
MAJOR_TICK_SPACING = 100
MINOR_TICK_SPACING = 50
RULER_LABEL_CHAR_WIDTH = 12
RULER_LABEL_HEIGHT = 16

# Crosshair
CROSSHAIR_COLOR: RGBA = (255, 0, 255, 0xCC)
DASH_LENGTH = 5
GAP_LENGTH = 3
CROSSHAIR_LABEL_CHAR_WIDTH = 7
CROSSHAIR_LABEL_HEIGHT = 14

# Text placeholder when no font is usable
PLACEHOLDER_MIN_WIDTH = 20
PLACEHOLDER_CHAR_WIDTH = 8
PLACEHOLDER_HEIGHT = 12

# Background color sampling
SAMPLE_MIN_ELEMENT_SIZE = 10
SAMPLE_INSET_RATIO = 0.1
SAMPLE_MIN_INSET = 3
SAMPLE_MAX_INSET = 10
SAMPLE_MIN_ALPHA = 0.001
SAMPLE_MIN_COUNT = 2
