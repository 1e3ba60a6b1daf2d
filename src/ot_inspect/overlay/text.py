"""Text rendering for overlay labels.

Text is best-effort: when no font can be loaded or drawing fails, a
placeholder box is drawn in its place so the surrounding shapes stay intact.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger
from PIL import ImageDraw, ImageFont

from ot_inspect.overlay.constants import (
    BLACK,
    PLACEHOLDER_CHAR_WIDTH,
    PLACEHOLDER_HEIGHT,
    PLACEHOLDER_MIN_WIDTH,
    RGB,
    WHITE,
)

if TYPE_CHECKING:
    from PIL import Image

# Bold monospace fonts commonly present on Linux and macOS
DEFAULT_FONT_CANDIDATES = (
    "DejaVuSansMono-Bold.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSansMono-Bold.ttf",
    "/usr/share/fonts/TTF/DejaVuSansMono-Bold.ttf",
    "LiberationMono-Bold.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationMono-Bold.ttf",
    "/System/Library/Fonts/Menlo.ttc",
)

FontType = ImageFont.FreeTypeFont | ImageFont.ImageFont


def draw_text_placeholder(image: Image.Image, text: str, x: int, y: int) -> None:
    """Draw a white box with a black outline sized roughly like the text."""
    width = max(PLACEHOLDER_MIN_WIDTH, len(text) * PLACEHOLDER_CHAR_WIDTH)
    draw = ImageDraw.Draw(image)
    draw.rectangle(
        (x, y, x + width - 1, y + PLACEHOLDER_HEIGHT - 1),
        fill=WHITE,
        outline=BLACK,
    )


class TextRenderer:
    """Loads one font lazily and draws single-line labels with it."""

    def __init__(self, font_path: str | None = None, font_size: int = 12) -> None:
        self.font_path = font_path
        self.font_size = font_size
        self._font: FontType | None = None
        self._loaded = False

    def _load_font(self) -> FontType | None:
        candidates = [self.font_path] if self.font_path else list(DEFAULT_FONT_CANDIDATES)
        for candidate in candidates:
            try:
                return ImageFont.truetype(candidate, self.font_size)
            except OSError:
                continue

        if self.font_path:
            logger.warning(f"Cannot load font {self.font_path}, using the built-in font")
        try:
            return ImageFont.load_default(size=self.font_size)
        except (OSError, ImportError) as e:
            logger.warning(f"No usable font, labels fall back to placeholders: {e}")
            return None

    @property
    def font(self) -> FontType | None:
        if not self._loaded:
            self._font = self._load_font()
            self._loaded = True
        return self._font

    @property
    def available(self) -> bool:
        return self.font is not None

    def draw(
        self,
        image: Image.Image,
        text: str,
        x: int,
        y: int,
        color: RGB = BLACK,
    ) -> bool:
        """Draw text with its top-left corner at (x, y).

        Returns:
            True if real text was drawn, False if a placeholder was used
        """
        font = self.font
        if font is None:
            draw_text_placeholder(image, text, x, y)
            return False

        try:
            ImageDraw.Draw(image).text((x, y), text, fill=color, font=font)
        except (OSError, ValueError) as e:
            logger.debug(f"Text rendering failed for {text!r}: {e}")
            draw_text_placeholder(image, text, x, y)
            return False
        return True
