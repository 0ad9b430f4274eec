##########################
##### Text overlay #######
##########################

import functools
import math

import numpy as np
from matplotlib import font_manager
from matplotlib.ft2font import FT2Font

from framebuffer import Color


FONT_FAMILY = "DejaVu Sans"


@functools.lru_cache(maxsize=None)
def _font():
    # matplotlib ships DejaVu Sans, so this always resolves
    return FT2Font(font_manager.findfont(FONT_FAMILY))


def rasterize(text, fontsize):
    """
    Coverage bitmap of 'text' (uint8, rows x cols) and the distance from its top row to the baseline.
    """
    font = _font()
    # 72 dpi, so points are pixels
    font.set_size(fontsize, 72)
    font.set_text(text, 0.0)
    font.draw_glyphs_to_bitmap(antialiased=True)

    bitmap = np.asarray(font.get_image())
    descent = int(math.ceil(font.get_descent() / 64.0))
    return bitmap, bitmap.shape[0] - descent


class Label:
    """
    A line of text blended on top of a framebuffer, anchored at its baseline.
    """

    def __init__(self, text, fontsize, color=None):
        text = str(text)
        if not text:
            raise ValueError("label text must not be empty")
        if not (math.isfinite(fontsize) and fontsize > 0.0):
            raise ValueError(f"fontsize must be a positive finite number, got {fontsize!r}")

        self.text = text
        self.fontsize = fontsize
        self.color = color if color is not None else Color()

    def draw(self, pos, buffer):
        """
        Blend the glyph coverage into 'buffer' with the left end of the baseline at pos.
        Whatever falls outside the buffer is clipped.
        """
        bitmap, baseline = rasterize(self.text, self.fontsize)
        top = pos[1] - baseline
        width, height = buffer.size

        for gy, gx in zip(*np.nonzero(bitmap)):
            x, y = pos[0] + int(gx), top + int(gy)
            if not (0 <= x < width and 0 <= y < height):
                continue

            intensity = bitmap[gy, gx] / 255.0
            buffer[x, y] = self.color.scale(intensity) + buffer[x, y].scale(1.0 - intensity)
