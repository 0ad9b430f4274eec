###############################
##### Colors & framebuffer ####
###############################

import math

import numpy as np

from errors import ConfigurationError


def pack_rgb(red, green, blue):
    """Pack three byte channels into one 0x00RRGGBB word."""
    return (red << 16) | (green << 8) | blue


class Color:
    """
    Immutable RGB value, 8 bits per channel, packed into a single integer as 0x00RRGGBB.
    The default color is white.
    """

    __slots__ = ("_value",)

    def __init__(self, red=255, green=255, blue=255):
        for channel in (red, green, blue):
            if not 0 <= channel <= 255:
                raise ValueError(f"color channels must be within [0, 255], got {channel}")
        object.__setattr__(self, "_value", pack_rgb(int(red), int(green), int(blue)))

    @classmethod
    def from_packed(cls, value):
        value = int(value)
        return cls((value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF)

    def __setattr__(self, name, value):
        raise AttributeError("Color is immutable")

    @property
    def value(self):
        return self._value

    @property
    def red(self):
        return (self._value & 0xFF_00_00) >> 16

    @property
    def green(self):
        return (self._value & 0x00_FF_00) >> 8

    @property
    def blue(self):
        return self._value & 0x00_00_FF

    def scale(self, times):
        """
        Scale the intensity of every channel by 'times' in [0, 1], truncating the result.
        """
        if not (math.isfinite(times) and 0.0 <= times <= 1.0):
            raise ValueError("times must be a finite number between 0 and 1.0 (inclusive)")

        return Color(int(self.red * times), int(self.green * times), int(self.blue * times))

    def invert(self):
        return Color(255 - self.red, 255 - self.green, 255 - self.blue)

    def __add__(self, other):
        # saturating, channel-wise
        return Color(
            min(self.red + other.red, 255),
            min(self.green + other.green, 255),
            min(self.blue + other.blue, 255),
        )

    def __int__(self):
        return self._value

    def __eq__(self, other):
        if not isinstance(other, Color):
            return NotImplemented
        return self._value == other._value

    def __hash__(self):
        return hash(self._value)

    def __repr__(self):
        return f"Color({self.red}, {self.green}, {self.blue})"


Color.WHITE = Color(255, 255, 255)
Color.BLACK = Color(0, 0, 0)
Color.RED = Color(255, 0, 0)


class FrameBuffer:
    """
    Dense row-major grid of packed colors, addressed by (x, y) or by linear index.
    The size is fixed at construction and both dimensions have to be positive.
    """

    def __init__(self, size):
        width, height = size
        if not (isinstance(width, (int, np.integer)) and isinstance(height, (int, np.integer))):
            raise ConfigurationError(f"framebuffer size must be integral, got {size!r}")
        if width <= 0 or height <= 0:
            raise ConfigurationError(f"framebuffer size must be positive, got {size!r}")

        self._size = (int(width), int(height))
        self.data = np.full(self._size[0] * self._size[1], Color.WHITE.value, dtype=np.uint32)

    @property
    def size(self):
        return self._size

    @property
    def width(self):
        return self._size[0]

    @property
    def height(self):
        return self._size[1]

    def __len__(self):
        return self.data.size

    def pos_to_index(self, pos):
        x, y = pos
        return y * self._size[0] + x

    def index_to_pos(self, index):
        x = index % self._size[0]
        y = (index - x) // self._size[0]
        return x, y

    def _checked_index(self, pos):
        x, y = pos
        if not (0 <= x < self._size[0] and 0 <= y < self._size[1]):
            raise IndexError(f"pixel {pos!r} out of range for framebuffer of size {self._size!r}")
        return self.pos_to_index((x, y))

    def __getitem__(self, pos):
        return Color.from_packed(self.data[self._checked_index(pos)])

    def __setitem__(self, pos, color):
        self.data[self._checked_index(pos)] = int(color)

    def map_pixels(self, f):
        """
        Replace every pixel with f((x, y)), evaluated in row-major order.
        """
        self.data = np.fromiter(
            (int(f(self.index_to_pos(index))) for index in range(self.data.size)),
            dtype=np.uint32,
            count=self.data.size,
        )

    def raw(self):
        """
        Copy of the pixels as packed 0x00RRGGBB words, ready for a display surface.
        """
        return self.data.copy()

    def as_image(self):
        """
        The frame as a (height, width, 3) uint8 array, the layout image encoders expect.
        """
        pixels = self.data.reshape((self._size[1], self._size[0]))
        image = np.empty((self._size[1], self._size[0], 3), dtype=np.uint8)
        image[..., 0] = (pixels >> 16) & 0xFF
        image[..., 1] = (pixels >> 8) & 0xFF
        image[..., 2] = pixels & 0xFF
        return image
