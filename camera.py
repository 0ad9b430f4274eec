import math
import sys
from enum import Enum

import numpy as np

from errors import ConfigurationError


class Direction(Enum):
    """Pan directions as (dx, dy) in screen orientation, y grows downwards."""

    UP = (0, -1)
    DOWN = (0, 1)
    LEFT = (-1, 0)
    RIGHT = (1, 0)


class Axis(Enum):
    X = 0
    Y = 1


def _is_normal(value):
    # finite, non-zero and not subnormal
    return math.isfinite(value) and abs(value) >= sys.float_info.min


def _signed_sqrt(value):
    return math.sqrt(value) if value >= 0.0 else -math.sqrt(-value)


def _checked_ratio(screen_size):
    width, height = screen_size
    if not (isinstance(width, (int, np.integer)) and isinstance(height, (int, np.integer))):
        raise ConfigurationError(f"screen size must be integral, got {screen_size!r}")
    if width <= 0 or height <= 0:
        raise ConfigurationError(f"screen size must be positive, got {screen_size!r}")
    return float(width) / float(height)


class Camera:
    """
    Maps screen pixels onto the complex plane.

    The camera keeps the world-space point in the middle of the screen (center_pos),
    the extent of the screen in world space at zoom 1 (the x extent follows the aspect
    ratio, the y extent is always 1) and an independent zoom factor per axis.

    Mutators never raise on bad user input; a non-finite value simply leaves the camera
    in its previous state. Zoom is clamped to [MIN_ZOOM, MAX_ZOOM].
    """

    MOVE_INCREMENT = 0.005
    ZOOM_INCREMENT = 0.02
    MIN_ZOOM = 0.1
    MAX_ZOOM = sys.float_info.max

    def __init__(self, screen_size):
        self.center_pos = (0.0, 0.0)
        self._view_size = (_checked_ratio(screen_size), 1.0)
        self.zoom = (1.0, 1.0)

    def __repr__(self):
        return f"Camera(center_pos={self.center_pos}, view_size={self._view_size}, zoom={self.zoom})"

    def __eq__(self, other):
        if not isinstance(other, Camera):
            return NotImplemented
        return (self.center_pos, self._view_size, self.zoom) == (other.center_pos, other._view_size, other.zoom)

    @property
    def base_view_size(self):
        """World-space extent of the screen at zoom 1."""
        return self._view_size

    @property
    def view_size(self):
        """World-space extent of the screen at the current zoom."""
        return (self._view_size[0] / self.zoom[0], self._view_size[1] / self.zoom[1])

    def resize(self, new_screen_size):
        """Follow a new aspect ratio, center and zoom stay where they are."""
        self._view_size = (_checked_ratio(new_screen_size), self._view_size[1])

    def set_center_pos(self, new_center_pos):
        x, y = new_center_pos
        if math.isfinite(x) and math.isfinite(y):
            self.center_pos = (float(x), float(y))
            return True
        return False

    def set_zoom(self, new_zoom):
        x, y = new_zoom
        if _is_normal(x) and _is_normal(y) and x > 0 and y > 0:
            self.zoom = (self._clamp(x), self._clamp(y))
            return True
        return False

    def reset_zoom(self):
        self.zoom = (1.0, 1.0)

    def reset_center(self):
        self.center_pos = (0.0, 0.0)

    @classmethod
    def _clamp(cls, zoom):
        return float(min(max(zoom, cls.MIN_ZOOM), cls.MAX_ZOOM))

    def pan(self, direction):
        """
        Move the center by a fixed step, divided by the zoom so it feels the same at any depth.
        """
        dx, dy = direction.value if isinstance(direction, Direction) else direction
        if not (math.isfinite(dx) and math.isfinite(dy)):
            return False

        center_x = self.center_pos[0] + dx * self.MOVE_INCREMENT / self.zoom[0]
        center_y = self.center_pos[1] + dy * self.MOVE_INCREMENT / self.zoom[1]
        return self.set_center_pos((center_x, center_y))

    def zoom_by_step(self, axis, increase):
        """Zoom a single axis in or out by ZOOM_INCREMENT."""
        index = Axis(axis).value
        sign = 1.0 if increase else -1.0

        zoom = list(self.zoom)
        zoom[index] = self._clamp(zoom[index] + sign * self.ZOOM_INCREMENT * zoom[index])
        if not math.isfinite(zoom[index]):
            return False

        self.zoom = tuple(zoom)
        return True

    def change_zoom(self, increase):
        """Zoom both axes in or out by ZOOM_INCREMENT."""
        sign = 1.0 if increase else -1.0
        new_zoom = tuple(self._clamp(z + sign * self.ZOOM_INCREMENT * z) for z in self.zoom)

        if _is_normal(new_zoom[0]) and _is_normal(new_zoom[1]):
            self.zoom = new_zoom
            return True
        return False

    def zoom_toward(self, delta, world_pos):
        """
        Zoom both axes by (1 + ZOOM_INCREMENT * delta) and pull the center towards world_pos,
        so the point under the cursor stays roughly where it is.

        The center moves by the signed square root of the distance to world_pos, scaled by
        the change in zoom and divided by the new zoom. Recentering is skipped when any of
        those terms is zero or not finite, the zoom change itself still applies.
        """
        world_x, world_y = world_pos
        if not (math.isfinite(delta) and math.isfinite(world_x) and math.isfinite(world_y)):
            return False

        old_zoom = self.zoom
        new_zoom = tuple(self._clamp(z + self.ZOOM_INCREMENT * z * delta) for z in old_zoom)
        if not (math.isfinite(new_zoom[0]) and math.isfinite(new_zoom[1])):
            return False
        self.zoom = new_zoom

        delta_normed = (
            _signed_sqrt(world_x - self.center_pos[0]),
            _signed_sqrt(world_y - self.center_pos[1]),
        )
        zoom_delta = (new_zoom[0] - old_zoom[0], new_zoom[1] - old_zoom[1])

        if all(_is_normal(value) for value in delta_normed + zoom_delta):
            self.set_center_pos((
                self.center_pos[0] + delta_normed[0] * zoom_delta[0] / new_zoom[0],
                self.center_pos[1] + delta_normed[1] * zoom_delta[1] / new_zoom[1],
            ))
        return True

    def screen_to_world(self, screen_pos, screen_size):
        """
        The one transform every pixel goes through: normalise to [-0.5, 0.5],
        scale by view_size / zoom and offset by the center.
        """
        normalized_x = (screen_pos[0] / screen_size[0]) - 0.5
        normalized_y = (screen_pos[1] / screen_size[1]) - 0.5

        return (
            ((normalized_x * self._view_size[0]) / self.zoom[0]) + self.center_pos[0],
            ((normalized_y * self._view_size[1]) / self.zoom[1]) + self.center_pos[1],
        )

    def world_to_screen(self, world_pos, screen_size):
        """Inverse of screen_to_world, in fractional pixels."""
        return (
            (((world_pos[0] - self.center_pos[0]) * self.zoom[0] / self._view_size[0]) + 0.5) * screen_size[0],
            (((world_pos[1] - self.center_pos[1]) * self.zoom[1] / self._view_size[1]) + 0.5) * screen_size[1],
        )
