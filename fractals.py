"""
Selections that drive a render: which fractal, which coloring scheme, and the
immutable request handed to a backend for one frame.
"""

import copy
import math
from dataclasses import dataclass
from enum import Enum

from errors import ConfigurationError


class _Cyclic(Enum):
    """Enum with an explicit cycling order, see _CYCLE_ORDER."""

    def __new__(cls, kernel_id, label):
        member = object.__new__(cls)
        member._value_ = kernel_id
        member.label = label
        return member

    @property
    def kernel_id(self):
        """Selector value understood by the compiled kernels."""
        return self.value

    def next(self):
        order = self._order()
        return order[(order.index(self) + 1) % len(order)]

    def prev(self):
        order = self._order()
        return order[(order.index(self) - 1) % len(order)]

    @classmethod
    def _order(cls):
        return _CYCLE_ORDER[cls]

    @classmethod
    def from_label(cls, label):
        for member in cls:
            if member.label.lower() == str(label).lower():
                return member
        raise KeyError(label)

    def __str__(self):
        return self.label


class FractalType(_Cyclic):
    MANDELBROT = (0, "Mandelbrot")
    MULTIBROT = (1, "Multibrot")


class ColorScheme(_Cyclic):
    HISTOGRAM = (0, "Histogram")
    LCH = (1, "LCH")
    OLC = (2, "OLC")


_CYCLE_ORDER = {
    FractalType: (FractalType.MANDELBROT, FractalType.MULTIBROT),
    ColorScheme: (ColorScheme.HISTOGRAM, ColorScheme.LCH, ColorScheme.OLC),
}


DEFAULT_MULTIBROT_EXPONENT = 4.0
MAX_EXPONENT_STEP = 1.0

# the kernels take the iteration bound as an unsigned 32 bit integer
MAX_ITERATIONS_LIMIT = 2**32 - 1


@dataclass
class Fractal:
    """
    Fractal selection: the kind plus the Multibrot exponent, which survives cycling
    through the kinds untouched.
    """

    kind: FractalType = FractalType.MANDELBROT
    exponent: float = DEFAULT_MULTIBROT_EXPONENT

    def next(self):
        return Fractal(self.kind.next(), self.exponent)

    def prev(self):
        return Fractal(self.kind.prev(), self.exponent)

    @property
    def multi_parameter(self):
        """The exponent when Multibrot is selected, None for Mandelbrot."""
        return self.exponent if self.kind is FractalType.MULTIBROT else None

    def change_exponent(self, step):
        """
        Move the exponent by 'step'. Steps larger than MAX_EXPONENT_STEP, non-finite
        steps, and steps that would make the exponent non-finite are ignored.
        Only applies while Multibrot is selected.
        """
        if self.kind is not FractalType.MULTIBROT:
            return False
        if not math.isfinite(step) or abs(step) > MAX_EXPONENT_STEP:
            return False

        exponent = self.exponent + step
        if not math.isfinite(exponent):
            return False

        self.exponent = exponent
        return True

    def __str__(self):
        if self.kind is FractalType.MULTIBROT:
            return f"{self.kind} (exponent {self.exponent:.2f})"
        return str(self.kind)


@dataclass(frozen=True)
class RenderRequest:
    """Everything one frame depends on. The camera is copied on construction."""

    fractal: Fractal
    color_scheme: ColorScheme
    camera: object
    max_iterations: int

    def __post_init__(self):
        max_iterations = self.max_iterations
        if isinstance(max_iterations, bool) or not isinstance(max_iterations, int) \
                or not 0 < max_iterations <= MAX_ITERATIONS_LIMIT:
            raise ConfigurationError(f"max_iterations must be a positive 32 bit integer, got {self.max_iterations!r}")
        if not isinstance(self.color_scheme, ColorScheme):
            raise ConfigurationError(f"unknown color scheme {self.color_scheme!r}")
        if not isinstance(self.fractal, Fractal):
            raise ConfigurationError(f"unknown fractal selection {self.fractal!r}")

        object.__setattr__(self, "camera", copy.deepcopy(self.camera))
        object.__setattr__(self, "fractal", copy.copy(self.fractal))
