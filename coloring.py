###########################
##### Coloring scheme #####
###########################

import math

from numba import njit

from framebuffer import Color
from fractals import ColorScheme


HISTOGRAM = ColorScheme.HISTOGRAM.kernel_id
LCH = ColorScheme.LCH.kernel_id
OLC = ColorScheme.OLC.kernel_id

# phase offsets of 2pi/3 between the channels of the OLC scheme
OLC_FREQUENCY = 0.1
OLC_PHASES = (0.0, 2.094, 4.188)


@njit
def _to_byte(value):
    # saturating float -> byte cast
    if value <= 0.0:
        return 0
    if value >= 255.0:
        return 255
    return int(value)


@njit
def histogram_color(escape_time, max_its):
    """
    Blue only, proportional to how long the point took to escape.
    See https://en.wikipedia.org/wiki/Plotting_algorithms_for_the_Mandelbrot_set#Histogram_coloring
    """
    blue = _to_byte((escape_time / max_its) * 255.0)
    return blue


@njit
def lch_color(escape_time, max_its):
    """
    See https://en.wikipedia.org/wiki/Plotting_algorithms_for_the_Mandelbrot_set#LCH_coloring
    The blue channel can reach up to 359 before the cast, it saturates at 255.
    """
    s = escape_time / max_its
    v = 1.0 - math.cos(math.pi * s) ** 2

    red = _to_byte(75.0 - (75.0 * v))
    green = _to_byte(28.0 + (75.0 - (75.0 * v)))
    blue = _to_byte(math.pow(360.0 * s, 1.5) % 360.0)
    return (red << 16) | (green << 8) | blue


@njit
def olc_color(escape_time):
    """
    Oscillating rainbow bands, independent of the iteration bound.
    """
    n = float(escape_time)
    red = _to_byte((0.5 * math.sin(OLC_FREQUENCY * n + OLC_PHASES[0]) + 0.5) * 255.0)
    green = _to_byte((0.5 * math.sin(OLC_FREQUENCY * n + OLC_PHASES[1]) + 0.5) * 255.0)
    blue = _to_byte((0.5 * math.sin(OLC_FREQUENCY * n + OLC_PHASES[2]) + 0.5) * 255.0)
    return (red << 16) | (green << 8) | blue


@njit
def escape_time_color(escape_time, max_its, scheme_id):
    """
    Packed 0x00RRGGBB color for an escape time under the selected scheme.
    """
    if scheme_id == LCH:
        return lch_color(escape_time, max_its)
    elif scheme_id == OLC:
        return olc_color(escape_time)
    return histogram_color(escape_time, max_its)


def color_for(escape_time, max_iterations, scheme):
    """Color of one escape time, the python-side entry to the compiled schemes."""
    return Color.from_packed(escape_time_color(int(escape_time), int(max_iterations), scheme.kernel_id))
