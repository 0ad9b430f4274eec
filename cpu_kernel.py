import math

from numba import njit, prange

from coloring import escape_time_color
from fractals import FractalType


MANDELBROT = FractalType.MANDELBROT.kernel_id
MULTIBROT = FractalType.MULTIBROT.kernel_id

BAILOUT = 4.0


@njit
def in_main_bulbs(x, y):
    """
    Closed-form membership test for the main cardioid and the period-2 bulb.
    See https://en.wikipedia.org/wiki/Plotting_algorithms_for_the_Mandelbrot_set#Cardioid_/_bulb_checking
    """
    q = (x - 0.25) * (x - 0.25) + y * y
    if q * (q + (x - 0.25)) <= 0.25 * y * y:
        return True
    return (x + 1.0) * (x + 1.0) + y * y <= 0.0625


@njit
def mandelbrot(x_cor, y_cor, max_its):
    """
    Escape time algorithm; optimised variant.
    See https://en.wikipedia.org/wiki/Plotting_algorithms_for_the_Mandelbrot_set
    Here x_cor is the real value, y_cor the imaginary in terms of the mandelbrot fractal.
    Points inside the bulbs never escape, so skip straight to max_its.
    """
    if in_main_bulbs(x_cor, y_cor):
        return max_its

    # complex answer z = x + yj, with its squares kept around to limit multiplications
    x = 0.0
    y = 0.0
    x2 = 0.0
    y2 = 0.0

    n = 0
    while x2 + y2 <= BAILOUT and n < max_its:
        y = 2.0 * x * y + y_cor
        x = x2 - y2 + x_cor
        x2 = x * x
        y2 = y * y
        n += 1
    return n


@njit
def multibrot(x_cor, y_cor, max_its, exponent):
    """
    z -> z^e + c for a real exponent e, in polar form:
    |z|^e * (cos(e * arg z) + i sin(e * arg z)) + c.
    The bailout is |z|^2 > e^2 rather than a fixed radius.
    """
    bailout = exponent * exponent

    x = 0.0
    y = 0.0
    n = 0
    while x * x + y * y <= bailout and n < max_its:
        r2 = x * x + y * y
        if r2 == 0.0:
            # 0^e taken as 0, the orbit starts at c
            x = x_cor
            y = y_cor
        else:
            magnitude = math.pow(r2, exponent / 2.0)
            angle = exponent * math.atan2(y, x)
            x = magnitude * math.cos(angle) + x_cor
            y = magnitude * math.sin(angle) + y_cor
        n += 1
    return n


@njit
def escape_time_kernel(x_cor, y_cor, max_its, fractal_id, exponent):
    if fractal_id == MULTIBROT:
        return multibrot(x_cor, y_cor, max_its, exponent)
    return mandelbrot(x_cor, y_cor, max_its)


@njit
def pixel_color(index, width, height, view_x, view_y, zoom_x, zoom_y, center_x, center_y,
                max_its, fractal_id, exponent, color_id):
    """
    Full per-pixel pipeline: linear index -> screen position -> world position -> escape time -> color.
    Mirrors Camera.screen_to_world operation for operation.
    """
    x = index % width
    y = (index - x) // width

    world_x = (((x / width) - 0.5) * view_x) / zoom_x + center_x
    world_y = (((y / height) - 0.5) * view_y) / zoom_y + center_y

    n = escape_time_kernel(world_x, world_y, max_its, fractal_id, exponent)
    return escape_time_color(n, max_its, color_id)


@njit
def render_sequential(out, width, height, view_x, view_y, zoom_x, zoom_y, center_x, center_y,
                      max_its, fractal_id, exponent, color_id):
    """Reference frame kernel, one thread in row-major order."""
    for i in range(width * height):
        out[i] = pixel_color(i, width, height, view_x, view_y, zoom_x, zoom_y, center_x, center_y,
                             max_its, fractal_id, exponent, color_id)


@njit(parallel=True)
def render_parallel(out, width, height, view_x, view_y, zoom_x, zoom_y, center_x, center_y,
                    max_its, fractal_id, exponent, color_id):
    """
    Same frame, indices split over numba's thread pool. Every index is written by exactly one
    worker so no locking is needed. No fastmath here, it would make the result differ from
    render_sequential.
    """
    for i in prange(width * height):
        out[i] = pixel_color(i, width, height, view_x, view_y, zoom_x, zoom_y, center_x, center_y,
                             max_its, fractal_id, exponent, color_id)


def escape_time(world_pos, max_iterations, fractal):
    """Escape time of a single world position, the python-side entry to the compiled kernels."""
    exponent = fractal.exponent if fractal.kind is FractalType.MULTIBROT else 0.0
    return int(escape_time_kernel(float(world_pos[0]), float(world_pos[1]), int(max_iterations),
                                  fractal.kind.kernel_id, float(exponent)))
