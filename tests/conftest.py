import matplotlib

matplotlib.use("Agg")

import pytest

from camera import Camera
from fractals import ColorScheme, Fractal, FractalType, RenderRequest


@pytest.fixture
def camera():
    return Camera((64, 48))


@pytest.fixture
def make_request():
    def _make(fractal=FractalType.MANDELBROT, scheme=ColorScheme.HISTOGRAM, camera=None,
              max_iterations=64, exponent=4.0, screen_size=(64, 48)):
        camera = camera or Camera(screen_size)
        return RenderRequest(Fractal(fractal, exponent), scheme, camera, max_iterations)

    return _make
