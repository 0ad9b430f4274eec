import pytest

from coloring import color_for
from fractals import ColorScheme
from framebuffer import Color


@pytest.mark.parametrize("max_its", [1, 7, 64, 1000])
def test_histogram_endpoints(max_its):
    assert color_for(0, max_its, ColorScheme.HISTOGRAM) == Color(0, 0, 0)
    assert color_for(max_its, max_its, ColorScheme.HISTOGRAM) == Color(0, 0, 255)


def test_histogram_is_blue_only():
    color = color_for(32, 64, ColorScheme.HISTOGRAM)
    assert color == Color(0, 0, 127)


def test_lch_endpoints():
    assert color_for(0, 100, ColorScheme.LCH) == Color(75, 103, 0)
    # (360 * 1) ^ 1.5 mod 360 is about 350, which saturates
    assert color_for(100, 100, ColorScheme.LCH) == Color(75, 103, 255)


def test_lch_midpoint_is_dark():
    color = color_for(50, 100, ColorScheme.LCH)
    assert (color.red, color.green) == (0, 28)


def test_olc_start():
    assert color_for(0, 10, ColorScheme.OLC) == Color(127, 237, 17)


def test_olc_ignores_iteration_bound():
    for n in (0, 3, 17, 250):
        assert color_for(n, 300, ColorScheme.OLC) == color_for(n, 5000, ColorScheme.OLC)


@pytest.mark.parametrize("scheme", list(ColorScheme))
def test_colors_are_deterministic_and_in_range(scheme):
    for n in range(0, 201, 7):
        color = color_for(n, 200, scheme)
        assert color == color_for(n, 200, scheme)
        assert 0 <= color.value <= 0x00FFFFFF
