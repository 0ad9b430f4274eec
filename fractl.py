# Fractl
# escape time fractals: https://en.wikipedia.org/wiki/Plotting_algorithms_for_the_Mandelbrot_set

import time
from argparse import ArgumentParser

from camera import Camera
from errors import FractalError
from fractals import ColorScheme, Fractal, FractalType, RenderRequest
from render import Renderer
from settings import BACKENDS, Settings


def build_parser():
    parser = ArgumentParser(description="Render escape time fractals.")

    parser.add_argument("--backend", choices=BACKENDS, default=None,
                        help="where to compute frames (default: sequential)")
    parser.add_argument("--x-res", type=int, dest="x_resolution", default=Settings().x_resolution,
                        help="width of the frame in pixels")
    parser.add_argument("--y-res", type=int, dest="y_resolution", default=Settings().y_resolution,
                        help="height of the frame in pixels")
    parser.add_argument("--max-iterations", type=int, dest="max_its", default=None,
                        help="iteration bound, defaults depend on the backend")
    parser.add_argument("--fractal", choices=[t.label for t in FractalType], default=FractalType.MANDELBROT.label)
    parser.add_argument("--coloring", choices=[c.label for c in ColorScheme], default=ColorScheme.HISTOGRAM.label)
    parser.add_argument("--exponent", type=float, dest="multibrot_exponent", default=4.0,
                        help="exponent of the Multibrot fractal")
    parser.add_argument("--zoom", type=float, default=0.4, help="initial zoom of both axes (image mode)")
    parser.add_argument("--workers", type=int, default=None, help="threads for the parallel backend")
    parser.add_argument("--output", dest="output_filename", default=None,
                        help="write a single image here instead of opening the viewer")
    parser.add_argument("-v", "--verbose", action="store_true", help="print timings")
    return parser


def run(settings, zoom, image):
    renderer = Renderer(settings)

    if not image:
        from viewer import Viewer

        Viewer(settings, renderer).run()
        return

    start = time.perf_counter()

    camera = Camera((settings.x_resolution, settings.y_resolution))
    camera.set_zoom((zoom, zoom))
    request = RenderRequest(
        Fractal(FractalType.from_label(settings.fractal), settings.multibrot_exponent),
        ColorScheme.from_label(settings.coloring),
        camera,
        settings.max_iterations,
    )
    renderer.image(request)

    print("Calculation & render time: {}".format(time.perf_counter() - start))


def main(argv=None):
    args = build_parser().parse_args(argv)
    overrides = {key: value for key, value in vars(args).items() if key != "zoom" and value is not None}

    try:
        run(Settings(**overrides), args.zoom, image=args.output_filename is not None)
    except FractalError as exc:
        raise SystemExit(f"error: {exc}")


if __name__ == "__main__":
    main()
