import itertools
import threading

import numpy as np
import pytest

from camera import Camera
from coloring import color_for
from cpu_kernel import escape_time, pixel_color
from errors import BufferSizeError, ConfigurationError, DeviceError
from fractals import ColorScheme, FractalType
from framebuffer import Color, FrameBuffer
from render import (
    GpuBackend,
    ParallelBackend,
    Renderer,
    SequentialBackend,
    create_backend,
    kernel_args,
)
from settings import Settings


class FakeContext:
    """Stands in for the OpenCL context, computing pixels with the CPU kernel."""

    def __init__(self, chunk_len, fail=False):
        self.lock = threading.Lock()
        self.chunk_len = chunk_len
        self.fail = fail
        self.initialize_calls = 0
        self.dispatches = []
        self.targets = []
        self.args = None

    def initialize(self):
        self.initialize_calls += 1
        if self.fail:
            raise DeviceError("no adapter")

    def upload(self, args):
        assert self.lock.locked()
        self.args = args

    def dispatch(self, offset, count, host_out):
        assert self.lock.locked()
        assert host_out.size == self.chunk_len
        self.dispatches.append((offset, count))
        self.targets.append(host_out)
        for i in range(count):
            host_out[i] = pixel_color(offset + i, *self.kernel_args)


def fake_gpu(request, screen_size, chunk_len):
    context = FakeContext(chunk_len)
    context.kernel_args = kernel_args(request, screen_size)
    return context


def zoomed_camera(size):
    camera = Camera(size)
    camera.set_center_pos((-0.6, 0.2))
    camera.set_zoom((1.7, 1.4))
    return camera


@pytest.mark.parametrize("fractal, scheme", itertools.product(list(FractalType), list(ColorScheme)))
def test_sequential_and_parallel_are_identical(make_request, fractal, scheme):
    size = (64, 48)
    request = make_request(fractal, scheme, camera=zoomed_camera(size), max_iterations=80)

    sequential = SequentialBackend().render(request, size)
    parallel = ParallelBackend().render(request, size)

    assert sequential.raw().tobytes() == parallel.raw().tobytes()


@pytest.mark.parametrize("fractal, scheme", [
    (FractalType.MANDELBROT, ColorScheme.HISTOGRAM),
    (FractalType.MANDELBROT, ColorScheme.OLC),
    (FractalType.MULTIBROT, ColorScheme.LCH),
])
def test_frame_matches_per_pixel_pipeline(make_request, fractal, scheme):
    size = (16, 12)
    camera = zoomed_camera(size)
    request = make_request(fractal, scheme, camera=camera, max_iterations=50, exponent=3.0)

    buffer = SequentialBackend().render(request, size)

    for index in range(size[0] * size[1]):
        pos = buffer.index_to_pos(index)
        world = camera.screen_to_world(pos, size)
        expected = color_for(escape_time(world, 50, request.fractal), 50, scheme)
        assert buffer[pos] == expected


def test_parallel_with_explicit_workers(make_request):
    request = make_request(max_iterations=30)
    expected = SequentialBackend().render(request, (20, 10)).raw()
    assert np.array_equal(ParallelBackend(workers=1).render(request, (20, 10)).raw(), expected)


def test_parallel_rejects_invalid_worker_counts():
    with pytest.raises(ConfigurationError):
        ParallelBackend(workers=0)


def test_render_frame_fills_the_given_buffer(make_request):
    buffer = FrameBuffer((8, 6))
    request = make_request(screen_size=(8, 6))
    result = SequentialBackend().render_frame(request, buffer)

    assert result is buffer
    # the origin sits in the middle of the screen and never escapes
    assert buffer[4, 3] == Color(0, 0, 255)


def test_buffer_size_mismatch_is_rejected_before_rendering(make_request):
    out = np.full(10, 7, dtype=np.uint32)
    with pytest.raises(BufferSizeError):
        SequentialBackend().render_into(make_request(), out, (4, 3))
    assert (out == 7).all()

    with pytest.raises(BufferSizeError):
        SequentialBackend().render_into(make_request(), np.zeros(12, dtype=np.float64), (4, 3))

    with pytest.raises(ConfigurationError):
        SequentialBackend().render_into(make_request(), out, (0, 3))


def test_render_rejects_empty_screens(make_request):
    with pytest.raises(ConfigurationError):
        SequentialBackend().render(make_request(), (0, 10))


def test_resize_keeps_corresponding_pixels(make_request):
    camera = Camera((40, 30))
    small = SequentialBackend().render(make_request(camera=camera), (40, 30))

    camera.resize((80, 60))
    large = SequentialBackend().render(make_request(camera=camera), (80, 60))

    for y in range(30):
        for x in range(40):
            assert large[2 * x, 2 * y] == small[x, y]


@pytest.mark.parametrize("size, chunk_len", [((37, 23), 100), ((10, 10), 50), ((5, 3), 64)])
def test_gpu_backend_dispatches_in_chunks(make_request, size, chunk_len):
    request = make_request(FractalType.MULTIBROT, ColorScheme.LCH, camera=zoomed_camera(size), exponent=3.0)
    context = fake_gpu(request, size, chunk_len)

    buffer = GpuBackend(context).render(request, size)

    total = size[0] * size[1]
    full = total // chunk_len * chunk_len
    expected_dispatches = [(start, chunk_len) for start in range(0, full, chunk_len)]
    if full < total:
        expected_dispatches.append((full, total - full))

    assert context.dispatches == expected_dispatches
    assert np.array_equal(buffer.raw(), SequentialBackend().render(request, size).raw())
    assert not context.lock.locked()


def test_gpu_backend_reuses_the_scratch_buffer(make_request):
    size = (9, 7)
    request = make_request(screen_size=size)
    context = fake_gpu(request, size, 10)
    backend = GpuBackend(context)

    backend.render(request, size)
    backend.render(request, size)

    assert context.targets[-1] is context.targets[6]
    assert context.initialize_calls == 2


def test_gpu_uniform_record(make_request):
    import gpu_kernel

    camera = zoomed_camera((30, 20))
    request = make_request(FractalType.MULTIBROT, ColorScheme.OLC, camera=camera, max_iterations=99, exponent=2.5)
    args = gpu_kernel.pack_args(request, (30, 20))

    assert gpu_kernel.ARGS_DTYPE.itemsize == 48
    assert tuple(args["screen_size"][0]) == (30, 20)
    assert args["zoom"][0] == pytest.approx((1.7, 1.4))
    assert args["center_pos"][0] == pytest.approx((-0.6, 0.2))
    assert args["view_size"][0] == pytest.approx((1.5, 1.0))
    assert args["max_iterations"][0] == 99
    assert args["selected_fractal"][0] == 1
    assert args["selected_color"][0] == 2
    assert args["multi_exponent"][0] == pytest.approx(2.5)

    mandelbrot = gpu_kernel.pack_args(make_request(), (64, 48))
    assert mandelbrot["multi_exponent"][0] == 0.0


def test_device_failure_is_surfaced_and_buffer_left_alone(make_request):
    context = FakeContext(16, fail=True)
    buffer = FrameBuffer((4, 4))

    with pytest.raises(DeviceError):
        GpuBackend(context).render_frame(make_request(screen_size=(4, 4)), buffer)

    assert context.initialize_calls == 1
    assert context.dispatches == []
    assert (buffer.data == Color.WHITE.value).all()
    assert not context.lock.locked()


def test_create_backend_follows_settings():
    assert isinstance(create_backend(), SequentialBackend)
    assert isinstance(create_backend(Settings(multithread=True)), ParallelBackend)
    assert isinstance(create_backend(Settings(backend="parallel", workers=1)), ParallelBackend)

    context = FakeContext(8)
    backend = create_backend(Settings(gpu=True), gpu_context=context)
    assert isinstance(backend, GpuBackend)
    assert backend.context is context


def test_create_backend_rejects_conflicting_settings():
    with pytest.raises(ConfigurationError):
        create_backend(Settings(gpu=True, multithread=True))
    with pytest.raises(ConfigurationError):
        create_backend(Settings(backend="vulkan"))


def test_renderer_reports_timings(make_request, capsys):
    renderer = Renderer(Settings(verbose=True))
    buffer = renderer.frame(make_request(), (8, 6))

    assert buffer.size == (8, 6)
    assert renderer.last_frame_time >= 0.0
    assert "Calculation time (sequential)" in capsys.readouterr().out


def test_renderer_is_quiet_by_default(make_request, capsys):
    Renderer().frame(make_request(), (8, 6))
    assert capsys.readouterr().out == ""


def test_renderer_saves_images(make_request, tmp_path):
    output = tmp_path / "frame.png"
    renderer = Renderer(Settings(x_resolution=12, y_resolution=8))

    buffer = renderer.image(make_request(), str(output))

    assert output.exists()
    assert buffer.size == (12, 8)
