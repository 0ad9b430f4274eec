import os
import time
from abc import ABC, abstractmethod

import numba
import numpy as np
from matplotlib import pyplot as plt

import gpu_kernel
from cpu_kernel import render_parallel, render_sequential
from errors import BufferSizeError, ConfigurationError
from framebuffer import FrameBuffer
from settings import Settings


##########################
## Backends ##############
##########################

class Backend(ABC):
    """
    One way of computing a full frame. Every backend evaluates the same per-pixel
    pipeline (camera -> escape time -> color), they only differ in where it runs.
    """

    name = None

    def render(self, request, screen_size):
        """Render into a fresh FrameBuffer of the given size."""
        return self.render_frame(request, FrameBuffer(screen_size))

    def render_frame(self, request, buffer):
        self.render_into(request, buffer.data, buffer.size)
        return buffer

    def render_into(self, request, out, screen_size):
        """
        Fill the flat uint32 array 'out' with the frame. Sizes are checked before anything
        is computed and 'out' is only written once the whole frame is done, so a failed
        render leaves it untouched.
        """
        width, height = screen_size
        if width <= 0 or height <= 0:
            raise ConfigurationError(f"screen size must be positive, got {screen_size!r}")
        if out.ndim != 1 or out.size != width * height:
            raise BufferSizeError(f"output buffer holds {out.size} pixels, expected {width} x {height} = {width * height}")
        if out.dtype != np.uint32:
            raise BufferSizeError(f"output buffer must be uint32, got {out.dtype}")

        out[:] = self._compute(request, (int(width), int(height)))
        return out

    @abstractmethod
    def _compute(self, request, screen_size):
        """Return a new flat uint32 array with all width * height pixels."""


def kernel_args(request, screen_size):
    """Flattened camera + selection arguments of the CPU frame kernels."""
    camera = request.camera
    exponent = request.fractal.multi_parameter
    return (
        screen_size[0], screen_size[1],
        camera.base_view_size[0], camera.base_view_size[1],
        camera.zoom[0], camera.zoom[1],
        camera.center_pos[0], camera.center_pos[1],
        request.max_iterations,
        request.fractal.kind.kernel_id,
        float(exponent) if exponent is not None else 0.0,
        request.color_scheme.kernel_id,
    )


class SequentialBackend(Backend):
    """Single thread, row-major. The reference every other backend is checked against."""

    name = "sequential"

    def _compute(self, request, screen_size):
        out = np.empty(screen_size[0] * screen_size[1], dtype=np.uint32)
        render_sequential(out, *kernel_args(request, screen_size))
        return out


class ParallelBackend(Backend):
    """Pixel indices spread over numba's worker pool, identical output to SequentialBackend."""

    name = "parallel"

    def __init__(self, workers=None):
        if workers is not None and not 0 < workers <= numba.config.NUMBA_NUM_THREADS:
            raise ConfigurationError(
                f"workers must be between 1 and {numba.config.NUMBA_NUM_THREADS}, got {workers}"
            )
        self.workers = workers

    def _compute(self, request, screen_size):
        if self.workers is not None:
            numba.set_num_threads(self.workers)

        out = np.empty(screen_size[0] * screen_size[1], dtype=np.uint32)
        render_parallel(out, *kernel_args(request, screen_size))
        return out


class GpuBackend(Backend):
    """
    OpenCL compute, one work item per pixel. Frames larger than the context's chunk length are
    dispatched chunk by chunk; the last partial chunk goes through a reusable scratch buffer
    of a full chunk length.

    Single precision, so results match the CPU backends within a tolerance only.
    """

    name = "gpu"

    def __init__(self, context):
        self.context = context
        self._scratch = None

    def _compute(self, request, screen_size):
        total = screen_size[0] * screen_size[1]
        result = np.empty(total, dtype=np.uint32)

        with self.context.lock:
            self.context.initialize()
            chunk_len = self.context.chunk_len
            self.context.upload(gpu_kernel.pack_args(request, screen_size))

            full = (total // chunk_len) * chunk_len
            for start in range(0, full, chunk_len):
                self.context.dispatch(start, chunk_len, result[start:start + chunk_len])

            remainder = total - full
            if remainder:
                if self._scratch is None or self._scratch.size != chunk_len:
                    self._scratch = np.full(chunk_len, np.iinfo(np.uint32).max, dtype=np.uint32)
                self.context.dispatch(full, remainder, self._scratch)
                result[full:] = self._scratch[:remainder]

        return result


def create_backend(settings=None, gpu_context=None):
    """
    Build the backend the settings ask for. Invalid or conflicting settings raise
    ConfigurationError here, before any frame is rendered.
    """
    settings = settings or Settings()
    name = settings.validate()

    if name == "gpu":
        return GpuBackend(gpu_context or gpu_kernel.shared_context(settings.gpu_chunk_len))
    elif name == "parallel":
        return ParallelBackend(settings.workers)
    return SequentialBackend()


#########################
## Render class #########
#########################

class Renderer:
    """
    Frame entry point: wraps a backend, times every frame and optionally saves images.
    """

    def __init__(self, settings=None, backend=None):
        self.settings = settings or Settings()
        self.backend = backend or create_backend(self.settings)
        self.last_frame_time = 0.0
        self.total_calculation_time = 0.0

    def frame(self, request, screen_size):
        t_0 = time.perf_counter()

        buffer = self.backend.render(request, screen_size)

        # record the calculation time
        self.last_frame_time = time.perf_counter() - t_0
        self.total_calculation_time += self.last_frame_time
        if self.settings.verbose:
            print(f"Calculation time ({self.backend.name}): {self.last_frame_time:.3f} s")

        return buffer

    def image(self, request, output_path=None):
        """
        Render one frame at the configured resolution and save it with matplotlib.
        """
        buffer = self.frame(request, (self.settings.x_resolution, self.settings.y_resolution))

        output_path = output_path or self.settings.output_filename
        if os.path.exists(output_path):
            os.remove(output_path)

        plt.imsave(output_path, buffer.as_image())
        if self.settings.verbose:
            print(f"Saved {output_path}")
        return buffer
