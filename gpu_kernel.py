##################################
##### OpenCL GPU acceleration #####
##################################

import threading

import numpy as np
import pyopencl as cl

from errors import DeviceError
from settings import GPU_CHUNK_LEN


# host-side mirror of the Args struct below, 48 bytes without padding
ARGS_DTYPE = np.dtype([
    ("screen_size", np.uint32, 2),
    ("view_size", np.float32, 2),
    ("zoom", np.float32, 2),
    ("center_pos", np.float32, 2),
    ("max_iterations", np.uint32),
    ("selected_fractal", np.uint32),
    ("selected_color", np.uint32),
    ("multi_exponent", np.float32),
])


def pack_args(request, screen_size):
    """
    The uniform record for one frame. Camera values are narrowed to single precision here.
    """
    camera = request.camera
    exponent = request.fractal.multi_parameter

    args = np.zeros(1, dtype=ARGS_DTYPE)
    args["screen_size"] = screen_size
    args["view_size"] = camera.base_view_size
    args["zoom"] = camera.zoom
    args["center_pos"] = camera.center_pos
    args["max_iterations"] = request.max_iterations
    args["selected_fractal"] = request.fractal.kind.kernel_id
    args["selected_color"] = request.color_scheme.kernel_id
    args["multi_exponent"] = exponent if exponent is not None else 0.0
    return args


# single precision throughout, the same math as cpu_kernel.py and coloring.py
KERNEL_SOURCE = """
typedef struct {
    uint2 screen_size;
    float2 view_size;
    float2 zoom;
    float2 center_pos;
    uint max_iterations;
    uint selected_fractal;
    uint selected_color;
    float multi_exponent;
} Args;

uint to_byte(float value)
{
    if (value <= 0.0f) return 0;
    if (value >= 255.0f) return 255;
    return (uint)value;
}

uint mandelbrot(float cx, float cy, uint max_its)
{
    float q = (cx - 0.25f) * (cx - 0.25f) + cy * cy;
    if (q * (q + (cx - 0.25f)) <= 0.25f * cy * cy) return max_its;
    if ((cx + 1.0f) * (cx + 1.0f) + cy * cy <= 0.0625f) return max_its;

    float x = 0.0f, y = 0.0f, x2 = 0.0f, y2 = 0.0f;
    uint n = 0;
    while (x2 + y2 <= 4.0f && n < max_its) {
        y = 2.0f * x * y + cy;
        x = x2 - y2 + cx;
        x2 = x * x;
        y2 = y * y;
        n += 1;
    }
    return n;
}

uint multibrot(float cx, float cy, uint max_its, float exponent)
{
    float bailout = exponent * exponent;
    float x = 0.0f, y = 0.0f;
    uint n = 0;
    while (x * x + y * y <= bailout && n < max_its) {
        float r2 = x * x + y * y;
        if (r2 == 0.0f) {
            x = cx;
            y = cy;
        } else {
            float magnitude = pow(r2, exponent / 2.0f);
            float angle = exponent * atan2(y, x);
            x = magnitude * cos(angle) + cx;
            y = magnitude * sin(angle) + cy;
        }
        n += 1;
    }
    return n;
}

uint escape_time_color(uint n, uint max_its, uint scheme)
{
    float s = (float)n / (float)max_its;
    if (scheme == 1) {
        float c = cos(M_PI_F * s);
        float v = 1.0f - c * c;
        uint red = to_byte(75.0f - 75.0f * v);
        uint green = to_byte(28.0f + (75.0f - 75.0f * v));
        uint blue = to_byte(fmod(pow(360.0f * s, 1.5f), 360.0f));
        return (red << 16) | (green << 8) | blue;
    } else if (scheme == 2) {
        float a = 0.1f * (float)n;
        uint red = to_byte((0.5f * sin(a) + 0.5f) * 255.0f);
        uint green = to_byte((0.5f * sin(a + 2.094f) + 0.5f) * 255.0f);
        uint blue = to_byte((0.5f * sin(a + 4.188f) + 0.5f) * 255.0f);
        return (red << 16) | (green << 8) | blue;
    }
    return to_byte(s * 255.0f);
}

__kernel void render(__constant Args *args, __global uint *output,
                     const uint offset, const uint count)
{
    uint gid = get_global_id(0);
    if (gid >= count) return;

    uint index = offset + gid;
    uint width = args->screen_size.x;
    uint height = args->screen_size.y;
    uint x = index % width;
    uint y = (index - x) / width;

    float world_x = ((((float)x / (float)width) - 0.5f) * args->view_size.x) / args->zoom.x + args->center_pos.x;
    float world_y = ((((float)y / (float)height) - 0.5f) * args->view_size.y) / args->zoom.y + args->center_pos.y;

    uint n;
    if (args->selected_fractal == 1) {
        n = multibrot(world_x, world_y, args->max_iterations, args->multi_exponent);
    } else {
        n = mandelbrot(world_x, world_y, args->max_iterations);
    }
    output[gid] = escape_time_color(n, args->max_iterations, args->selected_color);
}
"""


class GpuContext:
    """
    Lazily created OpenCL context, queue, program and device buffers.

    Creating these is expensive, so one context is meant to live for the whole process
    (see shared_context) and be reused across frames. All methods except initialize()
    expect the caller to hold 'lock' for the whole upload + dispatch + readback.
    """

    def __init__(self, chunk_len=GPU_CHUNK_LEN):
        self.lock = threading.Lock()
        self.requested_chunk_len = chunk_len
        self.chunk_len = None
        self.ctx = None

    @property
    def initialized(self):
        return self.ctx is not None

    def initialize(self):
        if self.ctx is not None:
            return

        try:
            ctx = cl.create_some_context(interactive=False, answers=["0"])
            queue = cl.CommandQueue(ctx)
            program = cl.Program(ctx, KERNEL_SOURCE).build()

            # a dispatch can never exceed what the device lets us allocate for the output
            device_limit = min(device.max_mem_alloc_size for device in ctx.devices) // 4
            chunk_len = max(1, min(self.requested_chunk_len, device_limit))

            mf = cl.mem_flags
            args_buffer = cl.Buffer(ctx, mf.READ_ONLY, ARGS_DTYPE.itemsize)
            output_buffer = cl.Buffer(ctx, mf.WRITE_ONLY, chunk_len * 4)
            kernel = cl.Kernel(program, "render")
        except cl.Error as exc:
            raise DeviceError(f"could not set up the OpenCL device: {exc}") from exc

        self.queue = queue
        self.kernel = kernel
        self.args_buffer = args_buffer
        self.output_buffer = output_buffer
        self.chunk_len = chunk_len
        self.ctx = ctx

    def upload(self, args):
        """Write the uniform argument record for the next dispatches."""
        cl.enqueue_copy(self.queue, self.args_buffer, args)

    def dispatch(self, offset, count, host_out):
        """
        Compute pixels [offset, offset + count) and read them back into host_out,
        which must hold exactly chunk_len words.
        """
        self.kernel(self.queue, (count,), None,
                    self.args_buffer, self.output_buffer, np.uint32(offset), np.uint32(count))
        cl.enqueue_copy(self.queue, host_out, self.output_buffer).wait()


_shared_lock = threading.Lock()
_shared_context = None


def shared_context(chunk_len=GPU_CHUNK_LEN):
    """
    The process-wide context, created on first use. The device itself is only acquired
    when the first frame is rendered.
    """
    global _shared_context

    with _shared_lock:
        if _shared_context is None:
            _shared_context = GpuContext(chunk_len)
        return _shared_context
