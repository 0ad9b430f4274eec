######################
##### Settings #######
######################

import math

from errors import ConfigurationError
from fractals import MAX_ITERATIONS_LIMIT, ColorScheme, FractalType


X_RESOLUTION = 960
Y_RESOLUTION = 540

# base iteration bound, scaled up for the faster backends
MAX_ITS = 64
MAX_ITS_MULTIPLIER = {"sequential": 1, "parallel": 8, "gpu": 16}

BACKENDS = ("sequential", "parallel", "gpu")

# most work items in a single OpenCL dispatch
GPU_CHUNK_LEN = 65535

MULTIBROT_EXPONENT = 4.0


class Settings:
    """
    All knobs of a render session. Attributes can be overridden with keyword arguments,
    call validate() (or let create_backend do it) before using them.

    The legacy flags 'gpu' and 'multithread' select a backend as well, they cannot both be set.
    """

    def __init__(self, **overrides):
        self.x_resolution = X_RESOLUTION
        self.y_resolution = Y_RESOLUTION
        self.max_its = None
        self.backend = None
        self.gpu = False
        self.multithread = False
        self.workers = None
        self.gpu_chunk_len = GPU_CHUNK_LEN
        self.fractal = FractalType.MANDELBROT.label
        self.coloring = ColorScheme.HISTOGRAM.label
        self.multibrot_exponent = MULTIBROT_EXPONENT
        self.show_crosshair = True
        self.show_ui = True
        self.output_filename = "fractal.png"
        self.verbose = False

        for attr, value in overrides.items():
            if not hasattr(self, attr):
                raise ConfigurationError(f"unknown setting '{attr}'")
            setattr(self, attr, value)

    @property
    def backend_name(self):
        """
        Resolve the backend from either the explicit name or the legacy flags.
        """
        if self.gpu and self.multithread:
            raise ConfigurationError("'gpu' and 'multithread' cannot be enabled at the same time")

        flagged = "gpu" if self.gpu else "parallel" if self.multithread else None
        if self.backend is None:
            return flagged or "sequential"

        if self.backend not in BACKENDS:
            raise ConfigurationError(f"unknown backend '{self.backend}', choose from {', '.join(BACKENDS)}")
        if flagged is not None and flagged != self.backend:
            raise ConfigurationError(f"backend '{self.backend}' conflicts with the '{flagged}' flag")
        return self.backend

    @property
    def max_iterations(self):
        if self.max_its is None:
            return MAX_ITS * MAX_ITS_MULTIPLIER[self.backend_name]
        return self.max_its

    def validate(self):
        """
        Check every setting, raising ConfigurationError on the first invalid one.
        """
        backend = self.backend_name

        for name in ("x_resolution", "y_resolution"):
            value = getattr(self, name)
            if not isinstance(value, int) or value <= 0:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")

        if not isinstance(self.max_iterations, int) or not 0 < self.max_iterations <= MAX_ITERATIONS_LIMIT:
            raise ConfigurationError(f"max_its must be a positive integer, got {self.max_its!r}")

        if self.workers is not None and (not isinstance(self.workers, int) or self.workers <= 0):
            raise ConfigurationError(f"workers must be a positive integer, got {self.workers!r}")

        if not isinstance(self.gpu_chunk_len, int) or self.gpu_chunk_len <= 0:
            raise ConfigurationError(f"gpu_chunk_len must be a positive integer, got {self.gpu_chunk_len!r}")

        if not math.isfinite(self.multibrot_exponent):
            raise ConfigurationError("multibrot_exponent must be finite")

        try:
            FractalType.from_label(self.fractal)
            ColorScheme.from_label(self.coloring)
        except KeyError as exc:
            raise ConfigurationError(f"unknown selection {exc}") from exc

        return backend
