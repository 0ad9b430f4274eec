##########################
##### Error taxonomy #####
##########################


class FractalError(Exception):
    """Base class for everything this renderer raises on purpose."""


class ConfigurationError(FractalError, ValueError):
    """
    Invalid construction parameters or an unsupported backend combination.
    Raised at the boundary, before any frame is rendered.
    """


class DeviceError(FractalError, RuntimeError):
    """OpenCL platform, device, context or program acquisition failed."""


class BufferSizeError(FractalError, ValueError):
    """The output buffer does not hold exactly width * height pixels."""
