"""Error types raised by the generation pipeline."""


class GeneratorError(Exception):
    """Base class for every error surfaced by sketchgen."""


class InvalidConfig(GeneratorError, ValueError):
    """Bad construction parameters, e.g. a non-positive thread count."""


class BackendUnavailable(GeneratorError):
    """The requested accelerator is not present on this device."""


class ModelLoadError(GeneratorError):
    """The model artifact is missing, corrupt or declares unusable tensors."""


class InvalidInput(GeneratorError, ValueError):
    """The input bitmap is malformed (e.g. a zero dimension)."""


class InferenceError(GeneratorError):
    """The engine failed while executing the model."""
