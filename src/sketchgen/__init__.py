"""sketchgen - turn line drawings into generated images."""

from .bitmap import Bitmap
from .errors import (
    BackendUnavailable,
    GeneratorError,
    InferenceError,
    InvalidConfig,
    InvalidInput,
    ModelLoadError,
)
from .inference import ExecutionTarget, Generator, ModelVariant, create_generator

__version__ = "0.1.0"

__all__ = [
    "Bitmap",
    "Generator",
    "create_generator",
    "ModelVariant",
    "ExecutionTarget",
    "GeneratorError",
    "InvalidConfig",
    "BackendUnavailable",
    "ModelLoadError",
    "InvalidInput",
    "InferenceError",
]
