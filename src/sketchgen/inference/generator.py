"""Generator facade: drawing in, generated image out."""

import logging
import time
from pathlib import Path
from typing import Optional

import numpy as np
from PIL import Image

from ..bitmap import Bitmap
from ..errors import InferenceError, ModelLoadError
from ..hardware.profiles import detect_host_profile
from ..hardware.simulator import DeviceSimulator
from .backends import AcceleratorProbe, ExecutionTarget, select_backend, validate_num_threads
from .engine import EngineHandle, InferenceBackend, TorchScriptBackend
from .models import (
    DEFAULT_MODELS_DIR,
    ModelVariant,
    get_model_info,
    resolve_model_path,
    tensor_dtype,
)
from .processing import RGB_CHANNELS, postprocess, preprocess

log = logging.getLogger(__name__)

DEFAULT_NUM_THREADS = 4

INPUT_TENSOR_INDEX = 0
OUTPUT_TENSOR_INDEX = 0


class Generator:
    """
    Runs an image-to-image generator model on line drawings.

    Owns the engine handle and one input and one output buffer, both
    allocated at construction and overwritten by every ``generate`` call.
    Not thread-safe: at most one ``generate`` call may be in flight per
    instance. Use one instance per concurrent caller or an external lock.
    """

    def __init__(
        self,
        variant: ModelVariant,
        target: ExecutionTarget = ExecutionTarget.DEFAULT,
        num_threads: int = DEFAULT_NUM_THREADS,
        models_dir: Path = DEFAULT_MODELS_DIR,
        backend: Optional[InferenceBackend] = None,
        device: Optional[AcceleratorProbe] = None,
        simulator: Optional[DeviceSimulator] = None,
    ):
        # Nothing is allocated until the configuration is known to be valid
        validate_num_threads(num_threads)
        get_model_info(variant)

        self.variant = variant
        self.target = target
        self.num_threads = num_threads
        self.simulator = simulator

        if device is None:
            device = simulator if simulator is not None else detect_host_profile()
        self.config = select_backend(target, num_threads, device)

        self.model_path = resolve_model_path(variant, models_dir)
        self.backend = backend or TorchScriptBackend()

        log.debug("Loading %s with %s", self.model_path, self.backend.name)
        self._handle: Optional[EngineHandle] = self.backend.load(self.model_path, self.config)

        try:
            self.input_spec = self._handle.input_spec(INPUT_TENSOR_INDEX)
            self.output_spec = self._handle.output_spec(OUTPUT_TENSOR_INDEX)
            self._check_specs()
        except ModelLoadError:
            self.close()
            raise
        except (IndexError, ValueError) as exc:
            self.close()
            raise ModelLoadError(f"Unusable tensor declaration: {exc}") from exc

        self._input_buffer = self.input_spec.allocate()
        self._output_buffer = self.output_spec.allocate()

        log.debug(
            "Generator ready: input %s %s, output %s %s",
            self.input_spec.shape.as_tuple(), self.input_spec.dtype,
            self.output_spec.shape.as_tuple(), self.output_spec.dtype,
        )

    def _check_specs(self) -> None:
        expected = tensor_dtype(self.variant)
        for label, spec in (("input", self.input_spec), ("output", self.output_spec)):
            if spec.dtype != expected:
                raise ModelLoadError(
                    f"{self.variant.name} model declares {label} dtype {spec.dtype}, "
                    f"expected {expected}"
                )
            if spec.shape.channels != RGB_CHANNELS:
                raise ModelLoadError(
                    f"Model {label} must have {RGB_CHANNELS} channels, "
                    f"got {spec.shape.channels}"
                )

    @property
    def input_size(self) -> tuple[int, int]:
        """(width, height) of the model input."""
        return self.input_spec.shape.width, self.input_spec.shape.height

    @property
    def output_size(self) -> tuple[int, int]:
        """(width, height) of every generated bitmap."""
        return self.output_spec.shape.width, self.output_spec.shape.height

    @property
    def is_closed(self) -> bool:
        return self._handle is None

    def generate(self, drawing: Bitmap) -> Bitmap:
        """
        Generate an image from a drawing.

        Args:
            drawing: Input bitmap of any positive size

        Returns:
            A new bitmap of exactly ``output_size``

        Raises:
            InvalidInput: If the drawing has a non-positive dimension
            InferenceError: If the engine fails or the generator is closed
        """
        if self._handle is None:
            raise InferenceError("Generator has been closed")

        width, height = self.input_size
        preprocess(drawing, width, height, self.input_spec.dtype, out=self._input_buffer)

        start_time = time.perf_counter()
        self._handle.run(self._input_buffer, self._output_buffer)
        inference_ms = (time.perf_counter() - start_time) * 1000
        log.debug("Inference spent %.1fms", inference_ms)

        if self.simulator is not None:
            self.simulator.record_inference(
                inference_ms, self.variant, self.target, self.num_threads
            )

        return postprocess(self._output_buffer, self.output_spec.shape)

    def generate_image(self, drawing: Image.Image) -> Image.Image:
        """PIL convenience wrapper around :meth:`generate`."""
        return self.generate(Bitmap.from_image(drawing)).to_image()

    def close(self) -> None:
        """Release the engine handle. Safe to call more than once."""
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> "Generator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def get_status(self) -> dict:
        """Get generator status."""
        return {
            "variant": self.variant.value,
            "target": self.target.value,
            "num_threads": self.num_threads,
            "model_path": str(self.model_path),
            "input_shape": self.input_spec.shape.as_tuple(),
            "output_shape": self.output_spec.shape.as_tuple(),
            "dtype": np.dtype(self.input_spec.dtype).name,
            "closed": self.is_closed,
        }


def create_generator(
    variant: ModelVariant,
    target: ExecutionTarget = ExecutionTarget.DEFAULT,
    num_threads: int = DEFAULT_NUM_THREADS,
    **kwargs,
) -> Generator:
    """
    Create a generator with the provided configuration.

    Args:
        variant: Model precision to use
        target: Device to run on
        num_threads: Engine thread count
        **kwargs: Passed through to :class:`Generator`

    Returns:
        A ready Generator
    """
    return Generator(variant, target, num_threads, **kwargs)
