"""Inference engine contract and the TorchScript implementation of it."""

import gc
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

import numpy as np
import torch

from ..errors import BackendUnavailable, InferenceError, ModelLoadError
from .backends import Delegate, EngineConfig

log = logging.getLogger(__name__)

# Name of the JSON record stored inside TorchScript archives that declares
# the input/output tensor shapes and element types.
IO_SPEC_FILE = "io_spec.json"


@dataclass(frozen=True)
class TensorShape:
    """Shape of an image tensor, NHWC."""

    batch: int
    height: int
    width: int
    channels: int

    @classmethod
    def from_dims(cls, dims: Sequence[int]) -> "TensorShape":
        """
        Build from a declared shape.

        A 3-dim ``(height, width, channels)`` shape gets an implicit batch of 1.
        """
        dims = [int(d) for d in dims]
        if len(dims) == 3:
            dims = [1] + dims
        if len(dims) != 4:
            raise ValueError(f"Expected a 3 or 4 dim image tensor shape, got {dims}")
        shape = cls(*dims)
        if shape.batch != 1:
            raise ValueError(f"Only batch size 1 is supported, got {shape.batch}")
        if shape.height <= 0 or shape.width <= 0 or shape.channels <= 0:
            raise ValueError(f"Tensor dimensions must be positive, got {dims}")
        return shape

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (self.batch, self.height, self.width, self.channels)

    @property
    def num_elements(self) -> int:
        return self.batch * self.height * self.width * self.channels


@dataclass(frozen=True)
class TensorSpec:
    """Shape and element type of one model tensor."""

    shape: TensorShape
    dtype: np.dtype

    def allocate(self) -> np.ndarray:
        """Allocate a zeroed buffer matching this spec."""
        return np.zeros(self.shape.as_tuple(), dtype=self.dtype)


class EngineHandle(ABC):
    """A loaded model ready to execute. Not thread-safe."""

    @abstractmethod
    def input_spec(self, index: int = 0) -> TensorSpec:
        """Declared shape and type of input tensor ``index``."""

    @abstractmethod
    def output_spec(self, index: int = 0) -> TensorSpec:
        """Declared shape and type of output tensor ``index``."""

    @abstractmethod
    def run(self, input_buffer: np.ndarray, output_buffer: np.ndarray) -> None:
        """
        Execute the model synchronously.

        Reads ``input_buffer`` and writes the result into ``output_buffer``
        in place.

        Raises:
            InferenceError: If execution fails. Never retried.
        """

    def close(self) -> None:
        """Release engine resources."""


class InferenceBackend(ABC):
    """Loads model artifacts into engine handles."""

    @abstractmethod
    def load(self, model_path: Path, config: EngineConfig) -> EngineHandle:
        """
        Load a model artifact with the given engine configuration.

        Raises:
            ModelLoadError: If the artifact is absent or malformed
            BackendUnavailable: If the engine cannot attach the delegate
        """

    @property
    def name(self) -> str:
        """Backend name for logging."""
        return self.__class__.__name__


def _parse_tensor_specs(entries) -> list[TensorSpec]:
    return [
        TensorSpec(
            shape=TensorShape.from_dims(entry["shape"]),
            dtype=np.dtype(entry["dtype"]),
        )
        for entry in entries
    ]


def parse_io_spec(raw) -> tuple[list[TensorSpec], list[TensorSpec]]:
    """Parse an ``io_spec.json`` payload into (inputs, outputs)."""
    if not raw:
        raise ModelLoadError(f"Model archive has no {IO_SPEC_FILE} record")

    try:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        data = json.loads(raw)
        inputs = _parse_tensor_specs(data["inputs"])
        outputs = _parse_tensor_specs(data["outputs"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ModelLoadError(f"Malformed {IO_SPEC_FILE}: {exc}") from exc

    if not inputs or not outputs:
        raise ModelLoadError(f"{IO_SPEC_FILE} must declare at least one input and output")
    return inputs, outputs


def _spec_entry(spec: TensorSpec) -> dict:
    return {"shape": list(spec.shape.as_tuple()), "dtype": np.dtype(spec.dtype).name}


def export_torchscript(
    module: torch.nn.Module,
    model_path: Path,
    inputs: Sequence[TensorSpec],
    outputs: Sequence[TensorSpec],
) -> Path:
    """Script ``module`` and save it with its ``io_spec.json`` record."""
    scripted = module if isinstance(module, torch.jit.ScriptModule) else torch.jit.script(module)
    io_spec = {
        "inputs": [_spec_entry(s) for s in inputs],
        "outputs": [_spec_entry(s) for s in outputs],
    }

    model_path = Path(model_path)
    model_path.parent.mkdir(parents=True, exist_ok=True)
    torch.jit.save(scripted, str(model_path), _extra_files={IO_SPEC_FILE: json.dumps(io_spec)})
    return model_path


def torch_device_for(delegate: Delegate) -> str:
    """Map a delegate onto the torch device that implements it."""
    if delegate is Delegate.NONE:
        return "cpu"
    if delegate is Delegate.ACCEL_B:
        if torch.cuda.is_available():
            return "cuda"
        if torch.backends.mps.is_available():
            return "mps"  # Apple Silicon
    if delegate is Delegate.ACCEL_A:
        if hasattr(torch, "xpu") and torch.xpu.is_available():
            return "xpu"
    raise BackendUnavailable(f"No torch device available for delegate {delegate.value}")


class TorchScriptHandle(EngineHandle):
    """Engine handle wrapping a loaded TorchScript module."""

    def __init__(
        self,
        module: torch.jit.ScriptModule,
        device: str,
        inputs: list[TensorSpec],
        outputs: list[TensorSpec],
    ):
        self._module: Optional[torch.jit.ScriptModule] = module
        self.device = device
        self._inputs = inputs
        self._outputs = outputs

    def input_spec(self, index: int = 0) -> TensorSpec:
        return self._inputs[index]

    def output_spec(self, index: int = 0) -> TensorSpec:
        return self._outputs[index]

    def run(self, input_buffer: np.ndarray, output_buffer: np.ndarray) -> None:
        if self._module is None:
            raise InferenceError("Engine handle has been closed")

        try:
            with torch.inference_mode():
                x = torch.from_numpy(input_buffer).to(self.device)
                y = self._module(x)
                if isinstance(y, (tuple, list)):
                    y = y[0]
                result = y.detach().cpu().numpy()
        except (RuntimeError, ValueError, AttributeError) as exc:
            raise InferenceError(f"Model execution failed: {exc}") from exc

        if result.size != output_buffer.size:
            raise InferenceError(
                f"Model produced shape {result.shape}, expected {output_buffer.shape}"
            )
        if result.dtype != output_buffer.dtype:
            raise InferenceError(
                f"Model produced dtype {result.dtype}, expected {output_buffer.dtype}"
            )
        np.copyto(output_buffer, result.reshape(output_buffer.shape))

    def close(self) -> None:
        if self._module is None:
            return
        self._module = None
        gc.collect()

        if self.device == "cuda":
            torch.cuda.empty_cache()


class TorchScriptBackend(InferenceBackend):
    """
    Loads TorchScript generator archives.

    Archives must carry an ``io_spec.json`` extra file, e.g.::

        {"inputs":  [{"shape": [1, 256, 256, 3], "dtype": "float32"}],
         "outputs": [{"shape": [1, 256, 256, 3], "dtype": "float32"}]}
    """

    def load(self, model_path: Path, config: EngineConfig) -> TorchScriptHandle:
        model_path = Path(model_path)
        if not model_path.is_file():
            raise ModelLoadError(f"Model artifact not found: {model_path}")

        device = torch_device_for(config.delegate)
        torch.set_num_threads(config.num_threads)

        extra_files = {IO_SPEC_FILE: ""}
        try:
            module = torch.jit.load(
                str(model_path),
                map_location=device,
                _extra_files=extra_files,
            )
        except (RuntimeError, ValueError, OSError) as exc:
            raise ModelLoadError(f"Cannot load model {model_path}: {exc}") from exc

        module.eval()
        inputs, outputs = parse_io_spec(extra_files[IO_SPEC_FILE])

        log.info("Loaded %s on %s", model_path.name, device)
        return TorchScriptHandle(module, device, inputs, outputs)
