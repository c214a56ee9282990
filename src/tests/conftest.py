"""Shared fixtures: an in-memory inference backend and test drawings."""

import numpy as np
import pytest

from sketchgen.bitmap import Bitmap
from sketchgen.errors import InferenceError
from sketchgen.inference.engine import (
    EngineHandle,
    InferenceBackend,
    TensorShape,
    TensorSpec,
)


def downsample_by_two(x: np.ndarray) -> np.ndarray:
    """Fake model: take every other pixel of the input."""
    return x[:, ::2, ::2, :].copy()


class FakeHandle(EngineHandle):
    """Engine handle that applies a numpy function instead of a model."""

    def __init__(self, input_spec, output_spec, fn, fail=False):
        self._input = input_spec
        self._output = output_spec
        self.fn = fn
        self.fail = fail
        self.runs = 0
        self.closed = False

    def input_spec(self, index=0):
        return [self._input][index]

    def output_spec(self, index=0):
        return [self._output][index]

    def run(self, input_buffer, output_buffer):
        if self.fail:
            raise InferenceError("accelerator fault")
        self.runs += 1
        np.copyto(output_buffer, self.fn(input_buffer).astype(output_buffer.dtype))

    def close(self):
        self.closed = True


class FakeBackend(InferenceBackend):
    """Records every load and hands out FakeHandles."""

    def __init__(
        self,
        input_dims=(1, 32, 32, 3),
        output_dims=(1, 16, 16, 3),
        dtype=np.float32,
        output_dtype=None,
        fn=downsample_by_two,
        fail_run=False,
    ):
        self.input_spec = TensorSpec(TensorShape.from_dims(input_dims), np.dtype(dtype))
        self.output_spec = TensorSpec(
            TensorShape.from_dims(output_dims), np.dtype(output_dtype or dtype)
        )
        self.fn = fn
        self.fail_run = fail_run
        self.loads = []
        self.handles = []

    def load(self, model_path, config):
        self.loads.append((model_path, config))
        handle = FakeHandle(self.input_spec, self.output_spec, self.fn, self.fail_run)
        self.handles.append(handle)
        return handle


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def quantized_backend():
    return FakeBackend(dtype=np.uint8)


def make_bitmap(width, height, seed=0):
    """Random opaque bitmap."""
    rng = np.random.default_rng(seed)
    rgb = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
    return Bitmap.from_rgb(rgb)


@pytest.fixture
def drawing():
    return make_bitmap(64, 128)
