"""Tests for backend selection and model variant resolution."""

from pathlib import Path

import numpy as np
import pytest

from sketchgen.errors import BackendUnavailable, InvalidConfig
from sketchgen.hardware import DeviceSimulator, LegacyPhoneProfile, MidRangePhoneProfile
from sketchgen.inference.backends import (
    Delegate,
    EngineConfig,
    ExecutionTarget,
    select_backend,
)
from sketchgen.inference.models import (
    AVAILABLE_MODELS,
    ModelVariant,
    resolve_model_path,
    tensor_dtype,
)


class TestSelectBackend:
    """Tests for select_backend."""

    def test_default_target_is_cpu(self):
        """Test CPU needs no delegate and works on any device."""
        config = select_backend(ExecutionTarget.DEFAULT, 4, LegacyPhoneProfile)
        assert config == EngineConfig(delegate=Delegate.NONE, num_threads=4)

    @pytest.mark.parametrize(
        "target, delegate",
        [
            (ExecutionTarget.ACCEL_A, Delegate.ACCEL_A),
            (ExecutionTarget.ACCEL_B, Delegate.ACCEL_B),
        ],
    )
    def test_accelerator_delegates(self, target, delegate):
        """Test accelerator targets map onto their delegate."""
        config = select_backend(target, 2, MidRangePhoneProfile)
        assert config.delegate is delegate
        assert config.num_threads == 2

    @pytest.mark.parametrize("target", [ExecutionTarget.ACCEL_A, ExecutionTarget.ACCEL_B])
    def test_unavailable_accelerator_raises(self, target):
        """Test a missing accelerator is an error, not a CPU fallback."""
        with pytest.raises(BackendUnavailable):
            select_backend(target, 2, LegacyPhoneProfile)

    def test_simulator_disabled_accelerator(self):
        """Test a simulator reporting the accelerator as gone."""
        sim = DeviceSimulator(MidRangePhoneProfile)
        sim.disable(ExecutionTarget.ACCEL_A)

        with pytest.raises(BackendUnavailable):
            select_backend(ExecutionTarget.ACCEL_A, 1, sim)

    @pytest.mark.parametrize("threads", [0, -1, -8])
    def test_non_positive_threads(self, threads):
        """Test zero or negative thread counts are rejected."""
        with pytest.raises(InvalidConfig):
            select_backend(ExecutionTarget.DEFAULT, threads, MidRangePhoneProfile)

    @pytest.mark.parametrize("threads", [2.0, "4", None, True])
    def test_non_integer_threads(self, threads):
        """Test thread counts must be real integers."""
        with pytest.raises(InvalidConfig):
            select_backend(ExecutionTarget.DEFAULT, threads, MidRangePhoneProfile)

    def test_threads_checked_before_device(self):
        """Test a bad thread count wins over a missing accelerator."""
        with pytest.raises(InvalidConfig):
            select_backend(ExecutionTarget.ACCEL_A, 0, LegacyPhoneProfile)

    def test_invalid_config_is_value_error(self):
        """Test InvalidConfig can be caught as ValueError."""
        with pytest.raises(ValueError):
            select_backend(ExecutionTarget.DEFAULT, 0, LegacyPhoneProfile)

    def test_unknown_target(self):
        """Test a non-enum target is rejected."""
        with pytest.raises(InvalidConfig):
            select_backend("gpu", 1, MidRangePhoneProfile)


class TestModelVariants:
    """Tests for model variant resolution."""

    def test_every_variant_registered(self):
        """Test each variant has a model entry."""
        assert set(AVAILABLE_MODELS) == set(ModelVariant)

    def test_paths(self):
        """Test artifact paths are distinct files in the models directory."""
        float_path = resolve_model_path(ModelVariant.FLOAT, Path("/assets"))
        quant_path = resolve_model_path(ModelVariant.QUANTIZED, Path("/assets"))

        assert float_path.parent == Path("/assets")
        assert quant_path.parent == Path("/assets")
        assert float_path != quant_path

    def test_default_models_dir(self):
        """Test the default models directory is relative."""
        assert resolve_model_path(ModelVariant.FLOAT) == Path("models") / "generator_float.pt"

    @pytest.mark.parametrize("variant", ["float", None, 0])
    def test_unknown_variant(self, variant):
        """Test non-enum variants are a config error, not a KeyError."""
        with pytest.raises(InvalidConfig):
            resolve_model_path(variant)
        with pytest.raises(InvalidConfig):
            tensor_dtype(variant)

    def test_dtypes(self):
        """Test numeric types per variant."""
        assert tensor_dtype(ModelVariant.FLOAT) == np.float32
        assert tensor_dtype(ModelVariant.QUANTIZED) == np.uint8
