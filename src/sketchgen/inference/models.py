"""Model variants and the artifacts they resolve to."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import numpy as np

from ..errors import InvalidConfig

DEFAULT_MODELS_DIR = Path("models")


class ModelVariant(Enum):
    """Numeric precision of the generator model."""

    FLOAT = "float"
    QUANTIZED = "quantized"


@dataclass(frozen=True)
class ModelInfo:
    """Information about a generator model artifact."""

    variant: ModelVariant
    filename: str
    dtype: np.dtype

    # Rough cost of one 256x256 pix2pix generator pass, for simulation
    compute_gflops: float = 18.0
    io_megabytes: float = 0.75


AVAILABLE_MODELS: dict[ModelVariant, ModelInfo] = {
    ModelVariant.FLOAT: ModelInfo(
        variant=ModelVariant.FLOAT,
        filename="generator_float.pt",
        dtype=np.dtype(np.float32),
        compute_gflops=18.0,
        io_megabytes=1.5,
    ),
    ModelVariant.QUANTIZED: ModelInfo(
        variant=ModelVariant.QUANTIZED,
        filename="generator_quant.pt",
        dtype=np.dtype(np.uint8),
        compute_gflops=9.0,
        io_megabytes=0.375,
    ),
}


def get_model_info(variant: ModelVariant) -> ModelInfo:
    """Registry entry for ``variant``; InvalidConfig for anything unknown."""
    if not isinstance(variant, ModelVariant):
        raise InvalidConfig(f"Unknown model variant: {variant!r}")
    return AVAILABLE_MODELS[variant]


def resolve_model_path(variant: ModelVariant, models_dir: Path = DEFAULT_MODELS_DIR) -> Path:
    """Path of the artifact for ``variant`` inside ``models_dir``."""
    return Path(models_dir) / get_model_info(variant).filename


def tensor_dtype(variant: ModelVariant) -> np.dtype:
    """Element type of the input/output buffers for ``variant``."""
    return get_model_info(variant).dtype
