"""Inference pipeline module."""

from .backends import Delegate, EngineConfig, ExecutionTarget, select_backend
from .models import ModelInfo, ModelVariant, resolve_model_path, tensor_dtype
from .engine import (
    EngineHandle,
    InferenceBackend,
    TensorShape,
    TensorSpec,
    TorchScriptBackend,
)
from .processing import pack_rgb, postprocess, preprocess
from .generator import Generator, create_generator

__all__ = [
    "ExecutionTarget",
    "Delegate",
    "EngineConfig",
    "select_backend",
    "ModelVariant",
    "ModelInfo",
    "resolve_model_path",
    "tensor_dtype",
    "InferenceBackend",
    "EngineHandle",
    "TensorShape",
    "TensorSpec",
    "TorchScriptBackend",
    "preprocess",
    "postprocess",
    "pack_rgb",
    "Generator",
    "create_generator",
]
