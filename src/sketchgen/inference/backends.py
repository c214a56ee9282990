"""Execution target selection: maps a requested target onto engine options."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from ..errors import BackendUnavailable, InvalidConfig

log = logging.getLogger(__name__)


class ExecutionTarget(Enum):
    """Where the model should run."""

    DEFAULT = "cpu"
    ACCEL_A = "accel-a"  # Neural/classifier accelerator (NNAPI class)
    ACCEL_B = "accel-b"  # Mobile GPU


class Delegate(Enum):
    """Accelerator plugin attached to the engine, if any."""

    NONE = "none"
    ACCEL_A = "accel_a"
    ACCEL_B = "accel_b"


_TARGET_DELEGATES = {
    ExecutionTarget.DEFAULT: Delegate.NONE,
    ExecutionTarget.ACCEL_A: Delegate.ACCEL_A,
    ExecutionTarget.ACCEL_B: Delegate.ACCEL_B,
}


@dataclass(frozen=True)
class EngineConfig:
    """Options handed to the inference backend at load time."""

    delegate: Delegate = Delegate.NONE
    num_threads: int = 1


class AcceleratorProbe(Protocol):
    """Anything that can tell whether a target exists on the device."""

    def supports(self, target: ExecutionTarget) -> bool:
        ...


def validate_num_threads(num_threads) -> int:
    """Return ``num_threads`` if it is a positive int, else raise InvalidConfig."""
    if isinstance(num_threads, bool) or not isinstance(num_threads, int):
        raise InvalidConfig(f"Thread count must be an integer, got {num_threads!r}")
    if num_threads <= 0:
        raise InvalidConfig(f"Thread count must be positive, got {num_threads}")
    return num_threads


def select_backend(
    target: ExecutionTarget,
    num_threads: int,
    device: AcceleratorProbe,
) -> EngineConfig:
    """
    Translate an execution target into an engine configuration.

    Args:
        target: Requested execution target
        num_threads: Engine thread count, must be positive
        device: Reports which accelerators are present

    Returns:
        EngineConfig with the delegate and thread count to load with

    Raises:
        InvalidConfig: If the thread count is not a positive integer
        BackendUnavailable: If the target needs an accelerator the device lacks.
            There is no silent fallback to CPU.
    """
    num_threads = validate_num_threads(num_threads)

    if not isinstance(target, ExecutionTarget):
        raise InvalidConfig(f"Unknown execution target: {target!r}")

    delegate = _TARGET_DELEGATES[target]
    if delegate is not Delegate.NONE and not device.supports(target):
        raise BackendUnavailable(
            f"Execution target {target.name} is not available on this device"
        )

    config = EngineConfig(delegate=delegate, num_threads=num_threads)
    log.debug("Selected backend %s with %d thread(s)", delegate.value, num_threads)
    return config
