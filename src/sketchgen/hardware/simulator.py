"""Device simulator: availability checks and latency bookkeeping."""

import time
from dataclasses import dataclass
from threading import Lock
from typing import Optional

import psutil

from ..inference.backends import ExecutionTarget
from ..inference.models import ModelVariant, get_model_info
from .profiles import DeviceProfile, MidRangePhoneProfile


@dataclass
class SimulationState:
    """Current state of the device simulation."""

    last_inference_ms: float = 0.0
    total_inferences: int = 0
    avg_inference_ms: float = 0.0
    last_estimate_ms: float = 0.0
    last_target: Optional[ExecutionTarget] = None


class DeviceSimulator:
    """
    Simulates a target phone while running on a development host.

    Answers "is this accelerator present?" from the profile and keeps
    running latency statistics for every inference reported to it.
    Accelerators can be switched off at runtime to emulate a device whose
    driver refuses a delegate.
    """

    def __init__(self, profile: DeviceProfile = MidRangePhoneProfile):
        self.profile = profile
        self.state = SimulationState()
        self._disabled: set[ExecutionTarget] = set()
        self._lock = Lock()

    def supports(self, target: ExecutionTarget) -> bool:
        if target in self._disabled:
            return False
        return self.profile.supports(target)

    def disable(self, target: ExecutionTarget) -> None:
        """Report ``target`` as unavailable from now on."""
        if target is ExecutionTarget.DEFAULT:
            raise ValueError("The CPU target cannot be disabled")
        self._disabled.add(target)

    def enable(self, target: ExecutionTarget) -> None:
        self._disabled.discard(target)

    def estimate_inference_time(
        self,
        variant: ModelVariant,
        target: ExecutionTarget,
        num_threads: int = 1,
    ) -> float:
        """Estimate on-device inference time in milliseconds."""
        info = get_model_info(variant)
        compute_ms = self.profile.estimate_inference_time_ms(
            info.compute_gflops, target, num_threads
        )

        # Moving input and output tensors through memory once each
        transfer_gb = info.io_megabytes * 2 / 1024
        memory_overhead_ms = (transfer_gb / self.profile.memory.bandwidth_gbps) * 1000

        return compute_ms + memory_overhead_ms

    def record_inference(
        self,
        actual_time_ms: float,
        variant: Optional[ModelVariant] = None,
        target: ExecutionTarget = ExecutionTarget.DEFAULT,
        num_threads: int = 1,
    ) -> None:
        """
        Update simulation state after an inference.

        Call this after running the actual inference on the host.
        """
        estimate = 0.0
        if variant is not None:
            estimate = self.estimate_inference_time(variant, target, num_threads)

        with self._lock:
            self.state.last_inference_ms = actual_time_ms
            self.state.last_estimate_ms = estimate
            self.state.last_target = target
            self.state.total_inferences += 1

            # Running average
            n = self.state.total_inferences
            self.state.avg_inference_ms = (
                (self.state.avg_inference_ms * (n - 1) + actual_time_ms) / n
            )

    def reset(self) -> None:
        """Reset simulation to initial state."""
        with self._lock:
            self.state = SimulationState()
            self._disabled.clear()

    def get_host_stats(self) -> dict:
        """Get actual host machine stats for comparison."""
        return {
            "host_memory_percent": psutil.virtual_memory().percent,
            "host_cpu_percent": psutil.cpu_percent(interval=0.1),
            "host_cpu_count": psutil.cpu_count(),
            "timestamp": time.time(),
        }

    def get_status_dict(self) -> dict:
        """Get complete status as dictionary."""
        return {
            "device": {
                "name": self.profile.name,
                "cpu_cores": self.profile.compute.cpu_cores,
                "targets": [t.name for t in ExecutionTarget if self.supports(t)],
            },
            "inference": {
                "last_ms": round(self.state.last_inference_ms, 1),
                "avg_ms": round(self.state.avg_inference_ms, 1),
                "estimated_device_ms": round(self.state.last_estimate_ms, 1),
                "total_count": self.state.total_inferences,
            },
        }
