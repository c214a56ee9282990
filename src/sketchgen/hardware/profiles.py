"""Device profiles describing which execution targets a device offers."""

import platform
from dataclasses import dataclass, field

import psutil
import torch

from ..inference.backends import ExecutionTarget


@dataclass
class ComputeProfile:
    """Compute specifications."""

    cpu_cores: int = 8
    cpu_gflops_per_core: float = 6.0
    has_neural_accelerator: bool = False   # ACCEL_A, e.g. an NNAPI NPU/DSP
    neural_accelerator_gflops: float = 0.0
    has_gpu: bool = False                  # ACCEL_B
    gpu_gflops: float = 0.0
    cpu_type: str = "generic"


@dataclass
class MemoryProfile:
    """Memory specifications."""

    total_gb: float = 8.0
    bandwidth_gbps: float = 25.0


@dataclass
class DeviceProfile:
    """Complete device profile used for backend selection and simulation."""

    name: str = "Generic"
    compute: ComputeProfile = field(default_factory=ComputeProfile)
    memory: MemoryProfile = field(default_factory=MemoryProfile)

    def supports(self, target: ExecutionTarget) -> bool:
        """Whether the device can run the given execution target."""
        if target is ExecutionTarget.ACCEL_A:
            return self.compute.has_neural_accelerator
        if target is ExecutionTarget.ACCEL_B:
            return self.compute.has_gpu
        return True

    def available_targets(self) -> list[ExecutionTarget]:
        return [t for t in ExecutionTarget if self.supports(t)]

    def effective_gflops(self, target: ExecutionTarget, num_threads: int) -> float:
        """Sustained throughput for a target; CPU scales with usable threads."""
        if target is ExecutionTarget.ACCEL_A:
            return self.compute.neural_accelerator_gflops
        if target is ExecutionTarget.ACCEL_B:
            return self.compute.gpu_gflops
        threads = max(1, min(num_threads, self.compute.cpu_cores))
        return self.compute.cpu_gflops_per_core * threads

    def estimate_inference_time_ms(
        self,
        model_gflops: float,
        target: ExecutionTarget,
        num_threads: int = 1,
    ) -> float:
        """Estimate one inference for a model needing ``model_gflops``."""
        throughput = self.effective_gflops(target, num_threads)
        if throughput <= 0:
            return float("inf")
        efficiency = 0.6  # Memory stalls, dispatch overhead, etc.
        return (model_gflops / (throughput * efficiency)) * 1000


# Pre-configured phone profiles
MidRangePhoneProfile = DeviceProfile(
    name="Mid-range Android phone (NPU + GPU)",
    compute=ComputeProfile(
        cpu_cores=8,
        cpu_gflops_per_core=8.0,
        has_neural_accelerator=True,
        neural_accelerator_gflops=250.0,
        has_gpu=True,
        gpu_gflops=180.0,
        cpu_type="ARM Cortex-A78",
    ),
    memory=MemoryProfile(total_gb=8.0, bandwidth_gbps=34.0),
)

LegacyPhoneProfile = DeviceProfile(
    name="Legacy Android phone (CPU only)",
    compute=ComputeProfile(
        cpu_cores=4,
        cpu_gflops_per_core=3.0,
        cpu_type="ARM Cortex-A53",
    ),
    memory=MemoryProfile(total_gb=2.0, bandwidth_gbps=12.8),
)


def detect_host_profile() -> DeviceProfile:
    """Build a profile for the machine we are running on."""
    has_gpu = torch.cuda.is_available() or torch.backends.mps.is_available()
    has_xpu = hasattr(torch, "xpu") and torch.xpu.is_available()

    return DeviceProfile(
        name=f"Host ({platform.machine() or 'unknown'})",
        compute=ComputeProfile(
            cpu_cores=psutil.cpu_count(logical=False) or psutil.cpu_count() or 1,
            cpu_gflops_per_core=20.0,
            has_neural_accelerator=has_xpu,
            neural_accelerator_gflops=500.0 if has_xpu else 0.0,
            has_gpu=has_gpu,
            gpu_gflops=2000.0 if has_gpu else 0.0,
            cpu_type=platform.processor() or "unknown",
        ),
        memory=MemoryProfile(
            total_gb=psutil.virtual_memory().total / (1024**3),
        ),
    )
