"""Device profiles and simulation."""

from .profiles import (
    DeviceProfile,
    LegacyPhoneProfile,
    MidRangePhoneProfile,
    detect_host_profile,
)
from .simulator import DeviceSimulator

__all__ = [
    "DeviceProfile",
    "MidRangePhoneProfile",
    "LegacyPhoneProfile",
    "detect_host_profile",
    "DeviceSimulator",
]
