"""Core components for the Intonation Coach application."""

# Import interfaces for easier access
from .interfaces import IAudioSource, IPitchEstimator
from .errors import IntonationCoachError, DeviceUnavailableError

__all__ = [
    "IAudioSource",
    "IPitchEstimator",
    "IntonationCoachError",
    "DeviceUnavailableError",
]
