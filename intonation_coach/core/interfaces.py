"""Defines the core interfaces for the Intonation Coach application."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional, Tuple

import numpy as np

from ..note_types import DetectedPitch


class IAudioSource(ABC):
    """Interface for capture devices feeding the analysis pipeline."""

    @abstractmethod
    def open(self) -> None:
        """Open the device exclusively.

        Raises:
            DeviceUnavailableError: If the device cannot be opened
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the device. Safe to call when not open."""
        pass

    @abstractmethod
    def is_open(self) -> bool:
        """Check if the device is open."""
        pass

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        """The sample rate of the audio stream."""
        pass

    @property
    @abstractmethod
    def channels(self) -> int:
        """The number of channels delivered to the recorder tap."""
        pass

    @abstractmethod
    def read_window(self, out: np.ndarray) -> None:
        """Copy the most recent len(out) mono samples into out."""
        pass

    @abstractmethod
    def start_tap(self) -> None:
        """Start accumulating every incoming block for the recorder."""
        pass

    @abstractmethod
    def read_tap(self) -> Optional[np.ndarray]:
        """Return the samples accumulated since the last read, or None."""
        pass

    @abstractmethod
    def stop_tap(self) -> None:
        """Stop accumulating and drop anything not yet read."""
        pass


class IPitchEstimator(ABC):
    """Interface for single-window pitch estimation algorithms."""

    @abstractmethod
    def find_pitch(self, window: np.ndarray) -> Tuple[float, float]:
        """Return (frequency, clarity) for one window of samples."""
        pass

    @abstractmethod
    def detect(self, window: np.ndarray) -> Optional[DetectedPitch]:
        """Return a detected pitch, or None if the window holds no usable pitch."""
        pass
