"""In-memory audio source for exercising the pipeline without a microphone."""

from __future__ import annotations
import time
from typing import Iterable, Union

import numpy as np

from .audio.sources import BufferedSource
from .core.errors import DeviceUnavailableError


class ArraySource(BufferedSource):
    """An in-memory source for unit tests. Audio is pushed in manually.

    ``open_delay`` makes ``open()`` block like a slow device negotiation.
    """

    def __init__(
        self,
        sample_rate: int = 44100,
        channels: int = 1,
        history_size: int = 8192,
        fail_open: bool = False,
        open_delay: float = 0.0,
    ) -> None:
        super().__init__(sample_rate, channels, history_size)
        self.fail_open = fail_open
        self.open_delay = open_delay
        self.open_count = 0
        self.close_count = 0

    def open(self) -> None:
        if self.open_delay > 0:
            time.sleep(self.open_delay)
        if self.fail_open:
            raise DeviceUnavailableError("Microphone access denied or unavailable")
        if self._open:
            raise DeviceUnavailableError("Source is already open")
        self._open = True
        self.open_count += 1

    def close(self) -> None:
        if self._open:
            self.close_count += 1
        self._open = False
        self.stop_tap()

    def push(self, samples: Union[np.ndarray, Iterable[float]]) -> None:
        self._push(np.asarray(samples, dtype=np.float32))

    def push_tone(self, frequency: float, duration: float, amplitude: float = 0.5) -> None:
        """Push a sine tone continuing from nothing (phase 0)."""
        t = np.arange(int(duration * self.sample_rate)) / self.sample_rate
        self.push(amplitude * np.sin(2 * np.pi * frequency * t))
