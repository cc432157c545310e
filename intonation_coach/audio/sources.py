"""Audio sources feeding the capture pipeline."""

from __future__ import annotations
import threading
import time
from collections import deque
from typing import Any, ClassVar, Deque, Dict, Optional, Tuple

import numpy as np
import soundfile as sf

from ..logger import get_logger
from ..core.errors import DeviceUnavailableError
from ..core.interfaces import IAudioSource

logger = get_logger(__name__)


def load_sounddevice():
    """Import sounddevice, which needs the PortAudio shared library at import time."""
    try:
        import sounddevice
    except OSError as e:
        raise DeviceUnavailableError(f"PortAudio library not available: {e}") from e
    return sounddevice


class BufferedSource(IAudioSource):
    """Base class keeping the latest samples in a lock-protected ring buffer.

    The producer side (an audio backend thread) calls ``_push``; the event
    loop side only ever copies out of the buffers.
    """

    # Upper bound on samples queued for the recorder between two reads
    MAX_TAP_SECONDS: ClassVar[float] = 5.0

    def __init__(self, sample_rate: int, channels: int = 1, history_size: int = 8192) -> None:
        self._sample_rate = sample_rate
        self._channels = channels
        self._history_size = history_size
        self._lock = threading.Lock()
        self._ring = np.zeros(history_size, dtype=np.float32)
        self._write_pos = 0
        self._filled = 0
        self._tapping = False
        self._tap: Deque[np.ndarray] = deque()
        self._tap_frames = 0
        self._open = False

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def channels(self) -> int:
        return self._channels

    def is_open(self) -> bool:
        return self._open

    def _reset_buffers(self) -> None:
        with self._lock:
            self._ring[:] = 0.0
            self._write_pos = 0
            self._filled = 0
            self._tap.clear()
            self._tap_frames = 0

    def _push(self, block: np.ndarray) -> None:
        """Append a (frames x channels) or mono block."""
        frames = np.asarray(block, dtype=np.float32)
        if frames.ndim == 1:
            frames = frames.reshape(-1, 1)
        mono = frames[:, 0]

        with self._lock:
            n = len(mono)
            if n >= self._history_size:
                self._ring[:] = mono[-self._history_size :]
                self._write_pos = 0
            else:
                end = self._write_pos + n
                if end <= self._history_size:
                    self._ring[self._write_pos : end] = mono
                else:
                    split = self._history_size - self._write_pos
                    self._ring[self._write_pos :] = mono[:split]
                    self._ring[: n - split] = mono[split:]
                self._write_pos = end % self._history_size
            self._filled = min(self._history_size, self._filled + n)

            if self._tapping:
                self._tap.append(frames[:, : self._channels].copy())
                self._tap_frames += len(frames)
                limit = int(self.MAX_TAP_SECONDS * self._sample_rate)
                while self._tap_frames > limit and self._tap:
                    dropped = self._tap.popleft()
                    self._tap_frames -= len(dropped)

    def read_window(self, out: np.ndarray) -> None:
        size = len(out)
        with self._lock:
            available = min(size, self._filled, self._history_size)
            out[: size - available] = 0.0
            if available == 0:
                return
            start = (self._write_pos - available) % self._history_size
            end = start + available
            if end <= self._history_size:
                out[size - available :] = self._ring[start:end]
            else:
                split = self._history_size - start
                out[size - available : size - available + split] = self._ring[start:]
                out[size - available + split :] = self._ring[: available - split]

    def start_tap(self) -> None:
        with self._lock:
            self._tap.clear()
            self._tap_frames = 0
            self._tapping = True

    def read_tap(self) -> Optional[np.ndarray]:
        with self._lock:
            if not self._tap:
                return None
            blocks = list(self._tap)
            self._tap.clear()
            self._tap_frames = 0
        return np.concatenate(blocks, axis=0)

    def stop_tap(self) -> None:
        with self._lock:
            self._tapping = False
            self._tap.clear()
            self._tap_frames = 0


class SoundDeviceSource(BufferedSource):
    """Microphone input using the sounddevice library."""

    SAMPLE_RATE: ClassVar[int] = 44100  # Hz
    FRAMES_PER_BUFFER: ClassVar[int] = 512
    CHANNELS: ClassVar[int] = 1  # Mono audio

    def __init__(
        self,
        device_id: Optional[int] = None,
        sample_rate: Optional[int] = None,
        frames_per_buffer: Optional[int] = None,
        channels: Optional[int] = None,
        history_size: int = 8192,
    ) -> None:
        """Initialize the microphone source.

        Args:
            device_id: Audio input device ID, or None for the default input
            sample_rate: Preferred sample rate in Hz, or None for default (44100)
            frames_per_buffer: Block size in frames, or None for default (512)
            channels: Number of audio channels, or None for default (1)
            history_size: Samples kept for window reads
        """
        super().__init__(
            sample_rate or self.SAMPLE_RATE,
            channels or self.CHANNELS,
            history_size,
        )
        self._device_id = device_id
        self._frames_per_buffer = frames_per_buffer or self.FRAMES_PER_BUFFER
        self._stream = None

    @staticmethod
    def list_input_devices() -> list:
        """Return (device_id, info) pairs for every device with input channels."""
        sd = load_sounddevice()
        devices = sd.query_devices()
        return [
            (device_id, device)
            for device_id, device in enumerate(devices)
            if device["max_input_channels"] > 0
        ]

    def _candidate_rates(self) -> list:
        # Common supported sample rates, requested rate first
        rates = [44100, 48000, 22050, 16000]
        if self._sample_rate in rates:
            rates.remove(self._sample_rate)
        rates.insert(0, self._sample_rate)
        return rates

    def _find_device(self) -> Tuple[Optional[int], Optional[Dict[str, Any]]]:
        sd = load_sounddevice()
        try:
            device = sd.query_devices(self._device_id, "input")
        except (ValueError, sd.PortAudioError) as e:
            raise DeviceUnavailableError(f"No usable input device: {e}") from e
        return self._device_id, device

    def _audio_callback(
        self,
        indata: np.ndarray,
        _frames: int,
        _time_info: dict,
        status: Any,
    ) -> None:
        """Callback for processing audio data from the input stream.

        Note:
            This is called from a separate audio thread, so it only copies
            the block into the ring buffer.
        """
        if status:
            logger.warning(f"Audio callback status: {status}")
        self._push(indata)

    def open(self) -> None:
        if self._open:
            raise DeviceUnavailableError("Input device is already open")

        sd = load_sounddevice()
        device_id, device = self._find_device()
        logger.info(f"Opening input device: {device['name']}")
        self._reset_buffers()

        last_error: Optional[Exception] = None
        for rate in self._candidate_rates():
            try:
                sd.check_input_settings(
                    device=device_id, channels=self._channels, samplerate=rate
                )
                self._stream = sd.InputStream(
                    device=device_id,
                    samplerate=rate,
                    blocksize=self._frames_per_buffer,
                    channels=self._channels,
                    dtype="float32",
                    callback=self._audio_callback,
                )
                self._stream.start()
            except (ValueError, sd.PortAudioError) as e:
                logger.warning(f"Sample rate {rate} Hz not supported: {e}")
                last_error = e
                if self._stream is not None:
                    self._stream.close()
                    self._stream = None
                continue

            self._sample_rate = rate
            self._open = True
            logger.info(f"Audio input started: ID={device_id}, Rate={rate}Hz")
            return

        logger.error("Could not start audio input with any sample rate")
        raise DeviceUnavailableError(
            "Microphone access denied or unavailable"
        ) from last_error

    def close(self) -> None:
        if self._stream is not None:
            sd = load_sounddevice()
            try:
                self._stream.stop()
                self._stream.close()
            except sd.PortAudioError as e:
                logger.error(f"Error stopping audio input: {e}")
            self._stream = None
        if self._open:
            logger.info("Audio input stopped")
        self._open = False
        self.stop_tap()


class WavFileSource(BufferedSource):
    """Plays a sound file into the pipeline at real-time speed."""

    def __init__(
        self,
        file_path: str,
        chunk_size: int = 512,
        loop: bool = False,
        gain: float = 1.0,
        history_size: int = 8192,
    ) -> None:
        self._file_path = file_path
        self._chunk_size = chunk_size
        self._loop = loop
        self._gain = gain
        self._thread: Optional[threading.Thread] = None
        self._running = threading.Event()
        self._finished = threading.Event()

        try:
            info = sf.info(file_path)
        except (RuntimeError, OSError) as e:
            # The file is our "device" here
            raise DeviceUnavailableError(f"Cannot open audio file {file_path}: {e}") from e
        super().__init__(info.samplerate, info.channels, history_size)

    @property
    def finished(self) -> bool:
        """True once a non-looping file has been played to the end."""
        return self._finished.is_set()

    def open(self) -> None:
        if self._open:
            raise DeviceUnavailableError("Audio file source is already open")
        self._reset_buffers()
        self._finished.clear()
        self._running.set()
        self._open = True
        self._thread = threading.Thread(target=self._stream_data, daemon=True)
        self._thread.start()
        logger.info(f"Streaming audio file {self._file_path}")

    def close(self) -> None:
        self._running.clear()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        self._open = False
        self.stop_tap()

    def _stream_data(self) -> None:
        try:
            with sf.SoundFile(self._file_path) as f:
                while self._running.is_set():
                    data = f.read(self._chunk_size, dtype="float32", always_2d=True)
                    if len(data) == 0:
                        if self._loop:
                            f.seek(0)
                            continue
                        break

                    if self._gain != 1.0:
                        data *= self._gain

                    self._push(data)

                    # Simulate real-time playback speed
                    time.sleep(self._chunk_size / self.sample_rate)
        except (RuntimeError, OSError) as e:
            logger.error(f"Error streaming audio file: {e}")
        finally:
            self._finished.set()
