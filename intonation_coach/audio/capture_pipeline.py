"""Capture pipeline that drives pitch detection, recording and metering."""

from __future__ import annotations
import asyncio
from typing import Callable, Optional

import numpy as np

from ..logger import get_logger
from ..note_types import DetectedPitch, Recording
from ..core.config import CaptureConfig
from ..core.errors import DeviceUnavailableError
from ..core.events import CaptureEvents
from ..core.interfaces import IAudioSource, IPitchEstimator
from .pitch_estimator import create_estimator
from .recorder import AudioRecorder

logger = get_logger(__name__)


class AudioCapturePipeline:
    """Owns one audio source and everything that reads from it.

    The pitch loop and the recorder's chunk timer are both timer handles on
    the same asyncio event loop, so their callbacks interleave but never
    overlap. Each loop keeps a generation counter next to its handle: stop
    bumps the counter and cancels the handle, so nothing scheduled before
    the stop can fire afterwards.
    """

    def __init__(
        self,
        source: IAudioSource,
        estimator: Optional[IPitchEstimator] = None,
        config: Optional[CaptureConfig] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            source: Audio source to open on initialize()
            estimator: Pitch estimator, or None to build one from the config
            config: Capture options, or None for defaults
            loop: Event loop to schedule on, or None for the running loop
        """
        self._source = source
        self._config = config or CaptureConfig()
        self._estimator = estimator
        self._owns_estimator = estimator is None
        self._loop = loop
        self._events = CaptureEvents()

        self._initialized = False
        self._source_opened = False
        # Bumped by dispose() so a pending initialize() can tell it was abandoned
        self._lifecycle = 0
        self._recorder: Optional[AudioRecorder] = None
        self._last_recording: Optional[Recording] = None

        self._pitch_handle: Optional[asyncio.Handle] = None
        self._pitch_generation = 0
        self._chunk_handle: Optional[asyncio.Handle] = None
        self._record_generation = 0

        # Reusable buffers, allocated on initialize()
        self._window: Optional[np.ndarray] = None
        self._volume_buffer: Optional[np.ndarray] = None
        self._spectrum_window: Optional[np.ndarray] = None
        self._spectrum_buffer: Optional[np.ndarray] = None
        self._smoothed_spectrum: Optional[np.ndarray] = None
        self._frequency_data: Optional[np.ndarray] = None

    # Properties

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def is_detecting(self) -> bool:
        return self._pitch_handle is not None

    @property
    def is_recording(self) -> bool:
        return self._recorder is not None and self._recorder.is_recording

    @property
    def sample_rate(self) -> int:
        return self._source.sample_rate

    @property
    def window_size(self) -> int:
        return self._config.window_size

    @property
    def last_recording(self) -> Optional[Recording]:
        return self._last_recording

    # Lifecycle

    async def initialize(self) -> None:
        """Open the source and allocate the analysis buffers.

        If dispose() is called while the device is still being opened, the
        device is closed as soon as the open returns and this raises.

        Raises:
            DeviceUnavailableError: If the capture device cannot be opened,
                or the pipeline was disposed before the open finished
        """
        if self._initialized:
            logger.warning("Audio pipeline already initialized")
            return

        if self._loop is None:
            self._loop = asyncio.get_running_loop()

        lifecycle = self._lifecycle
        # Device negotiation can block, keep it off the event loop
        opening = self._loop.run_in_executor(None, self._source.open)
        try:
            # The worker thread cannot be interrupted, so cancellation must not
            # lose track of what it opens
            await asyncio.shield(opening)
        except DeviceUnavailableError as e:
            logger.error(f"Failed to initialize audio pipeline: {e}")
            self.dispose()
            raise
        except asyncio.CancelledError:
            opening.add_done_callback(self._close_opened_source)
            self.dispose()
            raise
        except (OSError, RuntimeError) as e:
            logger.error(f"Failed to initialize audio pipeline: {e}")
            self.dispose()
            raise DeviceUnavailableError("Microphone access denied or unavailable") from e

        if lifecycle != self._lifecycle:
            self._source.close()
            logger.info("Audio pipeline disposed while opening the device")
            raise DeviceUnavailableError("Audio pipeline was disposed during initialization")
        self._source_opened = True

        size = self._config.window_size
        self._window = np.zeros(size, dtype=np.float32)
        self._volume_buffer = np.zeros(size, dtype=np.float32)
        self._spectrum_window = np.blackman(size).astype(np.float32)
        self._spectrum_buffer = np.zeros(size, dtype=np.float32)
        self._smoothed_spectrum = np.zeros(size // 2, dtype=np.float64)
        self._frequency_data = np.zeros(size // 2, dtype=np.uint8)

        if self._estimator is None:
            # Built after open() since the device may negotiate another rate
            try:
                self._estimator = create_estimator(
                    self._config.estimator,
                    sample_rate=self._source.sample_rate,
                    window_size=size,
                    min_clarity=self._config.min_clarity,
                    min_frequency=self._config.min_frequency,
                    max_frequency=self._config.max_frequency,
                )
            except (ValueError, ImportError) as e:
                logger.error(f"Failed to create pitch estimator: {e}")
                self.dispose()
                raise

        self._recorder = AudioRecorder(
            sample_rate=self._source.sample_rate,
            channels=self._source.channels,
            max_chunks=self._config.max_recording_chunks,
            max_bytes=self._config.max_recording_bytes,
            on_complete=self._on_recording_complete,
        )
        self._initialized = True
        logger.info(
            f"Audio pipeline initialized: sample_rate={self._source.sample_rate}, "
            f"window_size={size}"
        )

    def dispose(self) -> None:
        """Stop both loops, release the source and drop every buffer.

        Safe to call more than once, and before or after a failed initialize().
        """
        was_initialized = self._initialized
        self._lifecycle += 1
        self.stop_pitch_detection()
        self.stop_recording()

        # A source that failed to open may belong to someone else
        if self._source_opened:
            self._source.close()
            self._source_opened = False
        self._events.clear()

        self._window = None
        self._volume_buffer = None
        self._spectrum_window = None
        self._spectrum_buffer = None
        self._smoothed_spectrum = None
        self._frequency_data = None
        self._recorder = None
        if self._owns_estimator:
            self._estimator = None
        self._initialized = False

        if was_initialized:
            logger.info("Audio pipeline disposed")

    def _close_opened_source(self, opening: asyncio.Future) -> None:
        """Close a source whose open finished after initialize() was cancelled."""
        if opening.cancelled() or opening.exception() is not None:
            return
        self._source.close()
        logger.info("Closed audio source opened after initialization was cancelled")

    async def __aenter__(self) -> "AudioCapturePipeline":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    # Callbacks

    def set_on_pitch_detected(
        self, callback: Optional[Callable[[Optional[DetectedPitch]], None]]
    ) -> None:
        """Register the callback receiving a DetectedPitch or None every frame."""
        self._events.set_on_pitch_detected(callback)

    def set_on_recording_complete(self, callback: Optional[Callable[[Recording], None]]) -> None:
        self._events.set_on_recording_complete(callback)

    # Pitch detection loop

    def start_pitch_detection(self) -> None:
        """Start the per-frame pitch loop."""
        if not self._initialized:
            logger.error("Audio pipeline not initialized")
            return
        if self._pitch_handle is not None:
            logger.warning("Pitch detection already running")
            return

        self._pitch_generation += 1
        self._pitch_handle = self._loop.call_soon(self._detect_pitch, self._pitch_generation)
        logger.info("Pitch detection started")

    def stop_pitch_detection(self) -> None:
        """Stop the pitch loop; no pitch callback fires after this returns."""
        self._pitch_generation += 1
        if self._pitch_handle is not None:
            self._pitch_handle.cancel()
            self._pitch_handle = None
            logger.info("Pitch detection stopped")

    def _detect_pitch(self, generation: int) -> None:
        if generation != self._pitch_generation or self._window is None:
            return
        self._pitch_handle = None

        self._source.read_window(self._window)
        try:
            pitch = self._estimator.detect(self._window)
        except Exception as e:
            logger.error(f"Error in pitch estimation: {e}", exc_info=True)
            pitch = None

        if pitch is not None:
            logger.debug(
                f"{pitch.name} ({pitch.frequency:.1f}Hz, {pitch.cents:+d}c, "
                f"clarity: {pitch.clarity:.2f})"
            )
        self._events.emit_pitch_detected(pitch)

        # A listener may have stopped detection or disposed the pipeline
        if generation != self._pitch_generation or self._window is None:
            return
        self._pitch_handle = self._loop.call_later(
            1.0 / self._config.frame_rate, self._detect_pitch, generation
        )

    # Recording

    def start_recording(self) -> None:
        """Start collecting audio chunks, independently of pitch detection."""
        if not self._initialized:
            logger.error("Audio pipeline not initialized")
            return
        if self._recorder.is_recording:
            logger.warning("Recording already running")
            return

        self._last_recording = None
        self._source.start_tap()
        self._recorder.start()
        self._record_generation += 1
        self._chunk_handle = self._loop.call_later(
            self._config.chunk_interval, self._collect_chunk, self._record_generation
        )

    def stop_recording(self) -> Optional[Recording]:
        """Stop recording and deliver everything captured so far.

        Returns:
            The delivered Recording, or None if nothing was recording
        """
        self._record_generation += 1
        if self._chunk_handle is not None:
            self._chunk_handle.cancel()
            self._chunk_handle = None

        if self._recorder is None or not self._recorder.is_recording:
            return None

        # Flush what arrived since the last chunk
        data = self._source.read_tap()
        if data is not None:
            self._recorder.handle_samples(data)
        # The flush itself may have hit a cap and delivered already
        self._recorder.stop()
        return self._last_recording

    def _collect_chunk(self, generation: int) -> None:
        if generation != self._record_generation or not self.is_recording:
            return
        self._chunk_handle = None

        data = self._source.read_tap()
        if data is not None:
            self._recorder.handle_samples(data)

        if generation == self._record_generation and self.is_recording:
            self._chunk_handle = self._loop.call_later(
                self._config.chunk_interval, self._collect_chunk, generation
            )

    def _on_recording_complete(self, recording: Recording) -> None:
        self._record_generation += 1
        if self._chunk_handle is not None:
            self._chunk_handle.cancel()
            self._chunk_handle = None
        self._source.stop_tap()
        self._last_recording = recording
        self._events.emit_recording_complete(recording)

    # Metering

    def get_volume(self) -> float:
        """RMS amplitude of the current window, 0.0 when not initialized."""
        if not self._initialized or self._volume_buffer is None:
            return 0.0

        buffer = self._volume_buffer
        self._source.read_window(buffer)
        np.multiply(buffer, buffer, out=buffer)
        return float(np.sqrt(np.mean(buffer)))

    def get_frequency_data(self) -> np.ndarray:
        """Byte magnitude spectrum of the current window.

        Blackman-windowed FFT with exponential smoothing across calls, with
        decibels mapped linearly from [min_decibels, max_decibels] to
        [0, 255]. The returned array is reused by the next call.
        """
        if not self._initialized or self._spectrum_buffer is None:
            return np.zeros(0, dtype=np.uint8)

        size = self._config.window_size
        buffer = self._spectrum_buffer
        self._source.read_window(buffer)
        np.multiply(buffer, self._spectrum_window, out=buffer)

        magnitude = np.abs(np.fft.rfft(buffer))[: size // 2] / size
        tau = self._config.smoothing_time_constant
        smoothed = self._smoothed_spectrum
        smoothed *= tau
        smoothed += (1.0 - tau) * magnitude

        with np.errstate(divide="ignore"):
            decibels = 20.0 * np.log10(smoothed)
        low, high = self._config.min_decibels, self._config.max_decibels
        scaled = (decibels - low) * (255.0 / (high - low))
        np.clip(scaled, 0, 255, out=scaled)
        self._frequency_data[:] = scaled.astype(np.uint8)
        return self._frequency_data
