"""Practice session wiring the capture pipeline to the intonation analyzer."""

from __future__ import annotations
import asyncio
from collections import deque
from typing import Callable, Deque, Optional

from .logger import get_logger
from .note_types import (
    DetectedPitch,
    IntonationAnalysisResult,
    PitchTrend,
    Recording,
)
from .note_utils import pitch_quality
from .audio.capture_pipeline import AudioCapturePipeline
from .core.config import SessionConfig
from .core.events import CaptureEvents
from .detection.intonation_analyzer import IntonationAnalyzer

logger = get_logger(__name__)


class PracticeSession:
    """One practice session: a pipeline feeding a session-scoped analyzer.

    The pipeline's pitch callback is the only writer to the analyzer. When
    the session stops, the final snapshot is returned, the pipeline is
    disposed and the analyzer is reset so nothing leaks into the next
    session.
    """

    def __init__(
        self,
        pipeline: AudioCapturePipeline,
        analyzer: Optional[IntonationAnalyzer] = None,
        config: Optional[SessionConfig] = None,
    ) -> None:
        self._pipeline = pipeline
        self._analyzer = analyzer or IntonationAnalyzer()
        self._config = config or SessionConfig()
        self._events = CaptureEvents()

        self._active = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._snapshot_handle: Optional[asyncio.TimerHandle] = None
        self._current_pitch: Optional[DetectedPitch] = None
        self._recent_cents: Deque[int] = deque(maxlen=self._config.trend_window)
        self._recording: Optional[Recording] = None
        self._last_analysis: Optional[IntonationAnalysisResult] = None

    @property
    def analyzer(self) -> IntonationAnalyzer:
        return self._analyzer

    @property
    def pipeline(self) -> AudioCapturePipeline:
        return self._pipeline

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def current_pitch(self) -> Optional[DetectedPitch]:
        return self._current_pitch

    @property
    def recording(self) -> Optional[Recording]:
        """The last recording delivered by the pipeline."""
        return self._recording

    @property
    def last_analysis(self) -> Optional[IntonationAnalysisResult]:
        return self._last_analysis

    def on_analysis(self, callback: Callable[[IntonationAnalysisResult], None]) -> None:
        """Register a listener for the periodic analysis snapshots."""
        self._events.on_analysis(callback)

    async def start(self, record: bool = False) -> None:
        """Open the device and start feeding the analyzer.

        Raises:
            DeviceUnavailableError: If the capture device cannot be opened
        """
        if self._active:
            logger.warning("Practice session already running")
            return

        self._loop = asyncio.get_running_loop()
        await self._pipeline.initialize()

        self._pipeline.set_on_pitch_detected(self._handle_pitch)
        self._pipeline.set_on_recording_complete(self._handle_recording)
        self._active = True

        self._pipeline.start_pitch_detection()
        if record:
            self._pipeline.start_recording()
        self._schedule_snapshot()
        logger.info("Practice session started")

    def stop(self) -> IntonationAnalysisResult:
        """Stop capturing and return the final analysis. Idempotent."""
        if not self._active:
            self._pipeline.dispose()
            return self._last_analysis or IntonationAnalysisResult.empty()
        self._active = False

        if self._snapshot_handle is not None:
            self._snapshot_handle.cancel()
            self._snapshot_handle = None

        self._pipeline.stop_pitch_detection()
        self._pipeline.stop_recording()

        result = self._analyzer.get_analysis()
        self._last_analysis = result

        self._pipeline.dispose()
        self._analyzer.reset()
        self._recent_cents.clear()
        self._current_pitch = None
        logger.info(
            f"Practice session stopped: accuracy {result.overall_accuracy:.0f}%, "
            f"{len(result.note_reports)} notes"
        )
        return result

    async def __aenter__(self) -> "PracticeSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def _handle_pitch(self, pitch: Optional[DetectedPitch]) -> None:
        self._current_pitch = pitch
        if not self._active or pitch is None:
            return
        if pitch.clarity < self._config.min_feed_clarity:
            return

        self._analyzer.add_sample(pitch.frequency, self._pipeline.get_volume())
        self._recent_cents.append(pitch.cents)

    def _handle_recording(self, recording: Recording) -> None:
        self._recording = recording

    def _schedule_snapshot(self) -> None:
        self._snapshot_handle = self._loop.call_later(
            self._config.snapshot_interval, self._publish_snapshot
        )

    def _publish_snapshot(self) -> None:
        self._snapshot_handle = None
        if not self._active:
            return
        self._last_analysis = self._analyzer.get_analysis()
        self._events.emit_analysis(self._last_analysis)
        self._schedule_snapshot()

    def trend(self) -> PitchTrend:
        """Whether the recent readings are drifting up, down or holding."""
        if len(self._recent_cents) < 5:
            return PitchTrend.STABLE

        values = list(self._recent_cents)
        half = len(values) // 2
        first, second = values[:half], values[half:]
        diff = sum(second) / len(second) - sum(first) / len(first)
        if diff > self._config.trend_threshold:
            return PitchTrend.RISING
        if diff < -self._config.trend_threshold:
            return PitchTrend.FALLING
        return PitchTrend.STABLE

    def pitch_quality(self) -> Optional[str]:
        """Quality bucket of the current pitch, or None when nothing is detected."""
        if self._current_pitch is None:
            return None
        return pitch_quality(self._current_pitch.cents)
