"""Event system for Intonation Coach components."""

from typing import Any, Callable, Dict, List, Optional
from enum import Enum, auto

from ..logger import get_logger
from ..note_types import DetectedPitch, IntonationAnalysisResult, Recording

logger = get_logger(__name__)


class CaptureEventType(Enum):
    """Event types for the capture pipeline and practice session."""

    PITCH_DETECTED = auto()
    RECORDING_COMPLETE = auto()
    ANALYSIS_UPDATED = auto()


class EventEmitter:
    """Event emitter for Intonation Coach components."""

    def __init__(self):
        """Initialize the event emitter."""
        self._listeners: Dict[Any, List[Callable]] = {}

    def on(self, event_type: Any, callback: Callable) -> None:
        """Register a callback for an event type.

        Args:
            event_type: Event type to listen for
            callback: Function to call when the event occurs
        """
        if event_type not in self._listeners:
            self._listeners[event_type] = []

        if callback not in self._listeners[event_type]:
            self._listeners[event_type].append(callback)
            logger.debug(f"Added listener for event {event_type}")

    def off(self, event_type: Any, callback: Optional[Callable] = None) -> None:
        """Remove one callback, or every callback when none is given."""
        if event_type not in self._listeners:
            return
        if callback is None:
            del self._listeners[event_type]
        elif callback in self._listeners[event_type]:
            self._listeners[event_type].remove(callback)

    def emit(self, event_type: Any, *args, **kwargs) -> None:
        """Emit an event.

        A listener that raises is logged and skipped; the remaining
        listeners still run.
        """
        if event_type not in self._listeners:
            return

        for callback in list(self._listeners[event_type]):
            try:
                callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in event listener for {event_type}: {e}", exc_info=True)

    def has_listeners(self, event_type: Any) -> bool:
        return bool(self._listeners.get(event_type))

    def clear(self) -> None:
        """Remove all event listeners."""
        self._listeners = {}
        logger.debug("Cleared all event listeners")


class CaptureEvents:
    """Event emitter specifically for capture and analysis events."""

    def __init__(self):
        self._emitter = EventEmitter()

    def set_on_pitch_detected(
        self, callback: Optional[Callable[[Optional[DetectedPitch]], None]]
    ) -> None:
        """Replace the pitch callback; None removes it."""
        self._emitter.off(CaptureEventType.PITCH_DETECTED)
        if callback is not None:
            self._emitter.on(CaptureEventType.PITCH_DETECTED, callback)

    def set_on_recording_complete(
        self, callback: Optional[Callable[[Recording], None]]
    ) -> None:
        """Replace the recording callback; None removes it."""
        self._emitter.off(CaptureEventType.RECORDING_COMPLETE)
        if callback is not None:
            self._emitter.on(CaptureEventType.RECORDING_COMPLETE, callback)

    def on_analysis(self, callback: Callable[[IntonationAnalysisResult], None]) -> None:
        self._emitter.on(CaptureEventType.ANALYSIS_UPDATED, callback)

    def emit_pitch_detected(self, pitch: Optional[DetectedPitch]) -> None:
        self._emitter.emit(CaptureEventType.PITCH_DETECTED, pitch)

    def emit_recording_complete(self, recording: Recording) -> None:
        self._emitter.emit(CaptureEventType.RECORDING_COMPLETE, recording)

    def emit_analysis(self, result: IntonationAnalysisResult) -> None:
        self._emitter.emit(CaptureEventType.ANALYSIS_UPDATED, result)

    def clear(self) -> None:
        """Remove all event listeners."""
        self._emitter.clear()
