"""Intonation Coach - real-time pitch and intonation analysis for violin practice."""

__version__ = "0.1.0"

from .note_types import (
    DetectedPitch,
    IntonationAnalysisResult,
    NoteIntonationReport,
    PureIntonationSuggestion,
    Recording,
    Tendency,
    VibratoAnalysis,
    VibratoQuality,
)
from .note_utils import frequency_to_note
from .core.config import AnalyzerConfig, CaptureConfig, SessionConfig
from .core.errors import DeviceUnavailableError
from .detection import IntonationAnalyzer, get_pure_intonation_suggestions
from .audio import AudioCapturePipeline, PitchEstimator
from .session import PracticeSession

__all__ = [
    "DetectedPitch",
    "IntonationAnalysisResult",
    "NoteIntonationReport",
    "PureIntonationSuggestion",
    "Recording",
    "Tendency",
    "VibratoAnalysis",
    "VibratoQuality",
    "frequency_to_note",
    "AnalyzerConfig",
    "CaptureConfig",
    "SessionConfig",
    "DeviceUnavailableError",
    "IntonationAnalyzer",
    "get_pure_intonation_suggestions",
    "AudioCapturePipeline",
    "PitchEstimator",
    "PracticeSession",
]
