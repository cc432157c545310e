"""Type definitions for the Intonation Coach project."""

import io
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import numpy as np
import soundfile as sf


NOT_A_NOTE = "N/A"


class Tendency(str, Enum):
    """Where a reading or a note sits relative to equal temperament."""

    SHARP = "sharp"
    FLAT = "flat"
    ACCURATE = "accurate"


class VibratoQuality(str, Enum):
    NARROW = "narrow"
    WIDE = "wide"
    FAST = "fast"
    SLOW = "slow"
    IRREGULAR = "irregular"
    GOOD = "good"


class PitchTrend(str, Enum):
    """Direction the recent cents readings are drifting."""

    RISING = "rising"
    FALLING = "falling"
    STABLE = "stable"


@dataclass
class NoteInfo:
    """Nearest chromatic pitch for a frequency."""

    note: str  # Note name with octave (e.g., 'A4', 'C#5'), or 'N/A'
    midi: int  # MIDI number (A4 = 69), 0 for the sentinel
    cents: int  # Signed deviation from the nearest pitch

    @property
    def is_note(self) -> bool:
        return self.note != NOT_A_NOTE

    @property
    def pitch_class(self) -> str:
        """Note name without its octave (e.g., 'C#')."""
        return self.note.rstrip("-0123456789")

    @property
    def octave(self) -> Optional[int]:
        if not self.is_note:
            return None
        return self.midi // 12 - 1


@dataclass
class PitchSample:
    """Raw pitch reading kept in the rolling sample history."""

    frequency: float  # Frequency in Hz
    timestamp: float  # Monotonic milliseconds
    amplitude: float  # Signal level (0-1)


@dataclass
class IntonationReading:
    """A single reading bucketed under its MIDI number."""

    note: str
    midi: int
    cents: int
    frequency: float
    timestamp: float
    tendency: Tendency


@dataclass
class VibratoAnalysis:
    present: bool
    rate: float  # Hz (typical: 5-7 Hz)
    width: float  # cents peak-to-peak (typical: 20-50 cents)
    consistency: float  # 0-100
    quality: VibratoQuality

    @classmethod
    def absent(cls) -> "VibratoAnalysis":
        return cls(
            present=False,
            rate=0.0,
            width=0.0,
            consistency=0.0,
            quality=VibratoQuality.IRREGULAR,
        )


@dataclass
class NoteIntonationReport:
    note: str
    midi: int
    average_cents: float
    tendency: Tendency
    stability: float  # 0-100
    vibrato: VibratoAnalysis
    samples: int
    suggestion: Optional[str] = None


@dataclass
class TendencySummary:
    """Octave-independent bias for one pitch class."""

    avg_cents: float
    count: int


@dataclass
class IntonationAnalysisResult:
    """Session-level snapshot produced by the analyzer."""

    overall_accuracy: float  # 0-100
    average_deviation: float  # cents
    note_reports: List[NoteIntonationReport] = field(default_factory=list)
    tendencies: Dict[str, TendencySummary] = field(default_factory=dict)
    problematic_notes: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    vibrato_present: bool = False
    average_vibrato_rate: float = 0.0
    average_vibrato_width: float = 0.0

    @classmethod
    def empty(cls) -> "IntonationAnalysisResult":
        """Baseline returned for a session with no readings."""
        return cls(overall_accuracy=100.0, average_deviation=0.0)


@dataclass
class PureIntonationSuggestion:
    interval: str  # e.g. 'major third'
    adjustment: int  # cents to move the upper note
    reason: str


@dataclass
class DetectedPitch:
    """Represents one successful pitch estimate mapped to a note."""

    frequency: float  # Frequency in Hz
    note: str  # Pitch class (e.g., 'A', 'C#')
    octave: int  # e.g. 4
    cents: int  # deviation from the nearest equal-tempered pitch
    clarity: float  # Estimator confidence (0-1)

    @property
    def name(self) -> str:
        return f"{self.note}{self.octave}"


@dataclass
class Recording:
    """Audio captured between start and stop of the recorder.

    ``data`` holds the concatenated 16-bit little-endian PCM chunks.
    """

    data: bytes
    sample_rate: int
    channels: int = 1
    chunk_count: int = 0
    truncated: bool = False  # True if a size cap stopped the recording early

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def duration(self) -> float:
        """Length in seconds."""
        frames = len(self.data) // (2 * self.channels)
        return frames / float(self.sample_rate) if self.sample_rate else 0.0

    def samples(self) -> np.ndarray:
        """Decode the PCM payload as int16 samples (frames x channels)."""
        pcm = np.frombuffer(self.data, dtype="<i2")
        return pcm.reshape(-1, self.channels)

    def to_wav(self) -> bytes:
        buffer = io.BytesIO()
        sf.write(buffer, self.samples(), self.sample_rate, format="WAV", subtype="PCM_16")
        return buffer.getvalue()

    def save(self, path: str) -> None:
        sf.write(path, self.samples(), self.sample_rate, subtype="PCM_16")
