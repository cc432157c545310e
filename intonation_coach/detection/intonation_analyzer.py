"""Streaming intonation analysis: per-note statistics, tendencies and vibrato."""

from __future__ import annotations
import math
import time
from collections import OrderedDict, deque
from typing import Callable, Deque, Dict, List, Optional

import numpy as np

from ..logger import get_logger
from ..note_types import (
    IntonationAnalysisResult,
    IntonationReading,
    NoteInfo,
    NoteIntonationReport,
    PitchSample,
    PureIntonationSuggestion,
    Tendency,
    TendencySummary,
    VibratoAnalysis,
    VibratoQuality,
)
from ..note_utils import frequency_to_note
from ..core.config import AnalyzerConfig
from .pure_intonation import get_pure_intonation_suggestions

logger = get_logger(__name__)


class IntonationAnalyzer:
    """Accumulates pitch readings for one practice session.

    Three bounded buffers are kept, all capped on every insert:

    - a rolling history of raw samples (size and age bound)
    - readings per MIDI number; when a new note would exceed the note cap
      the note inserted first is evicted whole (insertion order, not
      recency: revisiting a note does not move it)
    - raw cents per pitch class across octaves, for systematic bias

    The analyzer is readable at any time; ``get_analysis()`` is a snapshot.
    Invalid input is dropped, never raised.
    """

    def __init__(
        self,
        config: Optional[AnalyzerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the analyzer.

        Args:
            config: Thresholds and caps, or None for defaults
            clock: Monotonic clock in seconds, used to timestamp samples
        """
        self._config = config or AnalyzerConfig()
        self._clock = clock

        self._pitch_history: Deque[PitchSample] = deque(maxlen=self._config.max_pitch_history)
        self._note_readings: "OrderedDict[int, Deque[IntonationReading]]" = OrderedDict()
        self._tendencies: "OrderedDict[str, Deque[int]]" = OrderedDict()

    @property
    def config(self) -> AnalyzerConfig:
        return self._config

    @property
    def tracked_notes(self) -> List[int]:
        """MIDI numbers currently held, oldest-inserted first."""
        return list(self._note_readings.keys())

    @property
    def history_size(self) -> int:
        return len(self._pitch_history)

    @property
    def is_empty(self) -> bool:
        return not self._note_readings and not self._pitch_history

    def reading_count(self, midi: int) -> int:
        readings = self._note_readings.get(midi)
        return len(readings) if readings else 0

    def _now(self) -> float:
        return self._clock() * 1000.0

    def frequency_to_cents(self, frequency: float) -> NoteInfo:
        """Nearest note and cents deviation for a frequency."""
        return frequency_to_note(frequency, self._config.reference_frequency)

    def _classify(self, cents: float, threshold: float) -> Tendency:
        if cents > threshold:
            return Tendency.SHARP
        if cents < -threshold:
            return Tendency.FLAT
        return Tendency.ACCURATE

    def add_sample(
        self, frequency: float, amplitude: float, timestamp: Optional[float] = None
    ) -> None:
        """Ingest one (frequency, amplitude) reading.

        Args:
            frequency: Detected frequency in Hz
            amplitude: Signal level (0-1)
            timestamp: Milliseconds on the analyzer's clock, or None for now
        """
        try:
            frequency = float(frequency)
            amplitude = float(amplitude)
        except (TypeError, ValueError):
            logger.debug(f"Dropping non-numeric sample: {frequency!r}, {amplitude!r}")
            return

        if (
            not math.isfinite(frequency)
            or not math.isfinite(amplitude)
            or frequency <= 0
            or amplitude < self._config.min_amplitude
        ):
            logger.debug(f"Dropping sample: {frequency:.1f}Hz, amplitude {amplitude:.4f}")
            return

        if timestamp is None:
            timestamp = self._now()
        info = self.frequency_to_cents(frequency)

        # Rolling history, bounded by age here and by size through maxlen
        self._pitch_history.append(PitchSample(frequency, timestamp, amplitude))
        cutoff = timestamp - self._config.history_window_ms
        while self._pitch_history and self._pitch_history[0].timestamp <= cutoff:
            self._pitch_history.popleft()

        readings = self._note_readings.get(info.midi)
        if readings is None:
            if len(self._note_readings) >= self._config.max_unique_notes:
                evicted, _ = self._note_readings.popitem(last=False)
                logger.debug(f"Note cap reached, evicting MIDI {evicted}")
            readings = deque(maxlen=self._config.max_readings_per_note)
            self._note_readings[info.midi] = readings

        readings.append(
            IntonationReading(
                note=info.note,
                midi=info.midi,
                cents=info.cents,
                frequency=frequency,
                timestamp=timestamp,
                tendency=self._classify(info.cents, self._config.cents_threshold_sharp),
            )
        )

        # Track tendencies by note name (across octaves)
        pitch_class = info.pitch_class
        cents_list = self._tendencies.get(pitch_class)
        if cents_list is None:
            cents_list = deque(maxlen=self._config.max_tendencies_per_note)
            self._tendencies[pitch_class] = cents_list
        cents_list.append(info.cents)

    def analyze_vibrato(self, midi: int) -> VibratoAnalysis:
        """Estimate vibrato for one note from its readings in the recent window."""
        readings = self._note_readings.get(midi, ())
        cutoff = self._now() - self._config.vibrato_window_ms
        recent = [r for r in readings if r.timestamp > cutoff]

        if len(recent) < self._config.min_vibrato_samples:
            return VibratoAnalysis.absent()

        cents = np.array([r.cents for r in recent], dtype=np.float64)
        duration = (recent[-1].timestamp - recent[0].timestamp) / 1000.0

        # Rate from crossings of the mean, two per cycle
        centered = cents - cents.mean()
        crossings = int(np.count_nonzero(centered[:-1] * centered[1:] < 0))
        rate = (crossings / 2.0) / duration if duration > 0 else 0.0

        # Peak-to-peak width
        width = float(cents.max() - cents.min())

        # Consistency from the spread of local maxima
        inner = cents[1:-1]
        peaks = inner[(inner > cents[:-2]) & (inner > cents[2:])]
        consistency = 100.0
        if len(peaks) > 1:
            consistency = max(0.0, 100.0 - float(np.std(peaks)) * 2)

        config = self._config
        present = (
            config.vibrato_min_rate <= rate <= config.vibrato_max_rate
            and width >= config.vibrato_min_width
        )

        quality = VibratoQuality.IRREGULAR
        if present:
            if width < 20:
                quality = VibratoQuality.NARROW
            elif width > 60:
                quality = VibratoQuality.WIDE
            elif rate < 4.5:
                quality = VibratoQuality.SLOW
            elif rate > 7:
                quality = VibratoQuality.FAST
            elif consistency > 70:
                quality = VibratoQuality.GOOD

        return VibratoAnalysis(
            present=present,
            rate=rate,
            width=width,
            consistency=consistency,
            quality=quality,
        )

    def get_note_report(self, midi: int) -> Optional[NoteIntonationReport]:
        """Summarise one note, or None if it has no readings."""
        readings = self._note_readings.get(midi)
        if not readings:
            return None

        cents = np.array([r.cents for r in readings], dtype=np.float64)
        average_cents = float(cents.mean())

        # Stability is the inverse of the population standard deviation
        std_dev = float(np.std(cents))
        stability = max(0.0, 100.0 - std_dev * 3)

        tendency = self._classify(average_cents, self._config.cents_threshold_accurate)
        vibrato = self.analyze_vibrato(midi)

        suggestion: Optional[str] = None
        if abs(average_cents) > 20:
            direction = "lower" if average_cents > 0 else "raise"
            amount = abs(int(math.floor(average_cents + 0.5)))
            suggestion = f"Try to {direction} this note by about {amount} cents"
        elif stability < 50:
            suggestion = "Work on pitch stability - the note is wavering"
        elif vibrato.present and vibrato.quality == VibratoQuality.WIDE:
            suggestion = "Vibrato is too wide - try a narrower, more controlled vibrato"
        elif vibrato.present and vibrato.quality == VibratoQuality.NARROW:
            suggestion = "Vibrato is too narrow - allow for more pitch variation"

        return NoteIntonationReport(
            note=readings[0].note,
            midi=midi,
            average_cents=average_cents,
            tendency=tendency,
            stability=stability,
            vibrato=vibrato,
            samples=len(readings),
            suggestion=suggestion,
        )

    def get_analysis(self) -> IntonationAnalysisResult:
        """Snapshot of the whole session so far."""
        note_reports: List[NoteIntonationReport] = []
        problematic_notes: List[str] = []
        total_cents_deviation = 0.0
        total_samples = 0
        vibrato_rates: List[float] = []
        vibrato_widths: List[float] = []

        for midi in list(self._note_readings.keys()):
            report = self.get_note_report(midi)
            if report is None:
                continue
            note_reports.append(report)
            total_cents_deviation += abs(report.average_cents) * report.samples
            total_samples += report.samples

            if abs(report.average_cents) > 15 or report.stability < 60:
                problematic_notes.append(report.note)

            if report.vibrato.present:
                vibrato_rates.append(report.vibrato.rate)
                vibrato_widths.append(report.vibrato.width)

        average_deviation = total_cents_deviation / total_samples if total_samples else 0.0
        overall_accuracy = max(0.0, 100.0 - average_deviation * 2)

        tendencies: Dict[str, TendencySummary] = {}
        for pitch_class, cents_list in self._tendencies.items():
            tendencies[pitch_class] = TendencySummary(
                avg_cents=sum(cents_list) / len(cents_list),
                count=len(cents_list),
            )

        suggestions: List[str] = []

        # Consistent sharp/flat tendency over the whole session
        all_cents = [c for cents_list in self._tendencies.values() for c in cents_list]
        if all_cents:
            overall_avg = sum(all_cents) / len(all_cents)
            if overall_avg > 10:
                suggestions.append(
                    "You tend to play sharp overall - try adjusting your finger placement slightly back"
                )
            elif overall_avg < -10:
                suggestions.append(
                    "You tend to play flat overall - try adjusting your finger placement slightly forward"
                )

        # Specific problem notes
        for pitch_class, summary in tendencies.items():
            if abs(summary.avg_cents) > 20 and summary.count >= 3:
                direction = "sharp" if summary.avg_cents > 0 else "flat"
                suggestions.append(f"{pitch_class} tends to be {direction} - pay attention to this note")

        average_vibrato_rate = sum(vibrato_rates) / len(vibrato_rates) if vibrato_rates else 0.0
        average_vibrato_width = sum(vibrato_widths) / len(vibrato_widths) if vibrato_widths else 0.0

        if vibrato_rates:
            if average_vibrato_rate < 4.5:
                suggestions.append("Your vibrato is a bit slow - try speeding it up slightly")
            elif average_vibrato_rate > 7:
                suggestions.append("Your vibrato is quite fast - try for a more moderate speed")

        note_reports.sort(key=lambda r: r.midi)

        return IntonationAnalysisResult(
            overall_accuracy=overall_accuracy,
            average_deviation=average_deviation,
            note_reports=note_reports,
            tendencies=tendencies,
            problematic_notes=problematic_notes,
            suggestions=suggestions[: self._config.max_suggestions],
            vibrato_present=bool(vibrato_rates),
            average_vibrato_rate=average_vibrato_rate,
            average_vibrato_width=average_vibrato_width,
        )

    def get_pure_intonation_suggestions(
        self, lower_midi: int, upper_midi: int
    ) -> List[PureIntonationSuggestion]:
        return get_pure_intonation_suggestions(lower_midi, upper_midi)

    def reset(self) -> None:
        """Clear every buffer. Safe to call repeatedly or on a fresh analyzer."""
        had_data = not self.is_empty
        self._pitch_history.clear()
        self._note_readings.clear()
        self._tendencies.clear()
        if had_data:
            logger.info("Intonation analyzer reset")
