"""Utility functions for working with musical notes and frequencies."""

import math
from typing import Dict, List

from .logger import get_logger
from .note_types import NOT_A_NOTE, DetectedPitch, NoteInfo

logger = get_logger(__name__)

# Standard reference: A4 = 440Hz
A4_FREQUENCY = 440.0
A4_MIDI = 69

NOTE_NAMES: List[str] = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

FLAT_TO_SHARP: Dict[str, str] = {
    "Db": "C#",
    "Eb": "D#",
    "Gb": "F#",
    "Ab": "G#",
    "Bb": "A#",
}


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward +infinity."""
    return int(math.floor(value + 0.5))


def frequency_to_note(freq: float, reference: float = A4_FREQUENCY) -> NoteInfo:
    """Map a frequency to the nearest chromatic pitch and its cents deviation.

    Args:
        freq: Frequency in Hz
        reference: Frequency of A4 in Hz

    Returns:
        NoteInfo with the SPN note name (e.g., 'A4', 'C#5'), MIDI number and cents.
        Non-positive or non-finite input gives the 'N/A' sentinel.

    Note:
        - Middle C is C4 (MIDI 60)
        - Octave numbers change between B and C (e.g., B3 -> C4)
        - Halves round up for both the note and the cents, so cents lies in
          [-50, 50] rather than (-50, 50]. Just above a midpoint between two
          notes (e.g. 69.502 semitones) the upper note is reported at -50.
          This matches JavaScript's Math.round and is kept on purpose.
    """
    try:
        freq = float(freq)
    except (TypeError, ValueError):
        return NoteInfo(note=NOT_A_NOTE, midi=0, cents=0)

    if not math.isfinite(freq) or freq <= 0:
        return NoteInfo(note=NOT_A_NOTE, midi=0, cents=0)

    midi_float = 12 * math.log2(freq / reference) + A4_MIDI
    midi = round_half_up(midi_float)
    cents = round_half_up((midi_float - midi) * 100)

    octave = (midi // 12) - 1
    note_name = NOTE_NAMES[midi % 12]
    return NoteInfo(note=f"{note_name}{octave}", midi=midi, cents=cents)


def midi_to_frequency(midi: float, reference: float = A4_FREQUENCY) -> float:
    return reference * 2.0 ** ((midi - A4_MIDI) / 12.0)


def _note_index(note: str) -> int:
    name = note.strip()
    if not name:
        return -1
    name = name[0].upper() + name[1:]
    name = FLAT_TO_SHARP.get(name, name)
    try:
        return NOTE_NAMES.index(name)
    except ValueError:
        return -1


def note_to_midi(note: str, octave: int) -> int:
    """MIDI number for a pitch class and octave (e.g., ('A', 4) -> 69).

    Raises:
        ValueError: If the note name is not recognised
    """
    index = _note_index(note)
    if index < 0:
        raise ValueError(f"Unknown note name: {note}")
    return (octave + 1) * 12 + index


def note_frequency(note: str, octave: int) -> float:
    """Equal-tempered frequency of a note, or 0.0 if the name is unknown."""
    index = _note_index(note)
    if index < 0:
        return 0.0
    semitones_from_a4 = (octave - 4) * 12 + (index - 9)
    return A4_FREQUENCY * 2.0 ** (semitones_from_a4 / 12.0)


def parse_note_name(name: str) -> int:
    """Parse 'G3', 'Bb4' or a plain MIDI number string into a MIDI number."""
    text = name.strip()
    if text.lstrip("-").isdigit():
        return int(text)
    split = len(text.rstrip("-0123456789"))
    if split == len(text) or split == 0:
        raise ValueError(f"Cannot parse note: {name}")
    return note_to_midi(text[:split], int(text[split:]))


def cents_between(detected_freq: float, target_freq: float) -> int:
    """Signed distance in cents from target to detected."""
    return round_half_up(1200 * math.log2(detected_freq / target_freq))


def pitch_quality(cents: float) -> str:
    """Bucket a cents deviation into 'perfect', 'good', 'fair' or 'poor'."""
    abs_cents = abs(cents)
    if abs_cents <= 5:
        return "perfect"
    if abs_cents <= 15:
        return "good"
    if abs_cents <= 30:
        return "fair"
    return "poor"


def format_pitch_display(pitch: DetectedPitch) -> str:
    """Format a detected pitch for display (e.g., 'A4 (+3¢)')."""
    cents_str = f"+{pitch.cents}" if pitch.cents >= 0 else f"{pitch.cents}"
    return f"{pitch.note}{pitch.octave} ({cents_str}¢)"
