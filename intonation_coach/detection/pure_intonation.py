"""Just-intonation adjustments for double stops."""

from typing import Dict, List

from ..note_types import PureIntonationSuggestion

# Pure/just intervals, cents deviation from equal temperament
PURE_INTERVAL_DEVIATIONS: Dict[str, int] = {
    "unison": 0,
    "minor_second": 12,  # Pure: 112 cents vs ET: 100
    "major_second": 4,  # Pure: 204 cents vs ET: 200
    "minor_third": 16,  # Pure: 316 cents vs ET: 300
    "major_third": -14,  # Pure: 386 cents vs ET: 400
    "perfect_fourth": -2,  # Pure: 498 cents vs ET: 500
    "tritone": -17,  # Pure: 583 cents vs ET: 600
    "perfect_fifth": 2,  # Pure: 702 cents vs ET: 700
    "minor_sixth": 14,  # Pure: 814 cents vs ET: 800
    "major_sixth": -16,  # Pure: 884 cents vs ET: 900
    "minor_seventh": -18,  # Pure: 982 cents vs ET: 1000
    "major_seventh": -12,  # Pure: 1088 cents vs ET: 1100
}

# Semitones -> (display name, table key)
INTERVAL_NAMES: Dict[int, tuple] = {
    1: ("minor second", "minor_second"),
    2: ("major second", "major_second"),
    3: ("minor third", "minor_third"),
    4: ("major third", "major_third"),
    5: ("perfect fourth", "perfect_fourth"),
    6: ("tritone", "tritone"),
    7: ("perfect fifth", "perfect_fifth"),
    8: ("minor sixth", "minor_sixth"),
    9: ("major sixth", "major_sixth"),
    10: ("minor seventh", "minor_seventh"),
    11: ("major seventh", "major_seventh"),
}

# Adjustments this small are not worth surfacing
MIN_SURFACED_ADJUSTMENT = 5


def get_pure_intonation_suggestions(
    lower_midi: int, upper_midi: int
) -> List[PureIntonationSuggestion]:
    """Suggest how to retune the upper note of a double stop for a pure interval.

    Only simple intervals (1 to 11 semitones) are covered. Intervals whose
    adjustment is 5 cents or less, which includes the perfect fifth and
    fourth, produce no suggestion.
    """
    interval = upper_midi - lower_midi
    suggestions: List[PureIntonationSuggestion] = []

    if interval not in INTERVAL_NAMES:
        return suggestions

    name, key = INTERVAL_NAMES[interval]
    adjustment = PURE_INTERVAL_DEVIATIONS[key]
    if abs(adjustment) > MIN_SURFACED_ADJUSTMENT:
        sign = "+" if adjustment > 0 else ""
        suggestions.append(
            PureIntonationSuggestion(
                interval=name,
                adjustment=adjustment,
                reason=(
                    f"For a pure {name}, adjust the upper note by "
                    f"{sign}{adjustment} cents for better resonance"
                ),
            )
        )
    return suggestions
