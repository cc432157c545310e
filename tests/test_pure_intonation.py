import unittest

from intonation_coach.detection.pure_intonation import (
    PURE_INTERVAL_DEVIATIONS,
    get_pure_intonation_suggestions,
)


class TestPureIntonation(unittest.TestCase):
    def test_major_third(self):
        suggestions = get_pure_intonation_suggestions(60, 64)
        self.assertEqual(len(suggestions), 1)
        suggestion = suggestions[0]
        self.assertEqual(suggestion.interval, "major third")
        self.assertEqual(suggestion.adjustment, -14)
        self.assertEqual(
            suggestion.reason,
            "For a pure major third, adjust the upper note by -14 cents for better resonance",
        )

    def test_minor_third_sign(self):
        suggestion = get_pure_intonation_suggestions(62, 65)[0]
        self.assertEqual(suggestion.adjustment, 16)
        self.assertIn("by +16 cents", suggestion.reason)

    def test_small_adjustments_are_not_surfaced(self):
        # Perfect fifth (+2), perfect fourth (-2), major second (+4)
        self.assertEqual(get_pure_intonation_suggestions(60, 67), [])
        self.assertEqual(get_pure_intonation_suggestions(60, 65), [])
        self.assertEqual(get_pure_intonation_suggestions(60, 62), [])

    def test_only_simple_intervals(self):
        self.assertEqual(get_pure_intonation_suggestions(60, 60), [])
        self.assertEqual(get_pure_intonation_suggestions(60, 72), [])
        self.assertEqual(get_pure_intonation_suggestions(55, 71), [])
        self.assertEqual(get_pure_intonation_suggestions(64, 60), [])

    def test_violin_double_stops(self):
        # G3 + B3 (major third), A4 + F5 (minor sixth), D4 + B4 (major sixth)
        self.assertEqual(get_pure_intonation_suggestions(55, 59)[0].adjustment, -14)
        self.assertEqual(get_pure_intonation_suggestions(69, 77)[0].adjustment, 14)
        self.assertEqual(get_pure_intonation_suggestions(62, 71)[0].adjustment, -16)

    def test_table_values(self):
        self.assertEqual(PURE_INTERVAL_DEVIATIONS["unison"], 0)
        self.assertEqual(PURE_INTERVAL_DEVIATIONS["perfect_fifth"], 2)
        self.assertEqual(PURE_INTERVAL_DEVIATIONS["tritone"], -17)


if __name__ == "__main__":
    unittest.main()
