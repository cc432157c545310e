import math
import unittest

from intonation_coach.detection.intonation_analyzer import IntonationAnalyzer
from intonation_coach.note_types import VibratoQuality


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


class TestVibratoAnalysis(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.analyzer = IntonationAnalyzer(clock=self.clock)

    def play_vibrato(self, width_cents, rate_hz, seconds=2.5, step_ms=20.0):
        """Feed an A4 oscillating +/- width_cents around the pitch."""
        count = int(seconds * 1000 / step_ms) + 1
        for i in range(count):
            t_ms = i * step_ms
            cents = width_cents * math.sin(2 * math.pi * rate_hz * t_ms / 1000.0)
            frequency = 440.0 * 2 ** (cents / 1200.0)
            self.analyzer.add_sample(frequency, 0.5, timestamp=t_ms)
        self.clock.now = (count - 1) * step_ms / 1000.0

    def test_good_vibrato(self):
        self.play_vibrato(15, 5.5)
        vibrato = self.analyzer.analyze_vibrato(69)

        self.assertTrue(vibrato.present)
        self.assertGreaterEqual(vibrato.rate, 4.5)
        self.assertLessEqual(vibrato.rate, 7.0)
        self.assertGreaterEqual(vibrato.width, 26)
        self.assertLessEqual(vibrato.width, 30)
        self.assertGreater(vibrato.consistency, 70)
        self.assertEqual(vibrato.quality, VibratoQuality.GOOD)

        result = self.analyzer.get_analysis()
        self.assertTrue(result.vibrato_present)
        self.assertAlmostEqual(result.average_vibrato_rate, vibrato.rate)
        self.assertAlmostEqual(result.average_vibrato_width, vibrato.width)

    def test_wide_vibrato(self):
        self.play_vibrato(40, 5.5)
        vibrato = self.analyzer.analyze_vibrato(69)
        self.assertTrue(vibrato.present)
        self.assertEqual(vibrato.quality, VibratoQuality.WIDE)
        self.assertGreater(vibrato.width, 60)
        self.assertTrue(self.analyzer.get_analysis().vibrato_present)

    def test_narrow_vibrato(self):
        self.play_vibrato(9, 5.5)
        vibrato = self.analyzer.analyze_vibrato(69)
        self.assertTrue(vibrato.present)
        self.assertEqual(vibrato.quality, VibratoQuality.NARROW)
        self.assertEqual(
            self.analyzer.get_note_report(69).suggestion,
            "Vibrato is too narrow - allow for more pitch variation",
        )

    def test_slow_vibrato(self):
        self.play_vibrato(15, 3.5)
        vibrato = self.analyzer.analyze_vibrato(69)
        self.assertTrue(vibrato.present)
        self.assertEqual(vibrato.quality, VibratoQuality.SLOW)
        self.assertIn(
            "Your vibrato is a bit slow - try speeding it up slightly",
            self.analyzer.get_analysis().suggestions,
        )

    def test_too_narrow_to_count(self):
        self.play_vibrato(5, 5.5)
        vibrato = self.analyzer.analyze_vibrato(69)
        self.assertFalse(vibrato.present)
        self.assertEqual(vibrato.quality, VibratoQuality.IRREGULAR)
        self.assertLessEqual(vibrato.width, 10)

    def test_too_few_samples(self):
        for i in range(5):
            self.analyzer.add_sample(440.0, 0.5, timestamp=i * 20.0)
        self.clock.now = 0.1
        vibrato = self.analyzer.analyze_vibrato(69)
        self.assertFalse(vibrato.present)
        self.assertEqual(vibrato.rate, 0.0)
        self.assertEqual(vibrato.width, 0.0)
        self.assertEqual(vibrato.consistency, 0.0)

    def test_stale_readings_ignored(self):
        self.play_vibrato(15, 5.5)
        self.clock.now += 5.0
        self.assertFalse(self.analyzer.analyze_vibrato(69).present)

    def test_unknown_note(self):
        self.assertFalse(self.analyzer.analyze_vibrato(60).present)


if __name__ == "__main__":
    unittest.main()
