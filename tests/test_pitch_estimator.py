import unittest

import numpy as np
import pytest

from intonation_coach.audio.pitch_estimator import (
    AubioPitchEstimator,
    PitchEstimator,
    create_estimator,
)

SAMPLE_RATE = 44100
WINDOW = 2048


def sine(frequency, samples=WINDOW, amplitude=0.5):
    t = np.arange(samples) / SAMPLE_RATE
    return (amplitude * np.sin(2 * np.pi * frequency * t)).astype(np.float32)


class TestPitchEstimator(unittest.TestCase):
    def setUp(self):
        self.estimator = PitchEstimator(sample_rate=SAMPLE_RATE, window_size=WINDOW)

    def test_a4_sine(self):
        frequency, clarity = self.estimator.find_pitch(sine(440.0))
        self.assertAlmostEqual(frequency, 440.0, delta=2.0)
        self.assertGreater(clarity, 0.9)

        pitch = self.estimator.detect(sine(440.0))
        self.assertIsNotNone(pitch)
        self.assertEqual(pitch.note, "A")
        self.assertEqual(pitch.octave, 4)
        self.assertEqual(pitch.name, "A4")
        self.assertLessEqual(abs(pitch.cents), 8)

    def test_violin_strings(self):
        # Open strings G3, D4, A4, E5
        for frequency, name in ((196.0, "G3"), (293.66, "D4"), (440.0, "A4"), (659.26, "E5")):
            pitch = self.estimator.detect(sine(frequency))
            self.assertIsNotNone(pitch, name)
            self.assertEqual(pitch.name, name)

    def test_silence(self):
        self.assertEqual(self.estimator.find_pitch(np.zeros(WINDOW)), (0.0, 0.0))
        self.assertIsNone(self.estimator.detect(np.zeros(WINDOW)))

    def test_below_violin_range(self):
        self.assertIsNone(self.estimator.detect(sine(100.0)))

    def test_noise_is_rejected(self):
        rng = np.random.default_rng(1234)
        noise = rng.normal(0.0, 0.3, WINDOW).astype(np.float32)
        self.assertIsNone(self.estimator.detect(noise))

    def test_non_finite_input(self):
        data = sine(440.0)
        data[10] = np.nan
        self.assertEqual(self.estimator.find_pitch(data), (0.0, 0.0))

    def test_uses_most_recent_samples(self):
        data = np.concatenate([np.zeros(WINDOW, dtype=np.float32), sine(440.0)])
        pitch = self.estimator.detect(data)
        self.assertIsNotNone(pitch)
        self.assertEqual(pitch.name, "A4")

    def test_min_clarity_is_configurable(self):
        strict = PitchEstimator(sample_rate=SAMPLE_RATE, window_size=WINDOW, min_clarity=1.01)
        self.assertIsNone(strict.detect(sine(440.0)))

    def test_invalid_parameters(self):
        with self.assertRaises(ValueError):
            PitchEstimator(sample_rate=0)
        with self.assertRaises(ValueError):
            PitchEstimator(window_size=2)

    def test_create_estimator(self):
        self.assertIsInstance(create_estimator("mpm", sample_rate=SAMPLE_RATE), PitchEstimator)
        with self.assertRaises(ValueError):
            create_estimator("bogus")


class TestAubioPitchEstimator(unittest.TestCase):
    def test_a4_sine(self):
        pytest.importorskip("aubio")
        estimator = AubioPitchEstimator(sample_rate=SAMPLE_RATE, window_size=WINDOW)
        frequency, clarity = estimator.find_pitch(sine(440.0))
        self.assertAlmostEqual(frequency, 440.0, delta=3.0)
        self.assertGreater(clarity, 0.5)

    def test_silence(self):
        pytest.importorskip("aubio")
        estimator = AubioPitchEstimator(sample_rate=SAMPLE_RATE, window_size=WINDOW)
        self.assertIsNone(estimator.detect(np.zeros(WINDOW, dtype=np.float32)))


if __name__ == "__main__":
    unittest.main()
