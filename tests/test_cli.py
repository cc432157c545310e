import asyncio
import contextlib
import io
import tempfile
import unittest
from pathlib import Path

import numpy as np
import soundfile as sf

from intonation_coach.cli.main import format_report, main, run_practice
from intonation_coach.core.config import ConfigManager
from intonation_coach.core.factory import ComponentFactory
from intonation_coach.mock_audio_source import ArraySource
from intonation_coach.note_types import IntonationAnalysisResult


def run_cli(*args):
    out, err = io.StringIO(), io.StringIO()
    with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
        code = main(list(args))
    return code, out.getvalue(), err.getvalue()


class TestDoubleStopCommand(unittest.TestCase):
    def test_major_third(self):
        code, out, _ = run_cli("double-stop", "C4", "E4")
        self.assertEqual(code, 0)
        self.assertIn(
            "For a pure major third, adjust the upper note by -14 cents for better resonance", out
        )

    def test_midi_numbers(self):
        code, out, _ = run_cli("double-stop", "62", "65")
        self.assertEqual(code, 0)
        self.assertIn("+16 cents", out)

    def test_perfect_fifth(self):
        code, out, _ = run_cli("double-stop", "G3", "D4")
        self.assertEqual(code, 0)
        self.assertIn("No pure-intonation adjustment", out)

    def test_bad_note(self):
        code, _, err = run_cli("double-stop", "H3", "D4")
        self.assertEqual(code, 1)
        self.assertIn("Error", err)


class TestAnalyzeCommand(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmp.cleanup()

    def test_missing_file(self):
        missing = str(Path(self.tmp.name) / "missing.wav")
        code, _, err = run_cli("--config-dir", self.tmp.name, "analyze", missing)
        self.assertEqual(code, 2)
        self.assertIn("Error", err)

    def test_analyze_tone(self):
        path = str(Path(self.tmp.name) / "a4.wav")
        t = np.arange(int(0.6 * 44100)) / 44100
        sf.write(path, 0.5 * np.sin(2 * np.pi * 440.0 * t), 44100)

        code, out, _ = run_cli("--config-dir", self.tmp.name, "analyze", path)
        self.assertEqual(code, 0)
        self.assertIn("Overall accuracy", out)
        self.assertIn("A4", out)


class TestPracticeCommand(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.source = ArraySource()
        self.factory = ComponentFactory(ConfigManager(self.tmp.name))
        self.factory.source_builders["sounddevice"] = lambda **kwargs: self.source

    def tearDown(self):
        self.tmp.cleanup()

    async def test_interrupt_keeps_report_and_recording(self):
        path = str(Path(self.tmp.name) / "take.wav")
        self.source.push_tone(440.0, 0.3)
        with contextlib.redirect_stdout(io.StringIO()):
            task = asyncio.create_task(run_practice(self.factory, 30.0, None, path))
            await asyncio.sleep(0.1)
            self.source.push_tone(440.0, 0.3)
            await asyncio.sleep(0.3)
            task.cancel()
            result = await task

        self.assertEqual([r.note for r in result.note_reports], ["A4"])
        self.assertTrue(Path(path).exists())
        data, sample_rate = sf.read(path)
        self.assertEqual(sample_rate, 44100)
        self.assertGreater(len(data), 0)
        self.assertFalse(self.source.is_open())


class TestCli(unittest.TestCase):
    def test_no_command(self):
        code, out, _ = run_cli()
        self.assertEqual(code, 1)
        self.assertIn("usage", out)

    def test_format_empty_report(self):
        text = format_report(IntonationAnalysisResult.empty())
        self.assertIn("Overall accuracy: 100%", text)
        self.assertIn("No notes detected.", text)


if __name__ == "__main__":
    unittest.main()
