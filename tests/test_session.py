import asyncio
import unittest

from intonation_coach.audio.capture_pipeline import AudioCapturePipeline
from intonation_coach.core.config import CaptureConfig, SessionConfig
from intonation_coach.core.errors import DeviceUnavailableError
from intonation_coach.mock_audio_source import ArraySource
from intonation_coach.note_types import DetectedPitch, PitchTrend
from intonation_coach.session import PracticeSession


def make_pitch(cents, clarity=0.95):
    return DetectedPitch(frequency=440.0, note="A", octave=4, cents=cents, clarity=clarity)


class TestPracticeSession(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.source = ArraySource()
        self.pipeline = AudioCapturePipeline(
            self.source, config=CaptureConfig(frame_rate=100.0, chunk_interval=0.01)
        )
        self.session = PracticeSession(
            self.pipeline, config=SessionConfig(snapshot_interval=0.05)
        )

    def tearDown(self):
        self.session.stop()

    async def test_feeds_analyzer_and_stops(self):
        snapshots = []
        self.session.on_analysis(snapshots.append)
        self.source.push_tone(440.0, 0.5)

        await self.session.start()
        self.assertTrue(self.session.is_active)
        await asyncio.sleep(0.2)
        self.assertIsNotNone(self.session.current_pitch)
        self.assertFalse(self.session.analyzer.is_empty)

        result = self.session.stop()
        self.assertFalse(self.session.is_active)
        self.assertEqual([r.note for r in result.note_reports], ["A4"])
        self.assertGreater(len(snapshots), 0)
        self.assertIs(self.session.last_analysis, result)

        # The session is torn down completely
        self.assertTrue(self.session.analyzer.is_empty)
        self.assertFalse(self.pipeline.is_initialized)
        self.assertFalse(self.source.is_open())

    async def test_stop_is_idempotent(self):
        await self.session.start()
        first = self.session.stop()
        second = self.session.stop()
        self.assertIs(first, second)

    async def test_stop_before_start(self):
        result = self.session.stop()
        self.assertEqual(result.overall_accuracy, 100.0)
        self.assertEqual(result.note_reports, [])

    async def test_start_failure(self):
        session = PracticeSession(AudioCapturePipeline(ArraySource(fail_open=True)))
        with self.assertRaises(DeviceUnavailableError):
            await session.start()
        self.assertFalse(session.is_active)

    async def test_stop_while_starting(self):
        source = ArraySource(open_delay=0.2)
        session = PracticeSession(
            AudioCapturePipeline(source), config=SessionConfig(snapshot_interval=0.05)
        )
        snapshots = []
        session.on_analysis(snapshots.append)
        task = asyncio.create_task(session.start())
        await asyncio.sleep(0.05)
        session.stop()

        with self.assertRaises(DeviceUnavailableError):
            await task
        await asyncio.sleep(0.15)
        self.assertFalse(session.is_active)
        self.assertFalse(session.pipeline.is_detecting)
        self.assertFalse(source.is_open())
        self.assertEqual(snapshots, [])

    async def test_no_snapshots_after_stop(self):
        snapshots = []
        self.session.on_analysis(snapshots.append)
        await self.session.start()
        await asyncio.sleep(0.12)
        self.session.stop()
        count = len(snapshots)
        await asyncio.sleep(0.12)
        self.assertEqual(len(snapshots), count)

    async def test_records_when_asked(self):
        await self.session.start(record=True)
        self.source.push_tone(440.0, 0.1)
        await asyncio.sleep(0.05)
        self.session.stop()

        recording = self.session.recording
        self.assertIsNotNone(recording)
        self.assertEqual(recording.size, 4410 * 2)

    async def test_async_context_manager(self):
        async with self.session as session:
            self.assertTrue(session.is_active)
        self.assertFalse(self.session.is_active)
        self.assertFalse(self.source.is_open())

    async def test_low_clarity_not_fed(self):
        await self.session.start()
        self.session._handle_pitch(make_pitch(3, clarity=0.5))
        self.assertEqual(self.session.trend(), PitchTrend.STABLE)
        self.assertEqual(self.session.pitch_quality(), "perfect")

    async def test_trend(self):
        await self.session.start()
        self.assertIsNone(self.session.pitch_quality())

        for cents in range(-10, 10):
            self.session._handle_pitch(make_pitch(cents))
        self.assertEqual(self.session.trend(), PitchTrend.RISING)

        for cents in range(10, -10, -1):
            self.session._handle_pitch(make_pitch(cents))
        self.assertEqual(self.session.trend(), PitchTrend.FALLING)

        for _ in range(20):
            self.session._handle_pitch(make_pitch(2))
        self.assertEqual(self.session.trend(), PitchTrend.STABLE)
        self.assertEqual(self.session.pitch_quality(), "perfect")


if __name__ == "__main__":
    unittest.main()
