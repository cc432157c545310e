import unittest

import numpy as np

from intonation_coach.audio.recorder import AudioRecorder, encode_pcm16
from intonation_coach.note_types import Recording


class TestAudioRecorder(unittest.TestCase):
    def setUp(self):
        self.completed = []

    def make_recorder(self, **kwargs):
        return AudioRecorder(sample_rate=8000, on_complete=self.completed.append, **kwargs)

    def test_start_stop(self):
        recorder = self.make_recorder()
        recorder.start()
        recorder.handle_chunk(b"\x01\x00\x02\x00")
        recorder.handle_chunk(b"\x03\x00")
        self.assertEqual(recorder.chunk_count, 2)
        self.assertEqual(recorder.size, 6)

        recording = recorder.stop()
        self.assertEqual(recording.data, b"\x01\x00\x02\x00\x03\x00")
        self.assertEqual(recording.chunk_count, 2)
        self.assertFalse(recording.truncated)
        self.assertFalse(recorder.is_recording)
        self.assertEqual(recorder.size, 0)
        self.assertEqual(self.completed, [recording])

    def test_stop_when_idle(self):
        recorder = self.make_recorder()
        self.assertIsNone(recorder.stop())
        recorder.start()
        recorder.stop()
        self.assertIsNone(recorder.stop())
        self.assertEqual(len(self.completed), 1)

    def test_chunks_ignored_when_idle(self):
        recorder = self.make_recorder()
        recorder.handle_chunk(b"\x00\x00")
        self.assertEqual(recorder.chunk_count, 0)

    def test_empty_chunk_ignored(self):
        recorder = self.make_recorder()
        recorder.start()
        recorder.handle_chunk(b"")
        self.assertEqual(recorder.chunk_count, 0)

    def test_byte_cap(self):
        recorder = self.make_recorder(max_bytes=10)
        recorder.start()
        recorder.handle_chunk(b"aaaa")
        recorder.handle_chunk(b"bbbb")
        # Would reach 12 bytes: not stored, recording delivered
        recorder.handle_chunk(b"cccc")

        self.assertFalse(recorder.is_recording)
        self.assertEqual(len(self.completed), 1)
        recording = self.completed[0]
        self.assertEqual(recording.data, b"aaaabbbb")
        self.assertTrue(recording.truncated)

        recorder.handle_chunk(b"dddd")
        self.assertEqual(len(self.completed), 1)

    def test_chunk_cap(self):
        recorder = self.make_recorder(max_chunks=3)
        recorder.start()
        for _ in range(5):
            recorder.handle_chunk(b"\x00\x00")

        self.assertEqual(len(self.completed), 1)
        self.assertEqual(self.completed[0].chunk_count, 3)
        self.assertTrue(self.completed[0].truncated)

    def test_restart_discards_previous(self):
        recorder = self.make_recorder()
        recorder.start()
        recorder.handle_chunk(b"\x01\x00")
        recorder.start()
        self.assertEqual(recorder.chunk_count, 0)

    def test_handle_samples(self):
        recorder = self.make_recorder()
        recorder.start()
        recorder.handle_samples(np.zeros((80, 1), dtype=np.float32))
        self.assertEqual(recorder.size, 160)


class TestPcmEncoding(unittest.TestCase):
    def test_encode_pcm16_clips(self):
        data = encode_pcm16(np.array([0.0, 1.0, -1.0, 2.0, -3.0]))
        values = np.frombuffer(data, dtype="<i2")
        self.assertEqual(values.tolist(), [0, 32767, -32767, 32767, -32767])


class TestRecording(unittest.TestCase):
    def setUp(self):
        samples = 0.25 * np.sin(2 * np.pi * 440.0 * np.arange(8000) / 8000)
        self.recording = Recording(data=encode_pcm16(samples), sample_rate=8000, chunk_count=1)

    def test_duration_and_size(self):
        self.assertEqual(self.recording.size, 16000)
        self.assertAlmostEqual(self.recording.duration, 1.0)
        self.assertEqual(self.recording.samples().shape, (8000, 1))

    def test_to_wav(self):
        wav = self.recording.to_wav()
        self.assertTrue(wav.startswith(b"RIFF"))
        self.assertEqual(wav[8:12], b"WAVE")

    def test_empty_recording(self):
        recording = Recording(data=b"", sample_rate=44100)
        self.assertEqual(recording.duration, 0.0)


if __name__ == "__main__":
    unittest.main()
