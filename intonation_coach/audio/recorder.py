"""Bounded recorder that collects encoded audio chunks."""

from __future__ import annotations
from typing import Callable, ClassVar, List, Optional

import numpy as np

from ..logger import get_logger
from ..note_types import Recording

logger = get_logger(__name__)


def encode_pcm16(samples: np.ndarray) -> bytes:
    """Encode float samples in [-1, 1] as little-endian 16-bit PCM."""
    clipped = np.clip(np.asarray(samples, dtype=np.float32), -1.0, 1.0)
    return (clipped * 32767.0).astype("<i2").tobytes()


class AudioRecorder:
    """Accumulates encoded chunks between start() and stop().

    Two hard caps bound memory: a maximum chunk count and a maximum
    cumulative byte size. A chunk that would break either cap is not
    stored; the recorder stops itself and delivers what it has.
    """

    MAX_RECORDING_CHUNKS: ClassVar[int] = 600  # ~60 seconds at 100ms intervals
    MAX_RECORDING_SIZE_BYTES: ClassVar[int] = 100 * 1024 * 1024  # 100MB max

    def __init__(
        self,
        sample_rate: int,
        channels: int = 1,
        max_chunks: int = MAX_RECORDING_CHUNKS,
        max_bytes: int = MAX_RECORDING_SIZE_BYTES,
        on_complete: Optional[Callable[[Recording], None]] = None,
    ) -> None:
        self._sample_rate = sample_rate
        self._channels = channels
        self._max_chunks = max_chunks
        self._max_bytes = max_bytes
        self._on_complete = on_complete

        self._chunks: List[bytes] = []
        self._size = 0
        self._recording = False

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def chunk_count(self) -> int:
        return len(self._chunks)

    @property
    def size(self) -> int:
        """Bytes held so far."""
        return self._size

    def start(self) -> None:
        """Start a new recording, discarding anything held from before."""
        self._chunks = []
        self._size = 0
        self._recording = True
        logger.info("Recording started")

    def handle_chunk(self, data: bytes) -> None:
        """Store one encoded chunk, enforcing the caps."""
        if not self._recording or not data:
            return

        if len(self._chunks) >= self._max_chunks:
            logger.warning("Recording chunk limit reached, stopping recording")
            self.stop(truncated=True)
            return

        if self._size + len(data) > self._max_bytes:
            logger.warning("Recording size limit reached, stopping recording")
            self.stop(truncated=True)
            return

        self._chunks.append(data)
        self._size += len(data)

    def handle_samples(self, samples: np.ndarray) -> None:
        self.handle_chunk(encode_pcm16(samples))

    def stop(self, truncated: bool = False) -> Optional[Recording]:
        """Stop recording and deliver the concatenated chunks.

        Returns:
            The Recording, or None if the recorder was not running
        """
        if not self._recording:
            return None
        self._recording = False

        recording = Recording(
            data=b"".join(self._chunks),
            sample_rate=self._sample_rate,
            channels=self._channels,
            chunk_count=len(self._chunks),
            truncated=truncated,
        )
        # Release chunk memory right away
        self._chunks = []
        self._size = 0

        logger.info(
            f"Recording stopped: {recording.chunk_count} chunks, "
            f"{recording.size} bytes, {recording.duration:.1f}s"
        )
        if self._on_complete:
            self._on_complete(recording)
        return recording
