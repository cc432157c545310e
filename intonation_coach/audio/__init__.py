"""Audio capture, pitch estimation and recording."""

from .capture_pipeline import AudioCapturePipeline
from .pitch_estimator import AubioPitchEstimator, PitchEstimator, create_estimator
from .recorder import AudioRecorder
from .sources import SoundDeviceSource, WavFileSource

__all__ = [
    "AudioCapturePipeline",
    "AubioPitchEstimator",
    "PitchEstimator",
    "create_estimator",
    "AudioRecorder",
    "SoundDeviceSource",
    "WavFileSource",
]
