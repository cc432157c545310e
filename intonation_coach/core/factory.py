"""Factory for creating Intonation Coach components."""

from typing import Callable, Dict, Optional

from ..logger import get_logger
from ..audio.capture_pipeline import AudioCapturePipeline
from ..audio.sources import SoundDeviceSource, WavFileSource
from ..detection.intonation_analyzer import IntonationAnalyzer
from ..session import PracticeSession
from .config import ConfigManager
from .interfaces import IAudioSource, IPitchEstimator

logger = get_logger(__name__)


class ComponentFactory:
    """Factory for creating Intonation Coach components."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """Initialize the component factory.

        Args:
            config_manager: Configuration manager, or None to create a default one
        """
        self.config_manager = config_manager or ConfigManager()

        # Register default component implementations
        self.source_builders: Dict[str, Callable[..., IAudioSource]] = {
            "sounddevice": self._build_sounddevice_source,
            "wav": self._build_wav_source,
        }

    def _build_sounddevice_source(self, **kwargs) -> IAudioSource:
        capture = self.config_manager.get_config("capture")
        params = {
            "device_id": capture.device_id,
            "sample_rate": capture.sample_rate,
            "channels": capture.channels,
            "history_size": capture.window_size * 4,
        }
        params.update(kwargs)
        return SoundDeviceSource(**params)

    def _build_wav_source(self, **kwargs) -> IAudioSource:
        capture = self.config_manager.get_config("capture")
        kwargs.setdefault("history_size", capture.window_size * 4)
        return WavFileSource(**kwargs)

    def create_source(self, implementation: str = "sounddevice", **kwargs) -> IAudioSource:
        """Create an audio source.

        Args:
            implementation: Name of the implementation to use
            **kwargs: Additional parameters to pass to the constructor

        Raises:
            ValueError: If the implementation is not registered
        """
        if implementation not in self.source_builders:
            raise ValueError(f"Unknown audio source implementation: {implementation}")

        instance = self.source_builders[implementation](**kwargs)
        logger.info(f"Created audio source: {implementation}")
        return instance

    def create_analyzer(self, **kwargs) -> IntonationAnalyzer:
        return IntonationAnalyzer(config=self.config_manager.get_config("analyzer"), **kwargs)

    def create_pipeline(
        self, source: Optional[IAudioSource] = None, estimator: Optional[IPitchEstimator] = None
    ) -> AudioCapturePipeline:
        """Create a capture pipeline; the estimator is built on initialize() if not given."""
        return AudioCapturePipeline(
            source=source or self.create_source(),
            estimator=estimator,
            config=self.config_manager.get_config("capture"),
        )

    def create_session(self, source: Optional[IAudioSource] = None) -> PracticeSession:
        """Create a practice session with a fresh analyzer."""
        session = PracticeSession(
            pipeline=self.create_pipeline(source),
            analyzer=self.create_analyzer(),
            config=self.config_manager.get_config("session"),
        )
        logger.info("Created practice session")
        return session
