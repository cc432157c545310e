"""Configuration management for Intonation Coach components."""

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional, Type, TypeVar
import json
import os
from pathlib import Path

from ..logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class AnalyzerConfig:
    """Thresholds and buffer caps for the intonation analyzer."""

    reference_frequency: float = 440.0
    min_amplitude: float = 0.01  # silence/noise guard
    # History of raw samples (~10 seconds at 50Hz)
    max_pitch_history: int = 500
    history_window_ms: float = 10000.0
    # Per-note and per-pitch-class buffers
    max_readings_per_note: int = 100
    max_tendencies_per_note: int = 200
    max_unique_notes: int = 24  # 2 octaves worth of notes
    # Per-reading sharp/flat classification
    cents_threshold_sharp: float = 10.0
    # Per-note average band, kept separate from the per-reading threshold
    cents_threshold_accurate: float = 10.0
    # Vibrato
    vibrato_window_ms: float = 2000.0
    min_vibrato_samples: int = 10
    vibrato_min_rate: float = 3.0
    vibrato_max_rate: float = 10.0
    vibrato_min_width: float = 15.0
    # Reporting
    max_suggestions: int = 5


@dataclass(frozen=True)
class CaptureConfig:
    """Options for the audio capture pipeline."""

    sample_rate: int = 44100
    channels: int = 1
    device_id: Optional[int] = None
    window_size: int = 2048  # analysis window in samples
    frame_rate: float = 60.0  # pitch loop ticks per second
    # Pitch estimator
    estimator: str = "mpm"
    min_clarity: float = 0.85
    min_frequency: float = 180.0  # violin G3 is ~196Hz
    max_frequency: float = 3000.0
    # Recorder (~60 seconds at 100ms intervals, 100MB max)
    chunk_interval: float = 0.1
    max_recording_chunks: int = 600
    max_recording_bytes: int = 100 * 1024 * 1024
    # Spectrum snapshot
    smoothing_time_constant: float = 0.8
    min_decibels: float = -100.0
    max_decibels: float = -30.0


@dataclass(frozen=True)
class SessionConfig:
    """Options for wiring a practice session together."""

    min_feed_clarity: float = 0.7
    snapshot_interval: float = 1.0  # seconds between analysis snapshots
    trend_window: int = 20
    trend_threshold: float = 3.0  # cents


CONFIG_TYPES: Dict[str, Type[Any]] = {
    "analyzer": AnalyzerConfig,
    "capture": CaptureConfig,
    "session": SessionConfig,
}


def config_from_dict(config_type: Type[T], values: Dict[str, Any]) -> T:
    """Build a config dataclass from a dict, ignoring unknown keys."""
    known = {f.name for f in fields(config_type)}
    unknown = sorted(set(values) - known)
    if unknown:
        logger.warning(f"Ignoring unknown {config_type.__name__} options: {unknown}")
    return config_type(**{k: v for k, v in values.items() if k in known})


class ConfigManager:
    """Configuration manager for Intonation Coach components."""

    def __init__(self, config_dir: Optional[str] = None):
        """Initialize the configuration manager.

        Args:
            config_dir: Directory to store configuration files, or None to use default
        """
        if config_dir is None:
            # Use ~/.config/intonation_coach by default
            home = os.path.expanduser("~")
            config_dir = os.path.join(home, ".config", "intonation_coach")

        self.config_dir = Path(config_dir)
        self.config_dir.mkdir(parents=True, exist_ok=True)

        # Load existing configurations or create default ones
        self.configs: Dict[str, Any] = {}
        for name in CONFIG_TYPES:
            self.configs[name] = self.load_config(name)

    def _path(self, name: str) -> Path:
        return self.config_dir / f"{name}.json"

    def load_config(self, name: str) -> Any:
        """Load configuration from file or create default.

        Args:
            name: Configuration name ('analyzer', 'capture' or 'session')

        Returns:
            Configuration dataclass

        Raises:
            KeyError: If the configuration name is unknown
        """
        config_type = CONFIG_TYPES[name]
        config_file = self._path(name)

        if config_file.exists():
            try:
                with open(config_file, "r") as f:
                    values = json.load(f)
                logger.info(f"Loaded configuration from {config_file}")
                return config_from_dict(config_type, values)
            except (OSError, ValueError, TypeError) as e:
                logger.error(f"Error loading configuration from {config_file}: {e}")
                return config_type()
        else:
            # Create default configuration
            config = config_type()
            self.save_config(name, config)
            return config

    def save_config(self, name: str, config: Any) -> bool:
        """Save configuration to file.

        Args:
            name: Configuration name
            config: Configuration dataclass

        Returns:
            True if saved successfully, False otherwise
        """
        config_file = self._path(name)

        try:
            with open(config_file, "w") as f:
                json.dump(asdict(config), f, indent=2)
            logger.info(f"Saved configuration to {config_file}")
            return True
        except OSError as e:
            logger.error(f"Error saving configuration to {config_file}: {e}")
            return False

    def get_config(self, name: str) -> Any:
        """Get configuration by name."""
        return self.configs[name]

    def update_config(self, name: str, updates: Dict[str, Any]) -> bool:
        """Update configuration and save to file.

        Args:
            name: Configuration name
            updates: Dictionary of updates to apply

        Returns:
            True if updated and saved successfully, False otherwise
        """
        if name not in self.configs:
            logger.error(f"Unknown configuration: {name}")
            return False

        values = asdict(self.configs[name])
        values.update(updates)
        self.configs[name] = config_from_dict(CONFIG_TYPES[name], values)

        return self.save_config(name, self.configs[name])

    def reset_config(self, name: str) -> bool:
        """Reset configuration to default.

        Returns:
            True if reset successfully, False otherwise
        """
        if name not in CONFIG_TYPES:
            logger.error(f"Unknown configuration: {name}")
            return False

        self.configs[name] = CONFIG_TYPES[name]()
        return self.save_config(name, self.configs[name])
