"""Pitch estimation for single analysis windows."""

from __future__ import annotations
import numpy as np
from typing import ClassVar, Optional, Tuple, TypeAlias

from ..logger import get_logger
from ..note_types import DetectedPitch
from ..note_utils import frequency_to_note
from ..core.interfaces import IPitchEstimator

logger = get_logger(__name__)


class BasePitchEstimator(IPitchEstimator):
    """Shared window handling and acceptance rules for pitch estimators."""

    # Type aliases
    Frequency: TypeAlias = float
    Clarity: TypeAlias = float

    # Violin range: G3 (196Hz) to E7 (2637Hz), with some headroom
    VIOLIN_MIN_FREQUENCY: ClassVar[Frequency] = 180.0
    VIOLIN_MAX_FREQUENCY: ClassVar[Frequency] = 3000.0
    DEFAULT_MIN_CLARITY: ClassVar[Clarity] = 0.85

    def __init__(
        self,
        sample_rate: int = 44100,
        window_size: int = 2048,
        min_clarity: float = DEFAULT_MIN_CLARITY,
        min_frequency: float = VIOLIN_MIN_FREQUENCY,
        max_frequency: float = VIOLIN_MAX_FREQUENCY,
    ) -> None:
        """Initialize the estimator.

        Args:
            sample_rate: Capture sample rate in Hz
            window_size: Number of samples per analysis window
            min_clarity: Results below this clarity are treated as "no pitch"
            min_frequency: Lowest playable frequency in Hz
            max_frequency: Highest playable frequency in Hz
        """
        if sample_rate <= 0:
            raise ValueError("Sample rate must be positive")
        if window_size < 4:
            raise ValueError("window_size must be at least 4 samples")

        self._sample_rate = sample_rate
        self._window_size = window_size
        self._min_clarity = min_clarity
        self._min_frequency = min_frequency
        self._max_frequency = max_frequency

        # Scratch space reused on every call
        self._window = np.zeros(window_size, dtype=np.float64)

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def window_size(self) -> int:
        return self._window_size

    def _load_window(self, audio_data: np.ndarray) -> np.ndarray:
        """Copy audio into the scratch window, truncating or zero padding."""
        data = np.asarray(audio_data).reshape(-1)
        if len(data) >= self._window_size:
            # Keep the most recent samples
            self._window[:] = data[-self._window_size :]
        else:
            self._window[: len(data)] = data
            self._window[len(data) :] = 0.0
        return self._window

    def detect(self, audio_data: np.ndarray) -> Optional[DetectedPitch]:
        """Estimate the pitch of one window and apply the acceptance rules.

        Returns:
            DetectedPitch, or None when clarity is too low or the frequency is
            outside the instrument's playable range
        """
        frequency, clarity = self.find_pitch(audio_data)

        if (
            clarity < self._min_clarity
            or frequency < self._min_frequency
            or frequency > self._max_frequency
        ):
            return None

        info = frequency_to_note(frequency)
        return DetectedPitch(
            frequency=frequency,
            note=info.pitch_class,
            octave=info.octave,
            cents=info.cents,
            clarity=clarity,
        )


class PitchEstimator(BasePitchEstimator):
    """McLeod Pitch Method estimator.

    Computes the normalized square difference function (NSDF) of the window,
    picks the first key maximum within ``cutoff`` of the highest one and
    refines it with parabolic interpolation. The refined peak height is the
    clarity.
    """

    DEFAULT_CUTOFF: ClassVar[float] = 0.9

    def __init__(self, *args, cutoff: float = DEFAULT_CUTOFF, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._cutoff = cutoff
        # FFT length large enough for a linear (not circular) autocorrelation
        self._fft_size = 1 << int(np.ceil(np.log2(2 * self._window_size)))
        self._max_lag = self._window_size // 2
        logger.info(
            f"MPM pitch estimator initialized: sample_rate={self._sample_rate}, "
            f"window_size={self._window_size}"
        )

    def _nsdf(self, x: np.ndarray) -> np.ndarray:
        n = len(x)
        spectrum = np.fft.rfft(x, n=self._fft_size)
        acf = np.fft.irfft(spectrum * np.conj(spectrum), n=self._fft_size)[:n]

        # m'(tau) = sum x[j]^2 + x[j+tau]^2 over the overlapping part
        squares = np.cumsum(x * x)
        total = squares[-1]
        head = squares[::-1]
        tail = total - np.concatenate(([0.0], squares[:-1]))
        m = head + tail

        nsdf = np.zeros(n, dtype=np.float64)
        np.divide(2.0 * acf, m, out=nsdf, where=m > 1e-12)
        return nsdf[: self._max_lag]

    @staticmethod
    def _key_maxima(nsdf: np.ndarray) -> np.ndarray:
        """Index of the highest point of each positive lobe after the first zero crossing."""
        non_positive = np.flatnonzero(nsdf <= 0)
        if non_positive.size == 0:
            return np.empty(0, dtype=int)

        start = non_positive[0]
        positive = (nsdf[start:] > 0).astype(np.int8)
        edges = np.diff(np.concatenate(([0], positive, [0])))
        lobe_starts = np.flatnonzero(edges == 1) + start
        lobe_ends = np.flatnonzero(edges == -1) + start

        maxima = []
        for lo, hi in zip(lobe_starts, lobe_ends):
            peak = lo + int(np.argmax(nsdf[lo:hi]))
            # A lobe cut off by the end of the lag range has no confirmed peak
            if peak < len(nsdf) - 1:
                maxima.append(peak)
        return np.asarray(maxima, dtype=int)

    @staticmethod
    def _refine(nsdf: np.ndarray, tau: int) -> Tuple[float, float]:
        """Parabolic interpolation around a peak, returns (lag, height)."""
        a, b, c = nsdf[tau - 1], nsdf[tau], nsdf[tau + 1]
        bottom = c + a - 2.0 * b
        if bottom == 0:
            return float(tau), float(b)
        delta = a - c
        return tau + delta / (2.0 * bottom), b - delta * delta / (8.0 * bottom)

    def find_pitch(self, audio_data: np.ndarray) -> Tuple[float, float]:
        """Return (frequency, clarity); (0.0, 0.0) when no periodicity is found."""
        x = self._load_window(audio_data)
        if not np.all(np.isfinite(x)):
            return 0.0, 0.0

        nsdf = self._nsdf(x)
        maxima = self._key_maxima(nsdf)
        if maxima.size == 0:
            return 0.0, 0.0

        threshold = self._cutoff * float(np.max(nsdf[maxima]))
        tau = int(maxima[np.argmax(nsdf[maxima] >= threshold)])
        lag, height = self._refine(nsdf, tau)
        if lag <= 0:
            return 0.0, 0.0

        frequency = self._sample_rate / lag
        clarity = float(min(max(height, 0.0), 1.0))
        return float(frequency), clarity


class AubioPitchEstimator(BasePitchEstimator):
    """YIN estimator backed by aubio.

    The hop size equals the window size, so every call analyses exactly the
    window it is given and nothing carries over between calls.
    """

    def __init__(self, *args, method: str = "yin", tolerance: float = 0.15, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        try:
            import aubio
        except ImportError as e:
            raise ImportError(
                "AubioPitchEstimator needs aubio: pip install 'intonation-coach[aubio]'"
            ) from e

        self._method = method
        self._tolerance = tolerance
        self._pitch_detector = aubio.pitch(
            method, self._window_size, self._window_size, self._sample_rate
        )
        self._pitch_detector.set_unit("Hz")
        self._pitch_detector.set_tolerance(tolerance)
        # Silence gating happens upstream
        self._pitch_detector.set_silence(-100)
        self._buffer = np.zeros(self._window_size, dtype=np.float32)
        logger.info(
            f"aubio pitch estimator initialized: method={method}, "
            f"sample_rate={self._sample_rate}, window_size={self._window_size}"
        )

    def find_pitch(self, audio_data: np.ndarray) -> Tuple[float, float]:
        self._buffer[:] = self._load_window(audio_data)
        frequency = float(self._pitch_detector(self._buffer)[0])
        confidence = float(self._pitch_detector.get_confidence())
        if frequency <= 0:
            return 0.0, 0.0
        return frequency, min(max(confidence, 0.0), 1.0)


ESTIMATORS = {
    "mpm": PitchEstimator,
    "yin": AubioPitchEstimator,
}


def create_estimator(name: str = "mpm", **kwargs) -> BasePitchEstimator:
    """Build a pitch estimator by name ('mpm' or 'yin')."""
    if name not in ESTIMATORS:
        raise ValueError(f"Unknown pitch estimator: {name}")
    return ESTIMATORS[name](**kwargs)
