"""Fixed-size spectral analyzer fed by a signal tap.

The analyzer keeps the most recent ``window_size`` mono samples in a ring
buffer filled from the audio callback thread. A frame pull windows the buffer,
runs a real FFT, applies exponential smoothing across pulls and maps magnitudes
onto 0..255 between ``min_decibels`` and ``max_decibels``.
"""

import logging
import threading

import numpy as np

logger = logging.getLogger(__name__)


class SpectralAnalyzer:
    """Magnitude transform over the attached tap's signal."""

    def __init__(
        self,
        window_size: int = 2048,
        smoothing: float = 0.8,
        min_decibels: float = -100.0,
        max_decibels: float = -30.0,
        sample_rate: int = 44100,
    ) -> None:
        """Initialize the analyzer.

        Args:
            window_size: FFT window length in samples (power of two)
            smoothing: Time constant in [0, 1] for frame-to-frame damping
            min_decibels: Level mapped to byte value 0
            max_decibels: Level mapped to byte value 255
            sample_rate: Sample rate of the attached signal in Hz
        """
        if window_size < 32 or window_size & (window_size - 1):
            raise ValueError(f"window_size must be a power of two >= 32, got {window_size}")
        if not 0.0 <= smoothing <= 1.0:
            raise ValueError(f"smoothing must be within [0, 1], got {smoothing}")
        if min_decibels >= max_decibels:
            raise ValueError("min_decibels must be lower than max_decibels")

        self.window_size = window_size
        self.smoothing = smoothing
        self.min_decibels = min_decibels
        self.max_decibels = max_decibels
        self.sample_rate = sample_rate

        self._window = np.blackman(window_size).astype(np.float32)
        self._lock = threading.Lock()
        self._ring = np.zeros(window_size, dtype=np.float32)
        self._write_pos = 0
        self._smoothed = np.zeros(self.frequency_bin_count, dtype=np.float64)
        self._frequency_bytes = np.zeros(self.frequency_bin_count, dtype=np.uint8)
        self._time_bytes = np.full(self.frequency_bin_count, 128, dtype=np.uint8)

    @property
    def frequency_bin_count(self) -> int:
        """Number of frequency bins, half the window size."""
        return self.window_size // 2

    def bin_frequency(self, index: int) -> float:
        """Centre frequency in Hz of bin ``index`` at the current sample rate."""
        return index * self.sample_rate / self.window_size

    def reset(self, sample_rate: int | None = None) -> None:
        """Discard all buffered samples and smoothing history."""
        with self._lock:
            if sample_rate is not None:
                self.sample_rate = sample_rate
            self._ring.fill(0.0)
            self._write_pos = 0
            self._smoothed.fill(0.0)
            self._frequency_bytes.fill(0)
            self._time_bytes.fill(128)
        logger.debug("SpectralAnalyzer reset at %dHz", self.sample_rate)

    def feed(self, samples: np.ndarray) -> None:
        """Append mono float samples in [-1, 1]; called from audio callbacks."""
        samples = np.asarray(samples, dtype=np.float32).reshape(-1)
        count = samples.size
        if count == 0:
            return
        with self._lock:
            if count >= self.window_size:
                self._ring[:] = samples[-self.window_size :]
                self._write_pos = 0
                return
            end = self._write_pos + count
            if end <= self.window_size:
                self._ring[self._write_pos : end] = samples
            else:
                split = self.window_size - self._write_pos
                self._ring[self._write_pos :] = samples[:split]
                self._ring[: count - split] = samples[split:]
            self._write_pos = end % self.window_size

    def _snapshot(self) -> np.ndarray:
        """Ring buffer contents ordered oldest to newest."""
        with self._lock:
            return np.concatenate((self._ring[self._write_pos :], self._ring[: self._write_pos]))

    def pull_frame(self) -> tuple[bytes, bytes]:
        """Compute the current frequency and time-domain byte buffers.

        Never waits for new audio: whatever the ring buffer holds is analyzed.

        Returns:
            Tuple of (frequency bytes, time-domain bytes), each
            ``frequency_bin_count`` long
        """
        samples = self._snapshot()

        spectrum = np.fft.rfft(samples * self._window)[: self.frequency_bin_count]
        magnitude = np.abs(spectrum) / self.window_size
        self._smoothed = self.smoothing * self._smoothed + (1.0 - self.smoothing) * magnitude

        with np.errstate(divide="ignore"):
            decibels = 20.0 * np.log10(self._smoothed)
        scale = 255.0 / (self.max_decibels - self.min_decibels)
        scaled = np.floor(scale * (decibels - self.min_decibels))
        self._frequency_bytes[:] = np.clip(np.nan_to_num(scaled, neginf=0.0), 0, 255)

        recent = samples[-self.frequency_bin_count :]
        self._time_bytes[:] = np.clip(np.floor(128.0 * (1.0 + recent)), 0, 255)

        return self._frequency_bytes.tobytes(), self._time_bytes.tobytes()

    def current_frequency_bytes(self) -> bytes:
        """Frequency bytes from the most recent pull."""
        return self._frequency_bytes.tobytes()
