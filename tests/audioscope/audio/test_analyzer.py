"""Tests for the SpectralAnalyzer."""

import numpy as np
import pytest

from audioscope.audio.analyzer import SpectralAnalyzer

SAMPLE_RATE = 44100
WINDOW = 2048


@pytest.fixture
def analyzer():
    """Provide an analyzer without smoothing so single pulls are exact."""
    return SpectralAnalyzer(window_size=WINDOW, smoothing=0.0, sample_rate=SAMPLE_RATE)


def bin_centred_sine(make_sine, bin_index: int, amplitude: float = 0.01) -> np.ndarray:
    """Sine exactly on the centre of ``bin_index`` for a full window."""
    frequency = bin_index * SAMPLE_RATE / WINDOW
    return make_sine(frequency, SAMPLE_RATE, WINDOW, amplitude=amplitude)


class TestConstruction:
    """Test analyzer parameter validation."""

    @pytest.mark.parametrize("window_size", [0, 16, 1000, 3000])
    def test_rejects_bad_window(self, window_size):
        """Should require a power-of-two window of at least 32 samples."""
        with pytest.raises(ValueError):
            SpectralAnalyzer(window_size=window_size)

    @pytest.mark.parametrize("smoothing", [-0.1, 1.5])
    def test_rejects_bad_smoothing(self, smoothing):
        """Should require smoothing within [0, 1]."""
        with pytest.raises(ValueError):
            SpectralAnalyzer(smoothing=smoothing)

    def test_rejects_inverted_decibels(self):
        """Should require min_decibels below max_decibels."""
        with pytest.raises(ValueError):
            SpectralAnalyzer(min_decibels=-30.0, max_decibels=-100.0)

    def test_defaults(self):
        """Should default to a 2048 window with 0.8 smoothing."""
        analyzer = SpectralAnalyzer()
        assert analyzer.window_size == 2048
        assert analyzer.smoothing == 0.8
        assert analyzer.frequency_bin_count == 1024

    def test_bin_frequency(self, analyzer):
        """Should space bins by sample_rate / window_size."""
        assert analyzer.bin_frequency(0) == 0.0
        assert analyzer.bin_frequency(1) == pytest.approx(SAMPLE_RATE / WINDOW)


class TestPullFrame:
    """Test frame computation."""

    def test_silence(self, analyzer):
        """Should report zero magnitude and centred time data for silence."""
        raw, time_data = analyzer.pull_frame()
        assert len(raw) == 1024
        assert len(time_data) == 1024
        assert raw == bytes(1024)
        assert time_data == bytes([128] * 1024)

    def test_peak_at_tone_bin(self, analyzer, make_sine):
        """Should place the spectral peak on the tone's bin."""
        analyzer.feed(bin_centred_sine(make_sine, 20))
        raw, _ = analyzer.pull_frame()
        spectrum = np.frombuffer(raw, dtype=np.uint8)
        assert int(np.argmax(spectrum)) == 20
        assert spectrum[20] > 0
        assert spectrum[200:].max() == 0

    def test_loud_tone_saturates(self, analyzer, make_sine):
        """Should clip magnitudes above max_decibels to 255."""
        analyzer.feed(bin_centred_sine(make_sine, 40, amplitude=1.0))
        raw, _ = analyzer.pull_frame()
        assert raw[40] == 255

    def test_time_data_mapping(self, analyzer):
        """Should map samples to floor(128 * (1 + x)) clamped to a byte."""
        analyzer.feed(np.full(WINDOW, 0.5, dtype=np.float32))
        _, time_data = analyzer.pull_frame()
        assert set(time_data) == {192}

        analyzer.feed(np.full(WINDOW, 1.0, dtype=np.float32))
        _, time_data = analyzer.pull_frame()
        assert set(time_data) == {255}

        analyzer.feed(np.full(WINDOW, -1.0, dtype=np.float32))
        _, time_data = analyzer.pull_frame()
        assert set(time_data) == {0}

    def test_time_data_holds_most_recent_samples(self, analyzer):
        """Should expose the newest half-window of samples, oldest first."""
        analyzer.feed(np.full(WINDOW, -1.0, dtype=np.float32))
        analyzer.feed(np.full(512, 0.5, dtype=np.float32))
        _, time_data = analyzer.pull_frame()
        assert time_data[:512] == bytes(512)
        assert time_data[512:] == bytes([192] * 512)

    def test_smoothing_damps_changes(self, make_sine):
        """Should approach the unsmoothed level over repeated pulls."""
        smoothed = SpectralAnalyzer(smoothing=0.8, sample_rate=SAMPLE_RATE)
        instant = SpectralAnalyzer(smoothing=0.0, sample_rate=SAMPLE_RATE)
        tone = bin_centred_sine(make_sine, 30)
        smoothed.feed(tone)
        instant.feed(tone)

        target = instant.pull_frame()[0][30]
        first = smoothed.pull_frame()[0][30]
        assert first < target

        for _ in range(60):
            latest = smoothed.pull_frame()[0][30]
        assert latest >= target - 1

    def test_current_frequency_bytes(self, analyzer, make_sine):
        """Should return the buffer from the latest pull."""
        assert analyzer.current_frequency_bytes() == bytes(1024)
        analyzer.feed(bin_centred_sine(make_sine, 20))
        raw, _ = analyzer.pull_frame()
        assert analyzer.current_frequency_bytes() == raw


class TestFeedAndReset:
    """Test ring buffer handling."""

    def test_feed_wraps_in_order(self, analyzer):
        """Should keep the latest window of samples in arrival order."""
        ramp = np.arange(2500, dtype=np.float32)
        analyzer.feed(ramp[:1500])
        analyzer.feed(ramp[1500:])
        snapshot = analyzer._snapshot()
        assert snapshot[0] == 2500 - WINDOW
        assert snapshot[-1] == 2499
        assert np.all(np.diff(snapshot) == 1)

    def test_feed_longer_than_window(self, analyzer):
        """Should keep only the last window when a block exceeds it."""
        ramp = np.arange(5000, dtype=np.float32)
        analyzer.feed(ramp)
        snapshot = analyzer._snapshot()
        assert snapshot[0] == 5000 - WINDOW
        assert snapshot[-1] == 4999

    def test_feed_ignores_empty(self, analyzer):
        """Should accept empty blocks without changing state."""
        analyzer.feed(np.array([], dtype=np.float32))
        assert analyzer.pull_frame()[0] == bytes(1024)

    def test_reset_clears_everything(self, analyzer, make_sine):
        """Should drop samples, smoothing history and output buffers."""
        analyzer.feed(bin_centred_sine(make_sine, 20, amplitude=0.5))
        analyzer.pull_frame()

        analyzer.reset(48000)

        assert analyzer.sample_rate == 48000
        assert analyzer.current_frequency_bytes() == bytes(1024)
        raw, time_data = analyzer.pull_frame()
        assert raw == bytes(1024)
        assert time_data == bytes([128] * 1024)

    def test_reset_keeps_sample_rate_when_omitted(self, analyzer):
        """Should leave the sample rate alone without an argument."""
        analyzer.reset()
        assert analyzer.sample_rate == SAMPLE_RATE
