"""Reduction of frequency bins into the five perceptual bands.

The bin ranges below are calibrated for a 2048-sample window, where one bin is
roughly ``sample_rate / 2048`` Hz wide (about 21.5 Hz at 44.1 kHz). Other window
sizes rescale the ranges proportionally so that each band keeps covering the
same frequencies.
"""

from collections.abc import Sequence
from typing import NamedTuple

from audioscope.audio.models import FrequencyFrame

REFERENCE_WINDOW_SIZE = 2048


class BandRange(NamedTuple):
    """Inclusive bin range of one band."""

    lo: int
    hi: int


BAND_RANGES: dict[str, BandRange] = {
    "bass": BandRange(0, 10),
    "low_mid": BandRange(11, 25),
    "mid": BandRange(26, 50),
    "high_mid": BandRange(51, 100),
    "treble": BandRange(101, 200),
}


def band_ranges_for(window_size: int) -> dict[str, BandRange]:
    """Return the band table scaled to ``window_size``.

    Args:
        window_size: Analysis window length in samples

    Returns:
        Mapping of band name to inclusive bin range, clamped to the bin count
    """
    bin_count = window_size // 2
    scale = window_size / REFERENCE_WINDOW_SIZE
    ranges = {}
    for name, (lo, hi) in BAND_RANGES.items():
        scaled_lo = min(int(lo * scale), bin_count - 1)
        scaled_hi = min(max(scaled_lo, int((hi + 1) * scale) - 1), bin_count - 1)
        ranges[name] = BandRange(scaled_lo, scaled_hi)
    return ranges


def average_frequency(raw: Sequence[int], lo: int, hi: int) -> float:
    """Arithmetic mean of ``raw[lo..hi]``, both ends inclusive.

    Raises:
        ValueError: If the range is empty or falls outside ``raw``
    """
    if hi < lo:
        raise ValueError(f"Empty bin range: lo={lo} > hi={hi}")
    if lo < 0 or hi >= len(raw):
        raise ValueError(f"Bin range [{lo}, {hi}] outside buffer of length {len(raw)}")
    return sum(raw[lo : hi + 1]) / (hi - lo + 1)


def reduce_to_frame(raw: bytes, time_data: bytes, window_size: int) -> FrequencyFrame:
    """Build a FrequencyFrame from analyzer byte buffers."""
    ranges = band_ranges_for(window_size)
    levels = {name: average_frequency(raw, lo, hi) / 255 for name, (lo, hi) in ranges.items()}
    return FrequencyFrame(raw=raw, time_data=time_data, **levels)
