"""Value types for the audio analysis domain.

Sources, device descriptors, session states and the frames handed to
renderers. Everything here is immutable except the session state enum's
owner, which lives in ``audioscope.audio.session``.
"""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class DefaultCaptureDevice:
    """Capture from whatever input device the host reports as default."""


@dataclass(frozen=True)
class CaptureDevice:
    """Capture from a specific input device, by DeviceDescriptor id."""

    device_id: str


@dataclass(frozen=True)
class DecodedBuffer:
    """Encoded audio file contents held in memory (wav, flac, ogg, mp3...)."""

    data: bytes

    def __repr__(self) -> str:
        """Keep reprs short; payloads can be megabytes."""
        return f"DecodedBuffer(<{len(self.data)} bytes>)"


@dataclass(frozen=True)
class RemoteUrl:
    """Audio file fetched over HTTP(S) before decoding."""

    url: str


AudioSource = DefaultCaptureDevice | CaptureDevice | DecodedBuffer | RemoteUrl


@dataclass(frozen=True)
class DeviceDescriptor:
    """An input-capable audio device as presented to pickers."""

    id: str
    label: str
    is_default: bool

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return asdict(self)


class SessionState(Enum):
    """Lifecycle states of an AnalyzerSession."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class FrequencyFrame:
    """One snapshot of the analyzer output plus the derived band levels.

    ``raw`` holds one byte per frequency bin and ``time_data`` the most recent
    samples mapped to 0..255 (128 is silence). Band levels are normalized to
    [0, 1].
    """

    raw: bytes
    time_data: bytes
    bass: float
    low_mid: float
    mid: float
    high_mid: float
    treble: float

    def average(self, lo: int, hi: int) -> float:
        """Mean of ``raw[lo..hi]`` inclusive."""
        from audioscope.audio.bands import average_frequency

        return average_frequency(self.raw, lo, hi)

    @property
    def bands(self) -> dict[str, float]:
        """Band levels keyed by name."""
        return {
            "bass": self.bass,
            "low_mid": self.low_mid,
            "mid": self.mid,
            "high_mid": self.high_mid,
            "treble": self.treble,
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "raw": list(self.raw),
            "time_data": list(self.time_data),
            **self.bands,
        }
