"""Audio capture and spectral analysis for audio-reactive visualizers."""

from audioscope.audio.errors import (
    AudioAnalyzerError,
    AudioErrorKind,
    DecodeFailure,
    DeviceUnavailable,
    FetchFailure,
    PermissionDenied,
    UnknownAudioError,
)
from audioscope.audio.models import (
    AudioSource,
    CaptureDevice,
    DecodedBuffer,
    DefaultCaptureDevice,
    DeviceDescriptor,
    FrequencyFrame,
    RemoteUrl,
    SessionState,
)
from audioscope.audio.session import AnalyzerSession

__all__ = [
    "AnalyzerSession",
    "AudioAnalyzerError",
    "AudioErrorKind",
    "AudioSource",
    "CaptureDevice",
    "DecodeFailure",
    "DecodedBuffer",
    "DefaultCaptureDevice",
    "DeviceDescriptor",
    "DeviceUnavailable",
    "FetchFailure",
    "FrequencyFrame",
    "PermissionDenied",
    "RemoteUrl",
    "SessionState",
    "UnknownAudioError",
]
