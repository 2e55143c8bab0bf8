"""Typed failures raised by device enumeration and source resolution.

Platform exceptions are translated where they are raised: PortAudio errors by
their numeric error code, decoder errors in ``decoding`` and network errors in
``resolver``. Nothing downstream inspects exception messages.
"""

from enum import Enum

import sounddevice as sd


class AudioErrorKind(Enum):
    """Categories of audio failures surfaced to callers."""

    PERMISSION_DENIED = "permission_denied"
    DEVICE_UNAVAILABLE = "device_unavailable"
    DECODE_FAILURE = "decode_failure"
    FETCH_FAILURE = "fetch_failure"
    UNKNOWN = "unknown"


class AudioAnalyzerError(Exception):
    """Base class for every failure the analyzer reports."""

    kind = AudioErrorKind.UNKNOWN

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class PermissionDenied(AudioAnalyzerError):
    """Capture access was refused by the user or the operating system."""

    kind = AudioErrorKind.PERMISSION_DENIED


class DeviceUnavailable(AudioAnalyzerError):
    """No usable device, or the host audio API failed to open one."""

    kind = AudioErrorKind.DEVICE_UNAVAILABLE


class DecodeFailure(AudioAnalyzerError):
    """The payload is not a decodable audio stream."""

    kind = AudioErrorKind.DECODE_FAILURE


class FetchFailure(AudioAnalyzerError):
    """The remote audio could not be retrieved."""

    kind = AudioErrorKind.FETCH_FAILURE


class UnknownAudioError(AudioAnalyzerError):
    """Anything else; the original exception is kept as ``__cause__``."""

    kind = AudioErrorKind.UNKNOWN


# PortAudio PaErrorCode values (portaudio.h)
PA_UNANTICIPATED_HOST_ERROR = -9999
PA_INVALID_CHANNEL_COUNT = -9998
PA_INVALID_SAMPLE_RATE = -9997
PA_INVALID_DEVICE = -9996
PA_DEVICE_UNAVAILABLE = -9985
PA_INCOMPATIBLE_STREAM_HOST_API = -9986
PA_BAD_IO_DEVICE_COMBINATION = -9993
PA_SAMPLE_FORMAT_NOT_SUPPORTED = -9994

_DEVICE_ERROR_CODES = frozenset(
    {
        PA_INVALID_CHANNEL_COUNT,
        PA_INVALID_SAMPLE_RATE,
        PA_INVALID_DEVICE,
        PA_DEVICE_UNAVAILABLE,
        PA_INCOMPATIBLE_STREAM_HOST_API,
        PA_BAD_IO_DEVICE_COMBINATION,
        PA_SAMPLE_FORMAT_NOT_SUPPORTED,
    }
)


def portaudio_error_code(error: sd.PortAudioError) -> int | None:
    """Extract the PaErrorCode carried by a PortAudioError, if any."""
    if len(error.args) > 1 and isinstance(error.args[1], int):
        return error.args[1]
    return None


def classify_portaudio_error(error: sd.PortAudioError) -> AudioAnalyzerError:
    """Translate a PortAudioError into the analyzer's taxonomy.

    Host APIs that gate microphone access (CoreAudio, WASAPI) report a refused
    grant as an unanticipated host error when the stream is opened.
    """
    code = portaudio_error_code(error)
    message = str(error.args[0]) if error.args else str(error)
    if code == PA_UNANTICIPATED_HOST_ERROR:
        return PermissionDenied(message)
    if code in _DEVICE_ERROR_CODES or code is None:
        return DeviceUnavailable(message)
    return UnknownAudioError(message)
