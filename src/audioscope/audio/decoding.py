"""Decoding of encoded audio bytes into mono PCM."""

import io
import logging

import numpy as np
import soundfile as sf

from audioscope.audio.errors import DecodeFailure

logger = logging.getLogger(__name__)


def decode_audio(data: bytes) -> tuple[np.ndarray, int]:
    """Decode an in-memory audio file.

    Channels are summed to mono by averaging.

    Args:
        data: Complete encoded file contents (any format libsndfile reads)

    Returns:
        Tuple of (mono float32 samples in [-1, 1], sample rate in Hz)

    Raises:
        DecodeFailure: If the bytes are not a decodable audio stream
    """
    if not data:
        raise DecodeFailure("No audio data to decode")

    try:
        samples, sample_rate = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
    except (sf.SoundFileError, RuntimeError, TypeError) as e:
        raise DecodeFailure(f"Unable to decode audio data: {e}") from e

    if samples.shape[0] == 0:
        raise DecodeFailure("Decoded audio contains no samples")

    mono = samples.mean(axis=1, dtype=np.float32)
    logger.info(
        "Decoded %d bytes: %d frames, %d channel(s) at %dHz",
        len(data),
        samples.shape[0],
        samples.shape[1],
        sample_rate,
    )
    return mono, int(sample_rate)
