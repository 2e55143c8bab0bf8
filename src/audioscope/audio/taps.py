"""Signal taps: the streams that feed samples into the analyzer.

A tap owns exactly one sounddevice stream. ``CaptureTap`` records from an input
device; ``BufferPlaybackTap`` loops decoded PCM through the default output and
hands the same blocks to the analyzer, so what is heard is what is analyzed.
"""

import logging
from abc import ABC, abstractmethod

import numpy as np
import sounddevice as sd

from audioscope.audio.analyzer import SpectralAnalyzer
from audioscope.audio.context import AudioContext
from audioscope.audio.errors import UnknownAudioError, classify_portaudio_error

logger = logging.getLogger(__name__)


class SignalTap(ABC):
    """Base class for a stream connected to the analysis stage."""

    def __init__(
        self, analyzer: SpectralAnalyzer, context: AudioContext, sample_rate: int, block_size: int
    ) -> None:
        self.analyzer = analyzer
        self.context = context
        self.sample_rate = sample_rate
        self.block_size = block_size
        self.stream: sd.InputStream | sd.OutputStream | None = None
        self._attached = False

    @property
    def attached(self) -> bool:
        """Whether this tap is currently feeding the analyzer."""
        return self._attached

    @abstractmethod
    def _open_stream(self) -> sd.InputStream | sd.OutputStream:
        """Create (but do not start) the underlying stream."""

    def attach(self) -> None:
        """Open the stream and start it if the context is running.

        Raises:
            AudioAnalyzerError: If the host audio API refuses the stream
        """
        try:
            self.stream = self._open_stream()
            self._attached = True
            self.context.register(self)
            if self.context.running:
                self.stream.start()
        except sd.PortAudioError as e:
            logger.error("Failed to start %s stream: %s", self.__class__.__name__, e)
            self._release()
            raise classify_portaudio_error(e) from e
        except Exception as e:
            logger.error("Failed to start %s stream: %s", self.__class__.__name__, e)
            self._release()
            raise UnknownAudioError(str(e)) from e
        logger.info(
            "%s attached at %dHz (running=%s)",
            self.__class__.__name__,
            self.sample_rate,
            self.context.running,
        )

    def detach(self) -> None:
        """Stop and close the stream; no callback feeds the analyzer afterwards."""
        if not self._attached and self.stream is None:
            return
        self._release()
        logger.info("%s detached", self.__class__.__name__)

    def _release(self) -> None:
        self._attached = False
        self.context.unregister(self)
        stream, self.stream = self.stream, None
        if stream is None:
            return
        try:
            if not stream.stopped:
                stream.abort()
            stream.close()
        except sd.PortAudioError as e:
            logger.warning("Error closing %s stream: %s", self.__class__.__name__, e)

    def pause(self) -> None:
        """Stop the stream while keeping it open.

        Raises:
            AudioAnalyzerError: If the host audio API fails to stop the stream
        """
        if self.stream is None or self.stream.stopped:
            return
        try:
            self.stream.stop()
        except sd.PortAudioError as e:
            logger.error("Failed to pause %s stream: %s", self.__class__.__name__, e)
            raise classify_portaudio_error(e) from e

    def resume(self) -> None:
        """Restart a paused stream.

        Raises:
            AudioAnalyzerError: If the device is gone or refuses to restart
        """
        if not self._attached or self.stream is None or not self.stream.stopped:
            return
        try:
            self.stream.start()
        except sd.PortAudioError as e:
            logger.error("Failed to resume %s stream: %s", self.__class__.__name__, e)
            raise classify_portaudio_error(e) from e


class CaptureTap(SignalTap):
    """Continuous mono capture from an input device."""

    def __init__(
        self,
        analyzer: SpectralAnalyzer,
        context: AudioContext,
        device_index: int | None,
        sample_rate: int,
        block_size: int = 512,
    ) -> None:
        """Initialize the capture tap.

        Args:
            analyzer: Analyzer receiving the captured samples
            context: Context controlling whether the stream runs
            device_index: PortAudio input device index, None for the host default
            sample_rate: Requested capture rate in Hz
            block_size: Frames per callback
        """
        super().__init__(analyzer, context, sample_rate, block_size)
        self.device_index = device_index

    def _open_stream(self) -> sd.InputStream:
        logger.info(
            "Opening capture on device %s at %dHz",
            "default" if self.device_index is None else self.device_index,
            self.sample_rate,
        )
        return sd.InputStream(
            device=self.device_index,
            samplerate=self.sample_rate,
            channels=1,
            dtype="float32",
            blocksize=self.block_size,
            callback=self._callback,
        )

    def _callback(
        self, indata: np.ndarray, frames: int, time: sd.CallbackStop, status: sd.CallbackFlags
    ) -> None:
        """Process a block of audio data from the sounddevice stream."""
        if status:
            logger.warning("Capture stream status: %s", status)
        if not self._attached:
            return
        self.analyzer.feed(indata[:, 0])


class BufferPlaybackTap(SignalTap):
    """Loops decoded PCM to the speakers and into the analyzer."""

    def __init__(
        self,
        analyzer: SpectralAnalyzer,
        context: AudioContext,
        pcm: np.ndarray,
        sample_rate: int,
        block_size: int = 512,
    ) -> None:
        """Initialize the playback tap.

        Args:
            analyzer: Analyzer receiving the played samples
            context: Context controlling whether the stream runs
            pcm: Mono float32 samples; must not be empty
            sample_rate: Sample rate of ``pcm`` in Hz
            block_size: Frames per callback
        """
        super().__init__(analyzer, context, sample_rate, block_size)
        if pcm.size == 0:
            raise ValueError("Cannot loop an empty buffer")
        self.pcm = np.ascontiguousarray(pcm, dtype=np.float32).reshape(-1)
        self.position = 0

    def _open_stream(self) -> sd.OutputStream:
        logger.info(
            "Opening looping playback of %d samples at %dHz", self.pcm.size, self.sample_rate
        )
        return sd.OutputStream(
            samplerate=self.sample_rate,
            channels=1,
            dtype="float32",
            blocksize=self.block_size,
            callback=self._callback,
        )

    def next_block(self, frames: int) -> np.ndarray:
        """Return the next ``frames`` samples, wrapping at the end of the buffer."""
        indices = (self.position + np.arange(frames)) % self.pcm.size
        self.position = (self.position + frames) % self.pcm.size
        return self.pcm[indices]

    def _callback(
        self, outdata: np.ndarray, frames: int, time: sd.CallbackStop, status: sd.CallbackFlags
    ) -> None:
        """Fill the output block and feed the same samples to the analyzer."""
        if status:
            logger.warning("Playback stream status: %s", status)
        if not self._attached:
            outdata.fill(0)
            return
        block = self.next_block(frames)
        outdata[:, 0] = block
        self.analyzer.feed(block)
