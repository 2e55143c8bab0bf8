"""Analyzer session: lifecycle, source binding and the public query API.

The session is the only owner of the analyzer and its buffers. Renderers call
``get_frequency_data()`` once per tick; UI code calls ``start()`` and
``list_input_devices()``. Starts are serialized and every explicit start
supersedes the one in flight, so a slow attempt that finishes late can never
replace a newer binding.
"""

import asyncio
import logging

from audioscope.audio.analyzer import SpectralAnalyzer
from audioscope.audio.bands import average_frequency, reduce_to_frame
from audioscope.audio.context import AudioContext, ContextState
from audioscope.audio.devices import DeviceRegistry
from audioscope.audio.errors import AudioAnalyzerError, UnknownAudioError
from audioscope.audio.models import (
    AudioSource,
    CaptureDevice,
    DefaultCaptureDevice,
    DeviceDescriptor,
    FrequencyFrame,
    SessionState,
)
from audioscope.audio.resolver import SourceResolver
from audioscope.config import AudioscopeConfig

logger = logging.getLogger(__name__)


class AnalyzerSession:
    """Orchestrates source resolution and spectral analysis for one consumer."""

    def __init__(
        self,
        config: AudioscopeConfig | None = None,
        device_registry: DeviceRegistry | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            config: Analyzer and source settings; defaults when omitted
            device_registry: Registry to enumerate devices with; created when omitted
        """
        self.config = config or AudioscopeConfig()
        self.device_registry = device_registry or DeviceRegistry(
            cache_ttl=self.config.sources.device_cache_ttl
        )
        self.context = AudioContext()
        self.analyzer = SpectralAnalyzer(
            window_size=self.config.analyzer.window_size,
            smoothing=self.config.analyzer.smoothing,
            min_decibels=self.config.analyzer.min_decibels,
            max_decibels=self.config.analyzer.max_decibels,
            sample_rate=self.config.sources.capture_sample_rate,
        )
        self.resolver = self._create_resolver()

        self.state = SessionState.UNINITIALIZED
        self.failure: AudioAnalyzerError | None = None
        self.current_source: AudioSource | None = None

        self._lock = asyncio.Lock()
        self._generation = 0
        self._inflight: asyncio.Task | None = None

    def _create_resolver(self) -> SourceResolver:
        return SourceResolver(
            self.device_registry,
            self.context,
            capture_sample_rate=self.config.sources.capture_sample_rate,
            block_size=self.config.sources.block_size,
            fetch_timeout=self.config.sources.fetch_timeout,
        )

    @property
    def window_size(self) -> int:
        """Analysis window length in samples."""
        return self.analyzer.window_size

    @property
    def smoothing(self) -> float:
        """Frame-to-frame smoothing constant."""
        return self.analyzer.smoothing

    @property
    def generation(self) -> int:
        """Number of explicit start attempts made so far."""
        return self._generation

    def _set_state(self, state: SessionState) -> None:
        if state is not self.state:
            logger.debug("Session state %s -> %s", self.state.value, state.value)
        self.state = state

    async def start(
        self, source: AudioSource | None = None, device_id: str | None = None
    ) -> None:
        """Resume audio and bind a source if needed.

        With no arguments this is a no-op on a ready session and joins an
        attempt already in flight; otherwise it binds the default capture device.

        Args:
            source: Source to bind; re-binds even when already ready
            device_id: Capture device id; shorthand for ``CaptureDevice(device_id)``

        Raises:
            AudioAnalyzerError: The typed failure of this attempt; the session is
                left FAILED and can be started again
        """
        explicit = source is not None or device_id is not None
        try:
            await self.resume()
        except AudioAnalyzerError:
            # The failed tap is already released; a new source can still bind
            if not explicit:
                raise

        if not explicit:
            if self.state is SessionState.READY:
                return
            inflight = self._inflight
            if inflight is not None and not inflight.done():
                try:
                    await asyncio.shield(inflight)
                except asyncio.CancelledError:
                    if inflight.cancelled():
                        return
                    raise
                return

        target = self._select_source(source, device_id)
        self._generation += 1
        generation = self._generation

        previous = self._inflight
        if previous is not None and not previous.done():
            logger.info("Superseding in-flight start for %r", self.current_source)
            previous.cancel()

        task = asyncio.ensure_future(self._initialize(target, generation))
        self._inflight = task
        try:
            await task
        except asyncio.CancelledError:
            if generation != self._generation:
                logger.info("Start of %r superseded by a newer start", target)
                return
            raise
        finally:
            if self._inflight is task:
                self._inflight = None

    @staticmethod
    def _select_source(source: AudioSource | None, device_id: str | None) -> AudioSource:
        if device_id is not None and (source is None or isinstance(source, DefaultCaptureDevice)):
            return CaptureDevice(device_id)
        return source or DefaultCaptureDevice()

    async def _initialize(self, source: AudioSource, generation: int) -> None:
        async with self._lock:
            if generation != self._generation:
                return

            self._set_state(SessionState.INITIALIZING)
            self.failure = None
            self.current_source = source
            try:
                await self.resolver.resolve(source, self.analyzer)
            except asyncio.CancelledError:
                self.resolver.detach()
                if generation == self._generation:
                    self.current_source = None
                    self._set_state(SessionState.UNINITIALIZED)
                raise
            except AudioAnalyzerError as e:
                self._fail(e, generation)
                raise
            except Exception as e:
                error = UnknownAudioError(str(e))
                self._fail(error, generation)
                raise error from e

            if generation != self._generation:
                # A newer start arrived after the resolve finished
                self.resolver.detach()
                return

            self._set_state(SessionState.READY)
            logger.info("Session ready with %r", source)

    def _fail(self, error: AudioAnalyzerError, generation: int) -> None:
        logger.error("Audio initialization failed: %s", error)
        if generation != self._generation:
            return
        self.failure = error
        self._set_state(SessionState.FAILED)

    def get_frequency_data(self) -> FrequencyFrame | None:
        """Snapshot the current spectrum and band levels.

        Returns:
            A fresh FrequencyFrame while READY, otherwise None. Never raises.
        """
        if self.state is not SessionState.READY:
            return None
        try:
            raw, time_data = self.analyzer.pull_frame()
            return reduce_to_frame(raw, time_data, self.analyzer.window_size)
        except Exception:
            logger.exception("Failed to pull analyzer frame")
            return None

    def get_average_frequency(self, lo: int, hi: int) -> float:
        """Mean byte magnitude of bins ``lo..hi`` from the latest pull.

        Raises:
            ValueError: If ``hi < lo`` or the range exceeds the bin count
        """
        return average_frequency(self.analyzer.current_frequency_bytes(), lo, hi)

    async def list_input_devices(self) -> list[DeviceDescriptor]:
        """Enumerate capture devices without blocking the event loop.

        Raises:
            PermissionDenied: If capture access is refused
            DeviceUnavailable: If enumeration fails or finds no device
        """
        return await asyncio.to_thread(self.device_registry.list_input_devices)

    def notify_devices_changed(self) -> None:
        """Forward a hot-plug event; the active binding is left untouched.

        PortAudio is only re-scanned while no stream is open or being opened.
        """
        idle = self.resolver.active_tap is None and (
            self._inflight is None or self._inflight.done()
        )
        self.device_registry.notify_devices_changed(rescan=idle)

    async def resume(self) -> None:
        """Resume the audio context if it is suspended.

        Raises:
            AudioAnalyzerError: If the bound stream cannot restart; the tap is
                released and the session left FAILED
        """
        if self.context.state is not ContextState.SUSPENDED:
            return
        try:
            self.context.resume()
        except AudioAnalyzerError as e:
            self._release_failed_tap(e)
            raise

    async def suspend(self) -> None:
        """Pause all streams; frames keep returning the last analyzed audio.

        Raises:
            AudioAnalyzerError: If the bound stream cannot stop; the tap is
                released and the session left FAILED
        """
        try:
            self.context.suspend()
        except AudioAnalyzerError as e:
            self._release_failed_tap(e)
            raise

    def _release_failed_tap(self, error: AudioAnalyzerError) -> None:
        self.resolver.detach()
        self._fail(error, self._generation)

    async def close(self) -> None:
        """Cancel any start, release the tap and return to UNINITIALIZED."""
        self._generation += 1
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        async with self._lock:
            self.resolver.detach()
            self.context.close()
            self.context = AudioContext()
            self.resolver = self._create_resolver()
            self.analyzer.reset()
            self.current_source = None
            self.failure = None
            self._set_state(SessionState.UNINITIALIZED)
        logger.info("Session closed")
