"""Turns an AudioSource into a signal tap attached to the analyzer."""

import asyncio
import logging
from typing import assert_never
from urllib.parse import urlparse

import httpx

from audioscope.audio.analyzer import SpectralAnalyzer
from audioscope.audio.context import AudioContext
from audioscope.audio.decoding import decode_audio
from audioscope.audio.devices import DeviceRegistry
from audioscope.audio.errors import FetchFailure
from audioscope.audio.models import (
    AudioSource,
    CaptureDevice,
    DecodedBuffer,
    DefaultCaptureDevice,
    RemoteUrl,
)
from audioscope.audio.taps import BufferPlaybackTap, CaptureTap, SignalTap

logger = logging.getLogger(__name__)


class SourceResolver:
    """Resolves sources one at a time; at most one tap is ever attached."""

    def __init__(
        self,
        device_registry: DeviceRegistry,
        context: AudioContext,
        capture_sample_rate: int = 44100,
        block_size: int = 512,
        fetch_timeout: float = 30.0,
    ) -> None:
        """Initialize the resolver.

        Args:
            device_registry: Registry used to map device ids to PortAudio indexes
            context: Context the created taps register with
            capture_sample_rate: Rate requested from capture devices in Hz
            block_size: Frames per stream callback
            fetch_timeout: Timeout in seconds for remote audio downloads
        """
        self.device_registry = device_registry
        self.context = context
        self.capture_sample_rate = capture_sample_rate
        self.block_size = block_size
        self.fetch_timeout = fetch_timeout
        self.active_tap: SignalTap | None = None

    async def resolve(self, source: AudioSource, analyzer: SpectralAnalyzer) -> SignalTap:
        """Detach any current tap, then attach one for ``source``.

        Raises:
            PermissionDenied: Capture access refused
            DeviceUnavailable: Device missing or refused by the host API
            DecodeFailure: Buffer or downloaded payload is not audio
            FetchFailure: Remote URL could not be retrieved
        """
        self.detach()

        match source:
            case DefaultCaptureDevice():
                tap = self._capture_tap(analyzer, None)
            case CaptureDevice(device_id=device_id):
                index = await asyncio.to_thread(self.device_registry.resolve_index, device_id)
                tap = self._capture_tap(analyzer, index)
            case DecodedBuffer(data=data):
                tap = await self._playback_tap(analyzer, data)
            case RemoteUrl(url=url):
                data = await self.fetch(url)
                tap = await self._playback_tap(analyzer, data)
            case _:
                assert_never(source)

        analyzer.reset(tap.sample_rate)
        tap.attach()
        self.active_tap = tap
        logger.info("Resolved %r", source)
        return tap

    def detach(self) -> None:
        """Stop the active tap, if any."""
        tap, self.active_tap = self.active_tap, None
        if tap is not None:
            tap.detach()

    def _capture_tap(self, analyzer: SpectralAnalyzer, device_index: int | None) -> CaptureTap:
        return CaptureTap(
            analyzer,
            self.context,
            device_index=device_index,
            sample_rate=self.capture_sample_rate,
            block_size=self.block_size,
        )

    async def _playback_tap(self, analyzer: SpectralAnalyzer, data: bytes) -> BufferPlaybackTap:
        pcm, sample_rate = await asyncio.to_thread(decode_audio, data)
        return BufferPlaybackTap(
            analyzer, self.context, pcm=pcm, sample_rate=sample_rate, block_size=self.block_size
        )

    async def fetch(self, url: str) -> bytes:
        """Download ``url`` with a plain GET.

        Raises:
            FetchFailure: Unsupported scheme, transport error or non-2xx status
        """
        if urlparse(url).scheme not in ("http", "https"):
            raise FetchFailure(f"Unsupported URL: {url}")

        logger.info("Fetching remote audio from %s", url)
        try:
            async with httpx.AsyncClient(
                timeout=self.fetch_timeout, follow_redirects=True
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchFailure(f"HTTP {e.response.status_code} fetching {url}") from e
        except httpx.RequestError as e:
            raise FetchFailure(f"Error fetching {url}: {e}") from e

        logger.debug("Fetched %d bytes from %s", len(response.content), url)
        return response.content
