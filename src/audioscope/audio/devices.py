import hashlib
import logging

import sounddevice as sd

from audioscope.audio.errors import DeviceUnavailable, classify_portaudio_error
from audioscope.audio.models import DeviceDescriptor
from audioscope.utils.cache import cached, invalidate_cache

logger = logging.getLogger(__name__)

DEVICE_CACHE_PREFIX = "audio_devices"


def device_id_for(host_api: str, name: str, occurrence: int) -> str:
    """Stable identifier for the ``occurrence``-th device called ``name`` on ``host_api``."""
    digest = hashlib.sha1(f"{host_api}\x00{name}\x00{occurrence}".encode())
    return digest.hexdigest()[:16]


class DeviceRegistry:
    """Enumerates capture-capable input devices."""

    def __init__(self, cache_ttl: float = 60.0) -> None:
        self.cache_ttl = cache_ttl
        self._permission_confirmed = False
        self._index_by_id: dict[str, int] = {}

    def _confirm_permission(self) -> None:
        """Open and close a throwaway capture stream on the default input.

        Hosts that gate microphone access prompt the user here, once; a refusal
        surfaces as PermissionDenied before any enumeration happens.
        """
        if self._permission_confirmed:
            return
        try:
            with sd.InputStream(channels=1):
                pass
        except sd.PortAudioError as e:
            error = classify_portaudio_error(e)
            logger.warning("Capture permission probe failed: %s", error)
            raise error from e
        self._permission_confirmed = True
        logger.debug("Capture permission confirmed")

    @staticmethod
    def _refresh_portaudio() -> None:
        """Make PortAudio re-scan devices instead of returning its startup list."""
        try:
            sd._terminate()
            sd._initialize()
        except sd.PortAudioError as e:
            logger.debug("PortAudio re-initialization failed, using current list: %s", e)

    @cached(ttl=60, key_prefix=DEVICE_CACHE_PREFIX, ttl_attribute="cache_ttl")
    def list_input_devices(self) -> list[DeviceDescriptor]:
        """Return every device with at least one input channel.

        Raises:
            PermissionDenied: If capture access is refused
            DeviceUnavailable: If enumeration fails or finds no input device
        """
        self._confirm_permission()
        logger.debug("Discovering audio input devices...")

        try:
            devices = sd.query_devices()
            default_input = sd.default.device[0]
            host_apis = [api["name"] for api in sd.query_hostapis()]
        except sd.PortAudioError as e:
            raise DeviceUnavailable(f"Device enumeration failed: {e}") from e

        descriptors: list[DeviceDescriptor] = []
        index_by_id: dict[str, int] = {}
        seen: dict[tuple[str, str], int] = {}
        for device in devices:
            if device["max_input_channels"] <= 0:
                continue
            host_api = host_apis[device["hostapi"]]
            name = str(device["name"] or "").strip()
            occurrence = seen.get((host_api, name), 0)
            seen[(host_api, name)] = occurrence + 1

            device_id = device_id_for(host_api, name, occurrence)
            descriptors.append(
                DeviceDescriptor(
                    id=device_id,
                    label=name or f"Microphone {device_id[:8]}",
                    is_default=device["index"] == default_input,
                )
            )
            index_by_id[device_id] = device["index"]

        if not descriptors:
            raise DeviceUnavailable("No audio input devices found")

        self._index_by_id = index_by_id
        logger.debug("Found %d input device(s).", len(descriptors))
        return descriptors

    def resolve_index(self, device_id: str) -> int:
        """Map a descriptor id to its PortAudio device index.

        Raises:
            DeviceUnavailable: If no current input device has that id
        """
        self.list_input_devices()
        if device_id not in self._index_by_id:
            # The device may have been plugged in after the last enumeration
            invalidate_cache(DEVICE_CACHE_PREFIX)
            self.list_input_devices()
        try:
            return self._index_by_id[device_id]
        except KeyError:
            raise DeviceUnavailable(f"Unknown audio input device: {device_id}") from None

    def notify_devices_changed(self, rescan: bool = False) -> None:
        """Invalidate the cached device list after a hot-plug event.

        Args:
            rescan: Also re-initialize PortAudio so new hardware is listed.
                Re-initializing closes every open stream, so only pass True
                when no stream is open.
        """
        invalidate_cache(DEVICE_CACHE_PREFIX)
        if rescan:
            self._refresh_portaudio()
        logger.info("Audio device list invalidated")
