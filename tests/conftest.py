import io
from unittest.mock import create_autospec

import numpy as np
import pytest
import soundfile as sf

from audioscope.audio.devices import DeviceRegistry
from audioscope.config import AudioscopeConfig
from audioscope.utils.cache import clear_all_cache


@pytest.fixture(autouse=True)
def clear_cache():
    """Keep cached device lists from leaking between tests."""
    clear_all_cache()
    yield
    clear_all_cache()


@pytest.fixture
def test_config() -> AudioscopeConfig:
    """Provide a default configuration."""
    return AudioscopeConfig()


@pytest.fixture
def mock_registry():
    """Provide a DeviceRegistry that never touches PortAudio."""
    registry = create_autospec(DeviceRegistry, instance=True)
    registry.resolve_index.return_value = 3
    return registry


def sine_wave(
    frequency: float, sample_rate: int, samples: int, amplitude: float = 0.5
) -> np.ndarray:
    """Generate a float32 sine wave."""
    t = np.arange(samples) / sample_rate
    return (amplitude * np.sin(2 * np.pi * frequency * t)).astype(np.float32)


@pytest.fixture
def wav_bytes():
    """Provide a one-second 440Hz stereo WAV file at 22050Hz."""
    tone = sine_wave(440.0, 22050, 22050)
    stereo = np.column_stack([tone, tone * 0.5])
    buffer = io.BytesIO()
    sf.write(buffer, stereo, 22050, format="WAV", subtype="PCM_16")
    return buffer.getvalue()


@pytest.fixture
def make_sine():
    """Provide the sine wave generator."""
    return sine_wave
