"""Audio capture and analysis domain.

This module handles all audio-related functionality including:
- Input device discovery
- Source resolution (capture devices, in-memory files, remote URLs)
- Spectral analysis and band reduction
- The analyzer session lifecycle
"""

__all__ = []
