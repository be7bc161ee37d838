"""TTS API client package — async HTTP interface to the narration backend.

WHY: Narration audio comes from an external TTS service. This package
keeps every request, payload check, and error translation in one place.

HOW: Uses httpx.AsyncClient. TTSClient provides one method per
endpoint; wire objects are parsed into dataclasses from models.py.

RULES:
- All HTTP calls go through TTSClient (no direct httpx usage elsewhere)
- Undersized "audio" bodies are errors, not audio
"""

from speech_sync.api.client import TTSAPIError, TTSClient, UndersizedAudioError
from speech_sync.api.models import PreparedAudio, SpeakRequest

__all__ = [
    "PreparedAudio",
    "SpeakRequest",
    "TTSAPIError",
    "TTSClient",
    "UndersizedAudioError",
]
