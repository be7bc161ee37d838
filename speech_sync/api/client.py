"""Async HTTP client for the text-to-speech narration backend.

WHY: The player needs synthesized narration for a commentary before it can
play or time anything. This module wraps the TTS endpoints behind one
client class so the playback controller, the CLI, and tests never deal
with HTTP details or with the backend's habit of returning JSON error
bodies labelled as audio.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. TTSClient is an async
context manager: enter it to open the connection pool, exit to close it.
speak() is the one-shot flow. stream() is the streaming flow: prepare()
for metadata, then fetch_initial_chunk() for a ranged first chunk.

RULES:
- Always use the async context manager (async with TTSClient() as client:)
- Non-2xx responses raise TTSAPIError with the server's message when the
  body carries one (a JSON field, or a short plain-text body)
- Audio bodies under MIN_AUDIO_BYTES raise UndersizedAudioError
- Cancelling the awaiting task aborts the in-flight request
- The optional on_status callback receives human-readable progress strings
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Optional

import httpx

from speech_sync.api.models import (
    PreparedAudio,
    SpeakRequest,
    parse_error_message,
    response_error_message,
)
from speech_sync.config import (
    HTTP_CONNECT_TIMEOUT_S,
    HTTP_TIMEOUT_S,
    INITIAL_CHUNK_BYTES,
    MIN_AUDIO_BYTES,
    load_api_base,
)
from speech_sync.core.ir import AudioSource
from speech_sync.core.weights import estimate_duration

logger = logging.getLogger(__name__)


def _error_message(resp: httpx.Response) -> Optional[str]:
    return response_error_message(resp.content, resp.headers.get("content-type", ""))


class TTSAPIError(Exception):
    """Raised when the TTS backend returns an error response.

    WHY: Callers need a typed exception to tell backend failures apart
    from network errors, and the player surfaces the server's own message
    when a user explicitly presses play.

    HOW: Wraps the HTTP status code and the best available message.

    RULES:
    - status_code is the HTTP status (or 200 for a mislabelled body)
    - message is the server-provided error text when one could be parsed,
      else None
    """

    def __init__(self, status_code: int, message: Optional[str]) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(
            "TTS API error {}: {}".format(status_code, message or "no details")
        )


class UndersizedAudioError(TTSAPIError):
    """Raised when an "audio" response is too small to be real audio.

    WHY: The backend sometimes answers 200 with a small JSON error body
    and an audio content type. Handing that to a media backend produces an
    opaque decode failure, so it is rejected up front.

    RULES:
    - Raised when the body is under MIN_AUDIO_BYTES
    - size carries the actual body length
    """

    def __init__(self, size: int, message: Optional[str], status_code: int = 200) -> None:
        self.size = size
        super().__init__(status_code, message)


class TTSClient:
    """Async client for the narration TTS backend.

    WHY: Provides a typed interface for the synthesis workflows and
    handles base URL, timeouts, payload validation, and error wrapping.

    HOW: Wraps httpx.AsyncClient. Use as an async context manager to
    ensure the connection pool is closed.

    RULES:
    - Use as: async with TTSClient() as client: ...
    - base_url defaults to load_api_base() from config
    - transport is for tests (httpx.MockTransport)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = (base_url or load_api_base()).rstrip("/")
        self._timeout = timeout or HTTP_TIMEOUT_S
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> TTSClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(self._timeout, connect=HTTP_CONNECT_TIMEOUT_S),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def base_url(self) -> str:
        return self._base_url

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the active httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "TTSClient must be used as an async context manager: "
                "async with TTSClient() as client: ..."
            )
        return self._client

    # ------------------------------------------------------------------
    # One-shot synthesis
    # ------------------------------------------------------------------

    async def speak(
        self,
        text: str,
        title: str = "",
        on_status: Callable[[str], None] | None = None,
    ) -> AudioSource:
        """Synthesize narration for a commentary and return the audio.

        WHY: The player preloads the whole narration once per commentary
        so playback can start without a round trip.

        HOW: POSTs {text, title} to /api/tts/speak and validates the body
        size before wrapping it in an AudioSource.

        RULES:
        - Raises TTSAPIError on non-2xx responses
        - Raises UndersizedAudioError when the body is under MIN_AUDIO_BYTES
        - duration_hint is a words-per-minute estimate of the text

        Args:
            text: The commentary to narrate.
            title: Article title, spoken before the commentary.
            on_status: Optional callback for status updates.

        Returns:
            An AudioSource with the raw audio bytes.
        """
        client = self._ensure_client()
        if on_status:
            on_status("Synthesizing narration...")

        resp = await client.post(
            "/api/tts/speak",
            json=SpeakRequest(text=text, title=title).to_dict(),
        )

        if resp.status_code < 200 or resp.status_code >= 300:
            raise TTSAPIError(resp.status_code, _error_message(resp))

        body = resp.content
        if len(body) < MIN_AUDIO_BYTES:
            raise UndersizedAudioError(len(body), parse_error_message(body), resp.status_code)

        media_type = resp.headers.get("content-type", "audio/mpeg").split(";")[0].strip()
        logger.debug("Received %d bytes of %s narration", len(body), media_type)
        if on_status:
            on_status("  Received {:,} bytes of audio".format(len(body)))

        return AudioSource(
            data=body,
            media_type=media_type,
            duration_hint=estimate_duration(text) or None,
        )

    # ------------------------------------------------------------------
    # Streaming flow
    # ------------------------------------------------------------------

    async def prepare(
        self,
        text: str,
        title: str = "",
        on_status: Callable[[str], None] | None = None,
    ) -> PreparedAudio:
        """Ask the backend to generate narration and return its metadata.

        RULES:
        - POST /api/tts/prepare with {text, title}
        - Raises TTSAPIError on non-2xx responses
        - The response JSON must carry audioId
        """
        client = self._ensure_client()
        if on_status:
            on_status("Preparing narration...")

        resp = await client.post(
            "/api/tts/prepare",
            json=SpeakRequest(text=text, title=title).to_dict(),
        )
        if resp.status_code < 200 or resp.status_code >= 300:
            raise TTSAPIError(resp.status_code, _error_message(resp))

        prepared = PreparedAudio.from_dict(resp.json())
        logger.debug(
            "Prepared audio %s (%d bytes, duration=%s)",
            prepared.audio_id, prepared.size, prepared.duration,
        )
        return prepared

    def audio_url(self, audio_id: str) -> str:
        """Absolute URL a media backend can stream the prepared audio from."""
        return "{}/api/tts/audio/{}".format(self._base_url, audio_id)

    async def fetch_initial_chunk(
        self,
        audio_id: str,
        max_bytes: int = INITIAL_CHUNK_BYTES,
    ) -> bytes:
        """Fetch the first bytes of a prepared audio file.

        WHY: Verifies the prepared audio is reachable and gives the player
        an initial buffer before committing to full playback.

        RULES:
        - Sends Range: bytes=0-{max_bytes}
        - Accepts 200 (server ignored the range) and 206
        - Raises TTSAPIError on any other status
        """
        client = self._ensure_client()
        resp = await client.get(
            "/api/tts/audio/{}".format(audio_id),
            headers={"Range": "bytes=0-{}".format(max_bytes)},
        )
        if resp.status_code not in (200, 206):
            raise TTSAPIError(resp.status_code, _error_message(resp))
        return resp.content

    async def stream(
        self,
        text: str,
        title: str = "",
        on_status: Callable[[str], None] | None = None,
    ) -> AudioSource:
        """Prepare narration server-side and return a streamable source.

        WHY: For long commentaries the player should not wait for the
        whole file. The prepare step already knows the real duration, so
        the timeline is right from the first tick.

        HOW: prepare() for the metadata, then fetch_initial_chunk() to
        confirm the audio is reachable and seed the buffer.

        RULES:
        - duration_hint is the backend's duration, else the text estimate
        - url points at the full audio for range-based playback
        - buffered_percent reflects the initial chunk against the full size
        """
        prepared = await self.prepare(text, title, on_status=on_status)
        chunk = await self.fetch_initial_chunk(prepared.audio_id)
        buffered = prepared.buffer_progress(len(chunk))
        if on_status:
            on_status("  Buffered {:.0f}% of {}".format(buffered, prepared.audio_id))

        return AudioSource(
            data=chunk,
            duration_hint=prepared.duration or estimate_duration(text) or None,
            url=self.audio_url(prepared.audio_id),
            buffered_percent=buffered,
        )
