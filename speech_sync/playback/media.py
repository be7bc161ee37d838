"""Media backend seam and a headless clock-driven implementation.

WHY: The controller's state machine should not care whether audio comes
out of a browser element, a desktop audio library, or nothing at all
(tests, the CLI). It only needs the handful of operations an audio
element offers and a way to hear about metadata, errors, and the end of
the track.

HOW: MediaBackend is an ABC describing those operations. Backends report
events through a bound MediaListener (the controller implements it).
ClockMedia is a concrete backend that produces no sound: its position
advances with a monotonic clock, which is enough to drive timing,
highlighting, and the full state machine.

RULES:
- load() replaces any previous source and resets position to 0
- play() raises PlaybackNotAllowedError when playback needs a user
  gesture it did not get, MediaError when the source cannot play
- current_time is clamped to [0, duration]
- ended is True once position reaches duration
- release() drops the source; the backend is reusable afterwards
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Optional

from speech_sync.core.ir import AudioSource


class MediaError(Exception):
    """The media backend cannot decode or play the loaded source."""


class PlaybackNotAllowedError(MediaError):
    """Playback was refused by an autoplay policy (no user gesture)."""


class MediaListener(ABC):
    """Receiver of backend events; implemented by PlaybackController."""

    @abstractmethod
    def handle_loaded_metadata(self, duration: float) -> None:
        """The real duration of the loaded source is known."""

    @abstractmethod
    def handle_ended(self) -> None:
        """Playback reached the end of the track."""

    @abstractmethod
    def handle_media_error(self, message: str) -> None:
        """The backend hit an unrecoverable error."""


class MediaBackend(ABC):
    """Abstract base for all media backends.

    WHY: Keeps the controller testable and portable. Anything that can
    load bytes, play, pause, seek, and report a position can drive the
    sync engine.

    To add a backend:
    1. Subclass MediaBackend
    2. Implement every abstract member
    3. Call self._emit_metadata / _emit_ended / _emit_error for events
    """

    def __init__(self) -> None:
        self._listener: Optional[MediaListener] = None
        self.muted = False

    def bind(self, listener: Optional[MediaListener]) -> None:
        self._listener = listener

    def _emit_metadata(self, duration: float) -> None:
        if self._listener is not None:
            self._listener.handle_loaded_metadata(duration)

    def _emit_ended(self) -> None:
        if self._listener is not None:
            self._listener.handle_ended()

    def _emit_error(self, message: str) -> None:
        if self._listener is not None:
            self._listener.handle_media_error(message)

    @abstractmethod
    def load(self, source: AudioSource) -> None:
        """Attach a new source, replacing the previous one."""

    @abstractmethod
    async def wait_until_buffered(self) -> None:
        """Return once enough is buffered to play through."""

    @abstractmethod
    async def play(self, user_initiated: bool = False) -> None:
        """Start or resume playback."""

    @abstractmethod
    def pause(self) -> None:
        """Pause playback, keeping the position."""

    @abstractmethod
    def seek(self, seconds: float) -> None:
        """Move the playback position."""

    @abstractmethod
    def release(self) -> None:
        """Drop the current source and free its resources."""

    @property
    @abstractmethod
    def current_time(self) -> float:
        """Playback position in seconds."""

    @property
    @abstractmethod
    def duration(self) -> Optional[float]:
        """Duration in seconds, or None before metadata is known."""

    @property
    @abstractmethod
    def paused(self) -> bool:
        """True unless actively playing."""

    @property
    def ended(self) -> bool:
        duration = self.duration
        return bool(duration) and self.current_time >= duration

    @property
    def has_source(self) -> bool:
        return self.duration is not None


class ClockMedia(MediaBackend):
    """Silent backend whose position advances with a monotonic clock.

    WHY: Drives the full sync pipeline without an audio device, for the
    CLI's simulations, for headless consumers that render highlights
    elsewhere, and for tests (inject a fake clock).

    HOW: Stores an anchor (clock reading, position) on every play, pause,
    and seek; current_time is the anchor position plus elapsed clock time
    times the playback rate while playing.

    RULES:
    - Duration comes from AudioSource.duration_hint (metadata is emitted
      on load when known)
    - autoplay_allowed=False rejects play(user_initiated=False)
    - fail(message) simulates an element error event
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        autoplay_allowed: bool = True,
        playback_rate: float = 1.0,
    ) -> None:
        super().__init__()
        self._clock = clock
        self.autoplay_allowed = autoplay_allowed
        self.playback_rate = playback_rate
        self._source: Optional[AudioSource] = None
        self._duration: Optional[float] = None
        self._position = 0.0
        self._anchor: Optional[float] = None  # clock reading while playing

    def load(self, source: AudioSource) -> None:
        self._source = source
        self._duration = source.duration_hint
        self._position = 0.0
        self._anchor = None
        if self._duration:
            self._emit_metadata(self._duration)

    async def wait_until_buffered(self) -> None:
        if self._source is None:
            raise MediaError("No source loaded")

    async def play(self, user_initiated: bool = False) -> None:
        if self._source is None:
            raise MediaError("No source loaded")
        if not user_initiated and not self.autoplay_allowed:
            raise PlaybackNotAllowedError("play() requires a user gesture")
        if self._anchor is None:
            self._anchor = self._clock()

    def pause(self) -> None:
        self._position = self.current_time
        self._anchor = None

    def seek(self, seconds: float) -> None:
        self._position = self._clamp(seconds)
        if self._anchor is not None:
            self._anchor = self._clock()

    def release(self) -> None:
        self._source = None
        self._duration = None
        self._position = 0.0
        self._anchor = None

    def fail(self, message: str = "decode error") -> None:
        self.pause()
        self._emit_error(message)

    def _clamp(self, seconds: float) -> float:
        upper = self._duration if self._duration is not None else seconds
        return max(0.0, min(seconds, upper))

    @property
    def current_time(self) -> float:
        if self._anchor is None:
            return self._position
        elapsed = (self._clock() - self._anchor) * self.playback_rate
        return self._clamp(self._position + elapsed)

    @property
    def duration(self) -> Optional[float]:
        return self._duration

    @property
    def paused(self) -> bool:
        return self._anchor is None

    @property
    def has_source(self) -> bool:
        return self._source is not None
