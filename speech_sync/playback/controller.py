"""Playback controller: preload, autoplay, progress sync, and mutual exclusion.

WHY: Timing estimates are only useful while something is playing. The
controller owns the lifecycle of one narration player: fetch the audio
once per commentary, try to autoplay, keep progress and section state in
step with the media position, and step aside when another player on the
page starts.

HOW: An asyncio state machine:

    idle → preloading → ready → playing ⇄ paused → ended
                 ↘          ↘        ↘
                   error ←───────────┘

load() starts a preload task (TTS request → media.load → wait until
buffered). The TTS request goes through a PreloadCache, so players that
share a cache and show the same commentary fetch it once. A one-shot
autoplay task follows once ready. While playing, a fixed-interval poll
task feeds the media position into map_progress(); backends may also
push metadata, errors, and end-of-track through the MediaListener hooks.
play() announces on a MediaBus, which pauses every other subscribed
player synchronously.

RULES:
- Same (commentary, title) loaded twice → no second request
- Different commentary → cancel preload/autoplay/poll tasks, release the
  media source, start over
- Every load() starts a new generation; work begun for an older one
  never touches state, source, or media
- Preload failures are logged, not surfaced (error stays None)
- Autoplay rejections are swallowed; the state stays ready and other
  players keep playing (autoplay announces only once media.play succeeded)
- Explicit play() failures are surfaced through .error and release the bus
- Timeline is memoized on (sections, duration, title) and rebuilt, never
  mutated
- A player never pauses itself from its own announcement
"""

from __future__ import annotations

import asyncio
import enum
import logging
import math
import uuid
from collections.abc import Callable
from functools import partial
from typing import Any, List, Optional, Tuple

import httpx

from speech_sync.api.client import TTSAPIError
from speech_sync.config import (
    AUTOPLAY_DELAY_S,
    AUTOPLAY_ENABLED,
    PREPARE_READY_TIMEOUT_S,
    PROGRESS_POLL_INTERVAL_S,
)
from speech_sync.core.ir import (
    AudioSource,
    HighlightPosition,
    PlaybackProgress,
    Section,
    Stopped,
    Timeline,
)
from speech_sync.core.progress import locate_highlight_at, map_progress
from speech_sync.core.segmenter import segment_commentary
from speech_sync.core.timeline import build_timeline
from speech_sync.core.weights import estimate_duration
from speech_sync.playback.bus import MediaBus, shared_bus
from speech_sync.playback.media import (
    MediaBackend,
    MediaError,
    MediaListener,
    PlaybackNotAllowedError,
)
from speech_sync.playback.preload import PreloadCache, shared_preload_cache

logger = logging.getLogger(__name__)

NO_AUDIO_MESSAGE = "No audio available"
PLAYBACK_FAILED_MESSAGE = "Playback failed"
INTERACTION_REQUIRED_MESSAGE = "Please interact with the page first to enable audio"
AUDIO_ERROR_MESSAGE = "Audio playback error"


class PlaybackState(str, enum.Enum):
    """States of one narration player.

    RULES:
    - idle: nothing loaded
    - preloading: narration being fetched/buffered
    - ready: buffered, not yet playing
    - playing / paused: self-explanatory
    - ended: track finished; play() restarts from 0
    - error: fetch or media failure; play() retries the fetch
    """

    IDLE = "idle"
    PRELOADING = "preloading"
    READY = "ready"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"
    ERROR = "error"


_SEEKABLE_STATES = frozenset({PlaybackState.READY, PlaybackState.PLAYING, PlaybackState.PAUSED})


class _SupersededLoad(Exception):
    """A fetch finished after load() had moved on to other commentary."""


class PlaybackController(MediaListener):
    """Drives one narration player from TTS fetch to synced progress.

    WHY: Bundles the one-shot guards, the cancellation rules, and the
    exclusion contract so every player behaves the same way.

    HOW: Holds the commentary, its sections, and the measured duration;
    derives the timeline lazily; delegates audio to a MediaBackend and
    synthesis to a TTS client (anything with an async speak(text, title)
    returning an AudioSource, plus stream(text, title) when streaming).

    RULES:
    - client must already be open (inside its async context manager)
    - streaming=True fetches through client.stream() (prepare + first
      chunk), so the real duration is known before playback starts
    - preload_cache defaults to shared_preload_cache, like bus
    - on_progress(progress) is called on every time update
    - on_section_change(index) is called when the section index changes
      (-1 for intro / stopped)
    - on_state_change(state) is called on every state transition
    """

    def __init__(
        self,
        client: Any,
        media: MediaBackend,
        bus: Optional[MediaBus] = None,
        player_id: Optional[str] = None,
        on_progress: Optional[Callable[[PlaybackProgress], None]] = None,
        on_section_change: Optional[Callable[[int], None]] = None,
        on_state_change: Optional[Callable[[PlaybackState], None]] = None,
        autoplay: bool = AUTOPLAY_ENABLED,
        autoplay_delay: float = AUTOPLAY_DELAY_S,
        poll_interval: float = PROGRESS_POLL_INTERVAL_S,
        ready_timeout: float = PREPARE_READY_TIMEOUT_S,
        preload_cache: Optional[PreloadCache] = None,
        streaming: bool = False,
    ) -> None:
        self.player_id = player_id or "audio-player-{}".format(uuid.uuid4().hex)
        self._client = client
        self._media = media
        self._bus = bus if bus is not None else shared_bus
        self._cache = preload_cache if preload_cache is not None else shared_preload_cache
        self._streaming = streaming
        self._on_progress = on_progress
        self._on_section_change = on_section_change
        self._on_state_change = on_state_change
        self._autoplay = autoplay
        self._autoplay_delay = autoplay_delay
        self._poll_interval = poll_interval
        self._ready_timeout = ready_timeout

        self._state = PlaybackState.IDLE
        self.error: Optional[str] = None
        self.commentary = ""
        self.title = ""
        self.sections: List[Section] = []
        self.progress: PlaybackProgress = Stopped(current_time=0.0, duration=0.0)
        self.current_section = -1

        self._duration: Optional[float] = None
        self._timeline = Timeline.empty()
        self._timeline_key: Optional[Tuple[Any, ...]] = None
        self._source: Optional[AudioSource] = None

        self._generation = 0
        self._preload_started = False
        self._autoplay_attempted = False
        self._preload_task: Optional[asyncio.Task] = None
        self._autoplay_task: Optional[asyncio.Task] = None
        self._poll_task: Optional[asyncio.Task] = None

        self._media.bind(self)
        self._unsubscribe = self._bus.subscribe(self.player_id, self._on_stop_broadcast)

    async def __aenter__(self) -> PlaybackController:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        await self.close()

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def duration(self) -> float:
        return self._duration or 0.0

    @property
    def is_playing(self) -> bool:
        return self._state is PlaybackState.PLAYING

    @property
    def buffer_progress(self) -> float:
        """Percent (0-100) of the narration held locally; 0 before preload."""
        return self._source.buffered_percent if self._source is not None else 0.0

    @property
    def timeline(self) -> Timeline:
        """Section timeline, rebuilt when sections, duration, or title change."""
        key = (tuple(self.sections), self._duration, self.title)
        if key != self._timeline_key:
            self._timeline = build_timeline(self.sections, self._duration, self.title)
            self._timeline_key = key
        return self._timeline

    def highlight(self) -> HighlightPosition:
        """Sentence/word position for the current media time."""
        _, position = locate_highlight_at(self._media.current_time, self.sections, self.timeline)
        return position

    def _set_state(self, state: PlaybackState) -> None:
        if state is self._state:
            return
        logger.debug("Player %s: %s → %s", self.player_id, self._state.value, state.value)
        self._state = state
        if self._on_state_change:
            self._on_state_change(state)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(self, commentary: Optional[str], title: str = "") -> None:
        """Attach a commentary and start preloading its narration.

        WHY: Called whenever the reading view shows a (possibly new)
        article. Repeated calls for the same article must not refetch.

        HOW: Cancels everything tied to the previous commentary, segments
        the new text, seeds the duration with an estimate, and spawns the
        preload task.

        RULES:
        - Same commentary and title as the active preload → no-op
        - Empty commentary → idle, nothing fetched
        """
        commentary = commentary or ""
        title = title or ""
        if self._preload_started and commentary == self.commentary and title == self.title:
            return

        await self._reset()
        self.commentary = commentary
        self.title = title
        self.sections = segment_commentary(commentary) if commentary else []
        self._duration = estimate_duration(commentary) or None

        if not commentary:
            self._set_state(PlaybackState.IDLE)
            return

        self._preload_started = True
        self._set_state(PlaybackState.PRELOADING)
        self._preload_task = asyncio.create_task(self._preload())

    async def _reset(self) -> None:
        """Cancel tasks and release the media source of the previous commentary."""
        self._generation += 1
        current = asyncio.current_task()
        tasks = [
            t for t in (self._preload_task, self._autoplay_task, self._poll_task)
            if t is not None and t is not current and not t.done()
        ]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._preload_task = None
        self._autoplay_task = None
        self._poll_task = None

        self._media.release()
        self._bus.release(self.player_id)
        self._source = None
        self._preload_started = False
        self._autoplay_attempted = False
        self.error = None
        self.current_section = -1
        self.progress = Stopped(current_time=0.0, duration=0.0)

    async def _fetch_source(self) -> AudioSource:
        """Fetch (or reuse) the narration and load it into the media backend.

        Raises _SupersededLoad when load() moved on while this was waiting.
        """
        generation = self._generation
        request = self._client.stream if self._streaming else self._client.speak
        source = await self._cache.fetch(
            (self.commentary, self.title),
            partial(request, self.commentary, self.title),
        )
        if generation != self._generation:
            raise _SupersededLoad()
        self._media.load(source)
        await self._media.wait_until_buffered()
        if generation != self._generation:
            raise _SupersededLoad()
        return source

    async def _preload(self) -> None:
        try:
            source = await self._fetch_source()
        except _SupersededLoad:
            return
        except (TTSAPIError, httpx.HTTPError, MediaError) as exc:
            logger.warning("Preload failed for player %s: %s", self.player_id, exc)
            self._set_state(PlaybackState.ERROR)
            return
        except Exception:
            logger.exception("Unexpected preload failure for player %s", self.player_id)
            self._set_state(PlaybackState.ERROR)
            return

        if self._state is not PlaybackState.PRELOADING or self._source is not None:
            logger.debug("Player %s: preload result ignored in state %s",
                         self.player_id, self._state.value)
            return
        self._source = source
        logger.info(
            "Player %s preloaded %d bytes (duration %.1fs)",
            self.player_id, source.size, self.duration,
        )
        self._set_state(PlaybackState.READY)

        if self._autoplay and not self._autoplay_attempted:
            self._autoplay_attempted = True
            self._autoplay_task = asyncio.create_task(self._run_autoplay())

    async def _run_autoplay(self) -> None:
        if self._autoplay_delay > 0:
            await asyncio.sleep(self._autoplay_delay)
        if self._state is not PlaybackState.READY:
            return
        try:
            await self._start(user_initiated=False)
        except PlaybackNotAllowedError:
            logger.debug("Autoplay blocked for player %s", self.player_id)
        except MediaError as exc:
            self.handle_media_error(str(exc))

    def _cancel_autoplay(self) -> None:
        task = self._autoplay_task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
        self._autoplay_task = None

    # ------------------------------------------------------------------
    # Transport controls
    # ------------------------------------------------------------------

    async def _start(self, user_initiated: bool) -> None:
        # A user play silences the others before starting; autoplay only
        # once the backend has actually started.
        if user_initiated:
            self._bus.announce(self.player_id)
        try:
            await self._media.play(user_initiated=user_initiated)
        except MediaError:
            self._bus.release(self.player_id)
            raise
        if not user_initiated:
            self._bus.announce(self.player_id)
        self.error = None
        self._set_state(PlaybackState.PLAYING)
        self._start_polling()
        self.handle_time_update(self._media.current_time)

    async def play(self) -> bool:
        """Start playback on behalf of the user.

        WHY: Unlike autoplay, an explicit play must either succeed or tell
        the user why not, and it is the recovery path after a failed
        preload.

        HOW: Waits for an in-flight preload, refetches after an error,
        rewinds after the end, then announces and plays.

        RULES:
        - Returns True when playback is running afterwards
        - Failures set .error (see module constants) and return False
        - Returns False without side effects if load() switched commentary
          while this call was waiting
        """
        if not self.commentary:
            self.error = NO_AUDIO_MESSAGE
            return False
        if self._state is PlaybackState.PLAYING:
            return True

        self._cancel_autoplay()
        generation = self._generation

        if self._state is PlaybackState.PRELOADING and self._preload_task is not None:
            done, _ = await asyncio.wait({self._preload_task}, timeout=self._ready_timeout)
            if generation != self._generation:
                logger.debug("Player %s: play() dropped, commentary changed", self.player_id)
                return False
            if not done:
                logger.warning("Player %s: preload still running after %.0fs",
                               self.player_id, self._ready_timeout)
                return False
            self._cancel_autoplay()
            if self._state is PlaybackState.PLAYING:
                return True

        if self._state is PlaybackState.ERROR or self._source is None:
            if not await self._refetch():
                return False

        if self._state is PlaybackState.ENDED:
            self._media.seek(0.0)

        try:
            await self._start(user_initiated=True)
        except PlaybackNotAllowedError:
            self.error = INTERACTION_REQUIRED_MESSAGE
            return False
        except MediaError as exc:
            self.handle_media_error(str(exc))
            return False
        return True

    async def _refetch(self) -> bool:
        self._set_state(PlaybackState.PRELOADING)
        try:
            source = await self._fetch_source()
        except _SupersededLoad:
            return False
        except TTSAPIError as exc:
            logger.warning("Playback fetch failed for player %s: %s", self.player_id, exc)
            self.error = exc.message or PLAYBACK_FAILED_MESSAGE
            self._set_state(PlaybackState.ERROR)
            return False
        except httpx.HTTPError as exc:
            logger.warning("Playback fetch failed for player %s: %s", self.player_id, exc)
            self.error = PLAYBACK_FAILED_MESSAGE
            self._set_state(PlaybackState.ERROR)
            return False
        except MediaError as exc:
            self.handle_media_error(str(exc))
            return False
        self._source = source
        self._set_state(PlaybackState.READY)
        return True

    def pause(self) -> None:
        if self._state is not PlaybackState.PLAYING:
            return
        self._media.pause()
        self._stop_polling()
        self._bus.release(self.player_id)
        self._set_state(PlaybackState.PAUSED)

    async def toggle(self) -> bool:
        """Pause when playing, play otherwise. Returns True if now playing."""
        if self._state is PlaybackState.PLAYING:
            self.pause()
            return False
        return await self.play()

    def seek(self, seconds: float) -> bool:
        """Move playback to seconds (clamped) without changing state."""
        if self._state not in _SEEKABLE_STATES:
            logger.debug("Player %s: seek ignored in state %s", self.player_id, self._state.value)
            return False
        target = max(0.0, seconds)
        if self._duration:
            target = min(target, self._duration)
        self._media.seek(target)
        self.handle_time_update(target)
        return True

    async def jump_to_section(self, index: int) -> bool:
        """Seek to a section's header and make sure playback is running."""
        timeline = self.timeline
        if not 0 <= index < len(timeline):
            return False
        previous = self.current_section
        if not self.seek(timeline[index].start):
            return False
        if previous == index and self._on_section_change:
            self._on_section_change(index)
        if self._state is not PlaybackState.PLAYING:
            return await self.play()
        return True

    def set_muted(self, muted: bool) -> None:
        self._media.muted = muted

    def toggle_mute(self) -> bool:
        self.set_muted(not self._media.muted)
        return self._media.muted

    # ------------------------------------------------------------------
    # Progress polling
    # ------------------------------------------------------------------

    def _start_polling(self) -> None:
        if self._poll_task is not None and not self._poll_task.done():
            return
        self._poll_task = asyncio.create_task(self._poll_loop())

    def _stop_polling(self) -> None:
        task = self._poll_task
        self._poll_task = None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    async def _poll_loop(self) -> None:
        while self._state is PlaybackState.PLAYING:
            await asyncio.sleep(self._poll_interval)
            if self._state is not PlaybackState.PLAYING:
                break
            if self._media.ended:
                self.handle_ended()
                break
            self.handle_time_update(self._media.current_time)

    # ------------------------------------------------------------------
    # MediaListener hooks
    # ------------------------------------------------------------------

    def handle_loaded_metadata(self, duration: float) -> None:
        if duration is None or not math.isfinite(duration) or duration <= 0:
            return
        logger.debug("Player %s: real duration %.2fs", self.player_id, duration)
        self._duration = duration

    def handle_time_update(self, current_time: float) -> None:
        progress = map_progress(current_time, self.timeline)
        self.progress = progress
        if progress.section_index != self.current_section:
            self.current_section = progress.section_index
            if self._on_section_change:
                self._on_section_change(progress.section_index)
        if self._on_progress:
            self._on_progress(progress)

    def handle_ended(self) -> None:
        if self._state not in (PlaybackState.PLAYING, PlaybackState.PAUSED):
            return
        self._stop_polling()
        self._media.pause()
        self._bus.release(self.player_id)
        self._set_state(PlaybackState.ENDED)

        self.progress = Stopped(current_time=self.duration, duration=self.duration)
        if self.current_section != -1:
            self.current_section = -1
            if self._on_section_change:
                self._on_section_change(-1)
        if self._on_progress:
            self._on_progress(self.progress)

    def handle_media_error(self, message: str) -> None:
        logger.error("Media error on player %s: %s", self.player_id, message)
        self._stop_polling()
        self._bus.release(self.player_id)
        self.error = AUDIO_ERROR_MESSAGE
        self._set_state(PlaybackState.ERROR)

    def _on_stop_broadcast(self, source_id: str) -> None:
        if source_id == self.player_id:
            return
        if self._state is PlaybackState.PLAYING:
            logger.debug("Player %s paused by %s", self.player_id, source_id)
            self.pause()

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Cancel all work, release media, and leave the bus."""
        await self._reset()
        self._unsubscribe()
        self._media.bind(None)
        self.commentary = ""
        self.sections = []
        self._set_state(PlaybackState.IDLE)
