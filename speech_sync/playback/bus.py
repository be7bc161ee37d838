"""In-process mutual-exclusion registry for media players.

WHY: Only one narration, reel, or video may play at a time across the
whole page. A global event that every player must remember to listen to
and tag with its own id is easy to get wrong (a player that forgets the
id pauses itself). An explicit registry makes the contract visible: to
take part you subscribe with an id, and announcing never reaches the
announcer.

HOW: MediaBus maps player ids to stop callbacks. announce(source_id)
calls every other subscriber's callback synchronously, so the previous
player is paused before the announcing player's play() even starts.

RULES:
- A player id may be subscribed once; duplicates raise ValueError
- announce() never calls the source's own callback
- A callback that raises is logged and skipped; the others still run
- active_player is the last announcer; first-broadcaster-wins, there is
  no tie-break for near-simultaneous plays
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

StopCallback = Callable[[str], None]


class MediaBus:
    """Publish/subscribe registry that enforces one active player."""

    def __init__(self) -> None:
        self._subscribers: Dict[str, StopCallback] = {}
        self.active_player: Optional[str] = None

    def subscribe(self, player_id: str, on_stop: StopCallback) -> Callable[[], None]:
        """Register a player and return a callable that unregisters it.

        Args:
            player_id: Unique id of the player.
            on_stop: Called with the announcing player's id when another
                     player starts.

        Returns:
            An idempotent unsubscribe function.
        """
        if player_id in self._subscribers:
            raise ValueError("Player '{}' is already subscribed".format(player_id))
        self._subscribers[player_id] = on_stop

        def _unsubscribe() -> None:
            self.unsubscribe(player_id)

        return _unsubscribe

    def unsubscribe(self, player_id: str) -> None:
        self._subscribers.pop(player_id, None)
        if self.active_player == player_id:
            self.active_player = None

    def announce(self, source_id: str) -> None:
        """Tell every other player that source_id is starting playback."""
        self.active_player = source_id
        # Snapshot: callbacks may unsubscribe while we iterate.
        for player_id, on_stop in list(self._subscribers.items()):
            if player_id == source_id:
                continue
            try:
                on_stop(source_id)
            except Exception:
                logger.exception(
                    "Stop callback for player %s failed (source %s)", player_id, source_id
                )

    def release(self, player_id: str) -> None:
        """Clear active_player if player_id holds it (e.g. on pause or end)."""
        if self.active_player == player_id:
            self.active_player = None

    @property
    def players(self) -> List[str]:
        return list(self._subscribers)


shared_bus = MediaBus()
"""Process-wide default bus; inject a dedicated MediaBus for isolation."""
