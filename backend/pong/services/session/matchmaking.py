import time
from dataclasses import dataclass, field
from typing import List, Optional

from .registry import Player


@dataclass
class MatchmakingEntry:
    player: Player
    variant: str
    enqueue_time: float = field(default_factory=time.time)


class MatchmakingQueue:
    """FIFO of players waiting for an opponent of the same variant."""

    def __init__(self):
        self._entries: List[MatchmakingEntry] = []

    def peek_opponent(self, variant: str, exclude: str = None) -> Optional[MatchmakingEntry]:
        """Return the oldest entry waiting on ``variant`` without removing it."""
        for entry in self._entries:
            if entry.variant == variant and entry.player.connection_id != exclude:
                return entry
        return None

    def enqueue(self, player: Player, variant: str) -> int:
        """Append the player (once) and return its 1-indexed position.

        Re-queueing for a different variant moves the player to the back.
        """
        position = self.position_of(player.connection_id)
        if position:
            if self._entries[position - 1].variant == variant:
                return position
            self.remove(player.connection_id)
        self._entries.append(MatchmakingEntry(player=player, variant=variant))
        return len(self._entries)

    def position_of(self, connection_id: str) -> int:
        for i, entry in enumerate(self._entries):
            if entry.player.connection_id == connection_id:
                return i + 1
        return 0

    def remove(self, connection_id: str) -> bool:
        before = len(self._entries)
        self._entries = [e for e in self._entries if e.player.connection_id != connection_id]
        return len(self._entries) != before

    def __len__(self):
        return len(self._entries)
