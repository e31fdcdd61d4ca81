import logging
import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Optional

from pong.errors import NotRegisteredError, RateLimitError
from pong.validation import validate_username
from . import store

logger = logging.getLogger(__name__)


@dataclass
class Player:
    connection_id: str
    username: str
    display_name: str
    persistent_id: Optional[int] = None

    def to_dict(self):
        return {
            'id': self.persistent_id,
            'socketId': self.connection_id,
            'username': self.username,
            'display_name': self.display_name,
        }


class RateLimiter:
    """Rolling-window attempt counter keyed by connection."""

    def __init__(self, max_attempts: int, window_sec: float, clock: Callable[[], float] = time.monotonic):
        self.max_attempts = max_attempts
        self.window_sec = window_sec
        self.clock = clock
        self._attempts: Dict[str, Deque[float]] = defaultdict(deque)

    def hit(self, key: str) -> bool:
        """Record an attempt; return False if it exceeds the limit."""
        now = self.clock()
        attempts = self._attempts[key]
        while attempts and now - attempts[0] >= self.window_sec:
            attempts.popleft()
        if len(attempts) >= self.max_attempts:
            return False
        attempts.append(now)
        return True

    def reset(self, key: str) -> None:
        self._attempts.pop(key, None)


class PlayerRegistry:

    def __init__(self, rate_limiter: RateLimiter):
        self.rate_limiter = rate_limiter
        self._players: Dict[str, Player] = {}

    def register(self, connection_id: str, raw_username) -> Player:
        if not self.rate_limiter.hit(connection_id):
            logger.info(f"[register-throttled] sid={connection_id}")
            raise RateLimitError()
        username = validate_username(raw_username)
        profile = store.get_or_create_profile(username)
        player = Player(
            connection_id=connection_id,
            username=profile.username,
            display_name=profile.display_name or profile.username,
            persistent_id=profile.id,
        )
        self._players[connection_id] = player
        logger.info(f"[register] sid={connection_id} username={username} player_id={profile.id}")
        return player

    def get(self, connection_id: str) -> Optional[Player]:
        return self._players.get(connection_id)

    def require(self, connection_id: str) -> Player:
        player = self._players.get(connection_id)
        if player is None:
            raise NotRegisteredError()
        return player

    def unregister(self, connection_id: str) -> Optional[Player]:
        self.rate_limiter.reset(connection_id)
        return self._players.pop(connection_id, None)

    def __len__(self):
        return len(self._players)
