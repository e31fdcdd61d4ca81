import logging
import math
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from pong.errors import RoomFullError, RoomNotFoundError
from pong.validation import validate_rally, validate_room_code, validate_scores
from .rating import MatchResult
from .registry import Player
from .room_codes import DEFAULT_MAX_ATTEMPTS, generate_unique_room_code

logger = logging.getLogger(__name__)

WAITING = 'waiting'
PLAYING = 'playing'
FINISHED = 'finished'

MAX_PLAYERS = 2
AUTHORITY_INDEX = 0


def room_group(code: str) -> str:
    return f"room:{code}"


@dataclass
class Room:
    """A two-player session. Mutations happen under ``lock``."""
    code: str
    variant: str
    players: List[Player] = field(default_factory=list)
    state: str = WAITING
    scores: List[int] = field(default_factory=lambda: [0, 0])
    start_time: Optional[float] = None
    longest_rally: int = 0
    disconnected: Set[int] = field(default_factory=set)
    rematch_requested_by: Optional[int] = None
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    @property
    def group(self) -> str:
        return room_group(self.code)

    @property
    def is_full(self) -> bool:
        return len(self.players) >= MAX_PLAYERS

    def index_of(self, connection_id: str) -> Optional[int]:
        for i, p in enumerate(self.players):
            if p.connection_id == connection_id and i not in self.disconnected:
                return i
        return None

    def connected_indices(self) -> List[int]:
        return [i for i in range(len(self.players)) if i not in self.disconnected]

    def start(self, now: float) -> None:
        self.state = PLAYING
        self.scores = [0, 0]
        self.longest_rally = 0
        self.start_time = now
        self.rematch_requested_by = None

    def start_payload(self, is_rematch: bool = False) -> dict:
        payload = {
            'roomCode': self.code,
            'players': [
                {'username': p.username, 'displayName': p.display_name, 'index': i}
                for i, p in enumerate(self.players)
            ],
            'gameMode': self.variant,
        }
        if is_rematch:
            payload['isRematch'] = True
        return payload

    def commit_score(self, scores, longest_rally=None) -> Optional[List[int]]:
        """Validate and store a score update against the current scores.

        Returns None outside ``playing``. Raises ValidationError and leaves the
        room untouched on a bad delta. The rally value is a soft statistic:
        bad values are dropped quietly.
        """
        with self.lock:
            if self.state != PLAYING:
                return None
            committed = validate_scores(scores, self.scores)
            self.scores = committed
            rally = validate_rally(longest_rally, self.longest_rally)
            if rally is not None:
                self.longest_rally = rally
            return list(committed)

    def finish(self, now: float) -> Optional[MatchResult]:
        """Flip ``playing`` -> ``finished`` once; later calls return None."""
        with self.lock:
            if self.state != PLAYING:
                return None
            scores = list(self.scores)
            if scores[0] == scores[1]:
                logger.warning(f"[game-over-tie] room={self.code} scores={scores} ignored")
                return None
            self.state = FINISHED
            self.rematch_requested_by = None
            winner_index = 0 if scores[0] > scores[1] else 1
            return MatchResult(
                room_code=self.code,
                variant=self.variant,
                scores=scores,
                player_ids=[p.persistent_id for p in self.players],
                usernames=[p.username for p in self.players],
                winner_index=winner_index,
                duration_seconds=int(math.floor(now - (self.start_time or now))),
                longest_rally=self.longest_rally,
            )


class RoomManager:
    """Table of active rooms keyed by code."""

    def __init__(self, max_code_attempts: int = DEFAULT_MAX_ATTEMPTS):
        self.max_code_attempts = max_code_attempts
        self._rooms: Dict[str, Room] = {}

    def new_code(self) -> str:
        """Reserve nothing, just pick a code not in use. Raises CodeGenerationError."""
        return generate_unique_room_code(self._rooms, self.max_code_attempts)

    def create(self, player: Player, variant: str, code: Optional[str] = None) -> Room:
        code = code or self.new_code()
        room = Room(code=code, variant=variant, players=[player])
        self._rooms[code] = room
        logger.info(f"[room-create] room={code} variant={variant} host={player.username}")
        return room

    def create_match(self, waiting: Player, requester: Player, variant: str, now: float,
                     code: Optional[str] = None) -> Room:
        """Create a room for a matchmaking pair, already playing."""
        code = code or self.new_code()
        room = Room(code=code, variant=variant, players=[waiting, requester])
        room.start(now)
        self._rooms[code] = room
        logger.info(f"[match-pair] room={code} variant={variant} players={waiting.username},{requester.username}")
        return room

    def join(self, player: Player, raw_code, now: float) -> Room:
        code = validate_room_code(raw_code)
        room = self._rooms.get(code)
        if room is None:
            raise RoomNotFoundError()
        with room.lock:
            if room.is_full:
                raise RoomFullError()
            room.players.append(player)
            room.start(now)
        logger.info(f"[room-join] room={code} player={player.username}")
        return room

    def get(self, code: str) -> Optional[Room]:
        return self._rooms.get(code)

    def delete(self, code: str) -> Optional[Room]:
        room = self._rooms.pop(code, None)
        if room is not None:
            logger.info(f"[room-delete] room={code}")
        return room

    def __contains__(self, code):
        return code in self._rooms

    def __len__(self):
        return len(self._rooms)
