import logging
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from pong.errors import RoomNotFoundError, ValidationError
from pong.validation import validate_room_code, validate_variant
from .matchmaking import MatchmakingQueue
from .rating import RatingEngine
from .registry import Player, PlayerRegistry, RateLimiter
from .relay import RelayEngine
from .room_codes import DEFAULT_MAX_ATTEMPTS
from .rooms import Room, RoomManager
from .supervisor import DEFAULT_GRACE_PERIOD_SEC, DisconnectSupervisor

logger = logging.getLogger(__name__)


class SessionManager:
    """Owns all live session state for one server process.

    The player map, matchmaking queue, room table and connection memberships
    are guarded by one table lock; each room's own state is guarded by the
    room's lock (always taken after the table lock, never before). Storage
    I/O for ratings happens outside both.
    """

    def __init__(self, gateway, rating_engine: Optional[RatingEngine] = None,
                 grace_period: float = DEFAULT_GRACE_PERIOD_SEC,
                 rate_limit_attempts: int = 3, rate_limit_window: float = 10.0,
                 max_code_attempts: int = DEFAULT_MAX_ATTEMPTS,
                 clock: Callable[[], float] = time.time,
                 monotonic: Callable[[], float] = time.monotonic):
        self.gateway = gateway
        self.clock = clock
        self._lock = threading.RLock()
        self.registry = PlayerRegistry(RateLimiter(rate_limit_attempts, rate_limit_window, clock=monotonic))
        self.queue = MatchmakingQueue()
        self.rooms = RoomManager(max_code_attempts=max_code_attempts)
        self.relay = RelayEngine(gateway, rating_engine or RatingEngine(), clock)
        self.supervisor = DisconnectSupervisor(gateway, monotonic, self._expire_room, grace_period=grace_period)
        self._memberships: Dict[str, str] = {}

    @classmethod
    def from_config(cls, gateway, config) -> 'SessionManager':
        return cls(
            gateway,
            grace_period=float(config.get('RECONNECT_GRACE_PERIOD_SEC', DEFAULT_GRACE_PERIOD_SEC)),
            rate_limit_attempts=int(config.get('REGISTER_RATE_LIMIT_ATTEMPTS', 3)),
            rate_limit_window=float(config.get('REGISTER_RATE_LIMIT_WINDOW_SEC', 10)),
            max_code_attempts=int(config.get('ROOM_CODE_MAX_ATTEMPTS', DEFAULT_MAX_ATTEMPTS)),
        )

    # ---- Registration ----

    def register(self, connection_id: str, username) -> Player:
        with self._lock:
            return self.registry.register(connection_id, username)

    # ---- Rooms ----

    def create_room(self, connection_id: str, variant=None) -> str:
        with self._lock:
            player = self.registry.require(connection_id)
            mode = validate_variant(variant)
            code = self.rooms.new_code()
            self._detach(connection_id)
            self.queue.remove(connection_id)
            room = self.rooms.create(player, mode, code=code)
            self._memberships[connection_id] = room.code
        self.gateway.join(connection_id, room.group)
        return room.code

    def join_room(self, connection_id: str, code) -> int:
        with self._lock:
            player = self.registry.require(connection_id)
            normalized = validate_room_code(code)
            if self._memberships.get(connection_id) == normalized:
                raise ValidationError('Already in this room')
            room = self.rooms.join(player, normalized, self.clock())
            self._detach(connection_id)
            self.queue.remove(connection_id)
            self._memberships[connection_id] = room.code
        self.gateway.join(connection_id, room.group)
        self.gateway.broadcast(room.group, 'game-start', room.start_payload())
        return room.index_of(connection_id)

    def leave_room(self, connection_id: str) -> None:
        with self._lock:
            self._detach(connection_id)

    def resume_session(self, connection_id: str, code) -> dict:
        """Put a re-registered player back into the seat they dropped from.

        Restores seat, scores and room state; positions resync through the
        normal relay traffic.
        """
        with self._lock:
            player = self.registry.require(connection_id)
            normalized = validate_room_code(code)
            room = self.rooms.get(normalized)
            if room is None:
                raise RoomNotFoundError()
            # Seats only change hands under the table lock, so the index
            # found here stays valid until it is claimed below.
            with room.lock:
                index = next(
                    (i for i in sorted(room.disconnected) if room.players[i].username == player.username),
                    None,
                )
            if index is None:
                raise ValidationError('No disconnected seat to resume in this room')
            self._detach(connection_id)
            self.queue.remove(connection_id)
            with room.lock:
                room.players[index] = player
                room.disconnected.discard(index)
                all_back = not room.disconnected
                snapshot = {
                    'roomCode': room.code,
                    'playerIndex': index,
                    'scores': list(room.scores),
                    'state': room.state,
                    'gameMode': room.variant,
                }
            self._memberships[connection_id] = room.code
            if all_back:
                self.supervisor.cancel(room.code)
        self.gateway.join(connection_id, room.group)
        self.gateway.broadcast(room.group, 'opponent-reconnected', {'playerIndex': index}, skip=connection_id)
        logger.info(f"[resume] room={room.code} index={index} player={player.username}")
        return snapshot

    # ---- Matchmaking ----

    def find_match(self, connection_id: str, variant=None) -> dict:
        with self._lock:
            player = self.registry.require(connection_id)
            mode = validate_variant(variant)
            entry = self.queue.peek_opponent(mode, exclude=connection_id)
            # Pick the code before touching the queue so exhaustion changes nothing
            code = self.rooms.new_code() if entry is not None else None
            self._detach(connection_id)
            if entry is None:
                position = self.queue.enqueue(player, mode)
                logger.info(f"[queue] player={player.username} variant={mode} position={position}")
                return {'matched': False, 'position': position}
            self.queue.remove(entry.player.connection_id)
            self.queue.remove(connection_id)
            room = self.rooms.create_match(entry.player, player, mode, self.clock(), code=code)
            for p in room.players:
                self._memberships[p.connection_id] = room.code
        for p in room.players:
            self.gateway.join(p.connection_id, room.group)
        self.gateway.broadcast(room.group, 'game-start', room.start_payload())
        return {'matched': True, 'playerIndex': 1, 'roomCode': room.code}

    def cancel_matchmaking(self, connection_id: str) -> None:
        with self._lock:
            self.queue.remove(connection_id)

    # ---- In-game relay ----

    def paddle_move(self, connection_id: str, payload) -> None:
        seat = self._seat(connection_id)
        if seat:
            self.relay.paddle_move(seat[0], seat[1], connection_id, payload)

    def ball_sync(self, connection_id: str, ball_state) -> None:
        seat = self._seat(connection_id)
        if seat:
            self.relay.ball_sync(seat[0], seat[1], connection_id, ball_state)

    def score_update(self, connection_id: str, payload) -> Optional[list]:
        seat = self._seat(connection_id)
        if not seat:
            return None
        return self.relay.score_update(seat[0], seat[1], connection_id, payload)

    def game_over(self, connection_id: str, payload) -> bool:
        seat = self._seat(connection_id)
        if not seat:
            return False
        return self.relay.game_over(seat[0], connection_id, payload)

    def rematch_request(self, connection_id: str) -> bool:
        seat = self._seat(connection_id)
        if not seat:
            return False
        return self.relay.rematch_request(seat[0], seat[1], connection_id)

    def rematch_accept(self, connection_id: str) -> bool:
        seat = self._seat(connection_id)
        if not seat:
            return False
        return self.relay.rematch_accept(seat[0], seat[1])

    # ---- Connection loss ----

    def disconnect(self, connection_id: str) -> None:
        with self._lock:
            if self.queue.remove(connection_id):
                logger.info(f"[queue-drop] sid={connection_id}")
            self._detach(connection_id, connection_lost=True)
            self.registry.unregister(connection_id)

    def status(self) -> dict:
        with self._lock:
            return {
                'players': len(self.registry),
                'rooms': len(self.rooms),
                'queue': len(self.queue),
            }

    # ---- Internals ----

    def _seat(self, connection_id: str) -> Optional[Tuple[Room, int]]:
        with self._lock:
            code = self._memberships.get(connection_id)
            room = self.rooms.get(code) if code else None
            if room is None:
                return None
            index = room.index_of(connection_id)
            if index is None:
                return None
            return room, index

    def _detach(self, connection_id: str, connection_lost: bool = False) -> None:
        """Take a connection out of its room. Caller holds the table lock.

        Leaving a room nobody else is connected to deletes it. A lost
        connection always holds its seat for the grace period, and the
        opponent (if any) is told.
        """
        code = self._memberships.pop(connection_id, None)
        room = self.rooms.get(code) if code else None
        if room is None:
            return
        index = room.index_of(connection_id)
        if index is None:
            return
        if connection_lost:
            self.supervisor.player_lost(room, index, connection_id)
            return
        self.gateway.leave(connection_id, room.group)
        others = [i for i in room.connected_indices() if i != index]
        if not others:
            self.supervisor.cancel(room.code)
            self._drop_room(room.code)
            return
        self.supervisor.player_lost(room, index, connection_id)

    def _drop_room(self, code: str) -> None:
        room = self.rooms.delete(code)
        if room is None:
            return
        for i in room.connected_indices():
            sid = room.players[i].connection_id
            if self._memberships.get(sid) == code:
                del self._memberships[sid]
                self.gateway.leave(sid, room.group)

    def _expire_room(self, code: str) -> None:
        with self._lock:
            self._drop_room(code)
