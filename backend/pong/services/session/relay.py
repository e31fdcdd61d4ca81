import logging
from typing import Callable, Optional

from pong.errors import ValidationError
from .rating import RatingEngine
from .rooms import AUTHORITY_INDEX, FINISHED, Room

logger = logging.getLogger(__name__)


class RelayEngine:
    """Forwards in-game traffic and gates score changes through the room.

    Paddle moves are relayed as-is. Ball and score updates only count when
    they come from the authority (player 0). Game-over finishes the room once
    and hands the result to the rating engine after both players are told.
    """

    def __init__(self, gateway, rating_engine: RatingEngine, clock: Callable[[], float]):
        self.gateway = gateway
        self.rating_engine = rating_engine
        self.clock = clock

    def paddle_move(self, room: Room, index: int, sender: str, payload: dict) -> None:
        position = (payload or {}).get('position')
        self.gateway.broadcast(room.group, 'opponent-move', {
            'position': position,
            'playerIndex': index,
        }, skip=sender)

    def ball_sync(self, room: Room, index: int, sender: str, ball_state) -> None:
        if index != AUTHORITY_INDEX:
            return
        self.gateway.broadcast(room.group, 'ball-update', ball_state, skip=sender)

    def score_update(self, room: Room, index: int, sender: str, payload: dict) -> Optional[list]:
        if index != AUTHORITY_INDEX:
            return None
        payload = payload or {}
        try:
            scores = room.commit_score(payload.get('scores'), payload.get('longest_rally', payload.get('longestRally')))
        except ValidationError as exc:
            logger.warning(
                f"[score-reject] room={room.code} sid={sender} submitted={payload.get('scores')!r} "
                f"stored={room.scores} reason={exc.message}"
            )
            return None
        if scores is None:
            return None
        self.gateway.broadcast(room.group, 'score-sync', {'scores': scores}, skip=sender)
        return scores

    def game_over(self, room: Room, sender: str, payload: dict) -> bool:
        submitted = (payload or {}).get('scores')
        result = room.finish(self.clock())
        if result is None:
            return False
        if submitted != result.scores:
            logger.warning(f"[score-mismatch] room={room.code} sid={sender} client={submitted!r} server={result.scores}")

        self.gateway.broadcast(room.group, 'match-complete', {
            'scores': result.scores,
            'winnerIndex': result.winner_index,
            'duration': result.duration_seconds,
        })
        logger.info(f"[match-complete] room={room.code} scores={result.scores} winner={result.winner_index}")
        self.rating_engine.record_match(result)
        return True

    def rematch_request(self, room: Room, index: int, sender: str) -> bool:
        with room.lock:
            if room.state != FINISHED:
                return False
            room.rematch_requested_by = index
        self.gateway.broadcast(room.group, 'rematch-requested', {'fromPlayer': index}, skip=sender)
        return True

    def rematch_accept(self, room: Room, index: int) -> bool:
        with room.lock:
            requester = room.rematch_requested_by
            if room.state != FINISHED or requester is None or requester == index:
                return False
            if room.disconnected or not room.is_full:
                return False
            room.start(self.clock())
        logger.info(f"[rematch] room={room.code}")
        self.gateway.broadcast(room.group, 'game-start', room.start_payload(is_rematch=True))
        return True
