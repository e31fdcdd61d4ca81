import logging
import math
from dataclasses import dataclass
from typing import List, NamedTuple, Optional

from sqlalchemy.exc import SQLAlchemyError

from pong import db
from . import store

logger = logging.getLogger(__name__)

K_FACTOR = 32
MIN_ELO = 100


class EloChange(NamedTuple):
    winner_gain: int
    loser_loss: int


def calculate_elo_change(winner_rating: float, loser_rating: float) -> EloChange:
    """Zero-sum Elo delta: the winner gains exactly what the loser loses."""
    expected_winner = 1 / (1 + 10 ** ((loser_rating - winner_rating) / 400))
    # Half-up rounding; round() would use banker's rounding
    change = int(math.floor(K_FACTOR * (1 - expected_winner) + 0.5))
    return EloChange(winner_gain=change, loser_loss=change)


def apply_elo_change(rating: int, change: int) -> int:
    return max(MIN_ELO, rating + change)


@dataclass
class MatchResult:
    """Snapshot of a finished room, taken when it flips to finished."""
    room_code: str
    variant: str
    scores: List[int]
    player_ids: List[Optional[int]]
    usernames: List[str]
    winner_index: int
    duration_seconds: int
    longest_rally: int


class RatingEngine:

    def record_match(self, result: MatchResult) -> bool:
        """Persist the match and both players' updated stats.

        Returns False when nothing was written. Storage errors are logged and
        rolled back; the caller has already told both clients the outcome.
        """
        if any(pid is None for pid in result.player_ids):
            logger.info(f"[rating-skip] room={result.room_code} missing persistent profile")
            return False

        winner_idx = result.winner_index
        loser_idx = 1 - winner_idx
        try:
            winner_stats = store.get_stats(result.player_ids[winner_idx])
            loser_stats = store.get_stats(result.player_ids[loser_idx])
            if winner_stats is None or loser_stats is None:
                logger.error(f"[rating-skip] room={result.room_code} could not find player stats")
                return False

            elo = calculate_elo_change(winner_stats.elo_rating, loser_stats.elo_rating)
            winner_score = result.scores[winner_idx]
            loser_score = result.scores[loser_idx]

            winner_stats.games_played += 1
            winner_stats.games_won += 1
            winner_stats.total_points_scored += winner_score
            winner_stats.total_points_conceded += loser_score
            winner_stats.current_win_streak += 1
            winner_stats.best_win_streak = max(winner_stats.best_win_streak, winner_stats.current_win_streak)
            winner_stats.longest_rally = max(winner_stats.longest_rally, result.longest_rally)
            winner_stats.elo_rating = apply_elo_change(winner_stats.elo_rating, elo.winner_gain)

            loser_stats.games_played += 1
            loser_stats.games_lost += 1
            loser_stats.total_points_scored += loser_score
            loser_stats.total_points_conceded += winner_score
            loser_stats.current_win_streak = 0
            loser_stats.longest_rally = max(loser_stats.longest_rally, result.longest_rally)
            loser_stats.elo_rating = apply_elo_change(loser_stats.elo_rating, -elo.loser_loss)

            store.save_match(result, winner_stats, loser_stats)
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception(f"[rating-error] room={result.room_code} failed to save match")
            return False

        logger.info(
            f"[match-saved] room={result.room_code} winner={result.usernames[winner_idx]} "
            f"loser={result.usernames[loser_idx]} elo=+/-{elo.winner_gain}"
        )
        return True
