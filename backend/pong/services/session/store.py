"""SQLAlchemy persistence for profiles, stats and match history."""

from datetime import datetime, timezone
from typing import List, Optional

from pong import db
from pong.models import Match, PlayerProfile, PlayerStats


def get_or_create_profile(username: str) -> PlayerProfile:
    """Fetch the profile for ``username``, creating it with fresh stats if new.

    Existing profiles get ``last_seen`` bumped.
    """
    profile = PlayerProfile.query.filter_by(username=username).first()
    if profile is None:
        profile = PlayerProfile(username=username, display_name=username)
        db.session.add(profile)
        db.session.flush()
        db.session.add(PlayerStats(player_id=profile.id))
    else:
        profile.last_seen = datetime.now(timezone.utc)
        db.session.add(profile)
    db.session.commit()
    return profile


def get_stats(player_id: int) -> Optional[PlayerStats]:
    return db.session.get(PlayerStats, player_id)


def save_match(result, winner_stats: PlayerStats, loser_stats: PlayerStats) -> Match:
    winner_id = result.player_ids[result.winner_index]
    match = Match(
        player1_id=result.player_ids[0],
        player2_id=result.player_ids[1],
        player1_score=result.scores[0],
        player2_score=result.scores[1],
        winner_id=winner_id,
        variant=result.variant,
        duration_seconds=result.duration_seconds,
        longest_rally=result.longest_rally,
    )
    db.session.add(match)
    db.session.add(winner_stats)
    db.session.add(loser_stats)
    db.session.commit()
    return match


def leaderboard(limit: int) -> List[PlayerStats]:
    return (
        PlayerStats.query.join(PlayerProfile)
        .filter(PlayerStats.games_played >= 1)
        .order_by(PlayerStats.elo_rating.desc())
        .limit(limit)
        .all()
    )


def find_leaderboard_entry(username: str) -> Optional[PlayerStats]:
    return (
        PlayerStats.query.join(PlayerProfile)
        .filter(PlayerProfile.username == username, PlayerStats.games_played >= 1)
        .first()
    )
