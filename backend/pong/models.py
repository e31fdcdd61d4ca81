from datetime import datetime, timezone

from pong import db

DEFAULT_ELO = 1000


def _utcnow():
    return datetime.now(timezone.utc)


class PlayerProfile(db.Model):
    __tablename__ = 'player'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(20), unique=True, nullable=False, index=True)
    display_name = db.Column(db.String(50), nullable=True)
    avatar_id = db.Column(db.Integer, default=1)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    last_seen = db.Column(db.DateTime(timezone=True), default=_utcnow)
    stats = db.relationship('PlayerStats', back_populates='player', uselist=False)


class PlayerStats(db.Model):
    __tablename__ = 'player_stats'
    player_id = db.Column(db.Integer, db.ForeignKey('player.id', ondelete='CASCADE'), primary_key=True)
    games_played = db.Column(db.Integer, default=0, nullable=False)
    games_won = db.Column(db.Integer, default=0, nullable=False)
    games_lost = db.Column(db.Integer, default=0, nullable=False)
    total_points_scored = db.Column(db.Integer, default=0, nullable=False)
    total_points_conceded = db.Column(db.Integer, default=0, nullable=False)
    longest_rally = db.Column(db.Integer, default=0, nullable=False)
    current_win_streak = db.Column(db.Integer, default=0, nullable=False)
    best_win_streak = db.Column(db.Integer, default=0, nullable=False)
    elo_rating = db.Column(db.Integer, default=DEFAULT_ELO, nullable=False, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
    player = db.relationship('PlayerProfile', back_populates='stats')

    @property
    def win_percentage(self) -> float:
        if not self.games_played:
            return 0.0
        return round(self.games_won / self.games_played * 100, 1)

    def to_leaderboard_dict(self):
        return {
            'id': self.player.id,
            'username': self.player.username,
            'display_name': self.player.display_name,
            'avatar_id': self.player.avatar_id,
            'elo_rating': self.elo_rating,
            'games_played': self.games_played,
            'games_won': self.games_won,
            'games_lost': self.games_lost,
            'win_percentage': self.win_percentage,
            'best_win_streak': self.best_win_streak,
            'longest_rally': self.longest_rally,
        }


class Match(db.Model):
    __tablename__ = 'match'
    id = db.Column(db.Integer, primary_key=True)
    player1_id = db.Column(db.Integer, db.ForeignKey('player.id', ondelete='SET NULL'), nullable=True, index=True)
    player2_id = db.Column(db.Integer, db.ForeignKey('player.id', ondelete='SET NULL'), nullable=True, index=True)
    player1_score = db.Column(db.Integer, nullable=False)
    player2_score = db.Column(db.Integer, nullable=False)
    winner_id = db.Column(db.Integer, db.ForeignKey('player.id', ondelete='SET NULL'), nullable=True)
    variant = db.Column(db.String(20), nullable=False)
    duration_seconds = db.Column(db.Integer, nullable=True)
    longest_rally = db.Column(db.Integer, nullable=True)
    played_at = db.Column(db.DateTime(timezone=True), default=_utcnow, index=True)
