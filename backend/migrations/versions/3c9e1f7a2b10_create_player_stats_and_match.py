"""create player, player_stats and match tables

Revision ID: 3c9e1f7a2b10
Revises:
Create Date: 2026-10-18 00:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c9e1f7a2b10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'player' not in existing_tables:
        op.create_table(
            'player',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('username', sa.String(length=20), nullable=False),
            sa.Column('display_name', sa.String(length=50), nullable=True),
            sa.Column('avatar_id', sa.Integer(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('last_seen', sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index('ix_player_username', 'player', ['username'], unique=True)

    if 'player_stats' not in existing_tables:
        op.create_table(
            'player_stats',
            sa.Column('player_id', sa.Integer(), sa.ForeignKey('player.id', ondelete='CASCADE'), primary_key=True),
            sa.Column('games_played', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('games_won', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('games_lost', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('total_points_scored', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('total_points_conceded', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('longest_rally', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('current_win_streak', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('best_win_streak', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('elo_rating', sa.Integer(), nullable=False, server_default='1000'),
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index('ix_player_stats_elo_rating', 'player_stats', ['elo_rating'])

    if 'match' not in existing_tables:
        op.create_table(
            'match',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('player1_id', sa.Integer(), sa.ForeignKey('player.id', ondelete='SET NULL'), nullable=True),
            sa.Column('player2_id', sa.Integer(), sa.ForeignKey('player.id', ondelete='SET NULL'), nullable=True),
            sa.Column('player1_score', sa.Integer(), nullable=False),
            sa.Column('player2_score', sa.Integer(), nullable=False),
            sa.Column('winner_id', sa.Integer(), sa.ForeignKey('player.id', ondelete='SET NULL'), nullable=True),
            sa.Column('variant', sa.String(length=20), nullable=False),
            sa.Column('duration_seconds', sa.Integer(), nullable=True),
            sa.Column('longest_rally', sa.Integer(), nullable=True),
            sa.Column('played_at', sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index('ix_match_player1_id', 'match', ['player1_id'])
        op.create_index('ix_match_player2_id', 'match', ['player2_id'])
        op.create_index('ix_match_played_at', 'match', ['played_at'])


def downgrade():
    op.drop_index('ix_match_played_at', table_name='match')
    op.drop_index('ix_match_player2_id', table_name='match')
    op.drop_index('ix_match_player1_id', table_name='match')
    op.drop_table('match')
    op.drop_index('ix_player_stats_elo_rating', table_name='player_stats')
    op.drop_table('player_stats')
    op.drop_index('ix_player_username', table_name='player')
    op.drop_table('player')
