from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from pong.services.session import store

main = Blueprint('main', __name__)


@main.route('/')
def index():
    counts = current_app.extensions['pong_sessions'].status()
    return jsonify({'status': 'Pong server running', **counts})


@main.route('/api/leaderboard')
def get_leaderboard():
    limit = int(current_app.config.get('LEADERBOARD_LIMIT', 100))
    try:
        rows = store.leaderboard(limit)
    except SQLAlchemyError:
        current_app.logger.exception("[leaderboard-error]")
        return jsonify({'error': 'Could not load leaderboard'}), 500
    return jsonify([row.to_leaderboard_dict() for row in rows])


@main.route('/api/player/<string:username>')
def get_player(username):
    entry = store.find_leaderboard_entry(username)
    if entry is None:
        return jsonify({'error': 'Player not found'}), 404
    return jsonify(entry.to_leaderboard_dict())
