from pong.services.session import store
from pong.services.session.rating import MatchResult, RatingEngine


def _play(winner, loser, scores=(11, 5)):
    RatingEngine().record_match(MatchResult(
        room_code='ABC123',
        variant='classic',
        scores=list(scores),
        player_ids=[winner.id, loser.id],
        usernames=[winner.username, loser.username],
        winner_index=0,
        duration_seconds=60,
        longest_rally=7,
    ))


def test_status_reports_live_counts(client, flask_app):
    sessions = flask_app.extensions['pong_sessions']
    sessions.register('sid-1', 'alice')
    sessions.find_match('sid-1', 'classic')

    res = client.get('/')
    assert res.status_code == 200
    data = res.get_json()
    assert data['status'] == 'Pong server running'
    assert data['players'] == 1
    assert data['rooms'] == 0
    assert data['queue'] == 1


def test_leaderboard_orders_by_rating(client):
    alice = store.get_or_create_profile('alice')
    bob = store.get_or_create_profile('bob')
    store.get_or_create_profile('idle_user')
    _play(alice, bob)
    _play(alice, bob)

    res = client.get('/api/leaderboard')
    assert res.status_code == 200
    rows = res.get_json()
    assert [r['username'] for r in rows] == ['alice', 'bob']
    assert rows[0]['elo_rating'] > rows[1]['elo_rating']
    assert rows[0]['win_percentage'] == 100.0
    assert rows[1]['win_percentage'] == 0.0
    assert rows[0]['best_win_streak'] == 2


def test_player_lookup(client):
    alice = store.get_or_create_profile('alice')
    bob = store.get_or_create_profile('bob')
    _play(alice, bob)

    res = client.get('/api/player/bob')
    assert res.status_code == 200
    data = res.get_json()
    assert data['games_lost'] == 1
    assert data['longest_rally'] == 7


def test_player_lookup_not_found(client):
    store.get_or_create_profile('idle_user')
    assert client.get('/api/player/nobody').status_code == 404
    # profiles without games are not on the leaderboard
    res = client.get('/api/player/idle_user')
    assert res.status_code == 404
    assert res.get_json() == {'error': 'Player not found'}
