from flask import current_app, request
from flask_socketio import emit
from sqlalchemy.exc import SQLAlchemyError

from pong import db, socketio
from pong.errors import SessionError
from pong.gateway import NAMESPACE


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _failure(exc: SessionError) -> dict:
    return {'success': False, 'error': exc.message}


def _field(data, *names, default=None):
    if not isinstance(data, dict):
        return default
    for name in names:
        if data.get(name) is not None:
            return data[name]
    return default


def register_socketio_handlers(sessions) -> None:
    """Register Socket.IO event handlers on namespace '/ws'.

    ``sessions`` is the app's SessionManager. Handlers that the client calls
    with an acknowledgement return the ack payload; the rest return nothing.
    """

    def handle_connect(auth=None):
        emit('connected', {'message': 'Connected to /ws', 'sid': _get_sid()})

    def handle_disconnect(*args):
        sid = _get_sid()
        current_app.logger.info(f"[disconnect] sid={sid}")
        sessions.disconnect(sid)

    def handle_register(data=None):
        sid = _get_sid()
        try:
            player = sessions.register(sid, _field(data, 'username'))
        except SessionError as exc:
            return _failure(exc)
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception(f"[register-error] sid={sid}")
            return {'success': False, 'error': 'Registration failed'}
        return {'success': True, 'player': player.to_dict()}

    def handle_create_room(data=None):
        try:
            code = sessions.create_room(_get_sid(), _field(data, 'variant', 'gameMode'))
        except SessionError as exc:
            return _failure(exc)
        return {'success': True, 'roomCode': code}

    def handle_join_room(data=None):
        code = data if isinstance(data, str) else _field(data, 'roomCode', 'room_code')
        try:
            index = sessions.join_room(_get_sid(), code)
        except SessionError as exc:
            return _failure(exc)
        return {'success': True, 'playerIndex': index}

    def handle_find_match(data=None):
        try:
            result = sessions.find_match(_get_sid(), _field(data, 'variant', 'gameMode'))
        except SessionError as exc:
            return _failure(exc)
        return {'success': True, **result}

    def handle_cancel_matchmaking(*args):
        sessions.cancel_matchmaking(_get_sid())

    def handle_leave_room(*args):
        sessions.leave_room(_get_sid())

    def handle_resume_session(data=None):
        code = data if isinstance(data, str) else _field(data, 'roomCode', 'room_code')
        try:
            snapshot = sessions.resume_session(_get_sid(), code)
        except SessionError as exc:
            return _failure(exc)
        return {'success': True, **snapshot}

    def handle_paddle_move(data=None):
        sessions.paddle_move(_get_sid(), data if isinstance(data, dict) else {})

    def handle_ball_sync(data=None):
        sessions.ball_sync(_get_sid(), data)

    def handle_score_update(data=None):
        sessions.score_update(_get_sid(), data if isinstance(data, dict) else {})

    def handle_game_over(data=None):
        sessions.game_over(_get_sid(), data if isinstance(data, dict) else {})

    def handle_rematch_request(*args):
        sessions.rematch_request(_get_sid())

    def handle_rematch_accept(*args):
        sessions.rematch_accept(_get_sid())

    handlers = {
        'connect': handle_connect,
        'disconnect': handle_disconnect,
        'register': handle_register,
        'create-room': handle_create_room,
        'join-room': handle_join_room,
        'find-match': handle_find_match,
        'cancel-matchmaking': handle_cancel_matchmaking,
        'leave-room': handle_leave_room,
        'resume-session': handle_resume_session,
        'paddle-move': handle_paddle_move,
        'ball-sync': handle_ball_sync,
        'score-update': handle_score_update,
        'game-over': handle_game_over,
        'rematch-request': handle_rematch_request,
        'rematch-accept': handle_rematch_accept,
    }
    for event, handler in handlers.items():
        socketio.on_event(event, handler, namespace=NAMESPACE)
