"""Session and relay domain services.

Registration, matchmaking, rooms, score validation, ratings and the
disconnect supervisor. Nothing here knows about Socket.IO; the handlers in
``pong.socketio_events`` call into a ``SessionManager`` and the manager talks
back to clients through an injected gateway.
"""

from .manager import SessionManager

__all__ = ['SessionManager']
