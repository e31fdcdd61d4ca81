from typing import Any, Callable, Optional

NAMESPACE = '/ws'


class SocketIOGateway:
    """Thin transport wrapper around the Flask-SocketIO server.

    Connection identity is the Socket.IO ``sid``; groups are Socket.IO rooms.
    Calls go straight to the underlying python-socketio server so they also
    work from background tasks that have no request context.
    """

    def __init__(self, socketio, namespace: str = NAMESPACE):
        self.socketio = socketio
        self.namespace = namespace

    def send(self, connection_id: str, event: str, payload: Any = None) -> None:
        self.socketio.emit(event, payload, to=connection_id, namespace=self.namespace)

    def broadcast(self, group: str, event: str, payload: Any = None, skip: Optional[str] = None) -> None:
        self.socketio.emit(event, payload, to=group, skip_sid=skip, namespace=self.namespace)

    def join(self, connection_id: str, group: str) -> None:
        self.socketio.server.enter_room(connection_id, group, namespace=self.namespace)

    def leave(self, connection_id: str, group: str) -> None:
        self.socketio.server.leave_room(connection_id, group, namespace=self.namespace)

    def start_background_task(self, target: Callable, *args, **kwargs):
        return self.socketio.start_background_task(target, *args, **kwargs)

    def sleep(self, seconds: float) -> None:
        self.socketio.sleep(seconds)
