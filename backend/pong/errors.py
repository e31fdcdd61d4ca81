"""Request-level failures raised by the session services.

Every error carries a client-facing message; the Socket.IO layer turns any
``SessionError`` into a ``{'success': False, 'error': message}`` ack.
"""


class SessionError(Exception):
    default_message = 'Request failed'

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(SessionError):
    default_message = 'Invalid input'


class NotRegisteredError(SessionError):
    default_message = 'Not registered'


class RoomNotFoundError(SessionError):
    default_message = 'Room not found'


class RoomFullError(SessionError):
    default_message = 'Room is full'


class RateLimitError(SessionError):
    default_message = 'Too many attempts, please wait and try again'


class CodeGenerationError(SessionError):
    default_message = 'Could not generate room code'
