import logging
import threading
from typing import Callable, Dict

from .rooms import Room

logger = logging.getLogger(__name__)

DEFAULT_GRACE_PERIOD_SEC = 30.0


class DisconnectSupervisor:
    """Keeps a room alive for a grace period after one of its players drops.

    Each disconnect arms a deadline for the room and starts a background
    task that sleeps until it. The task only deletes the room if its
    deadline is still the armed one, so a reconnection (``cancel``) or a
    later disconnect (re-arm) makes older timers harmless.
    """

    def __init__(self, gateway, clock: Callable[[], float], on_expire: Callable[[str], None],
                 grace_period: float = DEFAULT_GRACE_PERIOD_SEC):
        self.gateway = gateway
        self.clock = clock
        self.on_expire = on_expire
        self.grace_period = grace_period
        self._deadlines: Dict[str, float] = {}
        self._lock = threading.Lock()

    def player_lost(self, room: Room, index: int, connection_id: str) -> None:
        with room.lock:
            room.disconnected.add(index)
        self.gateway.broadcast(room.group, 'opponent-disconnected', {'playerIndex': index}, skip=connection_id)
        logger.info(f"[player-lost] room={room.code} index={index} grace={self.grace_period}s")
        self.arm(room.code)

    def arm(self, code: str) -> float:
        deadline = self.clock() + self.grace_period
        with self._lock:
            self._deadlines[code] = deadline
        self.gateway.start_background_task(self._wait_and_expire, code, deadline)
        return deadline

    def cancel(self, code: str) -> bool:
        with self._lock:
            cancelled = self._deadlines.pop(code, None) is not None
        if cancelled:
            logger.info(f"[grace-cancel] room={code}")
        return cancelled

    def is_pending(self, code: str) -> bool:
        with self._lock:
            return code in self._deadlines

    def _wait_and_expire(self, code: str, deadline: float) -> None:
        remaining = deadline - self.clock()
        if remaining > 0:
            self.gateway.sleep(remaining)
        self.expire(code, deadline)

    def expire(self, code: str, deadline: float) -> bool:
        with self._lock:
            if self._deadlines.get(code) != deadline:
                return False
            del self._deadlines[code]
        logger.info(f"[grace-expired] room={code}")
        self.on_expire(code)
        return True
