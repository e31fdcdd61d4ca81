import re
from numbers import Real
from typing import List, Optional

from pong.errors import ValidationError

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 20
USERNAME_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')

ROOM_CODE_LENGTH = 6
ROOM_CODE_CHARACTERS = '0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ'

MAX_RALLY_COUNT = 10000
VARIANTS = ('classic', 'chaos', 'speedrun')
DEFAULT_VARIANT = 'classic'


def validate_username(username) -> str:
    """Return the trimmed username or raise ValidationError."""
    if not username or not isinstance(username, str):
        raise ValidationError('Username is required')
    sanitized = username.strip()
    if not USERNAME_MIN_LENGTH <= len(sanitized) <= USERNAME_MAX_LENGTH:
        raise ValidationError(f'Username must be {USERNAME_MIN_LENGTH}-{USERNAME_MAX_LENGTH} characters')
    if not USERNAME_PATTERN.match(sanitized):
        raise ValidationError('Username can only contain letters, numbers, underscores, and hyphens')
    return sanitized


def validate_room_code(room_code) -> str:
    """Return the trimmed, upper-cased room code or raise ValidationError."""
    if not room_code or not isinstance(room_code, str):
        raise ValidationError('Room code is required')
    normalized = room_code.strip().upper()
    if len(normalized) != ROOM_CODE_LENGTH:
        raise ValidationError(f'Room code must be {ROOM_CODE_LENGTH} characters')
    if any(ch not in ROOM_CODE_CHARACTERS for ch in normalized):
        raise ValidationError('Invalid room code format')
    return normalized


def validate_variant(variant) -> str:
    mode = variant or DEFAULT_VARIANT
    if not isinstance(mode, str) or mode not in VARIANTS:
        raise ValidationError('Invalid game mode')
    return mode


def _as_score(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float) and value.is_integer() and value >= 0:
        return int(value)
    return None


def validate_scores(scores, previous_scores: Optional[List[int]] = None) -> List[int]:
    """Validate a two-element score list, optionally against the stored scores.

    With ``previous_scores`` the only legal change is one side gaining exactly
    one point while the other side stays put.
    """
    if not isinstance(scores, (list, tuple)) or len(scores) != 2:
        raise ValidationError('Invalid scores format')
    validated = [_as_score(s) for s in scores]
    if any(s is None for s in validated):
        raise ValidationError('Scores must be non-negative integers')

    if previous_scores is not None:
        delta = (validated[0] - previous_scores[0], validated[1] - previous_scores[1])
        if delta not in ((1, 0), (0, 1)):
            raise ValidationError('Invalid score delta')
    return validated


def validate_rally(rally, previous_rally: int = 0) -> Optional[int]:
    """Return the accepted rally count, or None when the value must be ignored."""
    if isinstance(rally, bool) or not isinstance(rally, Real):
        return None
    try:
        clamped = max(0, int(rally // 1))
    except (OverflowError, ValueError):
        # inf / nan
        return None
    if clamped < previous_rally or clamped > MAX_RALLY_COUNT:
        return None
    return clamped
