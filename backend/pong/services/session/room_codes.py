import random
from typing import Container

from pong.errors import CodeGenerationError
from pong.validation import ROOM_CODE_CHARACTERS, ROOM_CODE_LENGTH

DEFAULT_MAX_ATTEMPTS = 100

_rng = random.SystemRandom()


def generate_room_code(length: int = ROOM_CODE_LENGTH) -> str:
    return ''.join(_rng.choice(ROOM_CODE_CHARACTERS) for _ in range(length))


def generate_unique_room_code(existing_codes: Container[str], max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> str:
    """Rejection-sample a code not present in ``existing_codes``."""
    for _ in range(max_attempts):
        code = generate_room_code()
        if code not in existing_codes:
            return code
    raise CodeGenerationError()
