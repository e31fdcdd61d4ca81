import re

import pytest

from pong.errors import CodeGenerationError
from pong.services.session import room_codes

CODE_RE = re.compile(r'^[0-9A-Z]{6}$')


def test_codes_are_six_uppercase_alphanumerics():
    for _ in range(200):
        assert CODE_RE.match(room_codes.generate_room_code())


def test_codes_are_well_spread():
    codes = {room_codes.generate_room_code() for _ in range(100)}
    assert len(codes) > 90


def test_unique_code_avoids_existing():
    existing = {room_codes.generate_room_code() for _ in range(50)}
    code = room_codes.generate_unique_room_code(existing)
    assert code not in existing
    assert CODE_RE.match(code)


def test_unique_code_gives_up_after_budget(monkeypatch):
    monkeypatch.setattr(room_codes, 'generate_room_code', lambda length=6: 'AAAAAA')
    with pytest.raises(CodeGenerationError):
        room_codes.generate_unique_room_code({'AAAAAA'}, max_attempts=5)
