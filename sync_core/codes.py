from __future__ import annotations

import random
import re
from typing import Optional

CODE_MIN = 100000
CODE_MAX = 999999
KEY_PREFIX = "sync:"

# [0-9] rather than \d: unicode digits are not valid codes.
_CODE_RE = re.compile(r"[0-9]{6}")

_rng = random.SystemRandom()


def make_code(rng: Optional[random.Random] = None) -> str:
    """Draw a 6-digit code uniformly from [100000, 999999]."""
    return str((rng or _rng).randint(CODE_MIN, CODE_MAX))


def is_valid_code(code: object) -> bool:
    return isinstance(code, str) and _CODE_RE.fullmatch(code) is not None


def ticket_key(code: str) -> str:
    return f"{KEY_PREFIX}{code}"
