import hashlib
import json
import random
import re
import time
from typing import Any, Optional

from .config import SHORTLINK_LENGTH


BASE62_CHARS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
SHORTLINK_PATTERN = re.compile(r"[0-9A-Za-z]{%d}" % SHORTLINK_LENGTH)

# Hex digits of the digest taken as the token seed
_DIGEST_PREFIX = 16

_system_random = random.SystemRandom()


def to_base62(num: int) -> str:
    if num == 0:
        return BASE62_CHARS[0]
    digits = []
    while num > 0:
        num, rem = divmod(num, 62)
        digits.append(BASE62_CHARS[rem])
    return "".join(reversed(digits))


def generate_shortlink(data: Any, now_ms: Optional[int] = None, rng: Optional[random.Random] = None) -> str:
    """Derive a 16-character base-62 token from ``data`` salted with the current time.

    The digest prefix gives at most 11 base-62 digits, so the token is
    left-padded with random alphabet characters. Uniqueness is checked by the caller.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    rng = rng or _system_random

    payload = json.dumps(data, separators=(",", ":"), ensure_ascii=False) + str(now_ms)
    digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()
    result = to_base62(int(digest[:_DIGEST_PREFIX], 16))[-SHORTLINK_LENGTH:]

    padding = "".join(rng.choice(BASE62_CHARS) for _ in range(SHORTLINK_LENGTH - len(result)))
    return (padding + result)[:SHORTLINK_LENGTH]


def validate_shortlink(shortlink: str) -> bool:
    return isinstance(shortlink, str) and SHORTLINK_PATTERN.fullmatch(shortlink) is not None
