import json
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, TypeVar

from .config import (
    BASE_URL,
    MAX_RETRIES,
    RETRY_BASE_DELAY,
    RETRY_MAX_DELAY,
    SHORTLINK_MAX_ATTEMPTS,
)
from .db import (
    Store,
    StoreUnavailableError,
    create_shared_link,
    find_shared_link,
    increment_access,
    load_local_state,
    save_local_state,
)
from .shortlink import generate_shortlink, validate_shortlink
from .state import AppState


logger = logging.getLogger(__name__)

T = TypeVar("T")


class SharedLinkError(Exception):
    pass


class InvalidShortlinkError(SharedLinkError):
    pass


class ShortlinkNotFoundError(SharedLinkError):
    pass


class ShortlinkCollisionError(SharedLinkError):
    pass


@dataclass(frozen=True)
class SharedSnapshot:
    state: AppState
    created_at: str
    access_count: int


def share_state(store: Store, state: AppState, base_url: str = BASE_URL, max_attempts: int = SHORTLINK_MAX_ATTEMPTS) -> Tuple[str, str]:
    """Persist a snapshot under a fresh token. Returns (shortlink, url)."""
    data = state.to_dict()
    payload = json.dumps(data, ensure_ascii=False)
    for attempt in range(1, max_attempts + 1):
        shortlink = generate_shortlink(data)
        if create_shared_link(store.conn, shortlink, payload):
            return shortlink, f"{base_url.rstrip('/')}/load/{shortlink}"
        logger.warning("Shortlink collision on attempt %d/%d", attempt, max_attempts)
    raise ShortlinkCollisionError("Failed to generate unique shortlink")


def load_shared_state(store: Store, shortlink: str) -> SharedSnapshot:
    if not validate_shortlink(shortlink):
        raise InvalidShortlinkError("Invalid shortlink format")

    row = find_shared_link(store.conn, shortlink)
    if row is None:
        raise ShortlinkNotFoundError("Shortlink not found")

    increment_access(store.conn, shortlink)
    return SharedSnapshot(
        state=AppState.from_json(row["data"]),
        created_at=row["created_at"],
        access_count=row["access_count"] + 1,
    )


def get_local_state(store: Store, owner_id: int) -> AppState:
    data = load_local_state(store.conn, owner_id)
    if data is None:
        return AppState()
    try:
        return AppState.from_json(data)
    except ValueError:
        logger.warning("Discarding unreadable local state for owner %s", owner_id)
        return AppState()


def put_local_state(store: Store, owner_id: int, state: AppState) -> None:
    save_local_state(store.conn, owner_id, state.to_json())


def retry_delay(attempt: int, base: float = RETRY_BASE_DELAY, cap: float = RETRY_MAX_DELAY) -> float:
    return min(base * 1.5 ** (attempt - 1), cap)


def call_with_retry(
    func: Callable[[], T],
    max_retries: int = MAX_RETRIES,
    sleep: Optional[Callable[[float], None]] = None,
) -> T:
    """Call ``func``, retrying with backoff while the store is unavailable."""
    sleep = sleep or time.sleep
    attempt = 1
    while True:
        try:
            return func()
        except StoreUnavailableError:
            if attempt > max_retries:
                raise
            delay = retry_delay(attempt)
            logger.warning("Store unavailable, retry %d/%d in %.1fs", attempt, max_retries, delay)
            sleep(delay)
            attempt += 1
