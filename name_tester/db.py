import logging
import sqlite3
from contextlib import contextmanager
from typing import Iterator, Optional

from .config import STORAGE_KEY


logger = logging.getLogger(__name__)


class StoreUnavailableError(Exception):
    """The database could not be reached or is locked."""


@contextmanager
def _unavailable_on_error() -> Iterator[None]:
    try:
        yield
    except sqlite3.OperationalError as e:
        logger.error("Database error: %s", e)
        raise StoreUnavailableError(str(e)) from e


def get_connection(db_path: str) -> sqlite3.Connection:
    # Bot handlers run store calls in worker threads; updates are processed one at a time
    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    cur = conn.cursor()
    # Shared snapshots of app state, keyed by shortlink token
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS shared_links (
            shortlink TEXT PRIMARY KEY,
            data TEXT NOT NULL,
            created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
            access_count INTEGER NOT NULL DEFAULT 0,
            last_accessed DATETIME
        );
        """
    )

    # Per-owner working copy of app state (one row per owner and storage key)
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS local_state (
            owner_id INTEGER NOT NULL,
            storage_key TEXT NOT NULL,
            data TEXT NOT NULL,
            updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
            PRIMARY KEY (owner_id, storage_key)
        );
        """
    )
    conn.commit()


def create_shared_link(conn: sqlite3.Connection, shortlink: str, data: str) -> bool:
    """Insert a snapshot. Returns False if the token is already taken."""
    with _unavailable_on_error():
        cur = conn.cursor()
        cur.execute("INSERT OR IGNORE INTO shared_links(shortlink, data) VALUES (?, ?)", (shortlink, data))
        conn.commit()
        return cur.rowcount > 0


def find_shared_link(conn: sqlite3.Connection, shortlink: str) -> Optional[sqlite3.Row]:
    with _unavailable_on_error():
        cur = conn.cursor()
        cur.execute("SELECT * FROM shared_links WHERE shortlink=?", (shortlink,))
        return cur.fetchone()


def increment_access(conn: sqlite3.Connection, shortlink: str) -> None:
    with _unavailable_on_error():
        cur = conn.cursor()
        cur.execute(
            "UPDATE shared_links SET access_count = access_count + 1, last_accessed = CURRENT_TIMESTAMP WHERE shortlink=?",
            (shortlink,),
        )
        conn.commit()


def save_local_state(conn: sqlite3.Connection, owner_id: int, data: str, storage_key: str = STORAGE_KEY) -> None:
    with _unavailable_on_error():
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO local_state(owner_id, storage_key, data) VALUES (?, ?, ?)
            ON CONFLICT(owner_id, storage_key) DO UPDATE SET data=excluded.data, updated_at=CURRENT_TIMESTAMP
            """,
            (owner_id, storage_key, data),
        )
        conn.commit()


def load_local_state(conn: sqlite3.Connection, owner_id: int, storage_key: str = STORAGE_KEY) -> Optional[str]:
    with _unavailable_on_error():
        cur = conn.cursor()
        cur.execute("SELECT data FROM local_state WHERE owner_id=? AND storage_key=?", (owner_id, storage_key))
        row = cur.fetchone()
        return None if row is None else row["data"]


class Store:
    """Owns the database connection: open at process start, close on shutdown."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None

    def open(self) -> "Store":
        if self._conn is None:
            with _unavailable_on_error():
                self._conn = get_connection(self.db_path)
                init_db(self._conn)
            logger.info("Opened store at %s", self.db_path)
        return self

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("Closed store at %s", self.db_path)

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreUnavailableError("Store is not open")
        return self._conn

    def __enter__(self) -> "Store":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()
