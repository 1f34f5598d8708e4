from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from mysql.connector import errorcode
from mysql.connector.errors import IntegrityError

from ..core.exceptions import WriteConflict
from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def duplicate_key_as_conflict(message: str) -> Iterator[None]:
    """Translate a unique-key violation into WriteConflict."""

    try:
        yield
    except IntegrityError as e:
        if e.errno == errorcode.ER_DUP_ENTRY:
            raise WriteConflict(message) from e
        raise


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def placeholders(values) -> str:
    return ",".join(["%s"] * len(values))
