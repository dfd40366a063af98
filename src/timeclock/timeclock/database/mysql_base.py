from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from .connection import DatabaseConnection


@contextmanager
def _unit_of_work(conn_factory: DatabaseConnection, *, isolation_level: Optional[str] = None):
    conn = conn_factory.connect()
    try:
        if isolation_level is not None:
            conn.start_transaction(isolation_level=isolation_level)
        cur = conn.cursor(dictionary=True)
        try:
            yield conn, cur
        finally:
            cur.close()
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def db_cursor(conn_factory: DatabaseConnection):
    """Dictionary cursor committed on success, rolled back on any error."""
    return _unit_of_work(conn_factory)


def db_transaction(conn_factory: DatabaseConnection, *, isolation_level: str = "READ COMMITTED"):
    """Explicit transaction for check-and-write units.

    Row locks taken with ``SELECT ... FOR UPDATE`` inside the block are held
    until the block commits or rolls back.
    """
    return _unit_of_work(conn_factory, isolation_level=isolation_level)


def fetchone(cur) -> Optional[Dict[str, Any]]:
    return cur.fetchone() or None


def fetchall(cur) -> List[Dict[str, Any]]:
    return list(cur.fetchall() or [])


def as_float(value: Any) -> Optional[float]:
    """DECIMAL columns come back as Decimal; the domain works in float."""
    if value is None:
        return None
    return float(value)


def as_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    return bool(int(value))
