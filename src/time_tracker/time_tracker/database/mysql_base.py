from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Dict, List, Mapping, Optional

import mysql.connector

from ..core.exceptions import ConstraintViolation, PersistenceError
from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """One transaction: commit when the block finishes, roll back on any error.

    Driver errors are re-raised as ``PersistenceError`` (integrity errors as
    ``ConstraintViolation``) so callers never depend on mysql.connector types.
    """
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.IntegrityError as exc:
        conn.rollback()
        raise ConstraintViolation(str(exc), errno=exc.errno) from exc
    except mysql.connector.Error as exc:
        conn.rollback()
        raise PersistenceError(str(exc)) from exc
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def dump_json(value: Optional[Mapping[str, Any]]) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(dict(value), default=str)


def load_json(value: Any) -> Optional[Dict[str, Any]]:
    """Normalize JSON columns across connector implementations.

    mysql-connector can return JSON as str, bytes/bytearray or an already decoded dict.
    """

    if value is None:
        return None
    if isinstance(value, dict):
        return value
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        return json.loads(value) if value else None
    raise TypeError(f"Unsupported MySQL JSON value type: {type(value)!r}")
