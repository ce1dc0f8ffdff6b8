from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

import mysql.connector

from ..core.exceptions import PersistenceError

logger = logging.getLogger(__name__)


@dataclass
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str

    @classmethod
    def from_mapping(cls, db_config: Mapping[str, Any]) -> "DBConfig":
        return cls(
            host=str(db_config.get("host", "localhost")),
            port=int(db_config.get("port", 3306)),
            user=str(db_config.get("user", "root")),
            password=str(db_config.get("password", "")),
            database=str(db_config.get("database", "time_tracker")),
        )


class DatabaseConnection:
    """DB connection factory, created once at startup and passed to every repository.

    Note: We create short-lived connections per operation. ``close()`` at shutdown
    makes any later use fail loudly instead of silently reconnecting.
    """

    def __init__(self, config: DBConfig):
        self._config = config
        self._closed = False

    @property
    def config(self) -> DBConfig:
        return self._config

    @property
    def closed(self) -> bool:
        return self._closed

    def connect(self):
        if self._closed:
            raise PersistenceError("Database handle has been closed")
        try:
            return mysql.connector.connect(
                host=self._config.host,
                port=int(self._config.port),
                user=self._config.user,
                password=self._config.password,
                database=self._config.database,
            )
        except mysql.connector.Error as exc:
            logger.error("db_connect_failed", extra={"reason": str(exc)})
            raise PersistenceError(f"Cannot connect to database: {exc}") from exc

    def ping(self) -> bool:
        try:
            conn = self.connect()
        except PersistenceError:
            return False
        try:
            conn.ping(reconnect=False)
            return True
        except mysql.connector.Error as exc:
            logger.warning("db_ping_failed", extra={"reason": str(exc)})
            return False
        finally:
            conn.close()

    def close(self) -> None:
        self._closed = True
