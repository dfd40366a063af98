from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional

import mysql.connector


@dataclass(frozen=True)
class DBConfig:
    host: str = "localhost"
    port: int = 3306
    user: str = "root"
    password: str = ""
    database: str = "timeclock_db"
    connect_timeout: int = 10

    @classmethod
    def from_settings(cls, db_config: Mapping[str, Any]) -> "DBConfig":
        """Build from a settings ``DB_CONFIG`` dict; missing keys keep the defaults."""
        known = {k: db_config[k] for k in asdict(cls()) if db_config.get(k) is not None}
        if "port" in known:
            known["port"] = int(known["port"])
        if "connect_timeout" in known:
            known["connect_timeout"] = int(known["connect_timeout"])
        return cls(**known)

    def without_database(self) -> "DBConfig":
        return DBConfig(
            host=self.host,
            port=self.port,
            user=self.user,
            password=self.password,
            database="",
            connect_timeout=self.connect_timeout,
        )


class DatabaseConnection:
    """Opens one MySQL connection per unit of work.

    Web and kiosk requests are served concurrently; connections are never
    shared between them, only this factory is.
    """

    def __init__(self, config: DBConfig):
        self._config = config

    @property
    def config(self) -> DBConfig:
        return self._config

    def _connect_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "host": self._config.host,
            "port": self._config.port,
            "user": self._config.user,
            "password": self._config.password,
            "connection_timeout": self._config.connect_timeout,
            "autocommit": False,
        }
        if self._config.database:
            kwargs["database"] = self._config.database
        return kwargs

    def connect(self, *, database: Optional[str] = None):
        kwargs = self._connect_kwargs()
        if database is not None:
            kwargs["database"] = database
        return mysql.connector.connect(**kwargs)
