from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Optional

import mysql.connector
from mysql.connector import pooling

logger = logging.getLogger(__name__)

DEFAULT_POOL_SIZE = 5


@dataclass(frozen=True)
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    pool_size: int = DEFAULT_POOL_SIZE

    @classmethod
    def from_dict(cls, db_config: dict) -> "DBConfig":
        return cls(
            host=str(db_config.get("host", "localhost")),
            port=int(db_config.get("port", 3306)),
            user=str(db_config.get("user", "root")),
            password=str(db_config.get("password", "")),
            database=str(db_config.get("database", "church_attendance")),
            pool_size=int(db_config.get("pool_size", DEFAULT_POOL_SIZE)),
        )


class DatabaseConnection:
    """Hands out pooled connections, one factory per database target.

    Several operators scan into the same event at once, so connections come
    from a small pool instead of being opened per query. Closing a pooled
    connection returns it to the pool.
    """

    _instances: Dict[DBConfig, "DatabaseConnection"] = {}
    _instances_lock = threading.Lock()

    def __init__(self, config: DBConfig):
        self._config = config
        self._pool: Optional[pooling.MySQLConnectionPool] = None
        self._pool_lock = threading.Lock()

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        with cls._instances_lock:
            instance = cls._instances.get(config)
            if instance is None:
                instance = cls._instances[config] = cls(config)
            return instance

    @classmethod
    def from_settings(cls, db_config: dict) -> "DatabaseConnection":
        return cls.get_instance(DBConfig.from_dict(db_config))

    def _get_pool(self) -> pooling.MySQLConnectionPool:
        with self._pool_lock:
            if self._pool is None:
                logger.info(
                    "Opening MySQL pool %s@%s:%s/%s (size=%d)",
                    self._config.user,
                    self._config.host,
                    self._config.port,
                    self._config.database,
                    self._config.pool_size,
                )
                self._pool = pooling.MySQLConnectionPool(
                    pool_name=f"church_attendance_{self._config.database}",
                    pool_size=self._config.pool_size,
                    host=self._config.host,
                    port=self._config.port,
                    user=self._config.user,
                    password=self._config.password,
                    database=self._config.database,
                )
            return self._pool

    def connect(self):
        try:
            return self._get_pool().get_connection()
        except mysql.connector.errors.PoolError:
            # Pool exhausted; fall back to a dedicated connection for this call.
            logger.warning("MySQL pool exhausted; opening a dedicated connection")
            return mysql.connector.connect(
                host=self._config.host,
                port=self._config.port,
                user=self._config.user,
                password=self._config.password,
                database=self._config.database,
            )
