#!/usr/bin/env python3
"""
Database settings for the lexical store

Resolved once per process from, in order:
1. ``DB_*`` environment variables (host, user, password and name all set)
2. a ``config.json`` file with a ``database`` object
3. local development defaults
"""

import json
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote

logger = logging.getLogger(__name__)


@dataclass
class DatabaseConfig:
    """PostgreSQL connection settings, validated on construction"""
    host: str
    port: int
    database: str
    user: str
    password: str
    schema: str = 'lexicon'
    pool_size: int = 10
    timeout: int = 30

    def __post_init__(self):
        problems = []
        if not self.host:
            problems.append("host is required")
        if not self.user:
            problems.append("user is required")
        if not self.password:
            problems.append("password is required")
        if not 1 <= int(self.port) <= 65535:
            problems.append("port must be between 1 and 65535")
        if int(self.pool_size) < 1:
            problems.append("pool size must be at least 1")
        if problems:
            raise ValueError(f"Invalid database settings: {', '.join(problems)}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> 'DatabaseConfig':
        return cls(
            host=environ['DB_HOST'],
            port=int(environ.get('DB_PORT', '5432')),
            database=environ['DB_NAME'],
            user=environ['DB_USER'],
            password=environ['DB_PASSWORD'],
            schema=environ.get('DB_SCHEMA', 'lexicon'),
            pool_size=int(environ.get('DB_POOL_SIZE', '10')),
            timeout=int(environ.get('DB_TIMEOUT', '30')),
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'DatabaseConfig':
        """Build from a config file section, ignoring keys this class does not know"""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def development(cls) -> 'DatabaseConfig':
        return cls(host='localhost', port=5432, database='postgres', user='postgres', password='postgres')

    def get_connection_string(self, hide_password: bool = True) -> str:
        """libpq URI; the schema is passed as a search_path option"""
        password = "***" if hide_password else quote(self.password, safe='')
        conninfo = f"postgresql://{self.user}:{password}@{self.host}:{self.port}/{self.database}"
        if self.schema:
            conninfo += f"?options=-c%20search_path%3D{self.schema}"
        return conninfo


class SecureConfigManager:
    """Caches the resolved DatabaseConfig and reports where it came from"""

    REQUIRED_ENV_VARS = ('DB_HOST', 'DB_USER', 'DB_PASSWORD', 'DB_NAME')

    def __init__(self, config_file: Optional[Path] = None):
        self._config_file = config_file or Path(__file__).parent / 'config.json'
        self._db_config: Optional[DatabaseConfig] = None
        self.source = None

    def get_database_config(self) -> DatabaseConfig:
        if self._db_config is None:
            self._db_config = self._resolve()
        return self._db_config

    def reset(self):
        """Forget the cached settings so the next call resolves them again"""
        self._db_config = None
        self.source = None

    def _env_complete(self) -> bool:
        return all(os.getenv(var) for var in self.REQUIRED_ENV_VARS)

    def _resolve(self) -> DatabaseConfig:
        if self._env_complete():
            self.source = 'environment'
            logger.info("Database settings taken from DB_* environment variables")
            return DatabaseConfig.from_env(os.environ)

        if self._config_file.exists():
            try:
                with open(self._config_file, 'r') as f:
                    section = json.load(f).get('database', {})
                config = DatabaseConfig.from_mapping(section)
            except (OSError, ValueError, TypeError, AttributeError) as e:
                logger.error(f"Ignoring unreadable {self._config_file}: {e}")
            else:
                self.source = 'file'
                logger.info(f"Database settings taken from {self._config_file}")
                return config

        self.source = 'default'
        logger.warning("Using development database defaults (localhost, postgres/postgres)")
        return DatabaseConfig.development()

    def get_config_info(self) -> Dict[str, Any]:
        """Resolved settings without the password"""
        config = self.get_database_config()
        return {
            'host': config.host,
            'port': config.port,
            'database': config.database,
            'schema': config.schema,
            'connection_string': config.get_connection_string(hide_password=True),
            'pool_size': config.pool_size,
            'timeout': config.timeout,
            'source': self.source,
        }


config_manager = SecureConfigManager()


def get_database_config() -> DatabaseConfig:
    """Process-wide database settings"""
    return config_manager.get_database_config()
