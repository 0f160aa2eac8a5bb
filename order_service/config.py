"""
Service configuration, read from the environment (and a .env file if present)
"""
import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_MONGODB_URI = 'mongodb://127.0.0.1:27017/benjerrys'
DEFAULT_DATABASE = 'benjerrys'


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _log_level(value: str) -> str:
    level = value.strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"Unknown LOG_LEVEL: {value!r}")
    return level


@dataclass
class Settings:
    mongodb_uri: str = DEFAULT_MONGODB_URI
    mongo_connect_timeout_ms: int = 2000
    mongo_connect_retries: int = 1
    mongo_retry_delay: float = 2.0
    storage_fallback: bool = True
    host: str = '0.0.0.0'
    port: int = 5000
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls, environ=None, dotenv: bool = True) -> 'Settings':
        """Build settings from environment variables"""
        if dotenv:
            load_dotenv()
        env = os.environ if environ is None else environ
        return cls(
            mongodb_uri=env.get('MONGODB_URI', DEFAULT_MONGODB_URI),
            mongo_connect_timeout_ms=int(env.get('MONGO_CONNECT_TIMEOUT_MS', '2000')),
            mongo_connect_retries=max(1, int(env.get('MONGO_CONNECT_RETRIES', '1'))),
            mongo_retry_delay=float(env.get('MONGO_RETRY_DELAY', '2')),
            storage_fallback=_env_flag(env.get('STORAGE_FALLBACK', '1')),
            host=env.get('HOST', '0.0.0.0'),
            port=int(env.get('PORT', '5000')),
            log_level=_log_level(env.get('LOG_LEVEL', 'INFO')),
        )
