import os
from pathlib import Path
from typing import Mapping, Optional, Union

from pydantic import BaseModel


class DSNSettings(BaseModel):
    host: str = "localhost"
    port: int = 5432
    dbname: str
    password: str
    user: str


class BackoffSettings(BaseModel):
    start_sleep_time: float = 0.1
    factor: float = 2
    border_sleep_time: float = 10
    timeout_seconds: float = 60


class PostgresSettings(BaseModel):
    dsn: DSNSettings
    min_connections: int = 1
    max_connections: int = 10
    backoff: BackoffSettings = BackoffSettings()


class Config(BaseModel):
    postgres: PostgresSettings


def load_config(path: Union[str, Path]) -> Config:
    """Read settings from a JSON config file"""
    return Config.model_validate_json(Path(path).read_text())


def config_from_env(environ: Optional[Mapping[str, str]] = None) -> Config:
    """Build settings from DB_* environment variables"""
    environ = os.environ if environ is None else environ
    dsn = {
        "dbname": environ.get("DB_NAME"),
        "user": environ.get("DB_USER"),
        "password": environ.get("DB_PASSWORD"),
        "host": environ.get("DB_HOST"),
        "port": environ.get("DB_PORT"),
    }
    dsn = {key: value for key, value in dsn.items() if value is not None}
    return Config(postgres=PostgresSettings(dsn=DSNSettings(**dsn)))
