# File: scaffoldgen/config.py
"""
ScaffoldGen - Settings
=======================
Connection and project settings read from the environment and an
optional ``.env`` file.

List-valued keys (``PROJECT_TABLES``, ``PROJECT_RELATIONS``) are plain
comma-separated strings and are split when the request model is built.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Optional, Union

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from scaffoldgen.errors import ConfigurationError
from scaffoldgen.models import ConnectionConfig, GenerationRequest
from scaffoldgen.utils import split_csv

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("scaffoldgen.config")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    DB_DRIVER: str = "postgres"
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USERNAME: str = ""
    DB_PASSWORD: str = ""
    DB_NAME: str = ""
    DB_SSL_MODE: str = "disable"
    DB_TIMEZONE: str = "UTC"

    # Project
    PROJECT_FILE_TYPES: str = "yaml"
    PROJECT_DIR: str = "./apis/"
    PROJECT_SCHEMA: str = "public"
    PROJECT_TABLES: str = "*"
    PROJECT_RELATIONS: str = ""

    # Runtime
    TEMPLATES_DIR: str = "templates"
    LOG_LEVEL: str = "INFO"

    # API
    API_HOST: str = "127.0.0.1"
    API_PORT: int = 8000

    @property
    def table_list(self) -> List[str]:
        return split_csv(self.PROJECT_TABLES) or ["*"]

    @property
    def relation_list(self) -> List[str]:
        return split_csv(self.PROJECT_RELATIONS)

    def connection_config(self) -> ConnectionConfig:
        """Build the connection descriptor for the scanner."""
        try:
            return ConnectionConfig(
                dialect=self.DB_DRIVER,
                host=self.DB_HOST,
                port=self.DB_PORT,
                username=self.DB_USERNAME,
                password=self.DB_PASSWORD,
                database=self.DB_NAME,
                ssl_mode=self.DB_SSL_MODE,
                timezone=self.DB_TIMEZONE,
            )
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid database settings: {exc}") from exc

    def generation_request(self, **overrides: Any) -> GenerationRequest:
        """Build a generation request; keyword overrides win over settings."""
        values: dict = {
            "schema_name": self.PROJECT_SCHEMA,
            "tables": self.table_list,
            "relations": self.relation_list,
            "output_dir": self.PROJECT_DIR,
            "file_type": self.PROJECT_FILE_TYPES,
            "templates_dir": self.TEMPLATES_DIR,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return GenerationRequest(**values)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid generation settings: {exc}") from exc


def load_settings(env_file: Optional[Union[str, Path]] = None, **overrides: Any) -> Settings:
    """
    Load settings from the environment and *env_file* (``.env`` by default).

    Raises:
        ConfigurationError: a value cannot be parsed (e.g. a non-numeric port)
            or an explicit *env_file* does not exist.
    """
    if env_file is not None and not Path(env_file).is_file():
        raise ConfigurationError(f"Environment file not found: {env_file}")
    try:
        if env_file is not None:
            settings: Settings = Settings(_env_file=str(env_file), **overrides)
        else:
            settings = Settings(**overrides)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings: {exc}") from exc
    logger.debug(
        "Settings loaded: driver=%s host=%s db=%s schema=%s.",
        settings.DB_DRIVER,
        settings.DB_HOST,
        settings.DB_NAME,
        settings.PROJECT_SCHEMA,
    )
    return settings


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "Settings",
    "load_settings",
]

logger.debug("scaffoldgen.config loaded.")
