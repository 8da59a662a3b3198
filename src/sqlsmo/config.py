"""Configuration management for sqlsmo."""

import configparser
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from sqlsmo.constants import DEFAULT_HISTORY_SCHEMA, DEFAULT_ODBC_DRIVER, DEFAULT_SCHEMA
from sqlsmo.exceptions import ConfigError

PROFILE_FILE_NAME = ".sqlsmo.cfg"


def load_profile(profile: str = "DEFAULT", path: Optional[Path] = None) -> dict[str, str]:
    """Load settings from ~/.sqlsmo.cfg.

    Args:
        profile: Profile (section) name to load (default: "DEFAULT")
        path: Alternate profile file, mostly for tests

    Returns:
        Dict with any of connection_string, database, default_schema,
        history_schema and odbc_driver. Empty when the file does not exist.

    Raises:
        ConfigError: If the profile doesn't exist in the file
    """
    cfg_path = path or Path.home() / PROFILE_FILE_NAME
    if not cfg_path.exists():
        return {}

    config = configparser.ConfigParser(interpolation=None)
    config.read(cfg_path)

    if profile != "DEFAULT" and profile not in config:
        available = config.sections() or ["DEFAULT"]
        raise ConfigError(
            f"Profile '{profile}' not found in {cfg_path}. "
            f"Available profiles: {', '.join(available)}"
        )

    section = config[profile]
    result = {}
    for key in (
        "connection_string",
        "database",
        "default_schema",
        "history_schema",
        "odbc_driver",
    ):
        if key in section and section[key].strip():
            result[key] = section[key].strip()

    return result


@dataclass
class Config:
    """Configuration for sqlsmo."""

    connection_string: Optional[str] = None
    database: Optional[str] = None
    default_schema: str = DEFAULT_SCHEMA
    history_schema: str = DEFAULT_HISTORY_SCHEMA
    schema_path: Optional[str] = None
    odbc_driver: str = DEFAULT_ODBC_DRIVER

    @classmethod
    def from_env(
        cls,
        *,
        connection_string: Optional[str] = None,
        database: Optional[str] = None,
        default_schema: Optional[str] = None,
        history_schema: Optional[str] = None,
        schema_path: Optional[str] = None,
        odbc_driver: Optional[str] = None,
        profile: Optional[str] = None,
        profile_path: Optional[Path] = None,
    ) -> "Config":
        """Load configuration from ~/.sqlsmo.cfg, env vars, with CLI overrides.

        Priority (highest to lowest):
        1. Explicit parameters (CLI args)
        2. Environment variables
        3. ~/.sqlsmo.cfg profile
        """
        profile_name = profile or os.environ.get("SQLSMO_PROFILE", "DEFAULT")
        profile_cfg = load_profile(profile_name, profile_path)

        def resolve(explicit, env_key, cfg_key=None, default=None):
            if explicit is not None:
                return explicit
            env_val = os.environ.get(env_key)
            if env_val is not None:
                return env_val
            if cfg_key and cfg_key in profile_cfg:
                return profile_cfg[cfg_key]
            return default

        return cls(
            connection_string=resolve(
                connection_string, "SQLSMO_CONNECTION_STRING", "connection_string"
            ),
            database=resolve(database, "SQLSMO_DATABASE", "database"),
            default_schema=resolve(
                default_schema, "SQLSMO_DEFAULT_SCHEMA", "default_schema", DEFAULT_SCHEMA
            ),
            history_schema=resolve(
                history_schema,
                "SQLSMO_HISTORY_SCHEMA",
                "history_schema",
                DEFAULT_HISTORY_SCHEMA,
            ),
            schema_path=resolve(schema_path, "SQLSMO_SCHEMA_PATH"),
            odbc_driver=resolve(
                odbc_driver, "SQLSMO_ODBC_DRIVER", "odbc_driver", DEFAULT_ODBC_DRIVER
            ),
        )

    def validate_for_db_ops(self) -> None:
        """Validate that all required fields for database operations are present.

        Raises:
            ConfigError: If the connection string or schema names are missing.
        """
        missing = []
        if not self.connection_string:
            missing.append(
                "connection_string (use --profile or SQLSMO_CONNECTION_STRING)"
            )
        if not self.default_schema:
            missing.append("default_schema (use SQLSMO_DEFAULT_SCHEMA)")
        if not self.history_schema:
            missing.append("history_schema (use --history-schema or SQLSMO_HISTORY_SCHEMA)")

        if missing:
            raise ConfigError(
                "Missing required configuration:\n  - " + "\n  - ".join(missing)
            )
