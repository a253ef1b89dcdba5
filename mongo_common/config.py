"""Client configuration and connection URI generation."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote_plus

import yaml
from pydantic import BaseModel, Field, ValidationError

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "MONGO_COMMON_CONFIG"


class CredentialConfig(BaseModel):
    username: str = Field(default_factory=lambda: os.getenv("MONGO_USERNAME", ""))
    password: str = Field(default_factory=lambda: os.getenv("MONGO_PASSWORD", ""))


class ConnectionOptions(BaseModel):
    ssl: bool = False
    ssl_cert: str = ""
    replica_set: str = ""
    read_preference: str = ""
    retry_writes: bool = False

    def generate_params(self) -> str:
        params: List[str] = [f"ssl={_bool(self.ssl)}"]

        if self.ssl_cert:
            params.append(f"ssl_ca_certs={self.ssl_cert}")
        if self.replica_set:
            params.append(f"replicaSet={self.replica_set}")
        if self.read_preference:
            params.append(f"readPreference={self.read_preference}")

        params.append(f"retryWrites={_bool(self.retry_writes)}")
        return "&".join(params)


class ClientConfig(BaseModel):
    host: str = Field(default_factory=lambda: os.getenv("MONGO_HOST", ""))
    # MONGO_PORT is a string and goes through int validation
    port: int = Field(
        default_factory=lambda: os.getenv("MONGO_PORT", 0), validate_default=True
    )
    database: str = Field(default_factory=lambda: os.getenv("MONGO_DATABASE", ""))
    clustered: bool = False
    db_name_in_path: bool = False
    credentials: Optional[CredentialConfig] = None
    options: Optional[ConnectionOptions] = None

    def generate_uri(self) -> str:
        if not self.host:
            raise ConfigurationError("host is empty")
        if not self.port:
            raise ConfigurationError("port is not set")
        if not self.database:
            raise ConfigurationError("database is not set")

        scheme = "mongodb+srv" if self.clustered else "mongodb"

        if self.credentials is not None:
            if not self.credentials.username or not self.credentials.password:
                raise ConfigurationError("credentials are not set")
            uri = (
                f"{scheme}://{quote_plus(self.credentials.username)}:"
                f"{quote_plus(self.credentials.password)}@{self.host}"
            )
        else:
            uri = f"{scheme}://{self.host}"

        # SRV records carry the port
        if not self.clustered:
            uri = f"{uri}:{self.port}"

        uri = f"{uri}/{self.database}" if self.db_name_in_path else f"{uri}/"

        if self.options is not None:
            uri = f"{uri}?{self.options.generate_params()}"

        return uri


def _bool(value: bool) -> str:
    return "true" if value else "false"


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Cannot read config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config at {path} must be a mapping")
    return data


def _config_path(path: Union[str, Path, None]) -> Optional[Path]:
    if path is None:
        path = os.getenv(CONFIG_ENV_VAR)
    if not path:
        return None
    return Path(path).expanduser().resolve()


@lru_cache(maxsize=8)
def load_client_config(path: Union[str, Path, None] = None) -> ClientConfig:
    """
    Load a ClientConfig from YAML, falling back to MONGO_* environment variables.

    The file is read from ``path`` or from ``$MONGO_COMMON_CONFIG``. Keys missing
    from the file keep their environment defaults.
    """
    config_path = _config_path(path)
    raw: Dict[str, Any] = {}
    if config_path is not None:
        raw = _load_yaml(config_path)
        logger.info("Loaded Mongo client config from %s", config_path)

    try:
        return ClientConfig(**raw)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid Mongo client config: {exc}") from exc


__all__ = [
    "CONFIG_ENV_VAR",
    "ClientConfig",
    "ConnectionOptions",
    "CredentialConfig",
    "load_client_config",
]
