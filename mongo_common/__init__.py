"""Object-document mapping and partial-update helpers over PyMongo."""

from .client import DocumentClient, new_client
from .config import ClientConfig, ConnectionOptions, CredentialConfig, load_client_config
from .exceptions import (
    ClientNotInitializedError,
    ConfigurationError,
    DocumentNotFoundError,
    MongoCommonError,
    SerializationError,
)
from .logging import OTelJSONFormatter, setup_logging
from .models import BaseDocument
from .mongo import close_client, get_client, get_database
from .utils.casing import to_lower_camel
from .utils.flatten import ArrayPolicy, FlattenOptions, flatten, unflatten

__all__ = [
    "ArrayPolicy",
    "BaseDocument",
    "ClientConfig",
    "ClientNotInitializedError",
    "ConfigurationError",
    "ConnectionOptions",
    "CredentialConfig",
    "DocumentClient",
    "DocumentNotFoundError",
    "FlattenOptions",
    "MongoCommonError",
    "OTelJSONFormatter",
    "SerializationError",
    "close_client",
    "flatten",
    "get_client",
    "get_database",
    "load_client_config",
    "new_client",
    "setup_logging",
    "to_lower_camel",
    "unflatten",
]
