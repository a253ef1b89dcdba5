"""Shared MongoClient cache."""

from __future__ import annotations

import logging
from typing import Any, Dict, Tuple

from pymongo import MongoClient
from pymongo.database import Database

logger = logging.getLogger(__name__)

_clients: Dict[Tuple[str, frozenset], MongoClient] = {}


def _key(uri: str, kwargs: Dict[str, Any]) -> Tuple[str, frozenset]:
    return (uri, frozenset(kwargs.items()))


def get_client(uri: str, **kwargs: Any) -> MongoClient:
    """
    Return a cached MongoClient keyed by URI and options.
    PyMongo pools connections per client, so one client per target is enough.
    """
    key = _key(uri, kwargs)
    if key not in _clients:
        _clients[key] = MongoClient(uri, **kwargs)
        logger.debug("Created MongoClient (%d cached)", len(_clients))
    return _clients[key]


def get_database(uri: str, db_name: str, **kwargs: Any) -> Database:
    """Convenience helper to fetch a database handle."""
    client = get_client(uri, **kwargs)
    return client[db_name]


def close_client(uri: str, **kwargs: Any) -> bool:
    """Close and forget the cached client. Returns False if none was cached."""
    client = _clients.pop(_key(uri, kwargs), None)
    if client is None:
        return False
    client.close()
    logger.debug("Closed MongoClient (%d cached)", len(_clients))
    return True
