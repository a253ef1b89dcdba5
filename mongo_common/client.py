"""CRUD helpers over collections named after document classes."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Type, TypeVar

import pymongo
from pymongo import MongoClient, ReturnDocument
from pymongo.collection import Collection

from .config import ClientConfig
from .exceptions import ClientNotInitializedError, DocumentNotFoundError
from .models.base import BaseDocument
from .mongo import close_client, get_client
from .utils.flatten import FlattenOptions, flatten

logger = logging.getLogger(__name__)

D = TypeVar("D", bound=BaseDocument)

DEFAULT_TIMEOUT_SECONDS = 10.0
# Paths the client owns on every update
UPDATED_AT_FIELD = "updatedAt"
VERSION_FIELD = "version"


class DocumentClient:
    """Document-oriented wrapper around a single MongoDB database."""

    def __init__(
        self,
        config: ClientConfig,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        flatten_options: Optional[FlattenOptions] = None,
        **client_kwargs: Any,
    ):
        self.database = config.database
        self.uri = config.generate_uri()
        self.timeout = timeout
        self.flatten_options = flatten_options
        self._client_kwargs = client_kwargs
        self._client: Optional[MongoClient] = None

    @property
    def client(self) -> MongoClient:
        if self._client is None:
            raise ClientNotInitializedError()
        return self._client

    def connect(self) -> None:
        self._client = get_client(self.uri, **self._client_kwargs)
        logger.info("Connected to MongoDB database %s", self.database)

    def disconnect(self) -> None:
        if self._client is None:
            raise ClientNotInitializedError()
        close_client(self.uri, **self._client_kwargs)
        self._client = None
        logger.info("Disconnected from MongoDB database %s", self.database)

    def health_check(self) -> None:
        with pymongo.timeout(self.timeout):
            self.client.admin.command("ping")

    def get_collection(self, document: Any) -> Collection:
        """Collection for a document instance or class."""
        return self.client[self.database][document.document_name()]

    def generate_uuid(self) -> uuid.UUID:
        return uuid.uuid4()

    def persist(self, document: BaseDocument) -> BaseDocument:
        document.set_created_at()
        document.set_updated_at()
        document.increment_version()
        return self._insert(document)

    def _insert(self, document: BaseDocument) -> BaseDocument:
        if not document.id:
            document.set_id(self.generate_uuid())
        collection = self.get_collection(document)
        with pymongo.timeout(self.timeout):
            collection.insert_one(document.to_mongo())
        logger.debug("Inserted %s into %s", document.id, collection.name)
        return document

    def find_one(self, document_class: Type[D], filters: Dict[str, Any]) -> Optional[D]:
        collection = self.get_collection(document_class)
        with pymongo.timeout(self.timeout):
            doc = collection.find_one(filters)
        return document_class.from_mongo(doc)

    def find_one_by_id(self, document_class: Type[D], document_id: str) -> Optional[D]:
        return self.find_one(document_class, {"_id": document_id})

    def find_many(
        self,
        document_class: Type[D],
        filters: Dict[str, Any],
        sort: Optional[List[tuple]] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[D]:
        collection = self.get_collection(document_class)
        with pymongo.timeout(self.timeout):
            cursor = collection.find(filters)
            if sort:
                cursor = cursor.sort(sort)
            if skip:
                cursor = cursor.skip(skip)
            if limit:
                cursor = cursor.limit(limit)
            return [document_class.model_validate(doc) for doc in cursor]

    def replace(self, document: BaseDocument) -> BaseDocument:
        document.increment_version()
        document.set_updated_at()
        return self._replace(document)

    def replace_or_persist(self, document: BaseDocument) -> BaseDocument:
        """
        Replace the stored document, or insert it when its id is unknown.

        The version is bumped once whichever write happens.
        """
        document.increment_version()
        document.set_created_at()
        document.set_updated_at()
        try:
            return self._replace(document)
        except DocumentNotFoundError:
            logger.debug("No %s to replace, inserting instead", document.id)
            return self._insert(document)

    def _replace(self, document: BaseDocument) -> BaseDocument:
        collection = self.get_collection(document)
        with pymongo.timeout(self.timeout):
            previous = collection.find_one_and_replace(
                {"_id": document.id},
                document.to_mongo(),
                return_document=ReturnDocument.BEFORE,
            )
        if previous is None:
            raise DocumentNotFoundError(
                f"No document {document.id} in {collection.name}",
                collection=collection.name,
                document_id=document.id,
            )
        return document

    def delete(self, document: BaseDocument) -> None:
        collection = self.get_collection(document)
        with pymongo.timeout(self.timeout):
            result = collection.delete_one({"_id": document.id})
        if result.deleted_count != 1:
            raise DocumentNotFoundError(
                f"Deleted {result.deleted_count} documents from {collection.name}",
                collection=collection.name,
                document_id=document.id,
            )

    def update(
        self, document: Any, document_id: str, patch: Any
    ) -> Optional[BaseDocument]:
        """
        Apply ``patch`` to the stored document as a ``$set`` of dotted paths.

        ``document`` only selects the collection and the returned model class.
        The patch is flattened before anything is written, so a patch that
        cannot be encoded raises SerializationError and leaves the database
        untouched. Returns the updated document, or None if the id is unknown.
        """
        fields = flatten(patch, self.flatten_options)
        fields.pop(VERSION_FIELD, None)
        fields[UPDATED_AT_FIELD] = datetime.now(timezone.utc)

        document_class = document if isinstance(document, type) else type(document)
        collection = self.get_collection(document_class)
        with pymongo.timeout(self.timeout):
            updated = collection.find_one_and_update(
                {"_id": document_id},
                {"$set": fields, "$inc": {VERSION_FIELD: 1}},
                return_document=ReturnDocument.AFTER,
            )
        if updated is None:
            logger.warning("Update matched no document %s in %s", document_id, collection.name)
            return None
        logger.debug("Updated %d paths on %s", len(fields), document_id)
        return document_class.from_mongo(updated)


def new_client(config: ClientConfig, **kwargs: Any) -> DocumentClient:
    """Build a DocumentClient and connect it."""
    client = DocumentClient(config, **kwargs)
    client.connect()
    return client


__all__ = ["DocumentClient", "new_client"]
