from typing import Any, Optional


class MongoCommonError(Exception):
    pass


class SerializationError(MongoCommonError):
    pass


class ConfigurationError(MongoCommonError):
    pass


class ClientNotInitializedError(MongoCommonError):
    def __init__(self, message: str = "MongoDB client was not initialized"):
        super().__init__(message)


class DocumentNotFoundError(MongoCommonError):
    def __init__(
        self,
        message: str,
        collection: Optional[str] = None,
        document_id: Optional[Any] = None,
    ):
        super().__init__(message)
        self.collection = collection
        self.document_id = document_id
