from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, Optional, Type, TypeVar
from uuid import UUID

import bson
from bson.errors import InvalidDocument
from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import SerializationError
from ..utils.casing import to_lower_camel
from ..utils.flatten import BSON_CODEC_OPTIONS

D = TypeVar("D", bound="BaseDocument")


class BaseDocument(BaseModel):
    """Base document with identifier, timestamps and a write counter"""

    # Collection name; defaults to the lowerCamel class name
    collection_name: ClassVar[Optional[str]] = None

    model_config = ConfigDict(
        alias_generator=to_lower_camel,
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    id: Optional[str] = Field(None, alias="_id")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    version: int = 0

    @classmethod
    def document_name(cls) -> str:
        return cls.collection_name or to_lower_camel(cls.__name__)

    @classmethod
    def from_mongo(cls: Type[D], doc: Optional[Dict[str, Any]]) -> Optional[D]:
        if not doc:
            return None
        return cls.model_validate(doc)

    def set_id(self, value: UUID) -> None:
        self.id = str(value)

    def increment_version(self) -> None:
        self.version += 1

    def set_created_at(self) -> None:
        self.created_at = datetime.now(timezone.utc)

    def set_updated_at(self) -> None:
        self.updated_at = datetime.now(timezone.utc)

    def to_mongo(self) -> Dict[str, Any]:
        """Convert to MongoDB document"""
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_bson(self) -> bytes:
        try:
            return bson.encode(self.to_mongo(), codec_options=BSON_CODEC_OPTIONS)
        except (InvalidDocument, OverflowError, TypeError, ValueError) as exc:
            raise SerializationError(
                f"Cannot encode {type(self).__name__} as BSON: {exc}"
            ) from exc
