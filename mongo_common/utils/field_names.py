"""Declared-to-persisted field name mapping for record types.

Each record class (pydantic model or dataclass) gets one immutable mapping from
the attribute name declared in Python to the name stored in MongoDB. The
mapping is computed the first time the class is seen and cached afterwards.
"""

import dataclasses
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Tuple

from pydantic import BaseModel

from .casing import to_lower_camel

# dataclasses.field(metadata={"alias": "..."}) overrides the derived name
ALIAS_METADATA_KEY = "alias"


def is_record(value: Any) -> bool:
    """True for pydantic model and dataclass instances (not classes)."""
    if isinstance(value, BaseModel):
        return True
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


@lru_cache(maxsize=None)
def persisted_field_names(record_type: type) -> Mapping[str, str]:
    if issubclass(record_type, BaseModel):
        names = {
            name: info.serialization_alias or info.alias or to_lower_camel(name)
            for name, info in record_type.model_fields.items()
        }
    elif dataclasses.is_dataclass(record_type):
        names = {
            field.name: field.metadata.get(ALIAS_METADATA_KEY)
            or to_lower_camel(field.name)
            for field in dataclasses.fields(record_type)
        }
    else:
        raise TypeError(f"{record_type.__name__} is not a record type")
    return MappingProxyType(names)


def record_items(record: Any) -> Iterator[Tuple[str, str, Any]]:
    """Yield ``(declared_name, persisted_name, value)`` for each record field."""
    for declared, persisted in persisted_field_names(type(record)).items():
        yield declared, persisted, getattr(record, declared)


__all__ = [
    "ALIAS_METADATA_KEY",
    "is_record",
    "persisted_field_names",
    "record_items",
]
