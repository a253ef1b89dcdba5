"""Flatten structured values into dotted-path ``$set`` payloads."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

import bson
from bson.binary import UuidRepresentation
from bson.codec_options import CodecOptions
from bson.errors import InvalidDocument

from ..exceptions import SerializationError
from .field_names import is_record, record_items

logger = logging.getLogger(__name__)

BSON_CODEC_OPTIONS = CodecOptions(
    tz_aware=True, uuid_representation=UuidRepresentation.STANDARD
)


class ArrayPolicy(str, Enum):
    # each element becomes its own leaf at "<path>.<index>"
    INDEXED = "indexed"
    # the whole sequence is a single leaf at "<path>"
    WHOLE = "whole"


@dataclass(frozen=True)
class FlattenOptions:
    array_policy: ArrayPolicy = ArrayPolicy.INDEXED
    skip_empty_strings: bool = False
    id_fields: Tuple[str, ...] = ("id", "_id")
    max_depth: int = 100


DEFAULT_OPTIONS = FlattenOptions()


def flatten(value: Any, options: Optional[FlattenOptions] = None) -> Dict[str, Any]:
    """
    Flatten a record or a generic document into ``{"dotted.path": leaf}``.

    Records (pydantic models, dataclasses) use their persisted field names and
    skip fields that are ``None``: an unset optional field is never written.
    Generic documents (any mapping) keep their keys verbatim and keep ``None``
    values, since the caller spelled them out to clear a field. Identifier
    fields are dropped at every depth.

    Raises:
        SerializationError: a leaf has no BSON encoding, two fields map to the
            same path, a mapping key is not a string, or the nesting exceeds
            ``options.max_depth``.
    """
    opts = options or DEFAULT_OPTIONS
    if not (is_record(value) or isinstance(value, Mapping)):
        raise SerializationError(
            f"Cannot flatten value of type {type(value).__name__}"
        )

    flat: Dict[str, Any] = {}
    _flatten_node("", value, flat, opts, 0)
    _check_encodable(flat)

    logger.debug("Flattened %s into %d paths", type(value).__name__, len(flat))
    return flat


def unflatten(flat: Mapping[str, Any]) -> Dict[str, Any]:
    """Rebuild nested documents from dotted paths. Indexes are kept as keys."""
    result: Dict[str, Any] = {}
    for path, value in flat.items():
        *parents, leaf = path.split(".")
        node = result
        for part in parents:
            child = node.setdefault(part, {})
            if not isinstance(child, dict):
                raise SerializationError(f"Path '{path}' conflicts with a leaf")
            node = child
        if isinstance(node.get(leaf), dict):
            raise SerializationError(f"Path '{path}' conflicts with a subdocument")
        node[leaf] = value
    return result


def _flatten_node(
    prefix: str, node: Any, dest: Dict[str, Any], opts: FlattenOptions, depth: int
) -> None:
    _check_depth(prefix, depth, opts)

    if is_record(node):
        for declared, persisted, child in record_items(node):
            if declared in opts.id_fields or persisted in opts.id_fields:
                continue
            path = _join(prefix, persisted)
            _flatten_value(path, child, dest, opts, depth, keep_none=False)
        return

    for key, child in node.items():
        if not isinstance(key, str):
            raise SerializationError(
                f"Document keys must be strings, got {type(key).__name__} at '{prefix}'"
            )
        if key in opts.id_fields:
            continue
        _flatten_value(_join(prefix, key), child, dest, opts, depth, keep_none=True)


def _flatten_value(
    path: str,
    value: Any,
    dest: Dict[str, Any],
    opts: FlattenOptions,
    depth: int,
    keep_none: bool,
) -> None:
    _check_depth(path, depth, opts)

    if value is None:
        if keep_none:
            _store(dest, path, None)
        return

    if isinstance(value, Enum):
        value = value.value

    if is_record(value) or isinstance(value, Mapping):
        _flatten_node(path, value, dest, opts, depth + 1)
        return

    if isinstance(value, (list, tuple)):
        # An empty list is stored as-is so clearing a list still reaches the database
        if opts.array_policy is ArrayPolicy.WHOLE or not value:
            _store(dest, path, [_to_plain(item, opts, depth + 1) for item in value])
            return
        for index, item in enumerate(value):
            _flatten_value(f"{path}.{index}", item, dest, opts, depth + 1, keep_none)
        return

    if opts.skip_empty_strings and isinstance(value, str) and not value:
        return

    _store(dest, path, value)


def _to_plain(value: Any, opts: FlattenOptions, depth: int) -> Any:
    """Convert a sequence element to a plain BSON-ready value."""
    _check_depth("", depth, opts)
    if isinstance(value, Enum):
        return value.value
    if is_record(value):
        return {
            persisted: _to_plain(child, opts, depth + 1)
            for _, persisted, child in record_items(value)
            if child is not None
        }
    if isinstance(value, Mapping):
        return {key: _to_plain(child, opts, depth + 1) for key, child in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_plain(item, opts, depth + 1) for item in value]
    return value


def _check_depth(path: str, depth: int, opts: FlattenOptions) -> None:
    if depth > opts.max_depth:
        raise SerializationError(
            f"Maximum nesting depth {opts.max_depth} exceeded at '{path}'"
        )


def _join(prefix: str, key: str) -> str:
    return f"{prefix}.{key}" if prefix else key


def _store(dest: Dict[str, Any], path: str, value: Any) -> None:
    if path in dest:
        raise SerializationError(f"Duplicate path '{path}'")
    dest[path] = value


def _check_encodable(flat: Dict[str, Any]) -> None:
    try:
        bson.encode(flat, codec_options=BSON_CODEC_OPTIONS)
    except (InvalidDocument, OverflowError, TypeError, ValueError) as exc:
        raise SerializationError(f"Cannot encode update payload: {exc}") from exc


__all__ = [
    "ArrayPolicy",
    "BSON_CODEC_OPTIONS",
    "DEFAULT_OPTIONS",
    "FlattenOptions",
    "flatten",
    "unflatten",
]
