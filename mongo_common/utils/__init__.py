from .casing import to_lower_camel
from .field_names import persisted_field_names
from .flatten import ArrayPolicy, FlattenOptions, flatten, unflatten

__all__ = [
    "ArrayPolicy",
    "FlattenOptions",
    "flatten",
    "persisted_field_names",
    "to_lower_camel",
    "unflatten",
]
