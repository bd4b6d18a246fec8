"""Resource registry: typed declarations keyed by (kind, name)."""

from .models import (
    AttributeValue,
    LiteralValue,
    ListValue,
    MapValue,
    ReferenceValue,
    Resource,
    ResourceAddress,
)
from .registry import ResourceRegistry
from .values import from_attribute_value, iter_references, parse_reference, resolve_value, to_attribute_value

__all__ = [
    "AttributeValue",
    "LiteralValue",
    "ListValue",
    "MapValue",
    "ReferenceValue",
    "Resource",
    "ResourceAddress",
    "ResourceRegistry",
    "from_attribute_value",
    "iter_references",
    "parse_reference",
    "resolve_value",
    "to_attribute_value",
]
