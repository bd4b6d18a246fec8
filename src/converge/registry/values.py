"""Conversion between plain decoded data and tagged attribute values."""

import re
from typing import Any, Callable, Iterator
from .models import (
    AttributeValue,
    LiteralValue,
    ListValue,
    MapValue,
    ReferenceValue,
    ResourceAddress,
)

# ${kind.name.attribute}; attribute may itself be dotted (e.g. tags.Name)
_REFERENCE_PATTERN = re.compile(r"^\$\{\s*([A-Za-z0-9_-]+)\.([A-Za-z0-9_-]+)\.([A-Za-z0-9_.-]+)\s*\}$")


def parse_reference(text: str) -> ReferenceValue:
    """Parse 'kind.name.attribute' or '${kind.name.attribute}' into a reference."""
    candidate = text.strip()
    if not candidate.startswith("${"):
        candidate = "${" + candidate + "}"
    match = _REFERENCE_PATTERN.match(candidate)
    if not match:
        raise ValueError(f"Invalid reference '{text}', expected 'kind.name.attribute'")
    kind, name, attribute = match.groups()
    return ReferenceValue(address=ResourceAddress(kind, name), attribute=attribute)


def to_attribute_value(raw: Any) -> AttributeValue:
    """Convert decoded YAML/JSON data into the tagged attribute variant."""
    if isinstance(raw, str) and _REFERENCE_PATTERN.match(raw.strip()):
        return parse_reference(raw)
    if isinstance(raw, dict):
        if set(raw.keys()) == {"ref"} and isinstance(raw["ref"], str):
            return parse_reference(raw["ref"])
        return MapValue(entries={str(k): to_attribute_value(v) for k, v in raw.items()})
    if isinstance(raw, (list, tuple)):
        return ListValue(items=[to_attribute_value(item) for item in raw])
    if raw is None or isinstance(raw, (bool, int, float, str)):
        return LiteralValue(value=raw)
    raise ValueError(f"Unsupported attribute value type: {type(raw).__name__}")


def iter_references(value: AttributeValue) -> Iterator[ReferenceValue]:
    """Yield every reference nested anywhere inside a value."""
    if isinstance(value, ReferenceValue):
        yield value
    elif isinstance(value, ListValue):
        for item in value.items:
            yield from iter_references(item)
    elif isinstance(value, MapValue):
        for entry in value.entries.values():
            yield from iter_references(entry)


def resolve_value(value: AttributeValue, lookup: Callable[[ReferenceValue], Any]) -> Any:
    """Turn a tagged value into plain data, asking lookup for each reference."""
    if isinstance(value, LiteralValue):
        return value.value
    if isinstance(value, ReferenceValue):
        return lookup(value)
    if isinstance(value, ListValue):
        return [resolve_value(item, lookup) for item in value.items]
    if isinstance(value, MapValue):
        return {key: resolve_value(entry, lookup) for key, entry in value.entries.items()}
    raise TypeError(f"Unknown attribute value: {value!r}")


def from_attribute_value(value: AttributeValue) -> Any:
    """Plain data for a literal-only value; references render as ${...} strings."""
    return resolve_value(value, str)
