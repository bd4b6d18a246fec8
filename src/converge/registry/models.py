"""Pydantic models for declared resources and their attribute values."""

import re
from typing import Annotated, Dict, List, Literal, NamedTuple, Union
from pydantic import BaseModel, Field

_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class ResourceAddress(NamedTuple):
    """Identity of a resource: (kind, name). Sorts by kind, then name."""
    kind: str
    name: str
    
    def __str__(self) -> str:
        return f"{self.kind}.{self.name}"
    
    @classmethod
    def parse(cls, text: str) -> "ResourceAddress":
        """Parse 'kind.name' into an address."""
        parts = text.strip().split(".")
        if len(parts) != 2 or not all(_NAME_PATTERN.match(p) for p in parts):
            raise ValueError(f"Invalid resource address '{text}', expected 'kind.name'")
        return cls(parts[0], parts[1])


class LiteralValue(BaseModel):
    """A plain scalar: string, number, bool or null."""
    type: Literal["literal"] = "literal"
    value: Union[bool, int, float, str, None] = None


class ReferenceValue(BaseModel):
    """Attribute of another resource, resolved at plan/apply time."""
    type: Literal["reference"] = "reference"
    address: ResourceAddress
    attribute: str = Field(..., min_length=1)
    
    def __str__(self) -> str:
        return f"${{{self.address}.{self.attribute}}}"


class ListValue(BaseModel):
    type: Literal["list"] = "list"
    items: List["AttributeValue"] = Field(default_factory=list)


class MapValue(BaseModel):
    type: Literal["map"] = "map"
    entries: Dict[str, "AttributeValue"] = Field(default_factory=dict)


AttributeValue = Annotated[
    Union[LiteralValue, ReferenceValue, ListValue, MapValue],
    Field(discriminator="type"),
]

ListValue.model_rebuild()
MapValue.model_rebuild()


class Resource(BaseModel):
    """A single declared infrastructure object."""
    address: ResourceAddress = Field(..., description="(kind, name) identity")
    attributes: Dict[str, AttributeValue] = Field(default_factory=dict, description="Declared attribute values")
    depends_on: List[ResourceAddress] = Field(default_factory=list, description="Explicit ordering hints")
    
    @property
    def kind(self) -> str:
        return self.address.kind
    
    @property
    def name(self) -> str:
        return self.address.name
