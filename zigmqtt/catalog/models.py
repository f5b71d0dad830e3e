"""
Data models for the capability catalog.

A catalog entry is the static, declarative description of one device model:
what the host should call it, which semantic types it carries, and how each
bus field maps onto a typed property.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Tuple

Transform = Callable[[Any], Any]


def identity(value: Any) -> Any:
    return value


@dataclass(frozen=True)
class PropertyMetadata:
    """
    Host-facing description of a property's value domain.

    Field names follow the host framework's property description
    (``type``, ``@type``, ``readOnly``...) when serialized.
    """

    type: str  # "boolean", "integer", "number" or "string"
    title: Optional[str] = None
    semantic_type: Optional[str] = None  # "@type", e.g. "OnOffProperty"
    unit: Optional[str] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    enum: Optional[Tuple[Any, ...]] = None
    multiple_of: Optional[float] = None
    read_only: bool = False

    def as_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type}
        if self.title is not None:
            data["title"] = self.title
        if self.semantic_type is not None:
            data["@type"] = self.semantic_type
        if self.unit is not None:
            data["unit"] = self.unit
        if self.minimum is not None:
            data["minimum"] = self.minimum
        if self.maximum is not None:
            data["maximum"] = self.maximum
        if self.enum is not None:
            data["enum"] = list(self.enum)
        if self.multiple_of is not None:
            data["multipleOf"] = self.multiple_of
        if self.read_only:
            data["readOnly"] = True
        return data


@dataclass(frozen=True)
class PropertySpec:
    """Static definition of one property: initial value and bus transforms."""

    metadata: PropertyMetadata
    initial_value: Any = None
    to_bus: Transform = identity
    from_bus: Transform = identity


@dataclass(frozen=True)
class EventSpec:
    """Names the payload field that carries the event's value."""

    value_field: str
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CatalogEntry:
    name: str
    type_tags: frozenset[str] = frozenset()
    properties: Mapping[str, PropertySpec] = field(default_factory=dict)
    events: Mapping[str, EventSpec] = field(default_factory=dict)

    def __post_init__(self):
        # Freeze the nested mappings so a shared entry cannot be edited in place
        object.__setattr__(self, "type_tags", frozenset(self.type_tags))
        object.__setattr__(self, "properties", MappingProxyType(dict(self.properties)))
        object.__setattr__(self, "events", MappingProxyType(dict(self.events)))
