"""
Catalog container and JSON catalog loading.

The catalog is built once at startup and injected into the adapter; nothing
looks models up through module-level state.
"""

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

from zigmqtt.catalog.builtin import BUILTIN_ENTRIES
from zigmqtt.catalog.models import CatalogEntry, EventSpec, PropertyMetadata, PropertySpec
from zigmqtt.catalog.transforms import TRANSFORMS
from zigmqtt.errors import CatalogError

logger = logging.getLogger(__name__)

_PROPERTY_TYPES = {"boolean", "integer", "number", "string"}


class Catalog:
    """
    Read-only mapping of model identifier to CatalogEntry.
    """

    def __init__(self, entries: Mapping[str, CatalogEntry]):
        self._entries = MappingProxyType(dict(entries))

    def get(self, model_id: Optional[str]) -> Optional[CatalogEntry]:
        if model_id is None:
            return None
        return self._entries.get(model_id)

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    @property
    def model_ids(self) -> List[str]:
        return sorted(self._entries)

    def merged(self, other: "Catalog") -> "Catalog":
        """Return a new catalog where entries from ``other`` win."""
        entries = dict(self._entries)
        entries.update(other._entries)
        return Catalog(entries)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Catalog":
        if not isinstance(raw, Mapping):
            raise CatalogError(f"Catalog must be a JSON object, got {type(raw).__name__}")
        return cls({model_id: _parse_entry(model_id, data) for model_id, data in raw.items()})


def default_catalog() -> Catalog:
    return Catalog(BUILTIN_ENTRIES)


def load_catalog(path: Union[str, Path], include_builtin: bool = True) -> Catalog:
    """
    Load a JSON catalog file.

    Args:
        path: Catalog file path
        include_builtin: Merge the file over the built-in entries

    Raises:
        CatalogError: If the file is unreadable or malformed
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogError(f"Cannot read catalog {path}: {e}") from e

    catalog = Catalog.from_dict(raw)
    logger.info(f"Loaded {len(catalog)} catalog entries from {path}")

    if include_builtin:
        return default_catalog().merged(catalog)
    return catalog


def _transform(model_id: str, name: Any) -> Any:
    if name is None:
        return TRANSFORMS["identity"]
    try:
        return TRANSFORMS[name]
    except (KeyError, TypeError):
        raise CatalogError(
            f"{model_id}: unknown transform {name!r}. Available: {sorted(TRANSFORMS)}"
        ) from None


def _parse_entry(model_id: str, data: Any) -> CatalogEntry:
    if not isinstance(data, Mapping):
        raise CatalogError(f"{model_id}: entry must be an object")

    properties: Dict[str, PropertySpec] = {}
    for name, prop in (data.get("properties") or {}).items():
        properties[name] = _parse_property(model_id, name, prop)

    events: Dict[str, EventSpec] = {}
    for name, event in (data.get("events") or {}).items():
        if not isinstance(event, Mapping) or not event.get("valueField"):
            raise CatalogError(f"{model_id}: event {name!r} needs a 'valueField'")
        metadata = {k: v for k, v in event.items() if k != "valueField"}
        events[name] = EventSpec(value_field=str(event["valueField"]), metadata=metadata)

    return CatalogEntry(
        name=str(data.get("name", model_id)),
        type_tags=frozenset(data.get("@type") or ()),
        properties=properties,
        events=events,
    )


def _parse_property(model_id: str, name: str, prop: Any) -> PropertySpec:
    if not isinstance(prop, Mapping):
        raise CatalogError(f"{model_id}: property {name!r} must be an object")

    value_type = prop.get("type")
    if value_type not in _PROPERTY_TYPES:
        raise CatalogError(f"{model_id}: property {name!r} has invalid type {value_type!r}")

    enum = prop.get("enum")
    metadata = PropertyMetadata(
        type=value_type,
        title=prop.get("title"),
        semantic_type=prop.get("@type"),
        unit=prop.get("unit"),
        minimum=prop.get("minimum"),
        maximum=prop.get("maximum"),
        enum=tuple(enum) if enum is not None else None,
        multiple_of=prop.get("multipleOf"),
        read_only=bool(prop.get("readOnly", False)),
    )
    return PropertySpec(
        metadata=metadata,
        initial_value=prop.get("value"),
        to_bus=_transform(model_id, prop.get("toBus")),
        from_bus=_transform(model_id, prop.get("fromBus")),
    )
