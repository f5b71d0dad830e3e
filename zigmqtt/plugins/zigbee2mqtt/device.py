"""
Device and Property model built from catalog entries.

Devices do not inherit from any host framework class. The adapter injects
two collaborators instead: a Publisher for outbound bus writes and a
DeviceListener for host notifications.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterator, List, Mapping, Optional

from zigmqtt.catalog.models import CatalogEntry, EventSpec, PropertyMetadata, PropertySpec
from zigmqtt.errors import PropertyValidationError
from zigmqtt.plugins.zigbee2mqtt.models import DeviceListener, Event, Publisher

logger = logging.getLogger(__name__)


class Property:
    """
    A single named, typed attribute of a device.

    The cached value is written by two paths:
    - set_value(): host-initiated, validated and published to the bus
    - update_from_bus(): inbound state, cached without re-publishing
    """

    def __init__(self, device: "Device", name: str, spec: PropertySpec):
        self.device = device
        self.name = name
        self.metadata: PropertyMetadata = spec.metadata
        self.to_bus = spec.to_bus
        self.from_bus = spec.from_bus
        self._value: Any = spec.initial_value

    @property
    def value(self) -> Any:
        return self._value

    def set_cached_value(self, value: Any) -> None:
        self._value = value

    def update_from_bus(self, raw: Any) -> Any:
        """Apply the inbound transform and cache the result."""
        value = self.from_bus(raw)
        self.set_cached_value(value)
        return value

    def set_value(self, value: Any) -> Any:
        """
        Write a new value from the host side.

        Validates against the declared domain, publishes the outbound
        representation to ``<device_id>/set``, then caches and notifies.

        Raises:
            PropertyValidationError: If the value is rejected (nothing is published)
        """
        value = self._coerce(value)
        error = self._validate(value)
        if error:
            raise PropertyValidationError(self.device.id, self.name, error)

        outbound = self.to_bus(value)
        self.device.publish_message(f"{self.device.id}/set", {self.name: outbound})

        self.set_cached_value(value)
        self.device.notify_property_changed(self)
        return value

    def _coerce(self, value: Any) -> Any:
        # 42.0 is an acceptable integer
        if (
            self.metadata.type == "integer"
            and isinstance(value, float)
            and math.isfinite(value)
            and value.is_integer()
        ):
            return int(value)
        return value

    def _validate(self, value: Any) -> Optional[str]:
        """Return an error message if the value is rejected, None if valid."""
        meta = self.metadata

        if meta.read_only:
            return "Property is read-only"

        if value is None:
            return "Value is required"

        if meta.type == "boolean":
            if not isinstance(value, bool):
                return "Value must be of type boolean"
        elif meta.type == "integer":
            if isinstance(value, bool) or not isinstance(value, int):
                return "Value must be of type integer"
        elif meta.type == "number":
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return "Value must be of type number"
        elif meta.type == "string":
            if not isinstance(value, str):
                return "Value must be of type string"

        if meta.enum is not None and value not in meta.enum:
            return f"Value must be one of {list(meta.enum)}"

        if isinstance(value, (int, float)) and not isinstance(value, bool):
            if meta.minimum is not None and value < meta.minimum:
                return f"Value must be >= {meta.minimum}"
            if meta.maximum is not None and value > meta.maximum:
                return f"Value must be <= {meta.maximum}"
            if meta.multiple_of:
                ratio = value / meta.multiple_of
                if not math.isclose(ratio, round(ratio), abs_tol=1e-9):
                    return f"Value must be a multiple of {meta.multiple_of}"

        return None

    def as_dict(self) -> Dict[str, Any]:
        data = self.metadata.as_dict()
        data["name"] = self.name
        data["value"] = self._value
        return data

    def __repr__(self) -> str:
        return f"Property({self.device.id!r}, {self.name!r}, value={self._value!r})"


class Device:
    """
    A named collection of properties and event definitions.

    Built once per friendly name from a catalog entry. Transforms are bound
    to each Property here, not looked up per message.
    """

    def __init__(
        self,
        device_id: str,
        model_id: str,
        entry: CatalogEntry,
        publisher: Publisher,
        listener: DeviceListener,
    ):
        self._id = device_id
        self.model_id = model_id
        self.title = entry.name
        self.type_tags = frozenset(entry.type_tags)
        self._publisher = publisher
        self._listener = listener

        self.properties: Dict[str, Property] = {
            name: Property(self, name, spec) for name, spec in entry.properties.items()
        }
        self.event_specs: Mapping[str, EventSpec] = entry.events

    @property
    def id(self) -> str:
        return self._id

    def find_property(self, name: str) -> Optional[Property]:
        return self.properties.get(name)

    def get_property_value(self, name: str) -> Any:
        prop = self.find_property(name)
        return prop.value if prop else None

    def event_spec(self, name: Any) -> Optional[EventSpec]:
        if not isinstance(name, str):
            return None
        return self.event_specs.get(name)

    def publish_message(self, topic: str, payload: Any) -> None:
        self._publisher.publish_message(topic, payload)

    def notify_property_changed(self, prop: Property) -> None:
        self._listener.notify_property_changed(prop)

    def emit_event(self, name: str, data: Any) -> Event:
        event = Event(device_id=self.id, name=name, data=data)
        self._listener.notify_event(event)
        return event

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "modelId": self.model_id,
            "@type": sorted(self.type_tags),
            "properties": {name: prop.as_dict() for name, prop in self.properties.items()},
            "events": {
                name: {**spec.metadata, "valueField": spec.value_field}
                for name, spec in self.event_specs.items()
            },
        }

    def __repr__(self) -> str:
        return f"Device({self.id!r}, model={self.model_id!r})"


class DeviceRegistry:
    """
    Devices keyed by friendly name.

    Owned by the adapter and mutated only from its dispatch context.
    """

    def __init__(self):
        self._devices: Dict[str, Device] = {}

    def get(self, friendly_name: str) -> Optional[Device]:
        return self._devices.get(friendly_name)

    def add(self, device: Device) -> Optional[Device]:
        """Register a device. Returns the device it replaced, if any."""
        previous = self._devices.get(device.id)
        self._devices[device.id] = device
        return previous

    def remove(self, friendly_name: str) -> Optional[Device]:
        return self._devices.pop(friendly_name, None)

    def snapshot(self) -> List[Device]:
        return list(self._devices.values())

    @property
    def device_ids(self) -> List[str]:
        return list(self._devices)

    def __contains__(self, friendly_name: object) -> bool:
        return friendly_name in self._devices

    def __len__(self) -> int:
        return len(self._devices)

    def __iter__(self) -> Iterator[Device]:
        return iter(list(self._devices.values()))
