"""
Data models shared by the zigbee2mqtt router and adapter.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping, Optional, Protocol

if TYPE_CHECKING:
    from zigmqtt.plugins.zigbee2mqtt.device import Device, Property


class MessageKind(str, Enum):
    """Classification of one inbound bus message."""

    DEVICE_LIST = "device_list"
    STATE = "state"
    UNKNOWN_DEVICE = "unknown_device"
    IGNORED = "ignored"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class DeviceInfo:
    """
    Canonical device-info record.

    Two wire variants exist:
    - bridge device list entries: {"friendly_name": ..., "modelID": ...}
    - embedded state descriptors: {"friendlyName": ..., "model": ...}
    Both normalize to (friendly_name, model_id).
    """

    friendly_name: str
    model_id: str
    ieee_address: Optional[str] = None

    @classmethod
    def from_record(cls, raw: Any) -> Optional["DeviceInfo"]:
        """Parse either variant. Returns None when a required field is missing."""
        if not isinstance(raw, Mapping):
            return None

        friendly_name = raw.get("friendly_name", raw.get("friendlyName"))
        model_id = raw.get("modelID", raw.get("model"))
        if not friendly_name or not model_id:
            return None

        ieee = raw.get("ieeeAddr", raw.get("ieee_address"))
        return cls(
            friendly_name=str(friendly_name),
            model_id=str(model_id),
            ieee_address=str(ieee) if ieee else None,
        )


@dataclass
class Event:
    """A single occurrence reported by a device. Not retained after dispatch."""

    device_id: str
    name: str
    data: Any = None
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    )

    def as_dict(self) -> dict[str, Any]:
        return {
            "device_id": self.device_id,
            "name": self.name,
            "data": self.data,
            "timestamp": self.timestamp,
        }


class DeviceListener(Protocol):
    """Host-side notification hooks injected into the adapter and its devices."""

    def handle_device_added(self, device: "Device") -> None: ...

    def handle_device_removed(self, device: "Device") -> None: ...

    def notify_property_changed(self, prop: "Property") -> None: ...

    def notify_event(self, event: Event) -> None: ...


class NullListener:
    """Listener that ignores every notification."""

    def handle_device_added(self, device: "Device") -> None:
        pass

    def handle_device_removed(self, device: "Device") -> None:
        pass

    def notify_property_changed(self, prop: "Property") -> None:
        pass

    def notify_event(self, event: Event) -> None:
        pass


class Publisher(Protocol):
    """Outbound side of the bus, as seen by a device."""

    def publish_message(self, topic: str, payload: Any) -> None: ...
