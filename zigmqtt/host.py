"""
Host-side device listener.

Receives adapter notifications (device added/removed, property changes,
events) and keeps what the HTTP API needs to report them.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Any

from zigmqtt.plugins.zigbee2mqtt.device import Device, Property
from zigmqtt.plugins.zigbee2mqtt.models import Event
from zigmqtt.zigmqtt_logging import get_logger

log = get_logger("ZIGMQTT.Host")


class GatewayHost:
    """
    Notifications arrive on the adapter's dispatch thread and are read from
    the API thread, so all state sits behind one lock.
    """

    def __init__(self, max_events: int = 200):
        self._lock = threading.Lock()
        self._events: deque[dict[str, Any]] = deque(maxlen=max_events)
        self._devices: dict[str, str] = {}
        self._property_changes = 0
        self._last_change: dict[str, Any] | None = None

    def handle_device_added(self, device: Device) -> None:
        with self._lock:
            self._devices[device.id] = device.model_id
        log.info("ZIGMQTT.Host.DeviceAdded", extra={"fields": {
            "device": device.id,
            "model": device.model_id,
            "title": device.title,
        }})

    def handle_device_removed(self, device: Device) -> None:
        with self._lock:
            self._devices.pop(device.id, None)
        log.info("ZIGMQTT.Host.DeviceRemoved", extra={"fields": {"device": device.id}})

    def notify_property_changed(self, prop: Property) -> None:
        with self._lock:
            self._property_changes += 1
            self._last_change = {
                "device_id": prop.device.id,
                "name": prop.name,
                "value": prop.value,
            }

    def notify_event(self, event: Event) -> None:
        with self._lock:
            self._events.append(event.as_dict())

    def recent_events(self, limit: int | None = None, device_id: str | None = None) -> list[dict[str, Any]]:
        """Most recent events first."""
        with self._lock:
            events = list(reversed(self._events))
        if device_id is not None:
            events = [e for e in events if e["device_id"] == device_id]
        if limit is not None:
            events = events[:max(0, limit)]
        return events

    @property
    def device_ids(self) -> list[str]:
        with self._lock:
            return sorted(self._devices)

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "device_count": len(self._devices),
                "property_changes": self._property_changes,
                "event_count": len(self._events),
                "last_change": self._last_change,
            }
