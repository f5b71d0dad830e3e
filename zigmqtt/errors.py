"""
Exception hierarchy for zigmqtt.

Inbound bus messages never raise these to the broker thread; they are logged
and dropped. They surface only on host-initiated calls (property writes,
configuration and catalog loading).
"""


class ZigmqttError(Exception):
    """Base class for all zigmqtt errors."""


class ConfigError(ZigmqttError):
    """Invalid or incomplete adapter configuration."""


class CatalogError(ZigmqttError):
    """A catalog file could not be turned into catalog entries."""


class PropertyValidationError(ZigmqttError, ValueError):
    """A value was rejected by a property's declared domain."""

    def __init__(self, device_id: str, name: str, reason: str):
        super().__init__(f"{device_id}.{name}: {reason}")
        self.device_id = device_id
        self.name = name
        self.reason = reason


class DeviceNotFoundError(ZigmqttError, KeyError):
    """No device is registered under the given friendly name."""

    def __init__(self, device_id: str):
        super().__init__(device_id)
        self.device_id = device_id

    def __str__(self) -> str:
        return f"Device '{self.device_id}' not found"


class PropertyNotFoundError(ZigmqttError, KeyError):
    """The device has no property with the given name."""

    def __init__(self, device_id: str, name: str):
        super().__init__(name)
        self.device_id = device_id
        self.name = name

    def __str__(self) -> str:
        return f"Device '{self.device_id}' has no property '{self.name}'"
