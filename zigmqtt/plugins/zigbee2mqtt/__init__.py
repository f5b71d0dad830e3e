"""
zigbee2mqtt adapter plugin

Maps zigbee2mqtt bus messages onto typed devices, properties and events.
"""

from zigmqtt.plugins.zigbee2mqtt.adapter import ZigbeeMqttAdapter
from zigmqtt.plugins.zigbee2mqtt.device import Device, DeviceRegistry, Property
from zigmqtt.plugins.zigbee2mqtt.models import DeviceInfo, DeviceListener, Event, MessageKind
from zigmqtt.plugins.zigbee2mqtt.router import MessageRouter

__all__ = [
    "Device",
    "DeviceInfo",
    "DeviceListener",
    "DeviceRegistry",
    "Event",
    "MessageKind",
    "MessageRouter",
    "Property",
    "ZigbeeMqttAdapter",
]
