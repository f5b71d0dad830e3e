"""
Inbound message router.

Classifies zigbee2mqtt messages by topic shape and applies them to the
device registry:
- <prefix>/bridge/config/devices   device list, upsert every entry
- <prefix>/bridge/...              other bridge traffic, ignored
- <prefix>/<friendly_name>         device state (events + properties)
"""

import json
import logging
from typing import Any, Callable, Dict, Optional, Union

from zigmqtt.plugins.zigbee2mqtt.device import Device, DeviceRegistry
from zigmqtt.plugins.zigbee2mqtt.models import DeviceInfo, MessageKind
from zigmqtt.zigmqtt_logging import get_logger

logger = logging.getLogger(__name__)
log = get_logger("ZIGMQTT.Router")

BRIDGE_SEGMENT = "bridge"
BRIDGE_DEVICES_TOPIC = "bridge/config/devices"
ACTION_FIELD = "action"
DEVICE_FIELD = "device"

Upsert = Callable[[DeviceInfo], Optional[Device]]


class MessageRouter:
    """
    Turns (prefix, topic, payload) into registry mutations.

    Device lookup is prefix-agnostic: friendly names are assumed unique
    across every configured prefix.
    """

    def __init__(self, registry: DeviceRegistry, upsert: Upsert):
        self.registry = registry
        self._upsert = upsert

    @staticmethod
    def relative_path(prefix: str, topic: str) -> Optional[str]:
        """Strip ``prefix/`` from a topic. None if the topic is outside the prefix."""
        head = prefix.rstrip("/") + "/"
        if not topic.startswith(head):
            return None
        return topic[len(head):]

    def route(self, prefix: str, topic: str, payload: Union[bytes, str]) -> MessageKind:
        path = self.relative_path(prefix, topic)
        if not path:
            logger.debug(f"Ignoring topic outside prefix {prefix!r}: {topic}")
            return MessageKind.IGNORED

        if isinstance(payload, bytes):
            try:
                payload = payload.decode("utf-8")
            except UnicodeDecodeError as e:
                return self._malformed(topic, str(e))

        # Cleared retained messages arrive with an empty body
        if not payload.strip():
            return MessageKind.IGNORED

        try:
            msg = json.loads(payload)
        except json.JSONDecodeError as e:
            return self._malformed(topic, str(e))

        if path == BRIDGE_DEVICES_TOPIC:
            return self._handle_device_list(topic, msg)

        segments = path.split("/")
        if segments[0] == BRIDGE_SEGMENT:
            return MessageKind.IGNORED

        if not isinstance(msg, dict):
            return self._malformed(topic, f"expected object, got {type(msg).__name__}")

        return self._handle_state(segments[-1], msg)

    def _handle_device_list(self, topic: str, msg: Any) -> MessageKind:
        if not isinstance(msg, list):
            return self._malformed(topic, f"expected array, got {type(msg).__name__}")

        logger.info(f"Processing device list with {len(msg)} entries")
        for record in msg:
            info = DeviceInfo.from_record(record)
            if info is None:
                log.warning("ZIGMQTT.Router.IncompleteDeviceRecord", extra={"fields": {
                    "topic": topic,
                    "record": str(record)[:200],
                }})
                continue
            self._safe_upsert(info)

        return MessageKind.DEVICE_LIST

    def _handle_state(self, friendly_name: str, msg: Dict[str, Any]) -> MessageKind:
        device = self.registry.get(friendly_name)

        if device is None:
            # State can arrive before the device list that defines the device
            info = DeviceInfo.from_record(msg.get(DEVICE_FIELD))
            if info is None:
                logger.debug(f"Dropping state for unknown device {friendly_name!r}")
                return MessageKind.UNKNOWN_DEVICE

            log.info("ZIGMQTT.Router.OnDemandCreate", extra={"fields": {
                "friendly_name": friendly_name,
                "model": info.model_id,
            }})
            self._safe_upsert(info)
            device = self.registry.get(friendly_name)
            if device is None:
                return MessageKind.UNKNOWN_DEVICE

        self._apply_state(device, msg)
        return MessageKind.STATE

    def _apply_state(self, device: Device, msg: Dict[str, Any]) -> None:
        # Event and property updates are independent; one message may carry both
        action = msg.get(ACTION_FIELD)
        spec = device.event_spec(action)
        if spec is not None:
            device.emit_event(action, msg.get(spec.value_field))

        for key, raw in msg.items():
            prop = device.find_property(key)
            if prop is None:
                continue
            try:
                prop.update_from_bus(raw)
            except Exception as e:
                log.error("ZIGMQTT.Router.PropertyUpdateFailed", extra={"fields": {
                    "device": device.id,
                    "property": key,
                    "error": repr(e),
                }})
                continue
            device.notify_property_changed(prop)

    def _safe_upsert(self, info: DeviceInfo) -> None:
        # One failing record must not stop the rest of a device list
        try:
            self._upsert(info)
        except Exception as e:
            log.error("ZIGMQTT.Router.DeviceUpsertFailed", extra={"fields": {
                "friendly_name": info.friendly_name,
                "model": info.model_id,
                "error": repr(e),
            }}, exc_info=True)

    def _malformed(self, topic: str, error: str) -> MessageKind:
        log.error("ZIGMQTT.Router.InvalidPayload", extra={"fields": {
            "topic": topic,
            "error": error,
        }})
        return MessageKind.MALFORMED
