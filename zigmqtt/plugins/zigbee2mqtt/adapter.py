"""
zigbee2mqtt adapter: connection fan-out, device registry and write path.
"""

import json
import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional

from zigmqtt.catalog import Catalog, default_catalog, load_catalog
from zigmqtt.config import AdapterConfig
from zigmqtt.errors import DeviceNotFoundError, PropertyNotFoundError
from zigmqtt.plugins.base import GatewayPlugin
from zigmqtt.plugins.zigbee2mqtt.connection import BrokerConnection, ClientFactory
from zigmqtt.plugins.zigbee2mqtt.device import Device, DeviceRegistry, Property
from zigmqtt.plugins.zigbee2mqtt.models import (
    DeviceInfo,
    DeviceListener,
    Event,
    MessageKind,
    NullListener,
)
from zigmqtt.plugins.zigbee2mqtt.router import MessageRouter
from zigmqtt.zigmqtt_logging import get_logger

logger = logging.getLogger(__name__)
log = get_logger("ZIGMQTT.Adapter")


class ZigbeeMqttAdapter(GatewayPlugin):
    """
    Bridges zigbee2mqtt topics to typed devices.

    All registry and property mutation runs on a single-worker executor, so
    broker threads and host calls never touch device state concurrently.
    Host-initiated writes return that executor's Future.
    """

    def __init__(
        self,
        name: str,
        config: Dict[str, Any],
        *,
        catalog: Optional[Catalog] = None,
        client_factory: Optional[ClientFactory] = None,
        executor: Optional[Executor] = None,
    ):
        super().__init__(name, config)

        self.settings = AdapterConfig.from_dict(config)
        self.catalog = catalog if catalog is not None else self._load_catalog()
        self.registry = DeviceRegistry()
        self.router = MessageRouter(self.registry, self.add_device)
        self.connections: List[BrokerConnection] = []

        self._listener: DeviceListener = NullListener()
        self._client_factory = client_factory
        self._executor = executor
        self._owns_executor = executor is None

    def _load_catalog(self) -> Catalog:
        if self.settings.catalog_path:
            return load_catalog(self.settings.catalog_path)
        return default_catalog()

    def set_listener(self, listener: DeviceListener) -> None:
        """Set the host notification sink."""
        self._listener = listener

    def start(self) -> None:
        """Open one broker connection per configured prefix."""
        if self.is_started:
            return

        log.info("ZIGMQTT.Adapter.Starting", extra={"fields": {
            "prefixes": list(self.settings.prefixes),
            "catalog_models": len(self.catalog),
        }})

        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix=f"zigmqtt-{self.name}"
            )

        for prefix in self.settings.prefixes:
            connection = BrokerConnection(
                prefix,
                self.settings.mqtt,
                self._on_bus_message,
                client_factory=self._client_factory,
            )
            try:
                connection.start()
            except Exception:
                self._stop_connections()
                self._release_executor()
                raise
            self.connections.append(connection)

        self._mark_started()

    def stop(self) -> None:
        logger.info(f"Stopping adapter {self.name}")
        self._stop_connections()

        self._release_executor()
        self._mark_stopped()

    def _release_executor(self) -> None:
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _stop_connections(self) -> None:
        for connection in self.connections:
            try:
                connection.stop()
            except Exception as e:
                log.error("ZIGMQTT.Adapter.ConnectionStopError", extra={"fields": {
                    "prefix": connection.prefix,
                    "error": str(e),
                }})
        self.connections = []

    def health(self) -> Dict[str, Any]:
        connected = {c.prefix: c.is_connected for c in self.connections}
        if connected and all(connected.values()):
            status = "healthy"
        elif any(connected.values()):
            status = "degraded"
        else:
            status = "unhealthy" if self.is_started else "degraded"

        return self._health(
            status,
            f"{len(self.registry)} devices, {sum(connected.values())}/{len(connected)} connections up",
            connections=connected,
            device_count=len(self.registry),
            catalog_models=len(self.catalog),
        )

    # Inbound

    def _on_bus_message(self, prefix: str, topic: str, payload: bytes) -> None:
        """Called on paho's network thread; hands the message to the dispatcher."""
        try:
            self._submit(self.handle_message, prefix, topic, payload)
        except RuntimeError as e:
            # Executor already shut down
            logger.debug(f"Dropping message on {topic} during shutdown: {e}")

    def handle_message(self, prefix: str, topic: str, payload: bytes) -> Optional[MessageKind]:
        """
        Route one inbound message.

        A failure here is logged and confined to this message.
        """
        try:
            return self.router.route(prefix, topic, payload)
        except Exception as e:
            log.error("ZIGMQTT.Adapter.MessageProcessingError", extra={"fields": {
                "topic": topic,
                "error": str(e),
            }}, exc_info=True)
            return None

    def add_device(self, info: DeviceInfo) -> Optional[Device]:
        """
        Create and register a device from a device-info record.

        Returns:
            The new Device, or None when nothing was created
            (unknown model, same device already registered, or a
            friendly name that cannot be subscribed to)
        """
        entry = self.catalog.get(info.model_id)
        if entry is None:
            log.warning("ZIGMQTT.Adapter.UnknownModel", extra={"fields": {
                "friendly_name": info.friendly_name,
                "model": info.model_id,
            }})
            return None

        existing = self.registry.get(info.friendly_name)
        if existing is not None and existing.model_id == info.model_id:
            logger.info(f"Device {info.friendly_name} already exists")
            return None

        # Subscribe before registering so a rejected name leaves no trace
        if not self._subscribe_everywhere(info.friendly_name):
            return None

        if existing is not None:
            # Same friendly name re-announced with another model: re-provision
            log.warning("ZIGMQTT.Adapter.ModelChanged", extra={"fields": {
                "friendly_name": info.friendly_name,
                "old_model": existing.model_id,
                "new_model": info.model_id,
            }})
            self.registry.remove(existing.id)
            self._listener.handle_device_removed(existing)

        device = Device(info.friendly_name, info.model_id, entry, publisher=self, listener=self)
        self.registry.add(device)

        self._listener.handle_device_added(device)
        log.info("ZIGMQTT.Adapter.DeviceAdded", extra={"fields": {
            "friendly_name": device.id,
            "model": device.model_id,
            "properties": len(device.properties),
            "events": len(device.event_specs),
        }})
        return device

    def _subscribe_everywhere(self, friendly_name: str) -> bool:
        """Subscribe the device topic on every connection, or on none of them."""
        done = []
        for connection in self.connections:
            if not connection.subscribe_device(friendly_name):
                for subscribed in done:
                    subscribed.unsubscribe_device(friendly_name)
                log.warning("ZIGMQTT.Adapter.DeviceRejected", extra={"fields": {
                    "friendly_name": friendly_name,
                    "prefix": connection.prefix,
                }})
                return False
            done.append(connection)
        return True

    # Host-facing

    def get_device(self, device_id: str) -> Optional[Device]:
        return self.registry.get(device_id)

    @property
    def devices(self) -> List[Device]:
        return self.registry.snapshot()

    def set_property(self, device_id: str, name: str, value: Any) -> Future:
        """
        Write a property value from the host.

        The returned Future resolves to the accepted value once it has been
        published and cached, or fails with PropertyValidationError,
        DeviceNotFoundError or PropertyNotFoundError.
        """
        return self._submit(self._set_property, device_id, name, value)

    def _set_property(self, device_id: str, name: str, value: Any) -> Any:
        device = self.registry.get(device_id)
        if device is None:
            raise DeviceNotFoundError(device_id)
        prop = device.find_property(name)
        if prop is None:
            raise PropertyNotFoundError(device_id, name)
        return prop.set_value(value)

    def remove_device(self, device_id: str) -> Future:
        """Forget a device and stop listening to its topic. Resolves to True if it existed."""
        return self._submit(self._remove_device, device_id)

    def _remove_device(self, device_id: str) -> bool:
        device = self.registry.remove(device_id)
        if device is None:
            return False

        for connection in self.connections:
            connection.unsubscribe_device(device_id)
        self._listener.handle_device_removed(device)
        log.info("ZIGMQTT.Adapter.DeviceRemoved", extra={"fields": {"friendly_name": device_id}})
        return True

    def start_pairing(self, timeout_seconds: Optional[float] = None) -> None:
        """Ask every bridge to re-announce its devices. Join permission is not toggled."""
        log.info("ZIGMQTT.Adapter.PairingStarted", extra={"fields": {
            "timeout_seconds": timeout_seconds,
        }})
        for connection in self.connections:
            connection.request_device_list()

    def cancel_pairing(self) -> None:
        logger.debug("cancel_pairing: nothing to cancel")

    def publish_message(self, topic: str, payload: Any = None) -> None:
        """Publish ``payload`` as JSON to ``<prefix>/<topic>`` on every connection."""
        data = json.dumps(payload) if payload is not None else None
        for connection in self.connections:
            connection.publish(topic, data)

    # DeviceListener, as seen by devices

    def handle_device_added(self, device: Device) -> None:
        self._listener.handle_device_added(device)

    def handle_device_removed(self, device: Device) -> None:
        self._listener.handle_device_removed(device)

    def notify_property_changed(self, prop: Property) -> None:
        logger.debug(f"Property changed: {prop.device.id}.{prop.name} = {prop.value!r}")
        self._listener.notify_property_changed(prop)

    def notify_event(self, event: Event) -> None:
        log.info("ZIGMQTT.Adapter.Event", extra={"fields": {
            "device": event.device_id,
            "event": event.name,
            "data": event.data,
        }})
        self._listener.notify_event(event)

    def _submit(self, fn: Callable[..., Any], *args: Any) -> Future:
        if self._executor is None:
            raise RuntimeError(f"Adapter {self.name} is not started")
        return self._executor.submit(fn, *args)
