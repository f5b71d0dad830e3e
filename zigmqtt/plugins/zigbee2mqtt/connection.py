"""
One MQTT broker connection per configured topic prefix.

Subscribes to:
- <prefix>/bridge/config/devices (device list)
- <prefix>/+ (every device state topic)
- <prefix>/<friendly_name> for each registered device
"""

import logging
import threading
from typing import Any, Callable, Optional, Set, Union

import paho.mqtt.client as mqtt

from zigmqtt.config import MqttSettings
from zigmqtt.zigmqtt_logging import get_logger

logger = logging.getLogger(__name__)
log = get_logger("ZIGMQTT.Connection")

DEVICE_LIST_TOPIC = "bridge/config/devices"
DEVICE_LIST_REQUEST_TOPIC = "bridge/config/devices/get"
TOPIC_WILDCARDS = ("+", "#")

MessageHandler = Callable[[str, str, bytes], None]
ClientFactory = Callable[[str], Any]


def _default_client_factory(client_id: str) -> mqtt.Client:
    return mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)


class BrokerConnection:
    """
    A paho client bound to one topic prefix.

    Inbound messages are handed to ``on_message(prefix, topic, payload)``
    on paho's network thread; the handler is expected to hand them off.
    Reconnects are left to paho's loop.
    """

    def __init__(
        self,
        prefix: str,
        settings: MqttSettings,
        on_message: MessageHandler,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.prefix = prefix
        self.settings = settings
        self._on_message_cb = on_message
        self._client_factory = client_factory or _default_client_factory

        self._client: Optional[Any] = None
        self._connected = False
        self._lock = threading.Lock()
        self._device_topics: Set[str] = set()

    def topic(self, relative: str) -> str:
        return f"{self.prefix}/{relative}"

    def start(self) -> None:
        """Create the client, connect and start paho's network loop."""
        client_id = f"{self.settings.client_id}-{self.prefix.replace('/', '-')}"
        log.info("ZIGMQTT.Connection.Connecting", extra={"fields": {
            "prefix": self.prefix,
            "host": self.settings.host,
            "port": self.settings.port,
        }})

        client = self._client_factory(client_id)
        if self.settings.username:
            client.username_pw_set(self.settings.username, self.settings.password)

        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message
        client.reconnect_delay_set(min_delay=1, max_delay=60)

        self._client = client
        try:
            client.connect(self.settings.host, self.settings.port, keepalive=self.settings.keepalive)
            client.loop_start()
        except Exception as e:
            log.error("ZIGMQTT.Connection.ConnectionFailed", extra={"fields": {
                "prefix": self.prefix,
                "host": self.settings.host,
                "port": self.settings.port,
                "error": str(e),
            }})
            self._client = None
            raise

    def stop(self) -> None:
        if self._client is not None:
            self._client.loop_stop()
            self._client.disconnect()
            self._client = None
        self._connected = False
        logger.info(f"Connection for prefix {self.prefix!r} stopped")

    def subscribe_device(self, friendly_name: str) -> bool:
        """
        Track and subscribe ``<prefix>/<friendly_name>``.

        Returns False when the name cannot be subscribed to; the topic is
        then not tracked.
        """
        topic = self.topic(friendly_name)
        if any(c in friendly_name for c in TOPIC_WILDCARDS):
            log.warning("ZIGMQTT.Connection.InvalidDeviceTopic", extra={"fields": {
                "prefix": self.prefix,
                "topic": topic,
            }})
            return False

        with self._lock:
            if topic in self._device_topics:
                return True
            self._device_topics.add(topic)

        if self._client is not None and self._connected:
            if not self._subscribe(self._client, topic):
                with self._lock:
                    self._device_topics.discard(topic)
                return False
        return True

    def unsubscribe_device(self, friendly_name: str) -> None:
        topic = self.topic(friendly_name)
        with self._lock:
            if topic not in self._device_topics:
                return
            self._device_topics.discard(topic)

        if self._client is not None and self._connected:
            self._client.unsubscribe(topic)

    def publish(self, relative_topic: str, payload: Union[str, bytes, None] = None) -> bool:
        """Publish under this prefix. Failures are logged, not raised."""
        topic = self.topic(relative_topic)
        if self._client is None:
            log.warning("ZIGMQTT.Connection.NotStarted", extra={"fields": {"topic": topic}})
            return False

        result = self._client.publish(topic, payload, qos=self.settings.qos)
        if result.rc != mqtt.MQTT_ERR_SUCCESS:
            log.error("ZIGMQTT.Connection.PublishFailed", extra={"fields": {
                "topic": topic,
                "return_code": result.rc,
                "error": mqtt.error_string(result.rc),
            }})
            return False

        logger.debug(f"Published {topic}: {payload!r}")
        return True

    def request_device_list(self) -> bool:
        return self.publish(DEVICE_LIST_REQUEST_TOPIC)

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def device_topics(self) -> Set[str]:
        with self._lock:
            return set(self._device_topics)

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code != 0:
            log.error("ZIGMQTT.Connection.ConnectionRefused", extra={"fields": {
                "prefix": self.prefix,
                "host": self.settings.host,
                "reason": str(reason_code),
            }})
            self._connected = False
            return

        self._connected = True
        log.info("ZIGMQTT.Connection.Connected", extra={"fields": {
            "prefix": self.prefix,
            "host": self.settings.host,
            "port": self.settings.port,
        }})

        with self._lock:
            topics = [self.topic(DEVICE_LIST_TOPIC), self.topic("+")] + sorted(self._device_topics)
        for topic in topics:
            if self._subscribe(client, topic):
                logger.info(f"Subscribed to {topic}")

        # Ask the bridge for its current inventory on every (re)connect
        self.request_device_list()

    def _subscribe(self, client, topic: str) -> bool:
        try:
            client.subscribe(topic, qos=self.settings.qos)
        except ValueError as e:
            # paho rejects malformed filters before anything reaches the broker
            log.error("ZIGMQTT.Connection.SubscribeFailed", extra={"fields": {
                "topic": topic,
                "error": str(e),
            }})
            return False
        return True

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        self._connected = False
        if reason_code != 0:
            log.warning("ZIGMQTT.Connection.UnexpectedDisconnection", extra={"fields": {
                "prefix": self.prefix,
                "reason": str(reason_code),
            }})
        else:
            logger.info(f"Disconnected from broker for prefix {self.prefix!r}")

    def _on_message(self, client, userdata, msg):
        self._on_message_cb(self.prefix, msg.topic, msg.payload)
