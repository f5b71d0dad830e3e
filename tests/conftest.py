from __future__ import annotations

from concurrent.futures import Executor, Future
from types import SimpleNamespace
from typing import Any, Callable

import pytest

from zigmqtt.catalog import Catalog, CatalogEntry, EventSpec, PropertyMetadata, PropertySpec
from zigmqtt.catalog.transforms import bool_to_on_off, on_off_to_bool
from zigmqtt.plugins.zigbee2mqtt import ZigbeeMqttAdapter


class ImmediateExecutor(Executor):
    """Runs submitted work inline so tests see results synchronously."""

    def submit(self, fn, /, *args, **kwargs):  # type: ignore[override]
        future: Future = Future()
        try:
            result = fn(*args, **kwargs)
        except BaseException as e:
            future.set_exception(e)
        else:
            future.set_result(result)
        return future


class _FakePublishResult:
    def __init__(self, rc: int = 0, mid: int = 1) -> None:
        self.rc = rc
        self.mid = mid


class FakeMQTTClient:
    def __init__(self, client_id: str) -> None:
        self.client_id = client_id
        self.published: list[tuple[str, Any, int]] = []
        self.subscribed: list[tuple[str, int]] = []
        self.unsubscribed: list[str] = []
        self.credentials: tuple[str, str | None] | None = None
        self.connected_to: tuple[str, int, int] | None = None
        self.loop_running = False
        self.disconnected = False
        self.publish_rc = 0
        self.on_connect = None
        self.on_disconnect = None
        self.on_message = None

    def username_pw_set(self, username: str, password: str | None = None) -> None:
        self.credentials = (username, password)

    def reconnect_delay_set(self, min_delay: int = 1, max_delay: int = 120) -> None:
        pass

    def connect(self, host: str, port: int = 1883, keepalive: int = 60) -> int:
        self.connected_to = (host, port, keepalive)
        return 0

    def loop_start(self) -> None:
        self.loop_running = True

    def loop_stop(self) -> None:
        self.loop_running = False

    def disconnect(self) -> None:
        self.disconnected = True

    def subscribe(self, topic: str, qos: int = 0):  # type: ignore[no-untyped-def]
        # Same filter rules paho enforces before sending SUBSCRIBE
        levels = topic.split("/")
        for i, level in enumerate(levels):
            wildcard = "+" in level or "#" in level
            if (wildcard and len(level) > 1) or (level == "#" and i != len(levels) - 1):
                raise ValueError("Invalid subscription filter.")
        self.subscribed.append((topic, qos))
        return (0, len(self.subscribed))

    def unsubscribe(self, topic: str):  # type: ignore[no-untyped-def]
        self.unsubscribed.append(topic)
        return (0, len(self.unsubscribed))

    def publish(self, topic: str, payload=None, qos: int = 0, retain: bool = False):  # type: ignore[no-untyped-def]
        self.published.append((topic, payload, qos))
        return _FakePublishResult(rc=self.publish_rc)

    # Simulated broker side

    def fire_connect(self, reason_code: int = 0) -> None:
        self.on_connect(self, None, {}, reason_code, None)

    def fire_disconnect(self, reason_code: int = 0) -> None:
        self.on_disconnect(self, None, {}, reason_code, None)

    def deliver(self, topic: str, payload: bytes | str) -> None:
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        self.on_message(self, None, SimpleNamespace(topic=topic, payload=payload))

    @property
    def subscribed_topics(self) -> list[str]:
        return [topic for topic, _qos in self.subscribed]


class FakeClientFactory:
    def __init__(self) -> None:
        self.clients: list[FakeMQTTClient] = []

    def __call__(self, client_id: str) -> FakeMQTTClient:
        client = FakeMQTTClient(client_id)
        self.clients.append(client)
        return client


class RecordingListener:
    def __init__(self) -> None:
        self.added: list[Any] = []
        self.removed: list[Any] = []
        self.property_changes: list[tuple[str, str, Any]] = []
        self.events: list[Any] = []

    def handle_device_added(self, device) -> None:  # type: ignore[no-untyped-def]
        self.added.append(device)

    def handle_device_removed(self, device) -> None:  # type: ignore[no-untyped-def]
        self.removed.append(device)

    def notify_property_changed(self, prop) -> None:  # type: ignore[no-untyped-def]
        self.property_changes.append((prop.device.id, prop.name, prop.value))

    def notify_event(self, event) -> None:  # type: ignore[no-untyped-def]
        self.events.append(event)


class RecordingPublisher:
    def __init__(self) -> None:
        self.messages: list[tuple[str, Any]] = []

    def publish_message(self, topic: str, payload: Any) -> None:
        self.messages.append((topic, payload))


def _test_catalog() -> Catalog:
    return Catalog({
        "BUTTON": CatalogEntry(
            name="Test button",
            type_tags=frozenset({"PushButton"}),
            properties={
                "battery": PropertySpec(
                    metadata=PropertyMetadata(type="integer", minimum=0, maximum=100, read_only=True),
                    initial_value=0,
                ),
            },
            events={
                "single": EventSpec(value_field="action"),
                "rotate": EventSpec(value_field="angle"),
            },
        ),
        "DOUBLER": CatalogEntry(
            name="Doubling dimmer",
            properties={
                "level": PropertySpec(
                    metadata=PropertyMetadata(type="number", minimum=0, maximum=100),
                    initial_value=0,
                    to_bus=lambda v: v * 2,
                    from_bus=lambda v: v / 2,
                ),
                "linkquality": PropertySpec(
                    metadata=PropertyMetadata(type="integer", read_only=True),
                    initial_value=0,
                ),
            },
        ),
        "LAMP": CatalogEntry(
            name="Test lamp",
            type_tags=frozenset({"Light", "OnOffSwitch"}),
            properties={
                "state": PropertySpec(
                    metadata=PropertyMetadata(type="boolean", semantic_type="OnOffProperty"),
                    initial_value=False,
                    to_bus=bool_to_on_off,
                    from_bus=on_off_to_bool,
                ),
                "mode": PropertySpec(
                    metadata=PropertyMetadata(type="string", enum=("auto", "manual")),
                    initial_value="auto",
                ),
                "step": PropertySpec(
                    metadata=PropertyMetadata(type="integer", minimum=0, maximum=100, multiple_of=5),
                    initial_value=0,
                ),
            },
        ),
    })


@pytest.fixture
def catalog() -> Catalog:
    return _test_catalog()


@pytest.fixture
def executor() -> ImmediateExecutor:
    return ImmediateExecutor()


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def client_factory() -> FakeClientFactory:
    return FakeClientFactory()


@pytest.fixture
def make_adapter(
    catalog: Catalog,
    executor: ImmediateExecutor,
    listener: RecordingListener,
    client_factory: FakeClientFactory,
) -> Callable[..., ZigbeeMqttAdapter]:
    def _make(prefixes: tuple[str, ...] = ("zigbee2mqtt",), start: bool = True) -> ZigbeeMqttAdapter:
        adapter = ZigbeeMqttAdapter(
            "zigbee2mqtt",
            {"mqtt": {"host": "broker.test"}, "prefixes": list(prefixes)},
            catalog=catalog,
            client_factory=client_factory,
            executor=executor,
        )
        adapter.set_listener(listener)
        if start:
            adapter.start()
            for client in client_factory.clients:
                client.fire_connect()
        return adapter

    return _make
