"""
Built-in catalog entries for common zigbee2mqtt models.

Property names match the keys zigbee2mqtt publishes on a device's state
topic, so inbound payload keys map onto properties without renaming.
"""

from typing import Dict

from zigmqtt.catalog.models import CatalogEntry, EventSpec, PropertyMetadata, PropertySpec
from zigmqtt.catalog.transforms import (
    bool_to_on_off,
    brightness_to_percent,
    contact_to_open,
    on_off_to_bool,
    open_to_contact,
    percent_to_brightness,
)


def _battery() -> PropertySpec:
    return PropertySpec(
        metadata=PropertyMetadata(
            type="integer", title="Battery", semantic_type="LevelProperty",
            unit="percent", minimum=0, maximum=100, read_only=True,
        ),
        initial_value=0,
    )


def _linkquality() -> PropertySpec:
    return PropertySpec(
        metadata=PropertyMetadata(
            type="integer", title="Link quality", unit="lqi",
            minimum=0, maximum=255, read_only=True,
        ),
        initial_value=0,
    )


def _on_off(title: str = "On/Off") -> PropertySpec:
    return PropertySpec(
        metadata=PropertyMetadata(type="boolean", title=title, semantic_type="OnOffProperty"),
        initial_value=False,
        to_bus=bool_to_on_off,
        from_bus=on_off_to_bool,
    )


def _action_events(*actions: str) -> Dict[str, EventSpec]:
    return {action: EventSpec(value_field="action") for action in actions}


BUILTIN_ENTRIES: Dict[str, CatalogEntry] = {
    "WXKG01LM": CatalogEntry(
        name="Xiaomi wireless mini switch",
        type_tags=frozenset({"PushButton"}),
        properties={
            "battery": _battery(),
            "linkquality": _linkquality(),
        },
        events={
            **_action_events("single", "double", "triple", "quadruple", "long", "long_release"),
        },
    ),
    "MFKZQ01LM": CatalogEntry(
        name="Aqara magic cube",
        type_tags=frozenset({"PushButton"}),
        properties={
            "battery": _battery(),
            "linkquality": _linkquality(),
        },
        events={
            "shake": EventSpec(value_field="side"),
            "wakeup": EventSpec(value_field="side"),
            "fall": EventSpec(value_field="side"),
            "tap": EventSpec(value_field="side"),
            "slide": EventSpec(value_field="side"),
            "flip90": EventSpec(value_field="to_side"),
            "flip180": EventSpec(value_field="to_side"),
            "rotate_left": EventSpec(value_field="angle"),
            "rotate_right": EventSpec(value_field="angle"),
        },
    ),
    "WSDCGQ11LM": CatalogEntry(
        name="Aqara temperature, humidity and pressure sensor",
        type_tags=frozenset({"TemperatureSensor", "MultiLevelSensor"}),
        properties={
            "temperature": PropertySpec(
                metadata=PropertyMetadata(
                    type="number", title="Temperature", semantic_type="TemperatureProperty",
                    unit="degree celsius", read_only=True,
                ),
                initial_value=0,
            ),
            "humidity": PropertySpec(
                metadata=PropertyMetadata(
                    type="number", title="Humidity", semantic_type="LevelProperty",
                    unit="percent", minimum=0, maximum=100, read_only=True,
                ),
                initial_value=0,
            ),
            "pressure": PropertySpec(
                metadata=PropertyMetadata(
                    type="number", title="Pressure", unit="hPa", read_only=True,
                ),
                initial_value=0,
            ),
            "battery": _battery(),
            "linkquality": _linkquality(),
        },
    ),
    "RTCGQ11LM": CatalogEntry(
        name="Aqara human body movement and illuminance sensor",
        type_tags=frozenset({"MotionSensor"}),
        properties={
            "occupancy": PropertySpec(
                metadata=PropertyMetadata(
                    type="boolean", title="Motion", semantic_type="MotionProperty", read_only=True,
                ),
                initial_value=False,
            ),
            "illuminance": PropertySpec(
                metadata=PropertyMetadata(
                    type="integer", title="Illuminance", unit="lux", minimum=0, read_only=True,
                ),
                initial_value=0,
            ),
            "battery": _battery(),
            "linkquality": _linkquality(),
        },
    ),
    "MCCGQ11LM": CatalogEntry(
        name="Aqara door and window contact sensor",
        type_tags=frozenset({"DoorSensor"}),
        properties={
            "contact": PropertySpec(
                metadata=PropertyMetadata(
                    type="boolean", title="Open", semantic_type="OpenProperty", read_only=True,
                ),
                initial_value=False,
                to_bus=open_to_contact,
                from_bus=contact_to_open,
            ),
            "battery": _battery(),
            "linkquality": _linkquality(),
        },
    ),
    "LED1545G12": CatalogEntry(
        name="IKEA TRADFRI LED bulb E27 980 lumen, dimmable, white spectrum",
        type_tags=frozenset({"Light", "OnOffSwitch"}),
        properties={
            "state": _on_off(),
            "brightness": PropertySpec(
                metadata=PropertyMetadata(
                    type="integer", title="Brightness", semantic_type="BrightnessProperty",
                    unit="percent", minimum=0, maximum=100,
                ),
                initial_value=0,
                to_bus=percent_to_brightness,
                from_bus=brightness_to_percent,
            ),
            "color_temp": PropertySpec(
                metadata=PropertyMetadata(
                    type="integer", title="Color temperature", semantic_type="ColorTemperatureProperty",
                    unit="mired", minimum=250, maximum=454,
                ),
                initial_value=370,
            ),
            "linkquality": _linkquality(),
        },
    ),
    "ZNCZ02LM": CatalogEntry(
        name="Xiaomi Mi power plug",
        type_tags=frozenset({"SmartPlug", "OnOffSwitch", "EnergyMonitor"}),
        properties={
            "state": _on_off(),
            "power": PropertySpec(
                metadata=PropertyMetadata(
                    type="number", title="Power", semantic_type="InstantaneousPowerProperty",
                    unit="watt", read_only=True,
                ),
                initial_value=0,
            ),
            "energy": PropertySpec(
                metadata=PropertyMetadata(type="number", title="Energy", unit="kWh", read_only=True),
                initial_value=0,
            ),
            "linkquality": _linkquality(),
        },
    ),
}
