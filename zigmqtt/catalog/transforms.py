"""
Named value transforms between bus representations and property values.

Catalog files refer to transforms by name; entries built in code may use
any callable. Every transform here is pure.
"""

from typing import Any, Callable, Dict

from zigmqtt.catalog.models import identity

# zigbee2mqtt reports brightness on the ZCL 0-254 scale
BRIGHTNESS_MAX = 254


def on_off_to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().upper() == "ON"
    return bool(value)


def bool_to_on_off(value: Any) -> str:
    return "ON" if value else "OFF"


def brightness_to_percent(value: Any) -> int:
    return round(float(value) * 100 / BRIGHTNESS_MAX)


def percent_to_brightness(value: Any) -> int:
    return round(float(value) * BRIGHTNESS_MAX / 100)


def mired_to_kelvin(value: Any) -> int:
    return round(1_000_000 / float(value))


def kelvin_to_mired(value: Any) -> int:
    return round(1_000_000 / float(value))


def contact_to_open(value: Any) -> bool:
    # Door sensors report contact=true when closed
    return not bool(value)


def open_to_contact(value: Any) -> bool:
    return not bool(value)


TRANSFORMS: Dict[str, Callable[[Any], Any]] = {
    "identity": identity,
    "on_off_to_bool": on_off_to_bool,
    "bool_to_on_off": bool_to_on_off,
    "brightness_to_percent": brightness_to_percent,
    "percent_to_brightness": percent_to_brightness,
    "mired_to_kelvin": mired_to_kelvin,
    "kelvin_to_mired": kelvin_to_mired,
    "contact_to_open": contact_to_open,
    "open_to_contact": open_to_contact,
}
