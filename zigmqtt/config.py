"""
Adapter configuration.

The adapter consumes the manifest shape ``{"mqtt": {...}, "prefixes": [...]}``.
It can come from a JSON file (ZIGMQTT_CONFIG) and/or ZIGMQTT_* environment
variables; environment variables win.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Mapping
from urllib.parse import urlparse

from zigmqtt.errors import ConfigError

DEFAULT_PREFIX = "zigbee2mqtt"

_TRUTHY = ("1", "true", "yes", "on")


@dataclass(frozen=True, slots=True)
class MqttSettings:
    host: str = "localhost"
    port: int = 1883
    username: str | None = None
    password: str | None = None
    client_id: str = "zigmqtt"
    keepalive: int = 60
    qos: int = 1

    @classmethod
    def from_value(cls, raw: Any) -> "MqttSettings":
        """Accept either a broker URL (``mqtt://user:pw@host:port``) or an options object."""
        if raw is None:
            return cls()
        if isinstance(raw, str):
            url = urlparse(raw if "://" in raw else f"mqtt://{raw}")
            if not url.hostname:
                raise ConfigError(f"Invalid broker URL: {raw!r}")
            return cls(
                host=url.hostname,
                port=url.port or 1883,
                username=url.username,
                password=url.password,
            )
        if not isinstance(raw, Mapping):
            raise ConfigError(f"'mqtt' must be a URL or an object, got {type(raw).__name__}")

        try:
            return cls(
                host=str(raw.get("host", "localhost")),
                port=int(raw.get("port", 1883)),
                username=raw.get("username"),
                password=raw.get("password"),
                client_id=str(raw.get("client_id", "zigmqtt")),
                keepalive=int(raw.get("keepalive", 60)),
                qos=int(raw.get("qos", 1)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid 'mqtt' settings: {e}") from e


@dataclass(frozen=True, slots=True)
class AdapterConfig:
    mqtt: MqttSettings = field(default_factory=MqttSettings)
    prefixes: tuple[str, ...] = (DEFAULT_PREFIX,)
    catalog_path: str | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "AdapterConfig":
        prefixes = raw.get("prefixes", [DEFAULT_PREFIX])
        if isinstance(prefixes, str):
            prefixes = [prefixes]
        if not isinstance(prefixes, (list, tuple)):
            raise ConfigError("'prefixes' must be a list of topic prefixes")

        cleaned = tuple(str(p).strip().strip("/") for p in prefixes if str(p).strip().strip("/"))
        if not cleaned:
            raise ConfigError("At least one topic prefix is required")
        if len(set(cleaned)) != len(cleaned):
            raise ConfigError(f"Duplicate topic prefixes: {list(cleaned)}")

        return cls(
            mqtt=MqttSettings.from_value(raw.get("mqtt")),
            prefixes=cleaned,
            catalog_path=raw.get("catalog_path"),
        )


def adapter_enabled(environ: Mapping[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    return env.get("ZIGMQTT_ENABLED", "1").strip().lower() in _TRUTHY


def load_plugin_config(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """
    Build the adapter's plugin config dict from file and environment.

    Raises:
        ConfigError: If the config file cannot be read
    """
    env = os.environ if environ is None else environ
    config: dict[str, Any] = {}

    path = env.get("ZIGMQTT_CONFIG", "").strip()
    if path:
        try:
            with open(path, "r", encoding="utf-8") as f:
                loaded = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot read config {path}: {e}") from e
        if not isinstance(loaded, dict):
            raise ConfigError(f"Config {path} must contain a JSON object")
        config.update(loaded)

    mqtt = config.get("mqtt")
    if isinstance(mqtt, str):
        settings = MqttSettings.from_value(mqtt)
        mqtt = {
            "host": settings.host,
            "port": settings.port,
            "username": settings.username,
            "password": settings.password,
        }
    mqtt = dict(mqtt or {})

    overrides = {
        "host": env.get("ZIGMQTT_MQTT_HOST"),
        "port": env.get("ZIGMQTT_MQTT_PORT"),
        "username": env.get("ZIGMQTT_MQTT_USERNAME"),
        "password": env.get("ZIGMQTT_MQTT_PASSWORD"),
        "client_id": env.get("ZIGMQTT_MQTT_CLIENT_ID"),
        "keepalive": env.get("ZIGMQTT_MQTT_KEEPALIVE"),
        "qos": env.get("ZIGMQTT_MQTT_QOS"),
    }
    mqtt.update({k: v for k, v in overrides.items() if v not in (None, "")})
    config["mqtt"] = mqtt

    prefixes = env.get("ZIGMQTT_PREFIXES", "").strip()
    if prefixes:
        config["prefixes"] = [p.strip() for p in prefixes.split(",") if p.strip()]

    catalog_path = env.get("ZIGMQTT_CATALOG_PATH", "").strip()
    if catalog_path:
        config["catalog_path"] = catalog_path

    return config
