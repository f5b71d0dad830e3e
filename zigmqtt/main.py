from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, Callable

from fastapi import FastAPI, HTTPException, Request

from zigmqtt.config import adapter_enabled, load_plugin_config
from zigmqtt.errors import DeviceNotFoundError, PropertyNotFoundError, PropertyValidationError
from zigmqtt.host import GatewayHost
from zigmqtt.plugins.registry import PluginRegistry
from zigmqtt.plugins.zigbee2mqtt import ZigbeeMqttAdapter
from zigmqtt.zigmqtt_logging import get_logger

log = get_logger("ZIGMQTT")

ADAPTER_PLUGIN = "zigbee2mqtt"


def build_registry(
    host: GatewayHost,
    config: dict[str, Any],
    adapter_class: Callable[..., ZigbeeMqttAdapter] = ZigbeeMqttAdapter,
) -> PluginRegistry:
    registry = PluginRegistry()
    registry.register_plugin_class(ADAPTER_PLUGIN, adapter_class)
    adapter = registry.create_plugin(ADAPTER_PLUGIN, config)
    adapter.set_listener(host)
    return registry


def create_app(registry: PluginRegistry | None = None, host: GatewayHost | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.host = host or GatewayHost()
        app.state.plugin_registry = registry

        if app.state.plugin_registry is None:
            if adapter_enabled():
                try:
                    app.state.plugin_registry = build_registry(app.state.host, load_plugin_config())
                except Exception as e:
                    log.error("ZIGMQTT.Plugins.ConfigError", extra={"fields": {"error": repr(e)}})
                    raise
            else:
                log.info("ZIGMQTT.Plugins.Disabled", extra={"fields": {}})

        if app.state.plugin_registry is not None:
            app.state.plugin_registry.start_all()
            log.info("ZIGMQTT.Plugins.Started", extra={"fields": {
                "plugin_count": app.state.plugin_registry.plugin_count,
            }})

        yield

        plugin_registry = getattr(app.state, "plugin_registry", None)
        if plugin_registry is not None:
            try:
                log.info("ZIGMQTT.Plugins.Stopping")
                plugin_registry.stop_all()
                log.info("ZIGMQTT.Plugins.Stopped")
            except Exception as e:
                log.error("ZIGMQTT.Plugins.StopError", extra={"fields": {"error": repr(e)}})

    app = FastAPI(title="zigmqtt", lifespan=lifespan)

    def _adapters() -> list[ZigbeeMqttAdapter]:
        plugin_registry = getattr(app.state, "plugin_registry", None)
        if plugin_registry is None:
            raise HTTPException(status_code=503, detail="Adapter not enabled")

        adapters = [
            p for p in plugin_registry.get_plugins_by_type(ZigbeeMqttAdapter) if p.is_started
        ]
        if not adapters:
            raise HTTPException(status_code=503, detail="Adapter not started")
        return adapters

    def _owner(device_id: str) -> ZigbeeMqttAdapter:
        for adapter in _adapters():
            if adapter.get_device(device_id) is not None:
                return adapter
        raise HTTPException(status_code=404, detail=f"Device '{device_id}' not found")

    @app.get("/healthz")
    async def healthz() -> dict[str, Any]:
        response: dict[str, Any] = {"status": "ok"}

        plugin_registry = getattr(app.state, "plugin_registry", None)
        if plugin_registry is not None and plugin_registry.plugin_count > 0:
            response["plugins"] = plugin_registry.health_all()

        gateway_host = getattr(app.state, "host", None)
        if gateway_host is not None:
            response["host"] = gateway_host.stats()
        return response

    @app.get("/api/devices")
    async def list_devices() -> dict[str, Any]:
        devices = [device.as_dict() for adapter in _adapters() for device in adapter.devices]
        return {"devices": devices, "count": len(devices)}

    @app.get("/api/devices/{device_id}")
    async def get_device(device_id: str) -> dict[str, Any]:
        return _owner(device_id).get_device(device_id).as_dict()

    @app.delete("/api/devices/{device_id}")
    async def remove_device(device_id: str) -> dict[str, Any]:
        removed = await asyncio.wrap_future(_owner(device_id).remove_device(device_id))
        return {"device_id": device_id, "removed": removed}

    @app.put("/api/devices/{device_id}/properties/{name}")
    async def set_property(device_id: str, name: str, request: dict[str, Any]) -> dict[str, Any]:
        """
        Set a property value.

        Request body:
            {"value": any}
        """
        if "value" not in request:
            raise HTTPException(status_code=400, detail="Missing 'value' parameter")

        adapter = _owner(device_id)
        try:
            value = await asyncio.wrap_future(adapter.set_property(device_id, name, request["value"]))
        except PropertyValidationError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        except (DeviceNotFoundError, PropertyNotFoundError) as e:
            raise HTTPException(status_code=404, detail=str(e)) from e

        return {"device_id": device_id, "name": name, "value": value}

    @app.get("/api/events")
    async def list_events(limit: int = 50, device_id: str | None = None) -> dict[str, Any]:
        gateway_host: GatewayHost = app.state.host
        return {"events": gateway_host.recent_events(limit=limit, device_id=device_id)}

    @app.post("/api/pairing")
    async def start_pairing(request: Request) -> dict[str, Any]:
        timeout = None
        body = await request.body()
        if body:
            data = await request.json()
            timeout = data.get("timeout") if isinstance(data, dict) else None

        for adapter in _adapters():
            adapter.start_pairing(timeout)
        return {"pairing": True, "timeout": timeout}

    @app.delete("/api/pairing")
    async def cancel_pairing() -> dict[str, Any]:
        for adapter in _adapters():
            adapter.cancel_pairing()
        return {"pairing": False}

    return app


app = create_app()
