"""
Plugin registry.

Creates adapter plugins from config, drives their lifecycle and gives the
host one place to look devices up, whichever adapter owns them.
"""

from typing import Any, Dict, List, Optional, Type
import logging

from zigmqtt.plugins.base import GatewayPlugin
from zigmqtt.zigmqtt_logging import get_logger

logger = logging.getLogger(__name__)
log = get_logger("ZIGMQTT.Plugins")

# Higher rank is worse; the aggregate reports the worst plugin
_STATUS_RANK = {"healthy": 0, "degraded": 1, "unhealthy": 2}


class PluginRegistry:
    """
    Holds plugin classes by name and the instances created from them.

    Plugins are started in creation order and stopped in reverse, so an
    adapter created after the thing it depends on also stops before it.
    """

    def __init__(self):
        self._classes: Dict[str, Type[GatewayPlugin]] = {}
        self._plugins: Dict[str, GatewayPlugin] = {}

    def register_plugin_class(self, name: str, plugin_class: Type[GatewayPlugin]) -> None:
        """
        Raises:
            ValueError: If a class is already registered under ``name``
        """
        if name in self._classes:
            raise ValueError(f"Plugin class '{name}' already registered")
        self._classes[name] = plugin_class
        logger.debug(f"Registered plugin class {name}: {plugin_class!r}")

    def create_plugin(self, name: str, config: Dict[str, Any]) -> GatewayPlugin:
        """
        Instantiate the class registered under ``name`` with ``config``.

        Raises:
            ValueError: If no class is registered under ``name``
            ConfigError: Propagated from the plugin when its config is invalid
        """
        plugin_class = self._classes.get(name)
        if plugin_class is None:
            raise ValueError(f"Plugin class '{name}' not registered. Available: {sorted(self._classes)}")

        try:
            plugin = plugin_class(name=name, config=config)
        except Exception as e:
            log.error("ZIGMQTT.Plugins.CreateFailed", extra={"fields": {"plugin": name, "error": str(e)}})
            raise

        self._plugins[name] = plugin
        return plugin

    def get_plugin(self, name: str) -> Optional[GatewayPlugin]:
        return self._plugins.get(name)

    def get_plugins_by_type(self, plugin_type: Type[GatewayPlugin]) -> List[GatewayPlugin]:
        return [p for p in self._plugins.values() if isinstance(p, plugin_type)]

    def find_device(self, device_id: str) -> Optional[Any]:
        """First device named ``device_id`` among plugins exposing ``get_device``."""
        for plugin in self._plugins.values():
            get_device = getattr(plugin, "get_device", None)
            if get_device is None:
                continue
            device = get_device(device_id)
            if device is not None:
                return device
        return None

    def start_all(self) -> None:
        """
        Start every plugin. On the first failure the plugins already started
        are stopped again and the error propagates.
        """
        for name, plugin in self._plugins.items():
            try:
                plugin.start()
            except Exception as e:
                log.error("ZIGMQTT.Plugins.StartFailed", extra={"fields": {"plugin": name, "error": str(e)}})
                self._stop(reversed(list(self._plugins.items())))
                raise
            plugin._mark_started()

    def stop_all(self) -> None:
        """Stop started plugins in reverse order. One failing stop does not block the rest."""
        self._stop(reversed(list(self._plugins.items())))

    def _stop(self, plugins) -> None:
        for name, plugin in plugins:
            if not plugin.is_started:
                continue
            try:
                plugin.stop()
            except Exception as e:
                log.error("ZIGMQTT.Plugins.StopFailed", extra={"fields": {"plugin": name, "error": str(e)}})
            finally:
                plugin._mark_stopped()

    def health_all(self) -> Dict[str, Any]:
        plugins: Dict[str, Any] = {}
        worst = "healthy"

        for name, plugin in self._plugins.items():
            try:
                health = plugin.health()
            except Exception as e:
                logger.error(f"Health check failed for '{name}': {e}")
                health = {"status": "unhealthy", "message": f"Health check error: {e}", "details": {}}

            plugins[name] = health
            if _STATUS_RANK.get(health.get("status"), 2) > _STATUS_RANK[worst]:
                worst = health["status"] if health.get("status") in _STATUS_RANK else "unhealthy"

        return {"status": worst, "plugins": plugins}

    def reload_config(self, name: str, new_config: Dict[str, Any]) -> None:
        """
        Raises:
            ValueError: If no plugin named ``name`` exists
        """
        plugin = self.get_plugin(name)
        if plugin is None:
            raise ValueError(f"Plugin '{name}' not found")
        plugin.on_config_reload(new_config)

    @property
    def plugin_count(self) -> int:
        return len(self._plugins)

    @property
    def plugin_names(self) -> List[str]:
        return list(self._plugins)
