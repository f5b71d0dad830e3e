"""
Gateway plugin lifecycle.

Adapters are plugins: the host builds one from a config dict, starts it,
polls its health and stops it on shutdown.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict
import logging

HEALTH_STATUSES = ("healthy", "degraded", "unhealthy")


class GatewayPlugin(ABC):
    """
    start() opens bus connections and may raise to abort gateway startup.
    stop() releases them and must tolerate being called twice.
    """

    def __init__(self, name: str, config: Dict[str, Any]):
        self.name = name
        self.config = config
        self._started = False
        self._logger = logging.getLogger(f"zigmqtt.plugin.{name}")

    @abstractmethod
    def start(self) -> None: ...

    @abstractmethod
    def stop(self) -> None: ...

    @abstractmethod
    def health(self) -> Dict[str, Any]:
        """
        Returns:
            {"status": "healthy" | "degraded" | "unhealthy", "message": str, "details": dict}
        """

    def on_config_reload(self, new_config: Dict[str, Any]) -> None:
        """Replace the stored config. Live plugins pick it up on their next start."""
        self._logger.info(f"Config reloaded for {self.name}")
        self.config = new_config

    def _health(self, status: str, message: str, **details: Any) -> Dict[str, Any]:
        if status not in HEALTH_STATUSES:
            raise ValueError(f"Unknown health status {status!r}")
        return {"status": status, "message": message, "details": details}

    def _mark_started(self) -> None:
        if not self._started:
            self._logger.info(f"Plugin {self.name} started")
        self._started = True

    def _mark_stopped(self) -> None:
        if self._started:
            self._logger.info(f"Plugin {self.name} stopped")
        self._started = False

    @property
    def is_started(self) -> bool:
        return self._started
