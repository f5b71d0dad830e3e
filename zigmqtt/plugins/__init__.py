"""
zigmqtt plugin system.
"""

from zigmqtt.plugins.base import GatewayPlugin
from zigmqtt.plugins.registry import PluginRegistry

__all__ = [
    "GatewayPlugin",
    "PluginRegistry",
]
