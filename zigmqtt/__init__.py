"""zigmqtt: zigbee2mqtt to typed device bridge."""

__version__ = "0.1.0"
