"""
Telemetry Bridge.

Relays MQTT telemetry messages to every connected WebSocket client.
"""

__version__ = "1.0.0"
