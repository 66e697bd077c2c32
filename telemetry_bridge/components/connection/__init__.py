from telemetry_bridge.components.connection.heartbeat import handle_heartbeat, is_heartbeat

__all__ = ["handle_heartbeat", "is_heartbeat"]
