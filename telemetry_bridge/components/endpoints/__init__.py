from telemetry_bridge.components.endpoints.telemetry import TelemetryEndpoint

__all__ = ["TelemetryEndpoint"]
