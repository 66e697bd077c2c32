"""
Telemetry Bridge Components.

- core/       - Constants (close codes, limits, heartbeat frames)
- events/     - Inbound event and outbound envelope types
- adapters/   - Inbound transports (MQTT, Redis)
- connection/ - Per-connection helpers (heartbeat)
- endpoints/  - WebSocket endpoint
- resilience/ - Retry with backoff
- metrics/    - Observability (collector, prometheus)
"""
