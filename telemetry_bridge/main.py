"""
Telemetry Bridge main application.

Subscribes to telemetry on the configured broker and fans every message out
to the connected WebSocket clients.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from bridge_shared.config.logging import bridge_logger as logger, setup_logging
from bridge_shared.config.settings import Settings, settings as default_settings
from bridge_shared.utils.validators import redact_url
from telemetry_bridge import __version__
from telemetry_bridge.components.adapters import SubscriberAdapter, create_adapter
from telemetry_bridge.components.endpoints import TelemetryEndpoint
from telemetry_bridge.components.metrics.prometheus import generate_prometheus_metrics
from telemetry_bridge.connection_manager import ConnectionManager
from telemetry_bridge.core.subscriber.queue import InboundEventQueue
from telemetry_bridge.relay import run_relay


def _describe_broker(settings: Settings) -> str | None:
    """Broker location without credentials, for logs."""
    if settings.bridge_transport == "redis":
        return redact_url(settings.redis_url)
    try:
        return settings.broker_address.redacted()
    except ValueError:
        return None


def create_app(
    settings: Settings | None = None,
    adapter: SubscriberAdapter | None = None,
    manager: ConnectionManager | None = None,
) -> FastAPI:
    """
    Build the bridge application.

    Args:
        settings: Configuration (defaults to the module-level settings).
        adapter: Inbound adapter. Built from settings at startup when omitted,
            after the configuration has been validated.
        manager: Client connection manager.
    """
    settings = settings or default_settings
    manager = manager or ConnectionManager(settings)
    state: dict[str, SubscriberAdapter | None] = {"adapter": adapter}

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan handler.

        Starts the inbound adapter and the relay task; on shutdown stops
        accepting clients, cancels the relay and disconnects the adapter.
        """
        setup_logging()

        subscriber = state["adapter"]
        if subscriber is None:
            settings.require_valid()
            queue = InboundEventQueue(
                maxsize=settings.bridge_event_queue_size,
                metrics=manager.metrics,
            )
            subscriber = create_adapter(settings, queue, manager.metrics)
            state["adapter"] = subscriber

        logger.info(
            "Loaded configuration",
            transport=subscriber.name,
            broker=_describe_broker(settings),
            topic_pattern=subscriber.topic_pattern,
            port=settings.ws_port,
            env=settings.environment,
        )

        await subscriber.connect()
        relay_task = asyncio.create_task(
            run_relay(subscriber, manager, max_payload_size=settings.bridge_max_payload_size),
            name="relay",
        )

        # uvicorn binds the socket after startup returns and logs "Uvicorn running on ..."
        logger.info("WebSocket routes ready", paths=["/", "/ws"], port=settings.ws_port)
        logger.info("Telemetry bridge operational")

        yield

        logger.info("Shutting down telemetry bridge")
        await manager.shutdown()

        relay_task.cancel()
        try:
            await relay_task
        except asyncio.CancelledError:
            pass

        try:
            await subscriber.disconnect()
        except Exception as e:
            logger.warning("Error disconnecting subscriber", error=str(e))
        logger.info("Telemetry bridge stopped")

    app = FastAPI(
        title="Telemetry Bridge",
        description="Relays MQTT telemetry to WebSocket clients",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.manager = manager
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    # =========================================================================
    # Health and metrics
    # =========================================================================

    @app.get("/health")
    def health_check():
        """Service status, subscriber status and connection statistics."""
        subscriber = state["adapter"]
        return {
            "status": "healthy",
            "service": "telemetry-bridge",
            "version": app.version,
            "environment": settings.environment,
            "subscriber": subscriber.describe() if subscriber is not None else None,
            **manager.get_stats(),
        }

    @app.get("/metrics")
    def prometheus_metrics():
        """
        Prometheus-compatible metrics endpoint.

        Configure Prometheus scrape:
            scrape_configs:
              - job_name: 'telemetry-bridge'
                static_configs:
                  - targets: ['localhost:8080']
                metrics_path: '/metrics'
        """
        return PlainTextResponse(
            content=generate_prometheus_metrics(manager, state["adapter"]),
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )

    # =========================================================================
    # WebSocket endpoints
    # =========================================================================

    @app.websocket("/")
    async def telemetry_websocket(websocket: WebSocket):
        await TelemetryEndpoint(websocket, manager, endpoint_name="/").run()

    @app.websocket("/ws")
    async def telemetry_websocket_alias(websocket: WebSocket):
        await TelemetryEndpoint(websocket, manager, endpoint_name="/ws").run()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "telemetry_bridge.main:app",
        host=default_settings.ws_host,
        port=default_settings.ws_port,
    )
