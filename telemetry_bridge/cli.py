"""
Telemetry Bridge CLI.

Command-line entry point: validate the configuration and serve.
"""

import typer
from rich.console import Console
from rich.table import Table

from bridge_shared.config.settings import Settings, get_settings
from bridge_shared.utils.exceptions import ConfigError
from bridge_shared.utils.validators import redact_url
from telemetry_bridge import __version__

app = typer.Typer(
    name="telemetry-bridge",
    help="MQTT to WebSocket telemetry bridge",
    add_completion=False,
)
console = Console()


def _validated_settings() -> Settings:
    """Load settings and exit with status 1 if they cannot be served."""
    settings = get_settings()
    try:
        return settings.require_valid()
    except ConfigError as e:
        console.print("[red]✗ Invalid configuration:[/red]")
        for problem in e.problems:
            console.print(f"[red]  - {problem}[/red]")
        raise typer.Exit(1)


def _config_table(settings: Settings) -> Table:
    table = Table(title="Telemetry Bridge Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Transport", settings.bridge_transport)
    if settings.bridge_transport == "mqtt":
        table.add_row("Broker", settings.broker_address.redacted())
        table.add_row("QoS", str(settings.mqtt_qos))
    else:
        table.add_row("Redis", redact_url(settings.redis_url))
    table.add_row("Topic pattern", settings.mqtt_topic_pattern)
    table.add_row("Listen", f"{settings.ws_host}:{settings.ws_port}")
    table.add_row(
        "Max connections",
        str(settings.ws_max_total_connections or "unlimited"),
    )
    table.add_row("Environment", settings.environment)
    return table


@app.command()
def serve(
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes (development)"),
):
    """Validate the configuration and run the bridge."""
    import uvicorn

    settings = _validated_settings()
    console.print(_config_table(settings))

    uvicorn.run(
        "telemetry_bridge.main:app",
        host=settings.ws_host,
        port=settings.ws_port,
        reload=reload,
        log_config=None,
    )


@app.command()
def check_config():
    """Validate the configuration without starting the bridge."""
    settings = _validated_settings()
    console.print(_config_table(settings))
    console.print("[green]✓ Configuration is valid[/green]")


@app.command()
def version():
    """Show version information."""
    console.print(f"telemetry-bridge {__version__}")


if __name__ == "__main__":
    app()
