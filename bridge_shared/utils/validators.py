"""
Shared validators for transport configuration.

Broker URLs and MQTT topic filters are checked here so that a bad value is
rejected before the service starts serving.
"""

from dataclasses import dataclass
from urllib.parse import urlparse

# Default ports per URL scheme (same defaults as common MQTT clients)
DEFAULT_BROKER_PORTS: dict[str, int] = {
    "mqtt": 1883,
    "tcp": 1883,
    "mqtts": 8883,
    "ssl": 8883,
    "tls": 8883,
    "ws": 80,
    "wss": 443,
}

TLS_SCHEMES = {"mqtts", "ssl", "tls", "wss"}
WEBSOCKET_SCHEMES = {"ws", "wss"}

# MQTT 3.1.1 section 4.7.3: topic names and filters are at most 65535 bytes
MAX_TOPIC_LENGTH = 65535


@dataclass(frozen=True)
class BrokerAddress:
    """Parsed MQTT broker URL."""

    scheme: str
    host: str
    port: int
    username: str = ""
    password: str = ""
    path: str = ""

    @property
    def use_tls(self) -> bool:
        return self.scheme in TLS_SCHEMES

    @property
    def transport(self) -> str:
        """Transport name as expected by paho-mqtt."""
        return "websockets" if self.scheme in WEBSOCKET_SCHEMES else "tcp"

    def redacted(self) -> str:
        """URL safe for logging (credentials removed)."""
        return f"{self.scheme}://{self.host}:{self.port}{self.path}"


def redact_url(url: str) -> str:
    """Any service URL with the user:password part removed, for logs."""
    parsed = urlparse(url)
    if "@" not in parsed.netloc:
        return url
    return parsed._replace(netloc=parsed.netloc.rsplit("@", 1)[-1]).geturl()


def validate_broker_url(url: str | None) -> BrokerAddress:
    """
    Validate and parse an MQTT broker URL.

    Accepts mqtt://, mqtts://, tcp://, ssl://, tls://, ws:// and wss:// URLs.
    The port defaults per scheme when omitted.

    Args:
        url: Broker URL such as "mqtt://broker.local:1883".

    Returns:
        The parsed BrokerAddress.

    Raises:
        ValueError: If the URL is empty, has an unsupported scheme or no host.
    """
    if url is None or not url.strip():
        raise ValueError("broker URL is required")

    url = url.strip()
    parsed = urlparse(url)

    scheme = (parsed.scheme or "").lower()
    if scheme not in DEFAULT_BROKER_PORTS:
        raise ValueError(
            f"unsupported broker URL scheme '{parsed.scheme}' in {url!r} "
            f"(expected one of: {', '.join(sorted(DEFAULT_BROKER_PORTS))})"
        )

    if not parsed.hostname:
        raise ValueError(f"broker URL {url!r} has no host")

    try:
        port = parsed.port
    except ValueError:
        raise ValueError(f"broker URL {url!r} has an invalid port")

    return BrokerAddress(
        scheme=scheme,
        host=parsed.hostname,
        port=port if port is not None else DEFAULT_BROKER_PORTS[scheme],
        username=parsed.username or "",
        password=parsed.password or "",
        path=parsed.path if scheme in WEBSOCKET_SCHEMES else "",
    )


def validate_topic_filter(pattern: str | None) -> str:
    """
    Validate an MQTT topic filter.

    Rules (MQTT 3.1.1 section 4.7):
    - must be non-empty and free of NUL characters
    - '+' must occupy a whole level
    - '#' must occupy a whole level and be the last one

    Returns:
        The pattern unchanged.

    Raises:
        ValueError: If the filter is malformed.
    """
    if not pattern:
        raise ValueError("topic pattern is required")
    if "\x00" in pattern:
        raise ValueError("topic pattern must not contain NUL characters")
    if len(pattern.encode("utf-8")) > MAX_TOPIC_LENGTH:
        raise ValueError("topic pattern is too long")

    levels = pattern.split("/")
    for index, level in enumerate(levels):
        if "+" in level and level != "+":
            raise ValueError(f"'+' must occupy an entire level in {pattern!r}")
        if "#" in level:
            if level != "#":
                raise ValueError(f"'#' must occupy an entire level in {pattern!r}")
            if index != len(levels) - 1:
                raise ValueError(f"'#' must be the last level in {pattern!r}")

    return pattern


def validate_port(port: int) -> int:
    """Raise ValueError unless port is a usable TCP port."""
    if not 1 <= port <= 65535:
        raise ValueError(f"port {port} is out of range (1-65535)")
    return port
