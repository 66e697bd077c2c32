"""
Utilities: error taxonomy and configuration validators.
"""

from bridge_shared.utils.exceptions import (
    BridgeError,
    ConfigError,
    SubscriptionError,
    ParseError,
    DeliveryError,
    ListenerError,
    TransportError,
)
from bridge_shared.utils.validators import (
    BrokerAddress,
    redact_url,
    validate_broker_url,
    validate_topic_filter,
    validate_port,
)

__all__ = [
    # exceptions
    "BridgeError",
    "ConfigError",
    "SubscriptionError",
    "ParseError",
    "DeliveryError",
    "ListenerError",
    "TransportError",
    # validators
    "BrokerAddress",
    "redact_url",
    "validate_broker_url",
    "validate_topic_filter",
    "validate_port",
]
