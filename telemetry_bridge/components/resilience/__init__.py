"""
Resilience components: retry with exponential backoff and jitter.
"""

from telemetry_bridge.components.resilience.retry import (
    RetryConfig,
    calculate_delay_with_jitter,
    create_subscriber_retry_config,
)

__all__ = [
    "RetryConfig",
    "calculate_delay_with_jitter",
    "create_subscriber_retry_config",
]
