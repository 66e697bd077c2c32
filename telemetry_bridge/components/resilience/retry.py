"""
Retry Utilities for the Telemetry Bridge.

Exponential backoff with jitter for transport reconnection. Jitter keeps
many bridges from reconnecting to a recovering broker in lockstep.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Final


# =============================================================================
# Constants
# =============================================================================


# Default jitter range: ±25% of calculated delay
DEFAULT_JITTER_FACTOR: Final[float] = 0.25

# Default exponential backoff base
DEFAULT_BACKOFF_BASE: Final[float] = 2.0

# Default initial delay in seconds
DEFAULT_INITIAL_DELAY: Final[float] = 1.0


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True, slots=True)
class RetryConfig:
    """
    Configuration for retry behavior.

    Attributes:
        initial_delay: Base delay in seconds (default: 1.0).
        max_delay: Maximum delay cap in seconds (default: 30.0).
        backoff_base: Exponential backoff multiplier (default: 2.0).
        jitter_factor: Random jitter range as fraction (default: 0.25 = ±25%).
        max_attempts: Maximum consecutive attempts (default: 10).
    """

    initial_delay: float = DEFAULT_INITIAL_DELAY
    max_delay: float = 30.0
    backoff_base: float = DEFAULT_BACKOFF_BASE
    jitter_factor: float = DEFAULT_JITTER_FACTOR
    max_attempts: int = 10

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.initial_delay <= 0:
            raise ValueError("initial_delay must be positive")
        if self.max_delay < self.initial_delay:
            raise ValueError("max_delay must be >= initial_delay")
        if self.backoff_base < 1:
            raise ValueError("backoff_base must be >= 1")
        if not 0 <= self.jitter_factor <= 1:
            raise ValueError("jitter_factor must be between 0 and 1")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    def should_retry(self, attempt: int) -> bool:
        """True while attempt (1-indexed) is below max_attempts."""
        return attempt < self.max_attempts


# =============================================================================
# Retry Functions
# =============================================================================


def calculate_delay_with_jitter(
    attempt: int,
    config: RetryConfig | None = None,
) -> float:
    """
    Calculate retry delay with exponential backoff and jitter.

    The delay is calculated as:
        base_delay = initial_delay * (backoff_base ^ attempt)
        capped_delay = min(base_delay, max_delay)
        final_delay = capped_delay * (1 ± jitter_factor)

    Args:
        attempt: Current attempt number (0-indexed).
        config: Retry configuration (uses defaults if None).

    Returns:
        Delay in seconds with jitter applied.

    Example:
        >>> config = RetryConfig(initial_delay=1.0, max_delay=30.0)
        >>> delay = calculate_delay_with_jitter(0, config)  # ~1.0s ± 25%
        >>> delay = calculate_delay_with_jitter(5, config)  # ~30.0s ± 25% (capped)
    """
    if config is None:
        config = RetryConfig()

    # Large attempts would overflow float pow before the cap applies
    exponent = min(attempt, 64)
    base_delay = config.initial_delay * (config.backoff_base ** exponent)
    capped_delay = min(base_delay, config.max_delay)

    jitter_range = capped_delay * config.jitter_factor
    jitter = random.uniform(-jitter_range, jitter_range)

    return max(0.0, capped_delay + jitter)


def create_subscriber_retry_config(
    max_delay: float = 30.0,
    max_attempts: int = 20,
) -> RetryConfig:
    """Retry config for inbound transport reconnection."""
    return RetryConfig(
        initial_delay=1.0,
        max_delay=max(1.0, max_delay),
        backoff_base=2.0,
        jitter_factor=0.25,
        max_attempts=max(1, max_attempts),
    )
