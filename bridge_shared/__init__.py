"""
Shared module for configuration and utilities used by the telemetry bridge.

STRUCTURE:
- bridge_shared.config: Configuration
  - settings.py: Environment config (pydantic-settings, .env)
  - logging.py: Structured logging

- bridge_shared.utils: Utilities
  - exceptions.py: Error taxonomy (ConfigError, ParseError, ...)
  - validators.py: Broker URL, topic filter and port validation
"""
