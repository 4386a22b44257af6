"""
Core components for the Crypto Chart API.

This module contains configuration loading and logging setup.
"""

from crypto_chart_api.core.config import ConfigManager, ConfigError
from crypto_chart_api.core.logging import setup_logging, StructuredFormatter

__all__ = [
    "ConfigManager",
    "ConfigError",
    "setup_logging",
    "StructuredFormatter",
]
