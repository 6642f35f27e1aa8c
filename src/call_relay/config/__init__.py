"""
Configuration management for the call relay system.

This package provides:
- The RelayConfig data structure and its validation
- Environment variable and .env file loading
"""

from .settings import RelayConfig, RelayConfigManager

__all__ = [
    "RelayConfig",
    "RelayConfigManager",
]
