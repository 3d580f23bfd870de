"""
Storage Layer.

This package handles configuration persistence: the INI config file and its
environment variable overrides.
"""

from .config_manager import ConfigManager

__all__ = ["ConfigManager"]
