"""Configuration management package for the download gateway."""

from .config_manager import ConfigManager, ConfigValidationError, GatewaySettings

__all__ = ['ConfigManager', 'ConfigValidationError', 'GatewaySettings']
