"""
Configuration Manager for the OpenList download gateway.

Handles environment file loading, process environment and command line
overrides, and validation of the gateway settings.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    pass


@dataclass(frozen=True)
class GatewaySettings:
    """Immutable gateway settings, built once at startup."""

    address: str
    token: str
    port: int = 5243
    host: str = "0.0.0.0"
    https: bool = False
    cert_file: str = "server.crt"
    key_file: str = "server.key"
    disable_sign: bool = False
    geoip_db: str = "GeoLite2-Country.mmdb"
    domestic_country: str = "CN"

    @property
    def secret(self) -> bytes:
        """Shared signing secret (the upstream token as bytes)."""
        return self.token.encode("utf-8")

    @property
    def link_endpoint(self) -> str:
        """Upstream link resolution endpoint."""
        return f"{self.address.rstrip('/')}/api/fs/link"


class ConfigManager:
    """
    Central configuration management for the gateway.

    Provides:
    - Environment file loading with precedence
    - Process environment lookup
    - Command line overrides
    - Configuration validation
    """

    # Setting name -> environment variable
    ENV_VARS = {
        'address': 'OPENLIST_ADDRESS',
        'token': 'OPENLIST_TOKEN',
        'port': 'PROXY_PORT',
        'host': 'PROXY_HOST',
        'https': 'PROXY_HTTPS',
        'cert_file': 'PROXY_CERT_FILE',
        'key_file': 'PROXY_KEY_FILE',
        'disable_sign': 'DISABLE_SIGN',
        'geoip_db': 'GEOIP_DB',
        'domestic_country': 'DOMESTIC_COUNTRY',
    }

    BOOL_SETTINGS = ('https', 'disable_sign')

    TRUE_VALUES = ('1', 'true', 'yes', 'on')
    FALSE_VALUES = ('0', 'false', 'no', 'off', '')

    def __init__(
        self,
        config_dir: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize ConfigManager.

        Args:
            config_dir: Directory containing environment files
            overrides: Values from the command line, None entries are ignored
        """
        self.config_dir = Path(config_dir) if config_dir else Path.cwd()
        self._overrides = {k: v for k, v in (overrides or {}).items() if v is not None}

        self._env_vars = {}
        self._load_env_files()

    def _load_env_files(self):
        """Load environment files with precedence: .env.prod > .env.staging > .env.dev > .env"""
        env = os.getenv('ENV', 'dev')

        env_files = ['.env']
        if env in ['dev', 'staging', 'prod']:
            env_files.append('.env.dev')
        if env in ['staging', 'prod']:
            env_files.append('.env.staging')
        if env == 'prod':
            env_files.append('.env.prod')

        # Later files override earlier ones
        for env_file in env_files:
            env_path = self.config_dir / env_file
            if env_path.exists():
                self._load_env_file(env_path)

    def _load_env_file(self, env_path: Path):
        """Load a single environment file into our internal env_vars dict."""
        with open(env_path, 'r') as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith('#') and '=' in line:
                    key, value = line.split('=', 1)
                    self._env_vars[key.strip()] = value.strip().strip('"').strip("'")

    def get_raw(self, name: str) -> Optional[Any]:
        """Look up a setting: command line, then os.environ, then env files."""
        if name in self._overrides:
            return self._overrides[name]
        env_var = self.ENV_VARS[name]
        value = os.getenv(env_var)
        if value is None:
            value = self._env_vars.get(env_var)
        return value

    def _parse_bool(self, name: str, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        lowered = str(value).strip().lower()
        if lowered in self.TRUE_VALUES:
            return True
        if lowered in self.FALSE_VALUES:
            return False
        raise ConfigValidationError(
            f"Invalid {self.ENV_VARS[name]}: '{value}' - expected true or false"
        )

    def _parse_port(self, value: Any) -> int:
        env_var = self.ENV_VARS['port']
        try:
            port = int(value)
        except (TypeError, ValueError):
            raise ConfigValidationError(
                f"Invalid {env_var}: '{value}' - port must be a number between 1 and 65535"
            )
        if not (1 <= port <= 65535):
            raise ConfigValidationError(
                f"Invalid {env_var}: '{value}' - port must be between 1 and 65535"
            )
        return port

    def get_settings(self) -> GatewaySettings:
        """Build and validate the gateway settings."""
        values: Dict[str, Any] = {}

        for name in ('address', 'token'):
            value = self.get_raw(name)
            if not value:
                raise ConfigValidationError(
                    f"Required environment variable {self.ENV_VARS[name]} is not configured"
                )
            values[name] = str(value)

        port = self.get_raw('port')
        if port is not None:
            values['port'] = self._parse_port(port)

        for name in self.BOOL_SETTINGS:
            value = self.get_raw(name)
            if value is not None:
                values[name] = self._parse_bool(name, value)

        for name in ('host', 'cert_file', 'key_file', 'geoip_db', 'domestic_country'):
            value = self.get_raw(name)
            if value:
                values[name] = str(value)

        if 'domestic_country' in values:
            values['domestic_country'] = values['domestic_country'].upper()

        return GatewaySettings(**values)
