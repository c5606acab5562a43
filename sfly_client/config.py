"""
Configuration Management for the Shutterfly Session Keeper.

This module handles client configuration including the session file location,
validation tolerances, login credentials and logging, with support for
configuration files and environment variables.
"""

import os
import json
import logging
from pathlib import Path
from typing import Optional, Dict, Any, List
from configparser import ConfigParser

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIRECTORY = Path.home() / '.sfly'


class AuthenticatorConfiguration:
    """
    Configuration manager for the session keeper.

    Supports configuration from:
    1. Runtime overrides (highest priority)
    2. Environment variables
    3. Configuration file
    4. Default values (lowest priority)
    """

    ENV_MAPPINGS = {
        'SFLY_SESSION_DIRECTORY': ('session', 'directory'),
        'SFLY_SESSION_FILE_NAME': ('session', 'file_name'),
        'SFLY_STRICT_STORE_READS': ('session', 'strict_store_reads'),
        'SFLY_CLOCK_SKEW_SECONDS': ('validation', 'clock_skew_seconds'),
        'SFLY_TOKEN_COOKIE': ('token', 'cookie_name'),
        'SFLY_LOGIN_URL': ('login', 'url'),
        'SFLY_USERNAME': ('login', 'username'),
        'SFLY_PASSWORD': ('login', 'password'),
        'SFLY_LOGIN_TIMEOUT': ('login', 'timeout'),
        'SFLY_LOG_LEVEL': ('logging', 'level'),
    }

    def __init__(self, config_file: Optional[str] = None):
        self._config_file = config_file or str(DEFAULT_CONFIG_DIRECTORY / 'client.conf')
        self._config_data: Dict[str, Dict[str, Any]] = {}
        self._overrides: Dict[str, Any] = {}

        self._load_configuration()

    @property
    def config_file(self) -> str:
        return self._config_file

    def _load_configuration(self) -> None:
        """Load configuration from file and environment variables."""
        if os.path.exists(self._config_file):
            self._load_from_file()
            logger.info(f"Configuration loaded from: {self._config_file}")
        else:
            logger.debug(f"Configuration file not found: {self._config_file}")

        self._load_from_environment()
        self._set_defaults()

    def _load_from_file(self) -> None:
        """Load configuration from INI file."""
        config = ConfigParser(interpolation=None)
        config.read(self._config_file)

        for section_name in config.sections():
            section_data = {}
            for key, value in config[section_name].items():
                # Try to parse as JSON for complex values
                try:
                    section_data[key] = json.loads(value)
                except (json.JSONDecodeError, ValueError):
                    section_data[key] = value

            self._config_data[section_name] = section_data

    def _load_from_environment(self) -> None:
        """Load configuration from environment variables."""
        for env_var, (section, key) in self.ENV_MAPPINGS.items():
            value = os.environ.get(env_var)
            if value is None:
                continue

            section_data = self._config_data.setdefault(section, {})

            # Credentials are never coerced
            if section == 'login' and key in ('username', 'password'):
                section_data[key] = value
            elif value.lower() in ('true', 'false'):
                section_data[key] = value.lower() == 'true'
            elif value.isdigit():
                section_data[key] = int(value)
            else:
                section_data[key] = value

    def _set_defaults(self) -> None:
        """Set default configuration values."""
        defaults = {
            'session': {
                'directory': str(DEFAULT_CONFIG_DIRECTORY),
                'file_name': 'session.json',
                'strict_store_reads': False
            },
            'validation': {
                'clock_skew_seconds': 60,
                'required_cookies': []
            },
            'token': {
                'cookie_name': 'CognitoIdentityToken'
            },
            'login': {
                'url': 'https://accounts.shutterfly.com/api/login',
                'username': None,
                'password': None,
                'timeout': 30,
                'user_agent': 'SflySessionKeeper/1.0'
            },
            'logging': {
                'level': 'INFO',
                'format': 'standard',
                'file': None
            }
        }

        for section, section_defaults in defaults.items():
            section_data = self._config_data.setdefault(section, {})
            for key, default_value in section_defaults.items():
                if key not in section_data:
                    section_data[key] = default_value

    def get_config(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            key: Configuration key in format 'section.key'
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        if key in self._overrides:
            return self._overrides[key]

        if '.' not in key:
            return self._config_data.get(key, default)

        section, config_key = key.split('.', 1)
        return self._config_data.get(section, {}).get(config_key, default)

    def set_override(self, key: str, value: Any) -> None:
        """
        Override a configuration value for this process.

        Args:
            key: Configuration key in format 'section.key'
            value: Value to use (None removes the override)
        """
        if value is None:
            self._overrides.pop(key, None)
        else:
            self._overrides[key] = value

    def get_session_file(self) -> Path:
        """Get the fixed path the session is persisted at."""
        override = self.get_config('session.path')
        if override:
            return Path(override).expanduser()

        directory = Path(self.get_config('session.directory')).expanduser()
        return directory / self.get_config('session.file_name')

    def is_strict_store_reads(self) -> bool:
        value = self.get_config('session.strict_store_reads')
        if isinstance(value, str):
            # INI values like "False" or "off" survive json.loads as strings
            try:
                return ConfigParser.BOOLEAN_STATES[value.strip().lower()]
            except KeyError:
                raise ValueError(f"Not a boolean: {value}")
        return bool(value)

    def get_clock_skew_seconds(self) -> float:
        return float(self.get_config('validation.clock_skew_seconds'))

    def get_required_cookies(self) -> List[str]:
        required = self.get_config('validation.required_cookies') or []
        if isinstance(required, str):
            required = [name.strip() for name in required.split(',') if name.strip()]
        return list(required)

    def get_token_cookie_name(self) -> str:
        return self.get_config('token.cookie_name')

    def get_login_url(self) -> str:
        return self.get_config('login.url')

    def get_credentials(self) -> tuple:
        """Get (username, password) for the login procedure."""
        # INI values go through json.loads, so numeric passwords come back as ints
        username = self.get_config('login.username')
        password = self.get_config('login.password')
        return (
            str(username) if username is not None else None,
            str(password) if password is not None else None
        )

    def get_login_timeout(self) -> float:
        return float(self.get_config('login.timeout'))

    def get_user_agent(self) -> str:
        return self.get_config('login.user_agent')

    def get_log_level(self) -> str:
        return str(self.get_config('logging.level')).upper()

    def get_log_format(self) -> str:
        return str(self.get_config('logging.format')).lower()

    def get_log_file(self) -> Optional[str]:
        return self.get_config('logging.file')

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of problems, empty when the configuration is usable
        """
        errors = []

        # Credentials are only needed once the login tier is reached
        if not self.get_login_url():
            errors.append("login.url is required (SFLY_LOGIN_URL)")

        try:
            self.is_strict_store_reads()
        except ValueError:
            errors.append("session.strict_store_reads must be a boolean")

        for key, getter in (
            ('validation.clock_skew_seconds', self.get_clock_skew_seconds),
            ('login.timeout', self.get_login_timeout),
        ):
            try:
                if getter() < 0:
                    errors.append(f"{key} must not be negative")
            except (TypeError, ValueError):
                errors.append(f"{key} must be a number")

        if self.get_log_level() not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            errors.append(f"logging.level is invalid: {self.get_log_level()}")
        if self.get_log_format() not in ('standard', 'json', 'detailed'):
            errors.append(f"logging.format is invalid: {self.get_log_format()}")

        return errors
