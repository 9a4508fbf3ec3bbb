# Path: exporter/core/config_loader.py
"""
Exporter Configuration Loader

Centralized configuration management for the Exporter Module.
Loads and validates environment variables with type safety and defaults.

CRITICAL: NO HARDCODING - All values come from environment variables.

Architecture:
- Singleton pattern for global configuration
- Type-safe access with validation
- Sensible defaults
- Optional .env file next to the package root
"""

import os
from typing import Any, Optional
from pathlib import Path
from dotenv import load_dotenv

from exporter.constants import (
    ENV_BASE_URL,
    ENV_API_TOKEN,
    ENV_USER_NAME,
    ENV_EXPORT_PROFILE,
    ENV_TEMP_DIR,
    ENV_LOG_DIR,
    ENV_CACHE_DIR,
    ENV_POLL_INTERVAL,
    ENV_POLL_TIMEOUT,
    ENV_UNKNOWN_GRACE_POLLS,
    ENV_REQUEST_TIMEOUT,
    ENV_CONNECT_TIMEOUT,
    ENV_CHUNK_SIZE,
    ENV_DOWNLOAD_ATTEMPTS,
    ENV_RETRY_DELAY,
    ENV_MAX_RETRY_DELAY,
    ENV_CHECK_DEPENDENCIES,
    ENV_DEPENDENCY_ATTEMPTS,
    ENV_MAX_COMPRESSED_BYTES,
    ENV_MAX_UNCOMPRESSED_BYTES,
    ENV_MAX_COMPRESSION_RATIO,
    ENV_MAX_FILE_COUNT,
    ENV_EXTRACTION_TIMEOUT,
    ENV_USE_CACHE,
    ENV_CACHE_TTL,
    ENV_LOG_LEVEL,
    ENV_LOG_CONSOLE,
    DEFAULT_EXPORT_PROFILE,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_POLL_TIMEOUT,
    DEFAULT_UNKNOWN_GRACE_POLLS,
    DEFAULT_TIMEOUT,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_DOWNLOAD_ATTEMPTS,
    DEFAULT_RETRY_DELAY,
    DEFAULT_MAX_RETRY_DELAY,
    DEFAULT_DEPENDENCY_ATTEMPTS,
    DEFAULT_MAX_COMPRESSED_BYTES,
    DEFAULT_MAX_UNCOMPRESSED_BYTES,
    DEFAULT_MAX_COMPRESSION_RATIO,
    DEFAULT_MAX_FILE_COUNT,
    DEFAULT_EXTRACTION_TIMEOUT,
    DEFAULT_CACHE_TTL_SECONDS,
)


class ConfigLoader:
    """
    Singleton configuration loader.

    Loads configuration from environment variables with validation,
    type conversion, and sensible defaults.

    Example:
        config = ConfigLoader()
        base_url = config.get('base_url')
        poll_interval = config.get('poll_interval')
    """

    _instance: Optional['ConfigLoader'] = None
    _initialized: bool = False

    def __new__(cls) -> 'ConfigLoader':
        """Ensure only one instance exists (singleton pattern)."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """
        Initialize configuration loader.

        Only runs once due to singleton pattern.
        """
        if ConfigLoader._initialized:
            return

        # config_loader.py is at: <root>/exporter/core/config_loader.py
        # .env is at: <root>/.env
        current_file = Path(__file__).resolve()
        project_root = current_file.parent.parent.parent
        env_path = project_root / '.env'

        if env_path.exists():
            load_dotenv(dotenv_path=env_path, interpolate=True)

        self._config = self._load_configuration()
        ConfigLoader._initialized = True

    def _load_configuration(self) -> dict[str, Any]:
        """
        Load and validate all configuration from environment.

        Returns:
            Dictionary of validated configuration values
        """
        config = {
            # ================================================================
            # SERVER
            # ================================================================
            'base_url': self._get_env(ENV_BASE_URL, required=False),
            'api_token': self._get_env(ENV_API_TOKEN, required=False),
            'user_name': self._get_env(ENV_USER_NAME, required=False),
            'export_profile': self._get_env(ENV_EXPORT_PROFILE, DEFAULT_EXPORT_PROFILE),

            # ================================================================
            # DIRECTORY PATHS
            # ================================================================
            'temp_dir': self._get_path(ENV_TEMP_DIR, required=False),
            'log_dir': self._get_path(ENV_LOG_DIR, required=False),
            'cache_dir': self._get_path(ENV_CACHE_DIR, required=False),

            # ================================================================
            # POLLING CONFIGURATION
            # ================================================================
            'poll_interval': self._get_float(ENV_POLL_INTERVAL, DEFAULT_POLL_INTERVAL),
            'poll_timeout': self._get_float(ENV_POLL_TIMEOUT, DEFAULT_POLL_TIMEOUT),
            'unknown_grace_polls': self._get_int(ENV_UNKNOWN_GRACE_POLLS, DEFAULT_UNKNOWN_GRACE_POLLS),

            # ================================================================
            # DOWNLOAD CONFIGURATION
            # ================================================================
            'request_timeout': self._get_int(ENV_REQUEST_TIMEOUT, DEFAULT_TIMEOUT),
            'connect_timeout': self._get_int(ENV_CONNECT_TIMEOUT, DEFAULT_CONNECT_TIMEOUT),
            'chunk_size': self._get_int(ENV_CHUNK_SIZE, DEFAULT_CHUNK_SIZE),
            'download_attempts': self._get_int(ENV_DOWNLOAD_ATTEMPTS, DEFAULT_DOWNLOAD_ATTEMPTS),
            'retry_delay': self._get_float(ENV_RETRY_DELAY, DEFAULT_RETRY_DELAY),
            'max_retry_delay': self._get_float(ENV_MAX_RETRY_DELAY, DEFAULT_MAX_RETRY_DELAY),

            # ================================================================
            # DEPENDENCY PRE-CHECK
            # ================================================================
            'check_dependencies': self._get_bool(ENV_CHECK_DEPENDENCIES, True),
            'dependency_attempts': self._get_int(ENV_DEPENDENCY_ATTEMPTS, DEFAULT_DEPENDENCY_ATTEMPTS),

            # ================================================================
            # ARCHIVE SECURITY LIMITS
            # ================================================================
            'max_compressed_bytes': self._get_int(ENV_MAX_COMPRESSED_BYTES, DEFAULT_MAX_COMPRESSED_BYTES),
            'max_uncompressed_bytes': self._get_int(ENV_MAX_UNCOMPRESSED_BYTES, DEFAULT_MAX_UNCOMPRESSED_BYTES),
            'max_compression_ratio': self._get_float(ENV_MAX_COMPRESSION_RATIO, DEFAULT_MAX_COMPRESSION_RATIO),
            'max_file_count': self._get_int(ENV_MAX_FILE_COUNT, DEFAULT_MAX_FILE_COUNT),
            'extraction_timeout': self._get_float(ENV_EXTRACTION_TIMEOUT, DEFAULT_EXTRACTION_TIMEOUT),

            # ================================================================
            # CACHE CONFIGURATION
            # ================================================================
            'use_cache': self._get_bool(ENV_USE_CACHE, False),
            'cache_ttl': self._get_int(ENV_CACHE_TTL, DEFAULT_CACHE_TTL_SECONDS),

            # ================================================================
            # LOGGING CONFIGURATION
            # ================================================================
            'log_level': self._get_env(ENV_LOG_LEVEL, 'INFO'),
            'log_console': self._get_bool(ENV_LOG_CONSOLE, True),
        }

        return config

    def _get_env(self, key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
        """
        Get string environment variable.

        Args:
            key: Environment variable name
            default: Default value if not found
            required: If True, raises ValueError when missing

        Returns:
            Environment variable value or default

        Raises:
            ValueError: If required and not found
        """
        value = os.getenv(key)

        if value is None:
            if required:
                raise ValueError(f"Required environment variable not set: {key}")
            return default

        return value.strip()

    def _get_bool(self, key: str, default: bool) -> bool:
        """Get boolean environment variable."""
        value = os.getenv(key)
        if value is None:
            return default

        return value.strip().lower() in ('true', '1', 'yes', 'on')

    def _get_int(self, key: str, default: int) -> int:
        """
        Get integer environment variable.

        Args:
            key: Environment variable name
            default: Default value if not found or invalid

        Returns:
            Integer value
        """
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return int(value.strip())
        except ValueError:
            return default

    def _get_float(self, key: str, default: float) -> float:
        """
        Get float environment variable.

        Args:
            key: Environment variable name
            default: Default value if not found or invalid

        Returns:
            Float value
        """
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return float(value.strip())
        except ValueError:
            return default

    def _get_path(self, key: str, required: bool = False) -> Optional[Path]:
        """
        Get path environment variable.

        Args:
            key: Environment variable name
            required: If True, raises ValueError when missing

        Returns:
            Path object or None

        Raises:
            ValueError: If required and not found
        """
        value = os.getenv(key)

        if value is None:
            if required:
                raise ValueError(f"Required environment variable not set: {key}")
            return None

        return Path(value.strip())

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value.

        Args:
            key: Configuration key
            default: Default value if not found

        Returns:
            Configuration value or default

        Example:
            config = ConfigLoader()
            temp_dir = config.get('temp_dir')
        """
        value = self._config.get(key)
        return default if value is None else value

    def __getitem__(self, key: str) -> Any:
        """Dictionary-style access to configuration."""
        return self._config[key]

    def __contains__(self, key: str) -> bool:
        """Check if configuration key exists."""
        return key in self._config

    def keys(self):
        """Get all configuration keys."""
        return self._config.keys()

    def items(self):
        """Get all configuration key-value pairs."""
        return self._config.items()


__all__ = ['ConfigLoader']
