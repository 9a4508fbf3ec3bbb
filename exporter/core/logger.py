# Path: exporter/core/logger.py
"""
Exporter Module Logger

Centralized logging configuration for the exporter module.

Architecture:
- Component-based logging (core, engine, cli, extraction)
- File and console output
- Configurable log levels
- IPO (Input-Process-Output) structured logging
"""

import logging
from typing import Optional

from exporter.core.config_loader import ConfigLoader
from exporter.constants import (
    LOG_FORMAT,
    LOG_DATE_FORMAT,
    LOG_ACTIVITY_FILENAME,
    LOG_ERROR_FILENAME,
    LOGGER_ROOT,
    LOGGER_CORE,
    LOGGER_ENGINE,
    LOGGER_CLI,
    LOGGER_EXTRACTION,
)


COMPONENT_LOGGERS = {
    'core': LOGGER_CORE,
    'engine': LOGGER_ENGINE,
    'cli': LOGGER_CLI,
    'extraction': LOGGER_EXTRACTION,
}


class ExporterLogger:
    """
    Centralized logger for exporter module.

    Provides component-specific loggers with unified configuration.

    Example:
        logger = get_logger(__name__, 'engine')
        logger.info("[INPUT] Starting export for work type XYZ")
        logger.info("[PROCESS] Polling job status")
        logger.info("[OUTPUT] Export completed: 12 artifacts in 5s")
    """

    def __init__(self, config: Optional[ConfigLoader] = None):
        """
        Initialize exporter logger.

        Args:
            config: Optional ConfigLoader instance
        """
        self.config = config if config else ConfigLoader()
        self._configured = False

    def configure(self, console_handler: Optional[logging.Handler] = None) -> None:
        """
        Configure logging system for exporter module.

        Args:
            console_handler: Optional handler replacing the default console
                handler (the CLI passes a rich handler here)
        """
        if self._configured and console_handler is None:
            return

        log_dir = self.config.get('log_dir')
        log_level = getattr(logging, str(self.config.get('log_level', 'INFO')).upper(), logging.INFO)
        console_output = self.config.get('log_console', True)

        logger = logging.getLogger(LOGGER_ROOT)
        logger.setLevel(log_level)

        # Clear any existing handlers
        logger.handlers.clear()

        if log_dir:
            log_dir.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_dir / LOG_ACTIVITY_FILENAME)
            file_handler.setLevel(log_level)
            file_handler.setFormatter(
                logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
            )
            logger.addHandler(file_handler)

            # Error-only log file
            error_handler = logging.FileHandler(log_dir / LOG_ERROR_FILENAME)
            error_handler.setLevel(logging.ERROR)
            error_handler.setFormatter(
                logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
            )
            logger.addHandler(error_handler)

        if console_handler is not None:
            console_handler.setLevel(log_level)
            logger.addHandler(console_handler)
        elif console_output:
            stream_handler = logging.StreamHandler()
            stream_handler.setLevel(log_level)
            stream_handler.setFormatter(
                logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
            )
            logger.addHandler(stream_handler)

        self._configured = True

    def get_logger(self, name: str, component: str = 'core') -> logging.Logger:
        """
        Get logger for specific component.

        Args:
            name: Module name (typically __name__)
            component: Component type ('core', 'engine', 'cli', 'extraction')

        Returns:
            Logger instance under the exporter namespace
        """
        prefix = COMPONENT_LOGGERS.get(component, LOGGER_ROOT)
        return logging.getLogger(f"{prefix}.{name}")


# Global logger instance
_exporter_logger = ExporterLogger()


def get_logger(name: str, component: str = 'core') -> logging.Logger:
    """
    Get logger for exporter module component.

    Loggers are plain stdlib loggers; handlers are attached once by
    configure_logging() at the entry point.

    Args:
        name: Module name (typically __name__)
        component: Component type ('core', 'engine', 'cli', 'extraction')

    Returns:
        Logger instance

    Example:
        from exporter.core.logger import get_logger

        logger = get_logger(__name__, 'engine')
        logger.info("[INPUT] Processing export request")
    """
    return _exporter_logger.get_logger(name, component)


def configure_logging(
    config: Optional[ConfigLoader] = None,
    console_handler: Optional[logging.Handler] = None
) -> None:
    """
    Configure exporter logging system.

    Call this once at program start.

    Args:
        config: Optional ConfigLoader instance
        console_handler: Optional console handler (e.g. rich RichHandler)
    """
    global _exporter_logger

    if config:
        _exporter_logger = ExporterLogger(config)

    _exporter_logger.configure(console_handler=console_handler)


__all__ = ['get_logger', 'configure_logging', 'ExporterLogger']
