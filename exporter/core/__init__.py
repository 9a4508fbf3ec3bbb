# Path: exporter/core/__init__.py
"""
Exporter Core Module

Core utilities for the exporter module including configuration,
logging, and per-run workspace management.
"""

from .config_loader import ConfigLoader
from .logger import get_logger, configure_logging
from .workspace import WorkspaceHandle

__all__ = [
    'ConfigLoader',
    'get_logger',
    'configure_logging',
    'WorkspaceHandle',
]
