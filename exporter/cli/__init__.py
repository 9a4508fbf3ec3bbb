# Path: exporter/cli/__init__.py
"""
Exporter CLI Module

Command-line entry point for running exports.
"""

from .export_cli import main

__all__ = ['main']
