# Path: exporter/__main__.py
"""
Exporter - Main Entry Point

Usage:
    python -m exporter matter-litigation --output package.json
"""

import sys

from exporter.cli.export_cli import main


if __name__ == '__main__':
    sys.exit(main())
