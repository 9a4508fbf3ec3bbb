# Path: exporter/core/workspace.py
"""
Export Workspace

Scoped temporary storage for one export run.

Architecture:
- One directory per run, created on entry
- Fixed locations for the archive and the extracted tree
- Removed on every exit path (normal return, exception, cancellation)
"""

import shutil
import tempfile
from pathlib import Path
from typing import Optional

from exporter.core.logger import get_logger
from exporter.core.config_loader import ConfigLoader
from exporter.constants import (
    WORKSPACE_PREFIX,
    ARCHIVE_FILENAME,
    EXTRACTED_DIRNAME,
    LOG_PROCESS,
)

logger = get_logger(__name__, 'core')


class WorkspaceHandle:
    """
    Temporary directory owned by a single export run.

    Example:
        with WorkspaceHandle() as workspace:
            await downloader.download(url, workspace.archive_path)
            extractor.extract(workspace.archive_path, workspace.extract_dir)
        # directory is gone here
    """

    def __init__(
        self,
        base_dir: Optional[Path] = None,
        config: Optional[ConfigLoader] = None
    ):
        """
        Initialize workspace handle.

        Args:
            base_dir: Parent directory for the workspace (from config if None,
                system temp dir if unset)
            config: Optional ConfigLoader instance
        """
        self.config = config if config else ConfigLoader()
        self.base_dir = base_dir if base_dir is not None else self.config.get('temp_dir')
        self.root: Optional[Path] = None

    def create(self) -> Path:
        """Create the workspace directory and return its path."""
        if self.base_dir is not None:
            Path(self.base_dir).mkdir(parents=True, exist_ok=True)
        self.root = Path(tempfile.mkdtemp(
            prefix=WORKSPACE_PREFIX,
            dir=str(self.base_dir) if self.base_dir is not None else None
        ))
        logger.debug(f"{LOG_PROCESS} Workspace created: {self.root}")
        return self.root

    @property
    def archive_path(self) -> Path:
        """Location of the downloaded archive."""
        self._require_root()
        return self.root / ARCHIVE_FILENAME

    @property
    def extract_dir(self) -> Path:
        """Location of the extracted tree."""
        self._require_root()
        return self.root / EXTRACTED_DIRNAME

    def release(self) -> None:
        """Remove the workspace directory. Safe to call more than once."""
        if self.root is None:
            return
        shutil.rmtree(self.root, ignore_errors=True)
        logger.debug(f"{LOG_PROCESS} Workspace released: {self.root}")
        self.root = None

    def _require_root(self) -> None:
        if self.root is None:
            raise RuntimeError("Workspace not created. Use as context manager.")

    def __enter__(self) -> 'WorkspaceHandle':
        self.create()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()


__all__ = ['WorkspaceHandle']
