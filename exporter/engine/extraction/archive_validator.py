# Path: exporter/engine/extraction/archive_validator.py
"""
Archive Validator and Extractor

Validates a downloaded ZIP archive against the security limits and
extracts it only when every check passes.

Architecture:
- All checks run on the central directory before any byte is written
- Every violation is collected, not just the first
- Extraction streams members in a worker thread under a time budget
- Partial output is removed on any extraction failure

CRITICAL PRINCIPLE: The archive is untrusted input.
Declared sizes and names are verified, never assumed.
"""

import asyncio
import re
import shutil
import threading
import time
import zipfile
import zlib
from pathlib import Path, PurePosixPath
from typing import Optional

from exporter.core.logger import get_logger
from exporter.engine.errors import ArchiveSecurityViolation, ExtractionTimeout
from exporter.engine.result import ExtractionResult
from exporter.engine.extraction.limits import (
    SecurityLimitsPolicy,
    SecurityViolation,
    get_default_policy,
    VIOLATION_COMPRESSED_SIZE,
    VIOLATION_FILE_COUNT,
    VIOLATION_PATH_TRAVERSAL,
    VIOLATION_UNCOMPRESSED_SIZE,
    VIOLATION_COMPRESSION_RATIO,
    VIOLATION_DECLARED_SIZE,
    VIOLATION_CORRUPT_ARCHIVE,
)
from exporter.constants import (
    DEFAULT_CHUNK_SIZE,
    LOG_INPUT,
    LOG_PROCESS,
    LOG_OUTPUT,
)

logger = get_logger(__name__, 'extraction')

DRIVE_LETTER_PATTERN = re.compile(r'^[A-Za-z]:')

# Raised by zipfile for damaged, encrypted or unsupported members
MEMBER_READ_ERRORS = (
    zipfile.BadZipFile,
    zlib.error,
    EOFError,
    RuntimeError,
    NotImplementedError,
    OSError,
)


class _ExtractionStopped(Exception):
    """Raised inside the worker when the stop flag is set."""
    pass


class ArchiveValidatorExtractor:
    """
    Validates and extracts export archives.

    Features:
    - Compressed size, entry count, uncompressed size and ratio limits
    - Path traversal rejection (.., absolute, drive letters, backslashes)
    - Streaming extraction enforcing declared member sizes
    - Timeout with cooperative stop and cleanup

    Example:
        extractor = ArchiveValidatorExtractor()
        result = await extractor.extract(
            archive_path=Path('/tmp/export-x/package.zip'),
            destination=Path('/tmp/export-x/extracted')
        )
    """

    def __init__(
        self,
        policy: Optional[SecurityLimitsPolicy] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE
    ):
        """
        Initialize validator.

        Args:
            policy: Security limits (process-wide default if None)
            chunk_size: Read size while streaming members
        """
        self.policy = policy if policy else get_default_policy()
        self.chunk_size = chunk_size

    def validate(self, archive_path: Path, destination: Path) -> list[SecurityViolation]:
        """
        Run every safety check without writing anything.

        Args:
            archive_path: Path to ZIP file
            destination: Intended extraction directory

        Returns:
            List of violations (empty when the archive is acceptable)
        """
        logger.info(f"{LOG_INPUT} Validating archive: {archive_path.name}")

        violations = []
        policy = self.policy

        compressed_size = archive_path.stat().st_size
        if compressed_size > policy.max_compressed_bytes:
            violations.append(SecurityViolation(
                VIOLATION_COMPRESSED_SIZE,
                f"archive is {compressed_size} bytes, limit {policy.max_compressed_bytes}"
            ))

        try:
            with zipfile.ZipFile(archive_path, 'r') as zf:
                infos = zf.infolist()
        except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError) as e:
            violations.append(SecurityViolation(VIOLATION_CORRUPT_ARCHIVE, str(e)))
            return violations

        if len(infos) > policy.max_file_count:
            violations.append(SecurityViolation(
                VIOLATION_FILE_COUNT,
                f"{len(infos)} entries, limit {policy.max_file_count}"
            ))

        for info in infos:
            reason = self._unsafe_path_reason(info.filename, destination)
            if reason:
                violations.append(SecurityViolation(
                    VIOLATION_PATH_TRAVERSAL, reason, member=info.filename
                ))

        uncompressed_total = sum(info.file_size for info in infos)
        if uncompressed_total > policy.max_uncompressed_bytes:
            violations.append(SecurityViolation(
                VIOLATION_UNCOMPRESSED_SIZE,
                f"declared {uncompressed_total} bytes, limit {policy.max_uncompressed_bytes}"
            ))

        if compressed_size > 0:
            ratio = uncompressed_total / compressed_size
            if ratio > policy.max_compression_ratio:
                violations.append(SecurityViolation(
                    VIOLATION_COMPRESSION_RATIO,
                    f"ratio {ratio:.1f}:1, limit {policy.max_compression_ratio:.0f}:1"
                ))

        if violations:
            logger.warning(
                f"{LOG_OUTPUT} Archive rejected with {len(violations)} violation(s): "
                f"{', '.join(v.code for v in violations)}"
            )
        else:
            logger.info(
                f"{LOG_OUTPUT} Archive accepted: {len(infos)} entries, "
                f"{uncompressed_total} bytes declared"
            )

        return violations

    async def extract(self, archive_path: Path, destination: Path) -> ExtractionResult:
        """
        Validate, then extract under the time budget.

        Args:
            archive_path: Path to ZIP file
            destination: Extraction directory (created)

        Returns:
            ExtractionResult with extraction details

        Raises:
            ArchiveSecurityViolation: Any check failed (nothing written)
                or a member exceeded its declared size (output removed)
            ExtractionTimeout: Budget exceeded (output removed)
        """
        violations = await asyncio.to_thread(self.validate, archive_path, destination)
        if violations:
            raise ArchiveSecurityViolation(violations)

        stop_flag = threading.Event()
        worker = asyncio.ensure_future(
            asyncio.to_thread(self._extract_members, archive_path, destination, stop_flag)
        )

        try:
            return await asyncio.wait_for(
                asyncio.shield(worker),
                timeout=self.policy.extraction_timeout
            )
        except asyncio.TimeoutError:
            stop_flag.set()
            try:
                await worker
            except _ExtractionStopped:
                pass
            self._remove_tree(destination)
            logger.error(
                f"{LOG_OUTPUT} Extraction timed out after "
                f"{self.policy.extraction_timeout:.1f}s"
            )
            raise ExtractionTimeout(self.policy.extraction_timeout)
        except asyncio.CancelledError:
            stop_flag.set()
            # Worker must finish before the caller removes the workspace
            await asyncio.wait({worker})
            if not worker.cancelled():
                worker.exception()
            raise

    def _extract_members(
        self,
        archive_path: Path,
        destination: Path,
        stop_flag: threading.Event
    ) -> ExtractionResult:
        """
        Stream every member to disk. Runs in a worker thread.

        Raises:
            _ExtractionStopped: Stop flag set between chunks or members
            ArchiveSecurityViolation: Declared size exceeded or corrupt data
        """
        logger.info(f"{LOG_PROCESS} Extracting {archive_path.name} -> {destination}")

        start_time = time.time()
        result = ExtractionResult(extract_directory=destination, archive_path=archive_path)
        destination.mkdir(parents=True, exist_ok=True)
        root = destination.resolve()

        try:
            with zipfile.ZipFile(archive_path, 'r') as zf:
                for info in zf.infolist():
                    if stop_flag.is_set():
                        raise _ExtractionStopped()

                    target = (root / info.filename).resolve()
                    result.members.append(info.filename)

                    if info.is_dir():
                        target.mkdir(parents=True, exist_ok=True)
                        continue

                    target.parent.mkdir(parents=True, exist_ok=True)
                    written = self._copy_member(zf, info, target, stop_flag)
                    result.files_extracted += 1
                    result.bytes_extracted += written

        except (ArchiveSecurityViolation, _ExtractionStopped):
            self._remove_tree(destination)
            raise
        except MEMBER_READ_ERRORS as e:
            self._remove_tree(destination)
            raise ArchiveSecurityViolation([
                SecurityViolation(VIOLATION_CORRUPT_ARCHIVE, f"{type(e).__name__}: {e}")
            ]) from e
        except BaseException:
            self._remove_tree(destination)
            raise

        result.duration = time.time() - start_time
        logger.info(
            f"{LOG_OUTPUT} Extraction complete: {result.files_extracted} files, "
            f"{result.bytes_extracted} bytes in {result.duration:.2f}s"
        )
        return result

    def _copy_member(
        self,
        zf: zipfile.ZipFile,
        info: zipfile.ZipInfo,
        target: Path,
        stop_flag: threading.Event
    ) -> int:
        """Copy one member, refusing to write past its declared size."""
        written = 0
        with zf.open(info) as src, open(target, 'wb') as dst:
            while True:
                if stop_flag.is_set():
                    raise _ExtractionStopped()
                chunk = src.read(self.chunk_size)
                if not chunk:
                    break
                written += len(chunk)
                if written > info.file_size:
                    raise ArchiveSecurityViolation([SecurityViolation(
                        VIOLATION_DECLARED_SIZE,
                        f"wrote more than declared {info.file_size} bytes",
                        member=info.filename
                    )])
                dst.write(chunk)
        return written

    def _unsafe_path_reason(self, name: str, destination: Path) -> Optional[str]:
        """
        Check one entry name.

        Args:
            name: Entry name as stored in the archive
            destination: Intended extraction directory

        Returns:
            Reason string when the name is unsafe, None otherwise
        """
        if name.startswith('/'):
            return 'absolute path'
        if name.startswith('\\'):
            return 'leading backslash'
        if DRIVE_LETTER_PATTERN.match(name):
            return 'drive letter'

        segments = re.split(r'[\\/]', name)
        if '..' in segments:
            return 'parent directory segment'

        try:
            (destination / PurePosixPath(name)).resolve().relative_to(destination.resolve())
        except ValueError:
            return 'resolves outside destination'

        return None

    @staticmethod
    def _remove_tree(destination: Path) -> None:
        if destination.exists():
            shutil.rmtree(destination, ignore_errors=True)
            logger.info(f"{LOG_PROCESS} Removed partial extraction: {destination}")


__all__ = ['ArchiveValidatorExtractor']
