# Path: exporter/engine/cache.py
"""
Export Cache

Optional cache of reorganized packages, to skip re-exporting a work type
that was exported recently.

Architecture:
- Keyed by sha256 of server URL and entity selector
- Entry remembers the source version it was exported from
- TTL-based expiration
- In-memory, plus JSON files when a cache directory is configured
- Statistics tracking (hits, misses)

Usage:
    cache = ExportCache(server_url='https://tenant.example.com')

    package = cache.get_cached_package('matter-litigation')
    if package is None:
        package = ...  # run the export
        cache.cache_package('matter-litigation', package)
"""

import hashlib
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from exporter.core.config_loader import ConfigLoader
from exporter.core.logger import get_logger
from exporter.engine.reorganizer.package import ExtractedPackage
from exporter.constants import (
    DEFAULT_CACHE_TTL_SECONDS,
    CACHE_FILE_SUFFIX,
    LOG_INPUT,
    LOG_OUTPUT,
)

logger = get_logger(__name__, 'engine')

CACHE_KEY_LENGTH = 16


class ExportCache:
    """
    Cache for exported packages.

    Features:
    - TTL-based expiration
    - Source version check on lookup
    - Optional on-disk persistence
    - Statistics tracking

    Example:
        cache = ExportCache(server_url=base_url, cache_dir=Path('/var/cache/exporter'))
        cached = cache.get_cached_package('matter-litigation', source_version='7.2.0.1')
    """

    def __init__(
        self,
        server_url: str,
        cache_dir: Optional[Path] = None,
        ttl_seconds: Optional[int] = None,
        config: Optional[ConfigLoader] = None
    ):
        """
        Initialize export cache.

        Args:
            server_url: Server the packages come from (part of the key)
            cache_dir: Directory for JSON entries (from config if None;
                memory only when unset)
            ttl_seconds: Entry lifetime (from config if None)
            config: Optional ConfigLoader instance
        """
        self.config = config if config else ConfigLoader()
        self.server_url = server_url.rstrip('/')
        self.cache_dir = cache_dir if cache_dir is not None else self.config.get('cache_dir')
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else \
            self.config.get('cache_ttl', DEFAULT_CACHE_TTL_SECONDS)

        self._cache: dict[str, dict[str, Any]] = {}
        self._hits = 0
        self._misses = 0

        logger.debug(f"{LOG_OUTPUT} Export cache initialized (TTL={self.ttl_seconds}s)")

    def make_key(self, entity_selector: str) -> str:
        """Cache key for a work type on this server."""
        digest = hashlib.sha256(f"{self.server_url}:{entity_selector}".encode('utf-8'))
        return digest.hexdigest()[:CACHE_KEY_LENGTH]

    def get_cached_package(
        self,
        entity_selector: str,
        source_version: Optional[str] = None
    ) -> Optional[ExtractedPackage]:
        """
        Get cached package for a work type.

        Args:
            entity_selector: Work type system name
            source_version: When given, entries from another version miss

        Returns:
            Cached package or None if not found/expired/stale
        """
        key = self.make_key(entity_selector)
        entry = self._cache.get(key) or self._read_entry(key)

        if entry is None:
            self._misses += 1
            logger.debug(f"{LOG_OUTPUT} Cache miss: {entity_selector}")
            return None

        if self._is_expired(entry['cached_at']):
            logger.debug(f"{LOG_OUTPUT} Cache expired: {entity_selector}")
            self.invalidate(entity_selector)
            self._misses += 1
            return None

        if source_version and entry.get('source_version') != source_version:
            logger.debug(
                f"{LOG_OUTPUT} Cache stale: {entity_selector} "
                f"({entry.get('source_version')} != {source_version})"
            )
            self._misses += 1
            return None

        self._cache[key] = entry
        self._hits += 1
        logger.info(f"{LOG_OUTPUT} Cache hit: {entity_selector}")
        return ExtractedPackage.from_dict(entry['package'])

    def cache_package(self, entity_selector: str, package: ExtractedPackage) -> None:
        """
        Cache a reorganized package.

        Args:
            entity_selector: Work type system name
            package: Package to store
        """
        key = self.make_key(entity_selector)
        entry = {
            'entity_selector': entity_selector,
            'source_version': package.source_version,
            'cached_at': datetime.now().isoformat(),
            'package': package.to_dict(),
        }
        self._cache[key] = entry
        self._write_entry(key, entry)
        logger.debug(f"{LOG_INPUT} Cached package: {entity_selector}")

    def invalidate(self, entity_selector: str) -> None:
        """Remove the entry for a work type."""
        key = self.make_key(entity_selector)
        self._cache.pop(key, None)
        path = self._entry_path(key)
        if path is not None and path.exists():
            path.unlink()
        logger.debug(f"{LOG_OUTPUT} Invalidated cache: {entity_selector}")

    def get_statistics(self) -> dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dictionary with cache statistics
        """
        total_requests = self._hits + self._misses
        hit_rate = (
            (self._hits / total_requests * 100)
            if total_requests > 0
            else 0.0
        )

        return {
            'cache_hits': self._hits,
            'cache_misses': self._misses,
            'total_requests': total_requests,
            'hit_rate_percentage': round(hit_rate, 2),
            'cache_size': len(self._cache),
            'ttl_seconds': self.ttl_seconds,
        }

    def _is_expired(self, cached_at: str) -> bool:
        age = datetime.now() - datetime.fromisoformat(cached_at)
        return age.total_seconds() > self.ttl_seconds

    def _entry_path(self, key: str) -> Optional[Path]:
        if not self.cache_dir:
            return None
        return Path(self.cache_dir) / f"{key}{CACHE_FILE_SUFFIX}"

    def _read_entry(self, key: str) -> Optional[dict[str, Any]]:
        path = self._entry_path(key)
        if path is None or not path.exists():
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (ValueError, OSError) as e:
            logger.warning(f"{LOG_OUTPUT} Ignoring unreadable cache entry {path.name}: {e}")
            return None

    def _write_entry(self, key: str, entry: dict[str, Any]) -> None:
        path = self._entry_path(key)
        if path is None:
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(entry, f, default=str)


__all__ = ['ExportCache']
