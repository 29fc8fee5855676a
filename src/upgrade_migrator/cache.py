"""Disk cache for fetched diffs and release lists."""

import hashlib
import json
import logging
import os
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Generator

if sys.platform == "win32":
    import msvcrt
else:
    import fcntl

from upgrade_migrator.config import get_config

logger = logging.getLogger(__name__)

CACHE_TYPES = ("diff", "releases")


class FileLock:
    """Advisory lock on a sidecar file."""
    
    def __init__(self, lock_file: Path) -> None:
        """Initialize file lock.
        
        Args:
            lock_file: Path to lock file
        """
        self.lock_file = lock_file
        self._lock_fd: int | None = None
    
    def _try_lock(self, fd: int) -> bool:
        try:
            if sys.platform == "win32":
                msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)
            else:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            return False
        return True
    
    def acquire(self, timeout: float = 10.0) -> bool:
        """Acquire the lock, polling until timeout.
        
        Returns:
            True if lock acquired, False otherwise
        """
        self.lock_file.parent.mkdir(parents=True, exist_ok=True)
        deadline = time.monotonic() + timeout
        
        while time.monotonic() < deadline:
            fd = os.open(str(self.lock_file), os.O_CREAT | os.O_RDWR)
            
            if self._try_lock(fd):
                self._lock_fd = fd
                return True
            
            os.close(fd)
            time.sleep(0.05)
        
        logger.warning(f"Could not acquire lock {self.lock_file} after {timeout}s")
        return False
    
    def release(self) -> None:
        """Release the lock."""
        if self._lock_fd is None:
            return
        
        try:
            if sys.platform == "win32":
                msvcrt.locking(self._lock_fd, msvcrt.LK_UNLCK, 1)
            else:
                fcntl.flock(self._lock_fd, fcntl.LOCK_UN)
        except OSError as e:
            logger.debug(f"Error releasing lock: {e}")
        finally:
            os.close(self._lock_fd)
            self._lock_fd = None
    
    def __enter__(self) -> "FileLock":
        self.acquire()
        return self
    
    def __exit__(self, *args: Any) -> None:
        self.release()


class Cache:
    """Disk-based JSON cache with TTL support."""
    
    def __init__(self, cache_dir: Path | None = None, enabled: bool | None = None) -> None:
        """Initialize cache.
        
        Args:
            cache_dir: Directory to store cache files
            enabled: Override the configured enabled flag
        """
        config = get_config()
        self.cache_dir = cache_dir or config.cache_dir
        self.enabled = config.cache_enabled if enabled is None else enabled
        self.locks_dir = self.cache_dir / ".locks"
        self._directories = {name: self.cache_dir / name for name in CACHE_TYPES}
        
        if self.enabled:
            for directory in [*self._directories.values(), self.locks_dir]:
                directory.mkdir(parents=True, exist_ok=True)
    
    @staticmethod
    def _hash_key(key: str) -> str:
        return hashlib.sha256(key.encode()).hexdigest()
    
    def _cache_file(self, cache_type: str, key: str) -> Path | None:
        directory = self._directories.get(cache_type)
        if directory is None:
            logger.warning(f"Unknown cache type: {cache_type}")
            return None
        return directory / f"{self._hash_key(key)}.json"
    
    @contextmanager
    def _lock_key(self, key: str) -> Generator[None, None, None]:
        lock = FileLock(self.locks_dir / f"{self._hash_key(key)}.lock")
        try:
            lock.acquire()
            yield
        finally:
            lock.release()
    
    @staticmethod
    def _is_expired(cache_file: Path, ttl_hours: int) -> bool:
        """Check if cache file has expired (ttl_hours=0 never expires)."""
        if not cache_file.exists():
            return True
        
        if ttl_hours == 0:
            return False
        
        modified_time = datetime.fromtimestamp(cache_file.stat().st_mtime)
        return datetime.now() > modified_time + timedelta(hours=ttl_hours)
    
    def get(self, key: str, cache_type: str = "diff", ttl_hours: int = 24) -> Any | None:
        """Get value from cache.
        
        Args:
            key: Cache key
            cache_type: One of CACHE_TYPES
            ttl_hours: Time-to-live in hours
            
        Returns:
            Cached value or None if not found/expired
        """
        if not self.enabled:
            return None
        
        cache_file = self._cache_file(cache_type, key)
        if cache_file is None or self._is_expired(cache_file, ttl_hours):
            return None
        
        with self._lock_key(key):
            try:
                with open(cache_file, "r", encoding="utf-8") as f:
                    return json.load(f).get("value")
            except json.JSONDecodeError as e:
                logger.warning(f"Corrupted cache file {cache_file}: {e}")
                cache_file.unlink(missing_ok=True)
                return None
            except FileNotFoundError:
                return None
    
    def set(self, key: str, value: Any, cache_type: str = "diff") -> bool:
        """Set value in cache.
        
        Returns:
            True if cached successfully, False otherwise
        """
        if not self.enabled:
            return False
        
        cache_file = self._cache_file(cache_type, key)
        if cache_file is None:
            return False
        
        data = {
            "key": key,
            "value": value,
            "cached_at": datetime.now().isoformat(),
        }
        
        with self._lock_key(key):
            try:
                # Write to temp file first, then rename
                temp_file = cache_file.with_suffix(".tmp")
                temp_file.write_text(json.dumps(data), encoding="utf-8")
                temp_file.replace(cache_file)
                return True
            except TypeError as e:
                logger.error(f"Cannot serialize value for cache key {key}: {e}")
            except OSError as e:
                logger.error(f"Error writing cache file {cache_file}: {e}")
        
        return False
    
    def delete(self, key: str, cache_type: str = "diff") -> bool:
        """Delete a cache entry."""
        if not self.enabled:
            return False
        
        cache_file = self._cache_file(cache_type, key)
        if cache_file is None:
            return False
        
        with self._lock_key(key):
            cache_file.unlink(missing_ok=True)
        return True
    
    def clear(self, cache_type: str | None = None) -> int:
        """Clear one cache type, or all of them.
        
        Returns:
            Number of files deleted
        """
        if not self.enabled:
            return 0
        
        names = CACHE_TYPES if cache_type is None else (cache_type,)
        deleted_count = 0
        
        for name in names:
            directory = self._directories.get(name)
            if directory is None or not directory.exists():
                continue
            
            for file in directory.glob("*.json"):
                try:
                    file.unlink()
                    deleted_count += 1
                except OSError as e:
                    logger.error(f"Error deleting cache file {file}: {e}")
        
        return deleted_count
    
    def get_stats(self) -> dict[str, Any]:
        """Get file count and size per cache type."""
        stats = {}
        
        for name, directory in self._directories.items():
            files = list(directory.glob("*.json")) if directory.exists() else []
            total_size = sum(f.stat().st_size for f in files)
            stats[name] = {"files": len(files), "size_bytes": total_size}
        
        return stats


# Global cache instance
_cache: Cache | None = None


def get_cache() -> Cache:
    """Get or create global cache instance."""
    global _cache
    
    if _cache is None:
        _cache = Cache()
    
    return _cache


def reset_cache() -> None:
    """Drop the global cache so the next call recreates it from config."""
    global _cache
    _cache = None
