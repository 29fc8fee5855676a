"""Pre-mutation file snapshots and rollback."""

import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path

from upgrade_migrator.config import get_config
from upgrade_migrator.exceptions import BackupError
from upgrade_migrator.models import ComplexChange

logger = logging.getLogger(__name__)

SKIP_DIRECTORIES = frozenset({"node_modules", ".git", "Pods", "build", ".gradle"})


def relative_path(diff_path: str, root_prefix: str) -> str:
    """Strip the synthetic diff root from a path."""
    if root_prefix and diff_path.startswith(root_prefix):
        return diff_path[len(root_prefix):]
    return diff_path


def file_category(path: str) -> str:
    """Coarse category of a backed-up file."""
    name = path.rsplit("/", 1)[-1]
    extension = name.rsplit(".", 1)[-1].lower() if "." in name else ""
    
    if name == "package.json":
        return "manifest"
    if "gradle" in name or extension in {"gradle", "jar"}:
        return "gradle"
    if ("ios/" in path or "android/" in path) and extension in {"m", "mm", "swift", "java", "kt"}:
        return "native"
    if extension in {"so", "dylib", "dll", "a", "lib", "o", "obj", "png", "jpg", "keystore"}:
        return "binary"
    if extension in {"js", "ts", "jsx", "tsx"}:
        return "source"
    return "config"


@dataclass(frozen=True)
class BackupHandle:
    """Location of a file and its snapshot."""
    
    original: Path
    backup: Path
    
    @classmethod
    def for_path(cls, path: Path, suffix: str = ".backup") -> "BackupHandle":
        """Sibling snapshot at path + suffix."""
        return cls(original=path, backup=path.with_name(path.name + suffix))
    
    @classmethod
    def timestamped(
        cls,
        path: Path,
        suffix: str = ".backup",
        timestamp: int | None = None,
    ) -> "BackupHandle":
        """Sibling snapshot at path + suffix + .<milliseconds>."""
        if timestamp is None:
            timestamp = int(time.time() * 1000)
        return cls(original=path, backup=path.with_name(f"{path.name}{suffix}.{timestamp}"))
    
    @property
    def exists(self) -> bool:
        """Check if the snapshot is on disk."""
        return self.backup.exists()


@dataclass
class BackupRecord:
    """Snapshot of one file taken before it was mutated."""
    
    handle: BackupHandle
    file_category: str
    timestamp: float
    size_bytes: int
    
    @property
    def original_path(self) -> Path:
        return self.handle.original
    
    @property
    def backup_path(self) -> Path:
        return self.handle.backup


@dataclass
class BatchResult:
    """Outcome of a batch restore or cleanup."""
    
    succeeded: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    
    @property
    def success(self) -> bool:
        return not self.errors


@dataclass
class ComprehensiveBackupSet:
    """All snapshots taken for one migration run."""
    
    project_root: Path
    version: str
    timestamp: int
    records: list[BackupRecord] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    
    @property
    def key(self) -> str:
        """Identifier of the run: project, target version and time."""
        return f"{self.project_root}:{self.version}:{self.timestamp}"
    
    @property
    def total_files(self) -> int:
        return len(self.records)
    
    def record_for(self, path: Path) -> BackupRecord | None:
        """Get the snapshot taken for a path, if any."""
        resolved = Path(path).resolve()
        for record in self.records:
            if record.original_path.resolve() == resolved:
                return record
        return None


class BackupManager:
    """Creates, restores and discards file snapshots."""
    
    def __init__(self, project_root: Path, suffix: str | None = None) -> None:
        """Initialize manager.
        
        Args:
            project_root: Root directory of the project
            suffix: Backup file suffix (defaults to config)
        """
        config = get_config()
        self.project_root = Path(project_root)
        self.suffix = suffix or config.backup_suffix
        self.root_prefix = config.root_prefix
        self._session: dict[Path, BackupRecord] = {}
    
    def _absolute(self, path: Path | str) -> Path:
        path = Path(path)
        return path if path.is_absolute() else self.project_root / path
    
    def backup(
        self,
        path: Path | str,
        category: str | None = None,
        timestamped: bool = False,
    ) -> BackupRecord:
        """Snapshot a file's current bytes.
        
        Args:
            path: File to snapshot, absolute or relative to the project
            category: File category (derived from the path if omitted)
            timestamped: Write to a timestamped sibling instead of
                overwriting the plain backup
            
        Returns:
            BackupRecord for the snapshot
            
        Raises:
            BackupError: If the file is missing, the snapshot cannot be
                written, or a plain snapshot from an earlier run is in the
                way
        """
        original = self._absolute(path)
        handle = (
            BackupHandle.timestamped(original, self.suffix) if timestamped
            else BackupHandle.for_path(original, self.suffix)
        )
        
        if not timestamped and handle.backup.is_file() and original.resolve() not in self._session:
            raise BackupError(
                str(original),
                f"{handle.backup.name} is left from an earlier run; restore or clean it up first",
            )
        
        try:
            data = original.read_bytes()
        except FileNotFoundError as e:
            raise BackupError(str(original), "File not found") from e
        except OSError as e:
            raise BackupError(str(original), f"Cannot read: {e}") from e
        
        try:
            handle.backup.write_bytes(data)
        except OSError as e:
            raise BackupError(str(original), f"Cannot write {handle.backup}: {e}") from e
        
        record = BackupRecord(
            handle=handle,
            file_category=category or file_category(str(original)),
            timestamp=time.time(),
            size_bytes=len(data),
        )
        self._session[original.resolve()] = record
        
        logger.debug(f"Backed up {original} -> {handle.backup} ({len(data)} bytes)")
        return record
    
    def ensure_backup(self, path: Path | str) -> BackupRecord:
        """Get this session's snapshot of a path, taking one if needed.
        
        Reusing the first snapshot keeps it pointing at the pre-run bytes.
        
        Raises:
            BackupError: If a new snapshot cannot be taken
        """
        original = self._absolute(path)
        existing = self._session.get(original.resolve())
        if existing is not None and existing.handle.exists:
            return existing
        return self.backup(original)
    
    def adopt(self, backup_set: ComprehensiveBackupSet) -> None:
        """Reuse the snapshots of a comprehensive backup in this session."""
        for record in backup_set.records:
            self._session[record.original_path.resolve()] = record
    
    def restore(self, record: BackupRecord) -> bool:
        """Overwrite the original file with its snapshot.
        
        Returns:
            True if the original now holds the snapshot bytes
        """
        try:
            data = record.backup_path.read_bytes()
            record.original_path.parent.mkdir(parents=True, exist_ok=True)
            record.original_path.write_bytes(data)
        except OSError as e:
            logger.error(f"Failed to restore {record.original_path}: {e}")
            return False
        
        logger.info(f"Restored {record.original_path}")
        return True
    
    def cleanup(self, record: BackupRecord) -> bool:
        """Remove a snapshot.
        
        Returns:
            True if the snapshot is gone
        """
        try:
            record.backup_path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to remove {record.backup_path}: {e}")
            return False
        
        self._session.pop(record.original_path.resolve(), None)
        logger.debug(f"Removed backup {record.backup_path}")
        return True
    
    def comprehensive_backup(
        self,
        changes: list[ComplexChange],
        version: str,
    ) -> ComprehensiveBackupSet:
        """Snapshot every distinct existing file referenced by changes.
        
        Missing files are skipped (they are about to be created); other
        failures are recorded on the set and do not stop the batch.
        
        Args:
            changes: Changes about to be applied
            version: Target release of the run
            
        Returns:
            ComprehensiveBackupSet
        """
        backup_set = ComprehensiveBackupSet(
            project_root=self.project_root,
            version=version,
            timestamp=int(time.time() * 1000),
        )
        
        paths = list(dict.fromkeys(
            relative_path(c.file_path, self.root_prefix) for c in changes
        ))
        
        for path in paths:
            if not self._absolute(path).is_file():
                logger.debug(f"File not found, skipping backup: {path}")
                continue
            try:
                backup_set.records.append(self.backup(path))
            except BackupError as e:
                backup_set.errors.append(str(e))
                logger.warning(str(e))
        
        logger.info(f"Created comprehensive backup with {backup_set.total_files} file(s)")
        return backup_set
    
    def restore_all(self, backup_set: ComprehensiveBackupSet) -> BatchResult:
        """Restore every snapshot of a run, continuing past failures."""
        result = BatchResult()
        
        for record in backup_set.records:
            if self.restore(record):
                result.succeeded.append(str(record.original_path))
            else:
                result.errors.append(f"Failed to restore {record.original_path}")
        
        return result
    
    def cleanup_all(self, backup_set: ComprehensiveBackupSet) -> BatchResult:
        """Remove every snapshot of a run, continuing past failures."""
        result = BatchResult()
        
        for record in backup_set.records:
            if self.cleanup(record):
                result.succeeded.append(str(record.backup_path))
            else:
                result.errors.append(f"Failed to clean up {record.backup_path}")
        
        return result
    
    def find_backups(self, latest_only: bool = True) -> list[BackupRecord]:
        """Find snapshots left in the project tree.
        
        Args:
            latest_only: Return only the newest snapshot of each file
            
        Returns:
            Records sorted by original path
        """
        found: list[BackupRecord] = []
        latest: dict[Path, BackupRecord] = {}
        
        for dirpath, dirnames, filenames in os.walk(self.project_root):
            dirnames[:] = [d for d in dirnames if d not in SKIP_DIRECTORIES]
            
            for filename in filenames:
                original_name = self._original_name(filename)
                if original_name is None:
                    continue
                
                backup_path = Path(dirpath) / filename
                stat = backup_path.stat()
                record = BackupRecord(
                    handle=BackupHandle(Path(dirpath) / original_name, backup_path),
                    file_category=file_category(original_name),
                    timestamp=stat.st_mtime,
                    size_bytes=stat.st_size,
                )
                
                found.append(record)
                current = latest.get(record.original_path)
                if current is None or record.timestamp >= current.timestamp:
                    latest[record.original_path] = record
        
        if not latest_only:
            return sorted(found, key=lambda r: (r.original_path, r.timestamp))
        return [latest[p] for p in sorted(latest)]
    
    def leftover_backups(self) -> list[BackupRecord]:
        """Plain snapshots in the project tree that this session did not take."""
        return [
            record for record in self.find_backups(latest_only=False)
            if record.backup_path.name.endswith(self.suffix)
            and record.original_path.resolve() not in self._session
        ]
    
    def _original_name(self, filename: str) -> str | None:
        """Name of the file a snapshot belongs to, or None."""
        if filename.endswith(self.suffix) and len(filename) > len(self.suffix):
            return filename[: -len(self.suffix)]
        
        marker = f"{self.suffix}."
        if marker in filename:
            base, _, stamp = filename.rpartition(marker)
            if base and stamp.isdigit():
                return base
        
        return None
