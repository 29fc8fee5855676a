"""Application of selected changes onto a project tree."""

import logging
from pathlib import Path
from typing import Callable

from upgrade_migrator.backup import BackupManager, ComprehensiveBackupSet, relative_path
from upgrade_migrator.binary import BinaryFetcher, sha256
from upgrade_migrator.config import get_config
from upgrade_migrator.exceptions import ApplyError, MigrationError
from upgrade_migrator.manifest import MANIFEST_NAME, ManifestUpdater
from upgrade_migrator.models import (
    AppliedChange,
    ApplyResult,
    ChangeKind,
    ChangeStatus,
    ComplexChange,
    DiffFileRecord,
    PackageUpdate,
)
from upgrade_migrator.parsers import gradle
from upgrade_migrator.parsers.diff import DiffParser, ParsedDiff
from upgrade_migrator.parsers.hunks import replay_content
from upgrade_migrator.patching import LiteralReplacePatch, PatchStrategy

logger = logging.getLogger(__name__)

AUTOMATION_STATUS: dict[ChangeKind, tuple[bool, str]] = {
    ChangeKind.NATIVE_CODE: (True, "Native code files (iOS/Android) will be automatically updated"),
    ChangeKind.BINARY: (True, "Binary files (gradle-wrapper.jar, etc.) will be automatically downloaded and replaced"),
    ChangeKind.BUILD_SYSTEM: (True, "Gradle configuration files will be automatically updated"),
    ChangeKind.CONFIGURATION: (True, "Configuration files (.prettierrc.js, tsconfig.json, etc.) will be automatically updated"),
    ChangeKind.SOURCE_CODE: (True, "Source code files will be automatically updated"),
    ChangeKind.UNCLASSIFIED: (False, "Manual intervention may be required"),
}


def automation_status(kind: ChangeKind) -> tuple[bool, str]:
    """Whether the applier can handle a kind, with a user-facing note."""
    return AUTOMATION_STATUS[kind]


class ChangeApplier:
    """Applies a selected subset of changes to a project.
    
    Changes are applied one at a time. A failing change is recorded in
    the result and never stops its siblings.
    """
    
    def __init__(
        self,
        project_root: Path,
        backup_manager: BackupManager | None = None,
        fetcher: BinaryFetcher | None = None,
        patch_strategy: PatchStrategy | None = None,
        parser: DiffParser | None = None,
    ) -> None:
        """Initialize applier.
        
        Args:
            project_root: Root directory of the project
            backup_manager: Snapshot manager (created if omitted)
            fetcher: Binary asset downloader (created on first use)
            patch_strategy: Text patch strategy (literal replace by default)
            parser: Diff parser for re-reading the diff text
        """
        self.project_root = Path(project_root)
        self.backup_manager = backup_manager or BackupManager(self.project_root)
        self.patch_strategy = patch_strategy or LiteralReplacePatch()
        self.parser = parser or DiffParser()
        self.root_prefix = get_config().root_prefix
        self._fetcher = fetcher
        
        self._handlers: dict[ChangeKind, Callable[[ComplexChange, DiffFileRecord | None, str], str]] = {
            ChangeKind.BINARY: self._apply_binary,
            ChangeKind.BUILD_SYSTEM: self._apply_build_file,
            ChangeKind.NATIVE_CODE: self._apply_text,
            ChangeKind.SOURCE_CODE: self._apply_text,
            ChangeKind.CONFIGURATION: self._apply_text,
            ChangeKind.UNCLASSIFIED: self._apply_text,
        }
    
    @property
    def fetcher(self) -> BinaryFetcher:
        if self._fetcher is None:
            self._fetcher = BinaryFetcher()
        return self._fetcher
    
    automation_status = staticmethod(automation_status)
    
    def resolve(self, diff_path: str) -> Path:
        """Project path of a diff path."""
        return self.project_root / relative_path(diff_path, self.root_prefix)
    
    def apply(
        self,
        changes: list[ComplexChange],
        diff_text: str,
        target_version: str,
        package_updates: list[PackageUpdate] | None = None,
        backup_set: ComprehensiveBackupSet | None = None,
    ) -> ApplyResult:
        """Apply selected changes.
        
        Args:
            changes: Changes the caller selected
            diff_text: Raw diff the changes were derived from
            target_version: Release being migrated to
            package_updates: Package updates to write first; unselected
                ones are skipped
            backup_set: Snapshots taken before the run, reused instead of
                re-snapshotting those paths
            
        Returns:
            ApplyResult with one entry per change
        """
        result = ApplyResult()
        
        if backup_set is not None:
            self.backup_manager.adopt(backup_set)
            result.warnings.extend(backup_set.errors)
        
        if package_updates and any(p.selected for p in package_updates):
            result.record(self._apply_packages(package_updates))
        
        parsed = self.parser.parse(diff_text, to_version=target_version)
        
        for change in changes:
            result.record(self._apply_one(change, parsed, target_version))
        
        applied = sum(1 for c in result.applied_changes if c.success)
        logger.info(f"Applied {applied}/{len(result.applied_changes)} change(s)")
        return result
    
    def _apply_one(self, change: ComplexChange, parsed: ParsedDiff, target_version: str) -> AppliedChange:
        record = parsed.find(change.file_path)
        handler = self._handlers[change.kind]
        
        try:
            message = handler(change, record, target_version)
        except MigrationError as e:
            logger.warning(f"Failed to apply {change.id}: {e}")
            return AppliedChange(change.kind.value, change.file_path, False, error=str(e))
        except OSError as e:
            logger.warning(f"I/O error applying {change.id}: {e}")
            return AppliedChange(change.kind.value, change.file_path, False, error=f"I/O error: {e}")
        
        logger.info(f"{change.file_path}: {message}")
        return AppliedChange(change.kind.value, change.file_path, True, message=message)
    
    def _apply_packages(self, updates: list[PackageUpdate]) -> AppliedChange:
        updater = ManifestUpdater(self.project_root, self.backup_manager)
        
        try:
            written = updater.apply(updates)
        except MigrationError as e:
            return AppliedChange("packages", MANIFEST_NAME, False, error=str(e))
        
        return AppliedChange(
            "packages", MANIFEST_NAME, True, message=f"Updated {len(written)} package(s)"
        )
    
    def _write(self, destination: Path, data: bytes) -> None:
        """Snapshot an existing destination, then write."""
        if destination.exists():
            self.backup_manager.ensure_backup(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(data)
    
    def _apply_binary(self, change: ComplexChange, record: DiffFileRecord | None, target_version: str) -> str:
        url = (
            record.download_url if record and record.download_url
            else self.parser.download_url(change.file_path, target_version)
        )
        
        data = self.fetcher.download(url)
        destination = self.resolve(change.file_path)
        
        if destination.exists() and destination.read_bytes() == data:
            return "Binary already up to date"
        
        self._write(destination, data)
        return f"Wrote {len(data)} bytes (sha256 {sha256(data)[:12]})"
    
    def _apply_build_file(self, change: ComplexChange, record: DiffFileRecord | None, target_version: str) -> str:
        if change.file_path.rsplit("/", 1)[-1] == gradle.WRAPPER_JAR:
            return self._apply_binary(change, record, target_version)
        
        record = self._require_record(change, record)
        if record.status is not ChangeStatus.MODIFIED:
            return self._apply_text(change, record, target_version)
        
        changes = gradle.extract_changes(record.path, record.removed_lines, record.added_lines)
        if not changes:
            return self._apply_text(change, record, target_version)
        
        destination = self.resolve(change.file_path)
        current, newline = self._read_text(destination, change.file_path)
        updated, missing = gradle.apply_changes(current, changes)
        
        if len(missing) == len(changes):
            raise ApplyError(
                change.file_path,
                f"None of the changed build keys were found in {change.file_path}",
            )
        
        if updated != current:
            self._write(destination, self._encode(updated, newline))
        
        message = f"Updated {len(changes) - len(missing)} build value(s)"
        if missing:
            message += f", skipped {', '.join(c.key for c in missing)}"
        return message
    
    def _apply_text(self, change: ComplexChange, record: DiffFileRecord | None, target_version: str) -> str:
        record = self._require_record(change, record)
        blocks = replay_content(record.content)
        destination = self.resolve(change.file_path)
        
        if record.status is ChangeStatus.ADDED:
            text = self.patch_strategy.new_file_text(blocks)
            if destination.exists():
                if self._read_text(destination, change.file_path)[0] == text:
                    return "File already present"
                raise ApplyError(
                    change.file_path,
                    f"{change.file_path} already exists with different content",
                )
            self._write(destination, text.encode("utf-8"))
            return "File created"
        
        if record.status is ChangeStatus.DELETED:
            if not destination.exists():
                return "File already removed"
            current, _ = self._read_text(destination, change.file_path)
            if not self.patch_strategy.deleted_file_matches(current, blocks):
                raise ApplyError(
                    change.file_path,
                    f"{change.file_path} was modified locally; not removing it",
                )
            self.backup_manager.ensure_backup(destination)
            destination.unlink()
            return "File removed"
        
        current, newline = self._read_text(destination, change.file_path)
        patched = self.patch_strategy.patch(current, blocks, change.file_path)
        
        if patched == current:
            return "Already up to date"
        
        self._write(destination, self._encode(patched, newline))
        return f"Applied {len(blocks)} hunk(s)"
    
    @staticmethod
    def _require_record(change: ComplexChange, record: DiffFileRecord | None) -> DiffFileRecord:
        if record is None:
            raise ApplyError(change.file_path, f"No diff content found for {change.file_path}")
        return record
    
    @staticmethod
    def _read_text(path: Path, diff_path: str) -> tuple[str, str]:
        """Read a file as LF text.
        
        Returns:
            Tuple of (text, line ending to write it back with)
        
        Raises:
            ApplyError: If the file is missing or not valid UTF-8
        """
        try:
            raw = path.read_bytes().decode("utf-8")
        except FileNotFoundError as e:
            raise ApplyError(diff_path, f"File not found: {path}") from e
        except UnicodeDecodeError as e:
            raise ApplyError(
                diff_path,
                f"File is not valid UTF-8: {path} ({e.reason} at byte {e.start})",
            ) from e
        
        # Only a file with CRLF on every line is rewritten as CRLF
        if "\r\n" in raw and raw.count("\r\n") == raw.count("\n"):
            return raw.replace("\r\n", "\n"), "\r\n"
        return raw, "\n"
    
    @staticmethod
    def _encode(text: str, newline: str) -> bytes:
        if newline != "\n":
            text = text.replace("\n", newline)
        return text.encode("utf-8")
    
    def close(self) -> None:
        if self._fetcher is not None:
            self._fetcher.close()
