"""package.json reading and dependency rewriting."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from upgrade_migrator.backup import BackupManager
from upgrade_migrator.exceptions import ApplyError
from upgrade_migrator.models import DependencyClass, PackageUpdate

logger = logging.getLogger(__name__)

MANIFEST_NAME = "package.json"


def strip_range(version: str) -> str:
    """Remove a leading ^ or ~ range operator from a version."""
    return version.lstrip("^~")


def range_prefix(version: str | None) -> str:
    """Get the range operator to keep when rewriting a version."""
    if version and version.startswith("~"):
        return "~"
    return "^"


@dataclass
class Manifest:
    """Dependency maps of a project manifest."""
    
    path: Path
    sections: dict[DependencyClass, dict[str, str]] = field(default_factory=dict)
    
    def dependencies(self, dependency_class: DependencyClass) -> dict[str, str]:
        """Get the name -> version map of one section."""
        return self.sections.get(dependency_class, {})
    
    @property
    def framework_version(self) -> str | None:
        """Installed react-native version, without range operator."""
        for dependency_class in (DependencyClass.PRIMARY, DependencyClass.DEV):
            version = self.dependencies(dependency_class).get("react-native")
            if version:
                return strip_range(version)
        return None


class ManifestReader:
    """Locates the dependency maps in a project's package.json."""
    
    def __init__(self, project_root: Path) -> None:
        """Initialize reader.
        
        Args:
            project_root: Root directory of the project
        """
        self.project_root = Path(project_root)
        self.manifest_path = self.project_root / MANIFEST_NAME
    
    def read(self) -> Manifest:
        """Read the manifest.
        
        A missing or unreadable manifest yields empty dependency maps.
        
        Returns:
            Manifest with one map per dependency class
        """
        manifest = Manifest(path=self.manifest_path)
        data = self._load()
        
        for dependency_class in DependencyClass:
            section = data.get(dependency_class.value)
            if isinstance(section, dict):
                manifest.sections[dependency_class] = {
                    str(name): str(version)
                    for name, version in section.items()
                    if isinstance(version, str)
                }
        
        return manifest
    
    def _load(self) -> dict[str, Any]:
        try:
            data = json.loads(self.manifest_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.warning(f"No {MANIFEST_NAME} found in {self.project_root}")
            return {}
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Invalid {MANIFEST_NAME} at {self.manifest_path}: {e}")
            return {}
        
        return data if isinstance(data, dict) else {}


class ManifestUpdater:
    """Writes selected package updates into package.json."""
    
    def __init__(self, project_root: Path, backup_manager: BackupManager) -> None:
        self.project_root = Path(project_root)
        self.manifest_path = self.project_root / MANIFEST_NAME
        self.backup_manager = backup_manager
    
    def apply(self, updates: list[PackageUpdate]) -> list[PackageUpdate]:
        """Rewrite selected dependency versions.
        
        The existing ^ or ~ operator of each entry is preserved. Writing
        the same updates twice leaves the file unchanged.
        
        Args:
            updates: Package updates; unselected ones are skipped
            
        Returns:
            Updates that were written
            
        Raises:
            ApplyError: If the manifest cannot be read or written
            BackupError: If the pre-update snapshot fails
        """
        selected = [u for u in updates if u.selected]
        if not selected:
            return []
        
        try:
            original = self.manifest_path.read_text(encoding="utf-8")
            data = json.loads(original)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ApplyError(MANIFEST_NAME, f"Cannot read {MANIFEST_NAME}: {e}") from e
        
        applied: list[PackageUpdate] = []
        
        for update in selected:
            section = data.setdefault(update.dependency_class.value, {})
            prefix = range_prefix(section.get(update.name))
            section[update.name] = f"{prefix}{update.target_version}"
            applied.append(update)
            logger.debug(f"Set {update.dependency_class.value}.{update.name} to {section[update.name]}")
        
        updated = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
        
        if updated == original:
            logger.info(f"{MANIFEST_NAME} already up to date")
            return applied
        
        self.backup_manager.backup(self.manifest_path, category="manifest", timestamped=True)
        
        try:
            self.manifest_path.write_text(updated, encoding="utf-8")
        except OSError as e:
            raise ApplyError(MANIFEST_NAME, f"Cannot write {MANIFEST_NAME}: {e}") from e
        
        logger.info(f"Updated {len(applied)} package(s) in {MANIFEST_NAME}")
        return applied
