"""Dependency version deltas between a diff and the project manifest."""

import logging
import re

from upgrade_migrator.config import get_config
from upgrade_migrator.manifest import MANIFEST_NAME, Manifest, strip_range
from upgrade_migrator.models import DependencyClass, PackageUpdate

logger = logging.getLogger(__name__)

ENTRY_RE = re.compile(r'^([+-])\s*"([^"]+)":\s*"([^"]+)",?\s*$')
HEADER_RE = re.compile(r"^diff --git (\S+) (\S+)$")

# Manifest sections joined against the diff
LOOKUP_CLASSES = (DependencyClass.PRIMARY, DependencyClass.DEV)


class EcosystemFilter:
    """Allow-list of ecosystem package names, keyed by regex pattern."""
    
    def __init__(self, patterns: dict[str, str] | None = None) -> None:
        """Initialize filter.
        
        Args:
            patterns: Mapping of name regex -> ecosystem label
                (defaults to config)
        """
        if patterns is None:
            patterns = get_config().ecosystem_patterns
        self._patterns = [(re.compile(p), label) for p, label in patterns.items()]
    
    def label(self, name: str) -> str | None:
        """Get the ecosystem label of a package, or None if not allowed."""
        for pattern, label in self._patterns:
            if pattern.search(name):
                return label
        return None
    
    def allows(self, name: str) -> bool:
        """Check if a package belongs to the ecosystem."""
        return self.label(name) is not None


def _manifest_sections(diff_text: str) -> list[str]:
    """Keep only the lines belonging to package.json file sections.
    
    Text without file headers is returned whole.
    """
    lines = diff_text.splitlines()
    if not any(line.startswith("diff --git ") for line in lines):
        return lines
    
    kept: list[str] = []
    inside = False
    
    for line in lines:
        if line.startswith("diff --git "):
            match = HEADER_RE.match(line)
            inside = bool(match) and any(
                side.endswith(f"/{MANIFEST_NAME}") for side in match.groups()
            )
            continue
        if inside:
            kept.append(line)
    
    return kept


class PackageDeltaExtractor:
    """Extracts package version updates from diff text."""
    
    def __init__(self, ecosystem: EcosystemFilter | None = None) -> None:
        self.ecosystem = ecosystem or EcosystemFilter()
    
    def target_versions(self, diff_text: str) -> dict[str, str]:
        """Collect ecosystem package versions introduced by the diff.
        
        Args:
            diff_text: Diff text or a manifest record's hunk content
            
        Returns:
            Mapping of package name -> target version (range stripped)
        """
        versions: dict[str, str] = {}
        
        if not isinstance(diff_text, str):
            return versions
        
        for line in _manifest_sections(diff_text):
            match = ENTRY_RE.match(line)
            if not match:
                continue
            
            marker, name, version = match.groups()
            if marker != "+" or not self.ecosystem.allows(name):
                continue
            
            versions[name] = strip_range(version)
        
        return versions
    
    def extract(self, diff_text: str, manifest: Manifest) -> list[PackageUpdate]:
        """Join diff versions against the current manifest.
        
        A package present in several manifest sections yields one update
        per section whose version differs. Packages already at the target
        version are skipped, so re-running after applying yields nothing.
        
        Args:
            diff_text: Diff text or a manifest record's hunk content
            manifest: Current project manifest
            
        Returns:
            Package updates, selected by default
        """
        targets = self.target_versions(diff_text)
        updates: list[PackageUpdate] = []
        
        for name, target_version in targets.items():
            for dependency_class in LOOKUP_CLASSES:
                current = manifest.dependencies(dependency_class).get(name)
                if current is None:
                    continue
                
                current_version = strip_range(current)
                if current_version == target_version:
                    continue
                
                updates.append(
                    PackageUpdate(
                        name=name,
                        current_version=current_version,
                        target_version=target_version,
                        dependency_class=dependency_class,
                        selected=True,
                    )
                )
        
        logger.info(f"Found {len(updates)} package update(s) out of {len(targets)} changed ecosystem package(s)")
        return updates
