"""Core data models for the Upgrade Migrator."""

import re
from dataclasses import dataclass, field
from enum import Enum

from packaging.version import InvalidVersion, Version


class Severity(Enum):
    """Risk severity levels."""
    
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RiskLevel(Enum):
    """Overall risk estimate for a migration plan."""
    
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ChangeStatus(Enum):
    """How a file was touched by the diff."""
    
    ADDED = "added"
    DELETED = "deleted"
    MODIFIED = "modified"
    BINARY = "binary"


class ChangeKind(Enum):
    """Closed set of change categories produced by the classifier."""
    
    CONFIGURATION = "configuration"
    SOURCE_CODE = "source_code"
    NATIVE_CODE = "native_code"
    BUILD_SYSTEM = "build_system"
    BINARY = "binary"
    UNCLASSIFIED = "unclassified"
    
    @property
    def id_prefix(self) -> str:
        """Prefix used when deriving change ids."""
        return {
            ChangeKind.CONFIGURATION: "config",
            ChangeKind.SOURCE_CODE: "source",
            ChangeKind.NATIVE_CODE: "native",
            ChangeKind.BUILD_SYSTEM: "build",
            ChangeKind.BINARY: "binary",
            ChangeKind.UNCLASSIFIED: "other",
        }[self]


# Execution order of step groups in a migration plan
PLAN_GROUP_ORDER: tuple[ChangeKind, ...] = (
    ChangeKind.CONFIGURATION,
    ChangeKind.BUILD_SYSTEM,
    ChangeKind.NATIVE_CODE,
    ChangeKind.SOURCE_CODE,
    ChangeKind.BINARY,
    ChangeKind.UNCLASSIFIED,
)


class StepMode(Enum):
    """How much of a migration step can be automated."""
    
    AUTOMATIC = "automatic"
    SEMI_AUTOMATIC = "semi_automatic"
    MANUAL = "manual"


class DependencyClass(Enum):
    """Manifest section a dependency lives in."""
    
    PRIMARY = "dependencies"
    DEV = "devDependencies"
    PEER = "peerDependencies"


@dataclass(frozen=True)
class DiffFileRecord:
    """One file touched by a unified diff."""
    
    path: str
    status: ChangeStatus
    content: str = ""
    is_binary: bool = False
    download_url: str | None = None
    
    @property
    def file_name(self) -> str:
        """Last path component."""
        return self.path.rsplit("/", 1)[-1]
    
    @property
    def added_lines(self) -> list[str]:
        """Added lines of the hunk body, without the marker."""
        return [
            line[1:] for line in self.content.split("\n")
            if line.startswith("+") and not line.startswith("+++")
        ]
    
    @property
    def removed_lines(self) -> list[str]:
        """Removed lines of the hunk body, without the marker."""
        return [
            line[1:] for line in self.content.split("\n")
            if line.startswith("-") and not line.startswith("---")
        ]
    
    @property
    def changed_lines(self) -> list[str]:
        """Added and removed lines, in diff order."""
        return [
            line[1:] for line in self.content.split("\n")
            if line[:1] in {"+", "-"} and line[:3] not in {"+++", "---"}
        ]


@dataclass
class ComplexChange:
    """Classified, risk-assessed change to a single non-manifest file."""
    
    id: str
    kind: ChangeKind
    file_path: str
    description: str
    severity: Severity
    requires_migration: bool
    breaking_changes: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    status: ChangeStatus = ChangeStatus.MODIFIED
    
    @staticmethod
    def make_id(kind: ChangeKind, path: str) -> str:
        """Derive a stable id from kind and path."""
        return f"{kind.id_prefix}_{re.sub(r'[^a-zA-Z0-9]', '_', path)}"
    
    @property
    def is_breaking(self) -> bool:
        """Check if the change carries breaking-change notes."""
        return bool(self.breaking_changes)


@dataclass
class PackageUpdate:
    """Version change for one manifest dependency."""
    
    name: str
    current_version: str
    target_version: str
    dependency_class: DependencyClass = DependencyClass.PRIMARY
    selected: bool = True
    
    @property
    def is_downgrade(self) -> bool:
        """Check if the target is older than the current version."""
        try:
            return Version(self.target_version) < Version(self.current_version)
        except InvalidVersion:
            return False
    
    def __str__(self) -> str:
        """String representation."""
        return f"{self.name}: {self.current_version} -> {self.target_version}"


@dataclass(frozen=True)
class MigrationStep:
    """One ordered unit of work in a migration plan."""
    
    id: str
    description: str
    mode: StepMode
    order: int
    file_path: str | None = None
    dependencies: frozenset[str] = frozenset()
    change_id: str | None = None


@dataclass
class MigrationPlan:
    """Aggregated migration plan between two releases."""
    
    from_version: str
    to_version: str
    package_updates: list[PackageUpdate]
    complex_changes: list[ComplexChange]
    migration_steps: list[MigrationStep]
    estimated_risk: RiskLevel
    risk_score: int
    requires_manual_review: bool
    breaking_changes_count: int
    
    @property
    def requires_confirmation(self) -> bool:
        """Manual steps in a run with critical changes need human sign-off."""
        has_critical = any(c.severity == Severity.CRITICAL for c in self.complex_changes)
        has_manual = any(s.mode == StepMode.MANUAL for s in self.migration_steps)
        return has_critical and has_manual
    
    def changes_of(self, kind: ChangeKind) -> list[ComplexChange]:
        """Get changes of one kind."""
        return [c for c in self.complex_changes if c.kind == kind]
    
    @property
    def selected_packages(self) -> list[PackageUpdate]:
        """Package updates the caller left selected."""
        return [p for p in self.package_updates if p.selected]


@dataclass
class AppliedChange:
    """Outcome of applying one selected change."""
    
    kind: str
    file_path: str
    success: bool
    error: str | None = None
    message: str = ""


@dataclass
class ApplyResult:
    """Outcome of applying a batch of selected changes."""
    
    applied_changes: list[AppliedChange] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    
    @property
    def success(self) -> bool:
        """True only if every selected change succeeded."""
        return all(c.success for c in self.applied_changes) and not self.errors
    
    def record(self, applied: AppliedChange) -> None:
        """Add a per-change outcome, collecting its error."""
        self.applied_changes.append(applied)
        
        if not applied.success:
            self.errors.append(
                f"Failed to apply {applied.kind} change to {applied.file_path}: {applied.error}"
            )
