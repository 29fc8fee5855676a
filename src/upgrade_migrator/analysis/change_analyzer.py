"""Per-file change descriptions, severities and breaking-change notes."""

import logging
from typing import Callable

from upgrade_migrator.models import (
    ChangeKind,
    ChangeStatus,
    ComplexChange,
    DiffFileRecord,
    Severity,
)
from upgrade_migrator.parsers.gradle import WRAPPER_JAR, gradle_distribution_version

logger = logging.getLogger(__name__)

# kind -> (label, default severity, default requires_migration)
KIND_DEFAULTS: dict[ChangeKind, tuple[str, Severity, bool]] = {
    ChangeKind.CONFIGURATION: ("Configuration file", Severity.LOW, False),
    ChangeKind.SOURCE_CODE: ("Source file", Severity.MEDIUM, True),
    ChangeKind.NATIVE_CODE: ("Native code file", Severity.HIGH, True),
    ChangeKind.BUILD_SYSTEM: ("Gradle file", Severity.MEDIUM, True),
    ChangeKind.BINARY: ("Binary file", Severity.HIGH, True),
    ChangeKind.UNCLASSIFIED: ("File", Severity.MEDIUM, True),
}

STATUS_VERBS = {
    ChangeStatus.ADDED: "added",
    ChangeStatus.DELETED: "removed",
    ChangeStatus.MODIFIED: "updated",
    ChangeStatus.BINARY: "updated",
}


def _describe_native_line(line: str, added: bool, file_name: str) -> str | None:
    """Summarize one changed line of native code."""
    content = line.strip()
    
    if content.startswith(("import ", "#import ")):
        return f"Import statement {'added' if added else 'removed'}"
    
    if "class " in content or "@interface " in content:
        return f"Class definition {'added' if added else 'modified'}"
    
    if any(token in content for token in ("fun ", "public ", "private ", "- (")):
        return f"Method {'added' if added else 'modified'}"
    
    if any(token in content for token in ("val ", "var ", "@property ")):
        return f"Property {'added' if added else 'modified'}"
    
    if "MainApplication" in file_name and ("onCreate" in content or "loadReactNative" in content):
        return "React Native initialization code changed"
    
    if any(token in content for token in ("buildConfigField", "resValue", "manifestPlaceholders")):
        return "Build configuration changed"
    
    return None


def native_notes(record: DiffFileRecord) -> list[str]:
    """Collect distinct sub-change summaries of a native code file."""
    notes: list[str] = []
    
    for line in record.content.split("\n"):
        if line[:1] not in {"+", "-"} or line[:3] in {"+++", "---"}:
            continue
        note = _describe_native_line(line[1:], line.startswith("+"), record.file_name)
        if note and note not in notes:
            notes.append(note)
    
    if any(n.startswith("Import statement") for n in notes):
        notes.append("Import changes may affect compilation")
    if "React Native initialization code changed" in notes:
        notes.append("Initialization changes may affect app startup")
    
    return notes


class _Assessment:
    """Mutable draft of one change while rules run."""
    
    def __init__(self, record: DiffFileRecord, kind: ChangeKind) -> None:
        label, severity, requires_migration = KIND_DEFAULTS[kind]
        verb = STATUS_VERBS[record.status]
        
        self.description = f"{label} {record.file_name} {verb}"
        self.severity = severity
        self.requires_migration = requires_migration
        self.breaking_changes: list[str] = []
        self.notes: list[str] = []


Rule = Callable[[DiffFileRecord, _Assessment], None]


def _tsconfig_rule(record: DiffFileRecord, draft: _Assessment) -> None:
    if record.file_name != "tsconfig.json":
        return
    if '"extends": "@react-native/typescript-config"' in record.content:
        draft.description = "TypeScript configuration updated to use new config format"
        draft.severity = Severity.MEDIUM
        draft.requires_migration = True


def _prettier_rule(record: DiffFileRecord, draft: _Assessment) -> None:
    if record.file_name != ".prettierrc.js":
        return
    if "bracketSameLine" in record.content or "bracketSpacing" in record.content:
        draft.description = "Prettier configuration updated with new/removed options"
        draft.severity = Severity.LOW
        draft.breaking_changes.append("Prettier formatting behavior may change")


def _app_entry_rule(record: DiffFileRecord, draft: _Assessment) -> None:
    if record.file_name != "App.tsx":
        return
    if "@react-native/new-app-screen" in record.content:
        draft.description = "App.tsx completely restructured to use new app screen template"
        draft.severity = Severity.HIGH
        draft.breaking_changes.extend([
            "App.tsx structure completely changed",
            "Custom app content needs to be migrated",
        ])


def _native_bootstrap_rule(record: DiffFileRecord, draft: _Assessment) -> None:
    if record.file_name == "MainApplication.kt" and "loadReactNative(this)" in record.content:
        draft.description = "MainApplication.kt updated with new React Native initialization"
        draft.severity = Severity.CRITICAL
        draft.breaking_changes.extend([
            "Native initialization code changed",
            "Custom native modules may need updates",
        ])
    
    draft.notes.extend(native_notes(record))


def _kotlin_version_rule(record: DiffFileRecord, draft: _Assessment) -> None:
    if record.file_name != "build.gradle":
        return
    if any("kotlinVersion" in line for line in record.changed_lines):
        draft.description = "Kotlin version updated in build.gradle"
        draft.severity = Severity.HIGH
        draft.breaking_changes.append("Kotlin version compatibility may affect build")


def _gradle_wrapper_rule(record: DiffFileRecord, draft: _Assessment) -> None:
    if record.file_name != "gradle-wrapper.properties":
        return
    
    added = [line for line in record.added_lines if "distributionUrl" in line]
    if not added:
        return
    
    version = gradle_distribution_version(added[-1])
    draft.description = (
        f"Gradle wrapper version updated to {version}" if version
        else "Gradle wrapper version updated"
    )
    draft.severity = Severity.MEDIUM
    draft.breaking_changes.append("Gradle version compatibility may affect build")


def _new_architecture_rule(record: DiffFileRecord, draft: _Assessment) -> None:
    if record.file_name != "gradle.properties":
        return
    if any(line.strip().startswith("newArchEnabled") for line in record.changed_lines):
        draft.description = "New Architecture flag changed in gradle.properties"
        draft.severity = Severity.HIGH
        draft.breaking_changes.append("New Architecture toggle affects native modules")


def _wrapper_jar_rule(record: DiffFileRecord, draft: _Assessment) -> None:
    if record.file_name == WRAPPER_JAR:
        draft.description = "Gradle wrapper JAR updated"
        draft.severity = Severity.MEDIUM


RULES: dict[ChangeKind, tuple[Rule, ...]] = {
    ChangeKind.CONFIGURATION: (_tsconfig_rule, _prettier_rule),
    ChangeKind.SOURCE_CODE: (_app_entry_rule,),
    ChangeKind.NATIVE_CODE: (_native_bootstrap_rule,),
    ChangeKind.BUILD_SYSTEM: (
        _kotlin_version_rule,
        _gradle_wrapper_rule,
        _new_architecture_rule,
        _wrapper_jar_rule,
    ),
    ChangeKind.BINARY: (_wrapper_jar_rule,),
    ChangeKind.UNCLASSIFIED: (),
}


class ChangeAnalyzer:
    """Turns classified diff records into ComplexChange objects."""
    
    def analyze(self, record: DiffFileRecord, kind: ChangeKind) -> ComplexChange:
        """Assess one classified record.
        
        Args:
            record: Diff file record
            kind: Kind assigned by the classifier
            
        Returns:
            ComplexChange for the record
        """
        draft = _Assessment(record, kind)
        
        for rule in RULES[kind]:
            rule(record, draft)
        
        if kind is ChangeKind.UNCLASSIFIED:
            draft.notes.append("No classification rule matched; review manually")
        
        change = ComplexChange(
            id=ComplexChange.make_id(kind, record.path),
            kind=kind,
            file_path=record.path,
            description=draft.description,
            severity=draft.severity,
            requires_migration=draft.requires_migration,
            breaking_changes=draft.breaking_changes,
            notes=draft.notes,
            status=record.status,
        )
        
        logger.debug(f"{change.id}: {change.severity.value} - {change.description}")
        return change
    
    def analyze_all(
        self, classified: list[tuple[DiffFileRecord, ChangeKind]]
    ) -> list[ComplexChange]:
        """Assess classified records, one change per record."""
        return [self.analyze(record, kind) for record, kind in classified]
