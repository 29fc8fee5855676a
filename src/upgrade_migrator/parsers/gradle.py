"""Gradle build file change extraction and line-level substitution."""

import logging
import re
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

VERSION_RE = re.compile(r"""(\w+Version)\s*=\s*(["']?)([\w.\-]+)\2""")
PLUGIN_RE = re.compile(r"""id\s*\(?\s*["']([^"']+)["']\s*\)?\s+version\s*\(?\s*["']([^"']+)["']""")
DEPENDENCY_RE = re.compile(
    r"""^(implementation|api|compileOnly|runtimeOnly|classpath|"""
    r"""testImplementation|androidTestImplementation|debugImplementation)\s*\(?\s*["']([^"':]+):([^"':]+):([^"']+)["']"""
)
PROPERTY_RE = re.compile(r"^([A-Za-z_][\w.\-]*)\s*=\s*(.*)$")

WRAPPER_JAR = "gradle-wrapper.jar"
DISTRIBUTION_RE = re.compile(r"gradle-([\d.]+(?:-rc-\d+)?)-(?:bin|all)\.zip")


class GradleChangeType(Enum):
    """Kinds of build file edits recognized in a hunk."""
    
    VERSION = "version"
    PLUGIN = "plugin"
    DEPENDENCY = "dependency"
    PROPERTY = "property"


@dataclass(frozen=True)
class GradleChange:
    """A single key whose value changes in a build file."""
    
    type: GradleChangeType
    key: str
    new_value: str
    old_value: str | None = None


def is_properties_file(path: str) -> bool:
    """Check if a build file uses key=value syntax."""
    return path.endswith(".properties")


def gradle_distribution_version(text: str) -> str | None:
    """Extract the Gradle version from a wrapper distributionUrl."""
    match = DISTRIBUTION_RE.search(text)
    return match.group(1) if match else None


def parse_change_line(line: str, properties: bool = False) -> GradleChange | None:
    """Parse one added or removed line (without its marker)."""
    content = line.strip()
    
    if not content or content.startswith(("//", "#")):
        return None
    
    if properties:
        match = PROPERTY_RE.match(content)
        if match:
            return GradleChange(GradleChangeType.PROPERTY, match.group(1), match.group(2).strip())
        return None
    
    match = VERSION_RE.search(content)
    if match:
        return GradleChange(GradleChangeType.VERSION, match.group(1), match.group(3))
    
    match = PLUGIN_RE.search(content)
    if match:
        return GradleChange(GradleChangeType.PLUGIN, match.group(1), match.group(2))
    
    match = DEPENDENCY_RE.match(content)
    if match:
        coordinate = f"{match.group(2)}:{match.group(3)}"
        return GradleChange(GradleChangeType.DEPENDENCY, coordinate, match.group(4))
    
    return None


def extract_changes(path: str, removed: list[str], added: list[str]) -> list[GradleChange]:
    """Extract value changes from a build file's hunk lines.
    
    Only added lines define new values; a removed line with the same key
    supplies the old value. Keys whose value did not change are dropped.
    
    Args:
        path: Diff path of the build file
        removed: Removed lines without the marker
        added: Added lines without the marker
        
    Returns:
        Changes in the order their added lines appear
    """
    properties = is_properties_file(path)
    
    old_values: dict[tuple[GradleChangeType, str], str] = {}
    for line in removed:
        change = parse_change_line(line, properties)
        if change:
            old_values[(change.type, change.key)] = change.new_value
    
    changes: list[GradleChange] = []
    seen: set[tuple[GradleChangeType, str]] = set()
    
    for line in added:
        change = parse_change_line(line, properties)
        if not change:
            continue
        
        ident = (change.type, change.key)
        old_value = old_values.get(ident)
        
        if ident in seen or old_value == change.new_value:
            continue
        
        seen.add(ident)
        changes.append(
            GradleChange(change.type, change.key, change.new_value, old_value)
        )
    
    return changes


def _substitute_line(line: str, change: GradleChange) -> str:
    """Rewrite one line if it carries the change's key."""
    key = re.escape(change.key)
    
    if change.type is GradleChangeType.VERSION:
        return re.sub(
            rf"""(\b{key}\s*=\s*)(["']?)[\w.\-]+\2""",
            lambda m: f"{m.group(1)}{m.group(2)}{change.new_value}{m.group(2)}",
            line,
        )
    
    if change.type is GradleChangeType.PLUGIN:
        if not re.search(rf"""id\s*\(?\s*["']{key}["']""", line):
            return line
        return re.sub(
            r"""(version\s*\(?\s*)(["'])[^"']*\2""",
            lambda m: f"{m.group(1)}{m.group(2)}{change.new_value}{m.group(2)}",
            line,
        )
    
    if change.type is GradleChangeType.DEPENDENCY:
        return re.sub(
            rf"""(["']){key}:[^"']+\1""",
            lambda m: f"{m.group(1)}{change.key}:{change.new_value}{m.group(1)}",
            line,
        )
    
    match = PROPERTY_RE.match(line.strip())
    if match and match.group(1) == change.key:
        indent = line[: len(line) - len(line.lstrip())]
        separator = "=" if "=" in line and " = " not in line else " = "
        return f"{indent}{change.key}{separator}{change.new_value}"
    
    return line


def apply_changes(content: str, changes: list[GradleChange]) -> tuple[str, list[GradleChange]]:
    """Apply value changes to a build file's text.
    
    Args:
        content: Current file text
        changes: Changes from extract_changes
        
    Returns:
        Tuple of (updated text, changes whose key was not found)
    """
    lines = content.split("\n")
    missing: list[GradleChange] = []
    
    for change in changes:
        found = False
        
        for i, line in enumerate(lines):
            updated = _substitute_line(line, change)
            if updated != line or _line_has_value(line, change):
                found = True
            lines[i] = updated
        
        if not found:
            logger.debug(f"Build key {change.key} not present, skipping")
            missing.append(change)
    
    return "\n".join(lines), missing


def _line_has_value(line: str, change: GradleChange) -> bool:
    """Check if a line already holds the change's key at its new value."""
    return change.key in line and change.new_value in line
