"""Diff and build file parsers."""

from upgrade_migrator.parsers.diff import DiffParser, ParsedDiff, is_binary_path
from upgrade_migrator.parsers.gradle import GradleChange, GradleChangeType
from upgrade_migrator.parsers.hunks import HunkBlock, replay_content

__all__ = [
    "DiffParser",
    "ParsedDiff",
    "is_binary_path",
    "GradleChange",
    "GradleChangeType",
    "HunkBlock",
    "replay_content",
]
