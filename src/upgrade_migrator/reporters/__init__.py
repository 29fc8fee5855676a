"""Reporters package."""

from upgrade_migrator.reporters.json_formats import JSONReporter
from upgrade_migrator.reporters.markdown import MigrationGuide, MigrationGuideReporter
from upgrade_migrator.reporters.terminal import TerminalReporter

__all__ = [
    "TerminalReporter",
    "MigrationGuide",
    "MigrationGuideReporter",
    "JSONReporter",
]
