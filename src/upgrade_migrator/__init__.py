"""Diff-driven migration planner for framework release upgrades."""

__version__ = "0.4.0"
