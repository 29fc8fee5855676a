"""Tests for terminal, Markdown and JSON reporters."""

import json
from io import StringIO

import pytest
from rich.console import Console

from upgrade_migrator.migrator import MigrationAnalyzer
from upgrade_migrator.models import AppliedChange, ApplyResult
from upgrade_migrator.planner import MigrationPlanner
from upgrade_migrator.reporters import (
    JSONReporter,
    MigrationGuide,
    MigrationGuideReporter,
    TerminalReporter,
)


@pytest.fixture
def sample_plan(sample_diff, sample_project):
    """Plan for the sample diff against the sample project."""
    return MigrationAnalyzer(sample_project).analyze_text(sample_diff, "0.79.0", "0.80.0")


@pytest.fixture
def sample_result():
    result = ApplyResult()
    result.record(AppliedChange("packages", "package.json", True, message="Updated 2 package(s)"))
    result.record(AppliedChange("source_code", "RnDiffApp/App.tsx", False, error="Expected content not found"))
    return result


class TestJSONReporter:
    """Test JSON output."""
    
    def test_plan_report(self, sample_plan, tmp_path):
        output = tmp_path / "plan.json"
        
        data = json.loads(JSONReporter().plan_report(sample_plan, output))
        
        assert data["from_version"] == "0.79.0"
        assert data["summary"]["estimated_risk"] == "high"
        assert data["summary"]["risk_score"] == 31
        assert data["summary"]["complex_changes"] == 7
        assert data["package_updates"][1]["dependency_class"] == "devDependencies"
        assert data["migration_steps"][0]["id"] == "package_updates"
        assert data["migration_steps"][1]["dependencies"] == ["package_updates"]
        assert {c["type"] for c in data["complex_changes"]} == {
            "configuration", "build_system", "binary", "native_code", "source_code",
        }
        assert json.loads(output.read_text(encoding="utf-8")) == data
    
    def test_apply_report(self, sample_result):
        data = json.loads(JSONReporter().apply_report(sample_result))
        
        assert data["success"] is False
        assert data["applied_changes"][1]["error"] == "Expected content not found"
        assert len(data["errors"]) == 1


class TestMigrationGuideReporter:
    """Test the Markdown guide."""
    
    def test_guide(self, sample_plan):
        guide = MigrationGuideReporter().build_guide(sample_plan)
        
        assert guide.title == "React Native 0.79.0 to 0.80.0 Migration"
        assert guide.difficulty == "expert"
        # 30 + 7 changes + 6 breaking + 2 manual + high risk
        assert guide.estimated_minutes == 30 + 70 + 120 + 30 + 60
        assert guide.estimated_time == "5h 10m"
        assert "Android NDK installed" in guide.prerequisites
        assert "6 breaking changes detected - manual review required" in guide.warnings
        assert "Clean Gradle cache: `./gradlew clean`" in guide.rollback_instructions
    
    def test_empty_plan_is_beginner(self):
        plan = MigrationPlanner().plan("0.80.0", "0.80.1", [], [])
        guide = MigrationGuideReporter().build_guide(plan)
        
        assert guide.difficulty == "beginner"
        assert guide.estimated_time == "30 minutes"
    
    @pytest.mark.parametrize("minutes,expected", [(45, "45 minutes"), (60, "1h"), (135, "2h 15m")])
    def test_estimated_time_format(self, minutes, expected):
        assert MigrationGuide(title="t", steps=[], estimated_minutes=minutes).estimated_time == expected
    
    def test_render(self, sample_plan, tmp_path):
        output = tmp_path / "MIGRATION.md"
        
        MigrationGuideReporter().generate_report(sample_plan, output)
        content = output.read_text(encoding="utf-8")
        
        assert content.startswith("# React Native 0.79.0 to 0.80.0 Migration")
        assert "## Package Updates" in content
        assert "| `react-native` | dependencies | 0.79.0 | 0.80.0 |" in content
        assert "### 1. Update package.json dependencies" in content
        assert "- **Breaking:** Kotlin version compatibility may affect build" in content
        assert "## Rollback" in content


class TestTerminalReporter:
    """Test Rich terminal output."""
    
    @staticmethod
    def _reporter() -> tuple[TerminalReporter, StringIO]:
        buffer = StringIO()
        console = Console(file=buffer, width=200, color_system=None)
        return TerminalReporter(console=console), buffer
    
    def test_print_plan(self, sample_plan):
        reporter, buffer = self._reporter()
        
        reporter.print_plan(sample_plan)
        output = buffer.getvalue()
        
        assert "HIGH" in output
        assert "Package Updates" in output
        assert "react-native" in output
        assert "Breaking Changes" in output
        assert "Migration Steps" in output
    
    def test_print_empty_plan(self):
        reporter, buffer = self._reporter()
        
        reporter.print_plan(MigrationPlanner().plan("0.80.0", "0.80.1", [], []))
        
        assert "No file changes detected." in buffer.getvalue()
    
    def test_print_apply_result(self, sample_result):
        reporter, buffer = self._reporter()
        
        reporter.print_apply_result(sample_result)
        output = buffer.getvalue()
        
        assert "1 change(s) failed" in output
        assert "Updated 2 package(s)" in output
