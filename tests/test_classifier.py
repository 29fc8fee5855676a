"""Tests for file classification."""

import pytest

from upgrade_migrator.analysis.classifier import FileClassifier, classify_path
from upgrade_migrator.models import ChangeKind, ChangeStatus, DiffFileRecord
from upgrade_migrator.parsers.diff import DiffParser


class TestClassifyPath:
    """Test path rules."""
    
    @pytest.mark.parametrize("path", [
        "RnDiffApp/android/build.gradle",
        "RnDiffApp/android/app/build.gradle",
        "RnDiffApp/android/settings.gradle",
        "RnDiffApp/android/gradle.properties",
        "RnDiffApp/android/gradlew",
        "RnDiffApp/android/gradle/wrapper/gradle-wrapper.properties",
        "RnDiffApp/android/app/build.gradle.kts",
    ])
    def test_build_system(self, path):
        assert classify_path(path) == ChangeKind.BUILD_SYSTEM
    
    @pytest.mark.parametrize("path", [
        "RnDiffApp/android/app/src/main/java/com/rndiffapp/MainApplication.kt",
        "RnDiffApp/android/app/src/main/java/com/rndiffapp/MainActivity.java",
        "RnDiffApp/ios/RnDiffApp/AppDelegate.swift",
        "RnDiffApp/ios/RnDiffApp/AppDelegate.mm",
    ])
    def test_native_code(self, path):
        assert classify_path(path) == ChangeKind.NATIVE_CODE
    
    @pytest.mark.parametrize("path", [
        "RnDiffApp/tsconfig.json",
        "RnDiffApp/.prettierrc.js",
        "RnDiffApp/metro.config.js",
        "RnDiffApp/Gemfile",
        "RnDiffApp/.watchmanconfig",
        "RnDiffApp/app.json",
    ])
    def test_configuration(self, path):
        assert classify_path(path) == ChangeKind.CONFIGURATION
    
    def test_source_code(self):
        assert classify_path("RnDiffApp/App.tsx") == ChangeKind.SOURCE_CODE
        assert classify_path("RnDiffApp/src/Screen.jsx") == ChangeKind.SOURCE_CODE
    
    def test_build_rule_wins_over_native(self):
        """Test a Kotlin DSL build file under android/ is a build file."""
        assert classify_path("RnDiffApp/android/build.gradle.kts") == ChangeKind.BUILD_SYSTEM
    
    def test_js_outside_native_dirs_is_configuration(self):
        """Test configuration is tried before source."""
        assert classify_path("RnDiffApp/index.js") == ChangeKind.CONFIGURATION
    
    def test_native_extension_outside_native_dirs(self):
        assert classify_path("RnDiffApp/scripts/helper.swift") is None
    
    @pytest.mark.parametrize("path", [
        "RnDiffApp/ios/RnDiffApp/LaunchScreen.storyboard",
        "RnDiffApp/ios/Podfile",
        "RnDiffApp/README.md",
    ])
    def test_unmatched(self, path):
        assert classify_path(path) is None


class TestFileClassifier:
    """Test FileClassifier."""
    
    def test_binary_record_always_binary(self):
        record = DiffFileRecord(
            path="RnDiffApp/android/gradle/wrapper/gradle-wrapper.jar",
            status=ChangeStatus.BINARY,
            is_binary=True,
        )
        
        assert FileClassifier().classify(record) == ChangeKind.BINARY
    
    def test_unmatched_dropped_by_default(self):
        record = DiffFileRecord(path="RnDiffApp/README.md", status=ChangeStatus.MODIFIED)
        
        assert FileClassifier().classify(record) is None
    
    def test_unmatched_surfaced_when_enabled(self):
        record = DiffFileRecord(path="RnDiffApp/README.md", status=ChangeStatus.MODIFIED)
        
        assert FileClassifier(surface_unclassified=True).classify(record) == ChangeKind.UNCLASSIFIED
    
    def test_flag_read_from_config(self, isolated_config, monkeypatch):
        monkeypatch.setitem(isolated_config._config["analysis"], "surface_unclassified", True)
        
        assert FileClassifier().surface_unclassified is True
    
    def test_classify_all_keeps_order(self, sample_diff):
        parsed = DiffParser().parse(sample_diff, "0.79.0", "0.80.0")
        
        classified = FileClassifier().classify_all(parsed.files)
        paths = [record.path for record, _ in classified]
        
        assert "RnDiffApp/ios/RnDiffApp/LaunchScreen.storyboard" not in paths
        assert paths == [
            r.path for r in parsed.files
            if r.path != "RnDiffApp/ios/RnDiffApp/LaunchScreen.storyboard"
        ]
        assert dict((r.path, k) for r, k in classified)["RnDiffApp/App.tsx"] == ChangeKind.SOURCE_CODE
