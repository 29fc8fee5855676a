"""Tests for applying changes to a project tree."""

import json
from unittest.mock import MagicMock

import httpx
import pytest

from upgrade_migrator.applier import ChangeApplier, automation_status
from upgrade_migrator.backup import BackupManager
from upgrade_migrator.binary import BinaryFetcher
from upgrade_migrator.exceptions import FetchError
from upgrade_migrator.http_client import RetryConfig, SyncHTTPClient
from upgrade_migrator.migrator import MigrationAnalyzer
from upgrade_migrator.models import ChangeKind, ChangeStatus, ComplexChange, Severity

from conftest import ASSET_BASE, NEW_WRAPPER_JAR, OLD_WRAPPER_JAR, PROJECT_FILES

JAR_PATH = "RnDiffApp/android/gradle/wrapper/gradle-wrapper.jar"


@pytest.fixture
def fetcher():
    """Binary fetcher returning the release wrapper jar."""
    mock = MagicMock()
    mock.download.return_value = NEW_WRAPPER_JAR
    return mock


@pytest.fixture
def plan(sample_diff, sample_project):
    return MigrationAnalyzer(sample_project).analyze_text(sample_diff, "0.79.0", "0.80.0")


def _only(plan, path):
    return [c for c in plan.complex_changes if c.file_path == path]


class TestChangeApplier:
    """Test ChangeApplier.apply."""
    
    def test_build_file_value_updated(self, sample_diff, sample_project, plan, fetcher):
        applier = ChangeApplier(sample_project, fetcher=fetcher)
        
        result = applier.apply(_only(plan, "RnDiffApp/android/build.gradle"), sample_diff, "0.80.0")
        
        assert result.success
        assert result.applied_changes[0].message == "Updated 1 build value(s)"
        content = (sample_project / "android/build.gradle").read_text(encoding="utf-8")
        assert 'kotlinVersion = "2.1.20"' in content
        assert 'buildToolsVersion = "35.0.0"' in content
    
    def test_wrapper_properties_updated(self, sample_diff, sample_project, plan, fetcher):
        path = "RnDiffApp/android/gradle/wrapper/gradle-wrapper.properties"
        
        result = ChangeApplier(sample_project, fetcher=fetcher).apply(_only(plan, path), sample_diff, "0.80.0")
        
        assert result.success
        content = (sample_project / "android/gradle/wrapper/gradle-wrapper.properties").read_text(encoding="utf-8")
        assert "gradle-8.14.1-bin.zip" in content
        assert "gradle-8.13-bin.zip" not in content
        assert "networkTimeout=10000" in content
    
    def test_binary_downloaded_and_written(self, sample_diff, sample_project, plan, fetcher):
        changes = _only(plan, JAR_PATH)
        assert [c.kind for c in changes] == [ChangeKind.BINARY]
        
        result = ChangeApplier(sample_project, fetcher=fetcher).apply(changes, sample_diff, "0.80.0")
        
        assert result.success
        fetcher.download.assert_called_once_with(f"{ASSET_BASE}/0.80.0/{JAR_PATH}")
        jar = sample_project / "android/gradle/wrapper/gradle-wrapper.jar"
        assert jar.read_bytes() == NEW_WRAPPER_JAR
        assert jar.with_name("gradle-wrapper.jar.backup").read_bytes() == OLD_WRAPPER_JAR
    
    def test_binary_already_current(self, sample_diff, sample_project, plan, fetcher):
        (sample_project / "android/gradle/wrapper/gradle-wrapper.jar").write_bytes(NEW_WRAPPER_JAR)
        
        result = ChangeApplier(sample_project, fetcher=fetcher).apply(_only(plan, JAR_PATH), sample_diff, "0.80.0")
        
        assert result.applied_changes[0].message == "Binary already up to date"
    
    def test_binary_fetch_failure_leaves_file(self, sample_diff, sample_project, plan, fetcher):
        fetcher.download.side_effect = FetchError("https://x", "HTTP 404", status_code=404)
        
        result = ChangeApplier(sample_project, fetcher=fetcher).apply(_only(plan, JAR_PATH), sample_diff, "0.80.0")
        
        assert not result.success
        assert "HTTP 404" in result.errors[0]
        assert (sample_project / "android/gradle/wrapper/gradle-wrapper.jar").read_bytes() == OLD_WRAPPER_JAR
    
    def test_mismatch_does_not_stop_siblings(self, sample_diff, sample_project, plan, fetcher):
        """Test a diverged file fails alone while every other change applies."""
        result = ChangeApplier(sample_project, fetcher=fetcher).apply(
            plan.complex_changes, sample_diff, "0.80.0", package_updates=plan.package_updates,
        )
        
        assert not result.success
        assert len(result.errors) == 1
        assert "RnDiffApp/App.tsx" in result.errors[0]
        
        outcomes = {c.file_path: c.success for c in result.applied_changes}
        assert outcomes.pop("RnDiffApp/App.tsx") is False
        assert all(outcomes.values())
        assert len(result.applied_changes) == len(plan.complex_changes) + 1
        
        assert (sample_project / "App.tsx").read_text(encoding="utf-8") == PROJECT_FILES["App.tsx"]
        assert "loadReactNative(this)" in (
            sample_project / "android/app/src/main/java/com/rndiffapp/MainApplication.kt"
        ).read_text(encoding="utf-8")
        assert (sample_project / "jest.config.js").read_text(encoding="utf-8") == (
            "module.exports = {\n  preset: 'react-native',\n};\n"
        )
        assert "'< 1.17'" in (sample_project / "Gemfile").read_text(encoding="utf-8")
        
        manifest = json.loads((sample_project / "package.json").read_text(encoding="utf-8"))
        assert manifest["dependencies"]["react-native"] == "^0.80.0"
        assert manifest["devDependencies"]["@react-native/babel-preset"] == "^0.80.0"
    
    def test_packages_applied_first(self, sample_diff, sample_project, plan, fetcher):
        result = ChangeApplier(sample_project, fetcher=fetcher).apply(
            [], sample_diff, "0.80.0", package_updates=plan.package_updates,
        )
        
        assert result.applied_changes[0].kind == "packages"
        assert result.applied_changes[0].message == "Updated 2 package(s)"
    
    def test_unselected_packages_skipped(self, sample_diff, sample_project, plan, fetcher):
        for update in plan.package_updates:
            update.selected = False
        before = (sample_project / "package.json").read_text(encoding="utf-8")
        
        result = ChangeApplier(sample_project, fetcher=fetcher).apply(
            [], sample_diff, "0.80.0", package_updates=plan.package_updates,
        )
        
        assert result.applied_changes == []
        assert (sample_project / "package.json").read_text(encoding="utf-8") == before
    
    def test_second_run_is_a_no_op(self, sample_diff, sample_project, plan, fetcher):
        changes = [c for c in plan.complex_changes if c.file_path != "RnDiffApp/App.tsx"]
        
        ChangeApplier(sample_project, fetcher=fetcher).apply(changes, sample_diff, "0.80.0")
        snapshot = {
            p: p.read_bytes() for p in sample_project.rglob("*")
            if p.is_file() and ".backup" not in p.name
        }
        result = ChangeApplier(sample_project, fetcher=fetcher).apply(changes, sample_diff, "0.80.0")
        
        assert result.success
        for path, data in snapshot.items():
            assert path.read_bytes() == data
    
    def test_comprehensive_backup_reused(self, sample_diff, sample_project, plan, fetcher):
        manager = BackupManager(sample_project)
        backup_set = manager.comprehensive_backup(plan.complex_changes, "0.80.0")
        original = (sample_project / "Gemfile").read_bytes()
        
        ChangeApplier(sample_project, backup_manager=manager, fetcher=fetcher).apply(
            plan.complex_changes, sample_diff, "0.80.0", backup_set=backup_set,
        )
        restored = manager.restore_all(backup_set)
        
        assert restored.success
        assert (sample_project / "Gemfile").read_bytes() == original
        assert (sample_project / "android/gradle/wrapper/gradle-wrapper.jar").read_bytes() == OLD_WRAPPER_JAR
    
    def test_added_file_with_different_content(self, sample_diff, sample_project, plan, fetcher):
        (sample_project / "jest.config.js").write_text("module.exports = {};\n", encoding="utf-8")
        
        result = ChangeApplier(sample_project, fetcher=fetcher).apply(
            _only(plan, "RnDiffApp/jest.config.js"), sample_diff, "0.80.0",
        )
        
        assert not result.success
        assert "already exists" in result.errors[0]
    
    def test_deleted_file(self, tmp_path, fetcher):
        diff = (
            "diff --git a/RnDiffApp/.flowconfig b/RnDiffApp/.flowconfig\n"
            "deleted file mode 100644\n"
            "--- a/RnDiffApp/.flowconfig\n"
            "+++ /dev/null\n"
            "@@ -1,2 +0,0 @@\n"
            "-[ignore]\n"
            "-.*/node_modules/\n"
        )
        (tmp_path / ".flowconfig").write_text("[ignore]\n.*/node_modules/\n", encoding="utf-8")
        change = ComplexChange(
            id="config_RnDiffApp__flowconfig",
            kind=ChangeKind.CONFIGURATION,
            file_path="RnDiffApp/.flowconfig",
            description="",
            severity=Severity.LOW,
            requires_migration=False,
            status=ChangeStatus.DELETED,
        )
        applier = ChangeApplier(tmp_path, fetcher=fetcher)
        
        first = applier.apply([change], diff, "0.80.0")
        second = applier.apply([change], diff, "0.80.0")
        
        assert first.applied_changes[0].message == "File removed"
        assert not (tmp_path / ".flowconfig").exists()
        assert (tmp_path / ".flowconfig.backup").exists()
        assert second.applied_changes[0].message == "File already removed"
    
    def test_missing_diff_record(self, sample_project, fetcher):
        change = ComplexChange(
            id="source_RnDiffApp_Other_tsx",
            kind=ChangeKind.SOURCE_CODE,
            file_path="RnDiffApp/Other.tsx",
            description="",
            severity=Severity.MEDIUM,
            requires_migration=True,
        )
        
        result = ChangeApplier(sample_project, fetcher=fetcher).apply([change], "", "0.80.0")
        
        assert not result.success
        assert "No diff content found" in result.errors[0]


def test_automation_status():
    automated, note = automation_status(ChangeKind.BINARY)
    
    assert automated
    assert "downloaded" in note
    assert ChangeApplier.automation_status(ChangeKind.UNCLASSIFIED) == (
        False, "Manual intervention may be required",
    )



def _change(kind: ChangeKind, path: str, status: ChangeStatus = ChangeStatus.MODIFIED) -> ComplexChange:
    return ComplexChange(
        id=ComplexChange.make_id(kind, path),
        kind=kind,
        file_path=path,
        description="",
        severity=Severity.MEDIUM,
        requires_migration=True,
        status=status,
    )


def _modified(path: str, hunk: str) -> str:
    return (
        f"diff --git a/{path} b/{path}\n"
        "index 1111111..2222222 100644\n"
        f"--- a/{path}\n"
        f"+++ b/{path}\n"
        f"{hunk}"
    )


def _binary(path: str) -> str:
    return (
        f"diff --git a/{path} b/{path}\n"
        "index 3333333..4444444 100644\n"
        f"Binary files a/{path} and b/{path} differ\n"
    )


class TestApplyFailuresStayLocal:
    """Test failures that must only fail their own change."""
    
    def test_non_utf8_file_does_not_stop_siblings(self, tmp_path, fetcher):
        diff = _modified(
            "RnDiffApp/ios/A.m", "@@ -1,2 +1,2 @@\n café\n-old\n+new\n"
        ) + _modified(
            "RnDiffApp/b.json", '@@ -1 +1 @@\n-{"a": 1}\n+{"a": 2}\n'
        )
        (tmp_path / "ios").mkdir()
        (tmp_path / "ios/A.m").write_bytes(b"caf\xe9\nold\n")
        (tmp_path / "b.json").write_text('{"a": 1}\n', encoding="utf-8")
        changes = [
            _change(ChangeKind.NATIVE_CODE, "RnDiffApp/ios/A.m"),
            _change(ChangeKind.CONFIGURATION, "RnDiffApp/b.json"),
        ]
        
        result = ChangeApplier(tmp_path, fetcher=fetcher).apply(changes, diff, "0.80.0")
        
        assert [c.success for c in result.applied_changes] == [False, True]
        assert "not valid UTF-8" in result.errors[0]
        assert (tmp_path / "ios/A.m").read_bytes() == b"caf\xe9\nold\n"
        assert (tmp_path / "b.json").read_text(encoding="utf-8") == '{"a": 2}\n'
    
    def test_cancel_fails_only_the_download_in_flight(self, tmp_path):
        jar = "RnDiffApp/android/gradle/wrapper/gradle-wrapper.jar"
        extra = "RnDiffApp/android/app/libs/extra.jar"
        diff = _binary(jar) + _binary(extra)
        wrapper = tmp_path / "android/gradle/wrapper/gradle-wrapper.jar"
        wrapper.parent.mkdir(parents=True)
        wrapper.write_bytes(OLD_WRAPPER_JAR)
        
        def handler(request):
            if request.url.path.endswith("gradle-wrapper.jar"):
                fetcher.cancel()
            return httpx.Response(200, content=NEW_WRAPPER_JAR)
        
        client = SyncHTTPClient(retry_config=RetryConfig(max_retries=0, base_delay=0.0))
        client._client.close()
        client._client = httpx.Client(transport=httpx.MockTransport(handler))
        fetcher = BinaryFetcher(client=client)
        
        result = ChangeApplier(tmp_path, fetcher=fetcher).apply(
            [_change(ChangeKind.BINARY, jar), _change(ChangeKind.BINARY, extra)], diff, "0.80.0",
        )
        client.close()
        
        assert [c.success for c in result.applied_changes] == [False, True]
        assert "Download cancelled" in result.errors[0]
        assert wrapper.read_bytes() == OLD_WRAPPER_JAR
        assert (tmp_path / "android/app/libs/extra.jar").read_bytes() == NEW_WRAPPER_JAR
    
    def test_backup_failure_blocks_only_that_path(self, sample_diff, sample_project, plan, fetcher):
        (sample_project / "Gemfile.backup").mkdir()
        changes = _only(plan, "RnDiffApp/Gemfile") + _only(plan, "RnDiffApp/android/build.gradle")
        
        result = ChangeApplier(sample_project, fetcher=fetcher).apply(changes, sample_diff, "0.80.0")
        
        outcomes = {c.file_path: c.success for c in result.applied_changes}
        assert outcomes == {"RnDiffApp/Gemfile": False, "RnDiffApp/android/build.gradle": True}
        assert "Backup failed" in result.errors[0]
        assert (sample_project / "Gemfile").read_text(encoding="utf-8") == PROJECT_FILES["Gemfile"]
        assert 'kotlinVersion = "2.1.20"' in (sample_project / "android/build.gradle").read_text(encoding="utf-8")


class TestLineEndings:
    """Test line endings survive a text patch."""
    
    def test_crlf_file_keeps_crlf(self, tmp_path, fetcher):
        path = "RnDiffApp/android/gradlew.bat"
        diff = _modified(
            path,
            '@@ -1,3 +1,3 @@\n @rem start\n-set DEFAULT_JVM_OPTS="-Xmx64m"\n'
            '+set DEFAULT_JVM_OPTS="-Xmx64m" "-Xms64m"\n @rem end\n',
        )
        script = tmp_path / "android/gradlew.bat"
        script.parent.mkdir()
        script.write_bytes(b'@rem start\r\nset DEFAULT_JVM_OPTS="-Xmx64m"\r\n@rem end\r\n')
        
        result = ChangeApplier(tmp_path, fetcher=fetcher).apply(
            [_change(ChangeKind.CONFIGURATION, path)], diff, "0.80.0",
        )
        
        assert result.success
        assert script.read_bytes() == (
            b'@rem start\r\nset DEFAULT_JVM_OPTS="-Xmx64m" "-Xms64m"\r\n@rem end\r\n'
        )
    
    def test_lf_file_keeps_lf(self, sample_diff, sample_project, plan, fetcher):
        ChangeApplier(sample_project, fetcher=fetcher).apply(
            _only(plan, "RnDiffApp/Gemfile"), sample_diff, "0.80.0",
        )
        
        assert b"\r\n" not in (sample_project / "Gemfile").read_bytes()
