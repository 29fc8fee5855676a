"""Migration analysis orchestrator."""

import logging
from pathlib import Path

from upgrade_migrator.analysis.change_analyzer import ChangeAnalyzer
from upgrade_migrator.analysis.classifier import FileClassifier
from upgrade_migrator.analysis.package_delta import PackageDeltaExtractor
from upgrade_migrator.config import get_config, is_ignored, load_ignore_file
from upgrade_migrator.manifest import ManifestReader
from upgrade_migrator.models import DiffFileRecord, MigrationPlan
from upgrade_migrator.parsers.diff import DiffParser, ParsedDiff
from upgrade_migrator.planner import MigrationPlanner
from upgrade_migrator.sources import DiffSource

logger = logging.getLogger(__name__)


class MigrationAnalyzer:
    """Turns a release-to-release diff into a migration plan for a project."""
    
    def __init__(
        self,
        project_root: Path,
        offline: bool = False,
        diff_source: DiffSource | None = None,
    ) -> None:
        """Initialize analyzer.
        
        Args:
            project_root: Root directory of the project
            offline: If True, use only cached diffs
            diff_source: Diff fetcher (created lazily if omitted)
        """
        self.project_root = Path(project_root)
        self.offline = offline
        self.config = get_config()
        
        # Initialize components
        self.parser = DiffParser()
        self.classifier = FileClassifier()
        self.change_analyzer = ChangeAnalyzer()
        self.package_extractor = PackageDeltaExtractor()
        self.planner = MigrationPlanner()
        
        self._diff_source = diff_source
        self.ignore_patterns = load_ignore_file(self.project_root)
        
        self.last_diff_text = ""
        self.last_parsed: ParsedDiff | None = None
    
    @property
    def diff_source(self) -> DiffSource:
        if self._diff_source is None:
            self._diff_source = DiffSource(offline=self.offline)
        return self._diff_source
    
    def analyze(self, from_version: str, to_version: str) -> MigrationPlan:
        """Fetch the release diff and plan the migration.
        
        Raises:
            FetchError: If the diff cannot be fetched
        """
        diff_text = self.diff_source.fetch(from_version, to_version)
        return self.analyze_text(diff_text, from_version, to_version)
    
    def analyze_text(self, diff_text: str, from_version: str, to_version: str) -> MigrationPlan:
        """Plan a migration from diff text already in hand.
        
        Args:
            diff_text: Raw unified diff between the two releases
            from_version: Current release
            to_version: Target release
            
        Returns:
            MigrationPlan
        """
        logger.info(f"Analyzing migration {from_version} -> {to_version} for {self.project_root}")
        
        parsed = self.parser.parse(diff_text, from_version, to_version)
        self.last_diff_text = diff_text
        self.last_parsed = parsed
        logger.info(f"Diff touches {len(parsed.files)} file(s): {parsed.summary}")
        
        manifest_record = parsed.manifest_record()
        records = self._filter(parsed.files, manifest_record)
        
        # 1. Classify and assess
        classified = self.classifier.classify_all(records)
        changes = self.change_analyzer.analyze_all(classified)
        
        # 2. Package deltas
        manifest = ManifestReader(self.project_root).read()
        package_text = self._package_text(diff_text, parsed, manifest_record)
        package_updates = self.package_extractor.extract(package_text, manifest)
        
        # 3. Plan
        return self.planner.plan(from_version, to_version, changes, package_updates)
    
    def _filter(
        self,
        records: list[DiffFileRecord],
        manifest_record: DiffFileRecord | None,
    ) -> list[DiffFileRecord]:
        """Drop the manifest (handled as package updates) and ignored paths."""
        kept: list[DiffFileRecord] = []
        
        for record in records:
            if manifest_record is not None and record.path == manifest_record.path:
                continue
            if is_ignored(record.path, self.ignore_patterns, self.config.root_prefix):
                logger.debug(f"Ignoring {record.path}")
                continue
            kept.append(record)
        
        return kept
    
    def _package_text(
        self,
        diff_text: str,
        parsed: ParsedDiff,
        manifest_record: DiffFileRecord | None,
    ) -> str:
        """Text the package delta is extracted from.
        
        The raw diff is used unless it yields no ecosystem versions; then
        the manifest record's hunks, or every record's hunks, are tried.
        """
        if self.package_extractor.target_versions(diff_text):
            return diff_text
        if manifest_record is not None:
            return manifest_record.content
        return "\n".join(record.content for record in parsed.files)
    
    def close(self) -> None:
        if self._diff_source is not None:
            self._diff_source.close()
