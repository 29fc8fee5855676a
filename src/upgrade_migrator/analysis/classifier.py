"""Path-based classification of diff file records."""

import logging

from upgrade_migrator.config import get_config
from upgrade_migrator.models import ChangeKind, DiffFileRecord

logger = logging.getLogger(__name__)

BUILD_FILE_NAMES = frozenset({
    "build.gradle",
    "gradle.properties",
    "gradle-wrapper.properties",
    "gradle-wrapper.jar",
    "gradlew",
    "gradlew.bat",
    "settings.gradle",
})

NATIVE_DIRECTORIES = ("ios/", "android/", "src/main/java", "src/main/kotlin")

NATIVE_EXTENSIONS = frozenset({"kt", "java", "swift", "m", "mm", "h", "cpp", "c"})

CONFIG_EXTENSIONS = frozenset({"json", "js", "ts", "yaml", "yml", "toml", "ini"})

CONFIG_FILE_NAMES = frozenset({
    "tsconfig.json",
    ".prettierrc.js",
    ".prettierrc",
    "metro.config.js",
    "babel.config.js",
    "jest.config.js",
    "eslint.config.js",
    ".eslintrc.js",
    ".eslintrc.json",
    ".eslintrc",
    "react-native.config.js",
    ".watchmanconfig",
    "Gemfile",
})

SOURCE_EXTENSIONS = frozenset({"tsx", "ts", "jsx", "js"})


def _extension(name: str) -> str:
    if "." not in name.lstrip("."):
        return ""
    return name.rsplit(".", 1)[-1].lower()


def _under(path: str, directory: str) -> bool:
    return path.startswith(directory) or f"/{directory}" in path


def classify_path(path: str) -> ChangeKind | None:
    """Classify a path by name and location.
    
    Rules are tried in order and the first match wins: build system,
    native code, configuration, then source code.
    
    Args:
        path: Diff path of the file
        
    Returns:
        Change kind, or None if no rule matches
    """
    name = path.rsplit("/", 1)[-1]
    extension = _extension(name)
    
    if (
        name in BUILD_FILE_NAMES
        or _under(path, "gradle/")
        or name.endswith((".gradle", ".gradle.kts"))
    ):
        return ChangeKind.BUILD_SYSTEM
    
    if extension in NATIVE_EXTENSIONS and any(_under(path, d) for d in NATIVE_DIRECTORIES):
        return ChangeKind.NATIVE_CODE
    
    if extension in CONFIG_EXTENSIONS or name in CONFIG_FILE_NAMES:
        return ChangeKind.CONFIGURATION
    
    if extension in SOURCE_EXTENSIONS:
        return ChangeKind.SOURCE_CODE
    
    return None


class FileClassifier:
    """Assigns a change kind to each diff file record."""
    
    def __init__(self, surface_unclassified: bool | None = None) -> None:
        """Initialize classifier.
        
        Args:
            surface_unclassified: Keep files matching no rule as
                unclassified instead of dropping them (defaults to config)
        """
        if surface_unclassified is None:
            surface_unclassified = get_config().surface_unclassified
        self.surface_unclassified = surface_unclassified
    
    def classify(self, record: DiffFileRecord) -> ChangeKind | None:
        """Classify one record.
        
        Binary records are always binary changes, whatever their path.
        
        Returns:
            Change kind, or None if the record is dropped
        """
        if record.is_binary:
            return ChangeKind.BINARY
        
        kind = classify_path(record.path)
        
        if kind is None:
            if self.surface_unclassified:
                return ChangeKind.UNCLASSIFIED
            logger.debug(f"No classification for {record.path}, dropping")
        
        return kind
    
    def classify_all(
        self, records: list[DiffFileRecord]
    ) -> list[tuple[DiffFileRecord, ChangeKind]]:
        """Classify records, keeping diff order and skipping dropped ones."""
        classified: list[tuple[DiffFileRecord, ChangeKind]] = []
        
        for record in records:
            kind = self.classify(record)
            if kind is not None:
                classified.append((record, kind))
        
        return classified
