"""Unified diff parser producing per-file change records."""

import logging
import re
from dataclasses import dataclass, field

from upgrade_migrator.config import get_config
from upgrade_migrator.models import ChangeStatus, DiffFileRecord

logger = logging.getLogger(__name__)

NULL_PATH = "/dev/null"

FILE_HEADER_RE = re.compile(r"^diff --git (a/.+?|/dev/null) (b/.+|/dev/null)$")

BINARY_MARKERS = ("GIT binary patch", "Binary files ")

BINARY_EXTENSIONS = frozenset({
    # archives and packages
    ".jar", ".war", ".ear", ".zip", ".tar", ".gz", ".bz2", ".7z",
    ".apk", ".aab", ".ipa", ".app", ".dmg", ".pkg", ".deb", ".rpm", ".iso", ".img",
    # native libraries and objects
    ".exe", ".dll", ".so", ".dylib", ".a", ".lib", ".o", ".obj",
    ".class", ".pyc", ".pyo", ".bin", ".dat",
    # images and media
    ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".ico", ".svg", ".webp",
    ".mp3", ".mp4", ".avi", ".mov", ".wav", ".flac", ".aac",
    # documents
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
    # fonts
    ".ttf", ".otf", ".woff", ".woff2", ".eot",
    # keystores and certificates
    ".keystore", ".jks", ".p12", ".pfx", ".crt", ".cer", ".pem",
    # databases
    ".db", ".sqlite", ".sqlite3", ".mdb", ".accdb",
})


def is_binary_path(path: str) -> bool:
    """Check if a path has a binary file extension."""
    name = path.rsplit("/", 1)[-1].lower()
    if "." not in name:
        return False
    return name[name.rfind("."):] in BINARY_EXTENSIONS


def _strip_side(path: str) -> str:
    """Remove the a/ or b/ side prefix of a header path."""
    if path == NULL_PATH:
        return path
    stripped = path[2:]
    # "a//dev/null" spells the sentinel with a side prefix
    return NULL_PATH if stripped in {NULL_PATH, "dev/null"} else stripped


@dataclass
class ParsedDiff:
    """All file records of one release-to-release diff."""
    
    from_version: str
    to_version: str
    files: list[DiffFileRecord] = field(default_factory=list)
    
    @property
    def summary(self) -> dict[str, int]:
        """Count of records per change status."""
        counts = {status.value: 0 for status in ChangeStatus}
        for record in self.files:
            counts[record.status.value] += 1
        return counts
    
    def find(self, path: str) -> DiffFileRecord | None:
        """Get the record for a path."""
        for record in self.files:
            if record.path == path:
                return record
        return None
    
    def manifest_record(self) -> DiffFileRecord | None:
        """Get the record of the root package.json, if the diff touches it."""
        candidates = [r for r in self.files if r.file_name == "package.json"]
        if not candidates:
            return None
        return min(candidates, key=lambda r: r.path.count("/"))


@dataclass
class _PendingRecord:
    """Mutable state for the file currently being scanned."""
    
    path: str
    status: ChangeStatus
    binary_marker: bool = False
    in_hunk: bool = False
    lines: list[str] = field(default_factory=list)


class DiffParser:
    """Parses unified diff text into DiffFileRecord objects."""
    
    def __init__(self, release_base_url: str | None = None) -> None:
        """Initialize parser.
        
        Args:
            release_base_url: Base of binary asset URLs (defaults to config)
        """
        self.release_base_url = (
            release_base_url or get_config().release_base_url
        ).rstrip("/")
    
    def download_url(self, path: str, to_version: str) -> str:
        """Build the asset URL of a binary file at a release."""
        return f"{self.release_base_url}/{to_version}/{path}"
    
    def parse(self, diff_text: str, from_version: str = "", to_version: str = "") -> ParsedDiff:
        """Parse a multi-file unified diff.
        
        Malformed input never raises; text without file headers yields an
        empty result.
        
        Args:
            diff_text: Raw unified diff
            from_version: Release the diff starts from
            to_version: Release the diff ends at, used for binary URLs
            
        Returns:
            ParsedDiff with one record per file header, in diff order
        """
        parsed = ParsedDiff(from_version=from_version, to_version=to_version)
        
        if not isinstance(diff_text, str) or not diff_text:
            return parsed
        
        pending: _PendingRecord | None = None
        
        for line in diff_text.splitlines():
            if line.startswith("diff --git "):
                if pending:
                    parsed.files.append(self._finish(pending, to_version))
                pending = self._start(line)
                continue
            
            if pending is None:
                continue
            
            if pending.in_hunk:
                if line.startswith("@@"):
                    pending.lines.append(line)
                elif line.startswith(BINARY_MARKERS):
                    pending.binary_marker = True
                else:
                    pending.lines.append(line)
                continue
            
            if line.startswith("@@"):
                pending.in_hunk = True
                pending.lines.append(line)
            elif line.startswith(BINARY_MARKERS):
                pending.binary_marker = True
            elif line.startswith("new file mode") or line == f"--- {NULL_PATH}":
                pending.status = ChangeStatus.ADDED
            elif line.startswith("deleted file mode") or line == f"+++ {NULL_PATH}":
                pending.status = ChangeStatus.DELETED
        
        if pending:
            parsed.files.append(self._finish(pending, to_version))
        
        logger.debug(f"Parsed {len(parsed.files)} file records from diff")
        return parsed
    
    @staticmethod
    def _start(header: str) -> _PendingRecord:
        """Begin a record from a file header line."""
        match = FILE_HEADER_RE.match(header)
        
        if not match:
            # Unparseable header still counts as one file
            path = header[len("diff --git "):].strip()
            logger.debug(f"Unrecognized file header: {header}")
            return _PendingRecord(path=path, status=ChangeStatus.MODIFIED)
        
        old_path = _strip_side(match.group(1))
        new_path = _strip_side(match.group(2))
        
        if new_path == NULL_PATH:
            return _PendingRecord(path=old_path, status=ChangeStatus.DELETED)
        if old_path == NULL_PATH:
            return _PendingRecord(path=new_path, status=ChangeStatus.ADDED)
        return _PendingRecord(path=new_path, status=ChangeStatus.MODIFIED)
    
    def _finish(self, pending: _PendingRecord, to_version: str) -> DiffFileRecord:
        """Freeze a pending record."""
        is_binary = is_binary_path(pending.path) or pending.binary_marker
        
        if is_binary:
            return DiffFileRecord(
                path=pending.path,
                status=ChangeStatus.BINARY,
                content="",
                is_binary=True,
                download_url=self.download_url(pending.path, to_version),
            )
        
        return DiffFileRecord(
            path=pending.path,
            status=pending.status,
            content="\n".join(pending.lines),
        )
