"""Exceptions for migration operations."""


class MigrationError(Exception):
    """Base exception for all migration operations."""


class FetchError(MigrationError):
    """Raised when a diff or binary asset cannot be fetched."""
    
    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Failed to fetch {url}: {reason}")


class ApplyError(MigrationError):
    """Raised when a single change cannot be applied."""
    
    def __init__(self, file_path: str, reason: str) -> None:
        self.file_path = file_path
        self.reason = reason
        super().__init__(reason)


class ContentMismatchError(ApplyError):
    """Raised when the expected baseline content is not on disk."""


class DownloadCancelledError(ApplyError):
    """Raised when a binary download is cancelled by the caller."""


class BackupError(MigrationError):
    """Raised when a file cannot be snapshotted or restored."""
    
    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Backup failed for {path}: {reason}")
