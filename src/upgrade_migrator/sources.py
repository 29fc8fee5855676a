"""Release diffs and the list of known releases."""

import logging
import re
from dataclasses import dataclass

import httpx
from packaging.version import InvalidVersion, Version

from upgrade_migrator.cache import get_cache
from upgrade_migrator.config import get_config
from upgrade_migrator.exceptions import FetchError
from upgrade_migrator.http_client import RetryConfig, SyncHTTPClient

logger = logging.getLogger(__name__)


def _make_client() -> SyncHTTPClient:
    config = get_config()
    return SyncHTTPClient(
        timeout=config.http_timeout,
        retry_config=RetryConfig(
            max_retries=int(config.get("http.max_retries", 3)),
            base_delay=float(config.get("http.base_delay", 1.0)),
        ),
    )


class DiffSource:
    """Fetches the unified diff between two releases."""
    
    def __init__(self, client: SyncHTTPClient | None = None, offline: bool = False) -> None:
        """Initialize diff source.
        
        Args:
            client: HTTP client (created from config if omitted)
            offline: If True, only use cached diffs
        """
        self.config = get_config()
        self.cache = get_cache()
        self.offline = offline
        self._owns_client = client is None
        self.client = client or _make_client()
    
    def url(self, from_version: str, to_version: str) -> str:
        """Diff URL for a release pair."""
        return f"{self.config.diff_base_url}/{from_version}..{to_version}.diff"
    
    def fetch(self, from_version: str, to_version: str) -> str:
        """Get the diff text for a release pair.
        
        Args:
            from_version: Current release
            to_version: Target release
            
        Returns:
            Raw unified diff
            
        Raises:
            FetchError: If the diff is unreachable or not found
        """
        cache_key = f"{from_version}..{to_version}"
        ttl = int(self.config.get("cache.diff_ttl_hours", 0))
        
        cached = self.cache.get(cache_key, cache_type="diff", ttl_hours=ttl)
        if cached:
            logger.debug(f"Using cached diff {cache_key}")
            return cached
        
        url = self.url(from_version, to_version)
        
        if self.offline:
            raise FetchError(url, "Not cached and running offline")
        
        logger.info(f"Fetching diff {url}")
        text = self.client.get_text(url)
        
        self.cache.set(cache_key, text, cache_type="diff")
        return text
    
    def exists(self, from_version: str, to_version: str) -> bool:
        """Check if a diff is published for a release pair."""
        try:
            response = self.client.head(self.url(from_version, to_version))
        except httpx.HTTPError as e:
            logger.debug(f"Diff existence check failed: {e}")
            return False
        return response.status_code == 200
    
    def close(self) -> None:
        if self._owns_client:
            self.client.close()


@dataclass(frozen=True)
class Release:
    """One published framework release."""
    
    version: str
    
    @property
    def is_release_candidate(self) -> bool:
        return "-rc" in self.version
    
    @property
    def is_prerelease(self) -> bool:
        return "-" in self.version and not self.is_release_candidate
    
    @property
    def is_stable(self) -> bool:
        return "-" not in self.version
    
    @property
    def sort_key(self) -> Version:
        """Comparable version; unparseable tags fall back to their digits."""
        try:
            return Version(self.version)
        except InvalidVersion:
            numeric = re.sub(r"[^\d.]", "", self.version).strip(".") or "0"
            try:
                return Version(numeric)
            except InvalidVersion:
                return Version("0")


class ReleasesService:
    """Lists releases that have published diffs."""
    
    def __init__(self, client: SyncHTTPClient | None = None, offline: bool = False) -> None:
        self.config = get_config()
        self.cache = get_cache()
        self.offline = offline
        self._owns_client = client is None
        self.client = client or _make_client()
        self._releases: list[Release] | None = None
    
    def fetch_releases(self) -> list[Release]:
        """Get all releases, newest first.
        
        Raises:
            FetchError: If the release list is unreachable
        """
        if self._releases is not None:
            return self._releases
        
        ttl = int(self.config.get("cache.releases_ttl_hours", 24))
        text = self.cache.get("releases", cache_type="releases", ttl_hours=ttl)
        
        if not text:
            if self.offline:
                raise FetchError(self.config.releases_url, "Not cached and running offline")
            text = self.client.get_text(self.config.releases_url)
            self.cache.set("releases", text, cache_type="releases")
        
        releases = [Release(v) for v in dict.fromkeys(text.split())]
        releases.sort(key=lambda r: r.sort_key, reverse=True)
        
        self._releases = releases
        logger.debug(f"Loaded {len(releases)} releases")
        return releases
    
    def stable_releases(self) -> list[Release]:
        return [r for r in self.fetch_releases() if r.is_stable]
    
    def release_candidates(self) -> list[Release]:
        return [r for r in self.fetch_releases() if r.is_release_candidate]
    
    def releases_after(self, version: str, include_prereleases: bool = False) -> list[Release]:
        """Releases newer than a version, newest first."""
        current = Release(version).sort_key
        return [
            r for r in self.fetch_releases()
            if r.sort_key > current and (include_prereleases or r.is_stable)
        ]
    
    def latest_stable(self) -> Release | None:
        stable = self.stable_releases()
        return stable[0] if stable else None
    
    def clear(self) -> None:
        """Forget the in-memory release list."""
        self._releases = None
    
    def close(self) -> None:
        if self._owns_client:
            self.client.close()
