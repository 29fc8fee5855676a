"""Binary release asset downloads."""

import hashlib
import logging
import threading

from upgrade_migrator.config import get_config
from upgrade_migrator.http_client import ProgressCallback, RetryConfig, SyncHTTPClient

logger = logging.getLogger(__name__)


def sha256(data: bytes) -> str:
    """Hex digest of a payload."""
    return hashlib.sha256(data).hexdigest()


class BinaryFetcher:
    """Downloads binary assets of a release.
    
    A cancel event shared with the caller aborts the transfer in flight;
    nothing is returned until the full payload has arrived.
    """
    
    def __init__(
        self,
        client: SyncHTTPClient | None = None,
        on_progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        """Initialize fetcher.
        
        Args:
            client: HTTP client (created from config if omitted)
            on_progress: Called with (received_bytes, total_bytes_or_None)
            cancel_event: Set to cancel the current download
        """
        config = get_config()
        self._owns_client = client is None
        self.client = client or SyncHTTPClient(
            timeout=config.http_timeout,
            retry_config=RetryConfig(
                max_retries=int(config.get("http.max_retries", 3)),
                base_delay=float(config.get("http.base_delay", 1.0)),
            ),
        )
        self.on_progress = on_progress
        self.cancel_event = cancel_event or threading.Event()
    
    def download(self, url: str) -> bytes:
        """Download one asset.
        
        A cancel applies to this download only; the event is cleared
        once it ends.
        
        Raises:
            FetchError: On network failure, timeout or non-200 response
            DownloadCancelledError: If the download was cancelled
        """
        logger.info(f"Downloading {url}")
        try:
            data = self.client.stream_bytes(
                url,
                on_progress=self.on_progress,
                cancel_event=self.cancel_event,
            )
        finally:
            self.cancel_event.clear()
        
        logger.info(f"Downloaded {len(data)} bytes, sha256 {sha256(data)}")
        return data
    
    def cancel(self) -> None:
        """Abort the download in flight."""
        self.cancel_event.set()
    
    def close(self) -> None:
        """Close the client if this fetcher created it."""
        if self._owns_client:
            self.client.close()
