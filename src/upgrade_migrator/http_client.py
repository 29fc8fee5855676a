"""HTTP client with retry logic for diff and asset downloads."""

import logging
import threading
import time
from typing import Any, Callable

import httpx

from upgrade_migrator.exceptions import DownloadCancelledError, FetchError

logger = logging.getLogger(__name__)

USER_AGENT = "upgrade-migrator/0.4"

ProgressCallback = Callable[[int, int | None], None]


class RetryConfig:
    """Configuration for retry behavior."""
    
    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        exponential_base: float = 2.0,
    ) -> None:
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
    
    def delay_for(self, attempt: int) -> float:
        """Backoff delay before the next attempt."""
        return min(
            self.base_delay * (self.exponential_base ** attempt),
            self.max_delay,
        )


class SyncHTTPClient:
    """Synchronous HTTP client with retry and streamed downloads."""
    
    def __init__(
        self,
        timeout: float = 30.0,
        retry_config: RetryConfig | None = None,
    ) -> None:
        self.timeout = timeout
        self.retry_config = retry_config or RetryConfig()
        self._client = httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )
    
    def get(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Make GET request with retry logic."""
        return self._request_with_retry("GET", url, headers=headers, **kwargs)
    
    def head(self, url: str, **kwargs: Any) -> httpx.Response:
        """Make HEAD request with retry logic."""
        return self._request_with_retry("HEAD", url, **kwargs)
    
    def get_text(self, url: str) -> str:
        """Fetch a URL and return its body as text.
        
        Args:
            url: URL to request
            
        Returns:
            Response body
            
        Raises:
            FetchError: On network failure or any non-200 response
        """
        try:
            response = self.get(url)
        except httpx.HTTPError as e:
            raise FetchError(url, str(e)) from e
        
        if response.status_code != 200:
            raise FetchError(
                url,
                f"HTTP {response.status_code}",
                status_code=response.status_code,
            )
        
        return response.text
    
    def stream_bytes(
        self,
        url: str,
        on_progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
        chunk_size: int = 64 * 1024,
    ) -> bytes:
        """Download a URL fully into memory.
        
        The payload is returned only once every chunk has arrived, so a
        cancelled or failed transfer never yields partial content.
        
        Args:
            url: URL to download
            on_progress: Called with (received_bytes, total_bytes_or_None)
            cancel_event: When set, the transfer is aborted
            chunk_size: Read size per iteration
            
        Returns:
            Downloaded bytes
            
        Raises:
            FetchError: On network failure, timeout or non-200 response
            DownloadCancelledError: If cancel_event was set
        """
        chunks: list[bytes] = []
        received = 0
        
        try:
            with self._client.stream("GET", url) as response:
                if response.status_code != 200:
                    raise FetchError(
                        url,
                        f"HTTP {response.status_code}",
                        status_code=response.status_code,
                    )
                
                length = response.headers.get("Content-Length")
                total = int(length) if length and length.isdigit() else None
                
                for chunk in response.iter_bytes(chunk_size):
                    if cancel_event is not None and cancel_event.is_set():
                        raise DownloadCancelledError(url, "Download cancelled")
                    
                    chunks.append(chunk)
                    received += len(chunk)
                    
                    if on_progress:
                        on_progress(received, total)
        
        except httpx.TimeoutException as e:
            raise FetchError(url, f"Timed out: {e}") from e
        except httpx.HTTPError as e:
            raise FetchError(url, str(e)) from e
        
        return b"".join(chunks)
    
    def _request_with_retry(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Execute request with exponential backoff retry."""
        last_exception: Exception | None = None
        
        for attempt in range(self.retry_config.max_retries + 1):
            try:
                response = self._client.request(method, url, **kwargs)
                
                # Check for rate limit response
                if response.status_code == 429:
                    retry_after = int(response.headers.get("Retry-After", 60))
                    logger.warning(f"Rate limited, waiting {retry_after}s")
                    time.sleep(retry_after)
                    continue
                
                # Check for server errors (retry-able)
                if response.status_code >= 500:
                    raise httpx.HTTPStatusError(
                        f"Server error: {response.status_code}",
                        request=response.request,
                        response=response,
                    )
                
                return response
                
            except (httpx.TimeoutException, httpx.ConnectError, httpx.HTTPStatusError) as e:
                last_exception = e
                
                if attempt < self.retry_config.max_retries:
                    delay = self.retry_config.delay_for(attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}), retrying in {delay:.1f}s: {e}"
                    )
                    time.sleep(delay)
                else:
                    logger.error(f"Request failed after {attempt + 1} attempts: {e}")
        
        if last_exception:
            raise last_exception
        
        raise httpx.HTTPError("Request failed with no exception")
    
    def close(self) -> None:
        """Close the client."""
        self._client.close()
    
    def __enter__(self) -> "SyncHTTPClient":
        """Context manager entry."""
        return self
    
    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()
