"""HTTP transport for API files.

Thin httpx adapter with:
- Conditional GET (If-Modified-Since) leaving the target untouched on 304
- Atomic replacement of the target file
- Minimum transfer rate enforcement (speed limit over a time window)
- No transport-level retries unless configured; the fetch pipeline
  handles retries itself

Failures are returned as DownloadOutcome values carrying a TransportError,
never raised, so callers decide between domain fallback and stale cache.
"""

import logging
import time
from dataclasses import dataclass
from email.utils import formatdate
from typing import BinaryIO, Optional

import httpx

from brewapi.core.config import (
    CONNECT_TIMEOUT_SECONDS,
    CURL_SPEED_LIMIT,
    CURL_SPEED_TIME,
    USER_AGENT,
)
from brewapi.api.cache import CachedFile
from brewapi.api.exceptions import TransportError

log = logging.getLogger(__name__)


@dataclass
class DownloadOutcome:
    """Result of one transfer attempt.

    Attributes:
        url: The URL requested.
        ok: Whether the transfer succeeded.
        content: Response body (get() only).
        not_modified: Server answered 304 to a conditional request.
        error: The failure, when ok is False.
    """
    url: str
    ok: bool
    content: Optional[bytes] = None
    not_modified: bool = False
    error: Optional[TransportError] = None

    @classmethod
    def success(cls, url: str, content: Optional[bytes] = None, not_modified: bool = False) -> "DownloadOutcome":
        return cls(url=url, ok=True, content=content, not_modified=not_modified)

    @classmethod
    def failure(cls, url: str, error: TransportError) -> "DownloadOutcome":
        return cls(url=url, ok=False, error=error)


class ApiTransport:
    """Blocking HTTP client for API endpoints.

    Args:
        speed_limit: Minimum bytes/s averaged over speed_time.
        speed_time: Read timeout and speed measurement window, in seconds.
        retries: Connection retries performed by httpx.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        speed_limit: int = CURL_SPEED_LIMIT,
        speed_time: int = CURL_SPEED_TIME,
        retries: int = 0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.speed_limit = speed_limit
        self.speed_time = speed_time
        self.retries = retries
        self._transport = transport

    def _client(self, insecure: bool = False) -> httpx.Client:
        transport = self._transport or httpx.HTTPTransport(
            retries=self.retries,
            verify=not insecure,
        )
        return httpx.Client(
            timeout=httpx.Timeout(self.speed_time, connect=CONNECT_TIMEOUT_SECONDS),
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
            transport=transport,
        )

    def get(self, url: str) -> DownloadOutcome:
        """Fetch a URL into memory."""
        try:
            with self._client() as client:
                response = client.get(url)
                response.raise_for_status()
                return DownloadOutcome.success(url, content=response.content)
        except httpx.HTTPError as e:
            return DownloadOutcome.failure(url, _translate(e, url, self.speed_time))

    def download(
        self,
        url: str,
        target: CachedFile,
        if_modified_since: Optional[float] = None,
        insecure: bool = False,
    ) -> DownloadOutcome:
        """Download a URL into target, replacing it atomically.

        Args:
            url: URL to fetch.
            target: Cache file to replace.
            if_modified_since: Only transfer when newer than this timestamp.
            insecure: Disable TLS certificate verification.
        """
        headers = {}
        if if_modified_since is not None:
            headers["If-Modified-Since"] = formatdate(if_modified_since, usegmt=True)

        try:
            with self._client(insecure=insecure) as client:
                with client.stream("GET", url, headers=headers) as response:
                    if response.status_code == 304:
                        log.debug(f"Not modified: {url}")
                        return DownloadOutcome.success(url, not_modified=True)
                    response.raise_for_status()

                    with target.atomic_writer() as f:
                        self._copy(response, f, url)

            return DownloadOutcome.success(url)
        except TransportError as e:
            return DownloadOutcome.failure(url, e)
        except httpx.HTTPError as e:
            return DownloadOutcome.failure(url, _translate(e, url, self.speed_time))
        except OSError as e:
            return DownloadOutcome.failure(url, TransportError(f"Cannot write {target.path}: {e}", url=url))

    def _copy(self, response: httpx.Response, f: BinaryIO, url: str) -> None:
        """Stream the body to f, aborting transfers below the speed limit."""
        window_start = time.monotonic()
        window_bytes = 0

        for chunk in response.iter_bytes():
            f.write(chunk)
            window_bytes += len(chunk)

            elapsed = time.monotonic() - window_start
            if elapsed >= self.speed_time:
                if window_bytes / elapsed < self.speed_limit:
                    raise TransportError(
                        f"Transfer of {url} slower than {self.speed_limit} bytes/s "
                        f"for {self.speed_time}s",
                        url=url,
                    )
                window_start = time.monotonic()
                window_bytes = 0


def _translate(error: httpx.HTTPError, url: str, timeout: float) -> TransportError:
    """Map an httpx error onto TransportError."""
    if isinstance(error, httpx.TimeoutException):
        return TransportError(f"Timeout after {timeout}s fetching {url}", url=url)
    if isinstance(error, httpx.TooManyRedirects):
        return TransportError(f"Too many redirects fetching {url}", url=url)
    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        return TransportError(
            f"HTTP {response.status_code}: {response.reason_phrase} fetching {url}",
            url=url,
        )
    return TransportError(f"Request failed for {url}: {error}", url=url)
