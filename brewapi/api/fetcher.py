"""Cached API file retrieval with domain fallback and corruption retry.

The loop has three exits:
- success: the cache file parses as JSON
- transport failure on the default domain with no usable cached copy
- corruption retry ceiling exceeded

Domain fallback happens at most once per call: after switching, the URL is
the default URL and further transport failures either reuse the cached copy
or raise.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from brewapi.core.config import INSECURE_DOWNLOAD_MTIME
from brewapi.core.system import insecure_download_warning
from brewapi.api.cache import CachedFile
from brewapi.api.exceptions import CorruptionError
from brewapi.api.transport import ApiTransport, DownloadOutcome

log = logging.getLogger(__name__)


@dataclass
class FetchedFile:
    """Outcome of a DomainFallbackFetcher run.

    Attributes:
        document: Parsed JSON content of the cache file.
        downloaded: Whether a download was attempted (file touched).
        url: The URL last used (the default URL after a fallback).
    """
    document: Any
    downloaded: bool
    url: str


class DomainFallbackFetcher:
    """Fetch an endpoint into its cache file and parse it.

    Args:
        transport: HTTP transport.
        max_retries: Corrupt downloads tolerated before giving up.
        clock: Time source for touching downloaded files.
    """

    def __init__(
        self,
        transport: ApiTransport,
        max_retries: int,
        clock: Callable[[], float] = time.time,
    ):
        self.transport = transport
        self.max_retries = max_retries
        self.clock = clock

    def fetch(
        self,
        endpoint: str,
        url: str,
        default_url: str,
        target: CachedFile,
        skip_download: bool = False,
        insecure: bool = False,
    ) -> FetchedFile:
        """Run the download/parse loop for one endpoint.

        Args:
            endpoint: Endpoint name (for log messages).
            url: Primary URL.
            default_url: URL on the hardcoded default domain.
            target: Cache file to refresh and parse.
            skip_download: Use the cached file without contacting the server.
            insecure: Disable TLS certificate verification.

        Returns:
            FetchedFile with the parsed document.

        Raises:
            TransportError: Download failed and no cached copy is usable.
            CorruptionError: Too many corrupt downloads.
        """
        retry_count = 0

        while True:
            if not skip_download:
                outcome = self._download(endpoint, url, target, insecure)

                if not outcome.ok:
                    if url == default_url:
                        if not target.has_content():
                            raise outcome.error
                    elif retry_count == 0 or not target.has_content():
                        log.warning(
                            f"{outcome.error.message}; retrying with {default_url}",
                            extra={"endpoint": endpoint, "url": url},
                        )
                        url = default_url
                        if target.exists() and target.is_empty():
                            target.unlink()
                        skip_download = False
                        continue

                    log.warning(
                        f"{target.name}: update failed, falling back to cached version.",
                        extra={"endpoint": endpoint, "url": url},
                    )

                target.touch(INSECURE_DOWNLOAD_MTIME if insecure else self.clock())

            try:
                document = json.loads(target.read_text())
            except (ValueError, FileNotFoundError) as e:
                # ValueError covers both JSONDecodeError and UnicodeDecodeError
                log.warning(f"Corrupt cache file {target.path}: {e}", extra={"endpoint": endpoint, "url": url})
                target.unlink()
                retry_count += 1
                skip_download = False
                if retry_count > self.max_retries:
                    raise CorruptionError(url)
                continue

            return FetchedFile(document=document, downloaded=not skip_download, url=url)

    def _download(self, endpoint: str, url: str, target: CachedFile, insecure: bool) -> DownloadOutcome:
        if_modified_since = target.mtime() if target.has_content() else None
        if insecure:
            log.warning(insecure_download_warning(endpoint), extra={"endpoint": endpoint})

        log.info(f"Downloading {url}", extra={"endpoint": endpoint, "url": url})
        return self.transport.download(
            url,
            target,
            if_modified_since=if_modified_since,
            insecure=insecure,
        )
