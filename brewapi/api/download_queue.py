"""Deferred batch download of API files.

ApiClient.fetch_json_api_file enqueues a JSONDownload instead of fetching
inline when given a queue. DownloadQueue.fetch then runs every pending
download concurrently; each download goes through the normal single-endpoint
pipeline, so cache, fallback and signature rules are unchanged.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List

from brewapi.api.models import FetchResult

if TYPE_CHECKING:
    from brewapi.api.client import ApiClient

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class JSONDownload:
    """A deferred fetch of one API endpoint.

    Attributes:
        endpoint: Endpoint name, e.g. "formula.jws.json".
        target: Cache file path.
        stale_seconds: Staleness window to apply when run.
    """
    endpoint: str
    target: Path
    stale_seconds: int

    def run(self, client: "ApiClient") -> FetchResult:
        return client.fetch_json_api_file(
            self.endpoint,
            target=self.target,
            stale_seconds=self.stale_seconds,
        )


class DownloadQueue:
    """Collects JSONDownloads and runs them in a thread pool.

    Downloads for the same target path are coalesced: the first one enqueued
    wins.
    """

    def __init__(self, max_workers: int = 4):
        self.max_workers = max_workers
        self._pending: Dict[Path, JSONDownload] = {}

    def enqueue(self, download: JSONDownload) -> None:
        if download.target in self._pending:
            log.debug(f"Already queued: {download.target}")
            return
        self._pending[download.target] = download

    @property
    def pending(self) -> List[JSONDownload]:
        return list(self._pending.values())

    def __len__(self) -> int:
        return len(self._pending)

    def fetch(self, client: "ApiClient") -> Dict[JSONDownload, FetchResult]:
        """Run and drain all pending downloads.

        Every download runs to completion even if others fail.

        Returns:
            Mapping of download to its FetchResult.

        Raises:
            ApiError: The first failure (in enqueue order), after all
                downloads have finished.
        """
        downloads = self.pending
        self._pending.clear()
        if not downloads:
            return {}

        results: Dict[JSONDownload, FetchResult] = {}
        errors: Dict[JSONDownload, Exception] = {}

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {executor.submit(download.run, client): download for download in downloads}
            for future in as_completed(futures):
                download = futures[future]
                try:
                    results[download] = future.result()
                except Exception as e:
                    log.error(f"Failed to download {download.endpoint}: {e}", extra={"endpoint": download.endpoint})
                    errors[download] = e

        if errors:
            first = next(download for download in downloads if download in errors)
            raise errors[first]

        return results
