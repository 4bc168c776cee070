"""API client: the entry points used by formula/cask loading.

ApiClient composes the in-memory CacheStore, the DomainFallbackFetcher and
the JWS verifier:

    client = ApiClient()
    formulae, updated = client.fetch_json_api_file("formula.jws.json")

fetch() is the uncached-on-disk path for small static resources;
fetch_json_api_file() is the cached, staleness-aware path for the large
package lists.
"""

import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from cryptography.hazmat.primitives.asymmetric import rsa

from brewapi.core.config import DEFAULT_API_DOMAIN, JWS_ENDPOINT_SUFFIX, ApiConfig
from brewapi.core.system import insecure_download_required, running_as_root_but_not_owned_by_root
from brewapi.api.cache import CachedFile, CacheStore
from brewapi.api.download_queue import DownloadQueue, JSONDownload
from brewapi.api.exceptions import ConfigurationError, IntegrityError, UsageError
from brewapi.api.fetcher import DomainFallbackFetcher
from brewapi.api.models import FetchResult
from brewapi.api.signature import load_public_key, verify_and_parse_jws
from brewapi.api.transport import ApiTransport
from brewapi.api.variations import merge_variations

log = logging.getLogger(__name__)


class ApiClient:
    """Fetches, caches and verifies API JSON files.

    Args:
        config: Settings (defaults to ApiConfig.from_env()).
        cache: In-memory endpoint cache shared by fetch() calls.
        transport: HTTP transport (defaults to one built from config).
        public_key: Verification key (defaults to config.public_key_path).
        clock: Time source for staleness checks and touching files.
    """

    def __init__(
        self,
        config: Optional[ApiConfig] = None,
        cache: Optional[CacheStore] = None,
        transport: Optional[ApiTransport] = None,
        public_key: Optional[rsa.RSAPublicKey] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config if config is not None else ApiConfig.from_env()
        self.cache = cache if cache is not None else CacheStore()
        self.transport = transport if transport is not None else ApiTransport(
            speed_limit=self.config.speed_limit,
            speed_time=self.config.speed_time,
        )
        self.clock = clock
        self._public_key = public_key
        self._fetcher = DomainFallbackFetcher(
            self.transport,
            max_retries=self.config.curl_retries,
            clock=clock,
        )

    @property
    def public_key(self) -> rsa.RSAPublicKey:
        if self._public_key is None:
            self._public_key = load_public_key(self.config.public_key_path)
        return self._public_key

    def api_url(self, endpoint: str, domain: Optional[str] = None) -> str:
        return f"{domain or self.config.api_domain}/{endpoint}"

    # -------------------------------------------------------------------------
    # Static resources
    # -------------------------------------------------------------------------

    def fetch(self, endpoint: str) -> Any:
        """Fetch and memoize a JSON resource, bypassing the on-disk cache.

        Falls back once to the default domain when a custom domain fails.

        Raises:
            UsageError: Resource missing on both domains, or not valid JSON.
        """
        if endpoint in self.cache:
            return self.cache.get(endpoint)

        api_url = self.api_url(endpoint)
        outcome = self.transport.get(api_url)
        if not outcome.ok and not self.config.uses_default_domain:
            log.warning(f"{outcome.error.message}; retrying with default domain", extra={"endpoint": endpoint})
            api_url = self.api_url(endpoint, DEFAULT_API_DOMAIN)
            outcome = self.transport.get(api_url)

        if not outcome.ok:
            raise UsageError.not_found(api_url) from outcome.error

        try:
            document = json.loads(outcome.content)
        except ValueError as e:
            raise UsageError.invalid_json(api_url) from e

        self.cache.put(endpoint, document)
        return document

    # -------------------------------------------------------------------------
    # Cached API files
    # -------------------------------------------------------------------------

    def fetch_json_api_file(
        self,
        endpoint: str,
        target: Optional[Path] = None,
        stale_seconds: Optional[int] = None,
        download_queue: Optional[DownloadQueue] = None,
    ) -> FetchResult:
        """Return the parsed API file, refreshing the cached copy when due.

        Args:
            endpoint: Endpoint name, e.g. "formula.jws.json".
            target: Cache file (defaults to <cache_root>/<endpoint>).
            stale_seconds: Staleness window (defaults to config.auto_update_secs).
            download_queue: When given, a needed download is enqueued instead
                of performed, and ({}, False) is returned.

        Returns:
            FetchResult(document, fresh) where fresh is True iff a download
            was performed by this call.

        Raises:
            ConfigurationError: Root run needing a first download.
            TransportError: Download failed and no cached copy exists.
            CorruptionError: Repeated corrupt downloads.
            IntegrityError: Signed envelope failed verification.
        """
        target = CachedFile(target if target is not None else self.config.cache_root / endpoint)
        if stale_seconds is None:
            stale_seconds = self.config.auto_update_secs

        url = self.api_url(endpoint)
        default_url = self.api_url(endpoint, DEFAULT_API_DOMAIN)

        as_root = running_as_root_but_not_owned_by_root(self.config.prefix)
        if as_root and not target.has_content():
            raise ConfigurationError.root_download(url)

        skip_download = self._skip_download(target, stale_seconds) or as_root

        if download_queue is not None:
            if not skip_download:
                download_queue.enqueue(JSONDownload(endpoint, target.path, stale_seconds))
            return FetchResult({}, False)

        fetched = self._fetcher.fetch(
            endpoint,
            url,
            default_url,
            target,
            skip_download=skip_download,
            insecure=insecure_download_required(),
        )

        if not endpoint.endswith(JWS_ENDPOINT_SUFFIX):
            return FetchResult(fetched.document, fetched.downloaded)

        success, data = verify_and_parse_jws(fetched.document, self.public_key)
        if not success:
            target.unlink()
            error = IntegrityError(data, fetched.url)
            log.error(error.message, extra={"endpoint": endpoint, "url": fetched.url})
            raise error

        return FetchResult(data, fetched.downloaded)

    def _skip_download(self, target: CachedFile, stale_seconds: int) -> bool:
        """Whether the cached copy can be used without a network round trip."""
        if not target.has_content():
            return False

        config = self.config
        return (
            not config.auto_update_command
            or (config.no_auto_update and not config.force_api_auto_update)
            or target.is_fresh(stale_seconds, now=self.clock())
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def merge_variations(self, document: Dict[str, Any], bottle_tag: Optional[str] = None) -> Dict[str, Any]:
        return merge_variations(document, bottle_tag=bottle_tag)

    def write_names_file(self, names: Iterable[str], type: str, regenerate: bool) -> bool:
        """Write <cache_root>/<type>_names.txt, one name per line.

        Returns:
            True if the file was written, False if it existed and
            regenerate was False.
        """
        names_file = CachedFile(self.config.cache_root / f"{type}_names.txt")
        if not names_file.exists() or regenerate:
            names_file.write_text("\n".join(names))
            return True

        return False

    def tap_from_source_download(self, path: Path) -> Optional[Tuple[str, str]]:
        """Map a downloaded source file back to its (org, repo) tap.

        Sources live under <HOMEBREW_CACHE>/api-source/<org>/<repo>/...

        Returns:
            (org, repo), or None when path is outside the source cache or
            lacks either component.
        """
        path = Path(os.path.abspath(Path(path).expanduser()))
        root = Path(os.path.abspath(self.config.source_cache_root))
        try:
            relative = path.relative_to(root)
        except ValueError:
            return None

        parts = relative.parts
        if len(parts) < 2:
            return None

        org, repo = parts[0], parts[1]
        if not org.strip() or not repo.strip():
            return None
        return org, repo
