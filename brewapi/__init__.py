"""Trusted ingestion of the formulae.brew.sh JSON API.

Fetches API files with staleness control and domain fallback, caches them
on disk, verifies signed (*.jws.json) payloads, and resolves per-platform
variations.
"""

from brewapi.api.cache import CachedFile, CacheMetrics, CacheStore
from brewapi.api.client import ApiClient
from brewapi.api.download_queue import DownloadQueue, JSONDownload
from brewapi.api.environment import with_no_api_env, with_no_api_env_if_needed
from brewapi.api.exceptions import (
    ApiError,
    ConfigurationError,
    CorruptionError,
    IntegrityError,
    TransportError,
    UsageError,
)
from brewapi.api.models import ErrorCode, FetchResult
from brewapi.api.signature import load_public_key, verify_and_parse_jws
from brewapi.api.variations import current_bottle_tag, merge_variations
from brewapi.core.config import (
    DEFAULT_API_DOMAIN,
    TAP_MIGRATIONS_STALE_SECONDS,
    ApiConfig,
)

__version__ = "0.1.0"

__all__ = [
    # Client
    "ApiClient",
    "ApiConfig",
    "FetchResult",
    "DownloadQueue",
    "JSONDownload",
    # Cache
    "CacheStore",
    "CacheMetrics",
    "CachedFile",
    # Exceptions
    "ApiError",
    "ConfigurationError",
    "CorruptionError",
    "IntegrityError",
    "TransportError",
    "UsageError",
    "ErrorCode",
    # Functions
    "verify_and_parse_jws",
    "load_public_key",
    "merge_variations",
    "current_bottle_tag",
    "with_no_api_env",
    "with_no_api_env_if_needed",
    # Constants
    "DEFAULT_API_DOMAIN",
    "TAP_MIGRATIONS_STALE_SECONDS",
]
