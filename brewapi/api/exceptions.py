"""API ingestion exceptions mapped to error codes.

- Transport failures → recoverable (fallback domain or stale cache)
- Configuration, corruption and integrity failures → fatal
- Usage failures (missing or invalid static resource) → fatal, ValueError
"""

from brewapi.api.models import ErrorCode


class ApiError(Exception):
    """Base exception for API ingestion.

    Carries an error code that maps to ErrorCode constants.
    """

    recoverable = False

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


class ConfigurationError(ApiError):
    """Environment or privileges do not permit the operation.

    Maps to API_CONFIG_INVALID (never retried).
    Used when:
    - Running as root on a prefix not owned by root with no cached copy
    - A HOMEBREW_* variable holds an unparseable value
    """

    def __init__(self, message: str = "Invalid configuration"):
        super().__init__(ErrorCode.API_CONFIG_INVALID, message)

    @classmethod
    def root_download(cls, url: str) -> "ConfigurationError":
        return cls(
            f"Need to download {url} but cannot as root! "
            "Run `brew update` without `sudo` first then try again."
        )


class TransportError(ApiError):
    """Network or HTTP failure.

    Maps to API_FETCH_FAILED (recoverable via domain fallback or cache).
    Used when:
    - Connection/timeout errors
    - HTTP error status
    - Transfer slower than the configured speed limit
    """

    recoverable = True

    def __init__(self, message: str = "API fetch failed", url: str = None):
        self.url = url
        super().__init__(ErrorCode.API_FETCH_FAILED, message)


class CorruptionError(ApiError):
    """Downloaded file kept failing to parse.

    Maps to API_CACHE_CORRUPT (fatal once the retry ceiling is exceeded).
    """

    def __init__(self, url: str):
        self.url = url
        super().__init__(ErrorCode.API_CACHE_CORRUPT, f"Cannot download non-corrupt {url}!")


class IntegrityError(ApiError):
    """Signed envelope failed verification.

    Maps to API_SIGNATURE_INVALID (fatal, cache file removed).
    """

    def __init__(self, reason: str, url: str):
        self.reason = reason
        self.url = url
        super().__init__(
            ErrorCode.API_SIGNATURE_INVALID,
            f"Failed to verify integrity ({reason}) of:\n"
            f"  {url}\n"
            "Potential MITM attempt detected. Please run `brew update` and try again.",
        )


class UsageError(ApiError, ValueError):
    """Static resource missing or not valid JSON.

    Maps to API_RESOURCE_INVALID.
    """

    def __init__(self, message: str, url: str = None):
        self.url = url
        super().__init__(ErrorCode.API_RESOURCE_INVALID, message)

    @classmethod
    def not_found(cls, url: str) -> "UsageError":
        return cls(f"No file found at {url}", url=url)

    @classmethod
    def invalid_json(cls, url: str) -> "UsageError":
        return cls(f"Invalid JSON file: {url}", url=url)
