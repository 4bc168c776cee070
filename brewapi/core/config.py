"""
brewapi configuration constants.

Constants are organized into:
- NORMATIVE: Fixed by the API signing and hosting scheme
- CONFIGURABLE: Defaults that may be overridden per call or by environment
- OPERATIONAL: Deployment-specific settings (env vars), collected in ApiConfig
"""

import os
import platform
import sys
from dataclasses import dataclass, field
from pathlib import Path

from brewapi.api.exceptions import ConfigurationError

# =============================================================================
# NORMATIVE CONSTANTS
# =============================================================================

# Hardcoded fallback domain, used when a custom HOMEBREW_API_DOMAIN fails
DEFAULT_API_DOMAIN: str = "https://formulae.brew.sh/api"

# Only the signature carrying this key id is considered
JWS_KEY_ID: str = "homebrew-1"

# RSASSA-PSS with SHA-512, salt length equal to the digest length
JWS_ALGORITHM: str = "PS512"

# Endpoints with this suffix are detached-payload signature envelopes
JWS_ENDPOINT_SUFFIX: str = ".jws.json"

# Bundled verification key for JWS_KEY_ID
BUNDLED_PUBLIC_KEY_PATH: Path = Path(__file__).resolve().parent.parent / "api" / "homebrew-1.pem"

# Modification time applied after an insecure download (the epoch), so the
# next run always treats the file as stale
INSECURE_DOWNLOAD_MTIME: float = 0.0

# =============================================================================
# CONFIGURABLE DEFAULTS
# =============================================================================

# Default staleness window for API files (HOMEBREW_API_AUTO_UPDATE_SECS)
API_AUTO_UPDATE_SECS: int = 450

# Staleness window used for tap migration files
TAP_MIGRATIONS_STALE_SECONDS: int = 86400  # 1 day

# Corrupt downloads are retried this many times (HOMEBREW_CURL_RETRIES)
CURL_RETRIES: int = 3

# Abort transfers slower than SPEED_LIMIT bytes/s for SPEED_TIME seconds
CURL_SPEED_LIMIT: int = 100
CURL_SPEED_TIME: int = 10

# Connect timeout for API requests
CONNECT_TIMEOUT_SECONDS: float = 15.0

USER_AGENT: str = "brewapi (+https://formulae.brew.sh)"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


def _env_flag(name: str) -> bool:
    """Parse a boolean flag from the environment."""
    return os.getenv(name, "").strip().lower() in _TRUE_VALUES


def _env_int(name: str, default: int) -> int:
    """Parse an integer setting from the environment.

    Raises:
        ConfigurationError: If the variable is set but not an integer.
    """
    value = os.getenv(name, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")


def _default_cache_dir() -> Path:
    """Platform default for HOMEBREW_CACHE."""
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Caches" / "Homebrew"
    xdg_cache = os.getenv("XDG_CACHE_HOME")
    if xdg_cache:
        return Path(xdg_cache) / "Homebrew"
    return Path.home() / ".cache" / "Homebrew"


def _default_prefix() -> Path:
    """Platform default for HOMEBREW_PREFIX."""
    if sys.platform == "darwin":
        if platform.machine() == "arm64":
            return Path("/opt/homebrew")
        return Path("/usr/local")
    return Path("/home/linuxbrew/.linuxbrew")


# =============================================================================
# OPERATIONAL SETTINGS (via environment variables)
# =============================================================================


@dataclass
class ApiConfig:
    """Settings for API fetching.

    Attributes:
        api_domain: Primary API domain (no trailing slash).
        cache_dir: HOMEBREW_CACHE root.
        auto_update_secs: Default staleness window in seconds.
        no_auto_update: Auto-update disabled by the administrator.
        force_api_auto_update: Refresh API files even when auto-update is disabled.
        auto_update_command: The running command is an auto-updating one.
        curl_retries: Retry ceiling for corrupt downloads.
        speed_limit: Minimum transfer rate in bytes/s.
        speed_time: Seconds a transfer may stay below speed_limit.
        prefix: Installation prefix, used for the ownership check.
        public_key_path: PEM file holding the verification key.
    """

    api_domain: str = DEFAULT_API_DOMAIN
    cache_dir: Path = field(default_factory=_default_cache_dir)
    auto_update_secs: int = API_AUTO_UPDATE_SECS
    no_auto_update: bool = False
    force_api_auto_update: bool = False
    auto_update_command: bool = False
    curl_retries: int = CURL_RETRIES
    speed_limit: int = CURL_SPEED_LIMIT
    speed_time: int = CURL_SPEED_TIME
    prefix: Path = field(default_factory=_default_prefix)
    public_key_path: Path = BUNDLED_PUBLIC_KEY_PATH

    def __post_init__(self):
        self.api_domain = self.api_domain.rstrip("/")
        self.cache_dir = Path(self.cache_dir).expanduser()
        self.prefix = Path(self.prefix)
        self.public_key_path = Path(self.public_key_path)

    @property
    def cache_root(self) -> Path:
        """Directory holding one cache file per endpoint."""
        return self.cache_dir / "api"

    @property
    def source_cache_root(self) -> Path:
        """Directory holding downloaded formula/cask sources, by org/repo."""
        return self.cache_dir / "api-source"

    @property
    def uses_default_domain(self) -> bool:
        return self.api_domain == DEFAULT_API_DOMAIN

    @classmethod
    def from_env(cls) -> "ApiConfig":
        """Create configuration from HOMEBREW_* environment variables.

        Raises:
            ConfigurationError: If a numeric variable cannot be parsed.
        """
        cache_dir = os.getenv("HOMEBREW_CACHE")
        prefix = os.getenv("HOMEBREW_PREFIX")
        public_key = os.getenv("HOMEBREW_API_PUBLIC_KEY")

        return cls(
            api_domain=os.getenv("HOMEBREW_API_DOMAIN") or DEFAULT_API_DOMAIN,
            cache_dir=Path(cache_dir) if cache_dir else _default_cache_dir(),
            auto_update_secs=_env_int("HOMEBREW_API_AUTO_UPDATE_SECS", API_AUTO_UPDATE_SECS),
            no_auto_update=_env_flag("HOMEBREW_NO_AUTO_UPDATE"),
            force_api_auto_update=_env_flag("HOMEBREW_FORCE_API_AUTO_UPDATE"),
            auto_update_command=_env_flag("HOMEBREW_AUTO_UPDATE_COMMAND"),
            curl_retries=_env_int("HOMEBREW_CURL_RETRIES", CURL_RETRIES),
            speed_limit=_env_int("HOMEBREW_CURL_SPEED_LIMIT", CURL_SPEED_LIMIT),
            speed_time=_env_int("HOMEBREW_CURL_SPEED_TIME", CURL_SPEED_TIME),
            prefix=Path(prefix) if prefix else _default_prefix(),
            public_key_path=Path(public_key) if public_key else BUNDLED_PUBLIC_KEY_PATH,
        )


def no_install_from_api() -> bool:
    """Whether the caller opted out of installing from the API."""
    return _env_flag("HOMEBREW_NO_INSTALL_FROM_API")
