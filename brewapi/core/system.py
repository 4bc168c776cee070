"""Host environment checks used by the fetch pipeline."""

import os
import ssl
from pathlib import Path

import certifi


def running_as_root() -> bool:
    return hasattr(os, "geteuid") and os.geteuid() == 0


def running_as_root_but_not_owned_by_root(prefix: Path) -> bool:
    """True when run via sudo against an installation owned by a regular user.

    Such runs must never create cache files the owning user cannot replace.
    """
    if not running_as_root():
        return False
    try:
        return Path(prefix).stat().st_uid != 0
    except FileNotFoundError:
        return False


def _exists(path) -> bool:
    return bool(path) and os.path.exists(path)


def insecure_download_required() -> bool:
    """Whether TLS certificates cannot be validated on this host.

    True only when neither the certifi bundle nor a system CA file or
    directory is available.
    """
    if _exists(certifi.where()):
        return False
    paths = ssl.get_default_verify_paths()
    return not (_exists(paths.cafile) or _exists(paths.capath))


def insecure_download_warning(resource: str) -> str:
    return (
        f"Downloading {resource} without certificate verification because no "
        "CA certificate bundle is available. Install `ca-certificates` to "
        "restore secure downloads."
    )
