"""Per-platform variation merging for formula and cask JSON.

API documents may carry a "variations" map from bottle tag to a partial
document. Resolving a tag overlays the partial onto the base document; the
"variations" key never survives resolution.
"""

import platform
import sys
from typing import Any, Dict, Optional

# macOS major version → codename used in bottle tags
MACOS_CODENAMES: Dict[str, str] = {
    "26": "tahoe",
    "15": "sequoia",
    "14": "sonoma",
    "13": "ventura",
    "12": "monterey",
    "11": "big_sur",
    "10.15": "catalina",
    "10.14": "mojave",
    "10.13": "high_sierra",
}

_ARCH_ALIASES = {
    "aarch64": "arm64",
    "arm64": "arm64",
    "amd64": "x86_64",
    "x86_64": "x86_64",
}


def _normalize_arch(machine: str) -> str:
    machine = machine.lower()
    return _ARCH_ALIASES.get(machine, machine)


def _macos_codename(version: str) -> Optional[str]:
    parts = version.split(".")
    if not parts or not parts[0]:
        return None
    key = parts[0] if parts[0] != "10" else ".".join(parts[:2])
    return MACOS_CODENAMES.get(key)


def current_bottle_tag(
    system: Optional[str] = None,
    machine: Optional[str] = None,
    macos_version: Optional[str] = None,
) -> str:
    """Bottle tag for the running platform, e.g. "arm64_sonoma" or "x86_64_linux".

    Arguments override detection, for simulating another platform.
    """
    system = system or sys.platform
    arch = _normalize_arch(machine or platform.machine())

    if system == "darwin":
        version = macos_version or platform.mac_ver()[0]
        codename = _macos_codename(version)
        if codename is None:
            return f"{arch}_macos"
        # Intel tags carry no arch prefix
        return codename if arch == "x86_64" else f"{arch}_{codename}"

    return f"{arch}_linux"


def merge_variations(document: Dict[str, Any], bottle_tag: Optional[str] = None) -> Dict[str, Any]:
    """Flatten the variation for bottle_tag into the document.

    Args:
        document: Formula or cask document.
        bottle_tag: Platform tag (defaults to the current platform).

    Returns:
        A new document without "variations"; the input is returned
        unchanged only when it has no "variations" key.
    """
    if "variations" not in document:
        return document

    if bottle_tag is None:
        bottle_tag = current_bottle_tag()

    merged = {key: value for key, value in document.items() if key != "variations"}

    variations = document.get("variations") or {}
    variation = variations.get(str(bottle_tag)) if isinstance(variations, dict) else None
    if variation and isinstance(variation, dict):
        merged.update(variation)
        merged.pop("variations", None)

    return merged
