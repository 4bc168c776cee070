"""Temporarily opting out of API-based installation."""

import os
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

from brewapi.core.config import no_install_from_api

NO_API_ENV: Dict[str, str] = {
    "HOMEBREW_NO_INSTALL_FROM_API": "1",
    "HOMEBREW_AUTOMATICALLY_SET_NO_INSTALL_FROM_API": "1",
}


@contextmanager
def with_env(values: Dict[str, str]) -> Iterator[None]:
    """Set environment variables for the duration of the block, then restore them."""
    previous: Dict[str, Optional[str]] = {key: os.environ.get(key) for key in values}
    os.environ.update(values)
    try:
        yield
    finally:
        for key, value in previous.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value


@contextmanager
def with_no_api_env() -> Iterator[None]:
    """Run the block with API installation disabled.

    A no-op when HOMEBREW_NO_INSTALL_FROM_API is already set by the user, so
    the automatic marker is only present when this helper set it.
    """
    if no_install_from_api():
        yield
        return

    with with_env(NO_API_ENV):
        yield


@contextmanager
def with_no_api_env_if_needed(condition: bool) -> Iterator[None]:
    if not condition:
        yield
        return

    with with_no_api_env():
        yield
