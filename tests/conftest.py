"""Root conftest for all tests - provides shared fixtures."""

import base64
import json
import os
from pathlib import Path
from typing import Dict, List, Optional, Union
from unittest.mock import patch

import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from brewapi.api.cache import CachedFile
from brewapi.api.exceptions import TransportError
from brewapi.api.transport import DownloadOutcome
from brewapi.core.config import ApiConfig


# =============================================================================
# Fake Transport
# =============================================================================


NOT_MODIFIED = object()

Response = Union[bytes, str, TransportError, object]


class FakeTransport:
    """In-memory stand-in for ApiTransport.

    Each URL maps to a response or a list of responses consumed in order
    (the last one repeats). A response is the body (bytes/str), a
    TransportError to fail with, or NOT_MODIFIED for a 304.
    """

    NOT_MODIFIED = NOT_MODIFIED

    def __init__(self, responses: Optional[Dict[str, Union[Response, List[Response]]]] = None):
        self.responses: Dict[str, List[Response]] = {}
        self.calls: List[dict] = []
        for url, response in (responses or {}).items():
            self.set(url, response)

    def set(self, url: str, response: Union[Response, List[Response]]) -> None:
        self.responses[url] = list(response) if isinstance(response, list) else [response]

    def _next(self, url: str) -> Response:
        queue = self.responses.get(url)
        if not queue:
            return TransportError(f"HTTP 404: Not Found fetching {url}", url=url)
        return queue.pop(0) if len(queue) > 1 else queue[0]

    @property
    def urls(self) -> List[str]:
        return [call["url"] for call in self.calls]

    def get(self, url: str) -> DownloadOutcome:
        self.calls.append({"method": "get", "url": url})
        response = self._next(url)
        if isinstance(response, TransportError):
            return DownloadOutcome.failure(url, response)
        if isinstance(response, str):
            response = response.encode("utf-8")
        return DownloadOutcome.success(url, content=response)

    def download(
        self,
        url: str,
        target: CachedFile,
        if_modified_since: Optional[float] = None,
        insecure: bool = False,
    ) -> DownloadOutcome:
        self.calls.append({
            "method": "download",
            "url": url,
            "if_modified_since": if_modified_since,
            "insecure": insecure,
        })
        response = self._next(url)
        if isinstance(response, TransportError):
            return DownloadOutcome.failure(url, response)
        if response is NOT_MODIFIED:
            return DownloadOutcome.success(url, not_modified=True)
        if isinstance(response, str):
            response = response.encode("utf-8")
        target.write_bytes(response)
        return DownloadOutcome.success(url)


@pytest.fixture
def fake_transport():
    return FakeTransport()


# =============================================================================
# Configuration
# =============================================================================


@pytest.fixture
def config(tmp_path):
    """Isolated config rooted in tmp_path, as an auto-updating command."""
    return ApiConfig(
        api_domain="https://formulae.brew.sh/api",
        cache_dir=tmp_path / "cache",
        prefix=tmp_path / "prefix",
        auto_update_command=True,
        curl_retries=3,
    )


@pytest.fixture(autouse=True)
def host_checks():
    """Pretend to run as a regular user on a host with a CA bundle."""
    with patch("brewapi.api.client.running_as_root_but_not_owned_by_root", return_value=False) as as_root, \
            patch("brewapi.api.client.insecure_download_required", return_value=False) as insecure:
        yield {"as_root": as_root, "insecure": insecure}


# =============================================================================
# Signing Keys and Envelopes
# =============================================================================


@pytest.fixture(scope="session")
def private_key():
    """Throwaway RSA key; the bundled public key has no private half here."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def public_key(private_key):
    return private_key.public_key()


def b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def sign_envelope(
    private_key,
    payload: str,
    protected_header: Optional[dict] = None,
    kid: str = "homebrew-1",
) -> dict:
    """Build a detached-payload JWS envelope signed with PS512."""
    if protected_header is None:
        protected_header = {"alg": "PS512", "b64": False, "crit": ["b64"]}
    protected = b64url(json.dumps(protected_header).encode("utf-8"))
    signature = private_key.sign(
        f"{protected}.{payload}".encode("utf-8"),
        padding.PSS(mgf=padding.MGF1(hashes.SHA512()), salt_length=padding.PSS.DIGEST_LENGTH),
        hashes.SHA512(),
    )
    return {
        "payload": payload,
        "signatures": [
            {"header": {"kid": kid}, "protected": protected, "signature": b64url(signature)},
        ],
    }


@pytest.fixture
def make_envelope(private_key):
    """Factory: make_envelope(payload_text, **overrides) -> envelope dict."""
    def _make(payload: str, **kwargs) -> dict:
        return sign_envelope(private_key, payload, **kwargs)
    return _make


@pytest.fixture
def write_file():
    """Factory: write_file(path, content, mtime=None) creates a cache file."""
    def _write(path: Path, content: Union[str, bytes], mtime: Optional[float] = None) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, str):
            content = content.encode("utf-8")
        path.write_bytes(content)
        if mtime is not None:
            os.utime(path, (mtime, mtime))
        return path
    return _write
